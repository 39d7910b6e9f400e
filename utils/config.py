"""Configuration management for the arcade engines."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional
import yaml
from pathlib import Path


# =============
# Engine config
# =============

@dataclass
class TileMergeCfg:
    size: int = 4
    four_probability: float = 0.1  # Chance a spawned tile is a 4 instead of a 2
    win_tile: int = 2048

    def __post_init__(self):
        assert self.size >= 2
        assert 0.0 <= self.four_probability <= 1.0
        assert self.win_tile >= 4


@dataclass
class MinefieldCfg:
    rows: int = 16
    cols: int = 16
    mines: int = 40

    # Place mines on the first reveal so that it can never detonate.
    safe_first_click: bool = False

    def __post_init__(self):
        assert self.rows > 0 and self.cols > 0
        limit = self.rows * self.cols - (1 if self.safe_first_click else 0)
        assert 0 <= self.mines <= limit


@dataclass
class BlockStackCfg:
    rows: int = 20
    cols: int = 10

    def __post_init__(self):
        # Widest spawn shape is the I piece (4 cells)
        assert self.rows >= 4
        assert self.cols >= 4


@dataclass
class TicTacToeCfg:
    ai_symbol: str = "O"

    # Prefer faster wins / slower losses (scores 10 - depth instead of 10).
    depth_discount: bool = False

    def __post_init__(self):
        assert self.ai_symbol in ("X", "O")


_SECTIONS = {
    "tile_merge": TileMergeCfg,
    "minefield": MinefieldCfg,
    "block_stack": BlockStackCfg,
    "tictactoe": TicTacToeCfg,
}


@dataclass
class Config:
    """Top-level configuration: one section per engine plus shared settings."""

    seed: Optional[int] = None
    log_level: str = "INFO"

    tile_merge: TileMergeCfg = field(default_factory=TileMergeCfg)
    minefield: MinefieldCfg = field(default_factory=MinefieldCfg)
    block_stack: BlockStackCfg = field(default_factory=BlockStackCfg)
    tictactoe: TicTacToeCfg = field(default_factory=TicTacToeCfg)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to a nested dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Create config from dictionary, ignoring unknown keys."""
        valid_keys = cls.__dataclass_fields__.keys()
        filtered = {}
        for k, v in d.items():
            if k not in valid_keys:
                continue
            section = _SECTIONS.get(k)
            if section is not None and isinstance(v, dict):
                section_keys = section.__dataclass_fields__.keys()
                v = section(**{sk: sv for sk, sv in v.items() if sk in section_keys})
            filtered[k] = v
        return cls(**filtered)


def load_config(config_path: Optional[str] = None, **overrides) -> Config:
    """
    Load configuration from YAML file with optional overrides.

    Args:
        config_path: Path to YAML config file. If None, uses defaults.
        **overrides: Top-level keys to override. Engine sections given as
            dicts are merged into the file's section rather than replacing it.

    Returns:
        Config object with loaded and overridden values.
    """
    config_dict: Dict[str, Any] = {}

    # Load from file if provided
    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path, "r") as f:
                config_dict = yaml.safe_load(f) or {}

    # Apply overrides
    for key, value in overrides.items():
        if key in _SECTIONS and isinstance(value, dict):
            merged = dict(config_dict.get(key) or {})
            merged.update(value)
            config_dict[key] = merged
        else:
            config_dict[key] = value

    return Config.from_dict(config_dict)


def save_config(config: Config, path: str) -> None:
    """Save configuration to YAML file."""
    with open(path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False)
