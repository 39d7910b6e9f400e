from .config import Config, load_config, save_config
from .logging_config import get_logger, setup_logging
from .scores import BestScores

__all__ = ["Config", "load_config", "save_config", "get_logger", "setup_logging", "BestScores"]
