# Common utilities
from dlgate.common.config import Config as Config
from dlgate.common.logging_utils import setup_logger as setup_logger

__all__ = ["Config", "setup_logger"]
