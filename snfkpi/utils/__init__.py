from .logger import get_logger, set_log_level
from .periods import days_in_period, parse_period

__all__ = ["get_logger", "set_log_level", "days_in_period", "parse_period"]
