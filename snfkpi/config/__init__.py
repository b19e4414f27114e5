from .loader import load_config, get_setting, merge_config
from .defaults import DEFAULT_CONFIG

__all__ = [
    "load_config",
    "get_setting",
    "merge_config",
    "DEFAULT_CONFIG",
]
