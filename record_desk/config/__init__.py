"""
Config package for record_desk.

Responsible for:
- the GlobalConfig model
- loading global.json with environment overrides
"""

from .loader import load_global_config
from .model import GlobalConfig

__all__ = ["GlobalConfig", "load_global_config"]
