"""
Utilities for the motor park trips core: configuration and money helpers.
"""

from .config import ParkConfig, load_config, get_config, configure_logging
from .money import to_money, split, total, ZERO

__all__ = [
    "ParkConfig",
    "load_config",
    "get_config",
    "configure_logging",
    "to_money",
    "split",
    "total",
    "ZERO",
]
