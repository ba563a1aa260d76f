"""
Configuration for neurocable.

    from neurocable.config import CableConfig

    config = CableConfig(dt_ms=0.025, celsius=6.3)
    print(config.summary())
"""

from neurocable.config.base import BaseConfig
from neurocable.config.cable_config import CableConfig

__all__ = ["BaseConfig", "CableConfig"]
