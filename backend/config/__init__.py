"""
配置模块
"""

from .settings import settings, Settings
from .rewards import RewardConfig

__all__ = ["settings", "Settings", "RewardConfig"]
