from __future__ import annotations

from .load import load_config
from .schema import AppConfig, EnvOverrides, PlayerConfig, SelectionDocument

__all__ = ["AppConfig", "EnvOverrides", "PlayerConfig", "SelectionDocument", "load_config"]
