from .config import load_config, validate_config, default_config
from .settings import Settings, SettingsStore

__all__ = ["load_config", "validate_config", "default_config", "Settings", "SettingsStore"]
