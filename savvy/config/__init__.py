from savvy.config.settings import SUPPORTED_PROVIDERS, Settings, load_settings

__all__ = ["SUPPORTED_PROVIDERS", "Settings", "load_settings"]
