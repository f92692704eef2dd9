from zoom_sync.managers.config_manager import ConfigManager

__all__ = ["ConfigManager"]
