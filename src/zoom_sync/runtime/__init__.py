from zoom_sync.runtime.runtime_info import RuntimeInfo

__all__ = ["RuntimeInfo"]
