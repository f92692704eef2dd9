from .input_shutdown_handler import InputShutdownHandler
from .provider_shutdown_handler import ProviderShutdownHandler
from .sync_shutdown_handler import SyncShutdownHandler
from .task_cancellation_handler import TaskCancellationHandler

__all__ = [
    "InputShutdownHandler",
    "ProviderShutdownHandler",
    "SyncShutdownHandler",
    "TaskCancellationHandler",
]
