"""
Domain models for the display sync engine

Import concrete models from their modules (models.snapshot, models.frame, ...).
"""

from zoom_sync.models.enums import (
    FieldID,
    FieldStatus,
    DisplayMode,
    SyncState,
    PayloadKind,
    SignalSource,
)

__all__ = [
    "FieldID",
    "FieldStatus",
    "DisplayMode",
    "SyncState",
    "PayloadKind",
    "SignalSource",
]
