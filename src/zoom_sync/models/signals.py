"""
Control signals for the sync coordinator

Tagged variant: ResyncSignal | ModeCycleSignal | ShutdownSignal.
Emitted by the input listener, the CLI boundary and the OS signal handlers.
"""

import time
from dataclasses import dataclass, field
from typing import Optional, Union

from zoom_sync.models.enums import DisplayMode, SignalSource


@dataclass(frozen=True)
class ResyncSignal:
    """Force an immediate render + transmit pass"""
    source: SignalSource = SignalSource.KEYBOARD
    timestamp: float = field(default_factory=time.time, compare=False)


@dataclass(frozen=True)
class ModeCycleSignal:
    """
    Switch display mode

    target_mode=None advances to the next configured mode.
    """
    target_mode: Optional[DisplayMode] = None
    source: SignalSource = SignalSource.KEYBOARD
    timestamp: float = field(default_factory=time.time, compare=False)


@dataclass(frozen=True)
class ShutdownSignal:
    """Stop the coordinator after any in-flight transmission"""
    source: SignalSource = SignalSource.SYSTEM
    timestamp: float = field(default_factory=time.time, compare=False)


ControlSignal = Union[ResyncSignal, ModeCycleSignal, ShutdownSignal]
