from zoom_sync.engine.renderer import FrameRenderer, ImageAsset, AnimationAsset
from zoom_sync.engine.encoder import FrameEncoder
from zoom_sync.engine.sync_coordinator import SyncCoordinator, SyncMetrics

__all__ = [
    "FrameRenderer",
    "FrameEncoder",
    "ImageAsset",
    "AnimationAsset",
    "SyncCoordinator",
    "SyncMetrics",
]
