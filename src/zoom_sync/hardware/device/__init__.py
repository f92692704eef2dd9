from zoom_sync.hardware.device.device_channel_interface import IDeviceChannel
from zoom_sync.hardware.device.virtual_channel import VirtualDeviceChannel
from zoom_sync.hardware.device.device_channel_factory import create_device_channel

__all__ = [
    "IDeviceChannel",
    "VirtualDeviceChannel",
    "create_device_channel",
]
