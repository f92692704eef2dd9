"""Device channel factory"""

from zoom_sync.hardware.device.device_channel_interface import IDeviceChannel
from zoom_sync.hardware.device.virtual_channel import VirtualDeviceChannel
from zoom_sync.models.config import DeviceConfig
from zoom_sync.models.enums import DeviceBackend
from zoom_sync.runtime.runtime_info import RuntimeInfo
from zoom_sync.utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.DEVICE)


def create_device_channel(config: DeviceConfig, timeout: float = 5.0) -> IDeviceChannel:
    """
    Build the configured channel

    A HID backend without a usable hidapi falls back to the virtual
    device so the rest of the engine still runs. Missing HID settings
    are a ConfigError.
    """
    if config.backend == DeviceBackend.HID:
        if RuntimeInfo.has_hidapi():
            from zoom_sync.hardware.device.hid_channel import HidDeviceChannel
            return HidDeviceChannel(config, timeout=timeout)
        log.error("hidapi not available, falling back to virtual device")

    log.info("Using virtual device channel")
    return VirtualDeviceChannel(latency=config.simulated_latency)
