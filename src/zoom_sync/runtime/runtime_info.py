import glob
import os
import sys
import importlib.util

INPUT_DEVICE_GLOB = "/dev/input/event*"


class RuntimeInfo:
    """Platform and optional-capability detection"""

    @classmethod
    def is_linux(cls) -> bool:
        return sys.platform.startswith("linux")

    @classmethod
    def is_windows(cls) -> bool:
        return sys.platform.startswith("win")

    @classmethod
    def is_macos(cls) -> bool:
        return sys.platform == "darwin"

    @classmethod
    def has_evdev(cls) -> bool:
        return cls.is_linux() and cls.has_module("evdev")

    @classmethod
    def readable_input_devices(cls) -> list:
        """Event devices this process may read (empty without input-group access)"""
        return [p for p in sorted(glob.glob(INPUT_DEVICE_GLOB)) if os.access(p, os.R_OK)]

    @classmethod
    def has_hidapi(cls) -> bool:
        return cls.has_module("hid")

    @classmethod
    def has_nvml(cls) -> bool:
        return cls.has_module("pynvml")

    @classmethod
    def has_module(cls, module_name: str) -> bool:
        try:
            return importlib.util.find_spec(module_name) is not None
        except (ImportError, ValueError):
            return False

    @classmethod
    def describe(cls) -> dict:
        return {
            "platform": sys.platform,
            "python": sys.version.split()[0],
            "evdev": cls.has_evdev(),
            "input_devices": len(cls.readable_input_devices()) if cls.is_linux() else 0,
            "hidapi": cls.has_hidapi(),
            "nvml": cls.has_nvml(),
        }
