import sys
from pathlib import Path

import pytest

# Add src to path (also set in pyproject for plain `pytest` runs)
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from zoom_sync.lifecycle.task_registry import TaskRegistry
from zoom_sync.models.config import DisplayConfig, ProviderConfig
from zoom_sync.models.enums import FieldID
from zoom_sync.utils.logger import configure_logger, LogLevel


@pytest.fixture(autouse=True)
def quiet_logger():
    configure_logger(LogLevel.ERROR, use_colors=False)
    yield
    configure_logger(LogLevel.INFO, use_colors=True)


@pytest.fixture(autouse=True)
def fresh_task_registry():
    TaskRegistry.reset()
    yield
    TaskRegistry.reset()


@pytest.fixture
def display():
    return DisplayConfig(width=110, height=110)


@pytest.fixture
def small_display():
    return DisplayConfig(width=16, height=12)


@pytest.fixture
def provider_config():
    def make(name="cpu_temp", field=FieldID.CPU_TEMP, **kwargs):
        return ProviderConfig(name=name, field=field, **kwargs)
    return make
