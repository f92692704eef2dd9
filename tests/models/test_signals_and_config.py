from zoom_sync.models.config import ProviderConfig, SyncConfig
from zoom_sync.models.enums import DisplayMode, FieldID, SignalSource
from zoom_sync.models.signals import ModeCycleSignal, ResyncSignal, ShutdownSignal


def test_signals_compare_without_timestamp():
    assert ResyncSignal() == ResyncSignal()
    assert ModeCycleSignal(DisplayMode.IMAGE) != ModeCycleSignal(DisplayMode.ANIMATION)
    assert ShutdownSignal().source == SignalSource.SYSTEM


def test_cycle_signal_defaults_to_next_mode():
    assert ModeCycleSignal().target_mode is None


def test_freshness_thresholds_per_field():
    config = SyncConfig(providers=(
        ProviderConfig(name="cpu_temp", field=FieldID.CPU_TEMP, freshness=60),
        ProviderConfig(name="geolocation", field=FieldID.LOCATION, freshness=None),
    ))
    assert config.freshness_thresholds() == {FieldID.CPU_TEMP: 60, FieldID.LOCATION: None}
    assert config.provider("geolocation").field == FieldID.LOCATION
    assert config.provider("weather") is None
