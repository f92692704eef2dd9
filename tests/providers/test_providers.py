from collections import namedtuple
from types import SimpleNamespace

import httpx
import pytest

from zoom_sync.models.enums import FieldID, WeatherIcon
from zoom_sync.models.errors import ConfigError, TransientProviderError
from zoom_sync.models.reading import ProviderReading, Location
from zoom_sync.providers import PROVIDER_REGISTRY, create_provider
from zoom_sync.providers import cpu_temp as cpu_module
from zoom_sync.providers import download_rate as rate_module
from zoom_sync.providers import gpu_temp as gpu_module
from zoom_sync.providers.geolocation import GeolocationProvider, parse_location
from zoom_sync.providers.weather import WeatherProvider, parse_forecast, wmo_to_icon
from zoom_sync.services.state_aggregator import StateAggregator

Temp = namedtuple("Temp", "label current high critical")

FORECAST = {
    "current": {"temperature_2m": -3.4, "weather_code": 71, "is_day": 1},
    "daily": {"temperature_2m_max": [1.2], "temperature_2m_min": [-7.9]},
}


def test_builtin_providers_are_registered():
    assert {"cpu_temp", "gpu_temp", "download_rate", "geolocation", "weather"} <= set(PROVIDER_REGISTRY)


def test_unknown_provider_is_config_error(provider_config):
    with pytest.raises(ConfigError):
        create_provider(provider_config("thermometer"))


# === CPU ===

class TestCpuTemp:
    @pytest.fixture
    def sensors(self, monkeypatch):
        groups = {
            "nvme": [Temp("Composite", 38.0, None, None)],
            "k10temp": [Temp("Tctl", 61.5, None, None), Temp("Tccd1", 58.0, None, None)],
        }
        monkeypatch.setattr(cpu_module.psutil, "sensors_temperatures", lambda: groups, raising=False)
        return groups

    @pytest.mark.asyncio
    async def test_prefers_known_cpu_sensor(self, sensors, provider_config):
        provider = create_provider(provider_config())
        reading = await provider.poll_async()
        assert reading.is_ok
        assert reading.value == 61.5

    @pytest.mark.asyncio
    async def test_label_filter(self, sensors, provider_config):
        provider = create_provider(provider_config(options={"sensor": "k10temp", "label": "tccd"}))
        assert (await provider.poll_async()).value == 58.0

    @pytest.mark.asyncio
    async def test_missing_sensor_is_permanent(self, sensors, provider_config):
        provider = create_provider(provider_config(options={"sensor": "coretemp"}))
        reading = await provider.poll_async()
        assert reading.is_permanent
        assert reading.error.details["available"] == ["k10temp", "nvme"]

    @pytest.mark.asyncio
    async def test_no_sensors_is_permanent(self, monkeypatch, provider_config):
        monkeypatch.setattr(cpu_module.psutil, "sensors_temperatures", lambda: {}, raising=False)
        reading = await create_provider(provider_config()).poll_async()
        assert reading.is_permanent


# === GPU ===

class TestGpuTemp:
    @pytest.fixture
    def nvml(self, monkeypatch):
        calls = []
        monkeypatch.setattr(gpu_module.pynvml, "nvmlInit", lambda: calls.append("init"))
        monkeypatch.setattr(gpu_module.pynvml, "nvmlDeviceGetHandleByIndex", lambda index: f"gpu{index}")
        monkeypatch.setattr(gpu_module.pynvml, "nvmlDeviceGetTemperature", lambda handle, sensor: 48)
        monkeypatch.setattr(gpu_module.pynvml, "nvmlShutdown", lambda: calls.append("shutdown"))
        return calls

    @pytest.mark.asyncio
    async def test_reads_temperature_and_shuts_down(self, nvml, provider_config):
        provider = create_provider(provider_config("gpu_temp", FieldID.GPU_TEMP, options={"index": 1}))

        first = await provider.poll_async()
        second = await provider.poll_async()
        await provider.close()

        assert (first.value, second.value) == (48.0, 48.0)
        assert nvml == ["init", "shutdown"]

    @pytest.mark.asyncio
    async def test_missing_driver_is_permanent(self, monkeypatch, provider_config):
        def fail():
            raise gpu_module.pynvml.NVMLError(gpu_module.pynvml.NVML_ERROR_DRIVER_NOT_LOADED)

        monkeypatch.setattr(gpu_module.pynvml, "nvmlInit", fail)
        provider = create_provider(provider_config("gpu_temp", FieldID.GPU_TEMP))
        reading = await provider.poll_async()

        assert reading.is_permanent
        assert "NVML unavailable" in reading.error.message


# === Download rate ===

@pytest.mark.asyncio
async def test_download_rate_needs_a_baseline(monkeypatch, provider_config):
    counters = iter([1_000_000, 3_000_000])
    clock = iter([100.0, 102.0])
    monkeypatch.setattr(rate_module.psutil, "net_io_counters", lambda **kw: SimpleNamespace(bytes_recv=next(counters)))
    monkeypatch.setattr(rate_module, "time", SimpleNamespace(monotonic=lambda: next(clock)))

    provider = create_provider(provider_config("download_rate", FieldID.DOWNLOAD_RATE))
    first = await provider.poll_async()
    second = await provider.poll_async()

    assert first.is_transient
    assert second.is_ok
    assert second.value == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_download_rate_unknown_interface_is_permanent(monkeypatch, provider_config):
    monkeypatch.setattr(
        rate_module.psutil,
        "net_io_counters",
        lambda pernic=False: {"eth0": SimpleNamespace(bytes_recv=1)},
    )
    provider = create_provider(provider_config("download_rate", FieldID.DOWNLOAD_RATE, options={"interface": "wlan9"}))
    assert (await provider.poll_async()).is_permanent


# === HTTP providers ===

def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_geolocation_lookup(provider_config):
    def handler(request):
        assert request.url.params["token"] == "secret"
        return httpx.Response(200, json={"loc": "52.23,21.01", "city": "Warsaw", "country": "PL"})

    async with mock_client(handler) as client:
        provider = GeolocationProvider(
            provider_config("geolocation", FieldID.LOCATION, options={"token": "secret"}),
            http_client=client,
        )
        reading = await provider.poll_async()

    assert reading.value == Location(52.23, 21.01, city="Warsaw", country="PL")


@pytest.mark.asyncio
async def test_fixed_coordinates_skip_lookup(provider_config):
    provider = GeolocationProvider(
        provider_config("geolocation", FieldID.LOCATION, options={"latitude": 1, "longitude": 2, "city": "Here"})
    )
    reading = await provider.poll_async()
    assert reading.value.name == "Here"
    await provider.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("status, permanent", [(401, True), (404, True), (429, False), (503, False)])
async def test_http_status_classification(status, permanent, provider_config):
    async with mock_client(lambda request: httpx.Response(status)) as client:
        provider = GeolocationProvider(provider_config("geolocation", FieldID.LOCATION), http_client=client)
        reading = await provider.poll_async()

    assert not reading.is_ok
    assert reading.is_permanent == permanent


@pytest.mark.asyncio
async def test_network_error_is_transient(provider_config):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    async with mock_client(handler) as client:
        provider = GeolocationProvider(provider_config("geolocation", FieldID.LOCATION), http_client=client)
        assert (await provider.poll_async()).is_transient


def test_malformed_location_is_transient():
    with pytest.raises(TransientProviderError):
        parse_location({"loc": "nowhere"})


def test_parse_forecast():
    report = parse_forecast(FORECAST, "Warsaw")
    assert report.condition == "Slight snow"
    assert report.icon == WeatherIcon.SNOWFALL
    assert (report.temp, report.low, report.high) == (-3.4, -7.9, 1.2)
    assert report.location == "Warsaw"


def test_malformed_forecast_is_transient():
    with pytest.raises(TransientProviderError):
        parse_forecast({"current": {}})


@pytest.mark.parametrize("code, is_day, icon", [
    (0, True, WeatherIcon.DAY_CLEAR),
    (0, False, WeatherIcon.NIGHT_CLEAR),
    (2, False, WeatherIcon.NIGHT_PARTLY_CLEAR),
    (45, True, WeatherIcon.CLOUDY),
    (63, True, WeatherIcon.RAINY),
    (80, True, WeatherIcon.DAY_PARTLY_RAINY),
    (86, True, WeatherIcon.SNOWFALL),
    (99, False, WeatherIcon.THUNDERSTORM),
])
def test_wmo_icons(code, is_day, icon):
    assert wmo_to_icon(code, is_day) == icon


@pytest.mark.asyncio
async def test_weather_waits_for_location(provider_config):
    aggregator = StateAggregator({})
    provider = WeatherProvider(provider_config("weather", FieldID.WEATHER), aggregator=aggregator)
    reading = await provider.poll_async()
    assert reading.is_transient
    assert "Location" in reading.error.message


@pytest.mark.asyncio
async def test_weather_uses_aggregated_location(provider_config):
    aggregator = StateAggregator({})
    aggregator.update(FieldID.LOCATION, ProviderReading.ok(Location(52.23, 21.01, city="Warsaw")))
    seen = {}

    def handler(request):
        seen.update(request.url.params)
        return httpx.Response(200, json=FORECAST)

    async with mock_client(handler) as client:
        provider = WeatherProvider(provider_config("weather", FieldID.WEATHER), aggregator=aggregator, http_client=client)
        reading = await provider.poll_async()

    assert reading.value.location == "Warsaw"
    assert seen["latitude"] == "52.23"
    assert seen["daily"] == "temperature_2m_max,temperature_2m_min"
