from datetime import datetime, timezone

import httpx
import pydantic
import pytest

from flightguard.config import DEMO_SCENARIO_IDS, Settings
from flightguard.data.demo_scenarios import DEMO_SCENARIOS
from flightguard.services.exceptions import ExternalServiceError, NotFoundError
from flightguard.services.weather_provider import (
    OpenWeatherProvider,
    ScenarioWeatherProvider,
    build_weather_provider,
)

from tests.helpers import KAUS, KGTU

RAINY_PAYLOAD = {
    "weather": [{"id": 501, "main": "Rain", "description": "moderate rain"}],
    "main": {"temp": 30.2, "humidity": 91},
    "visibility": 16093.4,
    "wind": {"speed": 10, "deg": 90},
    "clouds": {"all": 60},
    "rain": {"1h": 1.2},
}


def make_provider(handler, api_key="test-key") -> OpenWeatherProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://weather.test")
    return OpenWeatherProvider(api_key=api_key, client=client)


async def test_openweather_converts_units_and_hazards():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.url.params)
        return httpx.Response(200, json=RAINY_PAYLOAD)

    data = await make_provider(handler).fetch_current(KAUS)

    assert seen["units"] == "imperial"
    assert seen["appid"] == "test-key"
    c = data.conditions
    assert c.visibility == pytest.approx(10.0)
    assert c.wind_speed == pytest.approx(8.7)
    assert c.wind_direction == 90
    assert c.ceiling == 2000
    assert c.precipitation is True
    assert c.icing is True
    assert c.thunderstorms is False
    assert c.description == "moderate rain"
    assert data.location == KAUS


@pytest.mark.parametrize(
    "cloud_cover, ceiling",
    [(0, None), (10, 10000), (40, 5000), (60, 2000), (90, 1000)],
)
async def test_openweather_estimates_ceiling_from_cloud_cover(cloud_cover, ceiling):
    payload = {
        "weather": [{"id": 800, "main": "Clear"}],
        "main": {"temp": 70, "humidity": 40},
        "visibility": 10000,
        "wind": {"speed": 2},
        "clouds": {"all": cloud_cover},
    }
    data = await make_provider(lambda r: httpx.Response(200, json=payload)).fetch_current(KAUS)
    assert data.conditions.ceiling == ceiling


async def test_openweather_flags_thunderstorms():
    payload = dict(RAINY_PAYLOAD, weather=[{"id": 211, "main": "Thunderstorm", "description": "thunderstorm"}])
    data = await make_provider(lambda r: httpx.Response(200, json=payload)).fetch_current(KAUS)
    assert data.conditions.thunderstorms is True


async def test_openweather_http_error_is_external_service_error():
    provider = make_provider(lambda r: httpx.Response(503, json={"message": "down"}))
    with pytest.raises(ExternalServiceError) as exc_info:
        await provider.fetch_current(KAUS)
    assert exc_info.value.provider == "openweathermap"
    assert exc_info.value.status_code == 502
    assert "KAUS" in exc_info.value.message


async def test_openweather_transport_failure_is_external_service_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalServiceError):
        await make_provider(handler).fetch_current(KAUS)


async def test_openweather_without_key_fails_with_hint():
    provider = make_provider(lambda r: httpx.Response(200, json=RAINY_PAYLOAD), api_key="")
    with pytest.raises(ExternalServiceError) as exc_info:
        await provider.fetch_current(KAUS)
    assert "OPENWEATHER_API_KEY" in exc_info.value.hint


async def test_scenario_provider_is_deterministic():
    provider = ScenarioWeatherProvider("student-conflict")
    first, second = await provider.fetch_many([KAUS, KGTU])
    assert first.location == KAUS
    assert second.location == KGTU
    assert first.conditions == second.conditions == DEMO_SCENARIOS["student-conflict"].conditions


async def test_scenario_provider_defaults_to_clear_skies():
    data = await ScenarioWeatherProvider(None).fetch_current(KAUS)
    assert data.conditions == DEMO_SCENARIOS["clear-skies"].conditions


def test_unknown_scenario_is_not_found():
    with pytest.raises(NotFoundError) as exc_info:
        ScenarioWeatherProvider("hurricane")
    assert "clear-skies" in exc_info.value.details["available"]


async def test_forecast_restamps_current_conditions():
    at = datetime(2030, 6, 1, 14, 0, tzinfo=timezone.utc)
    data = await ScenarioWeatherProvider("marginal").fetch_forecast(KAUS, at)
    assert data.timestamp == at
    assert data.conditions == DEMO_SCENARIOS["marginal"].conditions


def test_build_weather_provider_selects_strategy_from_settings():
    demo = build_weather_provider(Settings(demo_mode=True, demo_scenario_id="marginal"))
    assert isinstance(demo, ScenarioWeatherProvider)
    assert demo.scenario.id == "marginal"

    live = build_weather_provider(Settings(demo_mode=False, openweather_api_key="abc"))
    assert isinstance(live, OpenWeatherProvider)


def test_unknown_demo_scenario_is_a_settings_error():
    with pytest.raises(pydantic.ValidationError, match="Unknown demo scenario 'hurricane'"):
        Settings(demo_mode=True, demo_scenario_id="hurricane")

    assert Settings(demo_scenario_id="").demo_scenario_id is None


def test_settings_know_every_demo_scenario():
    assert set(DEMO_SCENARIO_IDS) == set(DEMO_SCENARIOS)
