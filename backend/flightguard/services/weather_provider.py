"""Weather providers: live OpenWeatherMap adapter and deterministic demo scenarios.

The strategy is picked once from settings by ``build_weather_provider``;
nothing here reads a mutable demo flag at call time.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

import httpx

from flightguard.config import Settings, settings
from flightguard.data.demo_scenarios import DEFAULT_SCENARIO_ID, DEMO_SCENARIOS
from flightguard.schemas.weather import Location, WeatherConditions, WeatherData
from flightguard.services.exceptions import ExternalServiceError, NotFoundError

logger = logging.getLogger(__name__)

METERS_PER_MILE = 1609.34
MPS_TO_KNOTS = 0.868976


class WeatherProvider(ABC):
    """Source of current (and approximate forecast) conditions for a location."""

    @abstractmethod
    async def fetch_current(self, location: Location) -> WeatherData:
        ...

    async def fetch_forecast(self, location: Location, at: datetime) -> WeatherData:
        """Conditions expected at ``at``.

        Neither provider has a real forecast feed, so the current snapshot is
        re-stamped with the requested instant.
        """
        current = await self.fetch_current(location)
        return current.model_copy(update={"timestamp": at})

    async def fetch_many(self, locations: list[Location]) -> list[WeatherData]:
        """Fetch several locations concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.fetch_current(loc) for loc in locations)))


class OpenWeatherProvider(WeatherProvider):
    """Adapter for the OpenWeatherMap current-weather API (imperial units)."""

    provider_name = "openweathermap"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openweathermap.org/data/2.5",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def fetch_current(self, location: Location) -> WeatherData:
        if not self._api_key:
            raise ExternalServiceError(
                "Weather service is not configured",
                provider=self.provider_name,
                hint="Set OPENWEATHER_API_KEY or enable DEMO_MODE",
            )

        client = await self._get_client()
        try:
            resp = await client.get(
                "/weather",
                params={
                    "lat": location.latitude,
                    "lon": location.longitude,
                    "appid": self._api_key,
                    "units": "imperial",
                },
            )
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"OpenWeatherMap returned {e.response.status_code} for {location.name}")
            raise ExternalServiceError(
                f"Failed to fetch weather data for {location.name}",
                provider=self.provider_name,
                hint="The weather service rejected the request; try again shortly",
                details={"status": e.response.status_code},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"OpenWeatherMap request failed for {location.name}: {e}")
            raise ExternalServiceError(
                f"Failed to fetch weather data for {location.name}",
                provider=self.provider_name,
                hint="The weather service is unreachable; try again shortly",
            ) from e

        try:
            conditions = self._parse_conditions(payload)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected OpenWeatherMap payload for {location.name}: {e}")
            raise ExternalServiceError(
                f"Weather data for {location.name} could not be read",
                provider=self.provider_name,
            ) from e

        return WeatherData(location=location, conditions=conditions, timestamp=datetime.now(timezone.utc))

    @staticmethod
    def _parse_conditions(payload: dict) -> WeatherConditions:
        main = payload["main"]
        wind = payload.get("wind") or {}
        weather = payload.get("weather") or [{}]
        primary = weather[0]
        cloud_cover = float((payload.get("clouds") or {}).get("all", 0))
        temperature = float(main["temp"])

        condition_id = int(primary.get("id", 800))
        summary = str(primary.get("main", "")).lower()
        has_rain = "rain" in payload or summary in ("rain", "drizzle")
        has_snow = "snow" in payload or summary == "snow"

        return WeatherConditions(
            visibility=round(float(payload.get("visibility", 10000)) / METERS_PER_MILE, 2),
            ceiling=_estimate_ceiling(cloud_cover),
            wind_speed=round(float(wind.get("speed", 0)) * MPS_TO_KNOTS, 1),
            wind_direction=wind.get("deg"),
            temperature=temperature,
            humidity=float(main.get("humidity", 0)),
            precipitation=has_rain or has_snow,
            thunderstorms=200 <= condition_id < 300,
            icing=temperature < 32 and has_rain,
            cloud_cover=cloud_cover,
            description=primary.get("description"),
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _estimate_ceiling(cloud_cover: float) -> float | None:
    """OpenWeatherMap has no cloud base; approximate one from coverage."""
    if cloud_cover <= 0:
        return None
    if cloud_cover < 25:
        return 10000
    if cloud_cover < 50:
        return 5000
    if cloud_cover < 75:
        return 2000
    return 1000


class ScenarioWeatherProvider(WeatherProvider):
    """Returns a fixed demo scenario for every location."""

    def __init__(self, scenario_id: str | None = None):
        scenario_id = scenario_id or DEFAULT_SCENARIO_ID
        if scenario_id not in DEMO_SCENARIOS:
            raise NotFoundError(
                f"Unknown weather scenario: {scenario_id}",
                details={"available": sorted(DEMO_SCENARIOS)},
            )
        self.scenario = DEMO_SCENARIOS[scenario_id]

    async def fetch_current(self, location: Location) -> WeatherData:
        return WeatherData(
            location=location,
            conditions=self.scenario.conditions,
            timestamp=datetime.now(timezone.utc),
        )


def build_weather_provider(config: Settings = settings) -> WeatherProvider:
    if config.demo_mode:
        logger.info(f"Weather provider: demo scenario {config.demo_scenario_id or DEFAULT_SCENARIO_ID!r}")
        return ScenarioWeatherProvider(config.demo_scenario_id)
    return OpenWeatherProvider(
        api_key=config.openweather_api_key,
        base_url=config.openweather_base_url,
        timeout=config.weather_request_timeout,
    )


# Singleton
weather_provider = build_weather_provider()
