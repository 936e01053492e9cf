"""Deterministic weather scenarios for demos and tests.

Each scenario is tuned to trip (or just clear) a specific training level's
minimums so the whole hold/reschedule flow can be shown without live data.
"""

from dataclasses import dataclass

from flightguard.schemas.weather import WeatherConditions

DEFAULT_SCENARIO_ID = "clear-skies"


@dataclass(frozen=True)
class DemoScenario:
    id: str
    name: str
    description: str
    conditions: WeatherConditions


DEMO_SCENARIOS: dict[str, DemoScenario] = {
    s.id: s
    for s in [
        DemoScenario(
            id="clear-skies",
            name="Clear Skies",
            description="Perfect VFR conditions, safe for every training level",
            conditions=WeatherConditions(
                visibility=10,
                ceiling=15000,
                wind_speed=5,
                wind_direction=180,
                temperature=72,
                humidity=45,
                cloud_cover=0,
                description="clear sky",
            ),
        ),
        DemoScenario(
            id="student-conflict",
            name="Student Pilot Conflict",
            description="Light rain under a low broken layer; grounds student pilots",
            conditions=WeatherConditions(
                visibility=3,
                ceiling=800,
                wind_speed=15,
                wind_direction=270,
                temperature=65,
                humidity=80,
                precipitation=True,
                cloud_cover=60,
                description="light rain",
            ),
        ),
        DemoScenario(
            id="private-conflict",
            name="Private Pilot Conflict",
            description="Low ceiling and reduced visibility; IFR only",
            conditions=WeatherConditions(
                visibility=2,
                ceiling=500,
                wind_speed=12,
                wind_direction=200,
                temperature=60,
                humidity=85,
                precipitation=True,
                cloud_cover=80,
                description="mist and drizzle",
            ),
        ),
        DemoScenario(
            id="instrument-conflict",
            name="Instrument Rated Conflict",
            description="Thunderstorms with icing; unsafe for every level",
            conditions=WeatherConditions(
                visibility=1,
                ceiling=200,
                wind_speed=25,
                wind_direction=180,
                temperature=45,
                humidity=95,
                precipitation=True,
                thunderstorms=True,
                icing=True,
                cloud_cover=100,
                description="thunderstorm with heavy rain",
            ),
        ),
        DemoScenario(
            id="marginal",
            name="Marginal VFR",
            description="Near the private pilot limits",
            conditions=WeatherConditions(
                visibility=3.5,
                ceiling=1100,
                wind_speed=19,
                wind_direction=220,
                temperature=68,
                humidity=70,
                cloud_cover=30,
                description="scattered clouds",
            ),
        ),
    ]
}
