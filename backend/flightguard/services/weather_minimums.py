"""Weather minimums per training level and the evaluation of conditions against them."""

import logging
from dataclasses import dataclass, field

from flightguard.models.enums import TrainingLevel
from flightguard.schemas.weather import WeatherConditions

logger = logging.getLogger(__name__)

# Any reported ceiling below this counts as significant cloud cover
CLEAR_SKIES_CEILING_FT = 10000

IMC_VISIBILITY_MI = 3
IMC_CEILING_FT = 1000


@dataclass(frozen=True)
class WeatherMinimums:
    visibility: float
    # None means "must be clear", which is stricter than a floor of 0
    ceiling: float | None
    max_wind_speed: float
    allow_precipitation: bool
    allow_thunderstorms: bool
    allow_icing: bool
    allow_imc: bool


@dataclass
class MinimumsEvaluation:
    meets: bool
    violations: list[str] = field(default_factory=list)


WEATHER_MINIMUMS: dict[TrainingLevel, WeatherMinimums] = {
    TrainingLevel.STUDENT_PILOT: WeatherMinimums(
        visibility=5,
        ceiling=None,
        max_wind_speed=10,
        allow_precipitation=False,
        allow_thunderstorms=False,
        allow_icing=False,
        allow_imc=False,
    ),
    TrainingLevel.PRIVATE_PILOT: WeatherMinimums(
        visibility=3,
        ceiling=1000,
        max_wind_speed=20,
        allow_precipitation=True,
        allow_thunderstorms=False,
        allow_icing=False,
        allow_imc=False,
    ),
    TrainingLevel.INSTRUMENT_RATED: WeatherMinimums(
        visibility=0,
        ceiling=0,
        max_wind_speed=30,
        allow_precipitation=True,
        allow_thunderstorms=False,
        allow_icing=False,
        allow_imc=True,
    ),
}


def _fmt(value: float) -> str:
    return f"{value:g}"


def get_minimums(level: TrainingLevel | str) -> WeatherMinimums:
    """Look up minimums; unrecognised levels get the most restrictive table."""
    try:
        return WEATHER_MINIMUMS[TrainingLevel(level)]
    except (ValueError, KeyError):
        logger.warning(f"Unknown training level {level!r}, applying STUDENT_PILOT minimums")
        return WEATHER_MINIMUMS[TrainingLevel.STUDENT_PILOT]


def evaluate(conditions: WeatherConditions, level: TrainingLevel | str) -> MinimumsEvaluation:
    """Check conditions against the level's minimums.

    Every rule is evaluated so the caller receives the full violation list.
    The IMC rule may repeat a visibility or ceiling violation.
    """
    minimums = get_minimums(level)
    violations: list[str] = []

    if conditions.visibility < minimums.visibility:
        violations.append(
            f"Visibility {_fmt(conditions.visibility)} mi is below minimum of {_fmt(minimums.visibility)} mi"
        )

    if minimums.ceiling is not None:
        if conditions.ceiling is not None and conditions.ceiling < minimums.ceiling:
            violations.append(
                f"Ceiling {_fmt(conditions.ceiling)} ft is below minimum of {_fmt(minimums.ceiling)} ft"
            )
    elif conditions.ceiling is not None and conditions.ceiling < CLEAR_SKIES_CEILING_FT:
        violations.append("Clear skies required (no significant cloud cover)")

    if conditions.wind_speed > minimums.max_wind_speed:
        violations.append(
            f"Wind speed {_fmt(conditions.wind_speed)} kt exceeds maximum of {_fmt(minimums.max_wind_speed)} kt"
        )

    if conditions.precipitation and not minimums.allow_precipitation:
        violations.append("Precipitation not allowed for this training level")

    if conditions.thunderstorms and not minimums.allow_thunderstorms:
        violations.append("Thunderstorms not allowed")

    if conditions.icing and not minimums.allow_icing:
        violations.append("Icing conditions not allowed")

    if not minimums.allow_imc:
        is_imc = conditions.visibility < IMC_VISIBILITY_MI or (
            conditions.ceiling is not None and conditions.ceiling < IMC_CEILING_FT
        )
        if is_imc:
            violations.append("Instrument Meteorological Conditions (IMC) not allowed for VFR flight")

    return MinimumsEvaluation(meets=not violations, violations=violations)


def describe_minimums(level: TrainingLevel | str) -> str:
    """One-line human summary of a level's minimums, used in prompts and UI."""
    m = get_minimums(level)
    ceiling = "clear skies required" if m.ceiling is None else f"{_fmt(m.ceiling)} ft ceiling"
    parts = [
        f"{_fmt(m.visibility)} mi visibility",
        ceiling,
        f"max {_fmt(m.max_wind_speed)} kt wind",
    ]
    if not m.allow_precipitation:
        parts.append("no precipitation")
    if not m.allow_thunderstorms:
        parts.append("no thunderstorms")
    if not m.allow_icing:
        parts.append("no icing")
    parts.append("IMC allowed" if m.allow_imc else "VFR only")
    return ", ".join(parts)
