"""Weather briefing service: pre-flight briefings with an LLM and a rule-based fallback.

Flow per request:
1. Cache lookup by (location, instant, training level)
2. Current + forecast conditions from the weather provider
3. Recent weather checks recorded within 10 miles, for comparison
4. One LLM call producing the structured briefing
5. Rule-based briefing from the minimums evaluation if the LLM fails

Only LLM briefings are cached; a fallback is regenerated on the next request.
"""

import logging
import math
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.database import utcnow
from flightguard.models.booking import WeatherCheck
from flightguard.models.enums import TrainingLevel
from flightguard.models.user import User
from flightguard.schemas.briefing import (
    BriefingAction,
    BriefingRecommendation,
    BriefingResponse,
    ForecastSummary,
    RiskAssessment,
    RiskLevel,
    WeatherBriefing,
)
from flightguard.schemas.weather import Location, WeatherConditions, WeatherData, parse_location
from flightguard.services.booking_service import booking_service
from flightguard.services.briefing_cache import BriefingCache, briefing_cache
from flightguard.services.exceptions import ExternalServiceError
from flightguard.services.llm_client import llm_client
from flightguard.services.prompts import load_prompt
from flightguard.services.reschedule_service import ensure_participant
from flightguard.services.weather_minimums import describe_minimums, evaluate, get_minimums
from flightguard.services.weather_provider import WeatherProvider, weather_provider

logger = logging.getLogger(__name__)

Generator = Callable[[str, str], Awaitable[dict]]

_SYSTEM_PROMPT = load_prompt("weather_briefing.md")

EARTH_RADIUS_MI = 3959
HISTORY_RADIUS_MI = 10
HISTORY_DAYS = 90
HISTORY_LIMIT = 5
HISTORY_SCAN_LIMIT = 500


def haversine_miles(a_lat: float, a_lon: float, b_lat: float, b_lon: float) -> float:
    d_lat = math.radians(b_lat - a_lat)
    d_lon = math.radians(b_lon - a_lon)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a_lat)) * math.cos(math.radians(b_lat)) * math.sin(d_lon / 2) ** 2
    )
    return 2 * EARTH_RADIUS_MI * math.asin(math.sqrt(h))


def _describe(conditions: WeatherConditions) -> str:
    ceiling = "clear" if conditions.ceiling is None else f"ceiling {conditions.ceiling:g} ft"
    hazards = [
        name
        for name, present in (
            ("precipitation", conditions.precipitation),
            ("thunderstorms", conditions.thunderstorms),
            ("icing", conditions.icing),
        )
        if present
    ]
    text = (
        f"visibility {conditions.visibility:g} mi, {ceiling}, wind {conditions.wind_speed:g} kt, "
        f"{conditions.temperature:g}°F, humidity {conditions.humidity:g}%"
    )
    if hazards:
        text += f", {', '.join(hazards)}"
    if conditions.description:
        text = f"{conditions.description}: {text}"
    return text


class WeatherBriefingService:
    def __init__(
        self,
        provider: WeatherProvider | None = None,
        cache: BriefingCache = briefing_cache,
        generator: Generator | None = None,
    ):
        self.provider = provider or weather_provider
        self.cache = cache
        self._generator = generator or llm_client.complete_json

    async def generate_briefing(
        self,
        db: AsyncSession,
        location: Location,
        date_time: datetime,
        training_level: TrainingLevel | str,
        destination: Location | None = None,
    ) -> BriefingResponse:
        if date_time.tzinfo is None:
            date_time = date_time.replace(tzinfo=timezone.utc)
        level = getattr(training_level, "value", training_level)

        cached = self.cache.get(location.name, date_time, level)
        if cached:
            logger.debug(f"Briefing cache hit: {location.name} {date_time.isoformat()} {level}")
            return BriefingResponse(
                location=location, date_time=date_time, training_level=level, source="cache", briefing=cached
            )

        current = await self.provider.fetch_current(location)
        try:
            forecast = await self.provider.fetch_forecast(location, date_time)
        except ExternalServiceError as e:
            logger.warning(f"Forecast unavailable for {location.name}, using current conditions: {e}")
            forecast = current.model_copy(update={"timestamp": date_time})
        destination_weather = await self.provider.fetch_current(destination) if destination else None

        history = await self._historical_checks(db, location)
        prompt = self._build_prompt(location, date_time, level, current, forecast, destination_weather, history)

        try:
            raw = await self._generator(_SYSTEM_PROMPT, prompt)
            briefing = WeatherBriefing.model_validate(raw)
        except (PydanticValidationError, ValueError, RuntimeError) as e:
            logger.warning(f"Briefing generation failed for {location.name}, using rule-based briefing: {e}")
            briefing = self._fallback_briefing(forecast, level, date_time, history)
            return BriefingResponse(
                location=location, date_time=date_time, training_level=level, source="fallback", briefing=briefing
            )

        self.cache.set(location.name, date_time, level, briefing)
        return BriefingResponse(
            location=location, date_time=date_time, training_level=level, source="llm", briefing=briefing
        )

    async def briefing_for_booking(self, db: AsyncSession, booking_id: uuid.UUID, user: User) -> BriefingResponse:
        booking = await booking_service.get_booking(db, booking_id)
        ensure_participant(booking, user)
        return await self.generate_briefing(
            db,
            parse_location(booking.departure_location, "departure_location"),
            booking.scheduled_date,
            booking.student.training_level,
            destination=parse_location(booking.destination_location, "destination_location"),
        )

    async def _historical_checks(self, db: AsyncSession, location: Location) -> list[WeatherCheck]:
        """Most recent checks recorded within HISTORY_RADIUS_MI over the last HISTORY_DAYS."""
        since = utcnow() - timedelta(days=HISTORY_DAYS)
        result = await db.execute(
            select(WeatherCheck)
            .where(WeatherCheck.created_at >= since)
            .order_by(WeatherCheck.created_at.desc())
            .limit(HISTORY_SCAN_LIMIT)
        )
        nearby = []
        for check in result.scalars().all():
            loc = (check.weather_data or {}).get("location") or {}
            lat, lon = loc.get("latitude"), loc.get("longitude")
            if lat is None or lon is None:
                continue
            if haversine_miles(location.latitude, location.longitude, lat, lon) <= HISTORY_RADIUS_MI:
                nearby.append(check)
                if len(nearby) >= HISTORY_LIMIT:
                    break
        return nearby

    def _build_prompt(
        self,
        location: Location,
        date_time: datetime,
        level: str,
        current: WeatherData,
        forecast: WeatherData,
        destination: WeatherData | None,
        history: list[WeatherCheck],
    ) -> str:
        lines = [
            f"LOCATION: {location.name} ({location.latitude:.4f}, {location.longitude:.4f})",
            f"PLANNED FLIGHT TIME: {date_time.isoformat()}",
            f"TRAINING LEVEL: {level}",
            f"MINIMUMS: {describe_minimums(level)}",
            "",
            f"CURRENT CONDITIONS ({current.timestamp.isoformat()}): {_describe(current.conditions)}",
            f"FORECAST FOR PLANNED TIME: {_describe(forecast.conditions)}",
        ]
        if destination:
            lines.append(f"DESTINATION {destination.location.name}: {_describe(destination.conditions)}")

        evaluation = evaluate(forecast.conditions, level)
        lines += ["", "MINIMUMS CHECK: " + ("meets minimums" if evaluation.meets else "; ".join(evaluation.violations))]

        lines += ["", "RECENT CHECKS NEARBY:"]
        if history:
            lines += [
                f"- {c.created_at.date().isoformat()}: {'safe' if c.is_safe else 'unsafe'} ({c.reason})"
                for c in history
            ]
        else:
            lines.append("- none recorded")
        return "\n".join(lines)

    def _fallback_briefing(
        self, forecast: WeatherData, level: str, date_time: datetime, history: list[WeatherCheck]
    ) -> WeatherBriefing:
        conditions = forecast.conditions
        evaluation = evaluate(conditions, level)
        minimums = get_minimums(level)

        if conditions.thunderstorms or conditions.icing:
            risk, action = RiskLevel.SEVERE, BriefingAction.CANCEL
            reasoning = "Thunderstorms or icing make this flight unsafe at any training level."
        elif not evaluation.meets:
            risk, action = RiskLevel.HIGH, BriefingAction.DELAY
            reasoning = "Conditions are below your training-level minimums."
        elif (
            conditions.wind_speed >= 0.8 * minimums.max_wind_speed
            or conditions.visibility < minimums.visibility + 1
        ):
            risk, action = RiskLevel.MODERATE, BriefingAction.CAUTION
            reasoning = "Conditions meet minimums but are close to your limits."
        else:
            risk, action = RiskLevel.LOW, BriefingAction.PROCEED
            reasoning = "Conditions comfortably meet your training-level minimums."

        factors = list(evaluation.violations) or [f"Wind {conditions.wind_speed:g} kt", f"Visibility {conditions.visibility:g} mi"]
        historical = None
        if history:
            unsafe = sum(1 for c in history if not c.is_safe)
            historical = f"{unsafe} of the last {len(history)} nearby checks were unsafe."

        return WeatherBriefing(
            summary=f"{risk.value.title()} risk for a {level} flight. {reasoning}",
            current_conditions=_describe(conditions),
            forecast=ForecastSummary(
                description=_describe(conditions),
                expected_changes="No forecast trend available; based on current observation.",
                time_range=f"Around {date_time.isoformat()}",
            ),
            risk_assessment=RiskAssessment(level=risk, factors=factors, summary=reasoning),
            recommendation=BriefingRecommendation(action=action, reasoning=reasoning),
            historical_comparison=historical,
            confidence=0.5,
        )


# Singleton
weather_briefing_service = WeatherBriefingService()
