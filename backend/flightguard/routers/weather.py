"""Weather router: ad hoc checks, briefings, demo scenarios and the monitor trigger."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from flightguard.data.demo_scenarios import DEMO_SCENARIOS
from flightguard.database import get_db
from flightguard.dependencies import get_current_user
from flightguard.models.enums import UserRole
from flightguard.models.user import User
from flightguard.schemas.briefing import BriefingRequest, BriefingResponse
from flightguard.schemas.weather import LocationCheckRequest, MonitorRunResponse, WeatherCheckResponse
from flightguard.services.conflict_detection import conflict_detection_service
from flightguard.services.exceptions import AuthorizationError
from flightguard.services.weather_briefing_service import weather_briefing_service
from flightguard.services.weather_minimums import describe_minimums
from flightguard.services.weather_monitor import weather_monitor

router = APIRouter()


@router.post("/check", response_model=WeatherCheckResponse)
async def check_location(
    req: LocationCheckRequest,
    user: User = Depends(get_current_user),
):
    """Evaluate current conditions at a location for a training level."""
    result = await conflict_detection_service.check_location_safety(req.location, req.training_level)
    return WeatherCheckResponse(
        is_safe=result.is_safe,
        reason=result.reason,
        violations=result.violations,
        weather_data=result.weather_data,
    )


@router.post("/briefing", response_model=BriefingResponse)
async def briefing(
    req: BriefingRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return await weather_briefing_service.generate_briefing(
        db, req.location, req.date_time, req.training_level, destination=req.destination
    )


@router.get("/minimums/{training_level}")
async def minimums(training_level: str):
    return {"training_level": training_level, "description": describe_minimums(training_level)}


@router.get("/scenarios")
async def list_scenarios():
    return [
        {
            "id": s.id,
            "name": s.name,
            "description": s.description,
            "conditions": s.conditions.model_dump(),
        }
        for s in DEMO_SCENARIOS.values()
    ]


@router.post("/monitor/run", response_model=MonitorRunResponse)
async def run_monitor(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Trigger a monitor sweep outside the schedule (admins only)."""
    if user.role != UserRole.ADMIN.value:
        raise AuthorizationError("Admin access required")
    summary = await weather_monitor.run(db)
    return summary.to_dict()
