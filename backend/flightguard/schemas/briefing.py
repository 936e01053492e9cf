from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from flightguard.models.enums import TrainingLevel
from flightguard.schemas.weather import Location


class RiskLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    SEVERE = "SEVERE"


class BriefingAction(str, Enum):
    PROCEED = "PROCEED"
    CAUTION = "CAUTION"
    DELAY = "DELAY"
    CANCEL = "CANCEL"


class ForecastSummary(BaseModel):
    description: str
    expected_changes: str
    time_range: str


class RiskAssessment(BaseModel):
    level: RiskLevel
    factors: list[str] = Field(default_factory=list)
    summary: str


class BriefingRecommendation(BaseModel):
    action: BriefingAction
    reasoning: str
    alternatives: list[str] = Field(default_factory=list)


class WeatherBriefing(BaseModel):
    summary: str
    current_conditions: str
    forecast: ForecastSummary
    risk_assessment: RiskAssessment
    recommendation: BriefingRecommendation
    historical_comparison: str | None = None
    confidence: float = Field(ge=0, le=1)


class BriefingRequest(BaseModel):
    location: Location
    date_time: datetime
    training_level: TrainingLevel
    destination: Location | None = None


class BriefingResponse(BaseModel):
    location: Location
    date_time: datetime
    training_level: str
    source: str  # "llm" | "fallback" | "cache"
    briefing: WeatherBriefing
