from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from .base import CamelModel


class PersonaDetails(CamelModel):
    prospect_name: str
    job_title: str
    industry: str
    arrogance_level: str
    objection_level: str
    talkativeness: str
    confidence_level: str
    trust_level: str
    emotional_tone: str
    decision_making_style: str
    problem_awareness: str
    current_solution: str
    urgency_level: str
    budget_constraints: str
    pain_points: list[str] = Field(default_factory=list)


class CreateSimulationRequest(CamelModel):
    persona_details: PersonaDetails


class CreateSimulationResponse(CamelModel):
    id: str


class UpdateSimulationRequest(CamelModel):
    duration: int | None = Field(default=None, gt=0)
    # Call log entries as delivered by the voice provider
    transcript: list[dict[str, Any]] | None = None
    call_status: Literal["PENDING", "COMPLETED", "FAILED"] | None = None


class SimulationResponse(CamelModel):
    id: str
    persona_details: dict[str, Any]
    call_status: str
    duration: int
    transcript: list[dict[str, Any]] = Field(default_factory=list)
    feedback: dict[str, Any] | None = None
    created_at: datetime


class FeedbackResponse(CamelModel):
    feedback: dict[str, Any]
