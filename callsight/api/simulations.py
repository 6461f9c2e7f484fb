import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from callsight.api.deps import get_current_user, get_feedback_service
from callsight.core.database import get_db
from callsight.core.timeutil import utcnow
from callsight.models import CallSimulation, CallStatus, User
from callsight.schemas.simulation import (
    CreateSimulationRequest,
    CreateSimulationResponse,
    FeedbackResponse,
    SimulationResponse,
    UpdateSimulationRequest,
)
from callsight.services.errors import EmptyCallLogError, InsightGenerationError, SimulationNotFoundError
from callsight.services.feedback import FeedbackService, get_simulation_for_owner

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulations", tags=["simulations"])


def _owned_simulation(db: Session, simulation_id: str, user_id: int) -> CallSimulation:
    try:
        return get_simulation_for_owner(db, simulation_id, user_id)
    except SimulationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _to_response(simulation: CallSimulation) -> SimulationResponse:
    return SimulationResponse(
        id=simulation.id,
        persona_details=simulation.persona_details or {},
        call_status=simulation.call_status.value,
        duration=simulation.duration,
        transcript=simulation.transcript or [],
        feedback=simulation.feedback,
        created_at=simulation.created_at,
    )


@router.post("", response_model=CreateSimulationResponse, status_code=201)
def create_simulation(
    body: CreateSimulationRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    simulation = CallSimulation(
        user_id=user.id,
        persona_details=body.persona_details.model_dump(mode="json", by_alias=True),
    )
    db.add(simulation)
    db.commit()
    db.refresh(simulation)
    logger.info("Simulation %s created for user %s", simulation.id, user.id)
    return CreateSimulationResponse(id=simulation.id)


@router.get("/{simulation_id}", response_model=SimulationResponse)
def get_simulation(
    simulation_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _to_response(_owned_simulation(db, simulation_id, user.id))


@router.patch("/{simulation_id}", response_model=SimulationResponse)
def update_simulation(
    simulation_id: str,
    body: UpdateSimulationRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Called when the voice call ends: duration, call log and final call status."""
    simulation = _owned_simulation(db, simulation_id, user.id)
    if body.duration is not None:
        simulation.duration = body.duration
    if body.transcript is not None:
        simulation.transcript = body.transcript
    if body.call_status is not None:
        simulation.call_status = CallStatus(body.call_status)
    simulation.updated_at = utcnow()
    db.add(simulation)
    db.commit()
    db.refresh(simulation)
    return _to_response(simulation)


@router.post("/{simulation_id}/generate-feedback", response_model=FeedbackResponse)
def generate_feedback(
    simulation_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    service: FeedbackService = Depends(get_feedback_service),
):
    try:
        feedback = service.generate(db, simulation_id, user.id, salesperson_name=user.full_name or None)
    except SimulationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EmptyCallLogError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InsightGenerationError as e:
        logger.error("Feedback generation failed for simulation %s: %s", simulation_id, e)
        raise HTTPException(status_code=503 if e.retryable else 502, detail=str(e))
    return FeedbackResponse(feedback=feedback)
