"""
Call simulator feedback: single-stage variant of the analysis pipeline.

The call log is already stored locally, so there is no provider job to track:
existing feedback is returned as is, otherwise it is generated once and saved.
A failed generation leaves the simulation untouched and can simply be retried.
"""
import logging
from typing import Any

from sqlmodel import Session, select

from callsight.core.timeutil import utcnow
from callsight.models import CallSimulation
from callsight.schemas.insights import SalesCallAnalysis
from callsight.services.errors import EmptyCallLogError, SimulationNotFoundError
from callsight.services.insights import InsightClient
from callsight.services.prompts import simulation_feedback_prompt

logger = logging.getLogger(__name__)

FEEDBACK_TEMPERATURE = 0.7


def format_call_log(entries: list[dict[str, Any]] | None) -> str:
    """Voice provider call log -> "Salesperson: ..." / "Prospect: ..." lines. Empty string when nothing usable."""
    if not entries or not isinstance(entries, list):
        return ""
    lines = []
    for item in entries:
        if not isinstance(item, dict) or item.get("type") != "transcript":
            continue
        role, text = item.get("role"), item.get("transcript")
        if not role or not text:
            continue
        speaker = "Salesperson" if role == "user" else "Prospect"
        lines.append(f"{speaker}: {text}")
    return "\n".join(lines)


def get_simulation_for_owner(db: Session, simulation_id: str, user_id: int) -> CallSimulation:
    stmt = select(CallSimulation).where(CallSimulation.id == simulation_id, CallSimulation.user_id == user_id)
    simulation = db.exec(stmt).first()
    if simulation is None:
        raise SimulationNotFoundError("Simulation not found")
    return simulation


class FeedbackService:
    def __init__(self, insights: InsightClient):
        self.insights = insights

    def generate(
        self,
        db: Session,
        simulation_id: str,
        user_id: int,
        salesperson_name: str | None = None,
    ) -> dict[str, Any]:
        simulation = get_simulation_for_owner(db, simulation_id, user_id)
        if simulation.feedback:
            logger.info("Feedback already exists for simulation %s", simulation_id)
            return simulation.feedback

        transcript_text = format_call_log(simulation.transcript)
        if not transcript_text:
            raise EmptyCallLogError("Transcript is required to generate feedback")

        prospect_name = (simulation.persona_details or {}).get("prospectName")
        prompt = simulation_feedback_prompt(transcript_text, salesperson_name, prospect_name)
        logger.info("Generating feedback for simulation %s", simulation_id)
        # InsightGenerationError propagates; nothing has been written yet.
        generated = self.insights.generate(prompt, SalesCallAnalysis, temperature=FEEDBACK_TEMPERATURE)
        feedback = SalesCallAnalysis.model_validate(generated).model_dump(mode="json", by_alias=True)

        simulation.feedback = feedback
        simulation.updated_at = utcnow()
        db.add(simulation)
        db.commit()
        db.refresh(simulation)
        logger.info("Feedback saved for simulation %s", simulation_id)
        return feedback
