"""
ConversationAnalysis persistence.

Every status write is a conditional UPDATE on the status the caller last saw, so
two polls racing on the same job can never move it backwards or overwrite a
terminal record. transcript/analysis go through their pydantic models on the
way in and on the way out.
"""
import logging
from datetime import timedelta

from sqlalchemy import or_, update
from sqlmodel import Session, select

from callsight.core.timeutil import utcnow
from callsight.models import AnalysisStatus, ConversationAnalysis
from callsight.models.conversation_analysis import ALLOWED_TRANSITIONS
from callsight.schemas.conversation import AnalysisListItem, AnalysisRecordResponse, Transcript
from callsight.schemas.insights import SalesCallConversationInsights
from callsight.services.errors import (
    AnalysisForbiddenError,
    AnalysisNotFoundError,
    InvalidTransitionError,
)

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 2000


def create_job(
    db: Session,
    *,
    user_id: int,
    storage_path: str,
    original_filename: str | None = None,
    content_type: str | None = None,
    description: str | None = None,
) -> ConversationAnalysis:
    job = ConversationAnalysis(
        user_id=user_id,
        storage_path=storage_path,
        original_filename=original_filename,
        content_type=content_type,
        description=description,
        status=AnalysisStatus.PENDING,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info("Analysis %s created for user %s (PENDING)", job.id, user_id)
    return job


def get_job_for_owner(db: Session, analysis_id: str, user_id: int) -> ConversationAnalysis:
    """Unknown id -> AnalysisNotFoundError; someone else's job -> AnalysisForbiddenError."""
    job = db.get(ConversationAnalysis, analysis_id)
    if job is None:
        raise AnalysisNotFoundError(f"Analysis {analysis_id} not found.")
    if job.user_id != user_id:
        logger.warning("User %s attempted to access analysis %s owned by %s", user_id, analysis_id, job.user_id)
        raise AnalysisForbiddenError("You do not have access to this analysis.")
    return job


def list_jobs_for_owner(db: Session, user_id: int, limit: int = 50) -> list[ConversationAnalysis]:
    stmt = (
        select(ConversationAnalysis)
        .where(ConversationAnalysis.user_id == user_id)
        .order_by(ConversationAnalysis.created_at.desc())
        .limit(limit)
    )
    return list(db.exec(stmt).all())


def _conditional_update(db: Session, job: ConversationAnalysis, expected: AnalysisStatus, *extra_where, **values) -> bool:
    stmt = (
        update(ConversationAnalysis)
        .where(
            ConversationAnalysis.id == job.id,
            ConversationAnalysis.user_id == job.user_id,
            ConversationAnalysis.status == expected,
            *extra_where,
        )
        .values(**values)
    )
    result = db.connection().execute(stmt)
    db.commit()
    db.refresh(job)
    return result.rowcount == 1


def transition(db: Session, job: ConversationAnalysis, new_status: AnalysisStatus, **values) -> ConversationAnalysis:
    current = job.status
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(f"Analysis {job.id}: {current.value} -> {new_status.value} is not allowed.")
    if new_status == AnalysisStatus.PROCESSING and not (values.get("external_job_ref") or job.external_job_ref):
        raise InvalidTransitionError(f"Analysis {job.id}: PROCESSING requires an external job reference.")
    if new_status == AnalysisStatus.FAILED and not values.get("error_message"):
        raise InvalidTransitionError(f"Analysis {job.id}: FAILED requires an error message.")
    if new_status == AnalysisStatus.COMPLETE:
        if job.transcript is None or values.get("analysis") is None:
            raise InvalidTransitionError(f"Analysis {job.id}: COMPLETE requires transcript and analysis.")
        values["error_message"] = None
    if new_status.is_terminal:
        values["claimed_at"] = None
    values["status"] = new_status
    values["updated_at"] = utcnow()

    if not _conditional_update(db, job, current, **values):
        raise InvalidTransitionError(
            f"Analysis {job.id}: expected {current.value}, found {job.status.value}; transition to {new_status.value} dropped."
        )
    logger.info("Analysis %s: %s -> %s", job.id, current.value, new_status.value)
    return job


def mark_processing(db: Session, job: ConversationAnalysis, external_job_ref: str) -> ConversationAnalysis:
    return transition(db, job, AnalysisStatus.PROCESSING, external_job_ref=external_job_ref)


def mark_failed(db: Session, job: ConversationAnalysis, error_message: str) -> ConversationAnalysis:
    message = (error_message or "").strip()[:MAX_ERROR_LENGTH] or "Analysis failed."
    return transition(db, job, AnalysisStatus.FAILED, error_message=message)


def mark_complete(db: Session, job: ConversationAnalysis, analysis: SalesCallConversationInsights) -> ConversationAnalysis:
    return transition(db, job, AnalysisStatus.COMPLETE, analysis=analysis.model_dump(mode="json", by_alias=True))


def save_transcript(db: Session, job: ConversationAnalysis, transcript: Transcript) -> ConversationAnalysis:
    """Stage-1 result; written before insight generation so a stage-2 failure keeps it."""
    saved = _conditional_update(
        db,
        job,
        AnalysisStatus.PROCESSING,
        transcript=transcript.model_dump(mode="json", by_alias=True),
        updated_at=utcnow(),
    )
    if not saved:
        raise InvalidTransitionError(f"Analysis {job.id}: transcript not saved, job is {job.status.value}.")
    logger.info("Analysis %s: transcript saved (%s chars, %s utterances)", job.id, len(transcript.full_text), len(transcript.utterances))
    return job


def try_claim(db: Session, job: ConversationAnalysis, ttl_seconds: int) -> bool:
    """
    Lease the insight stage of a PROCESSING job. Exactly one concurrent caller gets
    True; an expired lease (holder died mid-generation) can be taken over.
    """
    now = utcnow()
    claimed = _conditional_update(
        db,
        job,
        AnalysisStatus.PROCESSING,
        or_(
            ConversationAnalysis.claimed_at.is_(None),
            ConversationAnalysis.claimed_at < now - timedelta(seconds=ttl_seconds),
        ),
        claimed_at=now,
    )
    if claimed:
        logger.info("Analysis %s: insight stage claimed", job.id)
    return claimed


def read_transcript(job: ConversationAnalysis) -> Transcript | None:
    return Transcript.model_validate(job.transcript) if job.transcript is not None else None


def read_analysis(job: ConversationAnalysis) -> SalesCallConversationInsights | None:
    return SalesCallConversationInsights.model_validate(job.analysis) if job.analysis is not None else None


def to_record_response(job: ConversationAnalysis) -> AnalysisRecordResponse:
    return AnalysisRecordResponse(
        id=job.id,
        status=job.status.value,
        original_filename=job.original_filename,
        description=job.description,
        transcript=read_transcript(job),
        analysis=read_analysis(job),
        error_detail=job.error_message,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )


def to_list_item(job: ConversationAnalysis) -> AnalysisListItem:
    return AnalysisListItem(
        id=job.id,
        status=job.status.value,
        original_filename=job.original_filename,
        description=job.description,
        created_at=job.created_at,
    )
