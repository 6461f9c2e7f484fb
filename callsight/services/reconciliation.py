"""
Poll-driven state machine for conversation analyses.

Each call advances one job as far as the providers allow right now:

    PENDING     submission still in flight (or stale -> FAILED)
    PROCESSING  ask the transcription provider;
                queued/processing      -> unchanged
                error                  -> FAILED
                completed, empty text  -> FAILED
                completed              -> claim, save transcript, generate insights
                                          -> COMPLETE | FAILED (transcript kept)
                anything else          -> FAILED
    COMPLETE / FAILED  returned as stored, no provider is contacted
"""
import logging
from datetime import timedelta

from pydantic import ValidationError
from sqlmodel import Session

from callsight.core.timeutil import as_utc, utcnow
from callsight.models import AnalysisStatus, ConversationAnalysis
from callsight.schemas.conversation import Transcript
from callsight.schemas.insights import SalesCallConversationInsights
from callsight.services import analysis_store
from callsight.services.errors import InvalidTransitionError, UnknownStatusError
from callsight.services.insights import InsightClient
from callsight.services.prompts import conversation_insights_prompt
from callsight.services.transcription import (
    COMPLETED,
    ERROR,
    IN_FLIGHT_STATUSES,
    TranscriptionClient,
)

logger = logging.getLogger(__name__)

INSIGHTS_TEMPERATURE = 0.5

MISSING_REFERENCE_MESSAGE = "Missing external transcription reference."
STALE_SUBMISSION_MESSAGE = "Transcription submission did not complete."
PROVIDER_ERROR_MESSAGE = "Transcription failed at the provider."
EMPTY_TRANSCRIPT_MESSAGE = "Transcription completed but no text was returned (empty result)."
MALFORMED_RESULT_MESSAGE = "Transcription result was malformed"


class ReconciliationService:
    def __init__(
        self,
        transcriber: TranscriptionClient,
        insights: InsightClient,
        claim_ttl_seconds: int = 600,
        pending_timeout_seconds: int = 300,
    ):
        self.transcriber = transcriber
        self.insights = insights
        self.claim_ttl_seconds = claim_ttl_seconds
        self.pending_timeout_seconds = pending_timeout_seconds

    def reconcile(self, db: Session, analysis_id: str, user_id: int) -> ConversationAnalysis:
        """
        Returns the job after this poll. A non-terminal status means "poll again later".
        Ownership is checked before anything is read from or written to the job.
        """
        job = analysis_store.get_job_for_owner(db, analysis_id, user_id)

        if job.status.is_terminal:
            return job

        if job.status == AnalysisStatus.PENDING:
            return self._reconcile_pending(db, job)

        if not job.external_job_ref:
            logger.error("Analysis %s is PROCESSING without an external reference", job.id)
            return self._fail(db, job, MISSING_REFERENCE_MESSAGE)

        # TranscriptionError propagates: the job stays PROCESSING and the next poll retries.
        result = self.transcriber.get_status(job.external_job_ref)
        logger.info("Analysis %s: provider status for %s is %r", job.id, job.external_job_ref, result.status)

        if result.status in IN_FLIGHT_STATUSES:
            return job
        if result.status == ERROR:
            return self._fail(db, job, result.error or PROVIDER_ERROR_MESSAGE)
        if result.status == COMPLETED:
            if not (result.text or "").strip():
                return self._fail(db, job, EMPTY_TRANSCRIPT_MESSAGE)
            try:
                transcript = result.to_transcript()
            except (ValueError, TypeError, AttributeError, ValidationError) as e:
                logger.error("Analysis %s: malformed transcription result: %s", job.id, e)
                return self._fail(db, job, f"{MALFORMED_RESULT_MESSAGE}: {e}")
            return self._run_insight_stage(db, job, transcript)
        error = UnknownStatusError(f"Unknown transcription status: {result.status}")
        logger.error("Analysis %s: %s", job.id, error)
        return self._fail(db, job, str(error))

    def _reconcile_pending(self, db: Session, job: ConversationAnalysis) -> ConversationAnalysis:
        # The upload request that created the job is still talking to the provider.
        age = utcnow() - as_utc(job.created_at)
        if age > timedelta(seconds=self.pending_timeout_seconds):
            logger.warning("Analysis %s stuck in PENDING for %s", job.id, age)
            return self._fail(db, job, STALE_SUBMISSION_MESSAGE)
        return job

    def _run_insight_stage(self, db: Session, job: ConversationAnalysis, transcript: Transcript) -> ConversationAnalysis:
        if not analysis_store.try_claim(db, job, self.claim_ttl_seconds):
            logger.info("Analysis %s: insight stage already claimed by another poll", job.id)
            return job

        try:
            analysis_store.save_transcript(db, job, transcript)
        except InvalidTransitionError as e:
            logger.warning("%s", e)
            return job

        try:
            prompt = conversation_insights_prompt(transcript.full_text, job.description)
            generated = self.insights.generate(prompt, SalesCallConversationInsights, temperature=INSIGHTS_TEMPERATURE)
            analysis = SalesCallConversationInsights.model_validate(generated)
        except Exception as e:
            logger.exception("Insight generation failed for analysis %s: %s", job.id, e)
            return self._fail(db, job, str(e) or type(e).__name__)

        try:
            return analysis_store.mark_complete(db, job, analysis)
        except InvalidTransitionError as e:
            logger.warning("%s", e)
            return job

    def _fail(self, db: Session, job: ConversationAnalysis, message: str) -> ConversationAnalysis:
        try:
            return analysis_store.mark_failed(db, job, message)
        except InvalidTransitionError as e:
            # Another poll finished the job first; report what it stored.
            logger.warning("%s", e)
            return job
