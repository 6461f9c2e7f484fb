"""Conversation intelligence jobs: PENDING -> PROCESSING -> COMPLETE | FAILED."""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from callsight.core.timeutil import utcnow


class AnalysisStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({AnalysisStatus.COMPLETE, AnalysisStatus.FAILED})

# Forward-only transitions; terminal statuses have no outgoing edge.
ALLOWED_TRANSITIONS: dict[AnalysisStatus, frozenset[AnalysisStatus]] = {
    AnalysisStatus.PENDING: frozenset({AnalysisStatus.PROCESSING, AnalysisStatus.FAILED}),
    AnalysisStatus.PROCESSING: frozenset({AnalysisStatus.COMPLETE, AnalysisStatus.FAILED}),
    AnalysisStatus.COMPLETE: frozenset(),
    AnalysisStatus.FAILED: frozenset(),
}


def _new_id() -> str:
    return str(uuid.uuid4())


class ConversationAnalysis(SQLModel, table=True):
    __tablename__ = "conversation_analyses"
    id: str = Field(default_factory=_new_id, primary_key=True, max_length=36)
    user_id: int = Field(foreign_key="user.id", index=True)
    original_filename: str | None = None
    content_type: str | None = None
    storage_path: str  # public URL handed to the transcription provider
    description: str | None = None
    external_job_ref: str | None = Field(default=None, index=True)
    status: AnalysisStatus = Field(default=AnalysisStatus.PENDING, index=True)
    # Validated through callsight.schemas.conversation.Transcript / insights models in analysis_store
    transcript: dict | None = Field(default=None, sa_column=Column(JSON))
    analysis: dict | None = Field(default=None, sa_column=Column(JSON))
    error_message: str | None = None
    claimed_at: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))  # insight-stage lease, see analysis_store.try_claim
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
