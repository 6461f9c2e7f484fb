"""Call simulator sessions; feedback is generated once from the stored call log."""
import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from callsight.core.timeutil import utcnow


class CallStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class CallSimulation(SQLModel, table=True):
    __tablename__ = "call_simulations"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    user_id: int = Field(foreign_key="user.id", index=True)
    persona_details: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    call_status: CallStatus = CallStatus.NOT_STARTED
    duration: int = 0  # seconds
    # [{"type": "transcript", "role": "user" | "assistant", "transcript": "..."}]
    transcript: list | None = Field(default=None, sa_column=Column(JSON))
    feedback: dict | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
