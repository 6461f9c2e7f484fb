from datetime import datetime
from typing import Literal

from pydantic import Field

from .base import CamelModel
from .insights import SalesCallConversationInsights


class Utterance(CamelModel):
    """One diarized turn; start/end are milliseconds from the start of the audio."""

    speaker: str
    text: str
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    confidence: float | None = None


class Transcript(CamelModel):
    full_text: str = Field(min_length=1)
    utterances: list[Utterance] = Field(default_factory=list)


class UploadResponse(CamelModel):
    analysis_id: str


class ProcessingResponse(CamelModel):
    """Poll sentinel: the job is not terminal yet, ask again later."""

    status: Literal["PROCESSING"] = "PROCESSING"


class AnalysisRecordResponse(CamelModel):
    id: str
    status: str
    original_filename: str | None = None
    description: str | None = None
    transcript: Transcript | None = None
    analysis: SalesCallConversationInsights | None = None
    error_detail: str | None = None
    created_at: datetime
    updated_at: datetime


class AnalysisListItem(CamelModel):
    id: str
    status: str
    original_filename: str | None = None
    description: str | None = None
    created_at: datetime
