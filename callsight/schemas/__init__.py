from .auth import Token, UserCreate, UserLogin, UserResponse
from .conversation import (
    AnalysisListItem,
    AnalysisRecordResponse,
    ProcessingResponse,
    Transcript,
    UploadResponse,
    Utterance,
)
from .insights import SalesCallAnalysis, SalesCallConversationInsights

__all__ = [
    "AnalysisListItem",
    "AnalysisRecordResponse",
    "ProcessingResponse",
    "SalesCallAnalysis",
    "SalesCallConversationInsights",
    "Token",
    "Transcript",
    "UploadResponse",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "Utterance",
]
