from .call_simulation import CallSimulation, CallStatus
from .conversation_analysis import AnalysisStatus, ConversationAnalysis
from .error_log import ErrorLog
from .user import User

__all__ = [
    "AnalysisStatus",
    "CallSimulation",
    "CallStatus",
    "ConversationAnalysis",
    "ErrorLog",
    "User",
]
