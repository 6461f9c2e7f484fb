"""
Pipeline exceptions.

Routes translate these into HTTP statuses; the reconciler writes their message
into ConversationAnalysis.error_message so a client that was not around for the
live response can still read why a job failed.
"""


class CallsightError(Exception):
    """Base exception for the analysis pipeline."""


class UploadValidationError(CallsightError):
    """Rejected upload (type, size, missing or empty file). No job exists."""


class AuthorizationError(CallsightError):
    pass


class AnalysisForbiddenError(AuthorizationError):
    """The job exists but belongs to another user."""


class AnalysisNotFoundError(CallsightError):
    pass


class SimulationNotFoundError(CallsightError):
    pass


class StorageError(CallsightError):
    """Artifact could not be stored. Raised before any job is created."""


class SubmissionError(CallsightError):
    """The transcription provider refused the job; the job row is left FAILED."""

    def __init__(self, message: str, analysis_id: str | None = None):
        super().__init__(message)
        self.analysis_id = analysis_id


class TranscriptionError(CallsightError):
    """Provider reported an error, returned no text, or could not be reached."""

    def __init__(self, message: str, provider: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class InsightGenerationError(CallsightError):
    """Structured output call failed or returned data that does not fit the schema."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class UnknownStatusError(CallsightError):
    """Provider returned a status string this service does not understand."""


class InvalidTransitionError(CallsightError):
    """A status write lost against a concurrent writer or violates the forward-only order."""


class EmptyCallLogError(CallsightError):
    """A simulation has no formattable call log to analyze."""
