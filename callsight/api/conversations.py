"""
Conversation intelligence: upload a call recording, then poll until the job is terminal.

Each poll advances the job (see ReconciliationService); there is no background worker.
"""
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlmodel import Session

from callsight.api.deps import get_current_user_id, get_reconciliation_service, get_submission_service
from callsight.core.config import settings
from callsight.core.database import get_db
from callsight.core.rate_limit import limiter
from callsight.schemas import AnalysisListItem, AnalysisRecordResponse, ProcessingResponse, UploadResponse
from callsight.services import analysis_store
from callsight.services.errors import (
    AnalysisForbiddenError,
    AnalysisNotFoundError,
    StorageError,
    SubmissionError,
    TranscriptionError,
    UploadValidationError,
)
from callsight.services.reconciliation import ReconciliationService
from callsight.services.submission import AudioUpload, SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversation-intelligence", tags=["conversation-intelligence"])
_UPLOAD_LIMIT = f"{settings.rate_limit_upload_per_minute}/minute"


def _error_body(request: Request, status_code: int, detail: str, **extra) -> JSONResponse:
    body = {"error": detail, "status_code": status_code, **extra}
    rid = getattr(request.state, "request_id", None)
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


@router.post("/upload", response_model=UploadResponse, status_code=201)
@limiter.limit(_UPLOAD_LIMIT)
def upload_conversation(
    request: Request,
    audio_file: UploadFile | None = File(None, alias="audioFile"),
    description: str | None = Form(None),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: SubmissionService = Depends(get_submission_service),
):
    """multipart/form-data: audioFile (mp3, wav, m4a) and an optional description."""
    if audio_file is None or not audio_file.filename:
        raise HTTPException(status_code=400, detail="No audio file uploaded. Send it in the 'audioFile' field.")
    try:
        # Declared size first; the bounded read catches a missing or understated one.
        service.check_size(audio_file.size)
        upload = AudioUpload(
            filename=audio_file.filename,
            content_type=audio_file.content_type,
            content=audio_file.file.read(service.max_upload_bytes + 1),
            description=description,
        )
        job = service.submit(db, user_id, upload)
    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except SubmissionError as e:
        return _error_body(request, 500, str(e), analysisId=e.analysis_id)
    return UploadResponse(analysis_id=job.id)


@router.get("", response_model=list[AnalysisListItem])
def list_conversations(
    limit: int = Query(50, ge=1, le=200),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return [analysis_store.to_list_item(job) for job in analysis_store.list_jobs_for_owner(db, user_id, limit)]


@router.get("/{analysis_id}/transcript", response_model=ProcessingResponse | AnalysisRecordResponse)
def poll_conversation(
    request: Request,
    analysis_id: str,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    """{"status": "PROCESSING"} until the job is COMPLETE or FAILED, then the full record."""
    try:
        job = service.reconcile(db, analysis_id, user_id)
    except AnalysisNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AnalysisForbiddenError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except TranscriptionError as e:
        # The job is untouched; retryable tells the client to keep polling.
        logger.warning("Poll of analysis %s could not reach the provider: %s", analysis_id, e)
        return _error_body(request, 500, str(e), retryable=True)
    if not job.status.is_terminal:
        return ProcessingResponse()
    return analysis_store.to_record_response(job)
