from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from callsight.core.config import settings, upload_max_bytes
from callsight.core.database import get_db
from callsight.core.security import owner_id_from_token
from callsight.models import User
from callsight.services.feedback import FeedbackService
from callsight.services.reconciliation import ReconciliationService
from callsight.services.submission import SubmissionService

security = HTTPBearer(auto_error=False)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> int:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id = owner_id_from_token(credentials.credentials)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found.")
    return user


# Providers below read the clients built once in the lifespan; tests override them.

def get_submission_service(request: Request) -> SubmissionService:
    return SubmissionService(
        storage=request.app.state.storage,
        transcriber=request.app.state.transcriber,
        max_upload_bytes=upload_max_bytes(),
    )


def get_reconciliation_service(request: Request) -> ReconciliationService:
    return ReconciliationService(
        transcriber=request.app.state.transcriber,
        insights=request.app.state.insights,
        claim_ttl_seconds=settings.analysis_claim_ttl_seconds,
        pending_timeout_seconds=settings.pending_submission_timeout_seconds,
    )


def get_feedback_service(request: Request) -> FeedbackService:
    return FeedbackService(insights=request.app.state.insights)
