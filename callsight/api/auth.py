import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlmodel import Session, select

from callsight.api.deps import get_current_user
from callsight.core.config import settings
from callsight.core.database import get_db
from callsight.core.rate_limit import limiter
from callsight.core.security import create_access_token, hash_password, verify_password
from callsight.core.timeutil import utcnow
from callsight.models import User
from callsight.schemas import Token, UserCreate, UserLogin, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
_AUTH_RATE_LIMIT = f"{settings.rate_limit_per_minute}/minute"
_REGISTER_LIMIT = f"{settings.rate_limit_register_per_minute}/minute;100/hour"


def _first_error(exc: ValidationError) -> str:
    errs = exc.errors()
    if not errs:
        return "Invalid request."
    first = errs[0]
    field = str(first["loc"][-1]) if first.get("loc") else None
    msg = first.get("msg") or "Invalid value."
    return f"{field}: {msg}" if field else msg


@router.post("/register", response_model=UserResponse)
@limiter.limit(_REGISTER_LIMIT)
async def register(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    try:
        body = UserCreate(
            email=(form.get("email") or "").strip(),
            password=form.get("password") or "",
            full_name=(form.get("full_name") or "").strip(),
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_first_error(e))

    if db.exec(select(User).where(User.email == body.email)).first():
        raise HTTPException(status_code=400, detail="This email address is already registered.")
    user = User(
        email=body.email,
        hashed_password=hash_password(body.password),
        full_name=body.full_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s registered", user.id)
    return UserResponse(id=user.id or 0, email=user.email, full_name=user.full_name)


@router.post("/login", response_model=Token)
@limiter.limit(_AUTH_RATE_LIMIT)
async def login(
    request: Request,
    db: Session = Depends(get_db),
):
    form = await request.form()
    try:
        body = UserLogin(email=(form.get("email") or "").strip(), password=form.get("password") or "")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_first_error(e))

    user = db.exec(select(User).where(User.email == body.email)).first()
    if not user or not verify_password(body.password, user.hashed_password):
        logger.warning("Failed login for %s", body.email)
        raise HTTPException(status_code=401, detail="Incorrect email or password.")
    user.last_login_at = utcnow()
    db.add(user)
    db.commit()
    return Token(access_token=create_access_token(user.id))


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse(id=user.id or 0, email=user.email, full_name=user.full_name or "")
