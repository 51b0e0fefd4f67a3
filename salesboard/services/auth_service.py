from datetime import UTC, datetime

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salesboard.core.config import get_settings
from salesboard.core.passwords import hash_password, verify_password
from salesboard.core.security import create_access_token
from salesboard.models.user import ROLE_SELLER, User
from salesboard.schemas.auth import SignupRequest


def token_payload(user: User) -> dict:
    settings = get_settings()
    return {
        "access_token": create_access_token(user_id=user.id, company_id=user.company_id, role=user.role),
        "token_type": "bearer",
        "expires_in": settings.jwt_access_ttl_seconds,
        "user": {
            "id": user.id,
            "email": user.email,
            "display_name": user.display_name,
            "company_id": user.company_id,
            "role": user.role,
        },
    }


def signup(db: Session, body: SignupRequest) -> dict:
    if db.query(User.id).filter(User.email == body.email).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "Email is already registered.", "reason_code": "email_in_use"},
        )
    now = datetime.now(UTC)
    user = User(
        email=body.email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        role=ROLE_SELLER,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "Email is already registered.", "reason_code": "email_in_use"},
        ) from exc
    db.refresh(user)
    return token_payload(user)


def login(db: Session, email: str, password: str) -> dict:
    user = db.query(User).filter(User.email == email).first()
    if user is None or not verify_password(password, user.password_hash) or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return token_payload(user)
