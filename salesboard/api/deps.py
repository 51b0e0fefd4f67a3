from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from salesboard.core.security import decode_token
from salesboard.db.session import get_db
from salesboard.live.channel import LiveChannel
from salesboard.models.user import User


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


def user_context(user: User) -> dict:
    return {
        "id": user.id,
        "user_id": user.id,
        "email": user.email,
        "display_name": user.display_name,
        "company_id": user.company_id,
        "role": user.role,
    }


def resolve_token_user(db: Session, token: str) -> User:
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
    user_id = payload.get("sub")
    if not isinstance(user_id, str):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")
    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not active")
    return user


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> dict:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    user = resolve_token_user(db, token)
    request.state.company_id = user.company_id
    return user_context(user)


def require_company_member(user: dict = Depends(get_current_user)) -> dict:
    if user.get("company_id") is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Company membership required")
    return user


def require_roles(required: set[str]) -> Callable:
    def _enforcer(user: dict = Depends(require_company_member)) -> dict:
        if user.get("role") not in required:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user

    return _enforcer


def get_live_channel(request: Request) -> LiveChannel:
    return request.app.state.live_channel
