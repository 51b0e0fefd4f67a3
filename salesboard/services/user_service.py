from datetime import UTC, datetime

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from salesboard.events import emit_event
from salesboard.models.user import ROLE_ADMIN, VALID_ROLES, User
from salesboard.schemas.users import ProfilePatchRequest, UserAdminPatchRequest


def list_users(db: Session, *, company_id: str, role: str | None = None) -> list[User]:
    query = db.query(User).filter(User.company_id == company_id)
    if role is not None:
        if role not in VALID_ROLES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": f"Unknown role '{role}'.", "reason_code": "invalid_role"},
            )
        query = query.filter(User.role == role)
    return query.order_by(User.email.asc()).all()


def update_profile(db: Session, *, actor: dict, body: ProfilePatchRequest) -> User:
    user = db.get(User, actor["id"])
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not active")
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    user.updated_at = datetime.now(UTC)
    db.commit()
    db.refresh(user)
    return user


def admin_update_user(db: Session, *, actor: dict, user_id: str, body: UserAdminPatchRequest) -> User:
    user = db.query(User).filter(User.id == user_id, User.company_id == actor["company_id"]).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "User not found.", "reason_code": "user_not_found"},
        )
    changes = {field: value for field, value in body.model_dump(exclude_unset=True).items() if value is not None}
    if user.id == actor["id"] and (
        changes.get("is_active") is False or changes.get("role", ROLE_ADMIN) != ROLE_ADMIN
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Admins cannot deactivate or demote themselves.",
                "reason_code": "self_modification_forbidden",
            },
        )

    for field, value in changes.items():
        setattr(user, field, value)
    user.updated_at = datetime.now(UTC)
    emit_event(
        db,
        company_id=actor["company_id"],
        event_type="user.updated",
        actor_user_id=actor["id"],
        payload={"user_id": user.id, **changes},
    )
    db.commit()
    db.refresh(user)
    return user
