from datetime import UTC, datetime

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from salesboard.events import emit_event
from salesboard.models.company import DEFAULT_PRIMARY_COLOR, DEFAULT_SECONDARY_COLOR, Company
from salesboard.models.user import ROLE_ADMIN, User
from salesboard.schemas.companies import CompanyCreateRequest, CompanyPatchRequest


def create_company(db: Session, *, actor: dict, body: CompanyCreateRequest) -> Company:
    """Create a company and make the requesting user its first admin."""
    user = db.get(User, actor["id"])
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not active")
    if user.company_id is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": "User already belongs to a company.", "reason_code": "company_exists"},
        )

    now = datetime.now(UTC)
    company = Company(
        name=body.name,
        logo_url=body.logo_url,
        primary_color=body.primary_color or DEFAULT_PRIMARY_COLOR,
        secondary_color=body.secondary_color or DEFAULT_SECONDARY_COLOR,
        created_at=now,
        updated_at=now,
    )
    db.add(company)
    db.flush()
    user.company_id = company.id
    user.role = ROLE_ADMIN
    user.updated_at = now
    emit_event(
        db,
        company_id=company.id,
        event_type="company.created",
        actor_user_id=user.id,
        payload={"company_id": company.id},
    )
    db.commit()
    db.refresh(company)
    return company


def get_company(db: Session, *, actor: dict, company_id: str) -> Company:
    company = db.get(Company, company_id) if company_id == actor["company_id"] else None
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": "Company not found.", "reason_code": "company_not_found"},
        )
    return company


def update_company(db: Session, *, actor: dict, company_id: str, body: CompanyPatchRequest) -> Company:
    company = get_company(db, actor=actor, company_id=company_id)
    changes = body.model_dump(exclude_unset=True)
    for field in ("name", "primary_color", "secondary_color"):
        if field in changes and changes[field] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": f"{field} cannot be cleared.", "reason_code": "field_required"},
            )
    for field, value in changes.items():
        setattr(company, field, value)
    company.updated_at = datetime.now(UTC)
    emit_event(
        db,
        company_id=company.id,
        event_type="company.updated",
        actor_user_id=actor["id"],
        payload={"fields": sorted(changes)},
    )
    db.commit()
    db.refresh(company)
    return company
