import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from salesboard.db.base import Base

DEFAULT_PRIMARY_COLOR = "#10b981"
DEFAULT_SECONDARY_COLOR = "#f59e0b"


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    logo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    primary_color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_PRIMARY_COLOR)
    secondary_color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_SECONDARY_COLOR)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
