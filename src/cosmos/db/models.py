from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ApplicationModel(Base):
    """A registered application and where its repository lives."""

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    team: Mapped[str | None] = mapped_column(String(255), index=True)
    git_provider: Mapped[str | None] = mapped_column(String(50))
    git_owner: Mapped[str | None] = mapped_column(String(255))
    git_repository: Mapped[str | None] = mapped_column(String(255))
    git_branch: Mapped[str | None] = mapped_column(String(255))
    openclient_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    openclient_path: Mapped[str | None] = mapped_column(String(500))
    openapi_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    openapi_path: Mapped[str | None] = mapped_column(String(500))
    # blob hash of the manifest this application's edges were last built from
    manifest_hash: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class ApplicationDependencyModel(Base):
    """Consumer -> provider edge declared by the consumer's manifest."""

    __tablename__ = "application_dependencies"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    consumer_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    provider_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    reasons: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    # path -> method -> {"reasons": [...]}
    endpoints: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    consumer: Mapped[ApplicationModel] = relationship(foreign_keys=[consumer_id], lazy="joined")
    provider: Mapped[ApplicationModel] = relationship(foreign_keys=[provider_id], lazy="joined")

    __table_args__ = (
        UniqueConstraint("consumer_id", "provider_id", name="uq_dependency_consumer_provider"),
        Index("idx_dependencies_provider", "provider_id"),
    )


class SpecSnapshotModel(Base):
    """Latest normalized OpenAPI document of a provider."""

    __tablename__ = "application_openapi_specs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    content_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    document: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    application: Mapped[ApplicationModel] = relationship(lazy="joined")
