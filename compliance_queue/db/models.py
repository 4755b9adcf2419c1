"""
SQLAlchemy models for Compliance Queue.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Enum, Index, String, Text

from ..schemas.artifact import ArtifactStatus
from .base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


artifact_status_enum = Enum(
    *[s.value for s in ArtifactStatus],
    name="compliance_artifact_status",
    validate_strings=True,
)


class ComplianceArtifactModel(Base):
    """A compliance document reference waiting in the review queue."""

    __tablename__ = "queued_compliance_artifacts"

    id = Column(
        "compliance_id",
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    name_origin = Column("compliance_name_origin", Text, nullable=False)
    name_translated = Column("compliance_name_translated", Text, nullable=True)
    url = Column(Text, nullable=True)

    status = Column(
        artifact_status_enum,
        nullable=False,
        default=ArtifactStatus.PENDING.value,
        index=True,
    )

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    status_changed_at = Column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_compliance_artifacts_status_created", "status", "created_at"),
    )

    @property
    def display_name(self) -> str:
        """Name sent to the scrape service: translated name when set."""
        return self.name_translated or self.name_origin

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "compliance_id": self.id,
            "compliance_name_origin": self.name_origin,
            "compliance_name_translated": self.name_translated,
            "url": self.url,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "status_changed_at": (
                self.status_changed_at.isoformat() if self.status_changed_at else None
            ),
        }
