"""
Audit Log Database Models.

Every lifecycle transition of a compliance artifact is recorded with
before/after snapshots, so the last state of a deleted artifact stays
available after the queue row is gone.
"""

from typing import Any, Dict

from sqlalchemy import JSON, Column, DateTime, Enum, Index, String, Text

from .base import Base
from .models import utcnow

audit_actor_kind_enum = Enum(
    "human",
    "system",
    name="audit_actor_kind",
)

audit_action_enum = Enum(
    "created",
    "updated",
    "status_changed",
    "deleted",
    name="audit_action",
)


class AuditLogModel(Base):
    """Audit log entry for a compliance artifact."""

    __tablename__ = "audit_log"

    id = Column(String(36), primary_key=True)
    ts = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # Who performed the action
    actor_kind = Column(audit_actor_kind_enum, nullable=False)
    actor_id = Column(String(128), nullable=False, index=True)

    action = Column(audit_action_enum, nullable=False, index=True)
    artifact_id = Column(String(36), nullable=False, index=True)

    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)
    note = Column(Text, nullable=True)

    # Pipeline run that caused the change, if any
    run_id = Column(String(36), nullable=True, index=True)

    __table_args__ = (Index("ix_audit_log_artifact_ts", "artifact_id", "ts"),)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "ts": self.ts.isoformat() if self.ts else None,
            "actor_kind": self.actor_kind,
            "actor_id": self.actor_id,
            "action": self.action,
            "artifact_id": self.artifact_id,
            "before": self.before,
            "after": self.after,
            "note": self.note,
            "run_id": self.run_id,
        }
