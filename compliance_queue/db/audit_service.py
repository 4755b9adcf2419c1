"""
Audit Log Service.

Entries are added to the caller's session and committed together with the
change they describe; the service never commits on its own.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .audit_models import AuditLogModel


class AuditService:
    """Records audit entries for compliance artifacts.

    Usage:
        audit = AuditService(db)
        audit.log_status_change(artifact_id, before, after, actor_id="reviewer")
        db.commit()
    """

    def __init__(self, db: Session):
        self.db = db

    def _record(
        self,
        action: str,
        artifact_id: str,
        before: Optional[Dict[str, Any]],
        after: Optional[Dict[str, Any]],
        actor_kind: str,
        actor_id: str,
        note: Optional[str],
        run_id: Optional[str],
    ) -> AuditLogModel:
        entry = AuditLogModel(
            id=str(uuid.uuid4()),
            ts=datetime.now(timezone.utc),
            actor_kind=actor_kind,
            actor_id=actor_id,
            action=action,
            artifact_id=artifact_id,
            before=before,
            after=after,
            note=note,
            run_id=run_id,
        )
        self.db.add(entry)
        return entry

    def log_create(
        self,
        artifact_id: str,
        after: Dict[str, Any],
        actor_kind: str = "system",
        actor_id: str = "unknown",
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log the creation of an artifact."""
        return self._record(
            "created", artifact_id, None, after, actor_kind, actor_id, note, None
        )

    def log_update(
        self,
        artifact_id: str,
        before: Dict[str, Any],
        after: Dict[str, Any],
        actor_kind: str = "human",
        actor_id: str = "unknown",
        note: Optional[str] = None,
    ) -> AuditLogModel:
        """Log an edit of a mutable field."""
        return self._record(
            "updated", artifact_id, before, after, actor_kind, actor_id, note, None
        )

    def log_status_change(
        self,
        artifact_id: str,
        before: Dict[str, Any],
        after: Dict[str, Any],
        actor_kind: str = "human",
        actor_id: str = "unknown",
        note: Optional[str] = None,
        run_id: Optional[str] = None,
    ) -> AuditLogModel:
        """Log a status transition."""
        if note is None:
            note = f"{before.get('status')} -> {after.get('status')}"
        return self._record(
            "status_changed",
            artifact_id,
            before,
            after,
            actor_kind,
            actor_id,
            note,
            run_id,
        )

    def log_delete(
        self,
        artifact_id: str,
        before: Dict[str, Any],
        actor_kind: str = "human",
        actor_id: str = "unknown",
        note: Optional[str] = None,
        run_id: Optional[str] = None,
    ) -> AuditLogModel:
        """Log the deletion of an artifact, keeping its last snapshot."""
        return self._record(
            "deleted", artifact_id, before, None, actor_kind, actor_id, note, run_id
        )

    def get_history(self, artifact_id: str, limit: int = 100) -> List[AuditLogModel]:
        """Entries for one artifact, oldest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(AuditLogModel.artifact_id == artifact_id)
            .order_by(AuditLogModel.ts.asc())
            .limit(limit)
            .all()
        )

    def get_by_run(self, run_id: str) -> List[AuditLogModel]:
        """Entries written by one pipeline run, oldest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(AuditLogModel.run_id == run_id)
            .order_by(AuditLogModel.ts.asc())
            .all()
        )
