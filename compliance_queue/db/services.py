"""
Database services for Compliance Queue.

``ArtifactService`` is the artifact store: point reads, point updates,
deletion and filtered listing, plus the conditional transitions the
pipeline uses to claim and settle work. Every ``SQLAlchemyError`` is rolled
back and re-raised as ``StoreUnavailable``.
"""

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import ArtifactNotFound, StoreUnavailable
from ..schemas.artifact import ArtifactCreate, ArtifactStatus
from .audit_service import AuditService
from .models import ComplianceArtifactModel


class ArtifactService:
    """Service for managing queued compliance artifacts in the database."""

    def __init__(self, db: Session, audit: Optional[AuditService] = None):
        self.db = db
        self.audit = audit or AuditService(db)

    @contextmanager
    def _store_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailable(operation, e) from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, artifact_id: str) -> Optional[ComplianceArtifactModel]:
        """Get an artifact by ID."""
        with self._store_errors("get"):
            return self.db.get(ComplianceArtifactModel, artifact_id)

    def require(self, artifact_id: str) -> ComplianceArtifactModel:
        """Get an artifact by ID or raise ``ArtifactNotFound``."""
        artifact = self.get(artifact_id)
        if artifact is None:
            raise ArtifactNotFound(artifact_id)
        return artifact

    def list(
        self,
        status: Optional[ArtifactStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[ComplianceArtifactModel]:
        """List artifacts newest first, optionally filtered by status."""
        with self._store_errors("list"):
            query = self.db.query(ComplianceArtifactModel)
            if status is not None:
                query = query.filter(
                    ComplianceArtifactModel.status == ArtifactStatus(status).value
                )
            query = query.order_by(desc(ComplianceArtifactModel.created_at)).offset(
                offset
            )
            if limit is not None:
                query = query.limit(limit)
            return query.all()

    def list_candidates(self) -> List[ComplianceArtifactModel]:
        """Artifacts eligible for a pipeline run."""
        return self.list(status=ArtifactStatus.APPROVED)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self, artifact: ArtifactCreate, actor_id: str = "ingester"
    ) -> ComplianceArtifactModel:
        """Insert a new artifact."""
        with self._store_errors("create"):
            db_artifact = ComplianceArtifactModel(
                name_origin=artifact.compliance_name_origin,
                name_translated=artifact.compliance_name_translated,
                url=artifact.url,
                status=artifact.status.value,
            )
            self.db.add(db_artifact)
            self.db.flush()
            self.audit.log_create(
                db_artifact.id,
                db_artifact.to_dict(),
                actor_kind="system",
                actor_id=actor_id,
            )
            self.db.commit()
            self.db.refresh(db_artifact)
            return db_artifact

    def set_status(
        self,
        artifact_id: str,
        status: ArtifactStatus,
        actor_kind: str = "human",
        actor_id: str = "unknown",
    ) -> ComplianceArtifactModel:
        """Set the review status (pending or approved) of an existing artifact."""
        status = ArtifactStatus(status)
        if status is ArtifactStatus.DISAPPROVED:
            raise ValueError("disapproved is never persisted; delete the artifact instead")
        if status is ArtifactStatus.IN_PROGRESS:
            raise ValueError("in_progress is only entered through claim()")

        with self._store_errors("set_status"):
            artifact = self.require(artifact_id)
            before = artifact.to_dict()
            artifact.status = status.value
            artifact.status_changed_at = datetime.now(timezone.utc)
            self.db.flush()
            self.audit.log_status_change(
                artifact_id,
                before,
                artifact.to_dict(),
                actor_kind=actor_kind,
                actor_id=actor_id,
            )
            self.db.commit()
            self.db.refresh(artifact)
            return artifact

    def update_fields(
        self,
        artifact_id: str,
        changes: Dict[str, Any],
        actor_id: str = "unknown",
    ) -> ComplianceArtifactModel:
        """Update mutable display fields (``url``, ``name_translated``)."""
        unknown = set(changes) - {"url", "name_translated"}
        if unknown:
            raise ValueError(f"Fields are not editable: {', '.join(sorted(unknown))}")

        with self._store_errors("update_fields"):
            artifact = self.require(artifact_id)
            before = artifact.to_dict()
            for field_name, value in changes.items():
                setattr(artifact, field_name, value)
            self.db.flush()
            self.audit.log_update(
                artifact_id,
                before,
                artifact.to_dict(),
                actor_id=actor_id,
            )
            self.db.commit()
            self.db.refresh(artifact)
            return artifact

    def delete(
        self,
        artifact_id: str,
        actor_kind: str = "human",
        actor_id: str = "unknown",
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Delete an artifact permanently and return its last snapshot."""
        with self._store_errors("delete"):
            artifact = self.require(artifact_id)
            snapshot = artifact.to_dict()
            self.db.delete(artifact)
            self.audit.log_delete(
                artifact_id,
                snapshot,
                actor_kind=actor_kind,
                actor_id=actor_id,
                note=note,
            )
            self.db.commit()
            return snapshot

    # ------------------------------------------------------------------
    # Conditional transitions used by the pipeline
    # ------------------------------------------------------------------

    def _transition(
        self,
        artifact_id: str,
        expected: ArtifactStatus,
        target: ArtifactStatus,
        actor_id: str,
        run_id: Optional[str],
        older_than: Optional[datetime] = None,
    ) -> bool:
        """Compare-and-set the status. Returns False if the precondition failed."""
        now = datetime.now(timezone.utc)
        query = self.db.query(ComplianceArtifactModel).filter(
            ComplianceArtifactModel.id == artifact_id,
            ComplianceArtifactModel.status == expected.value,
        )
        if older_than is not None:
            query = query.filter(ComplianceArtifactModel.status_changed_at < older_than)

        rowcount = query.update(
            {
                ComplianceArtifactModel.status: target.value,
                ComplianceArtifactModel.status_changed_at: now,
            },
            synchronize_session=False,
        )
        if rowcount == 0:
            self.db.rollback()
            return False

        artifact = self.db.get(ComplianceArtifactModel, artifact_id, populate_existing=True)
        after = artifact.to_dict()
        self.audit.log_status_change(
            artifact_id,
            {**after, "status": expected.value},
            after,
            actor_kind="system",
            actor_id=actor_id,
            run_id=run_id,
        )
        self.db.commit()
        return True

    def claim(self, artifact_id: str, run_id: str, actor_id: str = "pipeline") -> bool:
        """Move ``approved -> in_progress`` only if still approved."""
        with self._store_errors("claim"):
            return self._transition(
                artifact_id,
                ArtifactStatus.APPROVED,
                ArtifactStatus.IN_PROGRESS,
                actor_id,
                run_id,
            )

    def release(self, artifact_id: str, run_id: str, actor_id: str = "pipeline") -> bool:
        """Move ``in_progress -> approved``; the compensation of a failed scrape."""
        with self._store_errors("release"):
            return self._transition(
                artifact_id,
                ArtifactStatus.IN_PROGRESS,
                ArtifactStatus.APPROVED,
                actor_id,
                run_id,
            )

    def complete(self, artifact_id: str, run_id: str, actor_id: str = "pipeline") -> bool:
        """Delete an ``in_progress`` artifact after a successful scrape."""
        with self._store_errors("complete"):
            artifact = self.db.get(
                ComplianceArtifactModel, artifact_id, populate_existing=True
            )
            if artifact is None or artifact.status != ArtifactStatus.IN_PROGRESS.value:
                self.db.rollback()
                return False
            snapshot = artifact.to_dict()

            rowcount = (
                self.db.query(ComplianceArtifactModel)
                .filter(
                    ComplianceArtifactModel.id == artifact_id,
                    ComplianceArtifactModel.status == ArtifactStatus.IN_PROGRESS.value,
                )
                .delete(synchronize_session=False)
            )
            if rowcount == 0:
                self.db.rollback()
                return False

            self.db.expunge(artifact)
            self.audit.log_delete(
                artifact_id,
                snapshot,
                actor_kind="system",
                actor_id=actor_id,
                note="scraped",
                run_id=run_id,
            )
            self.db.commit()
            return True

    def release_stale_claims(
        self, older_than: timedelta, actor_id: str = "reconciler"
    ) -> List[str]:
        """Return artifacts stranded ``in_progress`` to ``approved``.

        Only claims whose last status change is older than ``older_than`` are
        touched, so claims held by a live run are left alone.
        """
        cutoff = datetime.now(timezone.utc) - older_than
        with self._store_errors("release_stale_claims"):
            stale_ids = [
                row.id
                for row in self.db.query(ComplianceArtifactModel.id)
                .filter(
                    ComplianceArtifactModel.status == ArtifactStatus.IN_PROGRESS.value,
                    ComplianceArtifactModel.status_changed_at < cutoff,
                )
                .all()
            ]
            self.db.rollback()

            released = []
            for artifact_id in stale_ids:
                if self._transition(
                    artifact_id,
                    ArtifactStatus.IN_PROGRESS,
                    ArtifactStatus.APPROVED,
                    actor_id,
                    run_id=None,
                    older_than=cutoff,
                ):
                    released.append(artifact_id)
            return released
