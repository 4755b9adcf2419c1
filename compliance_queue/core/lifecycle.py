"""
Reviewer-facing lifecycle operations for compliance artifacts.

    pending --approve--> approved --(pipeline)--> in_progress
       ^                    |                         |
       +------revert--------+-------------------------+
    any --disapprove--> deleted

Every operation raises ``ArtifactNotFound`` for an unknown id and
``StoreUnavailable`` when persistence fails.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.orm import Session

from ..db.services import ArtifactService
from ..schemas.artifact import ArtifactRead, ArtifactStatus

logger = structlog.get_logger(__name__)


class ArtifactLifecycle:
    """Applies review decisions and display-field edits to artifacts."""

    def __init__(self, db: Session, actor_id: str = "reviewer"):
        self.store = ArtifactService(db)
        self.actor_id = actor_id

    def approve(self, artifact_id: str) -> ArtifactRead:
        """Mark an artifact approved. Re-approving is a no-op success."""
        artifact = self.store.set_status(
            artifact_id, ArtifactStatus.APPROVED, actor_id=self.actor_id
        )
        logger.info("artifact_approved", artifact_id=artifact_id, actor=self.actor_id)
        return ArtifactRead.model_validate(artifact.to_dict())

    def disapprove(self, artifact_id: str) -> ArtifactRead:
        """Delete the artifact permanently and return its last snapshot."""
        snapshot = self.store.delete(
            artifact_id, actor_id=self.actor_id, note="disapproved"
        )
        logger.info("artifact_disapproved", artifact_id=artifact_id, actor=self.actor_id)
        return ArtifactRead.model_validate(snapshot)

    def revert(self, artifact_id: str) -> ArtifactRead:
        """Send the artifact back to ``pending`` from any state.

        Reverting an ``in_progress`` artifact does not stop a scrape that is
        already running; the pipeline's settle step will then find the
        status changed and leave it alone.
        """
        artifact = self.store.set_status(
            artifact_id, ArtifactStatus.PENDING, actor_id=self.actor_id
        )
        logger.info("artifact_reverted", artifact_id=artifact_id, actor=self.actor_id)
        return ArtifactRead.model_validate(artifact.to_dict())

    def update_url(self, artifact_id: str, url: Optional[str]) -> ArtifactRead:
        artifact = self.store.update_fields(
            artifact_id, {"url": url or None}, actor_id=self.actor_id
        )
        logger.info("artifact_updated", artifact_id=artifact_id, field="url")
        return ArtifactRead.model_validate(artifact.to_dict())

    def update_name(self, artifact_id: str, name: Optional[str]) -> ArtifactRead:
        artifact = self.store.update_fields(
            artifact_id, {"name_translated": name or None}, actor_id=self.actor_id
        )
        logger.info("artifact_updated", artifact_id=artifact_id, field="name_translated")
        return ArtifactRead.model_validate(artifact.to_dict())
