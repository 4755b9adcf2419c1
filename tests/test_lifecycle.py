"""Tests for reviewer lifecycle operations."""

import pytest

from compliance_queue.core.lifecycle import ArtifactLifecycle
from compliance_queue.db.services import ArtifactService
from compliance_queue.errors import ArtifactNotFound
from compliance_queue.schemas.artifact import ArtifactRead, ArtifactStatus

PERSISTED_STATUSES = {"pending", "approved", "in_progress"}


class TestApprove:
    def test_pending_becomes_approved(self, db_session, make_artifact):
        artifact_id = make_artifact(status=ArtifactStatus.PENDING)

        result = ArtifactLifecycle(db_session).approve(artifact_id)

        assert isinstance(result, ArtifactRead)
        assert result.status is ArtifactStatus.APPROVED
        assert ArtifactService(db_session).get(artifact_id).status == "approved"

    def test_approve_is_idempotent(self, db_session, make_artifact):
        artifact_id = make_artifact(status=ArtifactStatus.PENDING)
        lifecycle = ArtifactLifecycle(db_session)

        first = lifecycle.approve(artifact_id)
        second = lifecycle.approve(artifact_id)

        assert first.status == second.status == ArtifactStatus.APPROVED
        assert len(ArtifactService(db_session).list()) == 1

    def test_unknown_id(self, db_session):
        with pytest.raises(ArtifactNotFound):
            ArtifactLifecycle(db_session).approve("missing")


class TestDisapprove:
    def test_deletes_artifact(self, db_session, make_artifact):
        artifact_id = make_artifact("SOC 2", status=ArtifactStatus.PENDING)
        lifecycle = ArtifactLifecycle(db_session)

        snapshot = lifecycle.disapprove(artifact_id)

        assert snapshot.compliance_id == artifact_id
        assert snapshot.compliance_name_origin == "SOC 2"
        with pytest.raises(ArtifactNotFound):
            lifecycle.approve(artifact_id)
        with pytest.raises(ArtifactNotFound):
            lifecycle.disapprove(artifact_id)

    def test_disapproved_is_never_persisted(self, db_session, make_artifact):
        make_artifact("Keep", status=ArtifactStatus.APPROVED)
        artifact_id = make_artifact("Drop", status=ArtifactStatus.PENDING)

        ArtifactLifecycle(db_session).disapprove(artifact_id)

        statuses = {a.status for a in ArtifactService(db_session).list()}
        assert statuses <= PERSISTED_STATUSES


class TestRevert:
    @pytest.mark.parametrize(
        "status",
        [ArtifactStatus.PENDING, ArtifactStatus.APPROVED, ArtifactStatus.IN_PROGRESS],
    )
    def test_any_state_returns_to_pending(self, db_session, make_artifact, status):
        artifact_id = make_artifact(status=status)

        result = ArtifactLifecycle(db_session).revert(artifact_id)

        assert result.status is ArtifactStatus.PENDING

    def test_unknown_id(self, db_session):
        with pytest.raises(ArtifactNotFound):
            ArtifactLifecycle(db_session).revert("missing")


class TestFieldEdits:
    def test_update_url(self, db_session, make_artifact):
        artifact_id = make_artifact(status=ArtifactStatus.PENDING)

        result = ArtifactLifecycle(db_session).update_url(artifact_id, "https://iso.org")

        assert result.url == "https://iso.org"
        assert result.status is ArtifactStatus.PENDING

    def test_empty_url_clears(self, db_session, make_artifact):
        artifact_id = make_artifact(url="https://iso.org")

        result = ArtifactLifecycle(db_session).update_url(artifact_id, "")

        assert result.url is None

    def test_update_name(self, db_session, make_artifact):
        artifact_id = make_artifact("ISO/IEC 27001")

        result = ArtifactLifecycle(db_session).update_name(artifact_id, "ISO 27001")

        assert result.compliance_name_translated == "ISO 27001"
        assert result.compliance_name_origin == "ISO/IEC 27001"
        assert ArtifactService(db_session).get(artifact_id).display_name == "ISO 27001"

    def test_empty_name_clears(self, db_session, make_artifact):
        artifact_id = make_artifact("ISO/IEC 27001", translated="ISO 27001")

        result = ArtifactLifecycle(db_session).update_name(artifact_id, "")

        assert result.compliance_name_translated is None
        assert ArtifactService(db_session).get(artifact_id).display_name == "ISO/IEC 27001"

    def test_edits_do_not_change_status(self, db_session, make_artifact):
        artifact_id = make_artifact(status=ArtifactStatus.IN_PROGRESS)

        result = ArtifactLifecycle(db_session).update_name(artifact_id, "Renamed")

        assert result.status is ArtifactStatus.IN_PROGRESS

    def test_unknown_id(self, db_session):
        with pytest.raises(ArtifactNotFound):
            ArtifactLifecycle(db_session).update_url("missing", "https://x.test")
