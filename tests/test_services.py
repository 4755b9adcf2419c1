"""
Tests for ArtifactService, the artifact store.

Verifies:
- Point reads, listing order and status filtering
- Conditional claim/release/complete transitions
- Stale claim release
- SQLAlchemy failures surface as StoreUnavailable
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from compliance_queue.db.base import create_db_engine
from compliance_queue.db.models import ComplianceArtifactModel
from compliance_queue.db.services import ArtifactService
from compliance_queue.errors import ArtifactNotFound, StoreUnavailable
from compliance_queue.schemas.artifact import ArtifactCreate, ArtifactStatus


def _age_claim(db, artifact_id: str, hours: int = 2) -> None:
    db.query(ComplianceArtifactModel).filter(
        ComplianceArtifactModel.id == artifact_id
    ).update(
        {
            ComplianceArtifactModel.status_changed_at: datetime.now(timezone.utc)
            - timedelta(hours=hours)
        },
        synchronize_session=False,
    )
    db.commit()


class TestReads:
    """Tests for get/require/list."""

    def test_create_defaults_to_pending(self, db_session):
        artifact = ArtifactService(db_session).create(
            ArtifactCreate(compliance_name_origin="ISO 27001")
        )

        assert artifact.status == "pending"
        assert artifact.name_translated is None
        assert artifact.url is None
        assert len(artifact.id) == 36
        assert artifact.created_at is not None

    def test_get_unknown_returns_none(self, db_session):
        assert ArtifactService(db_session).get("does-not-exist") is None

    def test_require_unknown_raises(self, db_session):
        with pytest.raises(ArtifactNotFound) as exc_info:
            ArtifactService(db_session).require("does-not-exist")

        assert exc_info.value.artifact_id == "does-not-exist"
        assert exc_info.value.to_dict()["error"] == "ARTIFACT_NOT_FOUND"

    def test_list_is_newest_first(self, db_session, make_artifact):
        first = make_artifact("First", status=ArtifactStatus.PENDING)
        second = make_artifact("Second", status=ArtifactStatus.PENDING)
        third = make_artifact("Third", status=ArtifactStatus.PENDING)

        ids = [a.id for a in ArtifactService(db_session).list()]

        assert ids == [third, second, first]

    def test_list_filters_by_status(self, db_session, make_artifact):
        make_artifact("Pending", status=ArtifactStatus.PENDING)
        approved = make_artifact("Approved", status=ArtifactStatus.APPROVED)

        result = ArtifactService(db_session).list(status=ArtifactStatus.APPROVED)

        assert [a.id for a in result] == [approved]

    def test_list_limit_and_offset(self, db_session, make_artifact):
        ids = [make_artifact(f"Item {i}") for i in range(5)]

        page = ArtifactService(db_session).list(limit=2, offset=1)

        assert [a.id for a in page] == [ids[3], ids[2]]

    def test_list_candidates_only_approved(self, db_session, make_artifact):
        make_artifact("Pending", status=ArtifactStatus.PENDING)
        make_artifact("Claimed", status=ArtifactStatus.IN_PROGRESS)
        approved = make_artifact("Approved")

        candidates = ArtifactService(db_session).list_candidates()

        assert [a.id for a in candidates] == [approved]


class TestWrites:
    """Tests for unconditional writes."""

    @pytest.mark.parametrize(
        "status", [ArtifactStatus.DISAPPROVED, ArtifactStatus.IN_PROGRESS]
    )
    def test_set_status_rejects_non_review_states(self, db_session, make_artifact, status):
        artifact_id = make_artifact()

        with pytest.raises(ValueError):
            ArtifactService(db_session).set_status(artifact_id, status)

        assert ArtifactService(db_session).get(artifact_id).status == "approved"

    def test_set_status_unknown_raises(self, db_session):
        with pytest.raises(ArtifactNotFound):
            ArtifactService(db_session).set_status("nope", ArtifactStatus.APPROVED)

    def test_update_fields_rejects_unknown_fields(self, db_session, make_artifact):
        artifact_id = make_artifact()

        with pytest.raises(ValueError, match="status"):
            ArtifactService(db_session).update_fields(artifact_id, {"status": "approved"})

    def test_delete_returns_snapshot(self, db_session, make_artifact):
        artifact_id = make_artifact("SOC 2", url="https://example.com")
        service = ArtifactService(db_session)

        snapshot = service.delete(artifact_id)

        assert snapshot["compliance_id"] == artifact_id
        assert snapshot["url"] == "https://example.com"
        assert service.get(artifact_id) is None


class TestConditionalTransitions:
    """Tests for the compare-and-set transitions used by the pipeline."""

    def test_claim_approved(self, db_session, make_artifact):
        artifact_id = make_artifact()
        service = ArtifactService(db_session)

        assert service.claim(artifact_id, "run-1") is True
        assert service.get(artifact_id).status == "in_progress"

    def test_second_claim_loses(self, session_factory, make_artifact):
        artifact_id = make_artifact()

        with session_factory() as first, session_factory() as second:
            assert ArtifactService(first).claim(artifact_id, "run-1") is True
            assert ArtifactService(second).claim(artifact_id, "run-2") is False

    @pytest.mark.parametrize("status", [ArtifactStatus.PENDING, ArtifactStatus.IN_PROGRESS])
    def test_claim_requires_approved(self, db_session, make_artifact, status):
        artifact_id = make_artifact(status=status)

        assert ArtifactService(db_session).claim(artifact_id, "run-1") is False
        assert ArtifactService(db_session).get(artifact_id).status == status.value

    def test_claim_unknown_returns_false(self, db_session):
        assert ArtifactService(db_session).claim("missing", "run-1") is False

    def test_release_returns_to_approved(self, db_session, make_artifact):
        artifact_id = make_artifact()
        service = ArtifactService(db_session)
        service.claim(artifact_id, "run-1")

        assert service.release(artifact_id, "run-1") is True
        assert service.get(artifact_id).status == "approved"

    def test_release_ignores_reverted_artifact(self, db_session, make_artifact):
        artifact_id = make_artifact(status=ArtifactStatus.PENDING)

        assert ArtifactService(db_session).release(artifact_id, "run-1") is False
        assert ArtifactService(db_session).get(artifact_id).status == "pending"

    def test_complete_deletes_in_progress(self, db_session, make_artifact):
        artifact_id = make_artifact()
        service = ArtifactService(db_session)
        service.claim(artifact_id, "run-1")

        assert service.complete(artifact_id, "run-1") is True
        assert service.get(artifact_id) is None

    def test_complete_leaves_non_claimed_artifact(self, db_session, make_artifact):
        artifact_id = make_artifact()

        assert ArtifactService(db_session).complete(artifact_id, "run-1") is False
        assert ArtifactService(db_session).get(artifact_id) is not None

    def test_complete_sees_concurrent_revert(self, session_factory, make_artifact):
        artifact_id = make_artifact()

        with session_factory() as pipeline_db, session_factory() as reviewer_db:
            pipeline = ArtifactService(pipeline_db)
            pipeline.claim(artifact_id, "run-1")
            pipeline.get(artifact_id)

            ArtifactService(reviewer_db).set_status(artifact_id, ArtifactStatus.PENDING)

            assert pipeline.complete(artifact_id, "run-1") is False
            assert pipeline.get(artifact_id).status == "pending"


class TestReleaseStaleClaims:
    """Tests for release_stale_claims()."""

    def test_releases_old_claims_only(self, db_session, make_artifact):
        stale = make_artifact("Stale")
        fresh = make_artifact("Fresh")
        service = ArtifactService(db_session)
        service.claim(stale, "run-old")
        service.claim(fresh, "run-live")
        _age_claim(db_session, stale)

        released = service.release_stale_claims(timedelta(hours=1))

        assert released == [stale]
        assert service.get(stale).status == "approved"
        assert service.get(fresh).status == "in_progress"

    def test_nothing_to_release(self, db_session, make_artifact):
        make_artifact()

        assert ArtifactService(db_session).release_stale_claims(timedelta(seconds=1)) == []


class TestStoreUnavailable:
    """SQLAlchemy failures are wrapped and the session rolled back."""

    @pytest.fixture
    def broken_session(self, tmp_path):
        # Tables never created: every statement fails
        engine = create_db_engine(f"sqlite:///{tmp_path / 'empty.db'}")
        session = sessionmaker(bind=engine)()
        yield session
        session.close()
        engine.dispose()

    def test_list_wraps_error(self, broken_session):
        with pytest.raises(StoreUnavailable) as exc_info:
            ArtifactService(broken_session).list()

        assert exc_info.value.operation == "list"
        assert exc_info.value.code == "STORE_UNAVAILABLE"
        assert exc_info.value.cause is not None

    def test_claim_wraps_error(self, broken_session):
        with pytest.raises(StoreUnavailable) as exc_info:
            ArtifactService(broken_session).claim("some-id", "run-1")

        assert exc_info.value.operation == "claim"

    def test_get_wraps_error(self, broken_session):
        with pytest.raises(StoreUnavailable):
            ArtifactService(broken_session).get("some-id")
