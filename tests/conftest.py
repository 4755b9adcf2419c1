"""Test configuration and fixtures."""

import os

# Keep tests away from any developer database before app code reads settings
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RECONCILE_ON_STARTUP"] = "false"

from typing import Any, Callable, Dict, List, Optional, Union

import pytest
from sqlalchemy.orm import sessionmaker

from compliance_queue.config import Settings
from compliance_queue.db.base import create_db_engine, drop_database, init_database
from compliance_queue.db.services import ArtifactService
from compliance_queue.schemas.artifact import ArtifactCreate, ArtifactStatus
from compliance_queue.scrape.client import ScrapeRequest, ScrapeResult

TEST_SCRAPE_URL = "http://scrape.test/scrape_compliance_artifact"


class FakeScrapeClient:
    """Scrape client double that answers by certification name.

    ``results`` maps a name to a ``ScrapeResult`` or an exception to raise.
    Names not listed are accepted with ``{"ok": True, "name": <name>}``.
    ``on_scrape`` runs before answering, to simulate concurrent edits.
    """

    def __init__(
        self,
        results: Optional[Dict[str, Union[ScrapeResult, Exception]]] = None,
        on_scrape: Optional[Callable[[ScrapeRequest], Any]] = None,
    ):
        self.results = results or {}
        self.on_scrape = on_scrape
        self.calls: List[ScrapeRequest] = []

    def scrape(self, request: ScrapeRequest) -> ScrapeResult:
        self.calls.append(request)
        if self.on_scrape is not None:
            self.on_scrape(request)
        result = self.results.get(request.name)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return ScrapeResult.accepted({"ok": True, "name": request.name}, 200)
        return result

    def close(self) -> None:
        pass

    def __enter__(self) -> "FakeScrapeClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


@pytest.fixture
def settings() -> Settings:
    """Settings for tests, independent of the environment."""
    return Settings(
        database_url="sqlite:///:memory:",
        scrape_service_url=TEST_SCRAPE_URL,
        scrape_api_key=None,
        pipeline_max_workers=1,
        pipeline_run_deadline_seconds=0,
        stale_claim_seconds=3600,
        reconcile_on_startup=False,
    )


@pytest.fixture
def engine(tmp_path):
    """A fresh file-backed SQLite database so several sessions see each other."""
    test_engine = create_db_engine(f"sqlite:///{tmp_path / 'queue.db'}")
    init_database(test_engine)
    yield test_engine
    drop_database(test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_artifact(session_factory):
    """Insert an artifact and return its id."""

    def _make(
        name: str = "ISO 9001",
        status: ArtifactStatus = ArtifactStatus.APPROVED,
        url: Optional[str] = None,
        translated: Optional[str] = None,
    ) -> str:
        with session_factory() as db:
            artifact = ArtifactService(db).create(
                ArtifactCreate(
                    compliance_name_origin=name,
                    compliance_name_translated=translated,
                    url=url,
                    status=status,
                )
            )
            return artifact.id

    return _make


@pytest.fixture
def fake_client() -> FakeScrapeClient:
    return FakeScrapeClient()


@pytest.fixture
def make_client():
    """Factory for FakeScrapeClient instances."""
    return FakeScrapeClient
