"""
Webscrap pipeline - hands approved artifacts to the scrape service.

Flow for each candidate:
1. Claim: conditional update approved -> in_progress (committed first)
2. Scrape: one synchronous call to the scrape service
3. Settle: delete on success, revert to approved on failure
4. Record: append the per-item outcome to the run report

One item's failure never stops the run. The run itself only fails when the
candidate listing cannot be read.
"""
from __future__ import annotations

import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Union

import structlog
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings, get_settings
from ..db.services import ArtifactService
from ..errors import StoreUnavailable
from ..schemas.pipeline import (
    ItemFailure,
    ItemSkipped,
    ItemSuccess,
    PipelineReport,
    SkipReason,
)
from ..scrape.client import ScrapeClient, ScrapeRequest, ScrapeResult

logger = structlog.get_logger(__name__)

ItemOutcome = Union[ItemSuccess, ItemFailure, ItemSkipped]


def reconcile_stale_claims(
    db: Session,
    settings: Optional[Settings] = None,
    older_than_seconds: Optional[int] = None,
) -> List[str]:
    """Return claims older than ``STALE_CLAIM_SECONDS`` to ``approved``.

    Needs only the artifact store, so callers that never scrape (startup,
    the reconcile route and command) do not build a scrape client.
    """
    settings = settings or get_settings()
    seconds = older_than_seconds or settings.stale_claim_seconds
    released = ArtifactService(db).release_stale_claims(timedelta(seconds=seconds))
    if released:
        logger.warning("stale_claims_released", count=len(released), artifact_ids=released)
    return released


@dataclass(frozen=True)
class Candidate:
    """Snapshot of an approved artifact taken when the run starts."""

    id: str
    name: str


class PipelineRunner:
    """Runs the webscrap pipeline over the currently approved artifacts."""

    def __init__(
        self,
        session_factory: sessionmaker,
        client: ScrapeClient,
        settings: Optional[Settings] = None,
        max_workers: Optional[int] = None,
        run_deadline_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the pipeline runner.

        Args:
            session_factory: Creates one database session per unit of work
            client: Scrape service client shared by all items
            settings: Application settings (default: global settings)
            max_workers: Items processed at once; 1 means strictly sequential
            run_deadline_seconds: Stop claiming new items after this long (0 = no deadline)
            clock: Monotonic clock, injectable for tests
        """
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.client = client
        self.max_workers = max_workers or self.settings.pipeline_max_workers
        if run_deadline_seconds is None:
            run_deadline_seconds = self.settings.pipeline_run_deadline_seconds
        self.run_deadline_seconds = run_deadline_seconds
        self._clock = clock

    def run_pipeline(self) -> PipelineReport:
        """Execute one pipeline run and return its report.

        Raises:
            StoreUnavailable: If the candidate listing cannot be read
        """
        run_id = str(uuid.uuid4())
        started_at = datetime.now(timezone.utc)
        start = self._clock()
        deadline = start + self.run_deadline_seconds if self.run_deadline_seconds else None
        log = logger.bind(run_id=run_id)

        with self.session_factory() as db:
            candidates = [
                Candidate(id=a.id, name=a.display_name)
                for a in ArtifactService(db).list_candidates()
            ]

        report = PipelineReport(run_id=run_id, started_at=started_at)
        if not candidates:
            log.info("pipeline_started", candidates=0)
            return self._finish(report, start, log)

        log.info(
            "pipeline_started",
            candidates=len(candidates),
            max_workers=self.max_workers,
        )

        def process(candidate: Candidate) -> ItemOutcome:
            return self._process_item(candidate, run_id, deadline)

        if self.max_workers <= 1:
            outcomes = [process(c) for c in candidates]
        else:
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="webscrap"
            ) as pool:
                # map() yields in submission order, so reports follow candidate order
                outcomes = list(pool.map(process, candidates))

        for outcome in outcomes:
            if isinstance(outcome, ItemSuccess):
                report.successes.append(outcome)
            elif isinstance(outcome, ItemFailure):
                report.failures.append(outcome)
            else:
                report.skipped.append(outcome)

        report.succeeded = len(report.successes)
        report.failed = len(report.failures)
        report.total = report.succeeded + report.failed
        return self._finish(report, start, log)

    def reconcile(self, older_than_seconds: Optional[int] = None) -> List[str]:
        """Release claims left ``in_progress`` by an interrupted run."""
        with self.session_factory() as db:
            return reconcile_stale_claims(db, self.settings, older_than_seconds)

    def _finish(self, report: PipelineReport, start: float, log) -> PipelineReport:
        report.completed_at = datetime.now(timezone.utc)
        report.duration_seconds = self._clock() - start
        log.info(
            "pipeline_completed",
            total=report.total,
            succeeded=report.succeeded,
            failed=report.failed,
            skipped=len(report.skipped),
            duration_seconds=report.duration_seconds,
        )
        return report

    def _process_item(
        self, candidate: Candidate, run_id: str, deadline: Optional[float]
    ) -> ItemOutcome:
        """Claim, scrape and settle one candidate. Never raises."""
        log = logger.bind(run_id=run_id, artifact_id=candidate.id)

        if deadline is not None and self._clock() >= deadline:
            log.warning("pipeline_item_skipped", reason=SkipReason.DEADLINE_EXCEEDED.value)
            return ItemSkipped(
                id=candidate.id, name=candidate.name, reason=SkipReason.DEADLINE_EXCEEDED
            )

        with self.session_factory() as db:
            store = ArtifactService(db)

            try:
                claimed = store.claim(candidate.id, run_id)
                artifact = store.get(candidate.id) if claimed else None
            except StoreUnavailable as e:
                log.error("pipeline_claim_failed", error=e.message)
                return ItemFailure(id=candidate.id, name=candidate.name, error=e.message)

            if artifact is None:
                log.info("pipeline_item_skipped", reason=SkipReason.CLAIMED_ELSEWHERE.value)
                return ItemSkipped(
                    id=candidate.id,
                    name=candidate.name,
                    reason=SkipReason.CLAIMED_ELSEWHERE,
                )

            request = ScrapeRequest.for_artifact(
                name=artifact.display_name,
                url=artifact.url,
                result_limit=self.settings.scrape_result_limit,
                persist=self.settings.scrape_save_to_kb,
            )
            log = log.bind(certification_name=request.name)
            log.info("pipeline_item_claimed", domains=request.domains)

            try:
                result = self.client.scrape(request)
            except Exception as e:
                log.exception("pipeline_scrape_crashed")
                result = ScrapeResult.transport_error(str(e) or e.__class__.__name__)

            if result.ok:
                return self._settle_success(store, candidate.id, request.name, run_id, result, log)
            return self._settle_failure(store, candidate.id, request.name, run_id, result, log)

    def _settle_success(
        self,
        store: ArtifactService,
        artifact_id: str,
        name: str,
        run_id: str,
        result: ScrapeResult,
        log,
    ) -> ItemOutcome:
        try:
            deleted = store.complete(artifact_id, run_id)
        except StoreUnavailable as e:
            # Left in_progress; reconcile() returns it to approved later
            log.error("pipeline_settle_failed", outcome="accepted", error=e.message)
            return ItemFailure(
                id=artifact_id,
                name=name,
                error=f"Scrape succeeded but the artifact could not be removed: {e.message}",
            )

        if not deleted:
            log.warning("pipeline_item_modified_during_scrape", outcome="accepted")
            return ItemFailure(
                id=artifact_id,
                name=name,
                error="Scrape succeeded but the artifact was modified during the scrape",
            )

        log.info("pipeline_item_succeeded", status_code=result.status_code)
        return ItemSuccess(id=artifact_id, name=name, data=result.payload)

    def _settle_failure(
        self,
        store: ArtifactService,
        artifact_id: str,
        name: str,
        run_id: str,
        result: ScrapeResult,
        log,
    ) -> ItemOutcome:
        error = result.error or "Unknown error"
        try:
            released = store.release(artifact_id, run_id)
        except StoreUnavailable as e:
            log.error("pipeline_settle_failed", outcome=result.outcome.value, error=e.message)
            released = False

        log.warning(
            "pipeline_item_failed",
            outcome=result.outcome.value,
            status_code=result.status_code,
            error=error,
            reverted=released,
        )
        return ItemFailure(id=artifact_id, name=name, error=error)
