"""
Compliance queue API routes.

Review actions on single artifacts and the webscrap pipeline trigger.
Responses carry ``success: true`` and the affected row(s) under ``data``,
the envelope the review frontend reads.
"""

from typing import Any, Dict, Generator, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .config import get_settings
from .core.lifecycle import ArtifactLifecycle
from .core.pipeline import PipelineRunner, reconcile_stale_claims
from .db.audit_service import AuditService
from .db.base import get_db, get_session_local
from .db.services import ArtifactService
from .schemas.artifact import ArtifactRead, ArtifactStatus, NameUpdate, UrlUpdate
from .schemas.pipeline import PipelineReport
from .scrape.client import ScrapeClient

router = APIRouter(prefix="/api", tags=["compliance-queue"])


def get_pipeline_runner() -> Generator[PipelineRunner, None, None]:
    """Dependency providing a pipeline runner with its own scrape client."""
    settings = get_settings()
    client = ScrapeClient.from_settings(settings)
    try:
        yield PipelineRunner(get_session_local(), client, settings)
    finally:
        client.close()


def _success(data: Any, **extra: Any) -> Dict[str, Any]:
    return {"success": True, "status": "success", "data": data, **extra}


def _artifact_response(artifact: ArtifactRead) -> Dict[str, Any]:
    return _success(artifact.model_dump(mode="json"))


def _report_response(report: PipelineReport) -> Dict[str, Any]:
    body = report.model_dump(mode="json")
    return {
        "success": True,
        "status": "success",
        "message": report.message,
        "count": report.total,
        "successful": report.succeeded,
        "results": [
            {
                "compliance_id": item["id"],
                "name": item["name"],
                "status": "success",
                "data": item["data"],
            }
            for item in body["successes"]
        ],
        "errors": [
            {"compliance_id": item["id"], "name": item["name"], "error": item["error"]}
            for item in body["failures"]
        ],
        **body,
    }


# =============================================================================
# Queue Endpoints
# =============================================================================


@router.get("/compliance-queue")
async def list_artifacts(
    status: Optional[ArtifactStatus] = None,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """List queued artifacts, newest first."""
    artifacts = ArtifactService(db).list(status=status, limit=limit, offset=offset)
    return _success([a.to_dict() for a in artifacts], count=len(artifacts))


@router.get("/compliance-queue/{artifact_id}")
async def get_artifact(artifact_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Get one artifact by ID."""
    artifact = ArtifactService(db).require(artifact_id)
    return _success(artifact.to_dict())


@router.get("/compliance-queue/{artifact_id}/history")
async def get_artifact_history(
    artifact_id: str, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Audit entries for an artifact, including after it was deleted.

    A live artifact without audit rows has an empty history; an id that
    is neither live nor audited is 404.
    """
    entries = AuditService(db).get_history(artifact_id)
    if not entries:
        ArtifactService(db).require(artifact_id)
    return _success([e.to_dict() for e in entries])


# =============================================================================
# Review Actions
# =============================================================================


@router.post("/compliance-queue/{artifact_id}/approve")
async def approve_artifact(artifact_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Approve an artifact for the next pipeline run."""
    return _artifact_response(ArtifactLifecycle(db).approve(artifact_id))


@router.post("/compliance-queue/{artifact_id}/disapprove")
async def disapprove_artifact(
    artifact_id: str, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Disapprove an artifact. The record is deleted."""
    return _artifact_response(ArtifactLifecycle(db).disapprove(artifact_id))


@router.post("/compliance-queue/{artifact_id}/revert")
async def revert_artifact(artifact_id: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Send an artifact back to pending review."""
    return _artifact_response(ArtifactLifecycle(db).revert(artifact_id))


@router.post("/compliance-queue/{artifact_id}/update-url")
async def update_artifact_url(
    artifact_id: str, body: UrlUpdate, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Change the source URL used for scraping."""
    return _artifact_response(ArtifactLifecycle(db).update_url(artifact_id, body.url))


@router.post("/compliance-queue/{artifact_id}/update-name")
async def update_artifact_name(
    artifact_id: str, body: NameUpdate, db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Change the translated display name."""
    artifact = ArtifactLifecycle(db).update_name(
        artifact_id, body.compliance_name_translated
    )
    return _artifact_response(artifact)


# =============================================================================
# Pipeline Endpoints
# =============================================================================


# Sync handler: FastAPI runs it in its threadpool
@router.post("/initiate-webscrap")
def initiate_webscrap(
    runner: PipelineRunner = Depends(get_pipeline_runner),
) -> Dict[str, Any]:
    """Run the webscrap pipeline over all approved artifacts."""
    return _report_response(runner.run_pipeline())


@router.post("/compliance-queue/reconcile")
def reconcile_queue(
    older_than_seconds: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Return artifacts stranded in_progress to approved."""
    released = reconcile_stale_claims(db, get_settings(), older_than_seconds)
    return _success(released, released=released, count=len(released))
