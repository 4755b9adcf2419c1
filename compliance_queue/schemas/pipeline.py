from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class SkipReason(str, Enum):
    CLAIMED_ELSEWHERE = "claimed_elsewhere"
    DEADLINE_EXCEEDED = "deadline_exceeded"


class ItemSuccess(BaseModel):
    """A candidate that was scraped and removed from the queue."""

    id: str
    name: str
    data: Any = None


class ItemFailure(BaseModel):
    """A candidate whose scrape failed and was returned to ``approved``."""

    id: str
    name: str
    error: str


class ItemSkipped(BaseModel):
    """A candidate this run never claimed."""

    id: str
    name: str
    reason: SkipReason


class PipelineReport(BaseModel):
    """Aggregate outcome of one pipeline run.

    ``total`` counts the candidates this run claimed, so
    ``total == succeeded + failed`` always holds. Skipped candidates are
    listed separately.
    """

    run_id: str
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    successes: List[ItemSuccess] = Field(default_factory=list)
    failures: List[ItemFailure] = Field(default_factory=list)
    skipped: List[ItemSkipped] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None

    @property
    def message(self) -> str:
        if self.total == 0 and not self.skipped:
            return "No approved items to process"
        return (
            f"Webscrap pipeline completed. Processed {self.total} items: "
            f"{self.succeeded} successful, {self.failed} failed"
        )
