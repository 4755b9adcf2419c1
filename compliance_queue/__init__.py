"""
Compliance Queue

Review queue for compliance artifacts and the webscrap pipeline that hands
approved artifacts to the external scrape service.
"""

import importlib.metadata

__version__ = importlib.metadata.version("compliance-queue")

from .core.lifecycle import ArtifactLifecycle
from .core.pipeline import PipelineRunner
from .errors import (
    ArtifactNotFound,
    ComplianceQueueError,
    ScrapeRejected,
    ScrapeTransportError,
    StoreUnavailable,
)
from .schemas.artifact import ArtifactRead, ArtifactStatus
from .schemas.pipeline import PipelineReport
from .scrape.client import ScrapeClient, ScrapeRequest, ScrapeResult

__all__ = [
    "ArtifactLifecycle",
    "ArtifactNotFound",
    "ArtifactRead",
    "ArtifactStatus",
    "ComplianceQueueError",
    "PipelineReport",
    "PipelineRunner",
    "ScrapeClient",
    "ScrapeRejected",
    "ScrapeRequest",
    "ScrapeResult",
    "ScrapeTransportError",
    "StoreUnavailable",
]
