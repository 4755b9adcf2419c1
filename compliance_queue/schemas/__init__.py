from .artifact import (
    ArtifactCreate,
    ArtifactRead,
    ArtifactStatus,
    NameUpdate,
    UrlUpdate,
)
from .pipeline import (
    ItemFailure,
    ItemSkipped,
    ItemSuccess,
    PipelineReport,
    SkipReason,
)

__all__ = [
    "ArtifactCreate",
    "ArtifactRead",
    "ArtifactStatus",
    "NameUpdate",
    "UrlUpdate",
    "ItemFailure",
    "ItemSkipped",
    "ItemSuccess",
    "PipelineReport",
    "SkipReason",
]
