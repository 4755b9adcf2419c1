"""Artifact lifecycle and the webscrap pipeline."""

from .lifecycle import ArtifactLifecycle
from .pipeline import Candidate, PipelineRunner, reconcile_stale_claims

__all__ = ["ArtifactLifecycle", "Candidate", "PipelineRunner", "reconcile_stale_claims"]
