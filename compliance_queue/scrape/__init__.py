from .client import ScrapeClient, ScrapeOutcome, ScrapeRequest, ScrapeResult

__all__ = ["ScrapeClient", "ScrapeOutcome", "ScrapeRequest", "ScrapeResult"]
