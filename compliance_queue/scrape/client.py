"""
Client for the external compliance scrape service.

The service receives an artifact name and optional source domain, retrieves
matching content and (optionally) stores it in the knowledge base. This
client only knows the request/response contract: every call ends in exactly
one of three outcomes, accepted, rejected or transport error.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
import structlog

from ..config import Settings, get_settings
from ..errors import ScrapeRejected, ScrapeTransportError

logger = structlog.get_logger(__name__)


@dataclass
class ScrapeRequest:
    """Request sent to the scrape service for one artifact."""

    name: str
    domains: Optional[List[str]] = None
    result_limit: int = 10
    persist: bool = True

    @classmethod
    def for_artifact(
        cls,
        name: str,
        url: Optional[str],
        result_limit: int,
        persist: bool,
    ) -> "ScrapeRequest":
        return cls(
            name=name,
            domains=[url] if url else None,
            result_limit=result_limit,
            persist=persist,
        )

    def to_payload(self) -> Dict[str, Any]:
        """Wire format expected by the scrape service."""
        return {
            "certification_name": self.name,
            "domain": self.domains,
            "limit": self.result_limit,
            "save_to_kb": self.persist,
        }


class ScrapeOutcome(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    TRANSPORT_ERROR = "transport_error"


@dataclass
class ScrapeResult:
    """Tagged result of one scrape attempt."""

    outcome: ScrapeOutcome
    payload: Any = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def accepted(cls, payload: Any, status_code: int) -> "ScrapeResult":
        return cls(ScrapeOutcome.ACCEPTED, payload=payload, status_code=status_code)

    @classmethod
    def rejected(cls, error: str, status_code: int, payload: Any = None) -> "ScrapeResult":
        return cls(
            ScrapeOutcome.REJECTED,
            payload=payload,
            error=error,
            status_code=status_code,
        )

    @classmethod
    def transport_error(cls, error: str) -> "ScrapeResult":
        return cls(ScrapeOutcome.TRANSPORT_ERROR, error=error)

    @property
    def ok(self) -> bool:
        return self.outcome is ScrapeOutcome.ACCEPTED

    def raise_for_outcome(self) -> Any:
        """Return the payload, or raise the typed error for a failed attempt."""
        if self.outcome is ScrapeOutcome.REJECTED:
            raise ScrapeRejected(self.error or "Unknown error", self.status_code)
        if self.outcome is ScrapeOutcome.TRANSPORT_ERROR:
            raise ScrapeTransportError(self.error or "Unknown error")
        return self.payload


class ScrapeClient:
    """Synchronous client for the scrape endpoint.

    Example:
        with ScrapeClient.from_settings() as client:
            result = client.scrape(ScrapeRequest(name="ISO 9001"))
    """

    def __init__(
        self,
        endpoint_url: str,
        timeout: float = 120.0,
        api_key: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.endpoint_url = endpoint_url
        self.timeout = timeout
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = httpx.Client(timeout=timeout, headers=headers, transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "ScrapeClient":
        settings = settings or get_settings()
        return cls(
            settings.scrape_service_url,
            timeout=settings.scrape_timeout_seconds,
            api_key=settings.scrape_api_key,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "ScrapeClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def scrape(self, request: ScrapeRequest) -> ScrapeResult:
        """Submit one scrape request. Never raises for service failures."""
        log = logger.bind(certification_name=request.name)
        try:
            response = self.client.post(self.endpoint_url, json=request.to_payload())
        except httpx.TimeoutException as e:
            log.warning("scrape_timeout", timeout=self.timeout)
            return ScrapeResult.transport_error(
                f"Scrape request timed out after {self.timeout}s: {e}"
            )
        except httpx.HTTPError as e:
            log.warning("scrape_transport_error", error=str(e))
            return ScrapeResult.transport_error(str(e) or e.__class__.__name__)

        try:
            data = response.json()
        except ValueError as e:
            log.warning(
                "scrape_invalid_response", status_code=response.status_code, error=str(e)
            )
            return ScrapeResult.transport_error(
                f"Invalid JSON from scrape service (HTTP {response.status_code}): {e}"
            )

        if response.is_success:
            return ScrapeResult.accepted(data, response.status_code)

        error = None
        if isinstance(data, dict):
            error = data.get("error")
        return ScrapeResult.rejected(
            str(error) if error else "Unknown error",
            response.status_code,
            payload=data,
        )
