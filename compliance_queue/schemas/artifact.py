from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, constr


class ArtifactStatus(str, Enum):
    """Lifecycle states of a compliance artifact.

    ``disapproved`` is never persisted: disapproving deletes the record.
    """

    PENDING = "pending"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    DISAPPROVED = "disapproved"


class ArtifactCreate(BaseModel):
    """Insert contract used by the external ingester."""

    compliance_name_origin: constr(min_length=1)
    compliance_name_translated: Optional[str] = None
    url: Optional[str] = None
    status: ArtifactStatus = ArtifactStatus.PENDING

    model_config = ConfigDict(extra="forbid")


class ArtifactRead(BaseModel):
    compliance_id: str
    compliance_name_origin: str
    compliance_name_translated: Optional[str] = None
    url: Optional[str] = None
    status: ArtifactStatus
    created_at: Optional[datetime] = None
    status_changed_at: Optional[datetime] = None


class UrlUpdate(BaseModel):
    """Body of the update-url endpoint. ``null`` clears the url."""

    url: Optional[str] = Field(default=None, max_length=2048)

    model_config = ConfigDict(extra="forbid")


class NameUpdate(BaseModel):
    """Body of the update-name endpoint. ``null`` clears the translated name."""

    compliance_name_translated: Optional[str] = Field(default=None, max_length=1024)

    model_config = ConfigDict(extra="forbid")
