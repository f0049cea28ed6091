from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from shared.enums import JobStatus, OutboxAction


def _utcnow() -> datetime:
    return datetime.now(UTC)


# Extraction
class ParsedItem(BaseModel):
    """A structured line item extracted from free text."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    price: float | None = None
    currency: str | None = Field(None, description="ISO-like 3-letter currency code")
    description: str | None = None
    confidence: float | None = Field(None, ge=0.0, le=1.0, description="Set by AI extraction only")
    type: str | None = None
    raw: str | None = Field(None, description="Source line the item was read from")


# Parse jobs
class ParseJob(BaseModel):
    """Background extraction job record."""

    job_id: str
    status: JobStatus = JobStatus.PENDING
    input: str = ""
    result: list[ParsedItem] | None = None
    error: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_status_response(self) -> "JobStatusResponse":
        return JobStatusResponse(
            job_id=self.job_id,
            status=self.status,
            result=self.result if self.status == JobStatus.DONE else None,
            error=self.error if self.status == JobStatus.FAILED else None,
        )


class TextParseRequest(BaseModel):
    text: str = Field(default="", description="Raw text to extract items from")


class ParseAcceptedResponse(BaseModel):
    status: str = "accepted"
    job_id: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: JobStatus
    result: list[ParsedItem] | None = None
    error: str | None = None


# Drafts
class DraftSnapshot(BaseModel):
    """Latest known local state of one logical draft.

    Persisted with camelCase keys (``draftId``, ``updatedAt``) so the stored
    layout matches what browser clients write for the same key. ``syncedAt`` is
    the server timestamp of the last acknowledged write and is only stored once
    a write has succeeded.
    """

    model_config = ConfigDict(populate_by_name=True)

    draft_id: str | None = Field(None, alias="draftId")
    content: Any = None
    updated_at: int = Field(0, alias="updatedAt", description="Epoch millis of last local mutation")
    synced_at: int | None = Field(None, alias="syncedAt", description="Epoch millis of last server acknowledgement")

    @property
    def known_at(self) -> int:
        """Latest point in time this snapshot reflects, local or server."""
        return max(self.updated_at, self.synced_at or 0)

    def to_storage(self) -> dict[str, Any]:
        data = self.model_dump(by_alias=True, mode="json")
        if data.get("syncedAt") is None:
            data.pop("syncedAt", None)
        return data


class OutboxEntry(BaseModel):
    """A pending mutation for a single draft key."""

    type: OutboxAction
    id: str | None = None
    payload: Any = None
    metadata: dict[str, Any] | None = None
    attempts: int = 0
    last_error: str | None = None

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class RemoteDraft(BaseModel):
    """Draft record as returned by the remote Draft Store."""

    model_config = ConfigDict(extra="ignore")

    id: str
    key: str | None = None
    content: Any = None
    metadata: dict[str, Any] | None = None
    owner_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime


class DraftWriteResult(BaseModel):
    """Acknowledgement of a remote create/update."""

    model_config = ConfigDict(extra="ignore")

    id: str
    updated_at: datetime | None = None


class APIResponse(BaseModel):
    """Generic API response wrapper"""

    success: bool = True
    message: str = "Success"
    data: Any | None = None
    error: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)


class ErrorResponse(BaseModel):
    """Error response model"""

    success: bool = False
    message: str
    error: str
    timestamp: datetime = Field(default_factory=datetime.now)
    details: dict[str, Any] | None = None
