"""Models for content processing requests and results."""

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field


class ErrorKind(str, Enum):
    """Classification of a failed workflow call."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    MALFORMED = "malformed"
    REJECTED = "rejected"

    @property
    def is_transient(self) -> bool:
        return self in _TRANSIENT_KINDS


_TRANSIENT_KINDS = frozenset(
    {ErrorKind.NETWORK, ErrorKind.TIMEOUT, ErrorKind.SERVER_ERROR}
)


@dataclass(frozen=True)
class ContentResult:
    """Artifact produced by one successful processing attempt."""

    enhanced_media_ref: str
    caption: str
    original_caption: str
    hashtags: tuple[str, ...] = ()
    analysis: dict[str, object] = field(default_factory=dict)
    is_fallback_media: bool = False
    is_fallback_caption: bool = False


@dataclass(frozen=True)
class ProcessingSuccess:
    """Successful outcome of a processing request."""

    content: ContentResult
    attempts: int
    duration_ms: int


@dataclass(frozen=True)
class ProcessingFailure:
    """Failed outcome of a processing request after the retry policy ran."""

    kind: ErrorKind
    message: str
    attempts: int
    status_code: int | None = None


ProcessingResult = ProcessingSuccess | ProcessingFailure


class WorkflowData(BaseModel):
    """Payload of a successful content-engine workflow response."""

    enhanced_url: str | None = Field(default=None, alias="enhancedUrl")
    caption: str | None = None
    hashtags: list[str] = Field(default_factory=list)
    analysis: dict[str, object] = Field(default_factory=dict)


class WorkflowResponse(BaseModel):
    """Workflow response, covering both the content-engine and CrowdMagic shapes."""

    success: bool
    data: WorkflowData | None = None
    error: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    status: str | None = None

    def to_data(self) -> WorkflowData:
        """Return the content payload regardless of response shape."""
        if self.data is not None:
            return self.data
        return WorkflowData(enhancedUrl=self.image_url)
