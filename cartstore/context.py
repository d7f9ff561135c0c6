"""Per-request context passed explicitly into every engine call."""
import uuid
from dataclasses import dataclass, field

from cartstore.logging import sanitize_id_for_logging

REQUEST_ID_HEADER = "X-Request-ID"


def new_correlation_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class RequestContext:
    """Carries the correlation id used to tie log lines of one request together."""
    correlation_id: str = field(default_factory=new_correlation_id)

    @classmethod
    def from_header(cls, value: str | None) -> "RequestContext":
        """Build a context from an inbound X-Request-ID header, generating one if absent."""
        if not value or not value.strip():
            return cls()
        return cls(correlation_id=sanitize_id_for_logging(value.strip(), max_length=64))
