"""
Report data and the fallible steps of building one.

Every step raises ReportStepError tagged with the stage that failed, so the
reporter can handle all failures of a tick in one place.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import quote_plus, urlparse

from statistics_utils.json_serialization import EncodingError, dumps

HTTP_OK = 200


class ReportStage(Enum):
    """Step of a report attempt."""
    METADATA = "metadata"
    ENDPOINT = "endpoint"
    ENCODE = "encode"
    CONNECT = "connect"
    SEND = "send"


class ReportStatus(Enum):
    """Result of a report attempt."""
    SENT = "sent"
    REJECTED = "rejected"
    FAILED = "failed"


class ReportStepError(Exception):
    """A soft failure of one report step."""

    def __init__(self, stage: ReportStage, message: str):
        super().__init__(message)
        self.stage = stage


@dataclass(frozen=True)
class ReportSnapshot:
    """One tick's worth of data."""
    instance_id: str
    product_version: str
    environment_version: str
    live_metric: int

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation, keys in the order they are sent."""
        return {
            "instance_id": self.instance_id,
            "plugin_version": self.product_version,
            "server_version": self.environment_version,
            "online_players": self.live_metric,
        }


@dataclass(frozen=True)
class ReportOutcome:
    """What happened to one report attempt."""
    status: ReportStatus
    snapshot: Optional[ReportSnapshot] = None
    stage: Optional[ReportStage] = None
    status_code: Optional[int] = None
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        return self.status is ReportStatus.SENT

    @classmethod
    def failed(cls, error: ReportStepError, snapshot: Optional[ReportSnapshot] = None) -> "ReportOutcome":
        return cls(ReportStatus.FAILED, snapshot=snapshot, stage=error.stage, error=error)

    @classmethod
    def from_status_code(cls, status_code: int, snapshot: ReportSnapshot) -> "ReportOutcome":
        status = ReportStatus.SENT if status_code == HTTP_OK else ReportStatus.REJECTED
        return cls(status, snapshot=snapshot, status_code=status_code)


def build_endpoint_url(url_format: str, product_name: str) -> str:
    """Substitute the URL-encoded product name into the collector URL.

    Args:
        url_format: URL with one {} placeholder
        product_name: Product name, encoded as a form component

    Returns:
        The absolute http(s) URL

    Raises:
        ReportStepError: If the name cannot be encoded or the result is not an
            absolute http(s) URL
    """
    try:
        url = url_format.format(quote_plus(product_name, encoding="utf-8"))
    except (TypeError, ValueError, IndexError, KeyError, UnicodeError) as e:
        raise ReportStepError(ReportStage.ENDPOINT, f"Failed to encode API URL: {e}") from e

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ReportStepError(ReportStage.ENDPOINT, f"Not an absolute http(s) URL: {url}")
    return url


def encode_snapshot(snapshot: ReportSnapshot, encoding: str = "utf-8", indent: Optional[int] = None) -> bytes:
    """Encode a snapshot as a JSON object in the given text encoding.

    Raises:
        ReportStepError: If the data cannot be represented as JSON or in the
            requested encoding
    """
    try:
        return dumps(snapshot.to_dict(), indent=indent).encode(encoding)
    except (EncodingError, UnicodeError, LookupError) as e:
        raise ReportStepError(ReportStage.ENCODE, f"Failed to encode data to submit: {e}") from e
