"""
Configuration for the plugin statistics reporter.

Defaults match the public statistics collector; hosts override fields in code.
"""
import codecs
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

API_URL_FORMAT = "https://dabo.guru/statistics/v1/{}/post"
INTERVAL_SECONDS = 60 * 60  # Report every hour.
USER_AGENT = "plugin-statistics/v1"


class StatisticsConfig(BaseModel):
    """Settings for one statistics reporter."""

    model_config = ConfigDict(frozen=True)

    api_url_format: str = Field(API_URL_FORMAT, description="Collector URL with a {} slot for the product name")
    interval_seconds: float = Field(INTERVAL_SECONDS, gt=0, description="Seconds between reports")
    user_agent: str = Field(USER_AGENT, min_length=1, description="User-Agent header value")
    content_encoding: Optional[str] = Field("gzip", description="Content-Encoding header value, None to omit")
    payload_encoding: str = Field("utf-8", description="Text encoding of the JSON body")
    request_timeout_seconds: Optional[float] = Field(None, gt=0, description="HTTP timeout, None to wait indefinitely")
    default_live_metric: int = Field(0, ge=0, description="Reported when the live metric cannot be read")
    debug: bool = Field(False, description="Log failed reports")

    @field_validator("api_url_format")
    @classmethod
    def _check_placeholder(cls, value: str) -> str:
        if value.count("{}") != 1:
            raise ValueError("api_url_format must contain exactly one {} placeholder")
        return value

    @field_validator("payload_encoding")
    @classmethod
    def _check_codec(cls, value: str) -> str:
        try:
            codecs.lookup(value)
        except LookupError as e:
            raise ValueError(f"Unknown payload encoding: {value}") from e
        return value
