"""
HTTP delivery of statistics reports.

One-way POST: only the response status code is read, the body is ignored.
"""
from typing import Dict, Optional

import requests
from loguru import logger

from plugin_statistics.report import ReportStage, ReportStepError
from statistics_utils.config import StatisticsConfig, USER_AGENT


class TransportError(ReportStepError):
    """Request could not be prepared or sent."""


class StatisticsTransport:
    """Posts encoded reports to the collector."""

    def __init__(self,
                 session: Optional[requests.Session] = None,
                 user_agent: str = USER_AGENT,
                 content_encoding: Optional[str] = "gzip",
                 timeout: Optional[float] = None):
        """Initialize the transport.

        Args:
            session: requests session to send through (a new one if None)
            user_agent: User-Agent header value
            content_encoding: Content-Encoding header value, None to omit it.
                The body itself is never compressed.
            timeout: Request timeout in seconds, None to wait indefinitely
        """
        self.session = session or requests.Session()
        self.user_agent = user_agent
        self.content_encoding = content_encoding
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: StatisticsConfig, session: Optional[requests.Session] = None) -> "StatisticsTransport":
        return cls(
            session=session,
            user_agent=config.user_agent,
            content_encoding=config.content_encoding,
            timeout=config.request_timeout_seconds
        )

    def build_headers(self, body: bytes) -> Dict[str, str]:
        headers = {
            "Accept": "*/*",
            "Content-Length": str(len(body)),
            "Content-Type": "application/json",
            "Connection": "close",
            "User-Agent": self.user_agent,
        }
        if self.content_encoding:
            headers["Content-Encoding"] = self.content_encoding
        return headers

    def post(self, url: str, body: bytes) -> int:
        """POST the body and return the response status code.

        Raises:
            TransportError: With stage CONNECT if the request cannot be built,
                or stage SEND if sending or receiving fails
        """
        try:
            prepared = requests.Request("POST", url, data=body, headers=self.build_headers(body)).prepare()
        except (requests.RequestException, ValueError) as e:
            raise TransportError(ReportStage.CONNECT, f"Failed to initiate connection: {e}") from e

        try:
            response = self.session.send(prepared, timeout=self.timeout)
        except (requests.RequestException, OSError) as e:
            raise TransportError(ReportStage.SEND, f"Failed to connect to service: {e}") from e

        try:
            logger.debug(f"Statistics POST {url}: HTTP {response.status_code}")
            return response.status_code
        finally:
            response.close()

    def close(self):
        self.session.close()
