"""
Host application collaborators for the statistics reporter.

The reporter only needs descriptive metadata and one live gauge (the number
of users currently online) from the application that embeds it.
"""
from abc import ABC, abstractmethod


class MetricUnavailableError(Exception):
    """Raised when the host exposes no way to read the live metric."""


class HostApplication(ABC):
    """Interface the embedding application provides to the reporter.

    Besides the three metadata properties, a host exposes the online user
    count through one of two optional methods:

    - ``online_users()`` returning a sized collection (current API)
    - ``get_online_users()`` returning a sequence (older hosts)

    Which one is used is decided once, by ``resolve_live_metric``.
    """

    @property
    @abstractmethod
    def product_name(self) -> str:
        """Name of the reporting product, used in the collector URL."""

    @property
    @abstractmethod
    def product_version(self) -> str:
        """Version of the reporting product."""

    @property
    @abstractmethod
    def environment_version(self) -> str:
        """Version string of the host environment."""


class LiveMetricSource(ABC):
    """Reads the live metric from a host."""

    accessor = ""

    @abstractmethod
    def read(self) -> int:
        """Return the current value of the metric."""


class OnlineUsersMetric(LiveMetricSource):
    accessor = "online_users"

    def __init__(self, host):
        self.host = host

    def read(self) -> int:
        return len(self.host.online_users())


class LegacyOnlineUsersMetric(LiveMetricSource):
    """Compatibility source for hosts that only have ``get_online_users()``."""

    accessor = "get_online_users"

    def __init__(self, host):
        self.host = host

    def read(self) -> int:
        return len(self.host.get_online_users())


class UnavailableMetric(LiveMetricSource):
    def read(self) -> int:
        raise MetricUnavailableError("Host exposes neither online_users() nor get_online_users()")


def resolve_live_metric(host) -> LiveMetricSource:
    """Pick the live metric source a host supports.

    Args:
        host: The host application

    Returns:
        The primary source if the host has ``online_users()``, the legacy one
        if it only has ``get_online_users()``, otherwise a source that always
        fails with MetricUnavailableError
    """
    if callable(getattr(host, OnlineUsersMetric.accessor, None)):
        return OnlineUsersMetric(host)
    if callable(getattr(host, LegacyOnlineUsersMetric.accessor, None)):
        return LegacyOnlineUsersMetric(host)
    return UnavailableMetric()
