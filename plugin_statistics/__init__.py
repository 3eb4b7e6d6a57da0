"""
Anonymous usage statistics for applications embedding plugin-statistics.
"""
from loguru import logger
from typing import Optional

from plugin_statistics.host import HostApplication, MetricUnavailableError, resolve_live_metric
from plugin_statistics.report import ReportOutcome, ReportSnapshot, ReportStage, ReportStatus, ReportStepError
from plugin_statistics.scheduler import ScheduledJob, Scheduler, ThreadScheduler
from plugin_statistics.statistics import PluginStatistics, TaskState
from plugin_statistics.transport import StatisticsTransport, TransportError
from statistics_utils.config import StatisticsConfig

__version__ = "1.0.0"


def init_statistics(host, config: Optional[StatisticsConfig] = None,
                    scheduler: Optional[Scheduler] = None) -> PluginStatistics:
    """Create a statistics reporter for a host and start it.

    Args:
        host: The HostApplication to report on
        config: Reporter settings (defaults if None)
        scheduler: Scheduler to use (a new ThreadScheduler if None)

    Returns:
        The running PluginStatistics instance
    """
    statistics = PluginStatistics(host, scheduler or ThreadScheduler(), config)
    statistics.start()
    logger.info(f"Plugin statistics initialized (instance {statistics.instance_id})")
    return statistics


__all__ = [
    'HostApplication',
    'MetricUnavailableError',
    'PluginStatistics',
    'ReportOutcome',
    'ReportSnapshot',
    'ReportStage',
    'ReportStatus',
    'ReportStepError',
    'ScheduledJob',
    'Scheduler',
    'StatisticsConfig',
    'StatisticsTransport',
    'TaskState',
    'ThreadScheduler',
    'TransportError',
    'init_statistics',
    'resolve_live_metric',
]
