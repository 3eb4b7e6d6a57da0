"""
Configuration for the statistics reporter.
"""

from .statistics_config import StatisticsConfig, API_URL_FORMAT, INTERVAL_SECONDS, USER_AGENT

__all__ = ['StatisticsConfig', 'API_URL_FORMAT', 'INTERVAL_SECONDS', 'USER_AGENT']
