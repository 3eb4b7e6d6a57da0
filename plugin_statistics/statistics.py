"""
Periodic statistics reporting for an embedding host application.

Every interval a snapshot of the host's metadata and online user count is
encoded as JSON and posted to the statistics collector. Reporting runs on the
scheduler's background threads and never raises into the host: failures are
logged when debug is enabled and otherwise dropped. Nothing is retried.
"""
import threading
import uuid
from enum import Enum
from typing import Optional

from loguru import logger

from plugin_statistics.host import LiveMetricSource, resolve_live_metric
from plugin_statistics.report import (
    ReportOutcome,
    ReportSnapshot,
    ReportStage,
    ReportStatus,
    ReportStepError,
    build_endpoint_url,
    encode_snapshot,
)
from plugin_statistics.scheduler import ScheduledJob, Scheduler
from plugin_statistics.transport import StatisticsTransport
from statistics_utils.config import StatisticsConfig
from statistics_utils.json_serialization import dumps


class TaskState(Enum):
    """Whether the periodic report job is scheduled."""
    STOPPED = "stopped"
    RUNNING = "running"


class TaskHandle:
    """The scheduled report job, or None while stopped, plus its lock."""

    def __init__(self):
        self.lock = threading.Lock()
        self.job: Optional[ScheduledJob] = None

    @property
    def state(self) -> TaskState:
        return TaskState.STOPPED if self.job is None else TaskState.RUNNING


class PluginStatistics:
    """Reports anonymous usage statistics for one host product."""

    def __init__(self,
                 host,
                 scheduler: Scheduler,
                 config: Optional[StatisticsConfig] = None,
                 transport: Optional[StatisticsTransport] = None,
                 instance_id: Optional[str] = None):
        """Initialize the reporter. Nothing is scheduled until start().

        Args:
            host: The HostApplication to report on
            scheduler: Scheduler to run the periodic job on
            config: Reporter settings (defaults if None)
            transport: HTTP transport (built from config if None)
            instance_id: Installation identifier (random UUID if None)
        """
        if host is None:
            raise ValueError("host must not be None")
        if scheduler is None:
            raise ValueError("scheduler must not be None")

        self.host = host
        self.scheduler = scheduler
        self.config = config or StatisticsConfig()
        self.transport = transport or StatisticsTransport.from_config(self.config)
        self.instance_id = instance_id or str(uuid.uuid4())
        self.debug = self.config.debug
        self.metric_source: LiveMetricSource = resolve_live_metric(host)
        self.last_outcome: Optional[ReportOutcome] = None
        self._task = TaskHandle()

    @property
    def state(self) -> TaskState:
        return self._task.state

    @property
    def is_running(self) -> bool:
        return self._task.state is TaskState.RUNNING

    def start(self):
        """Schedule the periodic report. Does nothing if already scheduled.

        The first report is sent one interval after start, not immediately.
        """
        with self._task.lock:
            if self._task.job is not None:
                return
            interval = self.config.interval_seconds
            self._task.job = self.scheduler.schedule_repeating(self._tick, interval, interval)
        logger.info(f"[statistics] Reporting started (every {interval}s)")

    def stop(self):
        """Cancel the periodic report. Does nothing if not scheduled.

        A report already in progress is allowed to finish.
        """
        with self._task.lock:
            if self._task.job is None:
                return
            self.scheduler.cancel(self._task.job.job_id)
            self._task.job = None
        logger.info("[statistics] Reporting stopped")

    def collect_snapshot(self) -> ReportSnapshot:
        """Read metadata and the live metric from the host.

        Raises:
            ReportStepError: If the host metadata cannot be read
        """
        try:
            product_version = self.host.product_version
            environment_version = self.host.environment_version
        except Exception as e:
            raise ReportStepError(ReportStage.METADATA, f"Unable to read host metadata: {e}") from e

        return ReportSnapshot(
            instance_id=self.instance_id,
            product_version=product_version,
            environment_version=environment_version,
            live_metric=self._read_live_metric(),
        )

    def _read_live_metric(self) -> int:
        try:
            return self.metric_source.read()
        except Exception as e:
            if self.debug:
                logger.opt(exception=e).warning("[statistics] Unable to get online player count.")
            return self.config.default_live_metric

    def run_report(self) -> ReportOutcome:
        """Collect, encode and send one report.

        Returns:
            The outcome; failures are captured in it, never raised
        """
        snapshot = None
        try:
            snapshot = self.collect_snapshot()
            try:
                product_name = self.host.product_name
            except Exception as e:
                raise ReportStepError(ReportStage.METADATA, f"Unable to read product name: {e}") from e
            url = build_endpoint_url(self.config.api_url_format, product_name)
            payload = encode_snapshot(snapshot, self.config.payload_encoding)
            status_code = self.transport.post(url, payload)
        except ReportStepError as e:
            outcome = ReportOutcome.failed(e, snapshot)
        except Exception as e:
            outcome = ReportOutcome(ReportStatus.FAILED, snapshot=snapshot, error=e)
        else:
            outcome = ReportOutcome.from_status_code(status_code, snapshot)

        self.last_outcome = outcome
        self._log_outcome(outcome)
        return outcome

    def _log_outcome(self, outcome: ReportOutcome):
        if not self.debug or outcome.succeeded:
            return

        if outcome.status is ReportStatus.FAILED:
            logger.opt(exception=outcome.error.__cause__ or outcome.error).warning(
                f"[statistics] {outcome.error}"
            )
            return

        logger.warning(f"[statistics] Service returned non-OK response code: {outcome.status_code}")
        try:
            pretty = dumps(outcome.snapshot.to_dict(), indent=2)
        except Exception as e:
            logger.opt(exception=e).warning(
                "[statistics] Failed to pretty-print data (to show the POST request which caused the error)."
            )
            return
        logger.info(f"[statistics] POST data which caused this error: {pretty}")

    def _tick(self):
        try:
            self.run_report()
        except Exception as e:
            if self.debug:
                logger.opt(exception=e).error(f"[statistics] Unexpected error while reporting: {e}")
