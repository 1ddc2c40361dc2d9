from typing import Optional

from .cache import StatusCache, IMAP_ERROR
from .config import ExporterConfig, APP_VERSION, GIT_SHA, BUILD_DATE
from .errors import MailSendError
from .imap_client import InboxReconciler
from .logging_setup import logger
from .metrics import ProbeMetrics
from .scheduler import PeriodicTask
from .sender import MailSender


class ProbeContext:
    """Everything one exporter process owns: config, metrics, cache, sender and the two loops."""

    def __init__(
        self,
        config: ExporterConfig,
        metrics: ProbeMetrics,
        cache: StatusCache,
        sender: MailSender,
        reconciler: Optional[InboxReconciler] = None,
    ):
        self.config = config
        self.metrics = metrics
        self.cache = cache
        self.sender = sender
        self.reconciler = reconciler
        exporter = config.exporter
        self.send_task = PeriodicTask("probe-send", exporter.send_interval_seconds, self.send_probe_once)
        self.flush_task = PeriodicTask("cache-flush", exporter.cache_flush_interval_seconds, self.flush_cache)

        metrics.init_error_series(sender.backend, IMAP_ERROR)
        metrics.bind_status_source(cache.get_or_reconcile)
        metrics.set_config(exporter.send_interval_seconds, exporter.cache_flush_interval_seconds)
        metrics.set_build_info(APP_VERSION, GIT_SHA, BUILD_DATE)

    @classmethod
    def from_config(cls, config: ExporterConfig) -> "ProbeContext":
        metrics = ProbeMetrics(prefix=config.exporter.metrics_prefix)
        reconciler = InboxReconciler(config.imap, config.exporter.subject_prefix, metrics)
        cache = StatusCache(reconciler.reconcile, metrics)
        return cls(config, metrics, cache, MailSender(config), reconciler)

    def send_probe_once(self) -> bool:
        logger.info("sending message")
        try:
            self.sender.send_probe()
        except MailSendError as e:
            logger.error(f"error sending {self.sender.backend} request: {e}")
            self.metrics.errors.labels(error=self.sender.backend).inc()
            return False
        return True

    def flush_cache(self) -> None:
        logger.info("expiring cache")
        self.cache.clear()

    def start(self) -> None:
        self.flush_task.start()
        self.send_task.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self.send_task.stop(timeout)
        self.flush_task.stop(timeout)
