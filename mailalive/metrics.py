from typing import Callable, Optional

from prometheus_client import CollectorRegistry, Gauge, Counter

from .status import StatusField

StatusSource = Callable[[StatusField], float]


class ProbeMetrics:
    """Prometheus collectors of one exporter instance, kept in their own registry."""

    def __init__(self, prefix: str = "mailalive_", registry: Optional[CollectorRegistry] = None):
        self.prefix = prefix or ""
        self.registry = registry or CollectorRegistry()
        p = self.prefix

        # Probe status, pulled through the status cache on every scrape
        self.g_delay = Gauge(f"{p}message_delay", "Seconds between probe origination and arrival in the inbox", registry=self.registry)
        self.g_timestamp = Gauge(f"{p}message_timestamp", "Unix ts embedded in the newest probe message", registry=self.registry)

        self.errors = Counter(f"{p}errors_total", "Errors total labeled by kind (send backend or imap)", ["error"], registry=self.registry)
        self.deletions = Counter(f"{p}deletions_total", "Stale probe messages deleted from the inbox", registry=self.registry)

        # Build info
        self.g_build_info = Gauge(f"{p}build_info", "Build and version information for the exporter", ["version", "revision", "build_date"], registry=self.registry)

        # Config singletons
        self.g_cfg_send_interval = Gauge(f"{p}config_send_interval_seconds", "Configured probe send interval seconds", [], registry=self.registry)
        self.g_cfg_flush_interval = Gauge(f"{p}config_cache_flush_interval_seconds", "Configured status cache flush interval seconds", [], registry=self.registry)

        self.g_delay.set(0)
        self.g_timestamp.set(0)

    def init_error_series(self, *kinds: str) -> None:
        # make the series visible before the first error happens
        for kind in kinds:
            self.errors.labels(error=kind).inc(0)

    def bind_status_source(self, source: StatusSource) -> None:
        self.g_delay.set_function(lambda: source(StatusField.DELAY))
        self.g_timestamp.set_function(lambda: source(StatusField.TIMESTAMP))

    def set_build_info(self, version: str, revision: str, build_date: str) -> None:
        self.g_build_info.labels(version=version, revision=revision or "", build_date=build_date or "").set(1)

    def set_config(self, send_interval: float, flush_interval: float) -> None:
        self.g_cfg_send_interval.set(float(send_interval))
        self.g_cfg_flush_interval.set(float(flush_interval))
