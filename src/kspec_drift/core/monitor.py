"""Continuous drift monitoring on a fixed-rate schedule."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime

from kspec_drift.config.settings import settings
from kspec_drift.core.checks import Check
from kspec_drift.core.detector import Detector
from kspec_drift.core.k8s_client import K8sClient
from kspec_drift.core.policy_source import PolicySource
from kspec_drift.core.remediator import Remediator
from kspec_drift.core.storage import Storage, StorageConfig, new_storage
from kspec_drift.exceptions import ConfigurationError, KspecDriftError, RemediationError
from kspec_drift.models.drift import DriftHistory, DriftReport, DriftType, parse_types
from kspec_drift.models.spec import ClusterSpecification

logger = logging.getLogger(__name__)


@dataclass
class MonitorConfig:
    # seconds between cycle starts
    interval: float = field(default_factory=lambda: settings.monitor_interval)
    enabled_types: list[DriftType | str] = field(default_factory=list)
    auto_remediate: bool = False
    remediate_types: list[DriftType | str] = field(default_factory=list)
    storage: StorageConfig | None = None


class Monitor:
    """Runs detection (and optionally remediation) once per interval.

    A single loop owns every cycle, so cycles never overlap. A cycle that
    overruns the interval delays the next one instead of running in parallel.
    """

    def __init__(
        self,
        detector: Detector,
        remediator: Remediator,
        storage: Storage,
        config: MonitorConfig,
    ):
        if config.interval <= 0:
            raise ConfigurationError(f"monitor interval must be positive, got {config.interval}")
        parse_types(config.enabled_types)
        parse_types(config.remediate_types)
        self.detector = detector
        self.remediator = remediator
        self.storage = storage
        self.config = config
        self._stop = threading.Event()

    @classmethod
    def from_config(
        cls,
        k8s: K8sClient,
        policy_source: PolicySource,
        checks: list[Check] | None,
        config: MonitorConfig,
    ) -> Monitor:
        return cls(
            detector=Detector(k8s, policy_source, checks),
            remediator=Remediator(k8s),
            storage=new_storage(config.storage),
            config=config,
        )

    def start(self, spec: ClusterSpecification, stop_event: threading.Event | None = None) -> None:
        """Monitor until ``stop_event`` (or ``stop()``) is set.

        The first cycle runs immediately. Cancellation is observed between
        cycles; a cycle already running completes first.
        """
        if stop_event is not None:
            self._stop = stop_event
        stop = self._stop
        interval = self.config.interval
        logger.info("Starting drift monitor for spec %s (interval %.0fs)", spec.name, interval)

        next_tick = time.monotonic()
        while not stop.is_set():
            self._run_cycle(spec)

            next_tick += interval
            now = time.monotonic()
            if next_tick <= now:
                # Overran: collapse the missed ticks into one immediate cycle
                next_tick = now
            if stop.wait(next_tick - now):
                break

        logger.info("Drift monitor for spec %s stopped", spec.name)

    def stop(self) -> None:
        self._stop.set()

    def _run_cycle(self, spec: ClusterSpecification) -> None:
        try:
            self.check_once(spec)
        except KspecDriftError as e:
            logger.error("Drift check failed: %s", e)
        except Exception:
            logger.exception("Drift check failed unexpectedly")

    def check_once(self, spec: ClusterSpecification) -> DriftReport:
        """Run one detection cycle, auto-remediate if configured, store the events."""
        report = self.detector.detect(spec, enabled_types=self.config.enabled_types)

        if self.config.auto_remediate and report.drift.detected:
            try:
                self.remediator.remediate(spec, report, dry_run=False, types=self.config.remediate_types)
            except RemediationError as e:
                logger.error("Auto-remediation failed: %s", e)
            else:
                logger.info("Auto-remediation pass completed for %d drift events", len(report.events))

        for event in report.events:
            try:
                self.storage.store(event)
            except (OSError, ValueError) as e:
                logger.warning("Failed to store drift event %s: %s", event.resource.path, e)

        if report.drift.detected:
            logger.warning(
                "Detected %d drift events (severity: %s)",
                report.drift.counts.total, report.drift.severity.value,
            )
        return report

    def get_history(self, since: datetime | None = None) -> DriftHistory:
        return self.storage.get_history(since)
