"""Tests for the continuous drift monitor."""

from __future__ import annotations

import threading

import pytest

from kspec_drift.core.detector import Detector
from kspec_drift.core.monitor import Monitor, MonitorConfig
from kspec_drift.core.remediator import Remediator
from kspec_drift.core.storage import MemoryStorage, StorageConfig
from kspec_drift.exceptions import ClientError, ConfigurationError
from kspec_drift.models.drift import DriftStatus


class _CountingDetector(Detector):
    """Detector that signals each completed cycle and can be told to fail."""

    def __init__(self, *args, fail: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail = fail
        self.cycles = 0
        self.cycled = threading.Event()

    def detect(self, spec, enabled_types=None):
        self.cycles += 1
        self.cycled.set()
        if self.fail:
            raise ClientError("cluster unreachable")
        return super().detect(spec, enabled_types)


def _monitor(k8s, source, interval: float, fail: bool = False, **config) -> tuple[Monitor, _CountingDetector]:
    detector = _CountingDetector(k8s, source, fail=fail)
    monitor = Monitor(detector, Remediator(k8s), MemoryStorage(), MonitorConfig(interval=interval, **config))
    return monitor, detector


def test_interval_must_be_positive(fake_k8s, policy_source):
    with pytest.raises(ConfigurationError, match="interval"):
        _monitor(fake_k8s, policy_source, interval=0)


def test_unknown_types_rejected(fake_k8s, policy_source):
    with pytest.raises(ConfigurationError):
        _monitor(fake_k8s, policy_source, interval=60, enabled_types=["bogus"])


def test_check_once_stores_events(spec, fake_k8s, policy_source):
    monitor, _ = _monitor(fake_k8s, policy_source, interval=60)

    report = monitor.check_once(spec)

    history = monitor.get_history()
    assert report.drift.counts.total == 2
    assert history.stats.total_events == 2
    assert fake_k8s.mutating_calls == []


def test_auto_remediate_stores_outcome(spec, fake_k8s, policy_source):
    """With auto-remediation the stored events carry the remediation result."""
    monitor, _ = _monitor(fake_k8s, policy_source, interval=60, auto_remediate=True)

    monitor.check_once(spec)

    history = monitor.get_history()
    assert all(e.remediation.status == DriftStatus.REMEDIATED for e in history.events)
    assert history.stats.remediation_success_rate == 1.0
    assert len(fake_k8s.objects) == 2


def test_stop_interrupts_wait(spec, fake_k8s, policy_source):
    """Cancellation during the inter-cycle wait ends the loop promptly."""
    monitor, detector = _monitor(fake_k8s, policy_source, interval=3600)
    thread = threading.Thread(target=monitor.start, args=(spec,))
    thread.start()

    assert detector.cycled.wait(5)
    monitor.stop()
    thread.join(5)

    assert not thread.is_alive()
    assert detector.cycles == 1


def test_external_stop_event(spec, fake_k8s, policy_source):
    monitor, detector = _monitor(fake_k8s, policy_source, interval=3600)
    stop = threading.Event()
    stop.set()

    monitor.start(spec, stop_event=stop)

    assert detector.cycles == 0


def test_cycle_errors_do_not_stop_monitoring(spec, fake_k8s, policy_source):
    monitor, detector = _monitor(fake_k8s, policy_source, interval=0.01, fail=True)
    thread = threading.Thread(target=monitor.start, args=(spec,))
    thread.start()

    for _ in range(3):
        detector.cycled.clear()
        assert detector.cycled.wait(5)
    monitor.stop()
    thread.join(5)

    assert not thread.is_alive()
    assert detector.cycles >= 3
    assert monitor.get_history().events == []


def test_from_config_builds_storage(fake_k8s, policy_source, tmp_path):
    config = MonitorConfig(
        interval=30,
        storage=StorageConfig(type="file", path=str(tmp_path / "history.json")),
    )
    monitor = Monitor.from_config(fake_k8s, policy_source, None, config)

    assert monitor.config.interval == 30
    assert monitor.storage.path == tmp_path / "history.json"


class _BlockingDetector(_CountingDetector):
    """Detector whose cycle holds until ``release`` is set."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.release = threading.Event()

    def detect(self, spec, enabled_types=None):
        self.cycles += 1
        self.cycled.set()
        assert self.release.wait(5)
        return Detector.detect(self, spec, enabled_types)


def test_stop_during_cycle_lets_it_finish(spec, fake_k8s, policy_source):
    """A cycle already running when stop is requested completes and is stored."""
    detector = _BlockingDetector(fake_k8s, policy_source)
    monitor = Monitor(detector, Remediator(fake_k8s), MemoryStorage(), MonitorConfig(interval=0.01))
    thread = threading.Thread(target=monitor.start, args=(spec,))
    thread.start()

    assert detector.cycled.wait(5)
    monitor.stop()
    detector.release.set()
    thread.join(5)

    assert not thread.is_alive()
    assert detector.cycles == 1
    assert monitor.get_history().stats.total_events == 2
