"""Shared test fixtures for hostpulse."""

import threading
from datetime import datetime

import pytest

from hostpulse.collector import DiskInfo, MetricsSnapshot, NetworkInfo
from hostpulse.config import CollectorConfig
from hostpulse.probes import (
    CpuInfo,
    DiskUsage,
    HostInfo,
    InterfaceCounters,
    MemoryUsage,
    Partition,
    ProbeUnavailable,
    ProcessSample,
)


class FakeProbes:
    """In-memory probe set.

    Every probe returns the matching attribute. Names listed in `fail` raise
    ProbeUnavailable; names listed in `slow` block until `release()` is
    called. Calls are recorded in order as (name, args) tuples.
    """

    def __init__(self, fail: set[str] | None = None, slow: set[str] | None = None) -> None:
        self.fail = set(fail or ())
        self.slow = set(slow or ())
        self.calls: list[tuple[str, tuple]] = []
        self._gate = threading.Event()

        self.host = HostInfo(
            hostname="testhost", os="linux", platform="Linux 6.1", uptime_seconds=3700
        )
        self.cpu = CpuInfo(model="Test CPU @ 3.0GHz", cores=4)
        self.cpu_total = [42.0]
        self.cpu_cores = [40.0, 44.0, 41.0, 43.0]
        self.memory = MemoryUsage(total=16 * 1024**3, used=8 * 1024**3, percent=50.0)
        self.swap = MemoryUsage(total=2 * 1024**3, used=0, percent=0.0)
        self.partitions = [
            Partition(device="/dev/sda1", mountpoint="/", fstype="ext4"),
            Partition(device="tmpfs", mountpoint="/run", fstype="tmpfs"),
        ]
        self.usage = {"/": DiskUsage(total=500, used=250, free=250, percent=50.0)}
        self.counters = [
            InterfaceCounters("lo", 100, 100, 1, 1),
            InterfaceCounters("eth0", 2000, 5000, 20, 50),
        ]
        self.samples = [
            ProcessSample(pid=1, name="init", cpu_percent=0.0, memory_percent=0.0),
            ProcessSample(pid=100, name="python", cpu_percent=12.5, memory_percent=3.0),
        ]

    def release(self) -> None:
        """Unblock slow probes."""
        self._gate.set()

    def _enter(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if name in self.slow:
            self._gate.wait(timeout=10)
        if name in self.fail:
            raise ProbeUnavailable(f"{name}: denied")

    def host_info(self) -> HostInfo:
        self._enter("host_info")
        return self.host

    def cpu_info(self) -> CpuInfo:
        self._enter("cpu_info")
        return self.cpu

    def cpu_percent(self, interval: float, percpu: bool) -> list[float]:
        self._enter("cpu_percent", interval, percpu)
        return list(self.cpu_cores if percpu else self.cpu_total)

    def virtual_memory(self) -> MemoryUsage:
        self._enter("virtual_memory")
        return self.memory

    def swap_memory(self) -> MemoryUsage:
        self._enter("swap_memory")
        return self.swap

    def disk_partitions(self) -> list[Partition]:
        self._enter("disk_partitions")
        return list(self.partitions)

    def disk_usage(self, mountpoint: str) -> DiskUsage:
        self._enter("disk_usage", mountpoint)
        return self.usage[mountpoint]

    def net_io_counters(self) -> list[InterfaceCounters]:
        self._enter("net_io_counters")
        return list(self.counters)

    def processes(self) -> list[ProcessSample]:
        self._enter("processes")
        return list(self.samples)


@pytest.fixture
def fake_probes():
    """Probe set with healthy defaults; slow probes are released on teardown."""
    probes = FakeProbes()
    yield probes
    probes.release()


@pytest.fixture
def collector_config() -> CollectorConfig:
    """Collector config with enrichers off and a short CPU window."""
    return CollectorConfig(deadline=2.0, cpu_sample_window=0.01, enrich=False)


def make_disk(device: str = "/dev/sda1", used_percent: float = 50.0) -> DiskInfo:
    """Create a DiskInfo for testing."""
    return DiskInfo(
        device=device,
        mountpoint="/",
        fstype="ext4",
        total=1000,
        used=int(used_percent * 10),
        free=1000 - int(used_percent * 10),
        used_percent=used_percent,
    )


def make_snapshot(
    cpu: float = 10.0,
    mem: float = 20.0,
    swap: float = 0.0,
    disks: tuple[DiskInfo, ...] = (),
    networks: tuple[NetworkInfo, ...] = (),
    health: int = 100,
    collected_at: datetime | None = None,
    **kwargs,
) -> MetricsSnapshot:
    """Create a MetricsSnapshot for testing."""
    return MetricsSnapshot(
        collected_at=collected_at or datetime(2024, 1, 1, 12, 0, 0),
        health_score=health,
        health_message=kwargs.pop("health_message", "Excellent"),
        cpu_percent=cpu,
        mem_percent=mem,
        swap_percent=swap,
        disks=disks,
        networks=networks,
        **kwargs,
    )
