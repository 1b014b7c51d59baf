"""Metrics collector: one concurrent sampling cycle per call.

Every metric domain (host, CPU, memory, disk, network, processes and the
optional enrichers) runs as its own task under a shared deadline. Tasks
write into a builder under a single lock; a failing or cancelled task only
leaves its own fields at their zero value. The caller always gets a full
snapshot back.
"""

import asyncio
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from typing import Any, TypeVar

import structlog

from hostpulse.config import CollectorConfig
from hostpulse.enrichers import BatteryStatus, battery_status, detailed_os_version
from hostpulse.health import score_health
from hostpulse.probes import (
    InterfaceCounters,
    Partition,
    ProbeError,
    ProbeSet,
    ProcessSample,
    PsutilProbes,
)

log = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class DiskInfo:
    """Capacity of one physical volume."""

    device: str
    mountpoint: str
    fstype: str
    total: int
    used: int
    free: int
    used_percent: float


@dataclass(frozen=True)
class NetworkInfo:
    """Cumulative traffic counters for one active interface."""

    name: str
    bytes_sent: int
    bytes_recv: int
    packets_sent: int
    packets_recv: int


@dataclass(frozen=True)
class ProcessInfo:
    """One of the top processes by CPU."""

    pid: int
    name: str
    cpu_percent: float
    memory_percent: float


@dataclass(frozen=True)
class MetricsSnapshot:
    """Point-in-time metrics for the host.

    Fields whose probe failed keep their zero value. Instances are
    immutable once the collector hands them off.
    """

    collected_at: datetime = field(default_factory=datetime.now)
    health_score: int = 0
    health_message: str = ""

    # Host
    hostname: str = ""
    os: str = ""
    platform: str = ""
    uptime_seconds: int = 0

    # CPU
    cpu_model: str = ""
    cpu_cores: int = 0
    cpu_percent: float = 0.0
    cpu_per_core: tuple[float, ...] = ()

    # Memory
    mem_total: int = 0
    mem_used: int = 0
    mem_percent: float = 0.0
    swap_total: int = 0
    swap_used: int = 0
    swap_percent: float = 0.0

    disks: tuple[DiskInfo, ...] = ()
    networks: tuple[NetworkInfo, ...] = ()
    top_processes: tuple[ProcessInfo, ...] = ()

    # Enrichment
    os_detail: str = ""
    battery: BatteryStatus | None = None

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dictionary."""
        data = asdict(self)
        data["collected_at"] = self.collected_at.isoformat()
        return data


def filter_partitions(partitions: Iterable[Partition], prefixes: Iterable[str]) -> list[Partition]:
    """Keep partitions whose device starts with a physical-drive prefix."""
    prefixes = tuple(prefixes)
    return [p for p in partitions if p.device.startswith(prefixes)]


def filter_interfaces(
    counters: Iterable[InterfaceCounters], loopback: Iterable[str]
) -> list[NetworkInfo]:
    """Drop loopback interfaces and interfaces that never moved a byte."""
    loopback = set(loopback)
    return [
        NetworkInfo(
            name=c.name,
            bytes_sent=c.bytes_sent,
            bytes_recv=c.bytes_recv,
            packets_sent=c.packets_sent,
            packets_recv=c.packets_recv,
        )
        for c in counters
        if c.name not in loopback and (c.bytes_sent or c.bytes_recv)
    ]


def rank_processes(
    samples: Iterable[ProcessSample],
    threshold: float = 0.1,
    limit: int = 5,
) -> list[ProcessInfo]:
    """Select the busiest active processes.

    Keeps processes above the activity threshold on CPU or memory, orders
    them by CPU descending (ties keep discovery order), and truncates.
    """
    active = [s for s in samples if s.cpu_percent > threshold or s.memory_percent > threshold]
    ranked = sorted(active, key=lambda s: s.cpu_percent, reverse=True)
    return [
        ProcessInfo(
            pid=s.pid,
            name=s.name,
            cpu_percent=s.cpu_percent,
            memory_percent=s.memory_percent,
        )
        for s in ranked[:limit]
    ]


class _SnapshotBuilder:
    """Mutable field store shared by one cycle's tasks."""

    def __init__(self, collected_at: datetime) -> None:
        self.lock = asyncio.Lock()
        self.failed: set[str] = set()
        self._values: dict[str, Any] = {"collected_at": collected_at}

    async def set(self, **values: Any) -> None:
        async with self.lock:
            self._values.update(values)

    def build(self) -> MetricsSnapshot:
        snapshot = MetricsSnapshot(**self._values)
        score, message = score_health(snapshot)
        return replace(snapshot, health_score=score, health_message=message)


class Collector:
    """Runs sampling cycles against a probe set.

    Blocking probe calls run on a private thread pool so a cancelled call
    cannot hold up the event loop; its late result is discarded. A call
    still stuck in a worker from an earlier cycle is not submitted again
    until it returns, so a hung query only ever holds one worker.
    """

    def __init__(
        self,
        config: CollectorConfig | None = None,
        probes: ProbeSet | None = None,
    ) -> None:
        self.config = config or CollectorConfig()
        self.probes: ProbeSet = probes or PsutilProbes()
        self._executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="hostpulse-probe")
        self._running: set[tuple[str, tuple]] = set()
        self._running_lock = threading.Lock()

    def close(self) -> None:
        """Release probe worker threads without waiting on stuck queries."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    async def collect(self, deadline: float | None = None) -> MetricsSnapshot:
        """Run one cycle and return the merged snapshot.

        Args:
            deadline: Seconds allowed for the whole cycle. Defaults to the
                configured deadline.
        """
        timeout = deadline if deadline is not None else self.config.deadline
        started = time.monotonic()
        builder = _SnapshotBuilder(collected_at=datetime.now())

        domains: dict[str, Any] = {
            "host": self._collect_host(builder),
            "cpu": self._collect_cpu(builder),
            "memory": self._collect_memory(builder),
            "disk": self._collect_disks(builder),
            "network": self._collect_network(builder),
            "processes": self._collect_processes(builder),
        }
        if self.config.enrich:
            domains["enrich"] = self._collect_enrichment(builder)

        tasks = {
            asyncio.create_task(coro, name=f"collect-{name}"): name
            for name, coro in domains.items()
        }
        done, pending = await asyncio.wait(tasks, timeout=timeout)

        for task in done:
            error = task.exception()
            if error is not None:
                builder.failed.add(tasks[task])
                log.warning("domain_failed", domain=tasks[task], error=str(error), exc_info=error)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            for task in pending:
                log.debug("probe_cancelled", domain=tasks[task], deadline=timeout)

        snapshot = builder.build()
        log.info(
            "collect_complete",
            elapsed_ms=round((time.monotonic() - started) * 1000),
            timed_out=sorted(tasks[t] for t in pending),
            failed=sorted(builder.failed),
            health_score=snapshot.health_score,
        )
        return snapshot

    def collect_sync(self, deadline: float | None = None) -> MetricsSnapshot:
        """Run one cycle on a fresh event loop."""
        return asyncio.run(self.collect(deadline))

    async def _probe(
        self, builder: _SnapshotBuilder, func: Callable[..., T], *args: Any
    ) -> T | None:
        """Run a blocking probe; return None if it fails."""
        name = getattr(func, "__name__", repr(func))
        key = (name, args)
        with self._running_lock:
            if key in self._running:
                builder.failed.add(name)
                log.debug("probe_still_running", probe=name, args=args)
                return None
            self._running.add(key)

        def release(_future) -> None:
            with self._running_lock:
                self._running.discard(key)

        future = self._executor.submit(func, *args)
        future.add_done_callback(release)
        try:
            return await asyncio.wrap_future(future)
        except ProbeError as e:
            builder.failed.add(name)
            log.debug("probe_failed", probe=name, kind=e.kind, error=str(e))
        except Exception as e:
            builder.failed.add(name)
            log.warning("probe_failed_unexpectedly", probe=name, error=str(e), exc_info=True)
        return None

    async def _collect_host(self, builder: _SnapshotBuilder) -> None:
        info = await self._probe(builder, self.probes.host_info)
        if info is not None:
            await builder.set(
                hostname=info.hostname,
                os=info.os,
                platform=info.platform,
                uptime_seconds=info.uptime_seconds,
            )

    async def _collect_cpu(self, builder: _SnapshotBuilder) -> None:
        window = self.config.cpu_sample_window

        info = await self._probe(builder, self.probes.cpu_info)
        if info is not None:
            await builder.set(cpu_model=info.model, cpu_cores=info.cores)

        # Both measurements need the full window to mean anything
        total = await self._probe(builder, self.probes.cpu_percent, window, False)
        if total:
            await builder.set(cpu_percent=total[0])

        per_core = await self._probe(builder, self.probes.cpu_percent, window, True)
        if per_core is not None:
            await builder.set(cpu_per_core=tuple(per_core))

    async def _collect_memory(self, builder: _SnapshotBuilder) -> None:
        mem = await self._probe(builder, self.probes.virtual_memory)
        if mem is not None:
            await builder.set(mem_total=mem.total, mem_used=mem.used, mem_percent=mem.percent)

        swap = await self._probe(builder, self.probes.swap_memory)
        if swap is not None:
            await builder.set(swap_total=swap.total, swap_used=swap.used, swap_percent=swap.percent)

    async def _collect_disks(self, builder: _SnapshotBuilder) -> None:
        partitions = await self._probe(builder, self.probes.disk_partitions)
        if partitions is None:
            return

        disks = []
        for part in filter_partitions(partitions, self.config.disk_device_prefixes):
            usage = await self._probe(builder, self.probes.disk_usage, part.mountpoint)
            if usage is None:
                continue
            disks.append(
                DiskInfo(
                    device=part.device,
                    mountpoint=part.mountpoint,
                    fstype=part.fstype,
                    total=usage.total,
                    used=usage.used,
                    free=usage.free,
                    used_percent=usage.percent,
                )
            )
        await builder.set(disks=tuple(disks))

    async def _collect_network(self, builder: _SnapshotBuilder) -> None:
        counters = await self._probe(builder, self.probes.net_io_counters)
        if counters is not None:
            networks = filter_interfaces(counters, self.config.loopback_interfaces)
            await builder.set(networks=tuple(networks))

    async def _collect_processes(self, builder: _SnapshotBuilder) -> None:
        samples = await self._probe(builder, self.probes.processes)
        if samples is not None:
            top = rank_processes(
                samples,
                threshold=self.config.activity_threshold,
                limit=self.config.top_process_count,
            )
            await builder.set(top_processes=tuple(top))

    async def _collect_enrichment(self, builder: _SnapshotBuilder) -> None:
        timeout = self.config.enricher_timeout
        os_detail, battery = await asyncio.gather(
            detailed_os_version(timeout=timeout),
            battery_status(timeout=timeout),
        )
        await builder.set(os_detail=os_detail, battery=battery)
