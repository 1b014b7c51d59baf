"""Probe set: raw OS metric queries backed by psutil.

Each probe returns a typed result or raises a ProbeError subclass. The
collector treats every ProbeError the same way: the affected fields keep
their zero value.
"""

import functools
import os
import platform
import socket
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

import psutil


T = TypeVar("T")


class ProbeError(Exception):
    """Base class for probe failures."""

    kind = "error"


class ProbeUnavailable(ProbeError):
    """Platform or permissions deny the query."""

    kind = "unavailable"


class ProbeTimeout(ProbeError):
    """Query exceeded its deadline."""

    kind = "timeout"


class ProbeParseFailure(ProbeError):
    """Underlying query returned malformed data."""

    kind = "parse_failure"


@dataclass(frozen=True)
class HostInfo:
    """Host identity."""

    hostname: str
    os: str
    platform: str  # "<platform> <version>"
    uptime_seconds: int


@dataclass(frozen=True)
class CpuInfo:
    """Static CPU description."""

    model: str
    cores: int


@dataclass(frozen=True)
class MemoryUsage:
    """Usage of RAM or swap."""

    total: int
    used: int
    percent: float


@dataclass(frozen=True)
class Partition:
    """Mounted partition as reported by the OS."""

    device: str
    mountpoint: str
    fstype: str


@dataclass(frozen=True)
class DiskUsage:
    """Capacity figures for one mountpoint."""

    total: int
    used: int
    free: int
    percent: float


@dataclass(frozen=True)
class InterfaceCounters:
    """Cumulative counters for one network interface."""

    name: str
    bytes_sent: int
    bytes_recv: int
    packets_sent: int
    packets_recv: int


@dataclass(frozen=True)
class ProcessSample:
    """One process as enumerated, before filtering and ranking."""

    pid: int
    name: str
    cpu_percent: float
    memory_percent: float


class ProbeSet(Protocol):
    """Interface the collector consumes. All methods are blocking."""

    def host_info(self) -> HostInfo: ...

    def cpu_info(self) -> CpuInfo: ...

    def cpu_percent(self, interval: float, percpu: bool) -> list[float]: ...

    def virtual_memory(self) -> MemoryUsage: ...

    def swap_memory(self) -> MemoryUsage: ...

    def disk_partitions(self) -> list[Partition]: ...

    def disk_usage(self, mountpoint: str) -> DiskUsage: ...

    def net_io_counters(self) -> list[InterfaceCounters]: ...

    def processes(self) -> list[ProcessSample]: ...


def translate_errors(func: Callable[..., T]) -> Callable[..., T]:
    """Map psutil/OS exceptions onto the ProbeError taxonomy.

    Anything else (AttributeError, TypeError, ...) is a bug, not a probe
    failure, and propagates unchanged.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> T:
        try:
            return func(*args, **kwargs)
        except ProbeError:
            raise
        except psutil.TimeoutExpired as e:
            raise ProbeTimeout(f"{func.__name__}: {e}") from e
        except (psutil.AccessDenied, psutil.NoSuchProcess, psutil.ZombieProcess) as e:
            raise ProbeUnavailable(f"{func.__name__}: {e}") from e
        except (NotImplementedError, OSError) as e:
            raise ProbeUnavailable(f"{func.__name__}: {e}") from e
        except (ValueError, KeyError, IndexError) as e:
            raise ProbeParseFailure(f"{func.__name__}: {e}") from e

    return wrapper


def _cpu_model() -> str:
    """Best-effort CPU model name."""
    if os.path.exists("/proc/cpuinfo"):
        with open("/proc/cpuinfo") as f:
            for line in f:
                if line.lower().startswith(("model name", "hardware")):
                    _, _, value = line.partition(":")
                    value = value.strip()
                    if value:
                        return value
    return platform.processor() or platform.machine()


class PsutilProbes:
    """Default probe set for the local host."""

    @translate_errors
    def host_info(self) -> HostInfo:
        boot = psutil.boot_time()
        return HostInfo(
            hostname=socket.gethostname(),
            os=platform.system().lower(),
            platform=f"{platform.system()} {platform.release()}".strip(),
            uptime_seconds=max(0, int(time.time() - boot)),
        )

    @translate_errors
    def cpu_info(self) -> CpuInfo:
        return CpuInfo(
            model=_cpu_model(),
            cores=psutil.cpu_count(logical=True) or os.cpu_count() or 0,
        )

    @translate_errors
    def cpu_percent(self, interval: float, percpu: bool) -> list[float]:
        result = psutil.cpu_percent(interval=interval, percpu=percpu)
        if percpu:
            return [float(v) for v in result]
        return [float(result)]

    @translate_errors
    def virtual_memory(self) -> MemoryUsage:
        vm = psutil.virtual_memory()
        return MemoryUsage(total=vm.total, used=vm.used, percent=vm.percent)

    @translate_errors
    def swap_memory(self) -> MemoryUsage:
        sw = psutil.swap_memory()
        return MemoryUsage(total=sw.total, used=sw.used, percent=sw.percent)

    @translate_errors
    def disk_partitions(self) -> list[Partition]:
        return [
            Partition(device=p.device, mountpoint=p.mountpoint, fstype=p.fstype)
            for p in psutil.disk_partitions(all=False)
        ]

    @translate_errors
    def disk_usage(self, mountpoint: str) -> DiskUsage:
        u = psutil.disk_usage(mountpoint)
        return DiskUsage(total=u.total, used=u.used, free=u.free, percent=u.percent)

    @translate_errors
    def net_io_counters(self) -> list[InterfaceCounters]:
        counters = psutil.net_io_counters(pernic=True)
        return [
            InterfaceCounters(
                name=name,
                bytes_sent=c.bytes_sent,
                bytes_recv=c.bytes_recv,
                packets_sent=c.packets_sent,
                packets_recv=c.packets_recv,
            )
            for name, c in counters.items()
        ]

    @translate_errors
    def processes(self) -> list[ProcessSample]:
        """Enumerate processes in discovery order.

        psutil caches Process objects between calls, so cpu_percent is
        measured since the previous enumeration (0.0 on the first one).
        """
        samples = []
        for proc in psutil.process_iter(["pid", "name", "cpu_percent", "memory_percent"]):
            try:
                info = proc.info
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            if info.get("name") is None:
                # Name lookups that fail mean the process is gone or hidden
                continue
            samples.append(
                ProcessSample(
                    pid=info["pid"],
                    name=info["name"],
                    cpu_percent=info["cpu_percent"] or 0.0,
                    memory_percent=info["memory_percent"] or 0.0,
                )
            )
        return samples
