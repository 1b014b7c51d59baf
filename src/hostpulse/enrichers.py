"""Best-effort platform enrichers.

Each enricher shells out (or asks psutil) for a detail the core probes
don't cover, bounded by its own short timeout. Failures return a
documented fallback and are never raised.
"""

import asyncio
import platform
import re
import sys
from dataclasses import dataclass

import psutil
import structlog

log = structlog.get_logger()

DEFAULT_TIMEOUT = 2.0

# Win32_Battery.BatteryStatus value meaning "on AC power"
_WIN_BATTERY_AC = 2

_PMSET_PERCENT = re.compile(r"(\d+)%")


@dataclass(frozen=True)
class BatteryStatus:
    """Battery charge state."""

    percent: int
    charging: bool


async def run_command(argv: list[str], timeout: float = DEFAULT_TIMEOUT) -> tuple[str, bool]:
    """Run a command and return (stripped stdout, success).

    Success requires a zero exit status within the timeout.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except (FileNotFoundError, PermissionError, OSError) as e:
        log.debug("enricher_spawn_failed", command=argv[0], error=str(e))
        return "", False

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        log.debug("enricher_timeout", command=argv[0], timeout=timeout)
        return "", False

    if process.returncode != 0:
        return "", False
    return stdout.decode("utf-8", errors="replace").strip(), True


def _powershell(expression: str) -> list[str]:
    return ["powershell", "-NoProfile", "-Command", expression]


async def detailed_os_version(timeout: float = DEFAULT_TIMEOUT) -> str:
    """Return a descriptive OS name, falling back to platform.system()."""
    fallback = platform.system() or "unknown"

    if sys.platform == "win32":
        argv = _powershell("(Get-CimInstance Win32_OperatingSystem).Caption")
    elif sys.platform == "darwin":
        name, ok = await run_command(["sw_vers", "-productName"], timeout)
        version, ok_version = await run_command(["sw_vers", "-productVersion"], timeout)
        if ok and ok_version and name and version:
            return f"{name} {version}"
        return fallback
    else:
        argv = ["lsb_release", "-ds"]

    output, ok = await run_command(argv, timeout)
    if not ok or not output:
        return fallback
    return output.strip('"')


async def battery_status(timeout: float = DEFAULT_TIMEOUT) -> BatteryStatus | None:
    """Return battery state, or None when there is no battery or the query fails."""
    if sys.platform == "win32":
        return await _windows_battery(timeout)
    if sys.platform == "darwin":
        return await _macos_battery(timeout)
    return await _psutil_battery(timeout)


async def _windows_battery(timeout: float) -> BatteryStatus | None:
    output, ok = await run_command(
        _powershell("(Get-CimInstance Win32_Battery).EstimatedChargeRemaining"), timeout
    )
    if not ok:
        return None
    try:
        percent = int(output)
    except ValueError:
        return None

    status_output, status_ok = await run_command(
        _powershell("(Get-CimInstance Win32_Battery).BatteryStatus"), timeout
    )
    charging = False
    if status_ok:
        try:
            charging = int(status_output) == _WIN_BATTERY_AC
        except ValueError:
            charging = False
    return BatteryStatus(percent=percent, charging=charging)


def parse_pmset(output: str) -> BatteryStatus | None:
    """Parse `pmset -g batt` output.

    Example line: " -InternalBattery-0 (id=1234)	87%; charging; 1:02 remaining"
    """
    for line in output.splitlines():
        if "InternalBattery" not in line:
            continue
        match = _PMSET_PERCENT.search(line)
        if match is None:
            return None
        state = line[match.end() :].lower()
        # "charging", "charged" and "AC attached; not charging" all mean on power
        charging = "discharging" not in state and ("charg" in state or "ac attached" in state)
        return BatteryStatus(percent=int(match.group(1)), charging=charging)
    return None


async def _macos_battery(timeout: float) -> BatteryStatus | None:
    output, ok = await run_command(["pmset", "-g", "batt"], timeout)
    if not ok:
        return None
    return parse_pmset(output)


async def _psutil_battery(timeout: float) -> BatteryStatus | None:
    try:
        battery = await asyncio.wait_for(asyncio.to_thread(psutil.sensors_battery), timeout)
    except (asyncio.TimeoutError, AttributeError, NotImplementedError, OSError) as e:
        log.debug("enricher_battery_failed", error=str(e))
        return None
    if battery is None:
        return None
    return BatteryStatus(percent=int(battery.percent), charging=bool(battery.power_plugged))
