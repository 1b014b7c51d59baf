"""Tests for platform enrichers."""

import sys
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hostpulse import enrichers
from hostpulse.enrichers import (
    BatteryStatus,
    battery_status,
    detailed_os_version,
    parse_pmset,
    run_command,
)


class TestParsePmset:
    """Tests for pmset output parsing."""

    def test_discharging(self) -> None:
        """Discharging battery is not charging."""
        output = (
            "Now drawing from 'Battery Power'\n"
            " -InternalBattery-0 (id=4653155)\t72%; discharging; 4:12 remaining present: true\n"
        )
        assert parse_pmset(output) == BatteryStatus(percent=72, charging=False)

    def test_charging(self) -> None:
        """Charging battery reports charging."""
        output = " -InternalBattery-0 (id=1)\t41%; charging; 1:02 remaining present: true"
        assert parse_pmset(output) == BatteryStatus(percent=41, charging=True)

    def test_ac_attached_not_charging(self) -> None:
        """Plugged in at full charge counts as on power."""
        output = " -InternalBattery-0 (id=1)\t100%; AC attached; not charging present: true"
        assert parse_pmset(output) == BatteryStatus(percent=100, charging=True)

    def test_no_battery(self) -> None:
        """Desktops have no InternalBattery line."""
        assert parse_pmset("Now drawing from 'AC Power'\n") is None


@pytest.mark.asyncio
async def test_run_command_success():
    """A zero exit returns stripped stdout."""
    output, ok = await run_command([sys.executable, "-c", "print('  hello  ')"])
    assert ok is True
    assert output == "hello"


@pytest.mark.asyncio
async def test_run_command_nonzero_exit():
    """A failing command returns the empty fallback."""
    output, ok = await run_command([sys.executable, "-c", "import sys; sys.exit(3)"])
    assert (output, ok) == ("", False)


@pytest.mark.asyncio
async def test_run_command_missing_binary():
    """A command that cannot be spawned returns the empty fallback."""
    output, ok = await run_command(["hostpulse-definitely-not-a-real-binary"])
    assert (output, ok) == ("", False)


@pytest.mark.asyncio
async def test_run_command_timeout():
    """A command exceeding its timeout is killed."""
    output, ok = await run_command(
        [sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.2
    )
    assert (output, ok) == ("", False)


@pytest.mark.asyncio
async def test_os_version_falls_back_on_failure():
    """A failing lookup returns platform.system()."""
    with (
        patch.object(enrichers, "run_command", new=AsyncMock(return_value=("", False))),
        patch.object(enrichers.platform, "system", return_value="Linux"),
    ):
        assert await detailed_os_version() == "Linux"


@pytest.mark.asyncio
async def test_os_version_linux_strips_quotes():
    """lsb_release output is unquoted."""
    with (
        patch.object(enrichers.sys, "platform", "linux"),
        patch.object(
            enrichers, "run_command", new=AsyncMock(return_value=('"Ubuntu 24.04 LTS"', True))
        ),
    ):
        assert await detailed_os_version() == "Ubuntu 24.04 LTS"


@pytest.mark.asyncio
async def test_os_version_macos_joins_name_and_version():
    """sw_vers name and version are combined."""
    mock_run = AsyncMock(side_effect=[("macOS", True), ("14.5", True)])
    with (
        patch.object(enrichers.sys, "platform", "darwin"),
        patch.object(enrichers, "run_command", new=mock_run),
    ):
        assert await detailed_os_version() == "macOS 14.5"


@pytest.mark.asyncio
async def test_windows_battery():
    """Charge and AC status come from two CIM queries."""
    mock_run = AsyncMock(side_effect=[("87", True), ("2", True)])
    with (
        patch.object(enrichers.sys, "platform", "win32"),
        patch.object(enrichers, "run_command", new=mock_run),
    ):
        assert await battery_status() == BatteryStatus(percent=87, charging=True)


@pytest.mark.asyncio
async def test_windows_battery_unparseable():
    """Non-numeric output means no battery."""
    with (
        patch.object(enrichers.sys, "platform", "win32"),
        patch.object(enrichers, "run_command", new=AsyncMock(return_value=("", True))),
    ):
        assert await battery_status() is None


@pytest.mark.asyncio
async def test_psutil_battery():
    """Linux reads the battery through psutil."""
    fake = MagicMock(percent=63.4, power_plugged=False)
    with (
        patch.object(enrichers.sys, "platform", "linux"),
        patch.object(enrichers.psutil, "sensors_battery", return_value=fake, create=True),
    ):
        assert await battery_status() == BatteryStatus(percent=63, charging=False)


@pytest.mark.asyncio
async def test_psutil_no_battery():
    """No battery sensor gives None."""
    with (
        patch.object(enrichers.sys, "platform", "linux"),
        patch.object(enrichers.psutil, "sensors_battery", return_value=None, create=True),
    ):
        assert await battery_status() is None


@pytest.mark.asyncio
async def test_psutil_battery_timeout():
    """A hung sensor query is abandoned."""

    def hang():
        time.sleep(1)

    with (
        patch.object(enrichers.sys, "platform", "linux"),
        patch.object(enrichers.psutil, "sensors_battery", new=hang, create=True),
    ):
        assert await battery_status(timeout=0.05) is None
