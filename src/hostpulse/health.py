"""Health scoring for metric snapshots.

The score starts at 100 and loses points for each pressured resource:

    CPU     >90% -30 "High CPU"          else >70% -15 "Elevated CPU"
    Memory  >90% -25 "High Memory"       else >80% -12 "Elevated Memory"
    Disk    >95% -20 "Disk X Critical"   else >85% -10 "Disk X Low"
    Swap    >80% -10 "High Swap"

Only the first disk (in scan order) that breaches either disk threshold is
penalized. The score never drops below zero.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from hostpulse.collector import MetricsSnapshot

HealthBand = Literal["ok", "warn", "danger"]


def score_health(snapshot: MetricsSnapshot) -> tuple[int, str]:
    """Return (score, message) for a snapshot.

    The message lists the triggered issues in evaluation order, or names
    the score bucket when nothing fired.
    """
    score = 100
    issues: list[str] = []

    if snapshot.cpu_percent > 90:
        score -= 30
        issues.append("High CPU")
    elif snapshot.cpu_percent > 70:
        score -= 15
        issues.append("Elevated CPU")

    if snapshot.mem_percent > 90:
        score -= 25
        issues.append("High Memory")
    elif snapshot.mem_percent > 80:
        score -= 12
        issues.append("Elevated Memory")

    for disk in snapshot.disks:
        if disk.used_percent > 95:
            score -= 20
            issues.append(f"Disk {disk.device} Critical")
            break
        if disk.used_percent > 85:
            score -= 10
            issues.append(f"Disk {disk.device} Low")
            break

    if snapshot.swap_percent > 80:
        score -= 10
        issues.append("High Swap")

    score = max(0, score)

    if issues:
        return score, ", ".join(issues)
    return score, score_label(score)


def score_label(score: int) -> str:
    """Name the bucket a score falls in."""
    if score >= 90:
        return "Excellent"
    if score >= 70:
        return "Good"
    if score >= 50:
        return "Fair"
    return "Poor"


def health_band(score: int) -> HealthBand:
    """Map a health score to a display band."""
    if score < 50:
        return "danger"
    if score < 70:
        return "warn"
    return "ok"


def usage_band(percent: float) -> HealthBand:
    """Map a usage percentage (CPU, memory, disk) to a display band."""
    if percent > 85:
        return "danger"
    if percent > 70:
        return "warn"
    return "ok"
