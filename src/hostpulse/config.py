"""Configuration system for hostpulse."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

# Linux block devices, macOS disks, Windows drive letters
DEFAULT_DISK_PREFIXES = (
    "/dev/sd",
    "/dev/nvme",
    "/dev/vd",
    "/dev/xvd",
    "/dev/hd",
    "/dev/mmcblk",
    "/dev/mapper/",
    "/dev/disk",
    "C:",
    "D:",
    "E:",
    "F:",
)

DEFAULT_LOOPBACK_INTERFACES = ("lo", "lo0", "Loopback Pseudo-Interface 1")


@dataclass
class CollectorConfig:
    """Sampling cycle configuration."""

    deadline: float = 5.0  # Seconds allowed for one whole collection cycle
    cpu_sample_window: float = 0.5  # Seconds per CPU usage measurement (runs twice)
    activity_threshold: float = 0.1  # CPU% or MEM% a process must exceed to be ranked
    top_process_count: int = 5
    disk_device_prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_DISK_PREFIXES))
    loopback_interfaces: list[str] = field(
        default_factory=lambda: list(DEFAULT_LOOPBACK_INTERFACES)
    )
    enrich: bool = True  # Run OS version / battery enrichers each cycle
    enricher_timeout: float = 2.0


@dataclass
class RefreshConfig:
    """Dashboard refresh loop configuration."""

    tick_interval: float = 1.0  # Seconds between ticks
    collect_every: int = 2  # Start a collection cycle every N ticks
    history_size: int = 120  # Samples kept per trend series


@dataclass
class SystemConfig:
    """Logging and housekeeping configuration."""

    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3


@dataclass
class HealthColors:
    """Colors for health and usage levels.

    Default palette: Dracula theme.
    """

    ok: str = "#50fa7b"  # green
    warn: str = "#f1fa8c"  # yellow
    danger: str = "#ff5555"  # red
    dim: str = "#6272a4"


@dataclass
class TUIConfig:
    """TUI-specific configuration."""

    colors: HealthColors = field(default_factory=HealthColors)
    sparkline_height: int = 1  # Character rows per trend sparkline (1-4)
    max_networks: int = 3  # Interfaces shown in the network panel
    name_truncate_length: int = 20


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    collector: CollectorConfig = field(default_factory=CollectorConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    system: SystemConfig = field(default_factory=SystemConfig)
    tui: TUIConfig = field(default_factory=TUIConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "hostpulse"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "hostpulse"

    @property
    def log_path(self) -> Path:
        """JSON log path."""
        return self.state_dir / "hostpulse.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("collector", "refresh", "system", "tui"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions.

        Raises:
            ValueError: If the file cannot be parsed or holds invalid values.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f).unwrap()
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        sys_defaults = defaults.system
        system_data = data.get("system", {})

        return cls(
            collector=_load_collector_config(data.get("collector", {})),
            refresh=_load_refresh_config(data.get("refresh", {})),
            system=SystemConfig(
                log_max_bytes=system_data.get("log_max_bytes", sys_defaults.log_max_bytes),
                log_backup_count=system_data.get("log_backup_count", sys_defaults.log_backup_count),
            ),
            tui=_load_tui_config(data.get("tui", {})),
        )


def _number(data: dict, key: str, default: float, kind: type = float) -> float:
    """Read a numeric setting; ints are accepted where floats are expected."""
    value = data.get(key, default)
    allowed = (int,) if kind is int else (int, float)
    if isinstance(value, bool) or not isinstance(value, allowed):
        raise ValueError(f"{key} must be {kind.__name__}, got {value!r}")
    return value


def _load_collector_config(data: dict) -> CollectorConfig:
    """Load collector config from TOML data, using dataclass defaults for missing fields."""
    d = CollectorConfig()

    deadline = _number(data, "deadline", d.deadline)
    window = _number(data, "cpu_sample_window", d.cpu_sample_window)
    top_count = _number(data, "top_process_count", d.top_process_count, int)
    enricher_timeout = _number(data, "enricher_timeout", d.enricher_timeout)

    if deadline <= 0:
        raise ValueError(f"deadline must be > 0, got {deadline}")
    if window <= 0:
        raise ValueError(f"cpu_sample_window must be > 0, got {window}")
    if top_count < 1:
        raise ValueError(f"top_process_count must be >= 1, got {top_count}")
    if enricher_timeout <= 0:
        raise ValueError(f"enricher_timeout must be > 0, got {enricher_timeout}")

    return CollectorConfig(
        deadline=deadline,
        cpu_sample_window=window,
        activity_threshold=_number(data, "activity_threshold", d.activity_threshold),
        top_process_count=top_count,
        disk_device_prefixes=list(data.get("disk_device_prefixes", d.disk_device_prefixes)),
        loopback_interfaces=list(data.get("loopback_interfaces", d.loopback_interfaces)),
        enrich=data.get("enrich", d.enrich),
        enricher_timeout=enricher_timeout,
    )


def _load_refresh_config(data: dict) -> RefreshConfig:
    """Load refresh config from TOML data."""
    d = RefreshConfig()

    tick_interval = _number(data, "tick_interval", d.tick_interval)
    collect_every = _number(data, "collect_every", d.collect_every, int)
    history_size = _number(data, "history_size", d.history_size, int)

    if tick_interval <= 0:
        raise ValueError(f"tick_interval must be > 0, got {tick_interval}")
    if collect_every < 1:
        raise ValueError(f"collect_every must be >= 1, got {collect_every}")
    if history_size < 1:
        raise ValueError(f"history_size must be >= 1, got {history_size}")

    return RefreshConfig(
        tick_interval=tick_interval,
        collect_every=collect_every,
        history_size=history_size,
    )


def _load_tui_config(data: dict) -> TUIConfig:
    """Load TUI config from TOML data.

    Handles the nested [tui.colors] section with defaults.
    """
    t = TUIConfig()
    c = HealthColors()
    colors_data = data.get("colors", {})

    return TUIConfig(
        colors=HealthColors(
            ok=colors_data.get("ok", c.ok),
            warn=colors_data.get("warn", c.warn),
            danger=colors_data.get("danger", c.danger),
            dim=colors_data.get("dim", c.dim),
        ),
        sparkline_height=data.get("sparkline_height", t.sparkline_height),
        max_networks=data.get("max_networks", t.max_networks),
        name_truncate_length=data.get("name_truncate_length", t.name_truncate_length),
    )
