"""CLI commands for hostpulse."""

import click


def _load_config():
    """Load config or exit with a readable error."""
    from hostpulse import logging as hp_logging
    from hostpulse.config import Config

    try:
        return Config.load()
    except ValueError as e:
        hp_logging.config_invalid(str(Config().config_path), str(e))
        raise SystemExit(1) from e


@click.group()
@click.version_option(package_name="hostpulse")
def main() -> None:
    """Sample host resources and score overall system health."""
    pass


@main.command()
def tui() -> None:
    """Launch interactive dashboard."""
    from hostpulse import logging as hp_logging
    from hostpulse.tui import run_tui

    config = _load_config()
    hp_logging.configure(config, source="tui")
    if not config.config_path.exists():
        config.save()
    run_tui(config)
    hp_logging.tui_stopped()


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print the snapshot as JSON")
@click.option("--no-enrich", is_flag=True, help="Skip OS version and battery lookups")
@click.option("--deadline", type=float, default=None, help="Seconds allowed for collection")
def status(as_json: bool, no_enrich: bool, deadline: float | None) -> None:
    """Collect one snapshot and print it."""
    import dataclasses
    import json

    from hostpulse import logging as hp_logging
    from hostpulse.collector import Collector
    from hostpulse.formatting import format_bytes, format_percent, format_uptime

    config = _load_config()
    hp_logging.configure(config, source="cli")

    collector_config = config.collector
    if no_enrich:
        collector_config = dataclasses.replace(collector_config, enrich=False)

    collector = Collector(collector_config)
    try:
        snapshot = collector.collect_sync(deadline)
    finally:
        collector.close()

    if as_json:
        click.echo(json.dumps(snapshot.to_dict(), indent=2))
        return

    hp_logging.snapshot_collected(snapshot.health_score, snapshot.health_message)
    click.echo(f"Host: {snapshot.hostname or '-'}")
    click.echo(f"OS: {snapshot.os_detail or snapshot.platform or '-'}")
    click.echo(f"Uptime: {format_uptime(snapshot.uptime_seconds)}")
    click.echo(f"CPU: {format_percent(snapshot.cpu_percent)} ({snapshot.cpu_cores} cores)")
    click.echo(
        f"Memory: {format_bytes(snapshot.mem_used)} / {format_bytes(snapshot.mem_total)} "
        f"({format_percent(snapshot.mem_percent)})"
    )
    if snapshot.swap_total > 0:
        click.echo(
            f"Swap: {format_bytes(snapshot.swap_used)} / {format_bytes(snapshot.swap_total)} "
            f"({format_percent(snapshot.swap_percent)})"
        )
    for disk in snapshot.disks:
        click.echo(
            f"Disk {disk.device}: {format_bytes(disk.used)} / {format_bytes(disk.total)} "
            f"({format_percent(disk.used_percent)})"
        )
    if snapshot.top_processes:
        click.echo()
        click.echo(f"{'PID':>7}  {'Process':20}  {'CPU':>6}  {'MEM':>6}")
        click.echo("-" * 45)
        for p in snapshot.top_processes:
            click.echo(
                f"{p.pid:>7}  {p.name[:20]:20}  {p.cpu_percent:>5.1f}%  {p.memory_percent:>5.1f}%"
            )


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    cfg = _load_config()

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo("[collector]")
    click.echo(f"  deadline = {cfg.collector.deadline}")
    click.echo(f"  cpu_sample_window = {cfg.collector.cpu_sample_window}")
    click.echo(f"  activity_threshold = {cfg.collector.activity_threshold}")
    click.echo(f"  top_process_count = {cfg.collector.top_process_count}")
    click.echo(f"  enrich = {cfg.collector.enrich}")
    click.echo()
    click.echo("[refresh]")
    click.echo(f"  tick_interval = {cfg.refresh.tick_interval}")
    click.echo(f"  collect_every = {cfg.refresh.collect_every}")
    click.echo(f"  history_size = {cfg.refresh.history_size}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    from hostpulse import logging as hp_logging

    cfg = _load_config()

    if not cfg.config_path.exists():
        cfg.save()
        hp_logging.config_created(str(cfg.config_path))

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    from hostpulse.config import Config

    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")
