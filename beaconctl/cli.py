"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging

import typer

from beaconctl.adapters.base import EventChannel
from beaconctl.adapters.bleak_radio import BleakRadioAdapter
from beaconctl.api import Client
from beaconctl.core.config import config_path, load_settings
from beaconctl.core.distance import distance, signal_quality
from beaconctl.core.errors import BeaconctlError
from beaconctl.core.model import PresenceReport
from beaconctl.core.notify import ConsoleNotifier
from beaconctl.core.ranking import SortOption, sort_favorites

app = typer.Typer(help="Track favorite Bluetooth beacons and alert on presence changes")
favorites_app = typer.Typer(help="Manage favorite devices")
app.add_typer(favorites_app, name="favorites")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_client() -> Client:
    return Client()


def _fail(exc: BeaconctlError) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


@app.command("distance")
def estimate_distance(
    rssi: int = typer.Argument(..., help="Signal strength reading in dBm"),
    reference: float | None = typer.Option(None, "--reference", help="RSSI at 1 m"),
    exponent: float | None = typer.Option(None, "--exponent", help="Path loss exponent"),
) -> None:
    """Estimate the distance for a signal strength reading."""
    try:
        settings = load_settings()
    except BeaconctlError as exc:
        raise _fail(exc) from None
    meters = distance(
        rssi,
        reference_rssi=settings.reference_rssi if reference is None else reference,
        path_loss_exponent=settings.path_loss_exponent if exponent is None else exponent,
    )
    typer.echo(f"{meters:.1f}m ({signal_quality(rssi).value})")


@app.command("config")
def show_config() -> None:
    """Print the effective configuration."""
    try:
        settings = load_settings()
    except BeaconctlError as exc:
        raise _fail(exc) from None
    typer.echo(f"# {config_path()}")
    for key, value in vars(settings).items():
        typer.echo(f"{key}: {value}")


@favorites_app.command("list")
def list_favorites(
    sort: SortOption = typer.Option(
        SortOption.NAME, "--sort", help="Sort order; signal, distance and connection need watch"
    ),
) -> None:
    """List favorite devices."""
    try:
        client = _build_client()
        favorites = client.list_favorites(sort)
    except BeaconctlError as exc:
        raise _fail(exc) from None

    if not favorites:
        typer.echo("No favorite devices")
        return
    for favorite in favorites:
        battery = f" {favorite.battery_level}%" if favorite.battery_known else ""
        typer.echo(f"{favorite.id} {favorite.display_name}{battery}")


@favorites_app.command("add")
def add_favorite(device_id: str, name: str) -> None:
    """Pin a device for presence tracking."""
    try:
        favorite = _build_client().add_favorite(device_id, name)
    except BeaconctlError as exc:
        raise _fail(exc) from None
    typer.echo(f"Added {favorite.id} ({favorite.display_name})")


@favorites_app.command("remove")
def remove_favorite(device_id: str) -> None:
    """Unpin a device."""
    try:
        _build_client().remove_favorite(device_id)
    except BeaconctlError as exc:
        raise _fail(exc) from None
    typer.echo(f"Removed {device_id}")


@favorites_app.command("rename")
def rename_favorite(device_id: str, name: str) -> None:
    """Give a favorite a custom display name."""
    try:
        _build_client().rename_favorite(device_id, name)
    except BeaconctlError as exc:
        raise _fail(exc) from None
    typer.echo(f"Renamed {device_id} to {name}")


def _format_report(report: PresenceReport, order: list[str]) -> str:
    by_id = {entry.favorite.id: entry for entry in report.entries}
    lines = [f"Active devices: {report.active_count} of {report.total_count}"]
    for device_id in order:
        entry = by_id[device_id]
        rssi = f" {entry.rssi} dBm" if entry.rssi is not None else ""
        lines.append(f"  {entry.favorite.display_name}: {entry.status.value}{rssi}")
    return "\n".join(lines)


@app.command("watch")
def watch(
    duration: float | None = typer.Option(None, "--duration", help="Stop after N seconds"),
    sort: SortOption = typer.Option(SortOption.NAME, "--sort", help="Order of printed favorites"),
    select: str | None = typer.Option(None, "--select", help="Keep a connection open to this device"),
) -> None:
    """Scan for favorites and alert when they all arrive or one leaves."""
    try:
        client = _build_client()
    except BeaconctlError as exc:
        raise _fail(exc) from None

    async def _run() -> None:
        channel = EventChannel()
        adapter = BleakRadioAdapter(channel, adapter=client.settings.adapter)
        monitor = client.monitor(adapter, ConsoleNotifier(), channel=channel)
        last: list[tuple[str, str]] = []

        def _on_tick(report: PresenceReport) -> None:
            nonlocal last
            ordered = sort_favorites(monitor.registry, sort, connected_id=monitor.session.connected_id)
            order = [favorite.id for favorite in ordered]
            statuses = {entry.favorite.id: entry.status.value for entry in report.entries}
            current = [(device_id, statuses[device_id]) for device_id in order]
            if current != last:
                last = current
                typer.echo(_format_report(report, order))

        await adapter.open()
        if select is not None:
            monitor.session.select(select)
        try:
            await monitor.run(duration=duration, on_tick=_on_tick)
        finally:
            monitor.session.deselect()
            await adapter.close()
            monitor.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        typer.echo("Stopped")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
