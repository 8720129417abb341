"""
Main CLI application using Typer.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Iterator, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..adapters.local_store import LocalDocumentStore
from ..adapters.remote_store import RemoteStoreClient
from ..config import AppConfig, get_default_config_path
from ..domain.calendar import is_past, parse_date, shift_month, today, weekday_index
from ..domain.exceptions import ValidationError
from ..domain.models import WEEKDAY_NAMES, Role
from ..services.booking_store import BookingStore, DayCell
from ..services.sync_gateway import RemoteStoreProtocol, SyncGateway, SyncStatus

app = typer.Typer(
    name="clubroom",
    help="Book the club rehearsal room by date and time slot",
    add_completion=False
)

console = Console()


@dataclass
class CliContext:
    """Options shared by every command."""
    config: AppConfig
    role: Role
    local: bool


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path]) -> AppConfig:
    """Explicit config files must exist; without one, defaults are fine."""
    if config_file is not None:
        return AppConfig.load_from_yaml(config_file)

    config_path = get_default_config_path()
    if config_path.exists():
        return AppConfig.load_from_yaml(config_path)

    return AppConfig()


def _build_document_store(cli: CliContext) -> RemoteStoreProtocol:
    config = cli.config

    if cli.local or not config.uses_remote:
        return LocalDocumentStore(config.local_store_path)

    return RemoteStoreClient(
        endpoint_url=config.endpoint_url,
        timeout=config.sync.timeout_seconds
    )


@contextmanager
def _open_store(cli: CliContext, writable: bool = False) -> Iterator[BookingStore]:
    """
    Load the dataset, hand the store to the command, then let pending pushes finish.

    Every push overwrites the whole store, so commands that change data
    (``writable``) stop when the load fails. Read-only commands carry on
    with the defaults.
    """
    gateway = SyncGateway(
        _build_document_store(cli),
        settle_delay=cli.config.sync.settle_delay_seconds
    )
    store = BookingStore(gateway, default_rules=cli.config.initial_rules())
    store.set_role(cli.role)

    try:
        with console.status("Loading data..."):
            loaded = store.load()
        if not loaded and writable:
            console.print(
                "[bold red]Error:[/bold red] Could not load data from the store; "
                "nothing was changed. Try again later."
            )
            raise typer.Exit(1)
        if not loaded:
            console.print(
                "[yellow]⚠ Could not load data from the store; "
                "showing the configured defaults.[/yellow]"
            )

        yield store

    finally:
        if gateway.status is SyncStatus.SYNCING:
            with console.status("Syncing..."):
                gateway.close()
        else:
            gateway.close()


def _require_advisor(cli: CliContext) -> None:
    if cli.role is not Role.ADVISOR:
        console.print("[red]Only advisors can do this. Re-run with --role advisor.[/red]")
        raise typer.Exit(1)


def _parse_date_or_exit(value: str) -> str:
    try:
        return parse_date(value).to_date_string()
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _parse_weekday_or_exit(value: str) -> int:
    """
    Accept 0-6 (0 = Sunday) or a weekday name such as "mon" / "Monday".
    """
    value = value.strip()
    if value.isdigit() and 0 <= int(value) <= 6:
        return int(value)

    prefix = value[:3].lower()
    for idx, name in enumerate(WEEKDAY_NAMES):
        if name.lower() == prefix:
            return idx

    console.print(f"[bold red]Error:[/bold red] Unknown weekday '{value}'. Use 0-6 (0 = Sunday) or a name.")
    raise typer.Exit(1)


def _prompt_slot(message: str, suggestions: List[str]) -> str:
    if suggestions:
        console.print(f"[dim]Suggestions: {', '.join(suggestions)}[/dim]")
    return typer.prompt(message).strip()


def _format_cell(cell: Optional[DayCell]) -> str:
    if cell is None:
        return ""

    lines = [f"[bold]{cell.day}[/bold]"]
    tags = []
    if cell.slot_count > 0 and not cell.is_past:
        tags.append("[green]open[/green]")
    if cell.has_override:
        tags.append("[yellow]custom[/yellow]")
    if tags:
        lines.append(" ".join(tags))

    for booking in cell.bookings:
        lines.append(f"{booking.time_slot[:5]} {escape(booking.band_name)}")

    text = "\n".join(lines)
    return f"[dim]{text}[/dim]" if cell.is_past else text


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    role: Annotated[Optional[Role], typer.Option("--role", "-r", help="Act as member or advisor (display only, not a permission check).")] = None,
    local: Annotated[bool, typer.Option("--local", help="Use the local JSON file instead of the remote store.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Club room booking: weekly slots, per-date changes, bookings by band name.
    """
    _configure_logging(verbose)

    try:
        config = _load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    ctx.obj = CliContext(config=config, role=role or config.default_role, local=local)


@app.command()
def month(
    ctx: typer.Context,
    which: Annotated[Optional[str], typer.Argument(help="Month to show (YYYY-MM). Defaults to the current month.")] = None,
    offset: Annotated[int, typer.Option("--offset", "-o", help="Months to move forward (negative: back), e.g. -o 1 for next month.")] = 0,
):
    """
    Show the month grid with open days, custom days and bookings.
    """
    cli: CliContext = ctx.obj
    now = today(cli.config.timezone)

    if which:
        try:
            first = pendulum.from_format(which.strip(), "YYYY-MM")
        except Exception:
            console.print(f"[bold red]Error:[/bold red] Invalid month '{which}', expected YYYY-MM")
            raise typer.Exit(1)
        year, month_no = first.year, first.month
    else:
        year, month_no = now.year, now.month

    year, month_no = shift_month(year, month_no, offset)

    with _open_store(cli) as store:
        weeks = store.month_view(year, month_no, today=now)

    table = Table(
        title=f"{year}-{month_no:02d}",
        show_header=True,
        header_style="bold cyan",
        show_lines=True
    )
    for name in WEEKDAY_NAMES:
        table.add_column(name, vertical="top")

    for week in weeks:
        table.add_row(*[_format_cell(cell) for cell in week])

    console.print()
    console.print(table)
    console.print()


@app.command()
def day(
    ctx: typer.Context,
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
):
    """
    Show the slots of one day and who booked them.
    """
    cli: CliContext = ctx.obj
    key = _parse_date_or_exit(date)

    with _open_store(cli) as store:
        view = store.day_view(key, today=today(cli.config.timezone))

    title = f"{key} ({WEEKDAY_NAMES[weekday_index(key)]})"
    if view.has_override:
        title += " [yellow]custom schedule[/yellow]"

    console.print()
    if not view.slots:
        console.print(f"[bold]{title}[/bold]")
        console.print("[yellow]No bookable slots on this day.[/yellow]\n")
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Slot", style="bold")
    table.add_column("Band")
    table.add_column("Booking ID", style="dim")

    for slot in view.slots:
        if slot.booking:
            table.add_row(slot.time_slot, escape(slot.booking.band_name), slot.booking.id)
        else:
            table.add_row(slot.time_slot, "[green]free[/green]", "")

    console.print(table)
    if view.is_past:
        console.print("[dim]This day is in the past.[/dim]")
    console.print()


@app.command()
def book(
    ctx: typer.Context,
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    slot: Annotated[Optional[str], typer.Argument(help="Time slot, e.g. 16:00-17:00. Prompted if omitted.")] = None,
    band: Annotated[Optional[str], typer.Argument(help="Band name. Prompted if omitted.")] = None,
):
    """
    Book a free slot for a band.
    """
    cli: CliContext = ctx.obj
    key = _parse_date_or_exit(date)

    if is_past(key, today(cli.config.timezone)):
        console.print(f"[red]{key} is in the past and cannot be booked.[/red]")
        raise typer.Exit(1)

    with _open_store(cli, writable=True) as store:
        if slot is None:
            free = [s.time_slot for s in store.day_view(key).slots if s.booking is None]
            if not free:
                console.print(f"[yellow]No free slots on {key}.[/yellow]")
                raise typer.Exit(1)
            slot = _prompt_slot("→ Time slot", free)

        if band is None:
            band = typer.prompt("→ Band name", default="", show_default=False)

        try:
            booking = store.book(key, slot, band)
        except ValidationError as e:
            console.print(f"[bold red]✗[/bold red] {e}")
            raise typer.Exit(1)

    console.print(
        f"[green]✓ Booked {booking.date} {booking.time_slot} for "
        f"[bold]{escape(booking.band_name)}[/bold][/green] [dim]({booking.id})[/dim]"
    )


@app.command()
def cancel(
    ctx: typer.Context,
    booking_id: Annotated[str, typer.Argument(help="Booking ID as shown by 'day'")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
):
    """
    Cancel a booking.
    """
    cli: CliContext = ctx.obj

    with _open_store(cli, writable=True) as store:
        booking = next((b for b in store.snapshot.bookings if b.id == booking_id), None)
        if booking is None:
            console.print(f"[yellow]No booking with ID {booking_id}.[/yellow]")
            return

        if not yes:
            typer.confirm(
                f"Cancel {booking.band_name} on {booking.date} {booking.time_slot}?",
                abort=True
            )

        store.cancel(booking_id)

    console.print("[green]✓ Booking cancelled.[/green]")


@app.command()
def rules(ctx: typer.Context):
    """
    List the weekly default slots.
    """
    cli: CliContext = ctx.obj

    with _open_store(cli) as store:
        snapshot = store.snapshot

    table = Table(title="Weekly schedule", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim")
    table.add_column("Day", style="bold yellow")
    table.add_column("Slots")

    by_day = {rule.day_of_week: rule for rule in snapshot.rules}
    for idx, name in enumerate(WEEKDAY_NAMES):
        rule = by_day.get(idx)
        slots = ", ".join(rule.slots) if rule and rule.slots else "[dim]-[/dim]"
        table.add_row(str(idx), name, slots)

    console.print()
    console.print(table)
    console.print()


@app.command()
def rule_add(
    ctx: typer.Context,
    weekday: Annotated[str, typer.Argument(help="Weekday: 0-6 (0 = Sunday) or name")],
    slot: Annotated[Optional[str], typer.Argument(help="Time slot, e.g. 16:00-17:00. Prompted if omitted.")] = None,
):
    """
    Add a slot to the weekly schedule (advisor).
    """
    cli: CliContext = ctx.obj
    _require_advisor(cli)
    day_of_week = _parse_weekday_or_exit(weekday)

    if slot is None:
        slot = _prompt_slot("→ Time slot (e.g. 16:00-17:00)", cli.config.time_options)

    with _open_store(cli, writable=True) as store:
        try:
            store.add_rule_slot(day_of_week, slot)
        except ValidationError as e:
            console.print(f"[bold red]✗[/bold red] {e}")
            raise typer.Exit(1)

    console.print(f"[green]✓ {WEEKDAY_NAMES[day_of_week]}: {slot.strip()} added.[/green]")


@app.command()
def rule_remove(
    ctx: typer.Context,
    weekday: Annotated[str, typer.Argument(help="Weekday: 0-6 (0 = Sunday) or name")],
    slot: Annotated[str, typer.Argument(help="Time slot to remove")],
):
    """
    Remove a slot from the weekly schedule (advisor).
    """
    cli: CliContext = ctx.obj
    _require_advisor(cli)
    day_of_week = _parse_weekday_or_exit(weekday)

    with _open_store(cli, writable=True) as store:
        store.remove_rule_slot(day_of_week, slot)

    console.print(f"[green]✓ {WEEKDAY_NAMES[day_of_week]}: {slot} removed.[/green]")


@app.command()
def override_add(
    ctx: typer.Context,
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    slot: Annotated[Optional[str], typer.Argument(help="Time slot to add. Prompted if omitted.")] = None,
):
    """
    Add a slot on one specific date (advisor).
    """
    cli: CliContext = ctx.obj
    _require_advisor(cli)
    key = _parse_date_or_exit(date)

    if slot is None:
        slot = _prompt_slot("→ Time slot to add on this date (e.g. 15:00-16:00)", cli.config.time_options)

    with _open_store(cli, writable=True) as store:
        try:
            store.add_override_slot(key, slot)
        except ValidationError as e:
            console.print(f"[bold red]✗[/bold red] {e}")
            raise typer.Exit(1)
        slots = store.slots_for(key)

    console.print(f"[green]✓ {key}: {', '.join(slots)}[/green]")


@app.command()
def override_remove(
    ctx: typer.Context,
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    slot: Annotated[str, typer.Argument(help="Time slot to remove")],
):
    """
    Remove a slot on one specific date (advisor). Removing the last slot closes the day.
    """
    cli: CliContext = ctx.obj
    _require_advisor(cli)
    key = _parse_date_or_exit(date)

    with _open_store(cli, writable=True) as store:
        store.remove_override_slot(key, slot)
        slots = store.slots_for(key)

    if slots:
        console.print(f"[green]✓ {key}: {', '.join(slots)}[/green]")
    else:
        console.print(f"[green]✓ {key} is now closed.[/green]")


@app.command()
def override_reset(
    ctx: typer.Context,
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
):
    """
    Return a date to the weekly schedule (advisor).
    """
    cli: CliContext = ctx.obj
    _require_advisor(cli)
    key = _parse_date_or_exit(date)

    if not yes:
        typer.confirm(f"Return {key} to the weekly schedule?", abort=True)

    with _open_store(cli, writable=True) as store:
        store.reset_override(key)
        slots = store.slots_for(key)

    console.print(f"[green]✓ {key} follows the weekly schedule again: {', '.join(slots) or 'no slots'}[/green]")


@app.command()
def wipe(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
):
    """
    Delete all bookings and custom days and restore the default weekly schedule (advisor).
    """
    cli: CliContext = ctx.obj
    _require_advisor(cli)

    if not yes:
        typer.confirm(
            "Delete ALL bookings and custom days and restore the default weekly schedule?",
            abort=True
        )

    with _open_store(cli, writable=True) as store:
        store.wipe_all()

    console.print("[green]✓ All data reset.[/green]")


@app.command()
def refresh(ctx: typer.Context):
    """
    Fetch the data from the store and show a summary.
    """
    cli: CliContext = ctx.obj

    with _open_store(cli) as store:
        snapshot = store.snapshot

    source = cli.config.endpoint_url if cli.config.uses_remote and not cli.local else str(cli.config.local_store_path)
    console.print(Panel.fit(
        f"[bold]Source:[/bold] {source}\n"
        f"[bold]Bookings:[/bold] {len(snapshot.bookings)}\n"
        f"[bold]Weekly rules:[/bold] {len(snapshot.rules)}\n"
        f"[bold]Custom days:[/bold] {len(snapshot.special_schedules)}",
        title="Data"
    ))


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]clubroom[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
