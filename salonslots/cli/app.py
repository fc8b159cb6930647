"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import List, Optional, Annotated

import typer
from rich.console import Console
from rich.table import Table

from ..config import AppConfig, ServiceEntry, get_default_config_path
from ..adapters.json_store import JsonFileStore
from ..adapters.kv_rest_client import KVRestStore
from ..adapters.schedule_store import ScheduleStore
from ..domain.availability import AvailabilityCalculator
from ..domain.exceptions import SalonSlotsError
from ..domain.models import ServiceDescriptor, SlotTime, parse_calendar_date
from ..services.availability_service import AvailabilityService

app = typer.Typer(
    name="salonslots",
    help="Offer nail salon appointment slots and manage blocked dates",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")]


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _build_store(config: AppConfig) -> ScheduleStore:
    """Create and connect the store configured for this salon."""
    store_config = config.store
    if store_config.backend == "kv":
        url, token = store_config.resolve_kv_credentials()
        store: ScheduleStore = KVRestStore(url=url, token=token, key_prefix=store_config.key_prefix)
    else:
        store = JsonFileStore(data_dir=store_config.data_dir, key_prefix=store_config.key_prefix)

    store.connect()
    return store


def _build_service(config: AppConfig, store: ScheduleStore) -> AvailabilityService:
    calculator = AvailabilityCalculator(business_hours=config.business_hours.to_business_hours())
    return AvailabilityService(
        booking_store=store,
        blocked_store=store,
        calculator=calculator,
        store_failure_policy=config.store_failure_policy,
    )


def _catalog(config: AppConfig, store: ScheduleStore) -> List[ServiceEntry]:
    """Services from the config, or from the store when the config lists none."""
    if config.services:
        return config.services

    entries: List[ServiceEntry] = []
    for record in store.list_services():
        name = record.get("nameEn") or record.get("nameCn") or str(record.get("id", ""))
        entries.append(ServiceEntry(name=name, duration=record.get("duration") or ""))
    return entries


def _parse_time_argument(value: Optional[str]) -> Optional[SlotTime]:
    if value is None:
        return None
    try:
        return SlotTime.parse(value)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _parse_date_argument(value: str):
    try:
        return parse_calendar_date(value)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Salon appointment availability.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def available(
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    service: Annotated[Optional[str], typer.Option("--service", "-s", help="Service name or duration label, e.g. '5小时'")] = None,
    hours: Annotated[Optional[int], typer.Option("--hours", help="Service duration in hours")] = None,
    config_file: ConfigOption = None,
):
    """
    Show the start times a customer can book.

    Examples:

        salonslots available 2024-11-26 --service "Cat Eye"
        salonslots available 2024-11-26 --hours 5
    """
    day = _parse_date_argument(date)

    try:
        config = _load_config(config_file)
        store = _build_store(config)
        availability = _build_service(config, store)

        if hours is not None:
            descriptor: Optional[ServiceDescriptor] = ServiceDescriptor(duration_hours=hours)
        elif service is not None:
            descriptor = config.resolve_service(service)
        else:
            descriptor = None

        slots = availability.find_slots(date=day, service=descriptor)

    except (FileNotFoundError, ValueError, SalonSlotsError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print()
    if descriptor is None:
        console.print("[yellow]⚠ Please select a service first (--service or --hours).[/yellow]")
    elif not slots:
        console.print(
            f"[yellow]⚠ No available times on {day.to_date_string()}.[/yellow]\n"
            "Please try another date."
        )
    else:
        console.print(
            f"[bold green]✓ {len(slots)} available time(s) on {day.to_date_string()} "
            f"for a {descriptor.duration_hours}-hour service:[/bold green]\n"
        )
        for slot in slots:
            console.print(f"  {slot}")
    console.print()


@app.command()
def grid(
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    config_file: ConfigOption = None,
):
    """
    Show every curated slot of a date with its blocked/booked status.
    """
    day = _parse_date_argument(date)

    try:
        config = _load_config(config_file)
        store = _build_store(config)
        statuses = _build_service(config, store).slot_grid(day)
    except (FileNotFoundError, ValueError, SalonSlotsError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(
        title=f"Slots on {day.to_date_string()}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Time", style="bold yellow")
    table.add_column("Status")
    table.add_column("Booking", style="dim")

    for status in statuses:
        if status.blocked:
            label = "[red]blocked[/red]"
        elif status.booked:
            label = "[magenta]booked[/magenta]"
        else:
            label = "[green]open[/green]"
        booking = status.booking.booking_id if status.booking else ""
        table.add_row(str(status.time), label, booking)

    console.print()
    console.print(table)
    console.print()


@app.command()
def block(
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    time: Annotated[Optional[str], typer.Argument(help="Start time (HH:MM). Omit to block the whole day.")] = None,
    config_file: ConfigOption = None,
):
    """
    Block a start time, or a whole day.
    """
    day = _parse_date_argument(date)
    slot = _parse_time_argument(time)

    try:
        config = _load_config(config_file)
        store = _build_store(config)
        record = _build_service(config, store).block(day, slot)
    except (FileNotFoundError, ValueError, SalonSlotsError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if record.is_whole_day:
        console.print(f"\n[green]✓ {day.to_date_string()} is blocked for the whole day.[/green]\n")
    else:
        times = ", ".join(str(t) for t in record.times)
        console.print(f"\n[green]✓ Blocked on {day.to_date_string()}: {times}[/green]\n")


@app.command()
def unblock(
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    time: Annotated[Optional[str], typer.Argument(help="Start time (HH:MM). Omit to unblock the whole day.")] = None,
    config_file: ConfigOption = None,
):
    """
    Unblock a start time, or a whole day.
    """
    day = _parse_date_argument(date)
    slot = _parse_time_argument(time)

    try:
        config = _load_config(config_file)
        store = _build_store(config)
        remaining = _build_service(config, store).unblock(day, slot)
    except (FileNotFoundError, ValueError, SalonSlotsError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if remaining is None:
        console.print(f"\n[green]✓ {day.to_date_string()} is fully open.[/green]\n")
    else:
        times = ", ".join(str(t) for t in remaining.times)
        console.print(f"\n[green]✓ Still blocked on {day.to_date_string()}: {times}[/green]\n")


@app.command()
def book(
    date: Annotated[str, typer.Argument(help="Date (YYYY-MM-DD)")],
    time: Annotated[str, typer.Argument(help="Start time (HH:MM)")],
    service: Annotated[str, typer.Option("--service", "-s", help="Service name or duration label")],
    name: Annotated[str, typer.Option("--name", help="Customer name")],
    wechat_name: Annotated[str, typer.Option("--wechat-name", help="Customer WeChat name")],
    email: Annotated[str, typer.Option("--email", help="Customer email address")],
    phone: Annotated[str, typer.Option("--phone", help="Customer phone number")],
    config_file: ConfigOption = None,
):
    """
    Book a start time for a customer.

    Only start times that are currently offered for the service can be booked.

    Example:

        salonslots book 2024-11-26 12:00 -s "Cat Eye" --name Lin \\
            --wechat-name lin_nails --email lin@example.com --phone "604 555 0199"
    """
    day = _parse_date_argument(date)
    slot = _parse_time_argument(time)

    try:
        config = _load_config(config_file)
        store = _build_store(config)
        descriptor = config.resolve_service(service)
        offered = _build_service(config, store).find_slots(date=day, service=descriptor)

        if slot not in offered:
            console.print(
                f"[bold red]Error:[/bold red] {slot} is not available on {day.to_date_string()} "
                f"for a {descriptor.duration_hours}-hour service."
            )
            raise typer.Exit(1)

        record = store.add_booking({
            "service": {
                "id": descriptor.name or service,
                "name": descriptor.name or service,
                "duration": f"{descriptor.duration_hours}小时",
            },
            "selectedDate": day.to_date_string(),
            "selectedTime": str(slot),
            "name": name,
            "wechatName": wechat_name,
            "email": email,
            "phone": phone,
        })
    except (FileNotFoundError, ValueError, SalonSlotsError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"\n[green]✓ Booked {day.to_date_string()} {slot}[/green] (reference {record['bookingId']})\n")


@app.command()
def cancel(
    booking_id: Annotated[str, typer.Argument(help="Booking reference, e.g. BK1732612345678k3j9x0q2a")],
    config_file: ConfigOption = None,
):
    """
    Cancel a booking so its time is offered again.
    """
    try:
        config = _load_config(config_file)
        store = _build_store(config)
        store.cancel_booking(booking_id)
    except (FileNotFoundError, ValueError, SalonSlotsError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(f"\n[green]✓ Booking {booking_id} cancelled.[/green]\n")


@app.command()
def list_services(
    config_file: ConfigOption = None,
):
    """
    List the service catalogue with resolved durations.
    """
    try:
        config = _load_config(config_file)
        store = _build_store(config)
        entries = _catalog(config, store)
    except (FileNotFoundError, ValueError, SalonSlotsError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not entries:
        console.print("[yellow]No services configured.[/yellow]")
        return

    table = Table(
        title="Services",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Name", style="bold yellow")
    table.add_column("Duration label", style="dim")
    table.add_column("Hours")

    for entry in entries:
        table.add_row(entry.name, entry.duration, str(entry.to_descriptor().duration_hours))

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]salonslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
