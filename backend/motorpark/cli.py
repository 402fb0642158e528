"""
Motor Park Trips Demo - Seat Holds, Drivers and Settlement

Runs the trips core end to end on a virtual clock so hold expiry can be seen
without waiting.

Key Features:
- Published trip with two seats
- Seat holds, payment confirmation and capacity rejection
- Automatic hold release after the hold window
- Driver conflict check and revenue split with adjustments
- Recurrence previews
"""

import asyncio
from datetime import date, datetime
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .errors import OperationResult
from .models.booking import BookingModel
from .models.enums import RecurrenceType
from .models.trip import RecurrencePatternModel
from .operations import ParkOperations, create_park_operations
from .services.calendar_expander import day_of_week, preview_occurrences
from .services.hold_scheduler import ManualHoldScheduler
from .utils.config import configure_logging, load_config

# Initialize typer app and rich console
app = typer.Typer(help="Motor park trips core demo")
console = Console()

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def parse_date(value: Optional[str]) -> date:
    """Parse YYYY-MM-DD, defaulting to today."""
    if not value:
        return date.today()
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        console.print(f"[red]Error: Invalid date format '{value}'. Use YYYY-MM-DD[/red]")
        raise typer.Exit(1)


def print_step(title: str) -> None:
    console.print()
    console.print(Panel(f"[bold cyan]{title}[/bold cyan]", box=box.ROUNDED))


def print_result(label: str, result: OperationResult) -> None:
    if result.success:
        console.print(f"[green]✓[/green] {label}")
    else:
        console.print(f"[red]✗[/red] {label}: [yellow]{result.reason}[/yellow] {result.error.message}")


def create_bookings_table(bookings: List[BookingModel]) -> Table:
    table = Table(title="Bookings", box=box.ROUNDED)
    table.add_column("Seat", justify="right", style="cyan")
    table.add_column("Passenger")
    table.add_column("Status")
    table.add_column("Hold expires")
    table.add_column("Paid", justify="right")

    for booking in bookings:
        status_style = "green" if booking.booking_status.value == "confirmed" else "yellow"
        table.add_row(
            str(booking.seat_number),
            booking.passenger_name,
            f"[{status_style}]{booking.booking_status.value}[/{status_style}]",
            booking.hold_expires_at.strftime("%H:%M:%S") if booking.hold_expires_at else "-",
            str(booking.amount_paid),
        )
    return table


async def run_scenario(ops: ParkOperations, scheduler: ManualHoldScheduler, trip_date: date, price: str) -> None:
    """Two-seat trip: hold, confirm, reject, expire, rebook, settle."""
    print_step("1. Create a published two-seat trip")
    created = await ops.trips.create_trip(
        {
            "route_id": "lagos-ibadan",
            "date": trip_date,
            "unit_time": "07:30",
            "seat_count": 2,
            "price": price,
            "max_parcels_per_vehicle": 2,
            "status": "published",
        },
        park_id="park_ojota",
    )
    print_result("Trip created", created)
    if not created.success:
        return
    trip = created.data[0]
    console.print(f"[dim]Trip {trip.trip_id} on {trip.date} at {trip.unit_time}, price {trip.price}[/dim]")

    print_step("2. Reserve both seats")
    holds = []
    for name in ("Ada", "Bola"):
        result = await ops.seats.reserve_seat(
            trip.trip_id,
            {
                "passenger_name": name,
                "passenger_phone": "08030000000",
                "nok_name": f"{name}'s next of kin",
                "nok_phone": "08031111111",
            },
        )
        print_result(f"Seat held for {name}", result)
        if result.success:
            holds.append(result.data)

    print_step("3. Confirm the first hold, then try a third reservation")
    print_result("Payment confirmed for Ada", await ops.seats.confirm_payment(holds[0].booking.booking_id))
    third = await ops.seats.reserve_seat(
        trip.trip_id,
        {"passenger_name": "Chidi", "passenger_phone": "0803", "nok_name": "Kin", "nok_phone": "0804"},
    )
    print_result("Third reservation", third)
    console.print(create_bookings_table(ops.seats.get_bookings(trip.trip_id)))

    print_step(f"4. Let {ops.config.hold_duration_minutes} minutes pass")
    fired = await scheduler.advance(minutes=ops.config.hold_duration_minutes)
    console.print(f"[dim]{fired} hold release(s) fired; reserved seats now {trip.confirmed_bookings_count}[/dim]")
    late = await ops.seats.confirm_payment(holds[1].booking.booking_id)
    print_result("Late payment for Bola", late)

    rebook = await ops.seats.reserve_seat(
        trip.trip_id,
        {"passenger_name": "Chidi", "passenger_phone": "0803", "nok_name": "Kin", "nok_phone": "0804"},
    )
    print_result("Reservation after release", rebook)
    if rebook.success:
        print_result("Payment confirmed for Chidi", await ops.seats.confirm_payment(rebook.data.booking.booking_id))
    console.print(create_bookings_table(ops.seats.get_bookings(trip.trip_id)))

    print_step("5. Drivers")
    second = await ops.trips.create_trip(
        {"route_id": "lagos-abeokuta", "date": trip_date, "seat_count": 14, "price": price, "status": "published"},
        park_id="park_ojota",
    )
    print_result("Driver assigned", await ops.drivers.assign_driver(trip.trip_id, "driver_musa", "08050000000"))
    print_result(
        "Same driver on another trip that day",
        await ops.drivers.assign_driver(second.data[0].trip_id, "driver_musa"),
    )

    print_step("6. Parcels and settlement")
    parcel = ops.parcels.register_parcel("Kemi", "0807", "Tunde", "08091234567", "1000")
    print_result("Parcel registered", parcel)
    print_result("Parcel loaded", await ops.parcels.assign_parcels(trip.trip_id, [parcel.data.parcel_id]))
    print_result("Adjustment -200", ops.finance.add_adjustment(trip.trip_id, "-200", "Fuel advance"))

    finance = ops.finance.get_trip_finance(trip.trip_id).unwrap()
    finance_table = Table(title="Trip finance", box=box.ROUNDED, show_header=False)
    finance_table.add_column("Line", style="cyan bold")
    finance_table.add_column("Amount", justify="right")
    finance_table.add_row("Passenger revenue", str(finance.passenger_revenue))
    finance_table.add_row("Parcel revenue", str(finance.parcel_revenue))
    finance_table.add_row("Driver (passengers 80%)", str(finance.driver_passenger_split))
    finance_table.add_row("Park (passengers 20%)", str(finance.park_passenger_split))
    finance_table.add_row("Driver (parcels 50%)", str(finance.driver_parcel_split))
    finance_table.add_row("Park (parcels 50%)", str(finance.park_parcel_split))
    finance_table.add_row("Adjustments", str(finance.adjustment_total))
    finance_table.add_row("[bold]Driver total[/bold]", f"[bold]{finance.driver_total}[/bold]")
    finance_table.add_row("[bold]Park total[/bold]", f"[bold]{finance.park_total}[/bold]")
    finance_table.add_row("Payout status", finance.payout_status.value)
    console.print(finance_table)

    audit_table = Table(title="Audit log (latest 8)", box=box.ROUNDED)
    audit_table.add_column("Time")
    audit_table.add_column("Action", style="cyan")
    audit_table.add_column("Entity")
    audit_table.add_column("By")
    for entry in ops.audit.get_logs()[:8]:
        audit_table.add_row(
            entry.performed_at.strftime("%H:%M:%S"),
            entry.action,
            f"{entry.entity_type} {entry.entity_id}",
            entry.performed_by,
        )
    console.print(audit_table)


@app.command()
def demo(
    date_str: str = typer.Option(
        None,
        "--date",
        help="Trip date in YYYY-MM-DD format (defaults to today)"
    ),
    price: str = typer.Option(
        "5000",
        "--price",
        help="Seat price"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show service logs"
    ),
):
    """
    Run the end-to-end trips scenario on a virtual clock.
    """
    config = load_config()
    if verbose:
        configure_logging(config)

    console.print()
    console.print(Panel.fit(
        "[bold cyan]MOTOR PARK TRIPS DEMO[/bold cyan]\n"
        "[yellow]Seat holds, drivers and settlement[/yellow]",
        border_style="cyan",
        box=box.DOUBLE
    ))

    scheduler = ManualHoldScheduler()
    ops = create_park_operations(config=config, scheduler=scheduler)
    try:
        asyncio.run(run_scenario(ops, scheduler, parse_date(date_str), price))
    finally:
        ops.shutdown()


@app.command()
def preview(
    start: str = typer.Option(None, "--start", help="Start date in YYYY-MM-DD format (defaults to today)"),
    pattern_type: RecurrenceType = typer.Option(RecurrenceType.DAILY, "--type", help="Recurrence type"),
    days: List[int] = typer.Option(
        None,
        "--day",
        "-d",
        help="Day of week for custom patterns (0=Sun..6=Sat), repeatable"
    ),
    end: str = typer.Option(None, "--end", help="Last date in YYYY-MM-DD format"),
    skip: List[str] = typer.Option(None, "--skip", help="Exception date in YYYY-MM-DD format, repeatable"),
):
    """
    Show the next dates a recurrence pattern would generate.
    """
    config = load_config()
    start_date = parse_date(start)
    pattern = RecurrencePatternModel(
        type=pattern_type,
        days_of_week=days or [],
        end_date=parse_date(end) if end else None,
        exceptions=[parse_date(s) for s in skip or []],
    )

    dates = preview_occurrences(
        start_date,
        pattern,
        limit=config.preview_limit,
        horizon_days=config.preview_horizon_days,
    )
    if not dates:
        console.print("[yellow]⚠ Pattern produces no upcoming dates[/yellow]")
        return

    table = Table(title=f"Next {len(dates)} trips after {start_date}", box=box.ROUNDED)
    table.add_column("Date", style="cyan")
    table.add_column("Day")
    for day in dates:
        table.add_row(day.isoformat(), DAY_NAMES[day_of_week(day)])
    console.print(table)


if __name__ == "__main__":
    app()
