"""CLI commands for the clinic booking service."""

import asyncio
import uuid
from datetime import date, datetime
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from clinic_booking.config import get_settings
from clinic_booking.core.services import build_booking_service
from clinic_booking.scheduling.errors import SchedulingError

app = typer.Typer(
    name="clinic-booking",
    help="Doctor slot availability and appointment booking",
    add_completion=False,
)
console = Console()

_DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def _parse_uuid(value: str, name: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        console.print(f"[red]Invalid {name}: {value}[/red]")
        raise typer.Exit(1)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        console.print(f"[red]Invalid date: {value}. Use YYYY-MM-DD[/red]")
        raise typer.Exit(1)


async def _in_session(fn):
    """Run ``fn(session)`` in one committed unit of work."""
    from clinic_booking.core.database import session_scope

    async with session_scope() as session:
        return await fn(session)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Host to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
):
    """Start the REST API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print(f"Starting clinic booking API server on {host}:{port}")
    uvicorn.run(
        "clinic_booking.api.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


@app.command()
def init_db():
    """Create the database schema."""
    from clinic_booking.core.database import init_db as _init_db

    asyncio.run(_init_db())
    console.print("[green]Database schema created[/green]")


@app.command()
def add_doctor(
    full_name: str = typer.Argument(..., help="Doctor's full name"),
    specialty: str = typer.Option("general_medicine", "--specialty", "-s", help="Specialty code"),
):
    """Register a doctor and print its ID."""
    from clinic_booking.core.repository import DoctorRepository

    async def _create(session):
        doctor = await DoctorRepository(session).create(
            full_name=full_name, specialty=specialty
        )
        return doctor.id

    doctor_id = asyncio.run(_in_session(_create))
    console.print(f"[green]Doctor created:[/green] {doctor_id}")


@app.command()
def add_session(
    doctor_id: str = typer.Argument(..., help="Doctor ID"),
    day_of_week: int = typer.Argument(..., help="0=Sunday .. 6=Saturday"),
    start: str = typer.Argument(..., help="Start time HH:MM"),
    end: str = typer.Argument(..., help="End time HH:MM"),
    max_patients: Optional[int] = typer.Option(None, "--max-patients", "-m", help="Capacity per occurrence"),
):
    """Add a recurring weekly session for a doctor."""
    did = _parse_uuid(doctor_id, "doctor_id")
    try:
        start_t = datetime.strptime(start, "%H:%M").time()
        end_t = datetime.strptime(end, "%H:%M").time()
    except ValueError:
        console.print("[red]Times must be HH:MM[/red]")
        raise typer.Exit(1)

    try:
        rule = asyncio.run(
            _in_session(
                lambda db: build_booking_service(db).create_session(
                    did, day_of_week, start_t, end_t, max_patients=max_patients
                )
            )
        )
    except SchedulingError as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        raise typer.Exit(1)

    console.print(
        f"[green]Session created:[/green] {rule.id} "
        f"({_DAY_NAMES[rule.day_of_week]} {rule.start_time:%H:%M}-{rule.end_time:%H:%M})"
    )


@app.command()
def slots(
    doctor_id: str = typer.Argument(..., help="Doctor ID"),
    day: str = typer.Argument(..., help="Date YYYY-MM-DD"),
):
    """Show a doctor's slots and their availability for a date."""
    did = _parse_uuid(doctor_id, "doctor_id")
    target = _parse_date(day)

    try:
        result = asyncio.run(
            _in_session(lambda db: build_booking_service(db).get_available_slots(did, target))
        )
    except SchedulingError as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        raise typer.Exit(1)

    if not result:
        console.print(f"[yellow]No sessions on {target.isoformat()}[/yellow]")
        return

    table = Table(title=f"Slots for {target.isoformat()}")
    table.add_column("Time")
    table.add_column("Status")
    for slot in result:
        status_str = "[green]open[/green]" if slot.available else "[red]taken[/red]"
        table.add_row(slot.time.strftime("%H:%M"), status_str)
    console.print(table)


@app.command()
def version():
    """Show version information."""
    from clinic_booking import __version__

    console.print(f"clinic-booking {__version__}")
