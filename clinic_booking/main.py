"""Entry points for the clinic booking service."""

import logging
import sys
import uuid
from datetime import date

from clinic_booking.config import get_settings

# Third-party loggers that are too chatty at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "httpx")


def setup_logging():
    """Configure root logging from settings."""
    settings = get_settings()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if settings.log_level != "DEBUG":
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def main():
    """Console script: run the CLI."""
    setup_logging()

    from clinic_booking.cli.commands import app

    app()


async def check_availability(doctor_id: uuid.UUID, day: date):
    """Programmatic API: a doctor's slots for *day* with availability.

    Example:
        import asyncio, uuid
        from datetime import date
        from clinic_booking.main import check_availability

        slots = asyncio.run(check_availability(uuid.UUID("..."), date(2026, 10, 19)))
    """
    from clinic_booking.core.database import session_scope
    from clinic_booking.core.services import build_booking_service

    async with session_scope() as db:
        return await build_booking_service(db).get_available_slots(doctor_id, day)


if __name__ == "__main__":
    main()
