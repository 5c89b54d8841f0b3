"""Appointment status state machine."""

from clinic_booking.scheduling.errors import Forbidden, InvalidTransition
from clinic_booking.scheduling.models import ActorRole, AppointmentStatus

_S = AppointmentStatus
_STAFF = frozenset({ActorRole.DOCTOR, ActorRole.ADMIN})
_ANYONE = frozenset(ActorRole)

# (from, to) -> roles allowed to make that move
TRANSITIONS: dict[tuple[AppointmentStatus, AppointmentStatus], frozenset[ActorRole]] = {
    (_S.PENDING, _S.CONFIRMED): _STAFF,
    (_S.CONFIRMED, _S.COMPLETED): _STAFF,
    (_S.PENDING, _S.CANCELLED): _ANYONE,
    (_S.CONFIRMED, _S.CANCELLED): _ANYONE,
}


def is_edge(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return (current, target) in TRANSITIONS


def check_transition(
    current: AppointmentStatus,
    target: AppointmentStatus,
    role: ActorRole,
) -> None:
    """Raise unless *role* may move an appointment from *current* to *target*.

    Raises:
        InvalidTransition: the pair is not an edge of the state machine.
        Forbidden: the edge exists but *role* may not take it.
    """
    allowed = TRANSITIONS.get((current, target))
    if allowed is None:
        raise InvalidTransition(
            f"Cannot move appointment from '{current.value}' to '{target.value}'"
        )
    if role not in allowed:
        raise Forbidden(
            f"Role '{role.value}' may not move appointment from "
            f"'{current.value}' to '{target.value}'"
        )
