# app/services/booking/booking_state_machine.py
"""Booking request status transitions"""
from typing import Dict, FrozenSet, Tuple

from app.core.exceptions import InvalidTransitionError
from app.models.booking_request import BookingAction, BookingStatus

S = BookingStatus
A = BookingAction

TRANSITIONS: Dict[BookingAction, Tuple[FrozenSet[BookingStatus], BookingStatus]] = {
    A.APPROVE: (frozenset({S.REQUESTED, S.PROPOSED}), S.APPROVED),
    A.DECLINE: (frozenset({S.REQUESTED, S.PROPOSED}), S.DECLINED),
    A.PROPOSE: (frozenset(set(S) - {S.COMPLETED}), S.PROPOSED),
    A.ACCEPT: (frozenset({S.PROPOSED}), S.APPROVED),
    A.CANCEL: (frozenset({S.APPROVED, S.REQUESTED, S.PROPOSED}), S.CANCELLED),
    A.COMPLETE: (frozenset({S.APPROVED}), S.COMPLETED),
    A.REACTIVATE: (frozenset({S.DECLINED, S.CANCELLED, S.EXPIRED}), S.REQUESTED),
    A.EXPIRE: (frozenset({S.PROPOSED}), S.EXPIRED),
}


def next_status(current: str, action: str) -> BookingStatus:
    """Resulting status of applying action to current, or InvalidTransitionError"""
    try:
        action_enum = BookingAction(action)
        current_enum = BookingStatus(current)
    except ValueError as e:
        raise InvalidTransitionError(f"Unknown action or status: {action} / {current}") from e

    if action_enum not in TRANSITIONS:
        raise InvalidTransitionError(f"Action '{action}' is not a status transition")

    allowed_from, result = TRANSITIONS[action_enum]
    if current_enum not in allowed_from:
        raise InvalidTransitionError(
            f"Cannot {action_enum.value} a request with status {current_enum.value}"
        )
    return result


def allowed_actions(current: str) -> list:
    """Actions a user may take from the current status"""
    return [
        action.value
        for action, (allowed_from, _) in TRANSITIONS.items()
        if action != A.EXPIRE and BookingStatus(current) in allowed_from
    ]
