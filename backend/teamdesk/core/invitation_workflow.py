"""Invitation status state machine."""

from teamdesk.models.enums import InvitationStatus

# Key: current status, Value: statuses it may move to
VALID_TRANSITIONS: dict[InvitationStatus, list[InvitationStatus]] = {
    InvitationStatus.PENDING: [
        InvitationStatus.ACCEPTED,
        InvitationStatus.CANCELLED,
        InvitationStatus.EXPIRED,
    ],
    InvitationStatus.ACCEPTED: [],
    InvitationStatus.CANCELLED: [],
    InvitationStatus.EXPIRED: [],
}


def is_valid_transition(from_status: InvitationStatus, to_status: InvitationStatus) -> bool:
    """Check if an invitation may move from one status to another.

    Examples:
        >>> is_valid_transition(InvitationStatus.PENDING, InvitationStatus.ACCEPTED)
        True
        >>> is_valid_transition(InvitationStatus.EXPIRED, InvitationStatus.PENDING)
        False
    """
    return to_status in VALID_TRANSITIONS.get(from_status, [])


def get_allowed_transitions(from_status: InvitationStatus) -> list[InvitationStatus]:
    """Get the statuses an invitation may move to next.

    Examples:
        >>> get_allowed_transitions(InvitationStatus.CANCELLED)
        []
    """
    return VALID_TRANSITIONS.get(from_status, [])


def is_terminal(status: InvitationStatus) -> bool:
    """Terminal statuses have no outgoing transitions."""
    return not get_allowed_transitions(status)
