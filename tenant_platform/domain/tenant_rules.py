"""Tenant lifecycle rules."""

from tenant_platform.domain.enums import TenantStatus, VerificationStatus
from tenant_platform.domain.exceptions import InvalidStateTransitionError

STATUS_TRANSITIONS: dict[TenantStatus, frozenset[TenantStatus]] = {
    TenantStatus.PENDING: frozenset(
        {TenantStatus.ACTIVE, TenantStatus.SUSPENDED, TenantStatus.TERMINATED}
    ),
    TenantStatus.ACTIVE: frozenset({TenantStatus.SUSPENDED, TenantStatus.TERMINATED}),
    TenantStatus.SUSPENDED: frozenset({TenantStatus.ACTIVE, TenantStatus.TERMINATED}),
    TenantStatus.TERMINATED: frozenset(),
}

VERIFICATION_TRANSITIONS: dict[VerificationStatus, frozenset[VerificationStatus]] = {
    VerificationStatus.PENDING: frozenset({VerificationStatus.VERIFIED, VerificationStatus.REJECTED}),
    VerificationStatus.VERIFIED: frozenset({VerificationStatus.REJECTED}),
    VerificationStatus.REJECTED: frozenset({VerificationStatus.PENDING}),
}


def is_valid_status_transition(current: TenantStatus | str, target: TenantStatus | str) -> bool:
    """Staying in the same status is always allowed."""
    current, target = TenantStatus(current), TenantStatus(target)
    return current == target or target in STATUS_TRANSITIONS[current]


def is_valid_verification_transition(
    current: VerificationStatus | str, target: VerificationStatus | str
) -> bool:
    current, target = VerificationStatus(current), VerificationStatus(target)
    return current == target or target in VERIFICATION_TRANSITIONS[current]


def ensure_status_transition(current: TenantStatus | str, target: TenantStatus | str) -> None:
    """
    Raises:
        InvalidStateTransitionError: If ``target`` is not reachable from ``current``
    """
    if not is_valid_status_transition(current, target):
        raise InvalidStateTransitionError(
            "Tenant", TenantStatus(current).value, TenantStatus(target).value
        )
