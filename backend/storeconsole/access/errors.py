"""
Outcomes of store access resolution that end a request.

Every error carries a stable machine-readable ``code`` and a human-readable
``message``; the API layer renders both, and nothing else.
"""

from __future__ import annotations

from typing import Optional

from storeconsole.core.roles import MembershipStatus, Role


class AccessError(Exception):
    """Base error for the access gate."""

    code = "access_error"
    status_code = 403
    message = "Access denied"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


# ---------------------------------------------------------
# Input errors (400)
# ---------------------------------------------------------
class StoreNotSpecified(AccessError):
    code = "store_required"
    status_code = 400
    message = "Store id (store_id) is required"


class InvalidStoreId(AccessError):
    code = "invalid_store_id"
    status_code = 400
    message = "Store id must be a valid UUID"


# ---------------------------------------------------------
# Authorization denials (403)
# ---------------------------------------------------------
class AccessDenied(AccessError):
    code = "access_denied"
    status_code = 403
    message = "Access denied"


class StoreUnavailable(AccessDenied):
    # Same answer for "missing" and "disabled" so existence is not revealed.
    code = "store_unavailable"
    message = "Store not found or disabled"


class NoMembership(AccessDenied):
    code = "access_denied"
    message = "Access denied"


class MembershipNotActive(AccessDenied):
    _BY_STATUS = {
        MembershipStatus.PENDING: ("membership_pending", "Your access to this store is pending approval"),
        MembershipStatus.SUSPENDED: ("membership_suspended", "Your access to this store has been suspended"),
    }

    def __init__(self, status: Optional[MembershipStatus]):
        self.status = status
        self.code, message = self._BY_STATUS.get(status, ("membership_inactive", "Access denied"))
        super().__init__(message)


class InsufficientPermission(AccessDenied):
    code = "insufficient_permission"

    def __init__(self, role: Role):
        self.role = role
        # The allowed set is deliberately left out of the message.
        super().__init__(f"Insufficient permission for this operation (current role: {role.value})")


# ---------------------------------------------------------
# Faults (500)
# ---------------------------------------------------------
class AccessResolutionFault(AccessError):
    code = "access_resolution_failed"
    status_code = 500
    message = "Internal error resolving access"
