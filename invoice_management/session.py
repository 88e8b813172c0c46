from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .errors import PermissionDenied

ROLE_ADMIN = "admin"
ROLE_ACCOUNTANT = "accountant"
ROLE_SALESPERSON = "salesperson"
ROLE_VIEWER = "viewer"

ROLES: tuple[str, ...] = (ROLE_ADMIN, ROLE_ACCOUNTANT, ROLE_SALESPERSON, ROLE_VIEWER)

# Who may do what; screens and workflows share these lists.
DOCUMENT_EDITORS = (ROLE_ADMIN, ROLE_ACCOUNTANT, ROLE_SALESPERSON)
FINANCE_EDITORS = (ROLE_ADMIN, ROLE_ACCOUNTANT)
FINANCE_READERS = (ROLE_ADMIN, ROLE_ACCOUNTANT, ROLE_VIEWER)
ADMINS = (ROLE_ADMIN,)


@dataclass(frozen=True)
class Session:
    """
    The signed-in user, passed explicitly to every workflow and controller.

    `pending` is True for a session returned by sign-up before the account
    has been confirmed by an administrator; such a session cannot act.
    """

    user_id: int
    email: str
    name: str
    role: str = ROLE_VIEWER
    pending: bool = False

    def has_role(self, allowed: Iterable[str]) -> bool:
        return not self.pending and self.role in tuple(allowed)


def require_role(
    session: Optional[Session],
    allowed: Iterable[str],
    *,
    operation: str,
    document: Optional[str] = None,
    ref: object = None,
) -> None:
    """Raise PermissionDenied unless the session carries one of `allowed` roles."""
    allowed = tuple(allowed)
    if session is None:
        raise PermissionDenied(
            f"Sign in required to {operation}.",
            document=document, ref=ref, operation=operation,
        )
    if not session.has_role(allowed):
        raise PermissionDenied(
            f"Role '{session.role}' may not {operation}"
            + (f" {document} {ref}" if document and ref is not None else "")
            + f" (allowed: {', '.join(allowed)}).",
            document=document, ref=ref, operation=operation,
        )
