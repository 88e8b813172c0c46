from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """
    Base for every error the controllers can surface directly (message box).

    Carries enough context to identify the offending document and what was
    being attempted:
      - document:  'proforma' | 'final_invoice' | 'delivery_note' | 'client' | ...
      - ref:       document number when known, else its id
      - operation: the attempted action ('convert', 'mark_paid', 'create', ...)
    """

    def __init__(
        self,
        message: str,
        *,
        document: Optional[str] = None,
        ref: object = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.document = document
        self.ref = ref
        self.operation = operation


class ValidationError(DomainError):
    """Malformed or out-of-range input, rejected before any persistence call."""


class InvalidTransition(DomainError):
    """A status-machine precondition was violated."""

    def __init__(
        self,
        message: str,
        *,
        current_state: Optional[str] = None,
        document: Optional[str] = None,
        ref: object = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message, document=document, ref=ref, operation=operation)
        self.current_state = current_state


class NotFoundError(DomainError):
    """A referenced id does not exist."""


class PersistenceError(DomainError):
    """The underlying store call failed; the enclosing transaction was rolled back."""


class PermissionDenied(DomainError):
    """The session's role is not allowed to perform the operation."""


class AuthError(DomainError):
    """
    Sign-in / sign-up failure. `code` is a stable machine-readable reason:
    empty_fields, invalid_email, user_not_found, wrong_password, user_inactive,
    not_confirmed, locked_out, email_taken, weak_password, not_signed_in.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message, document="user", operation="auth")
        self.code = code


__all__ = [
    "DomainError",
    "ValidationError",
    "InvalidTransition",
    "NotFoundError",
    "PersistenceError",
    "PermissionDenied",
    "AuthError",
]
