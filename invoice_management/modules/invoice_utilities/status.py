from __future__ import annotations

from typing import Optional

from ...errors import InvalidTransition

# ---------- Document kinds ----------
PROFORMA = "proforma"
FINAL_INVOICE = "final_invoice"
DELIVERY_NOTE = "delivery_note"

KIND_LABELS = {
    PROFORMA: "Proforma invoice",
    FINAL_INVOICE: "Final invoice",
    DELIVERY_NOTE: "Delivery note",
}

# ---------- Canonical sets & order ----------
VALID_STATES: dict[str, tuple[str, ...]] = {
    PROFORMA: ("draft", "sent", "approved", "rejected"),
    # cancelled/credited are storable but no transition leads there
    FINAL_INVOICE: ("unpaid", "paid", "cancelled", "credited"),
    DELIVERY_NOTE: ("pending", "delivered", "cancelled"),
}

INITIAL_STATE = {
    PROFORMA: "draft",
    FINAL_INVOICE: "unpaid",
    DELIVERY_NOTE: "pending",
}

# (current, action) -> next
TRANSITIONS: dict[str, dict[tuple[str, str], str]] = {
    PROFORMA: {
        ("draft", "send"): "sent",
        ("sent", "approve"): "approved",
        ("sent", "reject"): "rejected",
        ("approved", "undo_approve"): "sent",
    },
    FINAL_INVOICE: {
        ("unpaid", "mark_paid"): "paid",
    },
    DELIVERY_NOTE: {
        ("pending", "mark_delivered"): "delivered",
    },
}

DELETABLE = {
    PROFORMA: ("draft", "sent", "rejected"),
    FINAL_INVOICE: (),
    DELIVERY_NOTE: ("pending",),
}

EDITABLE = {
    PROFORMA: ("draft",),
    FINAL_INVOICE: (),
    DELIVERY_NOTE: ("pending",),
}

# ---------- Human labels ----------
LABELS = {
    "draft": "Draft",
    "sent": "Sent",
    "approved": "Approved",
    "rejected": "Rejected",
    "unpaid": "Unpaid",
    "paid": "Paid",
    "cancelled": "Cancelled",
    "credited": "Credited",
    "pending": "Pending",
    "delivered": "Delivered",
}

# style tokens the UI can map to colors
STYLES = {
    "draft":     {"badge": "neutral", "fg": "#374151", "bg": "#F3F4F6"},
    "sent":      {"badge": "info",    "fg": "#1E40AF", "bg": "#DBEAFE"},
    "approved":  {"badge": "success", "fg": "#065F46", "bg": "#D1FAE5"},
    "rejected":  {"badge": "danger",  "fg": "#991B1B", "bg": "#FEE2E2"},
    "unpaid":    {"badge": "warning", "fg": "#92400E", "bg": "#FEF3C7"},
    "paid":      {"badge": "success", "fg": "#065F46", "bg": "#D1FAE5"},
    "cancelled": {"badge": "neutral", "fg": "#6B7280", "bg": "#F3F4F6"},
    "credited":  {"badge": "info",    "fg": "#1E40AF", "bg": "#DBEAFE"},
    "pending":   {"badge": "warning", "fg": "#92400E", "bg": "#FEF3C7"},
    "delivered": {"badge": "success", "fg": "#065F46", "bg": "#D1FAE5"},
}


# ---------- API ----------

def normalize(state: Optional[str]) -> Optional[str]:
    """Lowercase & strip; return None if empty."""
    if state is None:
        return None
    s = str(state).strip().lower()
    return s or None


def _check_kind(kind: str) -> None:
    if kind not in VALID_STATES:
        raise ValueError(f"Unknown document kind: {kind!r}")


def ensure_valid(kind: str, state: str) -> str:
    """Return the normalized state if valid for `kind`; raise ValueError if not."""
    _check_kind(kind)
    s = normalize(state)
    if s not in VALID_STATES[kind]:
        raise ValueError(f"{kind} status must be one of: {', '.join(VALID_STATES[kind])}")
    return s  # type: ignore[return-value]


def label(state: str) -> str:
    s = normalize(state)
    if s in LABELS:
        return LABELS[s]  # type: ignore[index]
    return (state or "").strip().title()


def style_tokens(state: str) -> dict:
    """Unknown states fall back to a neutral style."""
    return STYLES.get(normalize(state), STYLES["draft"])


def _describe(kind: str, ref: object) -> str:
    name = KIND_LABELS.get(kind, kind)
    return f"{name} {ref}" if ref is not None else name


def _refuse(kind: str, current: Optional[str], operation: str, ref: object, reason: str) -> InvalidTransition:
    return InvalidTransition(
        f"Cannot {operation.replace('_', ' ')} {_describe(kind, ref)}: {reason}",
        current_state=current,
        document=kind,
        ref=ref,
        operation=operation,
    )


def next_state(kind: str, current: str, action: str, *, ref: object = None, converted: bool = False) -> str:
    """
    Target state for `action` from `current`, or InvalidTransition.

    `converted` matters for proformas only: an approved proforma that already
    has a final invoice cannot go back to sent.
    """
    _check_kind(kind)
    cur = normalize(current)
    target = TRANSITIONS[kind].get((cur, action))  # type: ignore[arg-type]
    if target is None:
        raise _refuse(kind, cur, action, ref, f"status is '{label(cur or '')}'.")
    if kind == PROFORMA and action == "undo_approve" and converted:
        raise _refuse(kind, cur, action, ref, "it has already been converted to a final invoice.")
    return target


def ensure_can_convert(status: str, final_invoice_id: Optional[int], *, ref: object = None) -> None:
    s = normalize(status)
    if s != "approved":
        raise _refuse(PROFORMA, s, "convert", ref, "only approved proformas can be converted.")
    if final_invoice_id is not None:
        raise _refuse(PROFORMA, s, "convert", ref, "it has already been converted to a final invoice.")


def ensure_can_undo_convert(status: str, final_invoice_id: Optional[int], *, ref: object = None) -> None:
    if final_invoice_id is None:
        raise _refuse(PROFORMA, normalize(status), "undo_convert", ref, "it has not been converted.")


def ensure_can_undo_approve(status: str, final_invoice_id: Optional[int], *, ref: object = None) -> None:
    next_state(PROFORMA, status, "undo_approve", ref=ref, converted=final_invoice_id is not None)


def ensure_deletable(kind: str, status: str, *, ref: object = None, converted: bool = False) -> None:
    _check_kind(kind)
    s = normalize(status)
    if kind == FINAL_INVOICE:
        raise _refuse(kind, s, "delete", ref, "final invoices can only be removed by undoing the conversion.")
    if s not in DELETABLE[kind]:
        raise _refuse(kind, s, "delete", ref, f"status is '{label(s or '')}'.")
    if converted:
        raise _refuse(kind, s, "delete", ref, "it has been converted to a final invoice.")


def ensure_editable(kind: str, status: str, *, ref: object = None) -> None:
    _check_kind(kind)
    s = normalize(status)
    if s not in EDITABLE[kind]:
        allowed = ", ".join(label(x) for x in EDITABLE[kind]) or "never"
        raise _refuse(kind, s, "edit", ref, f"status is '{label(s or '')}' (editable: {allowed}).")


def allowed_actions(kind: str, status: str, converted: bool = False) -> list[str]:
    """Actions a screen may offer for a document in `status`."""
    _check_kind(kind)
    s = normalize(status)
    actions = [action for (cur, action) in TRANSITIONS[kind] if cur == s]
    if kind == PROFORMA:
        if converted:
            actions = [a for a in actions if a != "undo_approve"]
            actions.append("undo_convert")
        elif s == "approved":
            actions.append("convert")
    if s in EDITABLE[kind]:
        actions.append("edit")
    if s in DELETABLE[kind] and not converted:
        actions.append("delete")
    return actions
