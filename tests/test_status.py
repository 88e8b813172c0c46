import pytest

from invoice_management.errors import InvalidTransition
from invoice_management.modules.invoice_utilities.status import (
    DELIVERY_NOTE,
    FINAL_INVOICE,
    PROFORMA,
    allowed_actions,
    ensure_can_convert,
    ensure_can_undo_convert,
    ensure_deletable,
    ensure_editable,
    ensure_valid,
    label,
    next_state,
    style_tokens,
)


@pytest.mark.parametrize(
    "kind, current, action, target",
    [
        (PROFORMA, "draft", "send", "sent"),
        (PROFORMA, "sent", "approve", "approved"),
        (PROFORMA, "sent", "reject", "rejected"),
        (PROFORMA, "approved", "undo_approve", "sent"),
        (FINAL_INVOICE, "unpaid", "mark_paid", "paid"),
        (DELIVERY_NOTE, "pending", "mark_delivered", "delivered"),
    ],
)
def test_allowed_transitions(kind, current, action, target):
    assert next_state(kind, current, action) == target


@pytest.mark.parametrize(
    "kind, current, action",
    [
        (PROFORMA, "draft", "approve"),
        (PROFORMA, "rejected", "send"),
        (PROFORMA, "approved", "reject"),
        (FINAL_INVOICE, "paid", "mark_paid"),
        (FINAL_INVOICE, "cancelled", "mark_paid"),
        (DELIVERY_NOTE, "delivered", "mark_delivered"),
    ],
)
def test_refused_transitions_carry_context(kind, current, action):
    with pytest.raises(InvalidTransition) as e:
        next_state(kind, current, action, ref="X-1")
    assert e.value.current_state == current
    assert e.value.document == kind
    assert e.value.operation == action
    assert "X-1" in str(e.value)


def test_undo_approve_blocked_once_converted():
    with pytest.raises(InvalidTransition):
        next_state(PROFORMA, "approved", "undo_approve", converted=True)


def test_convert_preconditions():
    ensure_can_convert("approved", None)
    with pytest.raises(InvalidTransition):
        ensure_can_convert("sent", None)
    with pytest.raises(InvalidTransition):
        ensure_can_convert("approved", 7)
    with pytest.raises(InvalidTransition):
        ensure_can_undo_convert("approved", None)


def test_edit_and_delete_rules():
    ensure_editable(PROFORMA, "draft")
    ensure_editable(DELIVERY_NOTE, "pending")
    with pytest.raises(InvalidTransition):
        ensure_editable(PROFORMA, "sent")
    with pytest.raises(InvalidTransition):
        ensure_editable(FINAL_INVOICE, "unpaid")

    ensure_deletable(PROFORMA, "rejected")
    with pytest.raises(InvalidTransition):
        ensure_deletable(PROFORMA, "approved")
    with pytest.raises(InvalidTransition):
        ensure_deletable(FINAL_INVOICE, "unpaid")


def test_allowed_actions_for_screens():
    assert set(allowed_actions(PROFORMA, "draft")) == {"send", "edit", "delete"}
    assert set(allowed_actions(PROFORMA, "approved")) == {"undo_approve", "convert"}
    assert allowed_actions(PROFORMA, "approved", converted=True) == ["undo_convert"]
    assert allowed_actions(FINAL_INVOICE, "paid") == []
    assert set(allowed_actions(DELIVERY_NOTE, "pending")) == {"mark_delivered", "edit", "delete"}


def test_states_are_normalized_and_validated():
    assert ensure_valid(PROFORMA, " Draft ") == "draft"
    with pytest.raises(ValueError):
        ensure_valid(PROFORMA, "paid")
    with pytest.raises(ValueError):
        next_state("quote", "draft", "send")


def test_labels_and_styles():
    assert label("approved") == "Approved"
    assert label("weird_state") == "Weird_State"
    assert style_tokens("paid")["badge"] == "success"
    assert style_tokens("nonsense") == style_tokens("draft")
