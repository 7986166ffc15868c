"""Tests for the reservation payment ledger.

Covers:
- Only confirmed entries count toward amount_paid
- Adding then removing an entry restores the balance exactly
- Confirmed entries only accept status / notes edits
- Overpayment is rejected on add and on confirm
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from landsales.errors import NotFoundError, ValidationError
from landsales.models.reservation import Reservation
from landsales.services import pipeline_service, reservation_service
from landsales.utils import as_utc


def _balance(db_session, reservation_id):
    reservation = db_session.get(Reservation, reservation_id)
    return reservation.amount_paid, reservation.remaining_amount


@pytest.fixture
def reservation(make_reservation):
    return make_reservation(amount=1000)


class TestAddEntry:
    def test_pending_entry_does_not_count(self, reservation, db_session):
        entry = pipeline_service.add_payment_entry(reservation.id, 300)

        assert entry.status == "pending"
        assert _balance(db_session, reservation.id) == (Decimal("0"), Decimal("1000.00"))

    def test_confirmed_entry_counts(self, reservation, db_session):
        pipeline_service.add_payment_entry(
            reservation.id, "250.25", status="confirmed", method="cash", reference="OP-991"
        )
        assert _balance(db_session, reservation.id) == (Decimal("250.25"), Decimal("749.75"))

    def test_positions_follow_append_order(self, reservation, db_session):
        first = pipeline_service.add_payment_entry(reservation.id, 100)
        second = pipeline_service.add_payment_entry(reservation.id, 200, status="rejected")

        assert (first.position, second.position) == (1, 2)
        entries = db_session.get(Reservation, reservation.id).ledger_entries
        assert [e.id for e in entries] == [first.id, second.id]

    def test_overpayment_rejected(self, reservation, db_session):
        pipeline_service.add_payment_entry(reservation.id, 800, status="confirmed")
        with pytest.raises(ValidationError, match="exceeds the outstanding balance"):
            pipeline_service.add_payment_entry(reservation.id, 201, status="confirmed")

        assert len(db_session.get(Reservation, reservation.id).ledger_entries) == 1

    def test_pending_entry_may_exceed_balance(self, reservation):
        entry = pipeline_service.add_payment_entry(reservation.id, 5000)
        assert entry.amount == Decimal("5000.00")

    @pytest.mark.parametrize("kwargs,message", [
        ({"amount": 0}, "greater than zero"),
        ({"amount": 10, "status": "bounced"}, "Invalid payment status"),
        ({"amount": 10, "method": "cheque"}, "Invalid payment method"),
        ({"amount": "NaN", "status": "confirmed"}, "finite number"),
        ({"amount": "Infinity"}, "finite number"),
        ({"amount": "-Infinity"}, "finite number"),
    ])
    def test_invalid_entries(self, reservation, kwargs, message):
        with pytest.raises(ValidationError, match=message):
            reservation_service.add_payment_entry(reservation.id, **kwargs)

    def test_entry_text_is_sanitized(self, reservation):
        entry = pipeline_service.add_payment_entry(
            reservation.id, 10, notes="<script>x</script>voucher", bank_name="  Interbank "
        )
        assert "<script>" not in entry.notes
        assert entry.bank_name == "Interbank"


class TestRemoveEntry:
    def test_add_then_remove_restores_balance(self, reservation, db_session):
        pipeline_service.add_payment_entry(reservation.id, 100, status="confirmed")
        before = _balance(db_session, reservation.id)

        entry = pipeline_service.add_payment_entry(reservation.id, "333.33", status="confirmed")
        assert _balance(db_session, reservation.id) == (Decimal("433.33"), Decimal("566.67"))

        removed = pipeline_service.remove_payment_entry(reservation.id, entry.id)
        assert removed.amount == Decimal("333.33")
        assert _balance(db_session, reservation.id) == before

    def test_unknown_entry(self, reservation):
        with pytest.raises(NotFoundError):
            pipeline_service.remove_payment_entry(reservation.id, "missing")


class TestUpdateEntry:
    def test_confirming_a_pending_entry(self, reservation, db_session):
        entry = pipeline_service.add_payment_entry(reservation.id, 400)
        pipeline_service.update_payment_entry(reservation.id, entry.id, status="confirmed")

        assert _balance(db_session, reservation.id) == (Decimal("400.00"), Decimal("600.00"))

    def test_pending_entry_is_fully_editable(self, reservation):
        entry = pipeline_service.add_payment_entry(reservation.id, 400)
        updated = pipeline_service.update_payment_entry(
            reservation.id, entry.id, amount=450, method="bank_deposit", reference="DEP-1"
        )
        assert updated.amount == Decimal("450.00")
        assert updated.method == "bank_deposit"
        assert updated.reference == "DEP-1"

    def test_confirmed_amount_is_locked(self, reservation, db_session):
        entry = pipeline_service.add_payment_entry(reservation.id, 400, status="confirmed")
        with pytest.raises(ValidationError, match="only change its status or notes"):
            pipeline_service.update_payment_entry(reservation.id, entry.id, amount=300)

        assert _balance(db_session, reservation.id) == (Decimal("400.00"), Decimal("600.00"))

    def test_confirmed_entry_accepts_notes(self, reservation):
        entry = pipeline_service.add_payment_entry(reservation.id, 400, status="confirmed")
        updated = pipeline_service.update_payment_entry(
            reservation.id, entry.id, notes="Voucher checked"
        )
        assert updated.notes == "Voucher checked"

    def test_unchanged_locked_field_is_allowed(self, reservation):
        entry = pipeline_service.add_payment_entry(reservation.id, 400, status="confirmed")
        updated = pipeline_service.update_payment_entry(
            reservation.id, entry.id, amount=400, notes="same amount"
        )
        assert updated.amount == Decimal("400.00")

    def test_resending_paid_on_after_reload_is_not_a_change(self, reservation, db_session):
        paid_on = datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
        entry = pipeline_service.add_payment_entry(
            reservation.id, 400, status="confirmed", paid_on=paid_on
        )
        entry_id = entry.id
        db_session.expire_all()

        updated = pipeline_service.update_payment_entry(
            reservation.id, entry_id, paid_on=paid_on, notes="Voucher checked"
        )
        assert updated.notes == "Voucher checked"
        assert as_utc(updated.paid_on) == paid_on

    def test_moving_paid_on_of_confirmed_entry_is_locked(self, reservation, db_session):
        paid_on = datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
        entry = pipeline_service.add_payment_entry(
            reservation.id, 400, status="confirmed", paid_on=paid_on
        )
        db_session.expire_all()

        with pytest.raises(ValidationError, match="tried: paid_on"):
            pipeline_service.update_payment_entry(
                reservation.id, entry.id, paid_on=paid_on + timedelta(days=1)
            )

    def test_rejecting_a_confirmed_entry_reduces_paid(self, reservation, db_session):
        entry = pipeline_service.add_payment_entry(reservation.id, 400, status="confirmed")
        pipeline_service.update_payment_entry(reservation.id, entry.id, status="rejected")

        assert _balance(db_session, reservation.id) == (Decimal("0"), Decimal("1000.00"))

    def test_confirming_cannot_overpay(self, reservation, db_session):
        pipeline_service.add_payment_entry(reservation.id, 900, status="confirmed")
        pending = pipeline_service.add_payment_entry(reservation.id, 200)

        with pytest.raises(ValidationError, match="exceed the amount required"):
            pipeline_service.update_payment_entry(reservation.id, pending.id, status="confirmed")

        assert _balance(db_session, reservation.id) == (Decimal("900.00"), Decimal("100.00"))

    def test_unknown_field(self, reservation):
        entry = pipeline_service.add_payment_entry(reservation.id, 100)
        with pytest.raises(ValidationError, match="Unknown payment fields"):
            pipeline_service.update_payment_entry(reservation.id, entry.id, currency="PEN")

    def test_unknown_entry(self, reservation):
        with pytest.raises(NotFoundError):
            pipeline_service.update_payment_entry(reservation.id, "missing", notes="x")


class TestBalanceInvariant:
    def test_holds_across_a_mixed_history(self, reservation, db_session):
        a = pipeline_service.add_payment_entry(reservation.id, 150, status="confirmed")
        b = pipeline_service.add_payment_entry(reservation.id, 300)
        pipeline_service.add_payment_entry(reservation.id, 50, status="rejected")
        pipeline_service.update_payment_entry(reservation.id, b.id, status="confirmed")
        pipeline_service.remove_payment_entry(reservation.id, a.id)
        pipeline_service.update_reservation(reservation.id, total_amount_required=1200)

        fresh = db_session.get(Reservation, reservation.id)
        confirmed = sum(e.amount for e in fresh.ledger_entries if e.status == "confirmed")
        assert fresh.amount_paid == confirmed == Decimal("300.00")
        assert fresh.remaining_amount == Decimal("900.00")
        assert fresh.amount_paid + fresh.remaining_amount == fresh.total_amount_required
