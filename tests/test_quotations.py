"""Tests for quotations.

Covers:
- Pricing snapshot (discount, down payment, amount financed, price per m2)
- Preconditions on the lot and its containers
- Quotation status -> lot status cascade
"""

from datetime import date
from decimal import Decimal

import pytest

from landsales.errors import InvalidTransitionError, NotFoundError, ValidationError
from landsales.models.lot import Lot
from landsales.models.quotation import Quotation
from landsales.services import lot_service, pipeline_service, quotation_service


class TestCreateQuotation:
    def test_pricing_snapshot(self, seed_data, make_quotation):
        quotation = make_quotation(months_financed=24, down_payment=10, discount=100)

        assert quotation.status == "issued"
        assert quotation.total_price == Decimal("1500.00")
        assert quotation.final_price == Decimal("1400.00")
        assert quotation.amount_financed == Decimal("1260.00")
        assert quotation.price_per_m2_at_quotation == Decimal("14.00")
        assert quotation.area_at_quotation == Decimal("100.00")
        assert quotation.currency == "USD"  # project currency
        assert quotation.quotation_date == date(2026, 1, 15)

    def test_snapshot_survives_lot_edit(self, seed_data, make_quotation, db_session):
        quotation = make_quotation()
        lot_service.update_lot(seed_data["lot"].id, price=9999)
        db_session.commit()

        assert db_session.get(Quotation, quotation.id).total_price == Decimal("1500.00")

    def test_lot_becomes_quoted(self, seed_data, make_quotation, db_session):
        make_quotation()
        assert db_session.get(Lot, seed_data["lot"].id).status == "quoted"

    def test_lot_must_be_available(self, seed_data, make_quotation):
        make_quotation()
        with pytest.raises(ValidationError, match="not available"):
            make_quotation()

    def test_inactive_lot(self, seed_data, make_quotation):
        seed_data["lot"].is_active = False
        with pytest.raises(ValidationError, match="inactive"):
            make_quotation()

    def test_second_issued_quotation_rejected(self, seed_data, make_quotation, db_session):
        make_quotation()
        # Force the lot back without touching the quotation
        seed_data["lot"].status = "available"
        db_session.commit()
        with pytest.raises(ValidationError, match="already has an issued quotation"):
            make_quotation()

    def test_discount_limited_by_project(self, seed_data, make_quotation):
        seed_data["project"].max_discount_percentage = 5
        with pytest.raises(ValidationError, match="project maximum"):
            make_quotation(discount=100)

    @pytest.mark.parametrize("down_payment", [-1, 101, "NaN"])
    def test_down_payment_is_a_percentage(self, seed_data, make_quotation, down_payment):
        with pytest.raises(ValidationError, match="percentage"):
            make_quotation(down_payment=down_payment)

    @pytest.mark.parametrize("field,value,message", [
        ("months_financed", "twelve", "whole number"),
        ("months_financed", None, "whole number"),
        ("down_payment", "abc", "must be a number"),
    ])
    def test_malformed_terms(self, seed_data, make_quotation, db_session, field, value, message):
        with pytest.raises(ValidationError, match=message):
            make_quotation(**{field: value})
        assert db_session.get(Lot, seed_data["lot"].id).status == "available"

    def test_inactive_lead(self, seed_data, make_quotation):
        seed_data["lead"].is_active = False
        with pytest.raises(ValidationError, match="Lead"):
            make_quotation()


class TestQuotationStatus:
    def test_accept_reserves_lot(self, seed_data, make_quotation, db_session):
        quotation = make_quotation()
        pipeline_service.change_quotation_status(quotation.id, "accepted")
        assert db_session.get(Lot, seed_data["lot"].id).status == "reserved"

    def test_cancel_releases_lot(self, seed_data, make_quotation, db_session):
        quotation = make_quotation()
        pipeline_service.change_quotation_status(quotation.id, "canceled")
        assert db_session.get(Lot, seed_data["lot"].id).status == "available"

    def test_reissue_requotes_lot(self, seed_data, make_quotation, db_session):
        quotation = make_quotation()
        pipeline_service.change_quotation_status(quotation.id, "canceled")
        pipeline_service.change_quotation_status(quotation.id, "issued")
        assert db_session.get(Lot, seed_data["lot"].id).status == "quoted"

    def test_impossible_lot_move_rolls_back(self, seed_data, make_quotation, db_session):
        quotation = make_quotation()
        pipeline_service.change_quotation_status(quotation.id, "accepted")

        # reserved -> quoted is not in the lot table
        with pytest.raises(InvalidTransitionError):
            pipeline_service.change_quotation_status(quotation.id, "issued")

        assert db_session.get(Quotation, quotation.id).status == "accepted"
        assert db_session.get(Lot, seed_data["lot"].id).status == "reserved"

    def test_same_status_is_a_no_op(self, make_quotation):
        quotation = make_quotation()
        assert quotation_service.change_quotation_status(quotation.id, "issued").status == "issued"

    def test_unknown_status(self, make_quotation):
        quotation = make_quotation()
        with pytest.raises(ValidationError):
            quotation_service.change_quotation_status(quotation.id, "lost")

    def test_missing_quotation(self, db_session):
        with pytest.raises(NotFoundError):
            quotation_service.change_quotation_status("missing", "accepted")
