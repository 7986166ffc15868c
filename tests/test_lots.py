"""Tests for the lot inventory state machine.

Covers:
- can_transition against every (from, to) pair
- apply_status success / InvalidTransitionError / NotFoundError
- Lot creation rules (active block + project, case-insensitive numbers)
- Delete / deactivate refusal for reserved and sold lots
- Project and block setup
"""

import itertools

import pytest

from landsales.errors import InvalidTransitionError, NotFoundError, ValidationError
from landsales.models.lot import Lot
from landsales.services import lot_service, pipeline_service

ALLOWED = {
    ("available", "available"),
    ("available", "quoted"),
    ("available", "reserved"),
    ("available", "sold"),
    ("quoted", "available"),
    ("quoted", "reserved"),
    ("reserved", "available"),
    ("reserved", "sold"),
}
ALL_PAIRS = list(itertools.product(Lot.STATUSES, repeat=2))


def _lot_in(db_session, seed_data, status):
    lot = Lot(
        block_id=seed_data["block"].id,
        lot_number=f"T-{status}",
        area=120,
        price=2000,
        status=status,
    )
    db_session.add(lot)
    db_session.commit()
    return lot


class TestTransitionTable:
    @pytest.mark.parametrize("current,new", ALL_PAIRS)
    def test_can_transition_matches_table(self, current, new):
        assert lot_service.can_transition(current, new) is ((current, new) in ALLOWED)

    @pytest.mark.parametrize("current,new", sorted(ALLOWED))
    def test_allowed_pairs_succeed(self, seed_data, db_session, current, new):
        lot = _lot_in(db_session, seed_data, current)
        result = pipeline_service.change_lot_status(lot.id, new)
        assert result.status == new

    @pytest.mark.parametrize("current,new", sorted(set(ALL_PAIRS) - ALLOWED))
    def test_other_pairs_fail(self, seed_data, db_session, current, new):
        lot = _lot_in(db_session, seed_data, current)
        with pytest.raises(InvalidTransitionError) as exc:
            pipeline_service.change_lot_status(lot.id, new)

        assert exc.value.current == current
        assert exc.value.requested == new
        assert db_session.get(Lot, lot.id).status == current

    def test_unknown_status_is_rejected(self, seed_data):
        with pytest.raises(InvalidTransitionError):
            lot_service.apply_status(seed_data["lot"].id, "demolished")

    def test_missing_lot(self, db_session):
        with pytest.raises(NotFoundError):
            lot_service.apply_status("missing", "quoted")

    def test_sold_is_terminal(self, seed_data):
        lot_id = seed_data["lot"].id
        lot_service.apply_status(lot_id, "sold")
        for status in Lot.STATUSES:
            with pytest.raises(InvalidTransitionError, match="terminal"):
                lot_service.apply_status(lot_id, status)


class TestLotScenario:
    def test_quote_reserve_sell(self, seed_data, make_quotation, db_session):
        lot = seed_data["lot"]
        assert lot.status == "available"

        quotation = make_quotation()
        assert db_session.get(Lot, lot.id).status == "quoted"

        pipeline_service.change_quotation_status(quotation.id, "accepted")
        assert db_session.get(Lot, lot.id).status == "reserved"

        with pytest.raises(InvalidTransitionError):
            pipeline_service.change_lot_status(lot.id, "quoted")

        assert pipeline_service.change_lot_status(lot.id, "sold").status == "sold"
        with pytest.raises(InvalidTransitionError):
            pipeline_service.change_lot_status(lot.id, "available")


class TestCreateLot:
    def test_create(self, seed_data):
        lot = lot_service.create_lot(seed_data["block"].id, " 13 ", 150, "1999.999")
        assert lot.status == "available"
        assert lot.lot_number == "13"
        assert str(lot.price) == "2000.00"

    def test_duplicate_number_ignores_case(self, seed_data):
        lot_service.create_lot(seed_data["block"].id, "B-7", 150, 2000)
        with pytest.raises(ValidationError, match="already exists"):
            lot_service.create_lot(seed_data["block"].id, "b-7", 150, 2000)

    def test_same_number_in_another_block(self, seed_data):
        block = lot_service.create_block(seed_data["project"].id, "B")
        lot = lot_service.create_lot(block.id, "12", 150, 2000)
        assert lot.block_id == block.id

    def test_inactive_block(self, seed_data):
        seed_data["block"].is_active = False
        with pytest.raises(ValidationError, match="Block"):
            lot_service.create_lot(seed_data["block"].id, "20", 150, 2000)

    def test_inactive_project(self, seed_data):
        seed_data["project"].is_active = False
        with pytest.raises(ValidationError, match="project"):
            lot_service.create_lot(seed_data["block"].id, "20", 150, 2000)

    @pytest.mark.parametrize("area,price", [
        (0, 1000), (100, 0), (-5, 1000), (100, "abc"), ("NaN", 1000), (100, "Infinity"),
    ])
    def test_area_and_price_must_be_positive(self, seed_data, area, price):
        with pytest.raises(ValidationError):
            lot_service.create_lot(seed_data["block"].id, "30", area, price)


class TestUpdateLot:
    def test_renumber(self, seed_data):
        lot = lot_service.update_lot(seed_data["lot"].id, lot_number="12A", price=1800)
        assert lot.lot_number == "12A"
        assert str(lot.price) == "1800.00"
        assert lot.status == "available"

    def test_renumber_collision(self, seed_data):
        lot_service.create_lot(seed_data["block"].id, "14", 150, 2000)
        with pytest.raises(ValidationError, match="already exists"):
            lot_service.update_lot(seed_data["lot"].id, lot_number="14")

    def test_price_only_update_skips_number_check(self, seed_data):
        lot_service.create_lot(seed_data["block"].id, "c-1", 150, 2000)
        lot = lot_service.update_lot(seed_data["lot"].id, price=1600)
        assert lot.lot_number == "12"


class TestRemoval:
    @pytest.mark.parametrize("status", ["reserved", "sold"])
    def test_locked_lots_cannot_be_deleted(self, seed_data, db_session, status):
        lot = _lot_in(db_session, seed_data, status)
        with pytest.raises(ValidationError, match=f"delete a lot that is {status}"):
            lot_service.delete_lot(lot.id)

    @pytest.mark.parametrize("status", ["reserved", "sold"])
    def test_locked_lots_cannot_be_deactivated(self, seed_data, db_session, status):
        lot = _lot_in(db_session, seed_data, status)
        with pytest.raises(ValidationError, match="deactivate"):
            lot_service.deactivate_lot(lot.id)

    def test_delete_available_lot(self, seed_data, db_session):
        lot_id = seed_data["lot"].id
        pipeline_service.delete_lot(lot_id)
        assert db_session.get(Lot, lot_id) is None

    def test_quoted_lot_with_history_cannot_be_deleted(self, seed_data, make_quotation):
        make_quotation()
        with pytest.raises(ValidationError, match="quotations"):
            lot_service.delete_lot(seed_data["lot"].id)

    def test_deactivate_and_activate(self, seed_data):
        lot_id = seed_data["lot"].id
        assert pipeline_service.deactivate_lot(lot_id).is_active is False
        assert lot_service.list_available_lots() == []
        assert pipeline_service.activate_lot(lot_id).is_active is True
        assert [lot.id for lot in lot_service.list_available_lots()] == [lot_id]


class TestProjectsAndBlocks:
    def test_create_project_and_block(self, db_session):
        project = pipeline_service.create_project("Las Palmeras", "Chiclayo", currency="PEN")
        block = pipeline_service.create_block(project.id, "Z")
        assert block.project_id == project.id

    def test_duplicate_block_name(self, seed_data):
        with pytest.raises(ValidationError, match="already exists"):
            lot_service.create_block(seed_data["project"].id, "a")

    def test_invalid_currency(self, db_session):
        with pytest.raises(ValidationError, match="currency"):
            lot_service.create_project("X", "Y", currency="EUR")
