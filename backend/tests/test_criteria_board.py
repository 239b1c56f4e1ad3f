"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pige CRM - Réconciliation du tableau de critères                            ║
║                                                                              ║
║  Un id est TOUJOURS dans exactement une collection,                          ║
║  quelle que soit la suite d'opérations.                                      ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import random

import pytest

from models.criterion import BoardSlot, CriteriaBoard, CriterionValueError
from services import criteria_board
from services.criteria_catalog import PREDEFINED_IDS, fresh_catalog


def _fresh_board() -> CriteriaBoard:
    return CriteriaBoard(available=fresh_catalog())


def _ids(criteria):
    return [c.id for c in criteria]


def _assert_partition(board: CriteriaBoard):
    ids = criteria_board.all_ids(board)
    assert len(ids) == len(set(ids)), f"id en double: {ids}"
    assert PREDEFINED_IDS <= set(ids)


class TestMove:

    def test_move_to_bucket_appends(self):
        board = criteria_board.move(_fresh_board(), "jardin", BoardSlot.IMPORTANT)
        board = criteria_board.move(board, "garage", BoardSlot.IMPORTANT)
        assert _ids(board.important) == ["jardin", "garage"]
        assert "jardin" not in _ids(board.available)
        _assert_partition(board)

    def test_original_board_untouched(self):
        board = _fresh_board()
        criteria_board.move(board, "budget", BoardSlot.ESSENTIAL)
        assert board.essential == []
        assert "budget" in _ids(board.available)

    def test_same_source_and_target_is_noop(self):
        board = _fresh_board()
        result = criteria_board.move(board, "budget", BoardSlot.AVAILABLE, source=BoardSlot.AVAILABLE)
        assert result is board

    def test_already_in_target_is_noop(self):
        board = criteria_board.move(_fresh_board(), "budget", BoardSlot.ESSENTIAL)
        assert criteria_board.move(board, "budget", BoardSlot.ESSENTIAL) is board

    def test_unknown_id_is_noop(self):
        board = _fresh_board()
        assert criteria_board.move(board, "inconnu", BoardSlot.SECONDARY) is board

    def test_move_back_to_available(self):
        board = criteria_board.move(_fresh_board(), "cave", BoardSlot.SECONDARY)
        board = criteria_board.move(board, "cave", BoardSlot.AVAILABLE)
        assert board.secondary == []
        assert _ids(board.available)[-1] == "cave"
        _assert_partition(board)

    def test_value_kept_across_moves(self):
        board = criteria_board.update_value(_fresh_board(), "budget", {"min": 300000, "max": 350000})
        board = criteria_board.move(board, "budget", BoardSlot.ESSENTIAL)
        board = criteria_board.move(board, "budget", BoardSlot.SECONDARY)
        _, budget = criteria_board.locate(board, "budget")
        assert budget.value.min == 300000
        assert budget.value.max == 350000


class TestUpdateValue:

    def test_range_updated_in_place(self):
        board = criteria_board.move(_fresh_board(), "budget", BoardSlot.ESSENTIAL)
        board = criteria_board.update_value(board, "budget", {"min": 250000, "max": 300000})
        slot, budget = criteria_board.locate(board, "budget")
        assert slot == BoardSlot.ESSENTIAL
        assert budget.kind == "numberRange"
        assert budget.value.min == 250000

    def test_select_value(self):
        board = criteria_board.update_value(_fresh_board(), "propertyType", "Appartement")
        _, criterion = criteria_board.locate(board, "propertyType")
        assert criterion.value == "Appartement"

    def test_select_value_outside_options(self):
        with pytest.raises(CriterionValueError):
            criteria_board.update_value(_fresh_board(), "propertyType", "Château")

    def test_range_with_wrong_shape(self):
        with pytest.raises(CriterionValueError):
            criteria_board.update_value(_fresh_board(), "budget", "beaucoup")

    def test_boolean_has_no_value(self):
        with pytest.raises(CriterionValueError):
            criteria_board.update_value(_fresh_board(), "jardin", True)

    def test_unknown_id_is_noop(self):
        board = _fresh_board()
        assert criteria_board.update_value(board, "inconnu", 3) is board


class TestDelete:

    def test_predefined_returns_to_available(self):
        board = criteria_board.move(_fresh_board(), "garage", BoardSlot.IMPORTANT)
        board = criteria_board.delete(board, "garage")
        assert board.important == []
        assert _ids(board.available)[-1] == "garage"
        _assert_partition(board)

    def test_free_text_is_discarded(self):
        board = criteria_board.add_free_text(_fresh_board(), "Vue mer", BoardSlot.SECONDARY)
        free_id = board.secondary[0].id
        board = criteria_board.delete(board, free_id)
        assert criteria_board.locate(board, free_id) is None
        assert free_id not in criteria_board.all_ids(board)

    def test_delete_from_available_is_noop(self):
        board = _fresh_board()
        assert criteria_board.delete(board, "jardin") is board


class TestFreeText:

    def test_added_to_bucket_trimmed(self):
        board = criteria_board.add_free_text(_fresh_board(), "  Proche gare  ", BoardSlot.IMPORTANT)
        criterion = board.important[0]
        assert criterion.kind == "freeText"
        assert criterion.label == "Proche gare"
        assert criterion.id.startswith("freetext-")

    def test_blank_text_is_noop(self):
        board = _fresh_board()
        assert criteria_board.add_free_text(board, "   ", BoardSlot.ESSENTIAL) is board

    def test_ids_unique(self):
        board = criteria_board.add_free_text(_fresh_board(), "Calme", BoardSlot.SECONDARY)
        board = criteria_board.add_free_text(board, "Calme", BoardSlot.SECONDARY)
        assert len(set(_ids(board.secondary))) == 2

    def test_available_is_not_a_bucket(self):
        with pytest.raises(ValueError):
            criteria_board.add_free_text(_fresh_board(), "Calme", BoardSlot.AVAILABLE)


class TestPartitionInvariant:

    def test_random_operation_sequence(self):
        rng = random.Random(42)
        slots = list(BoardSlot)
        board = _fresh_board()

        for step in range(300):
            ids = criteria_board.all_ids(board) + ["inconnu"]
            op = rng.choice(["move", "move", "delete", "free_text"])
            if op == "move":
                board = criteria_board.move(board, rng.choice(ids), rng.choice(slots))
            elif op == "delete":
                board = criteria_board.delete(board, rng.choice(ids))
            else:
                board = criteria_board.add_free_text(
                    board, f"texte {step}", rng.choice(criteria_board.PRIORITY_BUCKETS)
                )
            _assert_partition(board)

        print(f"✅ {len(criteria_board.all_ids(board))} critères, partition respectée")
