from django.test import SimpleTestCase

from jigsaw.puzzles.grid import (
    annotate,
    build_grid,
    ensure_grid_integrity,
    find_trapped,
    place_piece,
    sort_for_rendering,
    validate_puzzle_state,
)
from jigsaw.puzzles.pieces import STAGING, Difficulty, Piece, PuzzleSettings, cell_of, is_correct


def _piece(piece_id, position, **kwargs):
    return Piece(id=piece_id, home_position=piece_id, position=position, **kwargs)


class PieceModelTests(SimpleTestCase):
    def test_predicates(self):
        home = _piece(4, 4)
        self.assertTrue(is_correct(home))
        self.assertFalse(is_correct(_piece(4, 4, rotation=90), rotation_required=True))
        self.assertTrue(is_correct(_piece(4, 4, rotation=90)))
        self.assertIsNone(cell_of(_piece(4, STAGING)))
        self.assertEqual(cell_of(_piece(4, 7)), 7)

    def test_difficulty_presets(self):
        self.assertEqual([d.grid_size for d in Difficulty], [3, 4, 5, 6])
        self.assertEqual(Difficulty.HARD.piece_count, 25)
        self.assertEqual(Difficulty.from_grid_size(6), Difficulty.EXPERT)
        self.assertIn("3×3", Difficulty.EASY.label)

    def test_challenge_mode_forces_rotation_and_clamps_time(self):
        settings = PuzzleSettings(game_mode="challenge", time_limit=5000)
        self.assertTrue(settings.rotation_enabled)
        self.assertTrue(settings.rotation_required)
        self.assertEqual(settings.time_limit, 600)
        with self.assertRaises(ValueError):
            PuzzleSettings(game_mode="zen")


class PlacementTests(SimpleTestCase):
    def test_drop_onto_occupied_cell_stages_previous_occupant(self):
        # [A, B, _] -> drop A on cell 1 -> [_, A, _], B staged
        pieces = [_piece(0, 0), _piece(1, 1)]
        result = place_piece(pieces, 0, 1, 3)
        self.assertEqual(build_grid(result, 3), [None, 0, None])
        self.assertEqual(result[1].position, STAGING)
        self.assertEqual(len(result), 2)

    def test_drop_onto_empty_cell(self):
        result = place_piece([_piece(0, 0), _piece(1, 1)], 1, 2, 3)
        self.assertEqual(build_grid(result, 3), [0, None, 1])

    def test_drop_to_staging(self):
        result = place_piece([_piece(0, 0, is_dragging=True)], 0, STAGING, 1)
        self.assertEqual(result[0].position, STAGING)
        self.assertFalse(result[0].is_dragging)

    def test_invalid_arguments_raise(self):
        with self.assertRaises(ValueError):
            place_piece([_piece(0, 0)], 7, 1, 4)
        with self.assertRaises(ValueError):
            place_piece([_piece(0, 0)], 0, 4, 4)


class ReconciliationTests(SimpleTestCase):
    def test_first_claimant_wins(self):
        pieces = [_piece(0, 2), _piece(1, 2), _piece(2, 0)]
        with self.assertLogs("jigsaw.puzzles.grid", level="WARNING"):
            result = ensure_grid_integrity(pieces, 4)
        self.assertEqual([p.position for p in result], [2, STAGING, 0])

    def test_out_of_range_positions_are_staged(self):
        with self.assertLogs("jigsaw.puzzles.grid", level="WARNING"):
            result = ensure_grid_integrity([_piece(0, 9), _piece(1, -5)], 4)
        self.assertEqual([p.position for p in result], [STAGING, STAGING])

    def test_idempotent(self):
        pieces = [_piece(0, 1), _piece(1, 1), _piece(2, 3), _piece(3, 12)]
        with self.assertLogs("jigsaw.puzzles.grid", level="WARNING"):
            once = ensure_grid_integrity(pieces, 4)
        twice = ensure_grid_integrity(once, 4)
        self.assertEqual(once, twice)
        self.assertEqual(build_grid(once, 4), build_grid(twice, 4))

    def test_validate_reports_each_violation(self):
        pieces = [_piece(0, 1), _piece(1, 1), _piece(2, 8)]
        with self.assertLogs("jigsaw.puzzles.grid", level="WARNING") as logs:
            self.assertFalse(validate_puzzle_state(pieces, 4))
        self.assertEqual(len(logs.records), 2)
        self.assertTrue(validate_puzzle_state([_piece(0, 0), _piece(1, STAGING)], 4))


class TrappedAndStackingTests(SimpleTestCase):
    def test_incorrect_piece_over_correct_piece_is_trapped(self):
        pieces = [_piece(2, 2), _piece(5, 2), _piece(6, STAGING)]
        self.assertEqual(find_trapped(pieces), {5})

    def test_nothing_trapped_without_overlap(self):
        self.assertEqual(find_trapped([_piece(0, 1), _piece(1, 0)]), set())

    def test_stacking_order(self):
        correct = _piece(0, 0)
        incorrect = _piece(1, 3)
        dragging = _piece(2, 5, is_dragging=True)
        trapped = _piece(4, 6)
        under = _piece(6, 6)
        selected = _piece(7, 8)
        pieces = [trapped, dragging, correct, selected, incorrect, under]

        annotations = annotate(pieces, selected_id=7, hinted=[1])
        ordered = sort_for_rendering(pieces, annotations)

        self.assertEqual([p.id for p in ordered], [1, 0, 6, 7, 2, 4])
        self.assertTrue(annotations[4].trapped)
        self.assertTrue(annotations[1].show_hint)
        self.assertFalse(annotations[0].show_hint)

    def test_ties_keep_prior_order(self):
        pieces = [_piece(3, 0), _piece(1, 2), _piece(2, 1)]
        ordered = sort_for_rendering(pieces, annotate(pieces))
        self.assertEqual([p.id for p in ordered], [3, 1, 2])
