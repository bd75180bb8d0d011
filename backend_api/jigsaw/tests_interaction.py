from django.test import SimpleTestCase

from jigsaw.puzzles.interaction import InteractionController
from jigsaw.puzzles.pieces import STAGING, Piece


def _pieces(positions):
    """Pieces whose id is the index in `positions` and whose position is the value."""
    return [Piece(id=i, home_position=i, position=pos) for i, pos in enumerate(positions)]


class InteractionControllerTests(SimpleTestCase):
    def setUp(self):
        self.sounds = []
        self.moves = 0
        self.changes = 0
        self.locked = False
        self.now = 0.0
        # 3x3 board, pieces 0..7 placed, piece 8 staged, cell 8 empty
        self.controller = InteractionController(
            pieces=_pieces([1, 0, 2, 3, 4, 5, 6, 7, STAGING]),
            grid_size=3,
            play_sound=self.sounds.append,
            on_move=self._on_move,
            on_change=self._on_change,
            is_locked=lambda: self.locked,
            rotation_enabled=True,
            clock=lambda: self.now,
        )

    def _on_move(self):
        self.moves += 1

    def _on_change(self, pieces):
        self.changes += 1

    def position(self, piece_id):
        return next(p.position for p in self.controller.pieces if p.id == piece_id)

    def test_pick_up_arms_piece(self):
        self.assertTrue(self.controller.pick_up(3))
        self.assertEqual(self.controller.armed_id, 3)
        self.assertTrue(self.controller.dragged_piece.is_dragging)
        self.assertEqual(self.sounds, ["pickup"])

    def test_drop_swaps_and_counts(self):
        self.controller.pick_up(0)
        self.assertTrue(self.controller.drop(0))
        self.assertEqual(self.position(0), 0)
        self.assertEqual(self.position(1), STAGING)
        self.assertIsNone(self.controller.armed_id)
        self.assertEqual(self.moves, 1)
        self.assertEqual(self.changes, 1)
        self.assertEqual(self.sounds, ["pickup", "place"])
        self.assertFalse(any(p.is_dragging for p in self.controller.pieces))

    def test_drop_on_own_cell_is_not_a_move(self):
        self.controller.pick_up(4)
        self.assertFalse(self.controller.drop(4))
        self.assertIsNone(self.controller.armed_id)
        self.assertEqual(self.moves, 0)

    def test_invalid_drop_keeps_piece_armed(self):
        self.controller.pick_up(4)
        self.assertFalse(self.controller.drop(42))
        self.assertEqual(self.controller.armed_id, 4)
        # Armed piece vanished underneath the UI
        self.controller.pieces = [p for p in self.controller.pieces if p.id != 4]
        self.assertFalse(self.controller.drop(8))
        self.assertEqual(self.controller.armed_id, 4)
        self.assertEqual(self.moves, 0)

    def test_non_integer_targets_are_ignored(self):
        self.controller.pick_up(0)
        for target in (None, "3", 1.5, True):
            self.assertFalse(self.controller.drop(target))
            self.assertFalse(self.controller.hover(target))
        self.assertEqual(self.controller.armed_id, 0)
        self.assertEqual(self.position(0), 1)
        self.assertEqual(self.position(1), 0)
        self.assertEqual(self.moves, 0)
        self.assertFalse(self.controller.rotate(2, None))
        self.assertFalse(self.controller.rotate(2, 90.0))
        self.assertEqual(next(p.rotation for p in self.controller.pieces if p.id == 2), 0)

    def test_drop_without_armed_piece_is_ignored(self):
        self.assertFalse(self.controller.drop(8))
        self.assertFalse(self.controller.pick_up(99))

    def test_staging_drop_always_counts(self):
        self.controller.pick_up(5)
        self.assertTrue(self.controller.drop(STAGING))
        self.assertEqual(self.position(5), STAGING)
        self.assertEqual(self.moves, 1)

    def test_directional_move_clamps_at_edges(self):
        # piece 0 sits at cell 1, row 0
        self.controller.pick_up(0)
        self.assertFalse(self.controller.move("up"))
        self.assertEqual(self.position(0), 1)
        self.assertEqual(self.controller.armed_id, 0)
        self.assertFalse(self.controller.move("sideways"))

    def test_directional_move_drops_on_neighbour(self):
        self.controller.pick_up(7)  # cell 7, row 2 col 1
        self.assertTrue(self.controller.move("right"))
        self.assertEqual(self.position(7), 8)
        self.controller.pick_up(7)
        self.assertTrue(self.controller.move("up"))
        self.assertEqual(self.position(7), 5)
        self.assertEqual(self.position(5), STAGING)
        self.assertEqual(self.moves, 2)

    def test_staged_piece_has_no_direction(self):
        self.controller.pick_up(8)
        self.assertFalse(self.controller.move("left"))

    def test_click_to_swap(self):
        self.assertTrue(self.controller.click(2))
        self.assertTrue(self.controller.click(3))
        self.assertEqual(self.position(2), 3)
        self.assertEqual(self.position(3), STAGING)
        self.assertEqual(self.moves, 1)

    def test_click_same_piece_deselects(self):
        self.controller.click(2)
        self.assertTrue(self.controller.click(2))
        self.assertIsNone(self.controller.armed_id)
        self.assertEqual(self.moves, 0)

    def test_click_staged_piece_switches_selection(self):
        self.controller.click(2)
        self.controller.click(8)
        self.assertEqual(self.controller.armed_id, 8)
        self.assertEqual(self.position(2), 2)

    def test_locked_board_ignores_input(self):
        self.locked = True
        self.assertFalse(self.controller.pick_up(1))
        self.assertFalse(self.controller.click(1))
        self.assertFalse(self.controller.rotate(1))
        self.assertEqual(self.sounds, [])

    def test_hover_is_throttled(self):
        self.assertFalse(self.controller.hover(3))
        self.controller.pick_up(0)
        self.assertTrue(self.controller.hover(3))
        self.now = 0.01
        self.assertFalse(self.controller.hover(4))
        self.now = 0.1
        self.assertTrue(self.controller.hover(4))
        self.now = 0.2
        self.assertFalse(self.controller.hover(4))
        self.assertEqual(self.controller.hover_cell, 4)
        self.assertEqual(self.position(0), 1)

    def test_rotate(self):
        self.assertTrue(self.controller.rotate(2))
        self.assertTrue(self.controller.rotate(2, 180))
        self.assertEqual(next(p.rotation for p in self.controller.pieces if p.id == 2), 270)
        self.assertFalse(self.controller.rotate(2, 45))
        self.assertEqual(self.moves, 2)

    def test_rotate_requires_rotation_enabled(self):
        self.controller.rotation_enabled = False
        self.assertFalse(self.controller.rotate(2))

    def test_reset_disarms(self):
        self.controller.pick_up(1)
        self.controller.reset(_pieces([0, 1, 2, 3]), grid_size=2)
        self.assertIsNone(self.controller.armed_id)
        self.assertEqual(self.controller.cell_count, 4)
