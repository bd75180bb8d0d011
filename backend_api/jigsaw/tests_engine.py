import asyncio
import random

from django.test import SimpleTestCase

from jigsaw.puzzles.hints import HintBudget, select_hints
from jigsaw.puzzles.pieces import ROTATIONS, STAGING, Difficulty, Piece, PuzzleSettings, manhattan_distance
from jigsaw.puzzles.rules import PositionRule, RotationRule, RuleRegistry, get_rule
from jigsaw.puzzles.session import Session, SessionState
from jigsaw.puzzles.shuffle import create_pieces, initialize_pieces
from jigsaw.puzzles.timers import AsyncioScheduler, ManualScheduler


def _pieces(positions, rotations=None):
    rotations = rotations or [0] * len(positions)
    return [
        Piece(id=i, home_position=i, position=pos, rotation=rot)
        for i, (pos, rot) in enumerate(zip(positions, rotations))
    ]


class HintTests(SimpleTestCase):
    def setUp(self):
        # 3x3: pieces 0, 1, 4 and 7 are one step from home, 3 and 5 are two steps away.
        self.pieces = _pieces([1, 0, 2, 5, 7, 3, 6, 4, 8])

    def test_at_most_two_near_correct_pieces(self):
        for seed in range(20):
            hinted = select_hints(self.pieces, 3, rng=random.Random(seed))
            self.assertEqual(len(hinted), 2)
            self.assertTrue(hinted <= {0, 1, 4, 7})
            for piece_id in hinted:
                piece = self.pieces[piece_id]
                self.assertEqual(manhattan_distance(piece.position, piece.home_position, 3), 1)

    def test_selection_is_random(self):
        seen = {select_hints(self.pieces, 3, rng=random.Random(seed)) for seed in range(50)}
        self.assertGreater(len(seen), 1)

    def test_single_candidate(self):
        pieces = _pieces([0, 3, STAGING, STAGING])
        self.assertEqual(select_hints(pieces, 2), frozenset({1}))

    def test_uses_active_grid_size(self):
        # In a 4x4 grid cell 4 is (1, 0) and home 3 is (0, 3): far apart,
        # although 3x3 arithmetic would call them neighbours.
        positions = list(range(16))
        positions[3], positions[4] = 4, 3
        positions[5], positions[6] = 6, 5
        hinted = select_hints(_pieces(positions), 4, limit=16)
        self.assertEqual(hinted, frozenset({5, 6}))

    def test_unrotated_requirement(self):
        pieces = _pieces([0, 1, 2, 3], [0, 90, 0, 0])
        self.assertEqual(select_hints(pieces, 2, rotation_required=True), frozenset())

    def test_budget(self):
        budget = HintBudget(2)
        self.assertTrue(budget.consume())
        self.assertTrue(budget.consume())
        self.assertFalse(budget.consume())
        self.assertEqual(budget.remaining, 0)
        budget.reset()
        self.assertEqual(budget.remaining, 2)


class ShuffleTests(SimpleTestCase):
    def test_initialize_is_a_permutation(self):
        pieces = initialize_pieces(4, rng=random.Random(1))
        self.assertEqual(len(pieces), 16)
        self.assertEqual(sorted(p.position for p in pieces), list(range(16)))
        self.assertTrue(all(p.home_position == p.id for p in pieces))
        self.assertTrue(all(p.rotation == 0 for p in pieces))

    def test_rotation_mode_assigns_rotations(self):
        pieces = initialize_pieces(6, rotation=True, rng=random.Random(2))
        self.assertTrue(all(p.rotation in ROTATIONS for p in pieces))
        self.assertGreater(len({p.rotation for p in pieces}), 1)

    def test_create_pieces_is_solved(self):
        self.assertTrue(all(p.position == p.home_position for p in create_pieces(3)))
        with self.assertRaises(ValueError):
            create_pieces(0)


class RuleTests(SimpleTestCase):
    def test_rules_by_mode(self):
        self.assertIsInstance(get_rule(PuzzleSettings(game_mode="classic")), PositionRule)
        self.assertFalse(get_rule(PuzzleSettings(game_mode="timed")).rotation_required)
        self.assertIsInstance(get_rule(PuzzleSettings(game_mode="challenge")), RotationRule)
        self.assertTrue(get_rule(PuzzleSettings(rotation_enabled=True)).rotation_required)

    def test_unknown_mode(self):
        with self.assertRaises(KeyError):
            RuleRegistry.get("zen")

    def test_rotation_counts(self):
        pieces = _pieces([0, 1, 2, 3], [0, 90, 0, 0])
        self.assertEqual(PositionRule().count_correct(pieces), 4)
        self.assertEqual(RotationRule().count_correct(pieces), 3)


class SessionTests(SimpleTestCase):
    def setUp(self):
        self.notes = []
        self.sounds = []
        self.session = Session(notify=self.notes.append, play_sound=self.sounds.append)

    def test_ticks_only_while_active(self):
        self.session.tick()
        self.assertEqual(self.session.time_spent, 0)
        self.session.start(Difficulty.EASY)
        self.session.tick()
        self.session.tick()
        self.session.toggle_pause()
        self.session.tick()
        self.assertEqual(self.session.time_spent, 2)
        self.assertEqual(self.session.formatted_time, "0:02")

    def test_timed_mode_pauses_when_time_is_up(self):
        self.session.start(game_mode="timed", time_limit=3)
        self.assertFalse(self.session.tick())
        self.assertFalse(self.session.tick())
        self.assertTrue(self.session.tick())
        self.assertEqual(self.session.state, SessionState.PAUSED)
        self.assertEqual(self.session.time_remaining, 0)
        self.assertEqual(self.notes[0]["title"], "Time's up!")

    def test_completion_is_terminal(self):
        self.session.start()
        self.session.increment_moves()
        self.assertFalse(self.session.check_completion(9, 8))
        self.assertTrue(self.session.check_completion(9, 9))
        self.assertFalse(self.session.check_completion(9, 9))
        self.assertEqual(self.session.toggle_pause(), SessionState.COMPLETE)
        self.session.increment_moves()
        self.session.tick()
        self.assertEqual(self.session.move_count, 1)
        self.assertEqual(self.session.time_spent, 0)
        self.assertEqual(self.sounds, ["complete"])
        self.assertEqual(len(self.notes), 1)
        self.assertIn("1 moves", self.notes[0]["description"])

    def test_change_difficulty_keeps_progress(self):
        self.session.start(Difficulty.EASY)
        self.session.increment_moves()
        self.session.change_difficulty(Difficulty.EXPERT)
        self.assertEqual(self.session.move_count, 1)
        self.assertEqual(self.session.difficulty, Difficulty.EXPERT)
        self.session.start()
        self.assertEqual(self.session.move_count, 0)
        self.assertEqual(self.session.difficulty, Difficulty.EXPERT)

    def test_failing_callbacks_are_swallowed(self):
        def broken(*args):
            raise RuntimeError("speaker unplugged")

        session = Session(notify=broken, play_sound=broken)
        session.start()
        self.assertTrue(session.check_completion(4, 4))


class ManualSchedulerTests(SimpleTestCase):
    def test_fires_until_cancelled(self):
        scheduler = ManualScheduler()
        fired = []
        tick = scheduler.every(1, lambda: fired.append("tick"))
        scheduler.every(5, lambda: fired.append("hint"))
        scheduler.advance(5)
        self.assertEqual(fired.count("tick"), 5)
        self.assertEqual(fired.count("hint"), 1)
        tick.cancel()
        scheduler.advance(5)
        self.assertEqual(fired.count("tick"), 5)
        self.assertEqual(fired.count("hint"), 2)
        self.assertEqual(len(scheduler.active), 1)


class AsyncioSchedulerTests(SimpleTestCase):
    def test_interval_fires_until_cancelled(self):
        fired = []

        async def run():
            handle = AsyncioScheduler().every(0.01, lambda: fired.append(1))
            await asyncio.sleep(0.1)
            handle.cancel()
            count = len(fired)
            await asyncio.sleep(0.05)
            return handle, count

        handle, count = asyncio.run(run())
        self.assertTrue(handle.cancelled)
        self.assertGreaterEqual(count, 2)
        self.assertEqual(len(fired), count)

    def test_cancel_from_inside_callback(self):
        fired = []

        async def run():
            def once():
                fired.append(1)
                handle.cancel()

            handle = AsyncioScheduler().every(0.01, once)
            await asyncio.sleep(0.05)

        asyncio.run(run())
        self.assertEqual(fired, [1])

    def test_needs_a_loop_outside_coroutines(self):
        with self.assertRaisesMessage(RuntimeError, "ManualScheduler"):
            AsyncioScheduler().every(1, lambda: None)

        loop = asyncio.new_event_loop()
        self.addCleanup(loop.close)
        fired = []
        handle = AsyncioScheduler(loop).every(0.01, lambda: fired.append(1))
        loop.run_until_complete(asyncio.sleep(0.05))
        handle.cancel()
        self.assertTrue(fired)
