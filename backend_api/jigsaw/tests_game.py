import asyncio
import random
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings

from jigsaw.game import ImageState, PuzzleGame
from jigsaw.models import SavedPuzzle
from jigsaw.puzzles.pieces import STAGING, Difficulty, Piece, PuzzleSettings
from jigsaw.puzzles.session import SessionState
from jigsaw.puzzles.timers import AsyncioScheduler, ManualScheduler
from jigsaw.storage import ModelSavedPuzzleStore, StorageError


def _pieces(positions, rotations=None):
    rotations = rotations or [0] * len(positions)
    return [
        Piece(id=i, home_position=i, position=pos, rotation=rot)
        for i, (pos, rot) in enumerate(zip(positions, rotations))
    ]


class FailingStore:
    def list(self):
        raise StorageError("disk on fire")

    def save(self, record):
        raise StorageError("quota exceeded")

    def delete(self, record_id):
        raise StorageError("read-only")


class GameTestMixin:
    def make_game(self, store=None, **settings):
        settings.setdefault("difficulty", Difficulty.EASY)
        self.sounds = []
        self.notes = []
        self.scheduler = ManualScheduler()
        return PuzzleGame(
            settings=PuzzleSettings(**settings),
            image_ref="https://img/lighthouse.jpg",
            scheduler=self.scheduler,
            store=store or ModelSavedPuzzleStore(),
            play_sound=self.sounds.append,
            notify=self.notes.append,
            rng=random.Random(11),
        )


class GameFlowTests(GameTestMixin, TestCase):
    def setUp(self):
        self.game = self.make_game()
        self.game.start_new_puzzle()

    def test_new_puzzle(self):
        self.assertEqual(len(self.game.pieces), 9)
        self.assertEqual(sorted(p.position for p in self.game.pieces), list(range(9)))
        self.assertEqual(self.game.session.state, SessionState.ACTIVE)
        self.assertEqual(len(self.scheduler.active), 2)

    def test_eight_moves_solve_the_puzzle(self):
        # Piece 0 is home; pieces 1..7 sit one cell right of home; piece 8 sits on cell 1.
        self.game.controller.reset(_pieces([0, 2, 3, 4, 5, 6, 7, 8, 1]))
        controller = self.game.controller

        controller.pick_up(1)
        controller.drop(1)  # piece 8 is evicted to staging
        for piece_id in range(2, 8):
            controller.pick_up(piece_id)
            controller.drop(piece_id)
        self.assertFalse(self.game.session.is_complete)
        controller.pick_up(8)
        controller.drop(8)

        session = self.game.session
        self.assertTrue(session.is_complete)
        self.assertEqual(session.move_count, 8)
        self.assertEqual(session.correct_piece_count, 9)
        self.assertIn("complete", self.sounds)
        self.assertEqual(self.notes[-1]["title"], "Puzzle Complete!")
        self.assertEqual(self.scheduler.active, [])

        # Completed games ignore further input.
        self.assertFalse(controller.pick_up(3))
        self.assertEqual(self.game.toggle_pause(), SessionState.COMPLETE)

    def test_moving_a_piece_away_from_home_is_incomplete(self):
        self.game.controller.reset(_pieces([0, 1, 2, 3, 4, 5, 6, 8, STAGING]))
        self.game.controller.pick_up(7)
        self.game.controller.drop(7)
        self.assertFalse(self.game.session.is_complete)
        self.assertEqual(self.game.session.correct_piece_count, 8)

    def test_positions_stay_unique_and_in_range(self):
        controller = self.game.controller
        rng = random.Random(5)
        for _ in range(200):
            controller.click(rng.randrange(9))
            if rng.random() < 0.3:
                controller.move(rng.choice(["up", "down", "left", "right"]))
            if rng.random() < 0.1:
                controller.drop(STAGING)
            if self.game.session.is_complete:
                break
            placed = [p.position for p in self.game.pieces if p.position != STAGING]
            self.assertEqual(len(placed), len(set(placed)))
            self.assertTrue(all(0 <= pos < 9 for pos in placed))

    def test_timer_ticks_pauses_and_resumes(self):
        self.scheduler.advance(3)
        self.assertEqual(self.game.session.time_spent, 3)
        self.assertEqual(self.game.toggle_pause(), SessionState.PAUSED)
        self.assertEqual(self.scheduler.active, [])
        self.scheduler.advance(5)
        self.assertEqual(self.game.session.time_spent, 3)
        self.assertFalse(self.game.controller.pick_up(0))
        self.game.toggle_pause()
        self.scheduler.advance(2)
        self.assertEqual(self.game.session.time_spent, 5)

    def test_restarting_replaces_timers(self):
        self.game.start_new_puzzle()
        self.game.change_difficulty(Difficulty.MEDIUM)
        self.assertEqual(len(self.scheduler.active), 2)
        self.assertEqual(len(self.game.pieces), 16)
        self.scheduler.advance(1)
        self.assertEqual(self.game.session.time_spent, 1)

    def test_hint_tick_highlights_near_pieces(self):
        self.game.controller.reset(_pieces([1, 0, 2, 5, 7, 3, 6, 4, 8]))
        self.scheduler.advance(5)
        self.assertEqual(len(self.game.hinted), 2)
        self.assertTrue(self.game.hinted <= {0, 1, 4, 7})
        flagged = [p.id for p, flags in self.game.render() if flags.show_hint]
        self.assertEqual(sorted(flagged), sorted(self.game.hinted))

    @override_settings(JIGSAW={"HINTS_PER_SESSION": 1})
    def test_requested_hints_are_limited(self):
        game = self.make_game()
        game.start_new_puzzle()
        game.controller.reset(_pieces([1, 0, 2, 3, 4, 5, 6, 7, 8]))
        self.assertEqual(game.request_hint(), frozenset({0, 1}))
        self.assertEqual(game.request_hint(), frozenset())

    def test_render_marks_selection_and_draw_order(self):
        self.game.controller.reset(_pieces([0, 2, 1, 3, 4, 5, 6, 7, 8]))
        self.game.controller.pick_up(1)
        rendered = self.game.render()
        self.assertEqual(rendered[-1][0].id, 1)
        self.assertTrue(rendered[-1][1].dragging)
        self.assertTrue(rendered[-1][1].selected)
        self.assertEqual(rendered[0][0].id, 2)

    def test_board_and_staging_views(self):
        self.game.controller.reset(_pieces([0, 1, 2, 3, 4, 5, 6, 7, STAGING]))
        self.assertEqual([p.id for p in self.game.staged_pieces], [8])
        self.assertEqual(len(self.game.board_pieces), 8)


class TimedAndChallengeTests(GameTestMixin, TestCase):
    def test_time_runs_out(self):
        game = self.make_game(game_mode="timed", time_limit=30)
        game.start_new_puzzle()
        self.assertEqual(game.time_remaining, "0:30")
        self.scheduler.advance(30)
        self.assertEqual(game.session.state, SessionState.PAUSED)
        self.assertEqual(self.scheduler.active, [])
        self.assertEqual(self.notes[-1]["title"], "Time's up!")
        self.scheduler.advance(10)
        self.assertEqual(game.session.time_spent, 30)

    def test_challenge_requires_zero_rotation(self):
        game = self.make_game(game_mode="challenge")
        game.start_new_puzzle()
        game.controller.reset(_pieces(list(range(8)) + [STAGING], [0] * 7 + [90, 0]))
        game.controller.pick_up(8)
        game.controller.drop(8)
        self.assertFalse(game.session.is_complete)
        self.assertEqual(game.session.correct_piece_count, 8)

        game.controller.rotate(7)
        game.controller.rotate(7)
        self.assertFalse(game.session.is_complete)
        game.controller.rotate(7)
        self.assertTrue(game.session.is_complete)
        self.assertEqual(game.session.move_count, 4)


class ImageLoadingTests(GameTestMixin, TestCase):
    def test_failed_image_keeps_current_puzzle(self):
        game = self.make_game()
        game.start_new_puzzle()
        before = list(game.pieces)

        async def broken(ref):
            raise OSError("404")

        self.assertFalse(asyncio.run(game.load_image("https://img/missing.jpg", broken)))
        self.assertEqual(game.image_state, ImageState.ERROR)
        self.assertEqual(game.image_ref, "https://img/lighthouse.jpg")
        self.assertEqual(game.pieces, before)
        self.assertEqual(self.notes[-1]["description"], "Please try another image.")

    def test_loaded_image_deals_new_puzzle(self):
        game = self.make_game()
        states = []

        async def loader(ref):
            states.append(game.image_state)

        self.assertTrue(asyncio.run(game.load_image("https://img/forest.jpg", loader)))
        self.assertEqual(states, [ImageState.LOADING])
        self.assertEqual(game.image_state, ImageState.READY)
        self.assertEqual(game.image_ref, "https://img/forest.jpg")
        self.assertEqual(len(game.pieces), 9)
        self.assertTrue(game.session.is_active)


class SaveLoadTests(GameTestMixin, TestCase):
    def setUp(self):
        self.game = self.make_game(rotation_enabled=True)
        self.game.start_new_puzzle()
        self.game.controller.pick_up(0)
        self.game.controller.drop(STAGING)
        self.scheduler.advance(4)

    def test_save_and_load(self):
        record = self.game.save("Lighthouse")
        self.assertEqual(SavedPuzzle.objects.count(), 1)
        self.game.save("Lighthouse again", record_id=record["id"])
        self.assertEqual(SavedPuzzle.objects.count(), 1)

        other = self.make_game()
        other.start_new_puzzle(Difficulty.HARD)
        saves = other.list_saves()
        self.assertEqual(len(saves), 1)
        self.assertTrue(other.load(saves[0]))

        self.assertEqual(
            [(p.id, p.position, p.rotation) for p in other.pieces],
            [(p.id, p.position, p.rotation) for p in self.game.pieces],
        )
        self.assertEqual(other.session.move_count, 1)
        self.assertEqual(other.session.time_spent, 4)
        self.assertEqual(other.grid_size, 3)
        self.assertTrue(other.settings.rotation_enabled)
        self.assertEqual(len(self.scheduler.active), 2)
        self.scheduler.advance(1)
        self.assertEqual(other.session.time_spent, 5)

    def test_corrupted_saves_are_reported_and_skipped(self):
        self.game.save("good")
        SavedPuzzle.objects.create(record_id="bad", payload={"id": "bad", "pieces": "nope"})
        saves = self.game.list_saves()
        self.assertEqual([s["name"] for s in saves], ["good"])
        self.assertEqual(self.notes[-1]["title"], "Some saves could not be read")

    def test_loading_corrupted_record_changes_nothing(self):
        before = list(self.game.pieces)
        self.assertFalse(self.game.load({"id": "bad"}))
        self.assertEqual(self.game.pieces, before)
        self.assertEqual(self.game.session.move_count, 1)
        self.assertEqual(self.notes[-1]["title"], "Could not load puzzle")

    def test_loading_finished_puzzle_is_complete(self):
        self.game.controller.reset(_pieces(list(range(9))))
        record = self.game.save()
        other = self.make_game()
        self.assertTrue(other.load(record))
        self.assertTrue(other.session.is_complete)
        self.assertEqual(self.scheduler.active, [])
        self.assertNotIn("complete", self.sounds)

    def test_delete(self):
        record = self.game.save()
        self.assertTrue(self.game.delete_save(record["id"]))
        self.assertFalse(self.game.delete_save(record["id"]))
        self.assertEqual(self.game.list_saves(), [])

    def test_long_name_round_trips(self):
        record = self.game.save("n" * 200)
        self.assertEqual([s["id"] for s in self.game.list_saves()], [record["id"]])
        self.assertTrue(self.game.load(record))

    def test_invalid_snapshot_is_not_stored(self):
        self.assertIsNone(self.game.save("x", record_id="x" * 100))
        self.assertEqual(SavedPuzzle.objects.count(), 0)
        self.assertEqual(self.notes[-1]["title"], "Save failed")

    def test_store_failures_leave_state_untouched(self):
        game = self.make_game(store=FailingStore())
        game.start_new_puzzle()
        before = list(game.pieces)
        self.assertIsNone(game.save("x"))
        self.assertEqual(self.notes[-1]["title"], "Save failed")
        self.assertEqual(game.list_saves(), [])
        self.assertFalse(game.delete_save("x"))
        self.assertEqual(self.notes[-1]["title"], "Delete failed")
        self.assertEqual(game.pieces, before)



class BrokenScheduler:
    def every(self, seconds, callback):
        raise RuntimeError("no event loop")


class SchedulerTests(GameTestMixin, TestCase):
    def test_default_scheduler_outside_event_loop(self):
        game = PuzzleGame(settings=PuzzleSettings(difficulty=Difficulty.EASY), image_ref="x")
        with self.assertRaises(RuntimeError):
            game.start_new_puzzle()
        self.assertEqual(game.session.state, SessionState.NOT_STARTED)
        self.assertEqual(game.pieces, [])

    def test_loop_bound_scheduler_from_sync_code(self):
        loop = asyncio.new_event_loop()
        self.addCleanup(loop.close)
        game = PuzzleGame(settings=PuzzleSettings(difficulty=Difficulty.EASY), scheduler=AsyncioScheduler(loop))
        self.assertEqual(len(game.start_new_puzzle()), 2)
        self.assertTrue(game.session.is_active)
        game.dispose()

    @override_settings(JIGSAW={"TICK_SECONDS": 0.01, "HINT_INTERVAL_SECONDS": 0.05})
    def test_default_scheduler_inside_event_loop(self):
        game = PuzzleGame(settings=PuzzleSettings(difficulty=Difficulty.EASY))

        async def play():
            game.start_new_puzzle()
            await asyncio.sleep(0.1)
            game.dispose()
            spent = game.session.time_spent
            await asyncio.sleep(0.05)
            return spent

        spent = asyncio.run(play())
        self.assertGreaterEqual(spent, 2)
        self.assertEqual(game.session.time_spent, spent)

    def _played_game(self):
        game = self.make_game()
        game.start_new_puzzle()
        game.controller.pick_up(0)
        game.controller.drop(STAGING)
        return game

    def test_failed_restart_keeps_current_game(self):
        game = self._played_game()
        before = list(game.pieces)
        game.scheduler = BrokenScheduler()
        with self.assertRaises(RuntimeError):
            game.start_new_puzzle(Difficulty.HARD)
        self.assertEqual(game.pieces, before)
        self.assertEqual(game.session.move_count, 1)
        self.assertEqual(game.settings.difficulty, Difficulty.EASY)
        self.assertEqual(len(self.scheduler.active), 2)

    def test_failed_resume_stays_paused(self):
        game = self._played_game()
        game.toggle_pause()
        game.scheduler = BrokenScheduler()
        with self.assertRaises(RuntimeError):
            game.toggle_pause()
        self.assertEqual(game.session.state, SessionState.PAUSED)

    def test_failed_load_keeps_current_game(self):
        game = self._played_game()
        record = game.save("snapshot")
        game.controller.pick_up(1)
        game.controller.drop(STAGING)
        before = list(game.pieces)
        game.scheduler = BrokenScheduler()
        with self.assertRaises(RuntimeError):
            game.load(record)
        self.assertEqual(game.pieces, before)
        self.assertEqual(game.session.move_count, 2)

    def test_failed_deal_after_image_load_keeps_image(self):
        game = self._played_game()
        game.scheduler = BrokenScheduler()

        async def loader(ref):
            return None

        with self.assertRaises(RuntimeError):
            asyncio.run(game.load_image("https://img/forest.jpg", loader))
        self.assertEqual(game.image_ref, "https://img/lighthouse.jpg")
        self.assertEqual(game.image_state, ImageState.READY)


class ValidateSavesCommandTests(GameTestMixin, TestCase):
    def setUp(self):
        game = self.make_game()
        game.start_new_puzzle()
        self.record = game.save("ok")
        SavedPuzzle.objects.create(record_id="bad", payload="garbage")

    def test_reports_corrupted_records(self):
        out = StringIO()
        call_command("validate_saves", stdout=out)
        self.assertIn("1 valid, 1 corrupted", out.getvalue())
        self.assertEqual(SavedPuzzle.objects.count(), 2)

    def test_delete_corrupt(self):
        call_command("validate_saves", delete_corrupt=True, stdout=StringIO())
        self.assertEqual(list(SavedPuzzle.objects.values_list("record_id", flat=True)), [self.record["id"]])

    def test_repair_stages_conflicting_pieces(self):
        row = SavedPuzzle.objects.get(record_id=self.record["id"])
        payload = dict(row.payload)
        pieces = [dict(p) for p in payload["pieces"]]
        pieces[1]["position"] = pieces[0]["position"]
        payload["pieces"] = pieces
        row.payload = payload
        row.save()

        out = StringIO()
        call_command("validate_saves", repair=True, stdout=out)

        self.assertIn("1 repaired", out.getvalue())
        repaired = SavedPuzzle.objects.get(record_id=self.record["id"]).payload
        self.assertEqual(repaired["pieces"][1]["position"], STAGING)
