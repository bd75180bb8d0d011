import json
import random

from django.test import SimpleTestCase

from jigsaw.puzzles.pieces import STAGING, Difficulty, PuzzleSettings
from jigsaw.puzzles.session import Session, SessionState
from jigsaw.puzzles.shuffle import initialize_pieces
from jigsaw.saves import CorruptSaveError, decode_saved_state, encode_saved_state
from jigsaw.serializers import MAX_NAME_LENGTH, SAVE_VERSION


class SaveCodecTests(SimpleTestCase):
    def setUp(self):
        self.settings = PuzzleSettings(game_mode="challenge", difficulty=Difficulty.EASY, time_limit=120)
        self.pieces = initialize_pieces(3, rotation=True, rng=random.Random(7))
        self.session = Session(difficulty=Difficulty.EASY, game_mode="challenge")
        self.session.start()
        self.session.move_count = 5
        self.session.time_spent = 42

    def _record(self, **overrides):
        record = encode_saved_state(
            self.session, self.pieces, self.settings, image_ref="https://img/cat.jpg", name="Cat"
        )
        record.update(overrides)
        return record

    def test_round_trip(self):
        record = self._record()
        self.assertEqual(record["version"], SAVE_VERSION)
        self.assertEqual(record["difficulty"], "3x3")

        loaded = decode_saved_state(record)

        self.assertEqual(
            [(p.id, p.position, p.rotation) for p in loaded.pieces],
            [(p.id, p.position, p.rotation) for p in self.pieces],
        )
        self.assertEqual(loaded.session.move_count, 5)
        self.assertEqual(loaded.session.time_spent, 42)
        self.assertEqual(loaded.session.state, SessionState.ACTIVE)
        self.assertEqual(loaded.settings, self.settings)
        self.assertEqual(loaded.image_ref, "https://img/cat.jpg")
        self.assertEqual(loaded.name, "Cat")
        self.assertEqual(loaded.record_id, record["id"])

    def test_json_text_is_accepted(self):
        loaded = decode_saved_state(json.dumps(self._record()))
        self.assertEqual(len(loaded.pieces), 9)

    def test_same_id_is_kept(self):
        first = self._record()
        again = encode_saved_state(self.session, self.pieces, self.settings, record_id=first["id"])
        self.assertEqual(again["id"], first["id"])
        self.assertNotEqual(self._record()["id"], first["id"])

    def test_long_name_is_shortened_and_still_loads(self):
        record = encode_saved_state(self.session, self.pieces, self.settings, name="n" * 200)
        self.assertEqual(len(record["name"]), MAX_NAME_LENGTH)
        loaded = decode_saved_state(record)
        self.assertEqual(loaded.name, "n" * MAX_NAME_LENGTH)

    def test_unencodable_snapshot_is_rejected(self):
        with self.assertRaises(CorruptSaveError):
            encode_saved_state(self.session, self.pieces, self.settings, record_id="x" * 100)
        with self.assertRaises(CorruptSaveError):
            encode_saved_state(self.session, self.pieces[:-1], self.settings)

    def test_invalid_utf8_bytes_are_corrupt(self):
        raw = json.dumps(self._record()).encode("utf-8").replace(b'"Cat"', b'"C\xffat"')
        with self.assertRaises(CorruptSaveError):
            decode_saved_state(raw)
        self.assertEqual(len(decode_saved_state(json.dumps(self._record()).encode("utf-8")).pieces), 9)

    def test_missing_optional_fields_use_defaults(self):
        record = self._record()
        for key in ("gameMode", "rotationEnabled", "timeLimit", "pieceShape", "visualTheme"):
            record.pop(key)
        loaded = decode_saved_state(record)
        self.assertEqual(loaded.settings.game_mode, "classic")
        self.assertFalse(loaded.settings.rotation_enabled)
        self.assertEqual(loaded.settings.time_limit, 300)

    def test_unknown_optional_values_use_defaults(self):
        with self.assertLogs("jigsaw.serializers", level="WARNING"):
            loaded = decode_saved_state(self._record(gameMode="zen", timeLimit="soon", visualTheme=None))
        self.assertEqual(loaded.settings.game_mode, "classic")
        self.assertEqual(loaded.settings.time_limit, 300)
        self.assertEqual(loaded.settings.visual_theme, "light")

    def test_conflicting_positions_are_reconciled(self):
        record = self._record()
        record["pieces"][1]["position"] = record["pieces"][0]["position"]
        record["pieces"][2]["position"] = 40
        with self.assertLogs("jigsaw.puzzles.grid", level="WARNING"):
            loaded = decode_saved_state(record)
        self.assertEqual(loaded.pieces[0].position, record["pieces"][0]["position"])
        self.assertEqual(loaded.pieces[1].position, STAGING)
        self.assertEqual(loaded.pieces[2].position, STAGING)

    def test_corrupted_records_are_rejected(self):
        broken = [
            "{not json",
            ["a", "list"],
            self._record(version=SAVE_VERSION + 1),
            self._record(difficulty="7x7"),
            self._record(moveCount=-1),
            self._record(pieces=self._record()["pieces"][:-1]),
        ]
        duplicated = self._record()
        duplicated["pieces"][1]["id"] = 0
        broken.append(duplicated)
        misplaced_home = self._record()
        misplaced_home["pieces"][3]["homePosition"] = 4
        broken.append(misplaced_home)

        for record in broken:
            with self.assertRaises(CorruptSaveError):
                decode_saved_state(record)

    def test_error_carries_record_id(self):
        with self.assertRaises(CorruptSaveError) as ctx:
            decode_saved_state(self._record(id="abc", timeSpent="long"))
        self.assertEqual(ctx.exception.record_id, "abc")
        self.assertIn("timeSpent", ctx.exception.detail)
