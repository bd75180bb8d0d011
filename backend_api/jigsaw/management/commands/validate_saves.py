import json

from django.core.management.base import BaseCommand

from jigsaw.models import SavedPuzzle
from jigsaw.saves import CorruptSaveError, decode_saved_state, encode_saved_state
from jigsaw.storage import ModelSavedPuzzleStore


class Command(BaseCommand):
    help = "Decode every saved puzzle, report corrupted records and optionally repair or delete them."

    def add_arguments(self, parser):
        parser.add_argument(
            "--delete-corrupt",
            action="store_true",
            help="Delete records that cannot be decoded.",
        )
        parser.add_argument(
            "--repair",
            action="store_true",
            help="Rewrite records whose pieces had to be reconciled on load.",
        )

    def handle(self, *args, **options):
        # PUBLIC_INTERFACE
        # Read-only unless --delete-corrupt or --repair is given.
        store = ModelSavedPuzzleStore()
        valid = corrupt = repaired = 0
        for row in SavedPuzzle.objects.all():
            try:
                loaded = decode_saved_state(row.payload)
            except CorruptSaveError as exc:
                corrupt += 1
                self.stdout.write(self.style.ERROR(f"{row.record_id}: {exc} {exc.detail}"))
                if options["delete_corrupt"]:
                    store.delete(row.record_id)
                    self.stdout.write(self.style.WARNING(f"{row.record_id}: deleted."))
                continue

            valid += 1
            stored = row.payload if isinstance(row.payload, dict) else json.loads(row.payload)
            stored_positions = {p.get("id"): p.get("position") for p in stored.get("pieces", [])}
            if options["repair"] and any(stored_positions.get(p.id) != p.position for p in loaded.pieces):
                record = encode_saved_state(
                    loaded.session,
                    loaded.pieces,
                    loaded.settings,
                    image_ref=loaded.image_ref,
                    name=loaded.name,
                    record_id=loaded.record_id,
                )
                store.save(record)
                repaired += 1
                self.stdout.write(self.style.WARNING(f"{row.record_id}: conflicting pieces staged and saved."))

        summary = f"Checked {valid + corrupt} saved puzzles: {valid} valid, {corrupt} corrupted, {repaired} repaired."
        if corrupt:
            self.stdout.write(self.style.WARNING(summary))
        else:
            self.stdout.write(self.style.SUCCESS(summary))
