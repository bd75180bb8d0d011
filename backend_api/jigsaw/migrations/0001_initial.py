from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SavedPuzzle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, help_text="Time when the record was created.")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Time when the record was last updated.")),
                ("record_id", models.CharField(db_index=True, help_text="SavedState id.", max_length=64, unique=True)),
                ("name", models.CharField(blank=True, default="", help_text="Display name of the save.", max_length=128)),
                ("version", models.PositiveSmallIntegerField(default=1, help_text="Schema version of the payload.")),
                ("payload", models.JSONField(help_text="Serialized SavedState record.")),
            ],
            options={
                "verbose_name": "Saved Puzzle",
                "verbose_name_plural": "Saved Puzzles",
                "ordering": ["-updated_at"],
            },
        ),
    ]
