from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("account", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ReferenceSequence",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "prefix",
                    models.CharField(
                        choices=[
                            ("PREP", "Picking session"),
                            ("DISP", "Dispatch session"),
                            ("LIQ", "Settlement"),
                        ],
                        max_length=8,
                    ),
                ),
                ("day", models.DateField()),
                ("last_value", models.PositiveIntegerField(default=0)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reference_sequences",
                        to="account.store",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("store", "prefix", "day"),
                        name="core_referencesequence_store_prefix_day_uniq",
                    )
                ],
            },
        ),
    ]
