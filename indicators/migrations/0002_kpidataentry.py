import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("departments", "0001_initial"),
        ("indicators", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="KPIDataEntry",
            fields=[
                ("id", models.BigAutoField(primary_key=True, serialize=False)),
                ("period_year", models.PositiveIntegerField()),
                (
                    "period_month",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                    ),
                ),
                (
                    "period_quarter",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(4),
                        ],
                    ),
                ),
                ("variable_values", models.JSONField(default=dict)),
                ("date_recorded", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "kpi",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="entries",
                        to="indicators.kpi",
                    ),
                ),
                (
                    "person",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="kpi_entries",
                        to="departments.person",
                    ),
                ),
                (
                    "department",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="kpi_entries",
                        to="departments.department",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "KPI data entries",
                "ordering": ["-date_recorded"],
                "indexes": [
                    models.Index(fields=["kpi", "period_year", "period_month"], name="entry_kpi_period_idx"),
                ],
            },
        ),
    ]
