import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="KPI",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("unit", models.CharField(blank=True, max_length=50)),
                (
                    "optimum_type",
                    models.CharField(
                        choices=[
                            ("higher", "Higher is better"),
                            ("lower", "Lower is better"),
                            ("target", "On target is best"),
                        ],
                        default="higher",
                        max_length=16,
                    ),
                ),
                ("formula", models.CharField(help_text="Arithmetic expression over the KPI's variable names", max_length=500)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="KPIVariable",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=64)),
                ("label", models.CharField(blank=True, max_length=255)),
                ("position", models.PositiveIntegerField(default=0)),
                (
                    "kpi",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="variables",
                        to="indicators.kpi",
                    ),
                ),
            ],
            options={
                "ordering": ["position", "id"],
                "unique_together": {("kpi", "name")},
            },
        ),
    ]
