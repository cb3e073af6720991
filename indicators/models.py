import uuid
from django.db import models
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.utils import timezone

from .domain import OptimumType


class KPI(models.Model):
    """A Key Performance Indicator computed from a formula over named variables."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    unit = models.CharField(max_length=50, blank=True)  # %, points, days, etc.
    optimum_type = models.CharField(max_length=16, choices=OptimumType.choices, default=OptimumType.HIGHER)
    formula = models.CharField(max_length=500, help_text="Arithmetic expression over the KPI's variable names")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class KPIVariable(models.Model):
    """A named input a KPI formula may reference."""

    kpi = models.ForeignKey(KPI, on_delete=models.CASCADE, related_name="variables")
    name = models.CharField(max_length=64)
    label = models.CharField(max_length=255, blank=True)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["position", "id"]
        unique_together = [["kpi", "name"]]

    def __str__(self) -> str:
        return f"{self.kpi.name}.{self.name}"


class KPIDataEntry(models.Model):
    """One recorded observation of a KPI's variables for a person or a department."""

    id = models.BigAutoField(primary_key=True)
    kpi = models.ForeignKey(KPI, on_delete=models.CASCADE, related_name="entries")
    person = models.ForeignKey("departments.Person", on_delete=models.CASCADE, null=True, blank=True, related_name="kpi_entries")
    department = models.ForeignKey("departments.Department", on_delete=models.CASCADE, null=True, blank=True, related_name="kpi_entries")
    period_year = models.PositiveIntegerField()
    period_month = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(12)]
    )
    period_quarter = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(4)]
    )
    variable_values = models.JSONField(default=dict)
    date_recorded = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-date_recorded"]
        verbose_name_plural = "KPI data entries"
        indexes = [
            models.Index(fields=["kpi", "period_year", "period_month"], name="entry_kpi_period_idx"),
        ]

    def __str__(self) -> str:
        month = f"-{self.period_month:02d}" if self.period_month else ""
        return f"{self.kpi.name} - {self.period_year}{month}"

    def clean(self):
        if self.person_id and self.department_id:
            raise ValidationError("An entry is recorded for a person or a department, not both")
        if not self.person_id and not self.department_id:
            raise ValidationError("An entry must be recorded for a person or a department")
