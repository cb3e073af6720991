import math
import re

from django.db import transaction
from rest_framework import serializers

from .domain import PerformanceStatus
from .dsl import FormulaSyntaxError, Parser, Tokenizer
from .evaluation import formula_identifiers
from .models import KPI, KPIVariable, KPIDataEntry

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# KPI Serializers
class KPIVariableSerializer(serializers.ModelSerializer):
    class Meta:
        model = KPIVariable
        fields = ["name", "label"]
        # Uniqueness is checked against the sibling variables in KPICreateSerializer
        validators = []

    def validate_name(self, value):
        if not IDENTIFIER_RE.match(value):
            raise serializers.ValidationError(
                "Variable names must start with a letter or underscore and contain only letters, digits and underscores"
            )
        return value


class KPICreateSerializer(serializers.ModelSerializer):
    """Serializer for creating KPIs together with their variables."""
    variables = KPIVariableSerializer(many=True)

    class Meta:
        model = KPI
        fields = ["name", "description", "unit", "optimum_type", "formula", "variables"]

    def validate(self, attrs):
        """
        Reject duplicate variables and formulas that do not parse or use undeclared names.

        On a partial update the stored formula and variables fill in whatever
        the request leaves out, so the combined definition is what gets checked.
        """
        if "formula" in attrs:
            formula = (attrs["formula"] or "").strip()
        else:
            formula = self.instance.formula if self.instance else ""
        if "variables" in attrs:
            variables = attrs["variables"]
        elif self.instance:
            variables = [{"name": v.name, "label": v.label} for v in self.instance.variables.all()]
        else:
            variables = []

        if not formula:
            raise serializers.ValidationError({"formula": "formula is required"})

        names = [v["name"] for v in variables]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise serializers.ValidationError({"variables": f"Duplicate variable names: {', '.join(duplicates)}"})

        try:
            Parser(Tokenizer(formula).generate_tokens()).parse()
            referenced = formula_identifiers(formula)
        except FormulaSyntaxError as e:
            raise serializers.ValidationError({"formula": str(e)})

        undeclared = [n for n in referenced if n not in names]
        if undeclared:
            raise serializers.ValidationError({"formula": f"Undeclared variables: {', '.join(undeclared)}"})

        attrs["formula"] = formula
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        variables = validated_data.pop("variables", [])
        kpi = KPI.objects.create(**validated_data)
        for position, variable in enumerate(variables):
            KPIVariable.objects.create(kpi=kpi, position=position, **variable)
        return kpi

    @transaction.atomic
    def update(self, instance, validated_data):
        variables = validated_data.pop("variables", None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        # Variables are replaced as a whole list
        if variables is not None:
            instance.variables.all().delete()
            for position, variable in enumerate(variables):
                KPIVariable.objects.create(kpi=instance, position=position, **variable)
        return instance


class KPIDetailSerializer(serializers.ModelSerializer):
    """Serializer for KPI detail view with related data."""
    variables = KPIVariableSerializer(many=True, read_only=True)
    entries_count = serializers.SerializerMethodField()

    class Meta:
        model = KPI
        fields = [
            "id", "name", "description", "unit", "optimum_type", "formula",
            "variables", "entries_count", "created_at", "updated_at"
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def get_entries_count(self, obj):
        """Return count of recorded entries."""
        return obj.entries.count()


# KPIDataEntry Serializers
class KPIDataEntryCreateSerializer(serializers.ModelSerializer):
    """Serializer for recording KPI data entries."""
    date_recorded = serializers.DateTimeField(required=False)

    class Meta:
        model = KPIDataEntry
        fields = [
            "kpi", "person", "department", "period_year", "period_month",
            "period_quarter", "variable_values", "date_recorded"
        ]

    def validate_variable_values(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("variable_values must be an object")
        for name, number in value.items():
            if isinstance(number, bool) or not isinstance(number, (int, float)):
                raise serializers.ValidationError(f"Value of '{name}' must be a number")
            try:
                finite = math.isfinite(float(number))
            except OverflowError:
                finite = False
            if not finite:
                raise serializers.ValidationError(f"Value of '{name}' must be a finite number")
        return value

    def validate(self, attrs):
        """Validate entry scope and that recorded values match the KPI's variables."""
        # An edit replaces the entry in place, so unchanged fields come from the stored entry
        person = self._merged(attrs, "person")
        department = self._merged(attrs, "department")
        if bool(person) == bool(department):
            raise serializers.ValidationError("Exactly one of person or department is required")

        kpi = self._merged(attrs, "kpi")
        declared = set(kpi.variables.values_list("name", flat=True))
        unknown = sorted(set(self._merged(attrs, "variable_values") or {}) - declared)
        if unknown:
            raise serializers.ValidationError(
                {"variable_values": f"Unknown variables for KPI {kpi.name}: {', '.join(unknown)}"}
            )
        return attrs

    def _merged(self, attrs, name):
        if name in attrs:
            return attrs[name]
        return getattr(self.instance, name, None)


class KPIDataEntrySerializer(serializers.ModelSerializer):
    """Serializer for KPI data entry detail view."""
    kpi = serializers.StringRelatedField(read_only=True)
    kpi_id = serializers.UUIDField(read_only=True)
    person = serializers.StringRelatedField(read_only=True)
    department = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = KPIDataEntry
        fields = [
            "id", "kpi", "kpi_id", "person", "person_id", "department", "department_id",
            "period_year", "period_month", "period_quarter", "variable_values", "date_recorded"
        ]


# Performance Serializers (over scoring engine dataclasses)
class StatusField(serializers.Field):
    def to_representation(self, value):
        return {"code": str(value), "label": PerformanceStatus(value).label}


class PerformanceResultSerializer(serializers.Serializer):
    kpi_id = serializers.CharField()
    kpi_name = serializers.CharField()
    raw_value = serializers.FloatField(allow_null=True)
    normalized_score = serializers.FloatField()
    unit = serializers.CharField()


class PersonPerformanceSerializer(serializers.Serializer):
    person_id = serializers.CharField()
    person_name = serializers.CharField()
    department_id = serializers.CharField(allow_null=True)
    department_name = serializers.CharField()
    overall_score = serializers.FloatField()
    status = StatusField()
    kpi_results = PerformanceResultSerializer(many=True)
    last_updated = serializers.DateTimeField(allow_null=True)


class DepartmentPerformanceSerializer(serializers.Serializer):
    department_id = serializers.CharField()
    department_name = serializers.CharField()
    overall_score = serializers.FloatField()
    status = StatusField()
    kpi_results = PerformanceResultSerializer(many=True)
    last_updated = serializers.DateTimeField(allow_null=True)
    kpi_count = serializers.IntegerField()
    people_count = serializers.IntegerField()


class TrendBucketSerializer(serializers.Serializer):
    period = serializers.CharField(source="label")
    year = serializers.IntegerField(source="period.year")
    month = serializers.IntegerField(source="period.month")
    values = serializers.DictField(child=serializers.FloatField())


class KpiComparisonSerializer(serializers.Serializer):
    kpi_id = serializers.CharField()
    kpi_name = serializers.CharField()
    unit = serializers.CharField()
    optimum_type = serializers.CharField()
    current_value = serializers.FloatField(allow_null=True)
    previous_value = serializers.FloatField(allow_null=True)
    current_score = serializers.FloatField()
    previous_score = serializers.FloatField()
    change_percent = serializers.FloatField(allow_null=True)
    status = StatusField()


class RadarPointSerializer(serializers.Serializer):
    name = serializers.CharField()
    value = serializers.FloatField()
    full_mark = serializers.FloatField()


class EvaluateFormulaSerializer(serializers.Serializer):
    variable_values = serializers.DictField(child=serializers.FloatField())
