import logging
import uuid
from typing import Optional, Tuple

from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from departments.models import Department, Person

from .domain import (
    DepartmentScope,
    EntityKind,
    OrganizationScope,
    Period,
    PersonScope,
    Scope,
    TrendMeasure,
    ValueMode,
)
from .models import KPI, KPIDataEntry
from .orm_repository import DjangoRepository, kpi_to_domain
from .rollup import PerformanceRollup, radar_points
from .serializers import (
    DepartmentPerformanceSerializer,
    EvaluateFormulaSerializer,
    KPICreateSerializer,
    KPIDataEntryCreateSerializer,
    KPIDataEntrySerializer,
    KPIDetailSerializer,
    KpiComparisonSerializer,
    PerformanceResultSerializer,
    PersonPerformanceSerializer,
    RadarPointSerializer,
    TrendBucketSerializer,
)

logger = logging.getLogger(__name__)


def error(code: int, message: str) -> Response:
    return Response({"status": code, "message": message}, status=code)


def validate_kpi_uuid(pk: str) -> Tuple[Optional[uuid.UUID], Optional[Response]]:
    """
    Validate and convert a KPI primary key string to UUID.

    Args:
        pk: Primary key string to validate

    Returns:
        Tuple of (uuid_object, error_response):
        - On success: (UUID object, None)
        - On failure: (None, Response with error)
    """
    try:
        return uuid.UUID(str(pk)), None
    except (ValueError, TypeError):
        return None, error(status.HTTP_400_BAD_REQUEST, "Invalid KPI ID format")


def parse_period(params, default_to_current: bool = False) -> Tuple[Optional[Period], Optional[Response]]:
    """
    Read ``year``/``month``/``quarter`` query parameters into a Period.

    Without a year the result is None, or the current month when
    ``default_to_current`` is set.
    """
    year = params.get("year")
    if not year:
        if default_to_current:
            now = timezone.localdate()
            return Period(year=now.year, month=now.month), None
        return None, None

    try:
        month = params.get("month")
        quarter = params.get("quarter")
        period = Period(
            year=int(year),
            month=int(month) if month else None,
            quarter=int(quarter) if quarter else None,
        )
    except (ValueError, TypeError) as e:
        return None, error(status.HTTP_400_BAD_REQUEST, f"Invalid period: {e}")
    return period, None


def parse_scope(params) -> Tuple[Optional[Scope], Optional[Response]]:
    """
    Read ``scope`` (person, department or all) and ``id`` query parameters.

    A person or department that does not exist is a 404, the same as on the
    performance detail endpoints.
    """
    kind = params.get("scope", "all")
    if kind == "all":
        return OrganizationScope(), None

    if kind == EntityKind.PERSON:
        model, scope_class = Person, PersonScope
    elif kind == EntityKind.DEPARTMENT:
        model, scope_class = Department, DepartmentScope
    else:
        return None, error(status.HTTP_400_BAD_REQUEST, "'scope' must be one of 'person', 'department' or 'all'")

    entity_id = params.get("id")
    if not entity_id:
        return None, error(status.HTTP_400_BAD_REQUEST, f"'id' is required for scope '{kind}'")
    if not str(entity_id).isdigit():
        return None, error(status.HTTP_400_BAD_REQUEST, "'id' must be a valid integer")
    if not model.objects.filter(pk=int(entity_id)).exists():
        return None, error(status.HTTP_404_NOT_FOUND, f"{model._meta.verbose_name.capitalize()} not found")
    return scope_class(str(int(entity_id))), None


def parse_choice(params, name, choices, default) -> Tuple[Optional[str], Optional[Response]]:
    value = params.get(name, default)
    if value not in choices.values:
        return None, error(status.HTTP_400_BAD_REQUEST, f"'{name}' must be one of {', '.join(choices.values)}")
    return value, None


def get_rollup() -> PerformanceRollup:
    return PerformanceRollup(DjangoRepository())


# KPI Views
class KPIListCreateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        queryset = KPI.objects.prefetch_related("variables")
        serializer = KPIDetailSerializer(queryset, many=True)
        return Response({"status": 200, "data": serializer.data}, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = KPICreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Created KPI {serializer.instance.pk} ({serializer.instance.name})")
        return Response({"status": 201, "data": KPIDetailSerializer(serializer.instance).data}, status=status.HTTP_201_CREATED)


class KPIDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        kpi_uuid, error_response = validate_kpi_uuid(pk)
        if error_response:
            return error_response

        try:
            obj = KPI.objects.prefetch_related("variables").get(pk=kpi_uuid)
        except KPI.DoesNotExist:
            return error(status.HTTP_404_NOT_FOUND, "KPI not found")
        return Response({"status": 200, "data": KPIDetailSerializer(obj).data}, status=status.HTTP_200_OK)

    def patch(self, request, pk):
        kpi_uuid, error_response = validate_kpi_uuid(pk)
        if error_response:
            return error_response

        try:
            obj = KPI.objects.prefetch_related("variables").get(pk=kpi_uuid)
        except KPI.DoesNotExist:
            return error(status.HTTP_404_NOT_FOUND, "KPI not found")

        serializer = KPICreateSerializer(obj, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Updated KPI {obj.pk} ({obj.name})")
        obj = KPI.objects.prefetch_related("variables").get(pk=kpi_uuid)
        return Response({"status": 200, "data": KPIDetailSerializer(obj).data}, status=status.HTTP_200_OK)

    def delete(self, request, pk):
        kpi_uuid, error_response = validate_kpi_uuid(pk)
        if error_response:
            return error_response

        try:
            obj = KPI.objects.get(pk=kpi_uuid)
        except KPI.DoesNotExist:
            return error(status.HTTP_404_NOT_FOUND, "KPI not found")

        if obj.departments.exists():
            return error(status.HTTP_400_BAD_REQUEST, "Cannot delete KPI that is used in departments")

        obj.delete()
        return Response({"status": 204, "message": "KPI deleted successfully"}, status=status.HTTP_204_NO_CONTENT)


class KPIEvaluateAPIView(APIView):
    """Evaluate a KPI formula for ad-hoc variable values without recording them."""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        kpi_uuid, error_response = validate_kpi_uuid(pk)
        if error_response:
            return error_response

        try:
            kpi = kpi_to_domain(KPI.objects.prefetch_related("variables").get(pk=kpi_uuid))
        except KPI.DoesNotExist:
            return error(status.HTTP_404_NOT_FOUND, "KPI not found")

        serializer = EvaluateFormulaSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PerformanceRollup.evaluate_formula(kpi, serializer.validated_data["variable_values"])
        return Response({"status": 200, "data": {"kpi_id": kpi.id, "result": result}}, status=status.HTTP_200_OK)


class KPIAggregateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        kpi_uuid, error_response = validate_kpi_uuid(pk)
        if error_response:
            return error_response

        scope, error_response = parse_scope(request.query_params)
        if error_response:
            return error_response
        period, error_response = parse_period(request.query_params)
        if error_response:
            return error_response
        value_mode, error_response = parse_choice(request.query_params, "value", ValueMode, ValueMode.AVERAGE)
        if error_response:
            return error_response

        try:
            kpi = kpi_to_domain(KPI.objects.prefetch_related("variables").get(pk=kpi_uuid))
        except KPI.DoesNotExist:
            return error(status.HTTP_404_NOT_FOUND, "KPI not found")

        result = get_rollup().aggregate_for_scope(kpi, scope, period=period, value_mode=value_mode)
        return Response({"status": 200, "data": PerformanceResultSerializer(result).data}, status=status.HTTP_200_OK)


# KPIDataEntry Views
class KPIDataEntryListCreateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        queryset = KPIDataEntry.objects.select_related("kpi", "person", "department")

        kpi = request.query_params.get("kpi")
        if kpi:
            kpi_uuid, error_response = validate_kpi_uuid(kpi)
            if error_response:
                return error_response
            queryset = queryset.filter(kpi_id=kpi_uuid)

        for param, lookup in (("person", "person_id"), ("department", "department_id")):
            value = request.query_params.get(param)
            if not value:
                continue
            try:
                queryset = queryset.filter(**{lookup: int(value)})
            except (ValueError, TypeError):
                return error(status.HTTP_400_BAD_REQUEST, f"'{param}' must be a valid integer")

        period, error_response = parse_period(request.query_params)
        if error_response:
            return error_response
        if period is not None:
            queryset = queryset.filter(period_year=period.year)
            if period.month is not None:
                queryset = queryset.filter(period_month=period.month)

        serializer = KPIDataEntrySerializer(queryset, many=True)
        return Response({"status": 200, "data": serializer.data}, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = KPIDataEntryCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"status": 201, "data": KPIDataEntrySerializer(serializer.instance).data}, status=status.HTTP_201_CREATED)


class KPIDataEntryDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        try:
            obj = KPIDataEntry.objects.select_related("kpi", "person", "department").get(pk=pk)
        except KPIDataEntry.DoesNotExist:
            return error(status.HTTP_404_NOT_FOUND, "Entry not found")
        return Response({"status": 200, "data": KPIDataEntrySerializer(obj).data}, status=status.HTTP_200_OK)

    def patch(self, request, pk):
        try:
            obj = KPIDataEntry.objects.select_related("kpi").get(pk=pk)
        except KPIDataEntry.DoesNotExist:
            return error(status.HTTP_404_NOT_FOUND, "Entry not found")

        serializer = KPIDataEntryCreateSerializer(obj, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"status": 200, "data": KPIDataEntrySerializer(serializer.instance).data}, status=status.HTTP_200_OK)

    def delete(self, request, pk):
        try:
            obj = KPIDataEntry.objects.get(pk=pk)
        except KPIDataEntry.DoesNotExist:
            return error(status.HTTP_404_NOT_FOUND, "Entry not found")

        obj.delete()
        return Response({"status": 204, "message": "Entry deleted successfully"}, status=status.HTTP_204_NO_CONTENT)


# Performance Views
class PersonPerformanceListAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        period, error_response = parse_period(request.query_params)
        if error_response:
            return error_response

        performances = get_rollup().rank_people(
            department_id=request.query_params.get("department") or None,
            period=period,
        )
        serializer = PersonPerformanceSerializer(performances, many=True)
        return Response({"status": 200, "data": serializer.data}, status=status.HTTP_200_OK)


class PersonPerformanceDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        period, error_response = parse_period(request.query_params)
        if error_response:
            return error_response

        try:
            performance = get_rollup().rollup_for_entity(pk, EntityKind.PERSON, period=period)
        except LookupError:
            return error(status.HTTP_404_NOT_FOUND, "Person not found")
        return Response({"status": 200, "data": PersonPerformanceSerializer(performance).data}, status=status.HTTP_200_OK)


class DepartmentPerformanceListAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        period, error_response = parse_period(request.query_params)
        if error_response:
            return error_response

        serializer = DepartmentPerformanceSerializer(get_rollup().rank_departments(period=period), many=True)
        return Response({"status": 200, "data": serializer.data}, status=status.HTTP_200_OK)


class DepartmentPerformanceDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        period, error_response = parse_period(request.query_params)
        if error_response:
            return error_response

        try:
            performance = get_rollup().rollup_for_entity(pk, EntityKind.DEPARTMENT, period=period)
        except LookupError:
            return error(status.HTTP_404_NOT_FOUND, "Department not found")
        return Response({"status": 200, "data": DepartmentPerformanceSerializer(performance).data}, status=status.HTTP_200_OK)


class TrendAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        scope, error_response = parse_scope(request.query_params)
        if error_response:
            return error_response
        period, error_response = parse_period(request.query_params, default_to_current=True)
        if error_response:
            return error_response
        if period.month is None:
            return error(status.HTTP_400_BAD_REQUEST, "'month' is required with 'year'")
        measure, error_response = parse_choice(request.query_params, "measure", TrendMeasure, TrendMeasure.RAW)
        if error_response:
            return error_response

        try:
            window = int(request.query_params.get("window", settings.PERFTRACK_TREND_WINDOW_MONTHS))
        except (ValueError, TypeError):
            return error(status.HTTP_400_BAD_REQUEST, "'window' must be a valid integer")
        if not 1 <= window <= settings.PERFTRACK_MAX_TREND_WINDOW_MONTHS:
            return error(
                status.HTTP_400_BAD_REQUEST,
                f"'window' must be between 1 and {settings.PERFTRACK_MAX_TREND_WINDOW_MONTHS}",
            )

        buckets = get_rollup().trend_series(None, scope, period, window_months=window, measure=measure)
        return Response({"status": 200, "data": TrendBucketSerializer(buckets, many=True).data}, status=status.HTTP_200_OK)


class ComparisonAPIView(APIView):
    """Current month against the previous one, plus the radar chart points."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        scope, error_response = parse_scope(request.query_params)
        if error_response:
            return error_response
        period, error_response = parse_period(request.query_params, default_to_current=True)
        if error_response:
            return error_response
        if period.month is None:
            return error(status.HTTP_400_BAD_REQUEST, "'month' is required with 'year'")

        comparisons = get_rollup().compare_periods(None, scope, period)
        data = {
            "period": period.label,
            "previous_period": period.previous_month().label,
            "kpis": KpiComparisonSerializer(comparisons, many=True).data,
            "radar": RadarPointSerializer(radar_points(comparisons), many=True).data,
        }
        return Response({"status": 200, "data": data}, status=status.HTTP_200_OK)
