from django.urls import path
from .views import (
    KPIListCreateAPIView,
    KPIDetailAPIView,
    KPIEvaluateAPIView,
    KPIAggregateAPIView,
    KPIDataEntryListCreateAPIView,
    KPIDataEntryDetailAPIView,
    PersonPerformanceListAPIView,
    PersonPerformanceDetailAPIView,
    DepartmentPerformanceListAPIView,
    DepartmentPerformanceDetailAPIView,
    TrendAPIView,
    ComparisonAPIView,
)


urlpatterns = [
    # KPIs and their recorded entries
    path("kpis/", KPIListCreateAPIView.as_view(), name="kpi-list"),
    path("kpis/entries/", KPIDataEntryListCreateAPIView.as_view(), name="kpi-entry-list"),
    path("kpis/entries/<int:pk>/", KPIDataEntryDetailAPIView.as_view(), name="kpi-entry-detail"),
    path("kpis/<str:pk>/", KPIDetailAPIView.as_view(), name="kpi-detail"),
    path("kpis/<str:pk>/evaluate/", KPIEvaluateAPIView.as_view(), name="kpi-evaluate"),
    path("kpis/<str:pk>/aggregate/", KPIAggregateAPIView.as_view(), name="kpi-aggregate"),

    # Rollups
    path("performance/people/", PersonPerformanceListAPIView.as_view(), name="person-performance-list"),
    path("performance/people/<int:pk>/", PersonPerformanceDetailAPIView.as_view(), name="person-performance-detail"),
    path("performance/departments/", DepartmentPerformanceListAPIView.as_view(), name="department-performance-list"),
    path("performance/departments/<int:pk>/", DepartmentPerformanceDetailAPIView.as_view(), name="department-performance-detail"),
    path("performance/trend/", TrendAPIView.as_view(), name="performance-trend"),
    path("performance/comparison/", ComparisonAPIView.as_view(), name="performance-comparison"),
]
