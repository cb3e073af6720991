from django.urls import path

from .views import (
    DepartmentListCreateAPIView,
    DepartmentDetailAPIView,
    PersonListCreateAPIView,
    PersonDetailAPIView,
)


urlpatterns = [
    path("departments/", DepartmentListCreateAPIView.as_view(), name="department-list"),
    path("departments/<int:pk>/", DepartmentDetailAPIView.as_view(), name="department-detail"),
    path("departments/people/", PersonListCreateAPIView.as_view(), name="person-list"),
    path("departments/people/<int:pk>/", PersonDetailAPIView.as_view(), name="person-detail"),
]
