from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Department, Person
from .serializers import (
    DepartmentCreateSerializer,
    DepartmentDetailSerializer,
    PersonCreateSerializer,
    PersonDetailSerializer,
)


def not_found(message):
    return Response({"status": 404, "message": message}, status=status.HTTP_404_NOT_FOUND)


# Department Views
class DepartmentListCreateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        queryset = Department.objects.prefetch_related("kpis")
        serializer = DepartmentDetailSerializer(queryset, many=True)
        return Response({"status": 200, "data": serializer.data}, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = DepartmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"status": 201, "data": DepartmentDetailSerializer(serializer.instance).data}, status=status.HTTP_201_CREATED)


class DepartmentDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        try:
            obj = Department.objects.prefetch_related("kpis").get(pk=pk)
        except Department.DoesNotExist:
            return not_found("Department not found")
        return Response({"status": 200, "data": DepartmentDetailSerializer(obj).data}, status=status.HTTP_200_OK)

    def patch(self, request, pk):
        try:
            obj = Department.objects.get(pk=pk)
        except Department.DoesNotExist:
            return not_found("Department not found")
        serializer = DepartmentCreateSerializer(obj, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"status": 200, "data": DepartmentDetailSerializer(obj).data}, status=status.HTTP_200_OK)

    def delete(self, request, pk):
        try:
            obj = Department.objects.get(pk=pk)
        except Department.DoesNotExist:
            return not_found("Department not found")
        if obj.people.exists():
            return Response(
                {"status": 400, "message": "Cannot delete department that has people assigned"},
                status=status.HTTP_400_BAD_REQUEST
            )
        obj.delete()
        return Response({"status": 204, "message": "Department deleted successfully"}, status=status.HTTP_204_NO_CONTENT)


# Person Views
class PersonListCreateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        queryset = Person.objects.select_related("department")
        department_id = request.query_params.get("department")
        if department_id:
            if not department_id.isdigit():
                return Response(
                    {"status": 400, "message": "'department' must be a valid integer"},
                    status=status.HTTP_400_BAD_REQUEST
                )
            queryset = queryset.filter(department_id=int(department_id))
        serializer = PersonDetailSerializer(queryset, many=True)
        return Response({"status": 200, "data": serializer.data}, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = PersonCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"status": 201, "data": PersonDetailSerializer(serializer.instance).data}, status=status.HTTP_201_CREATED)


class PersonDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        try:
            obj = Person.objects.select_related("department").get(pk=pk)
        except Person.DoesNotExist:
            return not_found("Person not found")
        return Response({"status": 200, "data": PersonDetailSerializer(obj).data}, status=status.HTTP_200_OK)

    def patch(self, request, pk):
        # Moving a person to another department moves their entry history with them
        try:
            obj = Person.objects.get(pk=pk)
        except Person.DoesNotExist:
            return not_found("Person not found")
        serializer = PersonCreateSerializer(obj, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({"status": 200, "data": PersonDetailSerializer(obj).data}, status=status.HTTP_200_OK)

    def delete(self, request, pk):
        try:
            obj = Person.objects.get(pk=pk)
        except Person.DoesNotExist:
            return not_found("Person not found")
        obj.delete()
        return Response({"status": 204, "message": "Person deleted successfully"}, status=status.HTTP_204_NO_CONTENT)
