from rest_framework import serializers
from .models import Department, Person


# Department Serializers
class DepartmentCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Department
        fields = ["name", "kpis"]


class DepartmentDetailSerializer(serializers.ModelSerializer):
    kpis = serializers.SerializerMethodField()
    people_count = serializers.SerializerMethodField()

    class Meta:
        model = Department
        fields = ["id", "name", "kpis", "people_count", "created_at", "updated_at"]

    def get_kpis(self, obj):
        return [{"id": str(kpi.pk), "name": kpi.name} for kpi in obj.kpis.all()]

    def get_people_count(self, obj):
        return obj.people.count()


# Person Serializers
class PersonCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Person
        fields = ["name", "email", "department"]


class PersonDetailSerializer(serializers.ModelSerializer):
    department = serializers.StringRelatedField(read_only=True)

    class Meta:
        model = Person
        fields = ["id", "name", "email", "department", "department_id", "created_at", "updated_at"]
