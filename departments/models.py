from django.db import models


class Department(models.Model):
    """A department and the KPIs it is measured on."""

    name = models.CharField(max_length=255, unique=True)
    kpis = models.ManyToManyField("indicators.KPI", blank=True, related_name="departments")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class Person(models.Model):
    """A person whose KPI entries roll up into their current department."""

    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    department = models.ForeignKey(Department, on_delete=models.SET_NULL, null=True, blank=True, related_name="people")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "people"

    def __str__(self) -> str:
        return self.name
