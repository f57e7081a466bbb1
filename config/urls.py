"""
URL configuration for the Guardpost staffing console.

The console front end reads everything through the REST API; the Django
admin stays available for user management.
"""

from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    # Django admin
    path("admin/", admin.site.urls),
    # REST API
    path("api/", include("apps.api.urls", namespace="api")),
]

