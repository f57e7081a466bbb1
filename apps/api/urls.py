"""URL configuration for the REST API."""

from django.urls import path

from . import views

app_name = "api"

urlpatterns = [
    path("health/", views.health_check, name="health"),
    path("v1/schedule/day/", views.DayScheduleView.as_view(), name="schedule_day"),
    path("v1/schedule/week/", views.WeekScheduleView.as_view(), name="schedule_week"),
    path("v1/schedule/month/", views.MonthScheduleView.as_view(), name="schedule_month"),
]
