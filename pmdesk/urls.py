# pmdesk/urls.py
# -*- coding: utf-8 -*-
from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView

urlpatterns = [
    path("", RedirectView.as_view(pattern_name="accounts:dashboard", permanent=False)),
    path("admin/", admin.site.urls),
    path("accounts/", include("accounts.urls")),
    path("notifications/", include("notifications.urls")),
    path("projects/", include(("projects.urls", "projects"), namespace="projects")),
    path("reports/", include(("reports.urls", "reports"), namespace="reports")),
]
