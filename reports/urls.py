# -*- coding: utf-8 -*-
# reports/urls.py
# Purpose:
# Report list/detail, Report Wizard and AI suggestion routes

from __future__ import annotations

from django.urls import path

from . import views

app_name = "reports"

urlpatterns = [
    path("", views.report_list, name="list"),
    path("<int:report_id>/", views.report_detail, name="detail"),
    path("<int:report_id>/delete/", views.report_delete, name="delete"),
    path("<int:report_id>/edit/", views.wizard_edit, name="wizard_edit"),
    path("<int:report_id>/action-items/", views.action_item_create, name="action_item_create"),
    path("project/<int:project_id>/", views.project_report_list, name="project_reports"),

    # Wizard
    path("new/", views.wizard_start, name="wizard_start"),
    path("wizard/", views.wizard, name="wizard"),
    path("wizard/cancel/", views.wizard_cancel, name="wizard_cancel"),

    # AI (JSON)
    path("wizard/ai/narrative/", views.ai_narrative, name="ai_narrative"),
    path("wizard/ai/risks/", views.ai_risks, name="ai_risks"),
    path("wizard/ai/highlights/", views.ai_highlights, name="ai_highlights"),
]
