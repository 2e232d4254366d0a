# -*- coding: utf-8 -*-
# reports/admin.py

from __future__ import annotations

from django.contrib import admin

from .models import Report, ReportHighlight, ReportProject, ReportRisk


class ReportProjectInline(admin.TabularInline):
    model = ReportProject
    extra = 0
    fields = ("project", "status", "client_satisfaction", "progress_percent", "previous_progress", "sort_order")
    raw_id_fields = ("project",)


class ReportRiskInline(admin.TabularInline):
    model = ReportRisk
    fk_name = "report"
    extra = 0
    fields = ("type", "severity", "status", "description", "project", "originated_report")
    raw_id_fields = ("project", "originated_report")


class ReportHighlightInline(admin.TabularInline):
    model = ReportHighlight
    extra = 0
    fields = ("type", "description", "project", "sort_order")
    raw_id_fields = ("project",)


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ("title", "organization", "period_type", "period_start", "period_end", "created_by", "created_at")
    list_filter = ("period_type", "organization")
    search_fields = ("title",)
    date_hierarchy = "period_start"
    raw_id_fields = ("created_by",)
    inlines = [ReportProjectInline, ReportRiskInline, ReportHighlightInline]


@admin.register(ReportRisk)
class ReportRiskAdmin(admin.ModelAdmin):
    list_display = ("short_description", "report", "type", "severity", "status", "carried_over")
    list_filter = ("type", "severity", "status")
    search_fields = ("description",)
    raw_id_fields = ("report", "project", "originated_report")

    @admin.display(description="Description")
    def short_description(self, obj):
        return obj.description[:80]

    @admin.display(boolean=True, description="Carried over")
    def carried_over(self, obj):
        return obj.is_carried_over
