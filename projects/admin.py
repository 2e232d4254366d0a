# -*- coding: utf-8 -*-
# projects/admin.py

from __future__ import annotations

from django.contrib import admin

from .models import (
    Project,
    ProjectDeliverable,
    ProjectMember,
    ProjectMetric,
    Task,
    Workstream,
)


class ProjectMemberInline(admin.TabularInline):
    model = ProjectMember
    extra = 0
    raw_id_fields = ("user",)


class WorkstreamInline(admin.TabularInline):
    model = Workstream
    extra = 0
    fields = ("name", "sort_order")


class ProjectDeliverableInline(admin.TabularInline):
    model = ProjectDeliverable
    extra = 0
    fields = ("title", "due_date", "value", "status", "payment_status", "sort_order")


class ProjectMetricInline(admin.TabularInline):
    model = ProjectMetric
    extra = 0
    fields = ("name", "target", "sort_order")


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("name", "organization", "owner", "status", "priority", "progress", "updated_at")
    list_filter = ("status", "priority", "organization")
    search_fields = ("name", "client_name", "owner__username", "owner__email")
    raw_id_fields = ("owner",)
    inlines = [ProjectMemberInline, WorkstreamInline, ProjectDeliverableInline, ProjectMetricInline]


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ("name", "project", "workstream", "status", "priority", "assignee", "end_date", "source_report")
    list_filter = ("status", "priority", "tag")
    search_fields = ("name", "project__name")
    raw_id_fields = ("project", "workstream", "assignee", "source_report")
