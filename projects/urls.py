# -*- coding: utf-8 -*-
# projects/urls.py
# Purpose:
# Project, member, task, workstream and deliverable routes

from __future__ import annotations

from django.urls import path

from projects import views

app_name = "projects"

urlpatterns = [
    path("", views.project_list, name="list"),
    path("new/", views.project_create, name="create"),
    path("new/guided/", views.project_wizard, name="wizard"),
    path("new/guided/cancel/", views.project_wizard_cancel, name="wizard_cancel"),
    path("performance/", views.performance, name="performance"),
    path("my-tasks/", views.my_task_list, name="my_tasks"),

    path("<int:project_id>/", views.project_detail, name="detail"),
    path("<int:project_id>/edit/", views.project_update, name="update"),
    path("<int:project_id>/delete/", views.project_delete, name="delete"),
    path("<int:project_id>/members/", views.project_members, name="members"),
    path("<int:project_id>/members/<int:user_id>/remove/", views.project_member_remove, name="member_remove"),

    # Tasks
    path("<int:project_id>/tasks/new/", views.task_create, name="task_create"),
    path("<int:project_id>/tasks/reorder/", views.task_reorder, name="task_reorder"),
    path("tasks/<int:task_id>/edit/", views.task_update, name="task_update"),
    path("tasks/<int:task_id>/status/", views.task_status, name="task_status"),
    path("tasks/<int:task_id>/delete/", views.task_delete, name="task_delete"),
    path("tasks/bulk-status/", views.tasks_bulk_status, name="tasks_bulk_status"),

    # Workstreams
    path("<int:project_id>/workstreams/new/", views.workstream_create, name="workstream_create"),
    path("<int:project_id>/workstreams/reorder/", views.workstream_reorder, name="workstream_reorder"),
    path("workstreams/<int:workstream_id>/edit/", views.workstream_update, name="workstream_update"),
    path("workstreams/<int:workstream_id>/delete/", views.workstream_delete, name="workstream_delete"),

    # Deliverables
    path("<int:project_id>/deliverables/new/", views.deliverable_create, name="deliverable_create"),
    path("<int:project_id>/deliverables/reorder/", views.deliverable_reorder, name="deliverable_reorder"),
    path("deliverables/<int:deliverable_id>/edit/", views.deliverable_update, name="deliverable_update"),
    path("deliverables/<int:deliverable_id>/delete/", views.deliverable_delete, name="deliverable_delete"),
]
