# -*- coding: utf-8 -*-
# projects/services_tasks.py
#
# Task lifecycle: create/update/status/assignee/delete, ordering within a
# (project, workstream) bucket, and bulk status changes.

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional

from django.contrib.auth.models import AbstractUser
from django.db import transaction
from django.db.models import Max
from django.urls import reverse

from accounts.models import OrganizationMember
from notifications.models import Notification
from notifications.services import notify
from projects.enums import TaskPriority, TaskStatus
from projects.models import Project, Task, Workstream
from projects.services_project_membership import (
    ProjectPermissionError,
    accessible_projects_qs,
    can_edit_tasks,
)


logger = logging.getLogger("pmdesk.projects")

TASK_EDITABLE_FIELDS = ("name", "description", "priority", "tag", "start_date", "end_date")


class TaskValidationError(ValueError):
    pass


def _require_task_editor(project: Project, user: AbstractUser) -> None:
    if not can_edit_tasks(project, user):
        raise ProjectPermissionError("You do not have permission to edit tasks in this project.")


def _check_workstream(project: Project, workstream: Optional[Workstream]) -> None:
    if workstream is not None and workstream.project_id != project.id:
        raise TaskValidationError("Workstream belongs to another project.")


def _check_assignee(project: Project, assignee: Optional[AbstractUser]) -> None:
    if assignee is None:
        return
    if not OrganizationMember.objects.filter(organization_id=project.organization_id, user=assignee).exists():
        raise TaskValidationError("Assignee must be a member of this organization.")


def next_sort_order(project: Project, workstream: Optional[Workstream]) -> int:
    qs = Task.objects.filter(project=project, workstream=workstream)
    current = qs.aggregate(m=Max("sort_order"))["m"]
    return (current if current is not None else -1) + 1


def _notify_assignee(task: Task, actor: AbstractUser, *, title: str) -> None:
    if task.assignee_id is None or task.assignee_id == actor.id:
        return
    notify(
        organization=task.project.organization,
        recipients=[task.assignee],
        actor=actor,
        type=Notification.Type.TASK_UPDATE,
        title=title,
        project=task.project,
        task=task,
        link_url=reverse("projects:detail", args=[task.project_id]),
    )


@transaction.atomic
def create_task(
    *,
    project: Project,
    actor: AbstractUser,
    name: str,
    description: str = "",
    workstream: Optional[Workstream] = None,
    status: str = TaskStatus.TODO,
    priority: str = TaskPriority.NO_PRIORITY,
    tag: str = "",
    assignee: Optional[AbstractUser] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> Task:
    _require_task_editor(project, actor)
    name = (name or "").strip()
    if not name:
        raise TaskValidationError("Task name is required.")
    if len(name) > 500:
        raise TaskValidationError("Task name must be 500 characters or fewer.")
    if status not in TaskStatus.values:
        raise TaskValidationError("Invalid task status.")
    if priority not in TaskPriority.values:
        raise TaskValidationError("Invalid task priority.")
    if start_date and end_date and end_date < start_date:
        raise TaskValidationError("End date must not be before start date.")
    _check_workstream(project, workstream)
    _check_assignee(project, assignee)

    task = Task.objects.create(
        project=project,
        workstream=workstream,
        name=name,
        description=(description or "").strip(),
        status=status,
        priority=priority,
        tag=(tag or "").strip(),
        assignee=assignee,
        start_date=start_date,
        end_date=end_date,
        sort_order=next_sort_order(project, workstream),
    )
    _notify_assignee(task, actor, title=f"You were assigned: {task.name}")
    return task


@transaction.atomic
def update_task(*, task: Task, actor: AbstractUser, **fields) -> Task:
    _require_task_editor(task.project, actor)

    unknown = set(fields) - set(TASK_EDITABLE_FIELDS)
    if unknown:
        raise TaskValidationError("Unknown task fields: " + ", ".join(sorted(unknown)))

    if "name" in fields:
        fields["name"] = (fields["name"] or "").strip()
        if not fields["name"]:
            raise TaskValidationError("Task name is required.")
    if "priority" in fields and fields["priority"] not in TaskPriority.values:
        raise TaskValidationError("Invalid task priority.")

    for key, value in fields.items():
        setattr(task, key, value)
    if task.start_date and task.end_date and task.end_date < task.start_date:
        raise TaskValidationError("End date must not be before start date.")

    task.save(update_fields=[*fields.keys(), "updated_at"])
    return task


@transaction.atomic
def update_task_status(*, task: Task, actor: AbstractUser, status: str) -> Task:
    _require_task_editor(task.project, actor)
    if status not in TaskStatus.values:
        raise TaskValidationError("Invalid task status.")
    if task.status == status:
        return task
    task.status = status
    task.save(update_fields=["status", "updated_at"])
    _notify_assignee(task, actor, title=f"Task moved to {task.get_status_display()}: {task.name}")
    return task


@transaction.atomic
def update_task_assignee(*, task: Task, actor: AbstractUser, assignee: Optional[AbstractUser]) -> Task:
    _require_task_editor(task.project, actor)
    _check_assignee(task.project, assignee)
    if task.assignee_id == (assignee.id if assignee else None):
        return task
    task.assignee = assignee
    task.save(update_fields=["assignee", "updated_at"])
    _notify_assignee(task, actor, title=f"You were assigned: {task.name}")
    return task


@transaction.atomic
def delete_task(*, task: Task, actor: AbstractUser) -> None:
    _require_task_editor(task.project, actor)
    task_id = task.id
    task.delete()
    logger.info("task_deleted task_id=%s actor_id=%s", task_id, actor.id)


@transaction.atomic
def reorder_tasks(*, project: Project, actor: AbstractUser, task_ids: Iterable[int]) -> int:
    """sort_order becomes the index in task_ids; ids of other projects are ignored."""
    _require_task_editor(project, actor)
    ids = [int(t) for t in task_ids]
    tasks = {t.id: t for t in Task.objects.filter(project=project, id__in=ids)}
    changed = []
    for index, tid in enumerate(ids):
        t = tasks.get(tid)
        if t is None or t.sort_order == index:
            continue
        t.sort_order = index
        changed.append(t)
    Task.objects.bulk_update(changed, ["sort_order"])
    return len(changed)


@transaction.atomic
def move_task_to_workstream(*, task: Task, actor: AbstractUser, workstream: Optional[Workstream]) -> Task:
    _require_task_editor(task.project, actor)
    _check_workstream(task.project, workstream)
    if task.workstream_id == (workstream.id if workstream else None):
        return task
    task.workstream = workstream
    task.sort_order = next_sort_order(task.project, workstream)
    task.save(update_fields=["workstream", "sort_order", "updated_at"])
    return task


@transaction.atomic
def bulk_update_task_status(*, actor: AbstractUser, task_ids: Iterable[int], status: str) -> int:
    """
    Only tasks in projects the actor can access and edit are touched.
    Returns the number of tasks updated.
    """
    if status not in TaskStatus.values:
        raise TaskValidationError("Invalid task status.")
    ids = [int(t) for t in task_ids]
    if not ids:
        return 0

    tasks = list(
        Task.objects.filter(id__in=ids, project__in=accessible_projects_qs(actor)).select_related(
            "project", "project__organization"
        )
    )
    editable = [t for t in tasks if can_edit_tasks(t.project, actor)]
    updated = 0
    for t in editable:
        if t.status == status:
            continue
        t.status = status
        t.save(update_fields=["status", "updated_at"])
        updated += 1

    skipped = len(ids) - len(editable)
    if skipped:
        logger.info("bulk_status_skipped actor_id=%s skipped=%d", actor.id, skipped)
    return updated


def my_tasks(user: AbstractUser, *, include_done: bool = False):
    qs = Task.objects.filter(assignee=user, project__in=accessible_projects_qs(user)).select_related(
        "project", "workstream"
    )
    if not include_done:
        qs = qs.exclude(status=TaskStatus.DONE)
    return qs.order_by("end_date", "project__name", "sort_order", "id")


def tasks_by_workstream(project: Project) -> List[dict]:
    """[{"workstream": Workstream|None, "tasks": [...]}, ...] with the root bucket first."""
    tasks = list(project.tasks.select_related("assignee").order_by("sort_order", "id"))
    buckets = [{"workstream": None, "tasks": [t for t in tasks if t.workstream_id is None]}]
    for ws in project.workstreams.order_by("sort_order", "id"):
        buckets.append({"workstream": ws, "tasks": [t for t in tasks if t.workstream_id == ws.id]})
    return buckets
