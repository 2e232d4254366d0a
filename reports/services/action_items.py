# -*- coding: utf-8 -*-
# reports/services/action_items.py
#
# Action items are ordinary project tasks, tagged and linked back to the
# report they were raised from.

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from django.contrib.auth.models import AbstractUser
from django.db import transaction
from django.db.models import Max
from django.urls import reverse

from accounts.services_organizations import is_org_member
from notifications.models import Notification
from notifications.services import notify
from projects.enums import TaskPriority, TaskStatus
from projects.models import Project, Task
from reports.enums import ACTION_ITEM_TAG
from reports.models import Report
from reports.services.access import require_report_org_member
from reports.services.wizard import ReportValidationError


logger = logging.getLogger("pmdesk.reports")


def normalise_priority(value: Optional[str]) -> str:
    value = (value or "").strip().lower()
    if value in TaskPriority.values:
        return value
    return TaskPriority.MEDIUM.value


def _next_root_sort_order(project: Project) -> int:
    current = Task.objects.filter(project=project, workstream__isnull=True).aggregate(m=Max("sort_order"))["m"]
    return (current if current is not None else -1) + 1


def create_report_action_item(
    *,
    report: Report,
    project: Project,
    actor: AbstractUser,
    name: str,
    description: str = "",
    assignee: Optional[AbstractUser] = None,
    priority: Optional[str] = None,
    due_date: Optional[date] = None,
) -> Task:
    require_report_org_member(report.organization, actor)

    name = (name or "").strip()
    if not name:
        raise ReportValidationError("Action item name is required.")
    if len(name) > 500:
        raise ReportValidationError("Action item name must be 500 characters or fewer.")
    if project.organization_id != report.organization_id:
        raise ReportValidationError("The project must belong to the report's organization.")
    if assignee is not None and not is_org_member(report.organization, assignee):
        raise ReportValidationError("The assignee must be a member of this organization.")

    with transaction.atomic():
        task = Task.objects.create(
            project=project,
            workstream=None,
            name=name,
            description=(description or "").strip(),
            status=TaskStatus.TODO,
            priority=normalise_priority(priority),
            tag=ACTION_ITEM_TAG,
            assignee=assignee,
            end_date=due_date,
            sort_order=_next_root_sort_order(project),
            source_report=report,
        )

    if assignee is not None and assignee.pk != actor.pk:
        notify(
            organization=report.organization,
            recipients=[assignee],
            actor=actor,
            type=Notification.Type.TASK_UPDATE,
            title=f"New action item: {task.name}",
            body=f"Raised in report \"{report.title}\".",
            project=project,
            task=task,
            link_url=reverse("reports:detail", args=[report.id]),
            metadata={"report_id": report.id},
        )

    logger.info("action_item_created task_id=%s report_id=%s", task.id, report.id)
    return task
