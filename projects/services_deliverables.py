# -*- coding: utf-8 -*-
# projects/services_deliverables.py

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from django.contrib.auth.models import AbstractUser
from django.db import transaction
from django.db.models import Max

from projects.enums import DeliverableStatus, PaymentStatus
from projects.models import Project, ProjectDeliverable
from projects.services_project_membership import ProjectPermissionError, can_edit_project


logger = logging.getLogger("pmdesk.projects")

DELIVERABLE_EDITABLE_FIELDS = ("title", "due_date", "value", "status", "payment_status")


class DeliverableValidationError(ValueError):
    pass


def _require_deliverable_editor(project: Project, user: AbstractUser) -> None:
    if not can_edit_project(project, user):
        raise ProjectPermissionError("You do not have permission to change deliverables in this project.")


def _validate(fields: dict) -> None:
    if "title" in fields:
        fields["title"] = (fields["title"] or "").strip()
        if not fields["title"]:
            raise DeliverableValidationError("Deliverable title is required.")
        if len(fields["title"]) > 500:
            raise DeliverableValidationError("Deliverable titles must be 500 characters or fewer.")
    if "value" in fields:
        if fields["value"] is None:
            fields["value"] = Decimal("0")
        if fields["value"] < 0:
            raise DeliverableValidationError("Deliverable value cannot be negative.")
    if "status" in fields and fields["status"] not in DeliverableStatus.values:
        raise DeliverableValidationError("Invalid deliverable status.")
    if "payment_status" in fields and fields["payment_status"] not in PaymentStatus.values:
        raise DeliverableValidationError("Invalid payment status.")


@transaction.atomic
def create_deliverable(
    *,
    project: Project,
    actor: AbstractUser,
    title: str,
    due_date: Optional[date] = None,
    value: Optional[Decimal] = None,
    status: str = DeliverableStatus.PENDING,
    payment_status: str = PaymentStatus.UNPAID,
) -> ProjectDeliverable:
    _require_deliverable_editor(project, actor)
    fields = {"title": title, "value": value, "status": status, "payment_status": payment_status}
    _validate(fields)

    current = ProjectDeliverable.objects.filter(project=project).aggregate(m=Max("sort_order"))["m"]
    deliverable = ProjectDeliverable.objects.create(
        project=project,
        due_date=due_date,
        sort_order=(current if current is not None else -1) + 1,
        **fields,
    )
    logger.info(
        "deliverable_created project_id=%s deliverable_id=%s actor_id=%s", project.id, deliverable.id, actor.id
    )
    return deliverable


@transaction.atomic
def update_deliverable(*, deliverable: ProjectDeliverable, actor: AbstractUser, **fields) -> ProjectDeliverable:
    """Only the given fields change."""
    _require_deliverable_editor(deliverable.project, actor)

    unknown = set(fields) - set(DELIVERABLE_EDITABLE_FIELDS)
    if unknown:
        raise DeliverableValidationError("Unknown deliverable fields: " + ", ".join(sorted(unknown)))
    _validate(fields)

    for key, value in fields.items():
        setattr(deliverable, key, value)
    if fields:
        deliverable.save(update_fields=list(fields))
    return deliverable


@transaction.atomic
def delete_deliverable(*, deliverable: ProjectDeliverable, actor: AbstractUser) -> None:
    project = deliverable.project
    _require_deliverable_editor(project, actor)
    deliverable_id = deliverable.id
    deliverable.delete()
    logger.info(
        "deliverable_deleted project_id=%s deliverable_id=%s actor_id=%s", project.id, deliverable_id, actor.id
    )


@transaction.atomic
def reorder_deliverables(*, project: Project, actor: AbstractUser, deliverable_ids: Iterable[int]) -> int:
    _require_deliverable_editor(project, actor)
    ids = [int(d) for d in deliverable_ids]
    rows = {d.id: d for d in ProjectDeliverable.objects.filter(project=project, id__in=ids)}
    changed = []
    for index, did in enumerate(ids):
        d = rows.get(did)
        if d is None or d.sort_order == index:
            continue
        d.sort_order = index
        changed.append(d)
    ProjectDeliverable.objects.bulk_update(changed, ["sort_order"])
    return len(changed)
