# -*- coding: utf-8 -*-
# projects/services_workstreams.py
#
# Workstream management after creation: add, rename, delete and reorder.
# Deleting a workstream leaves its tasks in the project, unassigned.

from __future__ import annotations

import logging
from typing import Iterable, Optional

from django.contrib.auth.models import AbstractUser
from django.db import transaction
from django.db.models import Max

from projects.models import Project, Task, Workstream
from projects.services_project_membership import ProjectPermissionError, can_edit_project


logger = logging.getLogger("pmdesk.projects")


class WorkstreamValidationError(ValueError):
    pass


def _require_structure_editor(project: Project, user: AbstractUser) -> None:
    if not can_edit_project(project, user):
        raise ProjectPermissionError("You do not have permission to change workstreams in this project.")


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise WorkstreamValidationError("Workstream name is required.")
    if len(name) > 200:
        raise WorkstreamValidationError("Workstream name must be 200 characters or fewer.")
    return name


def next_workstream_sort_order(project: Project) -> int:
    current = Workstream.objects.filter(project=project).aggregate(m=Max("sort_order"))["m"]
    return (current if current is not None else -1) + 1


@transaction.atomic
def create_workstream(
    *,
    project: Project,
    actor: AbstractUser,
    name: str,
    task_ids: Optional[Iterable[int]] = None,
) -> Workstream:
    """Appends a workstream; task_ids from other projects are ignored."""
    _require_structure_editor(project, actor)
    workstream = Workstream.objects.create(
        project=project,
        name=_clean_name(name),
        sort_order=next_workstream_sort_order(project),
    )
    ids = [int(t) for t in task_ids or []]
    if ids:
        Task.objects.filter(project=project, id__in=ids).update(workstream=workstream)
    logger.info(
        "workstream_created project_id=%s workstream_id=%s actor_id=%s", project.id, workstream.id, actor.id
    )
    return workstream


@transaction.atomic
def update_workstream(*, workstream: Workstream, actor: AbstractUser, name: str) -> Workstream:
    _require_structure_editor(workstream.project, actor)
    workstream.name = _clean_name(name)
    workstream.save(update_fields=["name", "updated_at"])
    return workstream


@transaction.atomic
def delete_workstream(*, workstream: Workstream, actor: AbstractUser) -> None:
    project = workstream.project
    _require_structure_editor(project, actor)
    workstream_id = workstream.id
    workstream.delete()
    logger.info(
        "workstream_deleted project_id=%s workstream_id=%s actor_id=%s", project.id, workstream_id, actor.id
    )


@transaction.atomic
def reorder_workstreams(*, project: Project, actor: AbstractUser, workstream_ids: Iterable[int]) -> int:
    """sort_order becomes the index in workstream_ids; ids of other projects are ignored."""
    _require_structure_editor(project, actor)
    ids = [int(w) for w in workstream_ids]
    rows = {w.id: w for w in Workstream.objects.filter(project=project, id__in=ids)}
    changed = []
    for index, wid in enumerate(ids):
        w = rows.get(wid)
        if w is None or w.sort_order == index:
            continue
        w.sort_order = index
        changed.append(w)
    Workstream.objects.bulk_update(changed, ["sort_order"])
    return len(changed)
