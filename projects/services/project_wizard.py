# -*- coding: utf-8 -*-
# projects/services/project_wizard.py
#
# Project creation wizard.
#
# Two entry modes:
# - quick:  name/description/dates in one form
# - guided: intent -> outcome -> ownership -> structure -> review
#
# Both end in create_project(), which writes the project and everything
# collected on the way (members, deliverables, metrics, workstreams,
# starter tasks) in one transaction.
# NOTE: Keep code comments 7-bit ASCII only.

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AbstractUser
from django.db import transaction

from accounts.models import Organization, OrganizationMember
from accounts.services_organizations import require_org_member
from assistant.services.llm import generate_json
from assistant.services.rate_limit import enforce_rate_limit
from projects.enums import (
    DeadlineType,
    ProjectIntent,
    ProjectPriority,
    ProjectStatus,
    SuccessType,
    TaskPriority,
    WorkStructure,
)
from projects.models import (
    Project,
    ProjectDeliverable,
    ProjectMember,
    ProjectMetric,
    Task,
    Workstream,
)


logger = logging.getLogger("pmdesk.projects")

MODE_QUICK = "quick"
MODE_GUIDED = "guided"

GUIDED_STEPS = ["Intent", "Outcome", "Ownership", "Structure", "Review"]
GUIDED_LAST_STEP = len(GUIDED_STEPS) - 1

MAX_NAME = 200
MAX_DESCRIPTION = 5000
MAX_DELIVERABLE_TITLE = 500
MAX_METRIC_NAME = 200
MAX_METRIC_TARGET = 100
MAX_WORKSTREAM_NAME = 200
MAX_TASK_TITLE = 500


class ProjectValidationError(ValueError):
    pass


def _opt_date(value: Any) -> Optional[date]:
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


# ------------------------------------------------------------
# Input
# ------------------------------------------------------------

@dataclass
class DeliverableInput:
    title: str
    due_date: Optional[date] = None
    value: Decimal = Decimal("0")


@dataclass
class MetricInput:
    name: str
    target: str = ""


@dataclass
class StarterTaskInput:
    title: str
    description: str = ""
    priority: str = TaskPriority.MEDIUM.value
    workstream: str = ""


@dataclass
class ProjectInput:
    name: str
    mode: str = MODE_QUICK
    description: str = ""
    client_name: str = ""
    status: str = ProjectStatus.PLANNED.value
    priority: str = ProjectPriority.MEDIUM.value
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    intent: str = ""
    success_type: str = SuccessType.UNDEFINED.value
    deadline_type: str = DeadlineType.NONE.value
    deadline_date: Optional[date] = None
    work_structure: str = WorkStructure.LINEAR.value
    currency: str = "USD"
    deliverables: List[DeliverableInput] = field(default_factory=list)
    metrics: List[MetricInput] = field(default_factory=list)
    owner_id: Optional[int] = None
    contributor_ids: List[int] = field(default_factory=list)
    stakeholder_ids: List[int] = field(default_factory=list)
    workstreams: List[str] = field(default_factory=list)
    starter_tasks: List[StarterTaskInput] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        for key in ("start_date", "end_date", "deadline_date"):
            out[key] = out[key].isoformat() if out[key] else None
        for d in out["deliverables"]:
            d["due_date"] = d["due_date"].isoformat() if d["due_date"] else None
            d["value"] = str(d["value"])
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ProjectInput":
        def _decimal(v: Any) -> Decimal:
            try:
                return Decimal(str(v)) if v not in (None, "") else Decimal("0")
            except InvalidOperation:
                raise ProjectValidationError("Deliverable value must be a number.")

        return cls(
            name=raw.get("name") or "",
            mode=raw.get("mode") or MODE_QUICK,
            description=raw.get("description") or "",
            client_name=raw.get("client_name") or "",
            status=raw.get("status") or ProjectStatus.PLANNED.value,
            priority=raw.get("priority") or ProjectPriority.MEDIUM.value,
            start_date=_opt_date(raw.get("start_date")),
            end_date=_opt_date(raw.get("end_date")),
            intent=raw.get("intent") or "",
            success_type=raw.get("success_type") or SuccessType.UNDEFINED.value,
            deadline_type=raw.get("deadline_type") or DeadlineType.NONE.value,
            deadline_date=_opt_date(raw.get("deadline_date")),
            work_structure=raw.get("work_structure") or WorkStructure.LINEAR.value,
            currency=raw.get("currency") or "USD",
            deliverables=[
                DeliverableInput(
                    title=d.get("title") or "",
                    due_date=_opt_date(d.get("due_date")),
                    value=_decimal(d.get("value")),
                )
                for d in raw.get("deliverables") or []
            ],
            metrics=[MetricInput(name=m.get("name") or "", target=m.get("target") or "") for m in raw.get("metrics") or []],
            owner_id=raw.get("owner_id"),
            contributor_ids=[int(x) for x in raw.get("contributor_ids") or []],
            stakeholder_ids=[int(x) for x in raw.get("stakeholder_ids") or []],
            workstreams=[str(w) for w in raw.get("workstreams") or []],
            starter_tasks=[
                StarterTaskInput(
                    title=t.get("title") or "",
                    description=t.get("description") or "",
                    priority=t.get("priority") or TaskPriority.MEDIUM.value,
                    workstream=t.get("workstream") or "",
                )
                for t in raw.get("starter_tasks") or []
            ],
        )


# ------------------------------------------------------------
# Validation
# ------------------------------------------------------------

def _check_choice(value: str, allowed, label: str, *, blank_ok: bool = False) -> None:
    if blank_ok and not value:
        return
    if value not in allowed:
        raise ProjectValidationError(f"Invalid {label}.")


def validate_project_input(data: ProjectInput) -> ProjectInput:
    """Normalise and validate; raises ProjectValidationError with the first problem found."""
    data.name = (data.name or "").strip()
    if not data.name:
        raise ProjectValidationError("Project name is required")
    if len(data.name) > MAX_NAME:
        raise ProjectValidationError("Project name must be less than 200 characters")
    if len(data.description or "") > MAX_DESCRIPTION:
        raise ProjectValidationError("Description must be 5000 characters or fewer")

    _check_choice(data.status, ProjectStatus.values, "status")
    _check_choice(data.priority, ProjectPriority.values, "priority")
    _check_choice(data.intent, ProjectIntent.values, "intent", blank_ok=True)
    _check_choice(data.success_type, SuccessType.values, "success type")
    _check_choice(data.deadline_type, DeadlineType.values, "deadline type")
    _check_choice(data.work_structure, WorkStructure.values, "work structure")

    if data.start_date and data.end_date and data.end_date < data.start_date:
        raise ProjectValidationError("End date must not be before start date")
    if data.deadline_type != DeadlineType.NONE and data.deadline_date is None:
        raise ProjectValidationError("Deadline date is required for a target or fixed deadline")

    for d in data.deliverables:
        if len((d.title or "").strip()) > MAX_DELIVERABLE_TITLE:
            raise ProjectValidationError("Deliverable titles must be 500 characters or fewer")
        if d.value < 0:
            raise ProjectValidationError("Deliverable value cannot be negative")
    for m in data.metrics:
        if len((m.name or "").strip()) > MAX_METRIC_NAME:
            raise ProjectValidationError("Metric names must be 200 characters or fewer")
        if len((m.target or "").strip()) > MAX_METRIC_TARGET:
            raise ProjectValidationError("Metric targets must be 100 characters or fewer")
    for w in data.workstreams:
        if len(w.strip()) > MAX_WORKSTREAM_NAME:
            raise ProjectValidationError("Workstream names must be 200 characters or fewer")
    for t in data.starter_tasks:
        if len((t.title or "").strip()) > MAX_TASK_TITLE:
            raise ProjectValidationError("Task titles must be 500 characters or fewer")

    return data


def normalise_task_priority(value: Optional[str]) -> str:
    value = (value or "").strip().lower()
    return value if value in TaskPriority.values else TaskPriority.MEDIUM.value


# ------------------------------------------------------------
# Creation
# ------------------------------------------------------------

def _org_member_ids(org: Organization) -> set:
    return set(OrganizationMember.objects.filter(organization=org).values_list("user_id", flat=True))


@transaction.atomic
def create_project(*, org: Organization, actor: AbstractUser, data: ProjectInput) -> Project:
    """
    Ordering inside the transaction:
    project -> owner membership -> deliverables/metrics -> contributors/stakeholders
    -> workstreams -> starter tasks (mapped to workstreams by name).
    """
    require_org_member(org, actor)
    validate_project_input(data)

    member_ids = _org_member_ids(org)
    User = get_user_model()

    owner = actor
    if data.owner_id and int(data.owner_id) != actor.id:
        if int(data.owner_id) not in member_ids:
            raise ProjectValidationError("The owner must be a member of this organization")
        owner = User.objects.get(pk=int(data.owner_id))

    project = Project.objects.create(
        organization=org,
        owner=owner,
        name=data.name,
        description=(data.description or "").strip(),
        client_name=(data.client_name or "").strip(),
        status=data.status,
        priority=data.priority,
        start_date=data.start_date,
        end_date=data.end_date,
        intent=data.intent or "",
        success_type=data.success_type,
        deadline_type=data.deadline_type,
        deadline_date=data.deadline_date if data.deadline_type != DeadlineType.NONE else None,
        work_structure=data.work_structure,
        currency=(data.currency or "USD").upper()[:3],
    )
    # The post_save signal has already created the owner membership.

    deliverables = [d for d in data.deliverables if (d.title or "").strip()]
    ProjectDeliverable.objects.bulk_create(
        [
            ProjectDeliverable(
                project=project,
                title=d.title.strip(),
                due_date=d.due_date,
                value=d.value,
                sort_order=i,
            )
            for i, d in enumerate(deliverables)
        ]
    )

    metrics = [m for m in data.metrics if (m.name or "").strip()]
    ProjectMetric.objects.bulk_create(
        [
            ProjectMetric(project=project, name=m.name.strip(), target=(m.target or "").strip(), sort_order=i)
            for i, m in enumerate(metrics)
        ]
    )

    contributors = [
        uid for uid in dict.fromkeys(data.contributor_ids) if uid in member_ids and uid != owner.id
    ]
    stakeholders = [
        uid
        for uid in dict.fromkeys(data.stakeholder_ids)
        if uid in member_ids and uid != owner.id and uid not in contributors
    ]
    ProjectMember.objects.bulk_create(
        [ProjectMember(project=project, user_id=uid, role=ProjectMember.Role.MEMBER) for uid in contributors]
        + [ProjectMember(project=project, user_id=uid, role=ProjectMember.Role.VIEWER) for uid in stakeholders]
    )

    workstream_names = [w.strip() for w in data.workstreams if w.strip()]
    by_name: Dict[str, Workstream] = {}
    for i, name in enumerate(workstream_names):
        ws = Workstream.objects.create(project=project, name=name, sort_order=i)
        by_name.setdefault(name.lower(), ws)

    tasks = [t for t in data.starter_tasks if (t.title or "").strip()]
    Task.objects.bulk_create(
        [
            Task(
                project=project,
                workstream=by_name.get((t.workstream or "").strip().lower()),
                name=t.title.strip(),
                description=(t.description or "").strip(),
                priority=normalise_task_priority(t.priority),
                sort_order=i,
            )
            for i, t in enumerate(tasks)
        ]
    )

    logger.info(
        "project_created project_id=%s org_id=%s mode=%s members=%d workstreams=%d tasks=%d",
        project.id,
        org.id,
        data.mode,
        1 + len(contributors) + len(stakeholders),
        len(workstream_names),
        len(tasks),
    )
    return project


# ------------------------------------------------------------
# Guided navigation (session backed)
# ------------------------------------------------------------

@dataclass
class ProjectWizardState:
    data: ProjectInput
    step: int = 0
    max_step_reached: int = 0

    def next_step(self) -> int:
        self.step = min(self.step + 1, GUIDED_LAST_STEP)
        self.max_step_reached = max(self.max_step_reached, self.step)
        return self.step

    def prev_step(self) -> int:
        self.step = max(self.step - 1, 0)
        return self.step

    def jump_to_step(self, step: int) -> bool:
        if step < 0 or step > self.max_step_reached:
            return False
        self.step = step
        return True

    def to_session(self) -> Dict[str, Any]:
        return {"step": self.step, "max_step_reached": self.max_step_reached, "data": self.data.to_dict()}

    @classmethod
    def from_session(cls, raw: Dict[str, Any]) -> "ProjectWizardState":
        return cls(
            data=ProjectInput.from_dict(raw.get("data") or {}),
            step=max(0, min(int(raw.get("step") or 0), GUIDED_LAST_STEP)),
            max_step_reached=max(0, min(int(raw.get("max_step_reached") or 0), GUIDED_LAST_STEP)),
        )


# ------------------------------------------------------------
# AI starter tasks
# ------------------------------------------------------------

STARTER_TASKS_SYSTEM = (
    "You are a project management expert. Generate practical, actionable tasks for projects. "
    "Each task should be specific and achievable. Return your response as a JSON array."
)


def generate_starter_tasks(
    *,
    user: AbstractUser,
    data: ProjectInput,
    count: int = 5,
) -> List[Dict[str, str]]:
    """
    Returns [{"title", "description", "priority", "workstream"}, ...].
    Items without a title are dropped; priority is normalised; a workstream
    not in the project's list is cleared.
    """
    enforce_rate_limit(user_id=user.id)

    lines = [f"Generate {count} new tasks for this project:", f"Project: {data.name.strip()}"]
    if data.description.strip():
        lines.append(f"Description: {data.description.strip()}")
    lines.append(f"Client: {data.client_name.strip() or 'Internal'}")
    lines.append(f"Status: {data.status or 'active'}")
    existing = [t.title.strip() for t in data.starter_tasks if t.title.strip()]
    if existing:
        lines.append(f"Existing tasks (avoid duplicates): {', '.join(existing)}")
    workstreams = [w.strip() for w in data.workstreams if w.strip()]
    if workstreams:
        lines.append(f"Workstreams to consider: {', '.join(workstreams)}")
    lines.append(
        f"""
Return a JSON array with exactly {count} tasks in this format:
[
  {{
    "title": "Task title",
    "description": "Brief description of what needs to be done",
    "priority": "high" | "medium" | "low",
    "workstream": "One of the workstreams above, or empty"
  }}
]

Only return the JSON array, no other text."""
    )

    payload = generate_json(
        system_blocks=[STARTER_TASKS_SYSTEM],
        user_text="\n".join(lines),
        user=user,
        temperature=0.8,
    )
    if isinstance(payload, dict):
        payload = payload.get("tasks") or []

    known = {w.lower(): w for w in workstreams}
    out: List[Dict[str, str]] = []
    for item in payload if isinstance(payload, list) else []:
        if not isinstance(item, dict):
            continue
        title = str(item.get("title") or "").strip()
        if not title:
            continue
        ws = str(item.get("workstream") or "").strip()
        out.append(
            {
                "title": title[:MAX_TASK_TITLE],
                "description": str(item.get("description") or "").strip(),
                "priority": normalise_task_priority(item.get("priority")),
                "workstream": known.get(ws.lower(), ""),
            }
        )
    logger.info("ai_starter_tasks suggestions=%d", len(out))
    return out
