# -*- coding: utf-8 -*-
# projects/forms.py

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable, List

from django import forms

from projects.enums import (
    DeadlineType,
    ProjectIntent,
    SuccessType,
    TaskPriority,
    TaskStatus,
    WorkStructure,
)
from projects.models import Project, ProjectDeliverable, ProjectMember, Task
from projects.services.project_wizard import (
    DeliverableInput,
    MetricInput,
    ProjectInput,
    StarterTaskInput,
)


_SELECT_SM = forms.Select(attrs={"class": "form-select form-select-sm"})
_TEXT_SM = forms.TextInput(attrs={"class": "form-control form-control-sm"})
_DATE_SM = forms.DateInput(attrs={"class": "form-control form-control-sm", "type": "date"})
_AREA_SM = forms.Textarea(attrs={"class": "form-control form-control-sm", "rows": 3})
_LINES = forms.Textarea(attrs={"class": "form-control form-control-sm font-monospace", "rows": 5})


def _member_choices(members: Iterable) -> List[tuple]:
    return [(str(m.id), m.display_name) for m in members]


def _split_lines(text: str) -> List[List[str]]:
    """One item per non-blank line; fields separated by '|'."""
    rows = []
    for line in (text or "").splitlines():
        if not line.strip():
            continue
        rows.append([part.strip() for part in line.split("|")])
    return rows


# ------------------------------------------------------------
# Quick create / update
# ------------------------------------------------------------

class ProjectQuickForm(forms.ModelForm):
    contributors = forms.MultipleChoiceField(
        required=False,
        label="Contributors",
        widget=forms.SelectMultiple(attrs={"class": "form-select"}),
    )

    class Meta:
        model = Project
        fields = ("name", "description", "client_name", "status", "priority", "start_date", "end_date", "currency")
        widgets = {
            "name": _TEXT_SM,
            "description": _AREA_SM,
            "client_name": _TEXT_SM,
            "status": _SELECT_SM,
            "priority": _SELECT_SM,
            "start_date": _DATE_SM,
            "end_date": _DATE_SM,
            "currency": _TEXT_SM,
        }

    def __init__(self, *args, members: Iterable = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["contributors"].choices = _member_choices(members)

    def to_input(self) -> ProjectInput:
        cd = self.cleaned_data
        return ProjectInput(
            name=cd["name"],
            description=cd.get("description") or "",
            client_name=cd.get("client_name") or "",
            status=cd["status"],
            priority=cd["priority"],
            start_date=cd.get("start_date"),
            end_date=cd.get("end_date"),
            currency=cd.get("currency") or "USD",
            contributor_ids=[int(x) for x in cd.get("contributors") or []],
        )


class ProjectUpdateForm(forms.ModelForm):
    class Meta:
        model = Project
        fields = (
            "name",
            "description",
            "client_name",
            "status",
            "priority",
            "progress",
            "start_date",
            "end_date",
            "deadline_type",
            "deadline_date",
            "currency",
        )
        widgets = {
            "name": _TEXT_SM,
            "description": _AREA_SM,
            "client_name": _TEXT_SM,
            "status": _SELECT_SM,
            "priority": _SELECT_SM,
            "progress": forms.NumberInput(attrs={"class": "form-control form-control-sm", "min": 0, "max": 100}),
            "start_date": _DATE_SM,
            "end_date": _DATE_SM,
            "deadline_type": _SELECT_SM,
            "deadline_date": _DATE_SM,
            "currency": _TEXT_SM,
        }

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get("start_date"), cleaned.get("end_date")
        if start and end and end < start:
            self.add_error("end_date", "End date must not be before start date.")
        return cleaned


# ------------------------------------------------------------
# Guided wizard steps
# ------------------------------------------------------------

class IntentStepForm(forms.Form):
    name = forms.CharField(max_length=200, widget=_TEXT_SM)
    intent = forms.ChoiceField(choices=ProjectIntent.choices, widget=forms.RadioSelect)
    description = forms.CharField(required=False, max_length=5000, widget=_AREA_SM)
    client_name = forms.CharField(required=False, max_length=200, widget=_TEXT_SM)

    def apply_to(self, data: ProjectInput) -> None:
        cd = self.cleaned_data
        data.name = cd["name"]
        data.intent = cd["intent"]
        data.description = cd.get("description") or ""
        data.client_name = cd.get("client_name") or ""


class OutcomeStepForm(forms.Form):
    success_type = forms.ChoiceField(choices=SuccessType.choices, widget=forms.RadioSelect)
    deliverables = forms.CharField(
        required=False,
        widget=_LINES,
        help_text="One per line: title | due date (YYYY-MM-DD) | value",
    )
    metrics = forms.CharField(required=False, widget=_LINES, help_text="One per line: name | target")

    @staticmethod
    def initial_for(data: ProjectInput) -> dict:
        return {
            "success_type": data.success_type,
            "deliverables": "\n".join(
                " | ".join(
                    [d.title, d.due_date.isoformat() if d.due_date else "", str(d.value) if d.value else ""]
                ).rstrip(" |")
                for d in data.deliverables
            ),
            "metrics": "\n".join(f"{m.name} | {m.target}".rstrip(" |") for m in data.metrics),
        }

    def clean_deliverables(self) -> List[DeliverableInput]:
        out = []
        for parts in _split_lines(self.cleaned_data.get("deliverables")):
            title = parts[0]
            due = None
            value = Decimal("0")
            if len(parts) > 1 and parts[1]:
                due = forms.DateField().clean(parts[1])
            if len(parts) > 2 and parts[2]:
                try:
                    value = Decimal(parts[2].replace(",", ""))
                except InvalidOperation:
                    raise forms.ValidationError(f"Invalid value for deliverable \"{title}\".")
            out.append(DeliverableInput(title=title, due_date=due, value=value))
        return out

    def clean_metrics(self) -> List[MetricInput]:
        return [
            MetricInput(name=parts[0], target=parts[1] if len(parts) > 1 else "")
            for parts in _split_lines(self.cleaned_data.get("metrics"))
        ]

    def apply_to(self, data: ProjectInput) -> None:
        cd = self.cleaned_data
        data.success_type = cd["success_type"]
        data.deliverables = cd["deliverables"]
        data.metrics = cd["metrics"]


class OwnershipStepForm(forms.Form):
    owner = forms.ChoiceField(widget=_SELECT_SM)
    contributors = forms.MultipleChoiceField(
        required=False,
        widget=forms.SelectMultiple(attrs={"class": "form-select"}),
        help_text="Can edit tasks.",
    )
    stakeholders = forms.MultipleChoiceField(
        required=False,
        widget=forms.SelectMultiple(attrs={"class": "form-select"}),
        help_text="Read-only access.",
    )

    def __init__(self, *args, members: Iterable = (), **kwargs):
        super().__init__(*args, **kwargs)
        choices = _member_choices(members)
        self.fields["owner"].choices = choices
        self.fields["contributors"].choices = choices
        self.fields["stakeholders"].choices = choices

    @staticmethod
    def initial_for(data: ProjectInput, default_owner_id: int) -> dict:
        return {
            "owner": str(data.owner_id or default_owner_id),
            "contributors": [str(x) for x in data.contributor_ids],
            "stakeholders": [str(x) for x in data.stakeholder_ids],
        }

    def apply_to(self, data: ProjectInput) -> None:
        cd = self.cleaned_data
        data.owner_id = int(cd["owner"])
        data.contributor_ids = [int(x) for x in cd.get("contributors") or []]
        data.stakeholder_ids = [int(x) for x in cd.get("stakeholders") or []]


class StructureStepForm(forms.Form):
    work_structure = forms.ChoiceField(choices=WorkStructure.choices, widget=forms.RadioSelect)
    workstreams = forms.CharField(required=False, widget=_LINES, help_text="One workstream per line.")
    deadline_type = forms.ChoiceField(choices=DeadlineType.choices, widget=_SELECT_SM)
    deadline_date = forms.DateField(required=False, widget=_DATE_SM)
    start_date = forms.DateField(required=False, widget=_DATE_SM)

    @staticmethod
    def initial_for(data: ProjectInput) -> dict:
        return {
            "work_structure": data.work_structure,
            "workstreams": "\n".join(data.workstreams),
            "deadline_type": data.deadline_type,
            "deadline_date": data.deadline_date,
            "start_date": data.start_date,
        }

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("deadline_type") not in (None, DeadlineType.NONE) and not cleaned.get("deadline_date"):
            self.add_error("deadline_date", "Pick a deadline date.")
        return cleaned

    def apply_to(self, data: ProjectInput) -> None:
        cd = self.cleaned_data
        data.work_structure = cd["work_structure"]
        data.workstreams = [line[0] for line in _split_lines(cd.get("workstreams"))]
        data.deadline_type = cd["deadline_type"]
        data.deadline_date = cd.get("deadline_date") if cd["deadline_type"] != DeadlineType.NONE else None
        data.start_date = cd.get("start_date")
        data.end_date = data.deadline_date


class ReviewStepForm(forms.Form):
    starter_tasks = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={"class": "form-control form-control-sm font-monospace", "rows": 8}),
        help_text="One per line: title | priority | workstream",
    )

    @staticmethod
    def initial_for(data: ProjectInput) -> dict:
        return {
            "starter_tasks": "\n".join(
                " | ".join([t.title, t.priority, t.workstream]).rstrip(" |") for t in data.starter_tasks
            )
        }

    def apply_to(self, data: ProjectInput) -> None:
        # Descriptions come from AI suggestions and survive edits of the same title.
        descriptions = {t.title: t.description for t in data.starter_tasks}
        data.starter_tasks = [
            StarterTaskInput(
                title=parts[0],
                priority=(parts[1] if len(parts) > 1 and parts[1] else TaskPriority.MEDIUM.value),
                workstream=parts[2] if len(parts) > 2 else "",
                description=descriptions.get(parts[0], ""),
            )
            for parts in _split_lines(self.cleaned_data.get("starter_tasks"))
        ]


# ------------------------------------------------------------
# Tasks and members
# ------------------------------------------------------------

class TaskForm(forms.ModelForm):
    assignee_id = forms.ChoiceField(required=False, label="Assignee", widget=_SELECT_SM)

    class Meta:
        model = Task
        fields = ("name", "description", "workstream", "status", "priority", "tag", "start_date", "end_date")
        widgets = {
            "name": _TEXT_SM,
            "description": _AREA_SM,
            "workstream": _SELECT_SM,
            "status": _SELECT_SM,
            "priority": _SELECT_SM,
            "tag": _TEXT_SM,
            "start_date": _DATE_SM,
            "end_date": _DATE_SM,
        }

    def __init__(self, *args, project: Project, members: Iterable = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["workstream"].queryset = project.workstreams.order_by("sort_order", "id")
        self.fields["workstream"].required = False
        self.fields["assignee_id"].choices = [("", "(unassigned)")] + _member_choices(members)
        if self.instance and self.instance.pk and self.instance.assignee_id:
            self.initial.setdefault("assignee_id", str(self.instance.assignee_id))


class TaskStatusForm(forms.Form):
    status = forms.ChoiceField(choices=TaskStatus.choices)


class WorkstreamForm(forms.Form):
    name = forms.CharField(max_length=200, widget=_TEXT_SM)


class DeliverableForm(forms.ModelForm):
    class Meta:
        model = ProjectDeliverable
        fields = ("title", "due_date", "value", "status", "payment_status")
        widgets = {
            "title": _TEXT_SM,
            "due_date": _DATE_SM,
            "value": forms.NumberInput(attrs={"class": "form-control form-control-sm", "step": "0.01", "min": "0"}),
            "status": _SELECT_SM,
            "payment_status": _SELECT_SM,
        }


class ProjectMemberForm(forms.Form):
    user = forms.ChoiceField(widget=_SELECT_SM)
    role = forms.ChoiceField(
        choices=[c for c in ProjectMember.Role.choices if c[0] != ProjectMember.Role.OWNER],
        widget=_SELECT_SM,
    )

    def __init__(self, *args, members: Iterable = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["user"].choices = _member_choices(members)
