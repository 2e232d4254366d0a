# -*- coding: utf-8 -*-
# reports/forms.py

from __future__ import annotations

from typing import Iterable, List, Optional

from django import forms

from projects.enums import TaskPriority
from reports.enums import (
    ClientSatisfaction,
    ReportPeriodType,
    ReportProjectStatus,
    RiskSeverity,
    RiskStatus,
    RiskType,
)
from reports.services.wizard import (
    DecisionEntry,
    HighlightEntry,
    ProjectStatusEntry,
    RiskEntry,
)


_SELECT_SM = forms.Select(attrs={"class": "form-select form-select-sm"})
_TEXT_SM = forms.TextInput(attrs={"class": "form-control form-control-sm"})
_DATE_SM = forms.DateInput(attrs={"class": "form-control form-control-sm", "type": "date"})
_AREA_SM = forms.Textarea(attrs={"class": "form-control form-control-sm", "rows": 3})


def _project_choices(projects: Iterable) -> List[tuple]:
    return [("", "(no project)")] + [(str(p.id), p.name) for p in projects]


# ------------------------------------------------------------
# Step 1: scope
# ------------------------------------------------------------

class ReportScopeForm(forms.Form):
    period_type = forms.ChoiceField(choices=ReportPeriodType.choices, widget=_SELECT_SM)
    anchor_date = forms.DateField(required=False, widget=_DATE_SM, label="Week / month containing")
    period_start = forms.DateField(required=False, widget=_DATE_SM)
    period_end = forms.DateField(required=False, widget=_DATE_SM)
    title = forms.CharField(max_length=300, required=False, widget=_TEXT_SM)
    projects = forms.MultipleChoiceField(
        required=False,
        widget=forms.CheckboxSelectMultiple,
        label="Projects in this report",
    )

    def __init__(self, *args, projects: Iterable = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["projects"].choices = [(str(p.id), p.name) for p in projects]

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("period_type") == ReportPeriodType.CUSTOM:
            start, end = cleaned.get("period_start"), cleaned.get("period_end")
            if not start or not end:
                raise forms.ValidationError("Custom periods need a start and an end date.")
            if end < start:
                raise forms.ValidationError("The period end must not be before its start.")
        return cleaned

    def selected_project_ids(self) -> List[int]:
        return [int(pid) for pid in self.cleaned_data.get("projects") or []]


# ------------------------------------------------------------
# Step 2: project status (one form per selected project)
# ------------------------------------------------------------

class ProjectStatusForm(forms.Form):
    status = forms.ChoiceField(choices=ReportProjectStatus.choices, widget=_SELECT_SM)
    client_satisfaction = forms.ChoiceField(choices=ClientSatisfaction.choices, widget=_SELECT_SM)
    progress_percent = forms.IntegerField(
        min_value=0,
        max_value=100,
        widget=forms.NumberInput(attrs={"class": "form-control form-control-sm"}),
    )
    narrative = forms.CharField(required=False, widget=_AREA_SM)

    def __init__(self, *args, members: Iterable = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.members = list(members)
        for m in self.members:
            self.fields[f"contrib_{m.id}"] = forms.CharField(
                required=False,
                label=m.display_name,
                widget=_TEXT_SM,
            )

    @classmethod
    def for_entry(cls, entry: ProjectStatusEntry, *, prefix: str, members: Iterable = (), data=None):
        initial = {
            "status": entry.status,
            "client_satisfaction": entry.client_satisfaction,
            "progress_percent": entry.progress_percent,
            "narrative": entry.narrative,
        }
        for c in entry.team_contributions:
            if c.get("member_id") is not None:
                initial[f"contrib_{c['member_id']}"] = c.get("contribution", "")
        return cls(data=data, prefix=prefix, initial=initial, members=members)

    def apply_to(self, entry: ProjectStatusEntry) -> ProjectStatusEntry:
        cd = self.cleaned_data
        entry.status = cd["status"]
        entry.client_satisfaction = cd["client_satisfaction"]
        entry.progress_percent = cd["progress_percent"]
        entry.narrative = (cd.get("narrative") or "").strip()
        entry.team_contributions = [
            {"member_id": m.id, "member_name": m.display_name, "contribution": cd.get(f"contrib_{m.id}", "").strip()}
            for m in self.members
            if (cd.get(f"contrib_{m.id}") or "").strip()
        ]
        return entry

    def contribution_fields(self):
        return [self[f"contrib_{m.id}"] for m in self.members]


# ------------------------------------------------------------
# Step 3: financial notes
# ------------------------------------------------------------

class FinancialNotesForm(forms.Form):
    financial_notes = forms.CharField(required=False, widget=_AREA_SM, label="Financial notes")


# ------------------------------------------------------------
# Step 4 and 5: risks, highlights, decisions
# ------------------------------------------------------------

class _ProjectChoiceMixin:
    def _set_project_choices(self, projects: Iterable) -> None:
        self.fields["project"].choices = _project_choices(projects)

    def _project_id(self) -> Optional[int]:
        raw = self.cleaned_data.get("project") or ""
        return int(raw) if raw else None


class RiskForm(_ProjectChoiceMixin, forms.Form):
    entry_id = forms.CharField(required=False, widget=forms.HiddenInput)
    originated_report_id = forms.IntegerField(required=False, widget=forms.HiddenInput)
    is_carried_over = forms.BooleanField(required=False, widget=forms.HiddenInput)
    type = forms.ChoiceField(choices=RiskType.choices, initial=RiskType.RISK, widget=_SELECT_SM)
    description = forms.CharField(required=False, widget=_AREA_SM)
    severity = forms.ChoiceField(choices=RiskSeverity.choices, initial=RiskSeverity.MEDIUM, widget=_SELECT_SM)
    status = forms.ChoiceField(choices=RiskStatus.choices, initial=RiskStatus.OPEN, widget=_SELECT_SM)
    mitigation_notes = forms.CharField(required=False, widget=_TEXT_SM)
    project = forms.ChoiceField(required=False, widget=_SELECT_SM)

    def __init__(self, *args, projects: Iterable = (), **kwargs):
        super().__init__(*args, **kwargs)
        self._set_project_choices(projects)

    @staticmethod
    def initial_for(entry: RiskEntry) -> dict:
        return {
            "entry_id": entry.id,
            "originated_report_id": entry.originated_report_id,
            "is_carried_over": entry.is_carried_over,
            "type": entry.type,
            "description": entry.description,
            "severity": entry.severity,
            "status": entry.status,
            "mitigation_notes": entry.mitigation_notes,
            "project": str(entry.project_id) if entry.project_id else "",
        }

    def to_entry(self) -> RiskEntry:
        cd = self.cleaned_data
        entry = RiskEntry(
            description=(cd.get("description") or "").strip(),
            type=cd.get("type") or RiskType.RISK.value,
            severity=cd.get("severity") or RiskSeverity.MEDIUM.value,
            status=cd.get("status") or RiskStatus.OPEN.value,
            mitigation_notes=(cd.get("mitigation_notes") or "").strip(),
            project_id=self._project_id(),
            originated_report_id=cd.get("originated_report_id"),
            is_carried_over=bool(cd.get("is_carried_over")),
        )
        if cd.get("entry_id"):
            entry.id = cd["entry_id"]
        return entry


class HighlightForm(_ProjectChoiceMixin, forms.Form):
    entry_id = forms.CharField(required=False, widget=forms.HiddenInput)
    description = forms.CharField(required=False, widget=_TEXT_SM)
    project = forms.ChoiceField(required=False, widget=_SELECT_SM)

    entry_class = HighlightEntry

    def __init__(self, *args, projects: Iterable = (), **kwargs):
        super().__init__(*args, **kwargs)
        self._set_project_choices(projects)

    @staticmethod
    def initial_for(entry: HighlightEntry) -> dict:
        return {
            "entry_id": entry.id,
            "description": entry.description,
            "project": str(entry.project_id) if entry.project_id else "",
        }

    def to_entry(self):
        cd = self.cleaned_data
        entry = self.entry_class(description=(cd.get("description") or "").strip(), project_id=self._project_id())
        if cd.get("entry_id"):
            entry.id = cd["entry_id"]
        return entry


class DecisionForm(HighlightForm):
    entry_class = DecisionEntry


RiskFormSet = forms.formset_factory(RiskForm, extra=1, can_delete=True)
HighlightFormSet = forms.formset_factory(HighlightForm, extra=1, can_delete=True)
DecisionFormSet = forms.formset_factory(DecisionForm, extra=1, can_delete=True)


def entries_from_formset(formset) -> list:
    """Non-deleted rows with a description, in submitted order."""
    out = []
    for f in formset.forms:
        if not f.is_valid() or not f.cleaned_data:
            continue
        if f.cleaned_data.get("DELETE"):
            continue
        entry = f.to_entry()
        if entry.description:
            out.append(entry)
    return out


# ------------------------------------------------------------
# Action items
# ------------------------------------------------------------

class ActionItemForm(forms.Form):
    project = forms.ChoiceField(widget=_SELECT_SM)
    name = forms.CharField(max_length=500, widget=_TEXT_SM)
    description = forms.CharField(required=False, widget=_AREA_SM)
    assignee = forms.ChoiceField(required=False, widget=_SELECT_SM)
    priority = forms.ChoiceField(choices=TaskPriority.choices, initial=TaskPriority.MEDIUM, widget=_SELECT_SM)
    due_date = forms.DateField(required=False, widget=_DATE_SM)

    def __init__(self, *args, projects: Iterable = (), members: Iterable = (), **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["project"].choices = [(str(p.id), p.name) for p in projects]
        self.fields["assignee"].choices = [("", "(unassigned)")] + [(str(m.id), m.display_name) for m in members]
