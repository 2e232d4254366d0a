# -*- coding: utf-8 -*-
# reports/services/wizard.py
#
# Report Wizard state: the structured input accumulated across the
# wizard steps before a single publish/update.
#
# Everything here is plain data (dataclasses <-> dicts) so the state can
# live in the session between requests. No ORM writes happen here.
# NOTE: Keep code comments 7-bit ASCII only.

from __future__ import annotations

import calendar
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional

from reports.enums import (
    CARRY_OVER_RISK_STATUSES,
    ClientSatisfaction,
    HighlightType,
    ReportPeriodType,
    ReportProjectStatus,
    RiskSeverity,
    RiskStatus,
    RiskType,
)


STEPS = [
    "Report scope",
    "Project status",
    "Financials",
    "Risks & blockers",
    "Highlights & review",
]

STEP_TITLES = {
    0: "What period does this report cover?",
    1: "How are projects performing?",
    2: "Financial overview",
    3: "What are the risks and blockers?",
    4: "Highlights, decisions, and review",
}

LAST_STEP = len(STEPS) - 1


class ReportValidationError(ValueError):
    pass


def new_entry_id() -> str:
    return uuid.uuid4().hex


# ------------------------------------------------------------
# Period helpers
# ------------------------------------------------------------

def start_of_week(d: date) -> date:
    """Monday of the week containing d."""
    return d - timedelta(days=d.weekday())


def end_of_week(d: date) -> date:
    """Sunday of the week containing d."""
    return start_of_week(d) + timedelta(days=6)


def start_of_month(d: date) -> date:
    return d.replace(day=1)


def end_of_month(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def format_week_range(start: date, end: date) -> str:
    start_month = start.strftime("%b")
    end_month = end.strftime("%b")
    if start_month == end_month:
        return f"{start_month} {start.day} – {end.day}, {end.year}"
    return f"{start_month} {start.day} – {end_month} {end.day}, {end.year}"


def _short_date(d: date) -> str:
    return f"{d.strftime('%b')} {d.day}, {d.year}"


def generate_title(period_type: str, start: date, end: date) -> str:
    if period_type == ReportPeriodType.WEEKLY:
        return f"Weekly Report — {format_week_range(start, end)}"
    if period_type == ReportPeriodType.MONTHLY:
        return f"Monthly Report — {start.strftime('%B')} {start.year}"
    return f"Report — {_short_date(start)} to {_short_date(end)}"


def period_bounds(period_type: str, anchor: date) -> tuple[date, date]:
    if period_type == ReportPeriodType.WEEKLY:
        return start_of_week(anchor), end_of_week(anchor)
    if period_type == ReportPeriodType.MONTHLY:
        return start_of_month(anchor), end_of_month(anchor)
    raise ValueError("Custom periods need explicit start and end dates.")


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _opt_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


# ------------------------------------------------------------
# Wizard data
# ------------------------------------------------------------

@dataclass
class ProjectStatusEntry:
    status: str = ReportProjectStatus.ON_TRACK.value
    previous_status: Optional[str] = None
    client_satisfaction: str = ClientSatisfaction.SATISFIED.value
    previous_satisfaction: Optional[str] = None
    progress_percent: int = 0
    previous_progress: Optional[int] = None
    narrative: str = ""
    # [{"member_id": int, "member_name": str, "contribution": str}, ...]
    team_contributions: List[Dict[str, Any]] = field(default_factory=list)
    financial_notes: str = ""

    @property
    def progress_delta(self) -> Optional[int]:
        if self.previous_progress is None:
            return None
        return self.progress_percent - self.previous_progress

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ProjectStatusEntry":
        return cls(
            status=raw.get("status") or ReportProjectStatus.ON_TRACK.value,
            previous_status=raw.get("previous_status") or None,
            client_satisfaction=raw.get("client_satisfaction") or ClientSatisfaction.SATISFIED.value,
            previous_satisfaction=raw.get("previous_satisfaction") or None,
            progress_percent=int(raw.get("progress_percent") or 0),
            previous_progress=_opt_int(raw.get("previous_progress")),
            narrative=raw.get("narrative") or "",
            team_contributions=list(raw.get("team_contributions") or []),
            financial_notes=raw.get("financial_notes") or "",
        )


@dataclass
class RiskEntry:
    description: str
    type: str = RiskType.RISK.value
    severity: str = RiskSeverity.MEDIUM.value
    status: str = RiskStatus.OPEN.value
    mitigation_notes: str = ""
    project_id: Optional[int] = None
    originated_report_id: Optional[int] = None
    is_carried_over: bool = False
    id: str = field(default_factory=new_entry_id)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "RiskEntry":
        return cls(
            id=raw.get("id") or new_entry_id(),
            description=raw.get("description") or "",
            type=raw.get("type") or RiskType.RISK.value,
            severity=raw.get("severity") or RiskSeverity.MEDIUM.value,
            status=raw.get("status") or RiskStatus.OPEN.value,
            mitigation_notes=raw.get("mitigation_notes") or "",
            project_id=_opt_int(raw.get("project_id")),
            originated_report_id=_opt_int(raw.get("originated_report_id")),
            is_carried_over=bool(raw.get("is_carried_over")),
        )


@dataclass
class HighlightEntry:
    description: str
    project_id: Optional[int] = None
    id: str = field(default_factory=new_entry_id)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "HighlightEntry":
        return cls(
            id=raw.get("id") or new_entry_id(),
            description=raw.get("description") or "",
            project_id=_opt_int(raw.get("project_id")),
        )


class DecisionEntry(HighlightEntry):
    pass


@dataclass
class ReportWizardData:
    title: str
    period_type: str
    period_start: str  # ISO date
    period_end: str
    selected_project_ids: List[int] = field(default_factory=list)
    project_data: Dict[int, ProjectStatusEntry] = field(default_factory=dict)
    risks: List[RiskEntry] = field(default_factory=list)
    highlights: List[HighlightEntry] = field(default_factory=list)
    decisions: List[DecisionEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        # Session storage is JSON: object keys must be strings.
        out["project_data"] = {str(k): asdict(v) for k, v in self.project_data.items()}
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ReportWizardData":
        return cls(
            title=raw.get("title") or "",
            period_type=raw.get("period_type") or ReportPeriodType.WEEKLY.value,
            period_start=raw.get("period_start") or "",
            period_end=raw.get("period_end") or "",
            selected_project_ids=[int(pid) for pid in (raw.get("selected_project_ids") or [])],
            project_data={
                int(k): ProjectStatusEntry.from_dict(v or {})
                for k, v in (raw.get("project_data") or {}).items()
            },
            risks=[RiskEntry.from_dict(r) for r in (raw.get("risks") or [])],
            highlights=[HighlightEntry.from_dict(h) for h in (raw.get("highlights") or [])],
            decisions=[DecisionEntry.from_dict(d) for d in (raw.get("decisions") or [])],
        )

    def entry_for(self, project_id: int) -> ProjectStatusEntry:
        """Status entry for a project, created with defaults on first access."""
        entry = self.project_data.get(project_id)
        if entry is None:
            entry = ProjectStatusEntry()
            self.project_data[project_id] = entry
        return entry

    @property
    def start_date(self) -> date:
        return _parse_date(self.period_start)

    @property
    def end_date(self) -> date:
        return _parse_date(self.period_end)


def default_wizard_data(today: date) -> ReportWizardData:
    ws, we = start_of_week(today), end_of_week(today)
    return ReportWizardData(
        title=generate_title(ReportPeriodType.WEEKLY, ws, we),
        period_type=ReportPeriodType.WEEKLY.value,
        period_start=ws.isoformat(),
        period_end=we.isoformat(),
    )


# ------------------------------------------------------------
# Step 1: scope
# ------------------------------------------------------------

def apply_scope(
    data: ReportWizardData,
    *,
    period_type: str,
    anchor: Optional[date] = None,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    title: str = "",
    selected_project_ids: Optional[Iterable[int]] = None,
) -> ReportWizardData:
    """
    Apply the scope step.

    The title follows the period unless the user typed a title of their
    own (anything other than blank or the previous auto title).
    """
    if period_type not in ReportPeriodType.values:
        raise ReportValidationError("Unknown period type.")

    if period_type == ReportPeriodType.CUSTOM:
        if period_start is None or period_end is None:
            raise ReportValidationError("Custom periods need a start and an end date.")
        start, end = period_start, period_end
    else:
        start, end = period_bounds(period_type, anchor or period_start or data.start_date)

    if end < start:
        raise ReportValidationError("The period end must not be before its start.")

    previous_auto = generate_title(data.period_type, data.start_date, data.end_date) if data.period_start else ""
    typed = (title or "").strip()

    data.period_type = period_type
    data.period_start = start.isoformat()
    data.period_end = end.isoformat()
    if typed and typed != previous_auto:
        data.title = typed
    else:
        data.title = generate_title(period_type, start, end)

    if selected_project_ids is not None:
        select_projects(data, selected_project_ids)
    return data


def shift_week(data: ReportWizardData, direction: int) -> ReportWizardData:
    anchor = data.start_date + timedelta(days=7 * (1 if direction > 0 else -1))
    ws, we = start_of_week(anchor), end_of_week(anchor)
    data.period_type = ReportPeriodType.WEEKLY.value
    data.period_start = ws.isoformat()
    data.period_end = we.isoformat()
    data.title = generate_title(ReportPeriodType.WEEKLY, ws, we)
    return data


def select_projects(
    data: ReportWizardData,
    project_ids: Iterable[int],
    *,
    calculated_progress: Optional[Dict[int, int]] = None,
) -> ReportWizardData:
    """
    Replace the selection, keeping the given order.
    Newly selected projects get a default entry (seeded with the calculated
    progress when known); entries of deselected projects are kept so that
    re-selecting does not lose typed input.
    """
    ordered: List[int] = []
    for pid in project_ids:
        pid = int(pid)
        if pid not in ordered:
            ordered.append(pid)

    calculated_progress = calculated_progress or {}
    for pid in ordered:
        if pid not in data.project_data:
            entry = ProjectStatusEntry()
            if pid in calculated_progress:
                entry.progress_percent = max(0, min(100, int(calculated_progress[pid])))
            data.project_data[pid] = entry

    data.selected_project_ids = ordered
    return data


# ------------------------------------------------------------
# Carry-over and edit loading
# ------------------------------------------------------------

def apply_carry_over(
    data: ReportWizardData,
    *,
    previous_report: Any,
    previous_projects: Iterable[Any],
    previous_risks: Iterable[Any],
    active_project_ids: Iterable[int],
) -> ReportWizardData:
    """
    Seed a new report from the previous period.

    - Open/mitigated risks come across with fresh ids, flagged as carried
      over, keeping the report in which they were first raised.
    - Each project of the previous report is pre-filled with its last
      status/satisfaction/progress as both current and previous values.
    - Projects of the previous report that are still active are selected;
      if none qualify the selection is left alone.
    """
    if previous_report is None:
        return data

    carried: List[RiskEntry] = []
    for r in previous_risks:
        if r.status not in CARRY_OVER_RISK_STATUSES:
            continue
        carried.append(
            RiskEntry(
                project_id=r.project_id,
                type=r.type,
                description=r.description,
                severity=r.severity,
                status=r.status,
                mitigation_notes=r.mitigation_notes or "",
                originated_report_id=r.originated_report_id or r.report_id,
                is_carried_over=True,
            )
        )

    project_data = dict(data.project_data)
    previous_ids: List[int] = []
    for rp in previous_projects:
        previous_ids.append(rp.project_id)
        project_data[rp.project_id] = ProjectStatusEntry(
            status=rp.status,
            previous_status=rp.status,
            client_satisfaction=rp.client_satisfaction,
            previous_satisfaction=rp.client_satisfaction,
            progress_percent=rp.progress_percent,
            previous_progress=rp.progress_percent,
        )

    selected = [pid for pid in active_project_ids if pid in previous_ids]

    data.selected_project_ids = selected or data.selected_project_ids
    data.project_data = project_data
    data.risks = carried
    return data


def data_from_report(report: Any) -> ReportWizardData:
    """
    Rebuild wizard data from a stored report (edit flow).
    A risk counts as carried over iff it originated in another report.
    """
    selected: List[int] = []
    project_data: Dict[int, ProjectStatusEntry] = {}
    for rp in report.report_projects.all():
        selected.append(rp.project_id)
        project_data[rp.project_id] = ProjectStatusEntry(
            status=rp.status,
            previous_status=rp.previous_status or None,
            client_satisfaction=rp.client_satisfaction,
            previous_satisfaction=rp.previous_satisfaction or None,
            progress_percent=rp.progress_percent,
            previous_progress=rp.previous_progress,
            narrative=rp.narrative or "",
            team_contributions=list(rp.team_contributions or []),
            financial_notes=rp.financial_notes or "",
        )

    risks = [
        RiskEntry(
            project_id=r.project_id,
            type=r.type,
            description=r.description,
            severity=r.severity,
            status=r.status,
            mitigation_notes=r.mitigation_notes or "",
            originated_report_id=r.originated_report_id,
            is_carried_over=r.originated_report_id != report.id,
        )
        for r in report.risks.all()
    ]

    highlights: List[HighlightEntry] = []
    decisions: List[DecisionEntry] = []
    for h in report.highlights.all():
        if h.type == HighlightType.DECISION:
            decisions.append(DecisionEntry(project_id=h.project_id, description=h.description))
        else:
            highlights.append(HighlightEntry(project_id=h.project_id, description=h.description))

    return ReportWizardData(
        title=report.title,
        period_type=report.period_type,
        period_start=_parse_date(report.period_start).isoformat(),
        period_end=_parse_date(report.period_end).isoformat(),
        selected_project_ids=selected,
        project_data=project_data,
        risks=risks,
        highlights=highlights,
        decisions=decisions,
    )


# ------------------------------------------------------------
# Navigation
# ------------------------------------------------------------

@dataclass
class WizardState:
    data: ReportWizardData
    step: int = 0
    max_step_reached: int = 0
    editing_report_id: Optional[int] = None

    def next_step(self) -> int:
        self.step = min(self.step + 1, LAST_STEP)
        self.max_step_reached = max(self.max_step_reached, self.step)
        return self.step

    def prev_step(self) -> int:
        self.step = max(self.step - 1, 0)
        return self.step

    def jump_to_step(self, step: int) -> bool:
        """Only steps already reached can be jumped to."""
        if step < 0 or step > self.max_step_reached:
            return False
        self.step = step
        return True

    def update(self, **fields: Any) -> ReportWizardData:
        for key, value in fields.items():
            if not hasattr(self.data, key):
                raise AttributeError(f"Unknown wizard field: {key}")
            setattr(self.data, key, value)
        return self.data

    @property
    def heading(self) -> str:
        return STEP_TITLES.get(self.step, "")

    @property
    def is_last_step(self) -> bool:
        return self.step == LAST_STEP

    def to_session(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "max_step_reached": self.max_step_reached,
            "editing_report_id": self.editing_report_id,
            "data": self.data.to_dict(),
        }

    @classmethod
    def from_session(cls, raw: Dict[str, Any]) -> "WizardState":
        step = int(raw.get("step") or 0)
        max_step = int(raw.get("max_step_reached") or 0)
        return cls(
            data=ReportWizardData.from_dict(raw.get("data") or {}),
            step=max(0, min(step, LAST_STEP)),
            max_step_reached=max(0, min(max_step, LAST_STEP)),
            editing_report_id=_opt_int(raw.get("editing_report_id")),
        )


def new_wizard_state(today: date) -> WizardState:
    return WizardState(data=default_wizard_data(today))


def load_for_edit(report: Any) -> WizardState:
    # When editing, every step is reachable.
    return WizardState(
        data=data_from_report(report),
        step=0,
        max_step_reached=LAST_STEP,
        editing_report_id=report.id,
    )


# ------------------------------------------------------------
# Publish payload
# ------------------------------------------------------------

@dataclass(frozen=True)
class ReportProjectInput:
    project_id: int
    status: str
    previous_status: Optional[str]
    client_satisfaction: str
    previous_satisfaction: Optional[str]
    progress_percent: int
    previous_progress: Optional[int]
    narrative: str
    team_contributions: List[Dict[str, Any]]
    financial_notes: str
    sort_order: int


@dataclass(frozen=True)
class ReportRiskInput:
    type: str
    description: str
    severity: str
    status: str
    mitigation_notes: str = ""
    project_id: Optional[int] = None
    originated_report_id: Optional[int] = None


@dataclass(frozen=True)
class ReportHighlightInput:
    type: str
    description: str
    sort_order: int
    project_id: Optional[int] = None


@dataclass(frozen=True)
class ReportInput:
    title: str
    period_type: str
    period_start: date
    period_end: date
    projects: List[ReportProjectInput]
    risks: List[ReportRiskInput]
    highlights: List[ReportHighlightInput]


def validate_for_publish(data: ReportWizardData) -> None:
    if not (data.title or "").strip():
        raise ReportValidationError("Please provide a report title.")
    if not data.selected_project_ids:
        raise ReportValidationError("Please select at least one project.")
    if data.end_date < data.start_date:
        raise ReportValidationError("The period end must not be before its start.")


def build_publish_input(data: ReportWizardData) -> ReportInput:
    """
    Flatten wizard data into the publish payload.
    Highlights come first; decisions continue the same sort order.
    Blank risk/highlight/decision descriptions are dropped.
    """
    validate_for_publish(data)

    projects: List[ReportProjectInput] = []
    for index, pid in enumerate(data.selected_project_ids):
        pd = data.project_data.get(pid) or ProjectStatusEntry()
        projects.append(
            ReportProjectInput(
                project_id=pid,
                status=pd.status or ReportProjectStatus.ON_TRACK.value,
                previous_status=pd.previous_status,
                client_satisfaction=pd.client_satisfaction or ClientSatisfaction.SATISFIED.value,
                previous_satisfaction=pd.previous_satisfaction,
                progress_percent=max(0, min(100, int(pd.progress_percent or 0))),
                previous_progress=pd.previous_progress,
                narrative=(pd.narrative or "").strip(),
                team_contributions=[c for c in pd.team_contributions if (c.get("contribution") or "").strip()],
                financial_notes=(pd.financial_notes or "").strip(),
                sort_order=index,
            )
        )

    risks = [
        ReportRiskInput(
            type=r.type,
            description=r.description.strip(),
            severity=r.severity,
            status=r.status,
            mitigation_notes=(r.mitigation_notes or "").strip(),
            project_id=r.project_id,
            originated_report_id=r.originated_report_id,
        )
        for r in data.risks
        if (r.description or "").strip()
    ]

    highlights = [h for h in data.highlights if (h.description or "").strip()]
    decisions = [d for d in data.decisions if (d.description or "").strip()]

    flat: List[ReportHighlightInput] = [
        ReportHighlightInput(
            type=HighlightType.HIGHLIGHT.value,
            description=h.description.strip(),
            sort_order=i,
            project_id=h.project_id,
        )
        for i, h in enumerate(highlights)
    ]
    flat.extend(
        ReportHighlightInput(
            type=HighlightType.DECISION.value,
            description=d.description.strip(),
            sort_order=len(highlights) + i,
            project_id=d.project_id,
        )
        for i, d in enumerate(decisions)
    )

    return ReportInput(
        title=data.title.strip(),
        period_type=data.period_type,
        period_start=data.start_date,
        period_end=data.end_date,
        projects=projects,
        risks=risks,
        highlights=flat,
    )
