# -*- coding: utf-8 -*-
# reports/services/queries.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AbstractUser
from django.db.models import Prefetch
from django.utils import timezone

from accounts.models import Organization
from accounts.services_organizations import is_org_member
from projects.enums import ProjectStatus, TaskStatus
from projects.models import Project, ProjectMember, Task
from reports.enums import CARRY_OVER_RISK_STATUSES
from reports.models import Report, ReportProject, ReportRisk
from reports.services.access import ReportNotFound, ReportPermissionError, can_view_report
from reports.services.stats import project_report_stats


User = get_user_model()

INACTIVE_PROJECT_STATUSES = (ProjectStatus.COMPLETED, ProjectStatus.CANCELLED)


@dataclass
class PreviousReportData:
    report: Optional[Report]
    projects: List[ReportProject] = field(default_factory=list)
    risks: List[ReportRisk] = field(default_factory=list)


@dataclass
class ActionItem:
    task: Task
    weeks_open: int


@dataclass
class ReportWizardContext:
    projects: List[Project]
    members: List[AbstractUser]
    project_members: Dict[int, List[AbstractUser]]
    calculated_progress: Dict[int, int]
    action_items: List[ActionItem]
    previous: PreviousReportData


def _report_qs():
    return Report.objects.select_related("organization", "created_by").prefetch_related(
        Prefetch("report_projects", queryset=ReportProject.objects.select_related("project")),
        Prefetch("risks", queryset=ReportRisk.objects.select_related("project")),
        "highlights",
    )


def get_report(report_id: int, user: AbstractUser) -> Report:
    report = _report_qs().filter(id=report_id).first()
    if report is None:
        raise ReportNotFound("Report not found.")
    if not can_view_report(report, user):
        raise ReportPermissionError("You must be a member of this organization.")
    return report


def list_reports(org: Organization):
    return (
        Report.objects.filter(organization=org)
        .select_related("created_by")
        .prefetch_related("report_projects__project")
        .order_by("-period_start", "-id")
    )


def project_reports(project: Project, user: AbstractUser):
    """Reports that include the project, newest period first."""
    if not is_org_member(project.organization, user):
        return Report.objects.none()
    return (
        Report.objects.filter(report_projects__project=project)
        .select_related("created_by")
        .order_by("-period_start", "-id")
        .distinct()
    )


def previous_report_data(org: Organization, *, exclude_report_id: Optional[int] = None) -> PreviousReportData:
    """
    Most recent report of the organization by period start, with its
    project blocks and the risks still worth carrying forward.
    """
    qs = Report.objects.filter(organization=org)
    if exclude_report_id is not None:
        qs = qs.exclude(id=exclude_report_id)
    report = qs.order_by("-period_start", "-created_at", "-id").first()
    if report is None:
        return PreviousReportData(report=None)

    return PreviousReportData(
        report=report,
        projects=list(report.report_projects.order_by("sort_order", "id")),
        risks=list(report.risks.filter(status__in=CARRY_OVER_RISK_STATUSES).order_by("id")),
    )


def weeks_open(created_at, today: date) -> int:
    created = timezone.localtime(created_at).date() if timezone.is_aware(created_at) else created_at.date()
    return max(0, (today - created).days // 7)


def open_action_items(org: Organization, today: Optional[date] = None) -> List[ActionItem]:
    """Unfinished tasks raised from reports, oldest first."""
    today = today or timezone.localdate()
    tasks = (
        Task.objects.filter(project__organization=org, source_report__isnull=False)
        .exclude(status=TaskStatus.DONE)
        .select_related("project", "assignee", "source_report")
        .order_by("created_at", "id")
    )
    return [ActionItem(task=t, weeks_open=weeks_open(t.created_at, today)) for t in tasks]


def report_action_items(report: Report):
    return (
        Task.objects.filter(source_report=report)
        .select_related("project", "assignee")
        .order_by("created_at", "id")
    )


def active_projects(org: Organization) -> List[Project]:
    return list(
        Project.objects.filter(organization=org)
        .exclude(status__in=INACTIVE_PROJECT_STATUSES)
        .order_by("-updated_at", "-id")
    )


def report_wizard_data(
    org: Organization,
    user: AbstractUser,
    today: Optional[date] = None,
    *,
    exclude_report_id: Optional[int] = None,
) -> ReportWizardContext:
    """Everything the wizard needs to render its choices."""
    if not is_org_member(org, user):
        raise ReportPermissionError("You must be a member of this organization.")
    today = today or timezone.localdate()

    projects = active_projects(org)
    project_ids = [p.id for p in projects]

    members = list(User.objects.filter(organization_memberships__organization=org).order_by("username"))

    project_members: Dict[int, List[Any]] = {pid: [] for pid in project_ids}
    for pm in ProjectMember.objects.filter(project_id__in=project_ids).select_related("user").order_by("id"):
        project_members[pm.project_id].append(pm.user)

    return ReportWizardContext(
        projects=projects,
        members=members,
        project_members=project_members,
        calculated_progress={p.id: project_report_stats(p, today).calculated_progress for p in projects},
        action_items=open_action_items(org, today),
        previous=previous_report_data(org, exclude_report_id=exclude_report_id),
    )
