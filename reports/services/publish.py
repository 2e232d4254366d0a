# -*- coding: utf-8 -*-
# reports/services/publish.py
#
# Publish/update a report in one transaction.
# The report row, its per-project status blocks, risks and highlights are
# written together or not at all.

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List, Optional

from django.contrib.auth.models import AbstractUser
from django.db import transaction
from django.utils import timezone

from accounts.models import Organization
from projects.models import Project
from reports.models import Report, ReportHighlight, ReportProject, ReportRisk
from reports.services.access import require_report_org_member
from reports.services.stats import compute_task_stats, project_report_stats
from reports.services.wizard import ReportInput, ReportValidationError


logger = logging.getLogger("pmdesk.reports")


def _projects_for(org: Organization, payload: ReportInput) -> Dict[int, Project]:
    ids = [p.project_id for p in payload.projects]
    projects = {p.id: p for p in Project.objects.filter(organization=org, id__in=ids)}
    missing = [pid for pid in ids if pid not in projects]
    if missing:
        raise ReportValidationError("Selected projects must belong to this organization.")
    return projects


def _org_project_id(project_id: Optional[int], org_project_ids: set) -> Optional[int]:
    # Risks and highlights may point at any project of the organization, or at none.
    if project_id is None or project_id not in org_project_ids:
        return None
    return project_id


def _write_children(report: Report, payload: ReportInput, projects: Dict[int, Project], today: date) -> None:
    rows: List[ReportProject] = []
    for item in payload.projects:
        project = projects[item.project_id]
        period = compute_task_stats(project, payload.period_start, payload.period_end, today)
        fin = project_report_stats(project, today).financials
        rows.append(
            ReportProject(
                report=report,
                project=project,
                status=item.status,
                previous_status=item.previous_status or "",
                client_satisfaction=item.client_satisfaction,
                previous_satisfaction=item.previous_satisfaction or "",
                progress_percent=item.progress_percent,
                previous_progress=item.previous_progress,
                narrative=item.narrative,
                team_contributions=item.team_contributions,
                financial_notes=item.financial_notes,
                tasks_completed=period.completed,
                tasks_in_progress=period.in_progress,
                tasks_overdue=period.overdue,
                financial_total_value=fin.total_value,
                financial_paid_amount=fin.paid_amount,
                financial_invoiced_amount=fin.invoiced_amount,
                financial_unpaid_amount=fin.unpaid_amount,
                financial_currency=fin.currency,
                sort_order=item.sort_order,
            )
        )
    ReportProject.objects.bulk_create(rows)

    org_project_ids = set(
        Project.objects.filter(organization_id=report.organization_id).values_list("id", flat=True)
    )

    # Originating reports that no longer exist fall back to this one.
    origin_ids = {r.originated_report_id for r in payload.risks if r.originated_report_id}
    existing_origins = set(
        Report.objects.filter(id__in=origin_ids, organization_id=report.organization_id).values_list("id", flat=True)
    )

    ReportRisk.objects.bulk_create(
        [
            ReportRisk(
                report=report,
                project_id=_org_project_id(r.project_id, org_project_ids),
                type=r.type,
                description=r.description,
                severity=r.severity,
                status=r.status,
                mitigation_notes=r.mitigation_notes,
                originated_report_id=(
                    r.originated_report_id if r.originated_report_id in existing_origins else report.id
                ),
            )
            for r in payload.risks
        ]
    )

    ReportHighlight.objects.bulk_create(
        [
            ReportHighlight(
                report=report,
                project_id=_org_project_id(h.project_id, org_project_ids),
                type=h.type,
                description=h.description,
                sort_order=h.sort_order,
            )
            for h in payload.highlights
        ]
    )


def create_report(
    *,
    org: Organization,
    actor: AbstractUser,
    payload: ReportInput,
    today: Optional[date] = None,
) -> Report:
    require_report_org_member(org, actor)
    today = today or timezone.localdate()

    with transaction.atomic():
        projects = _projects_for(org, payload)
        report = Report.objects.create(
            organization=org,
            created_by=actor,
            title=payload.title,
            period_type=payload.period_type,
            period_start=payload.period_start,
            period_end=payload.period_end,
        )
        _write_children(report, payload, projects, today)

    logger.info(
        "report_published report_id=%s org_id=%s projects=%d risks=%d highlights=%d",
        report.id,
        org.id,
        len(payload.projects),
        len(payload.risks),
        len(payload.highlights),
    )
    return report


def update_report(
    *,
    report: Report,
    actor: AbstractUser,
    payload: ReportInput,
    today: Optional[date] = None,
) -> Report:
    """
    Replace the report contents.
    Child rows are deleted and re-inserted; carried-over risks keep the
    report in which they were first raised.
    """
    require_report_org_member(report.organization, actor)
    today = today or timezone.localdate()

    with transaction.atomic():
        projects = _projects_for(report.organization, payload)

        report.title = payload.title
        report.period_type = payload.period_type
        report.period_start = payload.period_start
        report.period_end = payload.period_end
        report.save(update_fields=["title", "period_type", "period_start", "period_end", "updated_at"])

        report.report_projects.all().delete()
        report.risks.all().delete()
        report.highlights.all().delete()
        _write_children(report, payload, projects, today)

    logger.info("report_updated report_id=%s actor_id=%s", report.id, actor.id)
    return report


def delete_report(*, report: Report, actor: AbstractUser) -> None:
    require_report_org_member(report.organization, actor)
    report_id = report.id
    with transaction.atomic():
        report.delete()
    logger.info("report_deleted report_id=%s actor_id=%s", report_id, actor.id)
