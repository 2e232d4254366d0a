# -*- coding: utf-8 -*-
# reports/services/stats.py
#
# Per-project numbers shown in the wizard and frozen into ReportProject
# rows on publish.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Dict, Optional

from django.conf import settings
from django.utils import timezone

from projects.enums import PaymentStatus, TaskStatus
from projects.models import Project, Task


@dataclass(frozen=True)
class FinancialSummary:
    total_value: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    invoiced_amount: Decimal = Decimal("0")
    unpaid_amount: Decimal = Decimal("0")
    currency: str = "USD"


@dataclass(frozen=True)
class ProjectReportStats:
    total_workstreams: int
    completed_workstreams: int
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    overdue_tasks: int
    calculated_progress: int
    financials: FinancialSummary = field(default_factory=FinancialSummary)


@dataclass(frozen=True)
class TaskPeriodStats:
    completed: int
    in_progress: int
    overdue: int


def _default_currency() -> str:
    return getattr(settings, "DEFAULT_CURRENCY", "USD") or "USD"


def financial_summary(project: Project) -> FinancialSummary:
    """Paid and invoiced deliverables by payment status; everything else is unpaid."""
    total = paid = invoiced = unpaid = Decimal("0")
    for value, payment_status in project.deliverables.values_list("value", "payment_status"):
        value = value or Decimal("0")
        total += value
        if payment_status == PaymentStatus.PAID:
            paid += value
        elif payment_status == PaymentStatus.INVOICED:
            invoiced += value
        else:
            unpaid += value

    return FinancialSummary(
        total_value=total,
        paid_amount=paid,
        invoiced_amount=invoiced,
        unpaid_amount=unpaid,
        currency=project.currency or _default_currency(),
    )


def project_report_stats(project: Project, today: Optional[date] = None) -> ProjectReportStats:
    """
    Progress is structural: each workstream counts as one unit (complete
    when it has tasks and all are done), each task outside a workstream
    counts as one unit.
    """
    today = today or timezone.localdate()

    workstream_ids = list(project.workstreams.values_list("id", flat=True))
    tasks = list(project.tasks.values("workstream_id", "status", "end_date"))

    by_workstream: Dict[int, list] = {wid: [] for wid in workstream_ids}
    root_tasks = []
    for t in tasks:
        wid = t["workstream_id"]
        if wid is not None and wid in by_workstream:
            by_workstream[wid].append(t)
        else:
            root_tasks.append(t)

    completed_workstreams = sum(
        1
        for ws_tasks in by_workstream.values()
        if ws_tasks and all(t["status"] == TaskStatus.DONE for t in ws_tasks)
    )
    completed_root = sum(1 for t in root_tasks if t["status"] == TaskStatus.DONE)

    units = len(workstream_ids) + len(root_tasks)
    progress = round(100 * (completed_workstreams + completed_root) / units) if units else 0

    completed = sum(1 for t in tasks if t["status"] == TaskStatus.DONE)
    in_progress = sum(1 for t in tasks if t["status"] == TaskStatus.IN_PROGRESS)
    overdue = sum(
        1
        for t in tasks
        if t["status"] != TaskStatus.DONE and t["end_date"] is not None and t["end_date"] < today
    )

    return ProjectReportStats(
        total_workstreams=len(workstream_ids),
        completed_workstreams=completed_workstreams,
        total_tasks=len(tasks),
        completed_tasks=completed,
        in_progress_tasks=in_progress,
        overdue_tasks=overdue,
        calculated_progress=progress,
        financials=financial_summary(project),
    )


def _period_window(period_start: date, period_end: date) -> tuple[datetime, datetime]:
    tz = timezone.get_current_timezone()
    start = datetime.combine(period_start, time.min)
    # The end day is included up to 23:59:59.
    end = datetime.combine(period_end, time.min) + timedelta(days=1) - timedelta(seconds=1)
    if settings.USE_TZ:
        start = timezone.make_aware(start, tz)
        end = timezone.make_aware(end, tz)
    return start, end


def compute_task_stats(
    project: Project,
    period_start: date,
    period_end: date,
    today: Optional[date] = None,
) -> TaskPeriodStats:
    """
    completed: done and last updated inside the reporting period
    in_progress: currently in progress
    overdue: not done with an end date before today
    """
    today = today or timezone.localdate()
    start, end = _period_window(period_start, period_end)

    qs = Task.objects.filter(project=project)
    return TaskPeriodStats(
        completed=qs.filter(status=TaskStatus.DONE, updated_at__gte=start, updated_at__lte=end).count(),
        in_progress=qs.filter(status=TaskStatus.IN_PROGRESS).count(),
        overdue=qs.exclude(status=TaskStatus.DONE).filter(end_date__lt=today).count(),
    )
