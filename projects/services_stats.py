# -*- coding: utf-8 -*-
# projects/services_stats.py
#
# Dashboard and performance numbers for an organization.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Count
from django.utils import timezone

from accounts.models import Organization
from projects.enums import ProjectStatus, TaskStatus
from projects.models import Project, Task


TREND_WEEKS = 12
TOP_CONTRIBUTORS = 10


def _aware(d: date) -> datetime:
    dt = datetime.combine(d, time.min)
    if settings.USE_TZ:
        return timezone.make_aware(dt, timezone.get_current_timezone())
    return dt


def project_stats(org: Organization) -> Dict[str, int]:
    counts = {s: 0 for s in ProjectStatus.values}
    for row in Project.objects.filter(organization=org).values("status").annotate(n=Count("id")):
        counts[row["status"]] = row["n"]
    counts["total"] = sum(counts[s] for s in ProjectStatus.values)
    return counts


def task_stats(project: Project, today: Optional[date] = None) -> Dict[str, int]:
    today = today or timezone.localdate()
    counts = {s: 0 for s in TaskStatus.values}
    for row in project.tasks.values("status").annotate(n=Count("id")):
        counts[row["status"]] = row["n"]
    counts["total"] = sum(counts[s] for s in TaskStatus.values)
    counts["overdue"] = project.tasks.exclude(status=TaskStatus.DONE).filter(end_date__lt=today).count()
    return counts


@dataclass
class PerformanceMetrics:
    project_total: int
    projects_by_status: Dict[str, int]
    average_progress: int
    completion_rate: int
    task_total: int
    tasks_by_status: Dict[str, int]
    completed_this_week: int
    completed_this_month: int
    overdue_count: int
    weekly_trends: List[Dict[str, object]] = field(default_factory=list)
    team_productivity: List[Dict[str, object]] = field(default_factory=list)


def performance_metrics(org: Organization, today: Optional[date] = None) -> PerformanceMetrics:
    """
    "Completed" means status done, dated by the task's last update.
    Weeks start on Monday; the trend covers the last TREND_WEEKS weeks,
    the current one included.
    """
    today = today or timezone.localdate()
    week_start = today - timedelta(days=today.weekday())
    month_start = today.replace(day=1)

    projects = list(Project.objects.filter(organization=org).values("status", "progress"))
    by_status = {s: 0 for s in ProjectStatus.values}
    for p in projects:
        by_status[p["status"]] = by_status.get(p["status"], 0) + 1
    n_projects = len(projects)
    average_progress = round(sum(p["progress"] or 0 for p in projects) / n_projects) if n_projects else 0
    completion_rate = round(100 * by_status[ProjectStatus.COMPLETED] / n_projects) if n_projects else 0

    tasks = list(Task.objects.filter(project__organization=org).values("status", "end_date", "updated_at", "assignee_id"))
    tasks_by_status = {s: 0 for s in TaskStatus.values}
    for t in tasks:
        tasks_by_status[t["status"]] = tasks_by_status.get(t["status"], 0) + 1

    done = [t for t in tasks if t["status"] == TaskStatus.DONE and t["updated_at"] is not None]
    week_start_dt = _aware(week_start)
    month_start_dt = _aware(month_start)

    trends = []
    for i in range(TREND_WEEKS - 1, -1, -1):
        start = week_start - timedelta(weeks=i)
        lo, hi = _aware(start), _aware(start + timedelta(weeks=1))
        trends.append(
            {
                "week_start": start,
                "label": f"{start.strftime('%b')} {start.day}",
                "tasks_completed": sum(1 for t in done if lo <= t["updated_at"] < hi),
            }
        )

    User = get_user_model()
    members = User.objects.filter(organization_memberships__organization=org).select_related("profile")
    per_member = {u.id: {"user_id": u.id, "name": u.display_name, "tasks_completed": 0} for u in members}
    for t in done:
        if t["assignee_id"] in per_member and t["updated_at"] >= month_start_dt:
            per_member[t["assignee_id"]]["tasks_completed"] += 1
    productivity = sorted(per_member.values(), key=lambda m: (-m["tasks_completed"], m["name"]))[:TOP_CONTRIBUTORS]

    return PerformanceMetrics(
        project_total=n_projects,
        projects_by_status=by_status,
        average_progress=average_progress,
        completion_rate=completion_rate,
        task_total=len(tasks),
        tasks_by_status=tasks_by_status,
        completed_this_week=sum(1 for t in done if t["updated_at"] >= week_start_dt),
        completed_this_month=sum(1 for t in done if t["updated_at"] >= month_start_dt),
        overdue_count=sum(
            1 for t in tasks if t["status"] != TaskStatus.DONE and t["end_date"] is not None and t["end_date"] < today
        ),
        weekly_trends=trends,
        team_productivity=productivity,
    )
