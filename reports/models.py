# -*- coding: utf-8 -*-
# reports/models.py

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .enums import (
    ClientSatisfaction,
    HighlightType,
    ReportPeriodType,
    ReportProjectStatus,
    RiskSeverity,
    RiskStatus,
    RiskType,
)


class Report(models.Model):
    """
    Periodic status document for one project or a portfolio of projects.
    Per-project status lives in ReportProject rows.
    """

    PeriodType = ReportPeriodType

    organization = models.ForeignKey(
        "accounts.Organization",
        on_delete=models.CASCADE,
        related_name="reports",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reports_authored",
    )

    title = models.CharField(max_length=300)
    period_type = models.CharField(max_length=10, choices=ReportPeriodType.choices, default=ReportPeriodType.WEEKLY)
    period_start = models.DateField()
    period_end = models.DateField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-period_start", "-id"]
        indexes = [
            models.Index(fields=["organization", "-period_start"], name="reports_org_period_idx"),
        ]

    def __str__(self) -> str:
        return self.title


class ReportProject(models.Model):
    Status = ReportProjectStatus
    Satisfaction = ClientSatisfaction

    report = models.ForeignKey(Report, on_delete=models.CASCADE, related_name="report_projects")
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.CASCADE,
        related_name="report_entries",
    )

    status = models.CharField(max_length=20, choices=ReportProjectStatus.choices, default=ReportProjectStatus.ON_TRACK)
    previous_status = models.CharField(max_length=20, choices=ReportProjectStatus.choices, blank=True, default="")
    client_satisfaction = models.CharField(
        max_length=20,
        choices=ClientSatisfaction.choices,
        default=ClientSatisfaction.SATISFIED,
    )
    previous_satisfaction = models.CharField(max_length=20, choices=ClientSatisfaction.choices, blank=True, default="")
    progress_percent = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )
    previous_progress = models.PositiveSmallIntegerField(null=True, blank=True)

    narrative = models.TextField(blank=True, default="")
    # [{"member_id": int|None, "member_name": str, "contribution": str}, ...]
    team_contributions = models.JSONField(default=list, blank=True)
    financial_notes = models.TextField(blank=True, default="")

    # Snapshot at publish time
    tasks_completed = models.IntegerField(default=0)
    tasks_in_progress = models.IntegerField(default=0)
    tasks_overdue = models.IntegerField(default=0)

    financial_total_value = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0"))
    financial_paid_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0"))
    financial_invoiced_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0"))
    financial_unpaid_amount = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0"))
    financial_currency = models.CharField(max_length=3, default="USD")

    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]
        constraints = [
            models.UniqueConstraint(fields=["report", "project"], name="uq_report_project"),
        ]

    def __str__(self) -> str:
        return f"{self.report_id}:{self.project_id}"

    @property
    def progress_delta(self):
        if self.previous_progress is None:
            return None
        return self.progress_percent - self.previous_progress


class ReportRisk(models.Model):
    Type = RiskType
    Severity = RiskSeverity
    Status = RiskStatus

    report = models.ForeignKey(Report, on_delete=models.CASCADE, related_name="risks")
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="report_risks",
    )

    type = models.CharField(max_length=10, choices=RiskType.choices, default=RiskType.RISK)
    description = models.TextField()
    severity = models.CharField(max_length=10, choices=RiskSeverity.choices, default=RiskSeverity.MEDIUM)
    status = models.CharField(max_length=10, choices=RiskStatus.choices, default=RiskStatus.OPEN)
    mitigation_notes = models.TextField(blank=True, default="")

    # The report in which this risk was first raised
    originated_report = models.ForeignKey(
        Report,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="originated_risks",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["report", "status"], name="risks_report_status_idx"),
        ]

    def __str__(self) -> str:
        return f"[{self.type}/{self.severity}] {self.description[:60]}"

    @property
    def is_carried_over(self) -> bool:
        return self.originated_report_id is not None and self.originated_report_id != self.report_id


class ReportHighlight(models.Model):
    Type = HighlightType

    report = models.ForeignKey(Report, on_delete=models.CASCADE, related_name="highlights")
    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="report_highlights",
    )

    type = models.CharField(max_length=10, choices=HighlightType.choices, default=HighlightType.HIGHLIGHT)
    description = models.TextField()
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]

    def __str__(self) -> str:
        return f"[{self.type}] {self.description[:60]}"
