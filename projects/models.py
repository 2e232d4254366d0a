# -*- coding: utf-8 -*-
# projects/models.py

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .enums import (
    DeadlineType,
    DeliverableStatus,
    PaymentStatus,
    ProjectIntent,
    ProjectPriority,
    ProjectStatus,
    SuccessType,
    TaskPriority,
    TaskStatus,
    WorkStructure,
)


class Project(models.Model):
    """
    Top-level unit of delivery work inside an Organization.
    """

    Status = ProjectStatus
    Priority = ProjectPriority

    organization = models.ForeignKey(
        "accounts.Organization",
        on_delete=models.CASCADE,
        related_name="projects",
    )
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="owned_projects",
    )

    # Identity
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    client_name = models.CharField(max_length=200, blank=True, default="")

    status = models.CharField(max_length=20, choices=ProjectStatus.choices, default=ProjectStatus.PLANNED)
    priority = models.CharField(max_length=10, choices=ProjectPriority.choices, default=ProjectPriority.MEDIUM)
    progress = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )

    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    # Guided wizard fields
    intent = models.CharField(max_length=20, choices=ProjectIntent.choices, blank=True, default="")
    success_type = models.CharField(max_length=20, choices=SuccessType.choices, default=SuccessType.UNDEFINED)
    deadline_type = models.CharField(max_length=10, choices=DeadlineType.choices, default=DeadlineType.NONE)
    deadline_date = models.DateField(null=True, blank=True)
    work_structure = models.CharField(max_length=20, choices=WorkStructure.choices, default=WorkStructure.LINEAR)

    currency = models.CharField(max_length=3, default="USD")

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["organization", "status"], name="projects_org_status_idx"),
            models.Index(fields=["organization", "updated_at"], name="projects_org_updated_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class ProjectMember(models.Model):
    class Role(models.TextChoices):
        OWNER = "owner", "Owner"
        PIC = "pic", "Person in charge"
        MEMBER = "member", "Member"
        VIEWER = "viewer", "Viewer"

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="members")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="project_memberships",
    )
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["project", "user"], name="uq_project_member"),
        ]

    def __str__(self) -> str:
        return f"{self.project_id}:{self.user_id} ({self.role})"


class Workstream(models.Model):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="workstreams")
    name = models.CharField(max_length=200)
    sort_order = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sort_order", "id"]

    def __str__(self) -> str:
        return self.name


class Task(models.Model):
    Status = TaskStatus
    Priority = TaskPriority

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="tasks")
    workstream = models.ForeignKey(
        Workstream,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tasks",
    )

    name = models.CharField(max_length=500)
    description = models.TextField(blank=True, default="")
    status = models.CharField(max_length=20, choices=TaskStatus.choices, default=TaskStatus.TODO)
    priority = models.CharField(max_length=20, choices=TaskPriority.choices, default=TaskPriority.NO_PRIORITY)
    tag = models.CharField(max_length=100, blank=True, default="")

    assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_tasks",
    )

    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    sort_order = models.IntegerField(default=0)

    # Action items: the report this task was raised from
    source_report = models.ForeignKey(
        "reports.Report",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="action_items",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["sort_order", "id"]
        indexes = [
            models.Index(fields=["project", "status"], name="tasks_project_status_idx"),
            models.Index(fields=["assignee", "status"], name="tasks_assignee_status_idx"),
            models.Index(fields=["source_report"], name="tasks_source_report_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class ProjectDeliverable(models.Model):
    Status = DeliverableStatus
    PaymentStatus = PaymentStatus

    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="deliverables")
    title = models.CharField(max_length=500)
    due_date = models.DateField(null=True, blank=True)
    value = models.DecimalField(max_digits=15, decimal_places=2, default=Decimal("0"))
    status = models.CharField(max_length=20, choices=DeliverableStatus.choices, default=DeliverableStatus.PENDING)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID)
    sort_order = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["sort_order", "id"]

    def __str__(self) -> str:
        return self.title


class ProjectMetric(models.Model):
    project = models.ForeignKey(Project, on_delete=models.CASCADE, related_name="metrics")
    name = models.CharField(max_length=200)
    target = models.CharField(max_length=100, blank=True, default="")
    sort_order = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["sort_order", "id"]

    def __str__(self) -> str:
        return self.name
