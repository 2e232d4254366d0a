# -*- coding: utf-8 -*-
# projects/enums.py
# Purpose: Enumerated fields shared by project/task models, forms and services

from django.db import models


class ProjectStatus(models.TextChoices):
    BACKLOG = "backlog", "Backlog"
    PLANNED = "planned", "Planned"
    ACTIVE = "active", "Active"
    CANCELLED = "cancelled", "Cancelled"
    COMPLETED = "completed", "Completed"


class ProjectPriority(models.TextChoices):
    URGENT = "urgent", "Urgent"
    HIGH = "high", "High"
    MEDIUM = "medium", "Medium"
    LOW = "low", "Low"


class ProjectIntent(models.TextChoices):
    DELIVERY = "delivery", "Delivery"
    EXPERIMENT = "experiment", "Experiment"
    INTERNAL = "internal", "Internal"


class SuccessType(models.TextChoices):
    DELIVERABLE = "deliverable", "Deliverable"
    METRIC = "metric", "Metric"
    UNDEFINED = "undefined", "Undefined"


class DeadlineType(models.TextChoices):
    NONE = "none", "None"
    TARGET = "target", "Target"
    FIXED = "fixed", "Fixed"


class WorkStructure(models.TextChoices):
    LINEAR = "linear", "Linear"
    MILESTONES = "milestones", "Milestones"
    MULTISTREAM = "multistream", "Multiple workstreams"


class TaskStatus(models.TextChoices):
    TODO = "todo", "To do"
    IN_PROGRESS = "in-progress", "In progress"
    DONE = "done", "Done"


class TaskPriority(models.TextChoices):
    NO_PRIORITY = "no-priority", "No priority"
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    URGENT = "urgent", "Urgent"


class DeliverableStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In progress"
    COMPLETED = "completed", "Completed"


class PaymentStatus(models.TextChoices):
    UNPAID = "unpaid", "Unpaid"
    INVOICED = "invoiced", "Invoiced"
    PAID = "paid", "Paid"
