# -*- coding: utf-8 -*-
# reports/enums.py
# Purpose: Enumerated fields for reports, risks and highlights

from django.db import models


class ReportPeriodType(models.TextChoices):
    WEEKLY = "weekly", "Weekly"
    MONTHLY = "monthly", "Monthly"
    CUSTOM = "custom", "Custom"


class ReportProjectStatus(models.TextChoices):
    ON_TRACK = "on_track", "On track"
    BEHIND = "behind", "Behind"
    AT_RISK = "at_risk", "At risk"
    HALTED = "halted", "Halted"
    COMPLETED = "completed", "Completed"


class ClientSatisfaction(models.TextChoices):
    SATISFIED = "satisfied", "Satisfied"
    NEUTRAL = "neutral", "Neutral"
    DISSATISFIED = "dissatisfied", "Dissatisfied"


class RiskType(models.TextChoices):
    BLOCKER = "blocker", "Blocker"
    RISK = "risk", "Risk"


class RiskSeverity(models.TextChoices):
    LOW = "low", "Low"
    MEDIUM = "medium", "Medium"
    HIGH = "high", "High"
    CRITICAL = "critical", "Critical"


class RiskStatus(models.TextChoices):
    OPEN = "open", "Open"
    MITIGATED = "mitigated", "Mitigated"
    RESOLVED = "resolved", "Resolved"


class HighlightType(models.TextChoices):
    HIGHLIGHT = "highlight", "Highlight"
    DECISION = "decision", "Decision"


# Risks still worth tracking in the next period
CARRY_OVER_RISK_STATUSES = (RiskStatus.OPEN, RiskStatus.MITIGATED)

ACTION_ITEM_TAG = "Action Item"
