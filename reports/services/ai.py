# -*- coding: utf-8 -*-
# reports/services/ai.py
#
# AI-assisted content for the Report Wizard:
# - project narrative (step 2)
# - risk/blocker suggestions (step 4)
# - highlight suggestions (step 5)
#
# All calls go through assistant.services.llm and are rate limited per user.
# NOTE: Keep code comments 7-bit ASCII only.

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from django.contrib.auth.models import AbstractUser
from django.utils import timezone

from assistant.services.llm import LLMResponseError, extract_json, generate_text
from assistant.services.rate_limit import enforce_rate_limit
from projects.enums import TaskStatus
from projects.models import Project
from reports.enums import RiskSeverity, RiskType
from reports.services.wizard import HighlightEntry, ProjectStatusEntry, RiskEntry


logger = logging.getLogger("pmdesk.reports")

NARRATIVE_SYSTEM = (
    "You are a professional project management report writer. Write concise, factual project "
    "status narratives for weekly reports. Use a professional but clear tone. Do NOT use "
    "markdown formatting - write plain text paragraphs only."
)

RISKS_SYSTEM = (
    "You are a project risk analyst. Identify potential risks and blockers based on project "
    "status data. Return ONLY a JSON array. No markdown, no explanation."
)

HIGHLIGHTS_SYSTEM = (
    "You are a project management report writer. Identify key achievements and highlights from "
    "project status data. Return ONLY a JSON array. No markdown, no explanation."
)

ProjectSummary = Tuple[str, ProjectStatusEntry]


def _status_label(value: str) -> str:
    return (value or "").replace("_", " ")


def _delta_text(entry: ProjectStatusEntry, suffix: str = "") -> str:
    delta = entry.progress_delta
    if delta is None:
        return ""
    sign = "+" if delta > 0 else ""
    return f" ({sign}{delta}%{suffix})"


def _names(rows: Iterable[str]) -> str:
    return ", ".join(rows)


def build_narrative_prompt(project: Project, entry: ProjectStatusEntry, today: Optional[date] = None) -> str:
    today = today or timezone.localdate()
    week_ago = timezone.now() - timedelta(days=7)

    completed = list(
        project.tasks.filter(status=TaskStatus.DONE, updated_at__gte=week_ago).values_list("name", flat=True)[:10]
    )
    in_progress = list(project.tasks.filter(status=TaskStatus.IN_PROGRESS).values_list("name", flat=True)[:10])
    overdue = list(
        project.tasks.exclude(status=TaskStatus.DONE).filter(end_date__lt=today).values_list("name", flat=True)[:5]
    )

    team_lines = [
        f"- {c.get('member_name') or 'Team member'}: {c.get('contribution', '').strip()}"
        for c in entry.team_contributions
        if (c.get("contribution") or "").strip()
    ]

    header = f"Project: {project.name}"
    if project.client_name:
        header += f" (Client: {project.client_name})"

    lines = [
        "Write a 2-3 sentence narrative for the following project status update:",
        "",
        header,
        f"Status: {_status_label(entry.status)}",
        f"Progress: {entry.progress_percent}%{_delta_text(entry, ' from last week')}",
        "",
        (
            f"Completed this week ({len(completed)}): {_names(completed)}"
            if completed
            else "No tasks completed this week."
        ),
    ]
    if in_progress:
        lines.append(f"Currently in progress ({len(in_progress)}): {_names(in_progress)}")
    if overdue:
        lines.append(f"Overdue tasks ({len(overdue)}): {_names(overdue)}")
    if team_lines:
        lines.extend(["", "Team activity:", *team_lines])
    lines.extend(
        [
            "",
            "Write a brief, professional narrative summarizing progress, key accomplishments, and any "
            "concerns. Keep it factual and concise (2-3 sentences). Do not use bullet points or headers.",
        ]
    )
    return "\n".join(lines)


def generate_report_narrative(
    *,
    user: AbstractUser,
    project: Project,
    entry: ProjectStatusEntry,
    today: Optional[date] = None,
) -> str:
    enforce_rate_limit(user_id=user.id)
    text = generate_text(
        system_blocks=[NARRATIVE_SYSTEM],
        messages=[{"role": "user", "content": build_narrative_prompt(project, entry, today)}],
        user=user,
        temperature=0.5,
        max_tokens=300,
    )
    logger.info("ai_narrative project_id=%s chars=%d", project.id, len(text))
    return text.strip()


def _project_lines(projects: Sequence[ProjectSummary], *, with_delta: bool) -> str:
    lines = []
    for name, entry in projects:
        line = f"- {name}: Status={_status_label(entry.status)}, Progress={entry.progress_percent}%"
        if with_delta:
            line += _delta_text(entry)
        if entry.narrative.strip():
            line += f", Notes: {entry.narrative.strip()}"
        lines.append(line)
    return "\n".join(lines)


def _parse_list(raw: str, error: str) -> List[Dict[str, Any]]:
    payload = extract_json(raw)
    if not isinstance(payload, list):
        logger.warning("ai_unparsable_list length=%d", len(raw or ""))
        raise LLMResponseError(error)
    return [item for item in payload if isinstance(item, dict)]


def _project_name(item: Dict[str, Any]) -> Optional[str]:
    name = item.get("projectName", item.get("project_name"))
    if not isinstance(name, str) or not name.strip() or name.strip().lower() == "null":
        return None
    return name.strip()


def suggest_report_risks(
    *,
    user: AbstractUser,
    projects: Sequence[ProjectSummary],
    existing_risks: Sequence[RiskEntry] = (),
) -> List[Dict[str, Any]]:
    """
    Returns [{"type", "description", "severity", "project_name"}, ...].
    Items with a blank description are dropped; unknown type/severity fall
    back to risk/medium.
    """
    enforce_rate_limit(user_id=user.id)

    existing = ""
    if existing_risks:
        existing = "\nAlready identified risks/blockers (do NOT duplicate these):\n" + "\n".join(
            f"- [{r.type}/{r.severity}] {r.description}" for r in existing_risks
        )

    prompt = f"""Based on the following project statuses, suggest 2-4 potential risks or blockers that should be tracked:

Projects:
{_project_lines(projects, with_delta=False)}
{existing}

Focus on:
- Projects that are behind schedule or at risk
- Low progress relative to timeline
- Resource or dependency risks
- Patterns that suggest problems

Return a JSON array in this exact format:
[
  {{
    "type": "blocker" or "risk",
    "description": "Clear description of the risk",
    "severity": "low" | "medium" | "high" | "critical",
    "projectName": "Name of relevant project or null"
  }}
]

Only return the JSON array."""

    raw = generate_text(
        system_blocks=[RISKS_SYSTEM],
        messages=[{"role": "user", "content": prompt}],
        user=user,
        temperature=0.6,
        max_tokens=600,
    )

    out: List[Dict[str, Any]] = []
    for item in _parse_list(raw, "Failed to parse AI risk suggestions"):
        description = str(item.get("description") or "").strip()
        if not description:
            continue
        risk_type = item.get("type") if item.get("type") in RiskType.values else RiskType.RISK.value
        severity = item.get("severity") if item.get("severity") in RiskSeverity.values else RiskSeverity.MEDIUM.value
        out.append(
            {
                "type": risk_type,
                "description": description,
                "severity": severity,
                "project_name": _project_name(item),
            }
        )
    logger.info("ai_risks suggestions=%d", len(out))
    return out


def suggest_report_highlights(
    *,
    user: AbstractUser,
    projects: Sequence[ProjectSummary],
    existing_highlights: Sequence[HighlightEntry] = (),
) -> List[Dict[str, Any]]:
    """Returns [{"description", "project_name"}, ...]."""
    enforce_rate_limit(user_id=user.id)

    existing = ""
    if existing_highlights:
        existing = "\nAlready listed highlights (do NOT duplicate):\n" + "\n".join(
            f"- {h.description}" for h in existing_highlights
        )

    prompt = f"""Based on the following project statuses, suggest 2-3 noteworthy highlights or achievements for this week's report:

Projects:
{_project_lines(projects, with_delta=True)}
{existing}

Focus on:
- Significant progress or milestones reached
- Projects that moved from behind/at-risk to on-track
- Large progress jumps
- Notable accomplishments mentioned in narratives

Return a JSON array in this exact format:
[
  {{
    "description": "Clear, concise highlight statement",
    "projectName": "Name of relevant project or null"
  }}
]

Only return the JSON array."""

    raw = generate_text(
        system_blocks=[HIGHLIGHTS_SYSTEM],
        messages=[{"role": "user", "content": prompt}],
        user=user,
        temperature=0.5,
        max_tokens=400,
    )

    out = [
        {"description": str(item.get("description") or "").strip(), "project_name": _project_name(item)}
        for item in _parse_list(raw, "Failed to parse AI highlight suggestions")
    ]
    out = [item for item in out if item["description"]]
    logger.info("ai_highlights suggestions=%d", len(out))
    return out
