# -*- coding: utf-8 -*-
# reports/views.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from django.contrib import messages
from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.utils import timezone
from django.views.decorators.http import require_POST

from accounts.security import record_security_event
from accounts.services_organizations import active_organization, set_active_organization
from assistant.services.llm import LLMProviderError, LLMResponseError
from assistant.services.rate_limit import RateLimitExceeded
from projects.models import Project
from projects.services_project_membership import accessible_projects_qs
from reports.forms import (
    ActionItemForm,
    DecisionFormSet,
    FinancialNotesForm,
    HighlightForm,
    HighlightFormSet,
    ProjectStatusForm,
    ReportScopeForm,
    RiskForm,
    RiskFormSet,
    entries_from_formset,
)
from reports.services.access import ReportPermissionError, accessible_reports_qs
from reports.services.action_items import create_report_action_item
from reports.services.ai import generate_report_narrative, suggest_report_highlights, suggest_report_risks
from reports.services.publish import create_report, delete_report, update_report
from reports.services.queries import (
    get_report,
    list_reports,
    project_reports,
    report_action_items,
    report_wizard_data,
)
from reports.services.stats import project_report_stats
from reports.services.wizard import (
    STEPS,
    HighlightEntry,
    ReportValidationError,
    RiskEntry,
    WizardState,
    apply_carry_over,
    apply_scope,
    build_publish_input,
    load_for_edit,
    new_wizard_state,
    select_projects,
    shift_week,
)


logger = logging.getLogger("pmdesk.reports")

WIZARD_SESSION_KEY = "pd_report_wizard"


def _wizard_action(request) -> str:
    # Step-nav buttons post only "step".
    default = "jump" if "step" in request.POST else "next"
    return (request.POST.get("action") or default).strip()


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------

def _no_org_redirect(request):
    messages.info(request, "Create or join an organization first.")
    return redirect("accounts:organization_create")


def _save_state(request, org, state: WizardState) -> None:
    payload = state.to_session()
    payload["org_id"] = org.id
    request.session[WIZARD_SESSION_KEY] = payload
    request.session.modified = True


def _load_state(request, org) -> Optional[WizardState]:
    raw = request.session.get(WIZARD_SESSION_KEY)
    if not raw or raw.get("org_id") != org.id:
        return None
    return WizardState.from_session(raw)


def _clear_state(request) -> None:
    request.session.pop(WIZARD_SESSION_KEY, None)
    request.session.modified = True


def _selected_projects(org, state: WizardState) -> List[Project]:
    ids = state.data.selected_project_ids
    by_id = {p.id: p for p in Project.objects.filter(organization=org, id__in=ids)}
    return [by_id[pid] for pid in ids if pid in by_id]


def _json_error(message: str, status: int = 400) -> JsonResponse:
    return JsonResponse({"ok": False, "error": message}, status=status)


# ------------------------------------------------------------
# Step forms
# ------------------------------------------------------------

def _step_forms(request, org, state: WizardState, wctx, *, bound: bool) -> Dict[str, Any]:
    data = request.POST if bound else None
    d = state.data

    if state.step == 0:
        # Projects already in the report stay selectable even if no longer active.
        choices = list(wctx.projects)
        known = {p.id for p in choices}
        choices.extend(p for p in _selected_projects(org, state) if p.id not in known)
        return {
            "scope_form": ReportScopeForm(
                data,
                projects=choices,
                initial={
                    "period_type": d.period_type,
                    "anchor_date": d.period_start,
                    "period_start": d.period_start,
                    "period_end": d.period_end,
                    "title": d.title,
                    "projects": [str(pid) for pid in d.selected_project_ids],
                },
            )
        }

    projects = _selected_projects(org, state)

    if state.step == 1:
        rows = []
        for p in projects:
            members = wctx.project_members.get(p.id) or wctx.members
            rows.append(
                {
                    "project": p,
                    "entry": d.entry_for(p.id),
                    "calculated_progress": wctx.calculated_progress.get(p.id),
                    "form": ProjectStatusForm.for_entry(d.entry_for(p.id), prefix=f"p{p.id}", members=members, data=data),
                }
            )
        return {"status_rows": rows}

    if state.step == 2:
        rows = []
        for p in projects:
            rows.append(
                {
                    "project": p,
                    "financials": project_report_stats(p).financials,
                    "form": FinancialNotesForm(
                        data,
                        prefix=f"f{p.id}",
                        initial={"financial_notes": d.entry_for(p.id).financial_notes},
                    ),
                }
            )
        return {"financial_rows": rows}

    if state.step == 3:
        return {
            "risk_formset": RiskFormSet(
                data,
                prefix="risks",
                initial=[RiskForm.initial_for(r) for r in d.risks],
                form_kwargs={"projects": projects},
            )
        }

    return {
        "highlight_formset": HighlightFormSet(
            data,
            prefix="highlights",
            initial=[HighlightForm.initial_for(h) for h in d.highlights],
            form_kwargs={"projects": projects},
        ),
        "decision_formset": DecisionFormSet(
            data,
            prefix="decisions",
            initial=[HighlightForm.initial_for(h) for h in d.decisions],
            form_kwargs={"projects": projects},
        ),
    }


def _apply_step(state: WizardState, forms_ctx: Dict[str, Any], wctx) -> bool:
    """Validate the bound step forms and fold them into the wizard data."""
    d = state.data

    if state.step == 0:
        form = forms_ctx["scope_form"]
        if not form.is_valid():
            return False
        cd = form.cleaned_data
        try:
            apply_scope(
                d,
                period_type=cd["period_type"],
                anchor=cd.get("anchor_date"),
                period_start=cd.get("period_start"),
                period_end=cd.get("period_end"),
                title=cd.get("title") or "",
            )
        except ReportValidationError as exc:
            form.add_error(None, str(exc))
            return False
        select_projects(d, form.selected_project_ids(), calculated_progress=wctx.calculated_progress)
        return True

    if state.step == 1:
        rows = forms_ctx["status_rows"]
        if not all([r["form"].is_valid() for r in rows]):
            return False
        for r in rows:
            r["form"].apply_to(d.entry_for(r["project"].id))
        return True

    if state.step == 2:
        rows = forms_ctx["financial_rows"]
        if not all([r["form"].is_valid() for r in rows]):
            return False
        for r in rows:
            d.entry_for(r["project"].id).financial_notes = (r["form"].cleaned_data.get("financial_notes") or "").strip()
        return True

    if state.step == 3:
        formset = forms_ctx["risk_formset"]
        if not formset.is_valid():
            return False
        d.risks = entries_from_formset(formset)
        return True

    highlights = forms_ctx["highlight_formset"]
    decisions = forms_ctx["decision_formset"]
    if not (highlights.is_valid() and decisions.is_valid()):
        return False
    d.highlights = entries_from_formset(highlights)
    d.decisions = entries_from_formset(decisions)
    return True


# ------------------------------------------------------------
# Reports
# ------------------------------------------------------------

@login_required
def report_list(request):
    org = active_organization(request)
    if org is None:
        return _no_org_redirect(request)
    return render(request, "reports/report_list.html", {"org": org, "reports": list_reports(org)})


@login_required
def report_detail(request, report_id: int):
    get_object_or_404(accessible_reports_qs(request.user), pk=report_id)
    report = get_report(report_id, request.user)

    User = get_user_model()
    members = User.objects.filter(organization_memberships__organization=report.organization).order_by("username")
    projects = [rp.project for rp in report.report_projects.all()]

    return render(
        request,
        "reports/report_detail.html",
        {
            "report": report,
            "action_items": report_action_items(report),
            "action_form": ActionItemForm(projects=projects, members=members),
        },
    )


@login_required
def project_report_list(request, project_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    return render(
        request,
        "reports/project_reports.html",
        {"project": project, "reports": project_reports(project, request.user)},
    )


@require_POST
@login_required
def report_delete(request, report_id: int):
    report = get_object_or_404(accessible_reports_qs(request.user), pk=report_id)
    title = report.title
    try:
        delete_report(report=report, actor=request.user)
    except ReportPermissionError as exc:
        messages.error(request, str(exc))
        return redirect("reports:detail", report_id=report_id)
    messages.success(request, f"Report deleted: {title}")
    return redirect("reports:list")


@require_POST
@login_required
def action_item_create(request, report_id: int):
    report = get_object_or_404(accessible_reports_qs(request.user), pk=report_id)

    User = get_user_model()
    members = list(User.objects.filter(organization_memberships__organization=report.organization))
    projects = [rp.project for rp in report.report_projects.select_related("project")]

    form = ActionItemForm(request.POST, projects=projects, members=members)
    if not form.is_valid():
        messages.error(request, "Please fill in the action item name and project.")
        return redirect("reports:detail", report_id=report.id)

    cd = form.cleaned_data
    project = next(p for p in projects if p.id == int(cd["project"]))
    assignee = next((m for m in members if str(m.id) == cd.get("assignee")), None)

    try:
        create_report_action_item(
            report=report,
            project=project,
            actor=request.user,
            name=cd["name"],
            description=cd.get("description") or "",
            assignee=assignee,
            priority=cd.get("priority"),
            due_date=cd.get("due_date"),
        )
    except (ReportValidationError, ReportPermissionError) as exc:
        messages.error(request, str(exc))
        return redirect("reports:detail", report_id=report.id)

    messages.success(request, "Action item created.")
    return redirect("reports:detail", report_id=report.id)


# ------------------------------------------------------------
# Wizard
# ------------------------------------------------------------

@login_required
def wizard_start(request):
    org = active_organization(request)
    if org is None:
        return _no_org_redirect(request)

    try:
        wctx = report_wizard_data(org, request.user)
    except ReportPermissionError as exc:
        messages.error(request, str(exc))
        return redirect("accounts:dashboard")

    state = new_wizard_state(timezone.localdate())
    prev = wctx.previous
    apply_carry_over(
        state.data,
        previous_report=prev.report,
        previous_projects=prev.projects,
        previous_risks=prev.risks,
        active_project_ids=[p.id for p in wctx.projects],
    )
    _save_state(request, org, state)

    if prev.report is not None:
        messages.info(request, f"Carried over from \"{prev.report.title}\".")
    return redirect("reports:wizard")


@login_required
def wizard_edit(request, report_id: int):
    get_object_or_404(accessible_reports_qs(request.user), pk=report_id)
    report = get_report(report_id, request.user)

    # Editing is done in the report's own organization.
    org = report.organization
    state = load_for_edit(report)
    _save_state(request, org, state)
    set_active_organization(request, org)
    return redirect("reports:wizard")


@login_required
def wizard(request):
    org = active_organization(request)
    if org is None:
        return _no_org_redirect(request)

    state = _load_state(request, org)
    if state is None:
        return redirect("reports:wizard_start")

    try:
        wctx = report_wizard_data(org, request.user, exclude_report_id=state.editing_report_id)
    except ReportPermissionError as exc:
        messages.error(request, str(exc))
        return redirect("accounts:dashboard")

    if request.method == "POST":
        forms_ctx = _step_forms(request, org, state, wctx, bound=True)
        if _apply_step(state, forms_ctx, wctx):
            action = _wizard_action(request)
            if action == "prev":
                state.prev_step()
            elif action == "jump":
                try:
                    target = int(request.POST.get("step", ""))
                except ValueError:
                    target = -1
                if not state.jump_to_step(target):
                    messages.error(request, "That step is not available yet.")
            elif action in ("prev_week", "next_week"):
                shift_week(state.data, -1 if action == "prev_week" else 1)
            elif action == "publish":
                _save_state(request, org, state)
                return _publish(request, org, state)
            elif action == "next":
                state.next_step()
            _save_state(request, org, state)
            return redirect("reports:wizard")
    else:
        forms_ctx = _step_forms(request, org, state, wctx, bound=False)

    return render(
        request,
        "reports/wizard.html",
        {
            "org": org,
            "state": state,
            "steps": list(enumerate(STEPS)),
            "wctx": wctx,
            "previous_report": wctx.previous.report,
            "selected_projects": _selected_projects(org, state),
            **forms_ctx,
        },
    )


def _publish(request, org, state: WizardState):
    try:
        payload = build_publish_input(state.data)
        if state.editing_report_id is not None:
            report = get_object_or_404(accessible_reports_qs(request.user), pk=state.editing_report_id)
            update_report(report=report, actor=request.user, payload=payload)
            messages.success(request, "Report updated.")
        else:
            report = create_report(org=org, actor=request.user, payload=payload)
            messages.success(request, "Report published.")
    except (ReportValidationError, ReportPermissionError) as exc:
        messages.error(request, str(exc))
        return redirect("reports:wizard")

    _clear_state(request)
    return redirect("reports:detail", report_id=report.id)


@require_POST
@login_required
def wizard_cancel(request):
    state = request.session.get(WIZARD_SESSION_KEY) or {}
    editing = state.get("editing_report_id")
    _clear_state(request)
    if editing:
        return redirect("reports:detail", report_id=editing)
    return redirect("reports:list")


# ------------------------------------------------------------
# AI endpoints (JSON)
# ------------------------------------------------------------

def _ai_state(request):
    org = active_organization(request)
    if org is None:
        return None, None
    return org, _load_state(request, org)


def _ai_call(request, fn):
    try:
        return fn()
    except RateLimitExceeded as exc:
        record_security_event(request, "ai_rate_limited", retry_after=exc.retry_after)
        response = _json_error(str(exc), status=429)
        response["Retry-After"] = str(exc.retry_after)
        return response
    except LLMProviderError as exc:
        logger.warning("report_ai_provider_failed user_id=%s", request.user.id)
        return _json_error(str(exc), status=502)
    except LLMResponseError as exc:
        return _json_error(str(exc), status=400)


@require_POST
@login_required
def ai_narrative(request):
    org, state = _ai_state(request)
    if state is None:
        return _json_error("No report in progress.")

    try:
        project_id = int(request.POST.get("project_id", ""))
    except ValueError:
        return _json_error("project_id is required.")
    if project_id not in state.data.selected_project_ids:
        return _json_error("Project is not part of this report.")
    project = get_object_or_404(Project, pk=project_id, organization=org)
    entry = state.data.entry_for(project_id)

    def run():
        text = generate_report_narrative(user=request.user, project=project, entry=entry)
        if request.POST.get("apply") == "1":
            entry.narrative = text
            _save_state(request, org, state)
        return JsonResponse({"ok": True, "narrative": text})

    return _ai_call(request, run)


def _project_summaries(org, state: WizardState):
    return [(p.name, state.data.entry_for(p.id)) for p in _selected_projects(org, state)]


def _project_id_by_name(org, state: WizardState, name: Optional[str]) -> Optional[int]:
    if not name:
        return None
    for p in _selected_projects(org, state):
        if p.name.strip().lower() == name.strip().lower():
            return p.id
    return None


@require_POST
@login_required
def ai_risks(request):
    org, state = _ai_state(request)
    if state is None:
        return _json_error("No report in progress.")
    if not state.data.selected_project_ids:
        return _json_error("Please select at least one project.")

    def run():
        suggestions = suggest_report_risks(
            user=request.user,
            projects=_project_summaries(org, state),
            existing_risks=state.data.risks,
        )
        for s in suggestions:
            s["project_id"] = _project_id_by_name(org, state, s.get("project_name"))
        if request.POST.get("apply") == "1":
            state.data.risks.extend(
                RiskEntry(
                    description=s["description"],
                    type=s["type"],
                    severity=s["severity"],
                    project_id=s["project_id"],
                )
                for s in suggestions
            )
            _save_state(request, org, state)
        return JsonResponse({"ok": True, "suggestions": suggestions})

    return _ai_call(request, run)


@require_POST
@login_required
def ai_highlights(request):
    org, state = _ai_state(request)
    if state is None:
        return _json_error("No report in progress.")
    if not state.data.selected_project_ids:
        return _json_error("Please select at least one project.")

    def run():
        suggestions = suggest_report_highlights(
            user=request.user,
            projects=_project_summaries(org, state),
            existing_highlights=state.data.highlights,
        )
        for s in suggestions:
            s["project_id"] = _project_id_by_name(org, state, s.get("project_name"))
        if request.POST.get("apply") == "1":
            state.data.highlights.extend(
                HighlightEntry(description=s["description"], project_id=s["project_id"]) for s in suggestions
            )
            _save_state(request, org, state)
        return JsonResponse({"ok": True, "suggestions": suggestions})

    return _ai_call(request, run)
