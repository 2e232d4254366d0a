# -*- coding: utf-8 -*-
# projects/views.py

from __future__ import annotations

import json
import logging

from django.contrib import messages
from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.views.decorators.http import require_POST

from accounts.security import record_security_event, safe_next_url
from accounts.services_organizations import OrganizationPermissionError, active_organization, is_org_admin
from assistant.services.llm import LLMProviderError, LLMResponseError
from assistant.services.rate_limit import RateLimitExceeded
from projects.enums import ProjectPriority, ProjectStatus
from projects.forms import (
    DeliverableForm,
    IntentStepForm,
    OutcomeStepForm,
    OwnershipStepForm,
    ProjectMemberForm,
    ProjectQuickForm,
    ProjectUpdateForm,
    ReviewStepForm,
    StructureStepForm,
    TaskForm,
    TaskStatusForm,
    WorkstreamForm,
)
from projects.models import ProjectDeliverable, ProjectMember, Task, Workstream
from projects.services.project_wizard import (
    GUIDED_STEPS,
    MODE_GUIDED,
    ProjectInput,
    ProjectValidationError,
    ProjectWizardState,
    StarterTaskInput,
    create_project,
    generate_starter_tasks,
)
from projects.services_project_membership import (
    ProjectInvariantError,
    ProjectPermissionError,
    accessible_projects_qs,
    add_project_member,
    can_edit_project,
    can_edit_tasks,
    remove_project_member,
)
from projects.services_deliverables import (
    DeliverableValidationError,
    create_deliverable,
    delete_deliverable,
    reorder_deliverables,
    update_deliverable,
)
from projects.services_stats import performance_metrics, task_stats
from projects.services_tasks import (
    TaskValidationError,
    bulk_update_task_status,
    create_task,
    delete_task,
    move_task_to_workstream,
    my_tasks,
    reorder_tasks,
    tasks_by_workstream,
    update_task,
    update_task_assignee,
    update_task_status,
)
from projects.services_workstreams import (
    WorkstreamValidationError,
    create_workstream,
    delete_workstream,
    reorder_workstreams,
    update_workstream,
)
from reports.services.queries import project_reports


logger = logging.getLogger("pmdesk.projects")

User = get_user_model()

PROJECT_WIZARD_SESSION_KEY = "pd_project_wizard"


def _wizard_action(request) -> str:
    # Step-nav buttons post only "step".
    default = "jump" if "step" in request.POST else "next"
    return (request.POST.get("action") or default).strip()


def _org_members(org):
    return User.objects.filter(organization_memberships__organization=org).select_related("profile").order_by("username")


def _no_org_redirect(request):
    messages.info(request, "Create or join an organization first.")
    return redirect("accounts:organization_create")


# ------------------------------------------------------------
# Projects
# ------------------------------------------------------------

@login_required
def project_list(request):
    org = active_organization(request)
    if org is None:
        return _no_org_redirect(request)

    qs = accessible_projects_qs(request.user).filter(organization=org).select_related("owner")

    status = (request.GET.get("status") or "").strip()
    priority = (request.GET.get("priority") or "").strip()
    q = (request.GET.get("q") or "").strip()
    if status in ProjectStatus.values:
        qs = qs.filter(status=status)
    if priority in ProjectPriority.values:
        qs = qs.filter(priority=priority)
    if q:
        qs = qs.filter(name__icontains=q)

    return render(
        request,
        "projects/project_list.html",
        {
            "org": org,
            "projects": qs.order_by("-updated_at"),
            "status": status,
            "priority": priority,
            "q": q,
            "statuses": ProjectStatus.choices,
            "priorities": ProjectPriority.choices,
        },
    )


@login_required
def project_create(request):
    org = active_organization(request)
    if org is None:
        return _no_org_redirect(request)
    members = _org_members(org).exclude(id=request.user.id)

    if request.method == "POST":
        form = ProjectQuickForm(request.POST, members=members)
        if form.is_valid():
            try:
                project = create_project(org=org, actor=request.user, data=form.to_input())
            except (ProjectValidationError, OrganizationPermissionError) as exc:
                form.add_error(None, str(exc))
            else:
                messages.success(request, "Project created.")
                return redirect("projects:detail", project_id=project.id)
    else:
        form = ProjectQuickForm(members=members)

    return render(request, "projects/project_create.html", {"form": form, "org": org})


# ------------------------------------------------------------
# Guided wizard
# ------------------------------------------------------------

def _wizard_state(request) -> ProjectWizardState:
    raw = request.session.get(PROJECT_WIZARD_SESSION_KEY)
    if raw:
        return ProjectWizardState.from_session(raw)
    return ProjectWizardState(data=ProjectInput(name="", mode=MODE_GUIDED, owner_id=request.user.id))


def _save_wizard_state(request, state: ProjectWizardState) -> None:
    request.session[PROJECT_WIZARD_SESSION_KEY] = state.to_session()
    request.session.modified = True


def _wizard_form(state: ProjectWizardState, members, user, data=None):
    d = state.data
    if state.step == 0:
        return IntentStepForm(
            data,
            initial={"name": d.name, "intent": d.intent, "description": d.description, "client_name": d.client_name},
        )
    if state.step == 1:
        return OutcomeStepForm(data, initial=OutcomeStepForm.initial_for(d))
    if state.step == 2:
        return OwnershipStepForm(data, members=members, initial=OwnershipStepForm.initial_for(d, user.id))
    if state.step == 3:
        return StructureStepForm(data, initial=StructureStepForm.initial_for(d))
    return ReviewStepForm(data, initial=ReviewStepForm.initial_for(d))


@login_required
def project_wizard(request):
    org = active_organization(request)
    if org is None:
        return _no_org_redirect(request)

    state = _wizard_state(request)
    members = _org_members(org)

    if request.method == "POST":
        form = _wizard_form(state, members, request.user, request.POST)
        action = _wizard_action(request)
        if form.is_valid():
            form.apply_to(state.data)

            if action == "create":
                try:
                    project = create_project(org=org, actor=request.user, data=state.data)
                except (ProjectValidationError, OrganizationPermissionError) as exc:
                    messages.error(request, str(exc))
                    _save_wizard_state(request, state)
                    return redirect("projects:wizard")
                request.session.pop(PROJECT_WIZARD_SESSION_KEY, None)
                messages.success(request, "Project created.")
                return redirect("projects:detail", project_id=project.id)

            if action == "generate_tasks":
                try:
                    suggestions = generate_starter_tasks(user=request.user, data=state.data)
                except RateLimitExceeded as exc:
                    record_security_event(request, "ai_rate_limited", retry_after=exc.retry_after)
                    messages.error(request, str(exc))
                except (LLMResponseError, LLMProviderError) as exc:
                    messages.error(request, str(exc))
                else:
                    state.data.starter_tasks.extend(StarterTaskInput(**s) for s in suggestions)
                    messages.success(request, f"Added {len(suggestions)} suggested tasks.")
            elif action == "prev":
                state.prev_step()
            elif action == "jump":
                try:
                    target = int(request.POST.get("step", ""))
                except ValueError:
                    target = -1
                if not state.jump_to_step(target):
                    messages.error(request, "That step is not available yet.")
            else:
                state.next_step()

            _save_wizard_state(request, state)
            return redirect("projects:wizard")
    else:
        form = _wizard_form(state, members, request.user)

    return render(
        request,
        "projects/project_wizard.html",
        {"org": org, "state": state, "steps": list(enumerate(GUIDED_STEPS)), "form": form},
    )


@require_POST
@login_required
def project_wizard_cancel(request):
    request.session.pop(PROJECT_WIZARD_SESSION_KEY, None)
    return redirect("projects:list")


# ------------------------------------------------------------
# Project detail / update / delete
# ------------------------------------------------------------

@login_required
def project_detail(request, project_id: int):
    project = get_object_or_404(
        accessible_projects_qs(request.user).select_related("organization", "owner"), pk=project_id
    )
    members = _org_members(project.organization)
    return render(
        request,
        "projects/project_detail.html",
        {
            "project": project,
            "buckets": tasks_by_workstream(project),
            "members": project.members.select_related("user").order_by("role", "id"),
            "deliverables": project.deliverables.all(),
            "metrics": project.metrics.all(),
            "reports": project_reports(project, request.user)[:10],
            "stats": task_stats(project),
            "can_edit": can_edit_project(project, request.user),
            "can_edit_tasks": can_edit_tasks(project, request.user),
            "task_form": TaskForm(project=project, members=members),
            "task_statuses": Task.Status.choices,
            "workstream_form": WorkstreamForm(auto_id="workstream_%s"),
            "deliverable_form": DeliverableForm(auto_id="deliverable_%s"),
        },
    )


@login_required
def project_update(request, project_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    if not can_edit_project(project, request.user):
        messages.error(request, "You do not have permission to edit this project.")
        return redirect("projects:detail", project_id=project.id)

    if request.method == "POST":
        form = ProjectUpdateForm(request.POST, instance=project)
        if form.is_valid():
            form.save()
            messages.success(request, "Project updated.")
            return redirect("projects:detail", project_id=project.id)
    else:
        form = ProjectUpdateForm(instance=project)

    return render(request, "projects/project_update.html", {"project": project, "form": form})


@require_POST
@login_required
def project_delete(request, project_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    if not (project.owner_id == request.user.id or is_org_admin(project.organization, request.user)):
        record_security_event(request, "project_delete_denied", project_id=project.id)
        messages.error(request, "You do not have permission to delete this project.")
        return redirect("projects:detail", project_id=project.id)

    name = project.name
    project.delete()
    logger.info("project_deleted project_id=%s actor_id=%s", project_id, request.user.id)
    messages.success(request, f"Project deleted: {name}")
    return redirect("projects:list")


# ------------------------------------------------------------
# Members
# ------------------------------------------------------------

@login_required
def project_members(request, project_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    org_members = _org_members(project.organization)

    if request.method == "POST":
        form = ProjectMemberForm(request.POST, members=org_members)
        if form.is_valid():
            user = get_object_or_404(org_members, pk=int(form.cleaned_data["user"]))
            try:
                add_project_member(
                    project=project, user_to_add=user, role=form.cleaned_data["role"], actor=request.user
                )
            except (ProjectPermissionError, ProjectInvariantError) as exc:
                messages.error(request, str(exc))
            else:
                messages.success(request, f"{user.display_name} added.")
            return redirect("projects:members", project_id=project.id)
    else:
        form = ProjectMemberForm(members=org_members)

    return render(
        request,
        "projects/project_members.html",
        {
            "project": project,
            "members": project.members.select_related("user").order_by("role", "id"),
            "form": form,
            "can_edit": can_edit_project(project, request.user),
        },
    )


@require_POST
@login_required
def project_member_remove(request, project_id: int, user_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    member = get_object_or_404(ProjectMember.objects.select_related("user"), project=project, user_id=user_id)
    try:
        remove_project_member(project=project, user_to_remove=member.user, actor=request.user)
    except (ProjectPermissionError, ProjectInvariantError) as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Member removed.")
    return redirect("projects:members", project_id=project.id)


# ------------------------------------------------------------
# Tasks
# ------------------------------------------------------------

def _task_for_user(request, task_id: int) -> Task:
    return get_object_or_404(
        Task.objects.select_related("project", "project__organization", "assignee").filter(
            project__in=accessible_projects_qs(request.user)
        ),
        pk=task_id,
    )


def _assignee_from(org, raw):
    if not raw:
        return None
    return get_object_or_404(_org_members(org), pk=int(raw))


@require_POST
@login_required
def task_create(request, project_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    form = TaskForm(request.POST, project=project, members=_org_members(project.organization))
    if not form.is_valid():
        messages.error(request, "Please check the task fields.")
        return redirect("projects:detail", project_id=project.id)

    cd = form.cleaned_data
    try:
        create_task(
            project=project,
            actor=request.user,
            name=cd["name"],
            description=cd.get("description") or "",
            workstream=cd.get("workstream"),
            status=cd["status"],
            priority=cd["priority"],
            tag=cd.get("tag") or "",
            assignee=_assignee_from(project.organization, cd.get("assignee_id")),
            start_date=cd.get("start_date"),
            end_date=cd.get("end_date"),
        )
    except (ProjectPermissionError, TaskValidationError) as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Task created.")
    return redirect(safe_next_url(request, reverse("projects:detail", args=[project.id])))


@login_required
def task_update(request, task_id: int):
    task = _task_for_user(request, task_id)
    project = task.project
    members = _org_members(project.organization)

    if request.method == "POST":
        form = TaskForm(request.POST, instance=Task.objects.get(pk=task.pk), project=project, members=members)
        if form.is_valid():
            cd = form.cleaned_data
            try:
                update_task(
                    task=task,
                    actor=request.user,
                    name=cd["name"],
                    description=cd.get("description") or "",
                    priority=cd["priority"],
                    tag=cd.get("tag") or "",
                    start_date=cd.get("start_date"),
                    end_date=cd.get("end_date"),
                )
                move_task_to_workstream(task=task, actor=request.user, workstream=cd.get("workstream"))
                update_task_status(task=task, actor=request.user, status=cd["status"])
                update_task_assignee(
                    task=task,
                    actor=request.user,
                    assignee=_assignee_from(project.organization, cd.get("assignee_id")),
                )
            except (ProjectPermissionError, TaskValidationError) as exc:
                form.add_error(None, str(exc))
            else:
                messages.success(request, "Task updated.")
                return redirect("projects:detail", project_id=project.id)
    else:
        form = TaskForm(instance=task, project=project, members=members)

    return render(request, "projects/task_update.html", {"task": task, "project": project, "form": form})


@require_POST
@login_required
def task_status(request, task_id: int):
    task = _task_for_user(request, task_id)
    form = TaskStatusForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Invalid task status.")
    else:
        try:
            update_task_status(task=task, actor=request.user, status=form.cleaned_data["status"])
        except (ProjectPermissionError, TaskValidationError) as exc:
            messages.error(request, str(exc))
    return redirect(safe_next_url(request, reverse("projects:detail", args=[task.project_id])))


@require_POST
@login_required
def task_delete(request, task_id: int):
    task = _task_for_user(request, task_id)
    project_id = task.project_id
    try:
        delete_task(task=task, actor=request.user)
    except ProjectPermissionError as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Task deleted.")
    return redirect(safe_next_url(request, reverse("projects:detail", args=[project_id])))


def _json_body(request) -> dict:
    if request.content_type == "application/json":
        try:
            payload = json.loads(request.body or b"{}")
        except (TypeError, ValueError):
            return {}
        return payload if isinstance(payload, dict) else {}
    return {
        "task_ids": request.POST.getlist("task_ids"),
        "workstream_ids": request.POST.getlist("workstream_ids"),
        "deliverable_ids": request.POST.getlist("deliverable_ids"),
        "status": request.POST.get("status"),
    }


@require_POST
@login_required
def task_reorder(request, project_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    payload = _json_body(request)
    try:
        ids = [int(x) for x in payload.get("task_ids") or []]
        changed = reorder_tasks(project=project, actor=request.user, task_ids=ids)
    except (TypeError, ValueError):
        return JsonResponse({"ok": False, "error": "task_ids must be a list of ids."}, status=400)
    except ProjectPermissionError as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=403)
    return JsonResponse({"ok": True, "changed": changed})


@require_POST
@login_required
def tasks_bulk_status(request):
    payload = _json_body(request)
    try:
        ids = [int(x) for x in payload.get("task_ids") or []]
        updated = bulk_update_task_status(actor=request.user, task_ids=ids, status=payload.get("status") or "")
    except (TypeError, ValueError) as exc:
        return JsonResponse({"ok": False, "error": str(exc) or "Invalid request."}, status=400)
    return JsonResponse({"ok": True, "updated": updated})


# ------------------------------------------------------------
# Workstreams and deliverables
# ------------------------------------------------------------

def _workstream_for_user(request, workstream_id: int) -> Workstream:
    return get_object_or_404(
        Workstream.objects.select_related("project").filter(project__in=accessible_projects_qs(request.user)),
        pk=workstream_id,
    )


def _deliverable_for_user(request, deliverable_id: int) -> ProjectDeliverable:
    return get_object_or_404(
        ProjectDeliverable.objects.select_related("project").filter(project__in=accessible_projects_qs(request.user)),
        pk=deliverable_id,
    )


@require_POST
@login_required
def workstream_create(request, project_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    form = WorkstreamForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Workstream name is required.")
        return redirect("projects:detail", project_id=project.id)
    try:
        create_workstream(
            project=project,
            actor=request.user,
            name=form.cleaned_data["name"],
            task_ids=[int(x) for x in request.POST.getlist("task_ids") if x.isdigit()],
        )
    except (ProjectPermissionError, WorkstreamValidationError) as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Workstream added.")
    return redirect("projects:detail", project_id=project.id)


@require_POST
@login_required
def workstream_update(request, workstream_id: int):
    workstream = _workstream_for_user(request, workstream_id)
    form = WorkstreamForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Workstream name is required.")
    else:
        try:
            update_workstream(workstream=workstream, actor=request.user, name=form.cleaned_data["name"])
        except (ProjectPermissionError, WorkstreamValidationError) as exc:
            messages.error(request, str(exc))
        else:
            messages.success(request, "Workstream renamed.")
    return redirect("projects:detail", project_id=workstream.project_id)


@require_POST
@login_required
def workstream_delete(request, workstream_id: int):
    workstream = _workstream_for_user(request, workstream_id)
    project_id = workstream.project_id
    try:
        delete_workstream(workstream=workstream, actor=request.user)
    except ProjectPermissionError as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Workstream deleted. Its tasks moved to General.")
    return redirect("projects:detail", project_id=project_id)


@require_POST
@login_required
def workstream_reorder(request, project_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    payload = _json_body(request)
    try:
        ids = [int(x) for x in payload.get("workstream_ids") or []]
        changed = reorder_workstreams(project=project, actor=request.user, workstream_ids=ids)
    except (TypeError, ValueError):
        return JsonResponse({"ok": False, "error": "workstream_ids must be a list of ids."}, status=400)
    except ProjectPermissionError as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=403)
    return JsonResponse({"ok": True, "changed": changed})


@require_POST
@login_required
def deliverable_create(request, project_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    form = DeliverableForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Please check the deliverable fields.")
        return redirect("projects:detail", project_id=project.id)
    try:
        create_deliverable(project=project, actor=request.user, **form.cleaned_data)
    except (ProjectPermissionError, DeliverableValidationError) as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Deliverable added.")
    return redirect("projects:detail", project_id=project.id)


@login_required
def deliverable_update(request, deliverable_id: int):
    deliverable = _deliverable_for_user(request, deliverable_id)
    project = deliverable.project

    if request.method == "POST":
        form = DeliverableForm(request.POST)
        if form.is_valid():
            try:
                update_deliverable(deliverable=deliverable, actor=request.user, **form.cleaned_data)
            except (ProjectPermissionError, DeliverableValidationError) as exc:
                form.add_error(None, str(exc))
            else:
                messages.success(request, "Deliverable updated.")
                return redirect("projects:detail", project_id=project.id)
    else:
        form = DeliverableForm(instance=deliverable)

    return render(
        request,
        "projects/deliverable_update.html",
        {"deliverable": deliverable, "project": project, "form": form},
    )


@require_POST
@login_required
def deliverable_delete(request, deliverable_id: int):
    deliverable = _deliverable_for_user(request, deliverable_id)
    project_id = deliverable.project_id
    try:
        delete_deliverable(deliverable=deliverable, actor=request.user)
    except ProjectPermissionError as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Deliverable deleted.")
    return redirect("projects:detail", project_id=project_id)


@require_POST
@login_required
def deliverable_reorder(request, project_id: int):
    project = get_object_or_404(accessible_projects_qs(request.user), pk=project_id)
    payload = _json_body(request)
    try:
        ids = [int(x) for x in payload.get("deliverable_ids") or []]
        changed = reorder_deliverables(project=project, actor=request.user, deliverable_ids=ids)
    except (TypeError, ValueError):
        return JsonResponse({"ok": False, "error": "deliverable_ids must be a list of ids."}, status=400)
    except ProjectPermissionError as exc:
        return JsonResponse({"ok": False, "error": str(exc)}, status=403)
    return JsonResponse({"ok": True, "changed": changed})


@login_required
def my_task_list(request):
    show_done = request.GET.get("show") == "all"
    return render(
        request,
        "projects/my_tasks.html",
        {"tasks": my_tasks(request.user, include_done=show_done), "show_done": show_done},
    )


@login_required
def performance(request):
    org = active_organization(request)
    if org is None:
        return _no_org_redirect(request)
    return render(request, "projects/performance.html", {"org": org, "metrics": performance_metrics(org)})
