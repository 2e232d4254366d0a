# -*- coding: utf-8 -*-
# accounts/views.py

from __future__ import annotations

from django.contrib import messages
from django.contrib.auth import get_user_model
from django.contrib.auth.decorators import login_required
from django.http import Http404
from django.shortcuts import get_object_or_404, redirect, render
from django.utils import timezone
from django.views.decorators.http import require_POST

from accounts.forms import (
    OrganizationCreateForm,
    OrganizationMemberAddForm,
    OrganizationMemberRoleForm,
    UserProfileSettingsForm,
)
from accounts.models import OrganizationMember, UserProfile
from accounts.services_organizations import (
    OrganizationInvariantError,
    OrganizationPermissionError,
    active_organization,
    add_member,
    create_organization,
    is_org_admin,
    remove_member,
    set_active_organization,
    update_member_role,
    user_organizations,
)
from accounts.security import safe_next_url
from projects.services_project_membership import accessible_projects_qs
from projects.services_stats import project_stats
from projects.services_tasks import my_tasks
from reports.services.queries import list_reports

User = get_user_model()


# ------------------------------------------------------------
# Dashboard
# ------------------------------------------------------------
@login_required
def dashboard(request):
    user = request.user
    org = active_organization(request)
    if org is None:
        return render(request, "accounts/dashboard.html", {"org": None})

    projects = accessible_projects_qs(user).filter(organization=org)

    return render(
        request,
        "accounts/dashboard.html",
        {
            "org": org,
            "stats": project_stats(org),
            "recent_projects": projects.order_by("-updated_at")[:5],
            "my_tasks": my_tasks(user)[:10],
            "recent_reports": list_reports(org)[:5],
            "today": timezone.localdate(),
        },
    )


# ------------------------------------------------------------
# Organizations
# ------------------------------------------------------------
@login_required
def organization_create(request):
    if request.method == "POST":
        form = OrganizationCreateForm(request.POST)
        if form.is_valid():
            org = create_organization(name=form.cleaned_data["name"], creator=request.user)
            set_active_organization(request, org)
            messages.success(request, f"Organization \"{org.name}\" created.")
            return redirect("accounts:dashboard")
    else:
        form = OrganizationCreateForm()

    return render(request, "accounts/organization_create.html", {"form": form})


@require_POST
@login_required
def organization_select(request, org_id: int):
    org = get_object_or_404(user_organizations(request.user), pk=org_id)
    set_active_organization(request, org)
    return redirect(safe_next_url(request, "accounts:dashboard"))


@login_required
def organization_members(request, org_id: int):
    org = get_object_or_404(user_organizations(request.user), pk=org_id)
    admin = is_org_admin(org, request.user)

    if request.method == "POST":
        if not admin:
            messages.error(request, "Only organization admins may manage members.")
            return redirect("accounts:organization_members", org_id=org.id)
        form = OrganizationMemberAddForm(request.POST)
        if form.is_valid():
            result = add_member(
                org=org,
                user_to_add=form.cleaned_data["identifier"],
                role=form.cleaned_data["role"],
                actor=request.user,
            )
            if result.created:
                messages.success(request, f"{result.member.user.display_name} added.")
            else:
                messages.info(request, f"{result.member.user.display_name} is already a member.")
            return redirect("accounts:organization_members", org_id=org.id)
    else:
        form = OrganizationMemberAddForm()

    members = (
        OrganizationMember.objects.filter(organization=org)
        .select_related("user", "user__profile")
        .order_by("user__username")
    )
    return render(
        request,
        "accounts/organization_members.html",
        {
            "org": org,
            "members": members,
            "form": form,
            "is_admin": admin,
            "role_choices": OrganizationMember.Role.choices,
        },
    )


@require_POST
@login_required
def organization_member_role(request, org_id: int, user_id: int):
    org = get_object_or_404(user_organizations(request.user), pk=org_id)
    target = get_object_or_404(User, pk=user_id)
    form = OrganizationMemberRoleForm(request.POST)
    if not form.is_valid():
        messages.error(request, "Pick a valid role.")
        return redirect("accounts:organization_members", org_id=org.id)

    try:
        update_member_role(org=org, user_to_update=target, role=form.cleaned_data["role"], actor=request.user)
    except (OrganizationPermissionError, OrganizationInvariantError) as exc:
        messages.error(request, str(exc))
    else:
        messages.success(request, "Role updated.")
    return redirect("accounts:organization_members", org_id=org.id)


@require_POST
@login_required
def organization_member_remove(request, org_id: int, user_id: int):
    org = get_object_or_404(user_organizations(request.user), pk=org_id)
    target = get_object_or_404(User, pk=user_id)

    try:
        removed = remove_member(org=org, user_to_remove=target, actor=request.user)
    except (OrganizationPermissionError, OrganizationInvariantError) as exc:
        messages.error(request, str(exc))
        return redirect("accounts:organization_members", org_id=org.id)

    if removed:
        messages.success(request, f"{target.display_name} removed.")
    if target.id == request.user.id:
        return redirect("accounts:dashboard")
    return redirect("accounts:organization_members", org_id=org.id)


# ------------------------------------------------------------
# User settings
# ------------------------------------------------------------
@login_required
def user_settings(request):
    profile = getattr(request.user, "profile", None)
    if profile is None:
        raise Http404("User profile not found.")

    if request.method == "POST":
        form = UserProfileSettingsForm(request.POST, instance=profile)
        if form.is_valid():
            form.save()
            messages.success(request, "Settings saved.")
            return redirect("accounts:user_settings")
    else:
        form = UserProfileSettingsForm(instance=profile)

    return render(
        request,
        "accounts/user_settings.html",
        {"form": form, "providers": UserProfile.LLMProvider.choices},
    )
