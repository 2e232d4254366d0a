# -*- coding: utf-8 -*-
# projects/services_project_membership.py
# Purpose:
# Centralise project membership + access rules (no rules in views/templates).

from __future__ import annotations

from dataclasses import dataclass

from django.contrib.auth.models import AbstractUser
from django.db import transaction
from django.db.models import Q

from accounts.models import OrganizationMember
from projects.models import Project, ProjectMember


class ProjectPermissionError(Exception):
    pass


class ProjectInvariantError(Exception):
    pass


@dataclass(frozen=True)
class MembershipResult:
    created: bool
    member: ProjectMember


def _is_org_admin(project: Project, user: AbstractUser) -> bool:
    return OrganizationMember.objects.filter(
        organization_id=project.organization_id,
        user=user,
        role=OrganizationMember.Role.ADMIN,
    ).exists()


def project_role(project: Project, user: AbstractUser) -> str:
    if not getattr(user, "is_authenticated", False):
        return ""
    m = ProjectMember.objects.filter(project=project, user=user).only("role").first()
    return m.role if m else ""


def is_project_member(project: Project, user: AbstractUser) -> bool:
    return bool(project_role(project, user))


def can_view_project(project: Project, user: AbstractUser) -> bool:
    if not getattr(user, "is_authenticated", False):
        return False
    return is_project_member(project, user) or _is_org_admin(project, user)


def can_edit_project(project: Project, user: AbstractUser) -> bool:
    """
    Owner, person-in-charge, or an admin of the owning organization.
    """
    if not getattr(user, "is_authenticated", False):
        return False
    if project.owner_id == user.id:
        return True
    if project_role(project, user) in (ProjectMember.Role.OWNER, ProjectMember.Role.PIC):
        return True
    return _is_org_admin(project, user)


def can_edit_tasks(project: Project, user: AbstractUser) -> bool:
    """
    Viewers (stakeholders) are read-only; everyone else on the project may edit tasks.
    """
    role = project_role(project, user)
    if role in (ProjectMember.Role.OWNER, ProjectMember.Role.PIC, ProjectMember.Role.MEMBER):
        return True
    return can_edit_project(project, user)


def require_project_member(project: Project, user: AbstractUser) -> None:
    if not can_view_project(project, user):
        raise ProjectPermissionError("You must be a project member.")


def accessible_projects_qs(user: AbstractUser):
    """
    Canonical rule:
    A user may see a project if they are a member of it,
    or an admin of the organization that owns it.
    """
    if not getattr(user, "is_authenticated", False):
        return Project.objects.none()

    return (
        Project.objects
        .filter(
            Q(members__user=user)
            | Q(
                organization__members__user=user,
                organization__members__role=OrganizationMember.Role.ADMIN,
            )
        )
        .distinct()
    )


@transaction.atomic
def ensure_project_seeded(project: Project) -> None:
    """
    Idempotently ensure the OWNER ProjectMember exists for project.owner.
    """
    member, created = ProjectMember.objects.get_or_create(
        project=project,
        user=project.owner,
        defaults={"role": ProjectMember.Role.OWNER},
    )
    if not created and member.role != ProjectMember.Role.OWNER:
        member.role = ProjectMember.Role.OWNER
        member.save(update_fields=["role"])


@transaction.atomic
def add_project_member(
    *,
    project: Project,
    user_to_add: AbstractUser,
    role: str,
    actor: AbstractUser,
) -> MembershipResult:
    """
    Invariants:
    - Only editors may change membership.
    - Members must belong to the project's organization.
    - The owner role is reserved for project.owner.
    """
    if not can_edit_project(project, actor):
        raise ProjectPermissionError("Only the project owner or PIC may change membership.")
    if role not in ProjectMember.Role.values or role == ProjectMember.Role.OWNER:
        raise ProjectInvariantError("Invalid project role: " + str(role))
    if not OrganizationMember.objects.filter(organization_id=project.organization_id, user=user_to_add).exists():
        raise ProjectInvariantError("User is not a member of this organization.")
    if user_to_add.id == project.owner_id:
        raise ProjectInvariantError("The project owner's role cannot be changed.")

    member, created = ProjectMember.objects.update_or_create(
        project=project,
        user=user_to_add,
        defaults={"role": role},
    )
    return MembershipResult(created=created, member=member)


@transaction.atomic
def remove_project_member(*, project: Project, user_to_remove: AbstractUser, actor: AbstractUser) -> int:
    if not can_edit_project(project, actor):
        raise ProjectPermissionError("Only the project owner or PIC may change membership.")
    if user_to_remove.id == project.owner_id:
        raise ProjectInvariantError("The project owner cannot be removed.")

    deleted, _ = ProjectMember.objects.filter(project=project, user=user_to_remove).delete()
    return deleted
