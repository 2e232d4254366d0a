# -*- coding: utf-8 -*-
# accounts/services_organizations.py
# Purpose:
# Centralise organization membership rules (no rules in views/templates).

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.contrib.auth.models import AbstractUser
from django.db import transaction
from django.utils.text import slugify

from accounts.models import Organization, OrganizationMember


ACTIVE_ORG_SESSION_KEY = "pd_active_organization_id"


class OrganizationPermissionError(Exception):
    pass


class OrganizationInvariantError(Exception):
    pass


@dataclass(frozen=True)
class MembershipResult:
    created: bool
    member: OrganizationMember


def _membership(org: Organization, user: AbstractUser) -> Optional[OrganizationMember]:
    if not getattr(user, "is_authenticated", False):
        return None
    return OrganizationMember.objects.filter(organization=org, user=user).first()


def is_org_member(org: Organization, user: AbstractUser) -> bool:
    return _membership(org, user) is not None


def is_org_admin(org: Organization, user: AbstractUser) -> bool:
    m = _membership(org, user)
    return m is not None and m.role == OrganizationMember.Role.ADMIN


def require_org_member(org: Organization, user: AbstractUser) -> OrganizationMember:
    m = _membership(org, user)
    if m is None:
        raise OrganizationPermissionError("You must be an organization member.")
    return m


def require_org_admin(org: Organization, user: AbstractUser) -> OrganizationMember:
    m = require_org_member(org, user)
    if m.role != OrganizationMember.Role.ADMIN:
        raise OrganizationPermissionError("Only organization admins may do this.")
    return m


def user_organizations(user: AbstractUser):
    if not getattr(user, "is_authenticated", False):
        return Organization.objects.none()
    return Organization.objects.filter(members__user=user).distinct().order_by("name")


def _unique_slug(name: str) -> str:
    base = slugify(name or "")[:200] or "org"
    if not Organization.objects.filter(slug=base).exists():
        return base
    i = 2
    while True:
        candidate = f"{base}-{i}"
        if not Organization.objects.filter(slug=candidate).exists():
            return candidate
        i += 1


@transaction.atomic
def create_organization(*, name: str, creator: AbstractUser) -> Organization:
    """
    Create an organization and seed the creator as its first admin.
    """
    clean = (name or "").strip()
    if not clean:
        raise ValueError("Organization name is required.")

    org = Organization.objects.create(name=clean[:200], slug=_unique_slug(clean))
    OrganizationMember.objects.create(
        organization=org,
        user=creator,
        role=OrganizationMember.Role.ADMIN,
    )
    return org


def _admin_count(org: Organization) -> int:
    return OrganizationMember.objects.filter(organization=org, role=OrganizationMember.Role.ADMIN).count()


@transaction.atomic
def add_member(
    *,
    org: Organization,
    user_to_add: AbstractUser,
    role: str = OrganizationMember.Role.MEMBER,
    actor: AbstractUser,
) -> MembershipResult:
    require_org_admin(org, actor)
    if role not in OrganizationMember.Role.values:
        raise ValueError("Unknown organization role: " + str(role))

    member, created = OrganizationMember.objects.get_or_create(
        organization=org,
        user=user_to_add,
        defaults={"role": role},
    )
    return MembershipResult(created=created, member=member)


@transaction.atomic
def update_member_role(
    *,
    org: Organization,
    user_to_update: AbstractUser,
    role: str,
    actor: AbstractUser,
) -> OrganizationMember:
    """
    Invariant: an organization always keeps at least one admin.
    """
    require_org_admin(org, actor)
    if role not in OrganizationMember.Role.values:
        raise ValueError("Unknown organization role: " + str(role))

    member = OrganizationMember.objects.select_for_update().filter(organization=org, user=user_to_update).first()
    if member is None:
        raise OrganizationInvariantError("User is not a member of this organization.")

    if member.role == OrganizationMember.Role.ADMIN and role != OrganizationMember.Role.ADMIN:
        if _admin_count(org) <= 1:
            raise OrganizationInvariantError("An organization must keep at least one admin.")

    member.role = role
    member.save(update_fields=["role"])
    return member


@transaction.atomic
def remove_member(*, org: Organization, user_to_remove: AbstractUser, actor: AbstractUser) -> int:
    require_org_admin(org, actor)

    member = OrganizationMember.objects.filter(organization=org, user=user_to_remove).first()
    if member is None:
        return 0
    if member.role == OrganizationMember.Role.ADMIN and _admin_count(org) <= 1:
        raise OrganizationInvariantError("The last admin cannot be removed.")

    deleted, _ = OrganizationMember.objects.filter(pk=member.pk).delete()
    return deleted


def active_organization(request) -> Optional[Organization]:
    """
    Session-selected organization, falling back to the user's first membership.
    A stale session id (membership revoked) is dropped.
    """
    user = getattr(request, "user", None)
    orgs = user_organizations(user)

    oid = request.session.get(ACTIVE_ORG_SESSION_KEY)
    if oid is not None:
        try:
            org = orgs.filter(pk=int(oid)).first()
        except (TypeError, ValueError):
            org = None
        if org is not None:
            return org
        request.session.pop(ACTIVE_ORG_SESSION_KEY, None)

    org = orgs.first()
    if org is not None:
        request.session[ACTIVE_ORG_SESSION_KEY] = org.pk
        request.session.modified = True
    return org


def set_active_organization(request, org: Organization) -> None:
    request.session[ACTIVE_ORG_SESSION_KEY] = org.pk
    request.session.modified = True
