# -*- coding: utf-8 -*-
# reports/services/access.py

from __future__ import annotations

import logging

from django.contrib.auth.models import AbstractUser

from accounts.models import Organization
from accounts.services_organizations import is_org_member
from reports.models import Report


security_logger = logging.getLogger("pmdesk.security")


class ReportPermissionError(Exception):
    pass


class ReportNotFound(Exception):
    pass


def can_view_report(report: Report, user: AbstractUser) -> bool:
    return is_org_member(report.organization, user)


def require_report_org_member(org: Organization, user: AbstractUser) -> None:
    """Reports are organization-wide: any member may read or write them."""
    if not is_org_member(org, user):
        security_logger.warning(
            "report_access_denied org_id=%s user_id=%s",
            getattr(org, "id", None),
            getattr(user, "id", None),
        )
        raise ReportPermissionError("You must be a member of this organization.")


def accessible_reports_qs(user: AbstractUser):
    if not getattr(user, "is_authenticated", False):
        return Report.objects.none()
    return Report.objects.filter(organization__members__user=user).distinct()
