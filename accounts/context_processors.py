# -*- coding: utf-8 -*-
# accounts/context_processors.py

from __future__ import annotations

from typing import Any, Dict

from django.contrib.auth.models import AnonymousUser

from accounts.services_organizations import active_organization, user_organizations


def active_organization_bar(request) -> Dict[str, Any]:
    user = getattr(request, "user", None)
    if not user or isinstance(user, AnonymousUser) or not user.is_authenticated:
        return {"pd_organizations": None}

    return {
        "pd_organizations": {
            "active": active_organization(request),
            "all": list(user_organizations(user)),
        }
    }
