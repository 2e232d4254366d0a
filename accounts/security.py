# -*- coding: utf-8 -*-
# accounts/security.py
# Purpose:
# Security event logging and safe redirects shared by the app views.

from __future__ import annotations

import logging

from django.core.cache import cache
from django.utils import timezone
from django.utils.http import url_has_allowed_host_and_scheme


_SECURITY_LOG = logging.getLogger("pmdesk.security")


def record_security_event(request, event: str, **details) -> None:
    now = timezone.now()
    bucket = now.strftime("%Y%m%d%H")
    counter_key = f"pd:security:{event}:{bucket}"
    if cache.get(counter_key) is None:
        cache.set(counter_key, 1, timeout=60 * 60 * 48)
    else:
        try:
            cache.incr(counter_key)
        except ValueError:
            cache.set(counter_key, 1, timeout=60 * 60 * 48)

    user_id = getattr(getattr(request, "user", None), "id", None)
    ip = (
        request.META.get("HTTP_X_FORWARDED_FOR", "").split(",")[0].strip()
        or request.META.get("REMOTE_ADDR", "")
    )
    _SECURITY_LOG.warning(
        "security_event=%s user_id=%s ip=%s path=%s details=%s",
        event,
        user_id,
        ip,
        request.path,
        details,
    )


def safe_next_url(request, fallback: str) -> str:
    next_url = (request.POST.get("next") or request.GET.get("next") or "").strip()
    if next_url and url_has_allowed_host_and_scheme(
        url=next_url,
        allowed_hosts={request.get_host()},
        require_https=request.is_secure(),
    ):
        return next_url
    if next_url:
        record_security_event(request, "blocked_next_redirect", next_url=next_url)
    return fallback
