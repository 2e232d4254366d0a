# -*- coding: utf-8 -*-
# notifications/views.py

from __future__ import annotations

from django.contrib.auth.decorators import login_required
from django.http import Http404
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from accounts.security import safe_next_url
from notifications.models import Notification


@login_required
def notification_list(request):
    show = (request.GET.get("show", "unread") or "").lower()
    qs = (
        Notification.objects.filter(recipient=request.user)
        .select_related("actor", "project")
        .order_by("-created_at")
    )

    if show != "all":
        show = "unread"
        qs = qs.filter(is_read=False)

    unread_count = Notification.objects.filter(recipient=request.user, is_read=False).count()

    return render(
        request,
        "notifications/notification_list.html",
        {
            "notifications": qs[:200],
            "show": show,
            "unread_count": unread_count,
        },
    )


@require_POST
@login_required
def notification_set_read(request, notification_id: int, state: str):
    """
    state: "read" | "unread"
    """
    state = (state or "").lower().strip()
    if state not in {"read", "unread"}:
        raise Http404()

    n = get_object_or_404(Notification, pk=notification_id, recipient=request.user)
    n.is_read = (state == "read")
    n.save(update_fields=["is_read"])

    return redirect(safe_next_url(request, reverse("notifications:list")))


@require_POST
@login_required
def notification_mark_all_read(request):
    Notification.objects.filter(recipient=request.user, is_read=False).update(is_read=True)
    return redirect(safe_next_url(request, reverse("notifications:list")))


@login_required
def notification_open(request, notification_id: int):
    """Mark read and follow the notification's link (same-host links only)."""
    n = get_object_or_404(Notification, pk=notification_id, recipient=request.user)
    if not n.is_read:
        n.is_read = True
        n.save(update_fields=["is_read"])

    target = n.link_url or ""
    if target and url_has_allowed_host_and_scheme(url=target, allowed_hosts={request.get_host()}):
        return redirect(target)
    return redirect("notifications:list")
