# -*- coding: utf-8 -*-
# notifications/context_processors.py
# Purpose:
# Inbox badge and the latest unread items for the navbar dropdown.

from __future__ import annotations

from typing import Any, Dict

from notifications.models import Notification


NAVBAR_RECENT = 5


def notifications_bar(request) -> Dict[str, Any]:
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        return {"pd_notifications": None}

    unread = Notification.objects.filter(recipient=user, is_read=False)
    return {
        "pd_notifications": {
            "unread_count": unread.count(),
            "recent": list(unread.select_related("actor").order_by("-created_at", "-id")[:NAVBAR_RECENT]),
        }
    }
