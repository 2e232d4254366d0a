# -*- coding: utf-8 -*-
# notifications/services.py

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from django.contrib.auth.models import AbstractUser

from notifications.models import Notification


logger = logging.getLogger("pmdesk.notifications")


def notify(
    *,
    organization,
    recipients: Iterable[AbstractUser],
    actor: Optional[AbstractUser] = None,
    type: str = Notification.Type.SYSTEM,
    title: str,
    body: str = "",
    project=None,
    task=None,
    link_url: str = "",
    metadata: Optional[Dict[str, Any]] = None,
) -> List[Notification]:
    """
    Create one inbox row per recipient.
    The actor never notifies themselves; duplicate recipients collapse.
    """
    seen: set[int] = set()
    rows: List[Notification] = []
    for user in recipients:
        if user is None or user.pk in seen:
            continue
        if actor is not None and user.pk == actor.pk:
            continue
        seen.add(user.pk)
        rows.append(
            Notification(
                recipient=user,
                actor=actor,
                organization=organization,
                project=project,
                task=task,
                type=type,
                title=title[:300],
                body=body or "",
                link_url=link_url or "",
                metadata=metadata or {},
            )
        )

    if not rows:
        return []

    created = Notification.objects.bulk_create(rows)
    logger.info("notifications_created type=%s count=%d", type, len(created))
    return created
