# -*- coding: utf-8 -*-
# accounts/apps.py

from __future__ import annotations

from django.apps import AppConfig


class AccountsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounts"

    def ready(self) -> None:
        # Ensure signal handlers are registered.
        from . import signals  # noqa: F401
