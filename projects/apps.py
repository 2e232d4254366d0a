# -*- coding: utf-8 -*-
# projects/apps.py

from __future__ import annotations

from django.apps import AppConfig


class ProjectsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "projects"
    verbose_name = "Projects and tasks"

    def ready(self) -> None:
        # Owner membership is seeded on project creation.
        from . import signals  # noqa: F401
