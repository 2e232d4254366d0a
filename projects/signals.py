# -*- coding: utf-8 -*-
# projects/signals.py

from __future__ import annotations

from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Project
from projects.services_project_membership import ensure_project_seeded


@receiver(post_save, sender=Project)
def project_post_create(sender, instance: Project, created: bool, **kwargs) -> None:
    if not created:
        return
    # Owner membership exists for every project, however it was created (wizard, admin, shell).
    ensure_project_seeded(instance)
