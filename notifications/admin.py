# -*- coding: utf-8 -*-
# notifications/admin.py

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "recipient", "type", "is_read", "created_at")
    list_filter = ("type", "is_read")
    search_fields = ("title", "recipient__username", "recipient__email")
    raw_id_fields = ("recipient", "actor", "project", "task")
