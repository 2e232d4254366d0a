# -*- coding: utf-8 -*-
# accounts/urls.py
from __future__ import annotations

from django.contrib.auth import views as auth_views
from django.urls import path

from . import views

app_name = "accounts"

urlpatterns = [
    # Auth
    path("", auth_views.LoginView.as_view(template_name="accounts/login.html"), name="login"),
    path("logout/", auth_views.LogoutView.as_view(next_page="accounts:login"), name="logout"),

    # Dashboard
    path("dashboard/", views.dashboard, name="dashboard"),

    # Organizations
    path("organizations/new/", views.organization_create, name="organization_create"),
    path("organizations/<int:org_id>/select/", views.organization_select, name="organization_select"),
    path("organizations/<int:org_id>/members/", views.organization_members, name="organization_members"),
    path(
        "organizations/<int:org_id>/members/<int:user_id>/role/",
        views.organization_member_role,
        name="organization_member_role",
    ),
    path(
        "organizations/<int:org_id>/members/<int:user_id>/remove/",
        views.organization_member_remove,
        name="organization_member_remove",
    ),

    # Settings
    path("settings/", views.user_settings, name="user_settings"),
]
