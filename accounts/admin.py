# -*- coding: utf-8 -*-
# accounts/admin.py

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin

from accounts.models import Organization, OrganizationMember, UserProfile

User = get_user_model()


class UserProfileInline(admin.StackedInline):
    model = UserProfile
    can_delete = False
    fields = ("full_name", "llm_provider", "openai_model_default", "anthropic_model_default")


@admin.register(User)
class CustomUserAdmin(UserAdmin):
    """
    User admin (identity).
    Organization membership is managed on the Organization page.
    """

    list_display = ("username", "email", "is_staff", "is_superuser", "is_active", "last_login")
    search_fields = ("username", "email", "first_name", "last_name")
    ordering = ("username",)
    inlines = [UserProfileInline]

    fieldsets = (
        (None, {"fields": ("username", "email", "password")}),
        ("Personal info", {"fields": ("first_name", "last_name")}),
        ("Permissions", {"fields": ("is_active", "is_staff", "is_superuser", "groups", "user_permissions")}),
        ("Important dates", {"fields": ("last_login", "date_joined")}),
    )

    add_fieldsets = (
        (None, {
            "classes": ("wide",),
            "fields": ("username", "email", "password1", "password2"),
        }),
    )


class OrganizationMemberInline(admin.TabularInline):
    model = OrganizationMember
    extra = 0
    raw_id_fields = ("user",)


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "created_at")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [OrganizationMemberInline]
