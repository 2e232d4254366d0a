# accounts/models.py
from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Custom user model.

    Keeps Django's username field for compatibility,
    but requires a unique email so login can use either.
    """
    email = models.EmailField(unique=True)

    @property
    def display_name(self) -> str:
        profile = getattr(self, "profile", None)
        full_name = (getattr(profile, "full_name", "") or "").strip()
        if full_name:
            return full_name
        return self.get_full_name() or self.username


class UserProfile(models.Model):
    """
    User-visible preferences:
    - display name
    - LLM provider + model defaults used by the AI helpers
    """

    class LLMProvider(models.TextChoices):
        OPENAI = "openai", "OpenAI"
        ANTHROPIC = "anthropic", "Anthropic"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
    )

    full_name = models.CharField(max_length=200, blank=True, default="")

    llm_provider = models.CharField(
        max_length=20,
        choices=LLMProvider.choices,
        default=LLMProvider.OPENAI,
    )
    openai_model_default = models.CharField(max_length=80, blank=True, default="")
    anthropic_model_default = models.CharField(max_length=80, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"Profile:{self.user_id}"


class Organization(models.Model):
    """
    Tenant boundary.
    Projects, reports and notifications all hang off an Organization.
    """

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return self.name


class OrganizationMember(models.Model):
    class Role(models.TextChoices):
        ADMIN = "admin", "Admin"
        MEMBER = "member", "Member"

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="members",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="organization_memberships",
    )
    role = models.CharField(max_length=10, choices=Role.choices, default=Role.MEMBER)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["organization", "user"], name="uq_organization_member"),
        ]

    def __str__(self) -> str:
        return f"{self.organization_id}:{self.user_id} ({self.role})"
