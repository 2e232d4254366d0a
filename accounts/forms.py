# -*- coding: utf-8 -*-
# accounts/forms.py

from __future__ import annotations

from django import forms
from django.contrib.auth import get_user_model

from accounts.models import OrganizationMember, UserProfile


_SELECT_SM = forms.Select(attrs={"class": "form-select form-select-sm"})
_TEXT_SM = forms.TextInput(attrs={"class": "form-control form-control-sm"})


class UserProfileSettingsForm(forms.ModelForm):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["llm_provider"].choices = list(UserProfile.LLMProvider.choices)

    class Meta:
        model = UserProfile
        fields = (
            "full_name",
            "llm_provider",
            "openai_model_default",
            "anthropic_model_default",
        )
        widgets = {
            "full_name": _TEXT_SM,
            "llm_provider": _SELECT_SM,
            "openai_model_default": _TEXT_SM,
            "anthropic_model_default": _TEXT_SM,
        }
        labels = {
            "full_name": "Display name",
            "llm_provider": "LLM provider",
            "openai_model_default": "OpenAI model (blank = server default)",
            "anthropic_model_default": "Anthropic model (blank = server default)",
        }


class OrganizationCreateForm(forms.Form):
    name = forms.CharField(max_length=200, widget=_TEXT_SM)


class OrganizationMemberAddForm(forms.Form):
    identifier = forms.CharField(
        max_length=254,
        label="Username or email",
        widget=_TEXT_SM,
    )
    role = forms.ChoiceField(choices=OrganizationMember.Role.choices, widget=_SELECT_SM)

    def clean_identifier(self):
        value = (self.cleaned_data.get("identifier") or "").strip()
        User = get_user_model()
        user = User.objects.filter(username__iexact=value).first() or User.objects.filter(email__iexact=value).first()
        if user is None:
            raise forms.ValidationError("No user with that username or email.")
        return user


class OrganizationMemberRoleForm(forms.Form):
    role = forms.ChoiceField(choices=OrganizationMember.Role.choices, widget=_SELECT_SM)
