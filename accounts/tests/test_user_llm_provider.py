from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse


class UserLLMProviderSettingTests(TestCase):
    def _post(self, user, **data):
        profile = user.profile
        payload = {
            "full_name": profile.full_name,
            "llm_provider": profile.llm_provider,
            "openai_model_default": profile.openai_model_default,
            "anthropic_model_default": profile.anthropic_model_default,
        }
        payload.update(data)
        self.client.force_login(user)
        return self.client.post(reverse("accounts:user_settings"), data=payload)

    def test_profile_is_created_with_user(self):
        User = get_user_model()
        user = User.objects.create_user(
            username="u0", email="u0@example.com", password="pw", first_name="Ada", last_name="Lovelace"
        )
        self.assertEqual(user.profile.full_name, "Ada Lovelace")
        self.assertEqual(user.profile.llm_provider, "openai")
        self.assertEqual(user.display_name, "Ada Lovelace")

    def test_user_cannot_change_llm_provider_to_unknown_value(self):
        User = get_user_model()
        user = User.objects.create_user(username="u1", email="u1@example.com", password="pw")

        response = self._post(user, llm_provider="copilot")

        self.assertEqual(response.status_code, 200)
        user.profile.refresh_from_db()
        self.assertEqual(user.profile.llm_provider, "openai")

    def test_user_can_change_llm_provider_to_anthropic(self):
        User = get_user_model()
        user = User.objects.create_user(username="u2", email="u2@example.com", password="pw")

        response = self._post(user, llm_provider="anthropic", anthropic_model_default="claude-sonnet-4-5-20250929")

        self.assertEqual(response.status_code, 302)
        user.profile.refresh_from_db()
        self.assertEqual(user.profile.llm_provider, "anthropic")
        self.assertEqual(user.profile.anthropic_model_default, "claude-sonnet-4-5-20250929")

    def test_display_name_falls_back_to_username(self):
        User = get_user_model()
        user = User.objects.create_user(username="u3", email="u3@example.com", password="pw")
        user.profile.full_name = ""
        user.profile.save(update_fields=["full_name"])
        self.assertEqual(user.display_name, "u3")
