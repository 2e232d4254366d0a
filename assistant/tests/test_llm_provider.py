import os
from types import SimpleNamespace
from unittest.mock import Mock, patch

import anthropic
import openai
from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from assistant.services import llm


class LLMProviderTests(TestCase):
    def test_provider_resolution_prefers_user_setting_over_env(self):
        User = get_user_model()
        user = User.objects.create_user(username="u1", email="u1@example.com", password="pw")
        user.profile.llm_provider = "anthropic"
        user.profile.save(update_fields=["llm_provider"])

        with patch.dict(os.environ, {"LLM_PROVIDER": "openai"}):
            provider = llm._resolve_provider(user=user)

        self.assertEqual(provider, "anthropic")

    def test_provider_resolution_falls_back_to_env_then_openai(self):
        with patch.dict(os.environ, {"LLM_PROVIDER": "Anthropic"}):
            self.assertEqual(llm._resolve_provider(), "anthropic")
        with patch.dict(os.environ, {"LLM_PROVIDER": "copilot"}):
            with override_settings(LLM_PROVIDER=""):
                self.assertEqual(llm._resolve_provider(), "openai")

    def test_explicit_unknown_provider_is_rejected(self):
        with self.assertRaises(ValueError):
            llm._resolve_provider(provider="copilot")

    def test_anthropic_adapter_is_called_when_selected(self):
        mock_client = Mock()
        mock_client.messages.create.return_value = SimpleNamespace(
            content=[SimpleNamespace(type="text", text="anthropic reply")]
        )

        with patch("assistant.services.llm._get_anthropic_client", return_value=mock_client):
            out = llm.generate_text(
                system_blocks=["System rule"],
                messages=[{"role": "user", "content": "Hello"}, {"role": "system", "content": "dropped"}],
                provider="anthropic",
                temperature=0.5,
                max_tokens=300,
            )

        self.assertEqual(out, "anthropic reply")
        call_kwargs = mock_client.messages.create.call_args.kwargs
        self.assertEqual(call_kwargs["system"], "System rule")
        self.assertEqual(call_kwargs["messages"], [{"role": "user", "content": "Hello"}])
        self.assertEqual(call_kwargs["max_tokens"], 300)
        self.assertEqual(call_kwargs["temperature"], 0.5)

    def test_openai_model_uses_user_profile_default(self):
        User = get_user_model()
        user = User.objects.create_user(username="u4", email="u4@example.com", password="pw")
        user.profile.openai_model_default = "gpt-4.1-mini"
        user.profile.save(update_fields=["openai_model_default"])

        mock_client = Mock()
        mock_client.responses.create.return_value = SimpleNamespace(output_text="ok")

        with patch("assistant.services.llm._get_openai_client", return_value=mock_client):
            out = llm.generate_text(
                system_blocks=["Rule"],
                messages=[{"role": "user", "content": "Hello"}],
                user=user,
            )

        self.assertEqual(out, "ok")
        call_kwargs = mock_client.responses.create.call_args.kwargs
        self.assertEqual(call_kwargs["model"], "gpt-4.1-mini")
        self.assertEqual(call_kwargs["input"][0], {"role": "system", "content": "Rule"})
        self.assertNotIn("temperature", call_kwargs)

    def test_generate_json_parses_fenced_reply(self):
        with patch("assistant.services.llm.generate_text", return_value='Sure:\n```json\n[{"title": "A"}]\n```'):
            payload = llm.generate_json(system_blocks=["Rule"], user_text="Go")
        self.assertEqual(payload, [{"title": "A"}])

    def test_generate_json_raises_on_prose(self):
        with patch("assistant.services.llm.generate_text", return_value="I cannot help with that."):
            with self.assertRaises(llm.LLMResponseError):
                llm.generate_json(system_blocks=["Rule"], user_text="Go")


class ExtractJsonTests(TestCase):
    def test_whole_reply(self):
        self.assertEqual(llm.extract_json('{"a": 1}'), {"a": 1})

    def test_outermost_array_inside_prose(self):
        self.assertEqual(llm.extract_json('Here you go: [1, 2, 3] enjoy'), [1, 2, 3])

    def test_scalars_and_empty_are_rejected(self):
        self.assertIsNone(llm.extract_json("42"))
        self.assertIsNone(llm.extract_json(""))
        self.assertIsNone(llm.extract_json("no json here"))


class ProviderFailureTests(TestCase):
    def test_openai_client_failure_is_wrapped(self):
        with patch.dict(os.environ, {"LLM_PROVIDER": "openai"}), patch(
            "assistant.services.llm._get_openai_client", side_effect=openai.OpenAIError("Missing credentials")
        ):
            with self.assertLogs("pmdesk.assistant", level="WARNING") as logs:
                with self.assertRaises(llm.LLMProviderError) as ctx:
                    llm.generate_text(system_blocks=["Rule"], messages=[{"role": "user", "content": "Hello"}])

        self.assertEqual(str(ctx.exception), "Failed to call OpenAI: Missing credentials")
        self.assertIn("provider=openai", logs.output[0])

    def test_anthropic_api_failure_is_wrapped(self):
        mock_client = Mock()
        mock_client.messages.create.side_effect = anthropic.AnthropicError("overloaded")

        with patch("assistant.services.llm._get_anthropic_client", return_value=mock_client):
            with self.assertRaises(llm.LLMProviderError) as ctx:
                llm.generate_json(system_blocks=["Rule"], user_text="Go", provider="anthropic")

        self.assertEqual(str(ctx.exception), "Failed to call Anthropic: overloaded")
