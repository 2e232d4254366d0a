# assistant/services/llm.py

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

import anthropic
import openai
from django.conf import settings


_OPENAI_CLIENT = None
_ANTHROPIC_CLIENT = None
_ALLOWED_PROVIDERS = {"openai", "anthropic"}

logger = logging.getLogger("pmdesk.assistant")


class LLMResponseError(Exception):
    """The provider answered, but not with something we can use."""


class LLMProviderError(Exception):
    """The provider could not be reached or refused the request."""


def _normalise_provider(value: Optional[str]) -> str:
    v = (value or "").strip().lower()
    return v if v in _ALLOWED_PROVIDERS else ""


def _resolve_provider(*, provider: Optional[str] = None, user: Any = None) -> str:
    if provider is not None:
        p = _normalise_provider(provider)
        if not p:
            raise ValueError("Unsupported LLM provider: " + str(provider))
        return p

    profile = getattr(user, "profile", None) if user is not None else None
    profile_provider = _normalise_provider(getattr(profile, "llm_provider", ""))
    if profile_provider:
        return profile_provider

    env_provider = _normalise_provider(os.getenv("LLM_PROVIDER", "") or getattr(settings, "LLM_PROVIDER", ""))
    if env_provider:
        return env_provider

    return "openai"


def _get_openai_client():
    global _OPENAI_CLIENT
    if _OPENAI_CLIENT is None:
        _OPENAI_CLIENT = openai.OpenAI(timeout=getattr(settings, "OPENAI_TIMEOUT_SECONDS", 30))
    return _OPENAI_CLIENT


def _get_anthropic_client():
    global _ANTHROPIC_CLIENT
    if _ANTHROPIC_CLIENT is None:
        _ANTHROPIC_CLIENT = anthropic.Anthropic()
    return _ANTHROPIC_CLIENT


def _content_to_text(content: Any) -> str:
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        chunks: List[str] = []
        for part in content:
            if isinstance(part, dict):
                text = str(part.get("text") or "").strip()
                if text:
                    chunks.append(text)
            elif part is not None:
                text = str(part).strip()
                if text:
                    chunks.append(text)
        return "\n".join(chunks).strip()
    if content is None:
        return ""
    return str(content).strip()


def _get_default_model_key(*, user: Any = None) -> str:
    profile = getattr(user, "profile", None) if user is not None else None
    user_value = (getattr(profile, "openai_model_default", "") or "").strip()
    if user_value:
        return user_value
    return (getattr(settings, "OPENAI_MODEL", "") or "gpt-4.1-mini").strip()


def _get_default_anthropic_model_key(*, user: Any = None) -> str:
    profile = getattr(user, "profile", None) if user is not None else None
    user_value = (getattr(profile, "anthropic_model_default", "") or "").strip()
    if user_value:
        return user_value
    return (getattr(settings, "ANTHROPIC_MODEL", "") or "claude-sonnet-4-5-20250929").strip()


def _try_json(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except ValueError:
        return None


def extract_json(raw_text: str) -> Any:
    """
    Parse JSON out of a model reply.

    Accepts, in order: the whole reply, the first fenced block
    (```json ... ``` or ``` ... ```), then the outermost [...] or {...} span.
    Returns None when nothing parses.
    """
    text = (raw_text or "").strip()
    if not text:
        return None

    obj = _try_json(text)
    if isinstance(obj, (dict, list)):
        return obj

    if "```" in text:
        parts = text.split("```")
        for chunk in parts[1::2]:
            candidate = chunk.strip()
            if candidate.lower().startswith("json"):
                candidate = candidate[4:].strip()
            obj = _try_json(candidate)
            if isinstance(obj, (dict, list)):
                return obj

    for open_ch, close_ch in (("[", "]"), ("{", "}")):
        start = text.find(open_ch)
        end = text.rfind(close_ch)
        if start != -1 and end != -1 and end > start:
            obj = _try_json(text[start : end + 1])
            if isinstance(obj, (dict, list)):
                return obj
    return None


def generate_text(
    *,
    system_blocks: list[str],
    messages: list[dict],
    user: Any = None,
    provider: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: int = 1024,
) -> str:
    """
    Plain text generation.
    system_blocks: SYSTEM instructions (strings)
    messages: [{'role': 'user'|'assistant', 'content': str}, ...]
    """
    selected_provider = _resolve_provider(provider=provider, user=user)
    logger.info("llm_request provider=%s messages=%d", selected_provider, len(messages))

    if selected_provider == "anthropic":
        clean_messages: List[Dict[str, str]] = []
        for msg in messages:
            if not msg:
                continue
            role = msg.get("role")
            if role not in ("user", "assistant"):
                continue
            text = _content_to_text(msg.get("content"))
            if text:
                clean_messages.append({"role": role, "content": text})

        kwargs: Dict[str, Any] = {
            "model": _get_default_anthropic_model_key(user=user),
            "max_tokens": max_tokens,
            "system": "\n\n".join([b for b in system_blocks if b]).strip(),
            "messages": clean_messages,
        }
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            response = _get_anthropic_client().messages.create(**kwargs)
        except anthropic.AnthropicError as exc:
            logger.warning("llm_provider_error provider=anthropic error=%s", exc.__class__.__name__)
            raise LLMProviderError(f"Failed to call Anthropic: {exc}") from exc
        return "\n".join(
            [
                getattr(block, "text", "")
                for block in (response.content or [])
                if getattr(block, "type", "") == "text"
            ]
        ).strip()

    kwargs = {
        "model": _get_default_model_key(user=user),
        "input": [
            *[{"role": "system", "content": b} for b in system_blocks if b],
            *[m for m in messages if m and m.get("role") in ("user", "assistant") and m.get("content")],
        ],
        "max_output_tokens": max_tokens,
    }
    if temperature is not None:
        kwargs["temperature"] = temperature

    try:
        response = _get_openai_client().responses.create(**kwargs)
    except openai.OpenAIError as exc:
        logger.warning("llm_provider_error provider=openai error=%s", exc.__class__.__name__)
        raise LLMProviderError(f"Failed to call OpenAI: {exc}") from exc
    return (response.output_text or "").strip()


def generate_json(
    *,
    system_blocks: list[str],
    user_text: str,
    user: Any = None,
    provider: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: int = 1024,
) -> Any:
    """
    Single-turn generation whose reply must contain JSON.
    Raises LLMResponseError when the reply cannot be parsed.
    """
    raw = generate_text(
        system_blocks=system_blocks,
        messages=[{"role": "user", "content": user_text}],
        user=user,
        provider=provider,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    payload = extract_json(raw)
    if payload is None:
        logger.warning("llm_unparsable_json length=%d", len(raw))
        raise LLMResponseError("The AI response could not be parsed.")
    return payload
