from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
from anthropic import APIConnectionError

from doctrans.claude_client import ClaudeTranslator, build_messages, language_name
from doctrans.errors import ConfigError, TranslationServiceError


class FakeMessages:
    def __init__(self, result) -> None:
        self.result = result
        self.kwargs: dict = {}

    def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _translator(result) -> tuple[ClaudeTranslator, FakeMessages]:
    translator = ClaudeTranslator(api_key="sk-ant-test", model="test-model")
    messages = FakeMessages(result)
    translator._client = SimpleNamespace(messages=messages)
    return translator, messages


def test_build_messages_embeds_language_and_fragment():
    system, messages = build_messages('The <see cref="T:System.Type"/> to use.', "zh")
    assert "Simplified Chinese" in system
    [message] = messages
    assert message["role"] == "user"
    assert '```xml\nThe <see cref="T:System.Type"/> to use.\n```' in message["content"]
    assert "'{entityType}'" in message["content"]
    assert language_name("tlh") == "tlh"


def test_translate_fragment_returns_trimmed_text():
    response = SimpleNamespace(content=[SimpleNamespace(type="text", text="\n```xml\n你好\n```\n")])
    translator, messages = _translator(response)

    result = translator.translate_fragment("Hello", language="zh", temperature=0.2)

    assert result == "```xml\n你好\n```"
    assert messages.kwargs["model"] == "test-model"
    assert messages.kwargs["temperature"] == 0.2
    assert "Simplified Chinese" in messages.kwargs["system"]


def test_translate_fragment_wraps_transport_errors():
    error = APIConnectionError(request=httpx.Request("POST", "https://api.anthropic.com/v1/messages"))
    translator, _ = _translator(error)
    with pytest.raises(TranslationServiceError):
        translator.translate_fragment("Hello", language="zh")


def test_translate_fragment_requires_text_content():
    translator, _ = _translator(SimpleNamespace(content=[]))
    with pytest.raises(TranslationServiceError):
        translator.translate_fragment("Hello", language="zh")


def test_missing_api_key_is_a_configuration_error():
    with pytest.raises(ConfigError):
        ClaudeTranslator(api_key="")


def test_default_model_is_a_current_model(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("ANTHROPIC_MODEL", raising=False)
    import importlib

    import doctrans.claude_client as client_module

    reloaded = importlib.reload(client_module)
    assert reloaded.DEFAULT_MODEL == "claude-sonnet-4-5"
    assert not reloaded.DEFAULT_MODEL.startswith("claude-3")
