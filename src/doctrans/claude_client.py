from __future__ import annotations

import os
from dataclasses import dataclass

from anthropic import Anthropic, APIError

from .errors import ConfigError, TranslationServiceError

LANGUAGE_NAMES = {
    "zh": "Simplified Chinese",
    "zh-Hans": "Simplified Chinese",
    "zh-Hant": "Traditional Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "fr": "French",
    "de": "German",
    "es": "Spanish",
    "it": "Italian",
    "ru": "Russian",
    "pt-BR": "Brazilian Portuguese",
}

SYSTEM_PROMPT = (
    "You are a professional .NET software engineer familiar with C#/.NET terminology. "
    "You translate Microsoft .NET SDK IntelliSense documentation into {language_name}."
)

DEFAULT_PROMPT = """Translate the following XML content into {language_name}, strictly following these rules.

### Translation requirements
- Target language: {language_name}.
- Accurate meaning: convey the original meaning precisely, without ambiguity.
- Terminology: use correct technical terms.

### Format requirements
- Keep the XML structure identical to the input, including tags and attributes such as `<see cref="T:System.Type"/>`.
- Leave anything wrapped in `{{ }}` unchanged.
- Leave the content of tags such as `<c> </c>` unchanged.
- The result must be well-formed XML content.

### Input
An XML string wrapped in a Markdown code block.

### Output
Only the translation, wrapped in a single ```xml Markdown code block, with nothing before or after it.

### Example input 1
```xml
The <see cref="T:System.Type"/> that indicates where this operation is used.
```

### Example output 1
```xml
指示此操作所使用的<see cref="T:System.Type"/>。
```

### Example input 2
```xml
The entity type '{{entityType}}' is mapped to the 'DbFunction' named '{{functionName}}' with return type '{{returnType}}'. Ensure that the mapped function returns 'IQueryable&lt;{{clrType}}&gt;'
```

### Example output 2
```xml
实体类型'{{entityType}}'被映射到名为'{{functionName}}'的'DbFunction'，返回类型为'{{returnType}}'。请确保映射的函数返回'IQueryable&lt;{{clrType}}&gt;'
```

### Input

```xml
{fragment}
```

### Output
"""


def language_name(language: str) -> str:
    return LANGUAGE_NAMES.get(language, language)


def build_messages(fragment: str, language: str) -> tuple[str, list[dict[str, str]]]:
    """Return the system text and the user message for one fragment."""
    name = language_name(language)
    system = SYSTEM_PROMPT.format(language_name=name)
    user = DEFAULT_PROMPT.format(language_name=name, fragment=fragment)
    return system, [{"role": "user", "content": user}]


DEFAULT_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5")


@dataclass
class ClaudeTranslator:
    api_key: str
    model: str = DEFAULT_MODEL
    base_url: str | None = None
    max_tokens: int = 4096

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigError("ANTHROPIC_API_KEY is required to call the translation service.")
        self._client = Anthropic(api_key=self.api_key, base_url=self.base_url)

    def translate_fragment(self, fragment: str, *, language: str, temperature: float = 0.0) -> str:
        """Send one fragment and return the raw response text, trimmed."""
        system, messages = build_messages(fragment, language)
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=temperature,
                system=system,
                messages=messages,
            )
        except APIError as exc:
            raise TranslationServiceError(f"Translation request failed: {exc}") from exc
        text_blocks = [block.text for block in response.content if getattr(block, "type", None) == "text"]
        if not text_blocks:
            raise TranslationServiceError("Translation response contained no text")
        return "".join(text_blocks).strip()
