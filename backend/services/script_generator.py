"""MulmoScript generation – prompt building and the OpenAI chat call."""

from __future__ import annotations

import json
import logging
from typing import Any

from openai import AsyncOpenAI

import config
from services.errors import ScriptFormatError, ScriptGenerationError

logger = logging.getLogger("mca.script_generator")

SYSTEM_PROMPT = (
    "You are an expert at writing MulmoScript documents. "
    "Always answer with valid JSON only, without any explanation."
)

STYLE_DESCRIPTIONS = {
    "ghibli": "Studio Ghibli style hand-drawn animation",
}
DEFAULT_STYLE_DESCRIPTION = "clean business presentation slides"

PROMPT_TEMPLATE = """\
Generate a MulmoScript JSON document from the content below.

Follow the structure exactly. Do not add, rename or remove fields.

[CONTENT]
{content}

[REQUIREMENTS]
1. Follow the structure below strictly.
2. Use 3 to 5 beats.
3. Each beat "text" is narration of 50 to 100 characters, written in language "{lang}".
4. Each "imagePrompt" is a concrete, visual description in {style_description} style.

Required structure:

{{
  "$mulmocast": {{
    "version": "1.0"
  }},
  "title": "title here",
  "lang": "{lang}",
  "beats": [
    {{
      "text": "narration here",
      "imagePrompt": "image prompt here ({style_description})"
    }}
  ]
}}

Return the JSON only.
"""

# Client is created on first use so importing this module needs no API key
_client: AsyncOpenAI | None = None


def _get_client() -> AsyncOpenAI:
    global _client
    if _client is None:
        if not config.OPENAI_API_KEY:
            raise ScriptGenerationError("OPENAI_API_KEY missing")
        _client = AsyncOpenAI(api_key=config.OPENAI_API_KEY)
    return _client


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def create_prompt(content: str, style: str = config.DEFAULT_STYLE, lang: str = config.SCRIPT_LANG) -> str:
    """Build the user prompt from the first part of the page text."""
    return PROMPT_TEMPLATE.format(
        content=content[: config.MAX_PROMPT_CHARS],
        lang=lang,
        style_description=STYLE_DESCRIPTIONS.get(style, DEFAULT_STYLE_DESCRIPTION),
    )


async def generate_script(content: str, style: str = config.DEFAULT_STYLE, client: AsyncOpenAI | None = None) -> dict[str, Any]:
    """
    Ask the LLM for a MulmoScript and validate its shape.

    Raises ScriptFormatError when the document lacks ``$mulmocast`` or a
    ``beats`` list, ScriptGenerationError for every other failure.
    """
    client = client or _get_client()
    try:
        completion = await client.chat.completions.create(
            model=config.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": create_prompt(content, style)},
            ],
            temperature=config.OPENAI_TEMPERATURE,
            max_tokens=config.OPENAI_MAX_TOKENS,
            response_format={"type": "json_object"},
        )
        raw = completion.choices[0].message.content or ""
        script = json.loads(raw)
    except ScriptGenerationError:
        raise
    except Exception as e:
        raise ScriptGenerationError(f"MulmoScript generation error: {e}") from e

    validate_script(script)
    logger.info("MulmoScript generated: '%s' (%d beats)", script.get("title", ""), len(script["beats"]))
    return script


def validate_script(script: Any) -> None:
    if (
        not isinstance(script, dict)
        or not script.get("$mulmocast")
        or not isinstance(script.get("beats"), list)
    ):
        raise ScriptFormatError("MulmoScript generation error: generated MulmoScript is malformed")
