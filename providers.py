"""Text and image generation providers.

Two contracts are consumed by the pipeline:

* text:  ``generate_structured(prompt, system_instruction, schema, model=None)``
         returns the parsed JSON value.
* image: ``generate_image(parts, model=None)`` where ``parts`` mixes prompt
         strings and reference ``RenderedImage`` objects; returns a
         ``RenderedImage`` or ``None`` when the response holds no image.

Provider SDKs are imported lazily so only the configured ones need to be
installed at runtime.
"""

from __future__ import annotations

import io
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import requests

from remote_call import GenerationError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedImage:
    data: bytes
    mime_type: str = "image/png"

    @property
    def extension(self) -> str:
        subtype = self.mime_type.split("/")[-1].lower()
        return "jpg" if subtype == "jpeg" else subtype


PromptPart = Union[str, RenderedImage]


def _require_env(*names: str) -> str:
    for name in names:
        value = os.environ.get(name, "")
        if value:
            return value
    raise RuntimeError(f"{names[0]} not set")


def parse_json(text: str) -> Any:
    """Parse a JSON object or array out of a model response."""
    text = (text or "").strip()
    if text.startswith("```"):
        lines = text.splitlines()
        text = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    for opener, closer in (("[", "]"), ("{", "}")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                continue
    raise GenerationError("The AI response could not be parsed as JSON.")


# ---------------------------------------------------------------------------
# Text providers
# ---------------------------------------------------------------------------

class GeminiTextGenerator:
    provider = "gemini"

    def __init__(self, model: str = "gemini-2.5-flash") -> None:
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=_require_env("GEMINI_API_KEY", "GOOGLE_API_KEY"))
        return self._client

    def generate_structured(
        self,
        prompt: str,
        system_instruction: str,
        schema: Dict,
        model: Optional[str] = None,
    ) -> Any:
        from google.genai import types

        model = model or self.model
        t0 = time.time()
        response = self._get_client().models.generate_content(
            model=model,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=system_instruction,
                response_mime_type="application/json",
                response_json_schema=schema,
            ),
        )
        log.info("Gemini text call: model=%s  %.1fs", model, time.time() - t0)
        return parse_json(response.text or "")


class OpenAITextGenerator:
    provider = "openai"

    def __init__(self, model: str = "gpt-4o-mini") -> None:
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=_require_env("OPENAI_API_KEY"))
        return self._client

    def generate_structured(
        self,
        prompt: str,
        system_instruction: str,
        schema: Dict,
        model: Optional[str] = None,
    ) -> Any:
        from openai import AuthenticationError

        model = model or self.model
        # json_schema response formats need an object at the root
        wrapped = schema.get("type") == "array"
        wire_schema = (
            {"type": "object", "properties": {"items": schema}, "required": ["items"]}
            if wrapped else schema
        )
        t0 = time.time()
        try:
            resp = self._get_client().chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_instruction},
                    {"role": "user", "content": prompt},
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": "forge_response", "schema": wire_schema},
                },
            )
        except AuthenticationError:
            raise RuntimeError("OpenAI API key is invalid or expired.")
        log.info(
            "OpenAI call: model=%s  %d in / %d out tokens  %.1fs",
            model, resp.usage.prompt_tokens, resp.usage.completion_tokens, time.time() - t0,
        )
        data = parse_json(resp.choices[0].message.content or "")
        if wrapped and isinstance(data, dict):
            return data.get("items")
        return data


class AnthropicTextGenerator:
    provider = "anthropic"

    def __init__(self, model: str = "claude-sonnet-4-6") -> None:
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(api_key=_require_env("ANTHROPIC_API_KEY"))
        return self._client

    def generate_structured(
        self,
        prompt: str,
        system_instruction: str,
        schema: Dict,
        model: Optional[str] = None,
    ) -> Any:
        model = model or self.model
        system = (
            f"{system_instruction}\n\n"
            "Return valid JSON only, no markdown fences, no commentary, matching this JSON schema:\n"
            f"{json.dumps(schema)}"
        )
        t0 = time.time()
        msg = self._get_client().messages.create(
            model=model,
            max_tokens=4096,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
        log.info(
            "Anthropic call: model=%s  %d in / %d out tokens  %.1fs",
            model, msg.usage.input_tokens, msg.usage.output_tokens, time.time() - t0,
        )
        return parse_json(msg.content[0].text)


# ---------------------------------------------------------------------------
# Image providers
# ---------------------------------------------------------------------------

class GeminiImageGenerator:
    provider = "gemini"

    def __init__(self, model: str = "gemini-2.5-flash-image") -> None:
        self.model = model
        self._client = None

    def _get_client(self):
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=_require_env("GEMINI_API_KEY", "GOOGLE_API_KEY"))
        return self._client

    def generate_image(self, parts: Sequence[PromptPart], model: Optional[str] = None) -> Optional[RenderedImage]:
        from google.genai import types

        model = model or self.model
        contents: List[Any] = []
        for part in parts:
            if isinstance(part, RenderedImage):
                contents.append(types.Part.from_bytes(data=part.data, mime_type=part.mime_type))
            else:
                contents.append(part)

        t0 = time.time()
        response = self._get_client().models.generate_content(
            model=model,
            contents=contents,
            config=types.GenerateContentConfig(response_modalities=["IMAGE"]),
        )
        log.info("Gemini image call: model=%s  %.1fs", model, time.time() - t0)

        for candidate in (response.candidates or [])[:1]:
            content = candidate.content
            for part in (content.parts if content and content.parts else []):
                inline = part.inline_data
                if inline and inline.data:
                    return RenderedImage(data=inline.data, mime_type=inline.mime_type or "image/png")
        return None


class ReplicateImageGenerator:
    provider = "replicate"

    def __init__(self, model: str = "google/nano-banana", output_format: str = "png") -> None:
        self.model = model
        self.output_format = output_format
        self._client = None

    def _get_client(self):
        if self._client is None:
            import replicate as rep
            self._client = rep.Client(api_token=_require_env("REPLICATE_API_TOKEN"))
        return self._client

    def generate_image(self, parts: Sequence[PromptPart], model: Optional[str] = None) -> Optional[RenderedImage]:
        model = model or self.model
        prompt = "\n\n".join(p for p in parts if isinstance(p, str))
        references = [p for p in parts if isinstance(p, RenderedImage)]

        payload: Dict[str, Any] = {"prompt": prompt, "output_format": self.output_format}
        if references:
            payload["image_input"] = [io.BytesIO(ref.data) for ref in references]
            payload["aspect_ratio"] = "match_input_image"
        else:
            payload["aspect_ratio"] = "1:1"

        t0 = time.time()
        raw_output = self._get_client().run(model, input=payload)
        log.info("Replicate call: model=%s  %.1fs", model, time.time() - t0)

        raw = raw_output[0] if isinstance(raw_output, list) and raw_output else raw_output
        if not raw:
            return None
        if hasattr(raw, "read"):
            data = raw.read()
        else:
            resp = requests.get(getattr(raw, "url", None) or str(raw), timeout=90)
            resp.raise_for_status()
            data = resp.content
        if not data:
            return None
        return RenderedImage(data=data, mime_type=f"image/{self.output_format}")


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

_TEXT_CLASSES = {
    "gemini": GeminiTextGenerator,
    "openai": OpenAITextGenerator,
    "anthropic": AnthropicTextGenerator,
}
_IMAGE_CLASSES = {
    "gemini": GeminiImageGenerator,
    "replicate": ReplicateImageGenerator,
}


def make_text_generator(settings: Dict):
    return _TEXT_CLASSES[settings["text_provider"]](model=settings["text_model"])


def make_image_generator(settings: Dict):
    return _IMAGE_CLASSES[settings["image_provider"]](model=settings["image_model"])


def available_providers() -> Dict[str, List[str]]:
    """Providers whose credentials are present in the environment."""
    has_gemini = bool(os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY"))
    text = [name for name, ok in (
        ("gemini", has_gemini),
        ("openai", bool(os.environ.get("OPENAI_API_KEY"))),
        ("anthropic", bool(os.environ.get("ANTHROPIC_API_KEY"))),
    ) if ok]
    image = [name for name, ok in (
        ("gemini", has_gemini),
        ("replicate", bool(os.environ.get("REPLICATE_API_TOKEN"))),
    ) if ok]
    return {"text": text, "image": image}
