"""Per-run settings: provider/model choices and pipeline pacing knobs.

Settings are a plain dict so they can travel through JSON request bodies.
Defaults can be overridden from the environment with a ``FORGE_`` prefix,
e.g. ``FORGE_TEXT_PROVIDER=openai`` or ``FORGE_MAX_RETRIES=3``.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

log = logging.getLogger(__name__)

TEXT_PROVIDERS = ("gemini", "openai", "anthropic")
IMAGE_PROVIDERS = ("gemini", "replicate")

DEFAULT_TEXT_MODELS = {
    "gemini": "gemini-2.5-flash",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-sonnet-4-6",
}
DEFAULT_LISTING_MODELS = {
    "gemini": "gemini-3-pro-preview",
    "openai": "gpt-4.1",
    "anthropic": "claude-sonnet-4-6",
}
DEFAULT_IMAGE_MODELS = {
    "gemini": "gemini-2.5-flash-image",
    "replicate": "google/nano-banana",
}

DEFAULTS: Dict = {
    "text_provider": "gemini",
    "image_provider": "gemini",
    "max_retries": 5,
    "initial_delay": 2.0,
    "design_delay": 1.5,
    "mockup_delay": 1.5,
}

_INT_KEYS = ("max_retries",)
_FLOAT_KEYS = ("initial_delay", "design_delay", "mockup_delay")
_STR_KEYS = ("text_provider", "text_model", "listing_model", "image_provider", "image_model")


def _from_env() -> Dict:
    found: Dict = {}
    for key in _STR_KEYS + _INT_KEYS + _FLOAT_KEYS:
        raw = os.environ.get(f"FORGE_{key.upper()}")
        if raw is None or raw == "":
            continue
        try:
            if key in _INT_KEYS:
                found[key] = int(raw)
            elif key in _FLOAT_KEYS:
                found[key] = float(raw)
            else:
                found[key] = raw.strip()
        except ValueError:
            log.warning("Ignoring invalid FORGE_%s=%r", key.upper(), raw)
    return found


def resolve(overrides: Optional[Dict] = None) -> Dict:
    """Merge defaults < environment < explicit overrides, then fill model names."""
    settings = dict(DEFAULTS)
    settings.update(_from_env())
    settings.update({k: v for k, v in (overrides or {}).items() if v is not None})

    if settings["text_provider"] not in TEXT_PROVIDERS:
        raise ValueError(f"text_provider must be one of: {', '.join(TEXT_PROVIDERS)}")
    if settings["image_provider"] not in IMAGE_PROVIDERS:
        raise ValueError(f"image_provider must be one of: {', '.join(IMAGE_PROVIDERS)}")

    settings.setdefault("text_model", DEFAULT_TEXT_MODELS[settings["text_provider"]])
    settings.setdefault("listing_model", DEFAULT_LISTING_MODELS[settings["text_provider"]])
    settings.setdefault("image_model", DEFAULT_IMAGE_MODELS[settings["image_provider"]])
    return settings
