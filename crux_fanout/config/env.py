"""Provider credential lookup.

The HTTP transport asks this module for an API key whenever the caller did not
hand one in explicitly. Each provider maps to a canonical variable and,
optionally, older alias names that are still honoured. Providers missing from
the map fall back to ``<PROVIDER>_API_KEY``.

Lookups never raise: an unset or placeholder value simply resolves to
``(None, None)`` and the transport decides whether a key was required.
"""

from __future__ import annotations

import os
from typing import Dict, Optional, Tuple

ENV_MAP: Dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "xai": "XAI_API_KEY",
    "groq": "GROQ_API_KEY",
}

# Extra names accepted after the canonical one.
ENV_ALIASES: Dict[str, Tuple[str, ...]] = {
    "xai": ("GROK_API_KEY",),
}

_PLACEHOLDER_MARKERS = ("placeholder", "changeme")


def env_var_for(provider: str) -> str:
    """Canonical variable name for ``provider``."""
    key = (provider or "").lower()
    return ENV_MAP.get(key, f"{key.upper()}_API_KEY")


def is_placeholder(val: Optional[str]) -> bool:
    """True for values copied out of an example ``.env`` rather than real keys."""
    if val is None:
        return False
    lowered = val.strip().lower()
    return lowered.startswith("test_") or any(m in lowered for m in _PLACEHOLDER_MARKERS)


def resolve_provider_key(provider: str) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(value, variable)`` for the first usable key, else ``(None, None)``."""
    names = (env_var_for(provider), *ENV_ALIASES.get((provider or "").lower(), ()))
    for name in names:
        value = os.environ.get(name)
        if value and not is_placeholder(value):
            return value, name
    return None, None


__all__ = [
    "ENV_MAP",
    "ENV_ALIASES",
    "env_var_for",
    "is_placeholder",
    "resolve_provider_key",
]
