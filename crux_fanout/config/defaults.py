"""crux_fanout.config.defaults
===========================

Central place for small, stable default values used across the crux_fanout
package. These defaults can be overridden via environment variables (see
``crux_fanout.base.timeouts``) or explicit arguments, but provide sensible
fallbacks for local development and tests.

Module Purpose
--------------
- Provide a single import location for conservative default constants (no I/O).
- Keep streaming and orchestration code free of magic literals.

This module intentionally avoids importing from other crux_fanout packages to
prevent circular dependencies. Only plain constants should live here.
"""

from __future__ import annotations

# ---- Orchestration ----

# Per-unit timeout applied by the orchestrator when none is given (milliseconds).
FANOUT_DEFAULT_TIMEOUT_MS = 30000
# Maximum number of units dispatched concurrently within one batch.
FANOUT_DEFAULT_BATCH_SIZE = 5
# Independent watchdog armed by the stream controller (seconds).
FANOUT_DEFAULT_WATCHDOG_SECONDS = 30.0

# ---- Metrics ----

# Exponential histogram boundaries: (start, factor, count).
FANOUT_TTFT_BUCKETS = (10.0, 2.0, 10)
FANOUT_DURATION_BUCKETS = (100.0, 2.0, 12)

# ---- SSE framing ----

SSE_DATA_PREFIX = "data:"
SSE_DONE_SENTINEL = "[DONE]"

# ---- Provider endpoints ----

OPENAI_DEFAULT_BASE_URL = "https://api.openai.com/v1"
ANTHROPIC_DEFAULT_BASE_URL = "https://api.anthropic.com/v1"
ANTHROPIC_API_VERSION = "2023-06-01"
OPENROUTER_DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEEPSEEK_DEFAULT_BASE_URL = "https://api.deepseek.com/v1"
XAI_DEFAULT_BASE_URL = "https://api.x.ai/v1"
GROQ_DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"

# Anthropic requires an explicit completion budget on every request.
ANTHROPIC_DEFAULT_MAX_TOKENS = 4096


__all__ = [
    # Orchestration
    "FANOUT_DEFAULT_TIMEOUT_MS",
    "FANOUT_DEFAULT_BATCH_SIZE",
    "FANOUT_DEFAULT_WATCHDOG_SECONDS",
    # Metrics
    "FANOUT_TTFT_BUCKETS",
    "FANOUT_DURATION_BUCKETS",
    # SSE
    "SSE_DATA_PREFIX",
    "SSE_DONE_SENTINEL",
    # Providers
    "OPENAI_DEFAULT_BASE_URL",
    "ANTHROPIC_DEFAULT_BASE_URL",
    "ANTHROPIC_API_VERSION",
    "OPENROUTER_DEFAULT_BASE_URL",
    "DEEPSEEK_DEFAULT_BASE_URL",
    "XAI_DEFAULT_BASE_URL",
    "GROQ_DEFAULT_BASE_URL",
    "ANTHROPIC_DEFAULT_MAX_TOKENS",
]
