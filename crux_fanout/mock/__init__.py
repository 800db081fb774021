"""Mock transport package exposing deterministic scripted streams for tests."""

from .scripted import Script, ScriptedTransport, anthropic_sse, failure, openai_sse

__all__ = ["Script", "ScriptedTransport", "anthropic_sse", "failure", "openai_sse"]
