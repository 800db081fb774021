"""End-to-end tests for ``MultiModelOrchestrator.run_batch`` over a scripted transport.

Covers:
- exactly one result per request, whatever each stream does
- failures stay isolated: unknown provider, upstream error, empty stream
- batches bound concurrency and run one after the other
- per-unit timeout fails only the slow unit; its TTFT stays unset
- callback order, monotonic accumulated text, async callbacks
- callback exceptions are traced and never affect results
- batch-wide and per-request cancellation, skipped undispatched units
- metrics are recorded once per unit; a recorder fault never drops a result
- unknown provider resolves with empty content and no TTFT
- a hanging on_start hook is bounded by the unit timeout
"""
from __future__ import annotations

import asyncio

import pytest
from pydantic import ValidationError

from crux_fanout import build_transcript
from crux_fanout.base.cancellation import CancellationToken
from crux_fanout.base.errors import ErrorCode
from crux_fanout.base.metrics import MetricsRecorder
from crux_fanout.base.models import StreamRequest
from crux_fanout.mock import Script, ScriptedTransport, anthropic_sse, openai_sse
from crux_fanout.orchestrator import OrchestratorCallbacks

pytestmark = pytest.mark.asyncio


def _req(model: str, provider: str = "openai", **kwargs) -> StreamRequest:
    return StreamRequest.from_prompt(model, provider, "Say hello", **kwargs)


def _by_model(results):
    return {r.model_id: r for r in results}


async def test_one_result_per_request_with_isolated_failures(make_orchestrator):
    upstream_error = 'data: {"error": {"type": "overloaded", "message": "try later"}}\n\n'
    scripts = {
        "gpt": Script(chunks=openai_sse(["Hel", "lo"], usage={"prompt_tokens": 2, "completion_tokens": 5})),
        "claude": Script(chunks=anthropic_sse(["Hi"])),
        "ghost": Script(chunks=openai_sse(["never"])),
        "grumpy": Script(chunks=openai_sse(["par"], done=False) + [upstream_error]),
        "mute": Script(chunks=[]),
    }
    orch = make_orchestrator(scripts)
    results = await orch.run_batch(
        [
            _req("gpt"),
            _req("claude", "anthropic"),
            _req("ghost", "nowhere"),
            _req("grumpy"),
            _req("mute", "text"),
        ]
    )
    assert len(results) == 5  # nosec B101
    by = _by_model(results)
    assert by["gpt"].success and by["gpt"].content == "Hello"  # nosec B101
    assert by["gpt"].metrics.output_tokens == 5  # nosec B101
    assert by["claude"].success and by["claude"].content == "Hi"  # nosec B101
    assert by["claude"].metrics.output_tokens == 1  # nosec B101
    assert by["ghost"].error_code == ErrorCode.UNKNOWN_PROVIDER.value  # nosec B101
    assert by["grumpy"].error_code == ErrorCode.UPSTREAM.value  # nosec B101
    assert by["grumpy"].content == "par"  # nosec B101
    assert by["mute"].error_code == ErrorCode.EMPTY_STREAM.value  # nosec B101
    for failed in ("ghost", "grumpy", "mute"):
        assert not by[failed].success and by[failed].error  # nosec B101


async def test_unknown_provider_resolves_empty_while_siblings_succeed(make_orchestrator):
    scripts = {
        "left": Script(chunks=openai_sse(["L"])),
        "ghost": Script(chunks=openai_sse(["never"])),
        "right": Script(chunks=["R"]),
    }
    transport = ScriptedTransport(scripts=scripts)
    results = await make_orchestrator(scripts, transport=transport).run_batch(
        [_req("left"), _req("ghost", "nowhere"), _req("right", "text")], batch_size=3
    )
    by = _by_model(results)
    ghost = by["ghost"]
    assert not ghost.success and ghost.error_code == ErrorCode.UNKNOWN_PROVIDER.value  # nosec B101
    assert ghost.content == "" and ghost.error  # nosec B101
    assert ghost.metrics.time_to_first_token_ms is None and ghost.chunk_count == 0  # nosec B101
    assert "ghost" not in transport.opened  # nosec B101
    assert by["left"].success and by["left"].content == "L"  # nosec B101
    assert by["right"].success and by["right"].content == "R"  # nosec B101


async def test_non_numeric_usage_does_not_break_the_batch(make_orchestrator):
    scripts = {
        "odd": Script(chunks=openai_sse(["a", "b"], usage={"prompt_tokens": 1, "completion_tokens": "5"})),
        "fine": Script(chunks=openai_sse(["c"], usage={"prompt_tokens": 1, "completion_tokens": 4})),
    }
    orch = make_orchestrator(scripts)
    results = await orch.run_batch([_req("odd"), _req("fine")])
    by = _by_model(results)
    assert by["odd"].success and by["odd"].metrics.output_tokens == 2  # nosec B101
    assert by["fine"].metrics.output_tokens == 4  # nosec B101
    assert orch.metrics.snapshot().output_tokens[("odd", "openai")].value == 2  # nosec B101


class _FlakyRecorder(MetricsRecorder):
    def record(self, result):
        if result.model_id == "flaky":
            raise TypeError("recorder bug")
        super().record(result)


async def test_metrics_fault_still_yields_one_result_per_unit(make_orchestrator, trace):
    scripts = {"flaky": Script(chunks=["x"]), "steady": Script(chunks=["y"], delay_s=0.01)}
    completed = []
    results = await make_orchestrator(scripts, metrics=_FlakyRecorder()).run_batch(
        [_req("flaky", "text"), _req("steady", "text")],
        callbacks=OrchestratorCallbacks(on_complete=lambda result: completed.append(result.model_id)),
    )
    assert sorted(r.model_id for r in results) == ["flaky", "steady"]  # nosec B101
    assert all(r.success for r in results)  # nosec B101
    assert sorted(completed) == ["flaky", "steady"]  # nosec B101
    faults = trace.named("orchestrator.metrics.error")
    assert [e.model for e in faults] == ["flaky"]  # nosec B101


async def test_hanging_on_start_times_out_only_its_unit(make_orchestrator):
    async def on_start(model_id, provider):
        if model_id == "blocked":
            await asyncio.Event().wait()

    scripts = {"blocked": Script(chunks=["x"]), "free": Script(chunks=["y"])}
    transport = ScriptedTransport(scripts=scripts)
    results = await make_orchestrator(scripts, transport=transport).run_batch(
        [_req("blocked", "text"), _req("free", "text")],
        timeout_ms=50,
        callbacks=OrchestratorCallbacks(on_start=on_start),
    )
    by = _by_model(results)
    assert by["blocked"].error_code == ErrorCode.TIMEOUT.value  # nosec B101
    assert "blocked" not in transport.opened  # nosec B101
    assert by["free"].success  # nosec B101


async def test_results_arrive_in_completion_order(make_orchestrator):
    scripts = {
        "slow": Script(chunks=["s"], first_delay_s=0.05),
        "fast": Script(chunks=["f"]),
    }
    results = await make_orchestrator(scripts).run_batch([_req("slow", "text"), _req("fast", "text")])
    assert [r.model_id for r in results] == ["fast", "slow"]  # nosec B101


async def test_next_batch_waits_for_every_unit_of_the_previous_one(make_orchestrator, trace):
    print("TEST: five units, batch_size=2 -> a batch opens only after the whole previous batch resolved")
    scripts = {
        "m0": Script(chunks=["x"]),
        "m1": Script(chunks=["x"], first_delay_s=0.05),
        "m2": Script(chunks=["x"]),
        "m3": Script(chunks=["x"], first_delay_s=0.05),
        "m4": Script(chunks=["x"]),
    }
    transport = ScriptedTransport(scripts=scripts)
    opened_when_resolved = {}

    def on_complete(result):
        opened_when_resolved[result.model_id] = set(transport.opened)

    orch = make_orchestrator(scripts, transport=transport)
    results = await orch.run_batch(
        [_req(m, "text") for m in scripts],
        batch_size=2,
        callbacks=OrchestratorCallbacks(on_complete=on_complete),
    )
    assert len(results) == 5 and all(r.success for r in results)  # nosec B101
    # m0 finishes first; a greedy scheduler would open m2 before m1 resolves.
    assert opened_when_resolved["m0"] <= {"m0", "m1"}  # nosec B101
    assert opened_when_resolved["m1"] == {"m0", "m1"}  # nosec B101
    assert opened_when_resolved["m2"] <= {"m0", "m1", "m2", "m3"}  # nosec B101
    assert opened_when_resolved["m3"] == {"m0", "m1", "m2", "m3"}  # nosec B101
    assert transport.opened[-1] == "m4"  # nosec B101
    assert len(trace.named("orchestrator.batch.start")) == 3  # nosec B101


async def test_invalid_batch_options_raise(make_orchestrator):
    orch = make_orchestrator({})
    with pytest.raises(ValidationError):
        await orch.run_batch([_req("a")], batch_size=0)
    with pytest.raises(ValidationError):
        await orch.run_batch([_req("a")], timeout_ms=0)


async def test_batch_size_from_environment(make_orchestrator, trace, monkeypatch):
    monkeypatch.setenv("FANOUT_BATCH_SIZE", "1")
    orch = make_orchestrator({m: Script(chunks=["x"]) for m in ("a", "b")})
    await orch.run_batch([_req("a", "text"), _req("b", "text")])
    assert len(trace.named("orchestrator.batch.start")) == 2  # nosec B101


async def test_unit_timeout_isolates_slow_unit(make_orchestrator):
    scripts = {
        "stuck": Script(chunks=[], hang=True),
        "quick": Script(chunks=openai_sse(["done"])),
    }
    transport = ScriptedTransport(scripts=scripts)
    orch = make_orchestrator(scripts, transport=transport)
    results = await orch.run_batch([_req("stuck", "text"), _req("quick")], timeout_ms=50)
    by = _by_model(results)
    assert by["quick"].success  # nosec B101
    stuck = by["stuck"]
    assert not stuck.success and stuck.error_code == ErrorCode.TIMEOUT.value  # nosec B101
    assert stuck.metrics.time_to_first_token_ms is None  # nosec B101
    assert stuck.duration_ms >= 45  # nosec B101
    assert sorted(transport.closed) == ["quick", "stuck"]  # nosec B101


async def test_request_timeout_used_without_batch_override(make_orchestrator):
    orch = make_orchestrator({"stuck": Script(chunks=["early"], hang=True)})
    results = await orch.run_batch([_req("stuck", "text", timeout_ms=40)])
    assert results[0].error_code == ErrorCode.TIMEOUT.value  # nosec B101
    assert results[0].content == "early"  # nosec B101
    assert results[0].metrics.time_to_first_token_ms is not None  # nosec B101


async def test_callback_order_and_monotonic_accumulation(make_orchestrator):
    calls = []

    async def on_chunk(model_id, delta, accumulated):
        await asyncio.sleep(0)
        calls.append(("chunk", model_id, delta, accumulated))

    callbacks = OrchestratorCallbacks(
        on_start=lambda model_id, provider: calls.append(("start", model_id, provider)),
        on_chunk=on_chunk,
        on_complete=lambda result: calls.append(("complete", result.model_id, result.success)),
        on_error=lambda model_id, cause: calls.append(("error", model_id, cause.code)),
    )
    scripts = {"ok": Script(chunks=openai_sse(["a", "b", "c"])), "bad": Script(chunks=[])}
    await make_orchestrator(scripts).run_batch([_req("ok"), _req("bad", "text")], callbacks=callbacks)

    ok = [c for c in calls if c[1] == "ok"]
    assert ok[0] == ("start", "ok", "openai")  # nosec B101
    accumulated = [c[3] for c in ok if c[0] == "chunk"]
    assert accumulated == ["a", "ab", "abc"]  # nosec B101
    assert ok[-1] == ("complete", "ok", True)  # nosec B101

    bad = [c[0] for c in calls if c[1] == "bad"]
    assert bad == ["start", "complete", "error"]  # nosec B101
    assert ("error", "bad", ErrorCode.EMPTY_STREAM) in calls  # nosec B101


async def test_callback_exceptions_are_contained(make_orchestrator, trace):
    def explode(*_args):
        raise RuntimeError("callback bug")

    callbacks = OrchestratorCallbacks(on_start=explode, on_chunk=explode, on_complete=explode)
    results = await make_orchestrator({"m": Script(chunks=openai_sse(["x", "y"]))}).run_batch(
        [_req("m")], callbacks=callbacks
    )
    assert results[0].success and results[0].content == "xy"  # nosec B101
    hooks = [e.fields["hook"] for e in trace.named("orchestrator.callback.error")]
    assert hooks == ["on_start", "on_chunk", "on_chunk", "on_complete"]  # nosec B101


async def test_batch_cancellation_mid_stream_and_skips_later_batches(make_orchestrator):
    print("TEST: cancel batch token from inside a chunk callback")
    token = CancellationToken()
    started = []
    completed = []
    errors = []

    def on_chunk(model_id, delta, accumulated):
        if model_id == "talker":
            token.cancel("user pressed stop")

    scripts = {
        "talker": Script(chunks=["first", "second"], delay_s=0.01, hang=True),
        "sleeper": Script(chunks=[], hang=True),
        "later": Script(chunks=["never"]),
    }
    transport = ScriptedTransport(scripts=scripts)
    orch = make_orchestrator(scripts, transport=transport)
    results = await orch.run_batch(
        [_req("talker", "text"), _req("sleeper", "text"), _req("later", "text")],
        batch_size=2,
        cancellation=token,
        callbacks=OrchestratorCallbacks(
            on_start=lambda model_id, provider: started.append(model_id),
            on_chunk=on_chunk,
            on_complete=lambda result: completed.append(result.model_id),
            on_error=lambda model_id, cause: errors.append((model_id, cause.code)),
        ),
    )
    assert len(results) == 3  # nosec B101
    assert all(r.error_code == ErrorCode.CANCELLED.value for r in results)  # nosec B101
    by = _by_model(results)
    assert by["talker"].content == "first"  # nosec B101
    assert "user pressed stop" in by["sleeper"].error  # nosec B101
    assert "later" not in transport.opened and "later" not in started  # nosec B101
    assert sorted(completed) == ["later", "sleeper", "talker"]  # nosec B101
    assert sorted(m for m, _ in errors) == ["later", "sleeper", "talker"]  # nosec B101


async def test_request_token_cancels_only_its_unit(make_orchestrator):
    token = CancellationToken()
    scripts = {
        "victim": Script(chunks=[], hang=True),
        "bystander": Script(chunks=["fine"], first_delay_s=0.03),
    }

    async def cancel_soon():
        await asyncio.sleep(0.01)
        token.cancel()

    canceller = asyncio.create_task(cancel_soon())
    results = await make_orchestrator(scripts).run_batch(
        [_req("victim", "text", cancellation=token), _req("bystander", "text")]
    )
    await canceller
    by = _by_model(results)
    assert by["victim"].error_code == ErrorCode.CANCELLED.value  # nosec B101
    assert by["bystander"].success and by["bystander"].content == "fine"  # nosec B101


async def test_metrics_recorded_once_per_unit(make_orchestrator):
    scripts = {
        "a": Script(chunks=openai_sse(["1", "2"], usage={"prompt_tokens": 1, "completion_tokens": 9})),
        "b": Script(chunks=[]),
    }
    orch = make_orchestrator(scripts)
    await orch.run_batch([_req("a"), _req("b", "text")])
    snap = orch.metrics.snapshot()
    assert snap.total_duration_ms[("a", "openai")].count == 1  # nosec B101
    assert snap.total_duration_ms[("b", "text")].count == 1  # nosec B101
    assert snap.ttft_ms[("a", "openai")].count == 1  # nosec B101
    assert ("b", "text") not in snap.ttft_ms  # nosec B101
    assert snap.output_tokens[("a", "openai")].value == 9  # nosec B101
    assert ("b", "text") not in snap.output_tokens  # nosec B101


async def test_transcript_has_one_block_per_model(make_orchestrator):
    scripts = {"good": Script(chunks=["Hello"]), "bad": Script(chunks=[])}
    results = await make_orchestrator(scripts).run_batch([_req("good", "text"), _req("bad", "text")])
    transcript = build_transcript(sorted(results, key=lambda r: r.model_id))
    assert transcript == "[bad] failed: empty_stream: stream ended with no content\n\n[good]\nHello"  # nosec B101


async def test_stream_one(make_orchestrator):
    result = await make_orchestrator({"solo": Script(chunks=["x"])}).stream_one(_req("solo", "text"))
    assert result.success and result.chunk_count == 1  # nosec B101
