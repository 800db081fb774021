"""Multi-model fan-out orchestrator.

Purpose
-------
Run many model streams concurrently in bounded batches and resolve every one
of them to exactly one :class:`ModelStreamResult`, whatever happens to it.

Scheduling
----------
Requests are partitioned into consecutive batches of ``batch_size``. Batches
run strictly one after another; the units of a batch run concurrently under
``asyncio.gather``. Each unit runs inside its own ``asyncio.timeout`` scope,
so a slow unit is cancelled alone and its siblings continue. The scope also
covers the unit's ``on_start`` hook, so a hook that never returns times out
that unit only.

Cancellation
------------
A cancellation token (the request's own, or the one passed to
``run_batch``) expires the unit's timeout scope immediately through
``Timeout.reschedule``; the unit resolves with code ``cancelled``. Units whose
token already fired when their batch is dispatched resolve as cancelled
without opening a transport.

Failure Modes
-------------
``run_batch`` raises only for invalid options (``pydantic.ValidationError``)
or when its own task is cancelled. Unknown providers, transport, protocol,
upstream, empty-stream, timeout and cancellation failures, as well as
unexpected exceptions in the unit path and in callbacks, are all contained in
the affected unit.
"""
from __future__ import annotations

import asyncio
import inspect
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from ..base.cancellation import CancellationToken
from ..base.dto import BatchOptions
from ..base.errors import (
    ErrorCode,
    StreamCancelledError,
    StreamFailure,
    StreamTimeoutError,
    TransportError,
    to_stream_failure,
)
from ..base.http.transport import ProviderTransport
from ..base.metrics import MetricsRecorder
from ..base.models import ModelStreamMetrics, ModelStreamResult, StreamRequest, TokenUsage
from ..base.observability import TraceEvent, TraceSink, default_trace_sink
from ..base.streaming import (
    AdapterRegistry,
    StreamController,
    StreamEventHandlers,
    TokenDelta,
    dispatch_event,
)
from .batching import chunk_requests
from .callbacks import OrchestratorCallbacks


@dataclass
class _UnitProgress:
    parts: List[str] = field(default_factory=list)
    chunk_count: int = 0
    ttft_ms: Optional[float] = None
    usage: Optional[TokenUsage] = None
    completed: bool = False
    failure: Optional[StreamFailure] = None

    @property
    def text(self) -> str:
        return "".join(self.parts)


class MultiModelOrchestrator:
    """Fan requests out to their providers and collect one result per request.

    Parameters:
        transport: Byte transport; required unless ``controller`` is given.
        controller: Pre-built stream controller (overrides ``transport``,
            ``registry`` and ``watchdog_seconds``).
        registry: Adapter registry for the default controller.
        metrics: Recorder fed once per resolved unit.
        trace: Trace sink for orchestrator and stream events.
        watchdog_seconds: Stream watchdog for the default controller.
    """

    def __init__(
        self,
        transport: Optional[ProviderTransport] = None,
        *,
        controller: Optional[StreamController] = None,
        registry: Optional[AdapterRegistry] = None,
        metrics: Optional[MetricsRecorder] = None,
        trace: Optional[TraceSink] = None,
        watchdog_seconds: Optional[float] = None,
    ) -> None:
        self._trace = trace or default_trace_sink()
        if controller is None:
            if transport is None:
                raise ValueError("a transport or a controller is required")
            controller = StreamController(
                transport,
                registry=registry,
                trace=self._trace,
                watchdog_seconds=watchdog_seconds,
            )
        self._controller = controller
        self._metrics = metrics or MetricsRecorder()

    @property
    def metrics(self) -> MetricsRecorder:
        return self._metrics

    async def run_batch(
        self,
        requests: Iterable[StreamRequest],
        batch_size: Optional[int] = None,
        timeout_ms: Optional[int] = None,
        callbacks: Optional[OrchestratorCallbacks] = None,
        cancellation: Optional[CancellationToken] = None,
    ) -> List[ModelStreamResult]:
        """Stream every request and return the results in completion order.

        Parameters:
            requests: Units of work; each yields exactly one result.
            batch_size: Concurrency bound (``FANOUT_BATCH_SIZE`` or 5 when None).
            timeout_ms: Per-unit timeout overriding each request's own.
            callbacks: Optional progress hooks.
            cancellation: Token cancelling every unit still in flight or not
                yet dispatched.

        Raises:
            pydantic.ValidationError: For ``batch_size < 1`` or ``timeout_ms <= 0``.
        """
        options = BatchOptions.resolve(batch_size, timeout_ms)
        hooks = callbacks or OrchestratorCallbacks()
        batches = chunk_requests(list(requests), options.batch_size)
        results: List[ModelStreamResult] = []
        for index, batch in enumerate(batches):
            self._trace.emit(
                TraceEvent(
                    name="orchestrator.batch.start",
                    phase="dispatch",
                    fields={"batch": index, "size": len(batch), "batches": len(batches)},
                )
            )
            await asyncio.gather(
                *(self._run_unit(req, options, hooks, cancellation, results, index) for req in batch)
            )
            self._trace.emit(
                TraceEvent(
                    name="orchestrator.batch.end",
                    phase="dispatch",
                    fields={"batch": index, "resolved": len(results)},
                )
            )
        return results

    async def stream_one(
        self,
        request: StreamRequest,
        *,
        timeout_ms: Optional[int] = None,
        callbacks: Optional[OrchestratorCallbacks] = None,
    ) -> ModelStreamResult:
        """Run a single request through the same unit path as ``run_batch``."""
        results = await self.run_batch([request], batch_size=1, timeout_ms=timeout_ms, callbacks=callbacks)
        return results[0]

    # ---- unit path ---------------------------------------------------------
    async def _run_unit(
        self,
        request: StreamRequest,
        options: BatchOptions,
        hooks: OrchestratorCallbacks,
        batch_token: Optional[CancellationToken],
        results: List[ModelStreamResult],
        batch_index: int,
    ) -> None:
        started = time.perf_counter()
        progress = _UnitProgress()
        tokens = [t for t in (request.cancellation, batch_token) if t is not None]
        timeout_s = options.unit_timeout_seconds(request)
        self._emit("orchestrator.unit.start", request, batch=batch_index, timeout_ms=round(timeout_s * 1000))
        if any(t.cancelled for t in tokens):
            progress.failure = self._cancelled(request, tokens, dispatched=False)
        else:
            progress.failure = await self._guarded(request, progress, hooks, tokens, timeout_s, started)

        result = self._resolve(request, progress, started)
        results.append(result)
        self._emit(
            "orchestrator.unit.end",
            request,
            batch=batch_index,
            error_code=result.error_code,
            success=result.success,
            duration_ms=round(result.duration_ms, 3),
            chunk_count=result.chunk_count,
            ttft_ms=result.metrics.time_to_first_token_ms,
        )
        await self._call(hooks, "on_complete", request, result)
        if not result.success:
            await self._call(hooks, "on_error", request, request.model_id, progress.failure)

    def _resolve(self, request: StreamRequest, progress: _UnitProgress, started: float) -> ModelStreamResult:
        """Build the unit's result and record it; a fault here still yields a result."""
        try:
            result = self._build_result(request, progress, started)
        except Exception as exc:
            progress.failure = TransportError(
                code=ErrorCode.INTERNAL,
                message=f"could not build result: {type(exc).__name__}: {exc}",
                provider=request.provider,
                model=request.model_id,
                raw=exc,
            )
            progress.usage = None
            result = self._build_result(request, progress, started)
        try:
            self._metrics.record(result)
        except Exception as exc:
            self._emit(
                "orchestrator.metrics.error",
                request,
                error_code=ErrorCode.INTERNAL.value,
                error=f"{type(exc).__name__}: {exc}",
            )
        return result

    async def _guarded(
        self,
        request: StreamRequest,
        progress: _UnitProgress,
        hooks: OrchestratorCallbacks,
        tokens: Sequence[CancellationToken],
        timeout_s: float,
        started: float,
    ) -> Optional[StreamFailure]:
        """Drive the unit under its timeout scope and return its failure, if any."""
        loop = asyncio.get_running_loop()
        scope: Optional[asyncio.Timeout] = None
        scope_open = False

        def _expire_now() -> None:
            if scope_open and scope is not None and not scope.expired():
                scope.reschedule(loop.time())

        def _on_cancel(_reason: Optional[str]) -> None:
            loop.call_soon_threadsafe(_expire_now)

        try:
            async with asyncio.timeout(timeout_s) as scope:
                scope_open = True
                removers = [t.add_callback(_on_cancel) for t in tokens]
                try:
                    await self._call(hooks, "on_start", request, request.model_id, request.provider)
                    await self._drive(request, progress, hooks, started)
                finally:
                    for remove in removers:
                        remove()
        except TimeoutError as exc:
            if scope is None or not scope.expired():
                return to_stream_failure(exc, provider=request.provider, model=request.model_id)
            if any(t.cancelled for t in tokens):
                return self._cancelled(request, tokens, dispatched=True)
            return StreamTimeoutError(
                code=ErrorCode.TIMEOUT,
                message=f"unit timed out after {timeout_s * 1000:g} ms",
                provider=request.provider,
                model=request.model_id,
            )
        except StreamFailure as exc:
            return exc
        except Exception as exc:
            return to_stream_failure(exc, provider=request.provider, model=request.model_id)
        finally:
            scope_open = False

        if progress.failure is not None:
            return progress.failure
        if not progress.completed:
            return TransportError(
                code=ErrorCode.INTERNAL,
                message="stream ended without a terminal event",
                provider=request.provider,
                model=request.model_id,
            )
        return None

    async def _drive(
        self,
        request: StreamRequest,
        progress: _UnitProgress,
        hooks: OrchestratorCallbacks,
        started: float,
    ) -> None:
        def on_delta(event: TokenDelta) -> None:
            if progress.ttft_ms is None:
                progress.ttft_ms = (time.perf_counter() - started) * 1000.0
            progress.parts.append(event.delta)
            progress.chunk_count += 1

        def on_final(event) -> None:
            progress.usage = event.usage

        def on_error(event) -> None:
            progress.failure = event.cause

        def on_complete(_event) -> None:
            progress.completed = True

        handlers = StreamEventHandlers(
            on_token_delta=on_delta,
            on_final_message=on_final,
            on_error=on_error,
            on_complete=on_complete,
        )
        handle = self._controller.open(request)
        async with aclosing(self._controller.consume(handle)) as events:
            async for event in events:
                dispatch_event(event, handlers)
                if isinstance(event, TokenDelta):
                    await self._call(hooks, "on_chunk", request, request.model_id, event.delta, progress.text)

    # ---- helpers -------------------------------------------------------------
    @staticmethod
    def _build_result(request: StreamRequest, progress: _UnitProgress, started: float) -> ModelStreamResult:
        duration_ms = (time.perf_counter() - started) * 1000.0
        failure = progress.failure
        usage = progress.usage
        if usage is not None and isinstance(usage.output_tokens, int):
            output_tokens = usage.output_tokens
        else:
            output_tokens = progress.chunk_count
        return ModelStreamResult(
            model_id=request.model_id,
            provider=request.provider,
            content=progress.text,
            success=failure is None,
            error=failure.describe() if failure is not None else None,
            error_code=failure.code.value if failure is not None else None,
            duration_ms=duration_ms,
            chunk_count=progress.chunk_count,
            metrics=ModelStreamMetrics(
                time_to_first_token_ms=progress.ttft_ms,
                total_duration_ms=duration_ms,
                output_tokens=output_tokens,
            ),
        )

    @staticmethod
    def _cancelled(
        request: StreamRequest, tokens: Sequence[CancellationToken], *, dispatched: bool
    ) -> StreamCancelledError:
        reason = next((t.reason for t in tokens if t.cancelled and t.reason), None)
        default = "cancelled while streaming" if dispatched else "cancelled before dispatch"
        return StreamCancelledError(
            code=ErrorCode.CANCELLED,
            message=reason or default,
            provider=request.provider,
            model=request.model_id,
        )

    async def _call(self, hooks: OrchestratorCallbacks, name: str, request: StreamRequest, *args) -> None:
        hook = hooks.hook(name)
        if hook is None:
            return
        try:
            outcome = hook(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            self._emit(
                "orchestrator.callback.error",
                request,
                error_code=ErrorCode.INTERNAL.value,
                hook=name,
                error=f"{type(exc).__name__}: {exc}",
            )

    def _emit(self, name: str, request: StreamRequest, *, error_code: Optional[str] = None, **fields) -> None:
        self._trace.emit(
            TraceEvent(
                name=name,
                phase="unit",
                provider=request.provider,
                model=request.model_id,
                error_code=error_code,
                fields={"request_id": request.request_id, **fields},
            )
        )


__all__ = ["MultiModelOrchestrator"]
