"""Tests for crux_fanout.base.dto.

Covers happy paths and key edge cases for message validation, sampling
bounds, provider normalization and batch options.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from crux_fanout.base.cancellation import CancellationToken
from crux_fanout.base.dto import BatchOptions, MessageDTO, SamplingDTO, StreamRequestDTO
from crux_fanout.base.models import Message, StreamRequest


def test_stream_request_happy_path_converts():
    token = CancellationToken()
    dto = StreamRequestDTO(
        model_id="gpt-4o-mini",
        provider=" OpenAI ",
        messages=[
            MessageDTO(role="system", content="You are helpful."),
            MessageDTO(role="user", content="Hello"),
        ],
        sampling=SamplingDTO(temperature=0.7, max_tokens=64),
        timeout_ms=1200,
    )
    req = dto.to_request(cancellation=token)
    assert isinstance(req, StreamRequest)  # nosec B101
    assert req.provider == "openai"  # nosec B101
    assert req.messages == (Message("system", "You are helpful."), Message("user", "Hello"))  # nosec B101
    assert req.sampling.temperature == 0.7 and req.sampling.top_p is None  # nosec B101
    assert req.timeout_ms == 1200 and req.cancellation is token  # nosec B101


def test_message_rejects_blank_content_and_unknown_role():
    with pytest.raises(ValidationError):
        MessageDTO(role="user", content="   ")
    with pytest.raises(ValidationError):
        MessageDTO(role="narrator", content="hi")


def test_first_message_must_be_system_or_user():
    with pytest.raises(ValidationError):
        StreamRequestDTO(model_id="m", provider="openai", messages=[MessageDTO(role="assistant", content="x")])


def test_request_requires_messages_and_ids():
    with pytest.raises(ValidationError):
        StreamRequestDTO(model_id="m", provider="openai", messages=[])
    with pytest.raises(ValidationError):
        StreamRequestDTO(model_id="", provider="openai", messages=[MessageDTO(role="user", content="x")])


@pytest.mark.parametrize(
    "kwargs",
    [{"temperature": 2.5}, {"temperature": -0.1}, {"top_p": 1.5}, {"max_tokens": 0}],
)
def test_sampling_bounds(kwargs):
    with pytest.raises(ValidationError):
        SamplingDTO(**kwargs)


def test_timeout_must_be_positive():
    with pytest.raises(ValidationError):
        StreamRequestDTO(model_id="m", provider="p", messages=[MessageDTO(role="user", content="x")], timeout_ms=0)


def test_batch_options_defaults_and_overrides(monkeypatch):
    opts = BatchOptions.resolve()
    assert opts.batch_size == 5 and opts.timeout_ms is None  # nosec B101
    monkeypatch.setenv("FANOUT_BATCH_SIZE", "3")
    assert BatchOptions.resolve().batch_size == 3  # nosec B101
    monkeypatch.setenv("FANOUT_BATCH_SIZE", "zero")
    assert BatchOptions.resolve().batch_size == 5  # nosec B101
    assert BatchOptions.resolve(batch_size=9).batch_size == 9  # nosec B101


def test_batch_options_unit_timeout():
    req = StreamRequest.from_prompt("m", "p", "x", timeout_ms=800)
    assert BatchOptions.resolve().unit_timeout_seconds(req) == 0.8  # nosec B101
    assert BatchOptions.resolve(timeout_ms=250).unit_timeout_seconds(req) == 0.25  # nosec B101
    with pytest.raises(ValidationError):
        BatchOptions.resolve(batch_size=0)
