"""Tests for cooperative cancellation."""

from __future__ import annotations

import pytest

from codefix.cancellation import NONE, CancellationToken, OperationCancelledError


def test_token_starts_uncancelled() -> None:
    token = CancellationToken()
    assert not token.is_cancelled
    token.raise_if_cancelled()


def test_cancel() -> None:
    token = CancellationToken()
    token.cancel()
    assert token.is_cancelled
    with pytest.raises(OperationCancelledError):
        token.raise_if_cancelled()


def test_none_token_cannot_be_cancelled() -> None:
    with pytest.raises(RuntimeError):
        NONE.cancel()
    assert not NONE.is_cancelled
