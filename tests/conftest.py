"""Shared fixtures."""

from __future__ import annotations

import pytest

from .fakes import FakeTransport, init_responses


@pytest.fixture
def make_transport():
    """Factory for a FakeTransport pre-loaded with initializer answers."""

    def _make(name: str = "IQOS ILUMA i 1A2B", two_piece: bool = True, **kwargs) -> FakeTransport:
        kwargs.setdefault("responses", init_responses(two_piece=two_piece))
        return FakeTransport(name=name, **kwargs)

    return _make
