"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import itertools
from typing import Any

import pytest

from marksync.domain.models.record import Record
from marksync.domain.services.identity import IdentityResolver

_clock = itertools.count(1_700_000_000_000, 1000)


@pytest.fixture
def identity() -> IdentityResolver:
    return IdentityResolver("bm_")


@pytest.fixture
def make_record(identity: IdentityResolver):
    """Factory building records with derived ids and increasing timestamps."""

    def _make(url: str, title: str = "Example", **fields: Any) -> Record:
        ts = next(_clock)
        fields.setdefault("created_at", ts)
        fields.setdefault("modified_at", ts)
        return identity.new_record(url, title, **fields)

    return _make
