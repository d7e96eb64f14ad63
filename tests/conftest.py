"""Shared test fixtures."""

import pytest

from fakes import FakeTransport
from lyrion_mpris.config import ConnectionConfig


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def connection() -> ConnectionConfig:
    return ConnectionConfig(host="lms.local", port=9000, player_id="aa:bb:cc:dd:ee:ff")
