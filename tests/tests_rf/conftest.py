#!/usr/bin/env python3
"""Fixtures for testing."""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from fs20_rf import Gateway

from ..tests.helpers import LAMP_1, LAMP_1_ADDR, RecordingPublisher
from .mock_transport import MockTransportFactory
from .virtual_cul import VirtualCul

TEST_DIR = Path(__file__).resolve().parent  # TEST_DIR = f"{os.path.dirname(__file__)}"

MOCKED_PORT = "/dev/ttyMOCK"

BINDINGS = {LAMP_1: {"address": LAMP_1_ADDR}}


#######################################################################################


@pytest.fixture(autouse=True)
def patches_for_tests(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("fs20_tx.transport.MIN_INTER_WRITE_GAP", 0)
    monkeypatch.setattr("fs20_tx.transport.DEFAULT_VERSION_TIMEOUT", 0.2)
    monkeypatch.setattr("fs20_tx.transport._DEFAULT_TIMEOUT_PORT", 1)


@pytest.fixture()
def mock_factory(monkeypatch: pytest.MonkeyPatch) -> MockTransportFactory:
    """Replace the transport factory used by the engine with an in-memory one."""

    factory = MockTransportFactory()
    monkeypatch.setattr("fs20_tx.gateway.transport_factory", factory)
    return factory


@pytest.fixture()
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture()
async def gwy(
    mock_factory: MockTransportFactory, publisher: RecordingPublisher
) -> AsyncGenerator[Gateway, None]:
    """Return a started gateway, with an in-memory transport, and one binding."""

    gwy = Gateway(MOCKED_PORT, bindings=BINDINGS, publisher=publisher)
    await gwy.start()

    try:
        yield gwy
    finally:
        await gwy.stop()


@pytest.fixture()
async def cul() -> AsyncGenerator[VirtualCul, None]:
    """Utilize a virtual CUL (on a pty)."""

    if os.name != "posix":
        pytest.skip("This test fixture requires a pty")

    cul = VirtualCul()
    cul.start()

    try:
        yield cul
    finally:
        cul.stop()
