#!/usr/bin/env python3
"""FS20 RF - Test the gateway, with an in-memory transport."""

import asyncio

import pytest

from fs20_rf import Gateway
from fs20_rf.dispatcher import process_frame
from fs20_rf.events import StateEvent
from fs20_tx import (
    FS20Command,
    IncreaseDecreaseType,
    OnOffType,
    StopMoveType,
    UpDownType,
    to_wire_value,
)
from fs20_tx import exceptions as exc

from ..tests.helpers import LAMP_1, LAMP_1_ADDR, RecordingPublisher
from .conftest import BINDINGS, MOCKED_PORT
from .mock_transport import CUL_VERSION, MockTransportFactory

# ### TESTS ############################################################################


async def test_gateway_start_stop(
    mock_factory: MockTransportFactory, publisher: RecordingPublisher
) -> None:
    gwy = Gateway(MOCKED_PORT, bindings=BINDINGS, publisher=publisher)
    assert not gwy.is_active

    await gwy.start()
    assert gwy.is_active
    assert str(gwy) == f"{CUL_VERSION} ({MOCKED_PORT})"
    assert gwy._frame_handler in gwy._protocol._frame_handlers

    transport = mock_factory.transport
    await gwy.stop()

    assert not gwy.is_active
    assert transport.is_closing()
    assert gwy._protocol._frame_handlers == []  # unsubscribed

    transport.inject("F12340111")  # no longer subscribed
    assert publisher.calls == []


async def test_gateway_context_manager(
    mock_factory: MockTransportFactory, publisher: RecordingPublisher
) -> None:
    async with Gateway(MOCKED_PORT, bindings=BINDINGS, publisher=publisher) as gwy:
        assert gwy.is_active
        mock_factory.transport.inject("F12340111")

    assert not gwy.is_active
    assert mock_factory.transport.is_closing()
    assert publisher.calls == [("state", LAMP_1, OnOffType.ON)]


async def test_inbound_on(
    gwy: Gateway, mock_factory: MockTransportFactory, publisher: RecordingPublisher
) -> None:
    mock_factory.transport.inject("F1234" + "01" + "11")

    assert publisher.calls == [("state", LAMP_1, OnOffType.ON)]


async def test_inbound_unknowns(
    gwy: Gateway, mock_factory: MockTransportFactory, publisher: RecordingPublisher
) -> None:
    for frame in ("F12340211", "F123401FF", "F12340117", "T12340111", "F123"):
        mock_factory.transport.inject(frame)  # no exception escapes

    assert publisher.calls == []


async def test_inbound_handlers_in_order(
    mock_factory: MockTransportFactory, publisher: RecordingPublisher
) -> None:
    frames: list[tuple[str, int]] = []

    def handler(frame: str) -> None:  # added before the gateway's own handler
        frames.append((frame, len(publisher.calls)))

    def broken_handler(frame: str) -> None:
        raise RuntimeError("This handler is broken")

    gwy = Gateway(MOCKED_PORT, bindings=BINDINGS, publisher=publisher)
    gwy.add_msg_handler(handler)
    gwy.add_msg_handler(broken_handler)
    await gwy.start()

    try:
        mock_factory.transport.inject("F12340111")
        mock_factory.transport.inject("F12340100")
    finally:
        await gwy.stop()

    assert frames == [("F12340111", 0), ("F12340100", 1)]
    assert publisher.calls == [
        ("state", LAMP_1, OnOffType.ON),
        ("state", LAMP_1, OnOffType.OFF),
    ]
    assert gwy._this_frame == "F12340100" and gwy._prev_frame == "F12340111"


async def test_inbound_dim_mode(
    mock_factory: MockTransportFactory, publisher: RecordingPublisher
) -> None:
    gwy = Gateway(
        MOCKED_PORT,
        config={"dimmode": "INC_DEC"},
        bindings=BINDINGS,
        publisher=publisher,
    )
    await gwy.start()

    try:
        mock_factory.transport.inject("F12340113")
        gwy.updated({"device": MOCKED_PORT, "dimmode": "UP_DOWN"})
        mock_factory.transport.inject("F12340113")
    finally:
        await gwy.stop()

    assert publisher.calls == [
        ("command", LAMP_1, IncreaseDecreaseType.INCREASE),
        ("command", LAMP_1, UpDownType.UP),
    ]


async def test_outbound_up(gwy: Gateway, mock_factory: MockTransportFactory) -> None:
    frame = await gwy.async_send_command(LAMP_1, UpDownType.UP)

    expected = "F" + LAMP_1_ADDR + to_wire_value(FS20Command.DIM_UP)
    assert frame == expected
    assert mock_factory.transport.tx_log == [expected]


async def test_outbound_frame(gwy: Gateway, mock_factory: MockTransportFactory) -> None:
    cmd = await gwy.async_send_frame("f12340112")  # a raw frame, e.g. from a frame log

    assert str(cmd) == "F12340112"
    assert mock_factory.transport.tx_log == ["F12340112"]

    with pytest.raises(exc.CommandInvalid):
        await gwy.async_send_frame("F123401FF")  # not a command code
    assert mock_factory.transport.tx_log == ["F12340112"]


async def test_outbound_dropped(
    gwy: Gateway, mock_factory: MockTransportFactory
) -> None:
    assert await gwy.async_send_command("Lamp2", OnOffType.ON) is None
    assert await gwy.async_send_command(LAMP_1, StopMoveType.STOP) is None

    assert mock_factory.transport.tx_log == []


async def test_outbound_fails(gwy: Gateway, mock_factory: MockTransportFactory) -> None:
    mock_factory.transport.write_error = exc.TransportSerialError("Failed to write")

    with pytest.warns(RuntimeWarning, match="Failed to send"):
        assert await gwy.async_send_command(LAMP_1, OnOffType.ON) is None

    # there are no retries, but the next command is sent
    assert await gwy.async_send_command(LAMP_1, OnOffType.OFF) == "F12340100"
    assert mock_factory.transport.tx_log == ["F12340100"]


async def test_outbound_sending_disabled(
    mock_factory: MockTransportFactory, publisher: RecordingPublisher
) -> None:
    gwy = Gateway(
        MOCKED_PORT,
        config={"disable_sending": True},
        bindings=BINDINGS,
        publisher=publisher,
    )
    await gwy.start()

    try:
        with pytest.warns(RuntimeWarning):
            assert await gwy.async_send_command(LAMP_1, OnOffType.ON) is None

        mock_factory.transport.inject("F12340111")  # can still receive
    finally:
        await gwy.stop()

    assert mock_factory.transport.tx_log == []
    assert publisher.calls == [("state", LAMP_1, OnOffType.ON)]


async def test_send_command_from_thread(
    gwy: Gateway, mock_factory: MockTransportFactory
) -> None:
    def send_from_thread() -> str | None:
        return gwy.send_command(LAMP_1, 50).result(timeout=1)

    assert await asyncio.to_thread(send_from_thread) == "F12340108"
    assert mock_factory.transport.tx_log == ["F12340108"]


async def test_open_fails(
    mock_factory: MockTransportFactory, publisher: RecordingPublisher
) -> None:
    mock_factory.open_error = exc.TransportSourceInvalid("Unable to open")

    gwy = Gateway(MOCKED_PORT, bindings=BINDINGS, publisher=publisher)
    await gwy.start()  # the error is logged, not raised

    assert not gwy.is_active
    assert gwy._protocol._frame_handlers == []

    mock_factory.open_error = None
    await gwy.async_updated({"device": MOCKED_PORT})  # reconfigured, so re-opened

    try:
        assert gwy.is_active
    finally:
        await gwy.stop()


async def test_async_updated(gwy: Gateway, mock_factory: MockTransportFactory) -> None:
    transport = mock_factory.transport

    await gwy.async_updated({"device": MOCKED_PORT, "dimmode": "INC_DEC"})
    assert mock_factory.transport is transport  # not re-opened

    await gwy.async_updated({"device": MOCKED_PORT, "baudrate": 38400})
    assert mock_factory.transport is not transport  # re-opened
    assert transport.is_closing()
    assert gwy.is_active

    assert gwy._protocol._frame_handlers == [gwy._frame_handler]  # not duplicated


async def test_async_updated_retains_port_config(
    mock_factory: MockTransportFactory,
) -> None:
    gwy = Gateway(MOCKED_PORT, config={"baudrate": 38400, "parity": "EVEN"})
    await gwy.start()
    transport = mock_factory.transport

    try:
        assert gwy.updated({"device": MOCKED_PORT, "dimmode": "INC_DEC"}) is False
        assert gwy.config.baudrate == 38400
        assert gwy.config.parity == "E"
        assert gwy._port_config == {"baudrate": 38400, "parity": "E", "timeout": 0}

        await gwy.async_updated({"device": MOCKED_PORT, "refresh": 500})
        assert mock_factory.transport is transport  # not re-opened

        await gwy.async_updated({"device": "/dev/ttyMOCK2"})  # re-opened
        assert mock_factory.transport is not transport
        assert mock_factory.port_configs[-1]["baudrate"] == 38400
        assert mock_factory.port_configs[-1]["parity"] == "E"
    finally:
        await gwy.stop()


async def test_refresh_tick(mock_factory: MockTransportFactory) -> None:
    ticks: list[None] = []

    gwy = Gateway(MOCKED_PORT, config={"refresh": 10})
    gwy.execute = lambda: ticks.append(None)  # type: ignore[method-assign]

    await gwy.start()
    await asyncio.sleep(0.1)
    await gwy.stop()

    assert len(ticks) >= 2
    assert gwy._refresh_task is None

    count = len(ticks)
    await asyncio.sleep(0.05)
    assert len(ticks) == count  # the tick has been cancelled


async def test_event_returned(gwy: Gateway, publisher: RecordingPublisher) -> None:
    assert process_frame(gwy, "F12340108") == StateEvent(50)
    assert publisher.calls == [("state", LAMP_1, 50)]
