import asyncio

import pytest

from olt_manager.services.olt import telnet_session
from olt_manager.services.olt.exceptions import OltAuthenticationError, OltConnectionError
from olt_manager.services.olt.telnet_session import TelnetParams, TelnetSession

from conftest import FakeTelnetStream


def open_session(replies):
    stream = FakeTelnetStream(replies)
    return TelnetSession(reader=stream, writer=stream), stream


async def test_reply_is_text_between_echo_and_closing_prompt():
    session, _ = open_session({"show version": "show version\r\nLINE1\r\nLINE2\r\nDEV#"})

    assert await session.execute("show version", timeout=1) == "LINE1\nLINE2"


async def test_reply_split_across_reads():
    session, _ = open_session({
        "show card": ["OLT#show card\r\nSlot 1", "  GTGO  INSERVICE\r\nSlot 2  ", "SMXA  INSERVICE\r\n", "OLT(config)#"],
    })

    output = await session.execute("show card", timeout=1)

    assert output == "Slot 1  GTGO  INSERVICE\nSlot 2  SMXA  INSERVICE"


async def test_commands_run_in_submission_order():
    session, stream = open_session({
        "first": "first\r\none\r\nOLT#",
        "second": "second\r\ntwo\r\nOLT#",
        "third": "third\r\nthree\r\nOLT#",
    })

    results = await asyncio.gather(
        session.execute("first", timeout=1),
        session.execute("second", timeout=1),
        session.execute("third", timeout=1),
    )

    assert results == ["one", "two", "three"]
    assert stream.written == ["first\n", "second\n", "third\n"]


async def test_timeout_returns_partial_output():
    session, _ = open_session({"show gpon onu state": "show gpon onu state\r\n1/1/1:1  enable  enable  working\r\n"})

    output = await session.execute("show gpon onu state", timeout=0.05)

    assert output == "1/1/1:1  enable  enable  working"


async def test_timeout_without_any_reply_returns_empty_string():
    session, _ = open_session({})

    assert await session.execute("show nothing", timeout=0.05) == ""


async def test_eof_marks_session_disconnected():
    session, _ = open_session({"quit": ["quit\r\nbye\r\n", ""]})

    output = await session.execute("quit", timeout=1)

    assert output == "bye"
    assert session.connected is False
    with pytest.raises(OltConnectionError):
        await session.execute("show version")


async def test_close_is_idempotent():
    session, stream = open_session({})

    await session.close()
    await session.close()

    assert stream.closed is True
    assert session.connected is False
    with pytest.raises(OltConnectionError):
        await session.execute("show version")


async def test_context_manager_closes_session():
    stream = FakeTelnetStream({"show clock": "show clock\r\n10:00:00\r\nOLT#"})

    async with TelnetSession(reader=stream, writer=stream) as session:
        assert await session.execute("show clock", timeout=1) == "10:00:00"

    assert stream.closed is True


def login_stream(password_reply: str) -> FakeTelnetStream:
    return FakeTelnetStream(
        replies={
            "admin": "admin\r\nPassword: ",
            "secret": password_reply,
        },
        greeting=["\r\nWelcome to OLT\r\nUsername: "],
    )


async def test_connect_logs_in(monkeypatch):
    stream = login_stream("\r\nOLT#")
    opened = {}

    async def fake_open_connection(host, port, **kwargs):
        opened.update(host=host, port=port)
        return stream, stream

    monkeypatch.setattr(telnet_session.telnetlib3, "open_connection", fake_open_connection)

    session = TelnetSession()
    await session.connect(TelnetParams(host="192.0.2.10", port=2323, username="admin", password="secret"))

    assert session.connected is True
    assert opened == {"host": "192.0.2.10", "port": 2323}
    assert stream.written == ["admin\n", "secret\n"]


async def test_connect_rejected_credentials(monkeypatch):
    stream = login_stream("\r\n% Authentication failed\r\nUsername: ")

    async def fake_open_connection(host, port, **kwargs):
        return stream, stream

    monkeypatch.setattr(telnet_session.telnetlib3, "open_connection", fake_open_connection)

    session = TelnetSession()
    with pytest.raises(OltAuthenticationError):
        await session.connect(TelnetParams(host="192.0.2.10", username="admin", password="secret", connect_timeout=1))

    assert session.connected is False
    assert stream.closed is True


async def test_connect_refused(monkeypatch):
    async def fake_open_connection(host, port, **kwargs):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(telnet_session.telnetlib3, "open_connection", fake_open_connection)

    with pytest.raises(OltConnectionError) as exc_info:
        await TelnetSession().connect(TelnetParams(host="192.0.2.10"))

    assert not isinstance(exc_info.value, OltAuthenticationError)


async def test_late_reply_after_timeout_does_not_shift_next_reply():
    session, stream = open_session({
        "slow": "slow\r\n",
        "next": "next\r\nNEXT-OUT\r\nOLT#",
        "after": "after\r\nAFTER-OUT\r\nOLT#",
    })

    assert await session.execute("slow", timeout=0.05) == ""

    # slow 의 나머지 출력과 프롬프트가 다음 명령 전에 늦게 도착
    stream._chunks.put_nowait("SLOW-OUT\r\nOLT#")

    assert await session.execute("next", timeout=1) == "NEXT-OUT"
    assert await session.execute("after", timeout=1) == "AFTER-OUT"


async def test_unechoed_input_uses_first_line_as_boundary():
    session, _ = open_session({"en-secret": "\r\nOLT#"})

    assert await session.execute("en-secret", timeout=1, echo=False) == ""
