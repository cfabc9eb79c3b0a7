# tests/conftest.py
import asyncio
import os
import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from cryptography.fernet import Fernet

# settings 는 임포트 시점에 환경변수를 읽으므로 olt_manager 임포트 전에 지정
_TMP_DIR = Path(tempfile.mkdtemp(prefix="olt-manager-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{(_TMP_DIR / 'test.db').as_posix()}"
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ["DISCOVERY_AUTOSTART"] = "false"

import pytest

from olt_manager import schemas
from olt_manager.services.olt.exceptions import OltConnectionError, SnmpRequestError


def make_target(**overrides) -> schemas.OltTarget:
    data = dict(
        id=1,
        name="olt-test",
        vendor="zte",
        ip_address="192.0.2.10",
        telnet_enabled=True,
        telnet_username="admin",
        telnet_password="secret",
        snmp_enabled=False,
        snmp_community="public",
    )
    data.update(overrides)
    return schemas.OltTarget(**data)


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)


class FakeTelnetStream:
    """telnetlib3 reader/writer 대역. 쓰여진 명령마다 정해둔 응답 청크를 읽기 큐에 넣습니다."""

    def __init__(self, replies: Optional[Dict[str, Any]] = None, greeting: Optional[List[str]] = None):
        self.replies = replies or {}
        self.written: List[str] = []
        self.closed = False
        self._chunks: asyncio.Queue = asyncio.Queue()
        for chunk in greeting or []:
            self._chunks.put_nowait(chunk)

    async def read(self, n: int) -> str:
        return await self._chunks.get()

    def write(self, data: str) -> None:
        self.written.append(data)
        reply = self.replies.get(data.rstrip("\r\n"))
        if reply is None:
            return
        for chunk in [reply] if isinstance(reply, str) else reply:
            self._chunks.put_nowait(chunk)

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """TelnetSession 대역 (드라이버 테스트용)

    responses: 명령 -> 응답 문자열 또는 발생시킬 예외. 없는 명령은 빈 문자열.
    """

    def __init__(self, responses: Optional[Dict[str, Any]] = None, connect_error: Optional[Exception] = None):
        self.responses = responses or {}
        self.connect_error = connect_error
        self.commands: List[str] = []
        self.connected = False
        self.closed = False
        self.params = None

    async def connect(self, params) -> None:
        self.params = params
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def execute(self, command: str, timeout: float = 6.0, echo: bool = True) -> str:
        if not self.connected:
            raise OltConnectionError("Telnet session not connected")
        self.commands.append(command)
        await asyncio.sleep(0)
        reply = self.responses.get(command, "")
        if isinstance(reply, Exception):
            if isinstance(reply, OltConnectionError):
                self.connected = False
            raise reply
        return reply

    async def close(self) -> None:
        self.connected = False
        self.closed = True


class SessionRecorder:
    """session_factory 로 넘겨 만들어진 FakeSession 들을 기록"""

    def __init__(self, responses: Optional[Dict[str, Any]] = None, connect_errors: Optional[List] = None):
        self.responses = responses or {}
        self.connect_errors = list(connect_errors or [])
        self.sessions: List[FakeSession] = []

    def __call__(self) -> FakeSession:
        error = self.connect_errors.pop(0) if self.connect_errors else None
        session = FakeSession(self.responses, connect_error=error)
        self.sessions.append(session)
        return session

    @property
    def all_commands(self) -> List[str]:
        return [cmd for session in self.sessions for cmd in session.commands]


class FakeSnmpClient:
    """OID -> 값 테이블로 응답하는 SnmpClient 대역. 값이 예외면 그대로 발생시킵니다."""

    def __init__(self, values: Optional[Dict[str, Any]] = None, walks: Optional[Dict[str, Any]] = None):
        self.values = values or {}
        self.walks = walks or {}
        self.calls: List[tuple] = []

    async def get(self, device, oid: str):
        self.calls.append(("get", oid))
        value = self.values.get(oid)
        if isinstance(value, Exception):
            raise value
        return value

    async def walk(self, device, oid_prefix: str):
        self.calls.append(("walk", oid_prefix))
        rows = self.walks.get(oid_prefix, [])
        if isinstance(rows, Exception):
            raise rows
        return list(rows)


def snmp_timeout() -> SnmpRequestError:
    return SnmpRequestError("SNMP request timed out", "requestTimedOut")


# ---------------------------------------------------------------------------
# discovery 매니저용 인메모리 저장소
# ---------------------------------------------------------------------------

class InMemoryRegistry:
    def __init__(self, *olts: schemas.OltTarget):
        self.olts = {olt.id: olt for olt in olts}

    async def get_device(self, olt_id: int):
        return self.olts.get(olt_id)

    async def list_devices(self, active_only: bool = True):
        return [olt for olt in self.olts.values() if olt.is_active or not active_only]


class InMemoryOnuRepository:
    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.inserts = 0
        self.updates = 0

    async def find_by_serial(self, pon_serial: str):
        row = self.rows.get(pon_serial)
        return SimpleNamespace(**row) if row else None

    async def insert(self, record: Dict[str, Any]):
        self.inserts += 1
        row = {"name": None, "details_updated_at": None, **record}
        self.rows[record["pon_serial"]] = row
        return SimpleNamespace(**row)

    async def update(self, pon_serial: str, fields: Dict[str, Any]):
        self.updates += 1
        row = self.rows.get(pon_serial)
        if row is None:
            return None
        row.update(fields)
        return SimpleNamespace(**row)

    async def list_by_device(self, olt_id: int, needs_detail: bool = False):
        rows = [r for r in self.rows.values() if r["olt_id"] == olt_id]
        if needs_detail:
            rows = [r for r in rows if r.get("details_updated_at") is None and r.get("onu_id") is not None]
        return [SimpleNamespace(**r) for r in rows]

    @property
    def writes(self) -> int:
        return self.inserts + self.updates


class InMemoryRunStore:
    def __init__(self):
        self.runs: Dict[int, Dict[str, Any]] = {}
        self.history: List[tuple] = []

    async def upsert_run(self, olt_id: int, **fields):
        self.history.append((olt_id, dict(fields)))
        run = self.runs.setdefault(olt_id, {"olt_id": olt_id, "status": "running"})
        run.update(fields)
        return schemas.DiscoveryRun(**run)

    async def get_run(self, olt_id: int):
        run = self.runs.get(olt_id)
        return schemas.DiscoveryRun(**run) if run else None

    async def list_runs(self):
        return [schemas.DiscoveryRun(**run) for run in self.runs.values()]

    def statuses(self, olt_id: int) -> List[str]:
        return [fields["status"] for oid, fields in self.history if oid == olt_id and "status" in fields]


@pytest.fixture
def olt():
    return make_target()
