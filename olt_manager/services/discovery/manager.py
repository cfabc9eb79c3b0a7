"""
OLT discovery 매니저

OLT 마다 두 개의 독립된 백그라운드 작업을 관리합니다.
- discovery 루프: 드라이버로 ONU 배치를 받아 지문 비교 후 변경분만 저장, 사이클마다 반복
- enrichment 워커: 상세정보가 필요한 ONU 의 detail-info 를 채움

정지는 협조적입니다. stop_discovery() 는 플래그를 세우고, 루프는 사이클/대기가 끝난 뒤
플래그를 확인해 빠져나옵니다. 진행 중인 장비 호출을 강제로 끊지 않습니다.
"""
import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Callable, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

from olt_manager import schemas
from olt_manager.services.olt.exceptions import DiscoveryShuttingDownError, OltNotFoundError
from olt_manager.services.olt.interface import BatchCallback, OltDriver
from .enrichment import EnrichmentWorker
from .fingerprint import compute_fingerprint

logger = logging.getLogger(__name__)

# 지문에 포함되지 않아 값이 없으면 기존 값을 유지하는 필드
_KEEP_IF_MISSING = ("distance", "onu_type")


def _now() -> datetime:
    return datetime.now(ZoneInfo("Asia/Seoul")).replace(tzinfo=None)


@dataclass
class _DiscoveryLoop:
    olt_id: int
    task: Optional[asyncio.Task] = None
    should_stop: bool = False
    # stop_discovery() 가 끝나면 set
    stopped: asyncio.Event = field(default_factory=asyncio.Event)


class DiscoveryManager:
    def __init__(
        self,
        registry,
        onu_repository,
        run_store,
        driver_factory: Callable[[schemas.OltTarget], OltDriver],
        cycle_delay: float = 5.0,
        error_backoff: float = 30.0,
        enrichment_concurrency: int = 3,
        enrichment_max_attempts: int = 3,
        enrichment_idle_interval: float = 1.0,
    ):
        self.registry = registry
        self.onu_repository = onu_repository
        self.run_store = run_store
        self.driver_factory = driver_factory
        self.cycle_delay = cycle_delay
        self.error_backoff = error_backoff
        self.enrichment_concurrency = enrichment_concurrency
        self.enrichment_max_attempts = enrichment_max_attempts
        self.enrichment_idle_interval = enrichment_idle_interval

        self._loops: Dict[int, _DiscoveryLoop] = {}
        self._workers: Dict[int, EnrichmentWorker] = {}
        self._targets: Dict[int, schemas.OltTarget] = {}
        self._shutting_down = False

    def is_running(self, olt_id: int) -> bool:
        state = self._loops.get(olt_id)
        return state is not None and not state.should_stop and (state.task is None or not state.task.done())

    def get_worker(self, olt_id: int) -> Optional[EnrichmentWorker]:
        return self._workers.get(olt_id)

    # ------------------------------------------------------------------
    # 시작 / 정지
    # ------------------------------------------------------------------
    async def start_discovery(self, olt_id: int) -> None:
        """OLT discovery 루프 시작 (이미 실행 중이면 아무것도 하지 않음).

        정지 중인 루프가 있으면 그 stop_discovery() 가 끝날 때까지 기다린 뒤 시작합니다.

        Raises:
            DiscoveryShuttingDownError: shutdown() 이 시작된 뒤 호출된 경우
            OltNotFoundError: 등록되지 않은 OLT
        """
        while True:
            if self._shutting_down:
                raise DiscoveryShuttingDownError("Discovery manager is shutting down")
            if self.is_running(olt_id):
                logger.debug(f"[discovery] OLT {olt_id} already running")
                return
            existing = self._loops.get(olt_id)
            if existing is None or not existing.should_stop:
                break
            # 정지 중인 루프는 stop_discovery() 가 끝난 뒤 새로 시작
            logger.debug(f"[discovery] OLT {olt_id} is stopping, waiting before restart")
            await existing.stopped.wait()

        # 같은 OLT 에 대한 동시 start 를 막기 위해 먼저 등록
        state = _DiscoveryLoop(olt_id)
        self._loops[olt_id] = state
        try:
            olt = await self.registry.get_device(olt_id)
            if olt is None:
                raise OltNotFoundError(f"OLT {olt_id} not found")
            self._targets[olt_id] = olt
            await self.run_store.upsert_run(
                olt_id,
                status="running",
                started_at=_now(),
                completed_at=None,
                error_message=None,
                discovered_count=0,
                updated_count=0,
                skipped_count=0,
            )
        except BaseException:
            self._forget_loop(state)
            raise

        if state.should_stop:
            # 등록 도중 stop_discovery() 가 호출됨
            await self._safe_upsert(olt_id, status="stopped", completed_at=_now())
            return

        self._start_worker(olt_id)
        state.task = asyncio.create_task(self._run_loop(state), name=f"discovery-{olt_id}")
        logger.info(f"[discovery] Started discovery for OLT {olt.name} ({olt_id})")

    async def stop_discovery(self, olt_id: int) -> None:
        """루프와 워커를 정지하고 현재 사이클이 끝날 때까지 기다립니다."""
        state = self._loops.get(olt_id)
        if state is None:
            logger.debug(f"[discovery] OLT {olt_id} is not running")
            await self._stop_worker(olt_id)
            return

        state.should_stop = True
        try:
            await self._stop_worker(olt_id)
            await self.run_store.upsert_run(olt_id, status="stopped", completed_at=_now())
            if state.task is not None:
                await state.task
        finally:
            self._forget_loop(state)
            state.stopped.set()
        logger.info(f"[discovery] Stopped discovery for OLT {olt_id}")

    def _forget_loop(self, state: _DiscoveryLoop) -> None:
        # 그 사이 새로 등록된 루프는 건드리지 않음
        if self._loops.get(state.olt_id) is state:
            del self._loops[state.olt_id]

    def _start_worker(self, olt_id: int) -> EnrichmentWorker:
        worker = self._workers.get(olt_id)
        if worker is None:
            worker = EnrichmentWorker(
                olt_id,
                fetch_detail=partial(self._fetch_detail, olt_id),
                onu_repository=self.onu_repository,
                max_concurrency=self.enrichment_concurrency,
                max_attempts=self.enrichment_max_attempts,
                idle_interval=self.enrichment_idle_interval,
            )
            self._workers[olt_id] = worker
        worker.start()
        return worker

    async def _stop_worker(self, olt_id: int) -> None:
        worker = self._workers.pop(olt_id, None)
        if worker is not None:
            await worker.stop()

    async def _fetch_detail(self, olt_id: int, pon_port: str, onu_id: int) -> schemas.OnuDetail:
        olt = self._targets.get(olt_id) or await self.registry.get_device(olt_id)
        if olt is None:
            raise OltNotFoundError(f"OLT {olt_id} not found")
        return await self.get_deep_detail(olt, pon_port, onu_id)

    # ------------------------------------------------------------------
    # discovery 루프
    # ------------------------------------------------------------------
    async def _run_loop(self, state: _DiscoveryLoop) -> None:
        olt_id = state.olt_id
        while not state.should_stop:
            try:
                olt = await self.registry.get_device(olt_id)
                if olt is None:
                    raise OltNotFoundError(f"OLT {olt_id} not found")
                self._targets[olt_id] = olt

                counters = await self._run_cycle(olt)
                logger.info(
                    f"[discovery] {olt.name}: cycle done, discovered={counters['discovered_count']} "
                    f"updated={counters['updated_count']} skipped={counters['skipped_count']}"
                )
                now = _now()
                fields = dict(counters, completed_at=now, last_run_at=now)
                if not state.should_stop:
                    fields.update(status="running", error_message=None)
                await self.run_store.upsert_run(olt_id, **fields)

                if state.should_stop:
                    break
                await asyncio.sleep(self.cycle_delay)
            except Exception as e:
                logger.error(f"[discovery] Cycle failed for OLT {olt_id}: {e}", exc_info=True)
                await self._record_error(state, e)
                if state.should_stop:
                    break
                await asyncio.sleep(self.error_backoff)
                if not state.should_stop:
                    await self._safe_upsert(olt_id, status="running")

    async def _record_error(self, state: _DiscoveryLoop, error: Exception) -> None:
        fields = {"error_message": str(error) or type(error).__name__, "last_run_at": _now()}
        if not state.should_stop:
            fields["status"] = "error"
        await self._safe_upsert(state.olt_id, **fields)

    async def _safe_upsert(self, olt_id: int, **fields) -> None:
        try:
            await self.run_store.upsert_run(olt_id, **fields)
        except Exception as e:
            logger.error(f"[discovery] Failed to update discovery run for OLT {olt_id}: {e}")

    async def _run_cycle(self, olt: schemas.OltTarget) -> Dict[str, int]:
        driver = self.driver_factory(olt)
        counters = {"discovered_count": 0, "updated_count": 0, "skipped_count": 0}
        async with aclosing(driver.discover()) as batches:
            async for batch in batches:
                await self._persist_batch(olt, batch, counters)
                await self.run_store.upsert_run(olt.id, last_run_at=_now(), **counters)
        return counters

    async def _persist_batch(
        self,
        olt: schemas.OltTarget,
        batch: List[schemas.DiscoveredOnu],
        counters: Dict[str, int],
    ) -> None:
        worker = self._workers.get(olt.id)
        now = _now()
        for onu in batch:
            counters["discovered_count"] += 1
            fingerprint = compute_fingerprint(onu)
            existing = await self.onu_repository.find_by_serial(onu.pon_serial)
            if existing is not None and existing.data_hash == fingerprint:
                counters["skipped_count"] += 1
                continue

            record = onu.model_dump()
            for key in _KEEP_IF_MISSING:
                if record.get(key) is None:
                    record.pop(key, None)
            record["olt_id"] = olt.id
            record["data_hash"] = fingerprint
            if onu.status == "online":
                record["last_online"] = now

            if existing is None:
                await self.onu_repository.insert(record)
                needs_detail = onu.onu_id is not None
            else:
                await self.onu_repository.update(onu.pon_serial, record)
                needs_detail = onu.onu_id is not None and existing.details_updated_at is None
            counters["updated_count"] += 1

            if needs_detail and worker is not None:
                worker.enqueue(onu.pon_serial, onu.pon_port, onu.onu_id)

    # ------------------------------------------------------------------
    # 조회 / 단발성 작업
    # ------------------------------------------------------------------
    async def get_status(
        self, olt_id: Optional[int] = None
    ) -> Union[Optional[schemas.DiscoveryRun], List[schemas.DiscoveryRun]]:
        if olt_id is None:
            return await self.run_store.list_runs()
        return await self.run_store.get_run(olt_id)

    async def discover_once(
        self, olt: schemas.OltTarget, on_batch: Optional[BatchCallback] = None
    ) -> List[schemas.DiscoveredOnu]:
        """백그라운드 루프와 별개로 한 번 수집 (저장하지 않음)"""
        return await self.driver_factory(olt).discover_once(on_batch)

    async def get_deep_detail(self, olt: schemas.OltTarget, pon_port: str, onu_id: int) -> schemas.OnuDetail:
        return await self.driver_factory(olt).get_onu_detail(pon_port, onu_id)

    # ------------------------------------------------------------------
    # 프로세스 시작 / 종료
    # ------------------------------------------------------------------
    async def initialize_all_active_devices(self) -> None:
        """활성 OLT 전체의 discovery 를 시작하고, 상세정보가 없는 기존 ONU 를 워커에 넣습니다."""
        olts = await self.registry.list_devices()
        logger.info(f"[discovery] Initializing {len(olts)} active OLTs")
        for olt in olts:
            try:
                await self.start_discovery(olt.id)
            except Exception as e:
                logger.error(f"[discovery] Could not start discovery for OLT {olt.name}: {e}", exc_info=True)
                continue

            worker = self._workers.get(olt.id)
            if worker is None:
                continue
            pending = await self.onu_repository.list_by_device(olt.id, needs_detail=True)
            queued = sum(1 for onu in pending if worker.enqueue(onu.pon_serial, onu.pon_port, onu.onu_id))
            if queued:
                logger.info(f"[discovery] {olt.name}: queued {queued} ONUs for detail enrichment")

    async def shutdown(self) -> None:
        """워커를 먼저 모두 정지한 뒤 모든 discovery 루프를 정지합니다."""
        self._shutting_down = True
        await asyncio.gather(*(self._stop_worker(olt_id) for olt_id in list(self._workers)))
        await asyncio.gather(*(self.stop_discovery(olt_id) for olt_id in list(self._loops)))
        logger.info("[discovery] Shutdown complete")
