"""
ONU 상세정보 수집 워커

OLT 하나당 하나씩 돌며, 상세정보(name 등)가 없는 ONU 의 detail-info 를 조회해
저장소에 채워 넣습니다. 동시에 max_concurrency 개까지 조회하고, 실패한 작업은
max_attempts 회까지 재시도 후 버립니다. 같은 pon_serial 은 큐에 한 번만 들어갑니다.
"""
import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Deque, Dict, Optional
from zoneinfo import ZoneInfo

from olt_manager.schemas.onu import OnuDetail

logger = logging.getLogger(__name__)

FetchDetail = Callable[[str, int], Awaitable[OnuDetail]]


def _now() -> datetime:
    return datetime.now(ZoneInfo("Asia/Seoul")).replace(tzinfo=None)


@dataclass
class EnrichmentJob:
    pon_serial: str
    pon_port: str
    onu_id: Optional[int]
    attempts: int = 0
    enqueued_at: datetime = field(default_factory=_now)


class EnrichmentWorker:
    def __init__(
        self,
        olt_id: int,
        fetch_detail: FetchDetail,
        onu_repository,
        max_concurrency: int = 3,
        max_attempts: int = 3,
        idle_interval: float = 1.0,
    ):
        self.olt_id = olt_id
        self._fetch_detail = fetch_detail
        self._repository = onu_repository
        self.max_concurrency = max(1, max_concurrency)
        self.max_attempts = max(1, max_attempts)
        self.idle_interval = idle_interval

        # 대기/처리 중인 작업 모두 _jobs 에 남아 있음 (중복 방지 키)
        self._jobs: Dict[str, EnrichmentJob] = {}
        self._queue: Deque[str] = deque()
        self._task: Optional[asyncio.Task] = None
        self._stopping = False

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def enqueue(self, pon_serial: str, pon_port: str, onu_id: Optional[int]) -> bool:
        """작업 추가. 같은 serial 이 이미 대기/처리 중이면 False."""
        if pon_serial in self._jobs:
            return False
        self._jobs[pon_serial] = EnrichmentJob(pon_serial=pon_serial, pon_port=pon_port, onu_id=onu_id)
        self._queue.append(pon_serial)
        return True

    async def process_next_batch(self) -> int:
        """큐에서 최대 max_concurrency 개를 꺼내 병렬 처리하고 처리한 개수를 반환합니다."""
        batch = []
        while self._queue and len(batch) < self.max_concurrency:
            batch.append(self._jobs[self._queue.popleft()])
        if batch:
            await asyncio.gather(*(self._process(job) for job in batch))
        return len(batch)

    async def _process(self, job: EnrichmentJob) -> None:
        if job.onu_id is None:
            # detail-info 는 onu_id 가 있어야 조회 가능
            logger.debug(f"[enrichment] OLT {self.olt_id}: {job.pon_serial} has no onu_id yet, skipping")
            self._jobs.pop(job.pon_serial, None)
            return

        try:
            detail = await self._fetch_detail(job.pon_port, job.onu_id)
            fields = {k: v for k, v in detail.model_dump().items() if v is not None}
            fields["details_updated_at"] = _now()
            await self._repository.update(job.pon_serial, fields)
        except Exception as e:
            job.attempts += 1
            if job.attempts < self.max_attempts:
                logger.warning(
                    f"[enrichment] OLT {self.olt_id}: detail for {job.pon_serial} failed "
                    f"(attempt {job.attempts}/{self.max_attempts}): {e}"
                )
                self._queue.append(job.pon_serial)
            else:
                logger.error(
                    f"[enrichment] OLT {self.olt_id}: giving up on {job.pon_serial} after {job.attempts} attempts: {e}"
                )
                self._jobs.pop(job.pon_serial, None)
            return

        self._jobs.pop(job.pon_serial, None)
        logger.debug(f"[enrichment] OLT {self.olt_id}: enriched {job.pon_serial} ({len(fields)} fields)")

    def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._task = asyncio.create_task(self._run(), name=f"enrichment-{self.olt_id}")
        logger.info(f"[enrichment] Worker started for OLT {self.olt_id}")

    async def _run(self) -> None:
        while not self._stopping:
            processed = await self.process_next_batch()
            if not processed:
                await asyncio.sleep(self.idle_interval)

    async def stop(self) -> None:
        """처리 중인 배치가 끝날 때까지 기다린 뒤 종료합니다."""
        self._stopping = True
        if self._task is not None:
            await self._task
            self._task = None
        logger.info(f"[enrichment] Worker stopped for OLT {self.olt_id} ({self.pending} jobs left unprocessed)")
