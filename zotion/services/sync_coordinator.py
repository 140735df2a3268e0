"""Single-flight execution of sync batches."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..core.item_record import ItemRecord
from ..core.models import RemoteRecordRef, UpsertOutcome

logger = logging.getLogger(__name__)


class RecordAccessor(Protocol):
    async def get_record(self, key: str) -> Optional[ItemRecord]: ...


class PayloadBuilder(Protocol):
    async def build_properties(self, record: ItemRecord) -> Dict[str, Any]: ...


class Upserter(Protocol):
    async def upsert(self, ref: RemoteRecordRef, properties: Dict[str, Any]) -> UpsertOutcome: ...


class ResultSink(Protocol):
    async def record_synced(self, record: ItemRecord, outcome: UpsertOutcome) -> None: ...

    async def record_failure(self, key: str, error: BaseException, unattempted: List[str]) -> None: ...

    async def record_batch(self, report: "BatchReport") -> None: ...


@dataclass
class BatchReport:
    item_keys: List[str]
    synced: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed_key: Optional[str] = None
    error: Optional[str] = None
    unattempted: List[str] = field(default_factory=list)

    @property
    def aborted(self) -> bool:
        return self.failed_key is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "items": len(self.item_keys),
            "synced": len(self.synced),
            "skipped": self.skipped,
            "failed_key": self.failed_key,
            "error": self.error,
            "unattempted": self.unattempted,
        }


def describe_error(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class SyncCoordinator:
    """
    Drain batches into sequential upserts, one batch at a time.

    ``start`` flips the running flag synchronously so the debounce timer can
    check-then-hand-off without a suspension point in between.
    """

    def __init__(
        self,
        accessor: RecordAccessor,
        mapper: PayloadBuilder,
        upserter: Upserter,
        sink: ResultSink,
        *,
        next_batch: Optional[Callable[[], Optional[List[str]]]] = None,
        requeue: Optional[Callable[[List[str]], None]] = None,
    ):
        self.accessor = accessor
        self.mapper = mapper
        self.upserter = upserter
        self.sink = sink
        self.next_batch = next_batch
        self.requeue = requeue
        self.batches_run = 0
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self, item_keys: List[str]) -> None:
        self._running = True
        self._task = asyncio.ensure_future(self.run(item_keys))

    async def wait_idle(self) -> None:
        if self._task is not None and not self._task.done():
            await self._task

    async def run(self, item_keys: List[str]) -> None:
        self._running = True
        batch: Optional[List[str]] = item_keys
        try:
            while batch:
                report = await self.sync_batch(batch)
                self.batches_run += 1
                try:
                    await self.sink.record_batch(report)
                except Exception:  # noqa: BLE001
                    logger.exception("Failed to record batch report")
                # Keys that arrived (and went quiet) during the batch
                batch = self.next_batch() if self.next_batch else None
        finally:
            self._running = False

    async def sync_batch(self, item_keys: List[str]) -> BatchReport:
        report = BatchReport(item_keys=list(item_keys))
        total = len(item_keys)
        logger.info("Saving %d items to Notion", total)

        for index, key in enumerate(item_keys, start=1):
            try:
                record = await self.accessor.get_record(key)
                if record is None:
                    logger.warning("Item %s could not be resolved; skipping", key)
                    report.skipped.append(key)
                    continue

                properties = await self.mapper.build_properties(record)
                ref = await record.get_remote_ref()
                outcome = await self.upserter.upsert(ref, properties)
                await self.sink.record_synced(record, outcome)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Sync aborted at item %s (%d of %d)", key, index, total)
                report.failed_key = key
                report.error = describe_error(exc)
                report.unattempted = list(item_keys[index:])
                await self._report_failure(key, exc, report.unattempted)
                break

            report.synced.append(key)
            logger.info("Item %d of %d synced: %s -> %s", index, total, key, outcome.page_id)

        return report

    async def _report_failure(self, key: str, exc: BaseException, unattempted: List[str]) -> None:
        try:
            await self.sink.record_failure(key, exc, unattempted)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to record sync failure for %s", key)

        if unattempted and self.requeue is not None:
            logger.info("Requeueing %d unattempted items", len(unattempted))
            self.requeue(unattempted)
        elif unattempted:
            logger.warning("%d items left unsynced until their next change: %s", len(unattempted), unattempted)
