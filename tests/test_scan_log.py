"""
==============================================================================
Scan Log Queue Tests
==============================================================================

Fire-and-forget scan log emission: inline writes, the background worker,
back-pressure and failure handling.

==============================================================================
"""

import asyncio
import time

import pytest

from erp_barcode.db import BarcodeScanLog, DatabaseManager, ScanResult
from erp_barcode.services import ScanLogEntry, ScanLogQueue, ScanLogWriter


def entry(barcode: str = "4006381333931", **overrides) -> ScanLogEntry:
    fields = {
        "company_id": "company-1",
        "barcode": barcode,
        "scan_result": ScanResult.SUCCESS,
    }
    fields.update(overrides)
    return ScanLogEntry(**fields)


def count_rows(db_manager: DatabaseManager) -> int:
    with db_manager.session_scope() as session:
        return session.query(BarcodeScanLog).count()


@pytest.fixture
def writer(db_manager: DatabaseManager) -> ScanLogWriter:
    return ScanLogWriter(db_manager.session_factory)


class TestScanLogWriter:

    def test_write(self, writer: ScanLogWriter, db_manager: DatabaseManager):
        assert writer.write(entry(metadata={"matches": 1}, scan_type="stock_taking")) is True

        with db_manager.session_scope() as session:
            row = session.query(BarcodeScanLog).one()
            assert row.scan_type == "stock_taking"
            assert row.scan_metadata == {"matches": 1}
            assert row.scanned_at is not None

    def test_failure_is_swallowed(self, writer: ScanLogWriter, db_manager: DatabaseManager):
        assert writer.write(entry(company_id=None)) is False
        assert count_rows(db_manager) == 0


class SlowWriter:
    """Writer whose store takes a while to commit."""

    def __init__(self, delay: float):
        self.delay = delay
        self.written = []

    def write(self, entry: ScanLogEntry) -> bool:
        time.sleep(self.delay)
        self.written.append(entry.barcode)
        return True


class TestScanLogQueue:

    def test_inline_when_not_running(self, writer: ScanLogWriter, db_manager: DatabaseManager):
        queue = ScanLogQueue(writer)
        queue.emit(entry())
        assert queue.is_running is False
        assert count_rows(db_manager) == 1

    def test_disabled(self, writer: ScanLogWriter, db_manager: DatabaseManager):
        queue = ScanLogQueue(writer, enabled=False)
        queue.emit(entry())
        assert count_rows(db_manager) == 0

    def test_worker_writes_queued_entries(self, writer: ScanLogWriter, db_manager: DatabaseManager):
        queue = ScanLogQueue(writer)

        async def scenario():
            queue.start()
            for i in range(5):
                queue.emit(entry(f"CODE-{i}"))
            assert queue.pending == 5
            await queue.drain()
            assert queue.pending == 0
            await queue.stop()

        asyncio.run(scenario())

        assert queue.is_running is False
        assert count_rows(db_manager) == 5

    def test_emit_from_worker_thread(self, writer: ScanLogWriter, db_manager: DatabaseManager):
        queue = ScanLogQueue(writer)

        async def scenario():
            queue.start()
            await asyncio.to_thread(queue.emit, entry())
            await asyncio.sleep(0.01)
            await queue.stop()

        asyncio.run(scenario())
        assert count_rows(db_manager) == 1

    def test_full_queue_drops(self, writer: ScanLogWriter, db_manager: DatabaseManager):
        queue = ScanLogQueue(writer, maxsize=1)

        async def scenario():
            queue.start()
            for i in range(3):
                queue.emit(entry(f"CODE-{i}"))
            await queue.stop()

        asyncio.run(scenario())

        assert queue.dropped == 2
        assert count_rows(db_manager) == 1

    def test_stop_flushes_pending(self, writer: ScanLogWriter, db_manager: DatabaseManager):
        queue = ScanLogQueue(writer)

        async def scenario():
            queue.start()
            queue.emit(entry("A"))
            queue.emit(entry("B"))
            await queue.stop()

        asyncio.run(scenario())
        assert count_rows(db_manager) == 2

    def test_slow_writer_does_not_block_loop(self):
        writer = SlowWriter(0.5)
        queue = ScanLogQueue(writer)

        async def scenario():
            queue.start()
            queue.emit(entry("SLOW"))
            # Let the worker pick the entry up
            await asyncio.sleep(0.05)

            started = time.monotonic()
            await asyncio.sleep(0.01)
            elapsed = time.monotonic() - started

            await queue.stop()
            return elapsed

        elapsed = asyncio.run(scenario())

        assert elapsed < 0.25
        assert writer.written == ["SLOW"]
