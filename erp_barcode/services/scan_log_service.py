"""
==============================================================================
Scan Log Service Module
==============================================================================

Fire-and-forget recording of barcode lookup attempts.

This module implements:
- ScanLogEntry: one lookup attempt, as handed over by the lookup path
- ScanLogWriter: persists one entry in its own session
- ScanLogQueue: asyncio queue + background worker feeding the writer

Flow:
----
    BarcodeService ── emit() ──▶ asyncio.Queue ──▶ worker ──▶ ScanLogWriter
         (returns at once)        (bounded, drops       (own session,
                                   when full)            errors logged)

Lookup correctness never depends on a log write: emit() does not block,
does not raise, and write failures are only logged.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol

from sqlalchemy.orm import Session

from erp_barcode.db.models import BarcodeScanLog, ScanResult


# Module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanLogEntry:
    """A completed lookup attempt."""

    company_id: str
    barcode: str
    scan_result: ScanResult
    scan_type: str = "product_lookup"
    product_id: Optional[str] = None
    session_id: Optional[str] = None
    scanned_by: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ScanLogSink(Protocol):
    def emit(self, entry: ScanLogEntry) -> None:
        ...


class ScanLogWriter:
    """
    Writes scan log rows.

    Each write opens and closes its own session so a failed write can never
    touch the caller's transaction.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def write(self, entry: ScanLogEntry) -> bool:
        """Insert one row. Returns False (after logging) on any failure."""
        session = self._session_factory()
        try:
            session.add(BarcodeScanLog(
                company_id=entry.company_id,
                barcode=entry.barcode,
                scan_type=entry.scan_type,
                product_id=entry.product_id,
                session_id=entry.session_id,
                scanned_by=entry.scanned_by,
                scan_result=entry.scan_result,
                scan_metadata=entry.metadata or {},
            ))
            session.commit()
            return True
        except Exception as e:
            session.rollback()
            logger.error(f"Error logging barcode scan {entry.barcode!r}: {e}")
            return False
        finally:
            session.close()


class ScanLogQueue:
    """
    Bounded queue drained by one background task.

    Built by ``create_app`` and started/stopped by the application lifespan.
    While not running, ``emit`` writes inline through the writer.

    Example:
        >>> queue = ScanLogQueue(ScanLogWriter(db_manager.get_session))
        >>> queue.start()            # inside a running event loop
        >>> queue.emit(entry)        # returns immediately
        >>> await queue.drain()
        >>> await queue.stop()
    """

    def __init__(self, writer: ScanLogWriter, maxsize: int = 1000, enabled: bool = True) -> None:
        self._writer = writer
        self._maxsize = maxsize
        self._enabled = enabled
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_thread: Optional[int] = None
        self._task: Optional[asyncio.Task] = None
        self._dropped = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def dropped(self) -> int:
        """Entries discarded because the queue was full."""
        return self._dropped

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    # =========================================================================
    # PRODUCER SIDE
    # =========================================================================

    def emit(self, entry: ScanLogEntry) -> None:
        """Hand an entry over for writing. Never blocks, never raises."""
        if not self._enabled:
            return

        if not self.is_running:
            self._writer.write(entry)
            return

        if threading.get_ident() == self._loop_thread:
            self._enqueue(entry)
        else:
            try:
                self._loop.call_soon_threadsafe(self._enqueue, entry)
            except RuntimeError as e:
                logger.warning(f"Scan log loop unavailable, dropping entry: {e}")
                self._dropped += 1

    def _enqueue(self, entry: ScanLogEntry) -> None:
        try:
            self._queue.put_nowait(entry)
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning(
                f"Scan log queue full ({self._maxsize}), dropping entry for {entry.barcode!r}"
            )

    # =========================================================================
    # WORKER
    # =========================================================================

    async def _worker(self) -> None:
        logger.info("🔄 Scan log worker started")
        while True:
            entry = await self._queue.get()
            try:
                await asyncio.to_thread(self._writer.write, entry)
            finally:
                self._queue.task_done()

    def start(self) -> asyncio.Task:
        """Start the worker on the running event loop."""
        if not self.is_running:
            self._loop = asyncio.get_running_loop()
            self._loop_thread = threading.get_ident()
            self._queue = asyncio.Queue(maxsize=self._maxsize)
            self._task = self._loop.create_task(self._worker())
            logger.info("✅ Scan log queue started")
        return self._task

    async def drain(self) -> None:
        """Wait until every queued entry has been written."""
        if self._queue is not None and self.is_running:
            await self._queue.join()

    async def stop(self) -> None:
        """Flush pending entries and stop the worker."""
        if not self.is_running:
            return
        await self.drain()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("🛑 Scan log queue stopped")
