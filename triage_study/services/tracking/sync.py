"""
Delivery of buffered trace events to the persistence collaborator.

Buffer discipline: snapshot, deliver, and drop the snapshot only after the
collaborator confirmed it. A failed delivery leaves the buffer as it was and
records a ``data_sync_failed`` event, so the research data itself shows the
data-loss risk. Delivery is at-least-once; the collaborator may see the same
event twice if a confirmation is lost.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Protocol

import httpx

from ..persistence import StudyDataStore
from .tracker import EventTracker

if TYPE_CHECKING:
    from ..session.store import SessionStore

logger = logging.getLogger(__name__)


class SyncDeliveryError(RuntimeError):
    """The collaborator did not confirm a batch."""


class StudyDataSink(Protocol):
    async def deliver_trace(self, participant_id: str, events: List[Dict[str, Any]]) -> None: ...

    async def deliver_survey(self, survey: Mapping[str, Any]) -> None: ...


class HttpDataSink:
    """Posts batches to the study backend's collection endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _post(self, path: str, body: Mapping[str, Any]) -> None:
        try:
            response = await self._client.post(path, json=dict(body))
        except httpx.HTTPError as e:
            raise SyncDeliveryError(f"Request to {path} failed: {e}") from e
        if response.status_code >= 300:
            raise SyncDeliveryError(f"Sync failed with status: {response.status_code}")

    async def deliver_trace(self, participant_id: str, events: List[Dict[str, Any]]) -> None:
        await self._post("/api/trace-data", {"participantId": participant_id, "events": events})

    async def deliver_survey(self, survey: Mapping[str, Any]) -> None:
        await self._post("/api/survey", survey)

    async def aclose(self) -> None:
        await self._client.aclose()


class LocalDataSink:
    """Writes straight into a StudyDataStore, for single-process deployments."""

    def __init__(self, store: StudyDataStore):
        self.store = store

    async def deliver_trace(self, participant_id: str, events: List[Dict[str, Any]]) -> None:
        try:
            await asyncio.to_thread(self.store.append_trace, participant_id, events)
        except (OSError, ValueError) as e:
            raise SyncDeliveryError(f"Local trace write failed: {e}") from e

    async def deliver_survey(self, survey: Mapping[str, Any]) -> None:
        try:
            await asyncio.to_thread(self.store.write_survey, survey["participantId"], survey)
        except (OSError, ValueError, KeyError) as e:
            raise SyncDeliveryError(f"Local survey write failed: {e}") from e


@dataclass(frozen=True)
class FlushResult:
    delivered: bool
    count: int
    error: Optional[str] = None


class TraceSyncer:

    FINAL_SYNC_TIMEOUT_SECONDS = 10.0

    def __init__(
        self,
        store: "SessionStore",
        tracker: EventTracker,
        sink: StudyDataSink,
        final_timeout: float = FINAL_SYNC_TIMEOUT_SECONDS,
    ):
        self.store = store
        self.tracker = tracker
        self.sink = sink
        self.final_timeout = final_timeout
        self._lock = asyncio.Lock()

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    async def flush(self, trigger: str = "auto") -> FlushResult:
        """Delivers the whole current buffer as one batch."""
        async with self._lock:
            return await self._flush_locked(trigger)

    async def flush_if_idle(self, trigger: str = "auto") -> Optional[FlushResult]:
        """Periodic entry point: skips the tick rather than double-send in-flight content."""
        if self.in_flight:
            logger.debug("Previous flush still in flight; skipping this tick")
            return None
        return await self.flush(trigger)

    async def _flush_locked(self, trigger: str) -> FlushResult:
        snapshot = self.store.buffered_events()
        if not snapshot:
            return FlushResult(delivered=True, count=0)

        participant_id = self.store.participant_id or snapshot[0].participant_id
        if participant_id is None:
            error = "No participant id available for sync"
            self.tracker.data_sync_failed(error, len(snapshot), trigger)
            return FlushResult(delivered=False, count=len(snapshot), error=error)

        try:
            await self.sink.deliver_trace(participant_id, [e.to_dict() for e in snapshot])
        except SyncDeliveryError as e:
            logger.error(f"Failed to sync trace data ({trigger}): {e}")
            self.tracker.data_sync_failed(str(e), len(snapshot), trigger)
            return FlushResult(delivered=False, count=len(snapshot), error=str(e))
        except Exception as e:
            logger.error(f"Unexpected error syncing trace data ({trigger}): {e}", exc_info=True)
            error = f"{type(e).__name__}: {e}"
            self.tracker.data_sync_failed(error, len(snapshot), trigger)
            return FlushResult(delivered=False, count=len(snapshot), error=error)

        self.store.drop_delivered(snapshot)
        self.tracker.data_synced(len(snapshot), trigger)
        logger.info(f"Synced {len(snapshot)} trace events ({trigger})")
        return FlushResult(delivered=True, count=len(snapshot))

    async def final_sync(self) -> FlushResult:
        """
        Last flush at survey submission. Waits for any in-flight flush, is
        bounded by ``final_timeout`` and never raises for delivery problems.
        """
        try:
            return await asyncio.wait_for(self.flush(trigger="final"), self.final_timeout)
        except asyncio.TimeoutError:
            pending = self.store.buffer_size
            error = f"Final sync timed out after {self.final_timeout}s"
            logger.error(error)
            self.tracker.data_sync_failed(error, pending, "final")
            return FlushResult(delivered=False, count=pending, error=error)
