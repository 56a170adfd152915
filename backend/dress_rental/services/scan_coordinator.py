"""Dress Rental — ScanCoordinator.

Turns a stream of decoded QR strings into serialized, de-duplicated
assignment calls against one order. One instance per scanning session;
construct it fresh when the operator opens the scanner and drop it on close.

State machine:
  idle → starting → active ⇄ processing → stopped
             └──→ failed   (camera / permission denial, terminal)
"""
import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from dress_rental.config import Settings
from dress_rental.core.exceptions import TransportError
from dress_rental.schemas.scan import (
    ScanHistoryEntry,
    ScanSessionSnapshot,
    ScanState,
)
from dress_rental.services.assignment_service import AssignmentService
from dress_rental.services.decoder import Decoder

logger = logging.getLogger(__name__)

CAMERA_ERROR_MESSAGE = "No se pudo acceder a la cámara. Asegúrate de dar permisos de cámara."
UNEXPECTED_ERROR_MESSAGE = "Error inesperado al asignar el producto"


@dataclass(frozen=True)
class ScanConfig:
    cooldown_ms: int = 1500
    history_capacity: int = 10
    fps: int = 10
    qrbox: int = 250
    await_refresh: bool = False

    def __post_init__(self):
        if self.history_capacity < 1:
            raise ValueError("history_capacity must be at least 1")
        if self.cooldown_ms < 0:
            raise ValueError("cooldown_ms must not be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScanConfig":
        return cls(
            cooldown_ms=settings.SCAN_COOLDOWN_MS,
            history_capacity=settings.SCAN_HISTORY_CAPACITY,
            fps=settings.SCAN_FPS,
            qrbox=settings.SCAN_QRBOX,
            await_refresh=settings.SCAN_AWAIT_REFRESH,
        )

    def decoder_constraints(self) -> dict:
        return {"facingMode": "environment"}

    def decoder_config(self) -> dict:
        return {
            "fps": self.fps,
            "qrbox": {"width": self.qrbox, "height": self.qrbox},
            "aspectRatio": 1.0,
        }


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ScanCoordinator:
    """Owns the decode loop for one scanning session."""

    def __init__(
        self,
        order_id: str,
        decoder_factory: Callable[[], Decoder],
        assignment_service: AssignmentService,
        config: ScanConfig | None = None,
        *,
        on_assigned: Callable[[ScanHistoryEntry], Awaitable[None]] | None = None,
        on_update: Callable[[ScanSessionSnapshot], Awaitable[None]] | None = None,
        on_close: Callable[[], Any] | None = None,
    ):
        self.order_id = order_id
        self.config = config or ScanConfig()
        self._decoder_factory = decoder_factory
        self._assignment_service = assignment_service
        self._on_assigned = on_assigned
        self._on_update = on_update
        self._on_close = on_close

        self._state = ScanState.IDLE
        self._decoder: Decoder | None = None
        self._error: str | None = None
        self._transport_error: str | None = None
        self._history: deque[ScanHistoryEntry] = deque(maxlen=self.config.history_capacity)

        self._processing = False
        self._cooldown = False
        self._last_scanned: str | None = None
        self._cooldown_handle: asyncio.TimerHandle | None = None
        self._closed = False
        self._starting: asyncio.Event | None = None
        self._background: set[asyncio.Task] = set()

    # ── Introspection ────────────────────────────────────────────────────

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def history(self) -> list[ScanHistoryEntry]:
        """Most recent first."""
        return list(self._history)

    @property
    def success_count(self) -> int:
        return sum(1 for e in self._history if e.success)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._history if not e.success)

    @property
    def processing(self) -> bool:
        return self._processing

    @property
    def cooling_down(self) -> bool:
        return self._cooldown

    def snapshot(self) -> ScanSessionSnapshot:
        return ScanSessionSnapshot(
            order_id=self.order_id,
            state=self._state,
            error=self._error,
            transport_error=self._transport_error,
            processing=self._processing,
            success_count=self.success_count,
            error_count=self.error_count,
            history=self.history,
        )

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def start(self) -> bool:
        """Acquire the decoder. Returns False (state ``failed``) if the camera is unavailable."""
        if self._state != ScanState.IDLE:
            return self._state in (ScanState.ACTIVE, ScanState.PROCESSING)

        self._state = ScanState.STARTING
        self._starting = asyncio.Event()
        try:
            decoder = self._decoder_factory()
            await decoder.start(
                self.config.decoder_constraints(),
                self.config.decoder_config(),
                self.on_decode,
                self._on_decode_error,
            )
            self._decoder = decoder
        except Exception as e:
            logger.warning("Scanner start failed for order %s: %s", self.order_id, e)
            self._state = ScanState.FAILED
            self._error = CAMERA_ERROR_MESSAGE
            await self._notify()
            return False
        finally:
            self._starting.set()

        if self._closed:
            # close() is waiting on _starting and releases the decoder.
            return False
        self._state = ScanState.ACTIVE
        self._error = None
        logger.info("Scanner session started for order %s", self.order_id)
        await self._notify()
        return True

    async def close(self) -> None:
        """Release the decoder (always, even if stop fails) then call ``on_close``.

        If start() is still acquiring the decoder, waits for it so the decoder
        it acquired is released here too. Pending order refreshes are cancelled.

        An assignment already in flight is not cancelled; its result is
        discarded when it lands.
        """
        if self._closed:
            return
        self._closed = True

        if self._cooldown_handle is not None:
            self._cooldown_handle.cancel()
            self._cooldown_handle = None
        for task in list(self._background):
            task.cancel()

        if self._starting is not None:
            await self._starting.wait()

        decoder, self._decoder = self._decoder, None
        if decoder is not None:
            try:
                await decoder.stop()
            except Exception:
                logger.exception("Error stopping scanner for order %s", self.order_id)
            try:
                await _maybe_await(decoder.clear())
            except Exception:
                logger.exception("Error clearing scanner for order %s", self.order_id)

        if self._state != ScanState.FAILED:
            self._state = ScanState.STOPPED
        logger.info("Scanner session closed for order %s", self.order_id)

        if self._on_close is not None:
            await _maybe_await(self._on_close())

    async def __aenter__(self) -> "ScanCoordinator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ── Decode handling ──────────────────────────────────────────────────

    def _on_decode_error(self, message: str) -> None:
        # Frames without a readable code are normal.
        pass

    async def on_decode(self, qr_code: str) -> ScanHistoryEntry | None:
        """Handle one decoded frame.

        Returns the history entry recorded for this attempt, or None when the
        frame was ignored or the attempt ended in a transport error.
        """
        # Everything up to the first await runs atomically on the event loop.
        if self._closed:
            return None
        if self._state not in (ScanState.ACTIVE, ScanState.PROCESSING):
            return None
        qr_code = (qr_code or "").strip()
        if not qr_code:
            return None
        if self._cooldown:
            return None
        if self._processing:
            return None
        if qr_code == self._last_scanned:
            return None

        self._processing = True
        self._last_scanned = qr_code
        self._state = ScanState.PROCESSING
        entry: ScanHistoryEntry | None = None
        try:
            await self._notify()
            try:
                result = await self._assignment_service.assign(self.order_id, qr_code)
            except TransportError as e:
                logger.warning("Assignment transport error for %s on order %s: %s", qr_code, self.order_id, e)
                self._transport_error = str(e)
                return None
            except Exception:
                logger.exception("Unexpected assignment failure for %s on order %s", qr_code, self.order_id)
                self._transport_error = UNEXPECTED_ERROR_MESSAGE
                return None

            if self._closed:
                logger.debug("Discarding assignment result for %s: session closed", qr_code)
                return None

            entry = ScanHistoryEntry.from_result(qr_code, result)
            self._history.appendleft(entry)
            self._transport_error = None
            if entry.success:
                logger.info("Assigned %s to order %s", qr_code, self.order_id)
                await self._refresh(entry)
            else:
                logger.info("Assignment rejected for %s on order %s: %s", qr_code, self.order_id, entry.message)
            return entry
        finally:
            self._processing = False
            if not self._closed:
                self._state = ScanState.ACTIVE
                self._start_cooldown()
                await self._notify()

    def _start_cooldown(self) -> None:
        self._cooldown = True
        if self._cooldown_handle is not None:
            self._cooldown_handle.cancel()
        loop = asyncio.get_running_loop()
        self._cooldown_handle = loop.call_later(self.config.cooldown_ms / 1000, self._end_cooldown)

    def _end_cooldown(self) -> None:
        self._cooldown = False
        self._last_scanned = None
        self._cooldown_handle = None

    async def _refresh(self, entry: ScanHistoryEntry) -> None:
        if self._on_assigned is None or self._closed:
            return
        if self.config.await_refresh:
            try:
                await self._on_assigned(entry)
            except Exception:
                logger.exception("Order refresh failed for %s", self.order_id)
            return
        task = asyncio.create_task(self._on_assigned(entry))
        self._background.add(task)
        task.add_done_callback(self._refresh_done)

    def _refresh_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Order refresh failed for %s: %s", self.order_id, task.exception())

    async def _notify(self) -> None:
        if self._on_update is None or self._closed:
            return
        try:
            await self._on_update(self.snapshot())
        except Exception:
            logger.exception("Failed to publish scanner state for order %s", self.order_id)
