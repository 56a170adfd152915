"""Dress Rental — Decoder contract and the WebSocket-backed implementation.

The camera and the QR decoding run in the operator's browser. The browser
streams what it decodes over the scanner WebSocket:

  Server → Client: {"type": "start", "constraints": {...}, "config": {...}}
                   {"type": "stop"}
  Client → Server: {"type": "started"} | {"type": "camera_error", "message": "..."}
                   {"type": "decode", "text": "..."}
                   {"type": "decode_error", "message": "..."}
                   {"type": "close"}
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from fastapi import WebSocket, WebSocketDisconnect

from dress_rental.core.exceptions import DecoderUnavailableError

logger = logging.getLogger(__name__)

OnDecode = Callable[[str], Awaitable[Any]]
OnDecodeError = Callable[[str], None]

START_TIMEOUT_SECONDS = 30.0


class Decoder(Protocol):
    async def start(
        self,
        constraints: dict,
        config: dict,
        on_decode: OnDecode,
        on_decode_error: OnDecodeError,
    ) -> None:
        ...

    async def stop(self) -> None:
        ...

    def clear(self) -> None:
        ...


class WebSocketDecoder:
    """Decoder whose frames come from the browser over a WebSocket."""

    def __init__(self, websocket: WebSocket, start_timeout: float = START_TIMEOUT_SECONDS):
        self._ws = websocket
        self._start_timeout = start_timeout
        self._reader: asyncio.Task | None = None
        self._dispatched: set[asyncio.Task] = set()
        self._on_decode: OnDecode | None = None
        self._on_decode_error: OnDecodeError | None = None
        self._closed = asyncio.Event()

    async def start(self, constraints, config, on_decode, on_decode_error) -> None:
        await self._ws.send_json({"type": "start", "constraints": constraints, "config": config})
        try:
            reply = await asyncio.wait_for(self._ws.receive_json(), timeout=self._start_timeout)
        except asyncio.TimeoutError as e:
            raise DecoderUnavailableError("Camera did not start in time") from e
        except WebSocketDisconnect as e:
            self._closed.set()
            raise DecoderUnavailableError("Scanner client disconnected") from e

        kind = reply.get("type") if isinstance(reply, dict) else None
        if kind == "camera_error":
            raise DecoderUnavailableError(reply.get("message") or "Camera unavailable")
        if kind != "started":
            raise DecoderUnavailableError(f"Unexpected reply to start: {reply!r}")

        self._on_decode = on_decode
        self._on_decode_error = on_decode_error
        self._reader = asyncio.create_task(self._read_frames())

    async def _read_frames(self) -> None:
        try:
            while True:
                msg = await self._ws.receive_json()
                kind = msg.get("type") if isinstance(msg, dict) else None
                if kind == "decode":
                    self._dispatch(str(msg.get("text") or ""))
                elif kind == "decode_error":
                    if self._on_decode_error:
                        self._on_decode_error(msg.get("message") or "")
                elif kind == "close":
                    break
                else:
                    logger.debug("Ignoring scanner frame: %r", msg)
        except WebSocketDisconnect:
            logger.info("Scanner client disconnected")
        except ValueError:
            logger.warning("Scanner client sent invalid JSON; closing session")
        finally:
            self._closed.set()

    def _dispatch(self, text: str) -> None:
        # One task per frame; the coordinator's guards drop overlaps.
        if self._on_decode is None:
            return
        task = asyncio.create_task(self._on_decode(text))
        self._dispatched.add(task)
        task.add_done_callback(self._dispatched.discard)

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def stop(self) -> None:
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
        if not self._closed.is_set():
            await self._ws.send_json({"type": "stop"})
        self._closed.set()

    def clear(self) -> None:
        self._on_decode = None
        self._on_decode_error = None
        self._reader = None
