"""
Transport layer for the MiniTel-Lite client.

The orchestrator never touches sockets directly. A transport opens the
connection and reports its lifecycle as a small set of events; the
orchestrator reacts to those events and asks the transport to write or close.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Union


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connected:
    """The connection is established."""


@dataclass(frozen=True)
class DataReceived:
    """Inbound bytes; may hold a partial frame or several frames."""
    data: bytes


@dataclass(frozen=True)
class TransportFailed:
    """Connecting failed or the connection broke with an error."""
    reason: str


@dataclass(frozen=True)
class TransportTimedOut:
    """No traffic for longer than the idle timeout."""


@dataclass(frozen=True)
class TransportClosed:
    """The peer closed the connection cleanly."""


TransportEvent = Union[Connected, DataReceived, TransportFailed, TransportTimedOut, TransportClosed]
EventListener = Callable[[TransportEvent], None]


class Transport(ABC):
    """Bidirectional ordered byte stream owned by a single orchestrator."""

    @abstractmethod
    def open(self, listener: EventListener) -> None:
        """Start connecting; lifecycle is reported through ``listener``."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Queue bytes for sending."""

    @abstractmethod
    def close(self) -> None:
        """Close the connection. No events are delivered afterwards."""


class _StreamProtocol(asyncio.Protocol):

    def __init__(self, owner: "AsyncioTcpTransport"):
        self._owner = owner

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._owner._connection_made(transport)

    def data_received(self, data: bytes) -> None:
        self._owner._data_received(data)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self._owner._connection_lost(exc)


class AsyncioTcpTransport(Transport):
    """
    TCP transport built on ``asyncio.Protocol``.

    All callbacks run on the event loop thread, so listener invocations are
    serialized with everything else the orchestrator does on that loop.
    """

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = 2.0,
        idle_timeout: Optional[float] = None,
    ):
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.idle_timeout = idle_timeout
        self._listener: Optional[EventListener] = None
        self._transport: Optional[asyncio.Transport] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._idle_timer: Optional[asyncio.TimerHandle] = None
        self._closed = False

    def open(self, listener: EventListener) -> None:
        if self._listener is not None:
            raise RuntimeError("Transport already opened")
        self._listener = listener
        loop = asyncio.get_running_loop()
        self._connect_task = loop.create_task(self._connect())

    async def _connect(self) -> None:
        loop = asyncio.get_running_loop()
        logger.info(f"Connecting to {self.host}:{self.port}")
        try:
            await asyncio.wait_for(
                loop.create_connection(lambda: _StreamProtocol(self), self.host, self.port),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError:
            self._emit(TransportFailed(
                f"Timed out connecting to {self.host}:{self.port} after {self.connect_timeout}s"
            ))
        except OSError as e:
            self._emit(TransportFailed(f"Failed to connect to {self.host}:{self.port}: {e}"))

    def _connection_made(self, transport: asyncio.BaseTransport) -> None:
        if self._closed:
            transport.close()
            return
        self._transport = transport
        logger.info(f"Connected to {self.host}:{self.port}")
        self._reset_idle_timer()
        self._emit(Connected())

    def _data_received(self, data: bytes) -> None:
        logger.debug(f"Received {len(data)} bytes")
        self._reset_idle_timer()
        self._emit(DataReceived(data))

    def _connection_lost(self, exc: Optional[Exception]) -> None:
        self._cancel_idle_timer()
        self._transport = None
        if exc is not None:
            logger.error(f"Socket error: {exc}")
            self._emit(TransportFailed(str(exc)))
        else:
            logger.info("Connection closed")
            self._emit(TransportClosed())

    def _on_idle_timeout(self) -> None:
        self._idle_timer = None
        logger.warning("Socket timeout")
        self._emit(TransportTimedOut())

    def _reset_idle_timer(self) -> None:
        self._cancel_idle_timer()
        if self.idle_timeout is not None and not self._closed:
            loop = asyncio.get_running_loop()
            self._idle_timer = loop.call_later(self.idle_timeout, self._on_idle_timeout)

    def _cancel_idle_timer(self) -> None:
        if self._idle_timer is not None:
            self._idle_timer.cancel()
            self._idle_timer = None

    def _emit(self, event: TransportEvent) -> None:
        if self._closed or self._listener is None:
            return
        self._listener(event)

    def write(self, data: bytes) -> None:
        if self._transport is None or self._closed:
            raise ConnectionError("Not connected to server")
        self._transport.write(data)
        self._reset_idle_timer()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cancel_idle_timer()
        task = self._connect_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        if self._transport is not None:
            self._transport.close()
            self._transport = None
            logger.info("Disconnected from server")
