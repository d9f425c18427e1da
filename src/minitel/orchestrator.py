"""
MiniTel-Lite command orchestrator.

Drives the fixed HELLO -> DUMP -> DUMP -> STOP_CMD handshake over a single
connection. The orchestrator is a state machine fed with transport events;
it owns the nonce sequencer, the one in-flight command and its response
timer, and reports progress and a single terminal outcome to a listener.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from .exceptions import (
    ConnectionFailed, ConnectionLost, FrameDecodingError, HashMismatch,
    MiniTelError, NonceMismatch, OrchestratorStateError, ResponseTimeout,
    UnexpectedResponse
)
from .nonce import NonceSequencer
from .protocol import Commands, DecodedFrame, FrameBuffer, ProtocolFrame, command_name
from .transport import (
    Connected, DataReceived, Transport, TransportClosed, TransportEvent,
    TransportFailed, TransportTimedOut
)


logger = logging.getLogger(__name__)


class OrchestratorState(enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    AWAITING_HELLO_ACK = "awaiting_hello_ack"
    AWAITING_DUMP1 = "awaiting_dump1"
    AWAITING_DUMP2 = "awaiting_dump2"
    AWAITING_STOP_OK = "awaiting_stop_ok"
    DONE = "done"
    ERROR = "error"


TERMINAL_STATES = (OrchestratorState.DONE, OrchestratorState.ERROR)


@dataclass(frozen=True)
class StatusEvent:
    message: str


@dataclass(frozen=True)
class OverrideCodeEvent:
    override_code: str


@dataclass(frozen=True)
class SuccessEvent:
    override_code: str


@dataclass(frozen=True)
class ErrorEvent:
    reason: str
    error: MiniTelError
    override_code: Optional[str] = None


OrchestratorEvent = Union[StatusEvent, OverrideCodeEvent, SuccessEvent, ErrorEvent]


@dataclass(frozen=True)
class PendingCommand:
    """The single command in flight and the response kind it must produce."""
    command: int
    nonce: int
    expected_response: int
    awaiting_state: OrchestratorState
    deadline: float


@dataclass
class MissionResult:
    state: OrchestratorState
    override_code: Optional[str] = None
    error: Optional[MiniTelError] = None

    @property
    def succeeded(self) -> bool:
        return self.state is OrchestratorState.DONE


# Each command, the state it waits in, and the only acceptable response.
HANDSHAKE_STEPS = {
    OrchestratorState.AWAITING_HELLO_ACK: (Commands.HELLO, Commands.HELLO_ACK),
    OrchestratorState.AWAITING_DUMP1: (Commands.DUMP, Commands.DUMP_FAILED),
    OrchestratorState.AWAITING_DUMP2: (Commands.DUMP, Commands.DUMP_OK),
    OrchestratorState.AWAITING_STOP_OK: (Commands.STOP_CMD, Commands.STOP_OK),
}

NEXT_STATE = {
    OrchestratorState.AWAITING_HELLO_ACK: OrchestratorState.AWAITING_DUMP1,
    OrchestratorState.AWAITING_DUMP1: OrchestratorState.AWAITING_DUMP2,
    OrchestratorState.AWAITING_DUMP2: OrchestratorState.AWAITING_STOP_OK,
    OrchestratorState.AWAITING_STOP_OK: OrchestratorState.DONE,
}

STEP_MESSAGES = {
    OrchestratorState.AWAITING_HELLO_ACK: "Authentication successful",
    OrchestratorState.AWAITING_DUMP1: "First DUMP failed as expected",
    OrchestratorState.AWAITING_DUMP2: "Override code retrieved",
    OrchestratorState.AWAITING_STOP_OK: "STOP command acknowledged",
}


class CommandOrchestrator:
    """
    Protocol state machine for one handshake attempt.

    Args:
        transport: Connection owned exclusively by this orchestrator
        scheduler: Object with ``time()`` and ``call_later(delay, callback)``
            returning a cancellable handle; an asyncio event loop works
        response_timeout: Seconds to wait for each response
        recorder: Optional session recorder notified of every frame
        listener: Callback receiving status and terminal events
    """

    def __init__(
        self,
        transport: Transport,
        scheduler: Any,
        response_timeout: float = 2.0,
        recorder: Any = None,
        listener: Optional[Callable[[OrchestratorEvent], None]] = None,
    ):
        self.transport = transport
        self.scheduler = scheduler
        self.response_timeout = response_timeout
        self.recorder = recorder
        self.listener = listener
        self.nonces = NonceSequencer()
        self.state = OrchestratorState.IDLE
        self.pending: Optional[PendingCommand] = None
        self.override_code: Optional[str] = None
        self.error: Optional[MiniTelError] = None
        self._buffer = FrameBuffer()
        self._timer = None
        self._closed = False

    @property
    def result(self) -> MissionResult:
        return MissionResult(self.state, self.override_code, self.error)

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def start(self) -> None:
        """Reset the nonce state and open the transport."""
        if self.state is not OrchestratorState.IDLE:
            raise OrchestratorStateError(f"Cannot start from state {self.state.name}")

        self.nonces.reset()
        self._buffer.clear()
        self.state = OrchestratorState.CONNECTING
        self._emit(StatusEvent("Connecting..."))
        try:
            self.transport.open(self.handle_event)
        except OSError as e:
            self._fail(ConnectionFailed(f"Connection failed: {e}"))

    def handle_event(self, event: TransportEvent) -> None:
        """Transition function for transport events."""
        if self.finished:
            logger.debug(f"Ignoring {type(event).__name__} in state {self.state.name}")
            return

        if isinstance(event, Connected):
            self._on_connected()
        elif isinstance(event, DataReceived):
            self._on_data(event.data)
        elif isinstance(event, TransportFailed):
            if self.state is OrchestratorState.CONNECTING:
                self._fail(ConnectionFailed(f"Connection failed: {event.reason}"))
            else:
                self._fail(ConnectionLost(f"Connection error: {event.reason}"))
        elif isinstance(event, TransportTimedOut):
            if self.state is OrchestratorState.CONNECTING:
                self._fail(ConnectionFailed("Connection timed out"))
            else:
                self._fail(ResponseTimeout("Connection idle timeout"))
        elif isinstance(event, TransportClosed):
            self._fail(ConnectionLost("Server closed the connection"))
        else:
            raise OrchestratorStateError(f"Unknown transport event: {event!r}")

    def abort(self, error: MiniTelError) -> None:
        """Fail the attempt from outside; a no-op once a terminal state is reached."""
        self._fail(error)

    def _on_connected(self) -> None:
        if self.state is not OrchestratorState.CONNECTING:
            raise OrchestratorStateError(f"Connected event in state {self.state.name}")
        self.state = OrchestratorState.CONNECTED
        self._emit(StatusEvent("Connected"))
        self._send_step(OrchestratorState.AWAITING_HELLO_ACK)

    def _send_step(self, awaiting_state: OrchestratorState) -> None:
        if self.pending is not None:
            raise OrchestratorStateError(
                f"{command_name(self.pending.command)} is still awaiting a response"
            )

        command, expected = HANDSHAKE_STEPS[awaiting_state]
        nonce = self.nonces.next_local_nonce()
        frame = ProtocolFrame(command, nonce)
        raw = frame.encode()
        self.nonces.record_local_send(nonce)

        deadline = self.scheduler.time() + self.response_timeout
        self.pending = PendingCommand(command, nonce, expected, awaiting_state, deadline)
        self.state = awaiting_state
        self._timer = self.scheduler.call_later(self.response_timeout, self._on_response_timeout)

        # A transport may deliver the reply from inside write().
        logger.info(f"Sending {frame.command_name} (nonce={nonce})")
        self._record("on_outbound", raw, DecodedFrame.from_frame(frame))
        self._emit(StatusEvent(f"Sent {frame.command_name} command"))
        try:
            self.transport.write(raw)
        except OSError as e:
            self._fail(ConnectionLost(f"Failed to send {frame.command_name}: {e}"))

    def _on_data(self, data: bytes) -> None:
        for raw in self._buffer.feed(data):
            if self.finished:
                return
            self._on_frame(raw)

    def _on_frame(self, raw: bytes) -> None:
        try:
            frame = ProtocolFrame.decode(raw)
        except (FrameDecodingError, HashMismatch) as e:
            logger.error(f"Invalid frame received: {e}")
            self._record("on_inbound", raw, DecodedFrame.from_error(e))
            self._fail(e)
            return

        self._record("on_inbound", raw, DecodedFrame.from_frame(frame))
        logger.info(f"Received {frame.command_name} (nonce={frame.nonce})")

        pending = self.pending
        if pending is None:
            self._fail(UnexpectedResponse(None, frame.command_name))
            return

        if not self.nonces.validate_remote(frame.nonce):
            self._fail(NonceMismatch(self.nonces.remote_expected, frame.nonce))
            return
        self.nonces.record_remote(frame.nonce)

        if frame.cmd != pending.expected_response:
            self._fail(UnexpectedResponse(command_name(pending.expected_response), frame.command_name))
            return

        self._resolve_pending()
        self._emit(StatusEvent(STEP_MESSAGES[pending.awaiting_state]))

        if frame.cmd == Commands.DUMP_OK:
            self.override_code = frame.payload_text.strip()
            logger.info(f"Override code retrieved: {self.override_code}")
            self._emit(OverrideCodeEvent(self.override_code))

        next_state = NEXT_STATE[pending.awaiting_state]
        if next_state is OrchestratorState.DONE:
            self._finish()
        else:
            self._send_step(next_state)

    def _on_response_timeout(self) -> None:
        self._timer = None
        if self.pending is None or self.finished:
            return
        name = command_name(self.pending.command)
        self._fail(ResponseTimeout(f"Response timeout waiting for reply to {name}"))

    def _resolve_pending(self) -> None:
        self.pending = None
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _finish(self) -> None:
        self.state = OrchestratorState.DONE
        self._teardown()
        logger.info("Handshake complete")
        self._emit(SuccessEvent(self.override_code))

    def _fail(self, error: MiniTelError) -> None:
        if self.finished:
            return
        self._resolve_pending()
        self.state = OrchestratorState.ERROR
        self.error = error
        self._teardown()
        logger.error(f"Command sequence failed: {error}")
        self._emit(ErrorEvent(str(error), error, self.override_code))

    def _teardown(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        self.transport.close()

    def _record(self, method: str, raw: bytes, decoded: DecodedFrame) -> None:
        if self.recorder is None:
            return
        try:
            if self.recorder.is_active():
                getattr(self.recorder, method)(raw, decoded)
        except Exception as e:
            logger.warning(f"Session recorder failed: {e}")

    def _emit(self, event: OrchestratorEvent) -> None:
        if self.listener is not None:
            self.listener(event)

