"""
MiniTel-Lite Emergency Protocol Client

This module runs the JOSHUA override handshake against a MiniTel-Lite server
and exposes the ``minitel-client`` command.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import load_settings
from .exceptions import ConfigurationError, ResponseTimeout
from .orchestrator import (
    HANDSHAKE_STEPS, CommandOrchestrator, ErrorEvent, MissionResult,
    OrchestratorEvent, OverrideCodeEvent, StatusEvent, SuccessEvent
)
from .session import SessionRecorder
from .transport import AsyncioTcpTransport
from ..utils.logging import configure_logging


logger = logging.getLogger(__name__)


class MiniTelClient:
    """
    MiniTel-Lite protocol client for NORAD JOSHUA override mission.

    Every call to ``execute_mission`` uses a fresh transport and orchestrator,
    so a client may be reused for repeated attempts.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 2.0,
        connect_timeout: Optional[float] = None,
        idle_timeout: Optional[float] = None,
        recorder: Optional[SessionRecorder] = None,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.connect_timeout = connect_timeout if connect_timeout is not None else timeout
        self.idle_timeout = idle_timeout
        self.session_recorder = recorder
        self.events: List[OrchestratorEvent] = []
        self.override_code: Optional[str] = None

    def _create_transport(self) -> AsyncioTcpTransport:
        return AsyncioTcpTransport(
            self.host,
            self.port,
            connect_timeout=self.connect_timeout,
            idle_timeout=self.idle_timeout,
        )

    async def execute_mission(self) -> MissionResult:
        """
        Execute the complete HELLO -> DUMP -> DUMP -> STOP_CMD sequence.

        Returns:
            MissionResult: Terminal state, override code (if obtained) and error
        """
        loop = asyncio.get_running_loop()
        finished = loop.create_future()
        self.events = []
        self.override_code = None

        def on_event(event: OrchestratorEvent) -> None:
            self.events.append(event)
            if isinstance(event, StatusEvent):
                logger.debug(event.message)
            elif isinstance(event, OverrideCodeEvent):
                self.override_code = event.override_code
            elif isinstance(event, (SuccessEvent, ErrorEvent)) and not finished.done():
                finished.set_result(event)

        orchestrator = CommandOrchestrator(
            self._create_transport(),
            loop,
            response_timeout=self.timeout,
            recorder=self.session_recorder,
            listener=on_event,
        )
        orchestrator.start()
        limit = self.mission_time_limit()
        try:
            await asyncio.wait_for(finished, timeout=limit)
        except asyncio.TimeoutError:
            orchestrator.abort(ResponseTimeout(f"Mission did not finish within {limit:.1f}s"))
        return orchestrator.result

    def mission_time_limit(self) -> float:
        """Connect time plus every step's response window, with one window to spare."""
        return self.connect_timeout + (len(HANDSHAKE_STEPS) + 1) * self.timeout

    def run_mission(self) -> MissionResult:
        """Synchronous wrapper around ``execute_mission``."""
        return asyncio.run(self.execute_mission())


def main():
    """Main entry point for the MiniTel client."""
    try:
        settings = load_settings(require_server=False)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 1

    parser = argparse.ArgumentParser(description="MiniTel-Lite Emergency Protocol Client")
    parser.add_argument("--host", default=settings.server_host, help="Server hostname or IP address")
    parser.add_argument("--port", type=int, default=settings.server_port, help="Server port number")
    parser.add_argument("--timeout", type=float, default=settings.response_timeout,
                        help="Response timeout in seconds")
    parser.add_argument("--connect-timeout", type=float, default=settings.connect_timeout,
                        help="Connection timeout in seconds")
    parser.add_argument("--record", action="store_true", help="Enable session recording")
    parser.add_argument("--recordings-dir", default=settings.recordings_dir,
                        help="Directory for session recordings")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    if args.host is None or args.port is None:
        parser.error("server host and port are required (--host/--port or SERVER_HOST/SERVER_PORT)")

    try:
        configure_logging(settings.log_level, verbose=args.verbose)
    except ValueError as e:
        print(f"Configuration error: {e}")
        return 1

    recorder = None
    if args.record:
        recorder = SessionRecorder(args.recordings_dir, args.host, args.port)
        recorder.start()

    client = MiniTelClient(
        host=args.host,
        port=args.port,
        timeout=args.timeout,
        connect_timeout=args.connect_timeout,
        idle_timeout=settings.idle_timeout,
        recorder=recorder,
    )

    print("=" * 60)
    print("NORAD MINITEL-LITE EMERGENCY PROTOCOL")
    print("Agent LIGHTMAN - JOSHUA Override Mission")
    print("=" * 60)

    try:
        result = client.run_mission()
    except KeyboardInterrupt:
        print("\nMission aborted by user")
        return 1
    finally:
        if recorder is not None and recorder.stop():
            print(f"Session saved to: {recorder.session_file}")

    if result.override_code:
        print("\n" + "=" * 60)
        print("MISSION SUCCESSFUL!")
        print(f"OVERRIDE CODE: {result.override_code}")
        print("=" * 60)
        if result.error is not None:
            print(f"\nWarning: connection did not close cleanly: {result.error}")
        print("\nTransmit this code to NORAD command immediately!")
        return 0

    print(f"\nMISSION FAILED: {result.error}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
