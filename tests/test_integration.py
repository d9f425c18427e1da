"""
Integration tests for the MiniTel-Lite client with a real server.

Configuration is done via environment variables:
- SERVER_HOST: Server hostname or IP
- SERVER_PORT: Server port
- TIMEOUT: Response timeout in seconds (default: 5.0)
"""

import os
import socket

import pytest

from src.minitel.client import MiniTelClient
from src.minitel.exceptions import ConnectionFailed
from src.minitel.orchestrator import OrchestratorState
from src.minitel.session import SessionLoader, SessionRecorder


SERVER_HOST = os.getenv("SERVER_HOST")
SERVER_PORT_STR = os.getenv("SERVER_PORT")
TIMEOUT = float(os.getenv("TIMEOUT", "5.0"))

if not SERVER_HOST:
    pytest.skip("SERVER_HOST environment variable is required for integration tests", allow_module_level=True)

if not SERVER_PORT_STR:
    pytest.skip("SERVER_PORT environment variable is required for integration tests", allow_module_level=True)

try:
    SERVER_PORT = int(SERVER_PORT_STR)
except (ValueError, TypeError):
    pytest.skip(f"SERVER_PORT must be a valid integer, got: {SERVER_PORT_STR}", allow_module_level=True)


pytestmark = pytest.mark.integration


@pytest.fixture(scope="module", autouse=True)
def check_server_availability():
    """Skip the module when the server is not reachable."""
    try:
        with socket.create_connection((SERVER_HOST, SERVER_PORT), timeout=2.0):
            pass
    except OSError as e:
        pytest.skip(f"Server {SERVER_HOST}:{SERVER_PORT} is not available: {e}")


class TestRealServerIntegration:
    """Integration tests with the real MiniTel-Lite server."""

    def test_successful_mission_execution(self):
        client = MiniTelClient(SERVER_HOST, SERVER_PORT, timeout=TIMEOUT)

        result = client.run_mission()

        assert result.state is OrchestratorState.DONE
        assert result.override_code
        assert isinstance(result.override_code, str)

    def test_session_recording_with_real_server(self, tmp_path):
        recorder = SessionRecorder(str(tmp_path), SERVER_HOST, SERVER_PORT)
        recorder.start()
        client = MiniTelClient(SERVER_HOST, SERVER_PORT, timeout=TIMEOUT, recorder=recorder)

        result = client.run_mission()
        recorder.stop()

        session = SessionLoader.load_session(str(recorder.session_file))
        steps = session["steps"]
        assert [s["decoded"]["nonce"] for s in steps] == list(range(len(steps)))
        assert all(s["valid"] for s in steps)

        dump_ok = [s for s in steps if s["decoded"]["cmd"] == "DUMP_OK"]
        assert len(dump_ok) == 1
        assert dump_ok[0]["decoded"]["payload"].strip() == result.override_code

    def test_multiple_connections(self):
        codes = [
            MiniTelClient(SERVER_HOST, SERVER_PORT, timeout=TIMEOUT).run_mission().override_code
            for _ in range(3)
        ]

        assert all(codes)

    def test_client_reuse(self):
        client = MiniTelClient(SERVER_HOST, SERVER_PORT, timeout=TIMEOUT)

        first = client.run_mission()
        second = client.run_mission()

        assert first.succeeded
        assert second.succeeded

    def test_connection_timeout_handling(self):
        # TEST-NET-1, never routable
        client = MiniTelClient("192.0.2.1", 80, timeout=0.5)

        result = client.run_mission()

        assert isinstance(result.error, ConnectionFailed)
