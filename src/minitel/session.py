"""
Session recording functionality for MiniTel-Lite client.

This module provides session recording capabilities to capture every frame
exchanged during an override attempt for later replay and analysis.
"""

import base64
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .protocol import DecodedFrame


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


class SessionRecorder:
    """
    Records all client-server frames during a MiniTel-Lite session.

    The session document is rewritten to disk after every step, so an
    interrupted attempt still leaves a readable recording. Persistence errors
    are logged and never reach the protocol flow.
    """

    def __init__(
        self,
        recordings_dir: str = "recordings",
        server_host: Optional[str] = None,
        server_port: Optional[int] = None,
    ):
        self.recordings_dir = Path(recordings_dir)
        self.server_host = server_host
        self.server_port = server_port
        self.session_data: Optional[Dict[str, Any]] = None
        self.session_file: Optional[Path] = None
        self._active = False
        self._current_step = 0

    def _generate_session_id(self, started: datetime) -> str:
        """Session ID from the start timestamp, unique within the recordings dir."""
        base_id = started.strftime("%Y-%m-%dT%H-%M-%SZ")
        session_id = base_id
        suffix = 1
        while (self.recordings_dir / f"session-{session_id}.json").exists():
            suffix += 1
            session_id = f"{base_id}-{suffix}"
        return session_id

    def start(self) -> bool:
        """
        Start a new recording session.

        An active session is finalized first, so two attempts never share a
        file.

        Returns:
            bool: True if recording started
        """
        if self._active:
            logger.info("Recording already active, finalizing it before starting a new one")
            self.stop()

        started = _utc_now()
        try:
            self.recordings_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create recordings directory {self.recordings_dir}: {e}")
            return False

        session_id = self._generate_session_id(started)
        self.session_file = self.recordings_dir / f"session-{session_id}.json"
        self.session_data = {
            "session_id": session_id,
            "start_time": _isoformat(started),
            "end_time": None,
            "server_host": self.server_host,
            "server_port": self.server_port,
            "steps": [],
        }
        self._active = True
        self._current_step = 0
        self._flush()

        logger.info(f"Started recording session {session_id}")
        return True

    def stop(self) -> bool:
        """
        Stop the current recording session and write it out.

        Returns:
            bool: True if a session was active and was written out
        """
        if not self._active:
            logger.info("Not recording")
            return False

        self.session_data["end_time"] = _isoformat(_utc_now())
        saved = self._flush()
        self._active = False
        if saved:
            logger.info(f"Saved recording to {self.session_file}")
        return saved

    def is_active(self) -> bool:
        return self._active

    def on_outbound(self, raw: bytes, frame: DecodedFrame) -> None:
        """Record a frame sent by the client."""
        self._append_step("client", raw, frame)

    def on_inbound(self, raw: bytes, frame: DecodedFrame) -> None:
        """Record a frame received from the server."""
        self._append_step("server", raw, frame)

    def _append_step(self, direction: str, raw: bytes, frame: DecodedFrame) -> None:
        if not self._active:
            return

        encoded = base64.b64encode(raw).decode("ascii")
        self._current_step += 1
        self.session_data["steps"].append({
            "step": self._current_step,
            "timestamp": _isoformat(_utc_now()),
            "direction": direction,
            "request": encoded if direction == "client" else None,
            "response": encoded if direction == "server" else None,
            "decoded": {
                "cmd": frame.cmd_name,
                "nonce": frame.nonce,
                "payload": frame.payload,
            },
            "valid": frame.valid,
        })
        self._flush()

    def _flush(self) -> bool:
        try:
            with open(self.session_file, "w", encoding="utf-8") as f:
                json.dump(self.session_data, f, indent=2, ensure_ascii=False)
            return True
        except OSError as e:
            logger.error(f"Error saving recording: {e}")
            return False

    @property
    def steps(self) -> List[Dict[str, Any]]:
        if self.session_data is None:
            return []
        return self.session_data["steps"]

    def get_session_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the current or most recent session.

        Returns:
            Dict containing session statistics
        """
        steps = self.steps
        sent = [s for s in steps if s["direction"] == "client"]
        received = [s for s in steps if s["direction"] == "server"]

        return {
            "session_id": self.session_data["session_id"] if self.session_data else None,
            "total_steps": len(steps),
            "requests": len(sent),
            "responses": len(received),
            "invalid_frames": sum(1 for s in steps if not s["valid"]),
            "commands_sent": [s["decoded"]["cmd"] for s in sent],
            "responses_received": [s["decoded"]["cmd"] for s in received],
        }


class SessionLoader:
    """
    Loads and provides access to recorded sessions.
    """

    @staticmethod
    def load_session(filepath: str) -> Dict[str, Any]:
        """
        Load a session from a JSON file.

        Raises:
            FileNotFoundError: If session file doesn't exist
            json.JSONDecodeError: If session file is invalid JSON
        """
        with open(filepath, "r", encoding="utf-8") as f:
            return json.load(f)

    @staticmethod
    def list_sessions(sessions_dir: str = "recordings") -> List[Dict[str, Any]]:
        """
        List all available session files, newest first.

        Files that are not valid session JSON are skipped.
        """
        sessions_path = Path(sessions_dir)
        if not sessions_path.exists():
            return []

        sessions = []
        for session_file in sessions_path.glob("*.json"):
            try:
                session_data = SessionLoader.load_session(str(session_file))
                sessions.append({
                    "filename": session_file.name,
                    "filepath": str(session_file),
                    "session_id": session_data.get("session_id"),
                    "start_time": session_data.get("start_time"),
                    "end_time": session_data.get("end_time"),
                    "server": f"{session_data.get('server_host')}:{session_data.get('server_port')}",
                    "total_steps": len(session_data.get("steps") or []),
                })
            except (OSError, ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Skipping unreadable session file {session_file}: {e}")
                continue

        sessions.sort(key=lambda x: str(x.get("start_time") or ""), reverse=True)
        return sessions

    @staticmethod
    def get_session_steps(filepath: str) -> List[Dict[str, Any]]:
        session_data = SessionLoader.load_session(filepath)
        return session_data.get("steps") or []
