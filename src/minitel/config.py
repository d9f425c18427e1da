"""
Configuration loading for the MiniTel-Lite client.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError


DEFAULT_RESPONSE_TIMEOUT_MS = 2000
DEFAULT_IDLE_TIMEOUT_MS = 2000
DEFAULT_RECORDINGS_DIR = "recordings"
DEFAULT_LOG_LEVEL = "INFO"


@dataclass
class Settings:
    server_host: Optional[str]
    server_port: Optional[int]
    response_timeout: float
    idle_timeout: float
    recordings_dir: str
    log_level: str

    @property
    def connect_timeout(self) -> float:
        return self.idle_timeout


def _read_int(env: Mapping[str, str], name: str, default: Optional[int], invalid: list) -> Optional[int]:
    value = env.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        invalid.append(name)
        return default


def load_settings(env: Optional[Mapping[str, str]] = None, require_server: bool = True) -> Settings:
    """
    Load and validate settings.

    Args:
        env: Mapping to read from; defaults to ``os.environ`` after loading ``.env``
        require_server: Whether SERVER_HOST and SERVER_PORT must be present

    Raises:
        ConfigurationError: Listing every missing or malformed variable
    """
    if env is None:
        load_dotenv()
        env = os.environ

    problems = []
    host = env.get("SERVER_HOST") or None
    port = _read_int(env, "SERVER_PORT", None, problems)
    response_ms = _read_int(env, "RESPONSE_TIMEOUT_MS", DEFAULT_RESPONSE_TIMEOUT_MS, problems)
    idle_ms = _read_int(env, "IDLE_TIMEOUT_MS", DEFAULT_IDLE_TIMEOUT_MS, problems)

    if require_server:
        if host is None:
            problems.append("SERVER_HOST")
        if port is None and "SERVER_PORT" not in problems:
            problems.append("SERVER_PORT")

    if port is not None and not 0 < port < 65536 and "SERVER_PORT" not in problems:
        problems.append("SERVER_PORT")

    for name, value in (("RESPONSE_TIMEOUT_MS", response_ms), ("IDLE_TIMEOUT_MS", idle_ms)):
        if value <= 0 and name not in problems:
            problems.append(name)

    if problems:
        raise ConfigurationError(
            f"Missing or invalid environment variables: {', '.join(problems)}. "
            "Please check your .env file."
        )

    return Settings(
        server_host=host,
        server_port=port,
        response_timeout=response_ms / 1000.0,
        idle_timeout=idle_ms / 1000.0,
        recordings_dir=env.get("RECORDINGS_DIR") or DEFAULT_RECORDINGS_DIR,
        log_level=(env.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
    )
