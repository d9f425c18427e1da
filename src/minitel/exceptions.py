"""
Custom exceptions for MiniTel-Lite protocol implementation.
"""

from typing import Optional


class MiniTelError(Exception):
    """Base exception for all MiniTel-Lite related errors."""
    pass


class ConfigurationError(MiniTelError):
    """Raised when required configuration values are missing or invalid."""
    pass


class ConnectionFailed(MiniTelError):
    """Raised when the transport could not establish a connection."""
    pass


class ConnectionLost(ConnectionFailed):
    """Raised when an established connection drops mid-sequence."""
    pass


class ResponseTimeout(MiniTelError):
    """Raised when no valid frame arrives within the response window."""
    pass


class OrchestratorStateError(MiniTelError):
    """Raised when the orchestrator API is used out of order."""
    pass


class ProtocolError(MiniTelError):
    """Raised when protocol violations occur."""
    pass


class FrameEncodingError(ProtocolError):
    """Raised when a frame cannot be represented on the wire."""
    pass


class FrameDecodingError(ProtocolError):
    """Raised when frame decoding fails."""
    pass


class FrameTooShort(FrameDecodingError):
    """Raised when a frame or its decoded body is below the minimum size."""
    pass


class IncompleteFrame(FrameDecodingError):
    """Raised when fewer bytes are present than the length prefix declares."""
    pass


class HashMismatch(ProtocolError):
    """Raised when frame hash validation fails."""
    pass


class NonceMismatch(ProtocolError):
    """Raised when nonce sequence validation fails."""

    def __init__(self, expected: Optional[int], received: int):
        self.expected = expected
        self.received = received
        super().__init__(f"Nonce mismatch: expected={expected}, got={received}")


class UnexpectedResponse(ProtocolError):
    """Raised when a valid frame carries the wrong command for the current step."""

    def __init__(self, expected: Optional[str], received: str):
        self.expected = expected
        self.received = received
        if expected is None:
            message = f"Unexpected {received} with no command in flight"
        else:
            message = f"Expected {expected}, got {received}"
        super().__init__(message)
