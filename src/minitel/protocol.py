"""
MiniTel-Lite Protocol v3.0 implementation.

This module handles the encoding and decoding of MiniTel-Lite protocol frames
and the reassembly of frames from a byte stream.
"""

import base64
import binascii
import hashlib
import struct
from dataclasses import dataclass
from typing import List, Optional

from cryptography.hazmat.primitives import constant_time

from .exceptions import (
    FrameDecodingError, FrameEncodingError, FrameTooShort,
    HashMismatch, IncompleteFrame, MiniTelError
)


LENGTH_PREFIX_SIZE = 2
HEADER_SIZE = 5  # CMD (1) + NONCE (4)
HASH_SIZE = 32
MIN_BODY_SIZE = HEADER_SIZE + HASH_SIZE
MAX_B64_LENGTH = 0xFFFF
NONCE_MODULUS = 2 ** 32


# Protocol Commands
class Commands:
    HELLO = 0x01
    DUMP = 0x02
    STOP_CMD = 0x04

    # Response commands
    HELLO_ACK = 0x81
    DUMP_FAILED = 0x82
    DUMP_OK = 0x83
    STOP_OK = 0x84


COMMAND_NAMES = {
    Commands.HELLO: "HELLO",
    Commands.DUMP: "DUMP",
    Commands.STOP_CMD: "STOP_CMD",
    Commands.HELLO_ACK: "HELLO_ACK",
    Commands.DUMP_FAILED: "DUMP_FAILED",
    Commands.DUMP_OK: "DUMP_OK",
    Commands.STOP_OK: "STOP_OK",
}


def command_name(cmd: int) -> str:
    """Get human-readable command name."""
    return COMMAND_NAMES.get(cmd, "UNKNOWN")


def compute_hash(cmd: int, nonce: int, payload: bytes) -> bytes:
    """SHA-256 over CMD + NONCE + PAYLOAD."""
    return hashlib.sha256(struct.pack(">BI", cmd, nonce) + payload).digest()


class ProtocolFrame:
    """
    Represents a MiniTel-Lite protocol frame.

    Frame Format:
    LEN (2 bytes, big-endian) | DATA_B64 (Base64 encoded)

    Binary Frame (after Base64 decoding):
    CMD (1 byte) | NONCE (4 bytes, big-endian) | PAYLOAD (variable) | HASH (32 bytes SHA-256)
    """

    def __init__(self, cmd: int, nonce: int, payload: bytes = b""):
        if not 0 <= cmd <= 0xFF:
            raise FrameEncodingError(f"Command code out of range: {cmd}")
        if not 0 <= nonce < NONCE_MODULUS:
            raise FrameEncodingError(f"Nonce out of range: {nonce}")
        self.cmd = cmd
        self.nonce = nonce
        self.payload = bytes(payload)
        self.hash = compute_hash(cmd, nonce, self.payload)

    @property
    def command_name(self) -> str:
        return command_name(self.cmd)

    @property
    def payload_text(self) -> str:
        return self.payload.decode("utf-8", errors="replace")

    def encode(self) -> bytes:
        """
        Encode the frame in MiniTel-Lite v3.0 wire format.

        Returns:
            bytes: Encoded frame ready for transmission

        Raises:
            FrameEncodingError: If the Base64 text overflows the length prefix
        """
        binary_frame = struct.pack(">BI", self.cmd, self.nonce) + self.payload + self.hash
        b64_data = base64.b64encode(binary_frame)

        if len(b64_data) > MAX_B64_LENGTH:
            raise FrameEncodingError(
                f"Encoded frame too large: {len(b64_data)} Base64 bytes (max {MAX_B64_LENGTH})"
            )

        return struct.pack(">H", len(b64_data)) + b64_data

    @classmethod
    def decode(cls, data: bytes) -> "ProtocolFrame":
        """
        Decode a frame from wire format.

        Args:
            data: Raw bytes holding one complete length-prefixed frame

        Returns:
            ProtocolFrame: Decoded frame

        Raises:
            FrameTooShort: If the input or the decoded body is below minimum size
            IncompleteFrame: If fewer bytes are present than the prefix declares
            FrameDecodingError: If the Base64 span is malformed
            HashMismatch: If hash validation fails
        """
        if len(data) < LENGTH_PREFIX_SIZE + 1:
            raise FrameTooShort("Frame too short to contain length prefix")

        length = struct.unpack(">H", data[:LENGTH_PREFIX_SIZE])[0]
        available = len(data) - LENGTH_PREFIX_SIZE
        if available < length:
            raise IncompleteFrame(
                f"Incomplete frame: expected {length} Base64 bytes, got {available}"
            )

        b64_data = data[LENGTH_PREFIX_SIZE:LENGTH_PREFIX_SIZE + length]
        try:
            binary_frame = base64.b64decode(b64_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise FrameDecodingError(f"Invalid Base64 data: {e}")

        if len(binary_frame) < MIN_BODY_SIZE:
            raise FrameTooShort(
                f"Decoded frame too short ({len(binary_frame)} bytes, minimum {MIN_BODY_SIZE})"
            )

        cmd = binary_frame[0]
        nonce = struct.unpack(">I", binary_frame[1:HEADER_SIZE])[0]
        payload = binary_frame[HEADER_SIZE:-HASH_SIZE]
        received_hash = binary_frame[-HASH_SIZE:]

        frame = cls(cmd, nonce, payload)
        if not constant_time.bytes_eq(frame.hash, received_hash):
            raise HashMismatch("Frame hash validation failed")

        return frame

    def __eq__(self, other) -> bool:
        if not isinstance(other, ProtocolFrame):
            return NotImplemented
        return (self.cmd, self.nonce, self.payload) == (other.cmd, other.nonce, other.payload)

    def __repr__(self) -> str:
        return f"ProtocolFrame(cmd=0x{self.cmd:02x}, nonce={self.nonce}, payload_len={len(self.payload)})"


@dataclass
class DecodedFrame:
    """Outcome of a decode attempt, in the shape the session recorder stores."""

    valid: bool
    cmd: Optional[int] = None
    cmd_name: Optional[str] = None
    nonce: Optional[int] = None
    payload: Optional[str] = None
    error: Optional[str] = None
    frame: Optional[ProtocolFrame] = None

    @classmethod
    def from_frame(cls, frame: ProtocolFrame) -> "DecodedFrame":
        return cls(
            valid=True,
            cmd=frame.cmd,
            cmd_name=frame.command_name,
            nonce=frame.nonce,
            payload=frame.payload_text,
            frame=frame,
        )

    @classmethod
    def from_error(cls, error: MiniTelError) -> "DecodedFrame":
        return cls(valid=False, error=str(error))


def try_decode(data: bytes) -> DecodedFrame:
    """Decode without raising; malformed input yields ``valid=False``."""
    try:
        return DecodedFrame.from_frame(ProtocolFrame.decode(data))
    except (FrameDecodingError, HashMismatch) as e:
        return DecodedFrame.from_error(e)


class FrameBuffer:
    """
    Reassembles length-prefixed frames from a TCP byte stream.

    A single read may carry a partial frame, exactly one frame, or several;
    ``feed`` returns every complete frame and keeps the remainder.
    """

    def __init__(self):
        self._buffer = bytearray()

    def feed(self, data: bytes) -> List[bytes]:
        self._buffer.extend(data)
        frames = []
        while len(self._buffer) >= LENGTH_PREFIX_SIZE:
            length = struct.unpack(">H", self._buffer[:LENGTH_PREFIX_SIZE])[0]
            end = LENGTH_PREFIX_SIZE + length
            if len(self._buffer) < end:
                break
            frames.append(bytes(self._buffer[:end]))
            del self._buffer[:end]
        return frames

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet forming a complete frame."""
        return len(self._buffer)

    def clear(self) -> None:
        self._buffer.clear()
