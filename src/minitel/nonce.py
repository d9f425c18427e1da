"""
Nonce sequence tracking for MiniTel-Lite connections.

Client and server share a single counter and take turns advancing it by one:
the client opens with 0, the server answers with 1, the client continues with
2, and so on. Any skip or repeat is a protocol violation.
"""

from typing import Optional

from .protocol import NONCE_MODULUS


class NonceSequencer:
    """
    Tracks the turn-taking nonce contract for one connection.

    Validation is read-only so a rejected frame leaves the sequencer intact;
    only ``record_remote`` advances the remote side.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Clear to the initial state (called for every new connection)."""
        self._local_last_sent: Optional[int] = None
        self._remote_expected: Optional[int] = None

    @property
    def local_last_sent(self) -> Optional[int]:
        return self._local_last_sent

    @property
    def remote_expected(self) -> Optional[int]:
        return self._remote_expected

    def next_local_nonce(self) -> int:
        """Next nonce to send: 0 initially, otherwise the last remote value plus one."""
        if self._remote_expected is None:
            return 0
        return (self._remote_expected + 1) % NONCE_MODULUS

    def record_local_send(self, nonce: int) -> None:
        self._local_last_sent = nonce
        self._remote_expected = (nonce + 1) % NONCE_MODULUS

    def validate_remote(self, nonce: int) -> bool:
        return self._remote_expected is not None and nonce == self._remote_expected

    def record_remote(self, nonce: int) -> None:
        self._remote_expected = nonce
