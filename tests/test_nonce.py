"""
Tests for nonce sequencing.
"""

import pytest

from src.minitel.nonce import NonceSequencer


pytestmark = pytest.mark.unit


class TestNonceSequencer:

    def test_initial_state(self):
        sequencer = NonceSequencer()
        assert sequencer.local_last_sent is None
        assert sequencer.remote_expected is None
        assert sequencer.next_local_nonce() == 0

    def test_nonce_law(self):
        sequencer = NonceSequencer()
        sequencer.reset()
        assert sequencer.next_local_nonce() == 0

        sequencer.record_remote(5)
        assert sequencer.next_local_nonce() == 6

        sequencer.record_local_send(6)
        assert sequencer.local_last_sent == 6
        assert sequencer.remote_expected == 7
        assert sequencer.validate_remote(7) is True
        assert sequencer.validate_remote(8) is False

    def test_validate_does_not_mutate(self):
        sequencer = NonceSequencer()
        sequencer.record_local_send(0)

        assert sequencer.validate_remote(3) is False
        assert sequencer.remote_expected == 1
        assert sequencer.validate_remote(1) is True
        assert sequencer.remote_expected == 1

    def test_nothing_is_valid_before_first_send(self):
        sequencer = NonceSequencer()
        assert sequencer.validate_remote(0) is False
        assert sequencer.validate_remote(1) is False

    def test_full_handshake_sequence(self):
        sequencer = NonceSequencer()
        sent = []

        for _ in range(4):
            nonce = sequencer.next_local_nonce()
            sequencer.record_local_send(nonce)
            sent.append(nonce)

            reply = nonce + 1
            assert sequencer.validate_remote(reply)
            sequencer.record_remote(reply)

        assert sent == [0, 2, 4, 6]

    def test_reset_clears_state(self):
        sequencer = NonceSequencer()
        sequencer.record_local_send(4)
        sequencer.record_remote(5)

        sequencer.reset()

        assert sequencer.local_last_sent is None
        assert sequencer.remote_expected is None
        assert sequencer.next_local_nonce() == 0

    def test_counter_wraps_at_32_bits(self):
        sequencer = NonceSequencer()
        sequencer.record_local_send(0xFFFFFFFF)
        assert sequencer.remote_expected == 0

        sequencer.record_remote(0xFFFFFFFF)
        assert sequencer.next_local_nonce() == 0
