"""
MiniTel-Lite Emergency Protocol Client

An event-driven implementation of the MiniTel-Lite v3.0 protocol for the
NORAD JOSHUA override mission: frame codec, nonce sequencing, the
HELLO/DUMP/DUMP/STOP handshake orchestrator, session recording and TUI replay.
"""

__version__ = "1.1.0"
__author__ = "Agent LIGHTMAN"
__description__ = "MiniTel-Lite Emergency Protocol Client for NORAD JOSHUA Override Mission"
