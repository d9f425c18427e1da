"""MiniTel-Lite protocol core."""
