"""Keyboard input handling."""

from blessed.keyboard import Keystroke

from ..common.constants import SEEK_STEP

# Seek mappings: key name -> seconds
SEEK_KEYS = {
    "KEY_LEFT": -SEEK_STEP,
    "KEY_RIGHT": SEEK_STEP,
}


def get_seek_delta(key: Keystroke) -> float | None:
    """Get seek offset from key press, or None if not a seek key."""
    if key.name in SEEK_KEYS:
        return SEEK_KEYS[key.name]
    # Vim-style fallbacks
    if str(key).lower() == "h":
        return -SEEK_STEP
    if str(key).lower() == "l":
        return SEEK_STEP
    return None


def is_toggle_key(key: Keystroke) -> bool:
    """Check if key toggles play/pause (Space)."""
    return str(key) == " "


def is_quit_key(key: Keystroke) -> bool:
    """Check if key is the quit key."""
    return str(key).lower() == "q"
