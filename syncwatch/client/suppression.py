"""Echo suppression for player completions.

A player cannot tell "the user paused" from "the engine paused to apply
a remote command". The engine brackets its own calls by marking the
control kind suppressed first; the next completion of that kind clears
the mark instead of being reported as user intent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from ..common.protocol import ControlKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserIntent:
    kind: ControlKind
    position: float


class EchoSuppressor:
    """One armed/suppressed latch per control kind.

    Each latch is a single boolean, not a counter: two suppressed
    operations of the same kind must never be in flight at once.
    """

    def __init__(
        self,
        on_user_intent: Callable[[UserIntent], None],
        position: Callable[[], float],
    ) -> None:
        self._on_user_intent = on_user_intent
        self._position = position
        self._suppressed = {kind: False for kind in ControlKind}

    def mark_suppressed(self, kind: ControlKind) -> None:
        """Attribute the next completion of this kind to the engine."""
        self._suppressed[kind] = True

    def arm(self, kind: ControlKind) -> None:
        """Return a latch to armed, e.g. after a suppressed call failed."""
        self._suppressed[kind] = False

    def is_suppressed(self, kind: ControlKind) -> bool:
        return self._suppressed[kind]

    def on_completed(self, kind: ControlKind) -> UserIntent | None:
        """Classify a completion; report it only when user-driven."""
        if self._suppressed[kind]:
            self._suppressed[kind] = False
            logger.debug(f"Suppressed {kind.value} completion")
            return None

        intent = UserIntent(kind, self._position())
        logger.debug(f"User {kind.value} at {intent.position:.2f}")
        self._on_user_intent(intent)
        return intent
