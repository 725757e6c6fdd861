"""Terminal UI rendering with blessed."""

from __future__ import annotations

from blessed import Terminal

from ..common.formatting import format_duration, format_offset
from ..common.protocol import PlaybackState, WatcherStatus

STATE_GLYPHS = {
    PlaybackState.PLAYING: ">",
    PlaybackState.PAUSED: "=",
}

# Offsets beyond this many seconds are highlighted as out of sync
DRIFT_WARNING = 2.0

NAME_WIDTH = 20


class TerminalUI:
    def __init__(self, terminal: Terminal):
        self.term = terminal

    def _watcher_row(
        self, watcher: WatcherStatus, local_id: str | None, local_position: float
    ) -> str:
        glyph = STATE_GLYPHS[watcher.state]
        name = watcher.name[:NAME_WIDTH].ljust(NAME_WIDTH)
        position = format_duration(watcher.position).rjust(10)
        buffered = format_offset(watcher.buffered).rjust(9)
        if watcher.id == local_id:
            return f"  {glyph} {self.term.bold(name)} {position} {buffered}   (you)"

        offset = watcher.position - local_position
        offset_text = format_offset(offset).rjust(9)
        if abs(offset) > DRIFT_WARNING:
            offset_text = str(self.term.red(offset_text))
        return f"  {glyph} {name} {position} {buffered} {offset_text}"

    def render(
        self,
        room: str,
        name: str,
        session_state: str,
        position: float,
        paused: bool,
        buffered: float,
        watchers: list[WatcherStatus],
        local_id: str | None,
    ) -> None:
        """Render the session state to the terminal."""
        clear_eol = self.term.clear_eol
        output: list[str] = [str(self.term.home)]

        output.append(
            f"{self.term.bold('syncwatch')}  room: {room}  as: {name}  "
            f"[{session_state}]{clear_eol}"
        )
        state = "paused" if paused else "playing"
        output.append(
            f"{state} at {format_duration(position)} "
            f"(buffered {format_offset(buffered)}){clear_eol}"
        )
        output.append(clear_eol)
        output.append(f"Watchers ({len(watchers)}):{clear_eol}")
        for watcher in watchers:
            output.append(
                self._watcher_row(watcher, local_id, position) + clear_eol
            )
        output.append(clear_eol)
        output.append(
            f"Controls: Space=Play/Pause, Left/Right=Seek, Q=Quit{clear_eol}"
        )

        print("\n".join(output) + str(self.term.clear_eos), end="", flush=True)

    def cleanup(self) -> None:
        """Restore terminal state."""
        print(self.term.normal + self.term.clear, end="")
