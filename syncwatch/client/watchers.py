"""Latest known playback status of every watcher in the room."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from ..common.protocol import WatcherStatus


class WatcherTable:
    """Peer id -> status, rebuilt wholesale from each roster.

    Peers only disappear by being absent from a later roster; entries
    never expire on their own.
    """

    def __init__(self) -> None:
        self._watchers: dict[str, WatcherStatus] = {}

    def replace_all(self, statuses: Iterable[WatcherStatus]) -> None:
        self._watchers = {status.id: status for status in statuses}

    def get(self, peer_id: str) -> WatcherStatus | None:
        return self._watchers.get(peer_id)

    def snapshot(self) -> list[WatcherStatus]:
        """Watchers in roster order."""
        return list(self._watchers.values())

    def __len__(self) -> int:
        return len(self._watchers)

    def __contains__(self, peer_id: object) -> bool:
        return peer_id in self._watchers

    def __iter__(self) -> Iterator[WatcherStatus]:
        return iter(self.snapshot())
