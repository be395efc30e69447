from collections.abc import Callable

from driverflow.engine import MembershipEngine
from driverflow.models import Result, Snapshot
from driverflow.operations import Operation

Listener = Callable[[Snapshot, Snapshot], None]


class InMemorySnapshotStore:
    """
    Simple in-memory holder for the current snapshot.

    Listeners are called with ``(previous, current)`` after every commit.
    """

    def __init__(self, snapshot: Snapshot | None = None) -> None:
        self._snapshot = snapshot if snapshot is not None else Snapshot()
        self._listeners: list[Listener] = []

    def load(self) -> Snapshot:
        return self._snapshot

    def commit(self, snapshot: Snapshot) -> None:
        previous = self._snapshot
        self._snapshot = snapshot
        for listener in list(self._listeners):
            listener(previous, snapshot)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def clear(self) -> None:
        self.commit(Snapshot())

    def apply(self, engine: MembershipEngine, operation: Operation) -> Result:
        """
        Run one operation against the current snapshot and commit the
        outcome. Rejected operations leave the store untouched.
        """
        snapshot, result = engine.apply(self._snapshot, operation)
        if result.success:
            self.commit(snapshot)
        return result
