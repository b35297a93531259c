"""Event Recorder — EventSink that buffers committed ledger events for persistence."""

from crowdsale.core.ledger_events import LedgerEvent


class EventRecorder:
    """Collects published events until the service drains them into the audit table."""

    def __init__(self) -> None:
        self._pending: list[LedgerEvent] = []

    def publish(self, event: LedgerEvent) -> None:
        self._pending.append(event)

    def drain(self) -> list[LedgerEvent]:
        events, self._pending = self._pending, []
        return events
