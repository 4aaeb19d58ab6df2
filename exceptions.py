"""Exception hierarchy for the ledger."""


class LedgerError(Exception):
    """Base exception for all ledger errors."""


class DuplicateEventIdError(LedgerError):
    """Raised when a transaction id has already been admitted.

    The offending event is dropped before it reaches any account.
    """

    def __init__(self, event_id: int):
        self.event_id = event_id
        super().__init__(f"duplicate transaction id: {event_id}")


class InvalidRecordError(LedgerError):
    """Raised when an input row cannot be turned into an event."""

    def __init__(self, line_num: int, reason: str):
        self.line_num = line_num
        self.reason = reason
        super().__init__(f"invalid record on line {line_num}: {reason}")
