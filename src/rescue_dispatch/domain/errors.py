class RecordValidationError(Exception):
    """Raised when a record fetched from the backing store has an unexpected shape."""

    def __init__(self, kind: str, record_id: str | None, reason: str) -> None:
        super().__init__(f"Invalid {kind} record {record_id or '<unknown>'}: {reason}")
        self.kind = kind
        self.record_id = record_id


class JobFailedError(Exception):
    """Raised when a batch job finishes with unhandled items."""
