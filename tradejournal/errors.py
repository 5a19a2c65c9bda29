"""
errors.py
---------

Exceptions raised by the persistence store and surfaced by the web app.
The analytics engines never raise; they degrade to ``None`` or ``[]``.
"""


class JournalError(Exception):
    """Base class for journal errors."""


class RecordNotFound(JournalError, LookupError):
    """No trade/account/template/mistake with the requested id."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class InvalidRecord(JournalError, ValueError):
    """Submitted data cannot be turned into a record."""
