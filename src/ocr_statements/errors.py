"""
Exception hierarchy.

Row-level ambiguity is never raised: it lowers confidence and routes the
transaction to review. Only structural failures abort an operation.
"""


class StatementError(Exception):
    """Base exception for statement extraction errors."""

    pass


class InputError(StatementError):
    """Input document is empty or unsupported."""

    pass


class PersistenceError(StatementError):
    """Pattern store could not be loaded or saved."""

    pass


class ExternalFailure(StatementError):
    """The upstream OCR/text source failed for a document."""

    pass
