from __future__ import annotations


class EmptyCanvasError(ValueError):
    """Raised when a blank canvas is submitted for sale."""

    def __init__(self, message: str = "Paint something before submitting") -> None:
        super().__init__(message)


class NotFoundError(ValueError):
    pass


class AlreadySoldError(ValueError):
    pass


class EvaluationInProgressError(ValueError):
    pass


class NoOfferError(ValueError):
    pass


class PersistenceError(RuntimeError):
    """The store could not complete a read or write."""
