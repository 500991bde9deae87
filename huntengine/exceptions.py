"""Hunt engine error taxonomy."""


class HuntEngineError(Exception):
    """Base class for errors raised by the hunt engine."""

    status_code = 500


class ValidationError(HuntEngineError):
    """Bad indicator value, empty hunt name, unknown enum value."""

    status_code = 422


class NotFoundError(HuntEngineError):
    """Unknown indicator, hunt job or match id."""

    status_code = 404


class SourceUnavailableError(HuntEngineError):
    """A match source could not complete its query."""

    status_code = 503

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source} source unavailable: {message}")
        self.source = source


class ConflictError(HuntEngineError):
    """Operation not allowed in the current state, e.g. deleting a running hunt."""

    status_code = 409
