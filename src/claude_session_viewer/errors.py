"""Error kinds raised by the session viewer core."""


class SessionViewerError(Exception):
    """Base class for all session viewer errors."""


class NotFoundError(SessionViewerError):
    """A project, session or trash item does not exist."""


class InvalidArgumentError(SessionViewerError):
    """An identifier or filter value is missing or unsafe."""


class DataLossError(SessionViewerError):
    """Trash metadata references a file that no longer exists."""


class LogReadError(SessionViewerError):
    """A session log could not be read to completion."""
