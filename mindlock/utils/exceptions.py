"""Custom exceptions for MindLock."""


class MindLockError(Exception):
    """Base exception for MindLock errors."""

    pass


class ConfigurationError(MindLockError):
    """Invalid exam configuration; no session is created."""

    pass


class NotFoundError(MindLockError):
    """A question, course or session id did not resolve."""

    pass


class PersistenceError(MindLockError):
    """The question/course store failed to read or write."""

    pass


class SessionClosedError(MindLockError):
    """Mutation attempted on a submitted or discarded session."""

    pass
