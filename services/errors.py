# services/errors.py


class FeedInputError(ValueError):
    """Bad feed payload from the client (maps to HTTP 400)."""


class EmptyFeedError(FeedInputError):
    pass


class FeedParseError(FeedInputError):
    pass


class NoEntriesError(FeedInputError):
    pass


class CatalogPersistenceError(RuntimeError):
    """Any failure talking to the catalog database (maps to HTTP 500)."""
