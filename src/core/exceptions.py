"""Exception types shared by the auth, datastore and sync layers."""


class BookmarkServiceError(Exception):
    """Base class for errors raised by this service."""


class ConfigurationError(BookmarkServiceError):
    """Identity provider credentials are missing or malformed."""


class AuthExchangeError(BookmarkServiceError):
    """
    The identity provider rejected a token request (code exchange, refresh or sign-out).

    `status_code` is the provider's HTTP status, or None when the request never
    got a response (timeout, connection failure).
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class DataOperationError(BookmarkServiceError):
    """A fetch, insert or delete against the bookmarks datastore failed."""


class SubscriptionError(BookmarkServiceError):
    """The live change feed could not be opened or broke while reading."""
