"""Custom exception classes for a ClaimSync instance."""


class ClaimSyncException(Exception):
    """
    Base exception class for all ClaimSync errors.
    """
    pass


class AuthorizationError(ClaimSyncException):
    """
    Base class for authentication and authorization failures.
    """
    pass


class SyncSecretMismatchError(AuthorizationError):
    """
    Raised when a header-carried shared secret is missing or does not match.
    """
    pass


class InvalidSyncCredentialsError(AuthorizationError):
    """
    Raised when no linked workspace matches the supplied workspace, target and secret.
    """
    pass


class CronAuthorizationError(AuthorizationError):
    """
    Raised when a bulk sync is requested without a valid cron secret or service credential.
    """
    pass


class ServiceAuthorizationError(AuthorizationError):
    """
    Raised when an operator action is requested without the service bearer credential.
    """
    pass


class InvalidRequestError(ClaimSyncException):
    """
    Raised when a request body is malformed or misses required fields.
    """
    pass


class UnknownActionError(InvalidRequestError):
    """
    Raised when the request names an action this endpoint does not handle.
    """
    pass


class ClaimNotFoundError(ClaimSyncException):
    """
    Raised when a referenced claim does not exist.
    """
    pass


class LinkedWorkspaceNotFoundError(ClaimSyncException):
    """
    Raised when a referenced linked workspace does not exist.
    """
    pass


class StorageError(ClaimSyncException):
    """
    Raised when an object cannot be stored, found or signed.
    """
    pass


class PeerSyncError(ClaimSyncException):
    """
    Raised when a peer instance rejects or fails a sync request.
    """
    pass
