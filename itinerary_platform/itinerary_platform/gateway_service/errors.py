"""
Error taxonomy for the gateway.

Startup errors abort the process. Credential errors are raised per request
and carry the HTTP status and the public message that is safe to return.
"""


# --- Startup ---
class ConfigError(Exception):
    """Required database configuration is missing."""


class ConnectError(Exception):
    """The database could not be reached after the bounded retries."""


# --- Credential Service ---
class CredentialError(Exception):
    status_code = 500
    message = "internal server error"

    def __init__(self, message: str = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(CredentialError):
    status_code = 400
    message = "username and password required"


class HashError(CredentialError):
    status_code = 500
    message = "failed to hash password"


class DuplicateUserError(CredentialError):
    status_code = 400
    message = "username already exists"


class InvalidCredentialsError(CredentialError):
    status_code = 401
    message = "invalid username or password"


class StoreError(CredentialError):
    status_code = 500
    message = "internal server error"


# --- Credential Store Adapter ---
class CredentialStoreError(Exception):
    pass


class ConstraintViolation(CredentialStoreError):
    """Insert rejected by a uniqueness constraint."""


class UserNotFound(CredentialStoreError):
    """No row for the requested username."""


class StoreIOError(CredentialStoreError):
    """Backend failure (connection, query, driver)."""
