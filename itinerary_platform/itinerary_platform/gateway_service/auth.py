import logging

from passlib.context import CryptContext

from .errors import (
    ConstraintViolation,
    DuplicateUserError,
    HashError,
    InvalidCredentialsError,
    StoreError,
    StoreIOError,
    UserNotFound,
    ValidationError,
)
from .store import CredentialStore

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10

# bcrypt only reads 72 bytes; longer passwords are refused instead of truncated
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__default_rounds=BCRYPT_ROUNDS,
    bcrypt__truncate_error=True,
)


class CredentialService:
    """Registers users and checks their passwords against the store."""

    def __init__(self, store: CredentialStore, context: CryptContext = pwd_context):
        self.store = store
        self.context = context

    @staticmethod
    def _validate(username: str, password: str) -> None:
        if not isinstance(username, str) or not isinstance(password, str):
            raise ValidationError()
        if username == "" or password == "":
            raise ValidationError()

    def register(self, username: str, password: str) -> None:
        """
        Hash the password and store a new user.

        Raises:
            ValidationError: username or password is empty.
            HashError: hashing failed; nothing is stored.
            DuplicateUserError: the username is already registered.
            StoreError: any other store failure.
        """
        self._validate(username, password)

        try:
            password_hash = self.context.hash(password)
        except (ValueError, RuntimeError, MemoryError) as e:
            logger.error("Password hashing failed for registration of %r: %s", username, type(e).__name__)
            raise HashError() from e

        try:
            self.store.insert_user(username, password_hash)
        except ConstraintViolation as e:
            logger.info("Registration rejected, username %r already exists", username)
            raise DuplicateUserError() from e
        except StoreIOError as e:
            logger.exception("Failed to save user %r", username)
            raise StoreError("failed to save user") from e

        logger.info("User registered: username=%s", username)

    def authenticate(self, username: str, password: str) -> None:
        """
        Check a username/password pair.

        Unknown users and wrong passwords raise the same InvalidCredentialsError.
        """
        self._validate(username, password)

        try:
            stored_hash = self.store.fetch_password_hash(username)
        except UserNotFound:
            # Spend the same hashing time as a real comparison
            self.context.dummy_verify()
            raise InvalidCredentialsError() from None
        except StoreIOError as e:
            logger.exception("Credential lookup failed for %r", username)
            raise StoreError() from e

        try:
            matched = self.context.verify(password, stored_hash)
        except (ValueError, TypeError):
            logger.warning("Stored password hash for %r could not be parsed", username)
            matched = False

        if not matched:
            raise InvalidCredentialsError()
