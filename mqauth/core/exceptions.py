"""Error taxonomy for the user store and topic authorization."""


class AuthStoreError(Exception):
    """Base class for every error raised by the store and authorization model."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidInputError(AuthStoreError):
    """Raised for malformed input: blank required field, trailing-slash pattern, no rights."""


class NotFoundError(AuthStoreError):
    """Raised when a user or a topic pattern does not exist."""


class UserNotFoundError(NotFoundError):
    def __init__(self, username: str = "") -> None:
        self.username = username
        super().__init__("User not found")


class TopicNotFoundError(NotFoundError):
    def __init__(self, topic: str) -> None:
        self.topic = topic
        super().__init__("Topic not found")


class AlreadyExistsError(AuthStoreError):
    """Raised on a duplicate username or a duplicate topic pattern for a user."""


class UserAlreadyExistsError(AlreadyExistsError):
    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__("User already exists")


class TopicAlreadyExistsError(AlreadyExistsError):
    def __init__(self, topic: str) -> None:
        self.topic = topic
        super().__init__("Topic already exists")


class InvalidCredentialsError(AuthStoreError):
    """Raised when a password does not verify against the stored hash."""

    def __init__(self, message: str = "Passwords don't match") -> None:
        super().__init__(message)


class StorageError(AuthStoreError):
    """Raised when the durable backend cannot be read or written."""


class HashingError(AuthStoreError):
    """Raised when a password hash cannot be computed. Fatal to the operation only."""
