"""
Conveyor exceptions

This module defines the exception hierarchy for the conveyor package.
All conveyance-related errors inherit from ConveyorError base class.
"""


class ConveyorError(Exception):
    """
    Base exception for all conveyor errors.

    Catch this to handle any conveyance error generically.
    """

    pass


class AddressError(ConveyorError):
    """
    Exception raised when an object cannot be addressed.

    Raised before any transport call when:
    - No name was provided for an upload
    - The resulting object key would be empty
    """

    pass


class NotFoundError(ConveyorError):
    """
    Exception raised when something that must exist does not.

    This covers:
    - Remote key absent on head/get
    - Bucket missing or inaccessible during access verification
    - Local directory or file missing
    """

    pass


class ConveyorConfigError(ConveyorError):
    """
    Exception raised when conveyor configuration is invalid.

    This exception is raised during initialization when:
    - Required configuration parameters are missing
    - Configuration values are invalid
    - Store type is not recognized
    """

    pass


class InvalidUploadError(ConveyorError):
    """Exception raised when an API upload payload cannot be decoded."""

    pass


class ConveyanceCancelledError(ConveyorError):
    """Exception raised when a conveyance is cancelled through its cancel event."""

    pass


class TransportError(ConveyorError):
    """
    Exception raised when an object store operation fails.

    This exception wraps transport-specific errors such as:
    - Network errors and timeouts
    - Permission errors
    - Remote service unavailable

    Args:
        message: Description of the transport error
        originalError: The original exception that caused this error (optional)
    """

    def __init__(self, message: str, originalError: Exception | None = None):
        """
        Initialize TransportError with message and optional original error.

        Args:
            message: Description of the transport error
            originalError: The original exception that caused this error
        """
        super().__init__(message)
        self.originalError = originalError


class RetryExhaustedError(TransportError):
    """
    Exception raised when an upload keeps failing after every allowed attempt.

    Args:
        message: Description of the failure
        attempts: Number of attempts made
        originalError: The last transport error seen
    """

    def __init__(self, message: str, attempts: int, originalError: Exception | None = None):
        super().__init__(message, originalError=originalError)
        self.attempts = attempts
