"""Errors raised by the utility layer."""


class UtilError(Exception):
    pass


class RetryExhaustedError(UtilError):
    """Every attempt allowed by the retry policy failed with a retryable error.

    Attributes:
        attempts: How many attempts were made
        last_error: The error from the final attempt
    """

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
