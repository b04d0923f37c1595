# modules/common/errors.py
"""
Error taxonomy shared by the assessment flow, admin panels and billing.

- ValidationError: bad / missing user input. Shown inline, never fatal.
- NotFoundError:   a referenced record does not exist (e.g. skill without
                   a questionnaire).
- RemoteCallError: the store, the scoring function or the billing provider
                   failed. Callers log it and leave the action retryable.
"""


class MentorError(Exception):
    """Base class; `message` is safe to flash to the user."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MentorError):
    default_message = "Please fill in all required fields"


class NotFoundError(MentorError):
    default_message = "Not found"


class RemoteCallError(MentorError):
    default_message = "The request could not be completed. Please try again."
