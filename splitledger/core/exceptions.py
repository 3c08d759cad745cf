class SplitError(Exception):
    """Base class for rejected expense or settlement input.

    Raised before anything is written. None of these are retryable, they
    always point at bad caller input.
    """

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SplitError):
    """Split amounts or percentages don't add up, or the input is malformed."""


class MembershipError(SplitError):
    """A payer or split participant is not a member of the group."""

    status_code = 403


class PaymentMismatchError(SplitError):
    """Payer amounts don't sum to the expense total."""
