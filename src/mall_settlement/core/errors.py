"""Error taxonomy for settlement operations."""


class SettlementError(Exception):
    """Base error carrying a message safe to show to operators."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SettlementError):
    """Rejected input. Raised before any write happens."""

    status_code = 400


class NotFoundError(SettlementError):
    """Referenced entity does not exist or belongs to another company."""

    status_code = 404


class TransientStoreError(SettlementError):
    """Store failure during a batch; the batch was rolled back and can be retried."""

    status_code = 503
