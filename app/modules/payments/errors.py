"""Payment exceptions. Each carries the HTTP status reported to callers."""


class PaymentError(Exception):
    status_code = 400


class InvalidSignatureError(PaymentError):
    status_code = 401


class InvalidWebhookPayloadError(PaymentError):
    status_code = 400


class TransactionNotFoundError(PaymentError):
    status_code = 404

    def __init__(self, reference: str) -> None:
        super().__init__("Transaction not found")
        self.reference = reference


class DuplicateTransactionError(PaymentError):
    status_code = 409

    def __init__(self, reference: str) -> None:
        super().__init__("Transaction reference already exists")
        self.reference = reference


class UnsupportedGatewayError(PaymentError):
    def __init__(self, gateway_type: str) -> None:
        super().__init__("Invalid gateway type")
        self.gateway_type = gateway_type


class GatewayError(PaymentError):
    """The gateway could not be reached or answered with an error."""

    status_code = 502

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class PaymentRateLimitedError(PaymentError):
    status_code = 429

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Rate limit exceeded. Try again in {retry_after} seconds.")
        self.retry_after = retry_after
