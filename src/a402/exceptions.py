"""
a402 custom exception hierarchy
"""


class A402Error(Exception):
    """a402 base exception"""

    pass


class ConfigurationError(A402Error):
    """Configuration-related error"""

    pass


class UnknownNetworkError(ConfigurationError):
    """Unsupported or unconfigured network"""

    def __init__(self, network: str | None):
        self.network = network
        super().__init__(f"Unknown network: {network}")


class UnknownTokenError(ConfigurationError):
    """Unknown token"""

    pass


class ValidationError(A402Error):
    """Validation-related error"""

    pass


class MalformedPayloadError(ValidationError):
    """Authorization or signature is missing or ill-formed"""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Malformed field: {field}")


class ChainReadError(A402Error):
    """A read-only contract call failed or timed out"""

    def __init__(self, method: str, contract: str, cause: BaseException | None = None):
        self.method = method
        self.contract = contract
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Chain read {method}() on {contract} failed{detail}")


class SettlementError(A402Error):
    """Settlement-related error"""

    pass


class TransactionError(SettlementError):
    """Transaction-related error"""

    pass


class TransactionSubmissionError(TransactionError):
    """Transaction could not be built, signed or broadcast"""

    pass


class TransactionTimeoutError(TransactionError):
    """Transaction was submitted but not confirmed in time"""

    def __init__(self, tx_hash: str, timeout: float):
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(f"Transaction {tx_hash} not confirmed within {timeout}s")
