"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidAmountError(DomainException):
    """Amount is negative, zero where a positive value is required, or otherwise unusable"""

    pass


class InvalidTransactionDataError(DomainException):
    """Transaction data is malformed or invalid"""

    pass


class CustomerNotFoundError(DomainException):
    """No customer exists with the given id"""

    pass


class TransactionNotFoundError(DomainException):
    """No live transaction exists with the given id"""

    pass


class RepairError(DomainException):
    """Balance repair failed and was rolled back"""

    pass
