class CryptoError(Exception):
    """Base class of the errors raised by clcred."""


class CryptoArithmeticError(CryptoError):
    """A big number operation failed."""


class CryptoInvalidData(CryptoError):
    """The input data is inconsistent with the requested operation."""


class CryptoInvalidState(CryptoError):
    """The object is not in a state which allows the requested operation."""
