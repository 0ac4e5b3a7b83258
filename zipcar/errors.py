class ZipcarError(Exception):
    """Base class for zipcar-specific errors."""


# Lookup
class NotFoundError(ZipcarError, LookupError):
    """Key is absent from the datastore at read time."""


# Argument validation
class InvalidKeyError(ZipcarError, TypeError):
    pass


class InvalidValueError(ZipcarError, TypeError):
    pass


class InvalidArgumentError(ZipcarError, TypeError):
    pass


# Capabilities
class UnsupportedOperationError(ZipcarError, NotImplementedError):
    """Operation is not available in the current create-mode."""


class UnimplementedError(ZipcarError, NotImplementedError):
    pass


# Lifecycle
class AlreadyOpenError(ZipcarError, RuntimeError):
    pass


class AlreadyClosedError(ZipcarError, RuntimeError):
    pass
