class CareBookError(Exception):
    pass


class NotFoundError(CareBookError):
    pass


class InvalidArgumentError(CareBookError):
    pass


class InvalidTransitionError(CareBookError):
    pass


class DuplicateCustomerError(CareBookError):
    pass


class StorageError(CareBookError):
    """The record store could not be read or written (including timeouts)."""
