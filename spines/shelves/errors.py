class ShelfError(ValueError):
    """Base class for shelf ledger rule violations."""


class InvalidShelfError(ShelfError):
    pass


class AlreadyOnShelfError(ShelfError):
    pass


class NotOnShelfError(ShelfError):
    pass
