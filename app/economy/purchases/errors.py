class PurchaseError(Exception):
    pass


class SettlementValidationError(PurchaseError):
    pass


class InsufficientCreditsError(PurchaseError):
    pass


class UserNotFoundError(PurchaseError):
    pass


class ProductNotFoundError(PurchaseError):
    pass


class PurchaseIdempotencyConflictError(PurchaseError):
    pass


class PersistenceFailureError(PurchaseError):
    pass


class SettlementTimeoutError(PersistenceFailureError):
    pass
