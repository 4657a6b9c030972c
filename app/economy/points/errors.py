class PointsError(Exception):
    pass


class InsufficientBalanceError(PointsError):
    pass


class PointsIdempotencyConflictError(PointsError):
    pass
