class ReconciliationError(Exception):
    pass


class InvalidPeriodError(ReconciliationError):
    pass


class UnknownViewError(ReconciliationError):
    pass
