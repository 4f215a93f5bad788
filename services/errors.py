class CashbookError(Exception):
    """Base error for reporting / closing services."""


class InvalidPeriodError(CashbookError):
    pass


class AccessDeniedError(CashbookError):
    pass
