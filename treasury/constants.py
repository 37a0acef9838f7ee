# Higher number means more privileges
ROLE_PRIORITY = {
    "VIEWER": 10,
    "TREASURER": 50,
    "ADMIN": 100,
}

WRITE_ROLES = ("ADMIN", "TREASURER")
ADMIN_ROLES = ("ADMIN",)


class DuesStatus:
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"

    UNSETTLED = (PENDING, PARTIAL)
    ALL = (PENDING, PARTIAL, PAID)


class TransactionType:
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"

    ALL = (INCOME, EXPENSE)


MIN_DUES_YEAR = 1970
MAX_DUES_YEAR = 9999
