from cashrunway.models.enums import CashFlowDirection, TransactionStatus
from cashrunway.models.forecast import CashflowForecast, ForecastBatchRun
from cashrunway.models.transactions import Expense, Invoice, WalletBalance
from cashrunway.models.user import User

__all__ = [
    "CashFlowDirection",
    "TransactionStatus",
    "CashflowForecast",
    "ForecastBatchRun",
    "Expense",
    "Invoice",
    "WalletBalance",
    "User",
]
