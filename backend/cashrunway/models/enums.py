import enum


class TransactionStatus(str, enum.Enum):
    draft = "draft"
    pending = "pending"
    paid = "paid"
    void = "void"


class CashFlowDirection(str, enum.Enum):
    inflow = "inflow"
    outflow = "outflow"
