# Overview: Read-only financial aggregation over transactions and orders.

from __future__ import annotations

from dataclasses import asdict, dataclass

from ..records import (
    METHOD_BANK_TRANSFER,
    METHOD_CASH,
    ORDERS,
    TRANSACTIONS,
    TXN_DEPOSIT_TO_HQ,
    TXN_EXPENSE,
    TXN_PAYMENT_RECEIVED,
)
from ..repository import Repository

"""
Financial Aggregation Rules (authoritative)

- rep_cash_on_hand: + payments; - deposits paid in cash or with no method;
  - expenses paid in cash
- transferred_to_hq: + deposits; - expenses paid by bank transfer
- total_collected: + payments. total_expenses: + expenses
- total_sales: sum of total_amount_cents over non-draft orders; returns carry
  a negative total and net out on their own
"""


@dataclass(frozen=True)
class FinancialStats:
    rep_cash_on_hand_cents: int = 0
    transferred_to_hq_cents: int = 0
    total_collected_cents: int = 0
    total_expenses_cents: int = 0
    total_sales_cents: int = 0

    @property
    def outstanding_cents(self) -> int:
        return self.total_sales_cents - self.total_collected_cents

    def to_dict(self) -> dict:
        data = asdict(self)
        data["outstanding_cents"] = self.outstanding_cents
        return data


def summarize_transactions(transactions) -> dict:
    cash = transferred = collected = expenses = 0

    for txn in transactions:
        if txn.type == TXN_PAYMENT_RECEIVED:
            cash += txn.amount_cents
            collected += txn.amount_cents
        elif txn.type == TXN_DEPOSIT_TO_HQ:
            transferred += txn.amount_cents
            if txn.payment_method in (None, METHOD_CASH):
                cash -= txn.amount_cents
        elif txn.type == TXN_EXPENSE:
            expenses += txn.amount_cents
            if txn.payment_method == METHOD_CASH:
                cash -= txn.amount_cents
            elif txn.payment_method == METHOD_BANK_TRANSFER:
                transferred -= txn.amount_cents

    return {
        "rep_cash_on_hand_cents": cash,
        "transferred_to_hq_cents": transferred,
        "total_collected_cents": collected,
        "total_expenses_cents": expenses,
    }


def total_sales(orders) -> int:
    return sum(order.total_amount_cents for order in orders if not order.is_draft)


def get_financial_stats(repo: Repository) -> FinancialStats:
    """Single pass over every transaction, plus the non-draft order totals."""
    with repo.atomic():
        transactions = repo.list(TRANSACTIONS)
        orders = repo.list(ORDERS)
    return FinancialStats(
        total_sales_cents=total_sales(orders),
        **summarize_transactions(transactions),
    )
