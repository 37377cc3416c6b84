from conftest import line, order_of
from repledger.records import (
    METHOD_BANK_TRANSFER,
    METHOD_CASH,
    TRANSACTIONS,
    TXN_DEPOSIT_TO_HQ,
    TXN_EXPENSE,
    TXN_PAYMENT_RECEIVED,
    Transaction,
)
from repledger.services import order_service
from repledger.services.financial_service import get_financial_stats, summarize_transactions


def txn(txn_id, txn_type, amount, method=None):
    return Transaction(id=txn_id, type=txn_type, amount_cents=amount, payment_method=method)


def test_cash_and_hq_rules():
    summary = summarize_transactions([
        txn('t1', TXN_PAYMENT_RECEIVED, 1000),
        txn('t2', TXN_PAYMENT_RECEIVED, 500, METHOD_BANK_TRANSFER),
        txn('t3', TXN_DEPOSIT_TO_HQ, 300),
        txn('t4', TXN_DEPOSIT_TO_HQ, 200, METHOD_CASH),
        txn('t5', TXN_DEPOSIT_TO_HQ, 100, METHOD_BANK_TRANSFER),
        txn('t6', TXN_EXPENSE, 50, METHOD_CASH),
        txn('t7', TXN_EXPENSE, 70, METHOD_BANK_TRANSFER),
        txn('t8', TXN_EXPENSE, 11),
    ])

    assert summary == {
        # 1500 collected - 500 deposited in cash/unspecified - 50 cash expense
        'rep_cash_on_hand_cents': 950,
        # 600 deposited - 70 bank-paid expense
        'transferred_to_hq_cents': 530,
        'total_collected_cents': 1500,
        'total_expenses_cents': 131,
    }


def test_stats_net_returns_and_ignore_drafts(repo, make_product, customer):
    make_product('p1', stock=100)
    order_service.create_order(repo, order_of(line('p1', 10)))
    order_service.create_order(repo, order_of(line('p1', 50), is_draft=True))
    order_service.create_order(repo, order_of(line('p1', 2, condition='GOOD'), is_return=True))
    repo.insert(TRANSACTIONS, txn('t1', TXN_PAYMENT_RECEIVED, 4000))

    stats = get_financial_stats(repo)

    assert stats.total_sales_cents == 8000
    assert stats.total_collected_cents == 4000
    assert stats.outstanding_cents == 4000
    assert stats.to_dict()['rep_cash_on_hand_cents'] == 4000


def test_empty_store(repo):
    assert get_financial_stats(repo).to_dict() == {
        'rep_cash_on_hand_cents': 0,
        'transferred_to_hq_cents': 0,
        'total_collected_cents': 0,
        'total_expenses_cents': 0,
        'total_sales_cents': 0,
        'outstanding_cents': 0,
    }
