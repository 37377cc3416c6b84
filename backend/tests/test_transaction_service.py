"""Transaction ledger: payment and stock-purchase reconciliation."""

import pytest

from conftest import line, order_of, stock_of
from repledger.records import (
    METHOD_BANK_TRANSFER,
    ORDERS,
    PRODUCTS,
    PROVIDERS,
    STATUS_PAID,
    STATUS_PARTIAL,
    STATUS_PENDING,
    STATUS_RETURNED,
    TRANSACTIONS,
    TXN_EXPENSE,
    TXN_PAYMENT_RECEIVED,
    PaidItem,
    Provider,
    Transaction,
    TransactionMetadata,
)
from repledger.services import order_service, transaction_service
from repledger.services.transaction_service import (
    parse_legacy_expense_quantity,
    parse_legacy_paid_items,
)
from repledger.validation import NotFoundError, ValidationError


def payment(txn_id, order_id, amount, **kwargs):
    return Transaction(
        id=txn_id,
        type=TXN_PAYMENT_RECEIVED,
        amount_cents=amount,
        reference_id=order_id,
        **kwargs,
    )


@pytest.fixture
def open_order(repo, make_product, customer):
    make_product('p1', name='Alpha', stock=100, price_cents=20)
    make_product('p2', name='Beta', stock=100, price_cents=40)
    change = order_service.create_order(
        repo,
        order_of(line('p1', 5, price_cents=20, name='Alpha'), line('p2', 2, price_cents=40, name='Beta')),
    )
    assert change.order.total_amount_cents == 180
    return change.order


def test_payment_scenario(repo, make_product, customer):
    make_product('p1', stock=100, price_cents=20)
    order = order_service.create_order(repo, order_of(line('p1', 10, price_cents=20))).order
    assert order.total_amount_cents == 200
    assert order.status == STATUS_PENDING

    first = transaction_service.record_transaction(repo, payment('TXN-80', order.id, 80))
    assert first.order.paid_amount_cents == 80
    assert first.order.status == STATUS_PARTIAL

    second = transaction_service.record_transaction(repo, payment('TXN-120', order.id, 120))
    assert second.order.paid_amount_cents == 200
    assert second.order.status == STATUS_PAID

    transaction_service.delete_transaction(repo, 'TXN-120')
    stored = repo.get(ORDERS, order.id)
    assert stored.paid_amount_cents == 80
    assert stored.status == STATUS_PARTIAL
    assert repo.get(TRANSACTIONS, 'TXN-120') is None


def test_deleting_only_payment_returns_to_pending(repo, open_order):
    transaction_service.record_transaction(repo, payment('TXN-1', open_order.id, 180))
    assert repo.get(ORDERS, open_order.id).status == STATUS_PAID

    transaction_service.delete_transaction(repo, 'TXN-1')

    stored = repo.get(ORDERS, open_order.id)
    assert stored.paid_amount_cents == 0
    assert stored.status == STATUS_PENDING


def test_return_status_never_moves_with_payments(repo, make_product, customer):
    make_product('p1', stock=10)
    refund = order_service.create_order(repo, order_of(line('p1', 1, condition='GOOD'), is_return=True)).order

    change = transaction_service.record_transaction(repo, payment('TXN-1', refund.id, 500))

    assert change.order.paid_amount_cents == 500
    assert change.order.status == STATUS_RETURNED


def test_skip_order_update_leaves_order_alone(repo, open_order):
    meta = TransactionMetadata(skip_order_update=True)
    transaction_service.record_transaction(repo, payment('TXN-1', open_order.id, 50, metadata=meta))
    assert repo.get(ORDERS, open_order.id).paid_amount_cents == 0

    transaction_service.update_transaction(repo, 'TXN-1', amount_cents=70)
    assert repo.get(ORDERS, open_order.id).paid_amount_cents == 0

    transaction_service.delete_transaction(repo, 'TXN-1')
    assert repo.get(ORDERS, open_order.id).paid_amount_cents == 0


def test_payment_amount_edit_applies_difference(repo, open_order):
    transaction_service.record_transaction(repo, payment('TXN-1', open_order.id, 180))
    assert repo.get(ORDERS, open_order.id).status == STATUS_PAID

    change = transaction_service.update_transaction(repo, 'TXN-1', amount_cents=100)

    assert change.order.paid_amount_cents == 100
    assert change.order.status == STATUS_PARTIAL
    assert repo.get(TRANSACTIONS, 'TXN-1').amount_cents == 100


def test_paid_items_settle_and_unsettle_with_floor(repo, open_order):
    meta = TransactionMetadata(paid_items=(PaidItem('p1', 3), PaidItem('p2', 1)))
    transaction_service.record_transaction(repo, payment('TXN-1', open_order.id, 100, metadata=meta))

    items = {i.product_id: i.paid_quantity for i in repo.get(ORDERS, open_order.id).items}
    assert items == {'p1': 3, 'p2': 1}

    # A record claiming more than was ever settled cannot push below zero
    repo.insert(TRANSACTIONS, payment(
        'TXN-LEGACY',
        open_order.id,
        10,
        metadata=TransactionMetadata(paid_items=(PaidItem('p1', 5),)),
    ))
    transaction_service.delete_transaction(repo, 'TXN-LEGACY')

    stored = repo.get(ORDERS, open_order.id)
    assert {i.product_id: i.paid_quantity for i in stored.items} == {'p1': 0, 'p2': 1}
    assert stored.paid_amount_cents == 90


def test_legacy_payment_description_is_reversed_by_name(repo, open_order):
    meta = TransactionMetadata(paid_items=(PaidItem('p1', 2), PaidItem('p2', 1)))
    transaction_service.record_transaction(repo, payment(
        'TXN-1', open_order.id, 80, description='Payment for: 2x Alpha, 1x Beta', metadata=meta,
    ))
    # Older records carry only the description
    repo.update(TRANSACTIONS, 'TXN-1', metadata=TransactionMetadata())

    transaction_service.delete_transaction(repo, 'TXN-1')

    stored = repo.get(ORDERS, open_order.id)
    assert [i.paid_quantity for i in stored.items] == [0, 0]
    assert stored.paid_amount_cents == 0


def test_stock_purchase_quantity_edit_and_delete(repo, make_product):
    make_product('p1', name='Alpha', stock=100)
    repo.insert(PROVIDERS, Provider(id='prv1', name='Pharma Supply'))

    change = transaction_service.record_stock_purchase(
        repo,
        product_id='p1',
        quantity=10,
        cost_cents=5000,
        provider_id='prv1',
        payment_method=METHOD_BANK_TRANSFER,
    )
    txn = change.transaction
    assert stock_of(repo, 'p1') == 110
    assert txn.type == TXN_EXPENSE
    assert txn.description == 'Stock Purchase: 10x Alpha'
    assert txn.metadata.quantity == 10
    assert txn.provider_name == 'Pharma Supply'

    edited = transaction_service.update_transaction(
        repo, txn.id, metadata=TransactionMetadata(quantity=15, product_id='p1'),
    )
    assert edited.stock.applied == {'p1': 5}
    assert stock_of(repo, 'p1') == 115

    transaction_service.delete_transaction(repo, txn.id)
    assert stock_of(repo, 'p1') == 100


def test_legacy_expense_is_reversed_from_description(repo, make_product):
    make_product('p1', name='Alpha', stock=100)
    repo.insert(TRANSACTIONS, Transaction(
        id='TXN-OLD',
        type=TXN_EXPENSE,
        amount_cents=700,
        reference_id='p1',
        description='Stock Purchase: 7x Alpha',
    ))

    transaction_service.delete_transaction(repo, 'TXN-OLD')

    assert stock_of(repo, 'p1') == 93


def test_stock_purchase_requires_known_product(repo):
    with pytest.raises(NotFoundError):
        transaction_service.record_stock_purchase(repo, product_id='nope', quantity=1, cost_cents=100)
    with pytest.raises(ValidationError):
        transaction_service.record_stock_purchase(repo, product_id='nope', quantity=0, cost_cents=100)


def test_failed_stock_purchase_leaves_nothing_behind(repo, make_product):
    make_product('p1', stock=100)

    with pytest.raises(NotFoundError):
        transaction_service.record_stock_purchase(
            repo, product_id='p1', quantity=5, cost_cents=100, provider_id='missing',
        )

    assert stock_of(repo, 'p1') == 100
    assert repo.list(TRANSACTIONS) == []


def test_delete_of_unknown_transaction_is_a_no_op(repo):
    assert transaction_service.delete_transaction(repo, 'TXN-NOPE') is None


def test_update_of_unknown_transaction_fails(repo):
    with pytest.raises(NotFoundError):
        transaction_service.update_transaction(repo, 'TXN-NOPE', amount_cents=10)


def test_amount_must_be_positive(repo, open_order):
    with pytest.raises(ValidationError):
        transaction_service.record_transaction(repo, payment('TXN-1', open_order.id, 0))
    transaction_service.record_transaction(repo, payment('TXN-2', open_order.id, 10))
    with pytest.raises(ValidationError):
        transaction_service.update_transaction(repo, 'TXN-2', amount_cents=-5)
    assert repo.get(ORDERS, open_order.id).paid_amount_cents == 10


def test_payment_for_missing_order_is_still_recorded(repo):
    change = transaction_service.record_transaction(repo, payment('TXN-1', 'ORD-GONE', 10))

    assert change.order is None
    assert repo.get(TRANSACTIONS, 'TXN-1') is not None


@pytest.mark.parametrize("description, expected", [
    ("Stock Purchase: 50x Colitra Plus", 50),
    ("stock purchase: 3 x Rolltron", 3),
    ("Office rent", None),
    ("", None),
    (None, None),
])
def test_parse_legacy_expense_quantity(description, expected):
    assert parse_legacy_expense_quantity(description) == expected


def test_parse_legacy_paid_items():
    assert parse_legacy_paid_items("Payment for: 3x Colitra Plus Tab, 2x Rolltron Cream 55") == [
        ("Colitra Plus Tab", 3),
        ("Rolltron Cream 55", 2),
    ]
    assert parse_legacy_paid_items("Lump sum payment") == []
    assert parse_legacy_paid_items(None) == []


@pytest.fixture
def second_order(repo, open_order):
    return order_service.create_order(repo, order_of(line('p1', 1, price_cents=20, name='Alpha'))).order


def test_payment_cannot_be_moved_to_another_order(repo, open_order, second_order):
    transaction_service.record_transaction(repo, payment('TXN-1', open_order.id, 80))

    with pytest.raises(ValidationError):
        transaction_service.update_transaction(repo, 'TXN-1', reference_id=second_order.id)

    transaction_service.delete_transaction(repo, 'TXN-1')
    first = repo.get(ORDERS, open_order.id)
    second = repo.get(ORDERS, second_order.id)
    assert (first.paid_amount_cents, first.status) == (0, STATUS_PENDING)
    assert (second.paid_amount_cents, second.status) == (0, STATUS_PENDING)


def test_payment_cannot_change_type(repo, open_order):
    transaction_service.record_transaction(repo, payment('TXN-1', open_order.id, 80))

    with pytest.raises(ValidationError):
        transaction_service.update_transaction(repo, 'TXN-1', type=TXN_EXPENSE)
    assert repo.get(TRANSACTIONS, 'TXN-1').type == TXN_PAYMENT_RECEIVED

    transaction_service.delete_transaction(repo, 'TXN-1')
    assert repo.get(ORDERS, open_order.id).paid_amount_cents == 0


@pytest.mark.parametrize('metadata', [
    TransactionMetadata(skip_order_update=True),
    TransactionMetadata(paid_items=(PaidItem('p1', 2),)),
])
def test_payment_reversal_metadata_is_fixed(repo, open_order, metadata):
    transaction_service.record_transaction(repo, payment('TXN-1', open_order.id, 80))

    with pytest.raises(ValidationError):
        transaction_service.update_transaction(repo, 'TXN-1', metadata=metadata)

    stored = repo.get(ORDERS, open_order.id)
    assert stored.paid_amount_cents == 80
    assert [i.paid_quantity for i in stored.items] == [0, 0]


def test_legacy_payment_description_is_fixed(repo, open_order):
    transaction_service.record_transaction(
        repo, payment('TXN-1', open_order.id, 60, description='Payment for: 3x Alpha'),
    )

    with pytest.raises(ValidationError):
        transaction_service.update_transaction(repo, 'TXN-1', description='Payment for: 1x Beta')

    # Free text outside the itemized part may still change
    edited = transaction_service.update_transaction(repo, 'TXN-1', description='Payment for: 3x Alpha ')
    assert edited.transaction.description == 'Payment for: 3x Alpha '


def test_expense_cannot_move_to_another_product(repo, make_product):
    make_product('p1', name='Alpha', stock=100)
    make_product('p2', name='Beta', stock=100)
    txn = transaction_service.record_stock_purchase(repo, product_id='p1', quantity=10, cost_cents=500).transaction

    with pytest.raises(ValidationError):
        transaction_service.update_transaction(repo, txn.id, reference_id='p2')

    transaction_service.delete_transaction(repo, txn.id)
    assert stock_of(repo, 'p1') == 100
    assert stock_of(repo, 'p2') == 100


def test_legacy_expense_quantity_is_fixed(repo, make_product):
    make_product('p1', name='Alpha', stock=100)
    repo.insert(TRANSACTIONS, Transaction(
        id='TXN-OLD',
        type=TXN_EXPENSE,
        amount_cents=700,
        reference_id='p1',
        description='Stock Purchase: 7x Alpha',
    ))

    with pytest.raises(ValidationError):
        transaction_service.update_transaction(repo, 'TXN-OLD', description='Stock Purchase: 9x Alpha')
    with pytest.raises(ValidationError):
        transaction_service.update_transaction(repo, 'TXN-OLD', metadata=TransactionMetadata(quantity=9))

    transaction_service.update_transaction(repo, 'TXN-OLD', amount_cents=900)
    transaction_service.delete_transaction(repo, 'TXN-OLD')
    assert stock_of(repo, 'p1') == 93
