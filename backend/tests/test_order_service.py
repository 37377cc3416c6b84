"""Order lifecycle: stock effects are applied exactly once per order state."""

import threading
from dataclasses import replace

import pytest

from conftest import line, order_of, stock_of
from repledger.records import (
    CONDITION_EXPIRED,
    CONDITION_GOOD,
    CUSTOMERS,
    ORDERS,
    PRODUCTS,
    STATUS_DRAFT,
    STATUS_PAID,
    STATUS_PENDING,
    STATUS_RETURNED,
    TRANSACTIONS,
    TXN_PAYMENT_RECEIVED,
    Customer,
    Product,
    Transaction,
)
from repledger.services import order_service, transaction_service
from repledger.services.ledger_service import (
    EVENT_ORDER_CREATED,
    EVENT_STOCK_PRODUCT_MISSING,
    list_ledger_events,
)
from repledger.services.order_effects import compute_stock_deltas
from repledger.validation import NotFoundError, ValidationError


def test_sale_lifecycle_scenarios(repo, make_product, customer):
    make_product('p1', stock=100)

    # create: quantity 10 + bonus 2
    created = order_service.create_order(repo, order_of(line('p1', 10, bonus=2)))
    assert stock_of(repo, 'p1') == 88
    assert created.stock.applied == {'p1': -12}

    # update: reverse the old snapshot, apply the new one
    order_service.update_order(repo, created.order.id, order_of(line('p1', 5)))
    assert stock_of(repo, 'p1') == 95

    # delete: reverse the current snapshot
    order_service.delete_order(repo, created.order.id)
    assert stock_of(repo, 'p1') == 100
    assert repo.get(ORDERS, created.order.id) is None


def test_return_restocks_good_items_only(repo, make_product, customer):
    make_product('p1', stock=100)

    good = order_service.create_order(repo, order_of(line('p1', 3, condition=CONDITION_GOOD), is_return=True))
    assert stock_of(repo, 'p1') == 103
    assert good.order.status == STATUS_RETURNED
    assert good.order.total_amount_cents == -3000

    order_service.create_order(repo, order_of(line('p1', 3, condition=CONDITION_EXPIRED), is_return=True))
    assert stock_of(repo, 'p1') == 103


def test_repeated_updates_telescope_to_final_state(repo, make_product, customer):
    make_product('p1', stock=100)
    make_product('p2', stock=50)

    change = order_service.create_order(repo, order_of(line('p1', 4)))
    order_id = change.order.id

    edits = [
        order_of(line('p1', 7, bonus=1), line('p2', 2)),
        order_of(line('p2', 9)),
        order_of(line('p1', 1), line('p1', 2, bonus=3)),
        order_of(line('p1', 6), line('p2', 1, bonus=1)),
    ]
    for edit in edits:
        order_service.update_order(repo, order_id, edit)

    final = repo.get(ORDERS, order_id)
    expected = compute_stock_deltas(final)
    assert stock_of(repo, 'p1') == 100 + expected.get('p1', 0)
    assert stock_of(repo, 'p2') == 50 + expected.get('p2', 0)
    assert stock_of(repo, 'p1') == 94
    assert stock_of(repo, 'p2') == 48


def test_draft_has_no_stock_effect_until_posted(repo, make_product, customer):
    make_product('p1', stock=100)

    draft = order_service.create_order(repo, order_of(line('p1', 10), is_draft=True))
    assert draft.order.status == STATUS_DRAFT
    assert stock_of(repo, 'p1') == 100

    order_service.update_order(repo, draft.order.id, order_of(line('p1', 20), is_draft=True))
    assert stock_of(repo, 'p1') == 100

    posted = order_service.update_order(repo, draft.order.id, order_of(line('p1', 20)))
    assert posted.order.status == STATUS_PENDING
    assert not posted.order.is_draft
    assert stock_of(repo, 'p1') == 80

    back = order_service.update_order(repo, draft.order.id, order_of(line('p1', 20), is_draft=True))
    assert back.order.status == STATUS_DRAFT
    assert stock_of(repo, 'p1') == 100


def test_draft_status_implies_draft_flag(repo, make_product, customer):
    make_product('p1', stock=10)
    order = order_of(line('p1', 4))
    order = replace(order, status=STATUS_DRAFT)

    change = order_service.create_order(repo, order)

    assert change.order.is_draft
    assert stock_of(repo, 'p1') == 10


def test_missing_product_is_skipped_and_recorded(repo, make_product, customer):
    make_product('p1', stock=100)

    change = order_service.create_order(repo, order_of(line('p1', 5), line('ghost', 3)))

    assert stock_of(repo, 'p1') == 95
    assert change.stock.skipped == ['ghost']
    assert not change.stock.complete
    events = list_ledger_events(repo, event_type=EVENT_STOCK_PRODUCT_MISSING)
    assert [e.entity_id for e in events] == ['ghost']
    assert events[0].payload['reference_id'] == change.order.id


def test_delete_removes_referencing_transactions(repo, make_product, customer):
    make_product('p1', stock=100)
    change = order_service.create_order(repo, order_of(line('p1', 2)))
    order_id = change.order.id
    transaction_service.record_transaction(
        repo,
        Transaction(id='TXN-1', type=TXN_PAYMENT_RECEIVED, amount_cents=500, reference_id=order_id),
    )

    deleted = order_service.delete_order(repo, order_id)

    assert deleted.removed_transactions == 1
    assert repo.list(TRANSACTIONS, reference_id=order_id) == []
    assert stock_of(repo, 'p1') == 100


def test_missing_order_fails_loudly(repo, customer):
    with pytest.raises(NotFoundError):
        order_service.update_order(repo, 'ORD-NOPE', order_of(line('p1', 1)))
    with pytest.raises(NotFoundError):
        order_service.delete_order(repo, 'ORD-NOPE')
    with pytest.raises(NotFoundError):
        order_service.get_order(repo, 'ORD-NOPE')


def test_update_keeps_payment_state(repo, make_product, customer):
    make_product('p1', stock=100)
    change = order_service.create_order(repo, order_of(line('p1', 2)))
    order_id = change.order.id
    transaction_service.record_transaction(
        repo,
        Transaction(id='TXN-1', type=TXN_PAYMENT_RECEIVED, amount_cents=2000, reference_id=order_id),
    )
    assert repo.get(ORDERS, order_id).status == STATUS_PAID

    # Doubling the order leaves the payment in place and reopens the balance
    updated = order_service.update_order(repo, order_id, order_of(line('p1', 4)))

    assert updated.order.paid_amount_cents == 2000
    assert updated.order.status == 'PARTIAL'


def test_names_are_snapshotted_from_the_catalog(repo, make_product, customer):
    make_product('p1', name='Colitra Sach', stock=10)

    change = order_service.create_order(repo, order_of(line('p1', 1)))

    assert change.order.customer_name == 'Al-Amal Pharmacy'
    assert change.order.items[0].product_name == 'Colitra Sach'


def test_invalid_orders_are_rejected(repo, customer):
    with pytest.raises(ValidationError):
        order_service.create_order(repo, order_of(line('p1', 1), customer_id=''))
    with pytest.raises(ValidationError):
        order_service.create_order(repo, order_of(line('p1', 1), is_return=True, total=500))


def test_lifecycle_events_are_recorded(repo, make_product, customer):
    make_product('p1', stock=10)
    change = order_service.create_order(repo, order_of(line('p1', 1)))

    events = list_ledger_events(repo, entity_id=change.order.id)

    assert [e.event_type for e in events] == [EVENT_ORDER_CREATED]
    assert events[0].payload['total_amount_cents'] == 1000


def test_concurrent_edits_of_orders_sharing_a_product(memory_repo):
    memory_repo.insert(PRODUCTS, Product(id='p1', name='Alpha', base_price_cents=1000, stock=1000))
    memory_repo.insert(PRODUCTS, Product(id='p2', name='Beta', base_price_cents=1000, stock=1000))
    memory_repo.insert(CUSTOMERS, Customer(id='c1', name='Al-Amal Pharmacy'))

    def worker(n):
        order_id = f'ORD-{n}'
        order_service.create_order(memory_repo, order_of(line('p1', 1), order_id=order_id))
        for qty in range(2, 12):
            order_service.update_order(
                memory_repo, order_id, order_of(line('p1', qty), line('p2', n % 3), order_id=order_id),
            )
        if n % 4 == 0:
            order_service.delete_order(memory_repo, order_id)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    expected = {'p1': 1000, 'p2': 1000}
    for order in memory_repo.list(ORDERS):
        for product_id, delta in compute_stock_deltas(order).items():
            expected[product_id] += delta

    assert len(memory_repo.list(ORDERS)) == 6
    assert stock_of(memory_repo, 'p1') == expected['p1'] == 1000 - 6 * 11
    assert stock_of(memory_repo, 'p2') == expected['p2']
