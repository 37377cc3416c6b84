from conftest import line, order_of
from repledger.records import CONDITION_EXPIRED, CONDITION_GOOD
from repledger.services.order_effects import compute_stock_deltas, item_stock_delta, reverse_deltas


def test_sale_consumes_quantity_and_bonus():
    order = order_of(line('p1', 10, bonus=2))
    assert compute_stock_deltas(order) == {'p1': -12}


def test_draft_has_no_effect():
    order = order_of(line('p1', 10, bonus=2), line('p2', 1), is_draft=True)
    assert compute_stock_deltas(order) == {'p1': 0, 'p2': 0}


def test_return_restocks_unless_expired():
    order = order_of(
        line('p1', 3, condition=CONDITION_GOOD),
        line('p2', 4, bonus=1),
        line('p3', 5, condition=CONDITION_EXPIRED),
        is_return=True,
    )
    assert compute_stock_deltas(order) == {'p1': 3, 'p2': 5, 'p3': 0}


def test_expired_return_items_never_move_stock():
    order = order_of(line('p1', 7, bonus=7, condition=CONDITION_EXPIRED), is_return=True)
    assert all(item_stock_delta(order, item) == 0 for item in order.items)


def test_lines_for_same_product_are_summed():
    order = order_of(line('p1', 2), line('p1', 3, bonus=1))
    assert compute_stock_deltas(order) == {'p1': -6}


def test_reverse_negates_every_delta():
    assert reverse_deltas({'p1': -6, 'p2': 3, 'p3': 0}) == {'p1': 6, 'p2': -3, 'p3': 0}
