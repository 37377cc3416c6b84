import pytest

from conftest import line, order_of, stock_of
from repledger.records import CUSTOMERS, ORDERS, PRODUCTS, TRANSACTIONS, Customer, Product, Provider, Transaction
from repledger.services import catalog_service, order_service, transaction_service
from repledger.validation import ConflictError, NotFoundError, ValidationError


def test_delete_customer_cascades_through_order_lifecycle(repo, make_product, customer):
    make_product('p1', stock=100)
    first = order_service.create_order(repo, order_of(line('p1', 10))).order
    order_service.create_order(repo, order_of(line('p1', 5, bonus=1)))
    transaction_service.record_transaction(
        repo, Transaction(id='TXN-1', type='PAYMENT_RECEIVED', amount_cents=100, reference_id=first.id),
    )
    assert stock_of(repo, 'p1') == 84

    removed = catalog_service.delete_customer(repo, 'c1')

    assert removed == 2
    assert stock_of(repo, 'p1') == 100
    assert repo.list(ORDERS) == []
    assert repo.list(TRANSACTIONS) == []
    assert repo.get(CUSTOMERS, 'c1') is None


def test_product_stock_is_not_patchable(repo, make_product):
    make_product('p1', stock=5, price_cents=100)

    updated = catalog_service.update_product(repo, 'p1', {'name': 'Renamed', 'base_price_cents': 250, 'sku': 'x'})
    assert updated.name == 'Renamed'
    assert updated.base_price_cents == 250
    assert updated.stock == 5

    with pytest.raises(ValidationError):
        catalog_service.update_product(repo, 'p1', {'stock': 99})
    with pytest.raises(ValidationError):
        catalog_service.update_product(repo, 'p1', {'base_price_cents': -1})
    with pytest.raises(NotFoundError):
        catalog_service.update_product(repo, 'nope', {'name': 'x'})


def test_duplicate_ids_conflict(repo):
    catalog_service.create_product(repo, Product(id='p1', name='A'))
    with pytest.raises(ConflictError):
        catalog_service.create_product(repo, Product(id='p1', name='B'))


def test_customer_updates_are_validated(repo, customer):
    updated = catalog_service.update_customer(repo, 'c1', {'default_discount_bps': 500, 'brick': 'Central'})
    assert updated.default_discount_bps == 500
    assert updated.brick == 'Central'

    with pytest.raises(ValidationError):
        catalog_service.update_customer(repo, 'c1', {'type': 'HOSPITAL'})
    with pytest.raises(ValidationError):
        catalog_service.create_customer(repo, Customer(id='c9', name='X', default_discount_bps=20000))


def test_provider_crud(repo):
    catalog_service.create_provider(repo, Provider(id='prv1', name='Pharma Supply'))
    catalog_service.update_provider(repo, 'prv1', {'bank_details': 'IBAN 123'})

    [provider] = catalog_service.list_providers(repo)
    assert provider.bank_details == 'IBAN 123'

    catalog_service.delete_provider(repo, 'prv1')
    with pytest.raises(NotFoundError):
        catalog_service.delete_provider(repo, 'prv1')


def test_seed_is_idempotent(repo):
    first = catalog_service.seed_demo_data(repo)
    second = catalog_service.seed_demo_data(repo)

    assert first == {PRODUCTS: 12, CUSTOMERS: 4}
    assert second == {PRODUCTS: 0, CUSTOMERS: 0}
    assert repo.get(PRODUCTS, 'p1').base_price_cents == 20000
    assert repo.get(CUSTOMERS, 'c4').default_discount_bps == 500
