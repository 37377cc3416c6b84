from .catalog import ProductRow, CustomerRow, ProviderRow
from .orders import OrderRow
from .transactions import TransactionRow
from .ledger import LedgerEventRow

__all__ = [
    'ProductRow', 'CustomerRow', 'ProviderRow',
    'OrderRow',
    'TransactionRow',
    'LedgerEventRow',
]
