from .stations import Station, PriceWindow
from .clients import Client, Vehicle
from .depots import Barracks, Item
from .ledger import BalanceAccount, LedgerEntry, ImmutableRecordError
from .sales import Sale
from .transfers import StockTransfer

__all__ = [
    'Station', 'PriceWindow',
    'Client', 'Vehicle',
    'Barracks', 'Item',
    'BalanceAccount', 'LedgerEntry', 'ImmutableRecordError',
    'Sale',
    'StockTransfer',
]
