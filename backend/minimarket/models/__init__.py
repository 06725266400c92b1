from .catalog import AuditEvent, LocalBlob, ProductRecord
from .domain import (
    Alert,
    AlertType,
    CartWarning,
    CashSession,
    KardexEntry,
    MovementType,
    PaymentMethod,
    Product,
    Role,
    Sale,
    SaleItem,
    SaleStatus,
    SessionStatus,
    Severity,
    User,
    compute_profit_percentage,
    product_from_row,
    product_to_row,
)

__all__ = [
    'ProductRecord', 'LocalBlob', 'AuditEvent',
    'Product', 'SaleItem', 'Sale', 'KardexEntry', 'CashSession', 'Alert', 'User', 'CartWarning',
    'PaymentMethod', 'SaleStatus', 'MovementType', 'SessionStatus', 'AlertType', 'Severity', 'Role',
    'compute_profit_percentage', 'product_to_row', 'product_from_row',
]
