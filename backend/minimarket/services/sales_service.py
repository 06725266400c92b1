"""
Point-of-sale checkout.

WHY: A sale touches three owners at once: product stock (Product Store),
the kardex and sales history (state container), and the open cash session
(derived, re-read on demand). This module is the only path that writes all
three.

DESIGN PRINCIPLES:
- Preconditions are checked before anything is written; a refused sale
  leaves stock, kardex and sales exactly as they were
- Stock is decremented remotely first; only on success are the kardex
  entries and the sale dispatched, together, in one batch
- If that dispatch fails, the pre-sale stock is written back before the
  error propagates
- Sale lines are snapshots (name and price at sale time)
- Stock is NOT re-validated at commit; the cart enforced it when lines were
  added and the container lock serializes checkouts
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from ..models import (
    CartWarning,
    KardexEntry,
    MovementType,
    PaymentMethod,
    Product,
    Role,
    Sale,
    SaleItem,
    SaleStatus,
)
from ..state import AddKardexEntry, AddSale, StateContainer, UpdateProduct, sum_totals
from ..time_utils import epoch_millis, filter_start
from ..validation import (
    AuthenticationRequired,
    EmptyCartError,
    MissingOperationNumberError,
    NoActiveSessionError,
    RemoteStoreError,
    ValidationError,
    money,
)
from .product_cache import ProductCache

logger = logging.getLogger(__name__)

KARDEX_SALE_REASON = "Venta"


# =============================================================================
# CART
# =============================================================================

@dataclass
class CartLine:
    id: str
    product_id: str
    quantity: int
    name: Optional[str] = None
    unit_price: Optional[Decimal] = None

    @property
    def total(self) -> Decimal:
        return money((self.unit_price or Decimal("0")) * self.quantity)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "unitPrice": float(self.unit_price) if self.unit_price is not None else None,
            "quantity": self.quantity,
            "total": float(self.total),
        }


class Cart:
    """
    Pre-checkout staging area.

    Refused operations return a CartWarning and leave the cart unchanged;
    they never raise. The total is always recomputed from the lines.
    """

    def __init__(self, products: ProductCache):
        self.products = products
        self.lines: list[CartLine] = []
        self.payment_method = PaymentMethod.CASH
        self.operation_number = ""
        self.customer_name = ""
        self.customer_document = ""

    @property
    def total(self) -> Decimal:
        return sum_lines(self.lines)

    def find_line(self, line_id: str) -> Optional[CartLine]:
        for line in self.lines:
            if line.id == line_id:
                return line
        return None

    def add_item(self, product: Product) -> Optional[CartWarning]:
        if product.current_stock <= 0:
            return CartWarning("Product out of stock", product_id=product.id)

        for line in self.lines:
            if line.product_id == product.id:
                return self.update_quantity(line.id, line.quantity + 1)

        self.lines.append(CartLine(
            id=uuid.uuid4().hex,
            product_id=product.id,
            quantity=1,
            name=product.name,
            unit_price=product.sale_price,
        ))
        return None

    def update_quantity(self, line_id: str, quantity: int) -> Optional[CartWarning]:
        if quantity <= 0:
            self.remove_item(line_id)
            return None

        line = self.find_line(line_id)
        if line is None:
            return None

        # Checked against live stock, not the stock seen when the line was added
        product = self.products.get(line.product_id)
        if product is not None and quantity > product.current_stock:
            return CartWarning(
                "Not enough stock available",
                product_id=line.product_id,
                details={"available": product.current_stock, "requested": quantity},
            )

        line.quantity = quantity
        return None

    def remove_item(self, line_id: str) -> None:
        self.lines = [line for line in self.lines if line.id != line_id]

    def set_payment(self, method, operation_number: Optional[str] = None) -> None:
        try:
            self.payment_method = PaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Unknown payment method: {method}")
        self.operation_number = (operation_number or "").strip()

    def set_customer(self, name: Optional[str] = None, document: Optional[str] = None) -> None:
        self.customer_name = (name or "").strip()
        self.customer_document = (document or "").strip()

    def clear(self) -> None:
        """Empty the lines and reset customer and payment fields together."""
        self.lines = []
        self.payment_method = PaymentMethod.CASH
        self.operation_number = ""
        self.customer_name = ""
        self.customer_document = ""

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "paymentMethod": self.payment_method.value,
            "operationNumber": self.operation_number,
            "customerName": self.customer_name,
            "customerDocument": self.customer_document,
            "total": float(self.total),
        }


def sum_lines(lines: Iterable[CartLine]) -> Decimal:
    return money(sum((line.total for line in lines), Decimal("0")))


def cart_from_payload(products: ProductCache, payload: dict) -> tuple[Cart, list[CartWarning]]:
    """
    Build a cart from a checkout request body.

    Lines go through add_item / update_quantity so the same stock checks
    apply as at the register. Client-supplied names and prices are ignored.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    cart = Cart(products)
    warnings: list[CartWarning] = []

    items = payload.get("items") or []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")

    for raw in items:
        if not isinstance(raw, dict) or "productId" not in raw:
            raise ValidationError("each item needs a productId")
        quantity = raw.get("quantity", 1)
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError("quantity must be an integer")

        product = products.get(str(raw["productId"]))
        if product is None:
            raise ValidationError(f"Unknown product: {raw['productId']}")

        warning = cart.add_item(product)
        if warning is None and quantity != 1:
            line = next(ln for ln in cart.lines if ln.product_id == product.id)
            warning = cart.update_quantity(line.id, line.quantity + quantity - 1)
        if warning is not None:
            warnings.append(warning)

    cart.set_payment(payload.get("paymentMethod") or PaymentMethod.CASH.value, payload.get("operationNumber"))
    cart.set_customer(payload.get("customerName"), payload.get("customerDocument"))
    return cart, warnings


# =============================================================================
# CHECKOUT
# =============================================================================

def process_sale(container: StateContainer, store, cart: Cart) -> Sale:
    """
    Commit the cart as a completed sale.

    Preconditions, first failure wins:
    1. an open cash session, unless the user is an admin
    2. at least one cart line
    3. an operation number for any non-cash payment

    WHY: stock goes through ONE update_many call so a store failure leaves
    every product as it was, and nothing is dispatched locally.
    """
    with container.lock:
        state = container.state
        user = state.current_user
        if user is None:
            raise AuthenticationRequired("No user is logged in")

        if state.current_cash_session is None and user.role is not Role.ADMIN:
            raise NoActiveSessionError("A cash session must be open to make sales")

        if not cart.lines:
            raise EmptyCartError("The cart is empty")

        operation_number = (cart.operation_number or "").strip()
        if cart.payment_method is not PaymentMethod.CASH and not operation_number:
            raise MissingOperationNumberError("Electronic payments need an operation number")

        now = container.now()
        sale_number = f"V-{epoch_millis(now)}"

        items = []
        for line in cart.lines:
            product = container.products.get(line.product_id)
            name = line.name if line.name is not None else (product.name if product else "")
            price = line.unit_price if line.unit_price is not None else (
                product.sale_price if product else Decimal("0.00")
            )
            items.append(SaleItem(
                id=line.id,
                product_id=line.product_id,
                product_name=name,
                unit_price=money(price),
                quantity=line.quantity,
            ))

        sale = Sale(
            id=str(uuid.uuid4()),
            sale_number=sale_number,
            items=tuple(items),
            payment_method=cart.payment_method,
            created_at=now,
            created_by=user.id,
            operation_number=operation_number or None,
            customer_name=cart.customer_name or None,
            customer_document=cart.customer_document or None,
            status=SaleStatus.COMPLETED,
        )

        # Lines whose product is gone from the catalog are sold but move no stock
        sold: dict[str, tuple[Product, int]] = {}
        for line in cart.lines:
            product = container.products.get(line.product_id)
            if product is None:
                continue
            _, qty = sold.get(product.id, (product, 0))
            sold[product.id] = (product, qty + line.quantity)

        updated = [p.with_stock(p.current_stock - qty, now) for p, qty in sold.values()]
        if updated:
            updated = store.update_many(updated)

        kardex = [
            KardexEntry(
                id=uuid.uuid4().hex,
                product_id=line.product_id,
                type=MovementType.EXIT,
                quantity=line.quantity,
                unit_cost=sold[line.product_id][0].cost_price,
                total_cost=money(sold[line.product_id][0].cost_price * line.quantity),
                reason=KARDEX_SALE_REASON,
                reference=sale_number,
                created_at=now,
                created_by=user.id,
            )
            for line in cart.lines
            if line.product_id in sold
        ]

        try:
            container.dispatch(
                *[UpdateProduct(p) for p in updated],
                *[AddKardexEntry(entry) for entry in kardex],
                AddSale(sale),
            )
        except Exception:
            if updated:
                _restore_stock(store, [p for p, _ in sold.values()], sale_number)
            raise

    cart.clear()
    container.audit("SALE", "sale", sale.id, f"Venta {sale.sale_number} por S/ {sale.total:.2f}")
    logger.info("Sale %s committed: %d lines, total %s", sale.sale_number, len(sale.items), sale.total)
    return sale


def _restore_stock(store, originals: list[Product], sale_number: str) -> None:
    """Put back the pre-sale stock after the local record of a sale failed."""
    try:
        store.update_many(originals)
    except RemoteStoreError:
        logger.exception("Could not restore stock for failed sale %s", sale_number)
    else:
        logger.warning("Sale %s not recorded; stock restored for %d products", sale_number, len(originals))


# =============================================================================
# SALES LIST
# =============================================================================

def filter_sales(
    sales: Iterable[Sale],
    *,
    search: str = "",
    date_filter: str = "all",
    payment_method: str = "all",
    now: datetime,
) -> tuple[list[Sale], Decimal]:
    """Filtered sales, newest first, and the sum of their totals."""
    try:
        since = filter_start(date_filter, now)
    except ValueError as e:
        raise ValidationError(str(e))

    term = (search or "").strip().lower()
    result = []
    for sale in sales:
        if term and not (
            term in sale.sale_number.lower()
            or term in (sale.customer_name or "").lower()
            or term in (sale.customer_document or "").lower()
        ):
            continue
        if since is not None and sale.created_at < since:
            continue
        if payment_method and payment_method != "all" and sale.payment_method.value != payment_method:
            continue
        result.append(sale)

    result.sort(key=lambda s: s.created_at, reverse=True)
    return result, sum_totals(result)


def find_sale(sales: Iterable[Sale], sale_id: str) -> Optional[Sale]:
    for sale in sales:
        if sale.id == sale_id or sale.sale_number == sale_id:
            return sale
    return None
