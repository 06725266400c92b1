# Overview: Printable receipt rendering (boleta / factura) with Jinja2 templates.

from __future__ import annotations

from dataclasses import dataclass

from jinja2 import Environment, PackageLoader, select_autoescape

from ..formatters import datetime_pe, money_pen
from ..models import Sale
from ..validation import ValidationError
from .cash_service import PAYMENT_LABELS

DEFAULT_CUSTOMER = "Consumidor Final"

# variant -> template
VARIANTS = {
    "boleta": "receipts/boleta.html",
    "factura": "receipts/factura.html",
}


@dataclass(frozen=True)
class BusinessInfo:
    """Header printed at the top of every receipt."""
    name: str
    tax_id: str
    address: str
    phone: str

    @classmethod
    def from_config(cls, config) -> "BusinessInfo":
        return cls(
            name=config["BUSINESS_NAME"],
            tax_id=config["BUSINESS_TAX_ID"],
            address=config["BUSINESS_ADDRESS"],
            phone=config["BUSINESS_PHONE"],
        )


_env = Environment(
    loader=PackageLoader("minimarket", "templates"),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters["money_pen"] = money_pen
_env.filters["datetime_pe"] = datetime_pe


def render_receipt(sale: Sale, variant: str, business: BusinessInfo) -> str:
    """
    Full HTML document for one sale.

    Both variants share the line-item and totals layout; they differ in
    title, accent colour and footer text.
    """
    template_name = VARIANTS.get(variant)
    if template_name is None:
        raise ValidationError(f"variant must be one of: {', '.join(VARIANTS)}")

    return _env.get_template(template_name).render(
        sale=sale,
        business=business,
        customer=sale.customer_name or DEFAULT_CUSTOMER,
        payment_label=PAYMENT_LABELS[sale.payment_method],
    )
