"""
Invoice numbering and GST bill breakdown.

Intra-state supply splits tax equally into CGST and SGST; inter-state
supply charges the whole tax as IGST. Amounts are rounded to paise.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from pydantic import BaseModel

from shopledger.ledger.errors import ValidationError
from shopledger.models.ledger import ZERO, Money, SaleItem

PAISE = Decimal("0.01")


def _round(value: Decimal) -> Decimal:
    return value.quantize(PAISE, rounding=ROUND_HALF_UP)


def format_invoice_number(prefix: str, number: int) -> str:
    """Format an invoice number, e.g. INV-0007."""
    prefix = (prefix or "INV").strip().upper() or "INV"
    return f"{prefix}-{number:04d}"


class BillBreakdown(BaseModel):
    """Totals printed on an invoice and stored on the sale."""

    subtotal: Money
    discount_total: Money
    taxable_amount: Money
    tax_rate: Money
    cgst: Money
    sgst: Money
    igst: Money
    tax_total: Money
    total_amount: Money

    def sale_fields(self) -> dict:
        """Billing fields in the shape SaleInput accepts."""
        return {
            "subtotal": self.subtotal,
            "discount_total": self.discount_total,
            "tax_total": self.tax_total,
            "cgst": self.cgst,
            "sgst": self.sgst,
            "igst": self.igst,
            "total_amount": self.total_amount,
        }


def compute_bill(
    items: Iterable[SaleItem],
    discount: Decimal = ZERO,
    tax_rate: Optional[Decimal] = None,
    inter_state: bool = False,
) -> BillBreakdown:
    """
    Compute subtotal, discount, GST split and grand total for line items.

    The discount is capped at the subtotal so the taxable amount is never
    negative.
    """
    rate = Decimal(tax_rate) if tax_rate is not None else ZERO
    if rate < 0 or rate > 100:
        raise ValidationError(f"Tax rate must be between 0 and 100, got {rate}")

    subtotal = _round(sum((item.line_total for item in items), ZERO))
    discount = min(max(Decimal(discount), ZERO), subtotal)
    taxable = subtotal - discount
    tax = _round(taxable * rate / 100)

    if inter_state:
        cgst = sgst = ZERO
        igst = tax
    else:
        cgst = _round(tax / 2)
        sgst = tax - cgst
        igst = ZERO

    return BillBreakdown(
        subtotal=subtotal,
        discount_total=_round(discount),
        taxable_amount=_round(taxable),
        tax_rate=rate,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        tax_total=tax,
        total_amount=_round(taxable + tax),
    )
