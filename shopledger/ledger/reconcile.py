"""
Load-time reconciliation.

Collections are written one at a time, so an interrupted multi-collection
operation can leave a dangling cross-reference between a sale and its
credit. On every load:
- a credit whose linked sale no longer exists is dropped
  (the sale write never landed, so the credit has nothing to describe)
- a sale whose linked credit no longer exists keeps its money fields
  but loses the link
- every credit has paid amount and status re-derived from its history
"""

from typing import Optional

from pydantic import BaseModel, Field

from shopledger.models.audit import AuditEvent, AuditEventBuilder
from shopledger.models.ledger import Credit, LedgerSnapshot, Sale


class ReconciliationReport(BaseModel):
    """Result of reconciling a freshly loaded snapshot."""

    snapshot: LedgerSnapshot
    repaired_sales: Optional[list[Sale]] = None
    repaired_credits: Optional[list[Credit]] = None
    events: list[AuditEvent] = Field(default_factory=list)

    @property
    def needs_write_back(self) -> bool:
        return self.repaired_sales is not None or self.repaired_credits is not None


def reconcile(snapshot: LedgerSnapshot) -> ReconciliationReport:
    events: list[AuditEvent] = []
    sale_ids = {sale.id for sale in snapshot.sales}

    credits: list[Credit] = []
    credits_changed = False
    for credit in snapshot.credits:
        if credit.linked_sale_id and credit.linked_sale_id not in sale_ids:
            events.append(AuditEventBuilder.orphan_repaired(
                "credit", credit.id, "credit removed", f"sale {credit.linked_sale_id}"
            ))
            credits_changed = True
            continue
        normalized = credit.recomputed()
        if (normalized.paid_amount, normalized.status) != (credit.paid_amount, credit.status):
            credits_changed = True
        credits.append(normalized)

    credit_ids = {credit.id for credit in credits}
    sales: list[Sale] = []
    sales_changed = False
    for sale in snapshot.sales:
        if sale.linked_credit_id and sale.linked_credit_id not in credit_ids:
            events.append(AuditEventBuilder.orphan_repaired(
                "sale", sale.id, "credit link cleared", f"credit {sale.linked_credit_id}"
            ))
            sale = sale.model_copy(update={"linked_credit_id": None})
            sales_changed = True
        sales.append(sale)

    return ReconciliationReport(
        snapshot=snapshot.model_copy(update={"credits": credits, "sales": sales}),
        repaired_sales=sales if sales_changed else None,
        repaired_credits=credits if credits_changed else None,
        events=events,
    )
