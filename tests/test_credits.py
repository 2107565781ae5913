"""Tests for credits and credit payments."""

from datetime import date
from decimal import Decimal

import pytest

from shopledger.ledger import NotFoundError, ValidationError
from shopledger.models import CreditStatus, CreditType, PaymentMethod


class TestCreditPayments:
    """Paid amount and status are always derived from the payment history."""

    @pytest.mark.asyncio
    async def test_payments_drive_status(self, engine):
        credit = await engine.add_credit({"party": "Ravi", "type": "given", "amount": 1000})
        assert credit.status == CreditStatus.PENDING

        credit = await engine.add_credit_payment(credit.id, {"amount": 400})
        assert credit.paid_amount == Decimal("400")
        assert credit.status == CreditStatus.PENDING
        assert credit.balance_due == Decimal("600")

        credit = await engine.record_credit_payment(
            credit.id, {"amount": 600, "paymentMode": "UPI", "date": date(2025, 3, 6)}
        )
        assert credit.paid_amount == Decimal("1000")
        assert credit.status == CreditStatus.PAID
        assert [p.payment_mode for p in credit.payments] == [PaymentMethod.CASH, PaymentMethod.UPI]

    @pytest.mark.asyncio
    async def test_overpayment_marks_paid(self, engine):
        credit = await engine.add_credit({"party": "Ravi", "type": "given", "amount": 100})
        credit = await engine.add_credit_payment(credit.id, {"amount": 150})
        assert credit.status == CreditStatus.PAID

    @pytest.mark.parametrize("amount", [0, -5])
    @pytest.mark.asyncio
    async def test_payment_must_be_positive(self, engine, amount):
        credit = await engine.add_credit({"party": "Ravi", "type": "given", "amount": 100})
        with pytest.raises(ValidationError):
            await engine.add_credit_payment(credit.id, {"amount": amount})
        assert engine.credits[0].payments == []

    @pytest.mark.asyncio
    async def test_payment_on_missing_credit(self, engine):
        with pytest.raises(NotFoundError):
            await engine.add_credit_payment("missing", {"amount": 10})


class TestCreditCrud:
    """Tests for add/update/delete credit."""

    @pytest.mark.asyncio
    async def test_add_credit_validation(self, engine):
        with pytest.raises(ValidationError):
            await engine.add_credit({"party": "Ravi", "type": "given", "amount": 0})
        with pytest.raises(ValidationError):
            await engine.add_credit({"party": "  ", "type": "given", "amount": 10})
        with pytest.raises(ValidationError):
            await engine.add_credit({"party": "Ravi", "type": "borrowed", "amount": 10})
        assert engine.credits == []

    @pytest.mark.asyncio
    async def test_update_discards_caller_status(self, engine):
        credit = await engine.add_credit({"party": "Supplier", "type": "taken", "amount": 500})

        updated = await engine.update_credit(
            credit.id, {"status": "paid", "paidAmount": 999, "note": "call on Friday"}
        )

        assert updated.status == CreditStatus.PENDING
        assert updated.paid_amount == Decimal("0")
        assert updated.note == "call on Friday"
        assert updated.type == CreditType.TAKEN

    @pytest.mark.asyncio
    async def test_lowering_amount_recomputes_status(self, engine):
        credit = await engine.add_credit({"party": "Supplier", "type": "taken", "amount": 500})
        await engine.add_credit_payment(credit.id, {"amount": 300})

        updated = await engine.update_credit(credit.id, {"amount": 300})

        assert updated.status == CreditStatus.PAID

    @pytest.mark.asyncio
    async def test_delete_linked_credit_clears_sale_link(self, engine):
        sale = await engine.add_sale({
            "customerName": "Ravi", "totalAmount": 1000, "paidAmount": 200,
        })

        await engine.delete_credit(sale.linked_credit_id)

        assert engine.credits == []
        assert engine.sales[0].linked_credit_id is None
        assert engine.sales[0].paid_amount == Decimal("200")

    @pytest.mark.asyncio
    async def test_delete_missing_credit(self, engine):
        with pytest.raises(NotFoundError, match="Credit not found"):
            await engine.delete_credit("missing")
