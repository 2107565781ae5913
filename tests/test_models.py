"""
Tests for Shop Ledger models

Test strategy:
1. Unit tests for the persisted shapes (wire keys, money, defaults)
2. Derived projections (received amount, credit status)
3. Patch merging and change sets used by the ledger planners
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from shopledger.ledger import ChangeSet, ValidationError
from shopledger.ledger.transactions import merge_patch
from shopledger.models import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    BackupDocument,
    Contact,
    Credit,
    CreditPayment,
    CreditStatus,
    CreditType,
    LedgerSnapshot,
    PaymentMethod,
    Product,
    Sale,
    SaleItem,
    UserSettings,
    party_key,
)
from shopledger.services.storage import CollectionKey


class TestLedgerModels:
    """Tests for the persisted ledger entities."""

    def test_sale_wire_shape_is_camel_case(self):
        """Test that sales serialize with camelCase keys and float money."""
        sale = Sale(
            date=date(2025, 3, 1),
            customer_name="Ravi",
            total_amount=Decimal("1000.50"),
            paid_amount=Decimal("400"),
            items=[SaleItem(product_id="p1", quantity=2, unit_price=Decimal("500.25"))],
        )
        wire = sale.to_wire()

        assert wire["customerName"] == "Ravi"
        assert wire["totalAmount"] == 1000.5
        assert wire["paymentMethod"] == "Cash"
        assert wire["items"][0]["productId"] == "p1"
        assert "linkedCreditId" not in wire

    def test_sale_accepts_both_spellings(self):
        """Test that snake_case and camelCase input both populate fields."""
        camel = Sale.model_validate({"date": "2025-03-01", "totalAmount": 10, "customerName": " Ravi "})
        snake = Sale(date=date(2025, 3, 1), total_amount=Decimal("10"))

        assert camel.total_amount == snake.total_amount
        assert camel.customer_name == "Ravi"

    def test_legacy_sale_received_amount(self):
        """Test that a sale without paid amount counts as fully received."""
        legacy = Sale(date=date(2025, 3, 1), total_amount=Decimal("300"))
        partial = Sale(date=date(2025, 3, 1), total_amount=Decimal("300"), paid_amount=Decimal("100"))

        assert legacy.received_amount == Decimal("300")
        assert legacy.due_amount == Decimal("0")
        assert partial.received_amount == Decimal("100")
        assert partial.due_amount == Decimal("200")

    def test_sale_item_line_total(self):
        item = SaleItem(product_id="p1", quantity=3, unit_price=Decimal("12.50"))
        assert item.line_total == Decimal("37.50")

    def test_sale_item_rejects_zero_quantity(self):
        """Test that item quantities must be at least one."""
        with pytest.raises(ValueError):
            SaleItem(product_id="p1", quantity=0, unit_price=Decimal("1"))

    def test_product_stock_cannot_be_negative(self):
        with pytest.raises(ValueError):
            Product(name="Oil", stock=-1, unit_price=Decimal("100"))

    def test_party_key_normalizes(self):
        """Test that party names match ignoring case and outer whitespace."""
        assert party_key("  Asha TRADERS ") == party_key("asha traders")
        assert party_key(None) == ""

    def test_entities_get_fresh_ids(self):
        first = Contact(name="Ravi")
        second = Contact(name="Ravi")
        assert first.id != second.id


class TestCreditProjection:
    """Tests for derived credit fields."""

    def _credit(self, **fields) -> Credit:
        base = dict(party="Ravi", type=CreditType.GIVEN, amount=Decimal("500"), date=date(2025, 3, 1))
        base.update(fields)
        return Credit(**base)

    def test_paid_amount_is_sum_of_payments(self):
        """Test that paid amount and status are re-derived from payments."""
        credit = self._credit(
            paid_amount=Decimal("999"),
            status=CreditStatus.PAID,
            payments=[
                CreditPayment(amount=Decimal("100"), date=date(2025, 3, 2)),
                CreditPayment(amount=Decimal("150"), payment_mode=PaymentMethod.UPI, date=date(2025, 3, 3)),
            ],
        ).recomputed()

        assert credit.paid_amount == Decimal("250")
        assert credit.status == CreditStatus.PENDING
        assert credit.balance_due == Decimal("250")

    def test_fully_paid_credit(self):
        credit = self._credit(
            payments=[CreditPayment(amount=Decimal("500"), date=date(2025, 3, 2))],
        ).recomputed()
        assert credit.status == CreditStatus.PAID

    def test_legacy_credit_keeps_stored_paid_amount(self):
        """Test that a credit without payment history keeps its paid amount."""
        credit = self._credit(paid_amount=Decimal("200")).recomputed()

        assert credit.paid_amount == Decimal("200")
        assert credit.status == CreditStatus.PENDING

    def test_zero_amount_credit_is_paid(self):
        assert self._credit(amount=Decimal("0")).recomputed().status == CreditStatus.PAID


class TestSettingsAndBackup:
    """Tests for settings defaults and the backup document."""

    def test_settings_defaults(self):
        settings = UserSettings()

        assert settings.invoice_prefix == "INV"
        assert settings.last_invoice_number == 0
        assert settings.currency == "₹"
        assert settings.lock is False

    def test_gstin_wire_key(self):
        """Test that the GSTIN keeps its historical upper-case wire key."""
        settings = UserSettings.model_validate({"businessGSTIN": "29ABCDE1234F1Z5"})

        assert settings.business_gstin == "29ABCDE1234F1Z5"
        assert settings.to_wire()["businessGSTIN"] == "29ABCDE1234F1Z5"

    def test_backup_document_round_trip(self):
        """Test that a backup carries every collection plus exportedAt."""
        snapshot = LedgerSnapshot(
            sales=[Sale(date=date(2025, 3, 1), total_amount=Decimal("10"))],
            contacts=[Contact(name="Ravi")],
        )
        document = BackupDocument.from_snapshot(snapshot)
        wire = document.to_wire()

        assert "exportedAt" in wire
        assert set(wire) >= {"sales", "expenses", "credits", "settings", "contacts", "products", "returns"}
        assert BackupDocument.model_validate(wire).to_snapshot() == snapshot


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.SALE_RECORDED,
            description="Sale recorded",
        )
        assert event.event_type == AuditEventType.SALE_RECORDED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.PRODUCT_ADDED,
            entity_type="product",
            entity_id="p1",
            correlation_id=correlation_id,
            description="Product added",
        )
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "product_added"
        assert log_dict["entity_id"] == "p1"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_storage_dict_round_trip(self):
        event = AuditEventBuilder.stock_adjusted("p1", 10, 8, "sale")
        assert AuditEvent.model_validate(event.to_storage_dict()) == event

    def test_builder_credit_force_closed(self):
        """Test that force-closing a credit is a warning."""
        event = AuditEventBuilder.credit_force_closed("c1", "s1", "500")

        assert event.event_type == AuditEventType.CREDIT_FORCE_CLOSED
        assert event.severity == AuditSeverity.WARNING
        assert event.details["discarded_balance"] == "500"

    def test_builder_persistence_failed(self):
        event = AuditEventBuilder.persistence_failed(
            operation="record_sale",
            collection="sales",
            written=["settings", "credits"],
            error_message="disk full",
        )

        assert event.severity == AuditSeverity.ERROR
        assert event.details["already_written"] == ["settings", "credits"]


class TestPatchesAndChangeSets:
    """Tests for the helpers the ledger planners build on."""

    def test_merge_patch_accepts_camel_and_snake(self):
        contact = Contact(name="Ravi")

        merged = merge_patch(contact, {"phone": "98450", "notes": "weekly", "type": "Vendor"})
        merged = merge_patch(merged, {"name": "Ravi K"})

        assert merged.phone == "98450"
        assert merged.name == "Ravi K"
        assert merged.id == contact.id

    def test_merge_patch_discards_protected_fields(self):
        contact = Contact(name="Ravi")
        merged = merge_patch(contact, {"id": "other", "name": "Asha"})

        assert merged.id == contact.id
        assert merged.name == "Asha"

    def test_merge_patch_rejects_unknown_fields(self):
        with pytest.raises(ValidationError, match="Unknown field"):
            merge_patch(Contact(name="Ravi"), {"nickname": "R"})

    def test_merge_patch_revalidates(self):
        product = Product(name="Oil", stock=3, unit_price=Decimal("100"))
        with pytest.raises(ValidationError):
            merge_patch(product, {"stock": -5})

    def test_merge_patch_uses_field_alias(self):
        merged = merge_patch(UserSettings(), {"businessGSTIN": "29ABCDE1234F1Z5"})
        assert merged.business_gstin == "29ABCDE1234F1Z5"

    def test_change_set_touched_follows_write_order(self):
        """Test that only present collections are written, in order."""
        changes = ChangeSet(
            operation="record_sale",
            sales=[],
            credits=[],
            settings=UserSettings(),
        )

        assert changes.touched() == [CollectionKey.SETTINGS, CollectionKey.CREDITS, CollectionKey.SALES]

    def test_change_set_apply_to_replaces_collections(self):
        sale = Sale(date=date(2025, 3, 1), total_amount=Decimal("10"))
        snapshot = LedgerSnapshot(contacts=[Contact(name="Ravi")])

        result = ChangeSet(operation="record_sale", sales=[sale]).apply_to(snapshot)

        assert result.sales == [sale]
        assert result.contacts == snapshot.contacts
        assert snapshot.sales == []
