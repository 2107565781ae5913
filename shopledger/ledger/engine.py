"""
Ledger Engine

The single store object owned by the application's root scope and passed
to every collaborator (screens, importers, sync) by reference.

Lifecycle: load() -> mutate -> notify.

Every mutation follows the same path:
1. Plan: a pure planner computes a ChangeSet from the current snapshot
   (validation, not-found, conflict and duplicate errors are raised here,
   before any write)
2. Commit: each touched collection is written through the gateway in the
   ChangeSet's write order
3. Publish: only after every write succeeded, the in-memory snapshot is
   replaced and subscribers are notified
4. Audit: the ChangeSet's events are logged under one correlation id

Operations are expected to be serialized by the caller; the engine holds
no lock.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Union
from uuid import UUID

from pydantic import ValidationError as SchemaError

from shopledger.audit import AuditLogger, create_correlation_id
from shopledger.ledger import metrics
from shopledger.ledger.errors import LedgerError, ValidationError
from shopledger.ledger.reconcile import reconcile
from shopledger.ledger.transactions import (
    ChangeSet,
    parse_input,
    plan_add_contact,
    plan_add_credit,
    plan_add_credit_payment,
    plan_add_expense,
    plan_add_product,
    plan_delete_contact,
    plan_delete_credit,
    plan_delete_expense,
    plan_delete_product,
    plan_delete_return,
    plan_delete_sale,
    plan_record_return,
    plan_record_sale,
    plan_update_contact,
    plan_update_credit,
    plan_update_expense,
    plan_update_product,
    plan_update_sale,
    plan_update_settings,
)
from shopledger.models.audit import AuditEventType
from shopledger.models.ledger import (
    BackupDocument,
    Contact,
    ContactInput,
    Credit,
    CreditInput,
    CreditPaymentInput,
    Expense,
    ExpenseInput,
    LedgerSnapshot,
    Product,
    ProductInput,
    ReturnInput,
    Sale,
    SaleInput,
    SaleReturn,
    UserSettings,
)
from shopledger.services.storage import CollectionKey, PersistenceError, PersistenceGateway


Listener = Callable[[LedgerSnapshot], None]
Planner = Callable[[LedgerSnapshot], ChangeSet]


def _find(items: list, entity_id: Optional[str]):
    return next((item for item in items if item.id == entity_id), None)


class LedgerEngine:
    """
    Stateful ledger store.

    Usage:
        engine = LedgerEngine(gateway, audit_logger)
        await engine.load()
        sale = await engine.add_sale({"totalAmount": 500, "paidAmount": 200,
                                      "customerName": "Asha"})
        engine.balance()
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._gateway = gateway
        self._audit_logger = audit_logger or AuditLogger()  # Local-only logging
        self._clock = clock
        self._snapshot = LedgerSnapshot()
        self._loaded = False
        self._listeners: list[Listener] = []

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def snapshot(self) -> LedgerSnapshot:
        """The latest committed snapshot. Never mutate it."""
        return self._snapshot

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def sales(self) -> list[Sale]:
        return self._snapshot.sales

    @property
    def expenses(self) -> list[Expense]:
        return self._snapshot.expenses

    @property
    def credits(self) -> list[Credit]:
        return self._snapshot.credits

    @property
    def returns(self) -> list[SaleReturn]:
        return self._snapshot.returns

    @property
    def products(self) -> list[Product]:
        return self._snapshot.products

    @property
    def contacts(self) -> list[Contact]:
        return self._snapshot.contacts

    @property
    def settings(self) -> UserSettings:
        return self._snapshot.settings

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback invoked with every newly published snapshot.

        Returns a function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, snapshot: LedgerSnapshot) -> None:
        self._snapshot = snapshot
        self._loaded = True
        for listener in list(self._listeners):
            listener(snapshot)

    # =========================================================================
    # LOAD
    # =========================================================================

    async def load(self) -> LedgerSnapshot:
        """
        Read every collection, normalize derived fields, repair orphans.

        Raises:
            PersistenceError: If a collection cannot be read or parsed,
                or a repair cannot be written back
        """
        correlation_id = create_correlation_id()

        raw: dict[str, Any] = {}
        for key in CollectionKey:
            value = await self._gateway.get(key.storage_key)
            if key is CollectionKey.SETTINGS:
                raw[key.value] = value if isinstance(value, Mapping) else {}
            else:
                raw[key.value] = value if isinstance(value, list) else []

        try:
            stored = LedgerSnapshot.model_validate(raw)
        except SchemaError as e:
            raise PersistenceError(f"Stored ledger data is unreadable: {e}") from e

        report = reconcile(stored)
        if report.needs_write_back:
            repair = ChangeSet(
                operation="load",
                credits=report.repaired_credits,
                sales=report.repaired_sales,
                events=report.events,
            )
            await self._commit(repair, correlation_id, base=report.snapshot)
        else:
            self._publish(report.snapshot)

        await self._audit_logger.log_lifecycle(
            AuditEventType.DATA_LOADED,
            "Ledger loaded",
            {key.value: len(getattr(self._snapshot, key.value))
             for key in CollectionKey if key is not CollectionKey.SETTINGS},
            correlation_id,
        )
        return self._snapshot

    # =========================================================================
    # COMMIT
    # =========================================================================

    async def _execute(self, operation: str, plan: Planner) -> ChangeSet:
        if not self._loaded:
            await self.load()

        correlation_id = create_correlation_id()
        try:
            changes = plan(self._snapshot)
        except LedgerError as e:
            await self._audit_logger.log_operation_rejected(operation, e, correlation_id)
            raise

        await self._commit(changes, correlation_id)
        return changes

    async def _commit(
        self,
        changes: ChangeSet,
        correlation_id: UUID,
        base: Optional[LedgerSnapshot] = None,
    ) -> None:
        """
        Write every touched collection in order, then publish.

        On the first failed write nothing is published; collections written
        before it stay written (there is no rollback).
        """
        written: list[str] = []
        for key in changes.touched():
            try:
                acknowledged = await self._gateway.set(
                    key.storage_key, changes.wire_value(key)
                )
            except Exception as e:
                await self._audit_logger.log_persistence_failed(
                    changes.operation, key.value, written, e, correlation_id
                )
                if isinstance(e, PersistenceError):
                    raise
                raise PersistenceError(f"Failed to write {key.value}: {e}") from e

            if not acknowledged:
                error = PersistenceError(f"Write of {key.value} was not acknowledged")
                await self._audit_logger.log_persistence_failed(
                    changes.operation, key.value, written, error, correlation_id
                )
                raise error
            written.append(key.value)

        self._publish(changes.apply_to(base if base is not None else self._snapshot))
        await self._audit_logger.log_all(changes.events, correlation_id)

    # =========================================================================
    # SALES
    # =========================================================================

    async def add_sale(self, data: Union[SaleInput, Mapping[str, Any]]) -> Sale:
        """
        Record a sale; a partial payment creates a linked 'given' credit.

        Raises:
            ValidationError: Bad amounts, or partial payment without a customer
            PersistenceError: A collection write failed
        """
        changes = await self._execute(
            "record_sale",
            lambda snapshot: plan_record_sale(snapshot, parse_input(SaleInput, data)),
        )
        return _find(self._snapshot.sales, changes.result_id)

    async def record_sale(self, data: Union[SaleInput, Mapping[str, Any]]) -> str:
        """Record a sale and return its id."""
        sale = await self.add_sale(data)
        return sale.id

    async def update_sale(self, sale_id: str, patch: Mapping[str, Any]) -> Sale:
        await self._execute(
            "update_sale", lambda snapshot: plan_update_sale(snapshot, sale_id, patch)
        )
        return _find(self._snapshot.sales, sale_id)

    async def delete_sale(self, sale_id: str) -> None:
        await self._execute(
            "delete_sale", lambda snapshot: plan_delete_sale(snapshot, sale_id)
        )

    # =========================================================================
    # EXPENSES
    # =========================================================================

    async def add_expense(self, data: Union[ExpenseInput, Mapping[str, Any]]) -> Expense:
        changes = await self._execute(
            "add_expense",
            lambda snapshot: plan_add_expense(snapshot, parse_input(ExpenseInput, data)),
        )
        return _find(self._snapshot.expenses, changes.result_id)

    async def update_expense(self, expense_id: str, patch: Mapping[str, Any]) -> Expense:
        await self._execute(
            "update_expense",
            lambda snapshot: plan_update_expense(snapshot, expense_id, patch),
        )
        return _find(self._snapshot.expenses, expense_id)

    async def delete_expense(self, expense_id: str) -> None:
        await self._execute(
            "delete_expense", lambda snapshot: plan_delete_expense(snapshot, expense_id)
        )

    # =========================================================================
    # CREDITS
    # =========================================================================

    async def add_credit(self, data: Union[CreditInput, Mapping[str, Any]]) -> Credit:
        changes = await self._execute(
            "add_credit",
            lambda snapshot: plan_add_credit(snapshot, parse_input(CreditInput, data)),
        )
        return _find(self._snapshot.credits, changes.result_id)

    async def update_credit(self, credit_id: str, patch: Mapping[str, Any]) -> Credit:
        """Merge a patch; status is always recomputed, never taken from the patch."""
        await self._execute(
            "update_credit",
            lambda snapshot: plan_update_credit(snapshot, credit_id, patch),
        )
        return _find(self._snapshot.credits, credit_id)

    async def delete_credit(self, credit_id: str) -> None:
        await self._execute(
            "delete_credit", lambda snapshot: plan_delete_credit(snapshot, credit_id)
        )

    async def add_credit_payment(
        self,
        credit_id: str,
        payment: Union[CreditPaymentInput, Mapping[str, Any]],
    ) -> Credit:
        """
        Append a payment to a credit's history.

        Returns:
            The credit with paid amount and status re-derived
        """
        await self._execute(
            "add_credit_payment",
            lambda snapshot: plan_add_credit_payment(
                snapshot, credit_id, parse_input(CreditPaymentInput, payment)
            ),
        )
        return _find(self._snapshot.credits, credit_id)

    record_credit_payment = add_credit_payment

    # =========================================================================
    # RETURNS
    # =========================================================================

    async def add_return(self, data: Union[ReturnInput, Mapping[str, Any]]) -> SaleReturn:
        """
        Reverse a sale: restock items and force-close its credit.

        Raises:
            NotFoundError: The sale does not exist
            DuplicateOperationError: The sale was already returned
            ValidationError: Refund outside [0, received amount]
        """
        changes = await self._execute(
            "record_return",
            lambda snapshot: plan_record_return(snapshot, parse_input(ReturnInput, data)),
        )
        return _find(self._snapshot.returns, changes.result_id)

    async def record_return(
        self,
        sale_id: str,
        date: Optional[date] = None,
        amount: Optional[Decimal] = None,
        note: str = "",
    ) -> SaleReturn:
        return await self.add_return(ReturnInput(
            sale_id=sale_id,
            date=date or self._clock(),
            amount=amount,
            note=note,
        ))

    async def delete_return(self, return_id: str) -> None:
        await self._execute(
            "delete_return", lambda snapshot: plan_delete_return(snapshot, return_id)
        )

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    async def add_product(self, data: Union[ProductInput, Mapping[str, Any]]) -> Product:
        changes = await self._execute(
            "add_product",
            lambda snapshot: plan_add_product(snapshot, parse_input(ProductInput, data)),
        )
        return _find(self._snapshot.products, changes.result_id)

    async def update_product(self, product_id: str, patch: Mapping[str, Any]) -> Product:
        await self._execute(
            "update_product",
            lambda snapshot: plan_update_product(snapshot, product_id, patch),
        )
        return _find(self._snapshot.products, product_id)

    async def delete_product(self, product_id: str) -> None:
        await self._execute(
            "delete_product", lambda snapshot: plan_delete_product(snapshot, product_id)
        )

    # =========================================================================
    # CONTACTS
    # =========================================================================

    async def add_contact(self, data: Union[ContactInput, Mapping[str, Any]]) -> Contact:
        changes = await self._execute(
            "add_contact",
            lambda snapshot: plan_add_contact(snapshot, parse_input(ContactInput, data)),
        )
        return _find(self._snapshot.contacts, changes.result_id)

    async def update_contact(self, contact_id: str, patch: Mapping[str, Any]) -> Contact:
        await self._execute(
            "update_contact",
            lambda snapshot: plan_update_contact(snapshot, contact_id, patch),
        )
        return _find(self._snapshot.contacts, contact_id)

    async def delete_contact(self, contact_id: str) -> None:
        await self._execute(
            "delete_contact", lambda snapshot: plan_delete_contact(snapshot, contact_id)
        )

    # =========================================================================
    # SETTINGS / BULK DATA
    # =========================================================================

    async def update_settings(self, patch: Mapping[str, Any]) -> UserSettings:
        await self._execute(
            "update_settings", lambda snapshot: plan_update_settings(snapshot, patch)
        )
        return self._snapshot.settings

    def export_snapshot(self) -> BackupDocument:
        """The current snapshot in backup-file shape."""
        return BackupDocument.from_snapshot(self._snapshot)

    def export_data(self) -> dict[str, Any]:
        """JSON-compatible backup document."""
        return self.export_snapshot().to_wire()

    async def clear_all_data(self) -> bool:
        """
        Remove every collection and reset to an empty ledger.

        Returns False (and keeps the current snapshot) if storage fails.
        """
        correlation_id = create_correlation_id()
        try:
            cleared = await self._gateway.clear_all_data()
        except PersistenceError as e:
            await self._audit_logger.log_persistence_failed(
                "clear_all_data", "*", [], e, correlation_id
            )
            return False
        if not cleared:
            return False

        self._publish(LedgerSnapshot())
        await self._audit_logger.log_lifecycle(
            AuditEventType.DATA_CLEARED, "All ledger data cleared", None, correlation_id
        )
        return True

    async def restore_data(
        self,
        data: Union[LedgerSnapshot, Mapping[str, Any]],
    ) -> bool:
        """
        Replace every collection with a backup's contents.

        Raises:
            ValidationError: The backup document is malformed

        Returns:
            False if a collection write failed, True otherwise
        """
        if isinstance(data, LedgerSnapshot):
            snapshot = LedgerSnapshot.model_validate(data.model_dump())
        elif isinstance(data, Mapping):
            cleaned = {k: v for k, v in data.items() if v is not None}
            snapshot = parse_input(BackupDocument, cleaned).to_snapshot()
        else:
            raise ValidationError("Backup must be a snapshot or a mapping")

        snapshot = snapshot.model_copy(
            update={"credits": [credit.recomputed() for credit in snapshot.credits]}
        )
        wire = BackupDocument.from_snapshot(snapshot).to_wire()

        correlation_id = create_correlation_id()
        try:
            imported = await self._gateway.import_all_data(wire)
        except PersistenceError as e:
            await self._audit_logger.log_persistence_failed(
                "restore_data", "*", [], e, correlation_id
            )
            return False
        if not imported:
            return False

        self._publish(snapshot)
        await self._audit_logger.log_lifecycle(
            AuditEventType.DATA_RESTORED,
            "Ledger restored from backup",
            {"sales": len(snapshot.sales), "credits": len(snapshot.credits)},
            correlation_id,
        )
        return True

    # =========================================================================
    # DERIVED METRICS
    # =========================================================================

    def _today(self, today: Optional[date]) -> date:
        return today if today is not None else self._clock()

    def today_sales(self, today: Optional[date] = None) -> Decimal:
        return metrics.today_sales(self._snapshot, self._today(today))

    def today_cash_received(self, today: Optional[date] = None) -> Decimal:
        return metrics.today_cash_received(self._snapshot, self._today(today))

    def today_upi_received(self, today: Optional[date] = None) -> Decimal:
        return metrics.today_upi_received(self._snapshot, self._today(today))

    def today_expenses(self, today: Optional[date] = None) -> Decimal:
        return metrics.today_expenses(self._snapshot, self._today(today))

    def credit_payments_received(self) -> Decimal:
        return metrics.credit_payments_received(self._snapshot)

    def credit_payments_made(self) -> Decimal:
        return metrics.credit_payments_made(self._snapshot)

    def balance(self) -> Decimal:
        return metrics.balance(self._snapshot)

    def cash_balance(self) -> Decimal:
        return metrics.cash_balance(self._snapshot)

    def upi_balance(self) -> Decimal:
        return metrics.upi_balance(self._snapshot)
