"""SQLite implementation of POS persistence."""

import json
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime

import aiosqlite

from kasebyar.config import get_logger
from kasebyar.core.entities.accounting import Expense
from kasebyar.core.entities.changes import StoreChanges
from kasebyar.core.entities.ledger import LedgerTransaction
from kasebyar.core.entities.party import BalanceUpdate, Party, PartyBalances
from kasebyar.core.entities.product import BatchChange, Product, ProductBatch, Service
from kasebyar.core.entities.purchase import InTransitInvoice, PurchaseInvoice, PurchaseLine
from kasebyar.core.entities.sale import SaleInvoice, SaleLine
from kasebyar.core.entities.state import InvoiceBundle
from kasebyar.core.exceptions import InvoiceNotFoundError, PersistenceError, ProductNotFoundError
from kasebyar.core.interfaces.pos_store import IPosStore
from kasebyar.infrastructure.storage.sqlite.connection import get_connection, get_transaction

logger = get_logger(__name__)


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


def _items_json(items: list[SaleLine] | list[PurchaseLine]) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items])


@asynccontextmanager
async def _write(operation: str) -> AsyncIterator[aiosqlite.Connection]:
    """Transaction that reports driver failures as PersistenceError."""
    try:
        async with get_transaction() as conn:
            yield conn
    except aiosqlite.Error as e:
        logger.error("store_write_failed", operation=operation, error=str(e))
        raise PersistenceError(operation, str(e)) from e


class SQLitePosStore(IPosStore):
    """SQLite implementation of catalogue, invoice and ledger storage."""

    # ------------------------------------------------------------------ reads

    async def get_products(self) -> list[Product]:
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM product_batches ORDER BY seq")
            batches: dict[str, list[ProductBatch]] = defaultdict(list)
            for row in await cursor.fetchall():
                batches[row["product_id"]].append(self._row_to_batch(row))

            cursor = await conn.execute("SELECT * FROM products ORDER BY created_at, rowid")
            return [
                self._row_to_product(row, batches.get(row["id"], []))
                for row in await cursor.fetchall()
            ]

    async def get_entities(self) -> list[Party]:
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM parties ORDER BY created_at, rowid")
            return [self._row_to_party(row) for row in await cursor.fetchall()]

    async def get_transactions(self) -> list[LedgerTransaction]:
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM ledger_transactions ORDER BY seq")
            return [self._row_to_transaction(row) for row in await cursor.fetchall()]

    async def get_invoices(self) -> InvoiceBundle:
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM sale_invoices ORDER BY seq")
            sales = [self._row_to_sale(row) for row in await cursor.fetchall()]

            cursor = await conn.execute("SELECT * FROM purchase_invoices ORDER BY seq")
            purchases = [self._row_to_purchase(row) for row in await cursor.fetchall()]

            cursor = await conn.execute("SELECT * FROM in_transit_invoices ORDER BY seq")
            in_transit = [self._row_to_in_transit(row) for row in await cursor.fetchall()]

        return InvoiceBundle(sales=sales, purchases=purchases, in_transit=in_transit)

    async def get_services(self) -> list[Service]:
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM services ORDER BY created_at, rowid")
            return [self._row_to_service(row) for row in await cursor.fetchall()]

    async def get_expenses(self) -> list[Expense]:
        async with get_connection() as conn:
            cursor = await conn.execute("SELECT * FROM expenses ORDER BY date, seq")
            return [self._row_to_expense(row) for row in await cursor.fetchall()]

    # -------------------------------------------------------------- catalogue

    async def add_product(self, product: Product) -> Product:
        async with _write("add_product") as conn:
            await conn.execute(
                """
                INSERT INTO products (
                    id, name, sale_price, barcode, manufacturer, items_per_package, active
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    product.id,
                    product.name,
                    product.sale_price,
                    product.barcode,
                    product.manufacturer,
                    product.items_per_package,
                    int(product.active),
                ),
            )
            for batch in product.batches:
                await self._insert_batch(conn, BatchChange(product_id=product.id, batch=batch))
        logger.info("product_added", product_id=product.id, batches=len(product.batches))
        return product

    async def add_party(
        self, party: Party, transaction: LedgerTransaction | None = None
    ) -> Party:
        async with _write("add_party") as conn:
            await conn.execute(
                """
                INSERT INTO parties (
                    id, name, party_type, phone, address, contact_person,
                    position, monthly_salary, active,
                    balance_afn, balance_usd, balance_irt, balance_total
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    party.id,
                    party.name,
                    party.party_type.value,
                    party.phone,
                    party.address,
                    party.contact_person,
                    party.position,
                    party.monthly_salary,
                    int(party.active),
                    party.balances.afn,
                    party.balances.usd,
                    party.balances.irt,
                    party.balances.total,
                ),
            )
            if transaction is not None:
                await self._insert_transaction(conn, transaction)
        logger.info("party_added", party_id=party.id, party_type=party.party_type.value)
        return party

    async def update_product(self, product: Product) -> Product:
        async with _write("update_product") as conn:
            cursor = await conn.execute(
                """
                UPDATE products SET
                    name = ?, sale_price = ?, barcode = ?, manufacturer = ?, items_per_package = ?
                WHERE id = ?
                """,
                (
                    product.name,
                    product.sale_price,
                    product.barcode,
                    product.manufacturer,
                    product.items_per_package,
                    product.id,
                ),
            )
            if cursor.rowcount == 0:
                raise ProductNotFoundError(product.id)
        logger.info("product_updated", product_id=product.id)
        return product

    async def deactivate_product(self, product_id: str) -> bool:
        async with _write("deactivate_product") as conn:
            cursor = await conn.execute("UPDATE products SET active = 0 WHERE id = ?", (product_id,))
            changed = cursor.rowcount > 0
        logger.info("product_deactivated", product_id=product_id, changed=changed)
        return changed

    async def deactivate_party(self, party_id: str) -> bool:
        async with _write("deactivate_party") as conn:
            cursor = await conn.execute("UPDATE parties SET active = 0 WHERE id = ?", (party_id,))
            changed = cursor.rowcount > 0
        logger.info("party_deactivated", party_id=party_id, changed=changed)
        return changed

    async def add_service(self, service: Service) -> Service:
        async with _write("add_service") as conn:
            await conn.execute(
                "INSERT INTO services (id, name, price) VALUES (?, ?, ?)",
                (service.id, service.name, service.price),
            )
        logger.info("service_added", service_id=service.id)
        return service

    async def delete_service(self, service_id: str) -> bool:
        async with _write("delete_service") as conn:
            cursor = await conn.execute("DELETE FROM services WHERE id = ?", (service_id,))
            deleted = cursor.rowcount > 0
        logger.info("service_removed", service_id=service_id, deleted=deleted)
        return deleted

    # ------------------------------------------------------------------ sales

    async def create_sale(self, invoice: SaleInvoice, changes: StoreChanges) -> SaleInvoice:
        async with _write("create_sale") as conn:
            await self._insert_sale(conn, invoice)
            await self._apply_changes(conn, changes)
        logger.info("sale_saved", invoice_id=invoice.id, items=len(invoice.items))
        return invoice

    async def update_sale(
        self, invoice_id: str, invoice: SaleInvoice, changes: StoreChanges
    ) -> SaleInvoice:
        async with _write("update_sale") as conn:
            cursor = await conn.execute(
                """
                UPDATE sale_invoices SET
                    items_json = ?, subtotal = ?, total_discount = ?, total_amount = ?,
                    total_amount_base = ?, timestamp = ?, cashier = ?, customer_id = ?,
                    customer_name = ?, currency = ?, exchange_rate = ?
                WHERE id = ? AND type = 'sale'
                """,
                (
                    _items_json(invoice.items),
                    invoice.subtotal,
                    invoice.total_discount,
                    invoice.total_amount,
                    invoice.total_amount_base,
                    _iso(invoice.timestamp),
                    invoice.cashier,
                    invoice.customer_id,
                    invoice.customer_name,
                    invoice.currency.value,
                    invoice.exchange_rate,
                    invoice_id,
                ),
            )
            if cursor.rowcount == 0:
                raise InvoiceNotFoundError(invoice_id)
            await self._apply_changes(conn, changes)
        logger.info("sale_updated", invoice_id=invoice_id)
        return invoice

    async def create_sale_return(
        self, invoice: SaleInvoice, changes: StoreChanges
    ) -> SaleInvoice:
        async with _write("create_sale_return") as conn:
            await self._insert_sale(conn, invoice)
            await self._apply_changes(conn, changes)
        logger.info(
            "sale_return_saved",
            invoice_id=invoice.id,
            original_invoice_id=invoice.original_invoice_id,
        )
        return invoice

    async def set_sale_customer_name(self, invoice_id: str, customer_name: str) -> bool:
        async with _write("set_sale_customer_name") as conn:
            cursor = await conn.execute(
                "UPDATE sale_invoices SET customer_name = ? WHERE id = ? AND customer_id IS NULL",
                (customer_name, invoice_id),
            )
            changed = cursor.rowcount > 0
        return changed

    # -------------------------------------------------------------- purchases

    async def create_purchase(
        self,
        invoice: PurchaseInvoice,
        changes: StoreChanges,
        in_transit_update: InTransitInvoice | None = None,
    ) -> PurchaseInvoice:
        async with _write("create_purchase") as conn:
            if in_transit_update is not None:
                await self._update_in_transit(conn, in_transit_update)
            await self._insert_purchase(conn, invoice)
            await self._apply_changes(conn, changes)
        logger.info(
            "purchase_saved",
            invoice_id=invoice.id,
            source_in_transit_id=invoice.source_in_transit_id,
        )
        return invoice

    async def update_purchase(
        self, invoice_id: str, invoice: PurchaseInvoice, changes: StoreChanges
    ) -> PurchaseInvoice:
        async with _write("update_purchase") as conn:
            cursor = await conn.execute(
                """
                UPDATE purchase_invoices SET
                    supplier_id = ?, invoice_number = ?, items_json = ?, total_amount = ?,
                    total_amount_base = ?, additional_cost = ?, timestamp = ?,
                    currency = ?, exchange_rate = ?
                WHERE id = ? AND type = 'purchase'
                """,
                (
                    invoice.supplier_id,
                    invoice.invoice_number,
                    _items_json(invoice.items),
                    invoice.total_amount,
                    invoice.total_amount_base,
                    invoice.additional_cost,
                    _iso(invoice.timestamp),
                    invoice.currency.value,
                    invoice.exchange_rate,
                    invoice_id,
                ),
            )
            if cursor.rowcount == 0:
                raise InvoiceNotFoundError(invoice_id)
            await self._apply_changes(conn, changes)
        logger.info("purchase_updated", invoice_id=invoice_id)
        return invoice

    async def create_purchase_return(
        self, invoice: PurchaseInvoice, changes: StoreChanges
    ) -> PurchaseInvoice:
        async with _write("create_purchase_return") as conn:
            await self._insert_purchase(conn, invoice)
            await self._apply_changes(conn, changes)
        logger.info(
            "purchase_return_saved",
            invoice_id=invoice.id,
            original_invoice_id=invoice.original_invoice_id,
        )
        return invoice

    # ------------------------------------------------------------- in-transit

    async def create_in_transit(self, invoice: InTransitInvoice) -> InTransitInvoice:
        async with _write("create_in_transit") as conn:
            await conn.execute(
                """
                INSERT INTO in_transit_invoices (
                    id, supplier_id, invoice_number, items_json, total_amount,
                    currency, exchange_rate, timestamp, expected_arrival_date,
                    paid_amount, description, status
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    invoice.id,
                    invoice.supplier_id,
                    invoice.invoice_number,
                    _items_json(invoice.items),
                    invoice.total_amount,
                    invoice.currency.value,
                    invoice.exchange_rate,
                    _iso(invoice.timestamp),
                    _iso(invoice.expected_arrival_date),
                    invoice.paid_amount,
                    invoice.description,
                    invoice.status.value,
                ),
            )
        logger.info("in_transit_saved", invoice_id=invoice.id)
        return invoice

    async def update_in_transit(self, invoice: InTransitInvoice) -> InTransitInvoice:
        async with _write("update_in_transit") as conn:
            await self._update_in_transit(conn, invoice)
        return invoice

    async def delete_in_transit(self, invoice_id: str) -> bool:
        async with _write("delete_in_transit") as conn:
            cursor = await conn.execute(
                "DELETE FROM in_transit_invoices WHERE id = ?", (invoice_id,)
            )
            deleted = cursor.rowcount > 0
        logger.info("in_transit_removed", invoice_id=invoice_id, deleted=deleted)
        return deleted

    # --------------------------------------------------------------- payments

    async def process_payment(
        self,
        balance_update: BalanceUpdate,
        transaction: LedgerTransaction,
        in_transit_update: InTransitInvoice | None = None,
    ) -> LedgerTransaction:
        async with _write("process_payment") as conn:
            await self._write_balance(conn, balance_update)
            await self._insert_transaction(conn, transaction)
            if in_transit_update is not None:
                await self._update_in_transit(conn, in_transit_update)
        logger.info(
            "payment_saved",
            party_id=transaction.party_id,
            kind=transaction.type.value,
            amount=transaction.amount,
        )
        return transaction

    # ------------------------------------------------------------- accounting

    async def add_expense(self, expense: Expense) -> Expense:
        async with _write("add_expense") as conn:
            await self._insert_expense(conn, expense)
        logger.info("expense_saved", expense_id=expense.id, category=expense.category)
        return expense

    async def delete_expense(self, expense_id: str) -> bool:
        async with _write("delete_expense") as conn:
            cursor = await conn.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
            deleted = cursor.rowcount > 0
        logger.info("expense_removed", expense_id=expense_id, deleted=deleted)
        return deleted

    async def process_payroll(self, changes: StoreChanges, expenses: list[Expense]) -> None:
        async with _write("process_payroll") as conn:
            await self._apply_changes(conn, changes)
            for expense in expenses:
                await self._insert_expense(conn, expense)
        logger.info(
            "payroll_saved",
            postings=len(changes.transactions),
            expenses=len(expenses),
        )

    # ---------------------------------------------------------- write helpers

    async def _apply_changes(self, conn: aiosqlite.Connection, changes: StoreChanges) -> None:
        for change in changes.new_batches:
            await self._insert_batch(conn, change)
        for change in changes.stock_updates:
            cursor = await conn.execute(
                """
                UPDATE product_batches
                SET stock = ?, purchase_price = ?, expiry_date = ?
                WHERE id = ? AND product_id = ?
                """,
                (
                    change.batch.stock,
                    change.batch.purchase_price,
                    _iso(change.batch.expiry_date),
                    change.batch.id,
                    change.product_id,
                ),
            )
            if cursor.rowcount == 0:
                raise PersistenceError("update_batch", f"batch {change.batch.id} does not exist")
        for update in changes.balance_updates:
            await self._write_balance(conn, update)
        for txn in changes.transactions:
            await self._insert_transaction(conn, txn)

    @staticmethod
    async def _insert_batch(conn: aiosqlite.Connection, change: BatchChange) -> None:
        batch = change.batch
        await conn.execute(
            """
            INSERT INTO product_batches (
                id, product_id, lot_number, stock, purchase_price, purchase_date, expiry_date
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                batch.id,
                change.product_id,
                batch.lot_number,
                batch.stock,
                batch.purchase_price,
                _iso(batch.purchase_date),
                _iso(batch.expiry_date),
            ),
        )

    @staticmethod
    async def _write_balance(conn: aiosqlite.Connection, update: BalanceUpdate) -> None:
        cursor = await conn.execute(
            """
            UPDATE parties
            SET balance_afn = ?, balance_usd = ?, balance_irt = ?, balance_total = ?
            WHERE id = ?
            """,
            (
                update.balances.afn,
                update.balances.usd,
                update.balances.irt,
                update.balances.total,
                update.party_id,
            ),
        )
        if cursor.rowcount == 0:
            raise PersistenceError("update_balance", f"party {update.party_id} does not exist")

    @staticmethod
    async def _insert_transaction(conn: aiosqlite.Connection, txn: LedgerTransaction) -> None:
        await conn.execute(
            """
            INSERT INTO ledger_transactions (
                id, party_id, party_type, type, direction, amount, currency,
                exchange_rate, base_amount, date, description, invoice_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                txn.id,
                txn.party_id,
                txn.party_type.value,
                txn.type.value,
                txn.direction,
                txn.amount,
                txn.currency.value,
                txn.exchange_rate,
                txn.base_amount,
                _iso(txn.date),
                txn.description,
                txn.invoice_id,
            ),
        )

    @staticmethod
    async def _insert_expense(conn: aiosqlite.Connection, expense: Expense) -> None:
        await conn.execute(
            """
            INSERT INTO expenses (
                id, category, description, amount, currency, exchange_rate,
                base_amount, date, payroll_period
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                expense.id,
                expense.category,
                expense.description,
                expense.amount,
                expense.currency.value,
                expense.exchange_rate,
                expense.base_amount,
                _iso(expense.date),
                expense.payroll_period,
            ),
        )

    @staticmethod
    async def _insert_sale(conn: aiosqlite.Connection, invoice: SaleInvoice) -> None:
        await conn.execute(
            """
            INSERT INTO sale_invoices (
                id, type, original_invoice_id, items_json, subtotal, total_discount,
                total_amount, total_amount_base, timestamp, cashier, customer_id,
                customer_name, currency, exchange_rate
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                invoice.id,
                invoice.type.value,
                invoice.original_invoice_id,
                _items_json(invoice.items),
                invoice.subtotal,
                invoice.total_discount,
                invoice.total_amount,
                invoice.total_amount_base,
                _iso(invoice.timestamp),
                invoice.cashier,
                invoice.customer_id,
                invoice.customer_name,
                invoice.currency.value,
                invoice.exchange_rate,
            ),
        )

    @staticmethod
    async def _insert_purchase(conn: aiosqlite.Connection, invoice: PurchaseInvoice) -> None:
        await conn.execute(
            """
            INSERT INTO purchase_invoices (
                id, type, original_invoice_id, supplier_id, invoice_number, items_json,
                total_amount, total_amount_base, additional_cost, timestamp,
                currency, exchange_rate, source_in_transit_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                invoice.id,
                invoice.type.value,
                invoice.original_invoice_id,
                invoice.supplier_id,
                invoice.invoice_number,
                _items_json(invoice.items),
                invoice.total_amount,
                invoice.total_amount_base,
                invoice.additional_cost,
                _iso(invoice.timestamp),
                invoice.currency.value,
                invoice.exchange_rate,
                invoice.source_in_transit_id,
            ),
        )

    @staticmethod
    async def _update_in_transit(conn: aiosqlite.Connection, invoice: InTransitInvoice) -> None:
        cursor = await conn.execute(
            """
            UPDATE in_transit_invoices SET
                supplier_id = ?, invoice_number = ?, items_json = ?, total_amount = ?,
                currency = ?, exchange_rate = ?, expected_arrival_date = ?,
                paid_amount = ?, description = ?, status = ?
            WHERE id = ?
            """,
            (
                invoice.supplier_id,
                invoice.invoice_number,
                _items_json(invoice.items),
                invoice.total_amount,
                invoice.currency.value,
                invoice.exchange_rate,
                _iso(invoice.expected_arrival_date),
                invoice.paid_amount,
                invoice.description,
                invoice.status.value,
                invoice.id,
            ),
        )
        if cursor.rowcount == 0:
            raise InvoiceNotFoundError(invoice.id)

    # ---------------------------------------------------------------- mappers

    @staticmethod
    def _row_to_batch(row: aiosqlite.Row) -> ProductBatch:
        return ProductBatch(
            id=row["id"],
            lot_number=row["lot_number"],
            stock=int(row["stock"]),
            purchase_price=float(row["purchase_price"]),
            purchase_date=datetime.fromisoformat(row["purchase_date"]),
            expiry_date=date.fromisoformat(row["expiry_date"]) if row["expiry_date"] else None,
        )

    @staticmethod
    def _row_to_product(row: aiosqlite.Row, batches: list[ProductBatch]) -> Product:
        return Product(
            id=row["id"],
            name=row["name"],
            sale_price=float(row["sale_price"]),
            barcode=row["barcode"],
            manufacturer=row["manufacturer"],
            items_per_package=row["items_per_package"],
            active=bool(row["active"]),
            batches=batches,
        )

    @staticmethod
    def _row_to_party(row: aiosqlite.Row) -> Party:
        return Party(
            id=row["id"],
            name=row["name"],
            party_type=row["party_type"],
            phone=row["phone"],
            address=row["address"],
            contact_person=row["contact_person"],
            position=row["position"],
            monthly_salary=float(row["monthly_salary"]),
            active=bool(row["active"]),
            balances=PartyBalances(
                afn=float(row["balance_afn"]),
                usd=float(row["balance_usd"]),
                irt=float(row["balance_irt"]),
                total=float(row["balance_total"]),
            ),
        )

    @staticmethod
    def _row_to_transaction(row: aiosqlite.Row) -> LedgerTransaction:
        return LedgerTransaction(
            id=row["id"],
            party_id=row["party_id"],
            party_type=row["party_type"],
            type=row["type"],
            direction=int(row["direction"]),
            amount=float(row["amount"]),
            currency=row["currency"],
            exchange_rate=float(row["exchange_rate"]),
            base_amount=float(row["base_amount"]),
            date=datetime.fromisoformat(row["date"]),
            description=row["description"],
            invoice_id=row["invoice_id"],
        )

    @staticmethod
    def _row_to_sale(row: aiosqlite.Row) -> SaleInvoice:
        return SaleInvoice(
            id=row["id"],
            type=row["type"],
            original_invoice_id=row["original_invoice_id"],
            items=[SaleLine.model_validate(item) for item in json.loads(row["items_json"])],
            subtotal=float(row["subtotal"]),
            total_discount=float(row["total_discount"]),
            total_amount=float(row["total_amount"]),
            total_amount_base=float(row["total_amount_base"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            cashier=row["cashier"],
            customer_id=row["customer_id"],
            customer_name=row["customer_name"],
            currency=row["currency"],
            exchange_rate=float(row["exchange_rate"]),
        )

    @staticmethod
    def _row_to_purchase(row: aiosqlite.Row) -> PurchaseInvoice:
        return PurchaseInvoice(
            id=row["id"],
            type=row["type"],
            original_invoice_id=row["original_invoice_id"],
            supplier_id=row["supplier_id"],
            invoice_number=row["invoice_number"],
            items=[PurchaseLine.model_validate(item) for item in json.loads(row["items_json"])],
            total_amount=float(row["total_amount"]),
            total_amount_base=float(row["total_amount_base"]),
            additional_cost=float(row["additional_cost"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            currency=row["currency"],
            exchange_rate=float(row["exchange_rate"]),
            source_in_transit_id=row["source_in_transit_id"],
        )

    @staticmethod
    def _row_to_in_transit(row: aiosqlite.Row) -> InTransitInvoice:
        return InTransitInvoice(
            id=row["id"],
            supplier_id=row["supplier_id"],
            invoice_number=row["invoice_number"],
            items=[PurchaseLine.model_validate(item) for item in json.loads(row["items_json"])],
            total_amount=float(row["total_amount"]),
            currency=row["currency"],
            exchange_rate=float(row["exchange_rate"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            expected_arrival_date=(
                date.fromisoformat(row["expected_arrival_date"])
                if row["expected_arrival_date"]
                else None
            ),
            paid_amount=float(row["paid_amount"]),
            description=row["description"],
            status=row["status"],
        )

    @staticmethod
    def _row_to_service(row: aiosqlite.Row) -> Service:
        return Service(id=row["id"], name=row["name"], price=float(row["price"]))

    @staticmethod
    def _row_to_expense(row: aiosqlite.Row) -> Expense:
        return Expense(
            id=row["id"],
            category=row["category"],
            description=row["description"],
            amount=float(row["amount"]),
            currency=row["currency"],
            exchange_rate=float(row["exchange_rate"]),
            base_amount=float(row["base_amount"]),
            date=datetime.fromisoformat(row["date"]),
            payroll_period=row["payroll_period"],
        )
