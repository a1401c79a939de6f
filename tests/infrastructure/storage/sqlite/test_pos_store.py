"""Tests for the SQLite POS store."""

from datetime import date, datetime

import pytest

from kasebyar.core.entities import (
    BalanceUpdate,
    BatchChange,
    BatchDeduction,
    Currency,
    Expense,
    InTransitInvoice,
    InTransitStatus,
    LedgerTransaction,
    Party,
    PartyBalances,
    PartyType,
    Product,
    ProductBatch,
    PurchaseInvoice,
    PurchaseLine,
    SaleInvoice,
    SaleLine,
    Service,
    StoreChanges,
    TransactionType,
)
from kasebyar.core.exceptions import InvoiceNotFoundError, PersistenceError, ProductNotFoundError


def rice_product() -> Product:
    return Product(
        id="rice",
        name="Rice 5kg",
        sale_price=150.0,
        batches=[
            ProductBatch(
                id="batch-a",
                lot_number="LOT-A",
                stock=10,
                purchase_price=100.0,
                purchase_date=datetime(2024, 1, 1),
                expiry_date=date(2025, 1, 1),
            )
        ],
    )


def credit_sale_txn(amount: float, invoice_id: str = "F1") -> LedgerTransaction:
    return LedgerTransaction(
        id=f"txn-{invoice_id}",
        party_id="cust-1",
        party_type=PartyType.CUSTOMER,
        type=TransactionType.CREDIT_SALE,
        amount=amount,
        base_amount=amount,
        invoice_id=invoice_id,
    )


@pytest.fixture
async def seeded(store):
    await store.add_product(rice_product())
    await store.add_party(Party(id="cust-1", name="Ahmad", party_type=PartyType.CUSTOMER))
    await store.add_party(Party(id="sup-1", name="Kabul Traders", party_type=PartyType.SUPPLIER))
    return store


def sale(quantity: int = 2) -> SaleInvoice:
    line = SaleLine(
        item_id="rice",
        name="Rice 5kg",
        quantity=quantity,
        unit_price=150.0,
        batch_deductions=[BatchDeduction(batch_id="batch-a", quantity=quantity, unit_cost=100.0)],
    )
    return SaleInvoice(
        id="F1",
        items=[line],
        subtotal=line.line_total,
        total_amount=line.line_total,
        total_amount_base=line.line_total,
        customer_id="cust-1",
        timestamp=datetime(2024, 3, 1, 10, 30),
    )


def sale_changes(stock: int, total: float) -> StoreChanges:
    batch = rice_product().batches[0].model_copy(update={"stock": stock})
    return StoreChanges(
        stock_updates=[BatchChange(product_id="rice", batch=batch)],
        balance_updates=[
            BalanceUpdate(
                party_id="cust-1",
                party_type=PartyType.CUSTOMER,
                balances=PartyBalances(afn=total, total=total),
            )
        ],
        transactions=[credit_sale_txn(total)],
    )


class TestCatalogue:
    async def test_product_round_trip(self, seeded):
        products = await seeded.get_products()
        assert len(products) == 1
        assert products[0].stock == 10
        batch = products[0].batches[0]
        assert batch.purchase_date == datetime(2024, 1, 1)
        assert batch.expiry_date == date(2025, 1, 1)

    async def test_duplicate_product_is_persistence_error(self, seeded):
        with pytest.raises(PersistenceError):
            await seeded.add_product(Product(id="rice", name="Again"))

    async def test_party_with_opening_balance(self, store):
        txn = LedgerTransaction(
            id="open-1",
            party_id="sup-9",
            party_type=PartyType.SUPPLIER,
            type=TransactionType.OPENING_BALANCE,
            amount=10.0,
            currency=Currency.USD,
            exchange_rate=70.0,
            base_amount=700.0,
        )
        await store.add_party(
            Party(
                id="sup-9",
                name="Herat Wholesale",
                party_type=PartyType.SUPPLIER,
                balances=PartyBalances(usd=10.0, total=700.0),
            ),
            txn,
        )
        parties = await store.get_entities()
        assert parties[0].balances.usd == 10.0
        transactions = await store.get_transactions()
        assert transactions[0].currency == Currency.USD


class TestSales:
    async def test_create_sale_applies_changes(self, seeded):
        await seeded.create_sale(sale(), sale_changes(stock=8, total=300.0))

        invoices = await seeded.get_invoices()
        saved = invoices.sales[0]
        assert saved.items[0].batch_deductions[0].batch_id == "batch-a"
        assert saved.items[0].cost_basis == 200.0
        assert saved.timestamp == datetime(2024, 3, 1, 10, 30)
        assert (await seeded.get_products())[0].stock == 8
        customer = next(p for p in await seeded.get_entities() if p.id == "cust-1")
        assert customer.balances.total == 300.0
        assert len(await seeded.get_transactions()) == 1

    async def test_failed_write_leaves_nothing(self, seeded):
        changes = sale_changes(stock=8, total=300.0)
        changes.balance_updates[0].party_id = "ghost"

        with pytest.raises(PersistenceError):
            await seeded.create_sale(sale(), changes)

        assert (await seeded.get_invoices()).sales == []
        assert (await seeded.get_products())[0].stock == 10
        assert await seeded.get_transactions() == []

    async def test_negative_stock_rolls_back(self, seeded):
        with pytest.raises(PersistenceError):
            await seeded.create_sale(sale(), sale_changes(stock=-1, total=300.0))
        assert (await seeded.get_invoices()).sales == []

    async def test_update_sale(self, seeded):
        await seeded.create_sale(sale(), sale_changes(stock=8, total=300.0))
        edited = sale(quantity=1)
        changes = sale_changes(stock=9, total=150.0)
        changes.transactions = [credit_sale_txn(150.0, "F1-edit")]

        await seeded.update_sale("F1", edited, changes)

        saved = (await seeded.get_invoices()).sales
        assert len(saved) == 1
        assert saved[0].items[0].quantity == 1
        assert (await seeded.get_products())[0].stock == 9

    async def test_update_missing_sale(self, seeded):
        with pytest.raises(InvoiceNotFoundError):
            await seeded.update_sale("F9", sale(), StoreChanges())


class TestPurchasesAndShipments:
    def _shipment(self) -> InTransitInvoice:
        return InTransitInvoice(
            id="T1",
            supplier_id="sup-1",
            items=[
                PurchaseLine(
                    product_id="rice", quantity=5, purchase_price=2.0, lot_number="SHIP-1", at_factory_qty=5
                )
            ],
            total_amount=10.0,
            currency=Currency.USD,
            exchange_rate=70.0,
            expected_arrival_date=date(2024, 6, 1),
        )

    async def test_in_transit_round_trip(self, seeded):
        await seeded.create_in_transit(self._shipment())
        saved = (await seeded.get_invoices()).in_transit[0]
        assert saved.items[0].at_factory_qty == 5
        assert saved.expected_arrival_date == date(2024, 6, 1)
        assert saved.status == InTransitStatus.ACTIVE

    async def test_receipt_updates_shipment_with_purchase(self, seeded):
        shipment = self._shipment()
        await seeded.create_in_transit(shipment)
        line = shipment.items[0].model_copy(update={"at_factory_qty": 0, "received_qty": 5})
        received = shipment.model_copy(update={"items": [line], "status": InTransitStatus.CLOSED})
        purchase = PurchaseInvoice(
            id="P1",
            supplier_id="sup-1",
            items=[PurchaseLine(product_id="rice", quantity=5, purchase_price=2.0, lot_number="SHIP-1")],
            total_amount=10.0,
            total_amount_base=700.0,
            currency=Currency.USD,
            exchange_rate=70.0,
            source_in_transit_id="T1",
        )
        new_batch = ProductBatch(id="batch-s", lot_number="SHIP-1", stock=5, purchase_price=140.0)

        await seeded.create_purchase(
            purchase,
            StoreChanges(new_batches=[BatchChange(product_id="rice", batch=new_batch)]),
            in_transit_update=received,
        )

        invoices = await seeded.get_invoices()
        assert invoices.purchases[0].source_in_transit_id == "T1"
        assert invoices.in_transit[0].status == InTransitStatus.CLOSED
        assert (await seeded.get_products())[0].stock == 15

    async def test_delete_in_transit(self, seeded):
        await seeded.create_in_transit(self._shipment())
        assert await seeded.delete_in_transit("T1") is True
        assert await seeded.delete_in_transit("T1") is False

    async def test_payment_with_shipment_update(self, seeded):
        shipment = self._shipment()
        await seeded.create_in_transit(shipment)
        txn = LedgerTransaction(
            id="pay-1",
            party_id="sup-1",
            party_type=PartyType.SUPPLIER,
            type=TransactionType.PAYMENT,
            direction=-1,
            amount=4.0,
            currency=Currency.USD,
            exchange_rate=70.0,
            base_amount=280.0,
            invoice_id="T1",
        )
        update = BalanceUpdate(
            party_id="sup-1", party_type=PartyType.SUPPLIER, balances=PartyBalances(usd=-4.0, total=-280.0)
        )

        await seeded.process_payment(update, txn, in_transit_update=shipment.model_copy(update={"paid_amount": 4.0}))

        assert (await seeded.get_invoices()).in_transit[0].paid_amount == 4.0
        supplier = next(p for p in await seeded.get_entities() if p.id == "sup-1")
        assert supplier.balances.total == -280.0


class TestCatalogueMaintenance:
    async def test_update_product(self, seeded):
        product = rice_product().model_copy(update={"name": "Rice 10kg", "sale_price": 280.0, "barcode": "626"})
        await seeded.update_product(product)

        [saved] = await seeded.get_products()
        assert (saved.name, saved.sale_price, saved.barcode) == ("Rice 10kg", 280.0, "626")
        assert saved.stock == 10

    async def test_update_missing_product(self, seeded):
        with pytest.raises(ProductNotFoundError):
            await seeded.update_product(Product(id="tea", name="Tea"))

    async def test_deactivate(self, seeded):
        assert await seeded.deactivate_product("rice")
        assert await seeded.deactivate_party("cust-1")
        assert not await seeded.deactivate_party("nobody")

        assert (await seeded.get_products())[0].active is False
        parties = {p.id: p for p in await seeded.get_entities()}
        assert parties["cust-1"].active is False
        assert parties["sup-1"].active is True

    async def test_employee_fields(self, store):
        await store.add_party(
            Party(id="emp-1", name="Farid", party_type=PartyType.EMPLOYEE, position="Clerk", monthly_salary=6000.0)
        )
        [employee] = await store.get_entities()
        assert employee.position == "Clerk"
        assert employee.monthly_salary == 6000.0

    async def test_services(self, store):
        await store.add_service(Service(id="svc-1", name="Delivery", price=50.0))
        assert await store.get_services() == [Service(id="svc-1", name="Delivery", price=50.0)]

        assert await store.delete_service("svc-1")
        assert not await store.delete_service("svc-1")
        assert await store.get_services() == []

    async def test_walk_in_name_only_without_account(self, seeded):
        await seeded.create_sale(sale(), sale_changes(stock=8, total=300.0))
        walk_in = sale().model_copy(update={"id": "F2", "customer_id": None})
        await seeded.create_sale(walk_in, StoreChanges())

        assert not await seeded.set_sale_customer_name("F1", "Karim")
        assert await seeded.set_sale_customer_name("F2", "Karim")

        names = {i.id: i.customer_name for i in (await seeded.get_invoices()).sales}
        assert names == {"F1": None, "F2": "Karim"}


def expense(expense_id: str, when: datetime, **kwargs) -> Expense:
    return Expense(id=expense_id, category="rent", amount=100.0, base_amount=100.0, date=when, **kwargs)


class TestAccounting:
    async def test_expenses_ordered_by_date(self, store):
        await store.add_expense(expense("e2", datetime(2024, 2, 1)))
        await store.add_expense(
            expense("e1", datetime(2024, 1, 1)).model_copy(
                update={"currency": Currency.USD, "amount": 2.0, "exchange_rate": 70.0, "base_amount": 140.0}
            )
        )

        saved = await store.get_expenses()
        assert [e.id for e in saved] == ["e1", "e2"]
        assert saved[0].currency == Currency.USD
        assert saved[0].base_amount == 140.0

        assert await store.delete_expense("e1")
        assert [e.id for e in await store.get_expenses()] == ["e2"]

    async def test_payroll_is_one_write(self, store):
        await store.add_party(
            Party(
                id="emp-1",
                name="Farid",
                party_type=PartyType.EMPLOYEE,
                monthly_salary=5000.0,
                balances=PartyBalances(afn=1000.0, total=1000.0),
            )
        )
        posting = LedgerTransaction(
            id="txn-sal",
            party_id="emp-1",
            party_type=PartyType.EMPLOYEE,
            type=TransactionType.SALARY_PAYMENT,
            amount=1000.0,
            base_amount=1000.0,
            invoice_id="SAL-2024-05",
        )
        changes = StoreChanges(
            balance_updates=[
                BalanceUpdate(party_id="emp-1", party_type=PartyType.EMPLOYEE, balances=PartyBalances())
            ],
            transactions=[posting],
        )

        await store.process_payroll(
            changes, [expense("e-sal", datetime(2024, 5, 31), payroll_period="2024-05")]
        )

        [employee] = await store.get_entities()
        assert employee.balances.total == 0.0
        assert [t.invoice_id for t in await store.get_transactions()] == ["SAL-2024-05"]
        assert (await store.get_expenses())[0].payroll_period == "2024-05"

    async def test_failed_payroll_rolls_back(self, store):
        changes = StoreChanges(
            balance_updates=[BalanceUpdate(party_id="ghost", party_type=PartyType.EMPLOYEE, balances=PartyBalances())]
        )
        with pytest.raises(PersistenceError):
            await store.process_payroll(changes, [expense("e-sal", datetime(2024, 5, 31))])
        assert await store.get_expenses() == []
