"""Catalogue maintenance, expenses and payroll against SQLite."""

from kasebyar.core.entities import (
    Currency,
    ExpenseDraft,
    OpeningBatchDraft,
    PartyDraft,
    PartyType,
    PaymentDraft,
    ProductDraft,
    ProductUpdate,
    ServiceDraft,
    TransactionType,
)


class TestProducts:
    async def test_product_with_first_batch(self, pos):
        result = await pos.add_product(
            ProductDraft(
                id="flour",
                name="Flour 10kg",
                sale_price=90.0,
                first_batch=OpeningBatchDraft(lot_number="LOT-F", quantity=12, purchase_price=60.0),
            )
        )

        assert result.success
        flour = pos.state.product("flour")
        assert flour.stock == 12
        assert flour.find_lot("LOT-F").purchase_price == 60.0
        assert pos.profit_summary().inventory_value == 20 * 100.0 + 12 * 60.0

    async def test_first_batch_lot_must_be_unique(self, pos):
        result = await pos.add_product(
            ProductDraft(
                id="flour",
                name="Flour 10kg",
                first_batch=OpeningBatchDraft(lot_number="LOT-1", quantity=1),
            )
        )
        assert result.error_code == "DUPLICATE_LOT"
        assert pos.state.product("flour") is None

    async def test_update_keeps_batches(self, pos):
        result = await pos.update_product("rice", ProductUpdate(sale_price=300.0, barcode="123"))

        assert result.success
        rice = pos.state.product("rice")
        assert rice.sale_price == 300.0
        assert rice.barcode == "123"
        assert rice.name == "Rice 5kg"
        assert rice.stock == 20

    async def test_deleted_product_leaves_the_catalogue(self, pos):
        pos.add_to_cart("rice", 1)
        await pos.complete_sale()

        assert (await pos.delete_product("rice")).success

        rice = pos.state.product("rice")
        assert rice is not None and not rice.active
        assert pos.state.active_products == []
        assert pos.add_to_cart("rice", 1).error_code == "PRODUCT_NOT_FOUND"
        assert pos.state.sale_invoice("F1").items[0].item_id == "rice"


class TestServices:
    async def test_sell_catalogue_service(self, pos):
        assert (await pos.add_service(ServiceDraft(id="delivery", name="Delivery", price=50.0))).success

        assert pos.add_service_to_cart("delivery", 2).success
        pos.add_to_cart("rice", 1)
        sold = await pos.complete_sale(customer_id="cust-1")

        assert sold.success
        assert sold.payload.total_amount == 350.0
        assert pos.state.product("rice").stock == 19

        assert (await pos.delete_service("delivery")).success
        assert pos.state.services == []
        assert pos.state.sale_invoice("F1").items[0].name == "Delivery"


class TestWalkInCustomer:
    async def test_name_walk_in_sale(self, pos):
        pos.add_to_cart("rice", 1)
        await pos.complete_sale()

        result = await pos.set_invoice_transient_customer("F1", "  Karim  ")

        assert result.success
        assert pos.state.sale_invoice("F1").customer_name == "Karim"

    async def test_account_sale_cannot_take_a_name(self, pos):
        pos.add_to_cart("rice", 1)
        await pos.complete_sale(customer_id="cust-1")

        result = await pos.set_invoice_transient_customer("F1", "Karim")
        assert result.error_code == "VALIDATION_ERROR"
        assert pos.state.sale_invoice("F1").customer_name is None


class TestDeleteParty:
    async def test_settled_party_is_removed(self, pos):
        assert (await pos.delete_party("cust-1")).success

        assert pos.state.party("cust-1").active is False
        assert "cust-1" not in {p.id for p in pos.state.active_parties}
        pos.add_to_cart("rice", 1)
        assert (await pos.complete_sale(customer_id="cust-1")).error_code == "PARTY_NOT_FOUND"

    async def test_party_with_balance_is_kept(self, pos):
        await pos.record_payment(
            PaymentDraft(
                party_id="emp-1", party_type=PartyType.EMPLOYEE, kind=TransactionType.ADVANCE, amount=300.0
            )
        )

        result = await pos.delete_party("emp-1")
        assert result.error_code == "VALIDATION_ERROR"
        assert pos.state.party("emp-1").active


class TestExpenses:
    async def test_expense_reduces_net_profit(self, pos):
        pos.add_to_cart("rice", 2)
        await pos.complete_sale()

        booked = await pos.add_expense(
            ExpenseDraft(category="Rent", amount=5.0, currency=Currency.USD, exchange_rate=70.0)
        )

        assert booked.success
        assert booked.payload.category == "rent"
        assert booked.payload.base_amount == 350.0
        summary = pos.profit_summary()
        assert summary.profit == 300.0
        assert summary.expenses == 350.0
        assert summary.net_profit == -50.0

        assert (await pos.delete_expense(booked.payload.id)).success
        assert pos.state.expenses == []

    async def test_unknown_category_refused(self, pos):
        result = await pos.add_expense(ExpenseDraft(category="travel", amount=10.0))
        assert result.error_code == "VALIDATION_ERROR"
        assert pos.state.expenses == []


class TestPayroll:
    async def test_salary_settles_advances(self, pos):
        await pos.add_party(
            PartyDraft(
                id="emp-2",
                name="Nasir",
                party_type=PartyType.EMPLOYEE,
                position="Cashier",
                monthly_salary=5000.0,
            )
        )
        await pos.record_payment(
            PaymentDraft(
                party_id="emp-2", party_type=PartyType.EMPLOYEE, kind=TransactionType.ADVANCE, amount=1000.0
            )
        )
        assert pos.state.party("emp-2").balances.total == 1000.0

        paid = await pos.pay_salaries("2026-09")

        assert paid.success
        run = paid.payload
        assert [p.employee_id for p in run.payslips] == ["emp-2"]
        assert run.payslips[0].advances_settled == 1000.0
        assert run.payslips[0].net_paid == 4000.0
        assert pos.state.party("emp-2").balances.total == 0.0
        assert [(e.category, e.base_amount, e.payroll_period) for e in pos.state.expenses] == [
            ("salary", 4000.0, "2026-09")
        ]
        assert pos.verify_balances().consistent

        again = await pos.pay_salaries("2026-09")
        assert again.error_code == "VALIDATION_ERROR"
        assert len(pos.state.expenses) == 1

    async def test_no_salaried_employees(self, pos):
        result = await pos.pay_salaries("2026-09")
        assert result.error_code == "VALIDATION_ERROR"
