"""
Tests for the Commerce Transaction Engine
Inventory movements, sales, voids and cash drawer reconciliation
"""

import pytest
from decimal import Decimal
from sqlalchemy.orm import Session

from bizops.core.exceptions import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from bizops.models import InventoryMovement, Organization, Product
from bizops.schemas.commerce import (
    CashDrawerClose,
    CashDrawerOpen,
    InventoryAdjustment,
    ProductCreate,
    SaleCreate,
)
from bizops.services.calculations import calculate_line, money, signed_delta
from bizops.services.commerce import CashDrawerService, InventoryService, SaleService


@pytest.fixture
def product(db_session: Session, organization: Organization) -> Product:
    """Product with five on hand, selling at 20.00"""
    return InventoryService(db_session).create_product(organization.id, ProductCreate(
        sku="FLT-001", name="Oil filter", cost_price=Decimal("8.00"),
        selling_price=Decimal("20.00"), current_stock=5, reorder_point=2,
    ))


def sale(product_id: str, quantity: int, **fields) -> SaleCreate:
    items = [{"product_id": product_id, "quantity": quantity}]
    return SaleCreate(items=items, **fields)


def movements(db: Session, product_id: str):
    return (
        db.query(InventoryMovement)
        .filter(InventoryMovement.product_id == product_id)
        .order_by(InventoryMovement.created_at)
        .all()
    )


class TestCalculations:

    def test_money_rounds_half_up(self):
        assert money("2.345") == Decimal("2.35")
        assert money("2.344") == Decimal("2.34")

    def test_signed_delta_by_account_type(self):
        assert signed_delta("Asset", 100, 0) == Decimal("100.00")
        assert signed_delta("Revenue", 100, 0) == Decimal("-100.00")
        assert signed_delta("Liability", 0, 50) == Decimal("50.00")

    def test_line_with_percent_discount_and_tax(self):
        amounts = calculate_line(2, "50.00", discount_percent=10, tax_rate=20)
        assert amounts.gross_amount == Decimal("100.00")
        assert amounts.discount_amount == Decimal("10.00")
        assert amounts.total_price == Decimal("90.00")
        assert amounts.tax_amount == Decimal("18.00")

    def test_explicit_discount_takes_precedence(self):
        amounts = calculate_line(1, "30.00", discount_percent=50, discount_amount="5.00")
        assert amounts.discount_amount == Decimal("5.00")
        assert amounts.total_price == Decimal("25.00")


class TestInventoryService:

    def test_opening_stock_is_a_movement(self, db_session: Session, product: Product):
        history = movements(db_session, product.id)

        assert product.current_stock == 5
        assert len(history) == 1
        assert history[0].movement_type == "in"
        assert history[0].reference_type == "adjustment"
        assert (history[0].previous_quantity, history[0].new_quantity) == (0, 5)

    def test_duplicate_sku_conflicts(self, db_session: Session, organization: Organization, product: Product):
        with pytest.raises(ConflictError):
            InventoryService(db_session).create_product(organization.id, ProductCreate(sku="FLT-001", name="Dup"))

    def test_manual_out_below_zero_fails(self, db_session: Session, organization: Organization,
                                         product: Product):
        with pytest.raises(InsufficientStockError):
            InventoryService(db_session).adjust_inventory(organization.id, InventoryAdjustment(
                product_id=product.id, movement_type="out", quantity=6
            ))
        db_session.refresh(product)
        assert product.current_stock == 5

    def test_adjustment_sets_absolute_level(self, db_session: Session, organization: Organization,
                                            product: Product):
        movement = InventoryService(db_session).adjust_inventory(organization.id, InventoryAdjustment(
            product_id=product.id, movement_type="adjustment", quantity=2, notes="Stock count"
        ))

        assert movement.quantity == -3
        assert (movement.previous_quantity, movement.new_quantity) == (5, 2)
        db_session.refresh(product)
        assert product.current_stock == 2

    def test_stock_equals_sum_of_movements(self, db_session: Session, organization: Organization,
                                           product: Product):
        service = InventoryService(db_session)
        service.adjust_inventory(organization.id, InventoryAdjustment(
            product_id=product.id, movement_type="in", quantity=10))
        service.adjust_inventory(organization.id, InventoryAdjustment(
            product_id=product.id, movement_type="out", quantity=4))
        service.adjust_inventory(organization.id, InventoryAdjustment(
            product_id=product.id, movement_type="adjustment", quantity=9))
        SaleService(db_session).create_sale(organization.id, "cashier-1", sale(product.id, 3))

        total = 0
        for m in movements(db_session, product.id):
            if m.movement_type == "in":
                total += m.quantity
            elif m.movement_type == "out":
                total -= m.quantity
            else:
                total += m.quantity
        db_session.refresh(product)
        assert product.current_stock == total == 6

    def test_low_stock_listing(self, db_session: Session, organization: Organization, product: Product):
        service = InventoryService(db_session)
        assert service.list_products(organization.id, low_stock=True) == []

        service.adjust_inventory(organization.id, InventoryAdjustment(
            product_id=product.id, movement_type="out", quantity=3))
        assert [p.sku for p in service.list_products(organization.id, low_stock=True)] == ["FLT-001"]


class TestSaleService:

    def test_sale_decrements_stock(self, db_session: Session, organization: Organization, product: Product):
        txn = SaleService(db_session).create_sale(organization.id, "cashier-1", sale(
            product.id, 3, payments=[{"method": "cash", "amount": "100.00"}]
        ))

        assert txn.status == "completed"
        assert txn.transaction_number.startswith("TXN-")
        assert txn.total_amount == Decimal("60.00")
        assert txn.change_amount == Decimal("40.00")
        assert txn.items[0].item_name == "Oil filter"
        assert txn.items[0].unit_price == Decimal("20.00")

        db_session.refresh(product)
        assert product.current_stock == 2
        out = movements(db_session, product.id)[-1]
        assert (out.movement_type, out.previous_quantity, out.new_quantity) == ("out", 5, 2)
        assert out.reference == txn.transaction_number
        assert out.reference_type == "sale"

    def test_void_restores_stock(self, db_session: Session, organization: Organization, product: Product):
        service = SaleService(db_session)
        txn = service.create_sale(organization.id, "cashier-1", sale(product.id, 3))

        voided = service.void_sale(organization.id, txn.id, "Customer changed mind", "manager-1")

        assert voided.status == "voided"
        assert voided.voided_by == "manager-1"
        assert "VOIDED: Customer changed mind" in voided.notes
        db_session.refresh(product)
        assert product.current_stock == 5
        back_in = movements(db_session, product.id)[-1]
        assert (back_in.movement_type, back_in.previous_quantity, back_in.new_quantity) == ("in", 2, 5)
        assert back_in.reference_type == "void"

    def test_void_twice_conflicts(self, db_session: Session, organization: Organization, product: Product):
        service = SaleService(db_session)
        txn = service.create_sale(organization.id, None, sale(product.id, 1))
        service.void_sale(organization.id, txn.id, "Mistake")

        with pytest.raises(ConflictError):
            service.void_sale(organization.id, txn.id, "Again")

    def test_insufficient_stock_rolls_back_whole_sale(self, db_session: Session, organization: Organization,
                                                      product: Product):
        spare = InventoryService(db_session).create_product(organization.id, ProductCreate(
            sku="WPR-002", name="Wiper", selling_price=Decimal("12.00"), current_stock=10,
        ))
        request = SaleCreate(items=[
            {"product_id": spare.id, "quantity": 2},
            {"product_id": product.id, "quantity": 6},
        ])

        with pytest.raises(InsufficientStockError) as excinfo:
            SaleService(db_session).create_sale(organization.id, None, request)

        assert excinfo.value.details["available"] == 5
        db_session.refresh(spare)
        db_session.refresh(product)
        assert spare.current_stock == 10
        assert product.current_stock == 5
        assert SaleService(db_session).list_sales(organization.id)["total"] == 0

    def test_totals_include_tax_and_discount(self, db_session: Session, organization: Organization,
                                             product: Product, scheduling_data):
        request = SaleCreate(
            items=[
                {"product_id": product.id, "quantity": 2, "tax_rate": "10"},
                {"service_id": scheduling_data["service_id"], "quantity": 1, "discount_percent": "20"},
            ],
            discount="4.00",
        )
        txn = SaleService(db_session).create_sale(organization.id, None, request)

        item_total = sum((i.total_price for i in txn.items), Decimal("0"))
        item_tax = sum((i.tax_amount for i in txn.items), Decimal("0"))
        assert txn.sub_total == Decimal("80.00")
        assert txn.tax_amount == Decimal("4.00")
        assert txn.total_amount == item_total + item_tax - txn.discount_amount == Decimal("80.00")

    def test_discount_larger_than_due_is_invalid(self, db_session: Session, organization: Organization,
                                                 product: Product):
        with pytest.raises(ValidationError):
            SaleService(db_session).create_sale(organization.id, None, sale(product.id, 1, discount="25.00"))

    def test_unknown_product_is_not_found(self, db_session: Session, organization: Organization):
        with pytest.raises(NotFoundError):
            SaleService(db_session).create_sale(organization.id, None, sale("missing", 1))

    def test_product_of_other_organization_is_not_found(self, db_session: Session, product: Product,
                                                        other_organization: Organization):
        with pytest.raises(NotFoundError):
            SaleService(db_session).create_sale(other_organization.id, None, sale(product.id, 1))


class TestCashDrawer:

    def test_close_computes_variance(self, db_session: Session, organization: Organization, product: Product):
        drawers = CashDrawerService(db_session)
        drawer = drawers.open_cash_drawer(organization.id, "cashier-1", CashDrawerOpen(
            terminal_id="T1", opening_amount=Decimal("50.00")
        ))
        sales = SaleService(db_session)
        sales.create_sale(organization.id, "cashier-1", sale(
            product.id, 1, terminal_id="T1", payments=[{"method": "cash", "amount": "20.00"}]
        ))
        sales.create_sale(organization.id, "cashier-1", sale(
            product.id, 1, terminal_id="T1", payments=[{"method": "card", "amount": "20.00"}]
        ))
        sales.create_sale(organization.id, "cashier-2", sale(
            product.id, 1, terminal_id="T2", payments=[{"method": "cash", "amount": "20.00"}]
        ))
        voided = sales.create_sale(organization.id, "cashier-1", sale(
            product.id, 1, terminal_id="T1", payments=[{"method": "cash", "amount": "20.00"}]
        ))
        sales.void_sale(organization.id, voided.id, "Wrong item")

        closed = drawers.close_cash_drawer(organization.id, drawer.id, "cashier-1",
                                           CashDrawerClose(closing_amount=Decimal("65.00")))

        assert closed.status == "closed"
        assert closed.expected_amount == Decimal("70.00")
        assert closed.variance == Decimal("-5.00")

    def test_one_open_drawer_per_terminal(self, db_session: Session, organization: Organization):
        drawers = CashDrawerService(db_session)
        drawers.open_cash_drawer(organization.id, "cashier-1", CashDrawerOpen(terminal_id="T1"))

        with pytest.raises(ConflictError):
            drawers.open_cash_drawer(organization.id, "cashier-2", CashDrawerOpen(terminal_id="T1"))

        other = drawers.open_cash_drawer(organization.id, "cashier-2", CashDrawerOpen(terminal_id="T2"))
        assert other.status == "open"

    def test_closed_drawer_cannot_close_again(self, db_session: Session, organization: Organization):
        drawers = CashDrawerService(db_session)
        drawer = drawers.open_cash_drawer(organization.id, None, CashDrawerOpen(terminal_id="T1"))
        drawers.close_cash_drawer(organization.id, drawer.id, None, CashDrawerClose(closing_amount=0))

        with pytest.raises(ConflictError):
            drawers.close_cash_drawer(organization.id, drawer.id, None, CashDrawerClose(closing_amount=0))
