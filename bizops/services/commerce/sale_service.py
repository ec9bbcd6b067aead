"""
Sale Service
Atomic point-of-sale transactions: stock reservation, items, payments and voids
"""
from typing import List, Optional
from datetime import date, datetime, timedelta
import uuid

from sqlalchemy.orm import Session

from bizops.core.config import settings
from bizops.core.exceptions import (
    ConflictError, InsufficientStockError, NotFoundError, ValidationError
)
from bizops.core.gateway import PersistenceGateway
from bizops.core.logging import get_logger
from bizops.models.commerce import POSItem, POSPayment, POSTransaction, Product
from bizops.models.organization import generate_id
from bizops.models.scheduling import Customer, Service
from bizops.schemas.commerce import SaleCreate
from bizops.services.calculations import ZERO, calculate_line, money
from .inventory_service import record_movement

logger = get_logger("commerce")


def generate_transaction_number(today: Optional[date] = None) -> str:
    """TXN-YYYYMMDD-XXXXXX with a random hex suffix"""
    today = today or datetime.utcnow().date()
    return f"TXN-{today:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


class SaleService:
    """
    Point-of-sale transactions.

    Product rows are locked in id order before stock is read, so concurrent
    sales of the same product serialize. Unit prices and names are taken
    from the product or service master, never from the request.
    """

    def __init__(self, db: Session):
        self.db = db
        self.gateway = PersistenceGateway(db)

    def list_sales(self, organization_id: str, status: Optional[str] = None,
                   cashier_id: Optional[str] = None, customer_id: Optional[str] = None,
                   start_date: Optional[date] = None, end_date: Optional[date] = None,
                   page: int = 1, limit: int = 50) -> dict:
        query = self.gateway.scoped(POSTransaction, organization_id)
        if status:
            query = query.filter(POSTransaction.status == status)
        if cashier_id:
            query = query.filter(POSTransaction.cashier_id == cashier_id)
        if customer_id:
            query = query.filter(POSTransaction.customer_id == customer_id)
        if start_date:
            query = query.filter(POSTransaction.created_at >= datetime.combine(start_date, datetime.min.time()))
        if end_date:
            query = query.filter(
                POSTransaction.created_at < datetime.combine(end_date + timedelta(days=1), datetime.min.time())
            )

        total = query.count()
        items = (
            query.order_by(POSTransaction.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {"items": items, "total": total, "page": page, "limit": limit}

    def get_sale(self, organization_id: str, transaction_id: str) -> POSTransaction:
        return self.gateway.require_scoped(POSTransaction, organization_id, transaction_id, "Transaction")

    def create_sale(self, organization_id: str, cashier_id: Optional[str], req: SaleCreate) -> POSTransaction:
        """
        Record a completed sale in one transaction.

        Raises:
            NotFoundError: customer, product or service absent in the organization
            InsufficientStockError: an item asks for more than is on hand
            ValidationError: order discount exceeds the amount due
        """
        def work():
            if req.customer_id:
                self.gateway.require_scoped(Customer, organization_id, req.customer_id, "Customer")

            products = self.gateway.lock_rows(
                Product, organization_id, [i.product_id for i in req.items if i.product_id]
            )
            service_ids = [i.service_id for i in req.items if i.service_id]
            services = {}
            if service_ids:
                services = {
                    s.id: s for s in self.gateway.scoped(Service, organization_id)
                    .filter(Service.id.in_(service_ids)).all()
                }

            txn = POSTransaction(
                id=generate_id(),
                organization_id=organization_id,
                transaction_number=generate_transaction_number(),
                customer_id=req.customer_id,
                cashier_id=cashier_id,
                terminal_id=req.terminal_id,
                status="completed",
                notes=req.notes,
            )
            self.gateway.add(txn)

            sub_total, tax_total = ZERO, ZERO
            for item in req.items:
                if item.product_id:
                    product = products.get(item.product_id)
                    if product is None:
                        raise NotFoundError("Product not found", details={"product_id": item.product_id})
                    if product.current_stock < item.quantity:
                        raise InsufficientStockError(
                            f"Insufficient stock for {product.name}",
                            details={"message": f"Insufficient stock for {product.name}",
                                     "product_id": product.id, "available": product.current_stock,
                                     "requested": item.quantity},
                        )
                    record_movement(
                        self.gateway, product, "out", item.quantity,
                        product.current_stock - item.quantity,
                        reference=txn.transaction_number, reference_type="sale", created_by=cashier_id,
                    )
                    name, unit_price = product.name, product.selling_price
                else:
                    service = services.get(item.service_id)
                    if service is None:
                        raise NotFoundError("Service not found", details={"service_id": item.service_id})
                    name, unit_price = service.name, service.price

                amounts = calculate_line(item.quantity, unit_price, item.discount_percent,
                                         item.discount_amount, item.tax_rate)
                txn.items.append(POSItem(
                    product_id=item.product_id,
                    service_id=item.service_id,
                    item_name=name,
                    quantity=item.quantity,
                    unit_price=money(unit_price),
                    discount_percent=item.discount_percent,
                    discount_amount=amounts.discount_amount,
                    tax_rate=item.tax_rate,
                    tax_amount=amounts.tax_amount,
                    total_price=amounts.total_price,
                ))
                sub_total += amounts.total_price
                tax_total += amounts.tax_amount

            discount = money(req.discount)
            if discount > sub_total + tax_total:
                raise ValidationError("Discount exceeds the transaction amount")

            now = datetime.utcnow()
            tender = ZERO
            for payment in req.payments:
                amount = money(payment.amount)
                txn.payments.append(POSPayment(
                    method=payment.method.value,
                    amount=amount,
                    reference=payment.reference,
                    status="completed",
                    processed_at=now,
                ))
                tender += amount

            total = money(sub_total + tax_total - discount)
            txn.sub_total = money(sub_total)
            txn.tax_amount = money(tax_total)
            txn.discount_amount = discount
            txn.total_amount = total
            txn.tender_amount = tender
            txn.change_amount = money(tender - total)
            self.gateway.flush()
            return txn

        txn = self.gateway.within_transaction(work, retries=settings.STOCK_MAX_RETRIES)
        logger.info(f"Sale {txn.transaction_number} completed: total {txn.total_amount}, "
                    f"{len(txn.items)} item(s)")
        return txn

    def void_sale(self, organization_id: str, transaction_id: str, reason: str,
                  user_id: Optional[str] = None) -> POSTransaction:
        """
        Void a completed sale, returning every product's stock.

        Raises:
            ConflictError: the sale is already voided or not completed
        """
        def work():
            txn = self.gateway.require_scoped(POSTransaction, organization_id, transaction_id,
                                              "Transaction", lock=True)
            if txn.status == "voided":
                raise ConflictError("Transaction already voided")
            if txn.status != "completed":
                raise ConflictError(f"Cannot void a {txn.status} transaction")

            products = self._lock_products_for_restock(
                organization_id, [i.product_id for i in txn.items if i.product_id]
            )
            for item in txn.items:
                if not item.product_id:
                    continue
                product = products[item.product_id]
                record_movement(
                    self.gateway, product, "in", item.quantity, product.current_stock + item.quantity,
                    reference=txn.transaction_number, reference_type="void", created_by=user_id,
                    notes=reason,
                )

            txn.status = "voided"
            txn.notes = f"{txn.notes or ''} | VOIDED: {reason}"
            txn.voided_by = user_id
            txn.voided_at = datetime.utcnow()
            self.gateway.flush()
            return txn

        txn = self.gateway.within_transaction(work, retries=settings.STOCK_MAX_RETRIES)
        logger.info(f"Sale {txn.transaction_number} voided: {reason}")
        return txn

    def _lock_products_for_restock(self, organization_id: str, product_ids: List[str]) -> dict:
        # Soft-deleted products still take their stock back
        wanted = sorted(set(product_ids))
        if not wanted:
            return {}
        rows = (
            self.db.query(Product)
            .filter(Product.organization_id == organization_id, Product.id.in_(wanted))
            .order_by(Product.id)
            .with_for_update()
            .all()
        )
        return {p.id: p for p in rows}
