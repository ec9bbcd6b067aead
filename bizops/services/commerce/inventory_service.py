"""
Inventory Service
Products, manual stock adjustments and the movement log
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from bizops.core.config import settings
from bizops.core.exceptions import ConflictError, InsufficientStockError
from bizops.core.gateway import PersistenceGateway
from bizops.core.logging import get_logger
from bizops.models.commerce import InventoryMovement, Product
from bizops.schemas.commerce import InventoryAdjustment, ProductCreate
from bizops.services.calculations import money

logger = get_logger("commerce")


def record_movement(gateway: PersistenceGateway, product: Product, movement_type: str,
                    quantity: int, new_quantity: int, reference: Optional[str],
                    reference_type: str, created_by: Optional[str], unit_cost=None,
                    notes: Optional[str] = None) -> InventoryMovement:
    """
    Set the product's stock and append the matching movement row.

    The caller must hold the product row lock.
    """
    movement = InventoryMovement(
        organization_id=product.organization_id,
        product_id=product.id,
        movement_type=movement_type,
        quantity=quantity,
        previous_quantity=product.current_stock,
        new_quantity=new_quantity,
        unit_cost=money(unit_cost if unit_cost is not None else product.cost_price or 0),
        reference=reference,
        reference_type=reference_type,
        notes=notes,
        created_by=created_by,
    )
    product.current_stock = new_quantity
    gateway.add(movement)
    return movement


class InventoryService:

    def __init__(self, db: Session):
        self.db = db
        self.gateway = PersistenceGateway(db)

    def list_products(self, organization_id: str, search: Optional[str] = None,
                      low_stock: bool = False) -> List[Product]:
        query = self.gateway.scoped(Product, organization_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter((Product.name.ilike(pattern)) | (Product.sku.ilike(pattern)))
        if low_stock:
            query = query.filter(Product.current_stock <= Product.reorder_point)
        return query.order_by(Product.name).all()

    def get_product(self, organization_id: str, product_id: str) -> Product:
        return self.gateway.require_scoped(Product, organization_id, product_id, "Product")

    def create_product(self, organization_id: str, data: ProductCreate,
                       user_id: Optional[str] = None) -> Product:
        """Create a product; opening stock is recorded as an inbound movement"""
        def work():
            clash = (
                self.gateway.scoped(Product, organization_id)
                .filter(Product.sku == data.sku)
                .first()
            )
            if clash:
                raise ConflictError(f"SKU {data.sku} already exists")

            product = Product(
                organization_id=organization_id,
                sku=data.sku,
                name=data.name,
                description=data.description,
                unit_of_measure=data.unit_of_measure,
                cost_price=money(data.cost_price),
                selling_price=money(data.selling_price),
                current_stock=0,
                reorder_point=data.reorder_point,
            )
            self.gateway.add(product)
            self.gateway.flush()
            if data.current_stock > 0:
                record_movement(self.gateway, product, "in", data.current_stock, data.current_stock,
                                reference="Opening stock", reference_type="adjustment",
                                created_by=user_id)
            return product

        product = self.gateway.within_transaction(work)
        logger.info(f"Product {product.sku} created with stock {product.current_stock}")
        return product

    def adjust_inventory(self, organization_id: str, adjustment: InventoryAdjustment,
                         user_id: Optional[str] = None) -> InventoryMovement:
        """
        Manual stock change under a product row lock.

        ``in`` adds, ``out`` removes and ``adjustment`` sets the absolute
        level; the movement quantity of an adjustment is the signed delta.

        Raises:
            InsufficientStockError: an ``out`` would take stock below zero
        """
        movement_type = adjustment.movement_type.value

        def work():
            product = self.gateway.require_scoped(Product, organization_id, adjustment.product_id,
                                                  "Product", lock=True)
            current = product.current_stock
            if movement_type == "in":
                quantity, new_quantity = adjustment.quantity, current + adjustment.quantity
            elif movement_type == "out":
                quantity, new_quantity = adjustment.quantity, current - adjustment.quantity
                if new_quantity < 0:
                    raise InsufficientStockError(
                        f"Insufficient stock for {product.sku}",
                        details={"message": f"Insufficient stock for {product.sku}",
                                 "product_id": product.id, "available": current,
                                 "requested": adjustment.quantity},
                    )
            else:
                quantity, new_quantity = adjustment.quantity - current, adjustment.quantity

            return record_movement(
                self.gateway, product, movement_type, quantity, new_quantity,
                reference=adjustment.reference, reference_type="manual", created_by=user_id,
                unit_cost=adjustment.unit_cost, notes=adjustment.notes,
            )

        movement = self.gateway.within_transaction(work, retries=settings.STOCK_MAX_RETRIES)
        logger.info(f"Stock {movement_type} on product {movement.product_id}: "
                    f"{movement.previous_quantity} -> {movement.new_quantity}")
        return movement

    def list_movements(self, organization_id: str, product_id: Optional[str] = None,
                       movement_type: Optional[str] = None, reference: Optional[str] = None,
                       limit: int = 100) -> List[InventoryMovement]:
        query = self.gateway.scoped(InventoryMovement, organization_id)
        if product_id:
            query = query.filter(InventoryMovement.product_id == product_id)
        if movement_type:
            query = query.filter(InventoryMovement.movement_type == movement_type)
        if reference:
            query = query.filter(InventoryMovement.reference == reference)
        return query.order_by(InventoryMovement.created_at.desc()).limit(limit).all()
