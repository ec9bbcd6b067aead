"""
Inventory API endpoints
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from bizops.api import deps
from bizops.api.deps import RequestContext
from bizops.schemas.commerce import (
    InventoryAdjustment,
    MovementRead,
    MovementType,
    ProductCreate,
    ProductRead,
)
from bizops.schemas.common import Envelope, ok
from bizops.services.commerce import InventoryService

router = APIRouter()


@router.get("/products", response_model=Envelope[List[ProductRead]])
def list_products(
    search: Optional[str] = Query(None, description="Match on name or SKU"),
    low_stock: bool = Query(False, description="Only products at or below reorder point"),
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(InventoryService(db).list_products(ctx.organization_id, search, low_stock))


@router.post("/products", response_model=Envelope[ProductRead], status_code=status.HTTP_201_CREATED)
def create_product(
    product: ProductCreate,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(InventoryService(db).create_product(ctx.organization_id, product, ctx.user_id))


@router.get("/products/{product_id}", response_model=Envelope[ProductRead])
def get_product(
    product_id: str,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    return ok(InventoryService(db).get_product(ctx.organization_id, product_id))


@router.post("/adjustments", response_model=Envelope[MovementRead], status_code=status.HTTP_201_CREATED)
def adjust_inventory(
    adjustment: InventoryAdjustment,
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    """
    Manual stock movement.

    ``adjustment`` sets the absolute stock level to ``quantity``.
    """
    return ok(InventoryService(db).adjust_inventory(ctx.organization_id, adjustment, ctx.user_id))


@router.get("/movements", response_model=Envelope[List[MovementRead]])
def list_movements(
    product_id: Optional[str] = None,
    movement_type: Optional[MovementType] = None,
    reference: Optional[str] = None,
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(deps.get_db),
    ctx: RequestContext = Depends(deps.get_request_context),
):
    movements = InventoryService(db).list_movements(
        ctx.organization_id,
        product_id=product_id,
        movement_type=movement_type.value if movement_type else None,
        reference=reference,
        limit=limit,
    )
    return ok(movements)
