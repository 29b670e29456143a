"""
Order endpoints.

Thin router that delegates to OrderAggregateService. Service calls return an
OperationResult; failures the user must act on become HTTP errors, benign
no-ops (stale ids) answer 200 with a message.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from pos_api.services.domain import OrderAggregateService
from shared.config.constants import Limits
from shared.infrastructure.db import get_db
from shared.utils.schemas import (
    DeliveryPartnerRequest,
    ErrorResponse,
    OperationResult,
    OrderAggregate,
    OrderGroup,
    OrderIdsRequest,
    OrderUpsertRequest,
    ProductQuantityRequest,
    QuantityDeltaRequest,
    SelectOrderRequest,
)


router = APIRouter(
    prefix="/api/orders",
    tags=["orders"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid state, e.g. the order was placed"},
        409: {"model": ErrorResponse, "description": "Order is being updated by another request"},
        500: {"model": ErrorResponse, "description": "Store write failed and was rolled back"},
    },
)


def _get_service(db: Session) -> OrderAggregateService:
    """Get OrderAggregateService instance."""
    return OrderAggregateService(db)


def _respond(result: OperationResult) -> OperationResult:
    if not result.success:
        raise HTTPException(status_code=result.status_code or 400, detail=result.message)
    return result


# =============================================================================
# Listing
# =============================================================================


@router.get("", response_model=list[OrderGroup])
def list_orders(
    search: str | None = Query(default=None, max_length=Limits.MAX_SEARCH_TERM_LENGTH),
    view_all: bool = False,
    db: Session = Depends(get_db),
) -> list[OrderGroup]:
    """
    Orders grouped by date bucket, newest activity first.

    Only PROCESSING orders unless view_all is set. The active order leads
    the list.
    """
    return _get_service(db).query_orders(search=search, view_all=view_all)


@router.get("/active", response_model=OrderAggregate | None)
def get_active_order(db: Session = Depends(get_db)) -> OrderAggregate | None:
    return _get_service(db).get_active_order()


@router.put("/active", response_model=OperationResult)
def select_active_order(body: SelectOrderRequest, db: Session = Depends(get_db)) -> OperationResult:
    return _respond(_get_service(db).select_active_order(body.order_id))


# =============================================================================
# Multi-selection
# =============================================================================


@router.get("/selection", response_model=list[int])
def get_selection(db: Session = Depends(get_db)) -> list[int]:
    return _get_service(db).multi_selection.ids


@router.post("/selection/{order_id}/toggle")
def toggle_selection(order_id: int, db: Session = Depends(get_db)) -> dict:
    selected = _get_service(db).toggle_multi_select(order_id)
    return {"order_id": order_id, "selected": selected}


@router.post("/selection/all", response_model=list[int])
def select_all_visible(
    search: str | None = Query(default=None, max_length=Limits.MAX_SEARCH_TERM_LENGTH),
    view_all: bool = False,
    db: Session = Depends(get_db),
) -> list[int]:
    """Select every order the list currently shows under the same filters."""
    return _get_service(db).select_all_visible(search=search, view_all=view_all)


@router.delete("/selection", status_code=204)
def clear_selection(db: Session = Depends(get_db)) -> None:
    _get_service(db).deselect_all()


@router.post("/selection/delete", response_model=OperationResult)
def delete_selected(db: Session = Depends(get_db)) -> OperationResult:
    return _respond(_get_service(db).delete_selected())


# =============================================================================
# Bulk actions
# =============================================================================


@router.post("/place", response_model=OperationResult)
def place_orders(body: OrderIdsRequest, db: Session = Depends(get_db)) -> OperationResult:
    return _respond(_get_service(db).place_orders(body.order_ids))


@router.post("/delete", response_model=OperationResult)
def delete_orders(body: OrderIdsRequest, db: Session = Depends(get_db)) -> OperationResult:
    return _respond(_get_service(db).delete_orders(body.order_ids))


# =============================================================================
# Single order
# =============================================================================


@router.post("", response_model=OperationResult)
def save_order(body: OrderUpsertRequest, db: Session = Depends(get_db)) -> OperationResult:
    """
    Create an order (no order_id) or update one.

    Missing address or phone for DineOut/Delivery orders is reported in
    warnings; the order is saved regardless.
    """
    return _respond(_get_service(db).create_or_update_order(body))


@router.get("/{order_id}", response_model=OrderAggregate)
def get_order(order_id: int, db: Session = Depends(get_db)) -> OrderAggregate:
    aggregate = _get_service(db).get_order(order_id)
    if aggregate is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return aggregate


@router.delete("/{order_id}", response_model=OperationResult)
def delete_order(order_id: int, db: Session = Depends(get_db)) -> OperationResult:
    return _respond(_get_service(db).delete_orders([order_id]))


@router.post("/{order_id}/place", response_model=OperationResult)
def place_order(order_id: int, db: Session = Depends(get_db)) -> OperationResult:
    return _respond(_get_service(db).place_order(order_id))


@router.put("/{order_id}/delivery-partner", response_model=OperationResult)
def update_delivery_partner(
    order_id: int,
    body: DeliveryPartnerRequest,
    db: Session = Depends(get_db),
) -> OperationResult:
    return _respond(_get_service(db).update_delivery_partner(order_id, body.employee_id))


# =============================================================================
# Cart lines
# =============================================================================


@router.get("/{order_id}/lines/{product_id}/quantity")
def get_product_quantity(order_id: int, product_id: int, db: Session = Depends(get_db)) -> dict:
    quantity = _get_service(db).get_product_quantity(order_id, product_id)
    return {"order_id": order_id, "product_id": product_id, "quantity": quantity}


@router.post("/{order_id}/lines/increase", response_model=OperationResult)
def increase_quantity(order_id: int, body: ProductQuantityRequest, db: Session = Depends(get_db)) -> OperationResult:
    return _respond(_get_service(db).increase_quantity(order_id, body.product_id))


@router.post("/{order_id}/lines/decrease", response_model=OperationResult)
def decrease_quantity(order_id: int, body: ProductQuantityRequest, db: Session = Depends(get_db)) -> OperationResult:
    return _respond(_get_service(db).decrease_quantity(order_id, body.product_id))


@router.post("/{order_id}/lines", response_model=OperationResult)
def mutate_quantity(order_id: int, body: QuantityDeltaRequest, db: Session = Depends(get_db)) -> OperationResult:
    """Apply a signed quantity delta. A line reaching zero is removed."""
    return _respond(_get_service(db).mutate_quantity(order_id, body.product_id, body.delta))


# =============================================================================
# Add-ons and charges
# =============================================================================


@router.post("/{order_id}/add-ons/{add_on_id}/toggle", response_model=OperationResult)
def toggle_add_on(order_id: int, add_on_id: int, db: Session = Depends(get_db)) -> OperationResult:
    return _respond(_get_service(db).toggle_add_on(order_id, add_on_id))


@router.post("/{order_id}/charges/{charge_id}/toggle", response_model=OperationResult)
def toggle_charge(order_id: int, charge_id: int, db: Session = Depends(get_db)) -> OperationResult:
    return _respond(_get_service(db).toggle_charge(order_id, charge_id))
