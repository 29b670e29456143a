"""
Catalog endpoints - products, add-ons, charges, customers and addresses.

Thin router that delegates to CatalogService, which raises AppException
subclasses that FastAPI turns into error responses.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pos_api.services.domain import CatalogService
from shared.config.constants import Limits
from shared.infrastructure.db import get_db
from shared.utils.exceptions import NotFoundError
from shared.utils.schemas import (
    AddOnInput,
    AddOnOutput,
    AddOnUpdate,
    AddressOutput,
    ChargeInput,
    ChargeOutput,
    ChargeUpdate,
    CustomerOutput,
    ErrorResponse,
    ProductInput,
    ProductOutput,
    ProductUpdate,
)


router = APIRouter(
    prefix="/api/catalog",
    tags=["catalog"],
    responses={404: {"model": ErrorResponse, "description": "Catalog row not found"}},
)


def _get_service(db: Session) -> CatalogService:
    """Get CatalogService instance."""
    return CatalogService(db)


# =============================================================================
# Products
# =============================================================================


@router.get("/products", response_model=list[ProductOutput])
def list_products(available_only: bool = False, db: Session = Depends(get_db)) -> list[ProductOutput]:
    return _get_service(db).list_products(available_only=available_only)


@router.get("/products/{product_id}", response_model=ProductOutput)
def get_product(product_id: int, db: Session = Depends(get_db)) -> ProductOutput:
    return _get_service(db).get_product(product_id)


@router.post("/products", response_model=ProductOutput, status_code=201)
def create_product(body: ProductInput, db: Session = Depends(get_db)) -> ProductOutput:
    return _get_service(db).create_product(body)


@router.patch("/products/{product_id}", response_model=ProductOutput)
def update_product(product_id: int, body: ProductUpdate, db: Session = Depends(get_db)) -> ProductOutput:
    """Update a product. A price change reprices the open orders holding it."""
    return _get_service(db).update_product(product_id, body)


@router.delete("/products/{product_id}")
def delete_product(product_id: int, db: Session = Depends(get_db)) -> dict:
    """Delete a product, removing it from every cart."""
    affected = _get_service(db).delete_product(product_id)
    return {"deleted": product_id, "affected_order_ids": affected}


# =============================================================================
# Add-ons
# =============================================================================


@router.get("/add-ons", response_model=list[AddOnOutput])
def list_add_ons(db: Session = Depends(get_db)) -> list[AddOnOutput]:
    return _get_service(db).list_add_ons()


@router.post("/add-ons", response_model=AddOnOutput, status_code=201)
def create_add_on(body: AddOnInput, db: Session = Depends(get_db)) -> AddOnOutput:
    return _get_service(db).create_add_on(body)


@router.patch("/add-ons/{add_on_id}", response_model=AddOnOutput)
def update_add_on(add_on_id: int, body: AddOnUpdate, db: Session = Depends(get_db)) -> AddOnOutput:
    return _get_service(db).update_add_on(add_on_id, body)


@router.delete("/add-ons/{add_on_id}")
def delete_add_on(add_on_id: int, db: Session = Depends(get_db)) -> dict:
    affected = _get_service(db).delete_add_on(add_on_id)
    return {"deleted": add_on_id, "affected_order_ids": affected}


# =============================================================================
# Charges
# =============================================================================


@router.get("/charges", response_model=list[ChargeOutput])
def list_charges(db: Session = Depends(get_db)) -> list[ChargeOutput]:
    return _get_service(db).list_charges()


@router.post("/charges", response_model=ChargeOutput, status_code=201)
def create_charge(body: ChargeInput, db: Session = Depends(get_db)) -> ChargeOutput:
    return _get_service(db).create_charge(body)


@router.patch("/charges/{charge_id}", response_model=ChargeOutput)
def update_charge(charge_id: int, body: ChargeUpdate, db: Session = Depends(get_db)) -> ChargeOutput:
    return _get_service(db).update_charge(charge_id, body)


@router.delete("/charges/{charge_id}")
def delete_charge(charge_id: int, db: Session = Depends(get_db)) -> dict:
    affected = _get_service(db).delete_charge(charge_id)
    return {"deleted": charge_id, "affected_order_ids": affected}


# =============================================================================
# Customers and addresses
# =============================================================================


@router.get("/customers", response_model=CustomerOutput)
def find_customer(
    phone: str = Query(min_length=1, max_length=Limits.MAX_PHONE_LENGTH),
    db: Session = Depends(get_db),
) -> CustomerOutput:
    customer = _get_service(db).find_customer(phone)
    if customer is None:
        raise NotFoundError("Customer")
    return customer


@router.get("/addresses", response_model=list[AddressOutput])
def list_addresses(db: Session = Depends(get_db)) -> list[AddressOutput]:
    return _get_service(db).list_addresses()
