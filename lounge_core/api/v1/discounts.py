from decimal import Decimal
from typing import List

from fastapi import APIRouter, Depends, Response

from lounge_core.api.dependencies import get_discount_service
from lounge_core.core.exceptions import LoungeCoreException, to_http_exception
from lounge_core.schemas import (
    DiscountCalculation,
    DiscountConfigRequest,
    DiscountConfigResponse,
    DiscountRateUpdate,
)
from lounge_core.services.discount import DiscountService

router = APIRouter()


@router.get("/discounts", response_model=List[DiscountConfigResponse])
def list_discounts(discounts: DiscountService = Depends(get_discount_service)):
    return discounts.list_configs()


@router.post("/discounts", response_model=DiscountConfigResponse)
def create_discount(
    request: DiscountConfigRequest,
    discounts: DiscountService = Depends(get_discount_service),
):
    try:
        return discounts.create(
            request.membership_type, request.discount_type, request.discount_rate
        )
    except LoungeCoreException as e:
        raise to_http_exception(e)


@router.put("/discounts/bulk", response_model=List[DiscountConfigResponse])
def bulk_update_discounts(
    request: List[DiscountConfigRequest],
    discounts: DiscountService = Depends(get_discount_service),
):
    try:
        return discounts.upsert_many(
            [(c.membership_type, c.discount_type, c.discount_rate) for c in request]
        )
    except LoungeCoreException as e:
        raise to_http_exception(e)


@router.put(
    "/discounts/{membership_type}/{discount_type}",
    response_model=DiscountConfigResponse,
)
def update_discount(
    membership_type: str,
    discount_type: str,
    request: DiscountRateUpdate,
    discounts: DiscountService = Depends(get_discount_service),
):
    try:
        return discounts.update(membership_type, discount_type, request.discount_rate)
    except LoungeCoreException as e:
        raise to_http_exception(e)


@router.delete("/discounts/{membership_type}/{discount_type}", status_code=204)
def delete_discount(
    membership_type: str,
    discount_type: str,
    discounts: DiscountService = Depends(get_discount_service),
):
    try:
        discounts.delete(membership_type, discount_type)
    except LoungeCoreException as e:
        raise to_http_exception(e)
    return Response(status_code=204)


@router.get(
    "/discounts/{membership_type}/{discount_type}/calculate",
    response_model=DiscountCalculation,
)
def calculate_discount(
    membership_type: str,
    discount_type: str,
    amount: Decimal,
    discounts: DiscountService = Depends(get_discount_service),
):
    try:
        return discounts.calculate_discount(membership_type, discount_type, amount)
    except LoungeCoreException as e:
        raise to_http_exception(e)
