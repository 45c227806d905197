"""Domain errors raised by the services and translated to HTTP errors by the routers."""
from typing import Optional
from uuid import UUID

from fastapi import HTTPException


class InventoryError(Exception):
    """Base class for back-of-house domain errors."""


class RecipeNotFoundError(InventoryError):
    def __init__(self, recipe_id: UUID):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe with id {recipe_id} not found")


class IngredientNotFoundError(InventoryError):
    def __init__(self, ingredient_id: UUID):
        self.ingredient_id = ingredient_id
        super().__init__(f"Ingredient with id {ingredient_id} not found")


class VendorNotFoundError(InventoryError):
    def __init__(self, vendor_id: UUID):
        self.vendor_id = vendor_id
        super().__init__(f"Vendor with id {vendor_id} not found")


class PurchaseOrderNotFoundError(InventoryError):
    def __init__(self, order_id: UUID):
        self.order_id = order_id
        super().__init__(f"Purchase order with id {order_id} not found")


class RestaurantNotFoundError(InventoryError):
    def __init__(self, restaurant_id: UUID):
        self.restaurant_id = restaurant_id
        super().__init__(f"Restaurant with id {restaurant_id} not found")


class StockConflictError(InventoryError):
    """The ingredient stock kept changing underneath us; the write was not applied."""

    def __init__(self, ingredient_id: UUID, attempts: int):
        self.ingredient_id = ingredient_id
        self.attempts = attempts
        super().__init__(f"Stock for ingredient {ingredient_id} changed concurrently ({attempts} attempts)")


class InvalidStockChangeError(InventoryError):
    pass


class OnboardingStepError(InventoryError):
    pass


class PurchaseOrderStateError(InventoryError):
    pass


class AIGatewayError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class WebSearchError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


_STATUS_BY_ERROR = (
    (
        (
            RecipeNotFoundError,
            IngredientNotFoundError,
            VendorNotFoundError,
            PurchaseOrderNotFoundError,
            RestaurantNotFoundError,
        ),
        404,
    ),
    ((StockConflictError, PurchaseOrderStateError), 409),
    ((InvalidStockChangeError, OnboardingStepError), 400),
)


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a domain error to the HTTPException the routers raise."""
    if isinstance(exc, (AIGatewayError, WebSearchError)):
        return HTTPException(status_code=exc.status_code or 502, detail=str(exc))
    for types, code in _STATUS_BY_ERROR:
        if isinstance(exc, types):
            return HTTPException(status_code=code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
