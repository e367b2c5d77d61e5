from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError


class InsufficientStock(ValidationError):
    default_detail = {"quantity": "Insufficient stock; negative stock not allowed."}


class InventoryItemNotFound(ValidationError):
    default_detail = {"item": "Inventory item not found."}


class ImmutableMovementError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Stock movements are append-only and cannot be changed or deleted."
    default_code = "immutable_movement"
