"""Pydantic request/response schemas for the marketplace API.

These are external contracts, kept separate from the internal Protean
commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------
class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    messages: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddCartItemRequest(BaseModel):
    item_id: str
    kind: str
    quantity: int = Field(ge=1, default=1)
    vendor_id: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "item_id": "item-001",
                    "kind": "Retail",
                    "quantity": 2,
                    "vendor_id": "vendor-001",
                }
            ]
        }
    }


class CartItemRef(BaseModel):
    item_id: str
    kind: str


class CartQuantityResponse(BaseModel):
    success: bool = True
    message: str
    quantity: int


class CartLineSchema(BaseModel):
    item_id: str
    kind: str
    name: str
    image: str | None = None
    unit: str | None = None
    food_type: str | None = None
    price: float
    quantity: int
    total_price: float


class CartDetailsResponse(BaseModel):
    entries: list[CartLineSchema]
    vendor_id: str | None = None
    vendor_name: str | None = None
    total: float


class ExtraSchema(BaseModel):
    item_id: str
    kind: str
    name: str
    price: float
    image: str | None = None
    unit: str | None = None
    food_type: str | None = None


class ExtrasResponse(BaseModel):
    extras: list[ExtraSchema]


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    order_type: str
    collector_name: str | None = None
    collector_phone: str | None = None
    address: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_type": "delivery",
                    "collector_name": "Asha",
                    "collector_phone": "9876543210",
                    "address": "Hostel 4, Room 212",
                }
            ]
        }
    }


class PaymentIntentSchema(BaseModel):
    key: str | None = None
    amount: int
    currency: str
    order_id: str


class PlaceOrderResponse(BaseModel):
    order_id: str
    total: float
    payment_intent: PaymentIntentSchema


class AdvanceOrderStatusRequest(BaseModel):
    status: str


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str


class ExpireOrdersResponse(BaseModel):
    expired_count: int


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class VerifyPaymentRequest(BaseModel):
    gateway_order_ref: str
    gateway_payment_ref: str
    gateway_signature: str
    order_id: str


class VerifyPaymentResponse(BaseModel):
    success: bool
    message: str
    order_id: str
    payment_id: str | None = None
    already_settled: bool = False


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------
class ReportDateRequest(BaseModel):
    date: str | None = Field(default=None, description="YYYY-MM-DD, defaults to today (UTC)")


class ReceiveStockRequest(BaseModel):
    quantity: int = Field(ge=1)


class ProduceAvailabilityRequest(BaseModel):
    available: bool


class StockLevelResponse(BaseModel):
    item_id: str
    quantity: int | None = None
    available: bool | None = None


class VendorReportResponse(BaseModel):
    success: bool = True
    message: str
    created: bool
    added: int = 0


class UniversityReportResponse(BaseModel):
    success: bool = True
    message: str
    total: int
    created: int
    added: int


class RetailReportLineSchema(BaseModel):
    item_id: str
    item_name: str | None = None
    opening_qty: int
    closing_qty: int
    sold_qty: int


class ProduceReportLineSchema(BaseModel):
    item_id: str
    item_name: str | None = None
    sold_qty: int


class InventoryReportResponse(BaseModel):
    vendor_id: str
    vendor_name: str
    report_date: str
    retail_entries: list[RetailReportLineSchema]
    produce_entries: list[ProduceReportLineSchema]
    order_count: int
