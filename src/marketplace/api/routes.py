"""FastAPI routes for the marketplace: carts, orders, payments and inventory."""

from fastapi import APIRouter, Depends, Query
from protean.utils.globals import current_domain

from marketplace.api.dependencies import get_inventory_ledger, get_order_placer, get_payment_settlement
from marketplace.api.schemas import (
    AddCartItemRequest,
    AdvanceOrderStatusRequest,
    CartDetailsResponse,
    CartItemRef,
    CartLineSchema,
    CartQuantityResponse,
    ExpireOrdersResponse,
    ExtraSchema,
    ExtrasResponse,
    InventoryReportResponse,
    MessageResponse,
    OrderStatusResponse,
    PaymentIntentSchema,
    PlaceOrderRequest,
    PlaceOrderResponse,
    ProduceAvailabilityRequest,
    ProduceReportLineSchema,
    ReceiveStockRequest,
    ReportDateRequest,
    RetailReportLineSchema,
    StockLevelResponse,
    UniversityReportResponse,
    VendorReportResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from marketplace.cart.details import get_cart_details, get_extras
from marketplace.cart.items import AddItemToCart, ChangeCartQuantity, RemoveCartItem
from marketplace.inventory.ledger import InventoryLedger
from marketplace.inventory.queries import get_inventory_report
from marketplace.inventory.stocking import ReceiveRetailStock, SetProduceAvailability
from marketplace.order.expiry import ExpireStaleOrders
from marketplace.order.placement import OrderPlacer
from marketplace.order.status import AdvanceOrderStatus
from marketplace.payment.settlement import PaymentSettlement

# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("/{user_id}/items", response_model=CartQuantityResponse)
async def add_item(user_id: str, body: AddCartItemRequest) -> CartQuantityResponse:
    """Add an item to the user's cart, binding the cart to the item's vendor."""
    command = AddItemToCart(
        user_id=user_id,
        item_id=body.item_id,
        kind=body.kind,
        quantity=body.quantity,
        vendor_id=body.vendor_id,
    )
    quantity = current_domain.process(command, asynchronous=False)
    return CartQuantityResponse(message="Item added to cart", quantity=quantity)


@cart_router.post("/{user_id}/items/increment", response_model=CartQuantityResponse)
async def increment_item(user_id: str, body: CartItemRef) -> CartQuantityResponse:
    command = ChangeCartQuantity(user_id=user_id, item_id=body.item_id, kind=body.kind, delta=1)
    quantity = current_domain.process(command, asynchronous=False)
    return CartQuantityResponse(message="Quantity increased", quantity=quantity)


@cart_router.post("/{user_id}/items/decrement", response_model=CartQuantityResponse)
async def decrement_item(user_id: str, body: CartItemRef) -> CartQuantityResponse:
    command = ChangeCartQuantity(user_id=user_id, item_id=body.item_id, kind=body.kind, delta=-1)
    quantity = current_domain.process(command, asynchronous=False)
    return CartQuantityResponse(message="Quantity decreased", quantity=quantity)


@cart_router.delete("/{user_id}/items/{item_id}", response_model=MessageResponse)
async def remove_item(user_id: str, item_id: str, kind: str = Query(...)) -> MessageResponse:
    removed = current_domain.process(RemoveCartItem(user_id=user_id, item_id=item_id, kind=kind), asynchronous=False)
    return MessageResponse(message="Item removed from cart" if removed else "Item was not in cart")


@cart_router.get("/{user_id}", response_model=CartDetailsResponse)
async def cart_details(user_id: str) -> CartDetailsResponse:
    details = get_cart_details(user_id)
    return CartDetailsResponse(
        entries=[
            CartLineSchema(
                item_id=line.item_id,
                kind=line.kind,
                name=line.name,
                image=line.image,
                unit=line.unit,
                food_type=line.food_type,
                price=line.price,
                quantity=line.quantity,
                total_price=line.total_price,
            )
            for line in details.entries
        ],
        vendor_id=details.vendor_id,
        vendor_name=details.vendor_name,
        total=details.total,
    )


@cart_router.get("/{user_id}/extras", response_model=ExtrasResponse)
async def cart_extras(user_id: str) -> ExtrasResponse:
    return ExtrasResponse(
        extras=[
            ExtraSchema(
                item_id=extra.item_id,
                kind=extra.kind,
                name=extra.name,
                price=extra.price,
                image=extra.image,
                unit=extra.unit,
                food_type=extra.food_type,
            )
            for extra in get_extras(user_id)
        ]
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/maintenance/expire", response_model=ExpireOrdersResponse)
async def expire_orders() -> ExpireOrdersResponse:
    """Fail unpaid orders whose reservation window has lapsed."""
    expired_count = current_domain.process(ExpireStaleOrders(), asynchronous=False)
    return ExpireOrdersResponse(expired_count=expired_count)


@order_router.post("/{user_id}", status_code=201, response_model=PlaceOrderResponse)
async def place_order(
    user_id: str,
    body: PlaceOrderRequest,
    placer: OrderPlacer = Depends(get_order_placer),
) -> PlaceOrderResponse:
    """Snapshot the cart into an order and open a payment intent for it."""
    placed = placer.place_order(
        user_id=user_id,
        order_type=body.order_type,
        collector_name=body.collector_name,
        collector_phone=body.collector_phone,
        address=body.address,
    )
    return PlaceOrderResponse(
        order_id=placed.order_id,
        total=placed.total,
        payment_intent=PaymentIntentSchema(**placed.payment_intent.client_options()),
    )


@order_router.put("/{order_id}/status", response_model=OrderStatusResponse)
async def advance_order_status(order_id: str, body: AdvanceOrderStatusRequest) -> OrderStatusResponse:
    status = current_domain.process(AdvanceOrderStatus(order_id=order_id, status=body.status), asynchronous=False)
    return OrderStatusResponse(order_id=order_id, status=status)


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    settlement: PaymentSettlement = Depends(get_payment_settlement),
) -> VerifyPaymentResponse:
    """Verify a gateway callback and settle the order."""
    result = settlement.verify_and_settle(
        gateway_order_ref=body.gateway_order_ref,
        gateway_payment_ref=body.gateway_payment_ref,
        gateway_signature=body.gateway_signature,
        order_id=body.order_id,
    )
    return VerifyPaymentResponse(
        success=result.success,
        message=result.message,
        order_id=result.order_id,
        payment_id=result.payment_id,
        already_settled=result.already_settled,
    )


# ---------------------------------------------------------------------------
# Inventory Router
# ---------------------------------------------------------------------------
inventory_router = APIRouter(prefix="/inventory", tags=["inventory"])


@inventory_router.post("/reports/vendors/{vendor_id}", response_model=VendorReportResponse)
async def generate_vendor_report(
    vendor_id: str,
    body: ReportDateRequest | None = None,
    ledger: InventoryLedger = Depends(get_inventory_ledger),
) -> VendorReportResponse:
    result = ledger.generate_daily_report(vendor_id, body.date if body else None)
    message = "Inventory report created" if result["created"] else "Inventory report already exists"
    return VendorReportResponse(message=message, created=result["created"], added=result["added"])


@inventory_router.post("/reports/universities/{university_id}", response_model=UniversityReportResponse)
async def generate_university_reports(
    university_id: str,
    body: ReportDateRequest | None = None,
    ledger: InventoryLedger = Depends(get_inventory_ledger),
) -> UniversityReportResponse:
    result = ledger.generate_daily_report_for_university(university_id, body.date if body else None)
    return UniversityReportResponse(
        message=f"Processed {result['total']} vendor(s)",
        total=result["total"],
        created=result["created"],
        added=result["added"],
    )


@inventory_router.get("/reports/vendors/{vendor_id}", response_model=InventoryReportResponse)
async def fetch_vendor_report(vendor_id: str, date: str | None = None) -> InventoryReportResponse:
    view = get_inventory_report(vendor_id, date)
    return InventoryReportResponse(
        vendor_id=view.vendor_id,
        vendor_name=view.vendor_name,
        report_date=view.report_date,
        retail_entries=[
            RetailReportLineSchema(
                item_id=line.item_id,
                item_name=line.item_name,
                opening_qty=line.opening_qty,
                closing_qty=line.closing_qty,
                sold_qty=line.sold_qty,
            )
            for line in view.retail_entries
        ],
        produce_entries=[
            ProduceReportLineSchema(item_id=line.item_id, item_name=line.item_name, sold_qty=line.sold_qty)
            for line in view.produce_entries
        ],
        order_count=view.order_count,
    )


@inventory_router.post("/vendors/{vendor_id}/retail/{item_id}/receive", response_model=StockLevelResponse)
async def receive_retail_stock(vendor_id: str, item_id: str, body: ReceiveStockRequest) -> StockLevelResponse:
    command = ReceiveRetailStock(vendor_id=vendor_id, item_id=item_id, quantity=body.quantity)
    quantity = current_domain.process(command, asynchronous=False)
    return StockLevelResponse(item_id=item_id, quantity=quantity)


@inventory_router.put("/vendors/{vendor_id}/produce/{item_id}", response_model=StockLevelResponse)
async def set_produce_availability(
    vendor_id: str, item_id: str, body: ProduceAvailabilityRequest
) -> StockLevelResponse:
    command = SetProduceAvailability(vendor_id=vendor_id, item_id=item_id, available=body.available)
    available = current_domain.process(command, asynchronous=False)
    return StockLevelResponse(item_id=item_id, available=available)
