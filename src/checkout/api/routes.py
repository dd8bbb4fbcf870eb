"""FastAPI routes for checkout."""

import os
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import SecretStr

from checkout.address.address import NewAddress
from checkout.api.registry import CheckoutRegistry, UnknownCheckout
from checkout.api.schemas import (
    AddCardRequest,
    AddItemRequest,
    AddressSchema,
    ApplyPromoRequest,
    CardSchema,
    CheckoutResponse,
    ConfirmationSchema,
    ConfigureOrderServiceRequest,
    ContactPhoneRequest,
    CreateAddressRequest,
    JumpRequest,
    OrderServiceConfigResponse,
    PlacementResponse,
    SelectAddressRequest,
    SelectPaymentRequest,
    SelectSlotRequest,
    SlotSchema,
    UpdateItemRequest,
)
from checkout.cart.cart import NewLineItem
from checkout.cart.store import CartResult
from checkout.errors import (
    CartSyncError,
    CheckoutError,
    FatalConfigError,
    IdempotencyConflict,
    InvalidOperationError,
    OrderPlacementError,
    PaymentTokenizationError,
    PromoRejected,
    ValidationError,
)
from checkout.order.fake_adapter import InMemoryOrderService
from checkout.payment.payment import CardEntry, PaymentMethodKind, PaymentSelection
from checkout.session.flow import CheckoutFlow
from checkout.shared.money import Money

router = APIRouter(prefix="/checkouts", tags=["checkouts"])

# First match wins, so subclasses come before their bases.
_ERROR_STATUS = (
    (ValidationError, 400),
    (PromoRejected, 400),
    (IdempotencyConflict, 409),
    (InvalidOperationError, 409),
    (CartSyncError, 502),
    (OrderPlacementError, 502),
    (PaymentTokenizationError, 502),
    (FatalConfigError, 500),
)


def status_for(exc: CheckoutError) -> int:
    for error_class, status in _ERROR_STATUS:
        if isinstance(exc, error_class):
            return status
    return 400


async def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(exc),
        content={"error": type(exc).__name__, "messages": exc.messages},
    )


def get_registry(request: Request) -> CheckoutRegistry:
    return request.app.state.checkouts


def get_flow(checkout_id: str, registry: CheckoutRegistry = Depends(get_registry)) -> CheckoutFlow:
    try:
        return registry.get(checkout_id)
    except UnknownCheckout:
        raise HTTPException(status_code=404, detail=f"Checkout {checkout_id} not found") from None


def _cart_response(flow: CheckoutFlow, result: CartResult) -> CheckoutResponse:
    if result.error is not None:
        raise result.error
    return CheckoutResponse.of(flow)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------
@router.post("", status_code=201, response_model=CheckoutResponse)
async def start_checkout(registry: CheckoutRegistry = Depends(get_registry)) -> CheckoutResponse:
    flow = registry.create()
    return _cart_response(flow, await flow.begin())


@router.get("/{checkout_id}", response_model=CheckoutResponse)
async def get_checkout(flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    return CheckoutResponse.of(flow)


@router.post("/{checkout_id}/begin", response_model=CheckoutResponse)
async def begin_checkout(flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    return _cart_response(flow, await flow.begin())


@router.delete("/{checkout_id}", status_code=204)
async def abandon_checkout(checkout_id: str, registry: CheckoutRegistry = Depends(get_registry)) -> None:
    try:
        registry.discard(checkout_id)
    except UnknownCheckout:
        raise HTTPException(status_code=404, detail=f"Checkout {checkout_id} not found") from None


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
@router.post("/{checkout_id}/items", response_model=CheckoutResponse)
async def add_item(body: AddItemRequest, flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    item = NewLineItem(
        meal_id=body.meal_id,
        chef_id=body.chef_id,
        chef_name=body.chef_name,
        name=body.name,
        unit_price=Money(amount=body.unit_price, currency=flow.settings.currency),
        quantity=body.quantity,
        special_instructions=body.special_instructions,
        image=body.image,
    )
    return _cart_response(flow, await flow.add_item(item))


@router.patch("/{checkout_id}/items/{item_id}", response_model=CheckoutResponse)
async def update_item(item_id: str, body: UpdateItemRequest, flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    removed = False
    if body.quantity is not None:
        result = await flow.update_quantity(item_id, body.quantity)
        if result.error is not None:
            raise result.error
        # Anything below 1 removed the line, so there is nothing left to annotate.
        removed = body.quantity < 1
    if body.special_instructions is not None and not removed:
        result = await flow.update_instructions(item_id, body.special_instructions)
        if result.error is not None:
            raise result.error
    return CheckoutResponse.of(flow)


@router.delete("/{checkout_id}/items/{item_id}", response_model=CheckoutResponse)
async def remove_item(item_id: str, flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    return _cart_response(flow, await flow.remove_item(item_id))


@router.delete("/{checkout_id}/items", response_model=CheckoutResponse)
async def clear_cart(flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    return _cart_response(flow, await flow.clear_cart())


@router.put("/{checkout_id}/promo", response_model=CheckoutResponse)
async def apply_promo(body: ApplyPromoRequest, flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    return _cart_response(flow, await flow.apply_promo(body.code))


@router.delete("/{checkout_id}/promo", response_model=CheckoutResponse)
async def remove_promo(flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    return _cart_response(flow, await flow.remove_promo())


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------
@router.get("/{checkout_id}/addresses", response_model=list[AddressSchema])
async def list_addresses(flow: CheckoutFlow = Depends(get_flow)) -> list[AddressSchema]:
    return [AddressSchema.of(address) for address in await flow.list_addresses()]


@router.post("/{checkout_id}/addresses", status_code=201, response_model=AddressSchema)
async def add_address(body: CreateAddressRequest, flow: CheckoutFlow = Depends(get_flow)) -> AddressSchema:
    address = await flow.add_address(NewAddress(**body.model_dump()))
    return AddressSchema.of(address)


@router.put("/{checkout_id}/address", response_model=CheckoutResponse)
async def select_address(body: SelectAddressRequest, flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    await flow.select_address(body.address_id)
    return CheckoutResponse.of(flow)


@router.get("/{checkout_id}/slots", response_model=list[SlotSchema])
async def list_slots(day: date, flow: CheckoutFlow = Depends(get_flow)) -> list[SlotSchema]:
    return [SlotSchema.of(slot) for slot in await flow.list_slots(day)]


@router.put("/{checkout_id}/slot", response_model=CheckoutResponse)
async def select_slot(body: SelectSlotRequest, flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    flow.select_slot(body.slot_id)
    return CheckoutResponse.of(flow)


@router.put("/{checkout_id}/contact-phone", response_model=CheckoutResponse)
async def set_contact_phone(body: ContactPhoneRequest, flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    flow.set_contact_phone(body.phone)
    return CheckoutResponse.of(flow)


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------
@router.post("/{checkout_id}/cards", status_code=201, response_model=CardSchema)
async def add_card(body: AddCardRequest, flow: CheckoutFlow = Depends(get_flow)) -> CardSchema:
    entry = CardEntry(
        cardholder_name=body.cardholder_name,
        number=SecretStr(body.number),
        exp_month=body.exp_month,
        exp_year=body.exp_year,
        cvc=SecretStr(body.cvc),
    )
    return CardSchema.of(await flow.add_card(entry))


@router.put("/{checkout_id}/payment", response_model=CheckoutResponse)
async def select_payment(body: SelectPaymentRequest, flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    if body.method_kind == PaymentMethodKind.CARD:
        card = next((card for card in flow.saved_cards if card.id == body.card_id), None)
        if card is None:
            raise ValidationError({"payment": ["Please add or choose a card"]})
        selection = PaymentSelection.card(card)
    elif body.method_kind == PaymentMethodKind.WALLET:
        selection = PaymentSelection(method_kind=PaymentMethodKind.WALLET, wallet_provider=body.wallet_provider)
    else:
        selection = PaymentSelection.cash_on_delivery()
    flow.select_payment(selection)
    return CheckoutResponse.of(flow)


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------
@router.post("/{checkout_id}/advance", response_model=CheckoutResponse)
async def advance(flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    if not flow.advance():
        blocking = flow.guard_errors() or {"step": [f"Cannot continue from {flow.current_step.value}"]}
        raise InvalidOperationError(blocking)
    return CheckoutResponse.of(flow)


@router.post("/{checkout_id}/back", response_model=CheckoutResponse)
async def back(flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    flow.back()
    return CheckoutResponse.of(flow)


@router.post("/{checkout_id}/jump", response_model=CheckoutResponse)
async def jump(body: JumpRequest, flow: CheckoutFlow = Depends(get_flow)) -> CheckoutResponse:
    if not flow.jump_to(body.step):
        raise InvalidOperationError({"step": [f"Cannot jump to {body.step.value} from {flow.current_step.value}"]})
    return CheckoutResponse.of(flow)


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------
@router.post("/{checkout_id}/order", status_code=201, response_model=PlacementResponse)
async def place_order(flow: CheckoutFlow = Depends(get_flow)) -> PlacementResponse:
    result = await flow.place_order()
    if not result.success:
        raise result.error
    return PlacementResponse(confirmation=ConfirmationSchema.of(result.confirmation), from_cache=result.from_cache)


@router.post("/order-service/configure", response_model=OrderServiceConfigResponse)
async def configure_order_service(
    body: ConfigureOrderServiceRequest, registry: CheckoutRegistry = Depends(get_registry)
) -> OrderServiceConfigResponse:
    """Configure the InMemoryOrderService behavior (non-production only).

    Lets decline, network failure and lost-response scenarios be reproduced
    by hand against a running server.
    """
    if os.environ.get("CHECKOUT_ENV") == "production":
        raise HTTPException(status_code=403, detail="Order service configuration not available in production")

    service = registry.order_service
    if not isinstance(service, InMemoryOrderService):
        raise HTTPException(status_code=400, detail="Order service configuration only available for InMemoryOrderService")

    service.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        network_error=body.network_error,
        lose_response=body.lose_response,
    )
    return OrderServiceConfigResponse(
        order_service=type(service).__name__,
        should_succeed=service.should_succeed,
        network_error=service.network_error,
        lose_response=service.lose_response,
    )
