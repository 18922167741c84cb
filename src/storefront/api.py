"""FastAPI REST API for storefront carts and orders."""

import math
from decimal import Decimal
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .cart import CartService
from .catalog import ProductCatalog
from .document_store import DocumentStore
from .errors import (
    CartItemNotFoundError,
    ConflictError,
    EmptyCartError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    OrderNotFoundError,
    PermissionDeniedError,
    ProductNotFoundError,
    StoreCorruptedError,
    StorefrontError,
    ValidationError,
)
from .models import Cart, Order, OrderStatus, Role, UserContext
from .notifications import LoggingNotifier, Notifier
from .order_assembler import OrderAssembler
from .order_lifecycle import OrderLifecycle
from .order_store import MAX_PAGE_SIZE, OrderStore
from .stock_ledger import StockLedger


# --- Pydantic Schemas ---


class ProductSchema(BaseModel):
    id: str
    title: str
    price: str
    stock: int
    description: Optional[str] = None
    created_at: str
    updated_at: str


class ProductListResponse(BaseModel):
    products: list[ProductSchema]
    count: int


class ProductCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    description: Optional[str] = None


class CartItemSchema(BaseModel):
    id: str
    product_id: str
    quantity: int
    price: str
    line_total: str


class CartSchema(BaseModel):
    id: str
    user_id: str
    items: list[CartItemSchema]
    total_value: str
    updated_at: str


class CartItemAddRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class CartItemUpdateRequest(BaseModel):
    quantity: int = Field(..., gt=0)


class OrderItemSchema(BaseModel):
    id: str
    product_id: str
    quantity: int
    price: str


class OrderSchema(BaseModel):
    id: str
    user_id: str
    items: list[OrderItemSchema]
    total_amount: str
    status: OrderStatus
    shipping_address: str
    payment_method: str
    created_at: str
    updated_at: str


class OrderCreateRequest(BaseModel):
    """Request body for placing an order from the caller's cart."""

    shipping_address: str = Field(..., min_length=1, description="Shipping address")
    payment_method: str = Field(..., min_length=1, description="Payment method")


class OrderListResponse(BaseModel):
    orders: list[OrderSchema]
    count: int
    total: int
    page: int
    total_pages: int


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatus


# --- Helper Functions ---


def get_document_store() -> DocumentStore:
    """Get the global DocumentStore."""
    return DocumentStore()


def get_notifier() -> Notifier:
    """Get the notifier used for order emails."""
    return LoggingNotifier()


def get_current_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: str = Header(default=""),
    x_user_name: str = Header(default=""),
    x_user_role: str = Header(default=Role.USER.value),
) -> UserContext:
    """
    Build the caller identity from headers set by the authentication layer.

    This service trusts these headers; it performs no credential checks.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        role = Role(x_user_role.upper())
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown role: {x_user_role}")
    return UserContext(user_id=x_user_id, email=x_user_email, name=x_user_name, role=role)


def cart_to_schema(cart: Cart) -> CartSchema:
    return CartSchema(
        id=cart.id,
        user_id=cart.user_id,
        items=[
            CartItemSchema(
                id=i.id,
                product_id=i.product_id,
                quantity=i.quantity,
                price=str(i.price),
                line_total=str(i.line_total),
            )
            for i in cart.items
        ],
        total_value=str(cart.total_value()),
        updated_at=cart.updated_at,
    )


def order_to_schema(order: Order) -> OrderSchema:
    data = order.to_dict()
    return OrderSchema(
        id=data["id"],
        user_id=data["user_id"],
        items=[OrderItemSchema(**i) for i in data["items"]],
        total_amount=data["total_amount"],
        status=order.status,
        shipping_address=data["shipping_address"],
        payment_method=data["payment_method"],
        created_at=data["created_at"],
        updated_at=data["updated_at"],
    )


# --- FastAPI App ---


app = FastAPI(
    title="storefront API",
    description="REST API for carts, checkout and order lifecycle",
    version=__version__,
)

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Exception Handler ---


# Map exception types to HTTP status codes; subclasses fall back to their bases
ERROR_STATUS_CODES: dict[type, int] = {
    ValidationError: 400,
    EmptyCartError: 400,
    InsufficientStockError: 409,
    ConflictError: 409,
    InvalidTransitionError: 409,
    NotFoundError: 404,
    ProductNotFoundError: 404,
    OrderNotFoundError: 404,
    CartItemNotFoundError: 404,
    PermissionDeniedError: 403,
    StoreCorruptedError: 500,
}


def status_code_for(exc: StorefrontError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


@app.exception_handler(StorefrontError)
async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    """Map StorefrontError subclasses to appropriate HTTP responses."""
    content = {"detail": str(exc), "error_type": type(exc).__name__}
    if isinstance(exc, InsufficientStockError):
        content.update(
            product_id=exc.product_id,
            requested=exc.requested,
            available=exc.available,
        )
    return JSONResponse(status_code=status_code_for(exc), content=content)


# --- Endpoints ---


@app.get("/api/health")
def health_check():
    """
    Health check endpoint.

    Returns basic service status and the number of catalog products.
    """
    catalog = ProductCatalog(get_document_store())
    try:
        products = catalog.list_products()
        return {
            "status": "ok",
            "product_count": len(products),
        }
    except Exception as e:
        return {
            "status": "error",
            "detail": str(e),
        }


# --- Product Endpoints ---


@app.get("/api/products", response_model=ProductListResponse)
def list_products():
    """List catalog products."""
    products = ProductCatalog(get_document_store()).list_products()
    return ProductListResponse(
        products=[ProductSchema(**p.to_dict()) for p in products],
        count=len(products),
    )


@app.get("/api/products/{product_id}", response_model=ProductSchema)
def get_product(product_id: str):
    product = ProductCatalog(get_document_store()).get_product(product_id)
    return ProductSchema(**product.to_dict())


@app.post("/api/products", response_model=ProductSchema, status_code=201)
def create_product(request: ProductCreateRequest, user: UserContext = Depends(get_current_user)):
    """Add a product to the catalog (admin only)."""
    if not user.is_admin:
        raise PermissionDeniedError("create products", user.role.value)
    product = ProductCatalog(get_document_store()).add_product(
        title=request.title,
        price=request.price,
        stock=request.stock,
        description=request.description,
    )
    return ProductSchema(**product.to_dict())


# --- Cart Endpoints ---


@app.get("/api/cart", response_model=CartSchema)
def get_cart(user: UserContext = Depends(get_current_user)):
    """Get the caller's cart, creating it if needed."""
    cart = CartService(get_document_store()).get_cart(user.user_id)
    return cart_to_schema(cart)


@app.post("/api/cart/items", response_model=CartSchema)
def add_cart_item(request: CartItemAddRequest, user: UserContext = Depends(get_current_user)):
    """Add a product to the cart, or raise its quantity if already there."""
    cart = CartService(get_document_store()).add_item(user.user_id, request.product_id, request.quantity)
    return cart_to_schema(cart)


@app.patch("/api/cart/items/{item_id}", response_model=CartSchema)
def update_cart_item(
    item_id: str,
    request: CartItemUpdateRequest,
    user: UserContext = Depends(get_current_user),
):
    cart = CartService(get_document_store()).update_item(user.user_id, item_id, request.quantity)
    return cart_to_schema(cart)


@app.delete("/api/cart/items/{item_id}", response_model=CartSchema)
def remove_cart_item(item_id: str, user: UserContext = Depends(get_current_user)):
    cart = CartService(get_document_store()).remove_item(user.user_id, item_id)
    return cart_to_schema(cart)


@app.delete("/api/cart", response_model=CartSchema)
def clear_cart(user: UserContext = Depends(get_current_user)):
    cart = CartService(get_document_store()).clear(user.user_id)
    return cart_to_schema(cart)


# --- Order Endpoints ---


@app.post("/api/orders", response_model=OrderSchema, status_code=201)
def place_order(request: OrderCreateRequest, user: UserContext = Depends(get_current_user)):
    """
    Place an order from the caller's cart.

    Stock is reserved and the cart emptied in the same commit. Safe to
    retry after a 409: the cart and stock are re-read on every attempt.
    """
    store = get_document_store()
    assembler = OrderAssembler(store, StockLedger(store), get_notifier())
    order = assembler.place_order(user, request.shipping_address, request.payment_method)
    return order_to_schema(order)


@app.get("/api/orders", response_model=OrderListResponse)
def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
    user: UserContext = Depends(get_current_user),
):
    """List the caller's orders, newest first."""
    orders, total = OrderStore(get_document_store()).list_orders(user.user_id, page=page, limit=limit)
    return OrderListResponse(
        orders=[order_to_schema(o) for o in orders],
        count=len(orders),
        total=total,
        page=page,
        total_pages=math.ceil(total / limit),
    )


@app.get("/api/orders/{order_id}", response_model=OrderSchema)
def get_order(order_id: str, user: UserContext = Depends(get_current_user)):
    order = OrderStore(get_document_store()).get_order(order_id, user.user_id)
    return order_to_schema(order)


@app.post("/api/orders/{order_id}/cancel", response_model=OrderSchema)
def cancel_order(order_id: str, user: UserContext = Depends(get_current_user)):
    """Cancel a PENDING or PROCESSING order and return its stock."""
    store = get_document_store()
    lifecycle = OrderLifecycle(store, StockLedger(store), get_notifier())
    order = lifecycle.cancel_order(order_id, user)
    return order_to_schema(order)


# --- Admin Endpoints ---


@app.get("/api/admin/orders", response_model=OrderListResponse)
def list_all_orders(
    status: Optional[OrderStatus] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
    user: UserContext = Depends(get_current_user),
):
    """List every customer's orders, newest first (admin only)."""
    if not user.is_admin:
        raise PermissionDeniedError("list all orders", user.role.value)
    orders, total = OrderStore(get_document_store()).all_orders(status=status, page=page, limit=limit)
    return OrderListResponse(
        orders=[order_to_schema(o) for o in orders],
        count=len(orders),
        total=total,
        page=page,
        total_pages=math.ceil(total / limit),
    )


@app.patch("/api/admin/orders/{order_id}/status", response_model=OrderSchema)
def update_order_status(
    order_id: str,
    request: OrderStatusUpdateRequest,
    user: UserContext = Depends(get_current_user),
):
    """Move an order forward through fulfilment (admin only)."""
    store = get_document_store()
    lifecycle = OrderLifecycle(store, StockLedger(store), get_notifier())
    order = lifecycle.advance_status(order_id, request.status, user)
    return order_to_schema(order)
