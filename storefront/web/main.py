from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, StrictInt

from storefront.config import settings
from storefront.db.sqlite import SqliteStore
from storefront.errors import AuthError, NotFoundError, StorefrontError, ValidationError
from storefront.models import User
from storefront.services.cart import summarize
from storefront.services.orders import confirm_purchase, get_cart, start_checkout, update_cart
from storefront.services.payments import PaymentSessionCreator, build_payment_creator
from storefront.services.receipt_pdf import generate_receipt_pdf

logger = logging.getLogger(__name__)


class CartPayload(BaseModel):
    productId: str
    qty: StrictInt
    version: Optional[StrictInt] = None


class CheckoutPayload(BaseModel):
    addressId: Optional[str] = None


def create_app(store: Any = None, payments: Optional[PaymentSessionCreator] = None) -> FastAPI:
    app = FastAPI(title="Storefront")
    app.state.store = store if store is not None else SqliteStore(settings.db_path)
    app.state.payments = payments if payments is not None else build_payment_creator(settings)

    @app.on_event("startup")
    def _startup() -> None:
        app.state.store.init_db()

    @app.exception_handler(StorefrontError)
    async def _storefront_error(request: Request, exc: StorefrontError) -> JSONResponse:
        logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status, exc.code)
        return JSONResponse(status_code=exc.status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = ", ".join(".".join(str(p) for p in e["loc"][1:]) for e in exc.errors())
        err = ValidationError(f"Invalid request body: {fields or 'malformed'}")
        return JSONResponse(status_code=err.status, content=err.to_dict())

    def get_store() -> Any:
        return app.state.store

    def current_user(authorization: Optional[str] = Header(None), store: Any = Depends(get_store)) -> User:
        scheme, _, token = (authorization or "").partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthError("Protected route, Oauth2 Bearer token not found")
        user = store.find_user_by_token(token.strip())
        if user is None:
            raise AuthError("Invalid token")
        return user

    @app.get("/health")
    def health(store: Any = Depends(get_store)):
        return {"ok": True, **store.stats()}

    # ---------------- catalog ----------------

    @app.get("/products")
    def products(store: Any = Depends(get_store)):
        return [p.to_dict() for p in store.list_products()]

    @app.get("/products/{product_id}")
    def product(product_id: str, store: Any = Depends(get_store)):
        p = store.get_product(product_id)
        if p is None:
            raise NotFoundError("Product doesn't exist")
        return p.to_dict()

    # ---------------- cart ----------------

    @app.get("/cart")
    def cart(user: User = Depends(current_user), store: Any = Depends(get_store)):
        logger.info('GET request to "/cart" received: %s', user.username)
        return [line.to_dict() for line in get_cart(store, user.id)]

    @app.get("/cart/summary")
    def cart_summary(user: User = Depends(current_user), store: Any = Depends(get_store)):
        return summarize(get_cart(store, user.id), store.get_product).to_dict()

    @app.post("/cart")
    def cart_post(payload: CartPayload, user: User = Depends(current_user), store: Any = Depends(get_store)):
        logger.info('POST request to "/cart" received: %s', user.username)
        lines = update_cart(store, user.id, payload.productId, payload.qty, payload.version)
        return [line.to_dict() for line in lines]

    @app.post("/cart/checkout")
    def cart_checkout(
        payload: CheckoutPayload,
        user: User = Depends(current_user),
        store: Any = Depends(get_store),
    ):
        logger.info('POST request received to "/cart/checkout": %s', user.username)
        order = start_checkout(store, app.state.payments, user.id, payload.addressId)
        return {"success": True, "url": order.redirect_url, "orderId": order.id, "total": order.total}

    @app.post("/cart/confirm")
    def cart_confirm(user: User = Depends(current_user), store: Any = Depends(get_store)):
        orders = confirm_purchase(store, user.id)
        return {"success": True, "orders": [o.to_dict() for o in orders]}

    # ---------------- orders ----------------

    @app.get("/orders")
    def orders(user: User = Depends(current_user), store: Any = Depends(get_store)):
        return [o.to_dict() for o in store.list_orders(user.id)]

    @app.get("/orders/{order_id}/receipt", response_class=FileResponse)
    def receipt(order_id: int, user: User = Depends(current_user), store: Any = Depends(get_store)):
        order = store.get_order(order_id)
        if order.user_id != user.id:
            raise NotFoundError(f"Order {order_id} not found")
        path = generate_receipt_pdf(order, user.username)
        return FileResponse(path, filename=f"receipt_{order.id:06d}.pdf", media_type="application/pdf")

    return app


app = create_app()
