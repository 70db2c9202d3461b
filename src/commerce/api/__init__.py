"""Commerce API package."""

from commerce.api.errors import register_error_handlers
from commerce.api.routes import (
    abandoned_cart_router,
    checkout_router,
    coupon_router,
    order_router,
    service_router,
)

routers = [checkout_router, order_router, abandoned_cart_router, coupon_router, service_router]

__all__ = ["register_error_handlers", "routers"]
