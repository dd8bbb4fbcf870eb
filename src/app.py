"""HomeCook Checkout FastAPI application.

Usage:
    uvicorn app:main --factory --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from checkout.api.registry import CheckoutRegistry
from checkout.api.routes import checkout_error_handler, router
from checkout.config import CheckoutSettings, load_settings
from checkout.domain import checkout
from checkout.errors import CheckoutError
from checkout.utils.logging import add_context, clear_context, configure_logging, get_environment, get_logger

logger = get_logger(__name__)


def create_app(settings: CheckoutSettings | None = None, registry: CheckoutRegistry | None = None) -> FastAPI:
    """Build the application. The checkout domain must already be initialized.

    Settings are read from ``CHECKOUT_*`` variables unless given; a bad
    value raises FatalConfigError here, before any request is served.
    """
    settings = settings or load_settings()

    app = FastAPI(
        title="HomeCook Checkout API",
        description="Cart, delivery, payment and order placement for HomeCook",
    )
    app.state.checkouts = registry or CheckoutRegistry(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.add_exception_handler(CheckoutError, checkout_error_handler)
    app.include_router(router)

    @app.middleware("http")
    async def logging_context_middleware(request: Request, call_next):
        """Tag every log line emitted while serving a request with its route."""
        clear_context()
        add_context(method=request.method, path=request.url.path)
        try:
            return await call_next(request)
        finally:
            clear_context()

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the checkout domain context for each request."""
        with checkout.domain_context():
            return await call_next(request)

    @app.get("/health")
    async def health():
        return JSONResponse(
            content={
                "status": "ok",
                "environment": get_environment(),
                "checkouts": len(app.state.checkouts),
            }
        )

    logger.info("checkout_app_created", environment=get_environment(), currency=settings.currency)
    return app


def main() -> FastAPI:
    configure_logging()
    checkout.init()
    return create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app:main", factory=True, host="0.0.0.0", port=8000, reload=True)
