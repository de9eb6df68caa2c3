# storefront/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from storefront.api.errors import register_error_handlers
from storefront.api.routers import addresses, carts, categories, health, orders, products, users
from storefront.data.database import Base, init_db
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"Database ready, tables: {sorted(Base.metadata.tables.keys())}")
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title="Storefront Service",
        version="1.0.0",
        lifespan=lifespan,
    )

    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(addresses.router)
    app.include_router(carts.router)
    app.include_router(categories.router)
    app.include_router(products.router)
    app.include_router(orders.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
