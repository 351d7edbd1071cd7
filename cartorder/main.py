# cartorder/main.py
from fastapi import FastAPI
import uvicorn

from cartorder.data.database import Base, engine
from cartorder.api.routers import carts, orders, health
from cartorder.utils.logging import get_logger

# import modeli przed create_all, zeby byly w Base.metadata
from cartorder.data.models import CartModel, OrderModel  # noqa: F401

logger = get_logger(__name__)


def init_db() -> None:
    logger.info(f"Initializing database, tables: {list(Base.metadata.tables.keys())}")
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        raise
    logger.info("Database tables ready")


def create_app() -> FastAPI:
    init_db()

    app = FastAPI(
        title="Cart & Order Service",
        version="1.0.0",
    )

    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(orders.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
