from __future__ import annotations

import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo import MongoClient
from dotenv import load_dotenv
load_dotenv()
from src.api.admin_routes import router as admin_router
from src.api.routes import router
from src.core import config
from src.core.config import Paths

from src.application.admin_usecases import AdminAuth, BuildReports, ListOrders, ManageProducts, ManageSettings
from src.application.usecases import (
    CartService,
    FindOrderByShortId,
    GetOrder,
    ListCatalog,
    ListDistributors,
    ListFeatured,
    PlaceOrder,
    PreferencesService,
    UpdateOrderStatus,
)
from src.infrastructure.memory_repositories import (
    InMemoryAdminUserRepository,
    InMemoryDistributorRepository,
    InMemoryOrderRepository,
    InMemoryProductRepository,
    InMemorySettingsRepository,
)
from src.infrastructure.mongo_repositories import (
    MongoAdminUserRepository,
    MongoDistributorRepository,
    MongoOrderRepository,
    MongoProductRepository,
    MongoSettingsRepository,
)
from src.infrastructure.preferences_store import PreferencesStore
from src.infrastructure.seed import seed_memory, seed_mongo
from src.infrastructure.session_store import AdminSessionStore, InMemorySessionStore

log = logging.getLogger("app")
app = FastAPI(title="Adega Delivery API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)
app.include_router(admin_router)

_mongo_client: MongoClient | None = None


def wire_services(target: FastAPI, repos: dict, preferences_path: str = Paths.PREFERENCES) -> None:
    """DI for routes.py / admin_routes.py via app.state."""
    sessions = InMemorySessionStore(ttl_seconds=config.CART_SESSION_TTL_SECONDS)
    admin_sessions = AdminSessionStore(ttl_seconds=config.ADMIN_SESSION_TTL_SECONDS)

    products, distributors, orders = repos["products"], repos["distributors"], repos["orders"]
    cart_service = CartService(sessions, products, distributors)

    target.state.list_catalog = ListCatalog(products)
    target.state.list_featured = ListFeatured(products)
    target.state.list_distributors = ListDistributors(distributors)
    target.state.cart_service = cart_service
    target.state.place_order = PlaceOrder(cart_service, orders)
    target.state.get_order = GetOrder(orders)
    target.state.find_order_by_short_id = FindOrderByShortId(orders)
    target.state.update_order_status = UpdateOrderStatus(orders)
    target.state.preferences = PreferencesService(
        PreferencesStore(preferences_path, ttl_seconds=config.CART_SESSION_TTL_SECONDS), sessions
    )

    target.state.admin_auth = AdminAuth(repos["admins"], admin_sessions)
    target.state.manage_products = ManageProducts(products)
    target.state.list_orders = ListOrders(orders)
    target.state.build_reports = BuildReports(orders, products)
    target.state.manage_settings = ManageSettings(repos["settings"])


def memory_repos(seed: bool) -> dict:
    distributors = InMemoryDistributorRepository()
    repos = {
        "distributors": distributors,
        "products": InMemoryProductRepository(distributors),
        "orders": InMemoryOrderRepository(),
        "admins": InMemoryAdminUserRepository(),
        "settings": InMemorySettingsRepository(),
    }
    if seed:
        seed_memory(
            repos["distributors"], repos["products"], repos["settings"], repos["admins"],
            config.ADMIN_EMAIL, config.ADMIN_PASSWORD,
        )
    return repos


def mongo_repos(client: MongoClient) -> dict:
    db = client[config.MONGO_DB]
    if config.SEED_DEMO_DATA:
        seed_mongo(
            db,
            {
                "distributors": config.MONGO_DISTRIBUTORS_COL,
                "products": config.MONGO_PRODUCTS_COL,
                "settings": config.MONGO_SETTINGS_COL,
                "admins": config.MONGO_ADMINS_COL,
            },
            config.ADMIN_EMAIL,
            config.ADMIN_PASSWORD,
        )
    distributors = MongoDistributorRepository(db[config.MONGO_DISTRIBUTORS_COL])
    orders = MongoOrderRepository(db[config.MONGO_ORDERS_COL])
    orders.ensure_indexes()
    return {
        "distributors": distributors,
        "products": MongoProductRepository(db[config.MONGO_PRODUCTS_COL], distributors),
        "orders": orders,
        "admins": MongoAdminUserRepository(db[config.MONGO_ADMINS_COL]),
        "settings": MongoSettingsRepository(db[config.MONGO_SETTINGS_COL]),
    }


@app.on_event("startup")
def on_startup() -> None:
    global _mongo_client

    if config.DATA_BACKEND == "memory":
        repos = memory_repos(seed=config.SEED_DEMO_DATA)
        app.state.store_ping = None
    else:
        _mongo_client = MongoClient(
            config.MONGO_URI,
            serverSelectionTimeoutMS=config.MONGO_SERVER_SELECTION_TIMEOUT_MS,
            connectTimeoutMS=config.MONGO_CONNECT_TIMEOUT_MS,
            socketTimeoutMS=config.MONGO_SOCKET_TIMEOUT_MS,
            tz_aware=True,
        )
        repos = mongo_repos(_mongo_client)
        client = _mongo_client
        app.state.store_ping = lambda: client.admin.command("ping")

    app.state.data_backend = config.DATA_BACKEND
    wire_services(app, repos)
    log.info("Startup complete (backend=%s)", config.DATA_BACKEND)


@app.on_event("shutdown")
def on_shutdown() -> None:
    global _mongo_client
    if _mongo_client:
        _mongo_client.close()
        _mongo_client = None


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=config.PORT, reload=False)
