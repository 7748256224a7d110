# adega_delivery/src/infrastructure/seed.py
"""Demo catalog used to seed an empty store (Mongo) or the in-memory backend."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from bson import ObjectId
from pymongo.database import Database

from src.application.admin_usecases import hash_password
from src.domain.entities import AdminUser
from src.infrastructure.memory_repositories import (
    InMemoryAdminUserRepository,
    InMemoryDistributorRepository,
    InMemoryProductRepository,
    InMemorySettingsRepository,
)
from src.infrastructure.mongo_repositories import parse_distributor, parse_settings

log = logging.getLogger("infra.seed")

DEMO_DISTRIBUTORS: List[Dict[str, Any]] = [
    {
        "key": "central",
        "name": "Distribuidora Central",
        "logo_url": "https://images.unsplash.com/photo-1566633806327-68e152aaf26d?w=200",
        "rating": 4.8,
        "delivery_time": "30-45 min",
        "minimum_order": 30.0,
        "delivery_fee": 5.99,
        "is_active": True,
    },
    {
        "key": "gelada",
        "name": "Gelada Express",
        "logo_url": "https://images.unsplash.com/photo-1608270586620-248524c67de9?w=200",
        "rating": 4.5,
        "delivery_time": "20-35 min",
        "minimum_order": 20.0,
        "delivery_fee": 7.5,
        "is_active": True,
    },
]

DEMO_PRODUCTS: List[Dict[str, Any]] = [
    {
        "name": "Heineken Long Neck",
        "description": "Cerveja lager premium puro malte.",
        "price": 7.99,
        "original_price": 9.49,
        "image_url": "https://images.unsplash.com/photo-1618885472179-5e474019f2a9?w=600",
        "category": "cerveja",
        "volume": "330ml",
        "alcohol_content": "5%",
        "brand": "Heineken",
        "distributor": "central",
        "stock": 120,
        "featured": True,
        "tags": ["lager", "puro malte", "gelada"],
    },
    {
        "name": "Vinho Tinto Casillero del Diablo",
        "description": "Cabernet Sauvignon chileno, encorpado.",
        "price": 59.9,
        "image_url": "https://images.unsplash.com/photo-1510812431401-41d2bd2722f3?w=600",
        "category": "vinho",
        "volume": "750ml",
        "alcohol_content": "13.5%",
        "brand": "Concha y Toro",
        "distributor": "central",
        "stock": 8,
        "featured": True,
        "tags": ["tinto", "cabernet"],
    },
    {
        "name": "Johnnie Walker Red Label",
        "description": "Blended scotch whisky.",
        "price": 99.9,
        "original_price": 119.9,
        "image_url": "https://images.unsplash.com/photo-1527281400683-1aae777175f8?w=600",
        "category": "whisky",
        "volume": "1L",
        "alcohol_content": "40%",
        "brand": "Johnnie Walker",
        "distributor": "central",
        "stock": 25,
        "featured": False,
        "tags": ["scotch", "blended"],
    },
    {
        "name": "Cachaça Ypióca Ouro",
        "description": "Cachaça envelhecida em tonéis de madeira.",
        "price": 24.9,
        "image_url": "https://images.unsplash.com/photo-1614313511387-1436a4480ebb?w=600",
        "category": "cachaça",
        "volume": "965ml",
        "alcohol_content": "39%",
        "brand": "Ypióca",
        "distributor": "gelada",
        "stock": 40,
        "featured": True,
        "tags": ["caipirinha", "ouro"],
    },
    {
        "name": "Red Bull Energy Drink",
        "description": "Energético clássico.",
        "price": 9.5,
        "image_url": "https://images.unsplash.com/photo-1613218222876-954978a4404e?w=600",
        "category": "energético",
        "volume": "250ml",
        "alcohol_content": "0%",
        "brand": "Red Bull",
        "distributor": "gelada",
        "stock": 200,
        "featured": False,
        "tags": ["energia"],
    },
    {
        "name": "Água Mineral Crystal",
        "description": "Água mineral sem gás.",
        "price": 2.5,
        "image_url": "https://images.unsplash.com/photo-1548839140-29a749e1cf4d?w=600",
        "category": "água",
        "volume": "500ml",
        "alcohol_content": "0%",
        "brand": "Crystal",
        "distributor": "gelada",
        "stock": 0,
        "featured": False,
        "tags": ["sem gás"],
    },
]

DEMO_SETTINGS: Dict[str, Any] = {
    "store_name": "Adega Delivery",
    "store_address": "Rua das Adegas, 100 - São Paulo, SP",
    "store_phone": "(11) 99999-0000",
    "store_email": "contato@adega.local",
    "logo_url": "",
    "base_delivery_fee": 5.99,
    "minimum_order_value": 20.0,
    "delivery_radius_km": 10.0,
}


def seed_mongo(db: Database, cols: Dict[str, str], admin_email: str, admin_password: str) -> None:
    """Insert demo documents into empty collections only."""
    now = datetime.now(timezone.utc)
    dist_col = db[cols["distributors"]]
    prod_col = db[cols["products"]]

    if dist_col.count_documents({}) == 0:
        keys: Dict[str, ObjectId] = {}
        for d in DEMO_DISTRIBUTORS:
            doc = {k: v for k, v in d.items() if k != "key"}
            keys[d["key"]] = dist_col.insert_one(doc).inserted_id
        log.info("Seeded %d distributors", len(keys))

        if prod_col.count_documents({}) == 0:
            for p in DEMO_PRODUCTS:
                doc = {k: v for k, v in p.items() if k != "distributor"}
                doc["distributor_id"] = str(keys[p["distributor"]])
                doc["created_at"] = now
                doc["updated_at"] = now
                prod_col.insert_one(doc)
            log.info("Seeded %d products", len(DEMO_PRODUCTS))

    settings_col = db[cols["settings"]]
    if settings_col.count_documents({}) == 0:
        settings_col.insert_one({**DEMO_SETTINGS, "updated_at": now})

    admins_col = db[cols["admins"]]
    if admins_col.count_documents({}) == 0:
        admins_col.insert_one({
            "email": admin_email.lower(),
            "name": "Administrador",
            "role": "admin",
            "is_active": True,
            "password_hash": hash_password(admin_password),
            "created_at": now,
        })
        log.info("Seeded default admin user %s", admin_email)


def seed_memory(
    distributors: InMemoryDistributorRepository,
    products: InMemoryProductRepository,
    settings: InMemorySettingsRepository,
    admins: InMemoryAdminUserRepository,
    admin_email: str,
    admin_password: str,
) -> None:
    for d in DEMO_DISTRIBUTORS:
        distributors.add(parse_distributor({**d, "id": d["key"]}))
    for p in DEMO_PRODUCTS:
        doc = {k: v for k, v in p.items() if k != "distributor"}
        products.create({**doc, "distributor_id": p["distributor"]})
    settings.set(parse_settings({**DEMO_SETTINGS, "id": "default"}))
    admins.add(
        AdminUser(
            id="admin",
            email=admin_email.lower(),
            name="Administrador",
            role="admin",
            is_active=True,
            created_at=datetime.now(timezone.utc),
        ),
        hash_password(admin_password),
    )
    log.info("In-memory store seeded: %d products", len(DEMO_PRODUCTS))
