"""Reset the catalog and order tables and load the sample product catalog.

Usage:
    python -m plantry.app.seed
"""
import asyncio
import logging
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from plantry.shared.utils import get_db_engine, get_password_hash, get_sessionmaker, settings
from plantry.shared.logging_config import setup_logging
from plantry.app.models import Base, CartItemDB, OrderDB, OrderItemDB, PaymentDB, ProductDB, UserDB

logger = logging.getLogger("plantry.seed")

PRODUCTS = [
    {
        "name": "Morning Ritual Green",
        "category": "juices",
        "price": Decimal("14.00"),
        "description": "Fresh cold-pressed green juice with organic kale, cucumber, celery, and lemon",
        "ingredients": "Kale, Cucumber, Celery, Lemon",
        "image_url": "https://images.unsplash.com/photo-1610970881699-44a55869f9c2?auto=format&fit=crop&q=80&w=1000",
        "stock": 40,
    },
    {
        "name": "Ancient Grain Bowl",
        "category": "bowls",
        "price": Decimal("22.00"),
        "description": "Nourishing grain bowl with quinoa, roasted root vegetables, and tahini dressing",
        "ingredients": "Quinoa, Roasted Root Veg, Tahini",
        "image_url": "https://images.unsplash.com/photo-1512621776951-a57141f2eefd?auto=format&fit=crop&q=80&w=1000",
        "stock": 35,
    },
    {
        "name": "Stone-Ground Almond Butter",
        "category": "pantry",
        "price": Decimal("18.00"),
        "description": "Organic almond butter ground in-house with just a touch of sea salt",
        "ingredients": "Organic Heirloom Almonds, Sea Salt",
        "image_url": "https://images.unsplash.com/photo-1544333346-61439281a8c0?auto=format&fit=crop&q=80&w=1000",
        "stock": 50,
    },
    {
        "name": "Sunrise Turmeric Latte",
        "category": "juices",
        "price": Decimal("12.00"),
        "description": "Golden milk made with organic turmeric, ginger, coconut milk, and warming spices",
        "ingredients": "Turmeric, Ginger, Coconut Milk, Cinnamon",
        "image_url": "https://images.unsplash.com/photo-1495521821757-a1efb6729352?auto=format&fit=crop&q=80&w=1000",
        "stock": 45,
    },
    {
        "name": "Buddha Blessing Bowl",
        "category": "bowls",
        "price": Decimal("24.00"),
        "description": "Superfood packed bowl with organic grains, roasted vegetables, seed medley, and tahini",
        "ingredients": "Millet, Roasted Vegetables, Seeds, Tahini",
        "image_url": "https://images.unsplash.com/photo-1546069901-ba9599a7e63c?auto=format&fit=crop&q=80&w=600",
        "stock": 30,
    },
    {
        "name": "Cold Brew Coffee",
        "category": "juices",
        "price": Decimal("6.00"),
        "description": "Small batch cold brew made from shade-grown, single-origin beans",
        "ingredients": "Organic Cold Brew Coffee",
        "image_url": "https://images.unsplash.com/photo-1514432324607-2e467f4af445?auto=format&fit=crop&q=80&w=1000",
        "stock": 60,
    },
    {
        "name": "Organic Granola Blend",
        "category": "pantry",
        "price": Decimal("16.00"),
        "description": "House-made granola with organic oats, nuts, seeds, and dried fruit",
        "ingredients": "Organic Oats, Almonds, Walnuts, Dried Coconut, Maple Syrup",
        "image_url": "https://images.unsplash.com/photo-1517668808822-9ebb02ae2a0e?auto=format&fit=crop&q=80&w=1000",
        "stock": 55,
    },
]


async def seed_database(session_factory: async_sessionmaker) -> int:
    """Clear orders, payments, carts and products, then insert PRODUCTS.

    Runs as one transaction; returns the number of products inserted.
    """
    async with session_factory() as session, session.begin():
        # Children first
        for model in (PaymentDB, OrderItemDB, OrderDB, CartItemDB, ProductDB):
            await session.execute(delete(model))
        session.add_all([ProductDB(available=True, **product) for product in PRODUCTS])

    logger.info(f"Added {len(PRODUCTS)} products")
    return len(PRODUCTS)


async def ensure_admin(session_factory: async_sessionmaker, email: str, password: str) -> UserDB:
    """Create the admin account unless a user with that email already exists."""
    async with session_factory() as session, session.begin():
        user = await session.scalar(select(UserDB).where(UserDB.email == email.lower()))
        if user is None:
            user = UserDB(
                email=email.lower(),
                password_hash=get_password_hash(password),
                full_name="Administrator",
                role="admin",
            )
            session.add(user)
            logger.info(f"Created admin account {user.email}")
    return user


async def main():
    engine = get_db_engine()
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        session_factory = get_sessionmaker(engine)
        await seed_database(session_factory)
        if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
            await ensure_admin(session_factory, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
    finally:
        await engine.dispose()
    logger.info("Database seeding complete")


if __name__ == "__main__":
    setup_logging(f"{settings.SERVICE_NAME}-seed")
    asyncio.run(main())
