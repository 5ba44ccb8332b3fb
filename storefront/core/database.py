# database.py
import asyncio
from pathlib import Path
from typing import Any, Optional

from databases import Database
from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
    select,
)

from storefront.models import DEFAULT_IMAGE, Product, ProductData
from storefront.utils.logging_config import get_logger

logger = get_logger(__name__)


class ProductNotFoundError(LookupError):
    def __init__(self, product_id: int) -> None:
        super().__init__(f"Product with ID {product_id} not found.")
        self.product_id = product_id


class ConnectionPool:
    """Database connection pool manager"""

    _instances: dict[str, Database] = {}
    _locks: dict[str, asyncio.Lock] = {}

    @classmethod
    async def get_connection(cls, database_url: str) -> Database:
        """Get a database connection from the pool"""
        if database_url not in cls._locks:
            cls._locks[database_url] = asyncio.Lock()

        async with cls._locks[database_url]:
            if database_url not in cls._instances:
                _ensure_sqlite_dir(database_url)
                db = Database(database_url)
                await db.connect()
                cls._instances[database_url] = db
                logger.info(f"Created new database connection for {database_url}")

            return cls._instances[database_url]

    @classmethod
    async def close_all(cls) -> None:
        """Close all database connections"""
        for url, db in cls._instances.items():
            logger.info(f"Closing database connection for {url}")
            await db.disconnect()

        cls._instances.clear()
        cls._locks.clear()


def _ensure_sqlite_dir(database_url: str) -> None:
    prefix = "sqlite:///"
    if database_url.startswith(prefix) and ":memory:" not in database_url:
        Path(database_url[len(prefix) :]).parent.mkdir(parents=True, exist_ok=True)


class ProductStore:
    """Persistence for catalog products"""

    def __init__(self, database_url: str = "sqlite:///data/storefront.db") -> None:
        self.metadata = MetaData()
        self.database_url = database_url
        self.products = self._define_products_table()

    def _define_products_table(self) -> Table:
        return Table(
            "products",
            self.metadata,
            Column("id", Integer, primary_key=True),
            Column("name", String(255), nullable=False),
            Column("description", Text),
            Column("price", Float, nullable=False),
            Column("image", String(512), nullable=False),
            Column("created_at", DateTime, server_default=func.current_timestamp()),
            Column("updated_at", DateTime, server_default=func.current_timestamp()),
        )

    async def initialize(self) -> None:
        """Connect and create the products table if needed"""
        self.db = await ConnectionPool.get_connection(self.database_url)
        await self.db.execute(
            """CREATE TABLE IF NOT EXISTS products (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                description TEXT,
                price REAL NOT NULL DEFAULT 0,
                image TEXT NOT NULL,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )"""
        )

    def _columns(self) -> list:
        c = self.products.c
        return [c.id, c.name, c.description, c.price, c.image]

    @staticmethod
    def _to_product(row: Any) -> Product:  # noqa: ANN401
        return Product(**dict(row._mapping))

    async def all(self) -> list[Product]:
        query = select(*self._columns()).order_by(self.products.c.id)
        return [self._to_product(row) for row in await self.db.fetch_all(query)]

    async def find(self, product_id: int) -> Optional[Product]:
        query = select(*self._columns()).where(self.products.c.id == product_id)
        row = await self.db.fetch_one(query)
        return self._to_product(row) if row else None

    async def get(self, product_id: int) -> Product:
        if (product := await self.find(product_id)) is None:
            raise ProductNotFoundError(product_id)
        return product

    async def create(self, data: ProductData, image: str = DEFAULT_IMAGE) -> Product:
        query = self.products.insert().values(
            name=data.name,
            description=data.description,
            price=data.price,
            image=image,
        )
        product_id = await self.db.execute(query)
        logger.info(f"Created product {product_id} ({data.name})")
        return await self.get(product_id)

    async def update(self, product_id: int, changes: dict[str, Any]) -> Product:
        """Apply column changes to a product and return the stored result"""
        if changes:
            query = (
                self.products.update()
                .where(self.products.c.id == product_id)
                .values(**changes, updated_at=func.current_timestamp())
            )
            await self.db.execute(query)
        return await self.get(product_id)

    async def delete(self, product_id: int) -> None:
        await self.get(product_id)
        await self.db.execute(
            self.products.delete().where(self.products.c.id == product_id)
        )
        logger.info(f"Deleted product {product_id}")
