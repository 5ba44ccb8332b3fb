# catalog.py
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from storefront.core.database import ProductStore
from storefront.features.exchange_rate import ExchangeRateService
from storefront.features.images import UploadedImage, store_image
from storefront.features.notifications import PriceChangeNotifier
from storefront.models import Product, ProductData, ProductUpdate, ProductView
from storefront.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class UpdateResult:
    product: Product
    old_price: float
    changed: bool
    notified: bool = False

    @property
    def price_changed(self) -> bool:
        return self.old_price != self.product.price


class CatalogService:
    """Product browsing with converted prices plus the admin write operations"""

    def __init__(
        self,
        store: ProductStore,
        exchange_rates: ExchangeRateService,
        notifier: PriceChangeNotifier,
        upload_root: str | Path = "public",
    ) -> None:
        self.store = store
        self.exchange_rates = exchange_rates
        self.notifier = notifier
        self.upload_root = upload_root

    async def list_products(self) -> list[ProductView]:
        products = await self.store.all()
        rate = await self.exchange_rates.get_rate()
        return [ProductView(product=p, exchange_rate=rate) for p in products]

    async def show_product(self, product_id: int) -> ProductView:
        product = await self.store.get(product_id)
        rate = await self.exchange_rates.get_rate()
        return ProductView(product=product, exchange_rate=rate)

    async def create_product(
        self, data: ProductData, image: Optional[UploadedImage] = None
    ) -> Product:
        image_path = store_image(image, self.upload_root)
        return await self.store.create(data, image=image_path)

    async def update_product(
        self,
        product_id: int,
        update: ProductUpdate,
        image: Optional[UploadedImage] = None,
    ) -> UpdateResult:
        """Persist changes, then queue a notification if the price moved.

        A failed notification hand-off leaves the update in place.
        """
        product = await self.store.get(product_id)
        old_price = product.price

        changes = update.changes()
        if image is not None:
            changes["image"] = store_image(image, self.upload_root)

        if not changes:
            return UpdateResult(product=product, old_price=old_price, changed=False)

        product = await self.store.update(product_id, changes)
        result = UpdateResult(product=product, old_price=old_price, changed=True)

        if result.price_changed:
            result.notified = self.notifier.notify_change_in_price(
                product, old_price, product.price
            )
            if not result.notified:
                logger.warning(
                    f"Product {product_id} updated but price change notification was not queued"
                )

        return result

    async def delete_product(self, product_id: int) -> None:
        await self.store.delete(product_id)
