# notifications.py
from storefront.core.queue import TaskQueue
from storefront.features.jobs import SendPriceChangeNotification
from storefront.models import NotificationRequest, Product
from storefront.utils.logging_config import get_logger

logger = get_logger(__name__)


class PriceChangeNotifier:
    def __init__(self, queue: TaskQueue, notification_email: str) -> None:
        self.queue = queue
        self.notification_email = notification_email

    def notify_change_in_price(
        self, product: Product, old_price: float, new_price: float
    ) -> bool:
        """Queue a price change email; True when the job was handed off"""
        # Exact comparison on purpose, no tolerance
        if old_price == new_price:
            return False

        request = NotificationRequest(
            product=product,
            old_price=old_price,
            new_price=new_price,
            email=self.notification_email,
        )

        try:
            task_id = self.queue.submit(SendPriceChangeNotification(request))
        except Exception as e:
            logger.error(f"Failed to dispatch price change notification: {str(e)}")
            return False

        logger.info(
            f"Queued price change notification {task_id} for product {product.id}: "
            f"{old_price} → {new_price}"
        )
        return True
