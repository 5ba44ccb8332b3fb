# jobs.py
from dataclasses import dataclass

from storefront.features.mailer import Mailer, PriceChangeNotification
from storefront.models import NotificationRequest


@dataclass
class JobContext:
    """Services handed to every job the queue workers run"""

    mailer: Mailer


@dataclass(frozen=True)
class SendPriceChangeNotification:
    request: NotificationRequest

    async def handle(self, context: JobContext) -> None:
        # Safe to run again on redelivery; the same mail is just sent twice
        await context.mailer.send(
            self.request.email,
            PriceChangeNotification(
                self.request.product,
                self.request.old_price,
                self.request.new_price,
            ),
        )
