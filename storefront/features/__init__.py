from .catalog import CatalogService
from .exchange_rate import ExchangeRateService
from .jobs import JobContext, SendPriceChangeNotification
from .mailer import Mailer, PriceChangeNotification
from .notifications import PriceChangeNotifier

__all__ = [
    "CatalogService",
    "ExchangeRateService",
    "JobContext",
    "Mailer",
    "PriceChangeNotification",
    "PriceChangeNotifier",
    "SendPriceChangeNotification",
]
