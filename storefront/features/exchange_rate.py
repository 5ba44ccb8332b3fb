# exchange_rate.py
import math
from typing import Any, Optional

from aiohttp import ClientSession, ClientTimeout

from storefront.config import ExchangeRateSettings
from storefront.core.cache import TTLCache
from storefront.utils.logging_config import get_logger

logger = get_logger(__name__)


class ExchangeRateService:
    """Currency conversion rate with caching and a configured fallback.

    `get_rate` never raises: any failure to reach or understand the rate API
    yields `default_rate`, and failures are not cached so the next call tries
    the network again.
    """

    def __init__(
        self, session: ClientSession, cache: TTLCache, settings: ExchangeRateSettings
    ) -> None:
        self.session = session
        self.cache = cache
        self.settings = settings
        self.timeout = ClientTimeout(total=settings.api_timeout)

    async def get_rate(self) -> float:
        cached_rate = await self.cache.get(self.settings.cache_key)
        if cached_rate is not None:
            logger.debug(f"Cache hit for {self.settings.cache_key}")
            return cached_rate

        rate = await self._fetch_rate()
        if rate is None:
            return self.settings.default_rate

        await self.cache.set(self.settings.cache_key, rate, ttl=self.settings.cache_ttl)
        return rate

    async def _fetch_rate(self) -> Optional[float]:
        url = self.settings.api_url
        try:
            response = await self.session.get(url, timeout=self.timeout)

            if not 200 <= response.status < 300:
                body = await response.text()
                logger.with_context(status=response.status, body=body[:500]).debug(  # type: ignore[attr-defined]
                    f"Error fetching exchange rate: HTTP {response.status}"
                )
                return None

            data = await response.json()
        except Exception as e:
            logger.error(f"Error fetching exchange rate: {str(e)}")
            return None

        return self._extract_rate(data)

    def _extract_rate(self, data: Any) -> Optional[float]:  # noqa: ANN401
        currency = self.settings.currency
        rates = data.get("rates") if isinstance(data, dict) else None
        value = rates.get(currency) if isinstance(rates, dict) else None

        # bool is an int subclass but never a rate
        if (
            isinstance(value, bool)
            or not isinstance(value, (int, float))
            or not math.isfinite(value)
        ):
            logger.warning(f"Exchange rate response has no numeric rates.{currency}")
            return None

        return float(value)
