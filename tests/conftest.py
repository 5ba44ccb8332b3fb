from collections.abc import Generator
from typing import Any, Optional

import pytest

from storefront.models import Product


class MockResponse:
    """Mock aiohttp response for the rate lookup"""

    def __init__(
        self,
        status: int,
        json_data: Optional[Any] = None,
        text_data: Optional[str] = None,
        raise_error: Optional[BaseException] = None,
    ) -> None:
        self.status = status
        self._json_data = json_data if json_data is not None else {}
        self._text_data = text_data or ""
        self._raise_error = raise_error

    async def json(self) -> Any:  # noqa: ANN401
        if self._raise_error:
            raise self._raise_error
        return self._json_data

    async def text(self) -> str:
        return self._text_data

    def __await__(self) -> Generator[Any, None, "MockResponse"]:
        async def _await_mock() -> "MockResponse":
            return self

        return _await_mock().__await__()


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def mock_response() -> type[MockResponse]:
    return MockResponse


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def product() -> Product:
    return Product(id=1, name="Test Product", description="A product", price=100.0)
