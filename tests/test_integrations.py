import asyncio
from collections.abc import AsyncGenerator, Iterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio

from storefront.cli import build_parser, main
from storefront.config import ExchangeRateSettings, MailSettings, QueueSettings, Settings
from storefront.core.database import ConnectionPool, ProductStore
from storefront.core.queue import TaskQueue
from storefront.features.jobs import JobContext
from storefront.features.mailer import Mailer
from storefront.features.notifications import PriceChangeNotifier
from storefront.models import ProductData

RATES_URL = "https://api.example.com/rates"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path}/storefront.db",
        notification_email="prices@example.com",
        upload_root=str(tmp_path / "public"),
        exchange_rate=ExchangeRateSettings(api_url=RATES_URL, default_rate=0.85),
        mail=MailSettings(host="localhost", port=25, use_tls=False),
        queue=QueueSettings(retries=1),
    )


@pytest_asyncio.fixture
async def store(settings: Settings) -> AsyncGenerator[ProductStore]:
    store = ProductStore(settings.database_url)
    await store.initialize()
    yield store
    await ConnectionPool.close_all()


@pytest.fixture
def smtp() -> Iterator[MagicMock]:
    with patch("storefront.features.mailer.smtplib.SMTP") as smtp_class:
        yield smtp_class.return_value.__enter__.return_value


async def run_cli(settings: Settings, *argv: str) -> int:
    return await main(build_parser().parse_args(list(argv)), settings)


class TestPriceChangeFlow:
    """Notifier, queue worker and mailer wired together"""

    @pytest.mark.asyncio
    async def test_changed_price_sends_one_email(
        self, store: ProductStore, settings: Settings, smtp: MagicMock
    ) -> None:
        product = await store.create(ProductData(name="Test Product", price=100.00))
        queue = TaskQueue(JobContext(mailer=Mailer(settings.mail)))
        notifier = PriceChangeNotifier(queue, settings.notification_email)

        updated = await store.update(product.id, {"price": 150.00})
        assert notifier.notify_change_in_price(updated, 100.00, 150.00) is True
        assert queue.pending() == 1

        queue.start()
        await asyncio.wait_for(queue.close(), timeout=5)

        smtp.send_message.assert_called_once()
        msg = smtp.send_message.call_args.args[0]
        assert msg["Subject"] == "Product Price Change Notification"
        assert msg["To"] == "prices@example.com"
        assert "Old price: 100.00" in msg.get_body(("plain",)).get_content()
        assert "New price: 150.00" in msg.get_body(("plain",)).get_content()

    @pytest.mark.asyncio
    async def test_unchanged_price_queues_nothing(
        self, store: ProductStore, settings: Settings, smtp: MagicMock
    ) -> None:
        product = await store.create(ProductData(name="Same Price", price=50.00))
        queue = TaskQueue(JobContext(mailer=Mailer(settings.mail)))
        notifier = PriceChangeNotifier(queue, settings.notification_email)

        assert notifier.notify_change_in_price(product, 50.00, 50.00) is False
        assert queue.pending() == 0
        await queue.run_pending()
        smtp.send_message.assert_not_called()


class TestUpdateCommand:
    @pytest.mark.asyncio
    async def test_price_change(
        self,
        store: ProductStore,
        settings: Settings,
        smtp: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        product = await store.create(ProductData(name="Test Product", price=100.00))

        code = await run_cli(settings, "update", str(product.id), "--price", "150")

        out = capsys.readouterr().out
        assert code == 0
        assert "Product updated successfully." in out
        assert "Price changed from 100.00 to 150.00." in out
        assert "Price change notification dispatched to prices@example.com." in out
        smtp.send_message.assert_called_once()

        await store.initialize()
        assert (await store.get(product.id)).price == 150.0

    @pytest.mark.asyncio
    async def test_same_price(
        self,
        store: ProductStore,
        settings: Settings,
        smtp: MagicMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        product = await store.create(ProductData(name="Same Price", price=50.00))

        code = await run_cli(settings, "update", str(product.id), "--price", "50.00")

        out = capsys.readouterr().out
        assert code == 0
        assert "Product updated successfully." in out
        assert "Price changed" not in out
        smtp.send_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_changes(
        self, store: ProductStore, settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        product = await store.create(ProductData(name="Lamp", price=10.00))

        code = await run_cli(settings, "update", str(product.id))

        assert code == 0
        assert "No changes provided. Product remains unchanged." in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_missing_product(
        self, store: ProductStore, settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = await run_cli(settings, "update", "999", "--price", "10")

        assert code == 1
        assert "Product with ID 999 not found." in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_invalid_price(
        self, store: ProductStore, settings: Settings, capsys: pytest.CaptureFixture[str]
    ) -> None:
        product = await store.create(ProductData(name="Lamp", price=10.00))

        code = await run_cli(settings, "update", str(product.id), "--price", "cheap")

        assert code == 1
        assert "Price must be a valid number." in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_dispatch_failure_still_updates(
        self,
        store: ProductStore,
        settings: Settings,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        product = await store.create(ProductData(name="Lamp", price=10.00))

        with patch(
            "storefront.cli.TaskQueue.submit", side_effect=RuntimeError("queue down")
        ):
            code = await run_cli(settings, "update", str(product.id), "--price", "12")

        captured = capsys.readouterr()
        assert code == 0
        assert "Product updated successfully." in captured.out
        assert "Failed to dispatch price change notification." in captured.err

        await store.initialize()
        assert (await store.get(product.id)).price == 12.0


class TestReadCommands:
    @pytest.mark.asyncio
    async def test_list_shows_converted_prices(
        self,
        store: ProductStore,
        settings: Settings,
        mock_response,  # noqa: ANN001
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_session = MagicMock()
        mock_session.get.return_value = mock_response(200, {"rates": {"EUR": 0.5}})
        session_cm = MagicMock()
        session_cm.__aenter__ = AsyncMock(return_value=mock_session)
        session_cm.__aexit__ = AsyncMock(return_value=None)

        await store.create(ProductData(name="Lamp", price=10.00))
        await store.create(ProductData(name="Desk", price=99.00))

        with patch("storefront.cli.ClientSession", return_value=session_cm):
            code = await run_cli(settings, "list")

        out = capsys.readouterr().out
        assert code == 0
        assert "Lamp" in out and "5.00 EUR" in out
        assert "Desk" in out and "49.50 EUR" in out
        mock_session.get.assert_called_once()

    @pytest.mark.asyncio
    async def test_show_falls_back_to_default_rate(
        self,
        store: ProductStore,
        settings: Settings,
        mock_response,  # noqa: ANN001
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_session = MagicMock()
        mock_session.get.return_value = mock_response(500, text_data="Server Error")
        session_cm = MagicMock()
        session_cm.__aenter__ = AsyncMock(return_value=mock_session)
        session_cm.__aexit__ = AsyncMock(return_value=None)

        product = await store.create(ProductData(name="Lamp", price=10.00))

        with patch("storefront.cli.ClientSession", return_value=session_cm):
            code = await run_cli(settings, "show", str(product.id))

        out = capsys.readouterr().out
        assert code == 0
        assert "Price: 10.00 USD (8.50 EUR)" in out
