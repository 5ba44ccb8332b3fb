import argparse
import asyncio
import math
import sys
from typing import Awaitable, Callable, Optional

from aiohttp import ClientSession, ClientTimeout

from storefront.config import Settings
from storefront.core.cache import TTLCache
from storefront.core.database import ConnectionPool, ProductStore
from storefront.core.queue import TaskQueue
from storefront.features.catalog import CatalogService
from storefront.features.exchange_rate import ExchangeRateService
from storefront.features.jobs import JobContext
from storefront.features.mailer import Mailer
from storefront.features.notifications import PriceChangeNotifier
from storefront.models import ProductUpdate, ProductValidationError
from storefront.utils.logging_config import get_logger, setup_logging

logger = get_logger(__name__)

HEADERS = {"Accept": "application/json", "User-Agent": "storefront/0.1"}
TIMEOUT = ClientTimeout(total=30, sock_connect=15)

Command = Callable[[CatalogService, argparse.Namespace, Settings], Awaitable[int]]


def error(message: str) -> None:
    print(message, file=sys.stderr)


def collect_update(args: argparse.Namespace) -> ProductUpdate:
    """Validate command options into a ProductUpdate"""
    data: dict = {}

    # An empty --name is treated as not given
    if args.name:
        if not args.name.strip():
            raise ProductValidationError("Name cannot be empty.")
        if len(args.name) < 3:
            raise ProductValidationError("Name must be at least 3 characters long.")
        data["name"] = args.name

    if args.description:
        data["description"] = args.description

    if args.price is not None:
        try:
            price = float(args.price)
        except ValueError:
            raise ProductValidationError("Price must be a valid number.") from None
        if not math.isfinite(price):
            raise ProductValidationError("Price must be a valid number.")
        if price < 0:
            raise ProductValidationError("Price cannot be negative.")
        data["price"] = price

    return ProductUpdate(**data)


async def update_command(
    catalog: CatalogService, args: argparse.Namespace, settings: Settings
) -> int:
    if await catalog.store.find(args.id) is None:
        error(f"Product with ID {args.id} not found.")
        return 1

    try:
        update = collect_update(args)
    except ProductValidationError as e:
        error(str(e))
        return 1

    if not update.changes():
        print("No changes provided. Product remains unchanged.")
        return 0

    result = await catalog.update_product(args.id, update)
    print("Product updated successfully.")

    if result.price_changed:
        print(
            f"Price changed from {result.old_price:.2f} to {result.product.price:.2f}."
        )
        if result.notified:
            print(
                f"Price change notification dispatched to {settings.notification_email}."
            )
        else:
            error("Failed to dispatch price change notification.")

    return 0


async def list_command(
    catalog: CatalogService, args: argparse.Namespace, settings: Settings
) -> int:
    views = await catalog.list_products()
    if not views:
        print("No products found.")
        return 0

    currency = settings.exchange_rate.currency
    for view in views:
        p = view.product
        print(
            f"{p.id:>4}  {p.name:<30} {p.price:>10.2f} USD  "
            f"{view.converted_price:>10.2f} {currency}"
        )
    return 0


async def show_command(
    catalog: CatalogService, args: argparse.Namespace, settings: Settings
) -> int:
    product = await catalog.store.find(args.id)
    if product is None:
        error(f"Product with ID {args.id} not found.")
        return 1

    view = await catalog.show_product(args.id)
    print(f"#{product.id} {product.name}")
    if product.description:
        print(product.description)
    print(f"Price: {product.price:.2f} USD ({view.converted_price:.2f} {settings.exchange_rate.currency})")
    print(f"Image: {product.image}")
    return 0


COMMANDS: dict[str, Command] = {
    "update": update_command,
    "list": list_command,
    "show": show_command,
}


async def main(args: argparse.Namespace, settings: Settings) -> int:
    store = ProductStore(settings.database_url)
    await store.initialize()

    queue = TaskQueue(
        JobContext(mailer=Mailer(settings.mail)),
        workers=settings.queue.workers,
        maxsize=settings.queue.maxsize,
        retries=settings.queue.retries,
        backoff_base=settings.queue.backoff_base,
    )
    queue.start()

    try:
        async with ClientSession(headers=HEADERS, timeout=TIMEOUT) as session:
            cache = TTLCache(max_size=16, ttl=settings.exchange_rate.cache_ttl)
            catalog = CatalogService(
                store,
                ExchangeRateService(session, cache, settings.exchange_rate),
                PriceChangeNotifier(queue, settings.notification_email),
                upload_root=settings.upload_root,
            )
            return await COMMANDS[args.command](catalog, args, settings)
    finally:
        # Queued notifications are sent before the process exits
        await queue.close(drain=True)
        await ConnectionPool.close_all()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storefront", description="Product catalog admin")
    parser.add_argument("--database-url", help="Database connection URL")
    parser.add_argument("--notification-email", help="Price change recipient")
    subparsers = parser.add_subparsers(dest="command", required=True)

    update = subparsers.add_parser("update", help="Update a product with the specified details")
    update.add_argument("id", type=int)
    update.add_argument("--name")
    update.add_argument("--description")
    update.add_argument("--price")

    subparsers.add_parser("list", help="List products with converted prices")

    show = subparsers.add_parser("show", help="Show a single product")
    show.add_argument("id", type=int)

    return parser


def cli(argv: Optional[list[str]] = None) -> None:
    """Command Line Interface entry point"""
    args = build_parser().parse_args(argv)
    setup_logging()

    # CLI arguments win over environment variables
    settings = Settings.from_env()
    if args.database_url:
        settings.database_url = args.database_url
    if args.notification_email:
        settings.notification_email = args.notification_email

    sys.exit(asyncio.run(main(args, settings)))


if __name__ == "__main__":
    cli()
