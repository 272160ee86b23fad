import sys
from functools import partial

import httpx
import uvicorn
from loguru import logger

from supplier_orders.application.sync_service import OrderSyncService
from supplier_orders.entrypoints.api import create_app
from supplier_orders.entrypoints.settings import config
from supplier_orders.infrastructure.database import init_db, make_engine, make_session_factory
from supplier_orders.infrastructure.directories import ProductMappings, StoreDirectory
from supplier_orders.infrastructure.order_store import OrderStore
from supplier_orders.infrastructure.shopify_orders import ShopifyOrderFetcher


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def main() -> None:
    """Serve the API."""
    configure_logging(config.LOG_LEVEL)
    logger.info(f"Starting supplier orders API on {config.HOST}:{config.PORT}")
    uvicorn.run(create_app(config), host=config.HOST, port=config.PORT)


def sync() -> None:
    """Run one order sync from the command line, without the HTTP server."""
    configure_logging(config.LOG_LEVEL)

    engine = make_engine(config.DATABASE_URL)
    init_db(engine)
    session_factory = make_session_factory(engine)

    with httpx.Client(timeout=config.HTTP_TIMEOUT_SECONDS) as client, session_factory() as session:
        service = OrderSyncService(
            stores=StoreDirectory(session),
            mappings=ProductMappings(session),
            order_store=OrderStore(session),
            fetcher_factory=partial(
                ShopifyOrderFetcher.for_store,
                client=client,
                api_version=config.SHOPIFY_API_VERSION,
            ),
        )
        logger.info(f"Syncing orders from the last {config.SYNC_LOOKBACK_DAYS} days…")
        summary = service.sync_all(days=config.SYNC_LOOKBACK_DAYS)

    logger.info(
        f"Done. {summary.orders_fetched} order(s) from {summary.stores} store(s), "
        f"{summary.supplier_orders} supplier order(s) saved"
    )
    for error in summary.errors:
        logger.warning(f"Sync error: {error}")


if __name__ == "__main__":
    main()
