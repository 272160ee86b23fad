"""FastAPI surface of the supplier orders service."""

from collections.abc import Callable, Iterator
from contextlib import asynccontextmanager
from functools import partial

import httpx
from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request, status
from fastapi.responses import JSONResponse, Response
from loguru import logger
from sqlalchemy.orm import Session, sessionmaker

from supplier_orders.application.admin_service import AdminOrderService
from supplier_orders.application.csv_export import admin_orders_csv, supplier_orders_csv
from supplier_orders.application.order_filters import filter_orders
from supplier_orders.application.order_service import OrderListing, OrderService
from supplier_orders.application.owner_resolver import (
    AuthenticationRequired,
    OwnerNotFound,
    resolve_owner,
)
from supplier_orders.application.sync_service import OrderSyncService
from supplier_orders.application.sync_trigger import SyncTrigger
from supplier_orders.domain.supplier import ConnectedStore, Identity
from supplier_orders.entrypoints.settings import Config, config
from supplier_orders.infrastructure.database import init_db, make_engine, make_session_factory
from supplier_orders.infrastructure.directories import (
    ProductMappings,
    StoreDirectory,
    SupplierDirectory,
)
from supplier_orders.infrastructure.order_store import OrderStore, StorageError
from supplier_orders.infrastructure.shopify_orders import ShopifyOrderFetcher
from supplier_orders.infrastructure.supabase_auth import identity_from_header

router = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_session(request: Request) -> Iterator[Session]:
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_identity(
    request: Request, authorization: str | None = Header(default=None)
) -> Identity | None:
    return identity_from_header(authorization, request.app.state.config.SUPABASE_JWT_SECRET)


def get_sync_trigger(request: Request) -> SyncTrigger:
    # The sync endpoint lives on this same host
    return SyncTrigger(request.app.state.http_client, str(request.base_url))


def get_fetcher_factory(request: Request) -> Callable[[ConnectedStore], ShopifyOrderFetcher]:
    return partial(
        ShopifyOrderFetcher.for_store,
        client=request.app.state.http_client,
        api_version=request.app.state.config.SHOPIFY_API_VERSION,
    )


# ---------------------------------------------------------------------------
# Supplier routes
# ---------------------------------------------------------------------------


def _supplier_listing(
    identity: Identity | None,
    supplier_name: str | None,
    force_sync: bool,
    session: Session,
    sync_trigger: SyncTrigger,
) -> tuple[str, OrderListing]:
    owner = resolve_owner(identity, supplier_name, SupplierDirectory(session))
    service = OrderService(OrderStore(session), sync_trigger)
    return owner, service.list_orders(owner, force_sync=force_sync)


@router.get("/supplier/orders")
def list_supplier_orders(
    supplier_name: str | None = Query(None, alias="supplierName"),
    sync: str | None = Query(None),
    identity: Identity | None = Depends(get_identity),
    session: Session = Depends(get_session),
    sync_trigger: SyncTrigger = Depends(get_sync_trigger),
) -> dict:
    """List the resolved supplier's orders; only ``sync=true`` forces a sync first."""
    _, listing = _supplier_listing(identity, supplier_name, sync == "true", session, sync_trigger)
    return listing.to_json()


@router.get("/supplier/orders/export")
def export_supplier_orders(
    supplier_name: str | None = Query(None, alias="supplierName"),
    identity: Identity | None = Depends(get_identity),
    session: Session = Depends(get_session),
    sync_trigger: SyncTrigger = Depends(get_sync_trigger),
) -> Response:
    owner, listing = _supplier_listing(identity, supplier_name, False, session, sync_trigger)
    return _csv_response(supplier_orders_csv(listing.orders), f"orders_{owner}.csv")


# ---------------------------------------------------------------------------
# Sync + admin routes
# ---------------------------------------------------------------------------


@router.post("/sync-orders")
def sync_orders(
    session: Session = Depends(get_session),
    fetcher_factory: Callable = Depends(get_fetcher_factory),
    app_config: Config = Depends(get_config),
) -> dict:
    """Pull recent orders from every connected store into the order store."""
    service = OrderSyncService(
        StoreDirectory(session), ProductMappings(session), OrderStore(session), fetcher_factory
    )
    summary = service.sync_all(days=app_config.SYNC_LOOKBACK_DAYS)
    return {"success": True, **summary.to_json()}


def _admin_orders(
    session: Session, fetcher_factory: Callable, app_config: Config
) -> AdminOrderService:
    return AdminOrderService(StoreDirectory(session), fetcher_factory, app_config.SYNC_LOOKBACK_DAYS)


@router.get("/admin/orders")
def list_admin_orders(
    q: str | None = Query(None),
    product: str | None = Query(None),
    store: str | None = Query(None),
    session: Session = Depends(get_session),
    fetcher_factory: Callable = Depends(get_fetcher_factory),
    app_config: Config = Depends(get_config),
) -> dict:
    """Live orders from all connected stores, with margins and filter options."""
    listing = _admin_orders(session, fetcher_factory, app_config).list_orders()
    filtered = listing.model_copy(
        update={"orders": filter_orders(listing.orders, search=q, product=product, store=store)}
    )
    return filtered.to_json()


@router.get("/admin/orders/export")
def export_admin_orders(
    q: str | None = Query(None),
    product: str | None = Query(None),
    store: str | None = Query(None),
    session: Session = Depends(get_session),
    fetcher_factory: Callable = Depends(get_fetcher_factory),
    app_config: Config = Depends(get_config),
) -> Response:
    listing = _admin_orders(session, fetcher_factory, app_config).list_orders()
    orders = filter_orders(listing.orders, search=q, product=product, store=store)
    return _csv_response(admin_orders_csv(orders), "admin_orders.csv")


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _authentication_required(request: Request, exc: Exception) -> JSONResponse:
    return _error(status.HTTP_401_UNAUTHORIZED, str(exc))


async def _owner_not_found(request: Request, exc: Exception) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, str(exc))


async def _storage_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch supplier orders")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    app_config: Config = config,
    session_factory: sessionmaker[Session] | None = None,
    http_client: httpx.Client | None = None,
) -> FastAPI:
    """Build the API.

    ``session_factory`` and ``http_client`` default to ones built from
    ``app_config``; a client created here is closed on shutdown.
    """
    if session_factory is None:
        engine = make_engine(app_config.DATABASE_URL)
        init_db(engine)
        session_factory = make_session_factory(engine)

    owns_client = http_client is None
    client = http_client or httpx.Client(timeout=app_config.HTTP_TIMEOUT_SECONDS)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Supplier orders API started")
        yield
        if owns_client:
            client.close()

    app = FastAPI(title="Supplier Orders API", version="1.0.0", lifespan=lifespan)
    app.state.config = app_config
    app.state.session_factory = session_factory
    app.state.http_client = client

    app.add_exception_handler(AuthenticationRequired, _authentication_required)
    app.add_exception_handler(OwnerNotFound, _owner_not_found)
    app.add_exception_handler(StorageError, _storage_error)

    app.include_router(router)
    return app
