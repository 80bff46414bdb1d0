"""
FastAPI Application Entry Point

TapTab Menu Builder - multi-tenant digital menus.
Runs on in-memory services in development and on Postgres, Redis and
Stripe in staging/production.

Endpoints:
    - /api/tables/{table}: Generic table API used by the editor data layer
    - /api/rpc/*: Batch reordering and the full-menu aggregate
    - /api/restaurants/*: Creation, publishing, short links, QR codes, spreadsheets
    - /api/storage/{bucket}: Image uploads
    - /api/links/resolve: Short link resolution (JSON)
    - /api/subscription, /api/billing/checkout, /webhook/stripe: Premium billing
    - /menu/{slug}, /m/{hash}/{menu_id}, /{slug}: Public menu pages
    - /health: System health check
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Query, Request, Header, UploadFile, File, Form
from fastapi.responses import JSONResponse, HTMLResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from fastapi.middleware.cors import CORSMiddleware

from taptab.core.config import get_settings, setup_logging
from taptab.database import init_db
from taptab.schemas import (
    RestaurantCreate,
    ReorderRequest,
    CheckoutRequest,
    CheckoutResponse,
    LinkResponse,
    ResolvedLinkResponse,
    ImportResponse,
    UploadResponse,
    SubscriptionStatusResponse,
    ErrorResponse,
    HealthResponse,
    sanitize_row,
)
from taptab.services.backend import get_menu_backend
from taptab.services.backend.base import (
    BaseMenuBackend,
    BackendError,
    RecordNotFound,
    UniqueViolation,
    UnknownTable,
    Row,
    check_table,
)
from taptab.services.billing import BaseBillingService, get_billing_service
from taptab.services.full_menu import FullMenuLoader, get_full_menu_loader
from taptab.services.menu_cache import RedisMenuStore
from taptab.services.menu_filter import FilterSelection, BADGE_LABELS
from taptab.services.public_menu import MenuStatus, clean_slug, load_public_menu
from taptab.services.qr import make_qr_png
from taptab.services.restaurants import PARENT_OF, create_restaurant, resolve_restaurant_id
from taptab.services.short_links import (
    LinkStatus,
    ensure_menu_link,
    is_valid_link,
    resolve_short_link,
    sanitize_link_parts,
    short_path,
)
from taptab.services.spreadsheet import SpreadsheetError, import_rows, read_rows, to_excel_bytes
from taptab.services.storage import StorageError, get_image_storage
from taptab.services.subscriptions import (
    PREMIUM_BENEFITS,
    apply_subscription_event,
    get_subscription_status,
    has_premium,
)
from taptab.tasks import export_menu_to_excel

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

STATUS_PAGES = {
    MenuStatus.NOT_FOUND: (404, "Menu Not Found", "The menu you're looking for doesn't exist or has been removed."),
    MenuStatus.UNPUBLISHED: (403, "Menu Not Available", "This menu hasn't been published yet. Check back soon!"),
    MenuStatus.ERROR: (503, "Unable to Load Menu", "We couldn't load this menu right now. Please try again in a moment."),
}


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    backend = get_menu_backend()
    if backend.provider_name == "sql":
        await init_db(backend.engine)
    logger.info(f"Menu Backend: {backend.provider_name}")
    logger.info(f"Billing Service: {get_billing_service().provider_name}")

    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")

    logger.info("Application ready")

    yield

    logger.info("Shutting down...")
    await get_full_menu_loader().wait_for_refreshes()
    await backend.close()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Multi-tenant restaurant menu builder with themed public menus and short links.",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Path(settings.upload_directory).mkdir(parents=True, exist_ok=True)
app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_backend() -> BaseMenuBackend:
    return get_menu_backend()


def get_loader() -> FullMenuLoader:
    return get_full_menu_loader()


def get_billing() -> BaseBillingService:
    return get_billing_service()


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def _parse_scalar(value: str) -> Any:
    if value == "true":
        return True
    if value == "false":
        return False
    return value


def parse_query_filters(
    params: list[tuple[str, str]],
) -> tuple[dict[str, Any], dict[str, list], Optional[str]]:
    """
    Decode ``col=eq.value``, ``col=in.(a,b)``, ``col=is.null`` and ``order``.

    Raises:
        HTTPException: 400 on an unsupported operator
    """
    filters: dict[str, Any] = {}
    in_filters: dict[str, list] = {}
    order_by = None
    for key, value in params:
        if key == "order":
            order_by = value
        elif value == "is.null":
            filters[key] = None
        elif value.startswith("eq."):
            filters[key] = _parse_scalar(value[3:])
        elif value.startswith("in.(") and value.endswith(")"):
            in_filters[key] = [v for v in value[4:-1].split(",") if v]
        else:
            raise HTTPException(status_code=400, detail=f"Unsupported filter for '{key}': {value}")
    return filters, in_filters, order_by


async def owning_restaurant(backend: BaseMenuBackend, table: str, row: Row) -> Optional[str]:
    """Restaurant a written row belongs to, if any."""
    if table == "restaurants":
        return row.get("id")
    if table in PARENT_OF and row.get("id"):
        return await resolve_restaurant_id(backend, table, row["id"])
    return None


async def invalidate_menu(loader: FullMenuLoader, restaurant_id: Optional[str]) -> None:
    if restaurant_id:
        await loader.invalidate(restaurant_id)


async def require_premium(backend: BaseMenuBackend, restaurant: Row) -> None:
    """
    Raises:
        HTTPException: 402 when the paywall is on and the owner is not premium
    """
    if not get_settings().paywall_enabled:
        return
    subscription = None
    if restaurant.get("owner_id"):
        subscription = await backend.select_one("subscriptions", {"user_id": restaurant["owner_id"]})
    if not has_premium(subscription):
        raise HTTPException(
            status_code=402,
            detail={"message": "Premium subscription required", "benefits": PREMIUM_BENEFITS},
        )


def public_url(path: str) -> str:
    return f"{get_settings().public_site_url.rstrip('/')}{path}"


def render_status(request: Request, status: MenuStatus) -> HTMLResponse:
    status_code, title, message = STATUS_PAGES[status]
    return templates.TemplateResponse(
        request,
        "menu_status.html",
        {"title": title, "message": message, "app_name": settings.app_name},
        status_code=status_code,
    )


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    backend: BaseMenuBackend = Depends(get_backend),
    loader: FullMenuLoader = Depends(get_loader),
    billing: BaseBillingService = Depends(get_billing),
) -> HealthResponse:
    """Verify all system components are operational."""
    backend_status = "healthy" if await backend.health_check() else "unhealthy"

    cache_status = "healthy"
    if isinstance(loader.store, RedisMenuStore) and not await loader.store.ping():
        cache_status = "unhealthy"

    billing_status = "healthy" if await billing.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [backend_status, cache_status, billing_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        backend=backend_status,
        menu_cache=cache_status,
        billing_service=billing_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# TABLE API
# =============================================================================

@app.get("/api/tables/{table}", tags=["Tables"])
async def list_rows(
    table: str,
    request: Request,
    backend: BaseMenuBackend = Depends(get_backend),
) -> list[dict[str, Any]]:
    check_table(table)
    filters, in_filters, order_by = parse_query_filters(request.query_params.multi_items())
    return await backend.select(table, filters, in_filters, order_by)


@app.post("/api/tables/{table}", status_code=201, tags=["Tables"])
async def insert_row(
    table: str,
    row: dict[str, Any],
    backend: BaseMenuBackend = Depends(get_backend),
    loader: FullMenuLoader = Depends(get_loader),
) -> dict[str, Any]:
    created = await backend.insert(table, sanitize_row(row))
    await invalidate_menu(loader, await owning_restaurant(backend, table, created))
    return created


@app.post("/api/tables/{table}/upsert", tags=["Tables"])
async def upsert_row(
    table: str,
    row: dict[str, Any],
    on_conflict: str = Query(...),
    backend: BaseMenuBackend = Depends(get_backend),
    loader: FullMenuLoader = Depends(get_loader),
) -> dict[str, Any]:
    written = await backend.upsert(table, sanitize_row(row), on_conflict=on_conflict)
    await invalidate_menu(loader, await owning_restaurant(backend, table, written))
    return written


@app.get("/api/tables/{table}/{record_id}", tags=["Tables"])
async def get_row(
    table: str,
    record_id: str,
    backend: BaseMenuBackend = Depends(get_backend),
) -> dict[str, Any]:
    return await backend.get(table, record_id)


@app.patch("/api/tables/{table}/{record_id}", tags=["Tables"])
async def update_row(
    table: str,
    record_id: str,
    updates: dict[str, Any],
    backend: BaseMenuBackend = Depends(get_backend),
    loader: FullMenuLoader = Depends(get_loader),
) -> dict[str, Any]:
    updates.pop("id", None)
    updated = await backend.update(table, record_id, sanitize_row(updates))
    await invalidate_menu(loader, await owning_restaurant(backend, table, updated))
    return updated


@app.delete("/api/tables/{table}/{record_id}", status_code=204, tags=["Tables"])
async def delete_row(
    table: str,
    record_id: str,
    backend: BaseMenuBackend = Depends(get_backend),
    loader: FullMenuLoader = Depends(get_loader),
) -> Response:
    check_table(table)
    # Resolve before the row and its parents chain disappear
    restaurant_id = await owning_restaurant(backend, table, {"id": record_id})
    await backend.delete(table, record_id)
    await invalidate_menu(loader, restaurant_id)
    return Response(status_code=204)


# =============================================================================
# RPC ENDPOINTS
# =============================================================================

@app.post("/api/rpc/batch_update_order_indexes", tags=["RPC"])
async def batch_update_order_indexes(
    request_data: ReorderRequest,
    backend: BaseMenuBackend = Depends(get_backend),
    loader: FullMenuLoader = Depends(get_loader),
) -> dict[str, Any]:
    updates = [u.model_dump() for u in request_data.updates]
    await backend.batch_update_order_indexes(request_data.table, updates)
    restaurant_id = await owning_restaurant(backend, request_data.table, {"id": updates[0]["id"]})
    await invalidate_menu(loader, restaurant_id)
    return {"success": True, "updated": len(updates)}


@app.get("/api/rpc/get_restaurant_full_menu/{restaurant_id}", tags=["RPC"])
async def get_restaurant_full_menu(
    restaurant_id: str,
    backend: BaseMenuBackend = Depends(get_backend),
) -> dict[str, Any]:
    menu = await backend.get_restaurant_full_menu(restaurant_id)
    if menu is None:
        raise HTTPException(status_code=404, detail=f"Restaurant {restaurant_id} not found")
    return menu


# =============================================================================
# RESTAURANT ENDPOINTS
# =============================================================================

@app.post(
    "/api/restaurants",
    status_code=201,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    tags=["Restaurants"],
    summary="Create Restaurant",
)
async def create_restaurant_endpoint(
    data: RestaurantCreate,
    backend: BaseMenuBackend = Depends(get_backend),
) -> dict[str, Any]:
    """Create a restaurant with a starter "Menu" category and "Main" subcategory."""
    extra = {}
    if data.tagline:
        extra["tagline"] = data.tagline
    if data.hero_image_url:
        extra["hero_image_url"] = data.hero_image_url
    try:
        return await create_restaurant(
            backend, data.name, owner_id=data.owner_id, slug=data.slug, **extra
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/api/restaurants/{restaurant_id}/publish", tags=["Restaurants"])
async def publish_restaurant(
    restaurant_id: str,
    published: bool = Query(True),
    backend: BaseMenuBackend = Depends(get_backend),
    loader: FullMenuLoader = Depends(get_loader),
) -> dict[str, Any]:
    restaurant = await backend.get("restaurants", restaurant_id)
    if published:
        await require_premium(backend, restaurant)
    updated = await backend.update("restaurants", restaurant_id, {"published": published})
    await loader.invalidate(restaurant_id)
    logger.info(f"Restaurant {updated['slug']} {'published' if published else 'unpublished'}")
    return updated


@app.post("/api/restaurants/{restaurant_id}/link", response_model=LinkResponse, tags=["Restaurants"])
async def ensure_link(
    restaurant_id: str,
    backend: BaseMenuBackend = Depends(get_backend),
) -> LinkResponse:
    """Return the restaurant's short link, creating it on first use."""
    restaurant = await backend.get("restaurants", restaurant_id)
    await require_premium(backend, restaurant)
    link = await ensure_menu_link(backend, restaurant_id)
    path = short_path(link)
    return LinkResponse(
        restaurant_hash=link["restaurant_hash"],
        menu_id=link["menu_id"],
        short_path=path,
        short_url=public_url(path),
    )


@app.get("/api/restaurants/{restaurant_id}/qrcode", tags=["Restaurants"])
async def restaurant_qrcode(
    restaurant_id: str,
    backend: BaseMenuBackend = Depends(get_backend),
) -> Response:
    """PNG QR code of the restaurant's short link."""
    restaurant = await backend.get("restaurants", restaurant_id)
    await require_premium(backend, restaurant)
    link = await ensure_menu_link(backend, restaurant_id)
    png = make_qr_png(public_url(short_path(link)))
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="{restaurant["slug"]}-qr.png"'},
    )


@app.post(
    "/api/restaurants/{restaurant_id}/import",
    response_model=ImportResponse,
    responses={400: {"model": ErrorResponse}},
    tags=["Restaurants"],
)
async def import_spreadsheet(
    restaurant_id: str,
    file: UploadFile = File(...),
    subcategory_id: Optional[str] = Form(None),
    backend: BaseMenuBackend = Depends(get_backend),
    loader: FullMenuLoader = Depends(get_loader),
) -> ImportResponse:
    """Import dishes from an .xlsx or .csv file."""
    await backend.get("restaurants", restaurant_id)
    data = await file.read()
    try:
        rows = read_rows(data, file.filename)
        result = await import_rows(backend, restaurant_id, rows, subcategory_id)
    except SpreadsheetError as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        await loader.invalidate(restaurant_id)

    return ImportResponse(
        success=True,
        imported=result.imported,
        created_categories=result.created_categories,
        created_subcategories=result.created_subcategories,
    )


@app.get("/api/restaurants/{restaurant_id}/export", tags=["Restaurants"])
async def export_spreadsheet(
    restaurant_id: str,
    background: bool = Query(False),
    backend: BaseMenuBackend = Depends(get_backend),
) -> Response:
    """Download the menu as .xlsx, or queue a file export with ``background=true``."""
    if background:
        await backend.get("restaurants", restaurant_id)
        task = export_menu_to_excel.delay(restaurant_id)
        return JSONResponse(status_code=202, content={"queued": True, "task_id": task.id})

    menu = await backend.get_restaurant_full_menu(restaurant_id)
    if menu is None:
        raise HTTPException(status_code=404, detail=f"Restaurant {restaurant_id} not found")
    return Response(
        content=to_excel_bytes(menu),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{menu["restaurant"]["slug"]}-menu.xlsx"'},
    )


# =============================================================================
# STORAGE
# =============================================================================

@app.post(
    "/api/storage/{bucket}",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}},
    tags=["Storage"],
)
async def upload_image(
    bucket: str,
    file: UploadFile = File(...),
    folder: Optional[str] = Form(None),
) -> UploadResponse:
    data = await file.read()
    try:
        stored = get_image_storage().save(bucket, data, file.content_type, folder=folder)
    except StorageError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return UploadResponse(
        url=stored.url,
        width=stored.width,
        height=stored.height,
        size_bytes=stored.size_bytes,
    )


# =============================================================================
# SHORT LINKS
# =============================================================================

@app.get(
    "/api/links/resolve",
    response_model=ResolvedLinkResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    tags=["Links"],
)
async def resolve_link(
    restaurant_hash: Optional[str] = Query(None, alias="hash"),
    menu_id: Optional[str] = Query(None, alias="id"),
    backend: BaseMenuBackend = Depends(get_backend),
) -> ResolvedLinkResponse:
    if not restaurant_hash or not menu_id:
        raise HTTPException(status_code=400, detail="Missing hash or id")
    if not is_valid_link(*sanitize_link_parts(restaurant_hash, menu_id)):
        raise HTTPException(status_code=400, detail="Invalid short link")

    resolution = await resolve_short_link(backend, restaurant_hash, menu_id)
    if resolution.status == LinkStatus.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Menu not found")
    if resolution.status == LinkStatus.UNPUBLISHED:
        raise HTTPException(status_code=403, detail="Menu not published")
    return ResolvedLinkResponse(
        slug=resolution.slug,
        canonical_url=public_url(f"/menu/{resolution.slug}"),
    )


# =============================================================================
# SUBSCRIPTIONS & BILLING
# =============================================================================

@app.get(
    "/api/subscription/{user_id}",
    response_model=SubscriptionStatusResponse,
    tags=["Billing"],
)
async def subscription_status(
    user_id: str,
    backend: BaseMenuBackend = Depends(get_backend),
) -> SubscriptionStatusResponse:
    return SubscriptionStatusResponse(**await get_subscription_status(backend, user_id))


@app.post(
    "/api/billing/checkout",
    response_model=CheckoutResponse,
    responses={502: {"model": ErrorResponse}},
    tags=["Billing"],
)
async def create_checkout(
    data: CheckoutRequest,
    billing: BaseBillingService = Depends(get_billing),
) -> CheckoutResponse:
    result = await billing.create_checkout_session(
        user_id=data.user_id,
        success_url=data.success_url or public_url("/?checkout=success"),
        cancel_url=data.cancel_url or public_url("/?checkout=canceled"),
        customer_email=data.customer_email,
    )
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error_message or "Checkout failed")
    return CheckoutResponse(session_id=result.session_id, url=result.url)


@app.post("/webhook/stripe", tags=["Billing"])
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    backend: BaseMenuBackend = Depends(get_backend),
    billing: BaseBillingService = Depends(get_billing),
) -> dict[str, Any]:
    """Apply subscription lifecycle events."""
    payload = await request.body()
    event = await billing.verify_webhook(payload, stripe_signature or "")
    if event is None:
        raise HTTPException(status_code=400, detail="Invalid webhook")

    logger.info(f"Billing webhook received: {event.get('type')}")
    row = await apply_subscription_event(backend, event)
    return {"received": True, "applied": row is not None}


# =============================================================================
# PUBLIC MENU PAGES
# =============================================================================

@app.get("/menu/{slug}", response_class=HTMLResponse, tags=["Public"])
async def public_menu_page(
    request: Request,
    slug: str,
    exclude: list[str] = Query([]),
    diet: list[str] = Query([]),
    spicy: Optional[str] = Query(None),
    badge: list[str] = Query([]),
    backend: BaseMenuBackend = Depends(get_backend),
    loader: FullMenuLoader = Depends(get_loader),
) -> HTMLResponse:
    # Checkbox forms repeat the parameter; links use comma-separated values
    selection = FilterSelection.from_query(
        exclude=",".join(exclude), diet=",".join(diet), spicy=spicy, badge=",".join(badge)
    )
    menu = await load_public_menu(backend, loader, clean_slug(slug), selection)
    if menu.status != MenuStatus.FOUND:
        return render_status(request, menu.status)

    return templates.TemplateResponse(
        request,
        "menu.html",
        {
            "menu": menu,
            "restaurant": menu.restaurant,
            "theme": menu.theme,
            "badge_labels": BADGE_LABELS,
            "app_name": settings.app_name,
        },
    )


@app.get("/m/{restaurant_hash}/{menu_id}", tags=["Public"])
async def short_link_page(
    request: Request,
    restaurant_hash: str,
    menu_id: str,
    backend: BaseMenuBackend = Depends(get_backend),
) -> Response:
    resolution = await resolve_short_link(backend, restaurant_hash, menu_id)
    if resolution.status == LinkStatus.NOT_FOUND:
        return render_status(request, MenuStatus.NOT_FOUND)
    if resolution.status == LinkStatus.UNPUBLISHED:
        return render_status(request, MenuStatus.UNPUBLISHED)
    return RedirectResponse(url=f"/menu/{resolution.slug}", status_code=302)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(UnknownTable)
async def unknown_table_handler(request: Request, exc: UnknownTable) -> JSONResponse:
    return JSONResponse(status_code=404, content={"success": False, "error": str(exc)})


@app.exception_handler(RecordNotFound)
async def record_not_found_handler(request: Request, exc: RecordNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"success": False, "error": str(exc)})


@app.exception_handler(UniqueViolation)
async def unique_violation_handler(request: Request, exc: UniqueViolation) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"success": False, "error": str(exc), "detail": {"columns": list(exc.columns)}},
    )


@app.exception_handler(BackendError)
async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    logger.error(f"Backend error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"success": False, "error": "Backend Error", "detail": str(exc), "transient": exc.transient},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> Response:
    """Catch-all exception handler: JSON for the API, a recovery page otherwise."""
    logger.exception(f"Unhandled exception: {exc}")

    if request.url.path.startswith(("/api", "/webhook", "/health")):
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal Server Error",
                "detail": str(exc) if settings.debug else "An unexpected error occurred",
            },
        )
    return templates.TemplateResponse(
        request,
        "error.html",
        {"app_name": settings.app_name, "detail": str(exc) if settings.debug else None},
        status_code=500,
    )


# =============================================================================
# LEGACY SLUG REDIRECT
# =============================================================================

# Registered last so it never shadows the routes above
@app.get("/{legacy_path:path}", include_in_schema=False)
async def legacy_slug_redirect(legacy_path: str) -> RedirectResponse:
    slug = clean_slug(legacy_path)
    return RedirectResponse(url=f"/menu/{slug}" if slug else "/", status_code=301)
