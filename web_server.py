"""
web_server.py — JSON HTTP API.

Runs as an aiohttp web server in the same asyncio event loop as the reminder
sweep. Handlers stay thin: they pull fields out of the request, call the
matching module and serialise the result. Errors are raised as the
exceptions from errors.py and turned into status codes by one middleware.

Endpoints:
  GET    /search?q=...       → ranked product list
  POST   /search-by-image    → same, for a multipart "image" upload
  GET    /wishlist?userId=   → wishlist with current trend
  POST   /wishlist/add       {userId, productId}
  DELETE /wishlist/remove    {userId, productId}
  GET    /cart?userId=       → cart with reminder prices
  POST   /cart/add           {userId, productId, reminderPrice?}
  DELETE /cart/remove        {userId, productId}
  POST   /register           {name, email, password}
  POST   /login              {email, password}
  GET    /health             → plain status + configured backends
"""
from __future__ import annotations

import json
import logging

from aiohttp import web

import accounts
import config
import image_analyzer
import notifications
import price_search
import shopping_lists
from errors import (
    AuthError,
    DuplicateEmailError,
    NoResultsError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_FOR = [
    (ValidationError,     400),
    (AuthError,           401),
    (NotFoundError,       404),
    (NoResultsError,      404),
    (DuplicateEmailError, 409),
]

_CORS_HEADERS = {
    "Access-Control-Allow-Origin":  "*",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


# ── Middleware ────────────────────────────────────────────────────────────────

@web.middleware
async def error_middleware(request: web.Request, handler):
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=_CORS_HEADERS)
    try:
        resp = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(_CORS_HEADERS)
        raise
    except Exception as exc:
        for exc_type, status in _STATUS_FOR:
            if isinstance(exc, exc_type):
                break
        else:
            logger.error("Unhandled error on %s %s: %s", request.method, request.path, exc, exc_info=True)
            status = 500
        message = str(exc) or "An error occurred."
        resp = web.json_response({"error": message}, status=status)
    resp.headers.update(_CORS_HEADERS)
    return resp


async def _json_body(request: web.Request) -> dict:
    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise ValidationError("Request body must be valid JSON.") from None
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object.")
    return body


def _products_response(products) -> web.Response:
    return web.json_response([p.to_dict() for p in products])


# ── Search ────────────────────────────────────────────────────────────────────

async def handle_search(request: web.Request) -> web.Response:
    query = request.query.get("q", "")
    logger.info("Received search request for: %s", query)
    products = await price_search.search_products(query)
    logger.info("Found %d products", len(products))
    return _products_response(products)


async def handle_search_by_image(request: web.Request) -> web.Response:
    """Multipart upload with the image in the "image" field."""
    form = await request.post()
    upload = form.get("image")
    if not isinstance(upload, web.FileField):
        raise ValidationError("No image file uploaded.")
    if not (upload.content_type or "").startswith("image/"):
        raise ValidationError("Only image files are allowed!")

    image_bytes = upload.file.read()
    if len(image_bytes) > config.MAX_UPLOAD_BYTES:
        raise ValidationError("Image is too large.")

    query = image_analyzer.resolve_query(image_bytes, upload.filename)
    products = await price_search.search_products(query)
    return _products_response(products)


# ── Wishlist ──────────────────────────────────────────────────────────────────

async def handle_wishlist_get(request: web.Request) -> web.Response:
    user_id = request.query.get("userId")
    if not user_id:
        raise ValidationError("User ID is required.")
    return web.json_response(await shopping_lists.get_wishlist(user_id))


async def handle_wishlist_add(request: web.Request) -> web.Response:
    body = await _json_body(request)
    added = await shopping_lists.add_to_wishlist(body.get("userId"), body.get("productId"))
    return web.json_response({"message": "Added to wishlist." if added else "Already in wishlist."})


async def handle_wishlist_remove(request: web.Request) -> web.Response:
    body = await _json_body(request)
    removed = await shopping_lists.remove_from_wishlist(body.get("userId"), body.get("productId"))
    return web.json_response({"message": "Removed from wishlist." if removed else "Not found in wishlist."})


# ── Cart ──────────────────────────────────────────────────────────────────────

async def handle_cart_get(request: web.Request) -> web.Response:
    user_id = request.query.get("userId")
    if not user_id:
        raise ValidationError("User ID is required.")
    return web.json_response(await shopping_lists.get_cart(user_id))


async def handle_cart_add(request: web.Request) -> web.Response:
    body = await _json_body(request)
    await shopping_lists.add_to_cart(
        body.get("userId"), body.get("productId"), body.get("reminderPrice"),
    )
    return web.json_response({"message": "Cart updated successfully."})


async def handle_cart_remove(request: web.Request) -> web.Response:
    body = await _json_body(request)
    removed = await shopping_lists.remove_from_cart(body.get("userId"), body.get("productId"))
    return web.json_response({"message": "Removed from cart." if removed else "Not found in cart."})


# ── Accounts ──────────────────────────────────────────────────────────────────

async def handle_register(request: web.Request) -> web.Response:
    body = await _json_body(request)
    name, email = body.get("name"), body.get("email")
    user_id = await accounts.create_account(name, email, body.get("password"))
    await notifications.send_welcome_email(email, name)
    return web.json_response({"message": "Registration successful!", "id": user_id})


async def handle_login(request: web.Request) -> web.Response:
    body = await _json_body(request)
    customer = await accounts.verify_credentials(body.get("email"), body.get("password"))
    return web.json_response({"id": customer.id, "name": customer.name, "email": customer.email})


async def handle_health(request: web.Request) -> web.Response:
    """Health check — returns 200 OK. Use with uptime monitors."""
    return web.json_response({"status": "ok", "backends": price_search.backend_names()})


# ── App factory ────────────────────────────────────────────────────────────────

def build_web_app() -> web.Application:
    # headroom over the image limit for the multipart envelope
    app = web.Application(
        middlewares=[error_middleware],
        client_max_size=config.MAX_UPLOAD_BYTES + 64 * 1024,
    )
    app.router.add_get("/health",            handle_health)
    app.router.add_get("/search",            handle_search)
    app.router.add_post("/search-by-image",  handle_search_by_image)
    app.router.add_get("/wishlist",          handle_wishlist_get)
    app.router.add_post("/wishlist/add",     handle_wishlist_add)
    app.router.add_delete("/wishlist/remove", handle_wishlist_remove)
    app.router.add_get("/cart",              handle_cart_get)
    app.router.add_post("/cart/add",         handle_cart_add)
    app.router.add_delete("/cart/remove",    handle_cart_remove)
    app.router.add_post("/register",         handle_register)
    app.router.add_post("/login",            handle_login)
    return app


async def start_web_server() -> web.AppRunner:
    """Start the web server. Returns runner so caller can shut it down cleanly."""
    app    = build_web_app()
    runner = web.AppRunner(app, access_log=logger)
    await runner.setup()
    site = web.TCPSite(runner, config.HTTP_HOST, config.HTTP_PORT)
    await site.start()
    logger.info("🛒 API listening on %s:%d", config.HTTP_HOST, config.HTTP_PORT)
    return runner
