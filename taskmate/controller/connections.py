import asyncio
from urllib.parse import quote
from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from taskmate.config import (
    FRONTEND_URL,
    GMAIL_AUTH_CONFIG_ID,
    GCALENDAR_AUTH_CONFIG_ID,
    GOOGLEMEETINGS_AUTH_CONFIG_ID,
    CANVAS_AUTH_CONFIG_ID,
    CANVAS_API_KEY,
    CANVAS_BASE_URL,
    GMAIL_LINK_CALLBACK_URL,
    GCALENDAR_LINK_CALLBACK_URL,
    GOOGLEMEETINGS_LINK_CALLBACK_URL,
)
from taskmate.controller.auth import get_current_user
from taskmate.database import get_db
from taskmate.model.user import User
from taskmate.schemas.connection import CanvasStart, UnlinkRequest
from taskmate.service.composio_service import ComposioService, ComposioError, get_composio_service
from taskmate.service.connection_service import record_connection, user_connections, forget_connection
from taskmate.utils.cache import cache
from taskmate.utils.helpers import external_user_id, user_id_from_external
from taskmate.utils.pages import success_page, error_page
from taskmate.utils.response import success, fail
from taskmate.utils.logger import get_logger

logger = get_logger("connections")

router = APIRouter()

# toolkit slugs reported by Composio for each service
GMAIL_SLUGS = ("gmail",)
GCALENDAR_SLUGS = ("googlecalendar", "gcal")
GMEETINGS_SLUGS = ("googlemeetings", "gmeet", "googlemeet")
CANVAS_SLUGS = ("canvas",)

LINK_SERVICES = {
    "gmail": {
        "service_name": "gmail",
        "display_name": "Gmail",
        "auth_config_id": GMAIL_AUTH_CONFIG_ID,
        "callback_url": GMAIL_LINK_CALLBACK_URL,
    },
    "gcalendar": {
        "service_name": "googlecalendar",
        "display_name": "Google Calendar",
        "auth_config_id": GCALENDAR_AUTH_CONFIG_ID,
        "callback_url": GCALENDAR_LINK_CALLBACK_URL,
    },
    "gmeetings": {
        "service_name": "googlemeetings",
        "display_name": "Google Meetings",
        "auth_config_id": GOOGLEMEETINGS_AUTH_CONFIG_ID,
        "callback_url": GOOGLEMEETINGS_LINK_CALLBACK_URL,
    },
}


async def start_link(key: str, current_user: User, composio: ComposioService):
    service = LINK_SERVICES[key]
    if not service["auth_config_id"]:
        return fail(f"{service['display_name']} auth config ID not configured")

    external_id = external_user_id(current_user.user_id)
    callback_url = f"{service['callback_url']}?external_user_id={quote(external_id)}"
    try:
        loop = asyncio.get_event_loop()
        url = await loop.run_in_executor(None, composio.link, external_id, service["auth_config_id"], callback_url)
    except ComposioError as e:
        logger.error(f"Failed to start {key} link for {external_id}: {e}")
        return fail(str(e))

    if not url:
        return fail("Missing linkUrl")
    return success({"url": url})


@router.post("/gmail/start")
async def start_gmail(
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
):
    return await start_link("gmail", current_user, composio)


@router.post("/gcalendar/start")
async def start_gcalendar(
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
):
    return await start_link("gcalendar", current_user, composio)


@router.post("/gmeetings/start")
async def start_gmeetings(
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
):
    return await start_link("gmeetings", current_user, composio)


@router.post("/canvas/start")
async def start_canvas(
    request: Optional[CanvasStart] = None,
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
    db: Session = Depends(get_db),
):
    """
    Create a Canvas API-key connection; the key and base URL default to the server's own.
    """
    request = request or CanvasStart()
    external_id = external_user_id(current_user.user_id)
    api_key = request.api_key or CANVAS_API_KEY
    base_url = request.base_url or CANVAS_BASE_URL
    if not api_key or not base_url:
        return fail("Canvas API key and base URL are required")

    try:
        loop = asyncio.get_event_loop()
        connection = await loop.run_in_executor(
            None, composio.initiate_api_key, external_id, CANVAS_AUTH_CONFIG_ID, api_key, base_url
        )
    except ComposioError as e:
        logger.error(f"Failed to start Canvas connection for {external_id}: {e}")
        return fail(str(e))

    if connection["id"]:
        try:
            record_connection(db, current_user.user_id, connection["id"], "canvas", external_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error storing Canvas connection: {e}")

    return success(connection)


async def finish_link(
    key: str,
    error: Optional[str],
    status: Optional[str],
    connected_account_id: Optional[str],
    external_user_id_param: Optional[str],
    db: Session,
    composio: ComposioService,
):
    """
    Render the page shown when Composio redirects back after an OAuth link.
    """
    service = LINK_SERVICES[key]
    try:
        if error:
            return error_page("Connection Failed", error)

        if status == "success" and connected_account_id:
            try:
                loop = asyncio.get_event_loop()
                account = await loop.run_in_executor(None, composio.get_account, connected_account_id)
                external_id = external_user_id_param or account["external_user_id"]
                user_id = user_id_from_external(external_id)
                if user_id is not None:
                    record_connection(db, user_id, connected_account_id, service["service_name"], external_id)
            except (ComposioError, SQLAlchemyError) as e:
                db.rollback()
                logger.error(f"Error in {service['display_name']} callback: {e}")

            return success_page(
                f"{service['display_name']} Connected",
                f"{service['display_name']} Connected Successfully!",
            )

        if not connected_account_id:
            return error_page("Connection Error", "Missing account ID. You can close this window.", 400, close_hint=False)

        return success_page("Connection Successful", "Connection Successful!")
    except Exception as e:
        logger.error(f"{service['display_name']} callback failed: {e}", exc_info=True)
        return error_page("Error", str(e), 500)


@router.get("/gmail/callback")
async def gmail_callback(
    error: Optional[str] = None,
    status: Optional[str] = None,
    connected_account_id: Optional[str] = None,
    external_user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    composio: ComposioService = Depends(get_composio_service),
):
    return await finish_link("gmail", error, status, connected_account_id, external_user_id, db, composio)


@router.get("/gcalendar/callback")
async def gcalendar_callback(
    error: Optional[str] = None,
    status: Optional[str] = None,
    connected_account_id: Optional[str] = None,
    external_user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    composio: ComposioService = Depends(get_composio_service),
):
    return await finish_link("gcalendar", error, status, connected_account_id, external_user_id, db, composio)


@router.get("/gmeetings/callback")
async def gmeetings_callback(
    error: Optional[str] = None,
    status: Optional[str] = None,
    connected_account_id: Optional[str] = None,
    external_user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    composio: ComposioService = Depends(get_composio_service),
):
    return await finish_link("gmeetings", error, status, connected_account_id, external_user_id, db, composio)


@router.get("/canvas/callback")
async def canvas_callback(
    error: Optional[str] = None,
    status: Optional[str] = None,
    connected_account_id: Optional[str] = None,
    external_user_id: Optional[str] = None,
    db: Session = Depends(get_db),
    composio: ComposioService = Depends(get_composio_service),
):
    if error:
        return fail(f"Authentication failed: {error}")

    redirect_url = f"{FRONTEND_URL}/login?auth=canvas_success"

    if status == "success" and connected_account_id:
        try:
            loop = asyncio.get_event_loop()
            account = await loop.run_in_executor(None, composio.get_account, connected_account_id)
            external_id = account["external_user_id"] or external_user_id
            user_id = user_id_from_external(external_id)
            if user_id is not None:
                record_connection(db, user_id, connected_account_id, "canvas", external_id)
        except (ComposioError, SQLAlchemyError) as e:
            db.rollback()
            logger.error(f"Error storing Canvas connection: {e}")
        return RedirectResponse(f"{redirect_url}&account_id={quote(connected_account_id)}")

    if not connected_account_id:
        return fail("Missing account ID")

    return RedirectResponse(redirect_url)


def _matching(accounts: list[dict], slugs: tuple) -> list[dict]:
    return [account for account in accounts if account["toolkit"] in slugs]


@router.get("/status")
async def connection_status(
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
    db: Session = Depends(get_db),
):
    """
    Which services the user has linked, reconciled against Composio.

    Active accounts count when they are recorded for the user or carry the
    user's external id. A matching account is recorded now when the user has
    no stored row for its service yet.
    """
    if not composio.configured:
        return fail("Composio API key not configured. Please set COMPOSIO_API_KEY in your .env file.")

    try:
        external_id = external_user_id(current_user.user_id)
        rows = user_connections(db, current_user.user_id)
        recorded = {row.composio_account_id for row in rows}
        recorded_services = {row.service_name for row in rows}

        loop = asyncio.get_event_loop()
        accounts = await loop.run_in_executor(None, composio.list_accounts)

        connected = [
            account for account in accounts
            if account["status"] == "ACTIVE"
            and (account["id"] in recorded or account["external_user_id"] == external_id)
        ]

        # a service that already has a stored row keeps it
        for account in connected:
            service_name = account["toolkit"] or "unknown"
            if account["id"] in recorded or service_name in recorded_services:
                continue
            try:
                record_connection(db, current_user.user_id, account["id"], service_name, external_id)
                recorded_services.add(service_name)
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Error auto-storing connection {account['id']}: {e}")

        gmail = _matching(connected, GMAIL_SLUGS)
        gcalendar = _matching(connected, GCALENDAR_SLUGS)
        gmeetings = _matching(connected, GMEETINGS_SLUGS)
        canvas = _matching(connected, CANVAS_SLUGS)

        # Composio can lag behind a fresh Canvas connection
        if not canvas:
            stored = user_connections(db, current_user.user_id, "canvas")
            if stored:
                canvas = [{"id": stored[0].composio_account_id}]

        return success({
            "gmail": bool(gmail),
            "gmailConnections": gmail,
            "googlecalendar": bool(gcalendar),
            "googlecalendarConnections": gcalendar,
            "googlemeetings": bool(gmeetings),
            "googlemeetingsConnections": gmeetings,
            "canvas": bool(canvas),
            "canvasConnections": canvas,
            "totalConnections": len(connected),
        })
    except ComposioError as e:
        logger.error(f"Error checking auth status: {e}")
        return fail(str(e))


@router.post("/gmail/unlink")
async def unlink_gmail(
    request: UnlinkRequest,
    current_user: User = Depends(get_current_user),
    composio: ComposioService = Depends(get_composio_service),
    db: Session = Depends(get_db),
):
    if not request.connected_account_id:
        return fail("connectedAccountId is required")

    try:
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, composio.delete_account, request.connected_account_id)
    except ComposioError as e:
        logger.error(f"Failed to unlink {request.connected_account_id}: {e}")
        return fail(str(e))

    forget_connection(db, current_user.user_id, request.connected_account_id)
    cache.clear(pattern=f"tools:{external_user_id(current_user.user_id)}:")
    return success(msg="Gmail account unlinked successfully")
