"""
Screenshot capture for browser sessions.
"""

import base64
from datetime import datetime, timezone
from typing import Any

from browserdeck.context import ToolContext
from browserdeck.exceptions import BrowserSessionError
from browserdeck.logger import get_logger

logger = get_logger(__name__)


def screenshot_name(name: str | None = None) -> str:
    stamp = datetime.now(timezone.utc).isoformat().replace(":", "-")
    return f"screenshot-{name}-{stamp}" if name else f"screenshot-{stamp}"


async def take_screenshot(
    context: ToolContext, name: str | None = None
) -> list[dict[str, Any]]:
    """
    Capture the active page and store it as a session artifact.

    Returns:
        Content items: a text line naming the screenshot and the PNG image.

    Raises:
        BrowserSessionError: If no page is available or capture failed.
    """
    session_id = context.current_session_id
    page = await context.get_active_page()
    if page is None:
        raise BrowserSessionError("No active page available", session_id=session_id)

    try:
        png = await page.screenshot(full_page=False)
    except Exception as e:
        logger.error(f"Screenshot failed for session {session_id}: {e}")
        raise BrowserSessionError(
            f"Failed to take screenshot: {e}", session_id=session_id
        ) from e

    data = base64.b64encode(png).decode("ascii")
    shot_name = screenshot_name(name)
    context.manager.artifacts.register(session_id, shot_name, data)

    return [
        {"type": "text", "text": f"Screenshot taken with name: {shot_name}"},
        {"type": "image", "data": data, "mimeType": "image/png"},
    ]


LARGE_SCREENSHOT_MB = 5


async def capture_cdp_screenshot(
    page, format: str = "png", quality: int = 90, full_page: bool = True
) -> str:
    """Capture a page through a dedicated CDP session. Returns base64 data."""
    client = await page.context.new_cdp_session(page)
    params: dict[str, Any] = {"format": format, "captureBeyondViewport": full_page}
    if format == "jpeg":
        params["quality"] = quality

    try:
        result = await client.send("Page.captureScreenshot", params)
        return result["data"]
    except Exception as e:
        raise BrowserSessionError(f"CDP screenshot capture failed: {e}") from e
    finally:
        try:
            await client.detach()
        except Exception as e:
            logger.warning(f"Failed to detach CDP session: {e}")


async def take_session_screenshot(
    context: ToolContext,
    session_id: str | None = None,
    name: str | None = None,
    format: str = "png",
    quality: int = 90,
    full_page: bool = True,
) -> list[dict[str, Any]]:
    """
    Capture a screenshot from a specific session without creating one.

    The artifact is registered under the session's Browserbase id, and the
    active session is left unchanged.

    Args:
        session_id: Session to capture; defaults to the active session.
        format: ``"png"`` or ``"jpeg"``.
        quality: JPEG quality (0-100). Ignored for PNG.
        full_page: Capture the full scrollable page instead of the viewport.

    Raises:
        BrowserSessionError: If the session is unknown, has no open page,
            or capture failed.
    """
    if format not in ("png", "jpeg"):
        raise BrowserSessionError(f"Unsupported screenshot format: {format}")
    if not 0 <= quality <= 100:
        raise BrowserSessionError(f"JPEG quality must be 0-100, got {quality}")

    manager = context.manager
    previous_id = manager.get_active_session_id()
    target_id = session_id or previous_id
    logger.info(f"Capturing screenshot from session: {target_id}")

    try:
        record = await manager.get_session(
            target_id, context.config, create_if_missing=False
        )
        if previous_id != target_id:
            manager.set_active_session_id(previous_id)

        if record is None:
            raise BrowserSessionError(
                f"Session '{target_id}' not found or is not active. "
                f"Please create the session first.",
                session_id=target_id,
            )

        page = record.page
        if page is None or page.is_closed():
            raise BrowserSessionError(
                f"Session '{target_id}' has no active page or the page is closed.",
                session_id=target_id,
            )

        data = await capture_cdp_screenshot(page, format, quality, full_page)
    except BrowserSessionError as e:
        logger.error(f"Failed to capture screenshot: {e}")
        raise BrowserSessionError(
            f"Failed to capture screenshot: {e}", session_id=target_id
        ) from e

    label = f"session-{session_id[:8]}" if session_id else "current"
    prefix = f"{name}-" if name else ""
    extension = "jpg" if format == "jpeg" else "png"
    stamp = datetime.now(timezone.utc).isoformat().replace(":", "-")
    shot_name = f"screenshot-{prefix}{label}-{stamp}.{extension}"
    mime_type = f"image/{format}"

    manager.artifacts.register(
        record.external_id or target_id, shot_name, data, mime_type
    )
    logger.info(f"Screenshot captured successfully: {shot_name}")

    size_kb = round(len(data) * 0.75 / 1024)
    if size_kb / 1024 > LARGE_SCREENSHOT_MB:
        logger.warning(
            f"Large screenshot ({size_kb / 1024:.1f}MB). Consider viewport-only "
            f"mode, JPEG format or a lower quality."
        )

    return [
        {
            "type": "text",
            "text": (
                f"Screenshot captured from session '{target_id}'\n"
                f"Name: {shot_name}\n"
                f"Format: {format.upper()}\n"
                f"Full Page: {'Yes' if full_page else 'No (viewport only)'}\n"
                f"Size: {size_kb}KB (estimated)"
            ),
        },
        {"type": "image", "data": data, "mimeType": mime_type},
    ]
