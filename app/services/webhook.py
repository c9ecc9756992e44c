import httpx
import asyncio
import logging
from typing import Optional

from app.core.config import settings
from app.core.enums import NotificationEvent
from app.core.metrics import webhook_deliveries

logger = logging.getLogger(__name__)


async def send_webhook(
    event: NotificationEvent,
    data: dict,
    retries: int | None = None,
    url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> bool:

    url = url or settings.WEBHOOK_URL
    if not url:
        logger.debug(f"No webhook configured, skipping {event}")
        return False

    if retries is None:
        retries = settings.WEBHOOK_RETRIES

    payload = {"event": str(event), "data": data}
    backoff = 1.0

    for attempt in range(1, retries + 1):
        try:
            async with httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT, transport=transport) as client:
                response = await client.post(url, json=payload)

                if 200 <= response.status_code < 300:
                    webhook_deliveries.labels(status="success").inc()
                    logger.info(f"Webhook {event} delivered")
                    return True
                else:
                    webhook_deliveries.labels(status="failed").inc()
                    logger.warning(
                        f"Webhook {event} failed (attempt {attempt}/{retries}): "
                        f"Status {response.status_code}"
                    )
        except httpx.TimeoutException:
            webhook_deliveries.labels(status="timeout").inc()
            logger.warning(f"Webhook {event} timeout (attempt {attempt}/{retries})")
        except httpx.HTTPError as e:
            webhook_deliveries.labels(status="error").inc()
            logger.warning(f"Webhook {event} delivery error (attempt {attempt}/{retries}): {e}")

        if attempt < retries:
            await asyncio.sleep(backoff)
            backoff *= 2.0

    logger.error(f"Webhook {event} delivery failed after {retries} attempts")
    return False
