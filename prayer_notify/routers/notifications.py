from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, Request

from prayer_notify.schemas.prayer_schemas import PushPayload
from prayer_notify.services.push_gateway import PushGateway, get_push_gateway
from prayer_notify.utils.errors import PushValidationError
from prayer_notify.utils.logging import get_logger
from prayer_notify.utils.responses import ResponseBuilder

notifications_router = APIRouter()
logger = get_logger()

REQUIRED_FIELDS = ["pushAddress", "title", "body"]


async def _send_single_push(
    request: Request, payload: Optional[PushPayload], gateway: PushGateway
):
    missing = REQUIRED_FIELDS if payload is None else payload.missing_fields()
    if missing:
        raise PushValidationError(missing_fields=missing)

    # PushDeliveryError from the gateway becomes a 500
    message_id = await gateway.send(payload)

    return ResponseBuilder.success(
        request=request,
        data={"messageId": message_id},
        message="Sent",
    )


@notifications_router.post("/dispatch")
async def dispatch_notification(
    request: Request,
    gateway: Annotated[PushGateway, Depends(get_push_gateway)],
    payload: Annotated[Optional[PushPayload], Body()] = None,
):
    """
    Deliver a queued prayer alert.

    Cloud Tasks calls this at the task's schedule time with the job body built
    by the scheduler. No deduplication happens here; a retried task sends again.
    """
    return await _send_single_push(request, payload, gateway)


@notifications_router.post("/direct")
async def send_direct_notification(
    request: Request,
    gateway: Annotated[PushGateway, Depends(get_push_gateway)],
    payload: Annotated[Optional[PushPayload], Body()] = None,
):
    """Send an immediate one-off push, e.g. a follow or affiliation request alert."""
    return await _send_single_push(request, payload, gateway)
