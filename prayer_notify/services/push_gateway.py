from functools import lru_cache
from typing import Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, messaging
from starlette.concurrency import run_in_threadpool

from prayer_notify.config.settings import settings
from prayer_notify.schemas.prayer_schemas import PushPayload
from prayer_notify.utils.errors import PushDeliveryError
from prayer_notify.utils.logging import get_logger

logger = get_logger()

# FCM rejects multicast batches above this size
MULTICAST_BATCH_SIZE = 500


class PushGateway:
    """Sends pushes through Firebase Cloud Messaging"""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self._app = app

    @property
    def app(self) -> firebase_admin.App:
        if self._app is None:
            self._app = _get_firebase_app()
        return self._app

    async def send(self, payload: PushPayload) -> str:
        """
        Send one push to one device.

        Returns:
            str: The FCM message ID

        Raises:
            PushDeliveryError: If FCM rejects the message or the call fails
        """
        message = messaging.Message(
            token=payload.push_address,
            notification=messaging.Notification(
                title=payload.title, body=payload.body
            ),
            data=payload.routing_data or {},
        )

        try:
            # The Admin SDK is blocking
            message_id = await run_in_threadpool(messaging.send, message, app=self.app)
        except Exception as e:
            logger.error(f"Failed to send push notification: {str(e)}")
            raise PushDeliveryError(f"Failed: {str(e)}") from e

        logger.info(f"Push notification sent: {message_id}")
        return message_id

    async def send_multicast(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Optional[Dict[str, str]] = None,
    ) -> Dict[str, int]:
        """Send the same push to many devices, batching to FCM's limit."""
        success_count = 0
        failure_count = 0

        for start in range(0, len(tokens), MULTICAST_BATCH_SIZE):
            batch = tokens[start : start + MULTICAST_BATCH_SIZE]
            message = messaging.MulticastMessage(
                tokens=batch,
                notification=messaging.Notification(title=title, body=body),
                data=data or {},
            )

            try:
                response = await run_in_threadpool(
                    messaging.send_each_for_multicast, message, app=self.app
                )
            except Exception as e:
                logger.error(f"Multicast batch of {len(batch)} failed: {str(e)}")
                failure_count += len(batch)
                continue

            success_count += response.success_count
            failure_count += response.failure_count

        return {"success_count": success_count, "failure_count": failure_count}


def _get_firebase_app() -> firebase_admin.App:
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if settings.FIREBASE_CREDENTIALS_PATH:
        credential = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
    else:
        credential = credentials.ApplicationDefault()

    logger.info("Initializing Firebase app")
    return firebase_admin.initialize_app(credential)


@lru_cache
def get_push_gateway() -> PushGateway:
    """Dependency function returning the shared PushGateway"""
    return PushGateway()
