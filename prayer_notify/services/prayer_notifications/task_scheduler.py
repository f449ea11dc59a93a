import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from google.api_core.exceptions import AlreadyExists
from google.cloud import tasks_v2
from google.protobuf import timestamp_pb2

from prayer_notify.config.settings import settings
from prayer_notify.schemas.prayer_schemas import PushPayload
from prayer_notify.utils.datetime_utils import to_utc
from prayer_notify.utils.logging import get_logger

logger = get_logger()


class SubmitOutcome(str, Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmitResult:
    outcome: SubmitOutcome
    task_name: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome != SubmitOutcome.FAILED


class CloudTasksScheduler:
    """
    Enqueue delayed push deliveries on a Cloud Tasks queue.

    The dedup key is used as the task ID, so the queue itself refuses a second
    task for the same logical alert. A refusal is reported as ALREADY_EXISTS,
    never as an error.
    """

    def __init__(
        self,
        client: Optional[tasks_v2.CloudTasksAsyncClient] = None,
        project: str = settings.GCP_PROJECT_ID,
        location: str = settings.CLOUD_TASKS_LOCATION,
        queue: str = settings.CLOUD_TASKS_QUEUE,
        dispatch_url: str = settings.DISPATCH_URL,
    ):
        self._client = client
        self.queue_path = tasks_v2.CloudTasksClient.queue_path(project, location, queue)
        self.dispatch_url = dispatch_url

    @property
    def client(self) -> tasks_v2.CloudTasksAsyncClient:
        if self._client is None:
            self._client = tasks_v2.CloudTasksAsyncClient()
        return self._client

    def task_name(self, key: str) -> str:
        return f"{self.queue_path}/tasks/{key}"

    def build_task(self, key: str, payload: PushPayload, fire_at: datetime) -> tasks_v2.Task:
        body = json.dumps(payload.model_dump(by_alias=True, exclude_none=True))
        return tasks_v2.Task(
            name=self.task_name(key),
            http_request=tasks_v2.HttpRequest(
                http_method=tasks_v2.HttpMethod.POST,
                url=self.dispatch_url,
                headers={"Content-Type": "application/json"},
                # Serialized as base64 on the wire by the client library
                body=body.encode("utf-8"),
            ),
            schedule_time=timestamp_pb2.Timestamp(
                seconds=int(to_utc(fire_at).timestamp())
            ),
        )

    async def submit(
        self, key: str, payload: PushPayload, fire_at: datetime
    ) -> SubmitResult:
        """Create the task; an existing task with the same name counts as success."""
        task_name = self.task_name(key)

        try:
            task = self.build_task(key, payload, fire_at)
            await self.client.create_task(parent=self.queue_path, task=task)
        except AlreadyExists:
            logger.info(f"Task already exists, skipping: {key}")
            return SubmitResult(SubmitOutcome.ALREADY_EXISTS, task_name)
        except Exception as e:
            logger.error(f"Error creating task {key}: {str(e)}")
            return SubmitResult(SubmitOutcome.FAILED, task_name, error=str(e))

        logger.info(f"Task scheduled: {key} at {to_utc(fire_at).isoformat()}")
        return SubmitResult(SubmitOutcome.CREATED, task_name)
