from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from prayer_notify.config.settings import settings
from prayer_notify.schemas.camel_base_model import CamelCaseBaseModel


class ResponseStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class ApiResponse(CamelCaseBaseModel):
    """Envelope shared by every JSON reply of the API"""

    success: bool
    status: ResponseStatus
    message: str
    data: Optional[Any] = None
    # Free-form keys such as error_code and missing_fields, not camel-cased
    meta: Optional[Dict[str, Any]] = None
    errors: Optional[List[Dict[str, Any]]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str
    path: Optional[str] = None
    version: str = settings.VERSION
