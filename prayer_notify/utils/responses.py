import uuid
from typing import Any, Dict, List, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from prayer_notify.schemas.response_schemas import ApiResponse, ResponseStatus


def _build(
    request: Request,
    *,
    success: bool,
    message: str,
    status_code: int,
    data: Any = None,
    meta: Optional[Dict[str, Any]] = None,
    errors: Optional[List[Dict[str, Any]]] = None,
) -> JSONResponse:
    envelope = ApiResponse(
        success=success,
        status=ResponseStatus.SUCCESS if success else ResponseStatus.ERROR,
        message=message,
        data=data,
        meta=meta or None,
        errors=errors,
        path=request.url.path,
        request_id=getattr(request.state, "request_id", None) or str(uuid.uuid4()),
    )
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(by_alias=True, exclude_none=True),
    )


class ResponseBuilder:
    """Renders every API reply in the ApiResponse envelope"""

    @staticmethod
    def success(
        request: Request,
        data: Any = None,
        message: str = "Request successful",
        meta: Optional[Dict[str, Any]] = None,
        status_code: int = status.HTTP_200_OK,
    ) -> JSONResponse:
        return _build(
            request,
            success=True,
            message=message,
            status_code=status_code,
            data=data,
            meta=meta,
        )

    @staticmethod
    def error(
        request: Request,
        message: str = "An error occurred",
        errors: Optional[List[Dict[str, Any]]] = None,
        error_code: Optional[str] = None,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        data: Any = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> JSONResponse:
        """The error code travels in ``meta.error_code``."""
        error_meta = dict(meta or {})
        if error_code:
            error_meta["error_code"] = error_code

        return _build(
            request,
            success=False,
            message=message,
            status_code=status_code,
            data=data,
            meta=error_meta,
            errors=errors,
        )
