"""
Common utility functions used across routes.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from progress_engine.errors import ProgressError

ERROR_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "conflict": status.HTTP_409_CONFLICT,
    "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """
    Authenticated user id, as forwarded by the gateway in X-User-Id.
    Authentication itself happens upstream.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user id")
    return x_user_id.strip()


def status_for_error(exc: ProgressError) -> int:
    return ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
