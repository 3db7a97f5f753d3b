import logging

from fastapi import HTTPException, status

from vocab_progress.logics.errors import (
    ConcurrentUpdate, InvalidInput, InvariantViolation, ProgressError, UpstreamUnavailable,
)

logger = logging.getLogger(__name__)

# 注意顺序：子类在前
_STATUS_CODES = [
    (InvalidInput, status.HTTP_400_BAD_REQUEST),
    (ConcurrentUpdate, status.HTTP_409_CONFLICT),
    (UpstreamUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InvariantViolation, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def to_http_exception(error: ProgressError) -> HTTPException:
    """把核心异常转换为HTTP异常"""
    for error_class, status_code in _STATUS_CODES:
        if isinstance(error, error_class):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(error, InvariantViolation):
        logger.error(f"数据不变量被破坏: {error.message} {error.details}")

    return HTTPException(status_code=status_code, detail=error.to_dict())
