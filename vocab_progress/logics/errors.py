"""
学习进度核心的异常类型

所有异常都原样向调用方传播，由调用方（服务层）决定事务回滚与响应。
"""


class ProgressError(Exception):
    """学习进度异常基类"""

    code = "PROGRESS_ERROR"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidInput(ProgressError):
    """输入不合法（如记忆等级越界、事件时间早于最近一次学习时间）"""

    code = "INVALID_INPUT"


class UpstreamUnavailable(ProgressError):
    """持久化层读写失败"""

    code = "UPSTREAM_UNAVAILABLE"


class ConcurrentUpdate(UpstreamUnavailable):
    """条件写入失败：记录已被其他请求修改"""

    code = "CONCURRENT_UPDATE"


class InvariantViolation(ProgressError):
    """读取到的记录违反不变量，拒绝继续处理"""

    code = "INVARIANT_VIOLATION"
