import functools
import logging
from typing import Optional, TypeVar, Generic

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.orm import Session

from vocab_progress.logics.errors import ConcurrentUpdate, InvariantViolation, UpstreamUnavailable

logger = logging.getLogger(__name__)

T = TypeVar('T')

# PostgreSQL unique_violation / MySQL ER_DUP_ENTRY
_UNIQUE_PGCODE = "23505"
_UNIQUE_MYSQL_ERRNO = 1062


def is_unique_violation(error: IntegrityError) -> bool:
    """判断是否为唯一约束冲突（并发写入同一条记录）"""
    orig = error.orig
    if getattr(orig, "pgcode", None) == _UNIQUE_PGCODE:
        return True
    args = getattr(orig, "args", ())
    if args and args[0] == _UNIQUE_MYSQL_ERRNO:
        return True
    # SQLite: "UNIQUE constraint failed: ..."
    return "unique constraint" in str(orig).lower()


def db_errors(func):
    """把SQLAlchemy异常转换为核心异常类型"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except StaleDataError as e:
            logger.warning(f"{func.__qualname__} 写入冲突: {e}")
            raise ConcurrentUpdate("记录已被其他请求修改", operation=func.__qualname__) from e
        except IntegrityError as e:
            if is_unique_violation(e):
                logger.warning(f"{func.__qualname__} 写入冲突: {e}")
                raise ConcurrentUpdate("记录已被其他请求写入", operation=func.__qualname__) from e
            logger.error(f"{func.__qualname__} 数据违反约束: {e}")
            raise InvariantViolation("写入的数据违反数据库约束", operation=func.__qualname__) from e
        except SQLAlchemyError as e:
            logger.error(f"{func.__qualname__} 数据库操作失败: {e}")
            raise UpstreamUnavailable("数据库不可用", operation=func.__qualname__) from e
    return wrapper


class BaseRepository(Generic[T]):
    """
    基础Repository类，提供通用的查询操作

    Repository只负责读写，不提交事务，事务边界由服务层控制。
    """

    def __init__(self, db: Session, model_class: T):
        self.db = db
        self.model_class = model_class

    @db_errors
    def add(self, instance: T) -> T:
        """添加记录并刷新到数据库（不提交）"""
        self.db.add(instance)
        self.db.flush()
        return instance

    @db_errors
    def get_first_by(self, **filters) -> Optional[T]:
        """根据条件获取第一条记录"""
        query = self.db.query(self.model_class)
        for attr, value in filters.items():
            if hasattr(self.model_class, attr):
                query = query.filter(getattr(self.model_class, attr) == value)
        return query.first()
