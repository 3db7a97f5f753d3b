from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
import logging

from vocab_progress.config.settings import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # SQLite连接会被FastAPI线程池中的多个线程使用
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_recycle": 3600}


# 创建数据库引擎
engine = create_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,  # 在DEBUG模式下输出SQL语句
    **_engine_options(settings.DATABASE_URL),
)

# 创建SessionLocal类
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"数据库会话错误: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def check_db_connection() -> bool:
    """检查数据库连接是否正常"""
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"数据库连接检查失败: {e}")
        return False

def init_db():
    """初始化数据库表"""
    try:
        from vocab_progress.models.base import Base
        from vocab_progress.models.progress import UserProgress
        from vocab_progress.models.streak import UserStreak
        from vocab_progress.models.activity import Activity
        from vocab_progress.models.achievement import UserAchievement
        from vocab_progress.models.notification import Notification

        # 创建所有表
        Base.metadata.create_all(bind=engine)
        logger.info("数据库表初始化完成")

    except Exception as e:
        logger.error(f"数据库初始化失败: {e}")
        raise
