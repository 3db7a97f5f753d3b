from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List

class Settings(BaseSettings):
    """应用配置"""

    # 应用配置
    APP_NAME: str = "词汇学习进度服务"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./vocab_progress.db"

    # 时区配置，用于计算"今天"和日期边界
    TIMEZONE: str = "UTC"

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
    LOG_DIR: str = "logs"

    # 复习配置
    DUE_REVIEW_LIMIT: int = 20

    # 练习配置
    PRACTICE_XP_CORRECT: int = 10
    PRACTICE_GAME_TYPE: str = "review"

    # 分页配置
    ACTIVITY_PAGE_SIZE: int = 20

    # 跨域配置
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

# 创建全局配置实例
settings = Settings()
