#!/usr/bin/env python3
"""
词汇学习进度服务 - FastAPI 主应用入口
Description: 提供作答记录、复习调度、连续天数与成就查询的REST API
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vocab_progress.config.settings import settings
from vocab_progress.utils.logger import setup_logging
from vocab_progress.utils.database import init_db, check_db_connection

# 设置日志
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理
    - 启动时初始化数据库
    """
    logger.info("初始化词汇学习进度服务...")

    try:
        init_db()
        logger.info("数据库初始化完成")
    except Exception as e:
        logger.error(f"应用启动失败: {e}")
        raise

    logger.info("词汇学习进度服务启动完成")

    yield  # 应用运行期间

    logger.info("词汇学习进度服务已关闭")

def create_application() -> FastAPI:
    """创建并配置FastAPI应用实例"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="词汇复习调度、连续学习天数与成就系统",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # 配置CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 全局异常处理
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.error(f"未处理的异常: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "内部服务器错误"}
        )

    return app

# 创建应用实例
app = create_application()

# 导入并包含路由
from vocab_progress.api.routes import progress, activities, achievements

# 注册API路由
app.include_router(progress.router, prefix="/api/v1/progress", tags=["学习进度"])
app.include_router(activities.router, prefix="/api/v1/activities", tags=["学习活动"])
app.include_router(achievements.router, prefix="/api/v1/achievements", tags=["成就"])


@app.get("/health")
def health_check():
    """健康检查"""
    db_ok = check_db_connection()
    return JSONResponse(
        status_code=200 if db_ok else 503,
        content={
            "status": "ok" if db_ok else "degraded",
            "database": db_ok,
            "version": settings.APP_VERSION,
        }
    )
