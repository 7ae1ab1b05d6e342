"""
FastAPI 应用入口
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from loguru import logger
from sqlalchemy import text

from backend.config import settings
from backend.api import api_v1_router
from backend.db import base
from backend.db.init_db import initialize
from backend.exceptions import StoryCoinError
from backend.logger_config import setup_logging
from backend.models import ErrorResponse


async def check_and_init_database():
    """检查并初始化数据库"""
    if not settings.DATABASE_ENABLED:
        logger.info("📦 Database disabled, skipping initialization")
        return

    try:
        logger.info("🔍 Checking database connection...")
        await initialize()
        logger.success("✅ Database connection pool initialized")
    except Exception as e:
        logger.error(f"❌ Database initialization failed: {e}")
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时执行
    logger.info(f"🚀 Starting {settings.APP_NAME}...")
    setup_logging()

    await check_and_init_database()

    logger.success("🎉 Application started successfully!")

    yield

    # 关闭时执行
    logger.info("👋 Shutting down...")

    if settings.DATABASE_ENABLED:
        try:
            await base.close_db()
            logger.info("✅ Database connections closed")
        except Exception as e:
            logger.error(f"❌ Database close failed: {e}")

    logger.success("✅ Application shutdown complete")


# 创建 FastAPI 应用
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册 API 路由
app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root():
    """健康检查"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "ok"
    }


@app.get("/health")
async def health_check():
    """健康检查（详细）"""
    health_status = {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "services": {}
    }

    # 检查数据库
    if settings.DATABASE_ENABLED:
        try:
            if base.async_engine:
                async with base.async_engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                health_status["services"]["database"] = "healthy"
            else:
                health_status["services"]["database"] = "not_initialized"
        except Exception as e:
            logger.warning(f"⚠️  Database health check failed: {e}")
            health_status["services"]["database"] = "unhealthy"
            health_status["status"] = "degraded"
    else:
        health_status["services"]["database"] = "disabled"

    return health_status


# 业务异常处理
@app.exception_handler(StoryCoinError)
async def story_coin_exception_handler(request: Request, exc: StoryCoinError):
    """领域异常 -> 结构化错误响应"""
    if exc.http_status >= 500:
        logger.error(f"❌ {exc.code} on {request.url.path}: {exc.message} {exc.detail}")
    else:
        logger.info(f"{exc.code} on {request.url.path}: {exc.message}")

    body = ErrorResponse(code=exc.code, message=exc.message, error=exc.to_error())
    return JSONResponse(status_code=exc.http_status, content=body.model_dump())


# 全局异常处理
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """全局异常处理"""
    logger.error(f"Unhandled exception: {type(exc).__name__}: {str(exc)}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "code": "INTERNAL_ERROR",
            "message": "Internal server error",
            "error": {
                "type": type(exc).__name__,
                "message": str(exc)
            }
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "backend.app:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
