"""
应用全局配置

从 config.yaml 加载配置，支持环境变量覆盖
"""

import yaml
from pathlib import Path
from typing import Optional, List, Dict
import os


def _load_config() -> dict:
    """读取 config.yaml（可通过 CONFIG_PATH 指定其他文件）"""
    default_path = Path(__file__).parent.parent.parent / "config.yaml"
    config_path = Path(os.getenv("CONFIG_PATH", str(default_path)))
    if not config_path.exists():
        return {}
    with open(config_path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


class Settings:
    """应用全局配置（从 config.yaml 加载）"""

    def __init__(self):
        self._config = _load_config()

    def _section(self, name: str) -> dict:
        return self._config.get(name) or {}

    # ==================== 应用基础配置 ====================
    @property
    def APP_NAME(self) -> str:
        return os.getenv("APP_NAME", self._section("app").get("name", "StoryCoin API"))

    @property
    def APP_VERSION(self) -> str:
        return os.getenv("APP_VERSION", self._section("app").get("version", "0.1.0"))

    @property
    def API_V1_PREFIX(self) -> str:
        return os.getenv("API_V1_PREFIX", self._section("app").get("api_prefix", "/api/v1"))

    @property
    def DEBUG(self) -> bool:
        debug_str = os.getenv("DEBUG", str(self._section("app").get("debug", False)))
        return debug_str.lower() in ("true", "1", "yes")

    # ==================== 数据库配置 ====================
    @property
    def DATABASE_ENABLED(self) -> bool:
        enabled_str = os.getenv("DATABASE_ENABLED", str(self._section("database").get("enabled", True)))
        return enabled_str.lower() in ("true", "1", "yes")

    @property
    def DATABASE_URL(self) -> Optional[str]:
        if not self.DATABASE_ENABLED:
            return None
        return os.getenv("DATABASE_URL", self._section("database").get("url"))

    @property
    def DATABASE_POOL_SIZE(self) -> int:
        return int(os.getenv("DATABASE_POOL_SIZE", self._section("database").get("pool_size", 10)))

    @property
    def DATABASE_MAX_OVERFLOW(self) -> int:
        return int(os.getenv("DATABASE_MAX_OVERFLOW", self._section("database").get("max_overflow", 20)))

    # ==================== JWT 认证配置 ====================
    @property
    def JWT_SECRET_KEY(self) -> str:
        return os.getenv("JWT_SECRET_KEY", self._section("jwt").get("secret_key", "change-me"))

    @property
    def JWT_ALGORITHM(self) -> str:
        return os.getenv("JWT_ALGORITHM", self._section("jwt").get("algorithm", "HS256"))

    @property
    def JWT_EXPIRE_MINUTES(self) -> int:
        return int(os.getenv("JWT_EXPIRE_MINUTES", self._section("jwt").get("expire_minutes", 10080)))

    # ==================== CORS 配置 ====================
    @property
    def CORS_ORIGINS(self) -> List[str]:
        env_origins = os.getenv("CORS_ORIGINS")
        if env_origins:
            return [origin.strip() for origin in env_origins.split(",")]
        return self._section("cors").get("origins", [])

    # ==================== 业务规则配置 ====================
    @property
    def COIN_HISTORY_LIMIT(self) -> int:
        return int(os.getenv("COIN_HISTORY_LIMIT", self._section("business").get("history_limit", 200)))

    # ==================== 日志配置 ====================
    @property
    def LOG_DIR(self) -> str:
        return os.getenv("LOG_DIR", self._section("logging").get("dir", "logs"))

    @property
    def LOG_LEVEL(self) -> str:
        return os.getenv("LOG_LEVEL", self._section("logging").get("level", "INFO"))

    # ==================== 章节解锁配置 ====================
    @property
    def FREE_PLAN(self) -> str:
        return os.getenv("FREE_PLAN", self._section("unlock").get("free_plan", "free"))

    @property
    def FREE_CHAPTERS(self) -> int:
        return int(os.getenv("FREE_CHAPTERS", self._section("unlock").get("free_chapters", 2)))

    @property
    def TOTAL_STEPS(self) -> int:
        return int(os.getenv("TOTAL_STEPS", self._section("unlock").get("total_steps", 5)))

    @property
    def CHAPTER_COSTS(self) -> Dict[int, int]:
        costs = self._section("unlock").get("chapter_costs") or {3: 100, 4: 100, 5: 100}
        return {int(chapter): int(cost) for chapter, cost in costs.items()}


# 全局配置实例
settings = Settings()
