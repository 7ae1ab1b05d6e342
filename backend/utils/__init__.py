"""
工具模块
"""

from .auth import create_access_token, decode_access_token
from .id_generator import (
    generate_ulid, generate_user_id, generate_story_id,
    generate_version_id, generate_node_id, generate_run_id
)

__all__ = [
    # 认证工具
    "create_access_token",
    "decode_access_token",

    # ID 生成器
    "generate_ulid",
    "generate_user_id",
    "generate_story_id",
    "generate_version_id",
    "generate_node_id",
    "generate_run_id",
]
