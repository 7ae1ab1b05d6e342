"""
ID 生成器

提供各种实体的唯一 ID 生成功能
"""

import ulid


def generate_ulid() -> str:
    """
    生成 ULID（Universally Unique Lexicographically Sortable Identifier）

    特点：
    - 128-bit 兼容性
    - 按时间排序
    - 规范化的字符串表示（26个字符）

    Returns:
        ULID 字符串
    """
    return str(ulid.new())


def generate_user_id() -> str:
    """
    生成用户 ID

    格式：user_<ulid>
    """
    return f"user_{generate_ulid()}"


def generate_story_id() -> str:
    """
    生成故事 ID

    格式：story_<ulid>
    """
    return f"story_{generate_ulid()}"


def generate_version_id() -> str:
    """
    生成故事版本 ID

    格式：v_<ulid>
    """
    return f"v_{generate_ulid()}"


def generate_node_id() -> str:
    """
    生成故事节点 ID

    格式：node_<ulid>
    """
    return f"node_{generate_ulid()}"


def generate_run_id() -> str:
    """
    生成旅程 ID

    格式：run_<ulid>
    示例：run_01ARZ3NDEKTSV4RRFFQ69G5FAV
    """
    return f"run_{generate_ulid()}"
