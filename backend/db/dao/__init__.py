"""
数据访问对象（DAO）层

封装数据库操作，提供给服务层使用
"""

from .user_dao import UserDAO
from .story_dao import StoryDAO
from .run_dao import RunDAO
from .rating_dao import RatingDAO
from .unlock_dao import UnlockDAO
from .ledger_dao import LedgerDAO
from .reward_rule_dao import RewardRuleDAO

__all__ = [
    "UserDAO",
    "StoryDAO",
    "RunDAO",
    "RatingDAO",
    "UnlockDAO",
    "LedgerDAO",
    "RewardRuleDAO",
]
