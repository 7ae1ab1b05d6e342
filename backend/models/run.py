"""
故事旅程相关数据模型
"""

from typing import Optional, List, Literal, Union
from pydantic import BaseModel, Field
from datetime import datetime


class NodeView(BaseModel):
    """节点内容"""
    id: str = Field(..., description="节点ID")
    title: Optional[str] = Field(None, description="章节标题")
    content: Optional[str] = Field(None, description="章节正文")
    step_no: int = Field(..., description="章节序号")
    is_start: bool = Field(False, description="是否起始节点")


class ChoiceView(BaseModel):
    """可选题材"""
    genre_key: str = Field(..., description="题材键")
    label: Optional[str] = Field(None, description="选项文案")
    to_node_id: str = Field(..., description="目标节点ID")
    avg_rating: Optional[float] = Field(None, description="目标节点平均评分")


class CurrentNode(BaseModel):
    """当前节点投影"""
    kind: Literal["node"] = "node"
    run_id: str = Field(..., description="旅程ID")
    story_id: str = Field(..., description="故事ID")
    node: NodeView
    choices: List[ChoiceView] = Field(default_factory=list)
    rating_submitted: bool = Field(False, description="当前节点是否已评分")
    is_completed: bool = Field(False, description="旅程是否已完成")


class ChapterLocked(BaseModel):
    """章节锁定信号（不是异常，前端展示为解锁引导）"""
    kind: Literal["locked"] = "locked"
    code: Literal["CHAPTER_LOCKED"] = "CHAPTER_LOCKED"
    run_id: str = Field(..., description="旅程ID")
    story_id: str = Field(..., description="故事ID")
    chapter_number: int = Field(..., description="被锁定的章节序号")
    required_coins: int = Field(..., description="解锁所需金币")
    available: int = Field(..., description="当前可用金币")


RunView = Union[CurrentNode, ChapterLocked]


class StartRunResult(BaseModel):
    """开始/继续旅程结果"""
    run_id: str
    resumed: bool


class RunListItem(BaseModel):
    """旅程列表项"""
    id: str
    story_id: str
    story_title: Optional[str] = None
    is_completed: bool
    started_at: datetime
    updated_at: datetime


class PickedStep(BaseModel):
    """已选择的章节"""
    step_no: int
    genre_key: str


class Journey(BaseModel):
    """旅程进度"""
    total_steps: int
    current_step: int
    picked: List[PickedStep] = Field(default_factory=list)
    is_completed: bool


class RunSummary(BaseModel):
    """旅程总结"""
    is_completed: bool
    total_steps: int
    final_journey_rating: Optional[float] = Field(None, description="各章节评分平均值")


class UnlockResult(BaseModel):
    """章节解锁结果"""
    unlocked: bool = True
    already_unlocked: bool = False
    spent: int = 0
    remaining_coins: Optional[int] = None
    story_id: Optional[str] = None
    chapter_number: int


class ReadingStateView(BaseModel):
    """节点阅读状态"""
    node_id: str
    page_index: int = 0
    bookmark_page_index: Optional[int] = None
    font_px: Optional[int] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChooseRequest(BaseModel):
    """选择题材请求"""
    genre_key: str = Field(..., min_length=1, description="题材键")


class RateRequest(BaseModel):
    """章节评分请求"""
    node_id: str = Field(..., description="节点ID")
    rating: int = Field(..., ge=1, le=5, description="评分（1-5）")


class UnlockRequest(BaseModel):
    """章节解锁请求"""
    chapter_number: int = Field(..., description="章节序号")


class ReadingStateRequest(BaseModel):
    """保存阅读状态请求"""
    node_id: str = Field(..., min_length=1, description="节点ID")
    page_index: int = Field(0, ge=0, description="当前页")
    bookmark_page_index: Optional[int] = Field(None, ge=0, description="书签页")
    font_px: Optional[int] = Field(None, gt=0, description="字号（像素）")


class FeedbackRequest(BaseModel):
    """旅程反馈请求"""
    rating: Optional[int] = Field(None, ge=1, le=5, description="整体评分（1-5）")
    feedback: Optional[str] = Field(None, description="反馈文本（超过 2000 字截断）")
