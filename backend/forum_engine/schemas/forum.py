"""포럼 구조/스레드/게시글 요청·응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime


class CategoryBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(CategoryBase):
    pass


class CategoryOut(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    position: int

    model_config = {"from_attributes": True}


class BoardBase(BaseModel):
    category_id: int
    title: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None


class BoardCreate(BoardBase):
    pass


class BoardUpdate(BoardBase):
    pass


class BoardOut(BaseModel):
    id: int
    category_id: int
    title: str
    slug: str
    description: Optional[str] = None
    position: int
    thread_count: Optional[int] = None
    post_count: Optional[int] = None

    model_config = {"from_attributes": True}


class CategoryTreeOut(CategoryOut):
    boards: List[BoardOut] = []


class ReorderRequest(BaseModel):
    direction: Literal["up", "down"]


class ThreadCreate(BaseModel):
    title: str = Field(..., max_length=255)
    body: str


class ThreadTitleUpdate(BaseModel):
    title: str = Field(..., max_length=255)


class ThreadOut(BaseModel):
    id: int
    board_id: int
    author_id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    is_locked: bool
    is_pinned: bool
    is_published: bool
    views: int
    last_posted_at: Optional[datetime] = None
    last_post_user_id: Optional[int] = None
    created_at: datetime
    reply_count: Optional[int] = None
    has_unread: Optional[bool] = None

    model_config = {"from_attributes": True}


class ThreadPage(BaseModel):
    data: List[ThreadOut]
    total: int
    current_page: int
    per_page: int
    last_page: int


class PostCreate(BaseModel):
    body: str = Field(..., max_length=5000)


class PostUpdate(BaseModel):
    body: str = Field(..., max_length=5000)


class PostOut(BaseModel):
    id: int
    thread_id: int
    author_id: int
    body: str
    created_at: datetime
    edited_at: Optional[datetime] = None
    number: Optional[int] = None
    page: Optional[int] = None

    model_config = {"from_attributes": True}


class PostPage(BaseModel):
    data: List[PostOut]
    total: int
    current_page: int
    per_page: int
    last_page: int


class ThreadDetailOut(BaseModel):
    thread: ThreadOut
    posts: PostPage
    permissions: Dict[str, Any]
