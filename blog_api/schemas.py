from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from blog_api.models import CommentStatus, Role


# --- Accounts ---

class SignupRequest(BaseModel):
    username: str = Field(min_length=3, max_length=25)
    email: str = Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=6, max_length=128)


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: Role
    email_verified: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


class MessageResponse(BaseModel):
    message: str


# --- Post ---

class PostCreate(BaseModel):
    title: str = Field(min_length=5, max_length=100)
    body: str = Field(min_length=1)


class PostUpdate(BaseModel):
    title: str | None = Field(None, min_length=5, max_length=100)
    body: str | None = Field(None, min_length=1)


class AuthorSummary(BaseModel):
    id: int
    username: str


class PostResponse(BaseModel):
    id: int
    title: str
    body: str
    user_id: int
    created_at: datetime
    author: AuthorSummary | None = None


class PostDetail(PostResponse):
    likes_count: int = 0


# --- Comment ---

class CommentCreate(BaseModel):
    body: str = Field(min_length=1, max_length=500)


class CommentResponse(BaseModel):
    id: int
    post_id: int
    user_id: int
    body: str
    status: CommentStatus
    created_at: datetime
    author: AuthorSummary | None = None


# --- Like ---

class LikeResponse(BaseModel):
    post_id: int
    liked: bool
    likes_count: int
    already_liked: bool | None = None
    removed: bool | None = None


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list
    total: int
    page: int
    page_size: int
    pages: int


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_users: int
    total_posts: int
    total_comments: int
    pending_comments: int
    total_likes: int
    cache_info: dict = {}
