"""
Pydantic schemas for the self-help resource hub.

Resources are articles, videos, audio guides, PDFs and wellness games
curated by the admin.  Students browse them by category, language,
type and difficulty, or search them.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

ResourceType = Literal["article", "video", "game", "pdf", "audio"]
ResourceLanguage = Literal["en", "te", "hi", "ta"]
Difficulty = Literal["beginner", "intermediate", "advanced"]


class ResourceCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    content: Optional[str] = None
    type: ResourceType
    language: ResourceLanguage = "en"
    category: str = Field(..., min_length=2, max_length=50, examples=["anxiety"])
    difficulty: Optional[Difficulty] = None
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="Minutes")
    tags: List[str] = Field(default_factory=list)
    is_featured: bool = False
    featured_order: Optional[int] = None


class ResourceUpdate(BaseModel):
    """Fields an admin may change; omitted fields stay as they are."""

    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    content: Optional[str] = None
    type: Optional[ResourceType] = None
    language: Optional[ResourceLanguage] = None
    category: Optional[str] = Field(None, min_length=2, max_length=50)
    difficulty: Optional[Difficulty] = None
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    featured_order: Optional[int] = None


class ResourceRead(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    type: str
    language: str
    category: str
    difficulty: Optional[str] = None
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[int] = None
    tags: List[str] = []
    rating: float = 0
    view_count: int = 0
    is_active: bool = True
    is_featured: bool = False
    relevance: Optional[float] = Field(None, description="Only set on search results")
    created_at: Optional[str] = None


class ResourceList(BaseModel):
    resources: List[ResourceRead]
    total: int


class ResourceCategory(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    color: str
