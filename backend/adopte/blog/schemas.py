"""Blog request schemas."""

from pydantic import BaseModel, Field

from .models import BlogPostStatus


class BlogPostCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=280)
    excerpt: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    image: str | None = Field(None, max_length=500)
    category_id: str = Field(..., alias="categoryId", min_length=1)
    author: str = Field(..., min_length=1, max_length=255)
    read_time_minutes: int = Field(5, alias="readTimeMinutes", ge=1, le=240)
    status: BlogPostStatus = BlogPostStatus.DRAFT
    featured: bool = False
    meta_title: str | None = Field(None, alias="metaTitle", max_length=255)
    meta_description: str | None = Field(None, alias="metaDescription")

    model_config = {"populate_by_name": True}


class BlogPostUpdateRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, min_length=1, max_length=280)
    excerpt: str | None = Field(None, min_length=1)
    content: str | None = Field(None, min_length=1)
    image: str | None = Field(None, max_length=500)
    category_id: str | None = Field(None, alias="categoryId")
    author: str | None = Field(None, min_length=1, max_length=255)
    read_time_minutes: int | None = Field(None, alias="readTimeMinutes", ge=1, le=240)
    status: BlogPostStatus | None = None
    featured: bool | None = None
    meta_title: str | None = Field(None, alias="metaTitle", max_length=255)
    meta_description: str | None = Field(None, alias="metaDescription")

    model_config = {"populate_by_name": True}


class BlogCategoryRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(None, max_length=120)
    description: str | None = None
    icon: str | None = Field(None, max_length=50)
    color: str | None = Field(None, max_length=30)


class BlogCategoryUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    slug: str | None = Field(None, min_length=1, max_length=120)
    description: str | None = None
    icon: str | None = Field(None, max_length=50)
    color: str | None = Field(None, max_length=30)


class SlugRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
