"""Blog service: public reading and admin management of posts and categories."""

import logging
import math
import re
import unicodedata
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..errors import ConflictError, NotFoundError, ValidationError
from .models import BlogCategory, BlogPost, BlogPostStatus
from .schemas import BlogCategoryRequest, BlogCategoryUpdateRequest, BlogPostCreateRequest, BlogPostUpdateRequest

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
RELATED_LIMIT = 3
_NULLABLE_POST_FIELDS = frozenset({"image", "meta_title", "meta_description"})

_NON_SLUG = re.compile(r"[^a-z0-9\s-]")
_SPACES = re.compile(r"\s+")
_DASHES = re.compile(r"-+")


def _to_uuid(value: str) -> UUID | None:
    """Convert string to UUID, returning None on failure."""
    if not value:
        return None
    try:
        return UUID(str(value))
    except (ValueError, AttributeError):
        return None


def slugify(text: str) -> str:
    """Lowercase ASCII slug: accents dropped, spaces to dashes."""
    ascii_text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    slug = _NON_SLUG.sub("", ascii_text.lower()).strip()
    slug = _SPACES.sub("-", slug)
    return _DASHES.sub("-", slug).strip("-")


def _slug_taken(db: Session, slug: str, exclude_id: UUID | None = None) -> bool:
    query = db.query(BlogPost.id).filter(BlogPost.slug == slug)
    if exclude_id is not None:
        query = query.filter(BlogPost.id != exclude_id)
    return query.first() is not None


def generate_slug(db: Session, title: str) -> str:
    """Slug for *title*, suffixed with -1, -2, ... until unused."""
    base = slugify(title)
    if not base:
        raise ValidationError("body/title must contain at least one letter or digit")
    slug, counter = base, 1
    while _slug_taken(db, slug):
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def _paginate(page: int, limit: int) -> tuple[int, int]:
    return max(page, 1), min(max(limit, 1), MAX_PAGE_SIZE)


def _pagination(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total, "totalPages": math.ceil(total / limit) if total else 0}


def serialize_post(post: BlogPost) -> dict:
    return {
        "id": str(post.id),
        "title": post.title,
        "slug": post.slug,
        "excerpt": post.excerpt,
        "content": post.content,
        "image": post.image,
        "categoryId": str(post.category_id),
        "category": post.category.name if post.category else None,
        "author": post.author,
        "readTimeMinutes": post.read_time_minutes,
        "readTime": f"{post.read_time_minutes} min",
        "status": str(post.status),
        "published": post.status == BlogPostStatus.PUBLISHED,
        "featured": post.featured,
        "metaTitle": post.meta_title,
        "metaDescription": post.meta_description,
        "publishedAt": post.published_at.isoformat() if post.published_at else None,
        "createdAt": post.created_at.isoformat() if post.created_at else None,
        "updatedAt": post.updated_at.isoformat() if post.updated_at else None,
    }


def serialize_category(category: BlogCategory, post_count: int | None = None) -> dict:
    data = {
        "id": str(category.id),
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "icon": category.icon,
        "color": category.color,
    }
    if post_count is not None:
        data["postCount"] = post_count
    return data


# -- Public ------------------------------------------------------------------


def _filtered_posts(db: Session, search: str | None, category: str | None, featured: bool | None, search_fields):
    query = db.query(BlogPost).options(joinedload(BlogPost.category))
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(*(field.ilike(pattern) for field in search_fields)))
    if category:
        query = query.join(BlogCategory, BlogPost.category_id == BlogCategory.id).filter(
            or_(func.lower(BlogCategory.name) == category.lower(), BlogCategory.slug == category.lower())
        )
    if featured is not None:
        query = query.filter(BlogPost.featured.is_(featured))
    return query


def list_published_posts(
    db: Session,
    search: str | None = None,
    category: str | None = None,
    featured: bool | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> dict:
    """Published posts, featured first then newest."""
    page, limit = _paginate(page, limit)
    query = _filtered_posts(
        db, search, category, featured, (BlogPost.title, BlogPost.excerpt, BlogPost.content)
    ).filter(BlogPost.status == BlogPostStatus.PUBLISHED)
    total = query.count()
    posts = (
        query.order_by(BlogPost.featured.desc(), BlogPost.published_at.desc(), BlogPost.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"posts": [serialize_post(p) for p in posts], "pagination": _pagination(page, limit, total)}


def get_published_post(db: Session, slug: str) -> BlogPost:
    post = (
        db.query(BlogPost)
        .options(joinedload(BlogPost.category))
        .filter(BlogPost.slug == slug, BlogPost.status == BlogPostStatus.PUBLISHED)
        .first()
    )
    if post is None:
        raise NotFoundError("Blog post not found")
    return post


def list_related_posts(db: Session, slug: str, limit: int = RELATED_LIMIT) -> list[BlogPost]:
    """Other published posts of the same category, newest first."""
    post = get_published_post(db, slug)
    return (
        db.query(BlogPost)
        .options(joinedload(BlogPost.category))
        .filter(
            BlogPost.status == BlogPostStatus.PUBLISHED,
            BlogPost.category_id == post.category_id,
            BlogPost.id != post.id,
        )
        .order_by(BlogPost.published_at.desc())
        .limit(limit)
        .all()
    )


def list_categories_with_counts(db: Session) -> list[dict]:
    published = func.count(BlogPost.id)
    rows = (
        db.query(BlogCategory, published)
        .outerjoin(
            BlogPost,
            (BlogPost.category_id == BlogCategory.id) & (BlogPost.status == BlogPostStatus.PUBLISHED),
        )
        .group_by(BlogCategory.id)
        .order_by(BlogCategory.name.asc())
        .all()
    )
    return [serialize_category(category, count) for category, count in rows]


# -- Admin: posts ------------------------------------------------------------


def list_all_posts(
    db: Session,
    search: str | None = None,
    category: str | None = None,
    status: BlogPostStatus | None = None,
    featured: bool | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> dict:
    page, limit = _paginate(page, limit)
    query = _filtered_posts(db, search, category, featured, (BlogPost.title, BlogPost.excerpt, BlogPost.author))
    if status is not None:
        query = query.filter(BlogPost.status == status)
    total = query.count()
    posts = (
        query.order_by(BlogPost.featured.desc(), BlogPost.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {"posts": [serialize_post(p) for p in posts], "pagination": _pagination(page, limit, total)}


def get_post(db: Session, post_id: str) -> BlogPost:
    uid = _to_uuid(post_id)
    post = db.query(BlogPost).filter(BlogPost.id == uid).first() if uid else None
    if post is None:
        raise NotFoundError("Blog post not found")
    return post


def _get_category(db: Session, category_id: str) -> BlogCategory:
    uid = _to_uuid(category_id)
    category = db.query(BlogCategory).filter(BlogCategory.id == uid).first() if uid else None
    if category is None:
        raise NotFoundError("Category not found")
    return category


def _apply_status(post: BlogPost, status: BlogPostStatus) -> None:
    """Set the status, stamping published_at on publish and clearing it on unpublish."""
    if status == BlogPostStatus.PUBLISHED and post.status != BlogPostStatus.PUBLISHED:
        post.published_at = datetime.now(UTC)
    elif status != BlogPostStatus.PUBLISHED:
        post.published_at = None
    post.status = status


def _flush_post(db: Session, post: BlogPost) -> BlogPost:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("A post with this slug already exists") from exc
    return post


def create_post(db: Session, data: BlogPostCreateRequest) -> BlogPost:
    category = _get_category(db, data.category_id)
    slug = slugify(data.slug) if data.slug else generate_slug(db, data.title)
    if not slug:
        raise ValidationError("body/slug must contain at least one letter or digit")
    if _slug_taken(db, slug):
        raise ConflictError("A post with this slug already exists")

    post = BlogPost(
        title=data.title,
        slug=slug,
        excerpt=data.excerpt,
        content=data.content,
        image=data.image,
        category=category,
        author=data.author,
        read_time_minutes=data.read_time_minutes,
        status=BlogPostStatus.DRAFT,
        featured=data.featured,
        meta_title=data.meta_title,
        meta_description=data.meta_description,
    )
    _apply_status(post, data.status)
    db.add(post)
    _flush_post(db, post)
    logger.info("Blog post created: %s", post.slug)
    return post


def update_post(db: Session, post_id: str, data: BlogPostUpdateRequest) -> BlogPost:
    post = get_post(db, post_id)
    fields = data.model_dump(exclude_unset=True)

    slug = fields.pop("slug", None)
    if slug:
        slug = slugify(slug)
        if slug != post.slug and _slug_taken(db, slug, exclude_id=post.id):
            raise ConflictError("A post with this slug already exists")
        post.slug = slug
    category_id = fields.pop("category_id", None)
    if category_id:
        post.category = _get_category(db, category_id)
    status = fields.pop("status", None)
    if status is not None:
        _apply_status(post, status)

    for key, value in fields.items():
        if value is None and key not in _NULLABLE_POST_FIELDS:
            continue
        setattr(post, key, value)

    return _flush_post(db, post)


def delete_post(db: Session, post_id: str) -> None:
    db.delete(get_post(db, post_id))
    db.flush()


def toggle_published(db: Session, post_id: str) -> BlogPost:
    post = get_post(db, post_id)
    target = BlogPostStatus.DRAFT if post.status == BlogPostStatus.PUBLISHED else BlogPostStatus.PUBLISHED
    _apply_status(post, target)
    db.flush()
    return post


def toggle_featured(db: Session, post_id: str) -> BlogPost:
    post = get_post(db, post_id)
    post.featured = not post.featured
    db.flush()
    return post


# -- Admin: categories -------------------------------------------------------


def _category_conflict(db: Session, name: str | None, slug: str | None, exclude_id: UUID | None = None) -> bool:
    conditions = []
    if name:
        conditions.append(BlogCategory.name == name)
    if slug:
        conditions.append(BlogCategory.slug == slug)
    if not conditions:
        return False
    query = db.query(BlogCategory.id).filter(or_(*conditions))
    if exclude_id is not None:
        query = query.filter(BlogCategory.id != exclude_id)
    return query.first() is not None


def create_category(db: Session, data: BlogCategoryRequest) -> BlogCategory:
    slug = slugify(data.slug or data.name)
    if not slug:
        raise ValidationError("body/slug must contain at least one letter or digit")
    if _category_conflict(db, data.name, slug):
        raise ConflictError("A category with this name or slug already exists")
    category = BlogCategory(
        name=data.name,
        slug=slug,
        description=data.description,
        icon=data.icon,
        color=data.color,
    )
    db.add(category)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("A category with this name or slug already exists") from exc
    return category


def update_category(db: Session, category_id: str, data: BlogCategoryUpdateRequest) -> BlogCategory:
    category = _get_category(db, category_id)
    fields = data.model_dump(exclude_unset=True)
    if fields.get("slug"):
        fields["slug"] = slugify(fields["slug"])
    if _category_conflict(db, fields.get("name"), fields.get("slug"), exclude_id=category.id):
        raise ConflictError("A category with this name or slug already exists")
    for key, value in fields.items():
        if value is not None or key in ("description", "icon", "color"):
            setattr(category, key, value)
    db.flush()
    return category


def delete_category(db: Session, category_id: str) -> None:
    category = _get_category(db, category_id)
    in_use = db.query(func.count(BlogPost.id)).filter(BlogPost.category_id == category.id).scalar()
    if in_use:
        raise ConflictError("This category is still used by blog posts.")
    db.delete(category)
    db.flush()
