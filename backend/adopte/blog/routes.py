"""Blog routes: public reading plus admin management under /admin."""

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..auth.models import User
from ..database.base import get_db
from ..dependencies import require_admin
from .models import BlogPostStatus
from .schemas import (
    BlogCategoryRequest,
    BlogCategoryUpdateRequest,
    BlogPostCreateRequest,
    BlogPostUpdateRequest,
    SlugRequest,
)
from .service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    create_category,
    create_post,
    delete_category,
    delete_post,
    generate_slug,
    get_post,
    get_published_post,
    list_all_posts,
    list_categories_with_counts,
    list_published_posts,
    list_related_posts,
    serialize_category,
    serialize_post,
    toggle_featured,
    toggle_published,
    update_category,
    update_post,
)

router = APIRouter(prefix="/api/blog", tags=["blog"])


@router.get("/posts")
def published_posts(
    search: str | None = None,
    category: str | None = None,
    featured: bool | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    return list_published_posts(db, search=search, category=category, featured=featured, page=page, limit=limit)


@router.get("/posts/{slug}")
def published_post(slug: str, db: Session = Depends(get_db)):
    return serialize_post(get_published_post(db, slug))


@router.get("/posts/{slug}/related")
def related_posts(slug: str, db: Session = Depends(get_db)):
    return [serialize_post(p) for p in list_related_posts(db, slug)]


@router.get("/categories")
def categories(db: Session = Depends(get_db)):
    return list_categories_with_counts(db)


# -- Admin -------------------------------------------------------------------


@router.get("/admin/posts")
def admin_posts(
    search: str | None = None,
    category: str | None = None,
    status: BlogPostStatus | None = None,
    featured: bool | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return list_all_posts(
        db, search=search, category=category, status=status, featured=featured, page=page, limit=limit
    )


@router.get("/admin/posts/{post_id}")
def admin_post(post_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return serialize_post(get_post(db, post_id))


@router.post("/admin/posts", status_code=201)
def admin_create_post(
    request: Request,
    body: BlogPostCreateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    post = create_post(db, body)
    audit(db, request, "blog_post_create", f"slug={post.slug}", user_id=admin.id)
    db.commit()
    return serialize_post(post)


@router.put("/admin/posts/{post_id}")
def admin_update_post(
    post_id: str,
    request: Request,
    body: BlogPostUpdateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    post = update_post(db, post_id, body)
    audit(db, request, "blog_post_update", f"slug={post.slug}", user_id=admin.id)
    db.commit()
    return serialize_post(post)


@router.delete("/admin/posts/{post_id}", status_code=204)
def admin_delete_post(
    post_id: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    delete_post(db, post_id)
    audit(db, request, "blog_post_delete", f"post={post_id}", user_id=admin.id)
    db.commit()
    return Response(status_code=204)


@router.patch("/admin/posts/{post_id}/publish")
def admin_toggle_publish(post_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    post = toggle_published(db, post_id)
    db.commit()
    return serialize_post(post)


@router.patch("/admin/posts/{post_id}/feature")
def admin_toggle_feature(post_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    post = toggle_featured(db, post_id)
    db.commit()
    return serialize_post(post)


@router.post("/admin/categories", status_code=201)
def admin_create_category(
    body: BlogCategoryRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    category = create_category(db, body)
    db.commit()
    return serialize_category(category)


@router.put("/admin/categories/{category_id}")
def admin_update_category(
    category_id: str,
    body: BlogCategoryUpdateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    category = update_category(db, category_id, body)
    db.commit()
    return serialize_category(category)


@router.delete("/admin/categories/{category_id}", status_code=204)
def admin_delete_category(category_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    delete_category(db, category_id)
    db.commit()
    return Response(status_code=204)


@router.post("/admin/generate-slug")
def admin_generate_slug(body: SlugRequest, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return {"slug": generate_slug(db, body.title)}
