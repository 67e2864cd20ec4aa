# feedmix/routers/articles.py
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from sqlmodel import select

from .. import config
from ..logging_setup import get_logger
from ..models import Article
from ..schema import ArticleIn, ArticleUpdate
from ..store import get_session

logger = get_logger("feedmix.routes.articles")

router = APIRouter(prefix="/admin/articles", tags=["Admin Articles"])

# --- Simple API key gate ---
def require_admin(x_api_key: Optional[str] = Header(default=None)) -> None:
    expected = config.ADMIN_API_KEY
    if not expected:
        # Fail closed if the key was never configured
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfigured: ADMIN_API_KEY not set."
        )
    if x_api_key != expected:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")

def _get_or_404(s, article_id: int) -> Article:
    article = s.get(Article, article_id)
    if not article:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Article {article_id} not found")
    return article

@router.post("", status_code=status.HTTP_201_CREATED)
def create_article(body: ArticleIn, _: None = Depends(require_admin)):
    with get_session() as s:
        article = Article(**body.model_dump())
        s.add(article); s.commit(); s.refresh(article)
        logger.info(f"Article created: id={article.id} region={article.region}")
        return article

@router.get("")
def list_articles(
    region: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    _: None = Depends(require_admin),
):
    stmt = select(Article)
    if region:
        stmt = stmt.where(Article.region == region)
    stmt = stmt.order_by(Article.id).offset(offset).limit(limit)
    with get_session() as s:
        return s.exec(stmt).all()

@router.get("/{article_id}")
def get_article(article_id: int, _: None = Depends(require_admin)):
    with get_session() as s:
        return _get_or_404(s, article_id)

@router.patch("/{article_id}")
def update_article(article_id: int, body: ArticleUpdate, _: None = Depends(require_admin)):
    with get_session() as s:
        article = _get_or_404(s, article_id)
        for key, value in body.model_dump(exclude_unset=True).items():
            setattr(article, key, value)
        s.add(article); s.commit(); s.refresh(article)
        logger.info(f"Article updated: id={article_id}")
        return article

@router.delete("/{article_id}")
def delete_article(article_id: int, _: None = Depends(require_admin)):
    with get_session() as s:
        article = _get_or_404(s, article_id)
        s.delete(article); s.commit()
    logger.info(f"Article deleted: id={article_id}")
    return {"deleted": True}
