"""Social media sentiment routes (Grok analysis of election-related posts)."""

# type: ignore

from datetime import datetime
from typing import Annotated, Optional

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import require_staff
from app.core.database import get_db
from app.core.logging_config import get_logger
from app.core.responses import success_response
from app.services import sentiment, sentiment_store

router = APIRouter(prefix="/sentiment", tags=["Sentiment"])
logger = get_logger(__name__)


class PostIngestItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    post_id: str = Field(..., min_length=1, max_length=100, alias="postId")
    author: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=5000)
    location: Optional[str] = Field(None, max_length=255)
    posted_at: Optional[datetime] = Field(None, alias="postedAt")
    platform: str = Field("x", max_length=50)


class PostIngestRequest(BaseModel):
    posts: list[PostIngestItem] = Field(..., min_length=1, max_length=500)


class AnalyzeRequest(BaseModel):
    text: Optional[str] = Field(None, max_length=5000)
    author: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)


@router.post("/posts", status_code=status.HTTP_201_CREATED)
async def ingest_posts(
    request: PostIngestRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    """Store collected posts. A post already stored under the same id is updated."""
    stored = []
    async with conn.transaction():
        for post in request.posts:
            stored.append(
                await sentiment_store.upsert_post(
                    conn,
                    post_id=post.post_id,
                    author=post.author,
                    content=post.content,
                    location=post.location,
                    posted_at=post.posted_at,
                    platform=post.platform,
                )
            )

    logger.info(f"Ingested {len(stored)} social posts")
    return success_response(data={"stored": len(stored), "posts": stored})


@router.get("/live-analysis")
async def live_analysis(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    parish: Optional[str] = Query(None, max_length=100),
    limit: int = Query(20, ge=1, le=100),
):
    """
    Analyze stored posts that have no analysis yet.

    Posts can be narrowed to those mentioning a parish. Each result is saved,
    so a post is analyzed once.
    """
    posts = await sentiment_store.list_unanalyzed_posts(conn, parish=parish, limit=limit)
    results = await sentiment.batch_analyze(
        [
            {"text": p["content"], "author": p["author"], "location": p.get("location")}
            for p in posts
        ]
    )

    analyses = []
    for post, result in zip(posts, results):
        await sentiment_store.upsert_analysis(conn, post["post_id"], result)
        analyses.append({**result, "postId": post["post_id"], "author": post["author"]})

    return success_response(
        data={
            "analyses": analyses,
            "overall": sentiment.overall_sentiment(results),
            "distribution": sentiment.sentiment_distribution(results),
            "totalAnalyzed": len(results),
        }
    )


@router.get("/report")
async def sentiment_report(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    hours: int = Query(24, ge=1, le=720),
):
    rows = await sentiment_store.list_recent_analyses(conn, hours=hours)
    report = await sentiment.generate_report([sentiment_store.as_analysis_result(r) for r in rows])
    return success_response(data={**report, "hours": hours})


@router.get("/trends")
async def sentiment_trends(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    days: int = Query(7, ge=1, le=90),
):
    return success_response(data=await sentiment_store.get_trends(conn, days=days))


@router.get("/alerts")
async def sentiment_alerts(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
    limit: int = Query(20, ge=1, le=100),
):
    """High-risk analyses with the posts they came from."""
    return success_response(data=await sentiment_store.list_high_risk(conn, limit=limit))


@router.post("/analyze")
async def analyze_text(
    request: AnalyzeRequest,
    current_user: Annotated[dict, Depends(require_staff)],
):
    """
    Analyze a single piece of text without storing it.

    **Request Body:**
    ```json
    {"text": "Long lines at the polling station in Spanish Town", "author": "@voter"}
    ```
    """
    if not request.text or not request.author:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Text and author are required"
        )
    result = await sentiment.analyze_post(request.text, request.author, request.location)
    return success_response(data=result)


@router.get("/parish-overview")
async def parish_overview(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(require_staff)],
):
    return success_response(data=await sentiment_store.get_parish_overview(conn))
