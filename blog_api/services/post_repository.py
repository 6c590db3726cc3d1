"""Post persistence with aggregated tags.

Every public method borrows one session from the injected factory and closes
it on the way out, which returns the connection to the pool. Writes touching
more than one table run in a single transaction.
"""

import json
import logging
from datetime import datetime, UTC
from typing import Any, List, Optional, Sequence

from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.orm import Session, sessionmaker

from blog_api.models.post import Post
from blog_api.models.post_tag import tags_posts
from blog_api.models.tag import Tag
from blog_api.schemas.post import PostCreate, PostResponse, PostUpdate
from blog_api.services.tag_reconciler import ensure_tags

logger = logging.getLogger(__name__)


class _PostVanished(Exception):
    """The post was deleted between the existence check and the update"""


def normalize_tags(raw: Any) -> List[str]:
    """Turn an aggregated tags value into a list of tag names.

    Accepts a native array or its textual form. Text that is not a JSON
    array is split on commas. Null entries (LEFT JOIN on a post without
    tags) are dropped.
    """
    if not raw:
        return []
    if isinstance(raw, (list, tuple)):
        values = raw
    else:
        try:
            values = json.loads(raw)
        except (TypeError, ValueError):
            values = None
        if not isinstance(values, list):
            return [piece.strip() for piece in str(raw).split(",")]
    return [str(value) for value in values if value is not None]


def _tags_aggregate(dialect_name: str):
    if dialect_name == "postgresql":
        return func.array_agg(Tag.name)
    if dialect_name in ("mysql", "mariadb"):
        return func.json_arrayagg(Tag.name)
    return func.json_group_array(Tag.name)


def _insert_links(session: Session, post_id: int, tag_ids: Sequence[int]):
    if not tag_ids:
        return
    session.execute(
        insert(tags_posts),
        [{"postId": post_id, "tagId": tag_id} for tag_id in tag_ids]
    )


def _delete_links(session: Session, post_id: int):
    session.execute(delete(tags_posts).where(tags_posts.c.postId == post_id))


class PostRepository:
    """CRUD over posts, keeping the tags_posts links in sync"""

    def __init__(self, session_factory: sessionmaker[Session]):
        self.session_factory = session_factory

    def _select_posts(self, session: Session):
        tags = _tags_aggregate(session.get_bind().dialect.name).label("tags")
        return (
            select(
                Post.id,
                Post.title,
                Post.content,
                Post.category,
                tags,
                Post.created_at,
                Post.updated_at,
            )
            .select_from(Post)
            .outerjoin(tags_posts, tags_posts.c.postId == Post.id)
            .outerjoin(Tag, tags_posts.c.tagId == Tag.id)
            .group_by(
                Post.id,
                Post.title,
                Post.content,
                Post.category,
                Post.created_at,
                Post.updated_at,
            )
            .order_by(Post.id)
        )

    @staticmethod
    def _to_response(row) -> PostResponse:
        return PostResponse(
            id=row.id,
            title=row.title,
            content=row.content,
            category=row.category,
            tags=normalize_tags(row.tags),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def find_all(self, term: Optional[str] = None) -> List[PostResponse]:
        """List posts, optionally filtered by a substring of title, content or category"""
        with self.session_factory() as session:
            query = self._select_posts(session)
            if term:
                # % and _ in the term match literally
                query = query.where(or_(
                    Post.title.icontains(term, autoescape=True),
                    Post.content.icontains(term, autoescape=True),
                    Post.category.icontains(term, autoescape=True),
                ))
            rows = session.execute(query).all()
        logger.debug("find_all(term=%r) returned %d posts", term, len(rows))
        return [self._to_response(row) for row in rows]

    def find_by_id(self, post_id: int) -> Optional[PostResponse]:
        """Get a post with its tags, None if it does not exist"""
        with self.session_factory() as session:
            row = session.execute(
                self._select_posts(session).where(Post.id == post_id)
            ).first()
        if row is None:
            return None
        return self._to_response(row)

    def create(self, payload: PostCreate) -> PostResponse:
        """Create a post and link its tags in one transaction"""
        with self.session_factory.begin() as session:
            tag_ids = ensure_tags(session, payload.tags)
            post = Post(
                title=payload.title,
                content=payload.content,
                category=payload.category
            )
            session.add(post)
            session.flush()  # Flush to get the post ID
            post_id = post.id
            _insert_links(session, post_id, tag_ids)

        logger.debug("Created post %s with %d tags", post_id, len(tag_ids))
        return self.find_by_id(post_id)

    def update_post(self, post_id: int, payload: PostUpdate) -> Optional[PostResponse]:
        """Update a post's fields and replace its whole tag set, None if it does not exist"""
        if self.find_by_id(post_id) is None:
            return None

        try:
            with self.session_factory.begin() as session:
                tag_ids = ensure_tags(session, payload.tags)
                post = session.get(Post, post_id)
                if post is None:
                    raise _PostVanished(post_id)
                post.title = payload.title
                post.content = payload.content
                post.category = payload.category
                post.updated_at = datetime.now(UTC)

                _delete_links(session, post_id)
                _insert_links(session, post_id, tag_ids)
        except _PostVanished:
            logger.info("Post %s was deleted before it could be updated", post_id)
            return None

        logger.debug("Updated post %s with %d tags", post_id, len(tag_ids))
        return self.find_by_id(post_id)

    def delete_by_id(self, post_id: int) -> bool:
        """Delete a post and its tag links, False if there was nothing to delete"""
        with self.session_factory.begin() as session:
            _delete_links(session, post_id)
            result = session.execute(delete(Post).where(Post.id == post_id))
            deleted = result.rowcount > 0

        logger.debug("delete_by_id(%s) removed post: %s", post_id, deleted)
        return deleted
