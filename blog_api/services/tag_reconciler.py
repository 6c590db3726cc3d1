"""Tag reconciliation: make sure named tags exist and resolve their ids"""

import logging
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from blog_api.models.tag import Tag

logger = logging.getLogger(__name__)


def ensure_tags(session: Session, tag_names: Iterable[str]) -> List[int]:
    """Return the ids of the given tags, creating the missing ones.

    Runs in the caller's transaction, so a rollback there also removes the
    tags created here. Existing ids come first in query order, followed by
    the new ones in input order; the result is not positionally aligned with
    ``tag_names``.
    """
    names = list(dict.fromkeys(tag_names))
    if not names:
        return []

    existing = session.execute(
        select(Tag.id, Tag.name).where(Tag.name.in_(names))
    ).all()
    existing_names = {row.name for row in existing}
    tag_ids = [row.id for row in existing]

    for name in names:
        if name not in existing_names:
            tag_ids.append(_insert_tag(session, name))
    return tag_ids


def _insert_tag(session: Session, name: str) -> int:
    """Insert one tag, falling back to the stored row if someone else won the race"""
    tag = Tag(name=name)
    try:
        with session.begin_nested():
            session.add(tag)
    except IntegrityError:
        logger.warning("Tag %r was created concurrently, reusing the stored row", name)
        return session.execute(select(Tag.id).where(Tag.name == name)).scalar_one()
    logger.info("Created tag %r (id=%s)", name, tag.id)
    return tag.id
