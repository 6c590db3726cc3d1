from sqlalchemy import Column, ForeignKey, Integer, Table
from blog_api.db.database import Base

# Post-tag association, a row means "post has tag". No primary key.
tags_posts = Table(
    "tags_posts",
    Base.metadata,
    Column("postId", Integer, ForeignKey("posts.id"), nullable=False, index=True),
    Column("tagId", Integer, ForeignKey("tags.id"), nullable=False),
)
