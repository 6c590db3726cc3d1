from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from blog_api.db.database import Base
from blog_api.schemas.post import TAG_NAME_MAX_LENGTH


class Tag(Base):
    """Tag model, shared by every post that references it"""
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(TAG_NAME_MAX_LENGTH), unique=True, nullable=False)  # tag name must be unique
