from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Annotated, List

TAG_NAME_MAX_LENGTH = 50

TagName = Annotated[str, Field(max_length=TAG_NAME_MAX_LENGTH)]


class PostBase(BaseModel):
    """Post base model"""
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=255)
    tags: List[TagName] = Field(..., description="Tag names, created on first use")


class PostCreate(PostBase):
    """Create post request model"""
    pass


class PostUpdate(PostBase):
    """Update post request model, tags replace the whole tag set"""
    pass


class PostResponse(PostBase):
    """Post response model"""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    created_at: datetime
    updated_at: datetime
