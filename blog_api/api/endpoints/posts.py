from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, sessionmaker
from blog_api.db.database import get_session_maker
from blog_api.schemas.post import PostCreate, PostUpdate, PostResponse
from blog_api.services.post_repository import PostRepository
from typing import List, Optional

router = APIRouter()


def get_post_repository(
    session_maker: sessionmaker[Session] = Depends(get_session_maker)
) -> PostRepository:
    """Repository bound to the pooled session factory"""
    return PostRepository(session_maker)


@router.get("", response_model=List[PostResponse], summary="List all posts")
def list_posts(
    term: Optional[str] = None,
    repository: PostRepository = Depends(get_post_repository)
):
    """List all posts, `term` filters on title, content and category"""
    return repository.find_all(term)


@router.get("/{post_id}", response_model=PostResponse, summary="Get a specific post")
def get_post(
    post_id: int,
    repository: PostRepository = Depends(get_post_repository)
):
    """Get a specific post"""
    post = repository.find_by_id(post_id)
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )
    return post


@router.post("", response_model=PostResponse, status_code=status.HTTP_200_OK, summary="Create a new post")
def create_post(
    post: PostCreate,
    repository: PostRepository = Depends(get_post_repository)
):
    """Create a new post, unknown tags are created"""
    return repository.create(post)


@router.put("/{post_id}", response_model=PostResponse, summary="Update a post, including title, content, category and tags of a post")
def update_post(
    post_id: int,
    post_update: PostUpdate,
    repository: PostRepository = Depends(get_post_repository)
):
    """Update a post, the tag list replaces the current one"""
    post = repository.update_post(post_id, post_update)
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )
    return post


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a post and its tag links")
def delete_post(
    post_id: int,
    repository: PostRepository = Depends(get_post_repository)
):
    """Delete a post and its tag links"""
    if not repository.delete_by_id(post_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )
    return None
