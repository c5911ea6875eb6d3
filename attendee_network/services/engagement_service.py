from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, delete, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Optional
from datetime import datetime, timezone
import uuid
import logging

from attendee_network.models.post import Post, PostLike, Comment
from attendee_network.schemas.social import PostRead, CommentRead
from attendee_network.config.constants import MAX_POST_LENGTH, MAX_COMMENT_LENGTH, DEFAULT_POSTS_PAGE_SIZE
from attendee_network.core.errors import ConflictError, NotFoundError, UnauthorizedError, InvalidError, TransientError

logger = logging.getLogger(__name__)


def _validate_text(content: Optional[str], what: str, max_length: int) -> str:
    if not content or not content.strip():
        raise InvalidError(f"{what} cannot be empty")
    if len(content) > max_length:
        raise InvalidError(f"{what} is longer than {max_length} characters")
    return content


class EngagementService:
    """
    Likes and comments on posts.

    ``likes_count`` and ``comments_count`` are denormalized. They are only ever
    changed by an atomic ``count = count +/- 1`` statement executed in the same
    transaction as the like/comment row it accounts for, never by writing back
    a value read earlier.
    """
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_post(self, post_id: uuid.UUID) -> Post:
        post = await self.session.get(Post, post_id)
        if not post:
            raise NotFoundError(f"Post {post_id} not found")
        return post

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to {action}")
            raise TransientError(f"Could not {action}") from e

    # ========================
    # Likes
    # ========================

    async def like(self, user_id: uuid.UUID, post_id: uuid.UUID) -> int:
        """Like a post. Raises ConflictError if already liked. Returns the new likes_count."""
        await self._get_post(post_id)

        insert_like = (
            pg_insert(PostLike)
            .values(id=uuid.uuid4(), post_id=post_id, user_id=user_id)
            .on_conflict_do_nothing(constraint="uq_post_like_user")
            .returning(PostLike.id)
        )
        bump = (
            update(Post)
            .where(Post.id == post_id)
            .values(likes_count=Post.likes_count + 1)
            .returning(Post.likes_count)
        )
        try:
            inserted = (await self.session.execute(insert_like)).scalar_one_or_none()
            if inserted is None:
                await self.session.rollback()
                raise ConflictError("Post already liked")
            likes_count = (await self.session.execute(bump)).scalar_one()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to like post {post_id}")
            raise TransientError("Could not like post") from e

        await self._commit(f"like post {post_id}")
        return likes_count

    async def unlike(self, user_id: uuid.UUID, post_id: uuid.UUID) -> int:
        """Remove a like if present. Returns the resulting likes_count."""
        post = await self._get_post(post_id)
        # Read before any statement: a rollback expires the loaded row
        current_count = post.likes_count

        remove_like = (
            delete(PostLike)
            .where(PostLike.post_id == post_id, PostLike.user_id == user_id)
            .returning(PostLike.id)
        )
        drop = (
            update(Post)
            .where(Post.id == post_id)
            .values(likes_count=func.greatest(Post.likes_count - 1, 0))
            .returning(Post.likes_count)
        )
        try:
            removed = (await self.session.execute(remove_like)).scalar_one_or_none()
            if removed is None:
                await self.session.rollback()
                return current_count
            likes_count = (await self.session.execute(drop)).scalar_one()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to unlike post {post_id}")
            raise TransientError("Could not unlike post") from e

        await self._commit(f"unlike post {post_id}")
        return likes_count

    # ========================
    # Comments
    # ========================

    async def add_comment(self, user_id: uuid.UUID, post_id: uuid.UUID, content: str) -> CommentRead:
        content = _validate_text(content, "Comment", MAX_COMMENT_LENGTH)
        await self._get_post(post_id)

        comment = Comment(
            id=uuid.uuid4(),
            post_id=post_id,
            user_id=user_id,
            content=content,
            created_at=datetime.now(timezone.utc),
        )
        self.session.add(comment)
        try:
            await self.session.flush()
            await self.session.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(comments_count=Post.comments_count + 1)
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to add comment to post {post_id}")
            raise TransientError("Could not add comment") from e

        await self._commit(f"add comment to post {post_id}")
        return CommentRead.model_validate(comment)

    async def delete_comment(self, comment_id: uuid.UUID, acting_user_id: Optional[uuid.UUID] = None) -> None:
        comment = await self.session.get(Comment, comment_id)
        if not comment:
            raise NotFoundError(f"Comment {comment_id} not found")
        if acting_user_id is not None and comment.user_id != acting_user_id:
            raise UnauthorizedError("Only the author can delete a comment")

        post_id = comment.post_id
        try:
            await self.session.delete(comment)
            await self.session.flush()
            await self.session.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(comments_count=func.greatest(Post.comments_count - 1, 0))
            )
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to delete comment {comment_id}")
            raise TransientError("Could not delete comment") from e

        await self._commit(f"delete comment {comment_id}")

    async def fetch_comments(self, post_id: uuid.UUID) -> List[CommentRead]:
        stmt = select(Comment).where(Comment.post_id == post_id).order_by(Comment.created_at.asc())
        result = await self.session.execute(stmt)
        return [CommentRead.model_validate(c) for c in result.scalars().all()]

    # ========================
    # Posts
    # ========================

    async def create_post(
        self,
        user_id: uuid.UUID,
        content: str,
        event_id: Optional[uuid.UUID] = None,
        image_url: Optional[str] = None,
    ) -> PostRead:
        content = _validate_text(content, "Post", MAX_POST_LENGTH)
        post = Post(
            id=uuid.uuid4(),
            user_id=user_id,
            event_id=event_id,
            content=content,
            image_url=image_url,
            likes_count=0,
            comments_count=0,
            created_at=datetime.now(timezone.utc),
        )
        self.session.add(post)
        await self._commit("create post")
        return PostRead.model_validate(post)

    async def delete_post(self, post_id: uuid.UUID, acting_user_id: Optional[uuid.UUID] = None) -> None:
        post = await self._get_post(post_id)
        if acting_user_id is not None and post.user_id != acting_user_id:
            raise UnauthorizedError("Only the author can delete a post")
        await self.session.delete(post)
        await self._commit(f"delete post {post_id}")

    async def fetch_posts(
        self,
        viewer_id: Optional[uuid.UUID] = None,
        event_id: Optional[uuid.UUID] = None,
        limit: int = DEFAULT_POSTS_PAGE_SIZE,
        offset: int = 0,
    ) -> List[PostRead]:
        """Newest posts first, flagged with whether ``viewer_id`` liked them."""
        stmt = select(Post).order_by(Post.created_at.desc()).limit(limit).offset(offset)
        if event_id:
            stmt = stmt.where(Post.event_id == event_id)
        result = await self.session.execute(stmt)
        posts = [PostRead.model_validate(p) for p in result.scalars().all()]

        if viewer_id and posts:
            liked_stmt = select(PostLike.post_id).where(
                PostLike.user_id == viewer_id,
                PostLike.post_id.in_([p.id for p in posts]),
            )
            liked = set((await self.session.execute(liked_stmt)).scalars().all())
            for post in posts:
                post.liked_by_me = post.id in liked
        return posts

    async def recount_post(self, post_id: uuid.UUID) -> PostRead:
        """Reset both counters from the like and comment rows."""
        await self._get_post(post_id)
        likes = select(func.count(PostLike.id)).where(PostLike.post_id == post_id).scalar_subquery()
        comments = select(func.count(Comment.id)).where(Comment.post_id == post_id).scalar_subquery()
        stmt = (
            update(Post)
            .where(Post.id == post_id)
            .values(likes_count=likes, comments_count=comments)
            .returning(Post)
        )
        try:
            post = (await self.session.execute(stmt)).scalar_one()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.exception(f"Failed to recount post {post_id}")
            raise TransientError("Could not recount post") from e

        await self._commit(f"recount post {post_id}")
        logger.info(f"Recounted post {post_id}: {post.likes_count} likes, {post.comments_count} comments")
        return PostRead.model_validate(post)
