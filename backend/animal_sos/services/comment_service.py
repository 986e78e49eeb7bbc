import uuid
from typing import Dict, List, Optional, Sequence

import structlog
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from animal_sos.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from animal_sos.core.time_utils import get_utc_now, as_utc
from animal_sos.models.report import Comment, Report
from animal_sos.models.user import User
from animal_sos.schemas.comment import CommentOut, ThreadEntry
from animal_sos.schemas.identity import Identity
from animal_sos.services.report_service import require_text

logger = structlog.get_logger()


class CommentService:
    """
    Comment CRUD with ownership checks, and the two-level thread view
    (root comments, each with its replies) built from the flat list.
    """

    @staticmethod
    def _query():
        return select(
            Comment,
            User.name.label("author_name"),
            User.avatar_url.label("author_avatar"),
        ).outerjoin(User, User.id == Comment.author_id)

    @staticmethod
    def to_out(
        comment: Comment, author_name: Optional[str] = None, author_avatar: Optional[str] = None
    ) -> CommentOut:
        return CommentOut(
            id=comment.id,
            report_id=comment.report_id,
            author_id=comment.author_id,
            author_name=author_name,
            author_avatar=author_avatar,
            content=comment.content,
            parent_id=comment.parent_id,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )

    @staticmethod
    def build_thread_view(comments: Sequence[CommentOut]) -> List[ThreadEntry]:
        """
        Partition a flat comment list into roots and their replies.

        Every comment lands in exactly one place. A comment is filed under
        the top-most ancestor present in the collection, so a reply to a
        reply never forms a third level. A comment whose parent is missing
        (its root was deleted) is shown at root level.

        Roots are ordered newest first, replies oldest first.
        """
        by_id = {c.id: c for c in comments}

        def top_ancestor(comment: CommentOut) -> CommentOut:
            seen = {comment.id}
            current = comment
            while current.parent_id is not None and current.parent_id in by_id:
                if current.parent_id in seen:
                    # corrupt parent cycle
                    return comment
                current = by_id[current.parent_id]
                seen.add(current.id)
            return current

        roots: List[CommentOut] = []
        replies: Dict[uuid.UUID, List[CommentOut]] = {}
        for comment in comments:
            top = top_ancestor(comment)
            if top is comment:
                roots.append(comment)
            else:
                replies.setdefault(top.id, []).append(comment)

        roots.sort(key=lambda c: as_utc(c.created_at), reverse=True)
        view = []
        for root in roots:
            group = sorted(replies.get(root.id, []), key=lambda c: as_utc(c.created_at))
            view.append(ThreadEntry(root=root, replies=group, reply_count=len(group)))
        return view

    @classmethod
    async def _get_report(cls, session: AsyncSession, report_id: uuid.UUID) -> Report:
        report = await session.get(Report, report_id)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    @classmethod
    async def _get_comment(
        cls, session: AsyncSession, report_id: uuid.UUID, comment_id: uuid.UUID
    ) -> Comment:
        comment = await session.get(Comment, comment_id)
        if comment is None or comment.report_id != report_id:
            raise NotFoundError("Comment not found")
        return comment

    @classmethod
    async def get_comment(cls, session: AsyncSession, comment_id: uuid.UUID) -> CommentOut:
        result = await session.execute(cls._query().where(Comment.id == comment_id))
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Comment not found")
        return cls.to_out(*row)

    @classmethod
    async def _resolve_root(
        cls, session: AsyncSession, report_id: uuid.UUID, parent_id: uuid.UUID
    ) -> uuid.UUID:
        parent = await session.get(Comment, parent_id)
        if parent is None:
            raise NotFoundError("Parent comment not found")
        if parent.report_id != report_id:
            raise ValidationError("Parent comment belongs to another report")

        if parent.parent_id is None:
            return parent.id
        # Replying to a reply: attach to that reply's root instead
        root = await session.get(Comment, parent.parent_id)
        return root.id if root is not None else parent.id

    @classmethod
    async def add_comment(
        cls,
        session: AsyncSession,
        report_id: uuid.UUID,
        identity: Identity,
        content: str,
        parent_id: Optional[uuid.UUID] = None,
    ) -> CommentOut:
        await cls._get_report(session, report_id)
        text = require_text(content, "content")

        root_id = None
        if parent_id is not None:
            root_id = await cls._resolve_root(session, report_id, parent_id)

        now = get_utc_now()
        comment = Comment(
            report_id=report_id,
            author_id=identity.user_id,
            content=text,
            parent_id=root_id,
            created_at=now,
            updated_at=now,
        )
        session.add(comment)
        await session.commit()

        logger.info(
            "comment_added",
            comment_id=str(comment.id),
            report_id=str(report_id),
            is_reply=root_id is not None,
        )
        return await cls.get_comment(session, comment.id)

    @classmethod
    async def edit_comment(
        cls,
        session: AsyncSession,
        report_id: uuid.UUID,
        comment_id: uuid.UUID,
        identity: Identity,
        content: str,
    ) -> CommentOut:
        comment = await cls._get_comment(session, report_id, comment_id)
        if comment.author_id != identity.user_id:
            raise AuthorizationError("You can only edit your own comments")

        comment.content = require_text(content, "content")
        comment.updated_at = get_utc_now()
        await session.commit()

        logger.info("comment_edited", comment_id=str(comment.id))
        return await cls.get_comment(session, comment.id)

    @classmethod
    async def delete_comment(
        cls,
        session: AsyncSession,
        report_id: uuid.UUID,
        comment_id: uuid.UUID,
        identity: Identity,
    ) -> None:
        """
        Deletes only this comment. Replies to a deleted root stay stored and
        visible.
        """
        comment = await cls._get_comment(session, report_id, comment_id)
        if comment.author_id != identity.user_id:
            raise AuthorizationError("You can only delete your own comments")

        is_root = comment.parent_id is None
        await session.delete(comment)
        await session.commit()

        logger.info("comment_deleted", comment_id=str(comment_id), was_root=is_root)

    @classmethod
    async def list_comments(cls, session: AsyncSession, report_id: uuid.UUID) -> List[CommentOut]:
        await cls._get_report(session, report_id)
        result = await session.execute(
            cls._query()
            .where(Comment.report_id == report_id)
            .order_by(Comment.created_at.asc())
        )
        return [cls.to_out(*row) for row in result.all()]

    @classmethod
    async def thread_for_report(cls, session: AsyncSession, report_id: uuid.UUID) -> List[ThreadEntry]:
        comments = await cls.list_comments(session, report_id)
        return cls.build_thread_view(comments)

    @classmethod
    async def reply_counts(cls, session: AsyncSession, report_id: uuid.UUID) -> Dict[uuid.UUID, int]:
        """
        Reply count per root comment id, without loading the replies.
        Replies whose root was deleted are roots themselves and not counted.
        """
        parent = aliased(Comment)
        result = await session.execute(
            select(Comment.parent_id, func.count(Comment.id))
            .join(parent, parent.id == Comment.parent_id)
            .where(Comment.report_id == report_id, parent.report_id == report_id)
            .group_by(Comment.parent_id)
        )
        return {parent_id: count for parent_id, count in result.all()}
