import random
import unittest
import uuid
from datetime import datetime, timedelta

from animal_sos.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from animal_sos.core.time_utils import UTC
from animal_sos.schemas.comment import CommentOut
from animal_sos.services.comment_service import CommentService

from support import DatabaseTestCase, at, identity_for


def comment(cid, parent=None, created=None, report_id=None):
    return CommentOut(
        id=cid,
        report_id=report_id or REPORT_ID,
        author_id=AUTHOR_ID,
        content=f"comment {cid}",
        parent_id=parent,
        created_at=created,
        updated_at=created,
    )


REPORT_ID = uuid.uuid4()
AUTHOR_ID = uuid.uuid4()


def hm(hour, minute):
    return datetime(2024, 5, 1, hour, minute, tzinfo=UTC)


class TestBuildThreadView(unittest.TestCase):

    def test_roots_newest_first_with_replies(self):
        c1, c2, c3 = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        view = CommentService.build_thread_view([
            comment(c1, None, hm(10, 0)),
            comment(c2, c1, hm(10, 5)),
            comment(c3, None, hm(10, 2)),
        ])

        self.assertEqual([entry.root.id for entry in view], [c3, c1])
        self.assertEqual([r.id for r in view[1].replies], [c2])
        self.assertEqual(view[1].reply_count, 1)
        self.assertEqual(view[0].replies, [])
        self.assertEqual(view[0].reply_count, 0)

    def test_replies_oldest_first(self):
        root = uuid.uuid4()
        late, early, middle = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        view = CommentService.build_thread_view([
            comment(late, root, hm(12, 0)),
            comment(root, None, hm(9, 0)),
            comment(early, root, hm(10, 0)),
            comment(middle, root, hm(11, 0)),
        ])
        self.assertEqual([r.id for r in view[0].replies], [early, middle, late])

    def test_reply_to_reply_is_attached_to_the_root(self):
        root, reply, nested = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        view = CommentService.build_thread_view([
            comment(root, None, hm(9, 0)),
            comment(reply, root, hm(9, 1)),
            comment(nested, reply, hm(9, 2)),
        ])
        self.assertEqual(len(view), 1)
        self.assertEqual([r.id for r in view[0].replies], [reply, nested])

    def test_orphaned_reply_is_shown_at_root_level(self):
        deleted_root, orphan, root = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        view = CommentService.build_thread_view([
            comment(orphan, deleted_root, hm(9, 5)),
            comment(root, None, hm(9, 0)),
        ])
        self.assertEqual([entry.root.id for entry in view], [orphan, root])

    def test_empty(self):
        self.assertEqual(CommentService.build_thread_view([]), [])

    def test_naive_and_aware_timestamps_mix(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        view = CommentService.build_thread_view([
            comment(a, None, datetime(2024, 5, 1, 9, 0)),
            comment(b, None, hm(9, 30)),
        ])
        self.assertEqual([entry.root.id for entry in view], [b, a])

    def test_random_collections_keep_every_comment_once_and_ordered(self):
        rng = random.Random(7)
        base = hm(8, 0)
        for _ in range(50):
            comments = []
            for _ in range(rng.randint(0, 25)):
                parent = rng.choice(comments).id if comments and rng.random() < 0.6 else None
                if parent is None and comments and rng.random() < 0.1:
                    parent = uuid.uuid4()  # parent no longer exists
                created = base + timedelta(minutes=rng.randint(0, 300))
                comments.append(comment(uuid.uuid4(), parent, created))
            rng.shuffle(comments)

            view = CommentService.build_thread_view(comments)
            by_id = {c.id: c for c in comments}

            placed = [e.root.id for e in view] + [r.id for e in view for r in e.replies]
            self.assertEqual(sorted(placed), sorted(c.id for c in comments))
            self.assertEqual(len(placed), len(set(placed)))

            root_times = [e.root.created_at for e in view]
            self.assertEqual(root_times, sorted(root_times, reverse=True))
            for entry in view:
                times = [r.created_at for r in entry.replies]
                self.assertEqual(times, sorted(times))
                self.assertEqual(entry.reply_count, len(entry.replies))
                # filed under the top-most ancestor, never a third level
                for reply in entry.replies:
                    top = reply
                    while top.parent_id in by_id:
                        top = by_id[top.parent_id]
                    self.assertEqual(top.id, entry.root.id)


class TestCommentCrud(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.ana = await self.make_user("Ana")
        self.bia = await self.make_user("Bia")
        self.report = await self.make_report(self.ana)
        self.other_report = await self.make_report(self.bia, title="Other")

    async def test_add_root_comment_with_author_fields(self):
        out = await CommentService.add_comment(
            self.session, self.report.id, identity_for(self.bia), "  On my way  "
        )
        self.assertIsNone(out.parent_id)
        self.assertEqual(out.content, "On my way")
        self.assertEqual(out.author_name, "Bia")
        self.assertEqual(out.author_avatar, "https://cdn.example.com/bia.png")

    async def test_reply_to_reply_uses_the_root(self):
        root = await self.make_comment(self.report, self.ana, at(1))
        reply = await self.make_comment(self.report, self.bia, at(2), parent=root)

        out = await CommentService.add_comment(
            self.session, self.report.id, identity_for(self.ana), "Thanks!", parent_id=reply.id
        )
        self.assertEqual(out.parent_id, root.id)

    async def test_reply_to_orphan_attaches_to_the_orphan(self):
        root = await self.make_comment(self.report, self.ana, at(1))
        reply = await self.make_comment(self.report, self.bia, at(2), parent=root)
        await CommentService.delete_comment(self.session, self.report.id, root.id, identity_for(self.ana))

        out = await CommentService.add_comment(
            self.session, self.report.id, identity_for(self.ana), "Still here", parent_id=reply.id
        )
        self.assertEqual(out.parent_id, reply.id)

    async def test_parent_must_exist_on_same_report(self):
        foreign = await self.make_comment(self.other_report, self.bia, at(1))
        with self.assertRaises(ValidationError):
            await CommentService.add_comment(
                self.session, self.report.id, identity_for(self.ana), "x", parent_id=foreign.id
            )
        with self.assertRaises(NotFoundError):
            await CommentService.add_comment(
                self.session, self.report.id, identity_for(self.ana), "x", parent_id=uuid.uuid4()
            )

    async def test_blank_content_and_unknown_report(self):
        with self.assertRaises(ValidationError):
            await CommentService.add_comment(self.session, self.report.id, identity_for(self.ana), "   ")
        with self.assertRaises(NotFoundError):
            await CommentService.add_comment(self.session, uuid.uuid4(), identity_for(self.ana), "hi")

    async def test_only_author_edits(self):
        c = await self.make_comment(self.report, self.ana, at(1))
        with self.assertRaises(AuthorizationError):
            await CommentService.edit_comment(
                self.session, self.report.id, c.id, identity_for(self.bia), "hijack"
            )
        out = await CommentService.edit_comment(
            self.session, self.report.id, c.id, identity_for(self.ana), "edited"
        )
        self.assertEqual(out.content, "edited")

    async def test_edit_has_no_time_window(self):
        c = await self.make_comment(self.report, self.ana, datetime(2001, 1, 1, tzinfo=UTC))
        out = await CommentService.edit_comment(
            self.session, self.report.id, c.id, identity_for(self.ana), "years later"
        )
        self.assertEqual(out.content, "years later")

    async def test_comment_must_belong_to_report_in_path(self):
        c = await self.make_comment(self.other_report, self.ana, at(1))
        with self.assertRaises(NotFoundError):
            await CommentService.edit_comment(
                self.session, self.report.id, c.id, identity_for(self.ana), "x"
            )

    async def test_only_author_deletes(self):
        c = await self.make_comment(self.report, self.ana, at(1))
        with self.assertRaises(AuthorizationError):
            await CommentService.delete_comment(self.session, self.report.id, c.id, identity_for(self.bia))
        await CommentService.delete_comment(self.session, self.report.id, c.id, identity_for(self.ana))
        self.assertEqual(await CommentService.list_comments(self.session, self.report.id), [])

    async def test_deleting_root_keeps_replies_visible(self):
        root = await self.make_comment(self.report, self.ana, at(1))
        r1 = await self.make_comment(self.report, self.bia, at(2), parent=root)
        r2 = await self.make_comment(self.report, self.ana, at(3), parent=root)

        await CommentService.delete_comment(self.session, self.report.id, root.id, identity_for(self.ana))

        view = await CommentService.thread_for_report(self.session, self.report.id)
        self.assertEqual([e.root.id for e in view], [r2.id, r1.id])
        # still addressable
        out = await CommentService.edit_comment(
            self.session, self.report.id, r1.id, identity_for(self.bia), "kept"
        )
        self.assertEqual(out.content, "kept")

    async def test_thread_for_report(self):
        c1 = await self.make_comment(self.report, self.ana, at(0))
        c2 = await self.make_comment(self.report, self.bia, at(5), parent=c1)
        c3 = await self.make_comment(self.report, self.bia, at(2))
        await self.make_comment(self.other_report, self.bia, at(9))

        view = await CommentService.thread_for_report(self.session, self.report.id)
        self.assertEqual([e.root.id for e in view], [c3.id, c1.id])
        self.assertEqual([r.id for r in view[1].replies], [c2.id])

    async def test_reply_counts(self):
        c1 = await self.make_comment(self.report, self.ana, at(0))
        c2 = await self.make_comment(self.report, self.ana, at(1))
        for minute in (2, 3, 4):
            await self.make_comment(self.report, self.bia, at(minute), parent=c1)

        counts = await CommentService.reply_counts(self.session, self.report.id)
        self.assertEqual(counts, {c1.id: 3})
        self.assertNotIn(c2.id, counts)

    async def test_reply_counts_agree_with_thread_after_root_deletion(self):
        root = await self.make_comment(self.report, self.ana, at(0))
        orphan = await self.make_comment(self.report, self.bia, at(1), parent=root)
        await self.make_comment(self.report, self.bia, at(2), parent=root)
        await CommentService.delete_comment(self.session, self.report.id, root.id, identity_for(self.ana))

        self.assertEqual(await CommentService.reply_counts(self.session, self.report.id), {})

        await CommentService.add_comment(
            self.session, self.report.id, identity_for(self.ana), "Any news?", parent_id=orphan.id
        )
        counts = await CommentService.reply_counts(self.session, self.report.id)
        view = await CommentService.thread_for_report(self.session, self.report.id)
        self.assertEqual(counts, {orphan.id: 1})
        self.assertEqual(
            {e.root.id: e.reply_count for e in view if e.reply_count}, counts
        )
