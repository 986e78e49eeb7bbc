import uuid

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from animal_sos.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from animal_sos.models import Like, UserRole
from animal_sos.services.like_service import LikeService
from animal_sos.services.note_service import AgencyNoteService

from support import DatabaseTestCase, identity_for


class TestToggleLike(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.user = await self.make_user("Ana")
        self.report = await self.make_report(self.user)

    async def _rows(self):
        return await self.session.scalar(
            select(func.count(Like.id)).where(
                Like.report_id == self.report.id, Like.user_id == self.user.id
            )
        )

    async def test_toggle_twice_returns_to_original_state(self):
        self.assertFalse(await LikeService.has_liked(self.session, self.report.id, self.user.id))

        self.assertTrue(await LikeService.toggle_like(self.session, self.report.id, self.user.id))
        self.assertEqual(await self._rows(), 1)
        self.assertTrue(await LikeService.has_liked(self.session, self.report.id, self.user.id))

        self.assertFalse(await LikeService.toggle_like(self.session, self.report.id, self.user.id))
        self.assertEqual(await self._rows(), 0)
        self.assertFalse(await LikeService.has_liked(self.session, self.report.id, self.user.id))

    async def test_likes_count(self):
        other = await self.make_user("Bia")
        await LikeService.toggle_like(self.session, self.report.id, self.user.id)
        await LikeService.toggle_like(self.session, self.report.id, other.id)
        self.assertEqual(await LikeService.likes_count(self.session, self.report.id), 2)

    async def test_unknown_report(self):
        with self.assertRaises(NotFoundError):
            await LikeService.toggle_like(self.session, uuid.uuid4(), self.user.id)

    async def test_pair_is_unique_in_the_store(self):
        await self.make_like(self.report, self.user)
        self.session.add(Like(report_id=self.report.id, user_id=self.user.id))
        with self.assertRaises(IntegrityError):
            await self.session.commit()
        await self.session.rollback()
        self.assertEqual(await self._rows(), 1)


class TestAgencyNotes(DatabaseTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.citizen = await self.make_user("Ana")
        self.agency = await self.make_user("ONG", role=UserRole.AGENCY)
        self.report = await self.make_report(self.citizen)

    async def test_agency_adds_and_reads_notes(self):
        first = await AgencyNoteService.add_note(
            self.session, self.report.id, identity_for(self.agency), "Team dispatched"
        )
        self.assertEqual(first.author_name, "ONG")
        await AgencyNoteService.add_note(
            self.session, self.report.id, identity_for(self.agency), "Animal rescued"
        )

        notes = await AgencyNoteService.list_notes(self.session, self.report.id, identity_for(self.agency))
        self.assertEqual(len(notes), 2)
        self.assertEqual({n.content for n in notes}, {"Team dispatched", "Animal rescued"})

    async def test_citizens_cannot_read_or_write(self):
        with self.assertRaises(AuthorizationError):
            await AgencyNoteService.add_note(
                self.session, self.report.id, identity_for(self.citizen), "hi"
            )
        with self.assertRaises(AuthorizationError):
            await AgencyNoteService.list_notes(self.session, self.report.id, identity_for(self.citizen))

    async def test_validation(self):
        with self.assertRaises(ValidationError):
            await AgencyNoteService.add_note(self.session, self.report.id, identity_for(self.agency), "")
        with self.assertRaises(NotFoundError):
            await AgencyNoteService.add_note(self.session, uuid.uuid4(), identity_for(self.agency), "x")
