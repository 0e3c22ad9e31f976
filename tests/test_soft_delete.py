"""소프트 삭제 테스트.

Soft-delete tests — models with a deleted_at column keep their rows on delete,
default reads hide them, and include_deleted queries still see them.
"""

import gc

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from repokit.repositories import Repository
from repokit.utils.exceptions import RecordNotFoundError
from tests.conftest import Author, Note


async def _load_including_deleted(db: AsyncSession, note_id: int) -> Note | None:
    result = await db.execute(
        select(Note).where(Note.id == note_id).execution_options(include_deleted=True)
    )
    return result.scalar_one_or_none()


class TestSoftDelete:
    """deleted_at 모델 삭제 테스트."""

    async def test_delete_sets_timestamp_and_keeps_row(self, notes: Repository[Note], db: AsyncSession):
        """삭제 후 기본 조회에서 제외, 직접 조회 시 deleted_at 설정된 행 존재."""
        note = await notes.create(Note(title="a"))
        note_id = note.id
        assert note_id
        assert note.deleted_at is None

        rows = await notes.delete(note)
        assert rows == 1

        assert await notes.find_one(note_id) is None
        with pytest.raises(RecordNotFoundError):
            await notes.find_one_or_fail(note_id)

        stored = await _load_including_deleted(db, note_id)
        assert stored is not None
        assert stored.deleted_at is not None
        assert stored.is_deleted

    async def test_deleted_rows_hidden_from_find_many(self, notes: Repository[Note]):
        """find_many 결과에서 삭제된 행 제외."""
        keep = await notes.create(Note(title="keep"))
        drop = await notes.create(Note(title="drop"))

        await notes.delete(drop)

        assert [n.id for n in await notes.find_many()] == [keep.id]
        with pytest.raises(RecordNotFoundError):
            await notes.find_many_or_fail(Note.title == "drop")

    async def test_delete_twice_affects_nothing(self, notes: Repository[Note]):
        """이미 삭제된 행은 다시 표시하지 않음."""
        note = await notes.create(Note(title="once"))
        first_stamp_rows = await notes.delete(note)
        stamp = note.deleted_at

        assert first_stamp_rows == 1
        assert await notes.delete(note) == 0
        assert note.deleted_at == stamp

    async def test_delete_marks_detached_instance(self, notes: Repository[Note], db: AsyncSession):
        """세션 밖 인스턴스로 삭제해도 호출자 인스턴스에 deleted_at 반영."""
        created = await notes.create(Note(title="detached"))
        note_id = created.id
        db.expunge_all()

        target = Note(id=note_id)
        assert await notes.delete(target) == 1
        assert target.deleted_at is not None

    async def test_delete_by_embedded_conditions(self, notes: Repository[Note]):
        """식별자 없이 속성 조건으로 소프트 삭제."""
        await notes.create(Note(title="n1", author_id=7))
        await notes.create(Note(title="n2", author_id=7))
        survivor = await notes.create(Note(title="n3", author_id=8))

        assert await notes.delete(Note(author_id=7)) == 2
        assert [n.id for n in await notes.find_many()] == [survivor.id]

    async def test_update_soft_deleted_row_does_not_duplicate(
        self, notes: Repository[Note], db: AsyncSession
    ):
        """삭제된 행의 식별자로 upsert하면 새 행을 만들지 않고 기존 행을 수정."""
        note = await notes.create(Note(title="old"))
        note_id = note.id
        await notes.delete(note)
        db.expunge_all()

        await notes.update(Note(id=note_id, title="edited"))

        total = await db.execute(
            select(func.count()).select_from(Note).execution_options(include_deleted=True)
        )
        assert total.scalar_one() == 1
        stored = await _load_including_deleted(db, note_id)
        assert stored is not None
        assert stored.title == "edited"
        assert stored.deleted_at is not None

    async def test_update_soft_deleted_row_after_gc(self, notes: Repository[Note], db: AsyncSession):
        """세션 밖 참조가 없는 삭제 행도 upsert 시 수정되고, 호출자 인스턴스에 저장값 반영."""
        note = await notes.create(Note(title="old", author_id=7))
        note_id = note.id
        await notes.delete(note)
        db.expunge_all()
        del note
        gc.collect()

        edited = Note(id=note_id, title="edited")
        await notes.update(edited)

        assert edited.title == "edited"
        assert edited.author_id == 7
        assert edited.deleted_at is not None
        assert await notes.find_one(note_id) is None

    async def test_escape_hatch_query_is_filtered_by_default(self, notes: Repository[Note]):
        """get_handle 쿼리도 기본적으로 삭제된 행 제외."""
        live = await notes.create(Note(title="live"))
        gone = await notes.create(Note(title="gone"))
        await notes.delete(gone)

        result = await notes.get_handle().execute(select(Note))
        assert [n.id for n in result.scalars().all()] == [live.id]


class TestHardDeleteScenario:
    """deleted_at 없는 모델의 생성 → 삭제 → 조회 시나리오."""

    async def test_create_delete_find(self, authors: Repository[Author]):
        """새 식별자 부여 후 삭제하면 조회 결과 없음."""
        author = await authors.create(Author(name="a"))
        assert author.id

        await authors.delete(author)

        assert await authors.find_one(author.id) is None
        with pytest.raises(RecordNotFoundError):
            await authors.find_one_or_fail(author.id)
