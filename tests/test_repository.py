"""
Application repository tests against an in-memory record store.

Run with: pytest tests/test_repository.py -v
"""

import asyncio

import pytest

from application_tracker.errors import NotFound, StoreUnavailable, ValidationError
from application_tracker.models.application import ApplicationStatus
from application_tracker.services.repository import ApplicationRepository

OWNER = "user-1"


@pytest.fixture
def repository(memory_store):
    return ApplicationRepository(memory_store)


class TestLoad:
    """Test loading the session collection."""

    @pytest.mark.asyncio
    async def test_load_orders_newest_first(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("old", minutes=1))
        memory_store.add(record_factory("new", minutes=5))
        memory_store.add(record_factory("mid", minutes=3))

        records = await repository.load(OWNER)

        assert [r.id for r in records] == ["new", "mid", "old"]
        assert repository.owner_id == OWNER

    @pytest.mark.asyncio
    async def test_load_only_returns_owner_records(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("mine"))
        memory_store.add(record_factory("theirs", owner_id="user-2"))

        records = await repository.load(OWNER)

        assert [r.id for r in records] == ["mine"]

    @pytest.mark.asyncio
    async def test_load_drops_foreign_rows_from_store(self, repository, memory_store, record_factory):
        foreign = record_factory("theirs", owner_id="user-2")

        async def leaky_list(owner_id):
            return [foreign, record_factory("mine")]

        memory_store.list = leaky_list

        records = await repository.load(OWNER)

        assert [r.id for r in records] == ["mine"]

    @pytest.mark.asyncio
    async def test_failed_load_keeps_collection(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)
        memory_store.unavailable = True

        with pytest.raises(StoreUnavailable):
            await repository.load(OWNER)

        assert [r.id for r in repository.records] == ["a"]

    @pytest.mark.asyncio
    async def test_load_empty(self, repository):
        assert await repository.load(OWNER) == ()
        assert len(repository) == 0


class TestCreate:
    """Test creating applications."""

    @pytest.mark.asyncio
    async def test_create_then_load(self, repository, memory_store, valid_fields):
        await repository.load(OWNER)

        created = await repository.create(OWNER, valid_fields)
        records = await ApplicationRepository(memory_store).load(OWNER)

        assert len(records) == 1
        stored = records[0]
        assert stored.id == created.id
        assert stored.created_at is not None
        assert stored.company == valid_fields["company"]
        assert stored.position == valid_fields["position"]
        assert stored.location == valid_fields["location"]
        assert stored.application_date.isoformat() == valid_fields["application_date"]
        assert stored.notes == valid_fields["notes"]
        assert stored.status is ApplicationStatus.APPLIED
        assert stored.updated_at is None

    @pytest.mark.asyncio
    async def test_create_puts_new_record_first(self, repository, memory_store, record_factory, valid_fields):
        memory_store.add(record_factory("seed", minutes=-10))
        await repository.load(OWNER)

        created = await repository.create(OWNER, valid_fields)

        assert [r.id for r in repository.records] == [created.id, "seed"]

    @pytest.mark.asyncio
    async def test_create_validation_error_skips_store(self, repository, memory_store):
        await repository.load(OWNER)

        with pytest.raises(ValidationError) as exc_info:
            await repository.create(OWNER, {"company": "Acme", "status": "pending"})

        assert set(exc_info.value.fields) == {"position", "location", "application_date", "status"}
        assert "insert" not in memory_store.calls
        assert repository.records == ()

    @pytest.mark.asyncio
    async def test_create_store_unavailable_keeps_collection(self, repository, memory_store, record_factory, valid_fields):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)
        memory_store.unavailable = True

        with pytest.raises(StoreUnavailable):
            await repository.create(OWNER, valid_fields)

        assert [r.id for r in repository.records] == ["a"]

    @pytest.mark.asyncio
    async def test_create_for_other_owner_rejected(self, repository, memory_store, valid_fields):
        await repository.load(OWNER)

        with pytest.raises(ValidationError) as exc_info:
            await repository.create("user-2", valid_fields)

        assert exc_info.value.fields == ("owner_id",)
        assert "insert" not in memory_store.calls

    @pytest.mark.asyncio
    async def test_create_before_load_adopts_owner(self, repository, valid_fields):
        created = await repository.create(OWNER, valid_fields)

        assert repository.owner_id == OWNER
        assert repository.records == (created,)


class TestUpdate:
    """Test editing applications."""

    @pytest.mark.asyncio
    async def test_update_applies_delta(self, repository, memory_store, record_factory):
        original = memory_store.add(record_factory("a", notes="first"))
        await repository.load(OWNER)

        updated = await repository.update("a", {"status": "interview", "notes": "Phone screen booked"})
        fresh = (await ApplicationRepository(memory_store).load(OWNER))[0]

        assert fresh == updated
        assert fresh.status is ApplicationStatus.INTERVIEW
        assert fresh.notes == "Phone screen booked"
        assert fresh.company == original.company
        assert fresh.created_at == original.created_at
        assert fresh.updated_at is not None
        assert fresh.updated_at >= fresh.created_at
        assert repository.get("a") == updated

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)
        before = repository.records

        with pytest.raises(NotFound):
            await repository.update("missing", {"status": "offer"})

        assert repository.records == before
        assert "update" not in memory_store.calls

    @pytest.mark.asyncio
    async def test_update_validation_error(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)

        with pytest.raises(ValidationError) as exc_info:
            await repository.update("a", {"company": "", "status": "hired"})

        assert exc_info.value.fields == ("company", "status")
        assert "update" not in memory_store.calls

    @pytest.mark.asyncio
    async def test_update_store_unavailable_keeps_collection(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)
        before = repository.records
        memory_store.unavailable = True

        with pytest.raises(StoreUnavailable):
            await repository.update("a", {"status": "offer"})

        assert repository.records == before

    @pytest.mark.asyncio
    async def test_update_deleted_elsewhere_drops_stale_entry(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("a"))
        memory_store.add(record_factory("b", minutes=1))
        await repository.load(OWNER)
        del memory_store.rows["a"]

        with pytest.raises(NotFound):
            await repository.update("a", {"status": "offer"})

        assert [r.id for r in repository.records] == ["b"]


class TestRemove:
    """Test deleting applications."""

    @pytest.mark.asyncio
    async def test_remove_then_load(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("a"))
        memory_store.add(record_factory("b", minutes=1))
        await repository.load(OWNER)

        await repository.remove("a")

        assert [r.id for r in repository.records] == ["b"]
        fresh = await ApplicationRepository(memory_store).load(OWNER)
        assert "a" not in {r.id for r in fresh}

    @pytest.mark.asyncio
    async def test_remove_unknown_id(self, repository, memory_store):
        await repository.load(OWNER)

        with pytest.raises(NotFound):
            await repository.remove("missing")

        assert "delete" not in memory_store.calls

    @pytest.mark.asyncio
    async def test_remove_store_unavailable_keeps_record(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)
        memory_store.unavailable = True

        with pytest.raises(StoreUnavailable):
            await repository.remove("a")

        assert [r.id for r in repository.records] == ["a"]

    @pytest.mark.asyncio
    async def test_remove_already_gone_drops_stale_entry(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)
        del memory_store.rows["a"]

        with pytest.raises(NotFound):
            await repository.remove("a")

        assert repository.records == ()


class TestSerialization:
    """Test that mutations run one at a time."""

    @pytest.mark.asyncio
    async def test_concurrent_creates_are_serialized(self, repository, memory_store, valid_fields):
        await repository.load(OWNER)
        in_flight = 0
        peak = 0
        original_insert = memory_store.insert

        async def slow_insert(new):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            try:
                return await original_insert(new)
            finally:
                in_flight -= 1

        memory_store.insert = slow_insert

        await asyncio.gather(*(repository.create(OWNER, valid_fields) for _ in range(3)))

        assert peak == 1
        assert len(repository) == 3
        assert len({r.id for r in repository.records}) == 3

    @pytest.mark.asyncio
    async def test_busy_while_mutation_in_flight(self, repository, memory_store, valid_fields):
        await repository.load(OWNER)
        seen = []
        original_insert = memory_store.insert

        async def observing_insert(new):
            seen.append(repository.busy)
            return await original_insert(new)

        memory_store.insert = observing_insert

        await repository.create(OWNER, valid_fields)

        assert seen == [True]
        assert repository.busy is False


class TestDerivedViews:
    """Test the filter and statistics shortcuts."""

    @pytest.mark.asyncio
    async def test_visible_and_summary(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("1", status="applied", minutes=1))
        memory_store.add(record_factory("2", company="Beta", status="offer", minutes=2))
        memory_store.add(record_factory("3", status="rejected", minutes=3))
        await repository.load(OWNER)

        assert [r.id for r in repository.visible("beta")] == ["2"]
        assert [r.id for r in repository.visible("", "rejected")] == ["3"]

        summary = repository.summary()
        assert summary.total_applications == 3
        assert summary.success_rate == 33
        assert [r.id for r in summary.recent] == ["3", "2", "1"]

    @pytest.mark.asyncio
    async def test_reset_discards_session(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)

        repository.reset()

        assert repository.records == ()
        assert repository.owner_id is None

    @pytest.mark.asyncio
    async def test_close_resets_and_closes_store(self, repository, memory_store, record_factory):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)

        await repository.close()

        assert repository.records == ()
        assert repository.owner_id is None
        assert memory_store.closed is True


class TestResetDuringMutation:
    """Test a session reset while a store write is pending."""

    @pytest.fixture
    def gate(self):
        return asyncio.Event()

    @pytest.mark.asyncio
    async def test_update_succeeds_after_reset(self, repository, memory_store, record_factory, gate):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)
        original_update = memory_store.update

        async def gated_update(record_id, fields):
            await gate.wait()
            return await original_update(record_id, fields)

        memory_store.update = gated_update

        pending = asyncio.create_task(repository.update("a", {"status": "offer"}))
        await asyncio.sleep(0)
        repository.reset()
        gate.set()
        updated = await pending

        assert updated.status is ApplicationStatus.OFFER
        assert memory_store.rows["a"].status is ApplicationStatus.OFFER
        assert repository.records == ()

    @pytest.mark.asyncio
    async def test_remove_succeeds_after_reset(self, repository, memory_store, record_factory, gate):
        memory_store.add(record_factory("a"))
        await repository.load(OWNER)
        original_delete = memory_store.delete

        async def gated_delete(record_id):
            await gate.wait()
            await original_delete(record_id)

        memory_store.delete = gated_delete

        pending = asyncio.create_task(repository.remove("a"))
        await asyncio.sleep(0)
        repository.reset()
        gate.set()
        await pending

        assert "a" not in memory_store.rows
        assert repository.records == ()
