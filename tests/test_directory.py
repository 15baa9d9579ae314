"""Tests for the directory client."""
import pytest

from app.core.errors import DirectoryUnavailableError, MalformedDocumentError
from app.models.member import Member
from app.models.point_request import PointRequest
from app.models.recipe import RecipePost
from app.repositories.directory import MEMBERS, POINT_REQUESTS, RECIPES


def _recipe(recipe_id: int, likes: int = 0) -> RecipePost:
    return RecipePost(id=recipe_id, author="Hanako", menu_name="Curry", date="2026/10/17", likes=likes)


@pytest.mark.asyncio
class TestDirectoryClient:

    async def test_insert_then_find_one(self, directory, sample_member):
        ref = await directory.insert(MEMBERS, sample_member)

        found = await directory.find_one(MEMBERS, email="hanako@example.com")

        assert found is not None
        assert found.ref == ref
        assert isinstance(found.record, Member)
        assert found.record.serial_number == "WK-1234"

    async def test_find_one_uses_every_filter(self, directory, sample_member):
        await directory.insert(MEMBERS, sample_member)

        assert await directory.find_one(MEMBERS, email=sample_member.email, nickname="Other") is None

    async def test_documents_use_camel_case_fields(self, directory, mongo_db, sample_member):
        await directory.insert(MEMBERS, sample_member)

        raw = await mongo_db["members"].find_one({"email": sample_member.email})
        assert "tarotCredits" in raw
        assert "ageGroup" in raw

    async def test_malformed_document_is_rejected(self, directory, mongo_db):
        await mongo_db["members"].insert_one({"email": "broken@example.com", "points": -4})

        with pytest.raises(MalformedDocumentError):
            await directory.find_one(MEMBERS, email="broken@example.com")

    async def test_offline_calls_raise_unavailable(self, offline_directory, sample_member):
        with pytest.raises(DirectoryUnavailableError):
            await offline_directory.find_one(MEMBERS, email=sample_member.email)
        with pytest.raises(DirectoryUnavailableError):
            await offline_directory.insert(MEMBERS, sample_member)

    async def test_transport_errors_become_unavailable(self, failing_directory, sample_member):
        with pytest.raises(DirectoryUnavailableError):
            await failing_directory.find_one(MEMBERS, email=sample_member.email)
        with pytest.raises(DirectoryUnavailableError):
            await failing_directory.find_all(MEMBERS, "registeredAt")

    async def test_point_request_id_comes_from_document(self, directory):
        ref = await directory.insert(
            POINT_REQUESTS, PointRequest(member_email="hanako@example.com", nickname="Hanako")
        )

        found = await directory.get(ref)

        assert found.record.id == str(ref.id)
        assert found.record.is_pending

    async def test_find_all_orders_descending_and_skips_malformed(self, directory, mongo_db):
        for recipe_id in (3, 1, 2):
            await directory.insert(RECIPES, _recipe(recipe_id))
        await mongo_db["recipes"].insert_one({"id": 9, "menuName": "no author"})

        recipes = await directory.find_all(RECIPES, "id")

        assert [r.id for r in recipes] == [3, 2, 1]

    async def test_increment_is_additive(self, directory):
        ref = await directory.insert(RECIPES, _recipe(1, likes=2))

        await directory.increment(ref, "likes", 1)
        await directory.increment(ref, "likes", 1)

        found = await directory.get(ref)
        assert found.record.likes == 4

    async def test_update_fields_overwrites_only_given_fields(self, directory, sample_member):
        ref = await directory.insert(MEMBERS, sample_member)

        await directory.update_fields(ref, {"points": 5})

        found = await directory.get(ref)
        assert found.record.points == 5
        assert found.record.nickname == "Hanako"

    async def test_subscribe_pushes_snapshots_on_change(self, directory, wait_until):
        snapshots = []
        subscription = directory.subscribe(RECIPES, "id", snapshots.append)
        try:
            await wait_until(lambda: len(snapshots) == 1)
            assert snapshots[0] == []

            await directory.insert(RECIPES, _recipe(1))
            await wait_until(lambda: len(snapshots) == 2)
            assert [r.id for r in snapshots[1]] == [1]
        finally:
            subscription.cancel()

    async def test_subscribe_reports_errors(self, failing_directory, wait_until):
        errors = []
        subscription = failing_directory.subscribe(MEMBERS, "registeredAt", lambda _: None, errors.append)

        await wait_until(lambda: len(errors) == 1)
        assert isinstance(errors[0], DirectoryUnavailableError)
        assert not subscription.active

    async def test_subscribe_offline_raises(self, offline_directory):
        with pytest.raises(DirectoryUnavailableError):
            offline_directory.subscribe(MEMBERS, "registeredAt", lambda _: None)

    async def test_subscribe_reports_handler_failures(self, directory, wait_until):
        errors = []

        def broken_handler(records):
            raise TypeError("bad snapshot")

        subscription = directory.subscribe(RECIPES, "id", broken_handler, errors.append)

        await wait_until(lambda: len(errors) == 1)
        assert isinstance(errors[0], TypeError)
        await wait_until(lambda: not subscription.active)
