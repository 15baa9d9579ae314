import pytest

from app.models.point_request import PointRequest
from app.repositories.directory import POINT_REQUESTS

API = "/api/v1/admin"


@pytest.mark.asyncio
class TestAdminApi:

    async def test_wrong_passphrase(self, client):
        response = await client.get(f"{API}/members", headers={"X-Staff-Passphrase": "nope"})
        assert response.status_code == 403

        response = await client.get(f"{API}/members")
        assert response.status_code == 403

    async def test_list_members_after_refresh(self, client, staff_headers, remote_member):
        await client.post(f"{API}/refresh", headers=staff_headers)

        response = await client.get(f"{API}/members", headers=staff_headers)

        assert response.status_code == 200
        assert [m["email"] for m in response.json()] == [remote_member.email]

    async def test_approve_point_request(self, client, staff_headers, directory, remote_member):
        ref = await directory.insert(
            POINT_REQUESTS, PointRequest(member_email=remote_member.email, nickname="Hanako")
        )
        await client.post(f"{API}/refresh", headers=staff_headers)
        assert len((await client.get(f"{API}/point-requests", headers=staff_headers)).json()) == 1

        response = await client.post(f"{API}/point-requests/{ref.id}/approve", headers=staff_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["request"]["status"] == "approved"
        assert data["member"]["points"] == 1
        assert (await client.get(f"{API}/point-requests", headers=staff_headers)).json() == []

        again = await client.post(f"{API}/point-requests/{ref.id}/approve", headers=staff_headers)
        assert again.status_code == 409

    async def test_reject_point_request(self, client, staff_headers, directory, remote_member):
        ref = await directory.insert(
            POINT_REQUESTS, PointRequest(member_email=remote_member.email, nickname="Hanako")
        )

        response = await client.post(f"{API}/point-requests/{ref.id}/reject", headers=staff_headers)

        assert response.status_code == 200
        assert response.json()["request"]["status"] == "rejected"
        assert response.json()["member"] is None

    async def test_grant_credits(self, client, staff_headers, remote_member):
        response = await client.post(
            f"{API}/credits", json={"email": remote_member.email, "amount": 5}, headers=staff_headers
        )

        assert response.status_code == 200
        assert response.json()["tarotCredits"] == 5

        response = await client.post(
            f"{API}/credits", json={"email": remote_member.email, "amount": 0}, headers=staff_headers
        )
        assert response.json() is None

    async def test_grant_credits_unknown_member(self, client, staff_headers):
        response = await client.post(
            f"{API}/credits", json={"email": "ghost@example.com", "amount": 5}, headers=staff_headers
        )

        assert response.status_code == 404

    async def test_offline_actions_are_unavailable(self, offline_client, staff_headers):
        response = await offline_client.post(
            f"{API}/credits", json={"email": "a@example.com", "amount": 5}, headers=staff_headers
        )

        assert response.status_code == 503
        assert (await offline_client.get(f"{API}/members", headers=staff_headers)).json() == []
