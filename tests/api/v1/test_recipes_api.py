import pytest

API = "/api/v1/recipes"


@pytest.mark.asyncio
class TestRecipesApi:

    async def test_submit_requires_sign_in(self, client):
        response = await client.post(API, json={"menuName": "Curry"})

        assert response.status_code == 401

    async def test_submit_and_list_today(self, client, services, sample_member):
        services.context.begin(sample_member)

        response = await client.post(API, json={"menuName": "Curry", "description": "Spicy"})
        assert response.status_code == 201
        assert response.json()["author"] == "Hanako"

        feed = (await client.get(f"{API}/today")).json()
        assert feed["date"] == "2026/10/17"
        assert feed["todayCount"] == 1
        assert feed["dailyLimit"] == 10
        assert feed["limitReached"] is False
        assert [p["menuName"] for p in feed["posts"]] == ["Curry"]

    async def test_daily_pool_is_enforced(self, client, services, sample_member):
        services.context.begin(sample_member)
        for _ in range(10):
            await client.post(API, json={"menuName": "Curry"})

        response = await client.post(API, json={"menuName": "Curry"})

        assert response.status_code == 429
        assert (await client.get(f"{API}/today")).json()["limitReached"] is True

    async def test_like(self, client, services, sample_member):
        services.context.begin(sample_member)
        post = (await client.post(API, json={"menuName": "Curry"})).json()

        response = await client.post(f"{API}/{post['id']}/like")

        assert response.status_code == 200
        assert response.json()["likes"] == 1

    async def test_like_unknown(self, client):
        response = await client.post(f"{API}/123/like")

        assert response.status_code == 404
