"""Admin HTTP API."""

import asyncio

from aiohttp import test_utils

from conftest import ADMIN_ID, CUSTOMER_ID, place_order
from icebot.web.admin_api import INIT_DATA_HEADER, create_web_app


def fake_verifier(init_data: str) -> int:
    """Init data in tests is just 'user=<id>'."""
    if not init_data.startswith("user="):
        raise ValueError("bad signature")
    return int(init_data.split("=", 1)[1])


ADMIN_HEADERS = {INIT_DATA_HEADER: f"user={ADMIN_ID}"}


def run_with_client(make_bot, check):
    async def scenario():
        bot, transport = make_bot()
        await place_order(bot)
        app = create_web_app(bot, admin_ids=[ADMIN_ID], verify_init_data=fake_verifier)
        async with test_utils.TestClient(test_utils.TestServer(app)) as client:
            await check(client, bot, transport)

    asyncio.run(scenario())


class TestAuth:
    def test_health_needs_no_auth(self, make_bot):
        async def check(client, bot, transport):
            response = await client.get("/")
            assert response.status == 200
            assert await response.json() == {"status": "ok"}

        run_with_client(make_bot, check)

    def test_missing_invalid_and_foreign_init_data(self, make_bot):
        async def check(client, bot, transport):
            assert (await client.get("/api/admin/orders")).status == 401
            response = await client.get("/api/admin/orders", headers={INIT_DATA_HEADER: "forged"})
            assert response.status == 401
            response = await client.get(
                "/api/admin/orders", headers={INIT_DATA_HEADER: f"user={CUSTOMER_ID}"}
            )
            assert response.status == 403

        run_with_client(make_bot, check)


class TestOrders:
    def test_list_and_get(self, make_bot):
        async def check(client, bot, transport):
            response = await client.get("/api/admin/orders", headers=ADMIN_HEADERS)
            assert response.status == 200
            orders = (await response.json())["orders"]
            assert [o["id"] for o in orders] == [1]
            assert orders[0]["items"] == [{"category": "sachet", "amount": "₱100"}]
            assert orders[0]["lat"] == 14.5

            response = await client.get("/api/admin/orders?stage=2", headers=ADMIN_HEADERS)
            assert (await response.json())["orders"] == []
            response = await client.get("/api/admin/orders?stage=9", headers=ADMIN_HEADERS)
            assert response.status == 400

            response = await client.get("/api/admin/orders/1", headers=ADMIN_HEADERS)
            assert (await response.json())["order"]["status_label"] == "confirmed/preparing"
            assert (await client.get("/api/admin/orders/5", headers=ADMIN_HEADERS)).status == 404

        run_with_client(make_bot, check)

    def test_stage_changes(self, make_bot):
        async def check(client, bot, transport):
            url = "/api/admin/orders/1/stage"
            response = await client.post(url, json={"stage": 1}, headers=ADMIN_HEADERS)
            assert response.status == 200
            assert (await response.json())["order"]["stage"] == 1
            assert "out for delivery" in transport.last(CUSTOMER_ID).text

            assert (await client.post(url, json={"stage": 0}, headers=ADMIN_HEADERS)).status == 409
            assert (await client.post(url, json={}, headers=ADMIN_HEADERS)).status == 400
            assert (await client.post(url, data="{not json", headers=ADMIN_HEADERS)).status == 400
            response = await client.post(
                "/api/admin/orders/8/stage", json={"stage": 1}, headers=ADMIN_HEADERS
            )
            assert response.status == 404

            await client.post(url, json={"stage": 2}, headers=ADMIN_HEADERS)
            assert (await client.post(url, json={"stage": -1}, headers=ADMIN_HEADERS)).status == 409

        run_with_client(make_bot, check)

    def test_send_link_and_messages(self, make_bot):
        async def check(client, bot, transport):
            url = "/api/admin/orders/1/sendlink"
            assert (await client.post(url, json={"link": " "}, headers=ADMIN_HEADERS)).status == 400

            response = await client.post(
                url, json={"link": "https://t.example/9"}, headers=ADMIN_HEADERS
            )
            body = await response.json()
            assert body["order"]["delivery_link"] == "https://t.example/9"
            assert body["order"]["stage"] == 1
            assert "https://t.example/9" in transport.last(CUSTOMER_ID).text

            response = await client.get("/api/admin/orders/1/messages", headers=ADMIN_HEADERS)
            messages = (await response.json())["messages"]
            assert [(m["sender"], m["message"]) for m in messages] == [("admin", "https://t.example/9")]

        run_with_client(make_bot, check)
