import json
import os
import tempfile
import unittest

from fastapi.testclient import TestClient

from application.management import create_account, create_user
from infrastructure.db.unit_of_work_sqlite import SqliteUnitOfWork
from infrastructure.riot.proxy import ProxyResponse, RiotProxy
from interfaces.http.handlers import create_http_app


class ScriptedTransport:
    """Answers by URL suffix; anything unscripted gets a 404."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    async def fetch(self, url, headers):
        self.calls.append(url)
        for suffix, (status, payload) in self.routes.items():
            if url.split("?")[0].endswith(suffix):
                return ProxyResponse(status=status, body=json.dumps(payload).encode())
        return ProxyResponse(status=404, body=b'{"status":{"message":"Data not found"}}')


class HttpInterfaceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        db_path = os.path.join(self._tmp.name, "rentals.db")

        def uow_factory():
            return SqliteUnitOfWork(db_path)

        self.uow_factory = uow_factory
        uow_factory().ensure_schema()

        self.admin = create_user(uow_factory(), "admin@example.com", "pw", "ADMIN").user
        self.renter = create_user(uow_factory(), "john@example.com", "pw", "USER").user
        self.other = create_user(uow_factory(), "jane@example.com", "pw", "USER").user
        self.account = create_account(
            uow_factory(),
            username="login",
            password="s3cret",
            server="TR",
            nickname="Player#TR1",
            league="Silver 1",
            solo_lp=40,
        ).account

        self.transport = ScriptedTransport()
        self.transport.routes = {
            "/by-riot-id/Player/TR1": (200, {"puuid": "p-1"}),
            "/summoners/by-puuid/p-1": (200, {"id": "s-1", "profileIconId": 5, "summonerLevel": 100}),
            "/entries/by-summoner/s-1": (
                200,
                [{"queueType": "RANKED_SOLO_5x5", "tier": "GOLD", "rank": "IV", "leaguePoints": 12}],
            ),
            "/by-puuid/p-1/ids": (200, ["TR1_1"]),
            "/matches/TR1_1": (200, {"metadata": {"matchId": "TR1_1"}}),
        }
        app = create_http_app(uow_factory, RiotProxy("RGAPI-test", self.transport))
        self.client = TestClient(app)

    def tearDown(self) -> None:
        self.client.close()
        self._tmp.cleanup()

    def headers(self, user):
        return {"X-User-Id": user.id}

    def rent(self, user):
        return self.client.post(
            "/api/accounts/rent", json={"accountId": self.account.id}, headers=self.headers(user)
        )

    # -----------------
    # Caller resolution
    # -----------------
    def test_missing_or_unknown_caller_is_unauthorized(self):
        self.assertEqual(self.client.get("/api/accounts").status_code, 401)
        response = self.client.get("/api/accounts", headers={"X-User-Id": "nobody"})
        self.assertEqual(response.status_code, 401)
        self.assertIn("error", response.json())

    def test_admin_routes_reject_regular_users(self):
        response = self.client.get("/api/admin/users", headers=self.headers(self.renter))
        self.assertEqual(response.status_code, 403)

        response = self.client.get("/api/admin/users", headers=self.headers(self.admin))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["users"]), 3)

    # -----------------
    # Proxy
    # -----------------
    def test_proxy_missing_tag_is_rejected_locally(self):
        response = self.client.get("/api/riot-proxy/identity-lookup/euw1/Player")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "missing tag"})
        self.assertEqual(self.transport.calls, [])

    def test_proxy_unknown_kind(self):
        response = self.client.get("/api/riot-proxy/champion-rotation/euw1/x")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "invalid path"})

    def test_proxy_relays_upstream_answer(self):
        response = self.client.get("/api/riot-proxy/identity-lookup/TR1/Player/TR1")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"puuid": "p-1"})
        self.assertTrue(response.headers["content-type"].startswith("application/json"))
        self.assertEqual(
            self.transport.calls,
            ["https://europe.api.riotgames.com/riot/account/v1/accounts/by-riot-id/Player/TR1"],
        )

        missing = self.client.get("/api/riot-proxy/summoner-lookup/kr/nope")
        self.assertEqual(missing.status_code, 404)

    def test_proxy_keeps_encoded_separators_inside_a_segment(self):
        response = self.client.get("/api/riot-proxy/identity-lookup/euw1/a%2Fb/TAG")
        self.assertEqual(response.status_code, 404)

        self.client.get("/api/riot-proxy/identity-lookup/euw1/No%23Hash%20Here/EU%2FW")

        self.assertEqual(
            self.transport.calls,
            [
                "https://europe.api.riotgames.com/riot/account/v1/accounts/by-riot-id/a%2Fb/TAG",
                "https://europe.api.riotgames.com/riot/account/v1/accounts/by-riot-id/No%23Hash%20Here/EU%2FW",
            ],
        )

    def test_proxy_without_key_is_a_server_error(self):
        app = create_http_app(self.uow_factory, RiotProxy(None, self.transport))
        with TestClient(app) as client:
            response = client.get("/api/riot-proxy/summoner-lookup/euw1/p-1")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "RIOT_API_KEY missing"})

    # -----------------
    # Accounts
    # -----------------
    def test_listing_is_enriched_and_hides_passwords(self):
        response = self.client.get("/api/accounts", headers=self.headers(self.renter))

        self.assertEqual(response.status_code, 200)
        (account,) = response.json()["accounts"]
        self.assertEqual(account["league"], "GOLD IV")
        self.assertEqual(account["solo_lp"], 12)
        self.assertEqual(account["summoner"]["summonerLevel"], 100)
        self.assertNotIn("password", account)

        # enrichment is display-only
        with self.uow_factory() as uow:
            self.assertEqual(uow.accounts.get_by_id(self.account.id).league, "Silver 1")

    def test_rent_then_return(self):
        response = self.rent(self.renter)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["account"]["assigned_to"], self.renter.id)

        self.assertEqual(self.rent(self.other).status_code, 400)

        mine = self.client.get("/api/accounts/mine", headers=self.headers(self.renter)).json()
        self.assertEqual([a["id"] for a in mine["accounts"]], [self.account.id])
        self.assertEqual(mine["accounts"][0]["password"], "s3cret")

        body = {
            "accountId": self.account.id,
            "returnLeague": "Gold 2",
            "returnFlexLeague": "Unranked",
            "returnSoloLp": 20,
            "returnFlexLp": 0,
        }
        forbidden = self.client.post("/api/accounts/return", json=body, headers=self.headers(self.other))
        self.assertEqual(forbidden.status_code, 403)

        response = self.client.post("/api/accounts/return", json=body, headers=self.headers(self.renter))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["account"]["is_available"])
        self.assertEqual(response.json()["account"]["league"], "Gold 2")

    def test_return_body_is_validated(self):
        self.rent(self.renter)

        missing = self.client.post(
            "/api/accounts/return", json={"accountId": self.account.id}, headers=self.headers(self.renter)
        )
        out_of_range = self.client.post(
            "/api/accounts/return",
            json={"accountId": self.account.id, "returnLeague": "Gold 2", "returnSoloLp": 250},
            headers=self.headers(self.renter),
        )

        self.assertEqual(missing.status_code, 400)
        self.assertIn("error", missing.json())
        self.assertEqual(out_of_range.status_code, 400)

    def test_account_detail_for_admin_includes_history(self):
        self.rent(self.renter)

        response = self.client.get(f"/api/accounts/{self.account.id}", headers=self.headers(self.admin))

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["account"]["password"], "s3cret")
        self.assertEqual(body["account"]["matches"], [{"metadata": {"matchId": "TR1_1"}}])
        self.assertEqual(body["assignments"][0]["user_email"], "john@example.com")

    def test_account_detail_rented_by_someone_else_is_forbidden(self):
        self.rent(self.renter)
        response = self.client.get(f"/api/accounts/{self.account.id}", headers=self.headers(self.other))
        self.assertEqual(response.status_code, 403)

    def test_admin_release_and_delete(self):
        self.rent(self.renter)

        blocked = self.client.delete(f"/api/admin/accounts/{self.account.id}", headers=self.headers(self.admin))
        self.assertEqual(blocked.status_code, 400)

        released = self.client.post(
            "/api/admin/accounts/release",
            json={"accountId": self.account.id},
            headers=self.headers(self.admin),
        )
        self.assertEqual(released.status_code, 200)
        self.assertEqual(released.json()["account"]["league"], "Silver 1")

        deleted = self.client.delete(f"/api/admin/accounts/{self.account.id}", headers=self.headers(self.admin))
        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(
            self.client.get(f"/api/accounts/{self.account.id}", headers=self.headers(self.admin)).status_code,
            400,
        )

    def test_my_history_lists_only_the_callers_rentals(self):
        body = {"accountId": self.account.id, "returnLeague": "Gold 2"}
        self.rent(self.renter)
        self.client.post("/api/accounts/return", json=body, headers=self.headers(self.renter))
        self.rent(self.other)
        self.client.post("/api/accounts/return", json=body, headers=self.headers(self.other))
        self.rent(self.renter)

        response = self.client.get("/api/accounts/mine/history", headers=self.headers(self.renter))

        self.assertEqual(response.status_code, 200)
        history = response.json()["history"]
        self.assertEqual(len(history), 2)
        self.assertIsNone(history[0]["returned_at"])
        self.assertEqual(history[1]["league_at_return"], "Gold 2")
        self.assertGreater(history[0]["assigned_at"], history[1]["assigned_at"])
        self.assertEqual({h["user_id"] for h in history}, {self.renter.id})
        self.assertEqual(history[0]["account"]["username"], "login")
        self.assertEqual(history[0]["account"]["password"], "s3cret")

        other = self.client.get("/api/accounts/mine/history", headers=self.headers(self.other)).json()
        self.assertEqual(len(other["history"]), 1)
        self.assertNotIn("password", other["history"][0]["account"])

        self.assertEqual(self.client.get("/api/accounts/mine/history").status_code, 401)

    def test_dashboard_counts(self):
        create_account(self.uow_factory(), username="second", password="pw", server="EUW")
        self.rent(self.renter)

        response = self.client.get("/api/dashboard", headers=self.headers(self.renter))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"totalAccounts": 2, "availableAccounts": 1, "myAccounts": 1},
        )

    def test_admin_user_management(self):
        created = self.client.post(
            "/api/admin/users",
            json={"email": "vip@example.com", "password": "pw", "role": "VIP"},
            headers=self.headers(self.admin),
        )
        self.assertEqual(created.status_code, 200)
        user_id = created.json()["user"]["id"]

        bad_email = self.client.post(
            "/api/admin/users",
            json={"email": "not-an-email", "password": "pw", "role": "VIP"},
            headers=self.headers(self.admin),
        )
        self.assertEqual(bad_email.status_code, 400)

        patched = self.client.patch(
            f"/api/admin/users/{user_id}/role", json={"role": "USER"}, headers=self.headers(self.admin)
        )
        self.assertEqual(patched.json()["user"]["role"], "USER")

        removed = self.client.delete(f"/api/admin/users/{user_id}", headers=self.headers(self.admin))
        self.assertEqual(removed.status_code, 200)
        self.assertEqual(
            self.client.get("/api/accounts", headers={"X-User-Id": user_id}).status_code,
            401,
        )


if __name__ == "__main__":
    unittest.main()
