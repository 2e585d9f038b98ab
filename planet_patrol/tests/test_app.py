import os
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from planet_patrol.app import create_app
from planet_patrol.config import get_settings
from planet_patrol.dependencies import (
    get_candidate_loop,
    get_document_store,
    get_file_store,
    get_folder_loop,
    reset_dependencies,
)
from planet_patrol.errors import RemoteStoreError

TEST_ENV = {
    "USE_IN_MEMORY_BACKENDS": "true",
    "START_REFRESH_LOOPS": "false",
    "CANDIDATE_PAGE_DELAY_SECONDS": "0",
    "DRIVE_ROOT_FOLDER_ID": "root",
}
ALICE = {"X-Reviewer-Id": "user:alice@example.com"}


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.env = patch.dict(os.environ, TEST_ENV)
        self.env.start()
        get_settings.cache_clear()
        reset_dependencies()
        self.client = TestClient(create_app())

        self.store = get_document_store()
        self.store.insert({"_id": "user:alice@example.com", "name": "Alice"})
        self.store.insert({"_id": "user:paper", "name": "Paper"})
        self.store.insert({"_id": "tic:100", "period": 1.2, "dispositions": {}})
        self.store.insert(
            {
                "_id": "tic:200",
                "period": 4.8,
                "dispositions": {
                    "user:alice@example.com": {"disposition": "PC", "comments": ""},
                    "user:paper": {"disposition": "EB", "comments": "v-shaped"},
                    "user:deleted": {"disposition": "FP", "comments": ""},
                },
            }
        )
        get_candidate_loop().trigger()

    def tearDown(self):
        reset_dependencies()
        self.env.stop()
        get_settings.cache_clear()

    def test_all_tics_served_from_snapshot(self):
        response = self.client.get("/api/all-tics")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([item["id"] for item in response.json()], ["100", "200"])

        # New documents only show up after the next refresh.
        self.store.insert({"_id": "tic:300"})
        self.assertEqual(len(self.client.get("/api/all-tics").json()), 2)
        get_candidate_loop().trigger()
        self.assertEqual(len(self.client.get("/api/all-tics").json()), 3)

    def test_answered_tics_requires_reviewer(self):
        self.assertEqual(self.client.get("/api/answered-tics").status_code, 401)
        response = self.client.get("/api/answered-tics", headers=ALICE)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"answered": [{"id": "200", "length": 3}], "unanswered": [{"id": "100", "length": 0}]},
        )

    def test_me(self):
        response = self.client.get("/api/me", headers=ALICE)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["name"], "Alice")
        self.assertEqual(
            self.client.get("/api/me", headers={"X-Reviewer-Id": "user:nobody"}).status_code,
            401,
        )

    def test_reviewer_lookup_outage_is_bad_gateway(self):
        with patch.object(self.store, "get", side_effect=RemoteStoreError("down")):
            with self.assertLogs("planet_patrol.routes", level="ERROR"):
                response = self.client.get("/api/me", headers=ALICE)
        self.assertEqual(response.status_code, 502)

    def test_tic_detail_resolves_names(self):
        response = self.client.get("/api/tic/200")
        self.assertEqual(response.status_code, 200)
        names = sorted(entry["name"] for entry in response.json()["dispositions"])
        self.assertEqual(names, ["Alice", "Paper"])
        self.assertEqual(self.client.get("/api/tic/999").status_code, 404)

    def test_submit_disposition(self):
        response = self.client.post(
            "/api/submit/100",
            json={"disposition": "PC", "comments": "clear transit"},
            headers=ALICE,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Success")
        stored = self.store.get("tic:100")["dispositions"]["user:alice@example.com"]
        self.assertEqual(stored, {"disposition": "PC", "comments": "clear transit"})

    def test_submit_rejections(self):
        cases = [
            ("/api/submit/100", {"comments": "no verdict"}, ALICE, 400),
            ("/api/submit/100", {"disposition": "PC", "group": True}, ALICE, 403),
            ("/api/submit/999", {"disposition": "PC"}, ALICE, 404),
            ("/api/submit/100", {"disposition": "PC"}, {}, 401),
        ]
        for path, body, headers, expected in cases:
            with self.subTest(body=body, expected=expected):
                response = self.client.post(path, json=body, headers=headers)
                self.assertEqual(response.status_code, expected)
        self.assertEqual(self.store.get("tic:100")["dispositions"], {})

    def test_files_for_candidate(self):
        file_store = get_file_store()
        file_store.add_folder("lightcurves", "root")
        file_store.add_file("f1", "lightcurves", "TIC100_lc.pdf")
        get_folder_loop().trigger()

        response = self.client.get("/api/files/100")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()[0]["name"], "TIC100_lc.pdf")
        self.assertEqual(response.json()[0]["mimeType"], "application/pdf")
        self.assertEqual(self.client.get("/api/files/999").status_code, 404)

    def test_csv_exports(self):
        response = self.client.get("/api/csv")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        self.assertIn(
            "planet-patrol-dispositions.csv", response.headers["content-disposition"]
        )
        self.assertEqual(len(response.text.splitlines()), 2)

        response = self.client.get("/api/csv/all")
        self.assertIn("-all.csv", response.headers["content-disposition"])
        self.assertEqual(len(response.text.splitlines()), 3)

    def test_status_and_manual_refresh(self):
        response = self.client.get("/api/status")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["candidates"], 2)
        self.assertEqual(payload["folders"], 0)
        self.assertIsNotNone(payload["candidate_refresh"]["last_success_at"])

        self.assertEqual(self.client.post("/api/refresh/unknown").status_code, 404)
        response = self.client.post("/api/refresh/folders")
        self.assertEqual(response.status_code, 202)
        self.assertEqual(response.json()["loop"], "folders")


if __name__ == "__main__":
    unittest.main()
