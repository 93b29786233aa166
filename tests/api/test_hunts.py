import uuid

from tests.api.base import ApiTestBase


class HuntCollectionTests(ApiTestBase):
    def _seed_collection(self):
        for index in range(8):
            self.seed_hunt(index, num_of_players=4 + index)
        self.seed_hunt(8, difficulty="hard", num_of_players=6)
        self.seed_hunt(9, difficulty="easy", num_of_players=2)

    def test_list_defaults_to_newest_first(self):
        self._seed_collection()
        response = self.client.get("/api/v1/hunts")
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["status"], "success")
        self.assertEqual(body["results"], 10)
        hunts = body["data"]["hunts"]
        self.assertEqual(hunts[0]["title"], "Hunt 9")
        self.assertEqual(hunts[-1]["title"], "Hunt 0")
        self.assertNotIn("version_id", hunts[0])
        self.assertEqual(hunts[0]["num_of_items"], 0)

    def test_filter_sort_fields_and_page(self):
        self._seed_collection()
        response = self.client.get(
            "/api/v1/hunts",
            params={
                "difficulty": "easy",
                "num_of_players[gte]": "4",
                "sort": "-created_at",
                "fields": "title,difficulty",
                "page": "2",
                "limit": "5",
            },
        )
        self.assertEqual(response.status_code, 200)
        hunts = response.json()["data"]["hunts"]
        self.assertEqual([hunt["title"] for hunt in hunts], ["Hunt 2", "Hunt 1", "Hunt 0"])
        self.assertEqual(set(hunts[0]), {"id", "title", "difficulty"})

    def test_page_past_filtered_results_is_404(self):
        self._seed_collection()
        response = self.client.get(
            "/api/v1/hunts",
            params={"difficulty": "easy", "num_of_players[gte]": "4", "page": "3", "limit": "5"},
        )
        self.assertEqual(response.status_code, 404)
        body = response.json()
        self.assertEqual(body["status"], "fail")
        self.assertEqual(body["last_page"], 2)

    def test_first_page_of_empty_collection(self):
        response = self.client.get("/api/v1/hunts", params={"page": "1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["results"], 0)

    def test_repeated_value_filters_by_any(self):
        self._seed_collection()
        response = self.client.get("/api/v1/hunts?difficulty=hard&difficulty=medium&fields=title")
        self.assertEqual(response.status_code, 200)
        self.assertEqual([hunt["title"] for hunt in response.json()["data"]["hunts"]], ["Hunt 8"])

    def test_bad_query_parameters_are_400(self):
        for query in (
            "fields=title,-description",
            "num_of_players[ne]=3",
            "unknown=1",
            "sort=-",
            "limit=0",
            "a[b][c]=1",
        ):
            with self.subTest(query=query):
                response = self.client.get(f"/api/v1/hunts?{query}")
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["status"], "fail")


    def test_camel_case_query_from_original_clients(self):
        self._seed_collection()
        response = self.client.get(
            "/api/v1/hunts",
            params={
                "difficulty": "easy",
                "numOfPlayers[gte]": "4",
                "sort": "-createdAt",
                "fields": "title,difficulty",
                "page": "2",
                "limit": "5",
            },
        )
        self.assertEqual(response.status_code, 200)
        hunts = response.json()["data"]["hunts"]
        self.assertEqual([hunt["title"] for hunt in hunts], ["Hunt 2", "Hunt 1", "Hunt 0"])
        self.assertEqual(set(hunts[0]), {"id", "title", "difficulty"})

    def test_legacy_scavhunt_mount(self):
        self._seed_collection()
        response = self.client.get("/api/v1/scavhunt", params={"sort": "createdAt", "limit": "1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["hunts"][0]["title"], "Hunt 0")

    def test_string_field_comparison_uses_text_as_sent(self):
        self.seed_hunt(1, title="100001")
        self.seed_hunt(2, title="007")
        self.seed_hunt(3, title="Zebra")
        response = self.client.get("/api/v1/hunts", params={"title[lte]": "1e5", "sort": "title", "fields": "title"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([hunt["title"] for hunt in response.json()["data"]["hunts"]], ["007", "100001"])

        response = self.client.get("/api/v1/hunts", params={"title[gte]": "007", "title[lte]": "007"})
        self.assertEqual([hunt["title"] for hunt in response.json()["data"]["hunts"]], ["007"])

    def test_oversized_number_is_400(self):
        self._seed_collection()
        for params in (
            {"num_of_players[gte]": "99999999999999999999"},
            {"num_of_players[gte]": "99999999999999999999", "page": "2", "limit": "5"},
        ):
            with self.subTest(params=params):
                response = self.client.get("/api/v1/hunts", params=params)
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.json()["status"], "fail")


class HuntRecordTests(ApiTestBase):
    payload = {
        "title": "Park hunt",
        "description": "Find the clues in the park",
        "difficulty": "medium",
        "num_of_players": 3,
        "items": [{"name": "bench", "clue": "where you rest"}],
        "start_date": "2026-05-01T10:00:00Z",
        "end_date": "2026-05-01T14:00:00Z",
    }

    def test_create_get_update_delete(self):
        created = self.client.post("/api/v1/hunts", json=self.payload)
        self.assertEqual(created.status_code, 201)
        hunt = created.json()["data"]["hunt"]
        self.assertEqual(hunt["title"], "Park hunt")
        self.assertEqual(hunt["num_of_items"], 1)
        self.assertEqual(hunt["items"][0]["image"], "image")
        self.assertFalse(hunt["items"][0]["completed"])
        self.assertFalse(hunt["completed"])
        self.assertNotIn("version_id", hunt)

        fetched = self.client.get(f"/api/v1/hunts/{hunt['id']}")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["data"]["hunt"]["difficulty"], "medium")

        updated = self.client.patch(f"/api/v1/hunts/{hunt['id']}", json={"completed": True, "title": " Renamed "})
        self.assertEqual(updated.status_code, 200)
        self.assertTrue(updated.json()["data"]["hunt"]["completed"])
        self.assertEqual(updated.json()["data"]["hunt"]["title"], "Renamed")

        deleted = self.client.delete(f"/api/v1/hunts/{hunt['id']}")
        self.assertEqual(deleted.status_code, 204)
        self.assertEqual(self.client.get(f"/api/v1/hunts/{hunt['id']}").status_code, 404)

    def test_participants(self):
        ann_id = self.seed_user("ann", "ann@example.com")
        bob_id = self.seed_user("bob", "bob@example.com", minutes=1)
        created = self.client.post("/api/v1/hunts", json={**self.payload, "participants": [ann_id, bob_id, ann_id]})
        self.assertEqual(created.status_code, 201)
        hunt = created.json()["data"]["hunt"]
        self.assertEqual(sorted(hunt["participants"]), sorted([ann_id, bob_id]))
        self.assertEqual(hunt["num_of_participants"], 2)

        listed = self.client.get("/api/v1/hunts").json()["data"]["hunts"]
        self.assertEqual(listed[0]["num_of_participants"], 2)

        user = self.client.get(f"/api/v1/users/{ann_id}").json()["data"]["user"]
        self.assertEqual(user["hunts"], [hunt["id"]])

        updated = self.client.patch(f"/api/v1/hunts/{hunt['id']}", json={"participants": [bob_id]})
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["data"]["hunt"]["participants"], [bob_id])
        self.assertEqual(updated.json()["data"]["hunt"]["num_of_participants"], 1)

    def test_unknown_participant_is_400(self):
        response = self.client.post("/api/v1/hunts", json={**self.payload, "participants": [str(uuid.uuid4())]})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Unknown participant id")

    def test_create_requires_fields(self):
        response = self.client.post("/api/v1/hunts", json={"title": "No dates"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["status"], "fail")
        self.assertIn("Invalid input data", response.json()["message"])

    def test_update_rejects_null_title(self):
        hunt_id = self.seed_hunt(1)
        response = self.client.patch(f"/api/v1/hunts/{hunt_id}", json={"title": None})
        self.assertEqual(response.status_code, 400)

    def test_unknown_and_malformed_ids(self):
        missing = self.client.get(f"/api/v1/hunts/{uuid.uuid4()}")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["message"], "No hunt found with that ID")
        self.assertEqual(self.client.get("/api/v1/hunts/not-an-id").status_code, 400)
