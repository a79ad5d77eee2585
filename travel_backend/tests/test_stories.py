import unittest

from travel_backend.db import STORIES
from travel_backend.routes.user import make_excerpt, read_time_minutes
from travel_backend.security import Role
from travel_backend.tests.support import ApiTestCase


class ProfileTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.user = self.create_user(username="judy", email="judy@example.com")
        self.headers = self.auth_headers(self.user)

    def test_get_profile_has_no_password(self):
        data = self.client.get("/api/user/profile", headers=self.headers).json()["data"]
        self.assertEqual(data["username"], "judy")
        self.assertEqual(data["name"], "")
        self.assertNotIn("password", data)

    def test_update_only_provided_fields(self):
        response = self.client.put(
            "/api/user/profile", headers=self.headers, json={"name": "Judy Hopps"}
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()["data"]
        self.assertEqual(data["name"], "Judy Hopps")
        self.assertEqual(data["username"], "judy")

    def test_username_clash(self):
        self.create_user(username="nick")
        response = self.client.put(
            "/api/user/profile", headers=self.headers, json={"username": "nick"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Username already exists")


class UserStoryTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.author = self.create_user(username="kim", name="Kim Lee")
        self.headers = self.auth_headers(self.author)

    def _publish(self, **overrides):
        payload = {"title": "Monsoon in Munnar", "content": "Tea gardens in the rain."}
        payload.update(overrides)
        return self.client.post("/api/user/stories", headers=self.headers, json=payload)

    def test_publish_fills_derived_fields(self):
        response = self._publish()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["slug"], "monsoon-in-munnar")

        stored = self.store.get(STORIES, response.json()["data"]["id"])
        self.assertEqual(stored["authorId"], self.author["id"])
        self.assertEqual(stored["authorName"], "Kim Lee")
        self.assertEqual(stored["excerpt"], "Tea gardens in the rain.")
        self.assertEqual(stored["category"], "Travel")
        self.assertEqual(stored["readTimeMinutes"], 1)

    def test_repeated_titles_get_numbered_slugs(self):
        slugs = [self._publish().json()["data"]["slug"] for _ in range(3)]
        self.assertEqual(
            slugs, ["monsoon-in-munnar", "monsoon-in-munnar-2", "monsoon-in-munnar-3"]
        )

    def test_publish_validation(self):
        self.assertEqual(self._publish(title=" ").json()["error"], "Title is required")
        self.assertEqual(self._publish(content="").json()["error"], "Story content is required")
        self.assertEqual(self._publish(title="!!!").json()["error"], "Slug could not be generated")

    def test_list_own_stories(self):
        self._publish()
        other = self.create_user(username="lee")
        self.client.post(
            "/api/user/stories",
            headers=self.auth_headers(other),
            json={"title": "Elsewhere", "content": "Not mine"},
        )
        data = self.client.get("/api/user/stories", headers=self.headers).json()["data"]
        self.assertEqual([item["title"] for item in data], ["Monsoon in Munnar"])
        self.assertNotIn("content", data[0])

    def test_update_regenerates_slug_on_title_change(self):
        story_id = self._publish().json()["data"]["id"]
        response = self.client.put(
            f"/api/user/stories/{story_id}",
            headers=self.headers,
            json={"title": "Winter in Munnar", "image": "/uploads/stories/x.png"},
        )
        self.assertEqual(response.status_code, 200)
        stored = self.store.get(STORIES, story_id)
        self.assertEqual(stored["slug"], "winter-in-munnar")
        self.assertEqual(stored["images"], ["/uploads/stories/x.png"])
        self.assertEqual(stored["content"], "Tea gardens in the rain.")

    def test_only_owner_or_admin_can_modify(self):
        story_id = self._publish().json()["data"]["id"]
        stranger = self.auth_headers(self.create_user(username="stranger"))

        response = self.client.put(
            f"/api/user/stories/{story_id}", headers=stranger, json={"title": "Mine now"}
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(
            self.client.delete(f"/api/user/stories/{story_id}", headers=stranger).status_code,
            403,
        )

        admin = self.auth_headers(self.create_user(username="root", role=Role.ADMIN))
        response = self.client.delete(f"/api/user/stories/{story_id}", headers=admin)
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(self.store.get(STORIES, story_id))

    def test_missing_story(self):
        response = self.client.delete("/api/user/stories/unknown", headers=self.headers)
        self.assertEqual(response.status_code, 404)


class StoryHelperTests(unittest.TestCase):
    def test_read_time(self):
        self.assertEqual(read_time_minutes(""), 1)
        self.assertEqual(read_time_minutes("word " * 200), 1)
        self.assertEqual(read_time_minutes("word " * 201), 2)

    def test_excerpt(self):
        self.assertEqual(make_excerpt("short"), "short")
        self.assertEqual(make_excerpt("x" * 141), "x" * 140 + "...")


if __name__ == "__main__":
    unittest.main()
