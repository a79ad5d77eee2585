import unittest

from travel_backend.db import (
    DESTINATION_TRIPS,
    STORIES,
    USERS,
    InMemoryDocumentStore,
    SqlDocumentStore,
)
from travel_backend.errors import DuplicateKeyError
from travel_backend.query import Query


class DocumentStoreContract:
    """Behaviour shared by every store implementation."""

    store = None

    def test_insert_stamps_id_and_timestamps(self):
        doc = self.store.insert(STORIES, {"slug": "a", "title": "A"})
        self.assertTrue(doc["id"])
        self.assertTrue(doc["createdAt"])
        self.assertEqual(self.store.get(STORIES, doc["id"])["title"], "A")

    def test_unique_slug_enforced(self):
        self.store.insert(STORIES, {"slug": "dup"})
        with self.assertRaises(DuplicateKeyError) as ctx:
            self.store.insert(STORIES, {"slug": "dup"})
        self.assertEqual(ctx.exception.field, "slug")

    def test_sparse_username_index(self):
        self.store.insert(USERS, {"email": "one@example.com"})
        self.store.insert(USERS, {"email": "two@example.com"})
        with self.assertRaises(DuplicateKeyError):
            self.store.insert(USERS, {"email": "one@example.com"})

    def test_update_merges_and_checks_uniqueness(self):
        first = self.store.insert(STORIES, {"slug": "first", "title": "First"})
        self.store.insert(STORIES, {"slug": "second"})

        updated = self.store.update(STORIES, first["id"], {"title": "Renamed"})
        self.assertEqual(updated["slug"], "first")
        self.assertEqual(updated["title"], "Renamed")
        self.assertEqual(updated["createdAt"], first["createdAt"])

        with self.assertRaises(DuplicateKeyError):
            self.store.update(STORIES, first["id"], {"slug": "second"})
        self.assertEqual(self.store.get(STORIES, first["id"])["slug"], "first")

        self.assertIsNone(self.store.update(STORIES, "missing", {"title": "x"}))

    def test_find_with_query(self):
        self.store.insert(STORIES, {"slug": "x1", "authorId": "u1", "title": "Alps"})
        self.store.insert(STORIES, {"slug": "x2", "authorId": "u2", "title": "Andes"})
        found = self.store.find(STORIES, Query(equals={"authorId": "u2"}))
        self.assertEqual([doc["slug"] for doc in found], ["x2"])
        one = self.store.find_one(STORIES, Query(equals={"slug": "x1"}))
        self.assertEqual(one["title"], "Alps")
        self.assertIsNone(self.store.find_one(STORIES, Query(equals={"slug": "zz"})))

    def test_delete(self):
        doc = self.store.insert(STORIES, {"slug": "gone"})
        self.assertTrue(self.store.delete(STORIES, doc["id"]))
        self.assertFalse(self.store.delete(STORIES, doc["id"]))
        # Slug is free again once the owner is gone.
        self.store.insert(STORIES, {"slug": "gone"})

    def test_count_by(self):
        for slug, destination in (("a", "japan"), ("b", "japan"), ("c", "peru")):
            self.store.insert(DESTINATION_TRIPS, {"slug": slug, "destinationSlug": destination})
        counts = self.store.count_by(DESTINATION_TRIPS, "destinationSlug", ["japan", "chile"])
        self.assertEqual(counts, {"japan": 2})

    def test_collections_are_isolated(self):
        doc = self.store.insert(STORIES, {"slug": "shared"})
        self.assertIsNone(self.store.get(USERS, doc["id"]))
        self.store.insert(DESTINATION_TRIPS, {"slug": "shared"})


class InMemoryDocumentStoreTests(DocumentStoreContract, unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()

    def test_returned_documents_are_copies(self):
        doc = self.store.insert(STORIES, {"slug": "copy", "images": ["a"]})
        doc["images"].append("b")
        self.assertEqual(self.store.get(STORIES, doc["id"])["images"], ["a"])


class SqlDocumentStoreTests(DocumentStoreContract, unittest.TestCase):
    """
    Uses SQLite via SQLAlchemy URL for fast/local testing of the SQL store.
    """

    def setUp(self):
        self.store = SqlDocumentStore("sqlite+pysqlite:///:memory:")


if __name__ == "__main__":
    unittest.main()
