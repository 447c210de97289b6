"""
Router tests: route precedence, the nine record operations and error shaping.
"""

import json
from datetime import datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from userrecords.core.router import RecordRouter, ROUTES
from userrecords.core.schema import Record, iso_timestamp
from userrecords.core.store import InMemoryRecordStore, RecordStoreError


def create(router, name="Ann Lee", email="ann@example.com"):
    response = router.dispatch("POST", "/records", body=json.dumps({"name": name, "email": email}))
    assert response.status_code == 201
    return response.json()


class TestRouting:
    """Method and path precedence."""

    def test_route_order(self):
        """Exact sub-paths are tried before the item prefix."""
        names = [route.name for route in ROUTES]
        assert names == ["collection", "bulk_create", "search", "stats", "export", "item"]

    def test_unsupported_method_on_collection(self, router):
        response = router.dispatch("PATCH", "/records")
        assert response.status_code == 400
        assert response.json() == {"message": "Unsupported method"}

    def test_unsupported_method_on_item(self, router):
        response = router.dispatch("POST", "/records/abc")
        assert response.status_code == 400
        assert response.json() == {"message": "Unsupported method"}

    def test_missing_record_id(self, router):
        response = router.dispatch("GET", "/records/")
        assert response.status_code == 400
        assert response.json() == {"message": "Record ID required"}

    def test_unmatched_path(self, router):
        response = router.dispatch("GET", "/users")
        assert response.status_code == 404
        assert response.json() == {"message": "Not Found"}

    def test_sub_path_with_other_method_falls_through_to_item(self, router):
        """GET /records/bulk is looked up as a record id."""
        response = router.dispatch("GET", "/records/bulk")
        assert response.status_code == 404
        assert response.json() == {"message": "Record not found"}

        response = router.dispatch("POST", "/records/search")
        assert response.status_code == 400

    def test_method_is_case_insensitive(self, router):
        response = router.dispatch("get", "/records")
        assert response.status_code == 200

    def test_responses_are_json_with_cors(self, router):
        response = router.dispatch("GET", "/records")
        assert response.headers["Content-Type"] == "application/json"
        assert "Access-Control-Allow-Origin" in response.headers

    def test_lazy_store_uses_process_store(self, memory_store):
        """A router without an injected store resolves the shared one per request."""
        memory_store.put(Record.new("Shared", "shared@example.com"))
        response = RecordRouter().dispatch("GET", "/records")
        assert [r["name"] for r in response.json()] == ["Shared"]


class TestCreateAndGet:

    def test_create_returns_record(self, router):
        record = create(router)
        assert record["name"] == "Ann Lee"
        assert record["email"] == "ann@example.com"
        assert record["id"]
        assert record["createdAt"].endswith("Z")

    def test_round_trip(self, router):
        """Create then GetById returns the same name, email and createdAt."""
        created = create(router, "Bo Chen", "bo@example.com")
        response = router.dispatch("GET", f"/records/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    def test_create_generates_unique_ids(self, router):
        ids = {create(router)["id"] for _ in range(5)}
        assert len(ids) == 5

    def test_create_malformed_body_is_server_error(self, router):
        response = router.dispatch("POST", "/records", body="{not json")
        assert response.status_code == 500
        assert response.json() == {"message": "Internal Server Error"}

    def test_create_without_body_is_server_error(self, router):
        response = router.dispatch("POST", "/records")
        assert response.status_code == 500

    def test_get_unknown_is_not_found(self, router):
        response = router.dispatch("GET", "/records/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"message": "Record not found"}

    def test_list_returns_all(self, router):
        create(router, "A", "a@example.com")
        create(router, "B", "b@example.com")
        response = router.dispatch("GET", "/records")
        assert response.status_code == 200
        assert sorted(r["name"] for r in response.json()) == ["A", "B"]


class TestUpdateAndDelete:

    def test_update_preserves_identity(self, router):
        created = create(router)
        response = router.dispatch(
            "PUT", f"/records/{created['id']}",
            body=json.dumps({"name": "X", "email": "y@example.com"})
        )
        assert response.status_code == 200
        updated = response.json()
        assert updated["id"] == created["id"]
        assert updated["createdAt"] == created["createdAt"]
        assert updated["name"] == "X"
        assert updated["email"] == "y@example.com"

    def test_update_with_missing_field_writes_null(self, router):
        """Omitted fields are overwritten with null, not left unchanged."""
        created = create(router)
        response = router.dispatch("PUT", f"/records/{created['id']}", body=json.dumps({"name": "X"}))
        assert response.status_code == 200
        assert response.json()["email"] is None

        stored = router.dispatch("GET", f"/records/{created['id']}").json()
        assert stored["name"] == "X"
        assert stored["email"] is None

    def test_update_with_empty_string_writes_null(self, router):
        created = create(router)
        response = router.dispatch("PUT", f"/records/{created['id']}", body=json.dumps({"name": "", "email": "e@x.io"}))
        assert response.json()["name"] is None

    def test_update_unknown_id_is_not_an_error(self, router):
        """Updating an unknown id creates a record holding only id, name and email."""
        response = router.dispatch("PUT", "/records/ghost", body=json.dumps({"name": "N", "email": "e@x.io"}))
        assert response.status_code == 200
        assert response.json() == {"id": "ghost", "name": "N", "email": "e@x.io"}

    def test_update_malformed_body_is_server_error(self, router):
        created = create(router)
        response = router.dispatch("PUT", f"/records/{created['id']}", body="nope")
        assert response.status_code == 500

    def test_delete_existing(self, router):
        created = create(router)
        response = router.dispatch("DELETE", f"/records/{created['id']}")
        assert response.status_code == 200
        assert response.json() == {"message": f"Record deleted: {created['id']}"}
        assert router.dispatch("GET", f"/records/{created['id']}").status_code == 404

    def test_delete_unknown_has_same_shape(self, router):
        existing = create(router)
        known = router.dispatch("DELETE", f"/records/{existing['id']}")
        unknown = router.dispatch("DELETE", "/records/never-existed")
        assert unknown.status_code == known.status_code == 200
        assert set(unknown.json()) == set(known.json()) == {"message"}


class TestBulkCreate:

    @pytest.mark.parametrize("body,expected", [
        (json.dumps({"count": 0}), 1),
        (json.dumps({"count": -5}), 1),
        (json.dumps({"count": 1000}), 100),
        (json.dumps({"count": 42}), 42),
        (json.dumps({}), 10),
        (json.dumps({"count": None}), 10),
        (None, 10),
    ])
    def test_bulk_bounds(self, router, memory_store, body, expected):
        response = router.dispatch("POST", "/records/bulk", body=body)
        assert response.status_code == 201
        data = response.json()
        assert len(data["records"]) == expected
        assert data["message"] == f"Created {expected} records"
        assert memory_store.count() == expected

    def test_bulk_batches_of_25(self, router, memory_store):
        """57 records are written in three batches of 25, 25 and 7."""
        with patch.object(memory_store, "batch_write", wraps=memory_store.batch_write) as spy:
            response = router.dispatch("POST", "/records/bulk", body=json.dumps({"count": 57}))

        assert response.status_code == 201
        assert spy.call_count == 3
        assert [len(call.args[0]) for call in spy.call_args_list] == [25, 25, 7]

    def test_bulk_records_share_timestamp(self, router):
        records = router.dispatch("POST", "/records/bulk", body=json.dumps({"count": 30})).json()["records"]
        assert len({r["createdAt"] for r in records}) == 1
        assert len({r["id"] for r in records}) == 30
        assert all(r["name"] and "@" in r["email"] for r in records)

    def test_bulk_failure_keeps_written_batches(self):
        """A failed batch aborts the rest; earlier batches are not rolled back."""

        class FlakyStore(InMemoryRecordStore):
            def __init__(self):
                super().__init__()
                self.calls = 0

            def _write_batch(self, records):
                self.calls += 1
                if self.calls == 2:
                    raise RecordStoreError("throttled")
                super()._write_batch(records)

        store = FlakyStore()
        response = RecordRouter(store=store).dispatch("POST", "/records/bulk", body=json.dumps({"count": 60}))

        assert response.status_code == 500
        assert response.json() == {"message": "Internal Server Error"}
        assert store.calls == 2
        assert store.count() == 25

    def test_bulk_invalid_count_is_server_error(self, router):
        response = router.dispatch("POST", "/records/bulk", body=json.dumps({"count": "many"}))
        assert response.status_code == 500


class TestSearch:

    @pytest.fixture
    def populated(self, router):
        create(router, "Ann Lee", "ann.lee@example.com")
        create(router, "Bob Stone", "bob@STONE.io")
        return router

    @pytest.mark.parametrize("query", ["ann", "ANN", "lee", "Ann Lee"])
    def test_search_case_insensitive(self, populated, query):
        response = populated.dispatch("GET", "/records/search", query={"q": query})
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 1
        assert data["results"][0]["name"] == "Ann Lee"

    def test_search_matches_email(self, populated):
        data = populated.dispatch("GET", "/records/search", query={"q": "stone.io"}).json()
        assert [r["name"] for r in data["results"]] == ["Bob Stone"]

    def test_search_no_match(self, populated):
        data = populated.dispatch("GET", "/records/search", query={"q": "zzz"}).json()
        assert data == {"results": [], "count": 0}

    def test_search_without_query_returns_all(self, populated):
        data = populated.dispatch("GET", "/records/search").json()
        assert data["count"] == 2

    def test_search_skips_null_fields(self, router, memory_store):
        memory_store.put(Record(id="n1", name=None, email=None, createdAt=iso_timestamp()))
        data = router.dispatch("GET", "/records/search", query={"q": "a"}).json()
        assert data["count"] == 0


class TestStats:

    def test_stats_counts_and_order(self, router, memory_store):
        now = datetime.now().astimezone()
        t1 = iso_timestamp(now - timedelta(days=3))
        t2 = iso_timestamp(now - timedelta(days=2))
        t3 = iso_timestamp(now)
        for record_id, ts in [("r2", t2), ("r3", t3), ("r1", t1)]:
            memory_store.put(Record(id=record_id, name=record_id, email=f"{record_id}@x.io", createdAt=ts))

        response = router.dispatch("GET", "/records/stats")
        assert response.status_code == 200
        stats = response.json()
        assert stats["totalRecords"] == 3
        assert stats["recordsCreatedToday"] == 1
        assert [r["createdAt"] for r in stats["recentRecords"]] == [t3, t2, t1]
        assert stats["lastUpdated"].endswith("Z")

    def test_stats_recent_limited_to_five(self, router):
        router.dispatch("POST", "/records/bulk", body=json.dumps({"count": 8}))
        stats = router.dispatch("GET", "/records/stats").json()
        assert stats["totalRecords"] == 8
        assert stats["recordsCreatedToday"] == 8
        assert len(stats["recentRecords"]) == 5

    def test_stats_empty_store(self, router):
        stats = router.dispatch("GET", "/records/stats").json()
        assert stats["totalRecords"] == 0
        assert stats["recordsCreatedToday"] == 0
        assert stats["recentRecords"] == []

    def test_stats_does_not_reorder_store(self, router, memory_store):
        now = datetime.now().astimezone()
        memory_store.put(Record(id="old", name="old", email="o@x.io", createdAt=iso_timestamp(now - timedelta(days=5))))
        memory_store.put(Record(id="new", name="new", email="n@x.io", createdAt=iso_timestamp(now)))
        router.dispatch("GET", "/records/stats")
        assert [r.id for r in memory_store.scan()] == ["old", "new"]


class TestExport:

    def test_export_headers_and_body(self, router):
        create(router, "A", "a@example.com")
        response = router.dispatch("GET", "/records/export")
        assert response.status_code == 200
        assert response.headers["Content-Type"] == "application/json"
        assert response.headers["Content-Disposition"] == 'attachment; filename="users.json"'
        records = response.json()
        assert len(records) == 1
        assert response.body == json.dumps(records, indent=2)
        assert "\n  {" in response.body


class TestServerErrors:

    def test_store_failure_is_generic_500(self):
        store = MagicMock()
        store.scan.side_effect = RecordStoreError("table unavailable")
        router = RecordRouter(store=store)

        for path in ["/records", "/records/search", "/records/stats", "/records/export"]:
            response = router.dispatch("GET", path)
            assert response.status_code == 500
            assert response.json() == {"message": "Internal Server Error"}

    def test_failure_is_logged(self):
        store = MagicMock()
        store.get.side_effect = RecordStoreError("boom")
        with patch("userrecords.core.router.logger") as mock_logger:
            response = RecordRouter(store=store).dispatch("GET", "/records/abc")

        assert response.status_code == 500
        mock_logger.log_request_failure.assert_called_once()
        method, path, error = mock_logger.log_request_failure.call_args.args
        assert (method, path) == ("GET", "/records/abc")
        assert isinstance(error, RecordStoreError)
