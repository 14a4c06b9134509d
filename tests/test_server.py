import atexit

import pytest

import server
from config import load_config
from infrastructure.store.memory_blob_store import MemoryBlobStore
from server import build_parser, create_app

HTML = {"Accept": "text/html"}
PLAIN = {"Accept": "text/plain"}


def paste_id(response) -> str:
    """Extract the id from a redirect Location or a plain-text paste URL."""
    target: str = response.headers.get("Location") or response.get_data(as_text=True)
    return target.strip().rsplit("/p/", 1)[1]


class TestIndex:
    def test_html_form(self, client) -> None:
        res = client.get("/", headers=HTML)
        assert res.status_code == 200
        assert res.mimetype == "text/html"
        assert '<textarea name="blob"' in res.get_data(as_text=True)
        assert "1m" in res.get_data(as_text=True)

    def test_plain_usage(self, client) -> None:
        res = client.get("/", headers=PLAIN)
        assert res.status_code == 200
        assert res.mimetype == "text/plain"
        assert "curl" in res.get_data(as_text=True)

    def test_not_acceptable(self, client) -> None:
        res = client.get("/", headers={"Accept": "application/json"})
        assert res.status_code == 406


class TestPaste:
    def test_html_redirects_to_view(self, client, store: MemoryBlobStore) -> None:
        res = client.post("/", data={"blob": "hello world"}, headers=HTML)
        assert res.status_code == 302
        blob_id: str = paste_id(res)
        assert len(blob_id) == 8
        assert res.headers["Location"].endswith(f"/p/{blob_id}")
        assert store.get(blob_id) == b"hello world"

    def test_plain_returns_url(self, client, store: MemoryBlobStore) -> None:
        res = client.post("/", data={"blob": "hello"}, headers=PLAIN)
        assert res.status_code == 200
        body: str = res.get_data(as_text=True)
        assert body.startswith("http://localhost/p/")
        assert body.endswith("\n")
        assert store.get(paste_id(res)) == b"hello"

    def test_raw_body(self, client, store: MemoryBlobStore) -> None:
        res = client.post("/", data=b"raw\x00bytes", content_type="application/octet-stream", headers=PLAIN)
        assert res.status_code == 200
        assert store.get(paste_id(res)) == b"raw\x00bytes"

    def test_raw_body_labelled_as_form(self, client, store: MemoryBlobStore) -> None:
        """curl --data-binary sends files as application/x-www-form-urlencoded."""
        res = client.post(
            "/",
            data=b"hello world",
            content_type="application/x-www-form-urlencoded",
            headers=PLAIN,
        )
        assert res.status_code == 200
        assert store.get(paste_id(res)) == b"hello world"

    def test_urlencoded_blob_field_still_wins(self, client, store: MemoryBlobStore) -> None:
        res = client.post(
            "/",
            data=b"blob=a%26b",
            content_type="application/x-www-form-urlencoded",
            headers=PLAIN,
        )
        assert res.status_code == 200
        assert store.get(paste_id(res)) == b"a&b"

    def test_utf8_form_blob(self, client, store: MemoryBlobStore) -> None:
        res = client.post("/", data={"blob": "héllo ✓"}, headers=PLAIN)
        assert store.get(paste_id(res)) == "héllo ✓".encode("utf-8")

    def test_empty_blob_is_bad_request(self, client, store: MemoryBlobStore) -> None:
        res = client.post("/", data={"blob": ""}, headers=PLAIN)
        assert res.status_code == 400
        assert len(store) == 0

    def test_missing_blob_is_bad_request(self, client) -> None:
        res = client.post("/", headers=PLAIN)
        assert res.status_code == 400

    def test_oversized_blob_is_bad_request(self, clock) -> None:
        cfg = load_config(environ={}, max_size=16)
        store = MemoryBlobStore(ttl=cfg.ttl, max_size=cfg.max_size, clock=clock)
        client = create_app(cfg, store=store).test_client()
        res = client.post("/", data={"blob": "x" * 17}, headers=PLAIN)
        assert res.status_code == 400
        assert len(store) == 0

    def test_exhausted_id_space_is_internal_error(self, app_config, clock) -> None:
        store = MemoryBlobStore(ttl=60, max_retries=3, clock=clock, id_generator=lambda n: "samesame")
        client = create_app(app_config, store=store).test_client()
        assert client.post("/", data={"blob": "one"}, headers=PLAIN).status_code == 200

        res = client.post("/", data={"blob": "two"}, headers=PLAIN)
        assert res.status_code == 500
        assert res.get_data(as_text=True) == "Internal Error"
        assert store.get("samesame") == b"one"


class TestView:
    def test_html_is_escaped(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"<script>alert(1)</script>")
        res = client.get(f"/p/{blob_id}", headers=HTML)
        assert res.status_code == 200
        body: str = res.get_data(as_text=True)
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in body
        assert "<script>" not in body

    def test_html_has_download_and_delete(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"x")
        body: str = client.get(f"/p/{blob_id}", headers=HTML).get_data(as_text=True)
        assert f"/download/{blob_id}" in body
        assert f"/delete/{blob_id}" in body

    def test_plain_is_passthrough(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"<b>bold</b>")
        res = client.get(f"/p/{blob_id}", headers=PLAIN)
        assert res.mimetype == "text/plain"
        assert res.get_data(as_text=True) == "<b>bold</b>"

    def test_tabs_become_four_spaces(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"a\tb")
        res = client.get(f"/p/{blob_id}", headers=PLAIN)
        assert res.get_data(as_text=True) == "a    b"

    def test_unknown_id_is_not_found(self, client) -> None:
        res = client.get("/p/unknown1", headers=PLAIN)
        assert res.status_code == 404
        assert res.get_data(as_text=True) == "Not Found"

    def test_malformed_id_is_not_found(self, client) -> None:
        assert client.get("/p/bad%20id", headers=PLAIN).status_code == 404

    def test_expired_paste_is_not_found(self, client, store: MemoryBlobStore, clock) -> None:
        blob_id: str = store.insert(b"short-lived")
        clock.advance(60)
        assert client.get(f"/p/{blob_id}", headers=PLAIN).status_code == 404

    def test_not_acceptable(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"x")
        res = client.get(f"/p/{blob_id}", headers={"Accept": "application/json"})
        assert res.status_code == 406
        assert res.get_data(as_text=True) == "Not Acceptable"


class TestDownload:
    def test_binary_attachment(self, client, store: MemoryBlobStore) -> None:
        payload: bytes = bytes(range(256))
        blob_id: str = store.insert(payload)
        res = client.get(f"/download/{blob_id}")
        assert res.status_code == 200
        assert res.mimetype == "application/octet-stream"
        assert "attachment" in res.headers["Content-Disposition"]
        assert blob_id in res.headers["Content-Disposition"]
        assert res.data == payload

    def test_unknown_id_is_not_found(self, client) -> None:
        assert client.get("/download/unknown1").status_code == 404


class TestDelete:
    def test_delete_then_view(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"bye")
        res = client.delete(f"/p/{blob_id}", headers=PLAIN)
        assert res.status_code == 200
        assert res.get_data(as_text=True) == "Deleted"
        assert client.get(f"/p/{blob_id}", headers=PLAIN).status_code == 404

    def test_second_delete_is_not_found(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"bye")
        assert client.delete(f"/p/{blob_id}").status_code == 200
        assert client.delete(f"/p/{blob_id}").status_code == 404

    def test_form_post_alias(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"bye")
        assert client.post(f"/delete/{blob_id}", headers=HTML).status_code == 200
        assert store.get(blob_id) is None


class TestApiV1:
    def test_create_json(self, client, store: MemoryBlobStore, clock) -> None:
        res = client.post("/api/v1/pastes", json={"blob": "hello world"})
        assert res.status_code == 201
        body: dict = res.get_json()
        assert len(body["id"]) == 8
        assert body["url"] == f"http://localhost/p/{body['id']}"
        assert body["size"] == 11
        assert body["expiresAt"].endswith("Z")
        assert res.headers["Location"].endswith(f"/api/v1/pastes/{body['id']}")
        assert store.get(body["id"]) == b"hello world"

    def test_create_raw(self, client, store: MemoryBlobStore) -> None:
        res = client.post("/api/v1/pastes", data=b"\x00\x01", content_type="application/octet-stream")
        assert res.status_code == 201
        assert store.get(res.get_json()["id"]) == b"\x00\x01"

    @pytest.mark.parametrize("payload", [{"blob": 5}, {"text": "x"}, ["blob"]])
    def test_create_rejects_bad_json(self, client, payload) -> None:
        res = client.post("/api/v1/pastes", json=payload)
        assert res.status_code == 400
        assert "error" in res.get_json()

    def test_create_rejects_empty(self, client) -> None:
        res = client.post("/api/v1/pastes", json={"blob": ""})
        assert res.status_code == 400
        assert "empty" in res.get_json()["error"]

    def test_get(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"hello")
        res = client.get(f"/api/v1/pastes/{blob_id}")
        assert res.status_code == 200
        assert res.get_json()["blob"] == "hello"
        assert res.get_json()["id"] == blob_id

    def test_raw(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"\xff\xfe")
        res = client.get(f"/api/v1/pastes/{blob_id}/raw")
        assert res.status_code == 200
        assert res.data == b"\xff\xfe"

    def test_delete(self, client, store: MemoryBlobStore) -> None:
        blob_id: str = store.insert(b"hello")
        assert client.delete(f"/api/v1/pastes/{blob_id}").status_code == 204
        assert client.delete(f"/api/v1/pastes/{blob_id}").status_code == 404
        assert client.get(f"/api/v1/pastes/{blob_id}").status_code == 404

    def test_not_found_is_json(self, client) -> None:
        res = client.get("/api/v1/pastes/unknown1/raw")
        assert res.status_code == 404
        assert res.get_json() == {"error": "Paste not found."}

    def test_unknown_route_is_json(self, client) -> None:
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json() == {"error": "Not found."}

    def test_exhausted_is_json(self, app_config, clock) -> None:
        store = MemoryBlobStore(ttl=60, max_retries=2, clock=clock, id_generator=lambda n: "samesame")
        client = create_app(app_config, store=store).test_client()
        assert client.post("/api/v1/pastes", json={"blob": "one"}).status_code == 201
        res = client.post("/api/v1/pastes", json={"blob": "two"})
        assert res.status_code == 500
        assert "error" in res.get_json()

    def test_openapi_descriptor(self, client) -> None:
        res = client.get("/api/v1/openapi.json")
        assert res.status_code == 200
        assert "/pastes" in res.get_json()["paths"]

    def test_cors_enabled(self, client) -> None:
        res = client.get("/api/v1/openapi.json", headers={"Origin": "http://example.com"})
        assert res.headers.get("Access-Control-Allow-Origin") == "*"


class TestAppWiring:
    def test_security_headers(self, client) -> None:
        res = client.get("/", headers=PLAIN)
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"
        assert "default-src 'self'" in res.headers["Content-Security-Policy"]

    def test_metrics_count_requests(self, app, client, store: MemoryBlobStore) -> None:
        client.post("/", data={"blob": "x"}, headers=PLAIN)
        client.get("/", headers=PLAIN)
        client.get("/", headers=PLAIN)

        metrics = app.extensions["pastebin_metrics"]
        assert metrics.value("paste.index") == 2
        assert metrics.value("paste.create_paste") == 1

        body: str = client.get("/debug/metrics").get_data(as_text=True)
        assert 'pastebin_requests_total{handler="paste.index"} 2.0' in body
        assert "pastebin_entries 1.0" in body

    def test_apps_do_not_share_stores(self, app_config, clock) -> None:
        store_a = MemoryBlobStore(ttl=60, clock=clock)
        store_b = MemoryBlobStore(ttl=60, clock=clock)
        client_a = create_app(app_config, store=store_a).test_client()
        client_b = create_app(app_config, store=store_b).test_client()

        blob_id: str = paste_id(client_a.post("/", data={"blob": "a"}, headers=PLAIN))
        assert client_a.get(f"/p/{blob_id}", headers=PLAIN).status_code == 200
        assert client_b.get(f"/p/{blob_id}", headers=PLAIN).status_code == 404

    def test_default_store_follows_config(self) -> None:
        cfg = load_config(environ={}, id_length=12, ttl="90s")
        app = create_app(cfg, start_sweeper=False)
        store = app.extensions["blob_store"]
        assert isinstance(store, MemoryBlobStore)
        assert store.ttl == 90.0
        assert store.id_length == 12
        assert not store.running

    def test_parser_maps_to_config(self) -> None:
        args = build_parser().parse_args(["--expiry", "10m", "--id-length", "6", "-b", ":9999"])
        cfg = load_config(environ={}, **vars(args))
        assert cfg.ttl == 600.0
        assert cfg.id_length == 6
        assert cfg.port == 9999
        assert cfg.host == "0.0.0.0"

    def test_started_sweepers_share_one_exit_hook(self, monkeypatch) -> None:
        registered: list = []
        monkeypatch.setattr(atexit, "register", registered.append)
        cfg = load_config(environ={}, ttl="60s")

        stores = [create_app(cfg).extensions["blob_store"] for _ in range(3)]
        try:
            assert registered == []
            assert all(store.running for store in stores)
            assert all(store in server._owned_stores for store in stores)
        finally:
            server._stop_owned_stores()

        assert not any(store.running for store in stores)
