import os
import threading
from email.utils import formatdate

import pytest
import requests

from docsearch.access_control import HeaderGroupsAccessController
from docsearch.bridge.codec import encode_file_url, file_name_to_url
from docsearch.config import IndexConfig, ServerSettings
from docsearch.web.server import make_server, render_error


@pytest.fixture
def shared_file(tmp_path):
    path = tmp_path / "share" / "q3 report.txt"
    path.parent.mkdir()
    path.write_text("revenue up")
    os.utime(path, (1_700_000_000, 1_700_000_000))
    return path


@pytest.fixture
def base_url(make_index, holder_for, shared_file, tmp_path):
    file_url = file_name_to_url(str(shared_file))
    secret_url = file_name_to_url(str(tmp_path / "share" / "secret.txt"))
    (tmp_path / "share" / "secret.txt").write_text("classified")
    (tmp_path / "share" / "search").write_text("payload")
    directory = make_index(
        "files",
        [
            {
                "url": file_url,
                "title": "Q3 report",
                "content": "quarterly revenue",
                "groups": ["finance"],
                "summary": "Revenue went up.",
            },
            {"url": secret_url, "title": "", "content": "secret revenue", "groups": ["board"]},
            {"url": file_name_to_url(str(tmp_path / "share" / "search")), "content": "payload", "groups": ["finance"]},
        ],
    )
    holder = holder_for(
        [IndexConfig(name="files", directory=directory, access_controller=HeaderGroupsAccessController())],
        default_index_names=["files"],
    )

    server = make_server(ServerSettings(host="127.0.0.1", port=0), holder=holder)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
    thread.join(timeout=5)


GROUPS = {"X-Docsearch-Groups": "finance"}


def test_search_returns_json_hits(base_url, shared_file):
    resp = requests.get(f"{base_url}/search", params={"query": "revenue"}, headers=GROUPS, timeout=5)
    assert resp.status_code == 200
    data = resp.json()
    assert data["query"] == "revenue"
    assert data["total_hits"] == 1
    (hit,) = data["hits"]
    assert hit["index"] == "files"
    assert hit["title"] == "Q3 report"
    assert hit["summary"] == "Revenue went up."
    assert hit["href"] == encode_file_url(hit["url"])


def test_untitled_hit_uses_file_name(base_url):
    resp = requests.get(
        f"{base_url}/search",
        params={"query": "secret"},
        headers={"X-Docsearch-Groups": "board"},
        timeout=5,
    )
    assert [hit["title"] for hit in resp.json()["hits"]] == ["secret.txt"]


def test_file_bridge_delivers_permitted_file(base_url, shared_file):
    href = encode_file_url(file_name_to_url(str(shared_file)))
    resp = requests.get(f"{base_url}/{href}", headers=GROUPS, timeout=5)
    assert resp.status_code == 200
    assert resp.content == b"revenue up"
    assert resp.headers["Content-Type"] == "text/plain"
    assert resp.headers["Last-Modified"] == formatdate(1_700_000_000, usegmt=True)


def test_file_bridge_not_modified(base_url, shared_file):
    href = encode_file_url(file_name_to_url(str(shared_file)))
    headers = dict(GROUPS, **{"If-Modified-Since": formatdate(1_700_000_000, usegmt=True)})
    resp = requests.get(f"{base_url}/{href}", headers=headers, timeout=5)
    assert resp.status_code == 304
    assert resp.content == b""


def test_file_bridge_denies_other_groups(base_url, tmp_path):
    href = encode_file_url(file_name_to_url(str(tmp_path / "share" / "secret.txt")))
    resp = requests.get(f"{base_url}/{href}", headers=GROUPS, timeout=5)
    assert resp.status_code == 403


def test_file_bridge_denies_unindexed_files(base_url, tmp_path):
    other = tmp_path / "share" / "other.txt"
    other.write_text("not indexed")
    href = encode_file_url(file_name_to_url(str(other)))
    resp = requests.get(f"{base_url}/{href}", headers=GROUPS, timeout=5)
    assert resp.status_code == 403


def test_bad_query_is_a_client_error(base_url):
    resp = requests.get(f"{base_url}/search", params={"query": '"unterminated'}, timeout=5)
    assert resp.status_code == 400
    assert resp.text.startswith("Error: ")


def test_unknown_index_is_a_client_error(base_url):
    resp = requests.get(f"{base_url}/search", params={"query": "x", "index": "nope"}, timeout=5)
    assert resp.status_code == 400
    assert "nope" in resp.text


def test_unknown_path(base_url):
    assert requests.get(f"{base_url}/elsewhere", timeout=5).status_code == 404


def test_render_error_includes_causes():
    try:
        try:
            raise OSError("disk gone")
        except OSError as inner:
            raise RuntimeError("Sending file failed") from inner
    except RuntimeError as outer:
        text = render_error(outer)
    assert text.splitlines() == ["Error: Sending file failed", "Caused by: OSError: disk gone"]


def test_file_named_like_search_route_is_delivered(base_url, tmp_path):
    href = encode_file_url(file_name_to_url(str(tmp_path / "share" / "search")))
    resp = requests.get(f"{base_url}/{href}", headers=GROUPS, timeout=5)
    assert resp.status_code == 200
    assert resp.content == b"payload"
