from __future__ import annotations

import hashlib
import json
import sqlite3
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urlencode


def cache_key_for(url: str, params: Mapping[str, Any] | None = None) -> str:
    """Canonical request key: URL plus sorted query parameters."""
    if not params:
        return url
    return f"{url}?{urlencode(sorted((k, str(v)) for k, v in params.items()))}"


class ResponseCache:
    """
    File-backed cache of catalog JSON responses with a SQLite TTL index.

    Bodies are stored as files named by the SHA-256 of the request key; the
    index records when each entry expires.
    """

    def __init__(self, cache_dir: Path, ttl_seconds: int = 86400):
        self.cache_dir = cache_dir
        self.ttl_seconds = ttl_seconds
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = self.cache_dir / "responses.sqlite"
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_db(self) -> None:
        conn = self._connect()
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS responses (
                request_key TEXT PRIMARY KEY,
                file_key TEXT NOT NULL,
                cached_at REAL NOT NULL,
                expires_at REAL NOT NULL
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_responses_expires ON responses(expires_at)")
        conn.commit()
        conn.close()

    def _body_path(self, file_key: str) -> Path:
        return self.cache_dir / f"{file_key}.json"

    def get_json(self, request_key: str) -> Any | None:
        """Return the cached payload, or None when missing, expired or unreadable."""
        conn = self._connect()
        row = conn.execute(
            "SELECT file_key FROM responses WHERE request_key = ? AND expires_at > ?",
            (request_key, time.time()),
        ).fetchone()
        conn.close()

        if not row:
            return None

        body_path = self._body_path(row[0])
        if not body_path.exists():
            return None
        try:
            return json.loads(body_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            self.invalidate(request_key)
            return None

    def put_json(self, request_key: str, payload: Any) -> None:
        file_key = hashlib.sha256(request_key.encode()).hexdigest()
        self._body_path(file_key).write_text(json.dumps(payload), encoding="utf-8")

        cached_at = time.time()
        conn = self._connect()
        conn.execute(
            """
            INSERT OR REPLACE INTO responses (request_key, file_key, cached_at, expires_at)
            VALUES (?, ?, ?, ?)
            """,
            (request_key, file_key, cached_at, cached_at + self.ttl_seconds),
        )
        conn.commit()
        conn.close()

    def invalidate(self, request_key: str) -> None:
        conn = self._connect()
        row = conn.execute(
            "SELECT file_key FROM responses WHERE request_key = ?", (request_key,)
        ).fetchone()
        if row:
            self._body_path(row[0]).unlink(missing_ok=True)
            conn.execute("DELETE FROM responses WHERE request_key = ?", (request_key,))
            conn.commit()
        conn.close()

    def purge_expired(self) -> int:
        """Remove expired entries and return how many were removed."""
        return self._delete_where("expires_at <= ?", (time.time(),))

    def clear(self) -> int:
        return self._delete_where("1 = 1", ())

    def _delete_where(self, condition: str, args: tuple[Any, ...]) -> int:
        conn = self._connect()
        rows = conn.execute(f"SELECT file_key FROM responses WHERE {condition}", args).fetchall()
        for (file_key,) in rows:
            self._body_path(file_key).unlink(missing_ok=True)
        conn.execute(f"DELETE FROM responses WHERE {condition}", args)
        conn.commit()
        conn.close()
        return len(rows)


## Tests


def test_cache_key_sorts_params():
    a = cache_key_for("https://itunes.apple.com/search", {"term": "TWICE", "limit": 200})
    b = cache_key_for("https://itunes.apple.com/search", {"limit": "200", "term": "TWICE"})
    assert a == b
    assert cache_key_for("https://x.test/a") == "https://x.test/a"


def test_response_cache_roundtrip(tmp_path):
    cache = ResponseCache(tmp_path / "cache", ttl_seconds=3600)

    cache.put_json("k", {"resultCount": 1, "results": [{"trackId": 1}]})

    assert cache.get_json("k") == {"resultCount": 1, "results": [{"trackId": 1}]}
    assert cache.get_json("missing") is None


def test_response_cache_ttl_expired(tmp_path):
    cache = ResponseCache(tmp_path / "cache", ttl_seconds=0)

    cache.put_json("k", {"a": 1})

    assert cache.get_json("k") is None
    assert cache.purge_expired() == 1


def test_response_cache_invalidate_and_clear(tmp_path):
    cache = ResponseCache(tmp_path / "cache")

    for i in range(3):
        cache.put_json(f"k{i}", [i])

    cache.invalidate("k0")
    assert cache.get_json("k0") is None
    assert cache.get_json("k1") == [1]

    assert cache.clear() == 2
    assert cache.get_json("k2") is None
