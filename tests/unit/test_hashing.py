from __future__ import annotations

import hashlib

from collector.core import hashing


def _sha1(s: str) -> str:
    return hashlib.sha1(s.encode("utf-8")).hexdigest()


def test_derive_id_encoding_is_stable() -> None:
    got = hashing.derive_id([("uuid", "abc"), ("user", 42)])
    assert got == _sha1('uuid\u2234"abc",user\u223442,')
    assert len(got) == 40


def test_derive_id_is_deterministic_and_order_sensitive() -> None:
    a = hashing.derive_id([("uuid", "abc"), ("user", 42)])
    b = hashing.derive_id([("uuid", "abc"), ("user", 42)])
    c = hashing.derive_id([("user", 42), ("uuid", "abc")])
    assert a == b
    assert a != c


def test_timeline_id_matches_derive_id() -> None:
    assert hashing.timeline_id("abc", 42) == hashing.derive_id([("uuid", "abc"), ("user", 42)])
    assert hashing.timeline_id("abc", 42) != hashing.timeline_id("abc", 43)


def test_impression_id_uses_order_as_received() -> None:
    # "3" and 3 are different client payloads and keep different ids
    assert hashing.impression_id("t", 1, 3) != hashing.impression_id("t", 1, "3")
    assert hashing.impression_id("t", 1, 3) == hashing.impression_id("t", 1, 3)


def test_html_id_is_content_addressed() -> None:
    assert hashing.html_id("<p>x</p>") == hashing.html_id("<p>x</p>")
    assert hashing.html_id("<p>x</p>") != hashing.html_id("<p>y</p>")


def test_user_secret_depends_on_time() -> None:
    a = hashing.user_secret("PK", 1, "2024-01-01T00:00:00+00:00")
    b = hashing.user_secret("PK", 1, "2024-01-01T00:00:01+00:00")
    assert a != b
