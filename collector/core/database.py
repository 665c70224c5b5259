"""collector.core.database

A small document store on SQLite.

One table per collection, one JSON document per row. Documents with an ``id``
are upserted by it, so a resubmitted event lands on its earlier copy instead of
beside it. Each call is its own transaction; there is nothing spanning collections.
"""

from __future__ import annotations

import json
import re
import sqlite3
import threading
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from collector.core.exceptions import StoreError

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_COLLECTION_SCHEMA = """
CREATE TABLE IF NOT EXISTS "{name}" (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    doc_id TEXT UNIQUE,
    doc TEXT NOT NULL,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT
);
"""

_IDENTITY_INDEX = """
CREATE {unique} INDEX IF NOT EXISTS "idx_{name}_identity"
    ON "{name}"(json_extract(doc, '$.userId'), json_extract(doc, '$.publicKey'));
"""


def _check_ident(value: str, what: str) -> str:
    if not _IDENT.match(value):
        raise StoreError(f"invalid {what} name: {value!r}")
    return value


def _dumps(doc: Mapping[str, Any]) -> str:
    return json.dumps(dict(doc), sort_keys=True, ensure_ascii=False, default=str)


def _where(filter_: Mapping[str, Any] | None) -> tuple[str, list[Any]]:
    if not filter_:
        return "1=1", []
    clauses: list[str] = []
    params: list[Any] = []
    for key, value in filter_.items():
        _check_ident(str(key), "field")
        clauses.append(f"json_extract(doc, '$.{key}') = ?")
        params.append(value)
    return " AND ".join(clauses), params


@dataclass
class Database:
    """JSON document collections over a single SQLite file.

    ``identity_collection`` gets a (userId, publicKey) index; unique when
    ``enforce_unique_identity`` is set.
    """

    db_path: Path
    collections: Iterable[str] = ()
    identity_collection: str | None = None
    enforce_unique_identity: bool = True
    _known: set[str] = field(default_factory=set, init=False, repr=False)

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._init_schema()

    def close(self) -> None:
        self.conn.close()

    def _init_schema(self) -> None:
        names = set(self.collections)
        if self.identity_collection:
            names.add(self.identity_collection)
        with self.conn:
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")
            for name in sorted(names):
                self.conn.executescript(_COLLECTION_SCHEMA.format(name=_check_ident(name, "collection")))
            if self.identity_collection:
                unique = "UNIQUE" if self.enforce_unique_identity else ""
                self.conn.executescript(_IDENTITY_INDEX.format(unique=unique, name=self.identity_collection))
        self._known = names

    def _table(self, collection: str) -> str:
        if collection not in self._known:
            raise StoreError(f"unknown collection: {collection}")
        return collection

    @contextmanager
    def _guard(self, op: str, collection: str) -> Iterator[None]:
        try:
            with self._lock:
                yield
        except (sqlite3.Error, OverflowError) as e:
            raise StoreError(f"{op} on {collection} failed: {e}") from e

    def read(
        self,
        collection: str,
        filter_: Mapping[str, Any] | None = None,
        *,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> list[dict[str, Any]]:
        table = self._table(collection)
        where, params = _where(filter_)
        q = f'SELECT doc FROM "{table}" WHERE {where} ORDER BY seq {"DESC" if newest_first else "ASC"}'
        if limit is not None:
            q += " LIMIT ?"
            params.append(int(limit))
        with self._guard("read", collection):
            rows = self.conn.execute(q, tuple(params)).fetchall()
        return [json.loads(str(r["doc"])) for r in rows]

    def count(self, collection: str, filter_: Mapping[str, Any] | None = None) -> int:
        table = self._table(collection)
        where, params = _where(filter_)
        with self._guard("count", collection):
            row = self.conn.execute(f'SELECT COUNT(*) FROM "{table}" WHERE {where}', tuple(params)).fetchone()
        return int(row[0])

    def write_one(self, collection: str, doc: Mapping[str, Any]) -> dict[str, Any]:
        self.write_many(collection, [doc])
        return dict(doc)

    def write_many(self, collection: str, docs: Iterable[Mapping[str, Any]]) -> int:
        """Upsert documents by ``id``; documents without one are appended.

        All-or-nothing within the call.
        """

        table = self._table(collection)
        rows = [(str(d["id"]) if d.get("id") is not None else None, _dumps(d)) for d in docs]
        with self._guard("write_many", collection), self.conn:
            self.conn.executemany(
                f"""
                INSERT INTO "{table}" (doc_id, doc) VALUES (?, ?)
                ON CONFLICT(doc_id) DO UPDATE SET doc = excluded.doc, updated_at = datetime('now')
                """,
                rows,
            )
        return len(rows)

    def update_one(
        self,
        collection: str,
        filter_: Mapping[str, Any],
        doc: Mapping[str, Any],
        *,
        upsert: bool = True,
    ) -> bool:
        """Merge ``doc`` into the first document matching ``filter_``.

        Returns True if a document was matched. With ``upsert`` and no match, ``doc``
        is inserted instead.
        """

        table = self._table(collection)
        where, params = _where(filter_)
        with self._guard("update_one", collection), self.conn:
            row = self.conn.execute(
                f'SELECT seq, doc FROM "{table}" WHERE {where} ORDER BY seq ASC LIMIT 1',
                tuple(params),
            ).fetchone()
            if row is None:
                if upsert:
                    self.conn.execute(
                        f'INSERT INTO "{table}" (doc_id, doc) VALUES (?, ?)',
                        (str(doc["id"]) if doc.get("id") is not None else None, _dumps(doc)),
                    )
                return False
            merged = json.loads(str(row["doc"]))
            merged.update(doc)
            self.conn.execute(
                f"UPDATE \"{table}\" SET doc = ?, updated_at = datetime('now') WHERE seq = ?",
                (_dumps(merged), int(row["seq"])),
            )
        return True

    def insert_if_absent(self, collection: str, filter_: Mapping[str, Any], doc: Mapping[str, Any]) -> bool:
        """Insert ``doc`` only if nothing matches ``filter_``. True if inserted.

        A single statement, so concurrent callers (other processes included) can not
        both win. A unique index violation counts as losing.
        """

        table = self._table(collection)
        where, params = _where(filter_)
        try:
            with self._guard("insert_if_absent", collection), self.conn:
                cur = self.conn.execute(
                    f"""
                    INSERT INTO "{table}" (doc_id, doc)
                    SELECT ?, ? WHERE NOT EXISTS (SELECT 1 FROM "{table}" WHERE {where})
                    """,
                    (str(doc["id"]) if doc.get("id") is not None else None, _dumps(doc), *params),
                )
        except StoreError as e:
            if isinstance(e.__cause__, sqlite3.IntegrityError):
                return False
            raise
        return cur.rowcount == 1
