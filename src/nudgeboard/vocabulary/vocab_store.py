# src/nudgeboard/vocabulary/vocab_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any

from .vocab_models import Vocabulary, VocabularyEntry, flatten_entry

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "word": "word COLLATE NOCASE",
    "created_at": "created_at",
    "review_count": "review_count",
}


class VocabularyStore:
    """
    SQLite vocabulary store.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "vocabulary.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("VocabularyStore ready db=%s", self._db_path)

    def close(self) -> None:
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS vocabulary (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    word TEXT NOT NULL,
                    ipa TEXT NOT NULL DEFAULT '',
                    meaning TEXT NOT NULL DEFAULT '',
                    usage TEXT NOT NULL DEFAULT '',
                    cultural_context TEXT NOT NULL DEFAULT '',
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    is_favorite INTEGER NOT NULL DEFAULT 0,
                    review_count INTEGER NOT NULL DEFAULT 0,
                    last_reviewed_at REAL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_vocab_word ON vocabulary(word COLLATE NOCASE)")
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _row_to_vocab(row: sqlite3.Row) -> Vocabulary:
        return Vocabulary(
            id=int(row["id"]),
            word=str(row["word"]),
            ipa=str(row["ipa"] or ""),
            meaning=str(row["meaning"] or ""),
            usage=str(row["usage"] or ""),
            cultural_context=str(row["cultural_context"] or ""),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            is_favorite=bool(row["is_favorite"]),
            review_count=int(row["review_count"] or 0),
            last_reviewed_at=(
                float(row["last_reviewed_at"]) if row["last_reviewed_at"] is not None else None
            ),
        )

    def _fetch_one(self, conn: sqlite3.Connection, vocab_id: int) -> Vocabulary | None:
        row = conn.execute("SELECT * FROM vocabulary WHERE id = ?", (int(vocab_id),)).fetchone()
        return self._row_to_vocab(row) if row else None

    # ---- public API ----

    def list_vocabulary(
        self,
        *,
        query: str | None = None,
        is_favorite: bool | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> list[Vocabulary]:
        """
        Search word/meaning/usage (substring, case-insensitive), optionally
        only favourites, sorted by word | created_at | review_count.
        """
        where: list[str] = []
        params: list[Any] = []

        q = (query or "").strip()
        if q:
            like = f"%{q}%"
            where.append("(word LIKE ? OR meaning LIKE ? OR usage LIKE ?)")
            params.extend([like, like, like])

        if is_favorite is not None:
            where.append("is_favorite = ?")
            params.append(1 if is_favorite else 0)

        column = _SORT_COLUMNS.get(sort_by, "created_at")
        direction = "ASC" if str(sort_order).lower() == "asc" else "DESC"

        sql = "SELECT * FROM vocabulary"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += f" ORDER BY {column} {direction}, id {direction}"

        conn = self._get_conn()
        try:
            return [self._row_to_vocab(r) for r in conn.execute(sql, params).fetchall()]
        finally:
            conn.close()

    def get(self, vocab_id: int) -> Vocabulary | None:
        conn = self._get_conn()
        try:
            return self._fetch_one(conn, vocab_id)
        finally:
            conn.close()

    def find_by_word(self, word: str) -> Vocabulary | None:
        w = (word or "").strip()
        if not w:
            return None
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM vocabulary WHERE word = ? COLLATE NOCASE ORDER BY id ASC LIMIT 1",
                (w,),
            ).fetchone()
            return self._row_to_vocab(row) if row else None
        finally:
            conn.close()

    def add_entry(self, entry: VocabularyEntry) -> Vocabulary:
        word = (entry.word or "").strip()
        if not word:
            raise ValueError("word is required")

        flat = flatten_entry(entry)
        now = time.time()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                INSERT INTO vocabulary(word, ipa, meaning, usage, cultural_context, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (word, flat["ipa"], flat["meaning"], flat["usage"], flat["cultural_context"], now, now),
            )
            conn.commit()
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError("SQLite did not return lastrowid for vocabulary insert")
            stored = self._fetch_one(conn, int(rowid))
        finally:
            conn.close()

        if stored is None:
            raise RuntimeError("vocabulary row vanished after write")
        logger.debug("Vocabulary added id=%s word=%s", stored.id, stored.word)
        return stored

    def update_vocabulary(self, vocab_id: int, **fields: Any) -> Vocabulary:
        allowed = {"word", "ipa", "meaning", "usage", "cultural_context", "is_favorite"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"unknown vocabulary fields: {sorted(unknown)}")

        assignments = [f"{k} = ?" for k in fields]
        params: list[Any] = [
            (1 if v else 0) if k == "is_favorite" else str(v) for k, v in fields.items()
        ]
        assignments.append("updated_at = ?")
        params.extend([time.time(), int(vocab_id)])

        conn = self._get_conn()
        try:
            cur = conn.execute(f"UPDATE vocabulary SET {', '.join(assignments)} WHERE id = ?", params)
            conn.commit()
            if cur.rowcount != 1:
                raise KeyError(f"vocabulary not found: {vocab_id}")
            stored = self._fetch_one(conn, vocab_id)
        finally:
            conn.close()
        if stored is None:
            raise RuntimeError("vocabulary row vanished after write")
        return stored

    def toggle_favorite(self, vocab_id: int, is_favorite: bool) -> Vocabulary:
        return self.update_vocabulary(vocab_id, is_favorite=is_favorite)

    def increment_review(self, vocab_id: int, now_ts: float | None = None) -> Vocabulary:
        if now_ts is None:
            now_ts = time.time()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE vocabulary
                SET review_count = review_count + 1,
                    last_reviewed_at = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (float(now_ts), float(now_ts), int(vocab_id)),
            )
            conn.commit()
            if cur.rowcount != 1:
                raise KeyError(f"vocabulary not found: {vocab_id}")
            stored = self._fetch_one(conn, vocab_id)
        finally:
            conn.close()
        if stored is None:
            raise RuntimeError("vocabulary row vanished after write")
        return stored

    def delete_vocabulary(self, vocab_id: int) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM vocabulary WHERE id = ?", (int(vocab_id),))
            conn.commit()
        finally:
            conn.close()
