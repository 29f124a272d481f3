"""
Gazetteer lookup: place name -> candidate locations.

Names are matched case-insensitively. A gazetteer is either built in memory
with ``add`` or loaded from a sqlite database holding a ``places`` table:

    places(id, name, type, lat, lon, pop, container)

The region model only needs the candidate coordinates of each toponym word,
which ``toponym_candidates`` extracts for a word lexicon.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GazetteerEntry:
    name: str
    location_type: str         # city, country, state, region, ...
    latitude: float
    longitude: float
    population: int = 0
    container: Optional[str] = None


class Gazetteer:
    def __init__(self):
        self._entries: dict[str, list[GazetteerEntry]] = {}

    def add(self, entry: GazetteerEntry, surface: Optional[str] = None) -> None:
        key = (surface or entry.name).strip().lower()
        self._entries.setdefault(key, []).append(entry)

    def get(self, placename: str) -> list[GazetteerEntry]:
        return list(self._entries.get(placename.strip().lower(), []))

    def contains(self, placename: str) -> bool:
        return placename.strip().lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def max_ambiguity(self) -> int:
        """Largest number of candidate locations for a single name."""
        return max((len(v) for v in self._entries.values()), default=0)

    # ── sqlite backend ─────────────────────────────────────────────────

    @classmethod
    def from_sqlite(cls, db_path: Path) -> "Gazetteer":
        gaz = cls()
        conn = sqlite3.connect(str(db_path))
        conn.row_factory = sqlite3.Row
        try:
            rows = conn.execute(
                "SELECT name, type, lat, lon, pop, container FROM places ORDER BY id"
            ).fetchall()
        finally:
            conn.close()

        for row in rows:
            gaz.add(
                GazetteerEntry(
                    name=row["name"],
                    location_type=row["type"] or "",
                    latitude=float(row["lat"]),
                    longitude=float(row["lon"]),
                    population=int(row["pop"] or 0),
                    container=row["container"],
                )
            )
        logger.info("Loaded %d place names (max ambiguity %d) from %s", len(gaz), gaz.max_ambiguity, db_path)
        return gaz

    def to_sqlite(self, db_path: Path) -> None:
        conn = sqlite3.connect(str(db_path))
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS places (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    type TEXT,
                    lat REAL NOT NULL,
                    lon REAL NOT NULL,
                    pop INTEGER DEFAULT 0,
                    container TEXT
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS places_name ON places (name)")
            for key, entries in self._entries.items():
                for e in entries:
                    conn.execute(
                        "INSERT INTO places (name, type, lat, lon, pop, container) VALUES (?, ?, ?, ?, ?, ?)",
                        (key, e.location_type, e.latitude, e.longitude, e.population, e.container),
                    )
            conn.commit()
        finally:
            conn.close()


def toponym_candidates(
    lexicon: Mapping[int, str],
    gazetteer: Gazetteer,
) -> dict[int, list[tuple[float, float]]]:
    """(lat, lon) candidates per word id, for words the gazetteer knows."""
    out: dict[int, list[tuple[float, float]]] = {}
    for word_id, word in lexicon.items():
        entries = gazetteer.get(word)
        if entries:
            out[word_id] = [(e.latitude, e.longitude) for e in entries]
    return out
