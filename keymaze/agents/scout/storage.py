"""SQLite journal for scout runs.

One row per reset, action, plan and error, plus the set of cells visited in
each episode. WAL mode lets several workers share a database file.
"""

import json
import os
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_SCHEMA = """
CREATE TABLE IF NOT EXISTS journal (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    worker_id TEXT NOT NULL,
    episode INTEGER NOT NULL,
    step INTEGER NOT NULL,
    event TEXT NOT NULL,
    data TEXT
);

CREATE INDEX IF NOT EXISTS idx_journal_episode ON journal(episode, step);
CREATE INDEX IF NOT EXISTS idx_journal_event ON journal(event);

CREATE TABLE IF NOT EXISTS visited (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    worker_id TEXT NOT NULL,
    episode INTEGER NOT NULL,
    maze_id INTEGER NOT NULL,
    x INTEGER NOT NULL,
    y INTEGER NOT NULL,
    first_step INTEGER NOT NULL,
    UNIQUE(worker_id, episode, maze_id, x, y)
);

CREATE INDEX IF NOT EXISTS idx_visited_lookup ON visited(worker_id, episode, maze_id);
"""


class ScoutStorage:
    """SQLite journal of scout decisions and visited cells."""

    def __init__(self, db_path: Path | str, worker_id: str | None = None):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), timeout=30.0)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.worker_id = worker_id or f"w{os.getpid()}"
        self.conn.executescript(_SCHEMA)
        self.conn.commit()

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat(timespec="milliseconds")

    def close(self) -> None:
        self.conn.close()

    # -------------------------------------------------------------------------
    # Journal methods
    # -------------------------------------------------------------------------

    def _log(self, episode: int, step: int, event: str, data: dict[str, Any] | None = None) -> None:
        self.conn.execute(
            "INSERT INTO journal (timestamp, worker_id, episode, step, event, data) VALUES (?, ?, ?, ?, ?, ?)",
            (self._now(), self.worker_id, episode, step, event, json.dumps(data) if data else None),
        )
        self.conn.commit()

    def log_reset(self, episode: int, maze_id: int, best_case: int | None = None, known_cells: int = 0) -> None:
        self._log(episode, 0, "reset", {"maze_id": maze_id, "best_case": best_case, "known_cells": known_cells})

    def log_action(
        self,
        episode: int,
        step: int,
        action: str,
        position: tuple[int, int],
        keys: int,
        decision: str | None = None,
    ) -> None:
        data: dict[str, Any] = {"action": action, "x": position[0], "y": position[1], "keys": keys}
        if decision:
            data["decision"] = decision
        self._log(episode, step, "action", data)

    def log_plan(
        self,
        episode: int,
        step: int,
        target: str,
        reason: str,
        cost: int | None,
        queries: int,
        elapsed_ms: float,
    ) -> None:
        """Log the outcome of one planner pass."""
        self._log(episode, step, "plan", {
            "target": target,
            "reason": reason,
            "cost": cost,
            "queries": queries,
            "elapsed_ms": round(elapsed_ms, 2),
        })

    def log_best_case(self, episode: int, step: int, maze_id: int, moves: int) -> None:
        self._log(episode, step, "best_case", {"maze_id": maze_id, "moves": moves})

    def log_error(self, episode: int, step: int, error: str) -> None:
        self._log(episode, step, "error", {"error": error})

    def log_position(self, episode: int, step: int, maze_id: int, x: int, y: int) -> None:
        """Log visited position (upsert - only stores first visit)."""
        self.conn.execute(
            """INSERT OR IGNORE INTO visited (worker_id, episode, maze_id, x, y, first_step)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (self.worker_id, episode, maze_id, x, y, step),
        )
        self.conn.commit()

    def get_visited(self, episode: int, maze_id: int) -> set[tuple[int, int]]:
        """Get all visited (x, y) positions for an episode on one maze."""
        rows = self.conn.execute(
            """SELECT x, y FROM visited
               WHERE worker_id = ? AND episode = ? AND maze_id = ?""",
            (self.worker_id, episode, maze_id),
        ).fetchall()
        return {(row[0], row[1]) for row in rows}

    def get_events(self, episode: int, event: str | None = None) -> list[dict[str, Any]]:
        """Journal rows for an episode in insertion order, data decoded."""
        query = "SELECT step, event, data FROM journal WHERE worker_id = ? AND episode = ?"
        params: list[Any] = [self.worker_id, episode]
        if event is not None:
            query += " AND event = ?"
            params.append(event)
        query += " ORDER BY id ASC"
        rows = self.conn.execute(query, params).fetchall()
        return [
            {
                "step": r["step"],
                "event": r["event"],
                "data": json.loads(r["data"]) if r["data"] else None,
            }
            for r in rows
        ]

    def max_episode(self) -> int:
        """Get highest episode number across all tables globally.

        Episode numbers must be unique across all workers to ensure
        visited positions don't collide between different runs.
        """
        max_vals = []
        for query in [
            "SELECT MAX(episode) FROM journal",
            "SELECT MAX(episode) FROM visited",
        ]:
            row = self.conn.execute(query).fetchone()
            if row[0] is not None:
                max_vals.append(row[0])
        return max(max_vals) if max_vals else 0
