"""
Weekly availability slots.
"""
from __future__ import annotations

from typing import Dict, Iterable, List

from core.db.base import Database


def replace_availability(db: Database, userid: str, slots: Iterable[Dict]) -> int:
    """Swap the user's weekly slots for `slots`. Returns how many were stored."""
    rows = [(userid, s["dayOfWeek"], s["startTime"], s["endTime"]) for s in slots]
    if not rows:
        raise ValueError("Invalid time slots")

    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute("DELETE FROM availability WHERE userid = ?", (userid,))
        cur.executemany(
            "INSERT INTO availability (userid, day_of_week, start_time, end_time) VALUES (?, ?, ?, ?)",
            rows,
        )
    return len(rows)


def get_availability(db: Database, userid: str) -> List[Dict]:
    with db.connect() as conn:
        cur = conn.cursor()
        cur.execute(
            "SELECT day_of_week, start_time, end_time FROM availability WHERE userid = ? ORDER BY id",
            (userid,),
        )
        return [dict(r) for r in cur.fetchall()]


__all__ = ["replace_availability", "get_availability"]
