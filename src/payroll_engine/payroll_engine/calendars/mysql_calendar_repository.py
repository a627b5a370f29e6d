from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import CalendarScope, DayType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import CalendarDayTypeEntry, CalendarRef
from .repository import CalendarRepository


def _scope_filter(ref: CalendarRef) -> tuple[str, tuple]:
    # Company calendar rows carry a NULL scope_id.
    if ref.scope == CalendarScope.INSTITUTION and ref.scope_id is not None:
        return "calendar_scope=%s AND scope_id=%s", (ref.scope.value, int(ref.scope_id))
    return "calendar_scope=%s AND scope_id IS NULL", (ref.scope.value,)


class MySQLCalendarRepository(CalendarRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_entries(self, *, ref: CalendarRef, start: date, end: date) -> Sequence[CalendarDayTypeEntry]:
        where, params = _scope_filter(ref)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT calendar_scope, scope_id, day, day_type, description
                FROM calendar_day_types
                WHERE {where} AND day BETWEEN %s AND %s
                ORDER BY day
                """,
                (*params, start, end),
            )
            return [
                CalendarDayTypeEntry(
                    scope=CalendarScope(r["calendar_scope"]),
                    scope_id=r.get("scope_id"),
                    day=r["day"],
                    day_type=DayType(r["day_type"]),
                    description=r.get("description"),
                )
                for r in fetchall(cur)
            ]

    def upsert(self, *, ref: CalendarRef, day: date, day_type: DayType, description: Optional[str] = None) -> None:
        where, params = _scope_filter(ref)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT entry_id FROM calendar_day_types WHERE {where} AND day=%s", (*params, day))
            existing = fetchone(cur)
            if existing:
                cur.execute(
                    "UPDATE calendar_day_types SET day_type=%s, description=%s WHERE entry_id=%s",
                    (day_type.value, description, int(existing["entry_id"])),
                )
                return
            cur.execute(
                """
                INSERT INTO calendar_day_types(calendar_scope, scope_id, day, day_type, description)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (ref.scope.value, ref.scope_id, day, day_type.value, description),
            )

    def delete(self, *, ref: CalendarRef, day: date) -> bool:
        where, params = _scope_filter(ref)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"DELETE FROM calendar_day_types WHERE {where} AND day=%s", (*params, day))
            return cur.rowcount > 0
