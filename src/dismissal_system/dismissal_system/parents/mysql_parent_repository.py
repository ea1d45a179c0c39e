from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Parent
from .repository import ParentDirectory


class MySQLParentRepository(ParentDirectory):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def parent_by_id(self, parent_id: str) -> Optional[Parent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT parent_id, parent_name, phone, alternate_name, alternate_phone
                FROM parents
                WHERE parent_id=%s
                """,
                (parent_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Parent(
                parent_id=str(r["parent_id"]),
                parent_name=r["parent_name"],
                phone=r.get("phone"),
                alternate_name=r.get("alternate_name"),
                alternate_phone=r.get("alternate_phone"),
            )
