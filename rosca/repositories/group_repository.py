# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Group aggregate data access.
Encapsulates all read/write operations on stored groups.
NO business rules here — pure CRUD. Reads return copies, so callers only
ever see snapshots and must save() to change stored state.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from rosca.core.logging import get_logger
from rosca.models.domain import Group

logger = get_logger(__name__)


class InMemoryGroupRepository:
    """In-memory group storage."""

    def __init__(self) -> None:
        self._store: dict[str, Group] = {}

    # ── Read ──

    def get_all(self) -> list[Group]:
        return [g.model_copy(deep=True) for g in self._store.values()]

    def get(self, group_id: str) -> Optional[Group]:
        group = self._store.get(group_id)
        return group.model_copy(deep=True) if group is not None else None

    def find_by_invite_code(self, invite_code: str) -> Optional[Group]:
        code = invite_code.strip().upper()
        for group in self._store.values():
            if group.invite_code == code:
                return group.model_copy(deep=True)
        return None

    def exists(self, group_id: str) -> bool:
        return group_id in self._store

    def count(self) -> int:
        return len(self._store)

    # ── Write ──

    def save(self, group: Group) -> None:
        self._store[group.id] = group.model_copy(deep=True)

    def delete(self, group_id: str) -> Optional[Group]:
        return self._store.pop(group_id, None)

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._store.clear()


class SqlGroupRepository:
    """
    Key-value group storage on any SQLAlchemy engine.
    Each group is one JSON document in the rotation_groups table.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self.create_schema()

    def create_schema(self) -> None:
        with self._engine.begin() as conn:
            conn.execute(text("""
                CREATE TABLE IF NOT EXISTS rotation_groups (
                    id          VARCHAR(64) PRIMARY KEY,
                    invite_code VARCHAR(16) NOT NULL,
                    document    TEXT        NOT NULL,
                    updated_at  VARCHAR(64) NOT NULL
                )
            """))

    # ── Read ──

    def get_all(self) -> list[Group]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text("SELECT document FROM rotation_groups ORDER BY id")
            ).mappings().all()
        return [Group.model_validate_json(r["document"]) for r in rows]

    def get(self, group_id: str) -> Optional[Group]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT document FROM rotation_groups WHERE id = :id"),
                {"id": group_id},
            ).mappings().first()
        return Group.model_validate_json(row["document"]) if row else None

    def find_by_invite_code(self, invite_code: str) -> Optional[Group]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("SELECT document FROM rotation_groups WHERE invite_code = :code"),
                {"code": invite_code.strip().upper()},
            ).mappings().first()
        return Group.model_validate_json(row["document"]) if row else None

    def exists(self, group_id: str) -> bool:
        with self._engine.connect() as conn:
            found = conn.execute(
                text("SELECT 1 FROM rotation_groups WHERE id = :id"),
                {"id": group_id},
            ).first()
        return found is not None

    def count(self) -> int:
        with self._engine.connect() as conn:
            return conn.execute(text("SELECT COUNT(*) FROM rotation_groups")).scalar() or 0

    # ── Write ──

    def save(self, group: Group) -> None:
        params = {
            "id": group.id,
            "invite_code": group.invite_code,
            "document": group.model_dump_json(),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            with self._engine.begin() as conn:
                conn.execute(text("DELETE FROM rotation_groups WHERE id = :id"), {"id": group.id})
                conn.execute(
                    text("""
                        INSERT INTO rotation_groups (id, invite_code, document, updated_at)
                        VALUES (:id, :invite_code, :document, :updated_at)
                    """),
                    params,
                )
        except SQLAlchemyError as exc:
            logger.error("Failed to persist group %s: %s", group.id, exc)
            raise

    def delete(self, group_id: str) -> Optional[Group]:
        group = self.get(group_id)
        if group is not None:
            with self._engine.begin() as conn:
                conn.execute(text("DELETE FROM rotation_groups WHERE id = :id"), {"id": group_id})
        return group

    # ── Bulk / internal ──

    def clear(self) -> None:
        with self._engine.begin() as conn:
            conn.execute(text("DELETE FROM rotation_groups"))

    def dispose(self) -> None:
        self._engine.dispose()


GroupRepository = InMemoryGroupRepository | SqlGroupRepository
