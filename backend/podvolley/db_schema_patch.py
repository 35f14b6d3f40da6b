from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Columns we must ensure exist in the "tournaments" table.
# (name, sqlite_type, postgres_type)
REQUIRED_TOURNAMENT_COLUMNS: List[Tuple[str, str, str]] = [
    ("bracket_format", "VARCHAR DEFAULT 'three_team'", "VARCHAR DEFAULT 'three_team'"),
    ("scoring_rules", "JSON", "JSON"),
    ("require_auth", "INTEGER DEFAULT 1", "BOOLEAN DEFAULT TRUE"),
    ("registration_open_date", "DATETIME", "TIMESTAMP"),
]

# Columns we must ensure exist in the "pods" table.
REQUIRED_POD_COLUMNS: List[Tuple[str, str, str]] = [
    ("player3", "VARCHAR", "VARCHAR"),
    ("pod_number", "INTEGER", "INTEGER"),
]

# Feeder edges were added after the first bracket deployments.
REQUIRED_BRACKET_MATCH_COLUMNS: List[Tuple[str, str, str]] = [
    ("source_game_a", "INTEGER", "INTEGER"),
    ("source_a_role", "VARCHAR", "VARCHAR"),
    ("source_game_b", "INTEGER", "INTEGER"),
    ("source_b_role", "VARCHAR", "VARCHAR"),
    ("winner_team_id", "INTEGER", "INTEGER"),
]

# Rows created before pod_number existed get the old implicit numbering (id order per tournament).
_BACKFILL_POD_NUMBERS = """
UPDATE pods SET pod_number = (
    SELECT COUNT(*) FROM pods AS earlier
    WHERE earlier.tournament_id = pods.tournament_id AND earlier.id <= pods.id
)
WHERE pod_number IS NULL
"""


def _is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name.lower() == "sqlite"


def _get_existing_columns_sqlite(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    with engine.connect() as conn:
        res = conn.execute(text(f"PRAGMA table_info({table_name});")).fetchall()
        # PRAGMA table_info returns rows: (cid, name, type, notnull, dflt_value, pk)
        for row in res:
            cols[str(row[1])] = str(row[2])
    return cols


def _get_existing_columns_postgres(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    sql = """
    SELECT column_name, data_type
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = :table_name;
    """
    with engine.connect() as conn:
        res = conn.execute(text(sql), {"table_name": table_name}).fetchall()
        for row in res:
            cols[str(row[0])] = str(row[1])
    return cols


def _table_exists(engine: Engine, table: str) -> bool:
    with engine.connect() as conn:
        if _is_sqlite(engine):
            result = conn.execute(
                text("SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name"),
                {"table_name": table},
            ).fetchone()
            return bool(result)
        result = conn.execute(
            text("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public' AND table_name = :table_name
            )
        """),
            {"table_name": table},
        ).fetchone()
        return bool(result and result[0])


def _ensure_columns(engine: Engine, table: str, required: List[Tuple[str, str, str]]) -> List[str]:
    """
    Idempotently add missing columns to a table. Returns the names of columns added.
    Skips silently if the table doesn't exist yet (create_all should create it).
    """
    if not _table_exists(engine, table):
        return []

    added: List[str] = []
    if _is_sqlite(engine):
        existing = _get_existing_columns_sqlite(engine, table)
        with engine.begin() as conn:
            for name, sqlite_type, _pg_type in required:
                if name in existing:
                    continue
                # SQLite supports ADD COLUMN without IF NOT EXISTS
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {sqlite_type};"))
                added.append(name)
    else:
        existing = _get_existing_columns_postgres(engine, table)
        with engine.begin() as conn:
            for name, _sqlite_type, pg_type in required:
                if name in existing:
                    continue
                # Postgres supports IF NOT EXISTS
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {name} {pg_type};"))
                added.append(name)

    if added:
        logger.info(f"Added columns to {table}: {', '.join(added)}")
    return added


def ensure_tournament_columns(engine: Engine) -> None:
    """
    Idempotently adds required columns to the 'tournaments' table if missing.
    Safe to run at every startup.
    """
    try:
        from podvolley.models.tournament import Tournament

        _ensure_columns(engine, Tournament.__table__.name, REQUIRED_TOURNAMENT_COLUMNS)
    except Exception as e:
        # Log error but don't crash the server
        logger.warning(f"Failed to ensure tournament columns (this is OK if table doesn't exist yet): {e}")


def ensure_pod_columns(engine: Engine) -> None:
    """
    Idempotently adds required columns to the 'pods' table and numbers any
    pods that predate stored pod numbers. Safe to run at every startup.
    """
    try:
        from podvolley.models.pod import Pod

        table = Pod.__table__.name
        _ensure_columns(engine, table, REQUIRED_POD_COLUMNS)
        if _table_exists(engine, table):
            with engine.begin() as conn:
                result = conn.execute(text(_BACKFILL_POD_NUMBERS))
                if result.rowcount:
                    logger.info(f"Backfilled pod_number for {result.rowcount} pods")
    except Exception as e:
        logger.warning(f"Failed to ensure pod columns (this is OK if table doesn't exist yet): {e}")


def ensure_bracket_match_columns(engine: Engine) -> None:
    try:
        from podvolley.models.bracket_match import BracketMatch

        _ensure_columns(engine, BracketMatch.__table__.name, REQUIRED_BRACKET_MATCH_COLUMNS)
    except Exception as e:
        logger.warning(f"Failed to ensure bracket match columns (this is OK if table doesn't exist yet): {e}")
