"""SQLite schema management (code-first approach)."""

import logging

from src.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = ["tasks"]

TABLE_SCHEMAS: dict[str, str] = {
    "tasks": """CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL,
        updated TEXT NOT NULL,
        text TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        notes TEXT NOT NULL DEFAULT '',
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
        priority_rank INTEGER NOT NULL DEFAULT 1,
        category TEXT NOT NULL DEFAULT 'personal'
            CHECK (category IN ('personal', 'work', 'shopping', 'health', 'education', 'other')),
        tags TEXT NOT NULL DEFAULT '[]',
        due_date TEXT,
        estimated_time INTEGER CHECK (estimated_time IS NULL OR estimated_time >= 0),
        actual_time INTEGER CHECK (actual_time IS NULL OR actual_time >= 0),
        recurring TEXT NOT NULL DEFAULT 'none'
            CHECK (recurring IN ('none', 'daily', 'weekly', 'monthly')),
        completed INTEGER NOT NULL DEFAULT 0,
        completed_at TEXT,
        progress INTEGER NOT NULL DEFAULT 0 CHECK (progress BETWEEN 0 AND 100),
        is_daily INTEGER NOT NULL DEFAULT 0,
        daily_reset INTEGER NOT NULL DEFAULT 0,
        completed_dates TEXT NOT NULL DEFAULT '[]',
        subtasks TEXT NOT NULL DEFAULT '[]',
        attachments TEXT NOT NULL DEFAULT '[]'
    )""",
}

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_category ON tasks (category)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_completed ON tasks (completed)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks (due_date)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_is_daily ON tasks (is_daily)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks (created)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist (idempotent)."""
    conn = await db_client.get_connection(db_path=db_path)

    for table_name, ddl in TABLE_SCHEMAS.items():
        await conn.execute(ddl)
        logger.info("Ensured table", extra={"table": table_name})

    for index_sql in INDEXES:
        await conn.execute(index_sql)

    await conn.commit()
    logger.info("SQLite schema initialized", extra={"tables": list(TABLE_SCHEMAS)})
