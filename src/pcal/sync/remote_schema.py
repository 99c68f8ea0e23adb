"""云端关系型存储 DDL

每张表以 (user_id, id|code) 为唯一键，携带 created_at / updated_at / deleted_at。
updated_at 由触发器维护；活跃行查询走 deleted_at IS NULL 的部分索引。
"""

import aiosqlite

# 毫秒精度的 UTC 时间戳，字典序即时间序
NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"

_TABLES_SQL = f"""
CREATE TABLE IF NOT EXISTS users (
    user_id         TEXT PRIMARY KEY,
    last_sync_at    TEXT,
    created_at      TEXT NOT NULL DEFAULT ({NOW_SQL}),
    updated_at      TEXT NOT NULL DEFAULT ({NOW_SQL})
);

CREATE TABLE IF NOT EXISTS children (
    id              TEXT NOT NULL,
    user_id         TEXT NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    name            TEXT NOT NULL,
    center          TEXT NOT NULL DEFAULT '',
    teacher         TEXT NOT NULL DEFAULT '',
    created_at      TEXT NOT NULL DEFAULT ({NOW_SQL}),
    updated_at      TEXT NOT NULL DEFAULT ({NOW_SQL}),
    deleted_at      TEXT,
    PRIMARY KEY (user_id, id)
);

CREATE TABLE IF NOT EXISTS daily_entries (
    id                  TEXT NOT NULL,
    user_id             TEXT NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    date                TEXT NOT NULL,
    child_id            TEXT NOT NULL,
    lines               TEXT NOT NULL DEFAULT '[]',
    signature_base64    TEXT,
    ai_summary          TEXT,
    ai_summary_provider TEXT,
    is_locked           INTEGER NOT NULL DEFAULT 0,
    emailed_at          INTEGER,
    created_at          TEXT NOT NULL DEFAULT ({NOW_SQL}),
    updated_at          TEXT NOT NULL DEFAULT ({NOW_SQL}),
    deleted_at          TEXT,
    PRIMARY KEY (user_id, id)
);

CREATE TABLE IF NOT EXISTS goals (
    code            INTEGER NOT NULL,
    user_id         TEXT NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    description     TEXT NOT NULL,
    activities      TEXT NOT NULL DEFAULT '[]',
    created_at      TEXT NOT NULL DEFAULT ({NOW_SQL}),
    updated_at      TEXT NOT NULL DEFAULT ({NOW_SQL}),
    deleted_at      TEXT,
    PRIMARY KEY (user_id, code)
);

CREATE TABLE IF NOT EXISTS journal_events (
    id              TEXT NOT NULL,
    user_id         TEXT NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    timestamp       INTEGER NOT NULL,
    type            TEXT NOT NULL,
    payload         TEXT NOT NULL,
    checksum        TEXT NOT NULL,
    created_at      TEXT NOT NULL DEFAULT ({NOW_SQL}),
    PRIMARY KEY (user_id, id)
);
"""

_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_children_active
    ON children(user_id, created_at) WHERE deleted_at IS NULL;
CREATE INDEX IF NOT EXISTS idx_daily_entries_active
    ON daily_entries(user_id, created_at) WHERE deleted_at IS NULL;
CREATE INDEX IF NOT EXISTS idx_daily_entries_child
    ON daily_entries(user_id, child_id) WHERE deleted_at IS NULL;
CREATE INDEX IF NOT EXISTS idx_goals_active
    ON goals(user_id, code) WHERE deleted_at IS NULL;
CREATE INDEX IF NOT EXISTS idx_journal_events_ts
    ON journal_events(user_id, timestamp);
"""


def _updated_at_trigger(table: str, key: str) -> str:
    # WHEN 条件保证触发器自身的 UPDATE 不会再次触发
    return f"""
CREATE TRIGGER IF NOT EXISTS trg_{table}_updated_at
AFTER UPDATE ON {table}
FOR EACH ROW WHEN NEW.updated_at = OLD.updated_at
BEGIN
    UPDATE {table} SET updated_at = {NOW_SQL}
    WHERE user_id = NEW.user_id AND {key} = NEW.{key};
END;
"""


_TRIGGERS_SQL = (
    _updated_at_trigger("children", "id")
    + _updated_at_trigger("daily_entries", "id")
    + _updated_at_trigger("goals", "code")
    + """
CREATE TRIGGER IF NOT EXISTS trg_users_updated_at
AFTER UPDATE ON users
FOR EACH ROW WHEN NEW.updated_at = OLD.updated_at
BEGIN
    UPDATE users SET updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
    WHERE user_id = NEW.user_id;
END;
"""
)


async def init_remote_db(conn: aiosqlite.Connection) -> None:
    """初始化云端数据库：WAL、外键、表、索引、触发器"""
    await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute("PRAGMA foreign_keys=ON")
    await conn.executescript(_TABLES_SQL)
    await conn.executescript(_INDEXES_SQL)
    await conn.executescript(_TRIGGERS_SQL)
    await conn.commit()
