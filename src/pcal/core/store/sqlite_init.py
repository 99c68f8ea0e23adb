"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# journal 表 DDL（append-only；seq 记录写入顺序，作为同一 timestamp 的次级排序键）
_JOURNAL_DDL = """
CREATE TABLE IF NOT EXISTS journal (
    seq         INTEGER PRIMARY KEY AUTOINCREMENT,
    id          TEXT NOT NULL UNIQUE,
    timestamp   INTEGER NOT NULL,
    type        TEXT NOT NULL,
    payload     TEXT NOT NULL DEFAULT '{}',
    checksum    TEXT NOT NULL
);
"""

_JOURNAL_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_journal_order ON journal(timestamp, seq);",
    "CREATE INDEX IF NOT EXISTS idx_journal_type ON journal(type);",
]

# daily_entries 表 DDL（journal 的物化视图）
_DAILY_ENTRIES_DDL = """
CREATE TABLE IF NOT EXISTS daily_entries (
    id                   TEXT PRIMARY KEY,
    date                 TEXT NOT NULL,
    child_id             TEXT NOT NULL,
    lines                TEXT NOT NULL DEFAULT '[]',
    signature_base64     TEXT,
    ai_summary           TEXT,
    ai_summary_provider  TEXT,
    is_locked            INTEGER NOT NULL DEFAULT 0,
    emailed_at           INTEGER
);
"""

_DAILY_ENTRIES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_daily_entries_date ON daily_entries(date);",
    "CREATE INDEX IF NOT EXISTS idx_daily_entries_child_id ON daily_entries(child_id);",
]

_CHILDREN_DDL = """
CREATE TABLE IF NOT EXISTS children (
    id       TEXT PRIMARY KEY,
    name     TEXT NOT NULL,
    center   TEXT NOT NULL DEFAULT '',
    teacher  TEXT NOT NULL DEFAULT ''
);
"""

_GOALS_DDL = """
CREATE TABLE IF NOT EXISTS goals (
    code         INTEGER PRIMARY KEY,
    description  TEXT NOT NULL,
    activities   TEXT NOT NULL DEFAULT '[]'
);
"""


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化本地数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_JOURNAL_DDL)
    await conn.execute(_DAILY_ENTRIES_DDL)
    await conn.execute(_CHILDREN_DDL)
    await conn.execute(_GOALS_DDL)

    for idx_sql in _JOURNAL_INDEXES + _DAILY_ENTRIES_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()

