"""
db/init_db.py
-------------
Creates the database schema (tables) if they do not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

from db.connection import dialect, get_connection, release_connection
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
-- Owners: external account ids handed to us by the auth gateway
CREATE TABLE IF NOT EXISTS owners (
    id              SERIAL PRIMARY KEY,
    owner_id        BIGINT UNIQUE NOT NULL,
    created_at      TIMESTAMPTZ DEFAULT NOW()
);

-- Categories used to group bills in summaries
CREATE TABLE IF NOT EXISTS categories (
    id              SERIAL PRIMARY KEY,
    owner_id        BIGINT NOT NULL REFERENCES owners(owner_id) ON DELETE CASCADE,
    name            VARCHAR(50) NOT NULL,
    created_at      TIMESTAMPTZ DEFAULT NOW(),
    UNIQUE(owner_id, name)
);

-- Recurring templates: payees (bills) and income sources
CREATE TABLE IF NOT EXISTS recurring_templates (
    id              SERIAL PRIMARY KEY,
    owner_id        BIGINT NOT NULL REFERENCES owners(owner_id) ON DELETE CASCADE,
    kind            VARCHAR(20) NOT NULL CHECK (kind IN ('PAYEE', 'INCOME_SOURCE')),
    name            VARCHAR(100) NOT NULL,
    expected_amount NUMERIC(12,2) NOT NULL,
    frequency       VARCHAR(20) NOT NULL CHECK (frequency IN
                        ('WEEKLY', 'BIWEEKLY', 'MONTHLY', 'QUARTERLY', 'BIANNUAL', 'ANNUAL', 'ONE_TIME')),
    start_date      DATE NOT NULL,
    category_id     INT REFERENCES categories(id) ON DELETE SET NULL,
    description     TEXT,
    generated_through DATE,
    created_at      TIMESTAMPTZ DEFAULT NOW()
);

-- Obligations: concrete bill / income instances
CREATE TABLE IF NOT EXISTS obligations (
    id              SERIAL PRIMARY KEY,
    owner_id        BIGINT NOT NULL REFERENCES owners(owner_id) ON DELETE CASCADE,
    kind            VARCHAR(10) NOT NULL CHECK (kind IN ('BILL', 'INCOME')),
    name            VARCHAR(100) NOT NULL,
    template_id     INT REFERENCES recurring_templates(id) ON DELETE CASCADE,
    amount          NUMERIC(12,2) NOT NULL,
    due_date        DATE NOT NULL,
    is_paid         BOOLEAN NOT NULL DEFAULT FALSE,
    paid_date       DATE,
    category_id     INT REFERENCES categories(id) ON DELETE SET NULL,
    parent_id       INT,
    description     TEXT,
    created_at      TIMESTAMPTZ DEFAULT NOW()
);

-- Payment ledger: one row per completed payment
CREATE TABLE IF NOT EXISTS payment_ledger (
    id              SERIAL PRIMARY KEY,
    obligation_id   INT NOT NULL REFERENCES obligations(id) ON DELETE CASCADE,
    amount          NUMERIC(12,2) NOT NULL,
    paid_date       DATE NOT NULL,
    created_at      TIMESTAMPTZ DEFAULT NOW()
);

-- Notification delivery channels per owner
CREATE TABLE IF NOT EXISTS notification_providers (
    id              SERIAL PRIMARY KEY,
    owner_id        BIGINT NOT NULL REFERENCES owners(owner_id) ON DELETE CASCADE,
    provider_type   VARCHAR(20) NOT NULL,
    enabled         BOOLEAN NOT NULL DEFAULT FALSE,
    credentials     TEXT NOT NULL DEFAULT '{}',
    UNIQUE(owner_id, provider_type)
);

-- Notification kinds per owner
CREATE TABLE IF NOT EXISTS notification_types (
    id              SERIAL PRIMARY KEY,
    owner_id        BIGINT NOT NULL REFERENCES owners(owner_id) ON DELETE CASCADE,
    type            VARCHAR(20) NOT NULL,
    enabled         BOOLEAN NOT NULL DEFAULT FALSE,
    settings        TEXT NOT NULL DEFAULT '{}',
    UNIQUE(owner_id, type)
);

-- Which providers deliver which notification kind
CREATE TABLE IF NOT EXISTS notification_type_providers (
    type_id         INT NOT NULL REFERENCES notification_types(id) ON DELETE CASCADE,
    provider_id     INT NOT NULL REFERENCES notification_providers(id) ON DELETE CASCADE,
    PRIMARY KEY (type_id, provider_id)
);

-- Indexes for faster queries
CREATE UNIQUE INDEX IF NOT EXISTS uq_obligations_template_due ON obligations(template_id, due_date);
CREATE INDEX IF NOT EXISTS idx_obligations_owner_due ON obligations(owner_id, due_date);
CREATE INDEX IF NOT EXISTS idx_obligations_parent ON obligations(parent_id);
CREATE INDEX IF NOT EXISTS idx_ledger_obligation ON payment_ledger(obligation_id, paid_date);
"""


def _sqlite_schema() -> str:
    """Rewrite the PostgreSQL DDL into the SQLite dialect."""
    return (
        SCHEMA_SQL
        .replace("SERIAL PRIMARY KEY", "INTEGER PRIMARY KEY AUTOINCREMENT")
        .replace("TIMESTAMPTZ DEFAULT NOW()", "TIMESTAMP DEFAULT CURRENT_TIMESTAMP")
    )


def create_tables() -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    conn = get_connection()
    try:
        if dialect() == "sqlite":
            conn.executescript(_sqlite_schema())
        else:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
        conn.commit()
        logger.info("Database schema initialized successfully.")
    except Exception as e:
        conn.rollback()
        logger.error(f"Failed to initialize schema: {e}")
        raise
    finally:
        release_connection(conn)


if __name__ == "__main__":
    from db.connection import init_pool
    init_pool()
    create_tables()
    print("Database schema created successfully.")
