import logging
from contextlib import contextmanager

import psycopg2.extras
from psycopg2.pool import SimpleConnectionPool

from settings import settings

logger = logging.getLogger("gearguard.db")

_pool: SimpleConnectionPool | None = None


def init_pool():
    """
    Open the PostgreSQL pool sized from settings.
    Called lazily on first use and from the app lifespan.
    """
    global _pool
    if _pool is not None:
        return

    if not settings.DATABASE_URL:
        raise RuntimeError("DATABASE_URL is not set.")

    # uuid columns come back as uuid.UUID, matching the domain models
    psycopg2.extras.register_uuid()
    _pool = SimpleConnectionPool(
        minconn=settings.DB_POOL_MIN,
        maxconn=settings.DB_POOL_MAX,
        dsn=settings.DATABASE_URL,
        connect_timeout=5,
        application_name=settings.DB_APPLICATION_NAME,
    )
    logger.info("db_pool_opened min=%s max=%s", settings.DB_POOL_MIN, settings.DB_POOL_MAX)


def close_pool():
    global _pool
    if _pool:
        _pool.closeall()
        _pool = None
        logger.info("db_pool_closed")


def _apply_session_limits(conn) -> None:
    timeout = f"{settings.DB_STATEMENT_TIMEOUT_MS}ms"
    with conn.cursor() as cur:
        cur.execute("SET statement_timeout = %s;", (timeout,))
        cur.execute("SET idle_in_transaction_session_timeout = %s;", (timeout,))


@contextmanager
def get_conn():
    """
    One transaction per block: commit when the block exits cleanly,
    roll back on any exception and re-raise it.
    """
    if _pool is None:
        init_pool()

    conn = _pool.getconn()
    try:
        _apply_session_limits(conn)
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        _pool.putconn(conn)
