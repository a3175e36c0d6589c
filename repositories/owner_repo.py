"""
repositories/owner_repo.py
--------------------------
Data access layer for owner records.
Owners are created lazily the first time an authenticated id shows up.
"""

from db.connection import get_connection, release_connection
from utils.logger import get_logger

logger = get_logger(__name__)


class OwnerRepository:
    """Repository for the owners table."""

    def ensure_owner(self, owner_id: int) -> None:
        """
        Insert an owner row if it does not exist yet.
        Uses ON CONFLICT so concurrent first requests cannot collide.

        Args:
            owner_id: The external owner id from the auth gateway.
        """
        sql = "INSERT INTO owners (owner_id) VALUES (%s) ON CONFLICT (owner_id) DO NOTHING;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (owner_id,))
                created = cur.rowcount > 0
            conn.commit()
            if created:
                logger.info(f"Registered new owner {owner_id}")
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to ensure owner {owner_id}: {e}")
            raise
        finally:
            release_connection(conn)

    def exists(self, owner_id: int) -> bool:
        sql = "SELECT 1 FROM owners WHERE owner_id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (owner_id,))
                return cur.fetchone() is not None
        finally:
            release_connection(conn)
