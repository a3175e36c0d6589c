"""
repositories/category_repo.py
-----------------------------
Data access layer for bill categories.
"""

from typing import Optional

from db.connection import get_connection, release_connection
from models.category import Category
from utils.logger import get_logger

logger = get_logger(__name__)


class CategoryRepository:
    """Repository for CRUD operations on the categories table."""

    def add(self, category: Category) -> Category:
        """Insert a category and populate its id."""
        sql = "INSERT INTO categories (owner_id, name) VALUES (%s, %s) RETURNING id;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (category.owner_id, category.name))
                category.id = cur.fetchone()[0]
            conn.commit()
            logger.info(f"Added category '{category.name}' #{category.id} for owner {category.owner_id}")
            return category
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to add category '{category.name}': {e}")
            raise
        finally:
            release_connection(conn)

    def get_by_id(self, category_id: int) -> Optional[Category]:
        sql = "SELECT id, owner_id, name FROM categories WHERE id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (category_id,))
                row = cur.fetchone()
                return Category(id=row[0], owner_id=row[1], name=row[2]) if row else None
        finally:
            release_connection(conn)

    def get_by_name(self, owner_id: int, name: str) -> Optional[Category]:
        """Case-insensitive lookup, used to reject duplicates."""
        sql = "SELECT id, owner_id, name FROM categories WHERE owner_id = %s AND LOWER(name) = LOWER(%s);"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (owner_id, name))
                row = cur.fetchone()
                return Category(id=row[0], owner_id=row[1], name=row[2]) if row else None
        finally:
            release_connection(conn)

    def get_all(self, owner_id: int) -> list[Category]:
        sql = "SELECT id, owner_id, name FROM categories WHERE owner_id = %s ORDER BY name;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (owner_id,))
                return [Category(id=r[0], owner_id=r[1], name=r[2]) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def is_in_use(self, category_id: int) -> bool:
        """True when any obligation or template still references the category."""
        sql = """
            SELECT EXISTS (SELECT 1 FROM obligations WHERE category_id = %s)
                OR EXISTS (SELECT 1 FROM recurring_templates WHERE category_id = %s);
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (category_id, category_id))
                return bool(cur.fetchone()[0])
        finally:
            release_connection(conn)

    def rename(self, category: Category) -> bool:
        sql = "UPDATE categories SET name = %s WHERE id = %s AND owner_id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (category.name, category.id, category.owner_id))
                updated = cur.rowcount > 0
            conn.commit()
            return updated
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to rename category #{category.id}: {e}")
            raise
        finally:
            release_connection(conn)

    def delete(self, category_id: int, owner_id: int) -> bool:
        sql = "DELETE FROM categories WHERE id = %s AND owner_id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (category_id, owner_id))
                deleted = cur.rowcount > 0
            conn.commit()
            if deleted:
                logger.info(f"Deleted category #{category_id} for owner {owner_id}")
            return deleted
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to delete category #{category_id}: {e}")
            raise
        finally:
            release_connection(conn)
