"""
repositories/template_repo.py
-----------------------------
Data access layer for recurring templates (payees and income sources).
All SQL queries related to the `recurring_templates` table live here.
"""

from datetime import date
from typing import Optional

from db.connection import get_connection, release_connection, transaction
from models.recurring import Frequency, RecurringTemplate, TemplateKind
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = (
    "id, owner_id, kind, name, expected_amount, frequency, "
    "start_date, category_id, description, created_at, generated_through"
)


class TemplateRepository:
    """Repository for CRUD operations on the recurring_templates table."""

    # ── CREATE ────────────────────────────────────────────

    def add(self, template: RecurringTemplate) -> RecurringTemplate:
        """
        Insert a new template.

        Args:
            template: The RecurringTemplate to persist.

        Returns:
            The same object with its `id` and `created_at` populated.
        """
        sql = """
            INSERT INTO recurring_templates
                (owner_id, kind, name, expected_amount, frequency, start_date, category_id, description)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    template.owner_id, template.kind.value, template.name,
                    template.expected_amount, template.frequency.value,
                    template.start_date, template.category_id, template.description,
                ))
                row = cur.fetchone()
                template.id = row[0]
                template.created_at = row[1]
            conn.commit()
            logger.info(
                f"Added {template.kind.value} template '{template.name}' #{template.id} "
                f"for owner {template.owner_id}"
            )
            return template
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to add template '{template.name}' for owner {template.owner_id}: {e}")
            raise
        finally:
            release_connection(conn)

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, template_id: int) -> Optional[RecurringTemplate]:
        """Fetch a template by id regardless of owner (callers check ownership)."""
        sql = f"SELECT {_COLUMNS} FROM recurring_templates WHERE id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (template_id,))
                row = cur.fetchone()
                return self._row_to_template(row) if row else None
        finally:
            release_connection(conn)

    def lock(self, cur, template_id: int) -> Optional[RecurringTemplate]:
        """
        Re-read a template inside the caller's transaction and hold its row lock
        until that transaction ends. Serializes generation for one template.
        """
        cur.execute(f"SELECT {_COLUMNS} FROM recurring_templates WHERE id = %s FOR UPDATE;", (template_id,))
        row = cur.fetchone()
        return self._row_to_template(row) if row else None

    def get_all(self, owner_id: int, kind: Optional[TemplateKind] = None) -> list[RecurringTemplate]:
        """
        Get all templates for an owner.

        Args:
            owner_id: External owner id.
            kind: Optional filter (PAYEE or INCOME_SOURCE).

        Returns:
            List of RecurringTemplate objects ordered by name.
        """
        sql = f"SELECT {_COLUMNS} FROM recurring_templates WHERE owner_id = %s"
        params: list = [owner_id]
        if kind:
            sql += " AND kind = %s"
            params.append(TemplateKind(kind).value)
        sql += " ORDER BY name ASC, id ASC;"

        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [self._row_to_template(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def get_recurring_owner_ids(self) -> list[int]:
        """Owners that have at least one template with a real recurrence."""
        sql = "SELECT DISTINCT owner_id FROM recurring_templates WHERE frequency <> %s ORDER BY owner_id;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (Frequency.ONE_TIME.value,))
                return [r[0] for r in cur.fetchall()]
        finally:
            release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, template: RecurringTemplate, cur=None) -> bool:
        """
        Update the editable fields of a template.

        Args:
            cur: Cursor of an open transaction; a new transaction is used when None.

        Returns:
            True if a row was updated, False otherwise.
        """
        sql = """
            UPDATE recurring_templates
            SET name = %s, expected_amount = %s, category_id = %s, description = %s
            WHERE id = %s AND owner_id = %s;
        """
        params = (
            template.name, template.expected_amount, template.category_id,
            template.description, template.id, template.owner_id,
        )
        if cur is not None:
            cur.execute(sql, params)
            return cur.rowcount > 0
        try:
            with transaction() as conn, conn.cursor() as own_cur:
                own_cur.execute(sql, params)
                return own_cur.rowcount > 0
        except Exception as e:
            logger.error(f"Failed to update template #{template.id}: {e}")
            raise

    def set_generated_through(self, cur, template_id: int, through: date) -> None:
        """Advance the generation watermark inside the caller's transaction."""
        cur.execute(
            "UPDATE recurring_templates SET generated_through = %s WHERE id = %s;",
            (through, template_id),
        )

    # ── DELETE ────────────────────────────────────────────

    def delete(self, template_id: int, owner_id: int, cur=None) -> bool:
        """
        Delete a template; its obligations go with it (ON DELETE CASCADE).

        Args:
            cur: Cursor of an open transaction; a new transaction is used when None.
        """
        sql = "DELETE FROM recurring_templates WHERE id = %s AND owner_id = %s;"
        if cur is not None:
            cur.execute(sql, (template_id, owner_id))
            deleted = cur.rowcount > 0
        else:
            try:
                with transaction() as conn, conn.cursor() as own_cur:
                    own_cur.execute(sql, (template_id, owner_id))
                    deleted = own_cur.rowcount > 0
            except Exception as e:
                logger.error(f"Failed to delete template #{template_id}: {e}")
                raise
        if deleted:
            logger.info(f"Deleted template #{template_id} for owner {owner_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_template(row: tuple) -> RecurringTemplate:
        """Convert a database row tuple to a RecurringTemplate domain object."""
        return RecurringTemplate(
            id=row[0],
            owner_id=row[1],
            kind=TemplateKind(row[2]),
            name=row[3],
            expected_amount=float(row[4]),
            frequency=Frequency(row[5]),
            start_date=row[6],
            category_id=row[7],
            description=row[8],
            created_at=row[9],
            generated_through=row[10],
        )
