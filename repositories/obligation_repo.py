"""
repositories/obligation_repo.py
-------------------------------
Data access layer for obligations (bill and income instances).
All SQL queries related to the `obligations` table live here.

Methods taking a ``cur`` argument run inside the caller's transaction;
where ``cur`` is optional and omitted, they open and commit their own.
"""

from datetime import date
from typing import Optional

from db.connection import get_connection, release_connection, transaction
from models.obligation import Obligation, ObligationKind
from models.recurring import RecurringTemplate
from utils.logger import get_logger

logger = get_logger(__name__)

_PLAIN_COLUMNS = (
    "id, owner_id, kind, name, template_id, amount, due_date, "
    "is_paid, paid_date, category_id, parent_id, description, created_at"
)
_COLUMNS = ", ".join(f"o.{c.strip()}" for c in _PLAIN_COLUMNS.split(","))
_SELECT = (
    f"SELECT {_COLUMNS}, c.name FROM obligations o "
    "LEFT JOIN categories c ON c.id = o.category_id"
)

_INSERT_SQL = """
    INSERT INTO obligations
        (owner_id, kind, name, template_id, amount, due_date, is_paid, paid_date,
         category_id, parent_id, description)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
"""


class ObligationRepository:
    """Repository for CRUD operations on the obligations table."""

    # ── CREATE ────────────────────────────────────────────

    def insert(self, cur, obligation: Obligation) -> Obligation:
        """Insert inside the caller's transaction and populate `id`."""
        cur.execute(_INSERT_SQL + " RETURNING id, created_at;", self._params(obligation))
        row = cur.fetchone()
        obligation.id = row[0]
        obligation.created_at = row[1]
        return obligation

    def bulk_insert(self, obligations: list[Obligation], cur=None) -> int:
        """
        Insert a batch of generated occurrences atomically.

        Args:
            obligations: Occurrences of one template lineage.
            cur: Cursor of an open transaction; a new transaction is used when None.

        Returns:
            Number of rows inserted.

        Raises:
            psycopg2.IntegrityError / sqlite3.IntegrityError: An occurrence for
                the same (template, due date) already exists.
        """
        if not obligations:
            return 0
        if cur is not None:
            cur.executemany(_INSERT_SQL, [self._params(o) for o in obligations])
            return len(obligations)
        with transaction() as conn, conn.cursor() as own_cur:
            own_cur.executemany(_INSERT_SQL, [self._params(o) for o in obligations])
        return len(obligations)

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, obligation_id: int) -> Optional[Obligation]:
        """Fetch by id regardless of owner; services enforce ownership."""
        sql = f"{_SELECT} WHERE o.id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (obligation_id,))
                row = cur.fetchone()
                return self._row_to_obligation(row) if row else None
        finally:
            release_connection(conn)

    def lock(self, cur, obligation_id: int) -> Optional[Obligation]:
        """Read and row-lock an obligation inside the caller's transaction."""
        cur.execute(f"SELECT {_PLAIN_COLUMNS} FROM obligations WHERE id = %s FOR UPDATE;", (obligation_id,))
        row = cur.fetchone()
        return self._row_to_obligation(row) if row else None

    def get_all(self, owner_id: int, kind: Optional[ObligationKind] = None) -> list[Obligation]:
        """
        Get all obligations for an owner, earliest due date first.

        Args:
            owner_id: External owner id.
            kind: Optional filter (BILL or INCOME).
        """
        sql = f"{_SELECT} WHERE o.owner_id = %s"
        params: list = [owner_id]
        if kind:
            sql += " AND o.kind = %s"
            params.append(ObligationKind(kind).value)
        sql += " ORDER BY o.due_date ASC, o.id ASC;"

        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [self._row_to_obligation(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def get_by_date_range(
        self,
        owner_id: int,
        start: Optional[date],
        end: date,
        kind: Optional[ObligationKind] = None,
        unpaid_only: bool = False,
    ) -> list[Obligation]:
        """
        Fetch obligations due within a date range.

        Args:
            owner_id: External owner id.
            start: Start date (inclusive); None means no lower bound.
            end: End date (inclusive).
            kind: Optional filter (BILL or INCOME).
            unpaid_only: Only return obligations with is_paid = false.

        Returns:
            List of Obligation objects ordered by due date.
        """
        sql = f"{_SELECT} WHERE o.owner_id = %s AND o.due_date <= %s"
        params: list = [owner_id, end]
        if start is not None:
            sql += " AND o.due_date >= %s"
            params.append(start)
        if kind:
            sql += " AND o.kind = %s"
            params.append(ObligationKind(kind).value)
        if unpaid_only:
            sql += " AND o.is_paid = %s"
            params.append(False)
        sql += " ORDER BY o.due_date ASC, o.id ASC;"

        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                return [self._row_to_obligation(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def find_max_due_date(self, template_id: int, cur=None) -> Optional[date]:
        """
        Latest due date generated so far for a template.
        Generation falls back to it for templates stored without a watermark.
        """
        sql = "SELECT MAX(due_date) FROM obligations WHERE template_id = %s;"
        if cur is not None:
            cur.execute(sql, (template_id,))
            return self._as_date(cur.fetchone()[0])
        conn = get_connection()
        try:
            with conn.cursor() as own_cur:
                own_cur.execute(sql, (template_id,))
                return self._as_date(own_cur.fetchone()[0])
        finally:
            release_connection(conn)

    def due_dates_after(self, cur, template_id: int, after: date) -> set[date]:
        """Due dates already stored for a template strictly after ``after``."""
        cur.execute(
            "SELECT due_date FROM obligations WHERE template_id = %s AND due_date > %s;",
            (template_id, after),
        )
        return {self._as_date(r[0]) for r in cur.fetchall()}

    def find_lineage_root(self, cur, template_id: int) -> Optional[int]:
        """
        Id of the template's lineage root: the parent its children point to,
        or its earliest remaining instance when no child exists yet.
        """
        cur.execute(
            "SELECT MIN(parent_id) FROM obligations WHERE template_id = %s AND parent_id IS NOT NULL;",
            (template_id,),
        )
        row = cur.fetchone()
        if row and row[0] is not None:
            return row[0]
        cur.execute(
            "SELECT id FROM obligations WHERE template_id = %s ORDER BY due_date ASC, id ASC LIMIT 1;",
            (template_id,),
        )
        row = cur.fetchone()
        return row[0] if row else None

    def count_for_template(self, template_id: int) -> int:
        sql = "SELECT COUNT(*) FROM obligations WHERE template_id = %s;"
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (template_id,))
                return int(cur.fetchone()[0])
        finally:
            release_connection(conn)

    # ── UPDATE ────────────────────────────────────────────

    def update(self, obligation: Obligation, cur=None) -> bool:
        """
        Update the editable fields of an obligation.
        Paid state is deliberately absent: it only changes through set_paid_state.

        Args:
            cur: Cursor of an open transaction; a new transaction is used when None.

        Returns:
            True if a row was updated, False otherwise.

        Raises:
            psycopg2.IntegrityError / sqlite3.IntegrityError: The new due date
                collides with another occurrence of the same template.
        """
        sql = """
            UPDATE obligations
            SET name = %s, amount = %s, due_date = %s, category_id = %s, description = %s
            WHERE id = %s AND owner_id = %s;
        """
        params = (
            obligation.name, obligation.amount, obligation.due_date,
            obligation.category_id, obligation.description,
            obligation.id, obligation.owner_id,
        )
        if cur is not None:
            cur.execute(sql, params)
            return cur.rowcount > 0
        with transaction() as conn, conn.cursor() as own_cur:
            own_cur.execute(sql, params)
            return own_cur.rowcount > 0

    def apply_template(self, cur, template: RecurringTemplate, from_date: date) -> int:
        """
        Copy a template's name, amount, category and description onto its
        unpaid obligations due on or after ``from_date``.

        Returns:
            Number of obligations updated.
        """
        cur.execute(
            """
            UPDATE obligations
            SET name = %s, amount = %s, category_id = %s, description = %s
            WHERE template_id = %s AND owner_id = %s AND is_paid = %s AND due_date >= %s;
            """,
            (
                template.name, template.expected_amount, template.category_id, template.description,
                template.id, template.owner_id, False, from_date,
            ),
        )
        return cur.rowcount

    def set_paid_state(self, cur, obligation_id: int, is_paid: bool, paid_date: Optional[date]) -> None:
        """Flip the paid flag inside the caller's (payment) transaction."""
        cur.execute(
            "UPDATE obligations SET is_paid = %s, paid_date = %s WHERE id = %s;",
            (is_paid, paid_date, obligation_id),
        )

    # ── DELETE ────────────────────────────────────────────

    def delete(self, obligation_id: int, owner_id: int, cur=None) -> int:
        """Delete a single obligation; its ledger entries cascade."""
        return self._delete("DELETE FROM obligations WHERE id = %s AND owner_id = %s;",
                            (obligation_id, owner_id), f"obligation #{obligation_id}", cur)

    def delete_lineage(self, root_id: int, owner_id: int, cur=None) -> int:
        """Delete a lineage root and every instance pointing at it."""
        return self._delete(
            "DELETE FROM obligations WHERE owner_id = %s AND (id = %s OR parent_id = %s);",
            (owner_id, root_id, root_id), f"lineage #{root_id}", cur,
        )

    def delete_for_template(self, template_id: int, owner_id: int, cur=None) -> int:
        """Delete every obligation generated from a template."""
        return self._delete(
            "DELETE FROM obligations WHERE owner_id = %s AND template_id = %s;",
            (owner_id, template_id), f"template #{template_id} obligations", cur,
        )

    def _delete(self, sql: str, params: tuple, label: str, cur=None) -> int:
        if cur is not None:
            cur.execute(sql, params)
            logger.info(f"Deleted {cur.rowcount} row(s) for {label}")
            return cur.rowcount
        try:
            with transaction() as conn, conn.cursor() as own_cur:
                own_cur.execute(sql, params)
                deleted = own_cur.rowcount
        except Exception as e:
            logger.error(f"Failed to delete {label}: {e}")
            raise
        logger.info(f"Deleted {deleted} row(s) for {label}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _params(o: Obligation) -> tuple:
        return (
            o.owner_id, ObligationKind(o.kind).value, o.name, o.template_id, o.amount,
            o.due_date, o.is_paid, o.paid_date, o.category_id, o.parent_id, o.description,
        )

    @staticmethod
    def _as_date(value) -> Optional[date]:
        # SQLite returns aggregate results untyped
        if value is None or isinstance(value, date):
            return value
        return date.fromisoformat(str(value))

    @staticmethod
    def _row_to_obligation(row: tuple) -> Obligation:
        """Convert a database row tuple to an Obligation domain object."""
        return Obligation(
            id=row[0],
            owner_id=row[1],
            kind=ObligationKind(row[2]),
            name=row[3],
            template_id=row[4],
            amount=float(row[5]),
            due_date=row[6],
            is_paid=bool(row[7]),
            paid_date=row[8],
            category_id=row[9],
            parent_id=row[10],
            description=row[11],
            created_at=row[12],
            category_name=row[13] if len(row) > 13 else None,
        )
