"""
repositories/payment_repo.py
----------------------------
Data access layer for the payment ledger.
Writes only happen inside PaymentService transactions, so every
mutating method takes the caller's cursor.
"""

from typing import Optional

from db.connection import get_connection, release_connection
from models.obligation import PaymentLedgerEntry
from utils.logger import get_logger

logger = get_logger(__name__)


class PaymentRepository:
    """Repository for the payment_ledger table."""

    # ── CREATE ────────────────────────────────────────────

    def add(self, cur, entry: PaymentLedgerEntry) -> PaymentLedgerEntry:
        """Insert a ledger entry inside the caller's transaction."""
        cur.execute(
            """
            INSERT INTO payment_ledger (obligation_id, amount, paid_date)
            VALUES (%s, %s, %s)
            RETURNING id, created_at;
            """,
            (entry.obligation_id, entry.amount, entry.paid_date),
        )
        row = cur.fetchone()
        entry.id = row[0]
        entry.created_at = row[1]
        return entry

    # ── READ ──────────────────────────────────────────────

    def latest(self, cur, obligation_id: int) -> Optional[PaymentLedgerEntry]:
        """The authoritative entry: most recent paid_date, newest id on ties."""
        cur.execute(
            """
            SELECT id, obligation_id, amount, paid_date, created_at
            FROM payment_ledger
            WHERE obligation_id = %s
            ORDER BY paid_date DESC, id DESC
            LIMIT 1;
            """,
            (obligation_id,),
        )
        row = cur.fetchone()
        return self._row_to_entry(row) if row else None

    def get_for_obligation(self, obligation_id: int) -> list[PaymentLedgerEntry]:
        """All ledger entries of one obligation, newest first."""
        sql = """
            SELECT id, obligation_id, amount, paid_date, created_at
            FROM payment_ledger
            WHERE obligation_id = %s
            ORDER BY paid_date DESC, id DESC;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (obligation_id,))
                return [self._row_to_entry(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def get_history(self, owner_id: int) -> list[dict]:
        """
        Payment history for an owner, newest first.

        Returns:
            List of dicts: the ledger entry plus the paid obligation's name,
            kind, due date and category.
        """
        sql = """
            SELECT p.id, p.obligation_id, p.amount, p.paid_date,
                   o.name, o.kind, o.due_date, c.name
            FROM payment_ledger p
            JOIN obligations o ON o.id = p.obligation_id
            LEFT JOIN categories c ON c.id = o.category_id
            WHERE o.owner_id = %s
            ORDER BY p.paid_date DESC, p.id DESC;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (owner_id,))
                return [
                    {
                        "id": r[0],
                        "obligationId": r[1],
                        "amount": float(r[2]),
                        "paidDate": r[3].isoformat(),
                        "name": r[4],
                        "kind": r[5],
                        "dueDate": r[6].isoformat(),
                        "category": r[7],
                    }
                    for r in cur.fetchall()
                ]
        finally:
            release_connection(conn)

    # ── DELETE ────────────────────────────────────────────

    def delete(self, cur, entry_id: int) -> None:
        """Delete one ledger entry inside the caller's transaction."""
        cur.execute("DELETE FROM payment_ledger WHERE id = %s;", (entry_id,))

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_entry(row: tuple) -> PaymentLedgerEntry:
        """Convert a database row tuple to a PaymentLedgerEntry domain object."""
        return PaymentLedgerEntry(
            id=row[0],
            obligation_id=row[1],
            amount=float(row[2]),
            paid_date=row[3],
            created_at=row[4],
        )
