"""
repositories/notification_repo.py
---------------------------------
Data access layer for notification providers, notification kinds and
the links between them. Credentials and settings are stored as JSON text.
"""

import json
from typing import Optional

from db.connection import get_connection, release_connection, transaction
from models.notification import (
    NotificationProviderConfig,
    NotificationType,
    NotificationTypeConfig,
    ProviderType,
)
from utils.logger import get_logger

logger = get_logger(__name__)


class NotificationRepository:
    """Repository for the notification_* tables."""

    # ── PROVIDERS ─────────────────────────────────────────

    def upsert_provider(self, config: NotificationProviderConfig) -> NotificationProviderConfig:
        """Create or replace an owner's configuration for one provider type."""
        sql = """
            INSERT INTO notification_providers (owner_id, provider_type, enabled, credentials)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (owner_id, provider_type)
            DO UPDATE SET enabled = EXCLUDED.enabled, credentials = EXCLUDED.credentials
            RETURNING id;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (
                    config.owner_id, config.provider_type.value,
                    config.enabled, json.dumps(config.credentials),
                ))
                config.id = cur.fetchone()[0]
            conn.commit()
            logger.info(
                f"Saved {config.provider_type.value} provider for owner {config.owner_id} "
                f"(enabled={config.enabled})"
            )
            return config
        except Exception as e:
            conn.rollback()
            logger.error(f"Failed to save {config.provider_type.value} provider for owner {config.owner_id}: {e}")
            raise
        finally:
            release_connection(conn)

    def get_providers(self, owner_id: int) -> list[NotificationProviderConfig]:
        sql = """
            SELECT id, owner_id, provider_type, enabled, credentials
            FROM notification_providers WHERE owner_id = %s ORDER BY provider_type;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (owner_id,))
                return [self._row_to_provider(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    def get_provider(self, owner_id: int, provider_type: ProviderType) -> Optional[NotificationProviderConfig]:
        sql = """
            SELECT id, owner_id, provider_type, enabled, credentials
            FROM notification_providers WHERE owner_id = %s AND provider_type = %s;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (owner_id, ProviderType(provider_type).value))
                row = cur.fetchone()
                return self._row_to_provider(row) if row else None
        finally:
            release_connection(conn)

    def get_enabled_providers(self, type_id: int) -> list[NotificationProviderConfig]:
        """Enabled providers linked to one notification kind."""
        sql = """
            SELECT p.id, p.owner_id, p.provider_type, p.enabled, p.credentials
            FROM notification_type_providers m
            JOIN notification_providers p ON p.id = m.provider_id
            WHERE m.type_id = %s AND p.enabled = %s
            ORDER BY p.provider_type;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (type_id, True))
                return [self._row_to_provider(r) for r in cur.fetchall()]
        finally:
            release_connection(conn)

    # ── TYPES ─────────────────────────────────────────────

    def upsert_type(
        self, config: NotificationTypeConfig, providers: Optional[list[ProviderType]] = None
    ) -> NotificationTypeConfig:
        """
        Create or replace an owner's configuration for one notification kind.

        Args:
            config: Kind configuration to store.
            providers: When given, replaces the linked provider set. Provider
                types the owner has not configured yet are ignored.
        """
        upsert_sql = """
            INSERT INTO notification_types (owner_id, type, enabled, settings)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (owner_id, type)
            DO UPDATE SET enabled = EXCLUDED.enabled, settings = EXCLUDED.settings
            RETURNING id;
        """
        with transaction() as conn, conn.cursor() as cur:
            cur.execute(upsert_sql, (
                config.owner_id, config.type.value, config.enabled, json.dumps(config.settings),
            ))
            config.id = cur.fetchone()[0]

            if providers is not None:
                cur.execute("DELETE FROM notification_type_providers WHERE type_id = %s;", (config.id,))
                for ptype in providers:
                    cur.execute(
                        "SELECT id FROM notification_providers WHERE owner_id = %s AND provider_type = %s;",
                        (config.owner_id, ProviderType(ptype).value),
                    )
                    row = cur.fetchone()
                    if row is None:
                        logger.warning(
                            f"Owner {config.owner_id} linked unconfigured provider {ptype} "
                            f"to {config.type.value}; ignored"
                        )
                        continue
                    cur.execute(
                        "INSERT INTO notification_type_providers (type_id, provider_id) VALUES (%s, %s);",
                        (config.id, row[0]),
                    )
        logger.info(f"Saved {config.type.value} notification for owner {config.owner_id} (enabled={config.enabled})")
        return config

    def get_types(self, owner_id: int) -> list[NotificationTypeConfig]:
        """All notification kinds of an owner with their linked provider types."""
        sql = """
            SELECT t.id, t.owner_id, t.type, t.enabled, t.settings, p.provider_type
            FROM notification_types t
            LEFT JOIN notification_type_providers m ON m.type_id = t.id
            LEFT JOIN notification_providers p ON p.id = m.provider_id
            WHERE t.owner_id = %s
            ORDER BY t.type, p.provider_type;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (owner_id,))
                return self._group_types(cur.fetchall())
        finally:
            release_connection(conn)

    def get_enabled_types(self, ntype: NotificationType) -> list[NotificationTypeConfig]:
        """Every owner's enabled configuration of one kind; drives a scheduler run."""
        sql = """
            SELECT t.id, t.owner_id, t.type, t.enabled, t.settings, p.provider_type
            FROM notification_types t
            LEFT JOIN notification_type_providers m ON m.type_id = t.id
            LEFT JOIN notification_providers p ON p.id = m.provider_id
            WHERE t.type = %s AND t.enabled = %s
            ORDER BY t.owner_id, p.provider_type;
        """
        conn = get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(sql, (NotificationType(ntype).value, True))
                return self._group_types(cur.fetchall())
        finally:
            release_connection(conn)

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _loads(raw) -> dict:
        if raw is None or raw == "":
            return {}
        return raw if isinstance(raw, dict) else json.loads(raw)

    @classmethod
    def _row_to_provider(cls, row: tuple) -> NotificationProviderConfig:
        """Convert a database row tuple to a NotificationProviderConfig."""
        return NotificationProviderConfig(
            id=row[0],
            owner_id=row[1],
            provider_type=ProviderType(row[2]),
            enabled=bool(row[3]),
            credentials=cls._loads(row[4]),
        )

    @classmethod
    def _group_types(cls, rows: list[tuple]) -> list[NotificationTypeConfig]:
        """Fold one-row-per-link results into one config per kind."""
        configs: dict[int, NotificationTypeConfig] = {}
        for r in rows:
            config = configs.get(r[0])
            if config is None:
                try:
                    settings = cls._loads(r[4])
                except ValueError:
                    # Surfaced per owner by the scheduler instead of failing the whole query.
                    logger.warning(f"Malformed settings on notification type #{r[0]} (owner {r[1]})")
                    settings = None
                config = NotificationTypeConfig(
                    id=r[0],
                    owner_id=r[1],
                    type=NotificationType(r[2]),
                    enabled=bool(r[3]),
                    settings=settings,
                )
                configs[r[0]] = config
            if r[5] is not None:
                config.providers.append(ProviderType(r[5]))
        return list(configs.values())
