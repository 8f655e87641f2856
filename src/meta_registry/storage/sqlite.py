"""SQLite storage backend for the meta registry."""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..models.deployment import Deployment, ServiceRevision


class SQLiteStorage:
    """SQLite storage backend for deployments and service revisions."""

    def __init__(self, db_path: str = "meta_registry.db"):
        """Initialize SQLite storage.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self):
        """Initialize database tables and run migrations."""
        with sqlite3.connect(self.db_path) as conn:
            # Create migrations table
            conn.execute("""
                CREATE TABLE IF NOT EXISTS migrations (
                    version INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    applied_at TEXT NOT NULL
                )
            """)
            conn.commit()

        self._run_migrations()

    def _run_migrations(self):
        """Run database migrations."""
        current_version = self._get_schema_version()

        if current_version < 1:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS deployments (
                        id TEXT PRIMARY KEY,
                        endpoint TEXT,
                        deployment_data TEXT NOT NULL,
                        created_at TEXT NOT NULL
                    )
                """)

                conn.execute("""
                    CREATE TABLE IF NOT EXISTS service_revisions (
                        service_name TEXT NOT NULL,
                        revision INTEGER NOT NULL,
                        deployment_id TEXT NOT NULL REFERENCES deployments(id),
                        kind TEXT NOT NULL,
                        public INTEGER NOT NULL,
                        revision_data TEXT NOT NULL,
                        created_at TEXT NOT NULL,
                        PRIMARY KEY (service_name, revision)
                    )
                """)

                conn.execute("""
                    CREATE INDEX IF NOT EXISTS idx_revisions_deployment_id
                    ON service_revisions(deployment_id)
                """)

                conn.commit()

            self._apply_migration(1, "initial_schema")

    def _get_schema_version(self) -> int:
        """Get current schema version."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("SELECT MAX(version) FROM migrations")
            result = cursor.fetchone()
            return result[0] if result and result[0] else 0

    def _apply_migration(self, version: int, name: str):
        """Apply a migration."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO migrations (version, name, applied_at) VALUES (?, ?, ?)",
                (version, name, datetime.now().isoformat())
            )
            conn.commit()

    def _get_connection(self):
        """Get database connection (for testing)."""
        return sqlite3.connect(self.db_path)

    def save_deployment(self, deployment: Deployment, revisions: List[ServiceRevision]) -> None:
        """Save a deployment and the revisions it owns in one transaction.

        Args:
            deployment: Deployment to save
            revisions: Revisions registered by the deployment

        Raises:
            sqlite3.IntegrityError: If the deployment ID or a revision already exists
        """
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT INTO deployments (id, endpoint, deployment_data, created_at)
                VALUES (?, ?, ?, ?)
            """, (
                deployment.id,
                deployment.endpoint,
                deployment.model_dump_json(),
                deployment.created_at.isoformat()
            ))

            conn.executemany("""
                INSERT INTO service_revisions
                (service_name, revision, deployment_id, kind, public, revision_data, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                (
                    revision.service_name,
                    revision.revision,
                    revision.deployment_id,
                    revision.kind.value,
                    int(revision.public),
                    revision.model_dump_json(),
                    revision.created_at.isoformat()
                )
                for revision in revisions
            ])
            conn.commit()

    def get_deployment(self, deployment_id: str) -> Optional[Deployment]:
        """Get a deployment by ID.

        Args:
            deployment_id: Deployment ID

        Returns:
            Deployment object or None if not found
        """
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("""
                SELECT deployment_data FROM deployments WHERE id = ?
            """, (deployment_id,))

            row = cursor.fetchone()
            if row:
                return Deployment.model_validate_json(row[0])
            return None

    def list_deployments(self) -> List[Deployment]:
        """List all deployments, oldest first."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("""
                SELECT deployment_data FROM deployments ORDER BY created_at, id
            """)
            return [Deployment.model_validate_json(row[0]) for row in cursor.fetchall()]

    def delete_deployment(self, deployment_id: str) -> bool:
        """Delete a deployment and its revisions.

        Args:
            deployment_id: Deployment ID to delete

        Returns:
            True if deleted, False if not found
        """
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                DELETE FROM service_revisions WHERE deployment_id = ?
            """, (deployment_id,))
            cursor = conn.execute("""
                DELETE FROM deployments WHERE id = ?
            """, (deployment_id,))
            conn.commit()
            return cursor.rowcount > 0

    def list_revisions(self, service_name: str) -> List[ServiceRevision]:
        """List all revisions of a service, lowest revision first."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("""
                SELECT revision_data FROM service_revisions
                WHERE service_name = ? ORDER BY revision
            """, (service_name,))
            return [ServiceRevision.model_validate_json(row[0]) for row in cursor.fetchall()]

    def list_revisions_by_deployment(self, deployment_id: str) -> List[ServiceRevision]:
        """List the revisions registered by a deployment."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("""
                SELECT revision_data FROM service_revisions
                WHERE deployment_id = ? ORDER BY service_name
            """, (deployment_id,))
            return [ServiceRevision.model_validate_json(row[0]) for row in cursor.fetchall()]

    def get_revision(self, service_name: str, revision: int) -> Optional[ServiceRevision]:
        """Get a specific revision of a service."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("""
                SELECT revision_data FROM service_revisions
                WHERE service_name = ? AND revision = ?
            """, (service_name, revision))

            row = cursor.fetchone()
            if row:
                return ServiceRevision.model_validate_json(row[0])
            return None

    def get_latest_revision(self, service_name: str) -> Optional[ServiceRevision]:
        """Get the highest revision of a service."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("""
                SELECT revision_data FROM service_revisions
                WHERE service_name = ? ORDER BY revision DESC LIMIT 1
            """, (service_name,))

            row = cursor.fetchone()
            if row:
                return ServiceRevision.model_validate_json(row[0])
            return None

    def list_service_names(self) -> List[str]:
        """List the names of all services with at least one revision."""
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("""
                SELECT DISTINCT service_name FROM service_revisions ORDER BY service_name
            """)
            return [row[0] for row in cursor.fetchall()]
