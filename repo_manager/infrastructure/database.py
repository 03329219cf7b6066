"""Database connection and shared repository table implementation."""

import logging
import uuid
from datetime import datetime
import psycopg2
from psycopg2.extras import RealDictCursor
from psycopg2.pool import ThreadedConnectionPool
from typing import List, Optional, Sequence
import os

from repo_manager.domain.repository import StoredRepository

logger = logging.getLogger(__name__)

REPOSITORY_COLUMNS = "id, url, nickname, last_commit, last_commit_date, last_sync, status"


class DatabaseRepository:
    """Repository table shared by the remote git operations in PostgreSQL."""

    def __init__(self, connection_string: Optional[str] = None):
        """
        Initialize database repository.

        Args:
            connection_string: PostgreSQL connection string. If None, uses env vars.
        """
        if connection_string is None:
            db_host = os.getenv("POSTGRES_HOST", "localhost")
            db_port = os.getenv("POSTGRES_PORT", "5432")
            db_name = os.getenv("POSTGRES_DB", "repo_manager")
            db_user = os.getenv("POSTGRES_USER", "postgres")
            db_password = os.getenv("POSTGRES_PASSWORD", "postgres")

            connection_string = (
                f"host={db_host} port={db_port} dbname={db_name} "
                f"user={db_user} password={db_password}"
            )

        self.connection_string = connection_string
        self.pool: Optional[ThreadedConnectionPool] = None

    def connect(self):
        """Initialize connection pool."""
        try:
            self.pool = ThreadedConnectionPool(1, 5, self.connection_string)
            logger.info("Database connection pool created")
        except Exception as e:
            logger.error(f"Error creating connection pool: {e}")
            raise

    def close(self):
        """Close connection pool."""
        if self.pool:
            self.pool.closeall()
            logger.info("Database connection pool closed")

    def _get_connection(self):
        """Get a connection from the pool."""
        if not self.pool:
            self.connect()
        return self.pool.getconn()

    def _return_connection(self, conn):
        """Return a connection to the pool."""
        if self.pool:
            self.pool.putconn(conn)

    @staticmethod
    def _to_entity(row) -> StoredRepository:
        return StoredRepository(
            id=str(row["id"]),
            url=row["url"],
            nickname=row["nickname"],
            last_commit=row["last_commit"],
            last_commit_date=row["last_commit_date"],
            last_sync=row["last_sync"],
            status=row["status"],
        )

    def initialize_schema(self):
        """Create database tables if they don't exist."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS repositories (
                        id VARCHAR(64) PRIMARY KEY,
                        url TEXT NOT NULL,
                        nickname VARCHAR(255),
                        last_commit VARCHAR(64),
                        last_commit_date TIMESTAMPTZ,
                        last_sync TIMESTAMPTZ,
                        status VARCHAR(32) NOT NULL DEFAULT 'pending',
                        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                    );

                    CREATE INDEX IF NOT EXISTS idx_repositories_status ON repositories(status);
                """)
                conn.commit()
                logger.info("Database schema initialized")
        except Exception as e:
            conn.rollback()
            logger.error(f"Error initializing schema: {e}")
            raise
        finally:
            self._return_connection(conn)

    def add_repository(self, url: str, nickname: Optional[str] = None) -> StoredRepository:
        """
        Insert a new repository row.

        Args:
            url: Repository remote URL
            nickname: Optional display name used in merge messages

        Returns:
            The stored repository
        """
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"""
                    INSERT INTO repositories (id, url, nickname)
                    VALUES (%s, %s, %s)
                    RETURNING {REPOSITORY_COLUMNS}
                    """,
                    (str(uuid.uuid4()), url, nickname or None),
                )
                row = cur.fetchone()
                conn.commit()
                logger.info(f"Added repository {row['id']} ({url})")
                return self._to_entity(row)
        except Exception as e:
            conn.rollback()
            logger.error(f"Error adding repository: {e}")
            raise
        finally:
            self._return_connection(conn)

    def get_repository(self, repo_id: str) -> Optional[StoredRepository]:
        """Fetch one repository row, or None when the id is unknown."""
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"SELECT {REPOSITORY_COLUMNS} FROM repositories WHERE id = %s",
                    (repo_id,),
                )
                row = cur.fetchone()
                return self._to_entity(row) if row else None
        except Exception as e:
            logger.error(f"Error fetching repository {repo_id}: {e}")
            raise
        finally:
            self._return_connection(conn)

    def get_repositories(self, repo_ids: Sequence[str]) -> List[StoredRepository]:
        """Fetch all repository rows whose id is in ``repo_ids``."""
        if not repo_ids:
            return []

        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"SELECT {REPOSITORY_COLUMNS} FROM repositories WHERE id = ANY(%s)",
                    (list(repo_ids),),
                )
                return [self._to_entity(row) for row in cur.fetchall()]
        except Exception as e:
            logger.error(f"Error fetching repositories: {e}")
            raise
        finally:
            self._return_connection(conn)

    def list_repositories(self) -> List[StoredRepository]:
        """Fetch every repository row, most recently synced first."""
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    f"SELECT {REPOSITORY_COLUMNS} FROM repositories "
                    "ORDER BY last_sync DESC NULLS LAST, created_at"
                )
                return [self._to_entity(row) for row in cur.fetchall()]
        except Exception as e:
            logger.error(f"Error listing repositories: {e}")
            raise
        finally:
            self._return_connection(conn)

    def update_commit_info(
        self,
        repo_id: str,
        sha: str,
        commit_date: Optional[str],
        synced_at: datetime,
    ):
        """Store the latest known commit of a repository and mark it synced."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE repositories
                    SET last_commit = %s,
                        last_commit_date = %s,
                        last_sync = %s,
                        status = 'synced'
                    WHERE id = %s
                    """,
                    (sha, commit_date, synced_at, repo_id),
                )
                conn.commit()
                logger.info(f"Updated commit info of repository {repo_id}: {sha}")
        except Exception as e:
            conn.rollback()
            logger.error(f"Error updating repository {repo_id}: {e}")
            raise
        finally:
            self._return_connection(conn)

    def mark_synced(self, repo_ids: Sequence[str], synced_at: datetime):
        """Set ``last_sync`` and ``status = 'synced'`` on every given repository."""
        if not repo_ids:
            return

        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE repositories
                    SET last_sync = %s,
                        status = 'synced'
                    WHERE id = ANY(%s)
                    """,
                    (synced_at, list(repo_ids)),
                )
                conn.commit()
                logger.info(f"Marked {len(repo_ids)} repositories as synced")
        except Exception as e:
            conn.rollback()
            logger.error(f"Error updating repositories status: {e}")
            raise
        finally:
            self._return_connection(conn)

    def get_repository_count(self) -> int:
        """Get the total number of repositories in the database."""
        conn = self._get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM repositories")
                count = cur.fetchone()[0]
                return count
        except Exception as e:
            logger.error(f"Error getting repository count: {e}")
            raise
        finally:
            self._return_connection(conn)
