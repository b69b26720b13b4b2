"""SQLite database for generated assets, viewers and favorites."""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import closing, contextmanager
from pathlib import Path

from promptcanvas.core.errors import NotFound, StorageFailed, ValidationError
from promptcanvas.core.models import Asset

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS assets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        blob_key TEXT NOT NULL UNIQUE,
        prompt TEXT NOT NULL,
        creator_email TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS viewers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT NOT NULL UNIQUE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS favorites (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        viewer_id INTEGER NOT NULL REFERENCES viewers(id) ON DELETE CASCADE,
        asset_id INTEGER NOT NULL REFERENCES assets(id) ON DELETE CASCADE,
        favorited_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (viewer_id, asset_id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_favorites_asset_id
    ON favorites(asset_id)
    """,
)

_ASSET_COLUMNS = """
    a.id, a.blob_key, a.prompt, a.creator_email,
    (SELECT COUNT(*) FROM favorites f WHERE f.asset_id = a.id) AS favorite_count,
    a.created_at
"""


def _normalize_email(email: str | None) -> str | None:
    """Strip an email; blank or missing identities become ``None``."""
    if email is None:
        return None
    email = email.strip()
    return email or None


def _row_to_asset(row: sqlite3.Row) -> Asset:
    return Asset(
        id=row["id"],
        blob_key=row["blob_key"],
        prompt=row["prompt"],
        creator_email=row["creator_email"],
        favorite_count=row["favorite_count"],
        created_at=row["created_at"],
    )


class AssetDB:
    """Manage asset metadata and the viewer/asset favorite relation.

    Every operation opens its own short-lived connection, so one instance
    can be shared by concurrent request threads.  Foreign keys are enabled
    on each connection so deleting an asset or viewer cascades to its
    favorites.
    """

    def __init__(self, db_path: Path, timeout: float = 30.0):
        """Initialize the asset database.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds a connection waits for another writer's lock
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_db()
        logger.info(f"Initialized asset database at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        # Autocommit mode: transactions are opened explicitly where needed.
        conn = sqlite3.connect(self.db_path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """Run a block in one transaction, translating SQLite errors.

        With ``immediate=True`` the write lock is taken up front, so the whole
        block is serialized against every other writer.
        """
        try:
            with closing(self._connect()) as conn:
                conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
                try:
                    yield conn
                except BaseException:
                    conn.execute("ROLLBACK")
                    raise
                conn.execute("COMMIT")
        except sqlite3.Error as e:
            logger.error(f"Database error in {self.db_path}: {e}")
            raise StorageFailed(f"database error: {e}") from e

    def _initialize_db(self) -> None:
        """Create database schema if it doesn't exist."""
        with self._transaction() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    # -- Assets -------------------------------------------------------------

    def save_asset(self, blob_key: str, prompt: str, creator_email: str | None) -> Asset:
        """Record a newly generated asset.

        Args:
            blob_key: Unique key of the already-stored blob
            prompt: Prompt that produced the image
            creator_email: Creator identity, may be empty

        Returns:
            The stored asset
        """
        with self._transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO assets (blob_key, prompt, creator_email) VALUES (?, ?, ?)",
                (blob_key, prompt, creator_email),
            )
            row = conn.execute(
                f"SELECT {_ASSET_COLUMNS} FROM assets a WHERE a.id = ?",
                (cursor.lastrowid,),
            ).fetchone()

        logger.info(f"Saved asset {blob_key}")
        return _row_to_asset(row)

    def get_asset(self, blob_key: str) -> Asset | None:
        with self._transaction() as conn:
            row = conn.execute(
                f"SELECT {_ASSET_COLUMNS} FROM assets a WHERE a.blob_key = ?",
                (blob_key,),
            ).fetchone()
        return _row_to_asset(row) if row else None

    def _select_assets(
        self, conn: sqlite3.Connection, offset: int, limit: int, email: str | None
    ) -> list[tuple[Asset, bool]]:
        rows = conn.execute(
            f"""
            SELECT {_ASSET_COLUMNS},
                EXISTS (
                    SELECT 1 FROM favorites vf
                    JOIN viewers v ON v.id = vf.viewer_id
                    WHERE vf.asset_id = a.id AND v.email = ?
                ) AS is_favorited
            FROM assets a
            ORDER BY favorite_count DESC, a.id DESC
            LIMIT ? OFFSET ?
            """,
            (email, limit, offset),
        ).fetchall()
        return [(_row_to_asset(row), bool(email) and bool(row["is_favorited"])) for row in rows]

    def read_page(
        self, page: int, page_size: int, viewer_email: str | None = None
    ) -> tuple[int, int, list[tuple[Asset, bool]]]:
        """Count the assets and read one page of them from the same snapshot.

        The page index is clamped to ``[0, last page]`` against the count
        taken inside the transaction, so the total and the rows always agree.

        Args:
            page: Requested 0-based page index
            page_size: Number of assets per page, at least 1
            viewer_email: Viewer whose favorites are flagged; blank means none

        Returns:
            ``(total_items, resolved_page, rows)`` where rows are
            ``(asset, is_favorited)`` pairs in popularity order
        """
        email = _normalize_email(viewer_email)
        with self._transaction() as conn:
            total_items = conn.execute("SELECT COUNT(*) FROM assets").fetchone()[0]
            last_page = max((total_items - 1) // page_size, 0)
            resolved_page = min(max(page, 0), last_page)
            rows = self._select_assets(conn, resolved_page * page_size, page_size, email)
        return total_items, resolved_page, rows

    # -- Viewers ------------------------------------------------------------

    def ensure_viewer(self, email: str) -> int:
        """Return the viewer id for *email*, creating the viewer if needed.

        Raises:
            ValidationError: If the email is blank
        """
        normalized = _normalize_email(email)
        if normalized is None:
            raise ValidationError("Viewer email must not be empty")

        with self._transaction() as conn:
            cursor = conn.execute("INSERT OR IGNORE INTO viewers (email) VALUES (?)", (normalized,))
            if cursor.rowcount > 0:
                logger.info(f"Created viewer {normalized}")
            row = conn.execute("SELECT id FROM viewers WHERE email = ?", (normalized,)).fetchone()
        return row["id"]

    # -- Favorites ----------------------------------------------------------

    def toggle_favorite(self, blob_key: str, viewer_email: str) -> bool:
        """Flip the favorite relation between a viewer and an asset.

        The lookups, the delete and the conditional insert all run inside one
        ``BEGIN IMMEDIATE`` transaction.  SQLite admits a single writer at a
        time, so concurrent toggles on the same pair apply one after another
        and the table never holds a duplicate row or misses a delete.

        Args:
            blob_key: Key of the asset
            viewer_email: Email of an existing viewer

        Returns:
            True if now favorited, False if unfavorited

        Raises:
            NotFound: If the asset or the viewer does not exist
        """
        email = _normalize_email(viewer_email)

        with self._transaction(immediate=True) as conn:
            asset = conn.execute("SELECT id FROM assets WHERE blob_key = ?", (blob_key,)).fetchone()
            viewer = (
                conn.execute("SELECT id FROM viewers WHERE email = ?", (email,)).fetchone()
                if email
                else None
            )
            if asset is None:
                raise NotFound(f"asset not found: {blob_key}")
            if viewer is None:
                raise NotFound(f"viewer not found: {viewer_email}")

            cursor = conn.execute(
                "DELETE FROM favorites WHERE viewer_id = ? AND asset_id = ?",
                (viewer["id"], asset["id"]),
            )
            if cursor.rowcount > 0:
                favorited = False
            else:
                conn.execute(
                    "INSERT INTO favorites (viewer_id, asset_id) VALUES (?, ?)",
                    (viewer["id"], asset["id"]),
                )
                favorited = True

        logger.info(f"{'Added' if favorited else 'Removed'} favorite: {email} -> {blob_key}")
        return favorited

    def list_favorites(self, viewer_email: str | None) -> list[Asset]:
        """Get a viewer's favorited assets, most recently favorited first."""
        email = _normalize_email(viewer_email)
        if email is None:
            return []
        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT {_ASSET_COLUMNS}
                FROM favorites vf
                JOIN viewers v ON v.id = vf.viewer_id
                JOIN assets a ON a.id = vf.asset_id
                WHERE v.email = ?
                ORDER BY vf.favorited_at DESC, vf.id DESC
                """,
                (email,),
            ).fetchall()
        return [_row_to_asset(row) for row in rows]

    # -- Lookups ------------------------------------------------------------
    # Point queries outside the request paths, used by tests and by
    # maintenance checks against a live database.

    def count_assets(self) -> int:
        with self._transaction() as conn:
            return conn.execute("SELECT COUNT(*) FROM assets").fetchone()[0]

    def list_assets(
        self, offset: int, limit: int, viewer_email: str | None = None
    ) -> list[tuple[Asset, bool]]:
        """List assets by popularity, annotated with the viewer's favorite flag.

        Ties on favorite count are broken by id, newest first, so page
        boundaries are stable between requests.

        Args:
            offset: Number of assets to skip
            limit: Maximum number of assets to return
            viewer_email: Viewer whose favorites are flagged; blank means none

        Returns:
            List of ``(asset, is_favorited)`` pairs
        """
        with self._transaction() as conn:
            return self._select_assets(conn, offset, limit, _normalize_email(viewer_email))

    def get_viewer_id(self, email: str | None) -> int | None:
        """Return the id of an existing viewer without creating one."""
        normalized = _normalize_email(email)
        if normalized is None:
            return None
        with self._transaction() as conn:
            row = conn.execute("SELECT id FROM viewers WHERE email = ?", (normalized,)).fetchone()
        return row["id"] if row else None

    def is_favorite(self, blob_key: str, viewer_email: str | None) -> bool:
        return self.favorite_row_count(blob_key, viewer_email) > 0

    def favorite_row_count(self, blob_key: str, viewer_email: str | None) -> int:
        """Count favorite rows for a (viewer, asset) pair; at most 1."""
        email = _normalize_email(viewer_email)
        if email is None:
            return 0
        with self._transaction() as conn:
            return conn.execute(
                """
                SELECT COUNT(*) FROM favorites f
                JOIN viewers v ON v.id = f.viewer_id
                JOIN assets a ON a.id = f.asset_id
                WHERE v.email = ? AND a.blob_key = ?
                """,
                (email, blob_key),
            ).fetchone()[0]
