"""
SQLite Database Storage for the medal tally service.

Provides storage for the roster, score settings and medal ledger with:
- Atomic transactions for multi-row submissions
- Ledger rules checked under the write lock (BEGIN IMMEDIATE)
- Partial unique indexes as a last line of defence for podium medals
- Concurrent read access via WAL mode

This is the SQLite implementation of the DatabaseInterface.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Iterator, List, Dict, Any, Sequence

from .base import DatabaseInterface
from .exceptions import ConnectionError, QueryError, SchemaError
from .. import config
from ..exceptions import ConflictError, NotFoundError
from ..models.medal import EventMedalState, MedalType

logger = logging.getLogger(__name__)

SETTINGS_COLUMNS = ('gold_points', 'silver_points', 'bronze_points', 'non_winner_points')
TEAM_COLUMNS = ('name', 'icon', 'color')
EVENT_COLUMNS = ('name', 'category_id', 'event_date', 'status')

EVENT_SELECT = '''
    SELECT e.id, e.name, e.category_id, e.event_date, e.status,
           c.name AS category
    FROM events e
    LEFT JOIN categories c ON c.id = e.category_id
'''


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: Any) -> Any:
    """Store dates as ISO strings."""
    return value.isoformat() if hasattr(value, 'isoformat') else value


class SQLiteDatabase(DatabaseInterface):
    """
    SQLite database for medal tally storage.
    Thread-safe with connection per thread.

    Implements the DatabaseInterface abstract base class.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str = "data/medaltally.db"):
        """
        Create SQLite database instance.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._connections: List[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()
        self._initialized = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def initialize(self) -> None:
        """Initialize the database connection and schema."""
        if self._initialized:
            return

        # Ensure parent directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._init_schema()
        except QueryError as e:
            raise SchemaError(f"Failed to initialize schema at {self.db_path}: {e}") from e
        self._initialized = True
        logger.info("SQLite database ready at %s", self.db_path)

    def close(self) -> None:
        """Close every connection opened by this instance."""
        with self._connections_lock:
            for conn in self._connections:
                try:
                    conn.close()
                except sqlite3.Error as e:
                    logger.warning("Error closing connection: %s", e)
            self._connections.clear()
        self._local = threading.local()

    def health_check(self) -> bool:
        """Check if the database connection is healthy."""
        try:
            conn = self._get_connection()
            conn.execute("SELECT 1")
            return True
        except (sqlite3.Error, ConnectionError):
            return False

    def optimize(self) -> None:
        """Refresh query planner statistics and truncate the WAL file."""
        conn = self._get_connection()
        try:
            conn.execute("PRAGMA optimize")
            conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        except sqlite3.Error as e:
            raise QueryError(f"optimize failed: {e}") from e

    def get_database_size(self) -> int:
        """Get database file size in bytes."""
        if self.db_path.exists():
            return self.db_path.stat().st_size
        return 0

    # =========================================================================
    # CONNECTION MANAGEMENT
    # =========================================================================

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if getattr(self._local, 'conn', None) is None:
            try:
                conn = sqlite3.connect(
                    str(self.db_path),
                    check_same_thread=False,
                    timeout=30.0
                )
            except sqlite3.Error as e:
                raise ConnectionError(f"Cannot open {self.db_path}: {e}") from e
            conn.row_factory = sqlite3.Row
            # Enable WAL mode for better concurrent access
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA foreign_keys=ON")
            self._local.conn = conn
            with self._connections_lock:
                self._connections.append(conn)
        return self._local.conn

    @contextmanager
    def transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """
        Context manager for database transactions.

        Args:
            immediate: Take the write lock up front so checks made inside the
                       transaction stay valid until commit
        """
        conn = self._get_connection()
        try:
            if immediate:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.commit()
        except sqlite3.IntegrityError as e:
            conn.rollback()
            raise ConflictError(f"Constraint violated: {e}") from e
        except sqlite3.Error as e:
            conn.rollback()
            raise QueryError(str(e)) from e
        except Exception:
            conn.rollback()
            raise

    def _query(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        """Run a read query outside of a transaction."""
        try:
            return self._get_connection().execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise QueryError(str(e)) from e

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self.transaction() as conn:
            conn.executescript('''
                -- Metadata table
                CREATE TABLE IF NOT EXISTS metadata (
                    key TEXT PRIMARY KEY,
                    value TEXT,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                );

                -- Singleton row of configurable point values
                CREATE TABLE IF NOT EXISTS score_settings (
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    gold_points INTEGER NOT NULL CHECK (gold_points >= 0),
                    silver_points INTEGER NOT NULL CHECK (silver_points >= 0),
                    bronze_points INTEGER NOT NULL CHECK (bronze_points >= 0),
                    non_winner_points INTEGER NOT NULL CHECK (non_winner_points >= 0),
                    updated_at TEXT
                );

                CREATE TABLE IF NOT EXISTS categories (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE,
                    created_at TEXT
                );

                CREATE TABLE IF NOT EXISTS teams (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    icon TEXT,
                    color TEXT,
                    created_at TEXT,
                    updated_at TEXT
                );

                CREATE TABLE IF NOT EXISTS events (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    category_id INTEGER NOT NULL REFERENCES categories(id),
                    event_date TEXT,
                    status TEXT NOT NULL DEFAULT 'PENDING'
                        CHECK (status IN ('PENDING', 'COMPLETED')),
                    created_at TEXT,
                    updated_at TEXT
                );

                -- Medal ledger (points are a snapshot taken at insert time)
                CREATE TABLE IF NOT EXISTS medals (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_id INTEGER NOT NULL REFERENCES events(id),
                    team_id INTEGER NOT NULL REFERENCES teams(id),
                    medal_type TEXT NOT NULL CHECK (medal_type IN
                        ('GOLD', 'SILVER', 'BRONZE', 'NON_WINNER', 'NO_ENTRY')),
                    points INTEGER NOT NULL CHECK (points >= 0),
                    created_at TEXT NOT NULL
                );

                -- One of each podium medal per event, one NO_ENTRY per team per event
                CREATE UNIQUE INDEX IF NOT EXISTS uq_medals_podium
                    ON medals(event_id, medal_type)
                    WHERE medal_type IN ('GOLD', 'SILVER', 'BRONZE');
                CREATE UNIQUE INDEX IF NOT EXISTS uq_medals_no_entry
                    ON medals(event_id, team_id)
                    WHERE medal_type = 'NO_ENTRY';

                CREATE INDEX IF NOT EXISTS idx_medals_event ON medals(event_id);
                CREATE INDEX IF NOT EXISTS idx_medals_team ON medals(team_id);
                CREATE INDEX IF NOT EXISTS idx_events_category ON events(category_id);
                CREATE INDEX IF NOT EXISTS idx_events_status ON events(status);
            ''')

            conn.execute('''
                INSERT OR IGNORE INTO score_settings
                    (id, gold_points, silver_points, bronze_points, non_winner_points, updated_at)
                VALUES (1, ?, ?, ?, ?, ?)
            ''', (
                config.DEFAULT_GOLD_POINTS,
                config.DEFAULT_SILVER_POINTS,
                config.DEFAULT_BRONZE_POINTS,
                config.DEFAULT_NON_WINNER_POINTS,
                _utcnow(),
            ))

            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                ('schema_version', str(self.SCHEMA_VERSION))
            )

    # =========================================================================
    # SCORE SETTINGS
    # =========================================================================

    def get_score_settings(self) -> Dict[str, Any]:
        """Get the score settings row."""
        rows = self._query(
            'SELECT gold_points, silver_points, bronze_points, non_winner_points, updated_at '
            'FROM score_settings WHERE id = 1'
        )
        if not rows:
            raise SchemaError("score_settings row is missing")
        return dict(rows[0])

    def save_score_settings(self, values: Dict[str, int]) -> Dict[str, Any]:
        """Merge point values into the settings row."""
        columns = [c for c in SETTINGS_COLUMNS if c in values]
        if columns:
            assignments = ", ".join(f"{c} = ?" for c in columns)
            with self.transaction() as conn:
                conn.execute(
                    f'UPDATE score_settings SET {assignments}, updated_at = ? WHERE id = 1',
                    [values[c] for c in columns] + [_utcnow()]
                )
        return self.get_score_settings()

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    def get_categories(self) -> List[Dict[str, Any]]:
        """Get all categories ordered by name."""
        rows = self._query('SELECT id, name FROM categories ORDER BY name, id')
        return [dict(row) for row in rows]

    def get_category(self, category_id: int) -> Optional[Dict[str, Any]]:
        """Get a category by id."""
        rows = self._query('SELECT id, name FROM categories WHERE id = ?', (category_id,))
        return dict(rows[0]) if rows else None

    def create_category(self, name: str) -> Dict[str, Any]:
        """Create a category. Duplicate names raise ConflictError."""
        with self.transaction() as conn:
            cursor = conn.execute(
                'INSERT INTO categories (name, created_at) VALUES (?, ?)',
                (name, _utcnow())
            )
            category_id = cursor.lastrowid
        return {'id': category_id, 'name': name}

    def delete_category(self, category_id: int) -> bool:
        """Delete a category that no event references."""
        with self.transaction(immediate=True) as conn:
            if not conn.execute('SELECT 1 FROM categories WHERE id = ?', (category_id,)).fetchone():
                return False
            in_use = conn.execute(
                'SELECT COUNT(*) FROM events WHERE category_id = ?', (category_id,)
            ).fetchone()[0]
            if in_use:
                raise ConflictError(
                    f"Category {category_id} is used by {in_use} event(s)",
                    {'categoryId': category_id, 'events': in_use}
                )
            conn.execute('DELETE FROM categories WHERE id = ?', (category_id,))
        return True

    # =========================================================================
    # TEAMS
    # =========================================================================

    def get_teams(self) -> List[Dict[str, Any]]:
        """Get all teams ordered by name."""
        rows = self._query('SELECT id, name, icon, color FROM teams ORDER BY name, id')
        return [dict(row) for row in rows]

    def get_team(self, team_id: int) -> Optional[Dict[str, Any]]:
        """Get a team by id."""
        rows = self._query('SELECT id, name, icon, color FROM teams WHERE id = ?', (team_id,))
        return dict(rows[0]) if rows else None

    def create_team(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a team."""
        now = _utcnow()
        with self.transaction() as conn:
            cursor = conn.execute(
                'INSERT INTO teams (name, icon, color, created_at, updated_at) VALUES (?, ?, ?, ?, ?)',
                (data['name'], data.get('icon'), data.get('color'), now, now)
            )
            team_id = cursor.lastrowid
        return {'id': team_id, 'name': data['name'], 'icon': data.get('icon'), 'color': data.get('color')}

    def update_team(self, team_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Rename or recolor a team."""
        columns = [c for c in TEAM_COLUMNS if c in changes]
        with self.transaction() as conn:
            if not conn.execute('SELECT 1 FROM teams WHERE id = ?', (team_id,)).fetchone():
                return None
            if columns:
                assignments = ", ".join(f"{c} = ?" for c in columns)
                conn.execute(
                    f'UPDATE teams SET {assignments}, updated_at = ? WHERE id = ?',
                    [changes[c] for c in columns] + [_utcnow(), team_id]
                )
        return self.get_team(team_id)

    def delete_team(self, team_id: int) -> bool:
        """Delete a team that holds no medals."""
        with self.transaction(immediate=True) as conn:
            if not conn.execute('SELECT 1 FROM teams WHERE id = ?', (team_id,)).fetchone():
                return False
            in_use = conn.execute(
                'SELECT COUNT(*) FROM medals WHERE team_id = ?', (team_id,)
            ).fetchone()[0]
            if in_use:
                raise ConflictError(
                    f"Team {team_id} has {in_use} medal record(s)",
                    {'teamId': team_id, 'medals': in_use}
                )
            conn.execute('DELETE FROM teams WHERE id = ?', (team_id,))
        return True

    # =========================================================================
    # EVENTS
    # =========================================================================

    def get_events(
        self,
        status: Optional[str] = None,
        category_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Get events with optional filters."""
        query = EVENT_SELECT + " WHERE 1=1"
        params: List[Any] = []

        if status:
            query += " AND e.status = ?"
            params.append(status)

        if category_id:
            query += " AND e.category_id = ?"
            params.append(category_id)

        query += " ORDER BY e.event_date IS NULL, e.event_date, e.name, e.id"

        return [dict(row) for row in self._query(query, params)]

    def get_event(self, event_id: int) -> Optional[Dict[str, Any]]:
        """Get an event by id."""
        rows = self._query(EVENT_SELECT + " WHERE e.id = ?", (event_id,))
        return dict(rows[0]) if rows else None

    def create_event(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a PENDING event in an existing category."""
        now = _utcnow()
        with self.transaction() as conn:
            if not conn.execute(
                'SELECT 1 FROM categories WHERE id = ?', (data['category_id'],)
            ).fetchone():
                raise NotFoundError("Category", data['category_id'], {'field': 'categoryId'})
            cursor = conn.execute('''
                INSERT INTO events (name, category_id, event_date, status, created_at, updated_at)
                VALUES (?, ?, ?, 'PENDING', ?, ?)
            ''', (data['name'], data['category_id'], _iso(data.get('event_date')), now, now))
            event_id = cursor.lastrowid
        return self.get_event(event_id)

    def update_event(self, event_id: int, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply changes to an event."""
        columns = [c for c in EVENT_COLUMNS if c in changes]
        with self.transaction() as conn:
            if not conn.execute('SELECT 1 FROM events WHERE id = ?', (event_id,)).fetchone():
                return None
            if 'category_id' in changes and not conn.execute(
                'SELECT 1 FROM categories WHERE id = ?', (changes['category_id'],)
            ).fetchone():
                raise NotFoundError("Category", changes['category_id'], {'field': 'categoryId'})
            if columns:
                assignments = ", ".join(f"{c} = ?" for c in columns)
                conn.execute(
                    f'UPDATE events SET {assignments}, updated_at = ? WHERE id = ?',
                    [_iso(changes[c]) for c in columns] + [_utcnow(), event_id]
                )
        return self.get_event(event_id)

    def delete_event(self, event_id: int) -> bool:
        """Delete an event that has no medals."""
        with self.transaction(immediate=True) as conn:
            if not conn.execute('SELECT 1 FROM events WHERE id = ?', (event_id,)).fetchone():
                return False
            in_use = conn.execute(
                'SELECT COUNT(*) FROM medals WHERE event_id = ?', (event_id,)
            ).fetchone()[0]
            if in_use:
                raise ConflictError(
                    f"Event {event_id} has {in_use} medal record(s)",
                    {'eventId': event_id, 'medals': in_use}
                )
            conn.execute('DELETE FROM events WHERE id = ?', (event_id,))
        return True

    # =========================================================================
    # MEDAL LEDGER
    # =========================================================================

    def get_medals(
        self,
        event_id: Optional[int] = None,
        team_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Get medal records with optional filters."""
        query = "SELECT id, event_id, team_id, medal_type, points, created_at FROM medals WHERE 1=1"
        params: List[Any] = []

        if event_id:
            query += " AND event_id = ?"
            params.append(event_id)

        if team_id:
            query += " AND team_id = ?"
            params.append(team_id)

        query += " ORDER BY id"

        return [dict(row) for row in self._query(query, params)]

    def get_medal(self, medal_id: int) -> Optional[Dict[str, Any]]:
        """Get a medal record by id."""
        rows = self._query(
            'SELECT id, event_id, team_id, medal_type, points, created_at FROM medals WHERE id = ?',
            (medal_id,)
        )
        return dict(rows[0]) if rows else None

    def insert_medals(
        self,
        event_id: int,
        medals: List[Dict[str, Any]],
        complete_event: bool = False,
        replace_existing: bool = False
    ) -> List[Dict[str, Any]]:
        """Insert a batch of medals for one event, all or nothing."""
        created: List[Dict[str, Any]] = []

        with self.transaction(immediate=True) as conn:
            event = conn.execute('SELECT status FROM events WHERE id = ?', (event_id,)).fetchone()
            if event is None:
                raise NotFoundError("Event", event_id)

            if complete_event and event['status'] == 'COMPLETED' and not replace_existing:
                raise ConflictError(
                    f"Event {event_id} already has submitted results",
                    {'eventId': event_id, 'status': event['status']}
                )

            team_ids = sorted({m['team_id'] for m in medals})
            if team_ids:
                placeholders = ", ".join("?" for _ in team_ids)
                found = {
                    row['id'] for row in conn.execute(
                        f'SELECT id FROM teams WHERE id IN ({placeholders})', team_ids
                    )
                }
                missing = [t for t in team_ids if t not in found]
                if missing:
                    raise NotFoundError("Team", missing[0], {'missing': missing})

            if replace_existing:
                removed = conn.execute('DELETE FROM medals WHERE event_id = ?', (event_id,)).rowcount
                logger.info("Replacing %d medal(s) for event %s", removed, event_id)

            state = EventMedalState(
                (row['team_id'], MedalType(row['medal_type']))
                for row in conn.execute(
                    'SELECT DISTINCT team_id, medal_type FROM medals WHERE event_id = ?',
                    (event_id,)
                )
            )

            for index, medal in enumerate(medals):
                medal_type = MedalType(medal['medal_type'])
                reason = state.conflict(medal['team_id'], medal_type)
                if reason:
                    raise ConflictError(reason, {
                        'index': index,
                        'eventId': event_id,
                        'teamId': medal['team_id'],
                        'medalType': medal_type.value,
                    })

                created_at = _utcnow()
                cursor = conn.execute('''
                    INSERT INTO medals (event_id, team_id, medal_type, points, created_at)
                    VALUES (?, ?, ?, ?, ?)
                ''', (event_id, medal['team_id'], medal_type.value, medal['points'], created_at))

                state.add(medal['team_id'], medal_type)
                created.append({
                    'id': cursor.lastrowid,
                    'event_id': event_id,
                    'team_id': medal['team_id'],
                    'medal_type': medal_type.value,
                    'points': medal['points'],
                    'created_at': created_at,
                })

            if complete_event:
                conn.execute(
                    "UPDATE events SET status = 'COMPLETED', updated_at = ? WHERE id = ?",
                    (_utcnow(), event_id)
                )

        return created

    def delete_medal(self, medal_id: int) -> bool:
        """Delete a medal record."""
        with self.transaction() as conn:
            cursor = conn.execute('DELETE FROM medals WHERE id = ?', (medal_id,))
            deleted = cursor.rowcount > 0
        return deleted
