"""
SQLite database layer for PGC team scoring.
Loads tournament snapshots and writes back computed team results.
"""

import sqlite3
import json
import logging
import uuid
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, Optional, Dict, Tuple
from contextlib import contextmanager

from .models import (
    Course, Golfer, GolferStatus, PlayoffContext, Team, TeamResult, Tier,
    TourCard, Tournament,
)
from .config import get_config
from .errors import ScoringError
from .playoffs import playoff_event_index

logger = logging.getLogger(__name__)

TEAM_RESULT_COLUMNS = (
    "round", "round_one", "round_two", "round_three", "round_four",
    "today", "thru", "score", "position", "past_position",
    "round_one_tee_time", "round_two_tee_time", "round_three_tee_time", "round_four_tee_time",
    "points", "earnings",
)


class DatabaseError(ScoringError):
    """Raised when the database can't be read or written."""


class CycleInProgressError(DatabaseError):
    """Another scoring run holds the job lock."""


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Optional[Path] = None, timeout: Optional[float] = None):
        """Initialize database connection."""
        config = get_config()
        self.db_path = db_path or config.db_path
        self.timeout = timeout if timeout is not None else config.db_timeout_seconds
        try:
            self._init_db()
        except sqlite3.OperationalError as e:
            message = str(e).lower()
            if "permission" in message or "readonly" in message:
                raise DatabaseError(f"Permission denied writing database at {self.db_path}") from e
            if "disk" in message and "full" in message:
                raise DatabaseError(f"Disk full, cannot write database at {self.db_path}") from e
            if "unable to open" in message:
                raise DatabaseError(f"Cannot open database at {self.db_path}") from e
            raise DatabaseError(f"Database initialization failed: {e}") from e

    @contextmanager
    def _connection(self):
        """Context manager for database connections; one transaction per block."""
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS tiers (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    points_json TEXT NOT NULL,
                    payouts_json TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS tournaments (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    season_id TEXT NOT NULL,
                    start_date TEXT NOT NULL,
                    end_date TEXT NOT NULL,
                    course_name TEXT,
                    par INTEGER DEFAULT 72,
                    tier_id TEXT,
                    current_round INTEGER DEFAULT 1,
                    live_play INTEGER DEFAULT 0
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS tournament_tours (
                    tournament_id TEXT NOT NULL,
                    tour_id TEXT NOT NULL,
                    PRIMARY KEY (tournament_id, tour_id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS golfers (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    tournament_id TEXT NOT NULL,
                    api_id INTEGER NOT NULL,
                    name TEXT,
                    round_one REAL,
                    round_two REAL,
                    round_three REAL,
                    round_four REAL,
                    round_one_tee_time TEXT,
                    round_two_tee_time TEXT,
                    round_three_tee_time TEXT,
                    round_four_tee_time TEXT,
                    status TEXT DEFAULT 'active',
                    position TEXT,
                    today REAL,
                    thru REAL,
                    score REAL,
                    round INTEGER,
                    UNIQUE(tournament_id, api_id)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS teams (
                    id INTEGER PRIMARY KEY,
                    tournament_id TEXT NOT NULL,
                    tour_card_id TEXT NOT NULL,
                    golfer_ids_json TEXT NOT NULL,
                    round INTEGER,
                    round_one REAL,
                    round_two REAL,
                    round_three REAL,
                    round_four REAL,
                    today REAL,
                    thru REAL,
                    score REAL,
                    position TEXT,
                    past_position TEXT,
                    round_one_tee_time TEXT,
                    round_two_tee_time TEXT,
                    round_three_tee_time TEXT,
                    round_four_tee_time TEXT,
                    points REAL DEFAULT 0,
                    earnings REAL DEFAULT 0,
                    updated_at TEXT
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS tour_cards (
                    id TEXT PRIMARY KEY,
                    season_id TEXT NOT NULL,
                    tour_id TEXT NOT NULL,
                    display_name TEXT,
                    playoff INTEGER DEFAULT 0,
                    points REAL DEFAULT 0,
                    earnings REAL DEFAULT 0,
                    position TEXT,
                    win INTEGER DEFAULT 0,
                    top_ten INTEGER DEFAULT 0,
                    made_cut INTEGER DEFAULT 0,
                    appearances INTEGER DEFAULT 0
                )
            """)

            # Serializes scoring runs
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS job_locks (
                    name TEXT PRIMARY KEY,
                    owner TEXT NOT NULL,
                    expires_at TEXT NOT NULL
                )
            """)

    # =========================================================================
    # Tier operations
    # =========================================================================

    def save_tier(self, tier: Tier) -> str:
        """Save or update a tier."""
        tier_id = tier.id or tier.name
        with self._connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO tiers (id, name, points_json, payouts_json)
                VALUES (?, ?, ?, ?)
            """, (tier_id, tier.name, json.dumps(list(tier.points)), json.dumps(list(tier.payouts))))
        return tier_id

    def _get_tier(self, conn: sqlite3.Connection, tier_id: Optional[str]) -> Tier:
        row = conn.execute("SELECT * FROM tiers WHERE id = ?", (tier_id,)).fetchone()
        if not row:
            return Tier(name="", id=tier_id)
        try:
            points = json.loads(row["points_json"])
            payouts = json.loads(row["payouts_json"])
        except json.JSONDecodeError:
            logger.warning(f"Tier {tier_id} has corrupted tables")
            points, payouts = [], []
        return Tier(name=row["name"], points=points, payouts=payouts, id=row["id"])

    # =========================================================================
    # Tournament operations
    # =========================================================================

    def save_tournament(self, tournament: Tournament) -> str:
        """Save a tournament with its tier, tours, golfers and teams."""
        if tournament.tier.name:
            tournament.tier.id = self.save_tier(tournament.tier)
        with self._connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO tournaments
                (id, name, season_id, start_date, end_date, course_name, par, tier_id, current_round, live_play)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                tournament.id,
                tournament.name,
                tournament.season_id,
                tournament.start_date.isoformat(),
                tournament.end_date.isoformat(),
                tournament.course.name,
                tournament.course.par,
                tournament.tier.id,
                tournament.current_round,
                1 if tournament.live_play else 0,
            ))
            conn.execute("DELETE FROM tournament_tours WHERE tournament_id = ?", (tournament.id,))
            conn.executemany(
                "INSERT INTO tournament_tours (tournament_id, tour_id) VALUES (?, ?)",
                [(tournament.id, tour_id) for tour_id in tournament.tour_ids],
            )
            for golfer in tournament.golfers:
                self._save_golfer(conn, tournament.id, golfer)
            for team in tournament.teams:
                team.tournament_id = tournament.id
                self._save_team(conn, team)
        return tournament.id

    def load_tournament(self, tournament_id: str, include_field: bool = True) -> Optional[Tournament]:
        """Load a tournament, with golfers and teams unless include_field is False."""
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM tournaments WHERE id = ?", (tournament_id,)).fetchone()
            if not row:
                return None
            return self._row_to_tournament(conn, row, include_field)

    def load_current_tournament(self, now: Optional[datetime] = None) -> Optional[Tournament]:
        """The most recently started tournament whose dates cover now."""
        today = (now or datetime.now()).date().isoformat()
        with self._connection() as conn:
            row = conn.execute("""
                SELECT * FROM tournaments
                WHERE start_date <= ? AND end_date >= ?
                ORDER BY start_date DESC
                LIMIT 1
            """, (today, today)).fetchone()
            if not row:
                return None
            return self._row_to_tournament(conn, row, include_field=True)

    def load_playoff_tournaments(self, season_id: str, tour_ids: List[str]) -> List[Tournament]:
        """Playoff tournaments of a season sharing at least one tour, oldest first (no field)."""
        if not tour_ids:
            return []
        placeholders = ",".join("?" for _ in tour_ids)
        with self._connection() as conn:
            rows = conn.execute(f"""
                SELECT DISTINCT t.* FROM tournaments t
                LEFT JOIN tiers ti ON ti.id = t.tier_id
                JOIN tournament_tours tt ON tt.tournament_id = t.id
                WHERE t.season_id = ?
                  AND (LOWER(COALESCE(ti.name, '')) LIKE '%playoff%' OR LOWER(t.name) LIKE '%playoff%')
                  AND tt.tour_id IN ({placeholders})
                ORDER BY t.start_date, t.id
            """, (season_id, *tour_ids)).fetchall()
            return [self._row_to_tournament(conn, row, include_field=False) for row in rows]

    def _row_to_tournament(self, conn: sqlite3.Connection, row: sqlite3.Row,
                           include_field: bool) -> Tournament:
        """Convert database row to Tournament object."""
        tour_ids = [
            r["tour_id"] for r in conn.execute(
                "SELECT tour_id FROM tournament_tours WHERE tournament_id = ? ORDER BY tour_id",
                (row["id"],),
            )
        ]
        tournament = Tournament(
            id=row["id"],
            name=row["name"],
            season_id=row["season_id"],
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(row["end_date"]),
            course=Course(name=row["course_name"] or "", par=row["par"]),
            tier=self._get_tier(conn, row["tier_id"]),
            current_round=row["current_round"] or 1,
            live_play=bool(row["live_play"]),
            tour_ids=tour_ids,
        )
        if include_field:
            tournament.golfers = [
                self._row_to_golfer(r) for r in conn.execute(
                    "SELECT * FROM golfers WHERE tournament_id = ? ORDER BY api_id", (row["id"],)
                )
            ]
            tournament.teams = [
                self._row_to_team(r) for r in conn.execute(
                    "SELECT * FROM teams WHERE tournament_id = ? ORDER BY id", (row["id"],)
                )
            ]
        return tournament

    # =========================================================================
    # Golfer operations
    # =========================================================================

    def _save_golfer(self, conn: sqlite3.Connection, tournament_id: str, golfer: Golfer):
        conn.execute("""
            INSERT OR REPLACE INTO golfers
            (tournament_id, api_id, name, round_one, round_two, round_three, round_four,
             round_one_tee_time, round_two_tee_time, round_three_tee_time, round_four_tee_time,
             status, position, today, thru, score, round)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            tournament_id, golfer.api_id, golfer.name,
            golfer.round_one, golfer.round_two, golfer.round_three, golfer.round_four,
            golfer.round_one_tee_time, golfer.round_two_tee_time,
            golfer.round_three_tee_time, golfer.round_four_tee_time,
            golfer.status.value, golfer.position,
            golfer.today, golfer.thru, golfer.score, golfer.round,
        ))

    def _row_to_golfer(self, row: sqlite3.Row) -> Golfer:
        """Convert database row to Golfer object."""
        return Golfer(
            api_id=row["api_id"],
            name=row["name"] or "",
            round_one=row["round_one"],
            round_two=row["round_two"],
            round_three=row["round_three"],
            round_four=row["round_four"],
            round_one_tee_time=row["round_one_tee_time"],
            round_two_tee_time=row["round_two_tee_time"],
            round_three_tee_time=row["round_three_tee_time"],
            round_four_tee_time=row["round_four_tee_time"],
            status=GolferStatus.resolve(row["status"], row["position"]),
            position=row["position"],
            today=row["today"],
            thru=row["thru"],
            score=row["score"],
            round=row["round"],
        )

    # =========================================================================
    # Team operations
    # =========================================================================

    def _save_team(self, conn: sqlite3.Connection, team: Team):
        values = [getattr(team, c) for c in TEAM_RESULT_COLUMNS]
        columns = ", ".join(TEAM_RESULT_COLUMNS)
        params = ", ".join("?" for _ in TEAM_RESULT_COLUMNS)
        conn.execute(f"""
            INSERT OR REPLACE INTO teams
            (id, tournament_id, tour_card_id, golfer_ids_json, {columns}, updated_at)
            VALUES (?, ?, ?, ?, {params}, ?)
        """, (
            team.id, team.tournament_id, team.tour_card_id, json.dumps(list(team.golfer_ids)),
            *values, datetime.now().isoformat(),
        ))

    def save_team(self, team: Team) -> int:
        """Save or update a team."""
        with self._connection() as conn:
            self._save_team(conn, team)
        return team.id

    def get_teams_for_tour_card(self, tour_card_id: str) -> List[Team]:
        """All teams entered with a tour card."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM teams WHERE tour_card_id = ? ORDER BY id", (tour_card_id,)
            ).fetchall()
            return [self._row_to_team(r) for r in rows]

    def _row_to_team(self, row: sqlite3.Row) -> Team:
        """Convert database row to Team object."""
        try:
            golfer_ids = json.loads(row["golfer_ids_json"])
        except json.JSONDecodeError:
            logger.warning(f"Team {row['id']} has corrupted golfer ids")
            golfer_ids = []
        return Team(
            id=row["id"],
            tour_card_id=row["tour_card_id"],
            golfer_ids=golfer_ids,
            tournament_id=row["tournament_id"],
            **{c: row[c] for c in TEAM_RESULT_COLUMNS if c not in ("points", "earnings")},
            points=row["points"] or 0,
            earnings=row["earnings"] or 0,
        )

    def batch_update_teams(self, results: List[TeamResult]) -> Tuple[int, int]:
        """
        Write computed results, touching only changed columns.

        All rows are written in one transaction: a failure rolls back the
        whole batch. Returns (teams updated, fields updated).
        """
        teams_updated = 0
        fields_updated = 0
        try:
            with self._connection() as conn:
                for result in results:
                    row = conn.execute("SELECT * FROM teams WHERE id = ?", (result.id,)).fetchone()
                    if row is None:
                        raise DatabaseError(f"Team {result.id} not found")
                    changes = {
                        column: value for column, value in result.as_update().items()
                        if row[column] != value
                    }
                    if not changes:
                        continue
                    assignments = ", ".join(f"{column} = ?" for column in changes)
                    conn.execute(
                        f"UPDATE teams SET {assignments}, updated_at = ? WHERE id = ?",
                        (*changes.values(), datetime.now().isoformat(), result.id),
                    )
                    teams_updated += 1
                    fields_updated += len(changes)
        except sqlite3.Error as e:
            raise DatabaseError(f"Team batch update failed: {e}") from e
        logger.info(f"Updated {teams_updated} teams ({fields_updated} fields)")
        return teams_updated, fields_updated

    # =========================================================================
    # Tour card operations
    # =========================================================================

    def save_tour_card(self, tour_card: TourCard):
        """Save or update a tour card."""
        with self._connection() as conn:
            conn.execute("""
                INSERT OR REPLACE INTO tour_cards
                (id, season_id, tour_id, display_name, playoff, points, earnings,
                 position, win, top_ten, made_cut, appearances)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                tour_card.id, tour_card.season_id, tour_card.tour_id, tour_card.display_name,
                tour_card.playoff or 0, tour_card.points, tour_card.earnings,
                tour_card.position, tour_card.win, tour_card.top_ten,
                tour_card.made_cut, tour_card.appearances,
            ))

    def load_tour_cards_for_season(self, season_id: str) -> List[TourCard]:
        """All tour cards of a season."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM tour_cards WHERE season_id = ? ORDER BY id", (season_id,)
            ).fetchall()
            return [self._row_to_tour_card(r) for r in rows]

    def save_tour_card_standings(self, tour_cards: List[TourCard]) -> int:
        """Write season totals and standings positions in one transaction."""
        try:
            with self._connection() as conn:
                conn.executemany("""
                    UPDATE tour_cards
                    SET points = ?, earnings = ?, position = ?, win = ?, top_ten = ?,
                        made_cut = ?, appearances = ?
                    WHERE id = ?
                """, [
                    (c.points, c.earnings, c.position, c.win, c.top_ten,
                     c.made_cut, c.appearances, c.id)
                    for c in tour_cards
                ])
        except sqlite3.Error as e:
            raise DatabaseError(f"Standings update failed: {e}") from e
        return len(tour_cards)

    def _row_to_tour_card(self, row: sqlite3.Row) -> TourCard:
        """Convert database row to TourCard object."""
        return TourCard(
            id=row["id"],
            tour_id=row["tour_id"],
            season_id=row["season_id"],
            display_name=row["display_name"] or "",
            playoff=row["playoff"] or 0,
            points=row["points"] or 0,
            earnings=row["earnings"] or 0,
            position=row["position"],
            win=row["win"] or 0,
            top_ten=row["top_ten"] or 0,
            made_cut=row["made_cut"] or 0,
            appearances=row["appearances"] or 0,
        )

    # =========================================================================
    # Playoff context
    # =========================================================================

    def load_playoff_event_index(self, tournament: Tournament) -> int:
        """Playoff event number (1-3) of a tournament by date order."""
        events = self.load_playoff_tournaments(tournament.season_id, tournament.tour_ids)
        return playoff_event_index(tournament, events)

    def load_playoff_carry_in_map(self, tournament: Tournament) -> Dict[str, float]:
        """Final team scores of the previous playoff event, keyed by tour card id."""
        events = self.load_playoff_tournaments(tournament.season_id, tournament.tour_ids)
        prior = [t for t in events if t.start_date < tournament.start_date]
        if not prior:
            return {}
        previous = prior[-1]
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT tour_card_id, score FROM teams WHERE tournament_id = ?", (previous.id,)
            ).fetchall()
        logger.debug(f"Carry-in from {previous.name}: {len(rows)} teams")
        return {r["tour_card_id"]: r["score"] if r["score"] is not None else 0 for r in rows}

    def load_playoff_context(self, tournament: Tournament) -> Optional[PlayoffContext]:
        """Event index and carry-in for a playoff tournament, None otherwise."""
        if not tournament.is_playoff:
            return None
        event_index = self.load_playoff_event_index(tournament)
        carry_in = self.load_playoff_carry_in_map(tournament) if event_index >= 2 else {}
        return PlayoffContext(event_index=event_index, carry_in=carry_in)

    # =========================================================================
    # Job locks
    # =========================================================================

    def acquire_lock(self, name: str, owner: str, ttl_seconds: int) -> bool:
        """Take a named lock unless someone else holds an unexpired one."""
        now = datetime.now()
        try:
            with self._connection() as conn:
                conn.execute(
                    "DELETE FROM job_locks WHERE name = ? AND expires_at < ?",
                    (name, now.isoformat()),
                )
                conn.execute(
                    "INSERT INTO job_locks (name, owner, expires_at) VALUES (?, ?, ?)",
                    (name, owner, (now + timedelta(seconds=ttl_seconds)).isoformat()),
                )
        except sqlite3.IntegrityError:
            return False
        return True

    def release_lock(self, name: str, owner: str):
        """Release a lock held by owner."""
        with self._connection() as conn:
            conn.execute("DELETE FROM job_locks WHERE name = ? AND owner = ?", (name, owner))

    @contextmanager
    def job_lock(self, name: str, ttl_seconds: Optional[int] = None):
        """Hold a named lock for the duration of the block."""
        ttl = ttl_seconds or get_config().lock_ttl_seconds
        owner = uuid.uuid4().hex
        if not self.acquire_lock(name, owner, ttl):
            raise CycleInProgressError(f"Job '{name}' is already running")
        try:
            yield owner
        finally:
            self.release_lock(name, owner)
