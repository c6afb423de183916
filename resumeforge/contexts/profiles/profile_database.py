"""
Persistent SQLite store for candidate profiles.

Provides the profile lookup boundary used by the generation pipeline:
get_profile_with_details(id) returns a ProfileSnapshot with work history and
education ordered by start date, most recent first.
"""

import sqlite3
from pathlib import Path
from typing import Any, Dict, List

from resumeforge.contexts.generation.exceptions import CollaboratorUnavailable
from resumeforge.contexts.profiles.profile_data_structure import (
    EducationEntry,
    ProfileSnapshot,
    WorkHistoryEntry,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    full_name TEXT NOT NULL,
    phone TEXT,
    location TEXT,
    title TEXT,
    summary TEXT
);

CREATE TABLE IF NOT EXISTS work_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    profile_id INTEGER NOT NULL REFERENCES profiles(id),
    company TEXT NOT NULL,
    title TEXT NOT NULL,
    location TEXT,
    start_date TEXT NOT NULL,
    end_date TEXT,
    is_current INTEGER NOT NULL DEFAULT 0,
    description TEXT
);

CREATE TABLE IF NOT EXISTS education (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    profile_id INTEGER NOT NULL REFERENCES profiles(id),
    school TEXT NOT NULL,
    degree TEXT NOT NULL,
    field TEXT NOT NULL,
    location TEXT,
    start_date TEXT NOT NULL,
    end_date TEXT,
    is_current INTEGER NOT NULL DEFAULT 0,
    description TEXT
);

CREATE INDEX IF NOT EXISTS idx_work_history_profile ON work_history(profile_id);
CREATE INDEX IF NOT EXISTS idx_education_profile ON education(profile_id);
"""


class ProfileNotFoundError(LookupError):
    """Raised when no profile exists for the requested id."""

    def __init__(self, profile_id: int):
        self.profile_id = profile_id
        super().__init__(f"Profile not found: {profile_id}")


class ProfileDatabase:
    """
    SQLite database of candidate profiles.

    The database is persistent - build once with from_profiles(), then load
    later by instantiating with the db_path.
    """

    def __init__(self, db_path: Path):
        """
        Load an existing database from disk.

        To create a new database, use ProfileDatabase.from_profiles() instead.

        Args:
            db_path: Path to existing SQLite database file

        Raises:
            FileNotFoundError: If database file doesn't exist
        """
        self.db_path = Path(db_path)

        if not self.db_path.exists():
            raise FileNotFoundError(
                f"Database not found: {self.db_path}\n"
                f"To create a new database, use ProfileDatabase.from_profiles()"
            )

        # Request handlers may run in a worker thread other than the creator
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

    @classmethod
    def from_profiles(cls, profiles: List[ProfileSnapshot], db_path: Path) -> "ProfileDatabase":
        """
        Build new database from a list of profiles (deletes existing database).

        Args:
            profiles: List of ProfileSnapshot instances
            db_path: Path where database will be created

        Returns:
            ProfileDatabase containing all profiles
        """
        db_path = Path(db_path)
        if db_path.exists():
            db_path.unlink()

        db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(db_path))
        conn.executescript(_SCHEMA)
        conn.commit()
        conn.close()

        db = cls(db_path)
        for profile in profiles:
            db.add_profile(profile)
        return db

    def add_profile(self, profile: ProfileSnapshot) -> int:
        """
        Insert a profile with its work history and education.

        Returns:
            Id assigned to the new profile
        """
        with self.conn:
            cursor = self.conn.execute(
                """
                INSERT INTO profiles (email, full_name, phone, location, title, summary)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    profile.email,
                    profile.full_name,
                    profile.phone,
                    profile.location,
                    profile.title,
                    profile.summary,
                ),
            )
            profile_id = cursor.lastrowid

            self.conn.executemany(
                """
                INSERT INTO work_history
                    (profile_id, company, title, location, start_date, end_date, is_current, description)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        profile_id,
                        entry.company,
                        entry.title,
                        entry.location,
                        entry.start_date.isoformat(),
                        entry.end_date.isoformat() if entry.end_date else None,
                        int(entry.is_current),
                        entry.description,
                    )
                    for entry in profile.work_history
                ],
            )
            self.conn.executemany(
                """
                INSERT INTO education
                    (profile_id, school, degree, field, location, start_date, end_date, is_current, description)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        profile_id,
                        entry.school,
                        entry.degree,
                        entry.field,
                        entry.location,
                        entry.start_date.isoformat(),
                        entry.end_date.isoformat() if entry.end_date else None,
                        int(entry.is_current),
                        entry.description,
                    )
                    for entry in profile.education
                ],
            )
        return profile_id

    def query(self, sql: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """
        Execute SQL query and return results as list of dicts.

        Args:
            sql: SQL query string
            params: Query parameters (for parameterized queries)

        Returns:
            List of dicts with column names as keys
        """
        cursor = self.conn.execute(sql, params)
        return [dict(row) for row in cursor.fetchall()]

    def get_profile_with_details(self, profile_id: int) -> ProfileSnapshot:
        """
        Load a profile snapshot with work history and education.

        Entries are ordered by start date descending (ISO dates sort as text),
        then by insertion order.

        Raises:
            ProfileNotFoundError: If no profile has this id
            CollaboratorUnavailable: If the database cannot be queried
        """
        try:
            rows = self.query("SELECT * FROM profiles WHERE id = ?", (profile_id,))
            if not rows:
                raise ProfileNotFoundError(profile_id)

            work_rows = self.query(
                "SELECT * FROM work_history WHERE profile_id = ? ORDER BY start_date DESC, id ASC",
                (profile_id,),
            )
            education_rows = self.query(
                "SELECT * FROM education WHERE profile_id = ? ORDER BY start_date DESC, id ASC",
                (profile_id,),
            )
        except sqlite3.Error as e:
            raise CollaboratorUnavailable(f"Profile store query failed: {e}") from e

        return ProfileSnapshot.from_dict(
            {
                **rows[0],
                "work_history": work_rows,
                "education": education_rows,
            }
        )

    def count_profiles(self) -> int:
        return self.query("SELECT COUNT(*) AS n FROM profiles")[0]["n"]

    def close(self):
        self.conn.close()
