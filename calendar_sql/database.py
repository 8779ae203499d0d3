"""
Database Management Module

Session-scoped in-memory SQLite store for the calendar database:
schema bootstrap, random demo data, and SQL execution that reports
failures as values instead of exceptions.
"""

import logging
import random
import re
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd

logger = logging.getLogger(__name__)

ERROR_PREFIX = "Error: "
NOT_INITIALIZED_ERROR = ERROR_PREFIX + "Database not initialized."
READ_ONLY_ERROR = ERROR_PREFIX + "Only SELECT queries are allowed."

# whitespace, "-- ..." and "/* ... */" comments, and opening parentheses
_LEADING_NOISE = re.compile(r"\A(?:\s+|--[^\n]*(?:\n|\Z)|/\*.*?\*/|\()*", re.DOTALL)

TABLES = ("user", "event", "task")

SCHEMA_SQL = """
DROP TABLE IF EXISTS task;
DROP TABLE IF EXISTS event;
DROP TABLE IF EXISTS user;

CREATE TABLE IF NOT EXISTS user (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL,
    password TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS event (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    datetime TEXT NOT NULL,
    userId INTEGER NOT NULL,
    FOREIGN KEY (userId) REFERENCES user(id)
);

CREATE TABLE IF NOT EXISTS task (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    datetime TEXT NOT NULL,
    isCompleted BOOLEAN NOT NULL DEFAULT 0,
    userId INTEGER NOT NULL,
    FOREIGN KEY (userId) REFERENCES user(id)
);
"""

Row = Tuple[Any, ...]
QueryResult = Union[List[Row], str, None]


def split_statements(sql: str) -> List[str]:
    """Split a SQL script into complete statements using SQLite's own parser check"""
    statements = []
    buffer = ""
    chunks = sql.split(";")

    for i, chunk in enumerate(chunks):
        buffer += chunk
        if i == len(chunks) - 1:
            break
        buffer += ";"
        # A ';' inside a string literal or trigger body does not end the statement
        if sqlite3.complete_statement(buffer):
            if buffer.strip(" \t\r\n;"):
                statements.append(buffer.strip())
            buffer = ""

    if buffer.strip(" \t\r\n;"):
        statements.append(buffer.strip())
    return statements


def is_read_only_statement(statement: str) -> bool:
    """True for statements that only read (SELECT / WITH), ignoring leading comments"""
    body = _LEADING_NOISE.sub("", statement, count=1)
    return body.upper().startswith(("SELECT", "WITH"))


class SessionStore:
    """
    Owns the in-memory SQLite database for one chat session.

    Nothing can be executed before initialize() has created the schema;
    execute_sql() reports that (and every SQL failure) as an "Error: ..."
    string so callers can tell errors, empty results and rows apart by shape.
    """

    def __init__(self, read_only: bool = False):
        self.read_only = read_only
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def is_ready(self) -> bool:
        return self._conn is not None

    def initialize(self, seed: bool = True, rng: Optional[random.Random] = None) -> Dict[str, pd.DataFrame]:
        """
        Create the calendar schema and optionally fill it with random data.

        Args:
            seed: Whether to insert random users, events and tasks
            rng: Random generator to use (for reproducible data)

        Returns:
            Dictionary of table name -> DataFrame of inserted rows
        """
        if self._conn is None:
            # autocommit, so every executed statement is applied immediately
            self._conn = sqlite3.connect(":memory:", check_same_thread=False, isolation_level=None)

        self._conn.execute("PRAGMA query_only = OFF")
        self._conn.executescript(SCHEMA_SQL)

        inserted = {}
        if seed:
            inserted = DataPreparation.seed_random_data(self._conn, rng=rng)

        if self.read_only:
            self._conn.execute("PRAGMA query_only = ON")

        logger.info("Database initialized, tables created%s", ", random data inserted" if seed else "")
        return inserted

    def execute_sql(self, query: str) -> QueryResult:
        """
        Execute SQL exactly as given.

        Every statement in the query runs in order. The rows of the first
        statement that returns any are the result.

        Returns:
            List of row tuples, None when no statement returned rows,
            or an "Error: ..." string
        """
        if self._conn is None:
            return NOT_INITIALIZED_ERROR

        result = None
        try:
            statements = split_statements(query)
            if self.read_only and not all(is_read_only_statement(s) for s in statements):
                logger.info("Rejected non-SELECT statement in read-only mode: %s", query)
                return READ_ONLY_ERROR

            for statement in statements:
                cursor = self._conn.execute(statement)
                if cursor.description is None:
                    continue
                rows = cursor.fetchall()
                if rows and result is None:
                    result = [tuple(row) for row in rows]
        except (sqlite3.Error, ValueError) as e:
            # ValueError covers text SQLite cannot take, e.g. lone surrogates
            logger.info("SQLite execution error: %s", e)
            return f"{ERROR_PREFIX}{e}"

        return result

    def read_table(self, table_name: str) -> pd.DataFrame:
        """Load a whole table for display"""
        if self._conn is None:
            raise RuntimeError("Database not initialized")
        if table_name not in TABLES:
            raise ValueError(f"Unknown table: {table_name}")
        return pd.read_sql_query(f'SELECT * FROM "{table_name}"', self._conn)

    def get_table_counts(self) -> Dict[str, int]:
        """Row count per calendar table"""
        if self._conn is None:
            return {}
        return {
            name: self._conn.execute(f'SELECT COUNT(*) FROM "{name}"').fetchone()[0]
            for name in TABLES
        }

    def close(self):
        """Close database connection (the session data is gone afterwards)"""
        if self._conn:
            self._conn.close()
            self._conn = None


class DataPreparation:
    """
    Random demo data for the calendar database.
    Separate from query execution; only used when a session starts.
    """

    START_DATE = datetime(2020, 1, 1)

    @staticmethod
    def random_datetime(rng: random.Random, end: Optional[datetime] = None) -> str:
        """Random timestamp between 2020-01-01 and now, as 'YYYY-MM-DD HH:MM:SS'"""
        start = DataPreparation.START_DATE
        end = end or datetime.now()
        moment = start + (end - start) * rng.random()
        return moment.strftime("%Y-%m-%d %H:%M:%S")

    @staticmethod
    def seed_random_data(
        conn: sqlite3.Connection,
        rng: Optional[random.Random] = None,
        users: int = 10,
        events: int = 5,
        tasks: int = 5,
    ) -> Dict[str, pd.DataFrame]:
        """
        Insert random users, events and tasks.

        Events and tasks reference user ids 1..users, which assumes the
        user table was empty before seeding.

        Returns:
            Dictionary of table name -> DataFrame of inserted rows
        """
        rng = rng or random.Random()

        frames = {
            "user": pd.DataFrame({
                "username": [f"user_{rng.randint(1, 1000)}" for _ in range(users)],
                "password": [f"password_{rng.randint(1, 100)}" for _ in range(users)],
            }),
            "event": pd.DataFrame({
                "title": [f"Event {rng.randint(1, 100)}" for _ in range(events)],
                "datetime": [DataPreparation.random_datetime(rng) for _ in range(events)],
                "userId": [rng.randint(1, users) for _ in range(events)],
            }),
            "task": pd.DataFrame({
                "title": [f"Task {rng.randint(1, 100)}" for _ in range(tasks)],
                "datetime": [DataPreparation.random_datetime(rng) for _ in range(tasks)],
                "isCompleted": [rng.randint(0, 1) for _ in range(tasks)],
                "userId": [rng.randint(1, users) for _ in range(tasks)],
            }),
        }

        for table_name, df in frames.items():
            df.to_sql(table_name, conn, if_exists="append", index=False)
            logger.debug("Inserted %d rows into %s", len(df), table_name)

        return frames
