"""
Prompt Module

Prompt strategies for SQL generation and the instruction used to turn
query results into a friendly answer.
"""

from enum import Enum
from typing import Union


class Strategy(Enum):
    """How much schema context the model gets with the user request"""
    ZERO_SHOT = "zero-shot"
    SINGLE_DOMAIN = "single-domain"
    CROSS_DOMAIN = "cross-domain"

    @classmethod
    def parse(cls, value: Union["Strategy", str]) -> "Strategy":
        """Accept a Strategy or its name ("single-domain", "single_domain", ...)"""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        for strategy in cls:
            if strategy.value == normalized:
                return strategy
        choices = ", ".join(s.value for s in cls)
        raise ValueError(f"Unknown strategy {value!r} (expected one of: {choices})")


REQUEST_TEMPLATE = "Generate an SQL query for the following request: {user_input}"

SCHEMA_CONTEXT = """You are working with an SQLite database that has the following tables:

user (id INTEGER PRIMARY KEY, username TEXT, password TEXT)
event (id INTEGER PRIMARY KEY, title TEXT, datetime TEXT, userId INTEGER REFERENCES user(id))
task (id INTEGER PRIMARY KEY, title TEXT, datetime TEXT, isCompleted BOOLEAN, userId INTEGER REFERENCES user(id))

Dates are stored as text in the format 'YYYY-MM-DD HH:MM:SS'.
Return only the SQL query."""

CROSS_DOMAIN_PREAMBLE = """You are an expert SQL assistant trained on databases from many different domains.
You can translate natural language requests into correct SQL for any relational schema,
generalizing what you know about other databases to the one described below."""

SUMMARY_INSTRUCTION = (
    "Please provide a concise, human-readable summary of the following SQL query results. "
    "Answer as if you were talking to the person who asked the question:"
)


def build_prompt(user_input: str, strategy: Union[Strategy, str]) -> str:
    """Build the SQL generation prompt for the chosen strategy"""
    strategy = Strategy.parse(strategy)
    request = REQUEST_TEMPLATE.format(user_input=user_input)

    if strategy is Strategy.ZERO_SHOT:
        return request
    if strategy is Strategy.SINGLE_DOMAIN:
        return f"{SCHEMA_CONTEXT}\n\n{request}"
    return f"{CROSS_DOMAIN_PREAMBLE}\n\n{SCHEMA_CONTEXT}\n\n{request}"


def build_summary_prompt(raw_result: str) -> str:
    """Build the prompt asking for a friendly description of raw query results"""
    return f"{SUMMARY_INSTRUCTION}\n\n{raw_result}"
