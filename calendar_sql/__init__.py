"""
Calendar SQL Chat: Natural Language to SQL over a calendar database

Turns chat questions about a small in-memory calendar/task database into
SQL queries using OpenAI chat completions, runs them against SQLite and
summarizes the rows in plain language.
"""

__version__ = "0.1.0"
