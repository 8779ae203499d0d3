"""
Conversation Module

Runs chat turns: user text -> SQL -> execution -> summary, appending each
step to the session's message list.
"""

import json
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple, Union

from .agent import NO_RESULTS_MESSAGE, QueryAgent
from .database import ERROR_PREFIX, Row, SessionStore
from .prompts import Strategy

logger = logging.getLogger(__name__)

GREETING = (
    "Hello! I can help you generate SQL queries for your calendar events database. "
    "What would you like to know?"
)
NO_QUERY_MESSAGE = "Sorry, I couldn't generate a SQL query for that request."


class Sender(Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single chat message"""
    id: int
    text: str
    sender: Sender


class TurnState(Enum):
    """Where a turn is in the pipeline; the last four are terminal"""
    IDLE = "idle"
    AWAITING_QUERY = "awaiting_query"
    AWAITING_EXECUTION = "awaiting_execution"
    AWAITING_SUMMARY = "awaiting_summary"
    QUERY_FAILED = "query_failed"
    EXECUTION_ERROR = "execution_error"
    EXECUTION_EMPTY = "execution_empty"
    SUMMARY_READY = "summary_ready"


class TurnInProgressError(RuntimeError):
    """Raised when a turn is submitted without waiting while another one runs"""


def _encode_scalar(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize_rows(rows: List[Row]) -> str:
    """Rows as a JSON array of arrays (blobs as hex strings)"""
    return json.dumps([list(row) for row in rows], default=_encode_scalar)


class Conversation:
    """
    One chat session.

    Owns the message list and its id counter, the prompt strategy, and the
    agent/store pair every turn goes through. Turns never overlap: submit()
    either waits for the running turn or, with wait=False, refuses with
    TurnInProgressError.
    """

    def __init__(
        self,
        agent: QueryAgent,
        store: SessionStore,
        strategy: Union[Strategy, str] = Strategy.SINGLE_DOMAIN,
        greeting: Optional[str] = GREETING,
    ):
        self.agent = agent
        self.store = store
        self.strategy = Strategy.parse(strategy)
        self.state = TurnState.IDLE
        self.last_sql: Optional[str] = None
        self.listeners: List[Callable[[Message], None]] = []

        self._messages: List[Message] = []
        self._next_id = 1
        self._turn_lock = threading.Lock()

        if greeting:
            self._append(greeting, Sender.ASSISTANT)

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def busy(self) -> bool:
        return self._turn_lock.locked()

    def set_strategy(self, value: Union[Strategy, str]) -> Strategy:
        """Switch the prompt strategy used by the next turn"""
        self.strategy = Strategy.parse(value)
        return self.strategy

    def _append(self, text: str, sender: Sender) -> Message:
        message = Message(id=self._next_id, text=text, sender=sender)
        self._next_id += 1
        self._messages.append(message)
        for listener in self.listeners:
            listener(message)
        return message

    def submit(self, text: str, wait: bool = True) -> TurnState:
        """
        Run one turn for the user's text.

        Args:
            text: What the user typed
            wait: Queue behind a running turn (True) or refuse (False)

        Returns:
            The terminal state the turn ended in, or IDLE for blank input
        """
        if not text or not text.strip():
            return TurnState.IDLE

        if not self._turn_lock.acquire(blocking=wait):
            raise TurnInProgressError("A previous request is still being processed")

        try:
            outcome = self._run_turn(text)
            logger.debug("Turn finished: %s", outcome.value)
            return outcome
        finally:
            self.state = TurnState.IDLE
            self._turn_lock.release()

    def _run_turn(self, text: str) -> TurnState:
        strategy = self.strategy
        self.last_sql = None

        self.state = TurnState.AWAITING_QUERY
        self._append(text, Sender.USER)

        sql = self.agent.generate_sql_query(text, strategy)
        if sql is None:
            self._append(NO_QUERY_MESSAGE, Sender.ASSISTANT)
            return TurnState.QUERY_FAILED

        self.state = TurnState.AWAITING_EXECUTION
        self.last_sql = sql

        # Errors and empty results are reported alone; the query is only
        # echoed together with the rows it produced
        result = self.store.execute_sql(sql)
        if isinstance(result, str):
            self._append(result, Sender.ASSISTANT)
            return TurnState.EXECUTION_ERROR
        if result is None:
            self._append(NO_RESULTS_MESSAGE, Sender.ASSISTANT)
            return TurnState.EXECUTION_EMPTY

        self.state = TurnState.AWAITING_SUMMARY
        raw = serialize_rows(result)
        self._append(sql, Sender.ASSISTANT)
        self._append(raw, Sender.ASSISTANT)

        self._append(self.agent.summarize(raw), Sender.ASSISTANT)
        return TurnState.SUMMARY_READY


def is_error_text(text: str) -> bool:
    """True for execution error messages as produced by the store"""
    return text.startswith(ERROR_PREFIX)
