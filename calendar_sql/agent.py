"""
Query Agent Module

Language model side of the chat: SQL generation from natural language,
SQL extraction from model output, and friendly summaries of query results.
"""

import logging
import re
from typing import Any, Optional, Union

from .config import Settings
from .prompts import Strategy, build_prompt, build_summary_prompt

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = "No results found."
SUMMARY_ERROR_MESSAGE = "Error generating friendly response."

FENCE = "```"
_SQL_FENCE = re.compile(r"```[ \t]*sql\b", re.IGNORECASE)


# Lazy import - only import the SDK when a client is actually needed
def _get_openai_client(settings: Settings):
    if settings.use_azure:
        from openai import AzureOpenAI
        return AzureOpenAI(
            azure_endpoint=settings.azure_endpoint,
            api_key=settings.azure_api_key or None,
            api_version=settings.azure_api_version,
            timeout=settings.llm_timeout,
            max_retries=0,
        )

    from openai import OpenAI
    return OpenAI(
        api_key=settings.openai_api_key or None,
        timeout=settings.llm_timeout,
        max_retries=0,
    )


def extract_sql(model_text: str) -> str:
    """
    Extract a bare SQL statement from model output.

    Handles raw SQL, ```sql fences, untagged fences, prose after the closing
    fence (dropped) and a missing closing fence (everything after the
    opening marker is kept). The result never contains a fence marker, so
    extracting twice gives the same text.

    The first ``` after the opening marker always closes the block, even
    inside a string literal: "SELECT '```'" comes back as "SELECT '".
    """
    sql = model_text

    match = _SQL_FENCE.search(sql)
    if match:
        sql = sql[match.end():]
    elif sql.lstrip().startswith(FENCE) or sql.count(FENCE) >= 2:
        # Untagged (or non-SQL tagged) fence: skip the whole opening fence line
        start = sql.index(FENCE)
        newline = sql.find("\n", start)
        sql = sql[newline + 1:] if newline != -1 else sql[start + len(FENCE):]

    if FENCE in sql:
        sql = sql.split(FENCE, 1)[0]

    return sql.strip()


class QueryAgent:
    """
    Talks to the chat completion service.

    One prompt in, one completion out: a SQL query for a user request, or a
    plain-language summary of query results. Failures of the completion call
    never escape; they become None (generation) or a fallback phrase
    (summarization).
    """

    def __init__(self, settings: Optional[Settings] = None, client: Any = None):
        self.settings = settings or Settings.from_env()
        # Lazy loading - don't create client until needed
        self._client = client

    @property
    def client(self):
        """Lazy-loaded OpenAI (or Azure OpenAI) client"""
        if self._client is None:
            self._client = _get_openai_client(self.settings)
        return self._client

    def _complete(self, prompt: str, max_tokens: int, temperature: float) -> Optional[str]:
        """Run a single-message completion and return the first choice's text"""
        response = self.client.chat.completions.create(
            model=self.settings.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return response.choices[0].message.content

    def generate_sql_query(self, user_input: str, strategy: Union[Strategy, str]) -> Optional[str]:
        """
        Generate a SQL query for a natural language request.

        Args:
            user_input: The user's request
            strategy: Prompt strategy (zero-shot, single-domain, cross-domain)

        Returns:
            The extracted SQL, or None when nothing could be generated
        """
        prompt = build_prompt(user_input, strategy)

        try:
            text = self._complete(
                prompt,
                max_tokens=self.settings.sql_max_tokens,
                temperature=self.settings.sql_temperature,
            )
        except Exception as e:
            logger.warning("SQL generation failed: %s", e, exc_info=True)
            return None

        if not text or not text.strip():
            logger.info("SQL generation returned an empty completion")
            return None

        sql = extract_sql(text)
        if not sql:
            logger.info("No SQL found in completion: %r", text[:200])
            return None

        logger.debug("Generated SQL: %s", sql)
        return sql

    def summarize(self, raw_result: str) -> str:
        """
        Describe raw query results in plain language.

        Args:
            raw_result: Serialized query result rows

        Returns:
            Summary text, or a fixed fallback phrase
        """
        try:
            text = self._complete(
                build_summary_prompt(raw_result),
                max_tokens=self.settings.summary_max_tokens,
                temperature=self.settings.summary_temperature,
            )
        except Exception as e:
            logger.warning("Summary generation failed: %s", e, exc_info=True)
            return SUMMARY_ERROR_MESSAGE

        summary = (text or "").strip()
        return summary or NO_RESULTS_MESSAGE
