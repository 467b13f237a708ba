"""Firestore-backed Data Store and Linking Store for the relay.

Firestore document layout:
  profiles/{user_id}
      ├── role: "student" | "parent" | ...
      ├── full_name
      └── parent_telegram_chat_id   (the only field the relay writes)
  quiz_history/{attempt_id}
      └── subject, score, total_questions, topics, created_at
  parent_link_codes/{code}
      └── user_id, expires_at

Every call is bounded by a timeout; timeouts and Google API errors are
re-raised as DataStoreError so the command handlers can answer with a
generic "try again later" message.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime
from typing import Any, Optional

from google.api_core import exceptions as api_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.async_client import AsyncClient

from studybuddy.constants import (
    COLLECTION_LINK_CODES,
    COLLECTION_PROFILES,
    COLLECTION_QUIZ_HISTORY,
    DEFAULT_DATA_STORE_TIMEOUT,
    DEFAULT_DATABASE,
    FIELD_FULL_NAME,
    FIELD_LINK_EXPIRES_AT,
    FIELD_LINK_USER_ID,
    FIELD_PARENT_CHAT_ID,
    FIELD_ROLE,
    INSIGHTS_HISTORY_LIMIT,
    QUIZ_INSIGHT_FIELDS,
    ROLE_STUDENT,
)
from studybuddy.errors import DataStoreError
from studybuddy.link_codes import expiry_for, generate_link_code, is_expired

logger = logging.getLogger(__name__)

# Attempts at finding an unused code before giving up.
_CREATE_CODE_ATTEMPTS = 5


@firestore.async_transactional
async def _claim_link_code(
    transaction, code_ref, profiles, chat_id, now: datetime
) -> Optional[str]:
    """Read, validate and consume a link code in one transaction.

    The profile update and the code delete commit together. If another
    request consumed the same code first, Firestore aborts and retries this
    function, which then finds the code gone and returns None.
    """
    snapshot = await code_ref.get(transaction=transaction)
    if not snapshot.exists:
        return None

    data = snapshot.to_dict() or {}
    if is_expired(data.get(FIELD_LINK_EXPIRES_AT), now):
        return None

    user_id = data.get(FIELD_LINK_USER_ID)
    if not user_id:
        logger.warning(f"Link code {snapshot.id} has no owner")
        return None

    # update() fails at commit time if the profile is missing, which rolls
    # back the delete as well.
    transaction.update(
        profiles.document(str(user_id)), {FIELD_PARENT_CHAT_ID: str(chat_id)}
    )
    transaction.delete(code_ref)
    return str(user_id)


class FirestoreStore:
    """Reads counts and quiz history, and redeems parent link codes."""

    def __init__(
        self,
        project: Optional[str] = None,
        database: str = DEFAULT_DATABASE,
        timeout: float = DEFAULT_DATA_STORE_TIMEOUT,
    ):
        """Initializes the store.

        The Firestore client is created lazily on the first call.

        Args:
            project: The Google Cloud project ID.
            database: The Firestore database ID.
            timeout: Upper bound in seconds for every individual call.
        """
        self._project = project
        self._database = database
        self._timeout = timeout
        self._client: Optional[AsyncClient] = None

    def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = AsyncClient(project=self._project, database=self._database)
        return self._client

    async def _run(self, operation: str, awaitable) -> Any:
        """Await a Firestore call with the configured timeout."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Firestore {operation} timed out after {self._timeout}s")
            raise DataStoreError(f"{operation} timed out") from e
        except api_exceptions.GoogleAPIError as e:
            logger.error(f"Firestore {operation} failed: {e}")
            raise DataStoreError(f"{operation} failed: {e}") from e

    @staticmethod
    def _count_value(result) -> int:
        # Aggregation results come back as [[AggregationResult]].
        if not result or not result[0]:
            return 0
        return int(result[0][0].value or 0)

    async def count_students(self) -> int:
        """Total number of profiles with the student role."""
        query = self._get_client().collection(COLLECTION_PROFILES).where(
            FIELD_ROLE, "==", ROLE_STUDENT
        )
        result = await self._run("count_students", query.count().get())
        return self._count_value(result)

    async def count_quizzes(self) -> int:
        """Total number of completed quiz attempts."""
        query = self._get_client().collection(COLLECTION_QUIZ_HISTORY)
        result = await self._run("count_quizzes", query.count().get())
        return self._count_value(result)

    async def recent_quizzes(self, limit: int = INSIGHTS_HISTORY_LIMIT) -> list[dict]:
        """Most recent quiz attempts, newest first, projected to the insight fields."""
        query = (
            self._get_client()
            .collection(COLLECTION_QUIZ_HISTORY)
            .select(QUIZ_INSIGHT_FIELDS)
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )
        docs = await self._run("recent_quizzes", query.get())
        return [doc.to_dict() or {} for doc in docs]

    async def link_parent_chat(self, code: str, chat_id, now: datetime) -> Optional[str]:
        """Consume code and attach chat_id to its student's profile.

        Returns:
            The linked student id, or None if the code is unknown, expired
            or was consumed by a concurrent request.

        Raises:
            DataStoreError: The profile write failed; the code is kept.
        """
        client = self._get_client()
        code_ref = client.collection(COLLECTION_LINK_CODES).document(code)
        profiles = client.collection(COLLECTION_PROFILES)
        transaction = client.transaction()
        try:
            return await self._run(
                "link_parent_chat",
                _claim_link_code(transaction, code_ref, profiles, chat_id, now),
            )
        except ValueError as e:
            # Raised by the transaction wrapper once its retries are exhausted.
            logger.error(f"Firestore link_parent_chat could not commit: {e}")
            raise DataStoreError(f"link_parent_chat failed: {e}") from e

    async def create_link_code(self, user_id: str, now: datetime) -> tuple[str, datetime]:
        """Issue a fresh single-use code for user_id.

        Uses create() rather than an upsert so a collision never overwrites
        another student's live code.
        """
        expires_at = expiry_for(now)
        codes = self._get_client().collection(COLLECTION_LINK_CODES)
        for _ in range(_CREATE_CODE_ATTEMPTS):
            code = generate_link_code()
            try:
                await self._run(
                    "create_link_code",
                    codes.document(code).create(
                        {FIELD_LINK_USER_ID: user_id, FIELD_LINK_EXPIRES_AT: expires_at}
                    ),
                )
            except DataStoreError as e:
                if isinstance(e.__cause__, api_exceptions.Conflict):
                    logger.info("Link code collision, generating another")
                    continue
                raise
            logger.info(f"Issued link code for user {user_id}")
            return code, expires_at
        raise DataStoreError("Could not allocate a unique link code")

    async def parent_chat_for(self, user_id: str) -> tuple[Optional[str], Optional[str]]:
        """Return (parent chat id, student full name) for a profile.

        A missing profile yields (None, None).
        """
        ref = self._get_client().collection(COLLECTION_PROFILES).document(user_id)
        snapshot = await self._run("parent_chat_for", ref.get())
        if not snapshot.exists:
            return None, None
        data = snapshot.to_dict() or {}
        return data.get(FIELD_PARENT_CHAT_ID) or None, data.get(FIELD_FULL_NAME) or None

    async def close(self) -> None:
        """Closes the Firestore client. Safe to call multiple times."""
        if self._client:
            result = self._client.close()
            if inspect.isawaitable(result):
                await result
            self._client = None

    async def __aenter__(self) -> "FirestoreStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
