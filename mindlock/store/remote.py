"""
Hosted document-database store spoken to over HTTP.

Collections are exposed as REST resources:

    GET    {base}/{collection}?field=value   -> [document, ...]
    GET    {base}/{collection}/{id}          -> document | 404
    POST   {base}/{collection}               -> document
    PATCH  {base}/{collection}/{id}          -> document | 404
    DELETE {base}/{collection}/{id}          -> 2xx | 404

Documents use camelCase keys.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from pydantic.alias_generators import to_camel

from mindlock.data.seed import SAMPLE_COURSES, SAMPLE_QUESTIONS
from mindlock.logger import setup_logger
from mindlock.models import (
    Course,
    CourseCreate,
    Question,
    QuestionAttempt,
    QuestionCreate,
    QuestionFilter,
)
from mindlock.store.base import filter_questions
from mindlock.utils.exceptions import ConfigurationError, NotFoundError, PersistenceError
from mindlock.utils.helpers import new_id, utcnow

logger = setup_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_RETRY_STATUS = (429, 500, 502, 503, 504)


class RemoteDocumentStore:
    """
    Store backed by a hosted document database.

    Transport errors, timeouts, 429 and 5xx responses are retried with
    exponential backoff; anything else fails fast with PersistenceError.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 20,
        max_retries: int = 3,
        backoff: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not base_url:
            raise ConfigurationError("store_url is required for the remote store")

        self.max_retries = max_retries
        self.backoff = backoff

        headers = {"User-Agent": "MindLock/1.0"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Questions
    # ------------------------------------------------------------------
    async def list_questions(
        self, query: Optional[QuestionFilter] = None
    ) -> List[Question]:
        params: Dict[str, str] = {}
        if query and query.course:
            params["course"] = query.course
        if query and query.difficulty:
            params["difficulty"] = query.difficulty

        questions = await self._list("questions", Question, params)
        # Tags and search text are applied client-side
        return filter_questions(questions, query)

    async def get_question(self, question_id: str) -> Optional[Question]:
        return await self._get("questions", question_id, Question)

    async def create_question(self, data: QuestionCreate) -> Question:
        if await self.get_course(data.course) is None:
            raise NotFoundError(f"Course {data.course} not found")

        now = utcnow()
        question = Question(id=new_id(), created_at=now, updated_at=now, **data.model_dump())
        created = await self._create("questions", question)
        await self._recount(created.course)
        return created

    async def update_question(self, question_id: str, fields: Dict[str, Any]) -> Question:
        current = await self.get_question(question_id)
        if current is None:
            raise NotFoundError(f"Question {question_id} not found")

        updated = await self._patch("questions", question_id, fields, Question)
        if updated.course != current.course:
            await self._recount(current.course)
            await self._recount(updated.course)
        return updated

    async def delete_question(self, question_id: str) -> None:
        current = await self.get_question(question_id)
        if current is None:
            raise NotFoundError(f"Question {question_id} not found")

        await self._delete("questions", question_id)
        await self._recount(current.course)

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------
    async def list_courses(self) -> List[Course]:
        return await self._list("courses", Course)

    async def get_course(self, course_id: str) -> Optional[Course]:
        return await self._get("courses", course_id, Course)

    async def create_course(self, data: CourseCreate) -> Course:
        now = utcnow()
        course = Course(id=new_id(), created_at=now, updated_at=now, **data.model_dump())
        return await self._create("courses", course)

    async def update_course(self, course_id: str, fields: Dict[str, Any]) -> Course:
        return await self._patch("courses", course_id, fields, Course)

    async def delete_course(self, course_id: str) -> None:
        await self._delete("courses", course_id)

    # ------------------------------------------------------------------
    # Attempts
    # ------------------------------------------------------------------
    async def record_attempt(self, attempt: QuestionAttempt) -> QuestionAttempt:
        return await self._create("attempts", attempt)

    async def list_attempts(
        self, question_id: Optional[str] = None
    ) -> List[QuestionAttempt]:
        params = {"questionId": question_id} if question_id else {}
        attempts = await self._list("attempts", QuestionAttempt, params)
        return sorted(attempts, key=lambda a: a.started_at)

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------
    async def reset_to_sample_data(self) -> None:
        """Erase the questions and courses collections and upload the sample set."""
        for collection, model in (("questions", Question), ("courses", Course)):
            for record in await self._list(collection, model):
                await self._delete(collection, record.id)
            logger.info(f"🧹 Erased all documents from {collection}")

        for doc in SAMPLE_COURSES:
            await self._create("courses", self._validate(Course, doc))
        for doc in SAMPLE_QUESTIONS:
            await self._create("questions", self._validate(Question, doc))
        for doc in SAMPLE_COURSES:
            await self._recount(doc["id"])

        logger.info(
            f"♻️  Store reinitialized: {len(SAMPLE_COURSES)} courses, "
            f"{len(SAMPLE_QUESTIONS)} questions"
        )

    # ------------------------------------------------------------------
    # Collection helpers
    # ------------------------------------------------------------------
    async def _list(
        self, collection: str, model: Type[ModelT], params: Optional[Dict[str, str]] = None
    ) -> List[ModelT]:
        resp = await self._request("GET", f"/{collection}", params=params)
        payload = self._json(resp)
        if not isinstance(payload, list):
            raise PersistenceError(f"Expected a list from /{collection}")
        return [self._validate(model, doc) for doc in payload]

    async def _get(
        self, collection: str, doc_id: str, model: Type[ModelT]
    ) -> Optional[ModelT]:
        resp = await self._request("GET", f"/{collection}/{doc_id}")
        if resp.status_code == 404:
            return None
        return self._validate(model, self._json(resp))

    async def _create(self, collection: str, record: ModelT) -> ModelT:
        body = record.model_dump(mode="json", by_alias=True)
        resp = await self._request("POST", f"/{collection}", json=body)
        payload = self._json(resp) if resp.content else None
        if isinstance(payload, dict):
            return self._validate(type(record), payload)
        return record

    async def _patch(
        self, collection: str, doc_id: str, fields: Dict[str, Any], model: Type[ModelT]
    ) -> ModelT:
        body = {to_camel(k): v for k, v in fields.items() if k not in ("id", "created_at")}
        body["updatedAt"] = utcnow().isoformat()

        resp = await self._request("PATCH", f"/{collection}/{doc_id}", json=body)
        if resp.status_code == 404:
            raise NotFoundError(f"{collection[:-1].capitalize()} {doc_id} not found")
        return self._validate(model, self._json(resp))

    async def _delete(self, collection: str, doc_id: str) -> None:
        resp = await self._request("DELETE", f"/{collection}/{doc_id}")
        if resp.status_code == 404:
            raise NotFoundError(f"{collection[:-1].capitalize()} {doc_id} not found")

    async def _recount(self, course_id: str) -> None:
        """Write the course's current question count back to the course."""
        if await self.get_course(course_id) is None:
            return
        questions = await self._list("questions", Question, {"course": course_id})
        await self._patch(
            "courses", course_id, {"question_count": len(questions)}, Course
        )

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send a request with retries. 404 is returned to the caller;
        other non-retryable 4xx raise PersistenceError.
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                resp = await self._client.request(method, path, params=params, json=json)

                if resp.status_code in _RETRY_STATUS:
                    raise httpx.HTTPStatusError(
                        f"HTTP error {resp.status_code}",
                        request=resp.request,
                        response=resp,
                    )

                if resp.is_error and resp.status_code != 404:
                    raise PersistenceError(
                        f"{method} {path} failed: HTTP {resp.status_code} {resp.text[:200]}"
                    )

                return resp

            except (httpx.TimeoutException, httpx.TransportError, httpx.HTTPStatusError) as e:
                last_error = e
                logger.warning(
                    f"⚠️ Store request {method} {path} failed "
                    f"(attempt {attempt}/{self.max_retries}): {e}"
                )
                if attempt == self.max_retries:
                    break
                await asyncio.sleep(self.backoff * 2 ** (attempt - 1))

        raise PersistenceError(f"{method} {path} failed after retries: {last_error}")

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise PersistenceError(f"Invalid JSON from store: {e}") from e

    @staticmethod
    def _validate(model: Type[ModelT], doc: Any) -> ModelT:
        try:
            return model.model_validate(doc)
        except ValidationError as e:
            raise PersistenceError(f"Invalid {model.__name__} document: {e}") from e
