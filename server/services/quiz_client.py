"""HTTP client for the quiz service's question export."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger("flashnote.quiz")

QUESTIONS_PATH = "/api/flashnote/questions"


@dataclass
class QuizApiError(Exception):
    """Structured error from the quiz service."""
    kind: str  # not_configured | unavailable | timeout | bad_status | invalid_response
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return self.message


@dataclass
class QuizQuestion:
    question_id: str
    question_text: str
    answer_text: str
    explanation: Optional[str] = None
    topic_id: Optional[str] = None
    subject_id: Optional[str] = None
    difficulty: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuizQuestion":
        return cls(
            question_id=str(data.get("questionId") or ""),
            question_text=str(data.get("questionText") or ""),
            answer_text=str(data.get("answerText") or ""),
            explanation=data.get("explanation"),
            topic_id=data.get("topicId"),
            subject_id=data.get("subjectId"),
            difficulty=data.get("difficulty"),
        )


def fetch_quiz_questions(
    base_url: Optional[str],
    token: str,
    quiz_id: Optional[str] = None,
    topic_id: Optional[str] = None,
    limit: Optional[int] = None,
    *,
    timeout_s: float = 10.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> List[QuizQuestion]:
    """
    Fetch importable questions for a quiz or topic.

    Raises:
        QuizApiError on missing configuration, transport failure, non-2xx
        status or a payload without an "items" list.
    """
    if not base_url:
        raise QuizApiError(kind="not_configured", message="Quiz API base URL is not configured.")

    params: Dict[str, str] = {}
    if quiz_id:
        params["quizId"] = str(quiz_id)
    if topic_id:
        params["topicId"] = str(topic_id)
    if limit:
        params["limit"] = str(limit)

    url = base_url.rstrip("/") + QUESTIONS_PATH
    try:
        with httpx.Client(timeout=timeout_s, transport=transport) as client:
            resp = client.get(url, params=params, headers={"Authorization": f"Bearer {token}"})
    except httpx.TimeoutException as e:
        raise QuizApiError(kind="timeout", message="Quiz service timed out.", details={"error": str(e)})
    except httpx.HTTPError as e:
        logger.warning("Quiz service request failed: %s", e)
        raise QuizApiError(kind="unavailable", message="Unable to fetch quiz questions.", details={"error": str(e)})

    if not resp.is_success:
        raise QuizApiError(
            kind="bad_status",
            message="Unable to fetch quiz questions.",
            details={"status": resp.status_code, "body": resp.text[:200]},
        )
    try:
        data = resp.json()
    except ValueError as e:
        raise QuizApiError(kind="invalid_response", message="Quiz API returned an invalid response.", details={"error": str(e)})
    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise QuizApiError(kind="invalid_response", message="Quiz API returned an invalid response.")

    questions = [QuizQuestion.from_dict(item) for item in data["items"] if isinstance(item, dict)]
    logger.info("Fetched %d quiz questions (quiz=%s topic=%s)", len(questions), quiz_id, topic_id)
    return questions
