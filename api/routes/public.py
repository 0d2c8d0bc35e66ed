"""Public question-answering route.

Open to any origin. Well-formed requests always get a 200 with a
best-effort answer; only malformed input produces an error status.
"""

import time
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from config import logger
from app.errors import InvalidQuery
from app.text import normalize_query
from app.knowledge import AnswerComposer, RetrievalCascade, UsageRecorder
from app.knowledge.responses import PUBLIC_CORS_HEADERS, empty_corpus_payload, query_payload

from api.models import PublicQueryParams, PublicQueryResponse, failure, format_validation_errors, success
from api.dependencies import client_ip, get_cascade, get_composer, get_recorder


router = APIRouter()

QUERY_ENDPOINT = "/api/public/brain/query"

DEGRADED_ANSWER = (
    "Something went wrong while searching the knowledge base. "
    "Please try again in a moment."
)


def _json(body: dict, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code, headers=PUBLIC_CORS_HEADERS)


@router.get("/brain/query")
async def query_brain(
    request: Request,
    background_tasks: BackgroundTasks,
    q: Optional[str] = Query(None, description="Question to ask"),
    limit: Optional[str] = Query(None, description="Number of sources (1-20)"),
    cascade: RetrievalCascade = Depends(get_cascade),
    composer: AnswerComposer = Depends(get_composer),
    recorder: UsageRecorder = Depends(get_recorder),
):
    """Answer a question from the knowledge base with cited sources."""
    start = time.perf_counter()

    try:
        params = PublicQueryParams(q=q, limit=limit)
    except PydanticValidationError as e:
        messages = format_validation_errors(e.errors())
        logger.info(f"Public query rejected: {messages}")
        return _json(failure(", ".join(messages)), status.HTTP_400_BAD_REQUEST)

    try:
        query = normalize_query(params.q)
        results = await cascade.retrieve(query, params.limit)
        if not results:
            payload = empty_corpus_payload()
        else:
            composed = await composer.compose(query, results)
            payload = query_payload(composed, results)
    except InvalidQuery as e:
        return _json(failure(e.message), status.HTTP_400_BAD_REQUEST)
    except Exception as e:
        logger.error(f"Unexpected error in public query: {e!r}", exc_info=True)
        payload = {"answer": DEGRADED_ANSWER, "sources": [], "tokens_used": 0}

    latency_ms = int((time.perf_counter() - start) * 1000)
    background_tasks.add_task(
        recorder.record,
        query,
        payload["answer"],
        [source["id"] for source in payload["sources"]],
        payload["tokens_used"],
        latency_ms,
    )
    background_tasks.add_task(recorder.record_usage, QUERY_ENDPOINT, client_ip(request))

    data = PublicQueryResponse.model_validate(payload).model_dump()
    return _json(success(data))


@router.options("/brain/query")
async def query_brain_preflight():
    """CORS preflight."""
    return Response(status_code=status.HTTP_200_OK, headers=PUBLIC_CORS_HEADERS)
