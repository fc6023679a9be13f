from typing import Annotated, Optional

from fastapi import APIRouter, Body, Depends, status

from app.ai_feature.prompts import SQL_PROMPT_VERSION
from app.ai_feature.service import QueryService
from app.api.dependencies import get_query_service
from app.core import schemas

router = APIRouter(prefix="/api", tags=["Query"])

service_dep = Annotated[QueryService, Depends(get_query_service)]


@router.post(
    "/query",
    response_model=schemas.QueryResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
        503: {"model": schemas.ErrorResponse},
    },
)
async def ask_question(
    service: service_dep,
    payload: Optional[schemas.QueryRequest] = Body(None),
):
    """
    Answer a natural-language question about session ratings:
    generate SQL -> validate -> execute -> summarize.
    Failures are rendered by the QueryPipelineError handler in app.main.
    """
    result = await service.answer(payload.query if payload else None)
    return schemas.QueryResponse(data=result.data, summary=result.summary, sql=result.sql)


@router.get("/health")
async def health():
    return {"status": "ok", "prompt_version": SQL_PROMPT_VERSION}
