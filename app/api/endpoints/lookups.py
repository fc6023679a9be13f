import logging
from typing import List

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.ai_feature.errors import DatabaseExecutionError
from app.api.dependencies import executor_dep
from app.core import schemas

router = APIRouter(prefix="/api", tags=["Lookups"])

logger = logging.getLogger(__name__)


async def _list_names(executor, sql: str, label: str):
    logger.info(f"Fetching {label} list...")
    try:
        return await executor.execute(sql)
    except DatabaseExecutionError as error:
        logger.error(f"Failed to fetch {label}: {error}")
        return JSONResponse(
            status_code=500,
            content={"error": f"Failed to fetch {label}", "details": error.details},
        )


@router.get("/instructors", response_model=List[schemas.InstructorName])
async def list_instructors(executor: executor_dep):
    return await _list_names(
        executor,
        "SELECT instructor_name FROM dim_instructor ORDER BY instructor_name",
        "instructors",
    )


@router.get("/domains", response_model=List[schemas.DomainName])
async def list_domains(executor: executor_dep):
    return await _list_names(
        executor, "SELECT domain_name FROM dim_domain ORDER BY domain_name", "domains"
    )


@router.get("/classes", response_model=List[schemas.ClassName])
async def list_classes(executor: executor_dep):
    return await _list_names(
        executor, "SELECT class_name FROM dim_class ORDER BY class_name", "classes"
    )
