from typing import Literal, Optional

from fastapi import Header, HTTPException

from app.core.logging_config import logger
from app.schemas.common import Actor, OperationResult

ERROR_STATUS = {
    "validation": 422,
    "conflict": 409,
    "not_found": 404,
    "forbidden": 403,
    "upstream": 502,
}


async def get_actor(
        x_actor_id: str = Header(..., description="Идентификатор пользователя"),
        x_actor_name: Optional[str] = Header(None),
        x_actor_email: Optional[str] = Header(None),
        x_actor_role: Literal["sender", "receiver"] = Header("receiver"),
        x_company_id: Optional[str] = Header(None),
        x_company_name: Optional[str] = Header(None),
) -> Actor:
    return Actor(
        id=x_actor_id,
        name=x_actor_name,
        email=x_actor_email,
        role=x_actor_role,
        company_id=x_company_id,
        company_name=x_company_name,
    )


def check_result(result: OperationResult) -> OperationResult:
    """Переводит неуспешный результат в HTTPException с тем же телом."""
    if not result.success:
        status_code = ERROR_STATUS.get(result.error_code, 400)
        logger.info(f"Request failed with {status_code}: {result.error}")
        raise HTTPException(status_code=status_code, detail=result.model_dump(exclude_none=True))
    return result
