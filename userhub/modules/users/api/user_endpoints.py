"""
User Management API Endpoints

REST API endpoints for user CRUD, lifecycle status and user queries.
Thin layer: validation errors and domain exceptions are turned into HTTP
responses by the handlers in register_exception_handlers.
"""
import logging
from datetime import date, datetime
from typing import List

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from userhub.modules.database import database
from userhub.modules.users.domain.inputs import (
    CreateUserInput,
    UpdateUserInput,
    UpdateUserStatusInput,
    format_errors,
)
from userhub.modules.users.domain.user import UserStatus
from userhub.modules.users.exceptions import (
    InvalidStatusTransitionError,
    StorageUnavailableError,
    UserConflictError,
    UserNotFoundError,
    UserValidationError,
)
from userhub.modules.users.repositories.user_repository import UserRepository
from userhub.modules.users.services.user_service import UserService

logger = logging.getLogger("userhub.users.api")

router = APIRouter(prefix="/users", tags=["users"])


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    status: UserStatus
    created_at: datetime
    updated_at: datetime


class MonthlyCountResponse(BaseModel):
    month: date
    count: int


def get_user_service() -> UserService:
    return UserService(UserRepository(database))


@router.post("", status_code=201, response_model=UserResponse)
async def create_user(request: CreateUserInput, service: UserService = Depends(get_user_service)):
    """Create a new user."""
    logger.debug(f"[user_endpoints.create_user] email={request.email}")
    return await service.create(request)


@router.post("/bulk", status_code=201, response_model=List[UserResponse])
async def bulk_create_users(request: List[CreateUserInput], service: UserService = Depends(get_user_service)):
    """Create many users in one all-or-nothing batch."""
    logger.debug(f"[user_endpoints.bulk_create_users] count={len(request)}")
    return await service.bulk_create(request)


@router.get("", response_model=List[UserResponse])
async def list_users(service: UserService = Depends(get_user_service)):
    return await service.find_all()


@router.get("/active", response_model=List[UserResponse])
async def list_active_users(service: UserService = Depends(get_user_service)):
    """Active users, newest first."""
    return await service.find_active_users()


@router.get("/search", response_model=List[UserResponse])
async def search_users_by_email(
    email: str = Query(..., description="Case-sensitive substring of the email"),
    service: UserService = Depends(get_user_service),
):
    return await service.find_users_by_email_pattern(email)


@router.get("/created", response_model=List[UserResponse])
async def list_users_created_between(
    start: datetime = Query(..., description="Inclusive lower bound on created_at"),
    end: datetime = Query(..., description="Inclusive upper bound on created_at"),
    service: UserService = Depends(get_user_service),
):
    """Users created in [start, end], newest first."""
    return await service.find_users_by_date_range(start, end)


@router.get("/stats/monthly", response_model=List[MonthlyCountResponse])
async def users_count_by_month(service: UserService = Depends(get_user_service)):
    counts = await service.get_users_count_by_month()
    return [{"month": c.month, "count": c.count} for c in counts]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, service: UserService = Depends(get_user_service)):
    logger.debug(f"[user_endpoints.get_user] user_id={user_id}")
    return await service.find_one(user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(user_id: int, request: UpdateUserInput, service: UserService = Depends(get_user_service)):
    logger.debug(f"[user_endpoints.update_user] user_id={user_id}")
    return await service.update(user_id, request)


@router.patch("/{user_id}/status", response_model=UserResponse)
async def update_user_status(
    user_id: int,
    request: UpdateUserStatusInput,
    service: UserService = Depends(get_user_service),
):
    logger.debug(f"[user_endpoints.update_user_status] user_id={user_id}, status={request.status}")
    return await service.update_status(user_id, request.status)


@router.delete("/{user_id}")
async def delete_user(user_id: int, service: UserService = Depends(get_user_service)):
    """Physically delete a user."""
    logger.debug(f"[user_endpoints.delete_user] user_id={user_id}")
    await service.remove(user_id)
    return Response(status_code=200)


# ---------------------------------------------------------
# ERROR MAPPING
# ---------------------------------------------------------
async def _not_found(request: Request, exc: UserNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _invalid_transition(request: Request, exc: InvalidStatusTransitionError):
    return JSONResponse(
        status_code=400,
        content={
            "detail": str(exc),
            "current": str(exc.current),
            "proposed": str(exc.proposed),
            "valid_targets": [str(t) for t in exc.valid_targets],
        },
    )


async def _invalid_input(request: Request, exc: UserValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "errors": exc.errors})


async def _invalid_request(request: Request, exc: RequestValidationError):
    errors = format_errors(exc)
    fields = ", ".join(e["field"] for e in errors)
    return JSONResponse(status_code=400, content={"detail": f"Invalid user input: {fields}", "errors": errors})


async def _conflict(request: Request, exc: UserConflictError):
    return JSONResponse(status_code=409, content={"detail": str(exc), "field": exc.field})


async def _unavailable(request: Request, exc: StorageUnavailableError):
    logger.error(f"[user_endpoints] {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UserNotFoundError, _not_found)
    app.add_exception_handler(InvalidStatusTransitionError, _invalid_transition)
    app.add_exception_handler(UserValidationError, _invalid_input)
    app.add_exception_handler(RequestValidationError, _invalid_request)
    app.add_exception_handler(UserConflictError, _conflict)
    app.add_exception_handler(StorageUnavailableError, _unavailable)
