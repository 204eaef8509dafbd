from fastapi import APIRouter, Request
from starlette import status
from utils.deps import user_dependency, db_dependency
from schemas.user_schemas import UserResponse, UpdateProfileRequest
from schemas.response import ApiResponse
from services.user_service import UserService
from core.exceptions import UserNotFoundError
from middleware.rate_limiter import limiter
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/users",
    tags=["users"]
)


@router.get("/me", status_code=status.HTTP_200_OK,
            response_model=ApiResponse[UserResponse], response_model_exclude_none=True)
@limiter.limit("30/minute")
def get_user_info(request: Request, user: user_dependency):
    """
    Get current user info (protected endpoint).
    """
    return ApiResponse.ok(data=UserResponse.from_model(user))


@router.put("/me", status_code=status.HTTP_200_OK,
            response_model=ApiResponse[UserResponse], response_model_exclude_none=True)
@limiter.limit("10/minute")
def update_profile(request: Request, body: UpdateProfileRequest, user: user_dependency, db: db_dependency):
    """
    Update the current user's display name.
    """
    user = UserService.update_profile(db, user, body.name)

    logger.info("Profile updated", extra={"user_id": user.id})

    return ApiResponse.ok(data=UserResponse.from_model(user), message="Profile updated")


@router.get("/{user_id}", status_code=status.HTTP_200_OK,
            response_model=ApiResponse[UserResponse], response_model_exclude_none=True)
@limiter.limit("30/minute")
def get_user(request: Request, user_id: int, user: user_dependency, db: db_dependency):
    """
    Look up another user's public profile by id.
    """
    found = UserService.get_by_id(db, user_id)
    if found is None:
        raise UserNotFoundError()
    return ApiResponse.ok(data=UserResponse.from_model(found))
