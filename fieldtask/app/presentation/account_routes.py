from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from fieldtask.app.application.account_service import AccountService
from fieldtask.app.presentation.dependencies import get_current_user_id
from fieldtask.app.presentation.errors import error_body
from fieldtask.app.presentation.schemas import AccountDeletionResponse, ErrorResponse

router = APIRouter(prefix="/account", tags=["account"])

_account_service = AccountService()


@router.delete(
    "/me",
    response_model=AccountDeletionResponse,
    summary="Delete my account",
    description=(
        "Removes the caller's identity at the identity provider and revokes its sessions. "
        "Tasks, activities and payments are kept. Repeating the call returns 404 AlreadyDeleted."
    ),
    responses={
        401: {"model": ErrorResponse, "description": "Missing caller identity."},
        404: {"model": ErrorResponse, "description": "Account was already deleted."},
        502: {"model": ErrorResponse, "description": "Identity provider failure."},
    },
)
async def delete_my_account(user_id: str = Depends(get_current_user_id)):
    result = await _account_service.delete_account(user_id, requesting_user_id=user_id)
    if result.already_deleted:
        return JSONResponse(
            status_code=404,
            content=error_body("AlreadyDeleted", "Account has already been deleted."),
        )
    return AccountDeletionResponse(success=True, message="Account deleted.")
