from fastapi import APIRouter

from hangout.core.config import APP_VERSION
from hangout.models.common import APIResponse

router = APIRouter(tags=["System"])


@router.get("/", response_model=APIResponse)
def root():
    return APIResponse(
        code=0, msg="ok", data={"msg": "Hangout Planner API. Create a group at POST /groups."}
    )


@router.get("/health", response_model=APIResponse)
def health_check():
    return APIResponse(
        code=0,
        msg="ok",
        data={"status": "healthy", "service": "hangout_planner-server", "version": APP_VERSION},
    )
