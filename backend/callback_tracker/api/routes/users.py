from fastapi import APIRouter, Depends

from callback_tracker.api.deps import get_directory
from callback_tracker.services.directory import DirectoryCache

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def list_users(directory: DirectoryCache = Depends(get_directory)):
    users = directory.list_users()
    return {"data": [u.model_dump(by_alias=True) for u in users]}
