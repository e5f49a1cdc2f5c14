from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status

from repositories.repository_users import UserRepository
from services import service_users

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
)


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository


@router.get("")
async def read_all_users(repository: UserRepository = Depends(get_user_repository)):
    users, count = await service_users.list_users(repository)
    return {
        "success": True,
        "count": count,
        "data": [user.to_response() for user in users],
    }


@router.get("/{user_id}")
async def read_user(user_id: str, repository: UserRepository = Depends(get_user_repository)):
    user = await service_users.get_user(repository, user_id)
    return {"success": True, "data": user.to_response()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: Any = Body(None),
    repository: UserRepository = Depends(get_user_repository),
):
    user = await service_users.create_user(repository, payload)
    return {"success": True, "data": user.to_response()}


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    payload: Any = Body(None),
    repository: UserRepository = Depends(get_user_repository),
):
    user = await service_users.update_user(repository, user_id, payload)
    return {"success": True, "data": user.to_response()}


@router.delete("/{user_id}")
async def delete_user(user_id: str, repository: UserRepository = Depends(get_user_repository)):
    user = await service_users.delete_user(repository, user_id)
    return {
        "success": True,
        "message": "User deleted successfully",
        "data": user.to_response(),
    }
