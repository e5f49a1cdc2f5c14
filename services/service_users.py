from typing import Any, Dict, List, Tuple

from exceptions.exceptions import ErrorEmailAlreadyExists, ErrorUserNotFound, ErrorUserStore, ErrorUserValidation
from models.user import User
from repositories.repository_users import UserRepository
from services.validator_users import USER_FIELDS, validate_user

from loguru import logger


def _check_payload(payload: Any) -> Dict[str, Any]:
    # a request without a body is an empty object
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ErrorUserValidation([("body", "Request body must be a JSON object")])
    return payload


def _validated(data: Dict[str, Any]) -> Dict[str, Any]:
    cleaned, errors = validate_user(data)
    if errors:
        exc = ErrorUserValidation(errors)
        logger.error(str(exc))
        raise exc
    return cleaned


def _not_found(user_id: str) -> ErrorUserNotFound:
    msg = f"User with id {user_id} not found"
    logger.error(msg)
    return ErrorUserNotFound(msg)


async def list_users(repository: UserRepository) -> Tuple[List[User], int]:
    try:
        documents = await repository.find_all()
    except ErrorUserStore as e:
        logger.error(f"Failed read users ---> Error: {e}")
        raise
    users = [User.from_document(document) for document in documents]
    logger.info(f"Found {len(users)} users")
    return users, len(users)


async def get_user(repository: UserRepository, user_id: str) -> User:
    try:
        document = await repository.find_by_id(user_id)
    except ErrorUserStore as e:
        logger.error(f"Failed read user {user_id} ---> Error: {e}")
        raise
    if document is None:
        raise _not_found(user_id)
    return User.from_document(document)


async def create_user(repository: UserRepository, payload: Any) -> User:
    fields = _validated(_check_payload(payload))
    fields = {key: value for key, value in fields.items() if value is not None}
    try:
        document = await repository.insert(fields)
    except ErrorEmailAlreadyExists:
        logger.error(f"Failed create user, email {fields['email']} already exists")
        raise
    except ErrorUserStore as e:
        logger.error(f"Failed create user with details: {fields} ---> Error: {e}")
        raise
    user = User.from_document(document)
    logger.info(f"User created with id {user.id}")
    return user


async def update_user(repository: UserRepository, user_id: str, payload: Any) -> User:
    """
    Merge ``payload`` onto the stored user and persist the result.

    Keys absent from the payload keep their stored value, ``None`` clears an
    optional field. The merged record is validated as a whole, so a partial
    update cannot leave a stored record in an invalid state.
    """
    payload = _check_payload(payload)
    existing = await get_user(repository, user_id)

    merged = existing.model_dump(include=set(USER_FIELDS))
    merged.update({key: value for key, value in payload.items() if key in USER_FIELDS})
    fields = _validated(merged)

    changes = {key: value for key, value in fields.items() if value is not None}
    unset = [key for key, value in fields.items() if value is None]
    try:
        document = await repository.update_by_id(user_id, changes, unset)
    except ErrorEmailAlreadyExists:
        logger.error(f"Failed update user {user_id}, email {changes['email']} already exists")
        raise
    except ErrorUserStore as e:
        logger.error(f"Failed update user {user_id} with details: {changes} ---> Error: {e}")
        raise
    # removed between the lookup and the write
    if document is None:
        raise _not_found(user_id)
    logger.info(f"User {user_id} successfully updated")
    return User.from_document(document)


async def delete_user(repository: UserRepository, user_id: str) -> User:
    try:
        document = await repository.delete_by_id(user_id)
    except ErrorUserStore as e:
        logger.error(f"Failed delete user {user_id} ---> Error: {e}")
        raise
    if document is None:
        raise _not_found(user_id)
    logger.info(f"User {user_id} successfully deleted")
    return User.from_document(document)
