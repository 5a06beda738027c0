from __future__ import annotations

from typing import Any

from loguru import logger

from ..domain.models import UserProfile
from ..errors import ConflictError, NotFoundError
from ..results import operation
from ..schemas import CreateUserRequest, validate_payload
from .base import ServiceBase


class UserDirectory(ServiceBase):
    """Profiles mirrored from the identity provider, used for audit snapshots."""

    @operation("register_user")
    def register_user(self, organization_id: str, payload: Any) -> dict[str, Any]:
        request = validate_payload(CreateUserRequest, payload)
        fields = request.model_dump(exclude_none=True)
        profile = UserProfile(organization_id=organization_id, **fields)
        with self._store.transaction() as tx:
            if tx.find_one("users", {"id": profile.id}) is not None:
                raise ConflictError(f"User {profile.id} already exists")
            if tx.find_one("users", {"organization_id": organization_id, "username": profile.username}) is not None:
                raise ConflictError(
                    f"Username '{profile.username}' is already taken",
                    errors=[{"field": "username", "message": "must be unique within the organization"}],
                )
            tx.save("users", profile.to_dict())
        logger.info("Registered user {} ({})", profile.username, profile.id)
        return profile.to_dict()

    @operation("get_user")
    def get_user(self, organization_id: str, user_id: str) -> dict[str, Any]:
        with self._store.transaction() as tx:
            doc = tx.find_one("users", {"id": user_id, "organization_id": organization_id})
        if doc is None:
            raise NotFoundError(f"User {user_id} not found")
        return UserProfile.from_dict(doc).to_dict()
