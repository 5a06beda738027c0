from __future__ import annotations

from typing import Any, Iterable

from loguru import logger

from ..domain.access import AccessGuard
from ..domain.columns import default_columns
from ..domain.models import Actor, Board, Project, now_iso
from ..errors import ConflictError, ValidationError
from ..results import operation
from ..schemas import CreateProjectRequest, MemberRequest, UpdateProjectRequest, validate_payload
from ..storage.interfaces import DocumentTransaction
from .base import ServiceBase, audience, event


def _unique(ids: Iterable[str]) -> list[str]:
    out: list[str] = []
    for user_id in ids:
        if user_id and user_id not in out:
            out.append(user_id)
    return out


class ProjectService(ServiceBase):
    """Projects, their membership, and the default board created with them."""

    def _require_unique_key(self, tx: DocumentTransaction, organization_id: str, key: str, own_id: str = "") -> None:
        criteria: dict[str, Any] = {"organization_id": organization_id, "key": key, "deleted_at": None}
        if own_id:
            criteria["id"] = {"$ne": own_id}
        if tx.find_one("projects", criteria) is not None:
            raise ConflictError(
                f"Project key '{key}' is already in use",
                errors=[{"field": "key", "message": "must be unique within the organization"}],
            )

    def _require_known_users(self, tx: DocumentTransaction, organization_id: str, fields: dict[str, list[str]]) -> None:
        errors: list[dict[str, Any]] = []
        for field_name, user_ids in fields.items():
            for user_id in user_ids:
                if tx.find_one("users", {"id": user_id, "organization_id": organization_id}) is None:
                    errors.append({"field": field_name, "message": f"unknown user '{user_id}'"})
        if errors:
            raise ValidationError.from_fields(errors, "Unknown users in project membership")

    @operation("create_project")
    def create_project(self, actor: Actor, payload: Any) -> dict[str, Any]:
        request = validate_payload(CreateProjectRequest, payload)
        fields = request.document_fields()
        fields["members"] = _unique(fields["members"])
        fields["manager"] = _unique(fields["manager"])
        with self._store.transaction() as tx:
            self._require_unique_key(tx, actor.organization_id, request.key)
            self._require_known_users(tx, actor.organization_id, {"members": fields["members"], "manager": fields["manager"]})
            fields["manager"] = _unique([*fields["manager"], actor.id])
            project = Project(organization_id=actor.organization_id, created_by=actor.id, **fields)
            board = Board(
                organization_id=project.organization_id,
                project_id=project.id,
                name=f"{project.name} Board",
                columns=default_columns(),
                created_by=actor.id,
            )
            tx.save("projects", project.to_dict())
            tx.save("boards", board.to_dict())

        logger.info("Created project {} ({}) with board {}", project.key, project.id, board.id)
        self._dispatch([(audience(project, exclude=actor.id),
                         event("project.member_added", actor, project, project_key=project.key))])
        return {"project": project.to_dict(), "board": board.to_dict()}

    @operation("get_project")
    def get_project(self, actor: Actor, project_id: str) -> dict[str, Any]:
        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
        return project.to_dict()

    @operation("list_projects")
    def list_projects(self, actor: Actor, include_all: bool = False) -> dict[str, Any]:
        """Projects the actor belongs to, or every live project of the organization."""
        with self._store.transaction() as tx:
            docs = tx.find(
                "projects",
                {"organization_id": actor.organization_id, "deleted_at": None},
                sort=[("created_at", 1)],
            )
        projects = [Project.from_dict(doc) for doc in docs]
        if not include_all:
            projects = [p for p in projects if AccessGuard.is_member_or_manager(p, actor.id)]
        return {"projects": [p.to_dict() for p in projects]}

    @operation("update_project")
    def update_project(self, actor: Actor, project_id: str, payload: Any) -> dict[str, Any]:
        changes = validate_payload(UpdateProjectRequest, payload).changes()
        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
            AccessGuard.require_manager(project, actor.id, "update the project")
            if "key" in changes and changes["key"] != project.key:
                self._require_unique_key(tx, project.organization_id, changes["key"], own_id=project.id)
            start = changes.get("start_date", project.start_date)
            end = changes.get("end_date", project.end_date)
            if start and end and end < start:
                raise ValidationError.from_fields(
                    [{"field": "end_date", "message": "must not be before start_date"}]
                )
            for name, value in changes.items():
                setattr(project, name, value)
            project.updated_at = now_iso()
            tx.save("projects", project.to_dict())
        logger.info("Updated project {} fields {}", project.key, sorted(changes))
        return project.to_dict()

    @operation("delete_project")
    def delete_project(self, actor: Actor, project_id: str) -> dict[str, Any]:
        """Soft delete: the project and its tasks stay stored but stop resolving."""
        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
            AccessGuard.require_manager(project, actor.id, "delete the project")
            project.deleted_at = now_iso()
            project.updated_at = project.deleted_at
            tx.save("projects", project.to_dict())
            tx.update_many("boards", {"project_id": project.id}, {"is_active": False})
        logger.info("Soft-deleted project {} ({})", project.key, project.id)
        return {"id": project.id, "deleted_at": project.deleted_at}

    @operation("add_member")
    def add_member(self, actor: Actor, project_id: str, payload: Any) -> dict[str, Any]:
        request = validate_payload(MemberRequest, payload)
        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
            AccessGuard.require_manager(project, actor.id, "manage membership")
            self._require_known_users(tx, project.organization_id, {"user_id": [request.user_id]})
            target = project.manager if request.role == "manager" else project.members
            if request.user_id not in target:
                target.append(request.user_id)
                project.updated_at = now_iso()
                tx.save("projects", project.to_dict())
        self._dispatch([([request.user_id], event("project.member_added", actor, project, role=request.role))])
        return project.to_dict()

    @operation("remove_member")
    def remove_member(self, actor: Actor, project_id: str, user_id: str) -> dict[str, Any]:
        """Drop *user_id* from both sets; tasks they are assigned to keep the assignment."""
        with self._store.transaction() as tx:
            project = self._load_project(tx, actor, project_id)
            AccessGuard.require_manager(project, actor.id, "manage membership")
            managers = [uid for uid in project.manager if uid != user_id]
            if not managers:
                raise ConflictError("A project must keep at least one manager")
            project.manager = managers
            project.members = [uid for uid in project.members if uid != user_id]
            project.updated_at = now_iso()
            tx.save("projects", project.to_dict())
        return project.to_dict()
