from __future__ import annotations

from taskboard.domain.models import Actor
from taskboard.testing import ORG, World, ok


class TestCreateProject:
    def test_creates_default_board_and_adds_creator_as_manager(self, world: World) -> None:
        project = ok(world.projects.get_project(world.manager, world.project_id))
        assert project["key"] == "ABC"
        assert project["manager"] == ["u-manager"]
        assert project["members"] == ["u-member"]

        view = ok(world.boards.get_board(world.manager, world.project_id))
        assert view["board"]["name"] == "Alpha Core Board"
        assert [c["key"] for c in view["columns"]] == ["todo", "in-progress", "done"]

    def test_key_unique_within_organization(self, world: World) -> None:
        result = world.projects.create_project(world.manager, {"name": "Another", "key": "ABC"})
        assert result.error_code == "CONFLICT"
        assert result.errors[0]["field"] == "key"

        elsewhere = Actor(id="u-other", organization_id="org-2")
        assert world.projects.create_project(elsewhere, {"name": "Another", "key": "ABC"}).ok

    def test_validation(self, world: World) -> None:
        result = world.projects.create_project(
            world.manager,
            {"name": "No", "key": "a", "start_date": "2030-02-01", "end_date": "2030-01-01"},
        )
        assert result.error_code == "VALIDATION_ERROR"
        assert {"name", "key"} <= {err["field"] for err in result.errors}

    def test_end_before_start(self, world: World) -> None:
        result = world.projects.create_project(
            world.manager,
            {"name": "Dated", "key": "DT", "start_date": "2030-02-01", "end_date": "2030-01-01"},
        )
        assert result.error_code == "VALIDATION_ERROR"

    def test_unknown_member(self, world: World) -> None:
        result = world.projects.create_project(world.manager, {"name": "Ghosts", "key": "GH", "members": ["u-ghost"]})
        assert result.error_code == "VALIDATION_ERROR"
        assert result.errors == [{"field": "members", "message": "unknown user 'u-ghost'"}]


class TestListAndUpdate:
    def test_list_only_own_projects_unless_all(self, world: World) -> None:
        outsider_view = ok(world.projects.list_projects(world.outsider))
        assert outsider_view["projects"] == []
        everything = ok(world.projects.list_projects(world.outsider, include_all=True))
        assert [p["key"] for p in everything["projects"]] == ["ABC"]

    def test_update_requires_manager(self, world: World) -> None:
        assert world.projects.update_project(world.member, world.project_id, {"name": "Renamed"}).error_code == "FORBIDDEN"
        updated = ok(world.projects.update_project(world.manager, world.project_id, {"name": "Renamed", "key": "abd"}))
        assert (updated["name"], updated["key"]) == ("Renamed", "ABD")

    def test_update_rejects_null_name(self, world: World) -> None:
        result = world.projects.update_project(world.manager, world.project_id, {"name": None})
        assert result.error_code == "VALIDATION_ERROR"

    def test_update_checks_dates_against_stored_values(self, world: World) -> None:
        ok(world.projects.update_project(world.manager, world.project_id, {"start_date": "2030-03-01"}))
        result = world.projects.update_project(world.manager, world.project_id, {"end_date": "2030-01-01"})
        assert result.error_code == "VALIDATION_ERROR"


class TestMembership:
    def test_add_member_and_manager(self, world: World) -> None:
        project = ok(world.projects.add_member(world.manager, world.project_id, {"user_id": "u-outsider"}))
        assert "u-outsider" in project["members"]
        project = ok(world.projects.add_member(
            world.manager, world.project_id, {"user_id": "u-member", "role": "manager"}
        ))
        assert project["manager"] == ["u-manager", "u-member"]
        assert world.notifier.sent[0][0] == ["u-outsider"]

    def test_add_unknown_user(self, world: World) -> None:
        result = world.projects.add_member(world.manager, world.project_id, {"user_id": "u-ghost"})
        assert result.error_code == "VALIDATION_ERROR"

    def test_last_manager_cannot_leave(self, world: World) -> None:
        result = world.projects.remove_member(world.manager, world.project_id, "u-manager")
        assert result.error_code == "CONFLICT"

    def test_removed_member_loses_access(self, world: World) -> None:
        ok(world.projects.remove_member(world.manager, world.project_id, "u-member"))
        result = world.tasks.create_task(world.member, world.project_id, {"title": "After removal"})
        assert result.error_code == "FORBIDDEN"


class TestDeleteProject:
    def test_soft_delete_hides_project_and_tasks(self, world: World) -> None:
        task = ok(world.tasks.create_task(world.manager, world.project_id, {"title": "Orphan"}))
        assert world.projects.delete_project(world.member, world.project_id).error_code == "FORBIDDEN"
        ok(world.projects.delete_project(world.manager, world.project_id))

        assert world.projects.get_project(world.manager, world.project_id).error_code == "NOT_FOUND"
        assert world.tasks.get_task_by_id(world.manager, task["id"]).error_code == "NOT_FOUND"
        with world.store.transaction() as tx:
            assert tx.find_one("projects", {"id": world.project_id})["deleted_at"] is not None
            assert tx.count("boards", {"project_id": world.project_id, "is_active": True}) == 0

    def test_key_reusable_after_delete(self, world: World) -> None:
        ok(world.projects.delete_project(world.manager, world.project_id))
        assert world.projects.create_project(world.manager, {"name": "Second Alpha", "key": "ABC"}).ok


class TestUsers:
    def test_duplicate_username(self, world: World) -> None:
        result = world.users.register_user(ORG, {"username": "mel"})
        assert result.error_code == "CONFLICT"
        assert world.users.register_user("org-2", {"username": "mel"}).ok

    def test_get_user(self, world: World) -> None:
        assert ok(world.users.get_user(ORG, "u-member"))["firstname"] == "Mel"
        assert world.users.get_user("org-2", "u-member").error_code == "NOT_FOUND"
