from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from .config import get_logging_config
from .container import TaskboardContainer
from .domain.models import PRIORITIES, PROJECT_TYPES, TASK_TYPES, Actor
from .logging_utils import configure_logging
from .results import Result


def _resolve_data_dir(data_dir: Optional[str]) -> Path:
    return Path(data_dir).expanduser().resolve() if data_dir else Path.cwd().resolve()


def _ctx(args: argparse.Namespace) -> tuple[TaskboardContainer, Actor]:
    container = TaskboardContainer(_resolve_data_dir(args.data_dir))
    logging_cfg = get_logging_config(container.config)
    configure_logging(args.log_level or logging_cfg["level"], logging_cfg["file"])
    return container, Actor(id=args.user, organization_id=args.org)


def _emit(result: Result) -> int:
    stream = sys.stdout if result.ok else sys.stderr
    stream.write(json.dumps(result.to_dict(), indent=2) + '\n')
    return 0 if result.ok else 1


def _resolve_project(container: TaskboardContainer, actor: Actor, ref: str) -> Optional[str]:
    """Accept a project id or a project key."""
    if ref.startswith('proj-'):
        return ref
    listed = container.projects.list_projects(actor, include_all=True)
    if not listed.ok:
        return None
    for project in listed.data['projects']:
        if project['key'] == ref.upper():
            return project['id']
    return None


def _project_or_fail(container: TaskboardContainer, actor: Actor, ref: str) -> Optional[str]:
    project_id = _resolve_project(container, actor, ref)
    if project_id is None:
        sys.stderr.write(f"Unknown project: {ref}\n")
    return project_id


def _board_id(container: TaskboardContainer, actor: Actor, project_id: str) -> Optional[str]:
    view = container.boards.get_board(actor, project_id)
    return view.data['board']['id'] if view.ok else None


def _user_add(args: argparse.Namespace) -> int:
    container, actor = _ctx(args)
    payload: dict[str, Any] = {
        'username': args.username,
        'firstname': args.firstname,
        'lastname': args.lastname,
        'email': args.email,
    }
    if args.id:
        payload['id'] = args.id
    return _emit(container.users.register_user(actor.organization_id, payload))


def _project_create(args: argparse.Namespace) -> int:
    container, actor = _ctx(args)
    payload = {
        'name': args.name,
        'key': args.key,
        'description': args.description,
        'project_type': args.project_type,
        'members': list(args.member or []),
    }
    return _emit(container.projects.create_project(actor, payload))


def _project_list(args: argparse.Namespace) -> int:
    container, actor = _ctx(args)
    return _emit(container.projects.list_projects(actor, include_all=args.all))


def _board_show(args: argparse.Namespace) -> int:
    container, actor = _ctx(args)
    project_id = _project_or_fail(container, actor, args.project)
    if project_id is None:
        return 1
    result = container.boards.get_board(actor, project_id)
    if not result.ok or args.json:
        return _emit(result)

    columns = result.data['columns']
    table = Table(title=result.data['board']['name'], show_lines=True)
    for column in columns:
        table.add_column(f"{column['label']} ({len(column['tasks'])})", style="cyan")
    depth = max((len(column['tasks']) for column in columns), default=0)
    for row in range(depth):
        cells = []
        for column in columns:
            tasks = column['tasks']
            if row < len(tasks):
                task = tasks[row]
                cells.append(f"[bold]{task['issue_key']}[/bold] {task['title']}\n[dim]{task['priority']} · {task['rank']}[/dim]")
            else:
                cells.append("")
        table.add_row(*cells)
    Console().print(table)
    return 0


def _column_add(args: argparse.Namespace) -> int:
    container, actor = _ctx(args)
    project_id = _project_or_fail(container, actor, args.project)
    if project_id is None:
        return 1
    board_id = _board_id(container, actor, project_id)
    if board_id is None:
        sys.stderr.write(f"Project {args.project} has no active board\n")
        return 1
    payload: dict[str, Any] = {'key': args.key, 'label': args.label}
    if args.order is not None:
        payload['order'] = args.order
    return _emit(container.boards.add_column(actor, board_id, payload))


def _column_delete(args: argparse.Namespace) -> int:
    container, actor = _ctx(args)
    project_id = _project_or_fail(container, actor, args.project)
    if project_id is None:
        return 1
    board_id = _board_id(container, actor, project_id)
    if board_id is None:
        sys.stderr.write(f"Project {args.project} has no active board\n")
        return 1
    payload = {'target_key': args.target, 'confirm_destructive': args.confirm}
    return _emit(container.boards.delete_column(actor, board_id, args.key, payload))


def _task_create(args: argparse.Namespace) -> int:
    container, actor = _ctx(args)
    project_id = _project_or_fail(container, actor, args.project)
    if project_id is None:
        return 1
    payload: dict[str, Any] = {
        'title': args.title,
        'description': args.description,
        'type': args.task_type,
        'priority': args.priority,
    }
    if args.status:
        payload['status'] = args.status
    if args.assignee:
        payload['assignee'] = args.assignee
    return _emit(container.tasks.create_task(actor, project_id, payload))


def _task_list(args: argparse.Namespace) -> int:
    container, actor = _ctx(args)
    project_id = _project_or_fail(container, actor, args.project)
    if project_id is None:
        return 1
    filters: dict[str, Any] = {
        'sort_by': args.sort_by,
        'order': args.order,
        'page': args.page,
        'my_tasks': args.mine,
    }
    for name in ('status', 'search', 'limit'):
        value = getattr(args, name)
        if value is not None:
            filters[name] = value
    return _emit(container.tasks.list_tasks_by_project(actor, project_id, filters))


def _task_move(args: argparse.Namespace) -> int:
    container, actor = _ctx(args)
    payload = {'status': args.status, 'prevRank': args.prev_rank, 'nextRank': args.next_rank}
    return _emit(container.tasks.move_task(actor, args.task_id, payload))


def _ranks_rebalance(args: argparse.Namespace) -> int:
    container, actor = _ctx(args)
    project_id = _project_or_fail(container, actor, args.project)
    if project_id is None:
        return 1
    if args.status:
        return _emit(container.ranks.rebalance_column(actor, project_id, args.status))
    return _emit(container.ranks.rebalance_board(actor, project_id))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Taskboard developer CLI over a local file store')
    parser.add_argument('--data-dir', default=None, help='Directory holding .taskboard/ (default: current working directory)')
    parser.add_argument('--user', default=os.environ.get('TASKBOARD_USER', 'cli'), help='Acting user id')
    parser.add_argument('--org', default=os.environ.get('TASKBOARD_ORG', 'default'), help='Acting organization id')
    parser.add_argument('--log-level', default=None, help='Override the configured log level')
    subparsers = parser.add_subparsers(dest='command', required=True)

    user = subparsers.add_parser('user', help='Manage user profiles')
    user_sub = user.add_subparsers(dest='user_cmd', required=True)
    uadd = user_sub.add_parser('add', help='Register a user profile')
    uadd.add_argument('username')
    uadd.add_argument('--id', default=None)
    uadd.add_argument('--firstname', default='')
    uadd.add_argument('--lastname', default='')
    uadd.add_argument('--email', default='')
    uadd.set_defaults(func=_user_add)

    project = subparsers.add_parser('project', help='Manage projects')
    project_sub = project.add_subparsers(dest='project_cmd', required=True)
    pcreate = project_sub.add_parser('create', help='Create a project and its default board')
    pcreate.add_argument('name')
    pcreate.add_argument('key')
    pcreate.add_argument('--description', default='')
    pcreate.add_argument('--project-type', default='software', choices=list(PROJECT_TYPES))
    pcreate.add_argument('--member', action='append', help='Member user id (repeatable)')
    pcreate.set_defaults(func=_project_create)
    plist = project_sub.add_parser('list', help='List projects')
    plist.add_argument('--all', action='store_true', help='Include projects you are not a member of')
    plist.set_defaults(func=_project_list)

    board = subparsers.add_parser('board', help='Inspect boards')
    board_sub = board.add_subparsers(dest='board_cmd', required=True)
    bshow = board_sub.add_parser('show', help='Show the board grouped by column')
    bshow.add_argument('project', help='Project id or key')
    bshow.add_argument('--json', action='store_true')
    bshow.set_defaults(func=_board_show)

    column = subparsers.add_parser('column', help='Manage board columns')
    column_sub = column.add_subparsers(dest='column_cmd', required=True)
    cadd = column_sub.add_parser('add', help='Add a column')
    cadd.add_argument('project', help='Project id or key')
    cadd.add_argument('key')
    cadd.add_argument('--label', default=None)
    cadd.add_argument('--order', type=int, default=None)
    cadd.set_defaults(func=_column_add)
    cdelete = column_sub.add_parser('delete', help='Delete a column')
    cdelete.add_argument('project', help='Project id or key')
    cdelete.add_argument('key')
    cdelete.add_argument('--target', default=None, help='Column that receives the tasks')
    cdelete.add_argument('--confirm', action='store_true', help='Delete the tasks when no target is given')
    cdelete.set_defaults(func=_column_delete)

    task = subparsers.add_parser('task', help='Manage tasks')
    task_sub = task.add_subparsers(dest='task_cmd', required=True)
    tcreate = task_sub.add_parser('create', help='Create a task')
    tcreate.add_argument('project', help='Project id or key')
    tcreate.add_argument('title')
    tcreate.add_argument('--description', default='')
    tcreate.add_argument('--task-type', default='task', choices=list(TASK_TYPES))
    tcreate.add_argument('--priority', default='medium', choices=list(PRIORITIES))
    tcreate.add_argument('--status', default=None)
    tcreate.add_argument('--assignee', default=None)
    tcreate.set_defaults(func=_task_create)
    tlist = task_sub.add_parser('list', help='List tasks')
    tlist.add_argument('project', help='Project id or key')
    tlist.add_argument('--status', default=None)
    tlist.add_argument('--search', default=None)
    tlist.add_argument('--sort-by', default='rank')
    tlist.add_argument('--order', default='asc', choices=['asc', 'desc'])
    tlist.add_argument('--page', type=int, default=1)
    tlist.add_argument('--limit', type=int, default=None)
    tlist.add_argument('--mine', action='store_true')
    tlist.set_defaults(func=_task_list)
    tmove = task_sub.add_parser('move', help='Move a task to a column')
    tmove.add_argument('task_id')
    tmove.add_argument('status')
    tmove.add_argument('--prev-rank', default=None)
    tmove.add_argument('--next-rank', default=None)
    tmove.set_defaults(func=_task_move)

    ranks = subparsers.add_parser('ranks', help='Rank maintenance')
    ranks_sub = ranks.add_subparsers(dest='ranks_cmd', required=True)
    rrebalance = ranks_sub.add_parser('rebalance', help='Rewrite ranks as a fresh chain')
    rrebalance.add_argument('project', help='Project id or key')
    rrebalance.add_argument('--status', default=None, help='Only this column')
    rrebalance.set_defaults(func=_ranks_rebalance)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, 'func', None)
    if handler is None:
        parser.print_help()
        return 1
    return int(handler(args) or 0)


if __name__ == '__main__':
    raise SystemExit(main())
