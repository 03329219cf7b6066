"""Command-line front end for the repository registry and git operations."""

import argparse
import json
import logging
import sys
from typing import Callable, List, Optional

from repo_manager.application.git_operations_service import GitOperationsService
from repo_manager.application.push_workflow import PushWorkflow
from repo_manager.application.registry_service import KeyValueStorage, RepositoryRegistry
from repo_manager.domain.errors import RepoManagerError
from repo_manager.domain.repository import PushType
from repo_manager.infrastructure.database import DatabaseRepository
from repo_manager.infrastructure.github_client import GitHubRestClient
from repo_manager.infrastructure.local_storage import JsonFileStorage

logger = logging.getLogger(__name__)

YES_ANSWERS = ("y", "yes")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="repo-manager", description="Manage repository records and pushes.")
    parser.add_argument("--storage", help="Registry storage file (default: $REPO_MANAGER_STORAGE)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Add a repository")
    add.add_argument("url")
    add.add_argument("--label", default="")

    sub.add_parser("list", help="List repositories")

    set_master = sub.add_parser("set-master", help="Mark a repository as master")
    set_master.add_argument("repo_id")

    push = sub.add_parser("push", help="Push one repository into another")
    push.add_argument("--source", required=True)
    push.add_argument("--target", required=True)
    push.add_argument("--push-type", default=PushType.REGULAR.value, choices=[t.value for t in PushType])

    last_commit = sub.add_parser("last-commit", help="Fetch and store the latest commit of a shared repository")
    last_commit.add_argument("repo_id")

    merge = sub.add_parser("merge", help="Merge a shared repository into another on GitHub")
    merge.add_argument("source_id")
    merge.add_argument("target_id")
    merge.add_argument("--push-type", default=PushType.REGULAR.value, choices=[t.value for t in PushType])

    return parser


def print_repositories(registry: RepositoryRegistry, out):
    if not len(registry):
        print("No repositories registered.", file=out)
        return
    for record in registry:
        marker = "*" if record.is_master else " "
        last_pushed = record.last_pushed.astimezone().strftime("%Y-%m-%d %H:%M:%S") if record.last_pushed else "Never"
        label = f" [{record.label}]" if record.label else ""
        print(f"{marker} {record.id}  {record.url}{label}  Last pushed: {last_pushed}", file=out)


def run_push(workflow: PushWorkflow, input_func: Callable[[str], str], out) -> int:
    result = workflow.request_push()
    while workflow.awaiting_confirmation:
        print(f"Warning: Pushing to Master Repository. {workflow.warning_message}", file=out)
        answer = input_func("Continue? [y/N] ").strip().lower()
        if answer not in YES_ANSWERS:
            workflow.cancel()
            print("Push cancelled.", file=out)
            return 1
        result = workflow.confirm()

    print(result.summary, file=out)
    print(f"Push completed with {result.push_type.value} strategy", file=out)
    return 0


def main(
    argv: Optional[List[str]] = None,
    storage: Optional[KeyValueStorage] = None,
    input_func: Callable[[str], str] = input,
    service_factory: Optional[Callable[[], GitOperationsService]] = None,
    out=None,
) -> int:
    """Run the command line and return the process exit code."""
    out = out or sys.stdout
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        if args.command in ("last-commit", "merge"):
            service = service_factory() if service_factory else GitOperationsService(
                GitHubRestClient(), DatabaseRepository()
            )
            if args.command == "last-commit":
                response = service.get_last_commit(args.repo_id)
            else:
                response = service.push(args.source_id, args.target_id, args.push_type)
            print(json.dumps(response, indent=2, default=str), file=out)
            return 0

        registry = RepositoryRegistry(storage or JsonFileStorage(args.storage))

        if args.command == "add":
            record = registry.add_repository(args.url, args.label)
            print(f"Repository added: {record.display_name} ({record.id})", file=out)
            return 0

        if args.command == "list":
            print_repositories(registry, out)
            return 0

        if args.command == "set-master":
            if not registry.set_master(args.repo_id):
                print(f"No repository with id {args.repo_id}", file=out)
                return 1
            print(f"Master repository: {registry.master.display_name}", file=out)
            return 0

        workflow = PushWorkflow(registry)
        workflow.select_source(args.source)
        workflow.select_target(args.target)
        workflow.set_push_type(args.push_type)
        return run_push(workflow, input_func, out)

    except RepoManagerError as e:
        print(f"Error: {e}", file=out)
        return 1
    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        print(f"Error: {e}", file=out)
        return 1


if __name__ == "__main__":
    sys.exit(main())
