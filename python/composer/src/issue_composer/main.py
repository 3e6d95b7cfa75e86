"""Command-line entry point for composing and creating an issue."""

import argparse
import asyncio
import logging
import sys

from .composer import IssueComposer
from .config import ComposerConfig
from .file_picker import QueuedFilePicker
from .models import CreatedIssue, Project
from .notifications import Notification
from .session_state import InitializeApi, LogOut, SessionStore


def _print_notification(notification: Notification) -> None:
    line = notification.title
    if notification.detail:
        line = f"{line}: {notification.detail}"
    print(f"Error: {line}", file=sys.stderr)


async def run_composer(
    config_path: str = ".composer/config.yaml",
    draft_id: str | None = None,
    project_id: str | None = None,
    project_name: str | None = None,
    summary: str | None = None,
    description: str | None = None,
    attachments: list[str] | None = None,
) -> CreatedIssue | None:
    """Compose an issue from the given values and submit it.

    Args:
        config_path: Path to config file
        draft_id: Draft to continue instead of the persisted one
        project_id: Project to create the issue in (defaults to the last used)
        project_name: Short name shown for the project
        summary: Issue summary (keeps the draft's if omitted)
        description: Issue description (keeps the draft's if omitted)
        attachments: Files to attach

    Returns:
        The created issue, or None if it could not be created
    """
    config = ComposerConfig.load(config_path)
    print(f"Tracker: {config.backend_url}")

    session = SessionStore()
    composer = IssueComposer.from_config(
        config,
        picker=QueuedFilePicker(attachments or []),
        draft_id=draft_id,
    )
    session.dispatch(InitializeApi(api=composer.api, auth=composer.api.auth))
    composer.notifier.add_listener(_print_notification)

    try:
        await composer.initialize()
        if composer.draft.id:
            print(f"Draft: {composer.draft.id}")

        if project_id:
            await composer.set_project(Project(id=project_id, short_name=project_name))
        if summary is not None:
            composer.edit_summary(summary)
        if description is not None:
            composer.edit_description(description)

        for _ in attachments or []:
            await composer.attach_photo("library")

        if not composer.can_create:
            if not composer.draft.project_id:
                print("Error: no project selected (use --project)", file=sys.stderr)
            if not composer.draft.summary:
                print("Error: summary is empty (use --summary)", file=sys.stderr)
            await composer.cancel()
            return None

        return await composer.submit()
    finally:
        await composer.close()
        session.dispatch(LogOut())


def cli() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Compose an issue draft and create it in the tracker",
    )

    parser.add_argument(
        "--config",
        default=".composer/config.yaml",
        help="Path to config file (default: .composer/config.yaml)"
    )

    parser.add_argument(
        "--draft-id",
        help="Continue this draft instead of the remembered one"
    )

    parser.add_argument("--project", help="Project id (defaults to the last used one)")
    parser.add_argument("--project-name", help="Project short name")
    parser.add_argument("--summary", help="Issue summary")
    parser.add_argument("--description", help="Issue description")

    parser.add_argument(
        "--attach",
        action="append",
        default=[],
        metavar="PATH",
        help="File to attach (repeatable)"
    )

    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    created = asyncio.run(run_composer(
        config_path=args.config,
        draft_id=args.draft_id,
        project_id=args.project,
        project_name=args.project_name,
        summary=args.summary,
        description=args.description,
        attachments=args.attach,
    ))

    if created is None:
        sys.exit(1)
    print(f"Created {created.id_readable or created.id}")


if __name__ == "__main__":
    cli()
