"""
Management commands.

Usage:
    sannu-manage serve [--host 127.0.0.1] [--port 8000] [--reload]
    sannu-manage sessions:cleanup
    sannu-manage images:cleanup [--dry-run] [--force]
    sannu-manage tenant:cache {clear|warm} [slug]
    sannu-manage projects:update-statuses [--dry-run] [--detailed]
    sannu-manage schedule:list
"""
import argparse
import logging
import sys

import uvicorn

from sannu.db.database import SessionLocal
from sannu.logging_config import configure_logging
from sannu.services.product_service import ProductService
from sannu.services.project_service import ProjectService
from sannu.services.session_service import SessionService
from sannu.services.tenant_service import TenantService

logger = logging.getLogger(__name__)

SCHEDULE = [
    ("images:cleanup", "0 2 * * 0", "Weekly on Sunday at 02:00"),
    ("projects:update-statuses", "0 0 * * *", "Daily at 00:00"),
    ("sessions:cleanup", "0 * * * *", "Hourly"),
]


def serve(args) -> int:
    uvicorn.run(
        "sannu.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


def cleanup_sessions(args) -> int:
    print("Cleaning up expired sessions...")
    db = SessionLocal()
    try:
        deleted = SessionService(db).cleanup_expired_sessions()
    finally:
        db.close()

    if deleted > 0:
        print(f"Cleaned up {deleted} expired sessions.")
    else:
        print("No expired sessions found.")
    return 0


def cleanup_images(args) -> int:
    """List product images nothing references, and delete them unless dry-running."""
    print("Starting image cleanup process...")
    if args.dry_run:
        print("DRY RUN MODE - No files will be deleted")

    db = SessionLocal()
    try:
        service = ProductService(db)
        unused = service.cleanup_unused_images(dry_run=True)
        for path in unused:
            print(f"  - {'Would delete' if args.dry_run else 'Unused'}: {path}")

        if not unused:
            print("No unused images found.")
            return 0
        if args.dry_run:
            print(f"{len(unused)} unused image(s) would be deleted.")
            return 0

        if not args.force:
            answer = input("Are you sure you want to delete unused images? This action cannot be undone. [y/N] ")
            if answer.strip().lower() not in ("y", "yes"):
                print("Operation cancelled.")
                return 0

        removed = service.cleanup_unused_images()
        print(f"{len(removed)} unused image(s) deleted.")

        failed = [path for path in unused if path not in removed]
        for path in failed:
            print(f"  - Failed to delete: {path}")
        if failed:
            print(f"{len(failed)} image(s) could not be deleted.")
            return 1
        return 0
    finally:
        db.close()


def tenant_cache(args) -> int:
    if args.action not in ("clear", "warm"):
        print("Invalid action. Use 'clear' or 'warm'.")
        return 1

    db = SessionLocal()
    try:
        service = TenantService(db)
        if args.action == "clear":
            count = service.clear_cache(args.slug)
            if args.slug:
                print(f"Cleared cache for tenant: {args.slug}")
            else:
                print(f"Cleared cache for all tenants ({count} tenants)")
            return 0

        count = service.warm_cache(args.slug)
        if args.slug:
            if count == 0:
                print(f"Tenant not found: {args.slug}")
                return 1
            print(f"Warmed cache for tenant: {args.slug}")
        else:
            print(f"Warmed cache for all active tenants ({count} tenants)")
        return 0
    finally:
        db.close()


def update_project_statuses(args) -> int:
    """Complete expired projects and activate drafts whose start date has come."""
    print("Starting project status updates...")
    if args.dry_run:
        print("DRY RUN MODE - No changes will be made")

    db = SessionLocal()
    try:
        changes, failures = ProjectService(db).update_project_status_by_date(dry_run=args.dry_run)

        if args.detailed or args.dry_run:
            for project, from_status, to_status in changes:
                line = f"  - {project.name} (ID: {project.id}, Tenant: {project.tenant.name}): {from_status.label()} -> {to_status.label()}"
                if args.detailed:
                    day = project.end_date if to_status.is_final() else project.start_date
                    line += f" - {'End' if to_status.is_final() else 'Start'} Date: {day}"
                print(line)

        if changes:
            verb = "would be updated" if args.dry_run else "updated"
            print(f"{len(changes)} project(s) {verb}")
        else:
            print("No projects required status updates")

        for project, error in failures:
            print(f"  - Failed: {project.name} (ID: {project.id}): {error}")
        if failures:
            print(f"{len(failures)} project(s) failed to update")
            return 1
        return 0
    except Exception as e:
        logger.exception("Project status update command failed")
        print(f"Failed to update project statuses: {e}")
        return 1
    finally:
        db.close()


def list_schedule(args) -> int:
    print(f"{'Command':<28} {'Cron':<12} Description")
    for command, cron, description in SCHEDULE:
        print(f"{command:<28} {cron:<12} {description}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sannu-manage", description="Sannu-Sannu management commands")
    commands = parser.add_subparsers(dest="command", required=True)

    serve_cmd = commands.add_parser("serve", help="Run the API server")
    serve_cmd.add_argument("--host", default="127.0.0.1")
    serve_cmd.add_argument("--port", type=int, default=8000)
    serve_cmd.add_argument("--reload", action="store_true")
    serve_cmd.set_defaults(handler=serve)

    sessions_cmd = commands.add_parser("sessions:cleanup", help="Delete expired sessions")
    sessions_cmd.set_defaults(handler=cleanup_sessions)

    images_cmd = commands.add_parser("images:cleanup", help="Delete product images no product uses")
    images_cmd.add_argument("--dry-run", action="store_true", help="Show what would be deleted")
    images_cmd.add_argument("--force", action="store_true", help="Skip the confirmation prompt")
    images_cmd.set_defaults(handler=cleanup_images)

    cache_cmd = commands.add_parser("tenant:cache", help="Clear or warm the tenant cache")
    cache_cmd.add_argument("action", nargs="?", default="clear")
    cache_cmd.add_argument("slug", nargs="?")
    cache_cmd.set_defaults(handler=tenant_cache)

    statuses_cmd = commands.add_parser("projects:update-statuses", help="Apply date-based project status changes")
    statuses_cmd.add_argument("--dry-run", action="store_true", help="Show what would change")
    statuses_cmd.add_argument("--detailed", action="store_true", help="Print one line per change")
    statuses_cmd.set_defaults(handler=update_project_statuses)

    schedule_cmd = commands.add_parser("schedule:list", help="Show the cron schedule")
    schedule_cmd.set_defaults(handler=list_schedule)

    return parser


def main(argv=None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    return args.handler(args)


def run():
    sys.exit(main())
