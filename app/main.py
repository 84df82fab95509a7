"""Command-line entry point for the vehicle match service."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import ValidationError

from app.config.environment import EnvironmentConfig
from app.config.exceptions import ConfigurationError
from app.config.loader import load_config, validate_config_file
from app.config.models import AppConfig
from app.domain.models import (
    CurrentUser,
    ListingStatus,
    PosterContact,
    Requirement,
    RequirementStatus,
    VehicleCriteria,
    VehicleListing,
    VehicleType,
)
from app.flows import MatchNotificationFlow, PageContext
from app.logging import get_logger
from app.logging.config import configure_logging
from app.logging.context import log_context
from app.matching.engine import MatchingEngine
from app.notifications.models import MatchKind, MatchNotification
from app.persistence.database import close_database, get_session, init_database
from app.persistence.exceptions import RecordNotFoundError
from app.persistence.repositories import (
    ListingRepository,
    RequirementRepository,
    UserRepository,
)
from app.persistence.store import SqlDataStore
from app.scheduler import SchedulerService
from app.state.kv_store import SqlKeyValueStore
from app.state.pending import PendingMatchStore
from app.utils.ids import new_record_id
from app.utils.timestamps import utc_now

logger = get_logger(__name__, component="cli")

# Extra time after the re-check delay for the callback to run
RECHECK_GRACE_SECONDS = 10.0


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > environment > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def print_notification(notification: MatchNotification) -> None:
    """Console presenter: print a notification and its matches."""
    print(notification.title)
    for match in notification.matches:
        if notification.kind is MatchKind.VEHICLE_MATCHES_REQUIREMENT:
            years = f"{match.year_range_min or 'Any'}-{match.year_range_max or 'Any'}"
            contact = match.poster.name if match.poster and match.poster.name else "unknown"
            print(
                f"  - {match.make or 'Any'} {match.model or 'Any'} ({years}) "
                f"posted by {contact} [{match.id}]"
            )
        else:
            print(
                f"  - {match.title or match.make + ' ' + match.model} {match.year} "
                f"at {match.price} in {match.location or 'Not specified'} [{match.id}]"
            )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Vehicle match service - match posted vehicles with buyer requirements"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    parser.add_argument("--user-id", default=None, help="Signed-in user id (guest if omitted)")
    parser.add_argument("--user-email", default=None, help="Signed-in user email")

    subparsers = parser.add_subparsers(dest="command", required=True)

    vehicle = subparsers.add_parser("post-vehicle", help="Post a vehicle and show matching requirements")
    vehicle.add_argument("--type", dest="vehicle_type", choices=[t.value for t in VehicleType], required=True)
    vehicle.add_argument("--make", required=True)
    vehicle.add_argument("--model", required=True)
    vehicle.add_argument("--year", type=int, required=True)
    vehicle.add_argument("--price", type=int, required=True)
    vehicle.add_argument("--title", default=None)
    vehicle.add_argument("--location", default=None)
    vehicle.add_argument(
        "--status",
        choices=[s.value for s in ListingStatus],
        default=ListingStatus.PENDING.value,
        help="Listing status (default: pending, awaiting review)",
    )
    _add_dismiss_flags(vehicle)

    requirement = subparsers.add_parser(
        "post-requirement", help="Post a requirement and show matching vehicles"
    )
    requirement.add_argument("--type", dest="vehicle_type", choices=[t.value for t in VehicleType], required=True)
    requirement.add_argument("--make", default=None)
    requirement.add_argument("--model", default=None)
    requirement.add_argument("--year-min", type=int, default=None)
    requirement.add_argument("--year-max", type=int, default=None)
    requirement.add_argument("--price-min", type=int, default=None)
    requirement.add_argument("--price-max", type=int, default=None)
    requirement.add_argument("--location", default=None)
    requirement.add_argument("--description", default=None)
    requirement.add_argument("--name", default=None, help="Poster contact name")
    requirement.add_argument("--phone", default=None, help="Poster contact phone")
    _add_dismiss_flags(requirement)

    recheck = subparsers.add_parser(
        "recheck", help="Re-check the pending vehicle match as the home or dashboard page does"
    )
    recheck.add_argument(
        "--page",
        choices=[PageContext.HOME.value, PageContext.DASHBOARD.value],
        default=PageContext.HOME.value,
    )
    _add_dismiss_flags(recheck)

    dismiss = subparsers.add_parser(
        "dismiss", help="Never show matches for this vehicle again"
    )
    dismiss.add_argument("--type", dest="vehicle_type", choices=[t.value for t in VehicleType], required=True)
    dismiss.add_argument("--make", required=True)
    dismiss.add_argument("--model", required=True)
    dismiss.add_argument("--year", type=int, required=True)

    status = subparsers.add_parser(
        "set-status", help="Change the status of a listing or requirement"
    )
    status.add_argument("record", choices=["listing", "requirement"])
    status.add_argument("record_id")
    status.add_argument(
        "status",
        help=(
            f"Listing: {', '.join(s.value for s in ListingStatus)}; "
            f"requirement: {', '.join(s.value for s in RequirementStatus)}"
        ),
    )

    subparsers.add_parser("validate-config", help="Validate the configuration file and exit")

    return parser


def _add_dismiss_flags(subparser: argparse.ArgumentParser) -> None:
    group = subparser.add_mutually_exclusive_group()
    group.add_argument(
        "--close", action="store_true", help="Close the notification before leaving the page"
    )
    group.add_argument(
        "--dont-show-again", action="store_true", help="Dismiss the notification permanently"
    )


def _current_user(args: argparse.Namespace) -> Optional[CurrentUser]:
    if not args.user_id:
        return None
    if not args.user_email:
        raise ValueError("--user-email is required together with --user-id")
    return CurrentUser(id=args.user_id, email=args.user_email)


def _build_flow(
    app_config: AppConfig,
    pending_store: PendingMatchStore,
    scheduler: SchedulerService,
    page_context: PageContext,
) -> MatchNotificationFlow:
    return MatchNotificationFlow(
        engine=MatchingEngine(SqlDataStore()),
        pending_store=pending_store,
        scheduler=scheduler,
        presenter=print_notification,
        page_context=page_context,
        recheck_delay_seconds=app_config.matching.recheck_delay_seconds,
        recheck_contexts=app_config.matching.page_contexts,
        whatsapp_number=app_config.messaging.whatsapp_number,
    )


def _leave_page(flow: MatchNotificationFlow, args: argparse.Namespace) -> None:
    if getattr(args, "dont_show_again", False):
        flow.dont_show_again()
    elif getattr(args, "close", False):
        flow.close()
    flow.dispose()


def run_post_vehicle(args, user, flow) -> int:
    listing = VehicleListing(
        id=new_record_id(),
        vehicle_type=args.vehicle_type,
        title=args.title,
        make=args.make,
        model=args.model,
        year=args.year,
        price=args.price,
        location=args.location,
        status=args.status,
        posted_by=user.id if user else "guest",
        created_at=utc_now(),
    )
    with get_session() as session:
        ListingRepository(session).insert(listing)
    print(f"Posted vehicle {listing.id}")

    matches = flow.on_vehicle_posted(user, listing)
    if not matches:
        print("No matching requirements yet")
    _leave_page(flow, args)
    return 0


def run_post_requirement(args, user, flow) -> int:
    posted_by = user.id if user else "guest"
    poster = None
    if args.name or args.phone:
        poster = PosterContact(
            name=args.name, email=user.email if user else None, phone=args.phone
        )

    requirement = Requirement(
        id=new_record_id(),
        vehicle_type=args.vehicle_type,
        make=args.make,
        model=args.model,
        year_range_min=args.year_min,
        year_range_max=args.year_max,
        price_range_min=args.price_min,
        price_range_max=args.price_max,
        location=args.location,
        description=args.description,
        posted_by=posted_by,
        created_at=utc_now(),
        poster=poster,
    )
    with get_session() as session:
        if poster is not None:
            UserRepository(session).upsert(
                posted_by, name=poster.name, email=poster.email, phone=poster.phone
            )
        RequirementRepository(session).insert(requirement)
    print(f"Posted requirement {requirement.id}")

    outcome = flow.on_requirement_posted(user, requirement)
    if outcome.close_form:
        print(f"{len(outcome.matches)} matching vehicles; form closed")
    _leave_page(flow, args)
    return 0


def run_recheck(args, user, flow, scheduler: SchedulerService) -> int:
    if user is None:
        print("The pending match re-check needs a signed-in user (--user-id)", file=sys.stderr)
        return 1

    if not flow.start(user):
        print(f"Page '{flow.page_context.value}' does not re-check pending matches")
        flow.dispose()
        return 0

    print(f"Re-checking pending match in {flow.recheck_delay_seconds}s ...")
    if not scheduler.wait_for_idle(flow.recheck_delay_seconds + RECHECK_GRACE_SECONDS):
        logger.warning(
            "Pending match re-check did not run in time",
            extra={"event": "cli.recheck.timeout"},
        )
    # Let a running re-check finish before leaving the page
    scheduler.shutdown(wait=True)
    _leave_page(flow, args)
    return 0


def run_dismiss(args, user, pending_store: PendingMatchStore) -> int:
    criteria = VehicleCriteria(
        vehicle_type=args.vehicle_type, make=args.make, model=args.model, year=args.year
    )
    pending_store.set_dismissed(user.id if user else None, criteria)
    pending_store.clear_pending_vehicle_match()
    print(f"Dismissed matches for {criteria.year} {criteria.make} {criteria.model}")
    return 0


def run_set_status(args) -> int:
    try:
        with get_session() as session:
            if args.record == "listing":
                record = ListingRepository(session).update_status(
                    args.record_id, ListingStatus(args.status)
                )
            else:
                record = RequirementRepository(session).update_status(
                    args.record_id, RequirementStatus(args.status)
                )
    except RecordNotFoundError as e:
        print(f"Not found: {e}", file=sys.stderr)
        return 1

    print(f"{args.record.capitalize()} {record.id} is now {record.status.value}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = build_parser().parse_args(argv)

    if args.command == "validate-config":
        return 0 if validate_config_file(args.config or Path("config.yaml")) else 1

    scheduler = None
    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=os.environ.get("ENVIRONMENT", "local"),
        )
        logger.info(
            "Vehicle match service starting",
            extra={
                "event": "service.starting",
                "command": args.command,
                "log_level": env_config.log_level,
                "profile_id": env_config.profile_id,
            },
        )

        user = _current_user(args)
        init_database(env_config.database_url)

        pending_store = PendingMatchStore(SqlKeyValueStore(env_config.profile_id))
        scheduler = SchedulerService()

        with log_context(command=args.command, profile_id=env_config.profile_id):
            if args.command == "dismiss":
                return run_dismiss(args, user, pending_store)
            if args.command == "set-status":
                return run_set_status(args)

            page_context = {
                "post-vehicle": PageContext.VEHICLE_POST,
                "post-requirement": PageContext.REQUIREMENT_FORM,
            }.get(args.command) or PageContext(args.page)
            flow = _build_flow(app_config, pending_store, scheduler, page_context)

            if args.command == "post-vehicle":
                return run_post_vehicle(args, user, flow)
            if args.command == "post-requirement":
                return run_post_requirement(args, user, flow)
            return run_recheck(args, user, flow, scheduler)

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except (ValidationError, ValueError) as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        logger.error(
            f"Invalid input: {e}",
            extra={"event": "cli.input.invalid", "error_type": type(e).__name__},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            exc_info=True,
            extra={
                "event": "service.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
        )
        return 1
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        close_database()


if __name__ == "__main__":
    sys.exit(main())
