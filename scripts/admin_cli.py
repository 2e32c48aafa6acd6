"""
Admin operations on user plans, bypassing upgrade-path validation.

Run:
    python -m scripts.admin_cli set-plan --email user@example.com --plan premium
    python -m scripts.admin_cli reset-usage --user-id 3f1c9d2e-...
"""
import argparse
import logging
import sys

from cvforge.core.errors import CVForgeError
from cvforge.core.plan_catalog import PlanId, load_catalog
from cvforge.db.models.user import User
from cvforge.db.session import SessionLocal
from cvforge.services import plan_service

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _resolve_user_id(db, args) -> str:
    if args.user_id:
        return args.user_id
    user = db.query(User).filter(User.email == args.email.lower()).first()
    if not user:
        raise CVForgeError(f"No user with email {args.email}")
    return user.id


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="admin_cli", description="CVForge admin operations")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("set-plan", "Set a user's plan directly"),
        ("reset-usage", "Zero a user's usage counters"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        target = sub.add_mutually_exclusive_group(required=True)
        target.add_argument("--email")
        target.add_argument("--user-id")
        if name == "set-plan":
            sub.add_argument("--plan", required=True, choices=[p.value for p in PlanId])

    return parser


def main(argv=None, session_factory=SessionLocal) -> int:
    args = build_parser().parse_args(argv)
    db = session_factory()
    try:
        user_id = _resolve_user_id(db, args)
        if args.command == "set-plan":
            result = plan_service.admin_set_plan(db, load_catalog(), user_id, args.plan)
            logger.info(f"Plan set: user_id={user_id}, {result['previous_plan']} -> {result['new_plan']}")
        else:
            count = plan_service.admin_reset_usage(db, user_id)
            logger.info(f"Usage reset: user_id={user_id}, counters={count}")
        return 0
    except CVForgeError as e:
        logger.error(e.message)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
