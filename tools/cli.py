#!/usr/bin/env python3
"""
SteadyFocus Command Line Interface

Main entry point for the `steadyfocus` command. Drives the personalization
engine against the local snapshot store; every command prints JSON.

Usage:
    steadyfocus init --user alice --profile profile.json
    steadyfocus profile --user alice --context '{"hour": 14, "cognitive_readiness": 0.6}'
    steadyfocus compliance --user alice --event '{"intervention_type": "soft_delay", "successful": true}'
    steadyfocus session --user alice --session '{"duration_ms": 1500000, "planned_ms": 1500000, "successful": true}'
    steadyfocus daily --user alice --date 2026-03-01
    steadyfocus show --user alice
    steadyfocus --version
"""

import argparse
import json
import sys
from datetime import date
from pathlib import Path


# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


class CommandError(Exception):
    """Bad command input; reported as a JSON error."""


def _load_json(raw: str, name: str) -> dict:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise CommandError(f"Invalid JSON in --{name}: {e}") from e
    if not isinstance(data, dict):
        raise CommandError(f"--{name} must be a JSON object")
    return data


def _require_state(user_id: str):
    from tools.personalization.store import load_state

    state = load_state(user_id)
    if state is None:
        raise CommandError(f"No personalization state for user: {user_id} (run init first)")
    return state


def _save_transition(user_id: str, before, after) -> dict:
    from tools.personalization.engine import transition_events
    from tools.personalization.store import save_state

    save_state(user_id, after)
    return {
        "success": True,
        "user_id": user_id,
        "events": [e.to_dict() for e in transition_events(before, after)],
        "state": after.to_dict(),
    }


def cmd_init(args):
    """Create (or, with --reseed, refresh) a user's state from an onboarding profile."""
    from tools.personalization import engine
    from tools.personalization.models import StaticProfile
    from tools.personalization.store import load_state, save_state

    path = Path(args.profile)
    if not path.exists():
        raise CommandError(f"Profile file not found: {path}")
    try:
        profile = StaticProfile.from_dict(_load_json(path.read_text(), "profile"))
    except (TypeError, ValueError) as e:
        raise CommandError(f"Invalid profile: {e}") from e

    existing = load_state(args.user)
    if existing is not None and not args.reseed:
        raise CommandError(f"State already exists for user: {args.user} (use --reseed)")

    if existing is not None:
        state = engine.update_profile(existing, profile)
    else:
        state = engine.initialize(profile)

    save_state(args.user, state)
    return {"success": True, "user_id": args.user, "state": state.to_dict()}


def cmd_profile(args):
    """Compute the personalization profile for a live context."""
    from tools.personalization import engine
    from tools.personalization.decision import build_context

    state = _require_state(args.user)
    signals = _load_json(args.context, "context") if args.context else {}
    context = build_context(
        hour=int(signals.get("hour", 12)),
        cognitive_readiness=float(signals.get("cognitive_readiness", 0.5)),
        fragmentation=float(signals.get("fragmentation", 0.0)),
        goal_conflict=float(signals.get("goal_conflict", 0.0)),
        distraction_severity=float(signals.get("distraction_severity", 0.0)),
        in_focus_session=bool(signals.get("in_focus_session", False)),
        hrv_normalized=signals.get("hrv_normalized"),
        goal_urgency=float(signals.get("goal_urgency", 0.5)),
    )
    profile = engine.compute_profile(state, context)
    return {
        "success": True,
        "user_id": args.user,
        "greeting": engine.personalized_greeting(state),
        "profile": profile.to_dict(),
    }


def cmd_compliance(args):
    """Record the user's response to an intervention."""
    from tools.personalization import engine
    from tools.personalization.models import ComplianceEvent

    state = _require_state(args.user)
    try:
        event = ComplianceEvent.from_dict(_load_json(args.event, "event"))
    except (KeyError, ValueError) as e:
        raise CommandError(f"Invalid compliance event: {e}") from e

    return _save_transition(args.user, state, engine.process_compliance_event(state, event))


def cmd_session(args):
    """Record a completed focus session."""
    from tools.personalization import engine
    from tools.personalization.models import SessionRecord

    state = _require_state(args.user)
    try:
        session = SessionRecord.from_dict(_load_json(args.session, "session"))
    except (KeyError, ValueError) as e:
        raise CommandError(f"Invalid session: {e}") from e

    return _save_transition(args.user, state, engine.record_session(state, session))


def cmd_daily(args):
    """Run the day rollover."""
    from tools.personalization import engine

    state = _require_state(args.user)
    try:
        today = date.fromisoformat(args.date) if args.date else date.today()
    except ValueError as e:
        raise CommandError(f"Invalid --date: {e}") from e

    if not args.force and not engine.needs_daily_update(state, today):
        return {"success": True, "user_id": args.user, "skipped": True, "events": []}

    return _save_transition(args.user, state, engine.perform_daily_update(state, today))


def cmd_show(args):
    """Print the stored state."""
    from tools.personalization.attention import average_session_minutes
    from tools.personalization.engine import compute_uninstall_risk

    state = _require_state(args.user)
    return {
        "success": True,
        "user_id": args.user,
        "uninstall_risk": compute_uninstall_risk(state),
        "average_session_minutes": round(average_session_minutes(state.attention), 1),
        "state": state.to_dict(),
    }


def cmd_users(args):
    from tools.personalization.store import list_users

    return {"success": True, "users": list_users()}


def cmd_version(args):
    """Show version information."""
    try:
        from importlib.metadata import version

        v = version("steadyfocus")
    except Exception:
        v = "0.1.0 (development)"

    print(f"SteadyFocus version {v}")


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="steadyfocus",
        description="SteadyFocus - Adaptive personalization engine for focus coaching",
    )
    parser.add_argument(
        "--version", "-V", action="store_true", help="Show version and exit"
    )
    parser.add_argument(
        "--log-level", default=None, help="Log level (default: STEADYFOCUS_LOG_LEVEL or INFO)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init
    init_parser = subparsers.add_parser("init", help="Seed a user's state from an onboarding profile")
    init_parser.add_argument("--user", required=True, help="User ID")
    init_parser.add_argument("--profile", required=True, help="Path to onboarding profile JSON")
    init_parser.add_argument(
        "--reseed", action="store_true", help="Refresh an existing user, keeping learned behavior"
    )
    init_parser.set_defaults(func=cmd_init)

    # profile
    profile_parser = subparsers.add_parser("profile", help="Compute the profile for a live context")
    profile_parser.add_argument("--user", required=True, help="User ID")
    profile_parser.add_argument("--context", help="JSON object with live signals")
    profile_parser.set_defaults(func=cmd_profile)

    # compliance
    compliance_parser = subparsers.add_parser("compliance", help="Record an intervention outcome")
    compliance_parser.add_argument("--user", required=True, help="User ID")
    compliance_parser.add_argument("--event", required=True, help="JSON compliance event")
    compliance_parser.set_defaults(func=cmd_compliance)

    # session
    session_parser = subparsers.add_parser("session", help="Record a completed focus session")
    session_parser.add_argument("--user", required=True, help="User ID")
    session_parser.add_argument("--session", required=True, help="JSON session record")
    session_parser.set_defaults(func=cmd_session)

    # daily
    daily_parser = subparsers.add_parser("daily", help="Run the once-a-day rollover")
    daily_parser.add_argument("--user", required=True, help="User ID")
    daily_parser.add_argument("--date", help="Day to roll into (YYYY-MM-DD, default: today)")
    daily_parser.add_argument(
        "--force", action="store_true", help="Run even if today's rollover already ran"
    )
    daily_parser.set_defaults(func=cmd_daily)

    # show
    show_parser = subparsers.add_parser("show", help="Show a user's stored state")
    show_parser.add_argument("--user", required=True, help="User ID")
    show_parser.set_defaults(func=cmd_show)

    # users
    users_parser = subparsers.add_parser("users", help="List users with stored state")
    users_parser.set_defaults(func=cmd_users)

    args = parser.parse_args(argv)

    # Handle --version at top level
    if args.version:
        cmd_version(args)
        return 0

    # If no command given, show help
    if not args.command:
        parser.print_help()
        return 0

    from tools.logging_config import bind_user, setup_logging
    from tools.personalization.invariants import PersonalizationError

    setup_logging(level=args.log_level)
    bind_user(getattr(args, "user", None))

    try:
        result = args.func(args)
    except (CommandError, PersonalizationError) as e:
        result = {"success": False, "error": str(e)}

    print(json.dumps(result, indent=2, default=str))
    if not result.get("success"):
        sys.exit(1)
    return 0


if __name__ == "__main__":
    main()
