# backend/app/cli/__main__.py
from __future__ import annotations

import argparse
from datetime import datetime

from app.cli.seed_demo import seed_demo
from app.logging_config import configure_logging
from app.services.overdue_inspections import trigger_overdue_sweep
from app.services.recurring_generator import trigger_recurring_inspection_generation


def _seed(args: argparse.Namespace) -> None:
    out = seed_demo(
        manager_email=args.manager_email,
        technician_email=args.technician_email,
        owner_email=args.owner_email,
        create_schedule=(not args.no_schedule),
    )
    print(
        {
            "ok": True,
            "manager_email": out.manager_email,
            "technician_email": out.technician_email,
            "owner_email": out.owner_email,
            "property_id": out.property_id,
            "template_id": out.template_id,
            "recurring_inspection_id": out.recurring_inspection_id,
        }
    )


def _generate(args: argparse.Namespace) -> None:
    now = datetime.fromisoformat(args.now) if args.now else None
    result = trigger_recurring_inspection_generation(now=now)
    print({"ok": True, **result.as_dict()})


def _overdue(args: argparse.Namespace) -> None:
    now = datetime.fromisoformat(args.now) if args.now else None
    result = trigger_overdue_sweep(now=now)
    print({"ok": True, **result.as_dict()})


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m app.cli")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("seed-demo", help="create demo users, property, template and a weekly schedule")
    s.add_argument("--manager-email", default="manager@demo.local")
    s.add_argument("--technician-email", default="tech@demo.local")
    s.add_argument("--owner-email", default="owner@demo.local")
    s.add_argument("--no-schedule", action="store_true")
    s.set_defaults(func=_seed)

    g = sub.add_parser("generate-recurring", help="run the recurring inspection generator once")
    g.add_argument("--now", default=None, help="ISO timestamp to run as (defaults to current UTC time)")
    g.set_defaults(func=_generate)

    o = sub.add_parser("overdue-sweep", help="notify assignees and managers about overdue inspections")
    o.add_argument("--now", default=None, help="ISO timestamp to run as (defaults to current UTC time)")
    o.set_defaults(func=_overdue)

    args = p.parse_args()
    configure_logging()
    args.func(args)


if __name__ == "__main__":
    main()
