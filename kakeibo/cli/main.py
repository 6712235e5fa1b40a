"""Command-line interface for administering the kakeibo ledger."""

from __future__ import annotations

import argparse
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from pathlib import Path

from sqlalchemy.orm import Session, sessionmaker

from backend import crud, database, identity, models, services
from backend.database import build_engine, init_db
from kakeibo import __version__
from kakeibo.config import (
    CONFIG_ENV_FLAG,
    DATABASE_ENV_FLAG,
    JSON_LOGS_ENV_FLAG,
    LOG_LEVEL_ENV_FLAG,
    Settings,
    load_settings,
)
from kakeibo.engine.dates import parse_date
from kakeibo.engine.dates import today as local_today
from kakeibo.engine.logging import configure_cli_logging
from kakeibo.engine.utils.io import write_json

DESCRIPTION = f"kakeibo expense ledger {__version__}"


def _parse_date(value: str) -> date:
    try:
        return parse_date(value)
    except ValueError as exc:  # pragma: no cover - argparse validation
        raise argparse.ArgumentTypeError("Expected YYYY-MM-DD date format") from exc


def _parse_month(value: str) -> int:
    month = int(value)
    if not 1 <= month <= 12:
        raise argparse.ArgumentTypeError("Month must be between 1 and 12")
    return month


def _add_user_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--email", required=True, help="Email of the ledger owner")


def _add_period_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--year", type=int, help="Calendar year (default: current)")
    parser.add_argument("--month", type=_parse_month, help="Month 1-12 (default: current)")
    parser.add_argument(
        "--today",
        type=_parse_date,
        help="Reference date in YYYY-MM-DD (default: today in UTC+9)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kakeibo", description=DESCRIPTION)
    parser.add_argument("--config", type=Path, help="YAML settings file")
    parser.add_argument("--database-url", help="Override the configured SQLAlchemy URL")
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Mirror logs to the JSON audit file",
    )
    parser.add_argument("--log-level", help="Log level name (DEBUG, INFO, ...)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db", help="Create the ledger tables")

    create_user = sub.add_parser("create-user", help="Register a user and print its API token")
    _add_user_argument(create_user)

    seed = sub.add_parser("seed", help="Create the default categories for a user without any")
    _add_user_argument(seed)

    budget = sub.add_parser("set-budget", help="Set the monthly budget")
    _add_user_argument(budget)
    budget.add_argument("--year", type=int, required=True)
    budget.add_argument("--month", type=_parse_month, required=True)
    budget.add_argument("--amount", type=int, required=True, help="Budget in yen")

    summary = sub.add_parser("summary", help="Print remaining-budget figures for a month")
    _add_user_argument(summary)
    _add_period_arguments(summary)

    history = sub.add_parser("history", help="Export the month calendar as JSON")
    _add_user_argument(history)
    _add_period_arguments(history)
    history.add_argument("--output", type=Path, help="Write the JSON payload to this file")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    return parser


def _resolve_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    overrides: dict[str, object] = {}
    if args.database_url:
        overrides["database_url"] = args.database_url
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    if args.json_logs is not None:
        overrides["json_logs"] = bool(args.json_logs)
    return replace(settings, **overrides)


@contextmanager
def _session(settings: Settings) -> Iterator[Session]:
    engine = build_engine(settings.database_url)
    init_db(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        engine.dispose()


def _period(args: argparse.Namespace) -> tuple[int, int, date]:
    reference = args.today or local_today()
    return args.year or reference.year, args.month or reference.month, reference


def _handle_init_db(settings: Settings) -> None:
    with _session(settings):
        pass
    print(f"[kakeibo] init-db url={settings.database_url}")


def _handle_create_user(args: argparse.Namespace, settings: Settings) -> None:
    with _session(settings) as session:
        try:
            user = identity.create_user(session, args.email)
        except crud.EntityConflictError as exc:
            raise SystemExit(str(exc)) from exc
        print(f"[kakeibo] create-user id={user.id} email={user.email} token={user.api_token}")


def _handle_seed(args: argparse.Namespace, settings: Settings) -> None:
    with _session(settings) as session:
        user = _lookup_user(session, args.email)
        created = crud.seed_default_categories(session, user.id)
        print(f"[kakeibo] seed email={user.email} created={len(created)}")


def _handle_set_budget(args: argparse.Namespace, settings: Settings) -> None:
    if args.amount < 0:
        raise SystemExit("Budget amount must be non-negative")
    with _session(settings) as session:
        user = _lookup_user(session, args.email)
        budget = crud.set_monthly_budget(session, user.id, args.year, args.month, args.amount)
        print(f"[kakeibo] set-budget period={budget.year:04d}-{budget.month:02d} amount={budget.budget_amount}")


def _handle_summary(args: argparse.Namespace, settings: Settings) -> None:
    year, month, reference = _period(args)
    with _session(settings) as session:
        user = _lookup_user(session, args.email)
        summary = services.month_summary(session, user.id, year, month, reference)
    figures = {
        "budget": summary.monthly_budget,
        "spent": summary.monthly_total,
        "planned": summary.monthly_planned_total,
        "remaining": summary.month_remaining,
        "remaining_with_planned": summary.month_remaining_with_planned,
        "week_remaining": f"{summary.weekly_remaining:.0f}",
        "today": summary.today_total,
        "status": summary.month_status.value,
    }
    print(
        f"[kakeibo] summary period={year:04d}-{month:02d} "
        + " ".join(f"{key}={value}" for key, value in figures.items())
    )


def _handle_history(args: argparse.Namespace, settings: Settings) -> None:
    year, month, reference = _period(args)
    with _session(settings) as session:
        user = _lookup_user(session, args.email)
        history = services.build_history(session, user.id, year, month, reference)
    payload = history.model_dump(mode="json")
    if args.output is not None:
        path = write_json(payload, args.output)
        print(f"[kakeibo] history period={year:04d}-{month:02d} path={path}")
        return
    active = [cell for cell in history.calendar if cell.date is not None and cell.severity != "empty"]
    print(
        f"[kakeibo] history period={year:04d}-{month:02d} total={history.total_expenses} "
        f"planned={history.total_planned} active_days={len(active)}"
    )
    for cell in active:
        print(f"  {cell.date.isoformat()} actual={cell.actual_amount} planned={cell.planned_amount} {cell.severity}")


def _export_settings(args: argparse.Namespace, settings: Settings) -> None:
    """Publish the resolved settings to the environment read by the server modules."""

    if args.config is not None:
        os.environ[CONFIG_ENV_FLAG] = str(args.config)
    os.environ[DATABASE_ENV_FLAG] = settings.database_url
    os.environ[LOG_LEVEL_ENV_FLAG] = settings.log_level
    os.environ[JSON_LOGS_ENV_FLAG] = "1" if settings.json_logs else "0"


def _handle_serve(args: argparse.Namespace, settings: Settings) -> None:
    import uvicorn

    # Reload workers re-import backend.database and read the environment;
    # the in-process server uses the rebound engine.
    _export_settings(args, settings)
    database.configure_engine(settings.database_url)
    uvicorn.run("backend.server:app", host=args.host, port=args.port, reload=args.reload)


def _lookup_user(session: Session, email: str) -> models.User:
    try:
        return identity.get_user_by_email(session, email)
    except crud.EntityNotFoundError as exc:
        raise SystemExit(str(exc)) from exc


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = _resolve_settings(args)
    configure_cli_logging(json_logs=settings.json_logs, level=settings.log_level)
    if args.cmd == "init-db":
        _handle_init_db(settings)
    elif args.cmd == "create-user":
        _handle_create_user(args, settings)
    elif args.cmd == "seed":
        _handle_seed(args, settings)
    elif args.cmd == "set-budget":
        _handle_set_budget(args, settings)
    elif args.cmd == "summary":
        _handle_summary(args, settings)
    elif args.cmd == "history":
        _handle_history(args, settings)
    elif args.cmd == "serve":
        _handle_serve(args, settings)
    else:  # pragma: no cover - argparse enforces choices
        parser.error(f"Unknown command {args.cmd}")


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()
