"""Command line interface over the configured workspace store."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional, Sequence
from uuid import uuid4

from loguru import logger

from riskplan.exceptions import RiskPlanError
from riskplan.importers import convert_dxf_to_plan, read_dxf
from riskplan.logging_config import setup_logging
from riskplan.model.validators import generate_qa_report, validate_plan_state
from riskplan.model.workspace import WorkspaceState
from riskplan.risk import aggregate_plan_risk, calculate_risk_index, default_risk_rules, load_rules
from riskplan.risk.rules import RiskRulesConfig
from riskplan.settings import Settings
from riskplan.storage import WorkspaceStore, load_workspace, save_workspace, store_from_settings
from riskplan.versioning import add_plan, checkout, get_plan, head_of, log, materialize


def _print_json(payload: Any) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")


def _rules(settings: Settings, override: Optional[Path]) -> RiskRulesConfig:
    path = override or settings.risk.rules_path
    return load_rules(path) if path else default_risk_rules()


def cmd_score(args: argparse.Namespace, settings: Settings, workspace: WorkspaceState, store: WorkspaceStore) -> int:
    plan = get_plan(workspace, args.plan_id)
    summaries = calculate_risk_index(plan, workspace.findings_for(plan.id), _rules(settings, args.rules))
    aggregate = aggregate_plan_risk(plan.id, summaries)
    _print_json({
        "planoId": plan.id,
        "zones": [summary.to_flat() for summary in summaries.values()],
        "aggregate": aggregate.to_flat(),
    })
    return 0


def cmd_log(args: argparse.Namespace, settings: Settings, workspace: WorkspaceState, store: WorkspaceStore) -> int:
    head = head_of(workspace, args.plan_id)
    for entry in log(workspace, args.plan_id):
        marker = "*" if entry.id == head else " "
        author = entry.author_user_id or "-"
        sys.stdout.write(f"{marker} {entry.id}  {entry.timestamp.isoformat()}  {author}  {entry.message}\n")
    return 0


def cmd_checkout(args: argparse.Namespace, settings: Settings, workspace: WorkspaceState, store: WorkspaceStore) -> int:
    state = checkout(workspace, args.plan_id, args.commit_id)
    data = state.model_dump_json(by_alias=True, exclude_none=True, indent=2)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(data, encoding="utf-8")
        logger.info(f"Saved plan state at {args.commit_id} to {args.output}")
    else:
        sys.stdout.write(data + "\n")
    return 0


def cmd_import_dxf(args: argparse.Namespace, settings: Settings, workspace: WorkspaceState, store: WorkspaceStore) -> int:
    document = read_dxf(args.path)
    plan = convert_dxf_to_plan(
        document,
        plan_id=args.plan_id or uuid4().hex,
        name=args.name or args.path.stem,
        scale_meters_per_unit=args.scale,
    )
    plan = add_plan(
        workspace,
        plan,
        message=f"Import {args.path.name}",
        author_user_id=args.author,
        snapshot_interval=settings.versioning.snapshot_interval,
    )
    uri = save_workspace(store, workspace)
    logger.info(f"Imported {len(plan.elements)} elements on {len(plan.layers)} layers as plan {plan.id} ({uri})")
    sys.stdout.write(plan.id + "\n")
    return 0


def cmd_validate(args: argparse.Namespace, settings: Settings, workspace: WorkspaceState, store: WorkspaceStore) -> int:
    plan_ids = [args.plan_id] if args.plan_id else list(workspace.plans)
    reports: dict[str, Any] = {}
    for plan_id in plan_ids:
        state = materialize(workspace, plan_id)
        reports[plan_id] = generate_qa_report(state, validate_plan_state(state, plan_id))
    _print_json(reports)

    invalid = [plan_id for plan_id, report in reports.items() if not report["summary"]["valid"]]
    if invalid:
        logger.warning(f"Found invalid plan(s): {', '.join(invalid)}")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="riskplan", description="Floor-plan risk scoring and versioned plan editing")
    parser.add_argument("--config", type=Path, help="Settings YAML (default: $RISKPLAN_CONFIG or config/default.yaml)")
    parser.add_argument("--lenient", action="store_true", help="Drop dangling head pointers instead of failing on load")
    sub = parser.add_subparsers(dest="command", required=True)

    score = sub.add_parser("score", help="Compute zone risk indices for a plan")
    score.add_argument("plan_id")
    score.add_argument("--rules", type=Path, help="Risk rules file (JSON or YAML)")
    score.set_defaults(handler=cmd_score)

    history = sub.add_parser("log", help="List the commits of a plan, oldest first")
    history.add_argument("plan_id")
    history.set_defaults(handler=cmd_log)

    co = sub.add_parser("checkout", help="Print the plan state at a commit")
    co.add_argument("plan_id")
    co.add_argument("commit_id")
    co.add_argument("--output", type=Path, help="Write the state JSON to this file")
    co.set_defaults(handler=cmd_checkout)

    dxf = sub.add_parser("import-dxf", help="Import a DXF drawing as a new plan")
    dxf.add_argument("path", type=Path)
    dxf.add_argument("--plan-id")
    dxf.add_argument("--name")
    dxf.add_argument("--scale", type=float, default=1.0, help="Meters per drawing unit")
    dxf.add_argument("--author", help="Author user id recorded on the root commit")
    dxf.set_defaults(handler=cmd_import_dxf)

    validate = sub.add_parser("validate", help="Check plan invariants and print a QA report")
    validate.add_argument("plan_id", nargs="?")
    validate.set_defaults(handler=cmd_validate)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = Settings.load(args.config)
        setup_logging(
            level=settings.logging.level,
            json_format=settings.logging.json_format,
            log_file=settings.logging.log_file,
        )
        store = store_from_settings(settings.storage)
        workspace = load_workspace(store, strict=not args.lenient)
        return args.handler(args, settings, workspace, store)
    except RiskPlanError as exc:
        logger.error(f"{type(exc).__name__}: {exc.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
