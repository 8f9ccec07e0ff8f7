# src/template_auditor/cli.py
import argparse
import logging
import time
from typing import Any, Dict, List, Optional

from tqdm.auto import tqdm

from template_auditor.controllers.audit_controller import AuditController
from template_auditor.managers.config_manager import config_manager
from template_auditor.rules.registry import RuleRegistry
from template_auditor.utils.configure_logging import configure_logger
from template_auditor.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="template-auditor",
        description="Static accessibility audit of HTML templates with embedded code."
    )
    parser.add_argument("paths", nargs="*", help="Template files or directories to audit.")
    parser.add_argument("-a", "--autocorrect", action="store_true", help="Rewrite counter directives in place.")
    parser.add_argument("--export", type=str, default=None, help="Save flat results to .csv or .xlsx.")
    parser.add_argument("--workers", type=int, default=None, help="Number of worker processes.")
    parser.add_argument("--config", type=str, default=None, help="JSON settings merged over the defaults.")
    parser.add_argument("--rules", type=str, default=None, help="Comma-separated rule ids to run.")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (DEBUG, INFO, ...).")
    parser.add_argument("--list-rules", action="store_true", help="List the available rules and exit.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the 'template-auditor' command.

    Returns:
        int: 0 when no findings surfaced, 1 when they did, 2 on usage errors.
    """
    parser = build_parser()
    try:
        parsed_args = parser.parse_args(argv)
    except SystemExit as e:
        return 0 if e.code == 0 else 2

    if parsed_args.list_rules:
        return _handle_list_rules()

    if not parsed_args.paths:
        parser.print_usage()
        return 2

    if parsed_args.config and not config_manager.load_file(parsed_args.config):
        print(f"❌ Could not load settings from {parsed_args.config}")
        return 2

    configure_logger(parsed_args.log_level or config_manager.get_nested("debug.level", "WARNING"))

    only = None
    if parsed_args.rules:
        only = [r.strip() for r in parsed_args.rules.split(",") if r.strip()]
        unknown = [r for r in only if r not in RuleRegistry.get_all_rule_ids()]
        if unknown:
            print(f"❌ Unknown rule(s): {', '.join(unknown)}")
            return 2

    return _handle_run(parsed_args, only)


def _handle_list_rules() -> int:
    for rule_class in RuleRegistry.all():
        counter = "counter" if rule_class.supports_counter else "-"
        print(f"{rule_class.rule_id:<50} {counter}")
    return 0


def _handle_run(parsed_args: argparse.Namespace, only: Optional[List[str]]) -> int:
    extensions = config_manager.get_nested("audit.extensions", [".html"])
    files = PathUtils.collect_files(parsed_args.paths, extensions)
    if not files:
        print("No template files found.")
        return 0

    workers = parsed_args.workers or config_manager.get_nested("audit.workers", 1)
    controller = AuditController(config_manager.get_rule_configs(), only=only)

    pbar = tqdm(total=len(files), desc="Auditing", unit="file", disable=len(files) < 2)

    def progress_update(current, total):
        pbar.n = current
        pbar.refresh()

    start_audit = time.perf_counter()
    summary = controller.run_audit(
        files,
        workers=workers,
        autocorrect=parsed_args.autocorrect,
        progress_callback=progress_update
    )
    summary['duration'] = time.perf_counter() - start_audit
    pbar.close()

    for row in controller.get_results_for_export():
        print(f"{row['Path']}:{row['Line']}:{row['Column']}: {row['Rule']}: {row['Message']}")

    for path, error in controller.skipped.items():
        print(f"⚠️  Skipped {path}: {error}")

    _print_summary(summary)

    if parsed_args.export:
        _handle_export(controller, parsed_args.export)

    return 1 if summary.get('total_findings') else 0


def _print_summary(summary: Dict[str, Any]) -> None:
    stats = summary.get('stats', {})
    duration = summary.get('duration', 0)

    print("\n" + "=" * 70)
    print("📊 AUDIT SUMMARY")
    print("=" * 70)
    print(f"Files Analyzed:      {summary.get('total_files', 0)}")
    print(f"Files Skipped:       {summary.get('skipped_files', 0)}")
    print(f"Total Findings:      {summary.get('total_findings', 0)}")
    print(f"Files Corrected:     {summary.get('corrected_files', 0)}")
    print(f"Analysis Duration:   {duration:.2f} seconds")
    print("-" * 70)

    if stats:
        print(f"{'RULE':<55} | {'COUNT':>10}")
        print("-" * 70)
        for rule_id, count in stats.most_common():
            print(f"{rule_id:<55} | {count:>10}")
    print("=" * 70 + "\n")


def _handle_export(controller: AuditController, filename: str) -> None:
    try:
        out_path = controller.export(filename)
    except (OSError, ValueError, ImportError) as e:
        print(f"❌ Error exporting: {e}")
        return
    if out_path:
        print(f"✅ Report exported to: {out_path}")
