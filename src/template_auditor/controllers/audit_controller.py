import logging
from collections import Counter
from concurrent.futures import ProcessPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from template_auditor.corrector import AutocorrectionConflict, Corrector
from template_auditor.model import Correction, Finding
from template_auditor.rules.core import RuleConfig
from template_auditor.rules.engine import RuleEngine
from template_auditor.rules.registry import RuleRegistry
from template_auditor.template.builder import MalformedTemplateError, TemplateBuilder
from template_auditor.template.nodes import TemplateDocument

logger = logging.getLogger(__name__)


def read_template(path: Path) -> str:
    # newline="" keeps '\r\n' intact so offsets match the bytes on disk.
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def write_template(path: Path, text: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def apply_corrections(path: Path, document: TemplateDocument, corrections: Sequence[Correction]) -> bool:
    """
    Re-reads the file and applies the corrections if it is unchanged since analysis.

    Returns:
        bool: True if the file was rewritten.

    Raises:
        AutocorrectionConflict: If the file changed after it was analyzed.
    """
    current = read_template(path)
    corrected = Corrector(document).apply(current, corrections)
    if corrected == current:
        return False
    write_template(path, corrected)
    logger.info("Autocorrected %s (%d correction(s)).", path, len(corrections))
    return True


def _worker_audit_file(
        path_str: str,
        rule_configs: Mapping[str, RuleConfig],
        only: Optional[List[str]],
        autocorrect: bool
) -> Dict[str, Any]:
    """
    Worker function to audit a single template, possibly in a separate process.
    A file that cannot be read or tokenized is reported and skipped.
    """
    path = Path(path_str)
    results: Dict[str, Any] = {
        "path": path_str,
        "findings": [],
        "export_rows": [],
        "stats": Counter(),
        "corrected": False,
    }

    try:
        source = read_template(path)
        document = TemplateBuilder().parse_template(source, path=path_str)
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Could not read %s: %s", path, e)
        return {"error": str(e), "path": path_str}
    except MalformedTemplateError as e:
        logger.error("Skipping malformed template %s: %s", path, e)
        return {"error": str(e), "path": path_str}

    engine = RuleEngine(RuleRegistry.build(rule_configs, only))
    audit = engine.run(document)

    for finding in audit.findings:
        line, column = document.line_column(finding.source_range.begin_pos)
        results["stats"][finding.rule_id] += 1
        results["findings"].append(finding)
        results["export_rows"].append({
            "Path": path_str,
            "Line": line,
            "Column": column,
            "Rule": finding.rule_id,
            "Message": finding.message,
        })

    if autocorrect and audit.corrections:
        try:
            results["corrected"] = apply_corrections(path, document, audit.corrections)
        except AutocorrectionConflict as e:
            logger.error("%s", e)
            results["conflict"] = str(e)

    return results


class AuditController:
    """
    Orchestrates auditing a set of template files: parallel execution,
    aggregation of findings and export.
    """

    def __init__(
            self,
            rule_configs: Optional[Mapping[str, RuleConfig]] = None,
            only: Optional[List[str]] = None
    ):
        self.rule_configs = dict(rule_configs or {})
        self.only = only

        self.findings: Dict[str, List[Finding]] = {}
        self.export_rows: List[Dict[str, Any]] = []
        self.skipped: Dict[str, str] = {}
        self.stats: Counter = Counter()

    def run_audit(
            self,
            files: Sequence[Union[str, Path]],
            workers: int = 1,
            autocorrect: bool = False,
            progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> Dict[str, Any]:
        """
        Audits the given files and aggregates the results.

        Args:
            files: Template files to audit.
            workers: Number of processes; 1 runs in the current process.
            autocorrect: Rewrite counter directives in place.
            progress_callback: Called with (done, total) after each file.

        Returns:
            Dict[str, Any]: Summary counts and per-rule stats.
        """
        self.findings = {}
        self.export_rows = []
        self.skipped = {}
        self.stats = Counter()

        tasks = [str(f) for f in files]
        total = len(tasks)
        files_with_findings = 0
        corrected_files = 0

        func = partial(
            _worker_audit_file,
            rule_configs=self.rule_configs,
            only=self.only,
            autocorrect=autocorrect
        )

        if workers > 1 and total > 1:
            with ProcessPoolExecutor(max_workers=workers) as executor:
                results = list(self._consume(executor.map(func, tasks), total, progress_callback))
        else:
            results = list(self._consume(map(func, tasks), total, progress_callback))

        for result in results:
            if "error" in result:
                self.skipped[result["path"]] = result["error"]
                continue

            if result.get("corrected"):
                corrected_files += 1
            if result.get("conflict"):
                self.skipped[result["path"]] = result["conflict"]

            if result["findings"]:
                files_with_findings += 1
                self.findings[result["path"]] = result["findings"]
                self.export_rows.extend(result["export_rows"])
                self.stats.update(result["stats"])

        return {
            "total_files": total,
            "files_with_findings": files_with_findings,
            "total_findings": sum(self.stats.values()),
            "corrected_files": corrected_files,
            "skipped_files": len(self.skipped),
            "stats": self.stats,
        }

    @staticmethod
    def _consume(results, total, progress_callback):
        for i, result in enumerate(results):
            if progress_callback:
                progress_callback(i + 1, total)
            yield result

    # --- Result Getters ---

    def get_results_for_export(self) -> List[Dict[str, Any]]:
        return self.export_rows

    def export(self, filename: Union[str, Path]) -> Optional[Path]:
        """Writes the flat findings to .csv or .xlsx; nothing is written when there are none."""
        if not self.export_rows:
            return None
        out_path = Path(filename)
        df = pd.DataFrame(self.export_rows, columns=["Path", "Line", "Column", "Rule", "Message"])
        if out_path.suffix.lower() == ".xlsx":
            df.to_excel(out_path, index=False)
        else:
            df.to_csv(out_path, index=False)
        logger.info("Exported %d finding(s) to %s", len(df), out_path)
        return out_path
