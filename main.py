#!/usr/bin/env python3
"""
IRB Sentinel - Main CLI Entry Point

Command-line interface for the IRB change-gating review panel.
stdout carries exactly one JSON document; logs go to stderr.

Exit codes:
    0: no gateable surfaces, or the panel converged
    3: escalated (missing evidence or no convergence)
    2: configuration or internal failure
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from irbsentinel import __version__
from irbsentinel.core import (
    DEFAULT_DIFF_RANGE,
    EXIT_ERROR,
    ConfigurationError,
    SentinelConfig,
    SentinelRunner,
    changed_files_from_git,
)
from irbsentinel.evaluation import VerdictParser
from irbsentinel.surfaces import apply_forced_surfaces, classify_surfaces

logger = logging.getLogger("irbsentinel.cli")


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _emit_json(payload: Dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2))


def _split_surfaces(value: Optional[str]) -> Tuple[str, ...]:
    return tuple(s.strip() for s in (value or "").split(",") if s.strip())


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    IRB Sentinel - fail-closed review panel for risky changes.

    Classifies changed paths, requires an evidence id for gateable
    changes, and records the reviewer panel's convergence as artifacts.
    """
    pass


@cli.command()
@click.option("--summary", envvar="IRB_SUMMARY", default="", help="Summary of the change under review")
@click.option("--evidence-id", envvar="EVIDENCE_ID", default="", help="Evidence bundle id (required for gateable changes)")
@click.option(
    "--force",
    envvar="IRB_FORCE",
    is_flag=True,
    help="Warm-up run: review even without gateable surfaces, 2/3 supermajority quorum",
)
@click.option("--surfaces", envvar="IRB_SURFACES", default="", help="Comma-separated surfaces to force (marks the run gateable)")
@click.option(
    "--changed-file",
    "changed_files",
    multiple=True,
    help="Changed path (repeatable). Defaults to git diff over --diff-range",
)
@click.option("--diff-range", default=DEFAULT_DIFF_RANGE, show_default=True, help="Commit range for change discovery")
@click.option("--job-id", envvar="IRB_JOB_ID", default="", help="CI job id recorded in the backlog")
@click.option("--config", "config_file", type=click.Path(exists=True), help="YAML configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def run(
    summary: str,
    evidence_id: str,
    force: bool,
    surfaces: str,
    changed_files: Tuple[str, ...],
    diff_range: str,
    job_id: str,
    config_file: Optional[str],
    verbose: bool,
):
    """
    Run the sentinel over a change set.
    """
    configure_logging(verbose)

    try:
        config = SentinelConfig.from_env(config_file)
        commit_range = None
        if changed_files:
            files = list(changed_files)
        else:
            files = changed_files_from_git(diff_range, cwd=os.getcwd())
            commit_range = diff_range

        runner = SentinelRunner(config)
        result = runner.run(
            summary,
            files,
            evidence_id=evidence_id,
            force=force,
            forced_surfaces=_split_surfaces(surfaces),
            job_id=job_id,
            commit_range=commit_range,
        )
    except ConfigurationError as e:
        logger.error(f"[SENTINEL] Configuration error: {e}")
        _emit_json({"outcome": "error", "error": str(e), "key": e.key})
        sys.exit(EXIT_ERROR)
    except Exception as e:
        logger.exception(f"[SENTINEL] Run failed: {e}")
        _emit_json({"outcome": "error", "error": str(e)})
        sys.exit(EXIT_ERROR)

    _emit_json(result.to_dict())
    sys.exit(result.exit_code)


@cli.command()
@click.argument("paths", nargs=-1)
@click.option("--surfaces", default="", help="Comma-separated surfaces to force")
def classify(paths: Tuple[str, ...], surfaces: str):
    """
    Classify changed paths into risk surfaces.
    """
    classification = apply_forced_surfaces(classify_surfaces(paths), _split_surfaces(surfaces))
    _emit_json({
        "surfaces": classification.sorted_surfaces(),
        "gateable": classification.gateable,
        "forced": classification.forced,
    })


@cli.command()
@click.argument("response_file", type=click.Path(exists=True, dir_okay=False))
def parse(response_file: str):
    """
    Parse a saved reviewer response into a verdict.
    """
    text = Path(response_file).read_text(encoding="utf-8")
    verdict = VerdictParser().parse(text)
    _emit_json(verdict.to_dict())


@cli.command("show-config")
@click.option("--config", "config_file", type=click.Path(exists=True), help="YAML configuration file")
def show_config(config_file: Optional[str]):
    """
    Show the effective configuration (the API key is never printed).
    """
    try:
        config = SentinelConfig.from_env(config_file)
        config.validate()
    except ConfigurationError as e:
        _emit_json({"outcome": "error", "error": str(e), "key": e.key})
        sys.exit(EXIT_ERROR)

    data = config.to_dict()
    data["required_reviewers"] = config.required_reviewers
    data["advisory_reviewers"] = config.advisory_reviewers
    _emit_json(data)


if __name__ == "__main__":
    cli()
