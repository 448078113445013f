"""Command-line entry points for cfnscan: lint, rules and schema."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, Tuple

import click

from .constants import CFNSCAN_VERSION, DEFAULT_REGION, SEVERITY_INFORMATIONAL, SEVERITY_LEVELS
from .lint import LintOptions, lint_file
from .rules import get_rules
from .runner import RunFilters
from .sam.transform import TransformContext
from .schema import REPORT_SCHEMA

EXIT_SUCCESS = 0


@click.group()
@click.version_option(CFNSCAN_VERSION, prog_name="cfnscan")
def cli() -> None:
    """cfnscan CloudFormation linter."""


@cli.command()
@click.argument(
    "templates",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--ignore-checks", multiple=True, help="Rule id to skip (repeatable)")
@click.option("--include-checks", multiple=True, help="Only run these rule ids (repeatable)")
@click.option("--include-tags", multiple=True, help="Only run rules carrying this tag (repeatable)")
@click.option("--exclude-tags", multiple=True, help="Skip rules carrying this tag (repeatable)")
@click.option(
    "--min-severity",
    type=click.Choice(SEVERITY_LEVELS),
    default=SEVERITY_INFORMATIONAL,
    show_default=True,
    help="Drop findings below this severity",
)
@click.option("--no-sam-transform", is_flag=True, help="Lint SAM templates without expanding them")
@click.option("--region", default=DEFAULT_REGION, show_default=True, help="Region used for SAM expansion")
@click.option("--debug", is_flag=True, help="Log pipeline details to stderr")
def lint(
    templates: Tuple[Path, ...],
    ignore_checks: Tuple[str, ...],
    include_checks: Tuple[str, ...],
    include_tags: Tuple[str, ...],
    exclude_tags: Tuple[str, ...],
    min_severity: str,
    no_sam_transform: bool,
    region: str,
    debug: bool,
) -> int:
    """Lint TEMPLATES and print findings as JSON."""

    if debug:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)
    options = LintOptions(
        filters=RunFilters.build(
            include_ids=include_checks,
            exclude_ids=ignore_checks,
            include_tags=include_tags,
            exclude_tags=exclude_tags,
            min_severity=min_severity,
        ),
        transform_sam=not no_sam_transform,
        context=TransformContext(region=region),
    )
    report = []
    for template_path in templates:
        findings = lint_file(template_path, options)
        report.append(
            {"filename": str(template_path), "findings": [finding.to_dict() for finding in findings]}
        )
    click.echo(json.dumps(report, indent=2, ensure_ascii=False))
    return EXIT_SUCCESS


@cli.command("rules")
def list_rules() -> int:
    """Emit metadata describing the rule registry."""

    manifest = [
        {
            "id": rule.id,
            "severity": rule.severity,
            "short_description": rule.short_description,
            "description": rule.description,
            "source_url": rule.source_url,
            "tags": rule.tags,
        }
        for rule in sorted(get_rules(), key=lambda rule: rule.id)
    ]
    click.echo(json.dumps(manifest, indent=2))
    return EXIT_SUCCESS


@cli.command("schema")
def print_schema() -> int:
    """Print the JSON Schema of the lint report."""

    click.echo(json.dumps(REPORT_SCHEMA, indent=2))
    return EXIT_SUCCESS


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(argv if argv is not None else sys.argv[1:])
    try:
        cli.main(args=args, prog_name="cfnscan", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.exceptions.Abort:
        return 1
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
