"""skit build command - run candidate batches through the scenario assembler."""

import json
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from scenariokit.config.loader import load_config
from scenariokit.core.errors import ScenarioKitError
from scenariokit.core.logging import configure_logging
from scenariokit.scenario.models import AddResult
from scenariokit.session import ScenarioExport, StudySession
from scenariokit.study_file import load_study_file


def _result_dict(scenario_key: int, search_type: str, result: AddResult) -> dict[str, Any]:
    return {
        "scenario": scenario_key,
        "search_type": search_type,
        "applicable": result.applicable,
        "added": result.added,
        "reused": result.reused,
        "culled": result.culled,
        "mx_removed": result.mx_removed,
        "source_ids": list(result.source_ids),
    }


def _export_dict(export: ScenarioExport) -> dict[str, Any]:
    items = []
    for entry in export.entries:
        source = entry.source
        key = source.external_key
        items.append(
            {
                "source_id": source.id,
                "record_type": source.record_type.value,
                "service": source.service.code,
                "channel": source.channel,
                "dataset_id": key.dataset_id if key else None,
                "record_id": key.record_id if key else None,
                "original_id": source.original_id,
                "desired": entry.item.is_desired,
                "undesired": entry.item.is_undesired,
                "permanent": entry.item.is_permanent,
            }
        )
    return {"key": export.key, "name": export.name, "items": items}


def _make_scenario_table(scenario: dict[str, Any]) -> Table:
    title = f"Scenario {scenario['key']}"
    if scenario["name"]:
        title += f" - {scenario['name']}"
    table = Table(title=title, title_justify="left")
    table.add_column("Id", justify="right")
    table.add_column("Type")
    table.add_column("Service")
    table.add_column("Ch", justify="right")
    table.add_column("Record")
    table.add_column("D", justify="center")
    table.add_column("U", justify="center")
    table.add_column("P", justify="center")
    for item in scenario["items"]:
        record = f"{item['dataset_id']}:{item['record_id']}" if item["record_id"] else "-"
        if item["original_id"] is not None:
            record += f" (rep of {item['original_id']})"
        table.add_row(
            str(item["source_id"]),
            item["record_type"],
            item["service"],
            "" if item["channel"] is None else str(item["channel"]),
            record,
            "x" if item["desired"] else "",
            "x" if item["undesired"] else "",
            "x" if item["permanent"] else "",
        )
    return table


def _run(study_path: Path, config_path: Path | None, verbose: bool) -> dict[str, Any]:
    config = load_config(study_path.parent, config_path=config_path)
    if not verbose:
        configure_logging(config=config.logging)

    study = load_study_file(study_path)
    session: StudySession = study.open_session(config)

    batches = []
    for batch in study.batches:
        records = [study.build_record(spec) for spec in batch.records]
        result = session.add_records(batch.scenario, records, study.batch_request(batch))
        batches.append(_result_dict(batch.scenario, batch.search_type.value, result))

    scenarios = [_export_dict(session.export_scenario(s.key)) for s in session.scenarios]
    return {
        "study_type": study.study_type.value,
        "batches": batches,
        "scenarios": scenarios,
        "unused_sources": session.unused_count(),
    }


@click.command()
@click.argument("study_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: scenariokit.yaml next to the study file)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def build_command(
    ctx: click.Context, study_file: Path, config_path: Path | None, as_json: bool
) -> None:
    """Build scenarios from a YAML study description.

    STUDY_FILE lists the study type, rules, existing sources and scenarios,
    and the candidate batches to add.
    """
    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    try:
        report = _run(study_file.resolve(), config_path, verbose)
    except ScenarioKitError as e:
        if as_json:
            click.echo(json.dumps({"error": e.to_dict()}))
            ctx.exit(1)
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps(report))
        return

    console = Console()
    for batch in report["batches"]:
        if not batch["applicable"]:
            console.print(
                f"[yellow]Scenario {batch['scenario']}[/yellow]: "
                f"{batch['search_type']} search not applicable to this study"
            )
            continue
        console.print(
            f"[cyan]Scenario {batch['scenario']}[/cyan]: {batch['search_type']} "
            f"added {batch['added']} (reused {batch['reused']}, culled {batch['culled']}, "
            f"MX removed {batch['mx_removed']})"
        )
    for scenario in report["scenarios"]:
        console.print()
        console.print(_make_scenario_table(scenario))
    if report["unused_sources"]:
        console.print(f"\n{report['unused_sources']} unused source(s) in study")
