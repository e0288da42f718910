"""skit check-config command - show the resolved configuration."""

import json
from pathlib import Path

import click
import yaml

from scenariokit.config.loader import load_config
from scenariokit.core.errors import ConfigError


@click.command()
@click.argument("path", default=".", type=click.Path(exists=True, path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def check_config_command(path: Path, as_json: bool) -> None:
    """Validate and print the configuration in effect.

    PATH is a config file or a study directory (default: current directory).
    """
    path = path.resolve()
    try:
        if path.is_dir():
            config = load_config(path)
        else:
            config = load_config(path.parent, config_path=path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e

    data = config.model_dump(mode="json")
    if as_json:
        click.echo(json.dumps(data))
    else:
        click.echo(yaml.safe_dump(data, sort_keys=False), nl=False)
