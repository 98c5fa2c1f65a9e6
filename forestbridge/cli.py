"""Command-line interface for forestbridge."""

import click
import logging
import sys
import json
from pathlib import Path
from typing import Optional
from rich.console import Console
from rich.table import Table

from . import __version__
from .config.manager import ConfigManager
from .core import orchestrator
from .core.errors import ForestBridgeError
from .core.resources import resource_manager


console = Console()


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        )
        logging.getLogger().addHandler(file_handler)


def _fail(error: Exception):
    console.print(f"[red]Error:[/red] {error}")
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--log-file', type=click.Path(), help='Log file path')
@click.option('--version', is_flag=True, help='Show version and exit')
@click.pass_context
def cli(ctx, verbose: bool, log_file: Optional[str], version: bool):
    """forestbridge - train and serve decision forests."""
    if version:
        console.print(f"forestbridge version {__version__}")
        sys.exit(0)

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        return

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    setup_logging(verbose, log_file)


@cli.command()
@click.option('--config', '-c', required=True, type=click.Path(exists=True),
              help='Training configuration file (YAML or JSON)')
@click.option('--data', '-d', required=True, help='Training data, e.g. csv:train.csv')
@click.option('--output', '-o', required=True, type=click.Path(), help='Model output directory')
def train(config: str, data: str, output: str):
    """Train a model and save it to a directory."""
    try:
        training_config = ConfigManager().load_config(config)

        with console.status("[bold green]Training..."):
            handle = orchestrator.train(training_config, data)
            orchestrator.save(handle, output)

        model = resource_manager.resolve(handle)
        console.print(f"[green]✓[/green] Trained {model.learner} {model.task.lower()} model "
                      f"on {len(model.features)} features")
        console.print(f"[green]✓[/green] Model saved to {output}")
    except ForestBridgeError as e:
        _fail(e)


@cli.command()
@click.option('--model', '-m', required=True, type=click.Path(exists=True), help='Model directory')
@click.option('--data', '-d', required=True, help='Input data, e.g. csv:test.csv')
@click.option('--output', '-o', type=click.Path(), help='Write predictions as JSON to this file')
def predict(model: str, data: str, output: Optional[str]):
    """Predict one score per row of a data file."""
    try:
        handle = orchestrator.load(model)
        scores = orchestrator.predict(handle, data)
    except ForestBridgeError as e:
        _fail(e)

    if output:
        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump({"predictions": scores}, f, indent=2)
        console.print(f"[green]✓[/green] {len(scores)} predictions written to {output}")
    else:
        click.echo(json.dumps(scores))


@cli.command()
@click.option('--model', '-m', required=True, type=click.Path(exists=True), help='Model directory')
def inspect(model: str):
    """Show the data specification of a saved model."""
    try:
        handle = orchestrator.load(model)
    except ForestBridgeError as e:
        _fail(e)

    trained = resource_manager.resolve(handle)
    console.print(f"[bold]{trained.learner}[/bold] {trained.task.lower()} model, label "
                  f"[cyan]{trained.label}[/cyan]")

    table = Table(title="Data specification")
    table.add_column("Column", style="cyan")
    table.add_column("Type")
    table.add_column("Missing", justify="right")
    table.add_column("Domain")
    table.add_column("Feature")

    for column in trained.data_spec.columns:
        if column.numerical is not None:
            domain = (f"[{column.numerical.min_value:g}, {column.numerical.max_value:g}] "
                      f"mean {column.numerical.mean:g}")
        elif column.categorical is not None:
            values = column.categorical.values()[1:]
            shown = ", ".join(values[:5]) + (", ..." if len(values) > 5 else "")
            domain = f"{len(values)} values: {shown}"
        else:
            domain = ""
        table.add_row(column.name, column.type.value, str(column.count_nas), domain,
                      "yes" if column.name in trained.features else "")

    console.print(table)


@cli.command()
@click.option('--config', '-c', required=True, type=click.Path(exists=True),
              help='Training configuration file to validate')
def validate(config: str):
    """Validate a training configuration file."""
    config_manager = ConfigManager()
    try:
        result = config_manager.validate(config_manager.load_raw_config(Path(config)))
    except ForestBridgeError as e:
        _fail(e)

    if not result.valid:
        console.print(f"[red]✗[/red] Configuration is invalid: {config}")
        for error in result.errors:
            console.print(f"  [red]•[/red] {error}")
        sys.exit(1)

    console.print(f"[green]✓[/green] Configuration is valid: {config}")
    for warning in result.warnings:
        console.print(f"  [yellow]•[/yellow] {warning}")

    summary = result.config
    console.print(f"  [cyan]Learner:[/cyan] {summary.learner}")
    console.print(f"  [cyan]Task:[/cyan] {summary.task}")
    console.print(f"  [cyan]Label:[/cyan] {summary.label}")
    if summary.options:
        console.print(f"  [cyan]Options:[/cyan] {json.dumps(summary.options, default=str)}")


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
