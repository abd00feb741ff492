"""`kettle-skeleton` command: print a binding module for an existing table."""

from __future__ import annotations

import logging
from typing import Annotated, Any

import boto3
import typer
from botocore.exceptions import BotoCoreError, ClientError
from rich.console import Console

from kettledb.connections import ConnectionSettings
from kettledb.skeleton import generate_skeleton

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="kettle-skeleton",
    help="Generate a kettledb table binding from an existing DynamoDB table.",
)
err_console = Console(stderr=True)

_DEFAULT_REGION = "us-west-2"


def _get_client(region: str, endpoint_url: str | None) -> Any:
    settings = ConnectionSettings(region=region, endpoint=endpoint_url)
    return boto3.client(
        "dynamodb",
        region_name=settings.region,
        endpoint_url=settings.endpoint_url(),
        api_version=settings.version,
    )


@app.command(
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
def skeleton(
    table_name: Annotated[str, typer.Option("--table-name", help="Table to describe.")],
    region: Annotated[str, typer.Option(help="AWS region.")] = _DEFAULT_REGION,
    endpoint_url: Annotated[
        str | None, typer.Option(help="Endpoint URL, e.g. for DynamoDB Local.")
    ] = None,
) -> None:
    """Describe TABLE_NAME and print a module defining its binding."""
    client = _get_client(region, endpoint_url)
    try:
        source = generate_skeleton(client, table_name)
    except (ClientError, BotoCoreError) as e:
        logger.debug("Describing %s failed", table_name, exc_info=True)
        err_console.print(f"DynamoDB ERROR: {e}", style="red", markup=False, soft_wrap=True)
        raise typer.Exit(1) from e

    typer.echo(source, nl=False)


def main() -> None:
    app()
