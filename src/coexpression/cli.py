from __future__ import annotations

import json
import logging
import warnings
from pathlib import Path
from typing import Any, Callable, Optional

import click

from coexpression.client import CoExpressionClient
from coexpression.config import load_config
from coexpression.display import load_method_display
from coexpression.errors import ClientVersionWarning, CoExpressionError
from coexpression.models import ConstCoexNetClustParams, FilterGenesParams


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2))


def _run(ctx: click.Context, action: Callable[[CoExpressionClient], Any]) -> Any:
    opts = ctx.obj
    try:
        config = load_config(opts["config_path"])
        with CoExpressionClient(
            url=opts["url"],
            token=opts["token"],
            timeout=opts["timeout"],
            config=config,
        ) as client:
            return action(client)
    except CoExpressionError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
@click.option("--url", envvar="COEXPRESSION_URL", help="CoExpression service URL.")
@click.option(
    "--token",
    envvar="KB_AUTH_TOKEN",
    help="Auth token (defaults to KB_AUTH_TOKEN or the config file).",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML config file (defaults to COEXPRESSION_CONFIG_PATH or ~/.coexpression/config.yaml).",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Request timeout in seconds (defaults to CDMI_TIMEOUT or 1800).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    url: Optional[str],
    token: Optional[str],
    config_path: Optional[Path],
    timeout: Optional[float],
) -> None:
    """Command line client for the CoExpression service."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO)
    ctx.obj = {"url": url, "token": token, "config_path": config_path, "timeout": timeout}


@cli.command("version")
@click.pass_context
def version_command(ctx: click.Context) -> None:
    """Print the version reported by the server."""
    click.echo(_run(ctx, lambda client: client.version()))


@cli.command("check-version")
@click.pass_context
def check_version_command(ctx: click.Context) -> None:
    """Check that this client is compatible with the server."""
    with warnings.catch_warnings():
        # Already logged by the check itself.
        warnings.simplefilter("ignore", ClientVersionWarning)
        notes = _run(ctx, lambda client: client.validate_version())
    for note in notes:
        click.echo(f"Warning: {note}", err=True)
    click.echo("Client and server versions are compatible.")


@cli.command("filter-genes")
@click.option("--ws-id", required=True, help="Workspace name or id.")
@click.option("--inobj-id", required=True, help="Input expression series object id.")
@click.option("--outobj-id", required=True, help="Output object id.")
@click.option("--p-value", required=True, help="P-value threshold.")
@click.option("--method", "method", required=True, help="Filtering method, e.g. anova or lor.")
@click.option("--num-genes", required=True, help="Number of genes to keep.")
@click.pass_context
def filter_genes_command(
    ctx: click.Context,
    ws_id: str,
    inobj_id: str,
    outobj_id: str,
    p_value: str,
    method: str,
    num_genes: str,
) -> None:
    """Queue a gene filtering job and print the job ids."""
    params = FilterGenesParams(
        ws_id=ws_id,
        inobj_id=inobj_id,
        outobj_id=outobj_id,
        p_value=p_value,
        method=method,
        num_genes=num_genes,
    )
    _echo_json(_run(ctx, lambda client: client.filter_genes(params)))


@cli.command("const-coex-net-clust")
@click.option("--ws-id", required=True, help="Workspace name or id.")
@click.option("--inobj-id", required=True, help="Input expression series object id.")
@click.option("--outobj-id", required=True, help="Output object id.")
@click.option("--cut-off", required=True, help="Edge weight cut-off.")
@click.option("--net-method", required=True, help="Network construction method, e.g. simple or WGCNA.")
@click.option("--clust-method", required=True, help="Clustering method, e.g. hclust or WGCNA.")
@click.option("--num-modules", required=True, help="Number of modules to produce.")
@click.pass_context
def const_coex_net_clust_command(
    ctx: click.Context,
    ws_id: str,
    inobj_id: str,
    outobj_id: str,
    cut_off: str,
    net_method: str,
    clust_method: str,
    num_modules: str,
) -> None:
    """Queue co-expression network construction and clustering."""
    params = ConstCoexNetClustParams(
        ws_id=ws_id,
        inobj_id=inobj_id,
        outobj_id=outobj_id,
        cut_off=cut_off,
        net_method=net_method,
        clust_method=clust_method,
        num_modules=num_modules,
    )
    _echo_json(_run(ctx, lambda client: client.const_coex_net_clust(params)))


@cli.command("describe-method")
@click.argument("display_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def describe_method_command(display_path: Path) -> None:
    """Summarise a narrative method display.yaml."""
    try:
        display = load_method_display(display_path)
    except CoExpressionError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(display.name)
    if display.tooltip:
        click.echo(f"  {display.tooltip}")
    if display.next:
        click.echo(f"Suggested next: {', '.join(display.next)}")
    for pid, param in display.parameters.items():
        hint = f" - {param.short_hint}" if param.short_hint else ""
        click.echo(f"  {pid}: {param.ui_name}{hint}")


def main() -> None:  # pragma: no cover
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
