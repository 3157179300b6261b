"""Metrica CLI - Main Entry Point.

Commands:
    call     - Dispatch one API request and print the response body
    plugins  - List registered plugins and their operations
    serve    - Serve the API over HTTP with uvicorn
"""

from typing import Optional, Tuple

import click

from . import __version__, __cli_name__
from ..asgi import ApiApplication, build_dispatcher
from ..coercion import Default
from ..config import ConfigLoader, MetricaConfig, configure_logging
from ..descriptors import ParameterDescriptor
from ..dispatcher import ApiDispatcher
from ..faults import Fault
from ..request import ApiRequest


def _load_config(ctx: click.Context, **overrides) -> MetricaConfig:
    try:
        return ConfigLoader.load(
            paths=list(ctx.obj["config_paths"]),
            env_file=ctx.obj["env_file"],
            overrides={k: v for k, v in overrides.items() if v is not None},
        )
    except Fault as exc:
        raise click.ClickException(exc.message) from exc


def _dispatcher(ctx: click.Context, config: MetricaConfig) -> ApiDispatcher:
    return build_dispatcher(config, load_entry_points=ctx.obj["entry_points"])


def _format_parameter(descriptor: ParameterDescriptor) -> str:
    text = descriptor.name
    if descriptor.type is not None:
        text += f": {descriptor.type.value}"
    if isinstance(descriptor.default, Default):
        text += f" = {descriptor.default.value!r}"
    return text


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--config', '-c', 'config_paths', multiple=True,
              type=click.Path(dir_okay=False), help='YAML or JSON config file (repeatable)')
@click.option('--env-file', type=click.Path(dir_okay=False), help='.env file to read METRICA_* settings from')
@click.option('--no-entry-points', is_flag=True, help='Only load the built-in plugins')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, config_paths: Tuple[str, ...], env_file: Optional[str], no_entry_points: bool, verbose: bool):
    """Web analytics reporting API.

    \b
    Quick start:
      metrica plugins
      metrica call "method=Example.getBrowsers&idSite=1&format=json&filter_limit=3"
      metrica serve --port 8000
    """
    ctx.ensure_object(dict)
    ctx.obj['config_paths'] = config_paths
    ctx.obj['env_file'] = env_file
    ctx.obj['entry_points'] = not no_entry_points
    ctx.obj['verbose'] = verbose


@cli.command('call')
@click.argument('query')
@click.option('--format', '-f', 'format_', help='Output format (overrides the query string)')
@click.pass_context
def call(ctx, query: str, format_: Optional[str]):
    """
    Dispatch one API request given as a query string.

    Examples:
      metrica call "method=Example.getBrowsers&idSite=1&format=xml"
      metrica call "method=Example.getResolutions&idSite=1" --format csv
    """
    config = _load_config(ctx)
    if ctx.obj['verbose']:
        configure_logging("debug")

    dispatcher = _dispatcher(ctx, config)
    request = ApiRequest.from_string(query)
    if format_:
        request = request.with_params(format=format_)

    result = dispatcher.dispatch(request)
    if not isinstance(result, (str, bytes)):
        result = dispatcher.renderer_for(request).render(result)
    if isinstance(result, bytes):
        result = result.decode("utf-8")
    click.echo(result)


@cli.command('plugins')
@click.pass_context
def plugins(ctx):
    """List plugins, whether they are enabled, and their operations."""
    config = _load_config(ctx)
    registry = _dispatcher(ctx, config).plugins

    names = registry.names
    if not names:
        click.echo(click.style("No plugins registered.", fg="yellow"))
        return

    for name in names:
        enabled = registry.is_enabled(name)
        status = click.style("enabled", fg="green") if enabled else click.style("disabled", fg="red")
        click.echo(f"{click.style(name, bold=True)} ({status})")
        for method in registry.methods(name):
            params = ", ".join(_format_parameter(d) for d in registry.describe(name, method))
            click.echo(f"  {name}.{method}({params})")


@cli.command('serve')
@click.option('--host', help='Bind host (default from config)')
@click.option('--port', type=int, help='Bind port (default from config)')
@click.pass_context
def serve(ctx, host: Optional[str], port: Optional[int]):
    """
    Serve the API over HTTP.

    Examples:
      metrica serve
      metrica -c metrica.yaml serve --host 0.0.0.0 --port 9000
    """
    import uvicorn

    config = _load_config(ctx, host=host, port=port)
    configure_logging("debug" if ctx.obj['verbose'] else config.log_level)

    app = ApiApplication(_dispatcher(ctx, config))
    click.echo(click.style(f"Serving Metrica API on http://{config.host}:{config.port}", fg="cyan"))
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level,
    )


def main():
    """Entry point for `metrica` command."""
    cli(obj={})


if __name__ == '__main__':
    main()
