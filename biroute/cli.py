"""biroute CLI - match, render, sort and inspect route patterns.

Commands:
    match        - Match a concrete path against a pattern
    interpolate  - Render a concrete path from parameters
    sort         - Order patterns from most to least specific
    inspect      - Show the parsed structure of a pattern
"""

import json
import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

import click

from . import __version__
from .config import ConfigError, ConfigLoader, RoutingConfig, build_cache, configure_logging
from .diagnostics.errors import (
    InterpolationError,
    PatternDiagnostic,
    PatternSemanticError,
    PatternSyntaxError,
)
from .faults import RoutingFault
from .openapi import describe_params, generate_openapi_path
from .route import Route
from .compiler.specificity import sort_routes

logger = logging.getLogger("biroute.cli")


class PatternError(click.ClickException):
    """Pattern could not be parsed or compiled."""
    exit_code = 2

    def __init__(self, diagnostic: PatternDiagnostic):
        super().__init__(diagnostic.format())


def _echo_json(data: Any):
    click.echo(json.dumps(data, indent=2, default=str))


def _route(ctx: click.Context, pattern: str, end: Optional[bool]) -> Route:
    config: RoutingConfig = ctx.obj["config"]
    if end is None:
        end = config.default_end
    try:
        return ctx.obj["cache"].get_or_parse(pattern, end)
    except (PatternSyntaxError, PatternSemanticError) as exc:
        raise PatternError(exc) from exc


# ============================================================================
# Root group
# ============================================================================

@click.group()
@click.version_option(version=__version__, prog_name="biroute")
@click.option("--config", "config_paths", multiple=True, help="YAML/JSON config file (repeatable)")
@click.option("--env-file", type=click.Path(dir_okay=False), help=".env file with BIROUTE_* settings")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, config_paths: Tuple[str, ...], env_file: Optional[str], verbose: bool):
    """Bidirectional route patterns: match paths and render them back.

    \b
    Quick start:
      biroute match "/users/:id" /users/42
      biroute interpolate "/users/:id" -p id=42
      biroute sort /users /users/:id /users/settings
    """
    overrides = {"log_level": "DEBUG"} if verbose else None
    try:
        config = ConfigLoader.load(list(config_paths), env_file=env_file, overrides=overrides).routing_config()
    except ConfigError as exc:
        raise click.ClickException(f"Invalid configuration: {exc.message}") from exc

    if verbose and not logging.getLogger().handlers:
        logging.basicConfig(stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")
    configure_logging(config)
    logger.debug("Loaded config %s", config.to_dict())

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["cache"] = build_cache(config)


# ============================================================================
# Commands
# ============================================================================

@cli.command("match")
@click.argument("pattern")
@click.argument("target")
@click.option("--end/--no-end", default=None, help="Require the whole path to be consumed")
@click.option("--decode", "decode_values", is_flag=True, help="Decode values through the route schema")
@click.pass_context
def match_cmd(ctx, pattern: str, target: str, end: Optional[bool], decode_values: bool):
    """
    Match TARGET against PATTERN and print the captured parameters.

    Exits with status 1 when TARGET does not match.

    Examples:
      biroute match "/users/:id" /users/42
      biroute match "/search?q=:query" "/search?q=books"
    """
    route = _route(ctx, pattern, end)

    if decode_values:
        result = route.decode(target)
        if isinstance(result, RoutingFault):
            _echo_json(result.to_dict())
            ctx.exit(1)
        _echo_json(result)
        return

    params = route.match(target)
    if params is None:
        click.echo(f"No match: '{target}' does not match '{route.path}'", err=True)
        ctx.exit(1)
    _echo_json(params)


def _parse_assignments(route: Route, assignments: Tuple[str, ...]) -> Dict[Any, Any]:
    multiple = {part.key for part in route.schema.captures if part.multiple}
    params: Dict[Any, Any] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep:
            raise click.BadParameter(f"expected key=value, got '{assignment}'", param_hint="-p")
        param_key: Any = int(key) if key.isdigit() else key
        if param_key in multiple:
            params.setdefault(param_key, []).append(value)
        else:
            params[param_key] = value
    return params


@cli.command("interpolate")
@click.argument("pattern")
@click.option("--param", "-p", "assignments", multiple=True, help="key=value (repeat for lists)")
@click.pass_context
def interpolate_cmd(ctx, pattern: str, assignments: Tuple[str, ...]):
    """
    Render a concrete path from PATTERN and parameters.

    Examples:
      biroute interpolate "/users/:id" -p id=42
      biroute interpolate "/files/:path+" -p path=a -p path=b
    """
    route = _route(ctx, pattern, None)
    params = _parse_assignments(route, assignments)
    try:
        click.echo(route.interpolate(params))
    except InterpolationError as exc:
        raise click.ClickException(exc.message) from exc


@cli.command("sort")
@click.argument("patterns", nargs=-1)
@click.option("--file", "-f", "source", type=click.File("r"), help="Read patterns from a file, one per line")
def sort_cmd(patterns: Tuple[str, ...], source):
    """
    Print PATTERNS from most to least specific.

    Examples:
      biroute sort /users /users/:id /users/settings
    """
    items: List[str] = list(patterns)
    if source is not None:
        items.extend(line.strip() for line in source if line.strip())
    if not items:
        raise click.UsageError("No patterns given")
    for pattern in sort_routes(items):
        click.echo(pattern)


@cli.command("inspect")
@click.argument("pattern")
@click.option("--end/--no-end", default=None, help="Require the whole path to be consumed")
@click.pass_context
def inspect_cmd(ctx, pattern: str, end: Optional[bool]):
    """
    Show the canonical form, AST and parameters of PATTERN.

    Examples:
      biroute inspect "/users/{u-:id}?tab=:tab?"
    """
    route = _route(ctx, pattern, end)
    data = route.to_dict()
    data["openapi_path"] = generate_openapi_path(route)
    data["params"] = [desc.to_dict() for desc in describe_params(route)]
    _echo_json(data)


def main():
    """Entry point for the `biroute` command."""
    cli(obj={})


if __name__ == "__main__":
    main()
