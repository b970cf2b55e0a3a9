from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import NoReturn, Optional
import json
import logging

import typer

from gloss import rename as glossrename
from gloss import store
from gloss.cache import SignatureCache
from gloss.cache_status import clear_caches, get_cache_status
from gloss.check import format_check_report, run_check
from gloss.config import GlossConfig, GlossConfigError, load_config_from_root
from gloss.constants import OutputFormat, OutputFormatLiteral, ScanModeLiteral
from gloss.locks import LockTimeoutError
from gloss.usage_graph import build_key_usage_map

CONFIG_ERROR_EXIT_CODE = 2
LOCK_TIMEOUT_EXIT_CODE = 3


def _exit_with_error(message: str, code: int = 1) -> NoReturn:
    """Print error message to stderr and exit with given code."""
    typer.secho(f"Error: {message}", fg="red", err=True)
    raise typer.Exit(code)


app = typer.Typer(add_completion=False, no_args_is_help=True)
cache_app = typer.Typer(no_args_is_help=True)
app.add_typer(cache_app, name="cache")


@dataclass
class CLIState:
    root: Path
    config: GlossConfig | None = None
    cache: SignatureCache | None = None


def _require_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if isinstance(state, CLIState):
        return state
    return CLIState(root=Path.cwd())


def _ensure_config(state: CLIState) -> GlossConfig:
    if state.config is not None:
        return state.config
    try:
        state.config = load_config_from_root(state.root)
    except GlossConfigError as exc:
        _exit_with_error(str(exc), CONFIG_ERROR_EXIT_CODE)
    return state.config


def _echo_json(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = CLIState(root=Path.cwd(), cache=SignatureCache())


@app.command()
def check(
    ctx: typer.Context,
    output_format: OutputFormatLiteral = typer.Option(OutputFormat.HUMAN, "--format"),
    as_json: bool = typer.Option(False, "--json"),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Skip the signature cache and do not record cache metrics."
    ),
) -> None:
    state = _require_state(ctx)
    config = _ensure_config(state)
    result = run_check(config, cache=None if no_cache else state.cache)
    if as_json:
        output_format = OutputFormat.JSON
    if output_format in (OutputFormat.HUMAN, OutputFormat.BOTH):
        typer.echo(format_check_report(result))
    if output_format == OutputFormat.BOTH:
        typer.echo("\nJSON output:")
    if output_format in (OutputFormat.JSON, OutputFormat.BOTH):
        _echo_json(result.as_dict())
    if not result.ok:
        raise typer.Exit(1)


@app.command()
def usage(
    ctx: typer.Context,
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Skip the signature cache and do not record cache metrics."
    ),
) -> None:
    state = _require_state(ctx)
    config = _ensure_config(state)
    usage_map = build_key_usage_map(config, cache=None if no_cache else state.cache)
    _echo_json(usage_map.as_dict())


@app.command("rename-key")
def rename_key(
    ctx: typer.Context,
    old_key: str = typer.Argument(...),
    new_key: str = typer.Argument(...),
    mode: Optional[ScanModeLiteral] = typer.Option(None, "--mode"),
) -> None:
    state = _require_state(ctx)
    config = _ensure_config(state)
    if old_key == new_key:
        _exit_with_error("old and new key are identical.")
    try:
        locales = store.rename_translation_key(config, old_key, new_key)
    except LockTimeoutError as exc:
        _exit_with_error(str(exc), LOCK_TIMEOUT_EXIT_CODE)
    except KeyError:
        _exit_with_error(f"translation key not found: {old_key}")
    except ValueError as exc:
        _exit_with_error(str(exc))
    result = glossrename.rename_key_usage(
        old_key, new_key, config.root_dir, mode or config.scan.mode
    )
    typer.echo(
        f"Renamed {old_key} -> {new_key} in {len(locales)} locale(s); "
        f"{result.replacements} reference(s) in {len(result.changed_files)} file(s) "
        f"({result.files_scanned} scanned)."
    )
    for relpath in result.changed_files:
        typer.echo(f"- {relpath}")


@cache_app.command("status")
def cache_status(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json"),
) -> None:
    state = _require_state(ctx)
    config = _ensure_config(state)
    report = get_cache_status(config, state.cache)
    if as_json:
        _echo_json(asdict(report))
        return
    typer.echo(f"Metrics file: {'found' if report.metrics_file_found else 'missing'}")
    if report.metrics_updated_at:
        typer.echo(f"Updated at: {report.metrics_updated_at}")
    for label, bucket in (("usage_scanner", report.usage_scanner), ("key_usage", report.key_usage)):
        stale = " (stale)" if bucket.stale_relative_to_config else ""
        typer.echo(
            f"{label}: {bucket.file_count} files, {bucket.total_size_bytes} bytes "
            f"[{bucket.source}]{stale}"
        )
    typer.echo(
        f"Total: {report.total_cached_files} files, {report.total_cached_size_bytes} bytes"
    )
    if report.oldest_entry_age_ms is not None:
        typer.echo(f"Oldest entry age: {report.oldest_entry_age_ms} ms")


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    state = _require_state(ctx)
    config = _ensure_config(state)
    report = clear_caches(config, state.cache)
    removed = "removed" if report.metrics_existed else "not present"
    typer.echo(
        f"Cleared {report.memory.bucket_count} cache bucket(s) "
        f"({report.memory.file_count} files); metrics {report.metrics_path} {removed}."
    )
