from __future__ import annotations

import logging
import sys
from dataclasses import replace
from typing import Optional

import typer

from .workflows.errors import MalformedIdentifier, WirefetchError
from .workflows.doctor import build_doctor_report, format_doctor_report
from .workflows.fetcher import fetch, open_cache
from .workflows.fetcher_config import load_policy
from .workflows.identifier import parse
from .workflows.render import present

app = typer.Typer(add_help_option=False, no_args_is_help=False)

LOG_FORMAT = "[%(levelname)s]\t%(message)s"


def _minimal_help() -> str:
    return """wirefetch

Usage:
  wirefetch get <identifier> [--clear-cache] [--no-cache] [--json] [--raw] [--debug]
  wirefetch doctor

Identifiers:
  http://host[:port][/path]   https://host[:port][/path]
  file://path                 data:<type>,<payload>
  view-source:<identifier>

Common options:
  --clear-cache   Delete the response cache before fetching.
  --no-cache      Skip the response cache for this fetch.
  --json          Print the fetch result as JSON.
  --raw           Print the decoded body without rendering.
  --debug         Log request/response details to stderr.

Discoverability:
  --help-full     Expanded help + env vars + cache layout.
  --find <query>  Search commands, flags, env vars, artifacts.
  --doctor        Run environment diagnostics and exit.
"""


def _help_full() -> str:
    return """wirefetch CLI

Commands:
  get      Fetch one identifier and print its text.
  doctor   Print environment and cache diagnostics.

Behaviour:
  http/https bodies are fetched over a single Connection: close GET,
  following up to WIREFETCH_MAX_ATTEMPTS redirects (default 5 fetches).
  Chunked transfer coding and gzip content coding are decoded.
  Successful http/https bodies are cached under WIREFETCH_CACHE_DIR.

Artifacts:
  .cache/.control         "<expiry>;<fingerprint>" records, one per line.
  .cache/<fingerprint>    Cached body bytes (SHA-256 of path + host + port).

Env vars:
  WIREFETCH_CACHE_DIR
  WIREFETCH_CACHE_DISABLE
  WIREFETCH_CACHE_CLEAR
  WIREFETCH_CACHE_TTL
  WIREFETCH_MAX_ATTEMPTS
  WIREFETCH_USER_AGENT
  WIREFETCH_TIMEOUT

Exit codes:
  0  success
  2  malformed identifier or bad configuration
  3  fetch failed (transport, protocol, encoding, redirects) or non-2xx status
"""


_FIND_INDEX = [
    ("command", "get", "Fetch one identifier and print its text."),
    ("command", "doctor", "Print environment and cache diagnostics."),
    ("flag", "--clear-cache", "Delete the response cache before fetching."),
    ("flag", "--no-cache", "Skip the response cache for this fetch."),
    ("flag", "--json", "Print the fetch result as JSON."),
    ("flag", "--raw", "Print the decoded body without rendering."),
    ("flag", "--debug", "Log request/response details to stderr."),
    ("flag", "--help-full", "Expanded help, env vars, cache layout."),
    ("flag", "--find", "Search commands, flags, env vars, artifacts."),
    ("flag", "--doctor", "Run environment diagnostics and exit."),
    ("env", "WIREFETCH_CACHE_DIR", "Cache root directory (default .cache)."),
    ("env", "WIREFETCH_CACHE_DISABLE", "Disable cache read/write."),
    ("env", "WIREFETCH_CACHE_CLEAR", "Clear the cache on start."),
    ("env", "WIREFETCH_CACHE_TTL", "Seconds before cached entries expire (0 = never)."),
    ("env", "WIREFETCH_MAX_ATTEMPTS", "Redirect attempt budget."),
    ("env", "WIREFETCH_USER_AGENT", "User-Agent product token."),
    ("env", "WIREFETCH_TIMEOUT", "Socket timeout in seconds."),
    ("artifact", ".control", "Cache index of expiry;fingerprint records."),
    ("artifact", "<fingerprint>", "Cached response body."),
]


def _run_find(query: str) -> str:
    needle = (query or "").strip().lower()
    if not needle:
        return ""
    lines = []
    for category, name, desc in _FIND_INDEX:
        haystack = f"{category} {name} {desc}".lower()
        if needle in haystack:
            lines.append(f"{category} {name} - {desc}")
    return "\n".join(lines)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING, format=LOG_FORMAT)
    logging.getLogger("wirefetch").setLevel(logging.DEBUG if debug else logging.WARNING)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    help: bool = typer.Option(False, "--help", "-h", is_eager=True, help="Show minimal help."),
    help_full: bool = typer.Option(False, "--help-full", is_eager=True, help="Show expanded help."),
    find: Optional[str] = typer.Option(None, "--find", is_eager=True, help="Search commands, flags, env vars, artifacts."),
    doctor: bool = typer.Option(False, "--doctor", is_eager=True, help="Run environment diagnostics and exit."),
) -> None:
    if help_full:
        typer.echo(_help_full())
        raise typer.Exit(code=0)
    if find is not None:
        output = _run_find(find)
        if output:
            typer.echo(output)
        raise typer.Exit(code=0)
    if doctor:
        report = build_doctor_report()
        typer.echo(format_doctor_report(report))
        raise typer.Exit(code=0 if report.get("ok", True) else 2)
    if help or ctx.invoked_subcommand is None:
        typer.echo(_minimal_help())
        raise typer.Exit(code=0)


@app.command("doctor", add_help_option=True)
def doctor_cmd() -> None:
    """Print environment and cache diagnostics."""
    report = build_doctor_report()
    typer.echo(format_doctor_report(report))
    raise typer.Exit(code=0 if report.get("ok", True) else 2)


@app.command("get", add_help_option=True)
def get_identifier(
    identifier: str = typer.Argument(..., help="Identifier to fetch (http, https, file, data, view-source)."),
    clear_cache: bool = typer.Option(False, "--clear-cache", help="Delete the response cache before fetching."),
    no_cache: bool = typer.Option(False, "--no-cache", help="Skip the response cache for this fetch."),
    json_out: bool = typer.Option(False, "--json", help="Print the fetch result as JSON."),
    raw: bool = typer.Option(False, "--raw", help="Print the decoded body without rendering."),
    debug: bool = typer.Option(False, "--debug", help="Log request/response details to stderr."),
) -> None:
    _configure_logging(debug)
    try:
        policy = load_policy()
    except ValueError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)
    if no_cache:
        policy = replace(policy, cache_disabled=True)
    if clear_cache:
        policy = replace(policy, clear_cache_on_start=True)

    try:
        target = parse(identifier)
    except MalformedIdentifier as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=2)

    try:
        cache = open_cache(policy)
        result = fetch(target, policy=policy, cache=cache)
    except (WirefetchError, OSError) as exc:
        typer.echo(f"fatal: {exc}", err=True)
        raise typer.Exit(code=3)

    if json_out:
        sys.stdout.write(result.to_json() + "\n")
    elif raw:
        sys.stdout.write(result.body)
    else:
        sys.stdout.write(present(result.body, result.identifier))
    raise typer.Exit(code=0 if result.ok else 3)


if __name__ == "__main__":
    app()
