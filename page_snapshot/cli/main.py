#!/usr/bin/env python3
"""Main CLI entry point for Page Snapshot using Typer.

Captures pages into self-contained documents, uploads them to a snapshot
store, and runs the store itself.
"""

import asyncio
import json
import logging
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from typing_extensions import Annotated

from .. import __version__
from ..client import SnapshotClient, UploadError
from ..models.capture import CaptureResult
from ..services.capture_service import CaptureError, CaptureService
from .config import CLIConfiguration, load_configuration, print_configuration, validate_configuration


class ExitCode(IntEnum):
    """CLI exit codes."""
    SUCCESS = 0        # Snapshot captured and stored or written
    CAPTURE_ERROR = 1  # Capture or upload failed
    CONFIG_ERROR = 2   # Configuration or usage error


app = typer.Typer(
    name="page-snapshot",
    help="Page Snapshot - capture web pages as self-contained HTML documents",
    add_completion=False,
    rich_markup_mode="rich"
)


@app.callback()
def main():
    """
    Page Snapshot - capture web pages as self-contained HTML documents.

    Styles, images, canvases and frames are inlined, scripts are removed,
    and the result is uploaded to a snapshot store that serves it at a
    short URL.
    """
    pass


@app.command(name="version")
def show_version():
    """Show version information."""
    typer.echo(f"Page Snapshot CLI v{__version__}")


def _configure_logging(config: CLIConfiguration) -> None:
    if config.output.verbose:
        level = logging.DEBUG
    elif config.output.quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _load_or_exit(config_file: Optional[Path], cli_overrides: Dict[str, Any]) -> CLIConfiguration:
    try:
        config = load_configuration(config_file=config_file, cli_overrides=cli_overrides)
    except (FileNotFoundError, ValueError) as e:
        typer.echo(f"❌ Configuration error: {e}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    errors = validate_configuration(config)
    if errors:
        for error in errors:
            typer.echo(f"❌ {error}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    return config


def _capture_overrides(
    api_url: Optional[str],
    expires: Optional[str],
    timeout: Optional[float],
    verbose: bool,
    quiet: bool,
    json_output: bool
) -> Dict[str, Any]:
    # Only flags that were given override lower-precedence sources
    overrides: Dict[str, Any] = {}
    if api_url is not None:
        overrides.setdefault("server", {})["api_url"] = api_url
    if expires is not None:
        overrides.setdefault("capture", {})["expires"] = expires
    if timeout is not None:
        overrides.setdefault("capture", {})["fetch_timeout_seconds"] = timeout
    output = {}
    if verbose:
        output["verbose"] = True
    if quiet:
        output["quiet"] = True
    if json_output:
        output["json_output"] = True
    if output:
        overrides["output"] = output
    return overrides


async def _finish(
    service: CaptureService,
    result: CaptureResult,
    config: CLIConfiguration,
    out: Optional[Path]
) -> Dict[str, Any]:
    """Write the capture to ``out`` or upload it, returning a summary."""
    if out is not None:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(result.html, encoding="utf-8")
        return {"file": str(out), "title": result.title, "sourceUrl": result.source_url}

    async with SnapshotClient(config.server.api_url) as client:
        service.client = client
        response = await service.upload(result, config.capture.expires)
    return response.model_dump(mode="json", by_alias=True)


def _report(summary: Dict[str, Any], config: CLIConfiguration) -> None:
    if config.output.json_output:
        typer.echo(json.dumps(summary, indent=2))
    elif not config.output.quiet:
        if "url" in summary:
            typer.echo(f"✅ Snapshot stored: {summary['url']}")
            if summary.get("expiresAt"):
                typer.echo(f"   Expires: {summary['expiresAt']}")
        else:
            typer.echo(f"✅ Snapshot written: {summary['file']}")


def _run(coro) -> Dict[str, Any]:
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        typer.echo("❌ Operation interrupted by user", err=True)
        raise typer.Exit(code=ExitCode.CAPTURE_ERROR.value)
    except (CaptureError, UploadError, OSError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=ExitCode.CAPTURE_ERROR.value)


@app.command()
def capture(
    url: Annotated[
        str,
        typer.Argument(help="Page to capture")
    ],

    expires: Annotated[
        Optional[str],
        typer.Option("--expires", help="Expiration: <n>m, <n>h, <n>d or never")
    ] = None,

    api_url: Annotated[
        Optional[str],
        typer.Option("--api-url", help="Snapshot store base URL")
    ] = None,

    out: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Write the snapshot to this file instead of uploading")
    ] = None,

    # Browser options
    headful: Annotated[
        bool,
        typer.Option("--headful", help="Run browser with GUI (for debugging)")
    ] = False,

    wait_strategy: Annotated[
        Optional[str],
        typer.Option("--wait", help="Load wait strategy: networkidle, load, domcontentloaded, timeout")
    ] = None,

    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Per-resource fetch timeout in seconds")
    ] = None,

    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file")
    ] = None,

    # Output options
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,

    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Quiet mode (minimal output)")
    ] = False,

    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON")
    ] = False,

    print_config: Annotated[
        bool,
        typer.Option("--print-config", help="Print effective configuration and exit")
    ] = False,
):
    """
    Capture a page in a headless browser and upload it.

    Examples:

        # Capture and keep for one day
        page-snapshot capture https://example.com --expires 1d

        # Capture to a local file
        page-snapshot capture https://example.com --out example.html
    """
    overrides = _capture_overrides(api_url, expires, timeout, verbose, quiet, json_output)
    browser: Dict[str, Any] = {}
    if headful:
        browser["headful"] = True
    if wait_strategy is not None:
        browser["wait_strategy"] = wait_strategy
    if browser:
        overrides["browser"] = browser

    config = _load_or_exit(config_file, overrides)

    if print_config:
        typer.echo("📋 Effective Configuration:")
        typer.echo(print_configuration(config))
        typer.echo(f"\n📁 Configuration sources: {', '.join(config.loaded_from)}")
        raise typer.Exit(code=ExitCode.SUCCESS.value)

    _configure_logging(config)

    service = CaptureService(
        capture_config=config.to_capture_config(),
        browser_config=config.to_browser_config(),
        session_config=config.to_session_config(),
    )

    async def _capture_and_finish():
        result = await service.capture(url)
        return await _finish(service, result, config, out)

    if not config.output.quiet and not config.output.json_output:
        typer.echo(f"📸 Capturing {url}")

    _report(_run(_capture_and_finish()), config)


@app.command(name="capture-html")
def capture_html(
    html_file: Annotated[
        Path,
        typer.Argument(help="Saved HTML file to capture")
    ],

    base_url: Annotated[
        str,
        typer.Option("--base-url", help="URL the markup was saved from; relative references resolve against it")
    ],

    title: Annotated[
        Optional[str],
        typer.Option("--title", help="Snapshot title (defaults to the document title)")
    ] = None,

    expires: Annotated[
        Optional[str],
        typer.Option("--expires", help="Expiration: <n>m, <n>h, <n>d or never")
    ] = None,

    api_url: Annotated[
        Optional[str],
        typer.Option("--api-url", help="Snapshot store base URL")
    ] = None,

    out: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Write the snapshot to this file instead of uploading")
    ] = None,

    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Per-resource fetch timeout in seconds")
    ] = None,

    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file")
    ] = None,

    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,

    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Quiet mode (minimal output)")
    ] = False,

    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON")
    ] = False,
):
    """
    Capture a saved HTML file without a browser.

    Stylesheets and images referenced by the markup are fetched and
    inlined; canvases and frame contents are not available offline.
    """
    if not html_file.exists():
        typer.echo(f"❌ HTML file not found: {html_file}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    config = _load_or_exit(
        config_file,
        _capture_overrides(api_url, expires, timeout, verbose, quiet, json_output)
    )
    _configure_logging(config)

    try:
        html = html_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        typer.echo(f"❌ Cannot read {html_file}: {e}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    service = CaptureService(capture_config=config.to_capture_config())

    async def _capture_and_finish():
        result = await service.capture_html(html, base_url, title=title)
        return await _finish(service, result, config, out)

    _report(_run(_capture_and_finish()), config)


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", help="Bind address")
    ] = None,

    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Bind port")
    ] = None,

    storage_path: Annotated[
        Optional[Path],
        typer.Option("--storage-path", help="Directory for stored snapshots")
    ] = None,

    backend: Annotated[
        Optional[str],
        typer.Option("--backend", help="Storage backend: local or memory")
    ] = None,

    public_base_url: Annotated[
        Optional[str],
        typer.Option("--public-url", help="Public URL prefix for snapshot links")
    ] = None,

    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file")
    ] = None,

    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Verbose output")
    ] = False,
):
    """
    Run the snapshot store HTTP service.
    """
    import uvicorn

    from ..api.main import app as api_app
    from ..api.routes.snapshots import set_snapshot_service
    from ..api.services import SnapshotService
    from ..persistence.storage import create_snapshot_store

    server: Dict[str, Any] = {}
    for key, value in (
        ("host", host),
        ("port", port),
        ("storage_path", storage_path),
        ("backend", backend),
        ("public_base_url", public_base_url),
    ):
        if value is not None:
            server[key] = value

    overrides: Dict[str, Any] = {"server": server} if server else {}
    if verbose:
        overrides["output"] = {"verbose": True}
    config = _load_or_exit(config_file, overrides)

    store_config = config.to_store_config()
    try:
        store_config.validate()
    except ValueError as e:
        typer.echo(f"❌ Configuration error: {e}", err=True)
        raise typer.Exit(code=ExitCode.CONFIG_ERROR.value)

    if store_config.backend == "local":
        store = create_snapshot_store("local", base_path=store_config.storage_path)
    else:
        store = create_snapshot_store(store_config.backend)
    set_snapshot_service(SnapshotService(store, store_config))

    typer.echo(f"🚀 Serving snapshots on http://{config.server.host}:{config.server.port} ({store_config.backend} backend)")

    uvicorn.run(
        api_app,
        host=config.server.host,
        port=config.server.port,
        log_level="debug" if config.output.verbose else "info",
        access_log=True,
    )


def cli_main():
    """Entry point for console script."""
    app()


if __name__ == "__main__":
    app()
