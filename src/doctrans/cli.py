from __future__ import annotations

import logging
import signal
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from .claude_client import DEFAULT_MODEL, ClaudeTranslator
from .discovery import discover_documents
from .errors import ConfigError, StoreError
from .fill_engine import DEFAULT_BATCH_MULTIPLIER, FillEngine
from .memory import TranslationStore
from .patching import PatchStatus, patch_documents
from .scanning import scan_documents
from .secure_logger import setup_logging
from .settings import get_settings, require_include_dirs

logger = logging.getLogger(__name__)

app = typer.Typer(help="Build a translation memory for IntelliSense XML docs and patch translations back in.")

IncludeDirsOption = typer.Option(None, "--include-dir", "-i", help="Directory searched recursively for *.xml (repeatable).")
ExcludeFilesOption = typer.Option(None, "--exclude-file", "-x", help="XML file name to ignore (repeatable).")
SkipNoDllOption = typer.Option(True, "--skip-no-dll/--no-skip-no-dll", help="Ignore XML files without a sibling .dll.")
DatabaseUrlOption = typer.Option(None, "--database-url", help="SQLAlchemy database URL (default from settings).")
LanguageOption = typer.Option(None, "--language", "-l", help="Target language code (default from settings).")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output, including every translation."),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also append logs to this file."),
) -> None:
    settings = get_settings()
    setup_logging(logging.DEBUG if verbose else logging.INFO, log_file=log_file or settings.log_file)


def _open_store(database_url: str | None) -> TranslationStore:
    return TranslationStore(database_url or get_settings().database_url)


def _include_dirs(include_dirs: Optional[List[Path]]) -> tuple[str, ...]:
    try:
        return require_include_dirs([str(d) for d in include_dirs or ()] or get_settings().include_dirs)
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc


@contextmanager
def _cancel_on_interrupt() -> Iterator[threading.Event]:
    """First Ctrl+C asks the running pass to stop at the next checkpoint; a second one aborts."""
    cancel = threading.Event()

    def _handler(signum, frame) -> None:
        if cancel.is_set():
            raise KeyboardInterrupt
        typer.echo("Cancelling after in-flight work finishes (Ctrl+C again to abort)...", err=True)
        cancel.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)


def _fail(exc: StoreError) -> typer.Exit:
    logger.error("%s", exc)
    typer.echo(f"Database error: {exc}", err=True)
    return typer.Exit(code=1)


@app.command()
def migrate(database_url: Optional[str] = DatabaseUrlOption) -> None:
    """Create the translation memory tables if they do not exist."""
    store = _open_store(database_url)
    logger.info("Starting database migration...")
    try:
        store.create_schema()
    except StoreError as exc:
        raise _fail(exc) from exc
    typer.echo("Database schema is up to date.")


@app.command()
def scan(
    include_dirs: Optional[List[Path]] = IncludeDirsOption,
    exclude_files: Optional[List[str]] = ExcludeFilesOption,
    skip_no_dll: bool = SkipNoDllOption,
    content_filter: Optional[str] = typer.Option(None, "--content-filter", help="Regex marking text as already translated."),
    database_url: Optional[str] = DatabaseUrlOption,
) -> None:
    """Record every untranslated documentation fragment as an original."""
    settings = get_settings()
    dirs = _include_dirs(include_dirs)
    excluded = exclude_files or list(settings.exclude_files)
    pattern = content_filter or settings.content_filter
    logger.info(
        "Scan IntelliSense files: include_dirs=%s exclude_files=%s skip_no_dll=%s content_filter=%s",
        dirs, excluded, skip_no_dll, pattern,
    )
    store = _open_store(database_url)
    paths = discover_documents(dirs, exclude_files=excluded, skip_no_dll=skip_no_dll, exclude_dir_names=[settings.save_folder])
    with _cancel_on_interrupt() as cancel:
        try:
            store.create_schema()
            report = scan_documents(paths, store, content_filter=pattern, cancel=cancel)
        except StoreError as exc:
            raise _fail(exc) from exc
    typer.echo(
        f"Scan complete: {report.documents_scanned} documents scanned, {report.documents_failed} skipped, "
        f"{report.originals_added} new originals."
    )


@app.command()
def translate(
    api_url: Optional[str] = typer.Option(None, "--api-url", help="Translation service endpoint (default from settings)."),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Translation service key (default ANTHROPIC_API_KEY)."),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name (default ANTHROPIC_MODEL)."),
    temperature: float = typer.Option(0.0, "--temperature", help="Sampling temperature."),
    language: Optional[str] = LanguageOption,
    parallelism: Optional[int] = typer.Option(None, "--parallelism", "-p", min=1, help="Concurrent requests."),
    batch_multiplier: int = typer.Option(DEFAULT_BATCH_MULTIPLIER, "--batch-multiplier", min=1, help="Round size = parallelism x this."),
    database_url: Optional[str] = DatabaseUrlOption,
) -> None:
    """Fill missing translations for one language using the translation service."""
    settings = get_settings()
    try:
        translator = ClaudeTranslator(
            api_key=api_key or settings.require_api_key(),
            model=model or settings.anthropic_model or DEFAULT_MODEL,
            base_url=api_url or settings.anthropic_base_url,
        )
    except ConfigError as exc:
        raise typer.BadParameter(str(exc)) from exc

    target = language or settings.language
    engine = FillEngine(
        _open_store(database_url),
        translator,
        target,
        parallelism=parallelism or settings.parallelism,
        batch_multiplier=batch_multiplier,
        temperature=temperature,
    )
    typer.echo(f"Translating pending originals -> {target} ({engine.parallelism} parallel requests)")
    with _cancel_on_interrupt() as cancel:
        try:
            report = engine.run(cancel)
        except StoreError as exc:
            raise _fail(exc) from exc
    status = "cancelled" if report.cancelled else "complete"
    typer.echo(
        f"Translation {status}: {report.translated} translated, {report.skipped} skipped "
        f"in {report.rounds} rounds."
    )


@app.command()
def patch(
    include_dirs: Optional[List[Path]] = IncludeDirsOption,
    exclude_files: Optional[List[str]] = ExcludeFilesOption,
    skip_no_dll: bool = SkipNoDllOption,
    save_folder: Optional[str] = typer.Option(None, "--save-folder", help="Sub-folder receiving patched files."),
    language: Optional[str] = LanguageOption,
    database_url: Optional[str] = DatabaseUrlOption,
) -> None:
    """Write translated copies of the documentation files next to the originals."""
    settings = get_settings()
    dirs = _include_dirs(include_dirs)
    excluded = exclude_files or list(settings.exclude_files)
    folder = save_folder or settings.save_folder
    target = language or settings.language
    logger.info(
        "Patch IntelliSense files: include_dirs=%s exclude_files=%s skip_no_dll=%s save_folder=%s language=%s",
        dirs, excluded, skip_no_dll, folder, target,
    )
    store = _open_store(database_url)
    paths = discover_documents(
        dirs,
        exclude_files=excluded,
        skip_no_dll=skip_no_dll,
        check_protected=True,
        exclude_dir_names=[folder],
    )
    with _cancel_on_interrupt() as cancel:
        try:
            report = patch_documents(paths, store, target, save_folder=folder, cancel=cancel)
        except StoreError as exc:
            raise _fail(exc) from exc
    typer.echo(
        f"Patch complete: {report.written} written, {report.count(PatchStatus.ALREADY_PATCHED)} already patched, "
        f"{report.count(PatchStatus.NO_TRANSLATIONS)} without translations, {report.count(PatchStatus.FAILED)} failed."
    )


if __name__ == "__main__":
    app()
