"""CLI entry points for taking and extracting PDF quizzes."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from ..core.ai import load_client
from ..core.logging import configure_logger
from ..core import workspace as workspace_mod
from ..core.workspace import WorkspaceError
from .config import (
    CONFIG_FILENAME,
    ConfigOverrides,
    LoadResult,
    QuizzerConfig,
    QuizzerConfigError,
    load_config,
    write_template,
)
from .controller import QuizController
from .document import DocumentPaginator
from .errors import QuizError
from .export import read_questions, write_questions
from .extractor import ChunkExtractor
from .models import QuizMode
from .processing import ChunkProcessor, ProcessingState
from .services import ExplanationService, JokeService
from .view import InputProvider, QuizView, console_input

__all__ = ["config_main", "extract_main", "take_main"]


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--chunk-size",
        type=int,
        help="Pages sent to the model per request (defaults to 3).",
    )
    parser.add_argument("--model", help="Override the OpenAI model name.")
    parser.add_argument(
        "--config",
        type=Path,
        help=(
            "Path to a TOML config file (defaults to the workspace config "
            "directory)."
        ),
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help="Override the workspace root used for config, logs and exports.",
    )
    parser.add_argument(
        "--log-level",
        help="Set the logging level for the run (defaults to INFO).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror debug logs to stderr.",
    )


def _build_take_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-quizzer take",
        description=(
            "Extract multiple-choice questions from a PDF and take them as an "
            "interactive quiz while the rest of the document is processed."
        ),
        epilog=(
            "A .jsonl file written by `pdf-quizzer extract` can be passed "
            "instead of a PDF to replay its questions."
        ),
    )
    parser.add_argument(
        "file", type=Path, help="PDF document or JSONL question export."
    )
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in QuizMode],
        help="Quiz mode (defaults to the configured mode).",
    )
    _add_common_arguments(parser)
    return parser


def _build_extract_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-quizzer extract",
        description=(
            "Extract every question from a PDF and write them to a JSONL file."
        ),
    )
    parser.add_argument("file", type=Path, help="PDF document to process.")
    parser.add_argument(
        "--output",
        type=Path,
        help=(
            "Destination JSONL path (defaults to the workspace exports "
            "directory)."
        ),
    )
    _add_common_arguments(parser)
    return parser


def _build_config_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdf-quizzer config",
        description="Manage configuration files for pdf-quizzer.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        help="Write the default pdf_quizzer.toml template.",
    )
    init_parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Destination for the config TOML (defaults to the workspace "
            "config directory)."
        ),
    )
    init_parser.add_argument(
        "--workspace",
        type=Path,
        help=(
            "Workspace root override used when resolving the default config "
            "path."
        ),
    )
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the destination if a config already exists.",
    )
    return parser


def take_main(
    argv: Sequence[str] | None = None,
    *,
    client: Any = None,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
) -> int:
    parser = _build_take_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = console or Console()

    mode = QuizMode.from_value(args.mode) if args.mode else None
    loaded = _load(args, console, mode=mode)
    if loaded is None:
        return 2
    config = loaded.config
    logger, _ = configure_logger(
        "pdf_quizzer.take",
        log_dir=loaded.layout.path_for("logs"),
        level=config.log_level,
        verbose=args.verbose,
    )
    logger.debug("take CLI invoked", extra={"file": args.file})

    source: Path = args.file
    if not source.is_file():
        _error(console, f"File not found: {source}")
        return 1

    replay = source.suffix.lower() == ".jsonl"
    if client is None:
        try:
            client = load_client(timeout=config.request_timeout)
        except RuntimeError as exc:
            if not replay:
                _error(console, str(exc))
                return 2
            console.print(
                f"[yellow]{escape(str(exc))} Explanations are disabled.[/]"
            )

    explainer = joker = None
    if client is not None:
        explainer = ExplanationService(
            client,
            model=config.model,
            max_attempts=config.max_attempts,
            base_delay=config.service_base_delay,
            logger=logger,
        )
        joker = JokeService(
            client,
            model=config.model,
            max_attempts=config.max_attempts,
            base_delay=config.service_base_delay,
            logger=logger,
        )

    try:
        return asyncio.run(
            _take(
                source,
                replay=replay,
                client=client,
                config=config,
                logger=logger,
                console=console,
                input_provider=input_provider or console_input(console),
                explainer=explainer,
                joker=joker,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Interrupted.[/]")
        return 130


async def _take(
    source: Path,
    *,
    replay: bool,
    client: Any,
    config: QuizzerConfig,
    logger: logging.Logger,
    console: Console,
    input_provider: InputProvider,
    explainer: Optional[ExplanationService],
    joker: Optional[JokeService],
) -> int:
    controller = QuizController(
        _build_extractor(client, config, logger),
        chunk_size=config.chunk_size,
        logger=logger,
    )
    view = QuizView(
        controller,
        console,
        input_provider,
        explainer=explainer,
        joker=joker,
    )
    if replay:
        try:
            questions = read_questions(source, logger=logger)
        except (OSError, ValueError) as exc:
            _error(console, f"Could not read {source}: {exc}")
            return 1
        controller.load_questions(questions, mode=config.mode)
        return await view.run_session()
    return await view.run(source, mode=config.mode)


def extract_main(
    argv: Sequence[str] | None = None,
    *,
    client: Any = None,
    console: Optional[Console] = None,
) -> int:
    parser = _build_extract_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    console = console or Console()

    loaded = _load(args, console)
    if loaded is None:
        return 2
    config = loaded.config
    logger, log_path = configure_logger(
        "pdf_quizzer.extract",
        log_dir=loaded.layout.path_for("logs"),
        level=config.log_level,
        verbose=args.verbose,
    )

    source: Path = args.file
    output = args.output or (
        loaded.layout.path_for("exports") / f"{source.stem}.jsonl"
    )
    if client is None:
        try:
            client = load_client(timeout=config.request_timeout)
        except RuntimeError as exc:
            _error(console, str(exc))
            return 2

    extractor = _build_extractor(client, config, logger)
    try:
        with DocumentPaginator.open(source) as paginator:
            state = asyncio.run(
                _extract(paginator, extractor, config, logger, console)
            )
    except QuizError as exc:
        _error(console, str(exc))
        console.print(f"[dim]Details logged to {log_path}[/]")
        return 1

    exhibits_dir = output.parent / f"{output.stem}-exhibits"
    written = write_questions(
        output, state.questions, exhibits_dir=exhibits_dir
    )
    scorable = sum(1 for question in state.questions if question.is_scorable)
    logger.info(
        "Questions exported",
        extra={
            "output": written,
            "questions": len(state.questions),
            "scorable": scorable,
            "pages": state.total_pages,
        },
    )
    console.print(
        f"Wrote {len(state.questions)} question(s) "
        f"({scorable} scorable) -> {written}"
    )
    return 0


async def _extract(
    paginator: DocumentPaginator,
    extractor: ChunkExtractor,
    config: QuizzerConfig,
    logger: logging.Logger,
    console: Console,
) -> ProcessingState:
    with console.status("Loading PDF...") as status:

        def _progress(state: ProcessingState) -> None:
            if state.message:
                status.update(
                    f"{state.message} ({len(state.questions)} found)"
                )

        processor = ChunkProcessor(
            paginator,
            extractor,
            chunk_size=config.chunk_size,
            logger=logger,
            listeners=[_progress],
        )
        return await processor.run()


def config_main(argv: Sequence[str] | None = None) -> int:
    parser = _build_config_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    return _handle_config_init(args)


def _handle_config_init(args: argparse.Namespace) -> int:
    try:
        target = _resolve_config_target(args)
    except WorkspaceError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    try:
        written = write_template(target, overwrite=args.force)
    except QuizzerConfigError as exc:
        sys.stderr.write(str(exc) + "\n")
        return 1

    sys.stdout.write(f"Wrote pdf-quizzer config to {written}\n")
    return 0


def _resolve_config_target(args: argparse.Namespace) -> Path:
    if args.path is not None:
        candidate = args.path.expanduser()
        if not candidate.is_absolute():
            candidate = (Path.cwd() / candidate).resolve()
        return candidate

    layout = workspace_mod.ensure_workspace(path=args.workspace)
    return layout.path_for("config") / CONFIG_FILENAME


def _load(
    args: argparse.Namespace,
    console: Console,
    *,
    mode: Optional[QuizMode] = None,
) -> Optional[LoadResult]:
    overrides = ConfigOverrides(
        chunk_size=args.chunk_size,
        model=args.model,
        mode=mode,
        log_level=args.log_level,
    )
    try:
        return load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except (QuizzerConfigError, WorkspaceError) as exc:
        _error(console, str(exc))
        return None


def _build_extractor(
    client: Any, config: QuizzerConfig, logger: logging.Logger
) -> ChunkExtractor:
    return ChunkExtractor(
        client,
        model=config.model,
        temperature=config.temperature,
        max_output_tokens=config.max_output_tokens,
        max_attempts=config.max_attempts,
        base_delay=config.extraction_base_delay,
        logger=logger,
    )


def _error(console: Console, message: str) -> None:
    console.print(f"[red]Error:[/] {escape(message)}")
