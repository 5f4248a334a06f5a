"""Rich console presentation for PDF quizzes.

The view drives a :class:`~pdf_quizzer.quiz.controller.QuizController`: it
shows a loading screen until the first chunk yields questions, then lets
the user answer while extraction keeps running in the background. Input is
read through an async provider so processing continues while the user is
thinking.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Literal, Optional, Sequence, Union

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .controller import AppState, QuizController
from .errors import ServiceError
from .models import Question, QuizMode
from .services import ExplanationService, JokeService
from .session import QuizOutcome, QuizSession

InputProvider = Callable[[], Awaitable[str]]
CommandType = Literal[
    "select", "next", "prev", "flag", "explain", "submit", "quit", "requiz"
]

_WORD_COMMANDS: dict[str, CommandType] = {
    "next": "next",
    "prev": "prev",
    "previous": "prev",
    "flag": "flag",
    "explain": "explain",
    "submit": "submit",
    "quit": "quit",
    "exit": "quit",
    "requiz": "requiz",
}
_LETTER_COMMANDS: dict[str, CommandType] = {
    "n": "next",
    "p": "prev",
    "f": "flag",
    "e": "explain",
    "s": "submit",
    "q": "quit",
    "r": "requiz",
}


@dataclass(frozen=True)
class ViewCommand:
    """Normalized user command parsed from console input."""

    type: CommandType
    keys: tuple[str, ...] = ()


def option_keys(question: Question) -> list[str]:
    return [chr(ord("A") + i) for i in range(len(question.options))]


def parse_command(
    raw: Optional[str], keys: Sequence[str] = ()
) -> Optional[ViewCommand]:
    """Parse input into a command.

    A single letter that names one of the current options selects it, even
    when it would also be a one-letter command alias; spelled-out commands
    always work.
    """

    if raw is None:
        return None
    text = raw.strip().lower()
    if not text:
        return None
    if text in _WORD_COMMANDS:
        return ViewCommand(_WORD_COMMANDS[text])
    valid = {key.upper() for key in keys}
    tokens = [tok for tok in text.replace(",", " ").split() if tok]
    if all(len(tok) == 1 and tok.upper() in valid for tok in tokens):
        return ViewCommand("select", tuple(tok.upper() for tok in tokens))
    if text in _LETTER_COMMANDS:
        return ViewCommand(_LETTER_COMMANDS[text])
    return None


def console_input(console: Console) -> InputProvider:
    async def _read() -> str:
        return await asyncio.to_thread(console.input, "[bold green]>[/] ")

    return _read


class QuizView:
    """Interactive loop over the controller's application states."""

    def __init__(
        self,
        controller: QuizController,
        console: Console,
        input_provider: InputProvider,
        *,
        explainer: Optional[ExplanationService] = None,
        joker: Optional[JokeService] = None,
        poll_interval: float = 0.25,
    ) -> None:
        self._controller = controller
        self._console = console
        self._input = input_provider
        self._explainer = explainer
        self._joker = joker
        self._poll_interval = poll_interval
        self._index = 0

    async def run(
        self,
        source: Union[bytes, Path],
        *,
        mode: QuizMode = QuizMode.QUIZ,
    ) -> int:
        """Process ``source`` and run the quiz; return a process exit code."""

        await self._controller.process_file(source, mode=mode)
        await self._show_loading()
        return await self.run_session()

    async def run_session(self) -> int:
        controller = self._controller
        while True:
            state = controller.app_state
            if state is AppState.IDLE:
                self._render_error(controller.error)
                return 1 if controller.error else 0
            if state is AppState.QUIZ:
                self._index = 0
                finished = await self._quiz_loop()
                if not finished:
                    if controller.app_state is AppState.QUIZ:
                        self._console.print(
                            "\n[bold yellow]Ending session without "
                            "submission.[/]"
                        )
                        controller.reset()
                        return 0
                continue
            if state is AppState.RESULTS:
                if not await self._results_loop():
                    return 0
                continue
            await self._show_loading()

    async def _show_loading(self) -> None:
        controller = self._controller
        if controller.app_state is not AppState.LOADING:
            return
        joke_task = (
            asyncio.create_task(self._joker.joke()) if self._joker else None
        )
        ready = asyncio.create_task(controller.wait_until_ready())
        joke_shown = False
        try:
            with self._console.status(controller.processing_message) as status:
                while not ready.done():
                    if joke_task and joke_task.done() and not joke_shown:
                        joke = Text(joke_task.result())
                        self._console.print(Panel(joke, title="While you wait"))
                        joke_shown = True
                    status.update(
                        controller.processing_message or "Loading PDF..."
                    )
                    await asyncio.wait({ready}, timeout=self._poll_interval)
        finally:
            for task in (ready, joke_task):
                if task is not None and not task.done():
                    task.cancel()

    async def _quiz_loop(self) -> bool:
        controller = self._controller
        while controller.app_state is AppState.QUIZ:
            session = controller.session
            assert session is not None
            questions = session.questions
            self._index = min(self._index, max(len(questions) - 1, 0))
            question = questions[self._index]
            self._render_question(session, question)

            try:
                raw = await self._input()
            except (EOFError, KeyboardInterrupt, StopAsyncIteration):
                self._console.print("\n[bold yellow]Session interrupted.[/]")
                return False
            if controller.app_state is not AppState.QUIZ:
                return False
            command = parse_command(raw, option_keys(question))
            if command is None:
                self._console.print("[red]Unrecognized command. Try again.[/]")
                continue
            if command.type == "quit":
                return False
            if command.type == "submit":
                controller.complete_quiz()
                return True
            await self._apply(command, session, question)
        return False

    async def _apply(
        self, command: ViewCommand, session: QuizSession, question: Question
    ) -> None:
        console = self._console
        if command.type == "select":
            if session.is_locked(self._index):
                console.print("[yellow]Answer locked in focus mode.[/]")
                return
            options = question.options
            chosen = {options[ord(key) - ord("A")] for key in command.keys}
            updated = session.answer_for(self._index) ^ chosen
            session.submit_answer(self._index, updated)
            if session.mode is QuizMode.LEARN and question.is_scorable:
                self._render_feedback(question, updated)
            return
        if command.type == "next":
            if self._index + 1 < len(session.questions):
                self._index += 1
            elif not session.processing_complete:
                console.print("[cyan]More questions are on the way...[/]")
            else:
                console.print("[dim]This is the last question.[/]")
            return
        if command.type == "prev":
            if session.mode is QuizMode.FOCUS:
                console.print(
                    "[yellow]Backwards navigation is disabled in focus "
                    "mode.[/]"
                )
            elif self._index > 0:
                self._index -= 1
            return
        if command.type == "flag":
            flagged = session.toggle_flag(self._index)
            console.print("Flagged." if flagged else "Flag removed.")
            return
        if command.type == "explain":
            if session.mode is not QuizMode.LEARN:
                console.print(
                    "[yellow]Explanations are available in learn mode and "
                    "after submitting.[/]"
                )
                return
            await self._explain(question)
            return
        console.print("[red]That command is not available here.[/]")

    async def _results_loop(self) -> bool:
        outcome = self._controller.outcome
        assert outcome is not None
        self._render_results(outcome)
        while True:
            hint = "r (requiz wrong answers), " if outcome.incorrect else ""
            self._console.print(
                Text(f"Commands: {hint}explain <n>, quit", style="dim")
            )
            try:
                raw = (await self._input()).strip().lower()
            except (EOFError, KeyboardInterrupt, StopAsyncIteration):
                return False
            if raw in {"r", "requiz"}:
                if self._controller.requiz():
                    return True
                self._console.print("[green]Nothing to requiz.[/]")
                continue
            if raw in {"q", "quit", "exit"}:
                return False
            target = _explain_target(raw, outcome)
            if target is not None:
                await self._explain(target)
                continue
            self._console.print("[red]Unrecognized command. Try again.[/]")

    async def _explain(self, question: Question) -> None:
        if self._explainer is None:
            self._console.print("[yellow]Explanations are unavailable.[/]")
            return
        try:
            with self._console.status("Fetching explanation..."):
                text = await self._explainer.explain(question)
        except ServiceError as exc:
            self._console.print(f"[red]{escape(str(exc))}[/]")
            return
        self._console.print(
            Panel(Text(text), title="Explanation", border_style="cyan")
        )

    def _render_question(self, session: QuizSession, question: Question) -> None:
        console = self._console
        total = len(session.questions)
        suffix = "" if session.processing_complete else " (more coming)"
        header = Text.assemble(
            (f"Question {self._index + 1}", "bold cyan"),
            (f" / {total}{suffix}", "dim"),
        )
        if self._index in session.flagged:
            header.append("  [flagged]", style="bold yellow")
        console.print()
        console.rule(header)
        console.print(Text(question.prompt, style="bold"))
        if question.image is not None:
            console.print(
                Text(
                    f"Exhibit attached ({len(question.image) // 1024 + 1} KB "
                    "single-page PDF).",
                    style="magenta",
                )
            )
        if not question.is_scorable:
            console.print(Text("Unscored question.", style="dim italic"))

        selected = session.answer_for(self._index)
        table = Table(show_header=False, box=box.SIMPLE, expand=True)
        table.add_column("Key", justify="center", style="cyan")
        table.add_column("Option")
        for key, option in zip(option_keys(question), question.options):
            marker = "•" if option in selected else " "
            text = Text(f"{marker} {option}")
            if option in selected:
                text.stylize("bold green")
            table.add_row(key, text)
        console.print(table)
        console.print(
            Text(
                f"Answered {len(session.answers)}/{total} | Commands: "
                "option letters, next, prev, flag, explain, submit, quit",
                style="dim",
            )
        )

    def _render_feedback(self, question: Question, chosen: frozenset[str]) -> None:
        if chosen == question.correct:
            self._console.print("[bold green]Correct![/]")
            return
        answer = ", ".join(question.answer)
        self._console.print(
            f"[red]Not quite.[/] Correct answer: {escape(answer)}"
        )

    def _render_results(self, outcome: QuizOutcome) -> None:
        console = self._console
        console.print()
        console.rule(Text("Quiz Results", style="bold magenta"))
        overview = Table(
            show_header=False, box=box.MINIMAL_DOUBLE_HEAD, expand=False
        )
        overview.add_column("Metric", style="bold")
        overview.add_column("Value", justify="right")
        overview.add_row("Score", f"{outcome.score} / {outcome.scorable}")
        overview.add_row("Accuracy", f"{outcome.accuracy * 100:.1f}%")
        overview.add_row("Total questions", str(outcome.total))
        overview.add_row("Unscored", str(outcome.total - outcome.scorable))
        console.print(overview)

        if outcome.incorrect:
            table = Table(title="Incorrect", box=box.SIMPLE, expand=True)
            table.add_column("#", justify="right")
            table.add_column("Question", overflow="fold")
            table.add_column("Your answer")
            table.add_column("Correct answer")
            for number, item in enumerate(outcome.incorrect, start=1):
                yours = ", ".join(sorted(item.user_answers)) or "—"
                table.add_row(
                    str(number),
                    item.question.prompt,
                    yours,
                    ", ".join(item.question.answer),
                )
            console.print(table)

        if outcome.flagged:
            flagged = Table(title="Flagged", box=box.SIMPLE, expand=True)
            flagged.add_column("Question", overflow="fold")
            for question in outcome.flagged:
                flagged.add_row(question.prompt)
            console.print(flagged)

    def _render_error(self, message: Optional[str]) -> None:
        if message:
            self._console.print(
                Panel(Text(message), title="Error", border_style="red")
            )


def _explain_target(raw: str, outcome: QuizOutcome) -> Optional[Question]:
    parts = raw.split()
    if len(parts) != 2 or parts[0] not in {"e", "explain"}:
        return None
    try:
        number = int(parts[1])
    except ValueError:
        return None
    if 1 <= number <= len(outcome.incorrect):
        return outcome.incorrect[number - 1].question
    return None
