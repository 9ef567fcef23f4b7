"""
Prompt-based selector for the history browser.

Renders the best fuzzy matches in a rich table and reads one command per
line:

    text        filter entries (case-insensitive fuzzy match)
    <Enter>     show the next matches, loading older history at the end
    :N [M ...]  pick the entries numbered N, M, ...
    :c          clear the filter
    :q          quit without picking anything

The item list grows while the prompt is open. Every pass rescans it under
the read lock, so pages appended by the loader show up on the next render.
"""

from collections.abc import Callable
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from homie.finder import Aborted, Selected, SelectionResult
from homie.rwlock import RWLock

DEFAULT_VISIBLE = 10
PREVIEW_WIDTH = 72

CMD_QUIT = (":q", ":quit")
CMD_CLEAR = ":c"


def fuzzy_match(query: str, text: str) -> bool:
    """Whether the characters of ``query`` appear in ``text`` in order."""
    if not query:
        return True
    remaining = iter(text.casefold())
    return all(ch in remaining for ch in query.casefold())


def preview(text: str, width: int = PREVIEW_WIDTH) -> str:
    """Collapse whitespace and truncate ``text`` to one display line."""
    line = " ".join(text.split())
    if len(line) > width:
        return line[: width - 3] + "..."
    return line


class PromptSelector:
    """
    Interactive selector reading commands from a prompt.

    Args:
        console: Console to render to (defaults to stderr, keeping stdout
                 free for the selected text)
        ask: Prompt function, mainly for tests; receives the prompt string
             and returns the user's line
        visible: Number of matches shown per screen
    """

    def __init__(
        self,
        console: Console | None = None,
        ask: Callable[[str], str] | None = None,
        visible: int = DEFAULT_VISIBLE,
    ) -> None:
        self.console = console or Console(stderr=True)
        self._ask = ask or self._prompt
        self.visible = visible

    def _prompt(self, prompt: str) -> str:
        return Prompt.ask(prompt, console=self.console, default="", show_default=False)

    def select(
        self,
        items: list[Any],
        projector: Callable[[int], str],
        on_need_more: Callable[[], None],
        lock: RWLock,
    ) -> SelectionResult:
        """Run the prompt loop until the user picks entries or quits."""
        query = ""
        start = 0

        while True:
            with lock.read():
                matches = [i for i in range(len(items)) if fuzzy_match(query, projector(i))]
                rows = [
                    (rank + 1, preview(projector(i)))
                    for rank, i in enumerate(matches[start : start + self.visible], start=start)
                ]
                total = len(items)

            if not matches:
                on_need_more()

            self._render(rows, query, len(matches), total)

            try:
                answer = self._ask("[bold cyan]>[/bold cyan]").strip()
            except (EOFError, KeyboardInterrupt):
                return Aborted()

            if not answer:
                if start + self.visible >= len(matches):
                    on_need_more()
                else:
                    start += self.visible
                continue

            if answer in CMD_QUIT:
                return Aborted()

            if answer == CMD_CLEAR:
                query, start = "", 0
                continue

            if answer.startswith(":"):
                picked = self._parse_pick(answer[1:], matches)
                if picked is not None:
                    return Selected(indices=picked)
                continue

            query, start = answer, 0

    def _parse_pick(self, raw: str, matches: list[int]) -> tuple[int, ...] | None:
        """Turn ':1 3' into window indices; None if the input is invalid."""
        numbers = raw.replace(",", " ").split()
        if not numbers:
            self.console.print("[yellow]Nothing picked. Use :N to pick entry N.[/yellow]")
            return None

        picked: list[int] = []
        for number in numbers:
            if not number.isdigit() or not 1 <= int(number) <= len(matches):
                self.console.print(f"[red]No entry numbered {escape(number)}[/red]")
                return None
            index = matches[int(number) - 1]
            if index not in picked:
                picked.append(index)
        return tuple(picked)

    def _render(self, rows: list[tuple[int, str]], query: str, matched: int, total: int) -> None:
        table = Table(show_header=True, header_style="bold", expand=False)
        table.add_column("#", style="dim", justify="right", width=4)
        table.add_column("Entry")

        for number, text in rows:
            table.add_row(str(number), escape(text))

        self.console.print(table)
        status = f"{matched}/{total}"
        if query:
            status += f"  filter: [cyan]{escape(query)}[/cyan]"
        self.console.print(f"[dim]{status}  (Enter: more, :N pick, :c clear, :q quit)[/dim]")
