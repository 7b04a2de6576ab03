"""Console output formatting for the CLI."""

import json
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from .sync.models import RepoState, RepoStatePair

STATE_STYLES = {
    RepoState.UP_TO_DATE: "bold green",
    RepoState.UNCOMMITTED_CHANGES: "bold yellow",
    RepoState.NOT_CLONED: "bold red",
    RepoState.FAILED_TO_CLONE: "bold red",
}
DEFAULT_STATE_STYLE = "bold bright_magenta"

LANGUAGE_STYLES = ["bold blue", "bold magenta", "bold cyan"]


class OutputFormatter:
    """Formats messages and repository listings for the terminal."""

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of rich text
            quiet: Suppress informational messages
            console: Console for regular output
            err_console: Console for warnings and errors
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if not self.json_output:
            self.console.print(message)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message)

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        self.err_console.print(f"[yellow]{message}[/yellow]")

    def error(self, message: str) -> None:
        self.err_console.print(f"[bold red]{message}[/bold red]")

    def output_json(self, data: Any) -> None:
        self.console.print_json(json.dumps(data, default=str))

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Print a two-column summary table."""
        if self.json_output:
            self.output_json({key: value for key, value in items})
            return
        table = Table(title=title, show_header=False, box=None)
        table.add_column(style="bold")
        table.add_column()
        for key, value in items:
            table.add_row(key, value)
        self.console.print(table)

    @staticmethod
    def pair_to_dict(pair: RepoStatePair) -> dict[str, Any]:
        return {
            "name": pair.name,
            "owner": pair.owner,
            "language": pair.language,
            "path": str(pair.path),
            "state": pair.state.value,
            "fork": pair.fork,
            "clone_url": pair.clone_url,
        }

    def print_repo_states(self, groups: dict[str, list[RepoStatePair]]) -> None:
        """Print classified repositories, one line each, grouped by language.

        Args:
            groups: Language -> pairs
        """
        if self.json_output:
            self.output_json(
                {
                    language: [self.pair_to_dict(p) for p in pairs]
                    for language, pairs in groups.items()
                }
            )
            return

        for index, (language, pairs) in enumerate(groups.items()):
            language_style = LANGUAGE_STYLES[index % len(LANGUAGE_STYLES)]
            for pair in pairs:
                state_style = STATE_STYLES.get(pair.state, DEFAULT_STATE_STYLE)
                line = (
                    f"[{language_style}]{language}[/{language_style}] "
                    f"{pair.path} "
                    f"[{state_style}]{pair.state.value}[/{state_style}]"
                )
                if pair.fork:
                    line += " [bright_cyan]Fork[/bright_cyan]"
                self.console.print(line)

    def print_repo_list(self, pairs: list[RepoStatePair]) -> None:
        """Print the repositories an action is about to touch."""
        if self.json_output:
            return
        for pair in pairs:
            self.console.print(f"[bold blue]{pair.language}[/bold blue] {pair.full_name}")
