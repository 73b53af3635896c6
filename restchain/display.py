"""CI-style terminal display for API calls and test cases.

A Display is created once by the caller and handed to each
ExecutionContext and StepRunner; nothing in the package prints through
a global console.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from .response import ApiResponse


@dataclass
class StatusIcons:
    """Status icons with colors for CI-style display."""

    RUNNING = "[cyan][bold]•[/bold][/cyan]"
    SUCCESS = "[green][bold]✓[/bold][/green]"
    FAILED = "[red][bold]✗[/bold][/red]"
    CAUGHT = "[yellow]![/yellow]"


def _format_duration(seconds: float) -> str:
    """Format duration in human-readable format."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{minutes}m {secs:02d}s"


def _shorten(value: Any, limit: int = 80) -> str:
    text = str(value)
    if len(text) > limit:
        text = text[: limit - 3] + "..."
    return text


class Display:
    """Prints call activity to a rich console.

    Attributes:
        console: Target console
        verbose: Whether debug lines are printed
    """

    def __init__(self, console: Optional[Console] = None, verbose: bool = False) -> None:
        self.console = console or Console()
        self.verbose = verbose

    def debug(self, message: str) -> None:
        """Print a dim line, only in verbose mode."""
        if self.verbose:
            self.console.print(f"[dim]{escape(message)}[/dim]")

    # =========================================================================
    # Calls
    # =========================================================================

    def print_call(self, api_name: str, params: Dict[str, str], has_body: bool) -> None:
        """Print the call about to be sent.

        Format: [•] api_name {params} (+body)
        """
        if not self.verbose:
            return
        body_label = " [dim](+body)[/dim]" if has_body else ""
        params_label = f" [dim]{escape(_shorten(params))}[/dim]" if params else ""
        self.console.print(
            f"    [{StatusIcons.RUNNING}] {escape(api_name)}{params_label}{body_label}"
        )

    def print_call_result(
        self,
        api_name: str,
        response: Optional["ApiResponse"],
        duration: float,
        error: Optional[BaseException] = None,
    ) -> None:
        """Print the outcome of a call."""
        if not self.verbose:
            return
        if response is None:
            self.console.print(
                f"    [{StatusIcons.FAILED}] {escape(api_name)} "
                f"[red]{escape(str(error))}[/red] [dim]{_format_duration(duration)}[/dim]"
            )
            return
        icon = StatusIcons.SUCCESS if response.success else StatusIcons.FAILED
        self.console.print(
            f"    [{icon}] {escape(api_name)} [dim]{response.status} "
            f"{_format_duration(duration)}[/dim]"
        )

    def print_reset(self) -> None:
        self.debug("resetting response and stash")

    # =========================================================================
    # Test cases
    # =========================================================================

    def print_test_start(self, name: str) -> None:
        self.console.print(f"[{StatusIcons.RUNNING}] {escape(name)}")

    def print_test_result(
        self,
        name: str,
        success: bool,
        duration: float,
        error: Optional[str] = None,
    ) -> None:
        icon = StatusIcons.SUCCESS if success else StatusIcons.FAILED
        self.console.print(
            f"[{icon}] {escape(name)} [dim]{_format_duration(duration)}[/dim]"
        )
        if error:
            self.console.print(f"    [red]{escape(error)}[/red]")

    def print_caught(self, api_name: str, status: int) -> None:
        self.debug(f"{api_name} failed with expected status {status}")

    def print_summary(self, passed: int, failed: List[str], total_elapsed: float) -> None:
        """Print run summary."""
        self.console.print()
        total = passed + len(failed)
        if failed:
            self.console.print(
                f"[bold red]{len(failed)} of {total} test cases failed[/bold red] "
                f"[dim]in {_format_duration(total_elapsed)}[/dim]"
            )
            for name in failed:
                self.console.print(f"  [{StatusIcons.FAILED}] {escape(name)}")
        else:
            self.console.print(
                f"[bold green]{total} test cases passed[/bold green] "
                f"[dim]in {_format_duration(total_elapsed)}[/dim]"
            )
