"""
Terminal rendering for the patchstream CLI (rich)
"""

from pathlib import Path
from typing import Dict, Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.box import ROUNDED, SIMPLE

from patchstream.modules.protocol.events import FileOp, FileOpEvent, PatchPhase
from patchstream.schemas.plan import PlanCandidate
from patchstream.schemas.validation import ValidationResult


LANGUAGE_MAP = {
    '.html': 'html',
    '.htm': 'html',
    '.css': 'css',
    '.js': 'javascript',
    '.mjs': 'javascript',
    '.cjs': 'javascript',
    '.jsx': 'javascript',
    '.ts': 'typescript',
    '.tsx': 'typescript',
    '.json': 'json',
    '.md': 'markdown',
}

PHASE_STYLES = {
    PatchPhase.START: 'green',
    PatchPhase.CHUNK: 'dim',
    PatchPhase.END: 'cyan',
}


class ResponseRenderer:
    """Renders orchestration progress and results"""

    def __init__(self, console: Console, verbose: bool = False):
        self.console = console
        self.verbose = verbose

    def _get_language(self, path: str) -> str:
        return LANGUAGE_MAP.get(Path(path).suffix.lower(), 'text')

    def render_status(self, phase: str, label: str) -> None:
        self.console.print(f"[dim]{phase}[/dim] [bold]{label}[/bold]")

    def render_event(self, event: FileOpEvent) -> None:
        """Live line per operation; chunks only in verbose mode"""
        if event.is_patch_chunk and not self.verbose:
            return
        self.console.print(self._event_summary(event), highlight=False)

    def _event_summary(self, event: FileOpEvent) -> str:
        if event.op == FileOp.MOVE:
            summary = f"[magenta]move[/magenta] {escape(event.path)} -> {escape(event.to_path or '')}"
        elif event.op == FileOp.DELETE:
            summary = f"[red]delete[/red] {escape(event.path)}"
        else:
            style = PHASE_STYLES.get(event.phase, 'white')
            summary = f"[{style}]{event.phase.value}[/{style}] {escape(event.path)}"
            if event.is_patch_start:
                summary += f" [dim]({event.mode.value})[/dim]"
            if event.is_patch_chunk:
                summary += f" [dim]{len(event.chunk or '')} chars[/dim]"
            if event.implicit:
                summary += " [yellow](implicit close)[/yellow]"
        if event.reason and not event.is_patch_chunk:
            summary += f" [dim]- {escape(event.reason)}[/dim]"
        return summary

    def render_events(self, events: Iterable[FileOpEvent]) -> None:
        table = Table(box=SIMPLE, show_header=True, header_style="bold")
        table.add_column("#", justify="right", style="dim")
        table.add_column("op")
        table.add_column("phase")
        table.add_column("path")
        table.add_column("detail", overflow="fold")

        for index, event in enumerate(events, start=1):
            if event.op == FileOp.MOVE:
                detail = f"-> {event.to_path}"
            elif event.is_patch_chunk:
                detail = f"{len(event.chunk or '')} chars"
            elif event.is_patch_start:
                detail = event.mode.value
            else:
                detail = "implicit" if event.implicit else ""
            if event.reason and not event.is_patch_chunk:
                detail = f"{detail} ({event.reason})".strip()
            table.add_row(str(index), event.op.value, event.phase.value, escape(event.path), escape(detail))

        self.console.print(table)

    def render_validation(self, validation: ValidationResult, title: str = "Strict gate") -> None:
        if validation.ok:
            body = "[green]passed[/green]"
        else:
            body = "\n".join(f"[red]-[/red] {escape(issue)}" for issue in validation.issues)
        if validation.stats is not None:
            stats = validation.stats
            body += f"\n[dim]events={stats.events} starts={stats.starts} ends={stats.ends}[/dim]"
        self.console.print(Panel(body, title=title, box=ROUNDED,
                                 border_style="green" if validation.ok else "red"))

    def render_plan(self, plan: PlanCandidate, role_models: Optional[Dict[str, str]] = None) -> None:
        header = f"[bold]{escape(plan.title)}[/bold]"
        if plan.stack:
            header += f"\n[dim]{escape(plan.stack)}[/dim]"
        if plan.description:
            header += f"\n{escape(plan.description)}"
        self.console.print(Panel(header, box=ROUNDED))

        table = Table(box=ROUNDED, show_header=True, header_style="bold cyan")
        table.add_column("id", justify="right")
        table.add_column("title")
        table.add_column("category", style="magenta")
        table.add_column("files", overflow="fold")
        for step in plan.steps:
            table.add_row(escape(step.id), escape(step.title), escape(step.category), escape(", ".join(step.files)))
        self.console.print(table)

        if plan.file_tree:
            self.console.print("[bold]fileTree[/bold]: " + escape(", ".join(plan.file_tree)))
        if role_models:
            self.render_role_models(role_models)

    def render_role_models(self, role_models: Dict[str, str]) -> None:
        self.console.print(
            "[dim]" + "  ".join(f"{role}={escape(str(model))}" for role, model in role_models.items()) + "[/dim]"
        )

    def render_files(self, files: Dict[str, str]) -> None:
        for path, content in files.items():
            syntax = Syntax(content or "", self._get_language(path), line_numbers=True, word_wrap=True)
            self.console.print(Panel(syntax, title=escape(path), box=ROUNDED, title_align="left"))

    def render_error(self, message: str, code: Optional[str] = None, issues: Iterable[str] = ()) -> None:
        title = f"Error {escape(f'[{code}]')}" if code else "Error"
        body = escape(message)
        issue_lines = [f"- {escape(issue)}" for issue in issues]
        if issue_lines:
            body = "\n".join(issue_lines)
        self.console.print(Panel(body, title=title, box=ROUNDED, border_style="red"))
