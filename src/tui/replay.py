"""
TUI Session Replay Application

This module provides an interactive terminal application for replaying
recorded MiniTel-Lite sessions with keyboard navigation.
"""

import argparse
import json
import sys
from typing import Any, Dict, List

from rich import box
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..minitel.config import DEFAULT_RECORDINGS_DIR, load_settings
from ..minitel.exceptions import ConfigurationError
from ..minitel.session import SessionLoader


DIRECTION_ARROWS = {"client": "→", "server": "←"}
MAX_FIELD_WIDTH = 100


def _truncate(value: str) -> str:
    if len(value) <= MAX_FIELD_WIDTH:
        return value
    return value[:MAX_FIELD_WIDTH - 3] + "..."


class SessionReplayTUI:
    """
    Interactive TUI for replaying MiniTel-Lite sessions.

    Keybindings:
    - N/n: Next step
    - P/p: Previous step
    - Q/q: Quit
    """

    def __init__(self, session_file: str):
        self.session_file = session_file
        self.console = Console()
        self.steps: List[Dict[str, Any]] = []
        self.current_step = 0
        self.session_data: Dict[str, Any] = {}
        self.load_session()

    def load_session(self) -> None:
        """Load session data from file."""
        try:
            self.session_data = SessionLoader.load_session(self.session_file)
            self.steps = self.session_data.get("steps", [])

            if not self.steps:
                self.console.print("[red]No steps found in session file[/red]")
                sys.exit(1)

        except FileNotFoundError:
            self.console.print(f"[red]Session file not found: {self.session_file}[/red]")
            sys.exit(1)
        except json.JSONDecodeError:
            self.console.print(f"[red]Invalid JSON in session file: {self.session_file}[/red]")
            sys.exit(1)

    def create_header_panel(self) -> Panel:
        """Session metadata as a two-column grid."""
        data = self.session_data
        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="bold cyan", justify="right")
        grid.add_column()

        grid.add_row("Session", str(data.get("session_id") or "Unknown"))
        grid.add_row("Server", f"{data.get('server_host')}:{data.get('server_port')}")
        grid.add_row("Started", data.get("start_time") or "Unknown")
        grid.add_row("Ended", data.get("end_time") or "in progress")

        return Panel(grid, title="NORAD MINITEL-LITE SESSION REPLAY", border_style="blue")

    def create_navigation_panel(self) -> Panel:
        position = Text(f"Step {self.current_step + 1} of {len(self.steps)}", style="bold yellow")
        invalid = sum(1 for step in self.steps if not step.get("valid", False))

        body = Text.assemble(
            position,
            "\n",
            (f"{invalid} invalid frame(s)\n" if invalid else "all frames valid\n",
             "red" if invalid else "green"),
            "\n",
            ("[N]", "bold green"), " next  ",
            ("[P]", "bold green"), " previous  ",
            ("[Q]", "bold red"), " quit",
        )
        return Panel(body, title="Navigation", border_style="green")

    def create_step_panel(self) -> Panel:
        """Create the panel showing the current step."""
        if not self.steps or self.current_step >= len(self.steps):
            return Panel("No step to display", title="Step", border_style="red")

        step = self.steps[self.current_step]
        decoded = step.get("decoded") or {}
        direction = step.get("direction", "unknown")

        table = Table(show_header=True, header_style="bold magenta", box=box.ROUNDED)
        table.add_column("Property", style="cyan", width=20)
        table.add_column("Value", style="white")

        table.add_row("Step", str(step.get("step", "")))
        table.add_row("Timestamp", str(step.get("timestamp", "")))
        table.add_row("Direction", "client → server" if direction == "client" else "server → client")
        table.add_row("Command", str(decoded.get("cmd") or "-"))
        table.add_row("Nonce", "-" if decoded.get("nonce") is None else str(decoded["nonce"]))

        if decoded.get("payload"):
            table.add_row("Payload", _truncate(decoded["payload"]))

        raw = step.get("request") if direction == "client" else step.get("response")
        if raw:
            table.add_row("Raw (Base64)", _truncate(raw))

        valid = step.get("valid", False)
        table.add_row("Valid", Text("yes" if valid else "NO", style="green" if valid else "bold red"))

        if not valid:
            border_color = "red"
        elif direction == "client":
            border_color = "blue"
        else:
            border_color = "green"

        return Panel(table, title="Current Step", border_style=border_color)

    def create_timeline_panel(self) -> Panel:
        """Create a timeline panel showing the step sequence."""
        timeline_text = Text()

        window_size = 10
        start_idx = max(0, self.current_step - window_size // 2)
        end_idx = min(len(self.steps), start_idx + window_size)

        for i in range(start_idx, end_idx):
            step = self.steps[i]
            direction = step.get("direction", "")
            command = (step.get("decoded") or {}).get("cmd") or "INVALID"
            entry = f"{step.get('step', i + 1):>3} {DIRECTION_ARROWS.get(direction, '•')} {command}"

            if i == self.current_step:
                timeline_text.append(f"► {entry}\n", style="bold yellow on blue")
            else:
                if not step.get("valid", False):
                    style = "red"
                elif direction == "client":
                    style = "blue"
                else:
                    style = "green"
                timeline_text.append(f"  {entry}\n", style=style)

        return Panel(timeline_text, title="Timeline", border_style="magenta")

    def create_layout(self) -> Layout:
        """Header on top, navigation and timeline on the left, step detail on the right."""
        sidebar = Layout(name="sidebar")
        sidebar.split_column(
            Layout(self.create_navigation_panel(), name="navigation", size=7),
            Layout(self.create_timeline_panel(), name="timeline"),
        )

        body = Layout(name="body")
        body.split_row(sidebar, Layout(self.create_step_panel(), name="step", ratio=2))

        layout = Layout()
        layout.split_column(Layout(self.create_header_panel(), name="header", size=6), body)
        return layout

    def next_step(self) -> bool:
        """Move to the next step. Returns True if moved, False if at end."""
        if self.current_step < len(self.steps) - 1:
            self.current_step += 1
            return True
        return False

    def previous_step(self) -> bool:
        """Move to the previous step. Returns True if moved, False if at beginning."""
        if self.current_step > 0:
            self.current_step -= 1
            return True
        return False

    def handle_key(self, key: str) -> bool:
        """Apply a keypress. Returns False when the viewer should quit."""
        key = key.lower()
        if key == 'q':
            return False
        if key == 'n':
            self.next_step()
        elif key == 'p':
            self.previous_step()
        return True

    def run(self) -> None:
        """Run the interactive TUI."""
        try:
            import termios
            import tty
        except ImportError:
            self._run_line_mode()
            return

        old_settings = termios.tcgetattr(sys.stdin)
        with Live(self.create_layout(), refresh_per_second=10, screen=True) as live:
            try:
                tty.setraw(sys.stdin.fileno())
                while self.handle_key(sys.stdin.read(1)):
                    live.update(self.create_layout())
            finally:
                termios.tcsetattr(sys.stdin, termios.TCSADRAIN, old_settings)

    def _run_line_mode(self) -> None:
        # Windows has no termios; fall back to Enter-terminated commands.
        self.console.print("[yellow]Warning: Advanced keyboard input not available on this system[/yellow]")
        self.console.print("Using simple input mode. Press Enter after each command.")

        while True:
            self.console.clear()
            self.console.print(self.create_layout())
            if not self.handle_key(input("\nCommand (n/p/q): ").strip() or " "):
                break


def list_sessions_command(sessions_dir: str = DEFAULT_RECORDINGS_DIR) -> None:
    """List available session files."""
    console = Console()
    sessions = SessionLoader.list_sessions(sessions_dir)

    if not sessions:
        console.print(f"[yellow]No session files found in {sessions_dir}[/yellow]")
        return

    table = Table(title="Available Sessions", show_header=True, header_style="bold magenta")
    table.add_column("Session ID", style="cyan")
    table.add_column("Started", style="white")
    table.add_column("Server", style="green")
    table.add_column("Steps", style="yellow")
    table.add_column("File", style="blue")

    for session in sessions:
        table.add_row(
            session.get("session_id") or "Unknown",
            session.get("start_time") or "Unknown",
            session.get("server", ""),
            str(session.get("total_steps", 0)),
            session.get("filename", "")
        )

    console.print(table)


def main():
    """Main entry point for the session replay TUI."""
    try:
        recordings_dir = load_settings(require_server=False).recordings_dir
    except ConfigurationError:
        recordings_dir = DEFAULT_RECORDINGS_DIR

    parser = argparse.ArgumentParser(description="MiniTel-Lite Session Replay TUI")
    parser.add_argument("--session", "-s", help="Session file to replay")
    parser.add_argument("--list", "-l", action="store_true", help="List available sessions")
    parser.add_argument("--sessions-dir", default=recordings_dir, help="Directory containing session files")

    args = parser.parse_args()

    if args.list:
        list_sessions_command(args.sessions_dir)
        return 0

    if not args.session:
        console = Console()
        console.print("[red]Error: No session file specified[/red]")
        console.print("Use --session <file> to specify a session file")
        console.print("Use --list to see available sessions")
        return 1

    try:
        replay = SessionReplayTUI(args.session)
        replay.run()
        return 0

    except KeyboardInterrupt:
        print("\nReplay interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
