"""
Display channels used by study sessions.

A channel only needs ``show(text)`` and ``prompt(message) -> str``; sessions
never care whether output goes to a plain console or a full-screen curses UI.
"""

import curses
from typing import Any, Callable, List, Protocol, TypeVar

import click

T = TypeVar("T")

TERM = "term"
TUI = "tui"
DISPLAY_METHODS = (TERM, TUI)


class Display(Protocol):
    def show(self, text: str) -> None: ...

    def prompt(self, message: str) -> str: ...


class ConsoleDisplay:
    """Line-oriented display on stdout/stdin."""

    def show(self, text: str) -> None:
        click.echo(text)

    def prompt(self, message: str) -> str:
        value: str = click.prompt(
            message or ">", default="", show_default=False, prompt_suffix="\n> " if message else " "
        )
        return value

    def menu(self, title: str, options: List[str]) -> int:
        click.echo(f"\n{title}:")
        for i, option in enumerate(options, start=1):
            click.echo(f"{i}. {option}")
        choice: int = click.prompt(
            "\nEnter your choice", type=click.IntRange(1, len(options))
        )
        return choice - 1


def wrap_text(text: str, max_width: int) -> List[str]:
    """Wrap text to fit within max_width; long unspaced (Japanese) runs are split by character."""
    if max_width <= 0:
        return [text]
    lines: List[str] = []
    for raw_line in text.split("\n"):
        if not raw_line:
            lines.append("")
            continue
        current = ""
        for word in raw_line.split(" "):
            while len(word) > max_width:
                if current:
                    lines.append(current)
                    current = ""
                lines.append(word[:max_width])
                word = word[max_width:]
            candidate = f"{current} {word}" if current else word
            if len(candidate) <= max_width:
                current = candidate
            else:
                lines.append(current)
                current = word
        lines.append(current)
    return lines


class CursesDisplay:
    """Full-screen display: a scrolling output pane plus an input line."""

    HEADER = "KaniKani - WaniKani reviews in your terminal"
    FOOTER = "Enter: Submit | Backspace: Delete | Ctrl+W: Delete word"

    def __init__(self, stdscr: Any) -> None:
        self.stdscr = stdscr
        self.lines: List[str] = []

        curses.start_color()
        curses.use_default_colors()
        curses.init_pair(1, curses.COLOR_WHITE, curses.COLOR_BLUE)    # Header
        curses.init_pair(2, curses.COLOR_BLACK, curses.COLOR_GREEN)   # Selected item
        curses.init_pair(3, curses.COLOR_CYAN, -1)                   # Info
        curses.curs_set(0)
        self.stdscr.keypad(True)

    @property
    def height(self) -> int:
        return int(self.stdscr.getmaxyx()[0])

    @property
    def width(self) -> int:
        return int(self.stdscr.getmaxyx()[1])

    def _addstr(self, y: int, x: int, text: str, attr: int = 0) -> None:
        try:
            self.stdscr.addstr(y, x, text[: max(0, self.width - x - 1)], attr)
        except curses.error:
            pass  # writing into the last cell raises even when the text was drawn

    def _draw_frame(self, footer: str) -> None:
        self.stdscr.clear()
        self._addstr(0, max(0, (self.width - len(self.HEADER)) // 2), self.HEADER,
                     curses.color_pair(1) | curses.A_BOLD)
        self._addstr(1, 0, "─" * self.width)
        self._addstr(self.height - 1, max(0, (self.width - len(footer)) // 2), footer,
                     curses.color_pair(3))

    def _draw_output(self, reserved: int) -> None:
        wrapped: List[str] = []
        for line in self.lines:
            wrapped.extend(wrap_text(line, self.width - 4))
        room = max(0, self.height - 3 - reserved)
        for i, line in enumerate(wrapped[-room:] if room else []):
            self._addstr(2 + i, 2, line)

    def show(self, text: str) -> None:
        self.lines.extend(text.split("\n"))
        self.lines = self.lines[-500:]
        self._draw_frame(self.FOOTER)
        self._draw_output(reserved=2)
        self.stdscr.refresh()

    def prompt(self, message: str) -> str:
        if message:
            self.lines.append(message)
        curses.curs_set(1)
        buffer: List[str] = []
        input_y = self.height - 3

        while True:
            self._draw_frame(self.FOOTER)
            self._draw_output(reserved=2)
            text = "".join(buffer)
            visible = text[-(self.width - 10):]
            self._addstr(input_y, 2, "> " + visible, curses.A_BOLD)
            self.stdscr.move(input_y, min(self.width - 1, 4 + len(visible)))
            self.stdscr.refresh()

            try:
                ch = self.stdscr.get_wch()
            except curses.error:
                continue

            if ch in ("\n", "\r") or ch == curses.KEY_ENTER:
                break
            elif ch in ("\b", "\x7f") or ch == curses.KEY_BACKSPACE:
                if buffer:
                    buffer.pop()
            elif ch == "\x17":  # Ctrl+W
                stripped = "".join(buffer).rstrip()
                cut = stripped.rfind(" ")
                buffer = list(stripped[:cut + 1]) if cut != -1 else []
            elif isinstance(ch, str) and ch.isprintable():
                buffer.append(ch)

        curses.curs_set(0)
        answer = "".join(buffer)
        self.lines.append("> " + answer)
        return answer

    def menu(self, title: str, options: List[str]) -> int:
        selected = 0
        while True:
            self._draw_frame("↑↓: Navigate | Enter: Select")
            self._addstr(3, 2, title, curses.A_BOLD)
            for i, option in enumerate(options):
                if i == selected:
                    self._addstr(5 + i, 4, f"> {option}", curses.color_pair(2) | curses.A_BOLD)
                else:
                    self._addstr(5 + i, 4, f"  {option}")
            # Output of the previous action stays visible under the menu
            room = max(0, self.height - 8 - len(options))
            for i, line in enumerate(self.lines[-room:] if room else []):
                self._addstr(6 + len(options) + i, 2, line)
            self.stdscr.refresh()

            key = self.stdscr.getch()
            if key == curses.KEY_UP and selected > 0:
                selected -= 1
            elif key == curses.KEY_DOWN and selected < len(options) - 1:
                selected += 1
            elif key in (curses.KEY_ENTER, ord("\n"), ord("\r")):
                self.lines = []
                return selected


def run_with_display(method: str, func: Callable[[Any], T]) -> T:
    """Call ``func`` with a display of the requested kind, setting up curses when needed."""
    if method == TUI:
        return curses.wrapper(lambda stdscr: func(CursesDisplay(stdscr)))
    if method == TERM:
        return func(ConsoleDisplay())
    raise ValueError(f"Unknown display method '{method}' (expected one of {', '.join(DISPLAY_METHODS)})")
