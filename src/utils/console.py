# src/utils/console.py
import sys
from typing import Any, Dict, Optional, TextIO

from colorama import Fore, Style, init

init()


class ConsoleHelper:
    """Formatted, colored console output for the loader workflow."""

    def __init__(self, stream: Optional[TextIO] = None, color: bool = True):
        self.stream = stream or sys.stdout
        self.color = color
        self._progress_open = False

    def _paint(self, color: str, text: str) -> str:
        return f"{color}{text}{Style.RESET_ALL}" if self.color else text

    def _write(self, text: str = "") -> None:
        self.end_progress()
        self.stream.write(text + "\n")
        self.stream.flush()

    def blank(self) -> None:
        self._write()

    def header(self, message: str) -> None:
        self._write(self._paint(Fore.CYAN, f"\n━━━ {message} ━━━"))

    def success(self, message: str) -> None:
        self._write(self._paint(Fore.GREEN, f"✓ {message}"))

    def info(self, message: str) -> None:
        self._write(f"  {message}")

    def warning(self, message: str) -> None:
        self._write(self._paint(Fore.YELLOW, f"⚠ {message}"))

    def error(self, message: str) -> None:
        self._write(self._paint(Fore.RED, f"✗ {message}"))

    def progress(self, message: str) -> None:
        """Rewrite the current line in place."""
        self.stream.write(f"\r{message}")
        self.stream.flush()
        self._progress_open = True

    def end_progress(self) -> None:
        if self._progress_open:
            self._progress_open = False
            self.stream.write("\n")

    def summary(self, title: str, items: Dict[str, Any]) -> None:
        self.header(title)
        for key, value in items.items():
            self._write(f"  {key}: {value}")
