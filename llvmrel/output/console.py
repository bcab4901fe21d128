"""Console output abstraction.

Pipeline stages report progress through ConsoleProtocol and never touch
rich directly. RichConsole writes to the terminal (and so to the CI
log); MockConsole records every line for assertions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "ConsoleProtocol",
    "MockConsole",
    "OutputRecord",
    "RichConsole",
    "Style",
]


class Style(Enum):
    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DIM = auto()
    COMMAND = auto()  # external command about to run
    HEADER = auto()  # pipeline stage banner

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Styled text output used by every pipeline stage."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def command(self, text: str) -> None:
        """Echo an external command line (``$ git push -f origin main``)."""
        ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def header(self, message: str) -> None:
        """Announce a pipeline stage ("Building LLVM...")."""
        ...


# rich style and optional "label:" prefix per Style.
_RICH: dict[Style, tuple[str, str | None]] = {
    Style.DEFAULT: ("", None),
    Style.SUCCESS: ("bold green", "OK"),
    Style.ERROR: ("bold white on red", "error:"),
    Style.WARNING: ("yellow", "warning:"),
    Style.INFO: ("cyan", "info:"),
    Style.DIM: ("dim", None),
    Style.COMMAND: ("dim", "$"),
    Style.HEADER: ("bold green", None),
}


class RichConsole:
    """Console implementation using Rich."""

    def __init__(self) -> None:
        from rich.console import Console

        self._console = Console(highlight=False)

    def _emit(self, message: str, style: Style) -> None:
        from rich.text import Text

        rich_style, label = _RICH[style]
        # Text, not markup: commands and tool output contain square brackets.
        if label is None:
            self._console.print(Text(message, style=rich_style))
            return
        line = Text()
        line.append(label, style=rich_style)
        line.append(f" {message}", style="dim" if style == Style.COMMAND else "")
        self._console.print(line)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._emit(message, style)

    def command(self, text: str) -> None:
        self._emit(text, Style.COMMAND)

    def success(self, message: str) -> None:
        self._emit(message, Style.SUCCESS)

    def error(self, message: str) -> None:
        self._emit(message, Style.ERROR)

    def warning(self, message: str) -> None:
        self._emit(message, Style.WARNING)

    def info(self, message: str) -> None:
        self._emit(message, Style.INFO)

    def header(self, message: str) -> None:
        self._console.print()
        self._emit(message, Style.HEADER)


@dataclass
class OutputRecord:
    message: str
    style: Style


def _no_records() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Records output instead of printing it.

    Prefixed styles are stored with their label (``"error: ..."``) so
    assertions read like the terminal output.
    """

    outputs: list[OutputRecord] = field(default_factory=_no_records)

    def _record(self, message: str, style: Style) -> None:
        label = _RICH[style][1]
        self.outputs.append(OutputRecord(f"{label} {message}" if label else message, style))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def command(self, text: str) -> None:
        self._record(text, Style.COMMAND)

    def success(self, message: str) -> None:
        self._record(message, Style.SUCCESS)

    def error(self, message: str) -> None:
        self._record(message, Style.ERROR)

    def warning(self, message: str) -> None:
        self._record(message, Style.WARNING)

    def info(self, message: str) -> None:
        self._record(message, Style.INFO)

    def header(self, message: str) -> None:
        self._record(message, Style.HEADER)

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    @property
    def commands(self) -> list[str]:
        """Echoed command lines, without the ``$`` prefix."""
        return [o.message.removeprefix("$ ") for o in self.outputs if o.style == Style.COMMAND]

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
