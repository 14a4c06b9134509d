# client/printer.py
# Terminal output for the pb client: results on stdout, errors on stderr.

import os
import sys
from typing import Optional, TextIO


class OutputPrinter:
    """
    Formats what the pb client tells the user.

    - the paste URL is printed bare so it can be piped (``pb < f | xclip``)
    - errors always go to stderr, even with --quiet
    - ANSI color only when enabled and NO_COLOR is unset
    """

    SYMBOLS : dict[str, str] = {
        "error"   : "✗",
        "warning" : "!",
        "info"    : "·",
        "hint"    : "→",
    }

    COLORS : dict[str, str] = {
        "green"  : "32",
        "red"    : "31",
        "yellow" : "33",
        "cyan"   : "36",
        "dim"    : "90",
    }

    COL_WIDTH : int = 10

    def __init__(
        self,
        quiet : bool = False,
        no_color : bool = False,
        out : Optional[TextIO] = None,
        err : Optional[TextIO] = None,
    ) -> None:
        self.quiet    : bool = quiet
        self.no_color : bool = no_color or bool(os.environ.get("NO_COLOR", ""))
        self._out = out
        self._err = err

    @property
    def out(self) -> TextIO:
        return self._out or sys.stdout

    @property
    def err(self) -> TextIO:
        return self._err or sys.stderr

    def _colorize(self, text : str, code : str) -> str:
        """Wrap *text* in an ANSI color code unless color is disabled."""
        if self.no_color:
            return text
        return f"\033[{code}m{text}\033[0m"

    def url(self, paste_url : str, details : Optional[dict[str, str]] = None) -> None:
        """Print the paste URL. Printed even in quiet mode: it is the result."""
        print(self._colorize(paste_url, self.COLORS["green"]), file=self.out)
        if details and not self.quiet:
            for key, value in details.items():
                dim_key : str = self._colorize(f"{key:<{self.COL_WIDTH}}", self.COLORS["dim"])
                print(f"  {dim_key}: {value}", file=self.err)

    def error(self, message : str, hint : Optional[str] = None) -> None:
        symbol : str = self._colorize(self.SYMBOLS["error"], self.COLORS["red"])
        msg    : str = self._colorize(message, self.COLORS["red"])
        print(f"{symbol} {msg}", file=self.err)
        if hint:
            h : str = self._colorize(f"{self.SYMBOLS['hint']} {hint}", self.COLORS["cyan"])
            print(f"  {h}", file=self.err)

    def warning(self, message : str, hint : Optional[str] = None) -> None:
        if self.quiet:
            return
        symbol : str = self._colorize(self.SYMBOLS["warning"], self.COLORS["yellow"])
        msg    : str = self._colorize(message, self.COLORS["yellow"])
        print(f"{symbol} {msg}", file=self.err)
        if hint:
            h : str = self._colorize(f"{self.SYMBOLS['hint']} {hint}", self.COLORS["cyan"])
            print(f"  {h}", file=self.err)

    def info(self, message : str) -> None:
        if self.quiet:
            return
        symbol : str = self._colorize(self.SYMBOLS["info"], self.COLORS["dim"])
        print(f"{symbol} {message}", file=self.err)
