"""
Console Output and Diagnostic Logging.

All user-facing output of the CLI goes through the standard `logging` module,
rendered by a `rich` handler. The handler is bound to a console that sits
behind a proxy, so callers keep importing the same `console` object while
tests (or embedding tools) redirect output with `set_console`.

Diagnostics produced by the engine are already formatted as
``"<line>:<col>: <message>"``; `log_diagnostic` prefixes them with the file
they came from and picks the level.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme

# Between INFO and WARNING
SUCCESS_LEVEL_NUM = 25
logging.addLevelName(SUCCESS_LEVEL_NUM, "SUCCESS")

_THEME = Theme(
  {
    "logging.level.success": "green",
    "path": "bold blue",
    "span": "cyan",
    "deprecated": "yellow",
  }
)


def _make_console() -> Console:
  return Console(theme=_THEME)


class _ConsoleProxy:
  """
  Stable handle on the active Rich console.

  Swapping the backend re-binds the root logger's `RichHandler`, so logging
  calls follow the console.
  """

  def __init__(self) -> None:
    self._backend: Console = _make_console()
    self._bind_logging()

  @property
  def backend(self) -> Console:
    return self._backend

  def set_backend(self, new_console: Console) -> None:
    """
    Routes all further output to ``new_console``.

    Args:
        new_console (Console): Destination console.
    """
    self._backend = new_console
    self._bind_logging()

  def reset(self) -> None:
    self.set_backend(_make_console())

  def _bind_logging(self) -> None:
    root = logging.getLogger()
    for handler in [h for h in root.handlers if isinstance(h, RichHandler)]:
      root.removeHandler(handler)

    root.setLevel(logging.INFO)
    root.addHandler(
      RichHandler(
        console=self._backend,
        show_time=False,
        show_path=False,
        markup=True,
        rich_tracebacks=True,
      )
    )

  def print(self, *args: Any, **kwargs: Any) -> None:
    self._backend.print(*args, **kwargs)

  def __getattr__(self, name: str) -> Any:
    return getattr(self._backend, name)


console = _ConsoleProxy()


def set_console(new_console: Console) -> None:
  console.set_backend(new_console)


def reset_console() -> None:
  """Restores a fresh stdout console."""
  console.reset()


def get_console() -> Console:
  return console.backend


def log_info(msg: str) -> None:
  """
  Logs progress information.

  Args:
      msg (str): Message text; may contain rich markup.
  """
  logging.info(f"ℹ️  {msg}", extra={"markup": True})


def log_success(msg: str) -> None:
  logging.log(SUCCESS_LEVEL_NUM, f"✅ {msg}", extra={"markup": True})


def log_warning(msg: str) -> None:
  logging.warning(f"⚠️  {msg}", extra={"markup": True})


def log_error(msg: str) -> None:
  logging.error(f"❌ {msg}", extra={"markup": True})


def log_diagnostic(label: str, diagnostic: str, is_error: bool) -> None:
  """
  Logs one engine diagnostic attributed to a file.

  Both parts are escaped, so brackets in source snippets are shown verbatim.

  Args:
      label (str): File name or path shown as prefix.
      diagnostic (str): ``"<line>:<col>: <message>"`` text from the engine.
      is_error (bool): Log as an error instead of a deprecation warning.
  """
  location, sep, message = diagnostic.partition(": ")
  if sep and location.replace(":", "").isdigit():
    text = f"[path]{escape(label)}[/path]:[span]{location}[/span]: {escape(message)}"
  else:
    text = f"[path]{escape(label)}[/path]: {escape(diagnostic)}"

  if is_error:
    log_error(text)
  else:
    log_warning(f"[deprecated]{text}[/deprecated]")
