from .check import handle_check
from .convert import handle_convert, _convert_single_file, _print_batch_summary

__all__ = [
  "_convert_single_file",
  "_print_batch_summary",
  "handle_check",
  "handle_convert",
]
