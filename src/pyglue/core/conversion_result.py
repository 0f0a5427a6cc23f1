"""
Data structures representing the output of the expansion pipeline.

This module defines the `ConversionResult` Pydantic model, which encapsulates
the generated code, any errors encountered, and the deprecation warnings.
"""

from typing import List

from pydantic import BaseModel, Field


class ConversionResult(BaseModel):
  """
  Container for the results of an expansion job.
  """

  code: str = Field(default="", description="The generated source code.")
  errors: List[str] = Field(default_factory=list, description="List of error messages encountered.")
  warnings: List[str] = Field(default_factory=list, description="Deprecation warnings, with source locations.")
  modules: List[str] = Field(default_factory=list, description="External names of the modules expanded.")
  success: bool = Field(
    default=True,
    description="True if every annotation was expanded.",
  )

  @property
  def has_errors(self) -> bool:
    """
    Check if the result contains any error messages.

    Returns:
        True if one or more errors are present.
    """
    return len(self.errors) > 0

  @property
  def has_warnings(self) -> bool:
    return len(self.warnings) > 0
