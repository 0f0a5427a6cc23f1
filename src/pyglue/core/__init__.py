"""
Core Package.

Contains the annotation expansion logic:
- Tokenizer and annotation argument parsers (``tokens``, ``pyfn``, ``options``)
- Module body rewriting and entry point generation (``module``)
- Function wrapper builder (``wrapper``)
- The file-level Engine (``engine``)
"""
