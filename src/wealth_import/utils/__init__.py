"""
Utils package.

Format-level import code:
- All parsers are plain functions over text; they return normalized records
  (see `models.records`) and never touch persistence.
- Row-level problems are reported through a `ParsingContext` as warnings;
  file-level problems raise an `ImportFailure` subclass from `import_errors`.
"""
