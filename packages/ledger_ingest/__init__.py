"""Public interface for the ``ledger_ingest`` package.

Bank CSV exports are mapped by header fingerprint to a source format,
normalized into :class:`TransactionRecord` rows, deduplicated against the
Transactions table and categorized by an ordered regex/range rule set.

This module only re-exports the stable import surface.
"""

from .api import build_alert_sink, categorize_transactions, ingest_csvs
from .dedup import DedupKeySet, build_existing_key_set, dedup_key
from .errors import (
    ConfigurationError,
    LedgerError,
    MissingColumnsError,
    RowMappingError,
    RuleCompilationError,
    StorageAdapterError,
    UnmappedFormatError,
)
from .fingerprint import fingerprint, normalize_header_token
from .ingestion import ingest
from .models import (
    CategorizationResult,
    CategoryAssignment,
    IngestionResult,
    Rule,
    SourceFormatConfig,
    TransactionRecord,
)
from .normalizer import RecordNormalizer, normalize
from .parsing import parse_currency
from .registry import SourceFormatRegistry, load_registry
from .rules import categorize, categorize_rows, compile_rules, rule_definitions_from_table
from .settings import LedgerSettings, load_settings
from .tables import InMemoryTableAdapter, TableAdapter
from .workflows import run_categorization, run_ingestion

__all__ = [
    # Entry points
    "ingest_csvs",
    "categorize_transactions",
    "build_alert_sink",
    "run_ingestion",
    "run_categorization",
    # Core
    "fingerprint",
    "normalize_header_token",
    "parse_currency",
    "normalize",
    "RecordNormalizer",
    "dedup_key",
    "build_existing_key_set",
    "DedupKeySet",
    "ingest",
    "compile_rules",
    "rule_definitions_from_table",
    "categorize",
    "categorize_rows",
    # Configuration and storage
    "SourceFormatRegistry",
    "load_registry",
    "LedgerSettings",
    "load_settings",
    "TableAdapter",
    "InMemoryTableAdapter",
    # Models
    "TransactionRecord",
    "SourceFormatConfig",
    "Rule",
    "CategoryAssignment",
    "IngestionResult",
    "CategorizationResult",
    # Errors
    "LedgerError",
    "ConfigurationError",
    "MissingColumnsError",
    "UnmappedFormatError",
    "RowMappingError",
    "RuleCompilationError",
    "StorageAdapterError",
]
