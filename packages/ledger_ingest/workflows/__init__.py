"""High-level run orchestrators composing the core with its collaborators."""

from .categorize_flow import run_categorization
from .ingest_flow import run_ingestion

__all__ = ["run_categorization", "run_ingestion"]
