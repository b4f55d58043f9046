"""Source format registry: header fingerprint -> :class:`SourceFormatConfig`.

The registry is data-driven and immutable once loaded. Registry JSON is a
top-level object; each key is either a fingerprint (``"sha256:<hex>"`` or
bare hex) or, when the entry carries a ``headers`` list, a human label whose
fingerprint is computed from those headers::

    {
      "sha256:b8d2...": {"dateFormat": "MM/dd/yyyy", "amountColumn": "Amount", ...},
      "schwab": {"headers": ["Date", "Status", "Type", ...], "withdrawalColumn": ...}
    }
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping
from os import PathLike
from pathlib import Path
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from .errors import ConfigurationError
from .fingerprint import fingerprint, strip_prefix
from .logging_setup import get_logger
from .models import SourceFormatConfig

_HEX_RE = re.compile(r"^[a-f0-9]{64}$")

_logger = get_logger("ledger_ingest.registry")


class SourceFormatRegistry(Mapping[str, SourceFormatConfig]):
    """Read-only mapping keyed by bare hex fingerprint.

    Lookups accept prefixed or bare fingerprints.
    """

    def __init__(self, formats: Mapping[str, SourceFormatConfig] | None = None) -> None:
        normalized: dict[str, SourceFormatConfig] = {}
        for key, cfg in (formats or {}).items():
            normalized[strip_prefix(key)] = cfg
        self._formats: Mapping[str, SourceFormatConfig] = MappingProxyType(normalized)

    def __getitem__(self, key: str) -> SourceFormatConfig:
        return self._formats[strip_prefix(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._formats)

    def __len__(self) -> int:
        return len(self._formats)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and strip_prefix(key) in self._formats

    def lookup(self, header_fingerprint: str) -> SourceFormatConfig | None:
        return self._formats.get(strip_prefix(header_fingerprint))

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> SourceFormatRegistry:
        """Validate raw registry entries and build a registry.

        Raises ``ConfigurationError`` naming the offending entry on any
        validation problem or duplicate fingerprint.
        """

        if not isinstance(data, Mapping):
            raise ConfigurationError("Source format registry must be a JSON object")

        formats: dict[str, SourceFormatConfig] = {}
        for key, raw in data.items():
            try:
                cfg = SourceFormatConfig.model_validate(raw)
            except ValidationError as exc:
                raise ConfigurationError(f"Invalid source format {key!r}: {exc}") from exc

            if cfg.headers is not None:
                fp = fingerprint(cfg.headers, prefixed=False)
                declared = strip_prefix(key)
                if _HEX_RE.fullmatch(declared) and declared != fp:
                    raise ConfigurationError(
                        f"Source format {key!r}: key does not match the fingerprint of its headers "
                        f"(sha256:{fp})"
                    )
                if cfg.name is None:
                    cfg = cfg.model_copy(update={"name": key})
            else:
                fp = strip_prefix(key)
                if not _HEX_RE.fullmatch(fp):
                    raise ConfigurationError(
                        f"Source format {key!r}: key must be a sha256 fingerprint "
                        "or the entry must list its headers"
                    )

            if fp in formats:
                raise ConfigurationError(f"Duplicate source format fingerprint: sha256:{fp}")
            formats[fp] = cfg

        _logger.debug("Loaded %d source format(s)", len(formats))
        return cls(formats)

    @classmethod
    def from_json_file(cls, path: str | PathLike[str]) -> SourceFormatRegistry:
        p = Path(path)
        try:
            with p.open(encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as exc:
            raise ConfigurationError(f"Source format registry not found: {p}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Source format registry is not valid JSON: {p}: {exc}") from exc
        return cls.from_mapping(data)


def load_registry(path: str | PathLike[str]) -> SourceFormatRegistry:
    """Load the registry JSON at ``path``."""

    return SourceFormatRegistry.from_json_file(path)


__all__ = ["SourceFormatRegistry", "load_registry"]
