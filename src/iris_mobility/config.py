"""
Site Configuration (Shell)

Each site folder carries a ``metadata.json`` describing the sensor feed:
city and intersection names, where the daily CSV files live, where reports
go, and the report constants.

Package Location: src/iris_mobility/config.py

Relative ``data_dir`` / ``output_dir`` values are resolved against the
folder holding ``metadata.json``.  Keys this module does not know are
ignored with a warning so hand-edited files keep loading.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .analysis.aggregate import DEFAULT_SPEED_LIMIT_KMH
from .data.catalog import CATALOG_END, CATALOG_START

log = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised when ``metadata.json`` is missing, unparseable or mistyped."""
    pass


@dataclass(frozen=True)
class ReportConfig:
    city_name: str
    data_dir: Path
    output_dir: Path
    intersection_name: Optional[str] = None
    speed_limit_kmh: float = DEFAULT_SPEED_LIMIT_KMH
    catalog_start: date = CATALOG_START
    catalog_end: date = CATALOG_END
    product_name: str = 'IRIS Mobility'
    capture_timeout: float = 4.5
    chart_width: int = 900
    chart_scale: float = 2.0

    @property
    def metadata(self) -> Dict[str, Any]:
        """Chart / cover metadata in the shape the plotting layer expects."""
        return {
            'city_name': self.city_name,
            'intersection_name': self.intersection_name,
        }


_NUMERIC_KEYS = ('speed_limit_kmh', 'capture_timeout', 'chart_scale')
_DATE_KEYS = ('catalog_start', 'catalog_end')


def load_config(path: Union[str, Path]) -> ReportConfig:
    """
    Read a ``metadata.json`` file.

    Args:
        path: Path to the JSON file (or to the folder that contains it).

    Returns:
        Validated ``ReportConfig``.

    Raises:
        ConfigError: Missing file, invalid JSON, or a field of the wrong type.
    """
    path = Path(path)
    if path.is_dir():
        path = path / 'metadata.json'
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with path.open(encoding='utf-8') as fh:
            raw = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"{path.name} must contain a JSON object")

    known = {f.name for f in fields(ReportConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        log.warning(
            f"Ignoring unknown config keys: {', '.join(unknown)}",
            extra={"config": str(path), "keys": unknown},
        )

    base = path.parent
    values: Dict[str, Any] = {k: v for k, v in raw.items() if k in known and v is not None}

    city = values.get('city_name')
    if not isinstance(city, str) or not city.strip():
        raise ConfigError("'city_name' must be a non-empty string")

    values['data_dir'] = _resolve_dir(base, values.get('data_dir', 'raw_data'), 'data_dir')
    values['output_dir'] = _resolve_dir(base, values.get('output_dir', 'outputs'), 'output_dir')

    for key in _NUMERIC_KEYS:
        if key in values:
            values[key] = _number(values[key], key)
    if 'chart_width' in values:
        values['chart_width'] = int(_number(values['chart_width'], 'chart_width'))
    for key in _DATE_KEYS:
        if key in values:
            values[key] = _iso_date(values[key], key)

    config = ReportConfig(**values)
    if config.catalog_end < config.catalog_start:
        raise ConfigError("'catalog_end' is before 'catalog_start'")
    return config


def default_metadata(name: str) -> Dict[str, Any]:
    """
    Template written by ``iris setup``.

    ``name`` is the site folder name; underscores become spaces in the
    pre-filled city name.
    """
    return {
        # --- Site (Required) ---
        "city_name":         name.replace("_", " "),
        "intersection_name": None,   # e.g. "Av. Arequipa & Av. Javier Prado"

        # --- Paths (relative to this file) ---
        "data_dir":          "raw_data",
        "output_dir":        "outputs",

        # --- Report constants ---
        "speed_limit_kmh":   DEFAULT_SPEED_LIMIT_KMH,
        "catalog_start":     CATALOG_START.isoformat(),
        "catalog_end":       CATALOG_END.isoformat(),
        "product_name":      "IRIS Mobility",
        "capture_timeout":   4.5,
        "chart_width":       900,
        "chart_scale":       2,
    }


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _resolve_dir(base: Path, value: Any, key: str) -> Path:
    if not isinstance(value, str) or not value:
        raise ConfigError(f"'{key}' must be a path string")
    p = Path(value).expanduser()
    return p if p.is_absolute() else (base / p)


def _number(value: Any, key: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    if value <= 0:
        raise ConfigError(f"'{key}' must be positive, got {value!r}")
    return float(value)


def _iso_date(value: Any, key: str) -> date:
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ConfigError(f"'{key}' must be a YYYY-MM-DD date, got {value!r}") from exc
