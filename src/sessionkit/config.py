"""Runtime configuration: .env loading, basket thresholds and display theme."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_ENV_PATH = Path("config/ga4/.env")
DEFAULT_MARKER = "ENTRANCE-"

REQUIRED_BASKET_KEYS = ("min_support", "min_confidence", "min_size", "min_items")


def maybe_load_dotenv(path: Path = DEFAULT_ENV_PATH) -> None:
	"""Load KEY=VALUE pairs from *path* without overriding the process env."""
	if path.exists():
		load_dotenv(path, override=False)


@dataclass(frozen=True)
class BasketSettings:
	"""Thresholds for the market basket pipeline.

	The four thresholds are required; there is no universally sensible value
	for them, it depends on traffic volume.
	"""
	min_support: float
	min_confidence: float
	min_size: int
	min_items: int
	min_lift: Optional[float] = None
	max_rules: Optional[int] = None
	marker: str = DEFAULT_MARKER

	def __post_init__(self) -> None:
		for name in ("min_support", "min_confidence"):
			v = getattr(self, name)
			if not 0 < v <= 1:
				raise ValueError(f"{name} must be in (0, 1], got {v}")
		for name in ("min_size", "min_items"):
			if getattr(self, name) < 1:
				raise ValueError(f"{name} must be >= 1, got {getattr(self, name)}")
		if self.min_lift is not None and self.min_lift < 0:
			raise ValueError(f"min_lift must be >= 0, got {self.min_lift}")
		if self.max_rules is not None and self.max_rules < 1:
			raise ValueError(f"max_rules must be >= 1, got {self.max_rules}")
		if not self.marker:
			raise ValueError("marker must be a non-empty string")

	@classmethod
	def from_mapping(cls, data: Dict[str, Any], **overrides: Any) -> "BasketSettings":
		"""Build settings from *data*; non-None *overrides* win (CLI flags)."""
		known = {f.name for f in fields(cls)}
		unknown = sorted(set(data) - known)
		if unknown:
			raise ValueError(f"Unknown basket setting(s): {', '.join(unknown)}")
		merged = dict(data)
		merged.update({k: v for k, v in overrides.items() if v is not None})
		missing = [k for k in REQUIRED_BASKET_KEYS if merged.get(k) is None]
		if missing:
			raise ValueError(f"Missing required basket setting(s): {', '.join(missing)}")
		return cls(
			min_support=float(merged["min_support"]),
			min_confidence=float(merged["min_confidence"]),
			min_size=int(merged["min_size"]),
			min_items=int(merged["min_items"]),
			min_lift=float(merged["min_lift"]) if merged.get("min_lift") is not None else None,
			max_rules=int(merged["max_rules"]) if merged.get("max_rules") is not None else None,
			marker=str(merged.get("marker") or DEFAULT_MARKER),
		)

	@classmethod
	def from_yaml(cls, path: Path | str | None, **overrides: Any) -> "BasketSettings":
		"""Load a YAML mapping (optionally nested under ``basket:``)."""
		data: Dict[str, Any] = {}
		if path is not None:
			p = Path(path)
			if not p.exists():
				raise RuntimeError(f"Basket config not found at {p}")
			loaded = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
			if not isinstance(loaded, dict):
				raise ValueError(f"{p} must contain a mapping of settings")
			data = loaded.get("basket", loaded) or {}
			if not isinstance(data, dict):
				raise ValueError(f"{p}: 'basket' must be a mapping of settings")
		return cls.from_mapping(data, **overrides)


@dataclass(frozen=True)
class Theme:
	"""Display options handed to every renderer."""
	template: str = "plotly_white"
	color_scale: str = "Viridis"
	primary: str = "#2563EB"
	secondary: str = "#10B981"
	highlight: str = "#FEF3C7"
	height: int = 450
	font_family: str = "Helvetica, Arial, sans-serif"
	extra_css: str = field(default="", repr=False)

	def with_overrides(self, **kwargs: Any) -> "Theme":
		return replace(self, **{k: v for k, v in kwargs.items() if v is not None})

