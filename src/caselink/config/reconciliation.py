"""Reconciliation run defaults."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_int_env

DEFAULT_LINK_WINDOW_DAYS = 3
DEFAULT_BATCH_WORKERS = 4
DEFAULT_EXCLUDED_SECTION_TITLES = ("AI Clinical Assessment", "AI-Structured Notes")


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    link_window_days: int = DEFAULT_LINK_WINDOW_DAYS
    batch_workers: int = DEFAULT_BATCH_WORKERS
    excluded_section_titles: tuple[str, ...] = DEFAULT_EXCLUDED_SECTION_TITLES


def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig(
        link_window_days=optional_int_env(
            "CASELINK_LINK_WINDOW_DAYS", DEFAULT_LINK_WINDOW_DAYS, minimum=0
        ),
        batch_workers=optional_int_env("CASELINK_BATCH_WORKERS", DEFAULT_BATCH_WORKERS, minimum=1),
    )
