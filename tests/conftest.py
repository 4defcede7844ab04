from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

try:
    from hypothesis import HealthCheck, settings
except ImportError:  # pragma: no cover - hypothesis is optional in some environments
    HealthCheck = None  # type: ignore[assignment]
    settings = None  # type: ignore[assignment]

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


SALES_DATA = [
    ["AAA", "500", "3000", "1"],
    ["BBB", "1000", "2000", "0.15"],
    ["CCC", "2000", "1000", "0.35"],
    ["DDD", "3000", "300", "0.25"],
]

SALES_COLUMNS = [
    {"footer": "TOTAL", "header": "Place"},
    {
        "footer": "sum",
        "format": "number_format(cell, 2, '.', ',')",
        "header": "Sales",
        "link": "somepage.php?module=sales&parameter=column[0]",
        "width": "50",
        "graph": {"min": 0, "max": 10000},
        "css_class": "bargraph_100",
    },
    {
        "header": "Revenues",
        "footer": "sum",
        "format": "number_format(cell, 2, '.', ',')",
        "graph": {"min": 0},
        "width": "100",
    },
    {
        "header": "Market Share",
        "footer": "avg",
        "format": "number_format((cell * 100), 2, '.', '') . '%'",
        "graph": {"min": 0, "max": 1},
    },
]


@pytest.fixture
def sales_data() -> list[list[str]]:
    return [list(row) for row in SALES_DATA]


@pytest.fixture
def sales_columns() -> list[dict[str, object]]:
    return [dict(spec) for spec in SALES_COLUMNS]


def pytest_configure(config: pytest.Config) -> None:
    """Declare pytest markers and configure Hypothesis defaults.

    ``--hypothesis-profile`` belongs to Hypothesis's own pytest plugin; the
    profiles it can name are registered when this module is imported.
    """

    for marker, description in [
        ("cli", "Tests that drive the command line entry point."),
        ("property", "Hypothesis-based property tests."),
    ]:
        config.addinivalue_line("markers", f"{marker}: {description}")

    default_profile = _configure_hypothesis_profiles()
    if settings is None:
        return

    selected = config.getoption("hypothesis_profile", None)
    if selected:
        settings.load_profile(selected)
    elif os.getenv("CI"):
        settings.load_profile("ci")
    else:
        settings.load_profile(default_profile)


_HYPOTHESIS_PROFILES_REGISTERED = False


def _configure_hypothesis_profiles() -> str:
    """Register Hypothesis profiles and return the default profile name."""

    global _HYPOTHESIS_PROFILES_REGISTERED
    if settings is None:
        return "dev"

    if not _HYPOTHESIS_PROFILES_REGISTERED:
        suppress_checks = (HealthCheck.filter_too_much,) if HealthCheck else ()
        settings.register_profile(
            "dev",
            settings(
                max_examples=25,
                deadline=500,
                suppress_health_check=suppress_checks,
            ),
        )
        settings.register_profile(
            "ci",
            settings(
                max_examples=75,
                deadline=750,
                print_blob=True,
                suppress_health_check=suppress_checks,
            ),
        )
        settings.register_profile(
            "stress",
            settings(
                max_examples=150,
                deadline=None,
                print_blob=True,
                suppress_health_check=suppress_checks,
            ),
        )
        _HYPOTHESIS_PROFILES_REGISTERED = True
    return "dev"


_configure_hypothesis_profiles()
