"""Crawler configuration.

Defaults live in module-level constants. `CrawlerConfig.from_env` lets
deployments override them through `CATALOG_CRAWLER_*` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping

DEFAULT_BASE_URL = "https://www.aliexpress.com/wholesale"
DEFAULT_OUTPUT_FILE = "aliexpress_products.json"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

# Chromium flags for containers and serverless sandboxes.
DEFAULT_LAUNCH_ARGS: tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
)

BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font"})

ENV_PREFIX = "CATALOG_CRAWLER_"


class FailurePolicy(Enum):
    """What the pagination loop does when a page fails mid-crawl."""

    PARTIAL = "partial"
    RAISE = "raise"


@dataclass(frozen=True)
class CrawlerConfig:
    base_url: str = DEFAULT_BASE_URL
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    launch_args: tuple[str, ...] = DEFAULT_LAUNCH_ARGS
    viewport: dict[str, int] = field(default_factory=lambda: {"width": 1920, "height": 1080})
    locale: str | None = "en-US"
    stealth: bool = False
    block_resources: bool = True
    navigation_timeout_ms: int = 60_000
    selector_timeout_ms: int = 10_000
    settle_delay_ms: int = 2_000
    wait_for_content: bool = True
    run_timeout_s: float | None = 300.0
    failure_policy: FailurePolicy = FailurePolicy.PARTIAL
    dedupe: bool = True
    max_concurrent_runs: int = 2
    output_file: Path | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CrawlerConfig:
        """Build a config from `CATALOG_CRAWLER_*` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        overrides: dict[str, object] = {}

        def raw(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            if value is None or not value.strip():
                return None
            return value.strip()

        if (value := raw("BASE_URL")) is not None:
            overrides["base_url"] = value
        if (value := raw("USER_AGENT")) is not None:
            overrides["user_agent"] = value
        if (value := raw("LOCALE")) is not None:
            overrides["locale"] = value
        if (value := raw("OUTPUT_FILE")) is not None:
            overrides["output_file"] = Path(value)
        if (value := raw("FAILURE_POLICY")) is not None:
            try:
                overrides["failure_policy"] = FailurePolicy(value.lower())
            except ValueError:
                raise ValueError(
                    f"{ENV_PREFIX}FAILURE_POLICY must be one of "
                    f"{', '.join(p.value for p in FailurePolicy)}, got {value!r}"
                ) from None

        for name, attr in (
            ("HEADLESS", "headless"),
            ("STEALTH", "stealth"),
            ("BLOCK_RESOURCES", "block_resources"),
            ("WAIT_FOR_CONTENT", "wait_for_content"),
            ("DEDUPE", "dedupe"),
        ):
            if (value := raw(name)) is not None:
                overrides[attr] = _parse_bool(ENV_PREFIX + name, value)

        for name, attr in (
            ("NAVIGATION_TIMEOUT_MS", "navigation_timeout_ms"),
            ("SELECTOR_TIMEOUT_MS", "selector_timeout_ms"),
            ("SETTLE_DELAY_MS", "settle_delay_ms"),
            ("MAX_CONCURRENT_RUNS", "max_concurrent_runs"),
        ):
            if (value := raw(name)) is not None:
                overrides[attr] = _parse_int(ENV_PREFIX + name, value)

        if (value := raw("RUN_TIMEOUT_S")) is not None:
            if value.lower() in {"none", "off", "0"}:
                overrides["run_timeout_s"] = None
            else:
                try:
                    overrides["run_timeout_s"] = float(value)
                except ValueError:
                    raise ValueError(f"{ENV_PREFIX}RUN_TIMEOUT_S must be a number, got {value!r}") from None

        return cls(**overrides)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


def _parse_int(name: str, value: str) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if parsed < 0:
        raise ValueError(f"{name} must not be negative, got {parsed}")
    return parsed
