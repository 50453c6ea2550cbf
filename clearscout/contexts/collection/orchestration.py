"""
Collection orchestration: run strategies in priority order with logging.

Provides functionality to:
- Build the strategy chain (API -> sitemap -> directory walk) from config
- Run each strategy only while the quota is unmet, handing it the remaining quota
- Log execution details to timestamped files
- Return structured per-strategy results
"""

import os
import time
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from loguru import logger

from clearscout.contexts.collection.api import APICollector
from clearscout.contexts.collection.base import CollectionStrategy
from clearscout.contexts.collection.directory import DirectoryCollector
from clearscout.contexts.collection.requests import URLFetcher
from clearscout.contexts.collection.sitemap import SitemapCollector
from clearscout.contexts.collection.state import CollectionState
from clearscout.contexts.filtering import SearchFilter

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))

STRATEGY_ORDER = ["api", "sitemap", "directory"]

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {message}"


def _setup_logger(log_dir: Path = LOGS_PATH, console_level: str = "INFO") -> Path:
    """
    Send every log record to a fresh ``collection_<timestamp>.txt`` under log_dir,
    and records at console_level or above to the terminal.

    Returns:
        Path of the log file for this run
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"collection_{datetime.now():%Y%m%d_%H%M%S}.txt"

    logger.remove()
    logger.add(log_file, format=LOG_FORMAT, level="DEBUG")
    logger.add(lambda message: print(message, end=""), format=LOG_FORMAT + "\n", level=console_level)
    return log_file


@dataclass
class CollectionReport:
    results_wanted: int
    strategies: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def total_saved(self) -> int:
        return sum(result["saved"] for result in self.strategies.values())


def build_strategies(
    collection_config,
    fetcher: URLFetcher,
    sink,
    names: Optional[List[str]] = None,
    verbose: bool = True,
) -> List[CollectionStrategy]:
    """
    Instantiate the strategy chain from collection.yaml settings.

    Args:
        collection_config: Loaded collection config (DictConfig)
        fetcher: Shared fetcher (retry + circuit breaker)
        sink: Record sink every strategy writes to
        names: Strategy names to build, in STRATEGY_ORDER (default: all)
        verbose: Show progress bars

    Returns:
        Strategies in priority order. The API strategy is left out when
        prefer_html_only is set.
    """
    cfg = collection_config
    names = names or STRATEGY_ORDER
    if cfg.get("prefer_html_only", False):
        names = [name for name in names if name != "api"]

    common = {
        "batch_width": cfg.batch_width,
        "batch_delay": cfg.get("batch_delay", 0.0),
        "search_filter": SearchFilter.from_config(cfg),
        "verbose": verbose,
    }

    factories = {
        "api": lambda: APICollector(
            fetcher,
            sink,
            cfg.base_url,
            bootstrap_path=cfg.get("bootstrap_path", "/jobs"),
            keywords=cfg.get("keywords") or None,
            location=cfg.get("location") or None,
            clearance=cfg.get("clearance") or None,
            remote=cfg.get("remote") or None,
            sort=cfg.get("sort") or None,
            max_pages=cfg.max_pages,
            min_description_chars=cfg.min_description_chars,
            **common,
        ),
        "sitemap": lambda: SitemapCollector(
            fetcher, sink, cfg.base_url, sitemap_path=cfg.get("sitemap_path", "/sitemap.xml"), **common
        ),
        "directory": lambda: DirectoryCollector(
            fetcher,
            sink,
            cfg.base_url,
            directory_path=cfg.get("directory_path", "/employer-directory"),
            max_directory_pages=cfg.max_directory_pages,
            max_requests=cfg.max_requests,
            **common,
        ),
    }

    unknown = [name for name in names if name not in factories]
    if unknown:
        raise ValueError(f"Unknown strategy name(s): {', '.join(unknown)}. Available: {', '.join(STRATEGY_ORDER)}")

    return [factories[name]() for name in STRATEGY_ORDER if name in names]


def _result(status: str, saved: int = 0, elapsed: float = 0.0, error: Optional[str] = None, trace: Optional[str] = None):
    return {"status": status, "saved": saved, "time_elapsed": elapsed, "error": error, "traceback": trace}


def run_strategy(strategy: CollectionStrategy, state: CollectionState, verbose: bool = True) -> Dict[str, Any]:
    """
    Run one strategy against the remaining quota.

    An exception inside the strategy is logged and reported in the result; it
    never propagates. Records the strategy saved before failing still count.

    Returns:
        Dict with status ("success" or "failed"), saved, time_elapsed, and on
        failure error and traceback
    """
    started = time.time()
    saved_before = state.saved
    logger.info(f"[{strategy.name}] Starting (remaining={state.remaining})")

    try:
        saved = strategy.collect(state, state.remaining)
    except Exception as e:
        elapsed = time.time() - started
        partial = state.saved - saved_before
        trace = traceback.format_exc()
        progress = f" after saving {partial} records" if partial else ""
        logger.error(f"[{strategy.name}] Failed{progress}: {e} ({elapsed:.1f}s)")
        if verbose:
            logger.debug(f"[{strategy.name}] Traceback:\n{trace}")
        return _result(STATUS_FAILED, partial, elapsed, str(e), trace)

    elapsed = time.time() - started
    logger.success(f"[{strategy.name}] Completed: {saved} records saved ({elapsed:.1f}s)")
    return _result(STATUS_SUCCESS, saved, elapsed)


def run_collection(
    strategies: List[CollectionStrategy],
    state: CollectionState,
    verbose: bool = True,
) -> CollectionReport:
    """
    Orchestrator: run strategies strictly in order until the quota is met.

    Later strategies are skipped entirely once an earlier one meets the quota.
    Zero saved records after every strategy ran is a valid outcome, not an error.

    Example:
        state = CollectionState(results_wanted=50)
        report = run_collection(build_strategies(config, fetcher, sink), state)
    """
    report = CollectionReport(results_wanted=state.results_wanted)
    logger.info(
        f"Starting collection: {state.results_wanted} wanted, strategies: {', '.join(s.name for s in strategies)}"
    )

    for strategy in strategies:
        if state.quota_met:
            report.strategies[strategy.name] = _result(STATUS_SKIPPED)
            logger.info(f"[{strategy.name}] Skipped: quota already met")
            continue
        report.strategies[strategy.name] = run_strategy(strategy, state, verbose=verbose)

    failures = sum(1 for r in report.strategies.values() if r["status"] == STATUS_FAILED)
    logger.info(
        f"Collection complete: {report.total_saved}/{state.results_wanted} records saved, "
        f"{failures} strategy failure(s)"
    )
    if report.total_saved == 0:
        logger.warning("No records collected by any strategy")

    return report
