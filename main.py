"""CLI entry point for link enricher.

Generates missing link descriptions with an AI provider, lists links that
still lack one, and manages the category list. Each mode is dispatched to a
small handler so the control flow stays flat.
"""

from __future__ import annotations

# Standard library imports (alphabetical within groups)
import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

# Third-party imports
from dotenv import load_dotenv

# Internal imports
from link_enricher.categories import (
    CategoryError,
    CategoryManager,
    make_password_verifier,
    reassign_links,
)
from link_enricher.config import DEFAULT_PROVIDER_TIMEOUT, ENV_ADMIN_PASSWORD, ENV_STORE_FILE
from link_enricher.job import EnrichmentJob, eligible_items
from link_enricher.models import JobOutcome, ProviderConfig
from link_enricher.provider import ProviderClient
from link_enricher.store import JsonLinkStore

if TYPE_CHECKING:  # pragma: no cover
    from types import FrameType

    from link_enricher.models import EnrichmentReport, LinkItem

STAGES: dict[int, str] = {
    1: "Load link store",
    2: "Scan for missing descriptions",
    3: "Generate descriptions",
    4: "Summary",
}

_PRECONDITION_MESSAGES: dict[JobOutcome, str] = {
    JobOutcome.MISSING_API_KEY: "Configure an API key first (--api-key or LINKS_AI_API_KEY)",
    JobOutcome.NO_ELIGIBLE_ITEMS: "Every link already has a description",
}


def configure_logging(*, verbose: bool) -> None:
    """Configure root logging (debug when verbose)."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def log_stage(stage_number: int, message: str, *args: object) -> None:
    """Log a message prefixed with a stage label."""
    stage_label = STAGES.get(stage_number, f"Stage {stage_number}")
    logger = logging.getLogger("link_enricher")
    logger.info("[%s] %s", stage_label, message % args if args else message)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fill in missing link descriptions with AI")
    parser.add_argument(
        "--store",
        help=(
            "Path to the JSON link store. If omitted, the environment variable"
            f" {ENV_STORE_FILE} is used."
        ),
    )
    parser.add_argument(
        "--mode",
        choices=("describe", "missing", "categories", "delete-category"),
        default="describe",
        help=(
            "'describe'→generate missing descriptions; 'missing'→list links without one;"
            " 'categories'→list categories; 'delete-category'→remove --category."
        ),
    )
    parser.add_argument("--provider", choices=("gemini", "openai"), help="AI provider")
    parser.add_argument("--api-key", help="Provider API key (defaults to LINKS_AI_API_KEY)")
    parser.add_argument("--base-url", help="Base URL for OpenAI-compatible providers")
    parser.add_argument("--model", help="Model name (defaults to the provider's default)")
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_PROVIDER_TIMEOUT,
        help="Per-request timeout in seconds",
    )
    parser.add_argument("--category", help="Category id for mode=delete-category")
    parser.add_argument("--password", help="Admin password for mode=delete-category")
    parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)
    if args.mode == "delete-category" and not args.category:
        parser.error("--category is required with mode=delete-category")
    return args


def _resolve_store(path_arg: str | None) -> JsonLinkStore:
    resolved = path_arg or os.getenv(ENV_STORE_FILE)
    if not resolved:
        msg = f"No link store provided. Supply --store or set {ENV_STORE_FILE} in env."
        raise SystemExit(msg)
    return JsonLinkStore(Path(resolved))


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _log_summary(report: EnrichmentReport) -> None:
    current, total = report.progress.as_tuple()
    log_stage(
        4,
        "%s: processed %d/%d, generated %d, failed %d",
        report.outcome.value,
        current,
        total,
        len(report.succeeded),
        len(report.failures),
    )
    for failure in report.failures:
        log_stage(4, "No description for %s: %s", failure.title, failure.error)


def _handle_describe(args: argparse.Namespace, store: JsonLinkStore) -> int:
    log_stage(1, "Loading links from %s", store.path)
    links = store.load_links()
    config = ProviderConfig.from_env(
        provider=args.provider, api_key=args.api_key, model=args.model, base_url=args.base_url,
    )

    # Same checks the job performs, surfaced before asking for confirmation.
    missing = eligible_items(links)
    if not config.has_credentials:
        log_stage(2, _PRECONDITION_MESSAGES[JobOutcome.MISSING_API_KEY])
        return 1
    if not missing:
        log_stage(2, _PRECONDITION_MESSAGES[JobOutcome.NO_ELIGIBLE_ITEMS])
        return 1
    log_stage(2, "Found %d of %d links without a description", len(missing), len(links))
    if not args.yes and not _confirm(f"Generate descriptions for {len(missing)} links?"):
        log_stage(2, "Cancelled by user")
        return 0

    job = EnrichmentJob(ProviderClient(timeout=args.timeout))

    def _on_sigint(_signum: int, _frame: FrameType | None) -> None:
        job.request_stop()

    def _on_progress(current: int, total: int) -> None:
        log_stage(3, "%d / %d", current, total)

    def _persist(items: list[LinkItem]) -> None:
        try:
            store.replace_all(items)
        except (OSError, ValueError) as exc:
            logging.getLogger("link_enricher").warning(
                "Could not save links to %s: %s", store.path, exc,
            )

    previous = signal.signal(signal.SIGINT, _on_sigint)
    try:
        log_stage(3, "Press Ctrl+C to stop after the current link")
        report = job.run(
            links,
            config,
            on_progress=_on_progress,
            on_partial_result=_persist,
        )
    finally:
        signal.signal(signal.SIGINT, previous)

    if not report.was_started:
        log_stage(4, _PRECONDITION_MESSAGES[report.outcome])
        return 1
    _log_summary(report)
    return 0


def _handle_missing(store: JsonLinkStore) -> int:
    links = store.load_links()
    missing = eligible_items(links)
    for link in missing:
        print(f"{link.id}\t{link.title}\t{link.url}")  # noqa: T201
    log_stage(2, "%d of %d links lack a description", len(missing), len(links))
    return 0


def _handle_categories(store: JsonLinkStore) -> int:
    for category in store.load_categories():
        flags = []
        if category.is_protected:
            flags.append("default")
        if category.is_locked:
            flags.append("locked")
        suffix = f" ({', '.join(flags)})" if flags else ""
        print(f"{category.id}\t{category.name}{suffix}")  # noqa: T201
    return 0


def _handle_delete_category(args: argparse.Namespace, store: JsonLinkStore) -> int:
    logger = logging.getLogger("link_enricher")
    admin_password = os.getenv(ENV_ADMIN_PASSWORD)
    verifier = make_password_verifier(admin_password) if admin_password else None

    def _on_delete(category_id: str) -> None:
        store.replace_all(reassign_links(store.load_links(), category_id))
        store.replace_categories(manager.categories)

    manager = CategoryManager(
        store.load_categories(),
        on_update=store.replace_categories,
        on_delete=_on_delete,
        verify_password=verifier,
    )
    try:
        manager.delete(args.category, auth_password=args.password)
    except CategoryError as exc:
        logger.error("Cannot delete category %s: %s", args.category, exc)  # noqa: TRY400
        return 1
    logger.info("Deleted category %s; its links moved to the default category", args.category)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the link enricher CLI."""
    load_dotenv()
    args = _parse_args(argv)
    configure_logging(verbose=args.verbose)
    store = _resolve_store(args.store)

    if args.mode == "missing":
        return _handle_missing(store)
    if args.mode == "categories":
        return _handle_categories(store)
    if args.mode == "delete-category":
        return _handle_delete_category(args, store)
    return _handle_describe(args, store)


if __name__ == "__main__":
    sys.exit(main())
