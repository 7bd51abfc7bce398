"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from decimal import InvalidOperation
from pathlib import Path

from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..errors import StatementError
from ..learning import merge_corrections
from ..schemas.transactions import ExtractionResult, FinalizedTransaction
from ..services import StatementService

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ocr-statements",
        description="Extract transactions from OCR'd bank statements and learn from corrections",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # extract command
    extract_parser = subparsers.add_parser(
        "extract", help="Extract transactions from statement text"
    )
    source = extract_parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--file",
        type=Path,
        help="Text file with OCR output",
    )
    source.add_argument(
        "--doc-id",
        type=int,
        help="Paperless document ID",
    )
    source.add_argument(
        "--tagged",
        action="store_true",
        help="All Paperless documents with the configured statement tag",
    )
    extract_parser.add_argument(
        "--limit",
        type=int,
        help="With --tagged: scan at most this many documents",
    )
    extract_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )

    # correct command
    correct_parser = subparsers.add_parser(
        "correct", help="Learn from a reviewed correction batch"
    )
    correct_parser.add_argument(
        "corrections",
        type=Path,
        help="JSON file with a list of corrected transactions",
    )
    correct_parser.add_argument(
        "--merge",
        type=Path,
        help="JSON file with prior accepted results; prints the merged list",
    )

    # patterns command
    subparsers.add_parser("patterns", help="Show learned merchant patterns")

    # init-config command
    subparsers.add_parser("init-config", help="Write a default config file")

    return parser


def _print_transactions(title: str, transactions: list[FinalizedTransaction]) -> None:
    print(f"\n{title} ({len(transactions)})")
    print("-" * 60)
    for tx in transactions:
        flag = " ⚠ disputed" if tx.disputed else ""
        print(
            f"  {tx.date}  {tx.raw_amount:>10}  {tx.description[:36]:<36}  "
            f"{tx.confidence:.0%}{flag}"
        )


def cmd_extract(config: Config, file: Path | None, doc_id: int | None, as_json: bool) -> int:
    """Extract transactions from a text file or a Paperless document."""
    service = StatementService.from_config(config)

    try:
        if file is not None:
            result = service.extract(file.read_text(encoding="utf-8"))
        else:
            result = service.extract_document(doc_id)
    except (StatementError, OSError, ValueError) as e:
        logger.debug("Extraction failed", exc_info=True)
        print(f"❌ Extraction failed: {e}")
        return 1

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return 0

    _report(service, result)
    return 0


def cmd_extract_tagged(config: Config, limit: int | None, as_json: bool) -> int:
    """Extract every Paperless document with the configured statement tag."""
    service = StatementService.from_config(config)

    try:
        scanned = service.extract_tagged(limit=limit)
    except (StatementError, ValueError) as e:
        logger.debug("Extraction failed", exc_info=True)
        print(f"❌ Extraction failed: {e}")
        return 1

    if as_json:
        documents = [
            {"id": document.id, "title": document.title, **result.to_dict()}
            for document, result in scanned
        ]
        print(json.dumps({"documents": documents}, indent=2))
        return 0

    if not scanned:
        print(f"No documents tagged {config.paperless.filter_tag!r}")
        return 0

    for document, result in scanned:
        print(f"\n📄 #{document.id} {document.title}")
        _report(service, result)
    return 0


def _report(service: StatementService, result: ExtractionResult) -> None:
    _print_transactions("✓ Accepted", result.accepted)
    _print_transactions("👀 Needs review", result.needs_review)

    for tx in result.needs_review:
        issues = service.scorer.explain(tx)
        if issues:
            print(f"  {tx.date} {tx.description[:36]}: {', '.join(issues)}")
    print()


def _read_json_list(path: Path, key: str) -> list:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list")
    return data


def cmd_correct(config: Config, corrections: Path, merge: Path | None) -> int:
    """Apply a reviewed correction batch."""
    try:
        batch = _read_json_list(corrections, "corrections")
        prior = (
            [FinalizedTransaction.from_dict(d) for d in _read_json_list(merge, "accepted")]
            if merge
            else None
        )
    except (OSError, ValueError, KeyError, InvalidOperation) as e:
        print(f"❌ Could not read corrections: {e}")
        return 1

    service = StatementService.from_config(config)
    try:
        service.apply_user_corrections(batch)
    except (ValueError, KeyError, InvalidOperation) as e:
        print(f"❌ Invalid correction batch: {e}")
        return 1

    if prior is not None:
        merged = merge_corrections(prior, batch)
        print(json.dumps([tx.to_dict() for tx in merged], indent=2))
        return 0

    print(f"✓ Applied {len(batch)} correction(s)")
    print(f"  Known merchants: {len(service.store.patterns)}")
    return 0


def cmd_patterns(config: Config) -> int:
    """Show learned merchant patterns."""
    service = StatementService.from_config(config)
    patterns = service.store.patterns

    print("\n🧠 Learned Merchant Patterns")
    print("=" * 60)
    for merchant, entry in sorted(patterns.items()):
        print(f"  {merchant:<32} {entry.type.value:<8} seen {entry.count}x")
    print(f"\n  Merchants:   {len(patterns)}")
    print(f"  Corrections: {len(service.store.corrections)}")
    print()
    return 0


def cmd_init_config(config_path: Path) -> int:
    """Write a default configuration file."""
    if config_path.exists():
        print(f"❌ Config already exists: {config_path}")
        return 1

    create_default_config(config_path)
    print(f"✓ Wrote default config to {config_path}")
    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config)

    # Load config
    try:
        config = load_config(parsed.config)
    except (ConfigValidationError, OSError, ValueError) as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    errors = config.validate()
    if errors:
        for error in errors:
            print(f"❌ {error}")
        return 1

    # Route to command
    if parsed.command == "extract" and parsed.tagged:
        return cmd_extract_tagged(config, parsed.limit, parsed.json)
    elif parsed.command == "extract":
        return cmd_extract(config, parsed.file, parsed.doc_id, parsed.json)
    elif parsed.command == "correct":
        return cmd_correct(config, parsed.corrections, parsed.merge)
    elif parsed.command == "patterns":
        return cmd_patterns(config)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
