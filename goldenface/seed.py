"""
Populate the vector index with reference ratio signatures.

Usage: goldenface-seed [references.json] [--batch-size 100] [--dry-run]

The input file is a JSON list of entries, each with an ``id``, either a
``ratios`` object (wire keys) or a five-element ``values`` list, and an
optional ``metadata`` object (name, description, advice, imageUrl).
Without a file argument the bundled reference set is seeded.
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from goldenface.config import get_config
from goldenface.domain.embedding import embed
from goldenface.domain.errors import VectorServiceError
from goldenface.domain.interfaces import VectorIndexInterface
from goldenface.domain.models import RATIO_KEYS, RatioSet, ReferenceVector

logger = logging.getLogger(__name__)

DEFAULT_REFERENCES = Path(__file__).parent / "data" / "references.json"


def parse_reference(entry: Mapping[str, Any]) -> ReferenceVector:
    """Validate one entry and build its reference vector"""
    ref_id = entry.get("id")
    if not ref_id:
        raise ValueError("reference is missing an id")

    if "ratios" in entry:
        ratios = RatioSet.from_dict(entry["ratios"])
    elif "values" in entry:
        values = entry["values"]
        if not isinstance(values, list) or len(values) != len(RATIO_KEYS):
            raise ValueError(f"{ref_id}: values must list {len(RATIO_KEYS)} numbers")
        ratios = RatioSet.from_dict(dict(zip(RATIO_KEYS, values)))
    else:
        raise ValueError(f"{ref_id}: needs ratios or values")

    return ReferenceVector(
        id=str(ref_id),
        values=embed(ratios),
        metadata=dict(entry.get("metadata") or {}),
    )


def load_references(path: Path) -> List[ReferenceVector]:
    with open(path, encoding="utf-8") as f:
        entries = json.load(f)
    if not isinstance(entries, list):
        raise ValueError("reference file must contain a JSON list")
    return [parse_reference(entry) for entry in entries]


def batched(items: List[ReferenceVector], size: int) -> Iterable[List[ReferenceVector]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def seed(index: VectorIndexInterface, references: List[ReferenceVector], batch_size: int = 100) -> int:
    """Upsert references in batches, returning the number written"""
    written = 0
    for batch in batched(references, batch_size):
        written += index.upsert(batch)
        logger.info(f"Upserted {written}/{len(references)} references")
    return written


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="goldenface-seed",
        description="Seed the reference vector index",
    )
    parser.add_argument(
        "references",
        type=Path,
        nargs="?",
        default=DEFAULT_REFERENCES,
        help="JSON file of reference entries (default: bundled set)",
    )
    parser.add_argument("--batch-size", type=int, default=100, help="vectors per upsert request")
    parser.add_argument("--dry-run", action="store_true", help="validate without writing")
    return parser


def main(argv: Optional[List[str]] = None, index: Optional[VectorIndexInterface] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if args.batch_size < 1:
        logger.error("--batch-size must be at least 1")
        return 2

    try:
        references = load_references(args.references)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot load references: {e}")
        return 1

    logger.info(f"Loaded {len(references)} references from {args.references}")
    if args.dry_run:
        return 0

    if index is None:
        from goldenface.app import build_vector_index
        index = build_vector_index(get_config())

    try:
        seed(index, references, args.batch_size)
    except VectorServiceError as e:
        logger.error(f"Seeding failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
