"""
Score a verification report from the command line.

Usage:
    python -m loan_verification.scripts.score_report --draft draft.json
    python -m loan_verification.scripts.score_report --text report.txt
    python -m loan_verification.scripts.score_report --text report.txt --strategy holistic

--draft implies the deterministic strategy; --text defaults to the
pattern-based strategy. Prints the aggregated breakdown as JSON.
Exit code 0 for any scoring outcome (including tagged failures), 2 when
the input file cannot be read.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from loan_verification.config import get_settings
from loan_verification.core.logging import configure_logging, get_logger
from loan_verification.models.enumerations import ScoringStrategy
from loan_verification.scoring.aggregator import ScoreAggregator
from loan_verification.scoring.deterministic_scorer import DeterministicScorer
from loan_verification.scoring.holistic_scorer import HolisticScorer
from loan_verification.scoring.pattern_scorer import PatternScorer

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_BAD_INPUT = 2


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Score a loan verification report")
    source = ap.add_mutually_exclusive_group(required=True)
    source.add_argument("--draft", type=Path, help="Structured draft report (JSON)")
    source.add_argument("--text", type=Path, help="Raw report text (UTF-8)")
    ap.add_argument(
        "--strategy",
        choices=[s.value for s in ScoringStrategy],
        help="Scoring strategy (default: deterministic for --draft, pattern for --text)",
    )
    ap.add_argument("--deadline", type=float, default=None, help="Holistic scoring deadline in seconds")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings)

    path: Path = args.draft or args.text
    try:
        raw = path.read_text(encoding="utf-8")
        draft = json.loads(raw) if args.draft else None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("input_unreadable", path=str(path), error=str(e))
        print(f"error: cannot read {path}: {e}", file=sys.stderr)
        return EXIT_BAD_INPUT

    default = ScoringStrategy.DETERMINISTIC if args.draft else ScoringStrategy.PATTERN
    strategy = ScoringStrategy(args.strategy) if args.strategy else default

    if strategy is ScoringStrategy.DETERMINISTIC:
        result = DeterministicScorer().score_draft(draft)
    elif strategy is ScoringStrategy.PATTERN:
        # a draft scored by pattern is read as its JSON text
        result = PatternScorer().score(raw)
    else:
        scorer = HolisticScorer.from_settings(settings)
        try:
            result = scorer.score(raw, deadline_seconds=args.deadline)
        finally:
            if scorer.client is not None:
                scorer.client.close()

    aggregate = ScoreAggregator().aggregate(result)
    print(json.dumps(aggregate.to_dict(), indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
