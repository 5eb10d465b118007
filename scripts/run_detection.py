"""
Run question detection and marking-scheme orchestration against a corpus.

Reads fragments from a JSON file (a list of {"text", "question_number",
"student_work", ...} objects) or a single --text query, and prints the
resulting scheme map and statistics as JSON.

Usage:
    python scripts/run_detection.py --corpus corpus/ --fragments page.json --hint "Edexcel 1MA1/1H"
    python scripts/run_detection.py --corpus corpus/ --text "Solve 2x + 3 = 7" --question 4
    python scripts/run_detection.py --corpus corpus/ --fragments page.json --results-log runs.jsonl

With --results-log each run is also appended as one JSON line, under an
exclusive file lock so parallel runs can share one log.
"""

import json
import logging
import sys
from pathlib import Path

# Add src to path so we can import gcse_markscheme
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root / "src"))

from gcse_markscheme.core.models import QueryFragment
from gcse_markscheme.detection import DetectionConfig, QuestionDetectionService
from gcse_markscheme.loading import CorpusCache, JsonlCorpusSource, LoaderError, locked_append_jsonl
from gcse_markscheme.orchestration import MarkingSchemeOrchestrationService

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger("run_detection")


def load_fragments(path: Path) -> list:
    """Load fragments from a JSON list (or {"questions": [...]})."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("questions", [])
    return [QueryFragment.from_dict(item) for item in data]


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Detect past-paper questions and resolve marking schemes")
    parser.add_argument("--corpus", type=Path, required=True, help="Directory with papers.jsonl / schemes.jsonl")
    parser.add_argument("--fragments", type=Path, help="JSON file of question fragments")
    parser.add_argument("--text", type=str, help="Single question text (instead of --fragments)")
    parser.add_argument("--question", type=str, help="Question number hint for --text")
    parser.add_argument("--hint", type=str, default=None, help="Exam paper hint")
    parser.add_argument("--workers", type=int, default=1, help="Threads for candidate scoring")
    parser.add_argument("--results-log", type=Path, default=None, help="Append the result to this JSONL file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.fragments:
        fragments = load_fragments(args.fragments)
    elif args.text:
        fragments = [QueryFragment(text=args.text, question_number=args.question)]
    else:
        parser.error("one of --fragments or --text is required")

    cache = CorpusCache(JsonlCorpusSource(args.corpus))
    try:
        try:
            cache.get()
        except LoaderError as e:
            logger.error(f"Could not load corpus: {e}")
            return 1

        detector = QuestionDetectionService(cache, DetectionConfig(max_workers=args.workers))
        service = MarkingSchemeOrchestrationService(detector)
        result = service.orchestrate(fragments, paper_hint=args.hint)
    finally:
        cache.close()

    payload = result.to_dict()
    if args.results_log:
        locked_append_jsonl(args.results_log, {"paper_hint": args.hint, **payload})
        logger.info(f"Appended result to {args.results_log}")
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
