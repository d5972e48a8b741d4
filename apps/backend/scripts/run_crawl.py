"""
Run a crawl from the command line and print the JSON summary.

    python scripts/run_crawl.py               # all sources
    python scripts/run_crawl.py --mode revu   # one source
"""

import sys
import json
import asyncio
import logging
import argparse
from pathlib import Path

from dotenv import load_dotenv

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.models import Source
from crawler.orchestrator import CrawlOrchestrator, summarize


async def run(mode: str) -> dict:
    orchestrator = CrawlOrchestrator()
    if mode == "all":
        results = await orchestrator.run_all()
    else:
        source = Source.from_name(mode)
        if source is None:
            print(f"ERROR: unknown mode '{mode}'")
            sys.exit(2)
        results = [await orchestrator.run_one(source)]

    return {
        "success": any(r.success for r in results),
        "mode": mode,
        "summary": summarize(results),
        "results": [r.to_dict() for r in results],
    }


if __name__ == '__main__':
    load_dotenv()

    parser = argparse.ArgumentParser(description='Crawl campaign sources and save them')
    parser.add_argument('--mode', default='all', help="'all' or one of: reviewplace, reviewnote, revu")
    parser.add_argument('--log-level', default='INFO')
    args = parser.parse_args()

    logging.basicConfig(level=args.log_level.upper())
    output = asyncio.run(run(args.mode.lower()))
    print(json.dumps(output, ensure_ascii=False, indent=2, default=str))
    sys.exit(0 if output["success"] else 1)
