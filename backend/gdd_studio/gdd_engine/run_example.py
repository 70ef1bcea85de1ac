"""
Run the GDD pipeline from the command line, without the HTTP layer.

    python -m gdd_studio.gdd_engine.run_example --idea "a puzzle game about gravity"
"""

import argparse
import asyncio
import logging
import sys

from gdd_studio.config import CONFIG, missing_required
from gdd_studio.llm_client import build_llm_client
from gdd_studio.gdd_engine.orchestrator.orchestrator import GDDOrchestrator
from gdd_studio.gdd_engine.run_store import RunStore


async def run(idea: str, output_dir: str) -> dict:
    orchestrator = GDDOrchestrator(build_llm_client(CONFIG), RunStore(output_dir))
    result = {}
    async for event in orchestrator.run(idea):
        if event["type"] == "result":
            result = event
        else:
            print(f"[{event['step']}] {event['output'][:300]}")
    return result


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Generate a game design document from an idea.")
    parser.add_argument("--idea", required=True)
    parser.add_argument("--output-dir", default=CONFIG["GDD_OUTPUT_DIR"])
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)

    missing = missing_required(CONFIG)
    if missing:
        print(f"Missing required environment variables: {', '.join(missing)}", file=sys.stderr)
        return 1

    result = asyncio.run(run(args.idea, args.output_dir))

    print("\n======================= 📘 RUN FOLDER =======================\n")
    print(result["folderPath"])
    print("\n======================= 🧮 TOKEN USAGE ======================\n")
    print(result["tokenUsage"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
