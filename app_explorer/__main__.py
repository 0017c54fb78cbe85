import argparse
import asyncio
import json
import logging
import os

import networkx as nx

from .config import ExplorationConfig
from .explorer import ExplorationAgent
from .fixtures import Fixture
from .openai_oracle import OpenAIOracle
from .playwright_driver import PlaywrightDriver

logger = logging.getLogger(__name__)


async def run(url: str, config: ExplorationConfig, out_dir: str, headless: bool) -> int:
    fixture = Fixture.load(config.fixture_path) if config.fixture_path else None
    oracle = OpenAIOracle(model=config.model, temperature=config.temperature)

    async with PlaywrightDriver(url, headless=headless, settle_delay=config.settle_delay) as driver:
        agent = ExplorationAgent(driver, oracle, config=config, fixture=fixture)
        result = await agent.explore()

    os.makedirs(out_dir, exist_ok=True)
    with open(os.path.join(out_dir, "exploration.json"), "w", encoding="utf-8") as fh:
        json.dump(result.to_dict(), fh, indent=2)
    try:
        nx.write_graphml(result.graph.to_networkx(), os.path.join(out_dir, "navigation.graphml"))
    except Exception as e:
        logger.warning(f"Failed to write GraphML: {e}")

    print(f"Exploration finished: {result.outcome.value}")
    print(f"Screens: {result.coverage.screens_discovered}  transitions: {result.coverage.transitions_recorded}")
    print(f"Steps: {result.metrics.total_actions}  health score: {result.health_score}")
    return 0 if result.status.value != "crashed" else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Explore a UI with an LLM-driven agent")
    parser.add_argument("--url", required=True, help="Target web app URL to explore")
    parser.add_argument("--steps", type=int, default=None, help="Maximum number of steps")
    parser.add_argument("--goal", default=None, help="Exploration goal handed to the model")
    parser.add_argument("--fixture", default=None, help="Fixture JSON with test data for form fields")
    parser.add_argument("--verify", action="store_true", help="Verify every action and retry with alternatives")
    parser.add_argument("--max-retries", type=int, default=None, help="Retries per step when verification fails")
    parser.add_argument("--screenshots", default=None, help="Directory for per-step screenshots")
    parser.add_argument("--out", default="run_artifacts", help="Directory to save run artefacts")
    parser.add_argument("--headless", action="store_true", help="Run browser in headless mode")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = ExplorationConfig.from_env(
        steps=args.steps,
        goal=args.goal,
        fixture_path=args.fixture,
        enable_verification=True if args.verify else None,
        max_retries=args.max_retries,
        screenshot_dir=args.screenshots,
    )
    print(f"Starting exploration of {args.url}")
    raise SystemExit(asyncio.run(run(args.url, config, args.out, args.headless)))


if __name__ == "__main__":
    main()
