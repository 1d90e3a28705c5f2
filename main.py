"""SearchGraph - question-tree web research

Simple CLI for answering a question with a decomposed search tree.
"""

import argparse
import asyncio

from searchgraph.agents.orchestrator import SearchGraph
from searchgraph.models.graph import ROOT_ID
from searchgraph.services.sibling_executor import get_sibling_executor


async def run_plan(question: str, engine: str | None = None, parallel: bool = False):
    """Answer the given question."""
    print(f"Question: {question}")
    print("-" * 50)

    graph = SearchGraph(
        search_engine=engine,
        sibling_executor=get_sibling_executor("parallel" if parallel else "sequential"),
    )
    result = await graph.plan(question)

    if not result.nodes:
        print("\n[!] Planning failed, see logs for details")
        return

    print(f"\n[*] Question tree ({len(result.nodes) - 1} sub-questions):")
    for node_id, node in result.nodes.items():
        if node_id == ROOT_ID:
            continue
        depth = _depth(result.nodes, node_id)
        print(f"  {'  ' * depth}- [{node.state.name}] {node.content[:80]}")

    total = result.timing.get("total", {}).get("duration_ms")
    print(f"\n[*] Done in {total}ms")
    print(f"\n{'=' * 50}")
    print("ANSWER:")
    print(f"{'=' * 50}")
    print(result.answer or "(no answer)")


def _depth(nodes, node_id) -> int:
    depth = 0
    parent_id = nodes[node_id].parent_id
    while parent_id and parent_id != ROOT_ID:
        depth += 1
        parent_id = nodes[parent_id].parent_id
    return depth


def main():
    parser = argparse.ArgumentParser(description="SearchGraph question-tree research")
    parser.add_argument("--question", "-q", required=True, help="Question to answer")
    parser.add_argument("--engine", "-e", choices=["bing", "baidu", "jina"], help="Default search engine")
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Search sibling sub-questions concurrently",
    )

    args = parser.parse_args()

    asyncio.run(run_plan(args.question, args.engine, args.parallel))


if __name__ == "__main__":
    main()
