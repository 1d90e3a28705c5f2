from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from loguru import logger

from searchgraph.agents.query_builder import QueryBuilder
from searchgraph.agents.searcher import Searcher
from searchgraph.config import settings
from searchgraph.llm_client import LLMPool
from searchgraph.models.graph import (
    ROOT_ID,
    Edge,
    Node,
    NodeState,
    QuestionAnswer,
    QuestionGraph,
)
from searchgraph.models.schemas import RawNode, parse_decomposition
from searchgraph.services import logger as log_service
from searchgraph.services.diagnostics import DiagnosticsWriter
from searchgraph.services.prompt_store import render_prompt
from searchgraph.services.sibling_executor import SiblingExecutor, get_sibling_executor
from searchgraph.services.timing import Timer
from searchgraph.tools.search_provider import resolve_engine

MAX_ATTEMPTS = 2
REPHRASE_SUFFIX = "another phrasing"
REPHRASE_HINT = "Rebuild the query using different keywords."

SearcherFactory = Callable[[str], Searcher]


@dataclass
class PlanResult:
    answer: str = ""
    nodes: dict[str, Node] = field(default_factory=dict)
    edges: dict[str, list[Edge]] = field(default_factory=dict)
    timing: dict[str, Any] = field(default_factory=dict)


class SearchGraph:
    """Answers a question by decomposing it into a tree of searchable sub-questions.

    Flow:
      1. Ask the LLM to decompose the question into nested sub-questions
      2. Materialize them as nodes under the root
      3. Walk the tree depth-first, executing each node before its children
         (rewrite with ancestor answers, build query, search, retry once)
      4. Fail a node's whole subtree when the node fails
      5. Aggregate every answered descendant into the root answer

    Each `plan` call owns a fresh QuestionGraph; `graph` points at the latest.
    """

    def __init__(
        self,
        *,
        llm_pool: LLMPool | None = None,
        query_builder: QueryBuilder | None = None,
        searcher_factory: SearcherFactory | None = None,
        sibling_executor: SiblingExecutor | None = None,
        diagnostics: DiagnosticsWriter | None = None,
        search_engine: str | None = None,
        proxy: str | None = None,
    ):
        self.llm_pool = llm_pool or LLMPool()
        self.query_builder = query_builder or QueryBuilder(self.llm_pool)
        self.search_engine = search_engine or settings.search_engine
        self.proxy = settings.proxy if proxy is None else proxy
        self.searcher_factory = searcher_factory or self._default_searcher
        self.sibling_executor = sibling_executor or get_sibling_executor()
        self.diagnostics = diagnostics or DiagnosticsWriter(
            settings.log_dir, enabled=settings.diagnostics_enabled
        )
        self.graph = QuestionGraph()

    def _default_searcher(self, engine: str) -> Searcher:
        return Searcher(self.llm_pool, search_engine=engine, proxy=self.proxy)

    def reset(self) -> None:
        self.graph.reset()

    async def plan(self, content: str) -> PlanResult:
        timer = Timer()
        timer.start("total")
        timer.start("planning")
        logger.info(f"[Plan] Starting with question: {content}")
        graph = QuestionGraph()
        self.graph = graph
        try:
            root = graph.add_root(content)

            timer.start("llm_planning")
            raw = await self.llm_pool.next().generate(
                render_prompt("planner.decompose", question=content),
                "json_object",
                caller="planner",
            )
            timer.end("llm_planning")
            logger.debug(f"[Plan] LLM Response: {raw}")
            self.diagnostics.save("plan_llm_response", {"question": content, "response": raw})

            raw_nodes = parse_decomposition(raw)
            if not raw_nodes:
                logger.warning("[Plan] Empty decomposition, searching the question directly")
                raw_nodes = [RawNode(content=content)]
            self._materialize(graph, raw_nodes, root.id)
            timer.end("planning")
            logger.info(f"[Plan] Materialized {len(graph) - 1} sub-question nodes")

            timer.start("process_nodes")
            await self.process_nodes(graph, root.id)
            timer.end("process_nodes")

            timer.start("process_root")
            await self.process_root_node(graph, root.id)
            timer.end("process_root")

            timer.end("total")
            self.diagnostics.save("timing_metrics", {"question": content, "metrics": timer.get_metrics()})
            self.diagnostics.save(
                "final_search_graph",
                {"nodes": list(graph.nodes.values()), "edges": graph.edges},
            )
            log_service.log_event(
                "plan_finished",
                content,
                nodes=len(graph) - 1,
                root_state=root.state.name,
                duration_ms=timer.duration_ms("total"),
            )
            return PlanResult(
                answer=root.answer,
                nodes=graph.nodes,
                edges=graph.edges,
                timing=timer.get_metrics(),
            )
        except Exception as e:
            timer.end("total")
            logger.exception(f"[Plan] Error: {e}")
            root = graph.get(ROOT_ID)
            if root is not None and not root.state.is_terminal:
                root.fail()
            self.diagnostics.save("plan_error", {"error": str(e), "question": content})
            return PlanResult(timing=timer.get_metrics())

    def _materialize(self, graph: QuestionGraph, raw_nodes: list[RawNode], parent_id: str) -> None:
        for raw in raw_nodes:
            node = graph.add_node(raw.content.strip(), parent_id)
            if raw.children:
                self._materialize(graph, raw.children, node.id)

    async def process_nodes(self, graph: QuestionGraph, parent_id: str) -> None:
        parent = graph.get(parent_id)
        if parent is None:
            return
        logger.info(f"[ProcessNodes] Processing {len(parent.children)} nodes for parent: {parent_id}")

        async def run_subtree(node_id: str) -> None:
            node = graph.get(node_id)
            if node is None or node.state.is_terminal:
                # Already failed together with an ancestor.
                return
            await self.execute_node(graph, node_id)
            if node.state == NodeState.FINISHED and node.children:
                logger.info(f"[ProcessNodes] Node {node_id} has {len(node.children)} children")
                await self.process_nodes(graph, node_id)

        await self.sibling_executor.run(list(parent.children), run_subtree)
        logger.info(f"[ProcessNodes] Completed all nodes for parent: {parent_id}")

    def ancestor_context(self, graph: QuestionGraph, node_id: str) -> list[QuestionAnswer]:
        """Answered ancestors as (question, answer) pairs, nearest parent first."""
        return [ancestor.to_qa() for ancestor in graph.ancestors(node_id) if ancestor.answer]

    async def adjust_question(self, question: str, ancestor_responses: list[QuestionAnswer]) -> str:
        prompt = render_prompt(
            "node.adjust_question",
            context="\n---\n".join(
                f"Question: {r.content}\nAnswer: {r.answer}" for r in ancestor_responses
            ),
            question=question,
        )
        adjusted = await self.llm_pool.next().generate(prompt, caller="question_adjustment")
        return adjusted.strip() or question

    async def execute_node(self, graph: QuestionGraph, node_id: str) -> None:
        node = graph.get(node_id)
        if node is None:
            logger.error(f"[ExecuteNode] Node {node_id} not found")
            return
        if node.state != NodeState.NOT_STARTED:
            logger.warning(f"[ExecuteNode] Node {node_id} already {node.state.name}, skipping")
            return

        node_timer = Timer()
        node_timer.start("node_execution")
        logger.info(f"[ExecuteNode] Starting execution for node: {node_id}")
        ancestor_responses: list[QuestionAnswer] = []

        try:
            node.transition(NodeState.RUNNING)
            ancestor_responses = self.ancestor_context(graph, node_id)

            node_timer.start("question_adjustment")
            if ancestor_responses:
                node.content = await self.adjust_question(node.content, ancestor_responses)
                logger.info(
                    f'[ExecuteNode] Adjusted question from "{node.original_content}" to "{node.content}"'
                )
            node_timer.end("question_adjustment")

            for attempt in range(1, MAX_ATTEMPTS + 1):
                try:
                    node_timer.start(f"query_building_attempt_{attempt}")
                    if attempt == 1:
                        query = await self.query_builder.build(node.content, context=ancestor_responses)
                    else:
                        query = await self.query_builder.build(
                            f"{node.content} {REPHRASE_SUFFIX}",
                            REPHRASE_HINT,
                            context=ancestor_responses,
                        )
                    node_timer.end(f"query_building_attempt_{attempt}")
                    node.queries.append(query)

                    searcher = self.searcher_factory(resolve_engine(query.platform, self.search_engine))
                    node_timer.start(f"search_execution_attempt_{attempt}")
                    response = await searcher.run(query.search_text(), ancestor_responses)
                    node_timer.end(f"search_execution_attempt_{attempt}")

                    if response.usable:
                        node.finish(response.answer, response.pages)
                        node_timer.end("node_execution")
                        self.diagnostics.save(
                            f"node_{node_id}_result",
                            {
                                "nodeId": node_id,
                                "attempt": attempt,
                                "originalContent": node.original_content,
                                "adjustedContent": node.content,
                                "query": query,
                                "answer": node.answer,
                                "pages": node.pages,
                                "ancestorResponses": ancestor_responses,
                            },
                        )
                        self.diagnostics.save(
                            f"node_{node_id}_timing",
                            {
                                "nodeId": node_id,
                                "attempt": attempt,
                                "metrics": node_timer.get_metrics(),
                                "searchMetrics": response.timing,
                            },
                        )
                        return

                    if attempt == 1:
                        logger.info(
                            f"[ExecuteNode] First attempt failed for node {node_id}, trying with adjusted query..."
                        )
                        self.diagnostics.save(
                            f"node_{node_id}_first_attempt_failed",
                            {"nodeId": node_id, "query": query, "response": response},
                        )
                except Exception as e:
                    logger.error(f"[ExecuteNode] Attempt {attempt} error for node {node_id}: {e}")
                    if attempt == MAX_ATTEMPTS:
                        raise

            self._fail_node(
                graph,
                node,
                f"node_{node_id}_all_attempts_failed",
                {
                    "nodeId": node_id,
                    "originalContent": node.original_content,
                    "adjustedContent": node.content,
                },
                reason=f"Parent node {node_id} failed",
            )
        except Exception as e:
            logger.error(f"[ExecuteNode] Error for node {node_id}: {e}")
            self._fail_node(
                graph,
                node,
                f"node_{node_id}_error",
                {"nodeId": node_id, "error": str(e), "content": node.content},
                reason=f"Parent node {node_id} failed with error",
            )

    def _fail_node(
        self,
        graph: QuestionGraph,
        node: Node,
        kind: str,
        data: dict[str, Any],
        *,
        reason: str,
    ) -> None:
        node.fail()
        self.diagnostics.save(kind, data)
        for skipped_id in graph.mark_subtree_error(node.id):
            logger.info(f"[ExecuteNode] Skipping node {skipped_id}: {reason}")
            self.diagnostics.save(f"node_{skipped_id}_skipped", {"reason": reason})

    async def process_root_node(self, graph: QuestionGraph, root_id: str) -> None:
        logger.info("[ProcessRoot] Starting root node processing")
        root = graph.get(root_id)
        if root is None:
            return
        if root.state == NodeState.NOT_STARTED:
            root.transition(NodeState.RUNNING)

        descendants = list(graph.descendants(root_id))
        if not all(node.state.is_terminal for node in descendants):
            logger.error("[ProcessRoot] Some descendant nodes are not finished")
            root.fail()
            self.diagnostics.save(
                "root_node_error",
                {
                    "descendants": [
                        {"id": d.id, "state": d.state.name, "content": d.content}
                        for d in descendants
                    ]
                },
            )
            return

        responses = [d.to_qa() for d in descendants if d.state == NodeState.FINISHED and d.answer]
        if not responses:
            logger.warning("[ProcessRoot] No sub-question produced an answer")

        prompt = render_prompt(
            "root.summary",
            instructions=render_prompt("synthesis.instructions"),
            question=root.content,
            responses="\n---\n".join(
                f"[{i}] Question: {r.content}\nAnswer: {r.answer}" for i, r in enumerate(responses)
            ),
        )
        final_answer = await self.llm_pool.next().generate(prompt, caller="root_summary")
        if not final_answer:
            logger.error("[ProcessRoot] Empty final answer")
            root.fail()
            self.diagnostics.save("root_node_error", {"reason": "empty final answer"})
            return
        root.finish(final_answer, [])
        logger.info("[ProcessRoot] Root node processing completed")
        self.diagnostics.save(
            "root_node_result",
            {"answer": final_answer, "descendantResponses": responses},
        )
