from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Iterator
from uuid import uuid4

from searchgraph.models.schemas import Query

ROOT_ID = "root"


class NodeType(StrEnum):
    ROOT = "root"
    SEARCHER = "searcher"


class NodeState(IntEnum):
    NOT_STARTED = 1
    RUNNING = 2
    FINISHED = 3
    ERROR = 4

    @property
    def is_terminal(self) -> bool:
        return self in (NodeState.FINISHED, NodeState.ERROR)


_ALLOWED_TRANSITIONS: dict[NodeState, set[NodeState]] = {
    NodeState.NOT_STARTED: {NodeState.RUNNING, NodeState.ERROR},
    NodeState.RUNNING: {NodeState.FINISHED, NodeState.ERROR},
    NodeState.FINISHED: set(),
    NodeState.ERROR: set(),
}


class InvalidTransitionError(ValueError):
    pass


@dataclass(slots=True)
class Page:
    id: int
    title: str
    url: str
    content: str | None = None


@dataclass(slots=True)
class QuestionAnswer:
    content: str
    answer: str


@dataclass(slots=True)
class Edge:
    id: str
    name: str  # child node id


@dataclass(slots=True)
class Node:
    id: str
    type: NodeType
    content: str
    original_content: str
    parent_id: str | None = None
    children: list[str] = field(default_factory=list)
    state: NodeState = NodeState.NOT_STARTED
    answer: str = ""
    pages: list[Page] = field(default_factory=list)
    queries: list[Query] = field(default_factory=list)

    def transition(self, new_state: NodeState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Node {self.id}: {self.state.name} -> {new_state.name} is not allowed"
            )
        self.state = new_state

    def finish(self, answer: str, pages: list[Page]) -> None:
        self.transition(NodeState.FINISHED)
        self.answer = answer
        self.pages = list(pages)

    def fail(self) -> bool:
        """Move to ERROR. Returns False when the node already was ERROR."""
        if self.state == NodeState.ERROR:
            return False
        self.transition(NodeState.ERROR)
        self.answer = ""
        self.pages = []
        return True

    def to_qa(self) -> QuestionAnswer:
        return QuestionAnswer(content=self.content, answer=self.answer)


class QuestionGraph:
    """Node/edge store for one planning run.

    The edge set is a tree: every node but the root has exactly one parent,
    held as `Node.parent_id`. `edges` mirrors the parent -> children relation
    as an adjacency map. No mutator suspends, so each one is atomic on the
    event loop even when sibling subtrees run concurrently.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, Node] = {}
        self.edges: dict[str, list[Edge]] = {}

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, node_id: str) -> Node | None:
        return self.nodes.get(node_id)

    def add_root(self, content: str) -> Node:
        if ROOT_ID in self.nodes:
            raise ValueError("Graph already has a root node")
        node = Node(id=ROOT_ID, type=NodeType.ROOT, content=content, original_content=content)
        self.nodes[node.id] = node
        self.edges[node.id] = []
        return node

    def add_node(self, content: str, parent_id: str) -> Node:
        parent = self.nodes.get(parent_id)
        if parent is None:
            raise KeyError(f"Unknown parent node: {parent_id}")
        node = Node(
            id=str(uuid4()),
            type=NodeType.SEARCHER,
            content=content,
            original_content=content,
            parent_id=parent_id,
        )
        self.nodes[node.id] = node
        parent.children.append(node.id)
        self.edges.setdefault(parent_id, []).append(Edge(id=str(uuid4()), name=node.id))
        return node

    def parent_of(self, node_id: str) -> Node | None:
        node = self.nodes.get(node_id)
        if node is None or node.parent_id is None:
            return None
        return self.nodes.get(node.parent_id)

    def children_of(self, node_id: str) -> list[Node]:
        node = self.nodes.get(node_id)
        if node is None:
            return []
        return [self.nodes[child_id] for child_id in node.children]

    def ancestors(self, node_id: str) -> list[Node]:
        """Nearest parent first, root last. Excludes the node itself."""
        chain: list[Node] = []
        parent = self.parent_of(node_id)
        while parent is not None:
            chain.append(parent)
            parent = self.parent_of(parent.id)
        return chain

    def descendants(self, node_id: str) -> Iterator[Node]:
        """Depth-first pre-order, siblings left to right."""
        for child in self.children_of(node_id):
            yield child
            yield from self.descendants(child.id)

    def mark_subtree_error(self, node_id: str) -> list[str]:
        """Fail every descendant of `node_id`. Returns ids newly marked."""
        marked: list[str] = []
        for node in self.descendants(node_id):
            if node.state.is_terminal:
                continue
            if node.fail():
                marked.append(node.id)
        return marked

    def reset(self) -> None:
        self.nodes.clear()
        self.edges.clear()
