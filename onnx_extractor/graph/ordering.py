"""
Operation ordering for ONNX Extractor.

Both orderings work on operation indices and share one producer/consumer
index. Empty tensor names mark unused optional slots and never form edges.
Inputs without a producer (model inputs, weights) do not count towards an
operation's indegree.
"""

from collections import defaultdict, deque
from typing import Collection, Dict, List, Sequence

import networkx as nx

from onnx_extractor.core.errors import InvalidModelError
from onnx_extractor.core.operation import OnnxOperation
from onnx_extractor.utils.logging import get_logger

logger = get_logger(__name__)


class DependencyIndex:
    """Producer/consumer bookkeeping for a list of operations."""

    def __init__(self, operations: Sequence[OnnxOperation]):
        self.operations = operations

        # tensor name -> index of the first operation producing it
        self.producer: Dict[str, int] = {}
        for idx, op in enumerate(operations):
            for out in op.outputs:
                if out and out not in self.producer:
                    self.producer[out] = idx

        # tensor name -> indices of consuming operations, in declaration order
        self.consumers: Dict[str, List[int]] = defaultdict(list)
        for idx, op in enumerate(operations):
            for inp in op.inputs:
                if inp:
                    self.consumers[inp].append(idx)

    def indegrees(self) -> List[int]:
        """Fresh indegree list: inputs of each operation that have a producer."""
        return [
            sum(1 for inp in op.inputs if inp and inp in self.producer)
            for op in self.operations
        ]

    def release(self, idx: int, indegree: List[int]) -> List[int]:
        """
        Mark the outputs of operation ``idx`` as available.

        Args:
            idx: Index of the operation just scheduled
            indegree: Indegree list, updated in place

        Returns:
            Consumers whose indegree dropped to zero, in encounter order
        """
        ready = []
        for out in self.operations[idx].outputs:
            if not out:
                continue
            for cidx in self.consumers.get(out, []):
                if indegree[cidx] > 0:
                    indegree[cidx] -= 1
                    if indegree[cidx] == 0:
                        ready.append(cidx)
        return ready


def dependency_graph(operations: Sequence[OnnxOperation]) -> nx.DiGraph:
    """
    Build a directed graph with an edge from each producer to its consumers.

    Args:
        operations: Operations in declaration order

    Returns:
        networkx DiGraph keyed by operation index
    """
    index = DependencyIndex(operations)
    dg = nx.DiGraph()

    for idx, op in enumerate(operations):
        dg.add_node(idx, name=op.name, op_type=op.op_type)

    for idx, op in enumerate(operations):
        for inp in op.inputs:
            producer = index.producer.get(inp) if inp else None
            if producer is not None:
                dg.add_edge(producer, idx, tensor=inp)

    return dg


def _unresolved_error(operations: Sequence[OnnxOperation], scheduled: Collection[int]) -> InvalidModelError:
    remaining = [i for i in range(len(operations)) if i not in scheduled]
    message = "Graph has cycles or unresolved dependencies"

    dg = dependency_graph(operations).subgraph(remaining)
    try:
        cycle = nx.find_cycle(dg)
    except nx.NetworkXNoCycle:
        cycle = []

    if cycle:
        names = [operations[u].name or f"#{u}" for u, _ in cycle]
        names.append(names[0])
        message += f" (cycle: {' -> '.join(names)})"

    logger.debug(f"{len(remaining)} of {len(operations)} operations could not be scheduled")
    return InvalidModelError(message)


def topological_order(operations: Sequence[OnnxOperation]) -> List[int]:
    """
    Order operations with Kahn's algorithm.

    The frontier is first-in first-out and seeded in declaration order, so
    the result is deterministic.

    Args:
        operations: Operations in declaration order

    Returns:
        Operation indices, producers before consumers

    Raises:
        InvalidModelError: If the graph has cycles or unresolved dependencies
    """
    index = DependencyIndex(operations)
    indegree = index.indegrees()

    queue = deque(idx for idx, d in enumerate(indegree) if d == 0)
    ordered: List[int] = []

    while queue:
        idx = queue.popleft()
        ordered.append(idx)
        queue.extend(index.release(idx, indegree))

    if len(ordered) != len(operations):
        raise _unresolved_error(operations, set(ordered))
    return ordered


def execution_order(operations: Sequence[OnnxOperation], model_inputs: Collection[str]) -> List[int]:
    """
    Order operations so that work on model inputs is scheduled early.

    Kahn's algorithm where operations consuming at least one model input
    are taken before operations that only consume weights or intermediate
    values. Newly ready input consumers are pushed to the front of the
    frontier one at a time, so the last one pushed runs first; the rest go
    to the back.

    Args:
        operations: Operations in declaration order
        model_inputs: Names of the declared model inputs

    Returns:
        Operation indices, producers before consumers

    Raises:
        InvalidModelError: If the graph has cycles or unresolved dependencies
    """
    input_names = set(model_inputs)
    index = DependencyIndex(operations)
    indegree = index.indegrees()

    def consumes_input(idx: int) -> bool:
        return any(inp in input_names for inp in operations[idx].inputs)

    ready = [idx for idx, d in enumerate(indegree) if d == 0]
    queue = deque(sorted(ready, key=lambda i: not consumes_input(i)))
    ordered: List[int] = []

    while queue:
        idx = queue.popleft()
        ordered.append(idx)

        newly_ready = index.release(idx, indegree)
        front = [i for i in newly_ready if consumes_input(i)]
        back = [i for i in newly_ready if not consumes_input(i)]

        queue.extendleft(front)
        queue.extend(back)

    if len(ordered) != len(operations):
        raise _unresolved_error(operations, set(ordered))
    return ordered
