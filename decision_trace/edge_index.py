# SPDX-FileCopyrightText: (c) 2025 Tenstorrent AI ULC
#
# SPDX-License-Identifier: Apache-2.0

"""Producer/consumer lookup tables over the dataflow edges of a trace."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple

from .trace_model import Edge


@dataclass(frozen=True)
class EdgeIndex:
    """
    Edge lookups keyed by opIndex.

    producers: consumerOpIndex -> edges feeding that op
    consumers: producerOpIndex -> edges leaving that op
    """
    producers: Dict[Optional[int], Tuple[Edge, ...]] = field(default_factory=dict)
    consumers: Dict[Optional[int], Tuple[Edge, ...]] = field(default_factory=dict)

    def producers_of(self, op_index: Optional[int]) -> Tuple[Edge, ...]:
        """Edges whose consumer is op_index (empty if none)."""
        return self.producers.get(op_index, ())

    def consumers_of(self, op_index: Optional[int]) -> Tuple[Edge, ...]:
        """Edges whose producer is op_index (empty if none)."""
        return self.consumers.get(op_index, ())

    def out_degree(self, op_index: Optional[int]) -> int:
        return len(self.consumers.get(op_index, ()))


def build_edge_index(edges: Iterable[Edge]) -> EdgeIndex:
    """Bucket every edge once by consumer and once by producer, keeping edge order."""
    producers: Dict[Optional[int], list] = {}
    consumers: Dict[Optional[int], list] = {}
    for edge in edges:
        producers.setdefault(edge.consumer_op_index, []).append(edge)
        consumers.setdefault(edge.producer_op_index, []).append(edge)
    return EdgeIndex(
        producers={k: tuple(v) for k, v in producers.items()},
        consumers={k: tuple(v) for k, v in consumers.items()},
    )
