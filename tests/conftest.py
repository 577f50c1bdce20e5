"""
Pytest Configuration and Fixtures

Shared decision trace documents for all test modules.
"""
import json
import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from decision_trace.trace_model import load_trace  # noqa: E402

SHARDED = "l1/#ttnn.tensor_memory_layout<height_sharded>/8x8"


# =============================================================================
# DOCUMENT BUILDERS
# =============================================================================

def make_example_document():
    """Three ops: in-place add -> DRAM fallback matmul -> (reshard) -> sharded relu."""
    return {
        "version": 2,
        "functionName": "forward",
        "beamWidth": 4,
        "totalOps": 3,
        "forwardPass": [
            {
                "opIndex": 0,
                "opName": "ttnn.add",
                "opLocation": 'loc("model.py":10)',
                "isInplace": True,
            },
            {
                "opIndex": 1,
                "opName": "ttnn.matmul",
                "opLocation": 'loc("model.py":12)',
                "usedDramFallback": True,
                "evaluations": [
                    {
                        "hint": "primary",
                        "inputs": ["l1/interleaved"],
                        "valid": False,
                        "failureReason": "L1 OOM",
                    },
                    {
                        "hint": "fallback",
                        "inputs": ["dram/interleaved"],
                        "valid": True,
                        "output": "dram/interleaved",
                        "score": {"isL1": False, "isSharded": False, "inputDramBytes": 2048, "coreCount": 1},
                    },
                ],
                "beam": [
                    {
                        "rank": 0,
                        "outputLayout": "dram/interleaved",
                        "score": {"isL1": False, "isSharded": False, "inputDramBytes": 2048, "coreCount": 1},
                    },
                ],
            },
            {
                "opIndex": 2,
                "opName": "ttnn.relu",
                "opLocation": 'loc("model.py":14)',
                "evaluations": [
                    {
                        "hint": "primary",
                        "inputs": ["l1/h-shard"],
                        "valid": True,
                        "output": SHARDED,
                        "score": {"isL1": True, "isSharded": True, "requiresReshard": True, "coreCount": 64},
                    },
                    {
                        "hint": "secondary",
                        "inputs": ["l1/interleaved"],
                        "valid": True,
                        "output": "l1/interleaved",
                        "score": {"isL1": True, "isSharded": False, "coreCount": 64},
                    },
                ],
                "beam": [
                    {
                        "rank": 0,
                        "outputLayout": SHARDED,
                        "score": {
                            "isL1": True,
                            "isSharded": True,
                            "requiresReshard": True,
                            "coreCount": 64,
                            "outputL1Usage": 4096,
                        },
                    },
                ],
                "inputCandidateSets": [
                    {
                        "operandIndex": 0,
                        "fromProducerBeam": 1,
                        "fromReshard": 6,
                        "candidates": [f"cand{i}" for i in range(7)],
                    },
                ],
                "outputHints": {"primaryCount": 2, "fallbackCount": 1, "attemptL1Sharding": True},
                "crossProductSize": 7,
            },
        ],
        "edges": [
            {"producerOpIndex": 0, "consumerOpIndex": 1, "operandIndex": 0, "hasReshard": False},
            {
                "producerOpIndex": 1,
                "consumerOpIndex": 2,
                "operandIndex": 0,
                "hasReshard": True,
                "reshardLayout": SHARDED,
            },
        ],
    }


def make_spill_section():
    """Two events: a live tensor is added, then another is evicted."""
    return {
        "budget": 80,
        "totalSpills": 1,
        "finalOccupied": 60,
        "finalLiveTensors": 2,
        "events": [
            {
                "position": 0,
                "action": "live_added",
                "opName": "%1 = ttnn.add %0, %0 : tensor<32x32xbf16>",
                "occupiedL1Before": 0,
                "occupiedL1After": 100,
                "opL1Usage": 100,
            },
            {
                "position": 1,
                "action": "eviction",
                "opName": "%2 = ttnn.matmul %1, %1",
                "occupiedL1Before": 100,
                "occupiedL1After": 60,
                "victimName": "%0",
            },
        ],
    }


def make_full_document():
    """Example trace plus a forking softmax consumer, final choices, forks and spills."""
    doc = make_example_document()
    doc["totalOps"] = 4
    doc["forwardPass"].append(
        {
            "opIndex": 3,
            "opName": "ttnn.softmax",
            "opLocation": 'loc("model.py":16)',
            "beam": [
                {"rank": 1, "outputLayout": "l1/interleaved/b", "score": {"isL1": True}},
                {"rank": 0, "outputLayout": "l1/interleaved/a", "score": {"isL1": True}},
            ],
        }
    )
    # Both operands of op 3 come from op 2
    doc["edges"].append({"producerOpIndex": 2, "consumerOpIndex": 3, "operandIndex": 0})
    doc["edges"].append({"producerOpIndex": 2, "consumerOpIndex": 3, "operandIndex": 1})
    doc["finalChoices"] = [{"opIndex": 3, "chosenLayout": "l1/interleaved/final"}]
    doc["backwardPass"] = {
        "forkResolutions": [
            {
                "opIndex": 2,
                "opName": "ttnn.relu",
                "opLocation": 'loc("model.py":14)',
                "chosenCandidateIndex": 0,
                "numConsumers": 2,
                "consumerOpIndices": [3, 3],
            }
        ]
    }
    doc["spillManagement"] = make_spill_section()
    return doc


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def example_document():
    return make_example_document()


@pytest.fixture
def example_trace():
    return load_trace(make_example_document())


@pytest.fixture
def full_document():
    return make_full_document()


@pytest.fixture
def full_trace():
    return load_trace(make_full_document())


@pytest.fixture
def spill_section():
    return make_spill_section()


@pytest.fixture
def trace_file(tmp_path):
    """Full trace written to a JSON file."""
    path = tmp_path / "forward_decision_trace.json"
    path.write_text(json.dumps(make_full_document()))
    return path


@pytest.fixture
def trace_dir(tmp_path):
    """Directory with two traces and one unrelated file."""
    root = tmp_path / "traces"
    root.mkdir()
    (root / "b_trace.json").write_text(json.dumps(make_full_document()))
    (root / "a_trace.json").write_text(json.dumps(make_example_document()))
    (root / "notes.txt").write_text("not a trace")
    return root


@pytest.fixture
def reports_dir(tmp_path, monkeypatch):
    """Point report output at a temporary directory."""
    root = tmp_path / "reports"
    monkeypatch.setenv("DTV_REPORTS_DIR", str(root))
    return root
