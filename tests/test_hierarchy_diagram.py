import importlib.util
from pathlib import Path

from pack_compiler.hierarchy import (CollectionSpec, SchemaRegistry, sequence,
                                     singleton)

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "generate_hierarchy_diagram.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("generate_hierarchy_diagram", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_build_mermaid_draws_sequence_and_singleton_edges():
    script = _load_script()
    registry = SchemaRegistry.of(
        CollectionSpec("actors", (sequence("items", "actors.items"),)),
        CollectionSpec("tokens", (singleton("delta"),)),
    )

    diagram = script.build_mermaid(registry)
    lines = diagram.splitlines()

    assert lines[0] == "erDiagram"
    assert "    actors_items {" in lines
    assert "    delta {" in lines
    assert "        list items FK" in lines
    assert "        ref delta FK" in lines
    assert '    actors ||--o{ actors_items : "items"' in lines
    assert '    tokens ||--o| delta : "delta"' in lines
