from __future__ import annotations

import asyncio
import json
import threading

import pytest

from jsgraph import AnalysisCancelledError, ParseOptions, ProjectLoadError, models, parse, parse_async
from jsgraph.__main__ import main
from jsgraph.models import CodeEdge, CodeNode
from jsgraph.pipeline import assemble_graph

PROJECT = {
    "src/index.tsx": (
        "import React from 'react';\n"
        "import { App } from './App';\n"
        "import { format } from '@/utils/format';\n"
        "\n"
        "export const title = format('app');\n"
        "export function mount() { return <App />; }\n"
    ),
    "src/App.tsx": (
        "import React, { useState } from 'react';\n"
        "import { format } from './utils/format';\n"
        "\n"
        "export function App() {\n"
        "  const [name] = useState('x');\n"
        "  return <h1>{format(name)}</h1>;\n"
        "}\n"
    ),
    "src/utils/format.ts": (
        "export function format(value: string): string {\n"
        "  return value.trim();\n"
        "}\n"
    ),
    "src/models/base.ts": "export abstract class Model { abstract id(): string; }\n",
    "src/models/user.ts": (
        "import { Model } from './base';\n"
        "export class User extends Model { id() { return 'u'; } }\n"
    ),
}


def test_parse_is_deterministic(make_project) -> None:
    root = make_project(PROJECT)
    first = parse(root).to_dict()
    second = parse(root).to_dict()
    assert first == second


def test_ids_are_unique(analyze) -> None:
    graph = analyze(PROJECT)
    node_ids = [n.id for n in graph.nodes]
    edge_ids = [e.id for e in graph.edges]
    assert len(node_ids) == len(set(node_ids))
    assert len(edge_ids) == len(set(edge_ids))


def test_edges_reference_existing_nodes(analyze) -> None:
    graph = analyze(PROJECT)
    node_ids = {n.id for n in graph.nodes}
    for edge in graph.edges:
        assert edge.source in node_ids
        assert edge.target in node_ids


def test_alias_import_and_calls(analyze) -> None:
    graph = analyze(PROJECT)
    imports = {e.id for e in graph.edges_of_type(models.IMPORT)}
    assert "edge:file:src/index.tsx-file:src/utils/format.ts" in imports
    assert "edge:file:src/index.tsx-external:react" in imports

    fmt = graph.node("file:src/utils/format.ts:format")
    assert fmt.called_by == ("file:src/App.tsx:App",)
    assert graph.node("file:src/index.tsx:mount").uses_components == ("file:src/App.tsx:App",)
    assert graph.node("file:src/App.tsx:App").state == ("name",)
    assert [e.id for e in graph.edges_of_type(models.INHERITANCE)] == [
        "edge:file:src/models/user.ts:User-extends-file:src/models/base.ts:Model",
    ]


def test_node_order_follows_files(analyze) -> None:
    graph = analyze(PROJECT)
    files = [n.id for n in graph.nodes_of_type(models.FILE)]
    assert files == sorted(files)


def test_cancellation(make_project) -> None:
    root = make_project(PROJECT)
    event = threading.Event()
    event.set()
    with pytest.raises(AnalysisCancelledError):
        parse(root, ParseOptions(cancel_event=event))


def test_missing_root(tmp_path) -> None:
    with pytest.raises(ProjectLoadError):
        parse(tmp_path / "nope")


def test_entry_point_limits_graph(make_project) -> None:
    root = make_project(PROJECT)
    graph = parse(root, ParseOptions(entry_point="src/App.tsx"))
    assert {n.id for n in graph.nodes_of_type(models.FILE)} == {
        "file:src/App.tsx",
        "file:src/utils/format.ts",
    }


def test_exclude_option(make_project) -> None:
    root = make_project(PROJECT)
    graph = parse(root, ParseOptions(exclude=("src/models/*",)))
    assert graph.node("file:src/models/user.ts") is None
    assert graph.node("file:src/App.tsx") is not None


def test_syntax_errors_become_warnings(analyze) -> None:
    graph = analyze({"ok.js": "export const a = 1;\n", "broken.js": "function (\n"})
    assert graph.node("file:broken.js") is None
    assert any("broken.js" in w for w in graph.warnings)


def test_assemble_graph_drops_dangling_edges() -> None:
    nodes = [CodeNode(id="file:a.js", type=models.FILE, label="a.js", file_path="a.js")]
    edges = [
        CodeEdge(id="edge:file:a.js-file:b.js", source="file:a.js", target="file:b.js", type=models.IMPORT),
    ]
    graph = assemble_graph(nodes, edges)
    assert graph.edges == ()
    assert graph.warnings == ("Dropped dangling edge edge:file:a.js-file:b.js",)


def test_parse_async(make_project) -> None:
    root = make_project({"a.js": "export function a() {}\n"})
    graph = asyncio.run(parse_async(root))
    assert graph.node("file:a.js:a").type == models.FUNCTION


def test_save_and_networkx_export(analyze, tmp_path) -> None:
    graph = analyze(PROJECT)
    nx_graph = graph.to_networkx()
    assert nx_graph.number_of_nodes() == len(graph.nodes)
    assert nx_graph.number_of_edges() == len(graph.edges)

    output = tmp_path / "graph.json"
    graph.save(str(output))
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert len(payload["graph"]["nodes"]) == len(graph.nodes)
    assert len(payload["graph"]["links"]) == len(graph.edges)
    assert payload["metadata"]["stats"]["total_files"] == 5
    assert payload["data"]["nodes"][0]["id"] == graph.nodes[0].id


def test_cli_writes_graph(make_project, tmp_path, capsys) -> None:
    root = make_project(PROJECT)
    output = tmp_path / "out.json"
    status = main([str(root), "-o", str(output), "--exclude", "src/models/*"])
    assert status == 0
    assert output.exists()
    captured = capsys.readouterr().out
    assert "Codebase Statistics:" in captured
    assert "Total Files" in captured
    assert captured.rstrip().endswith("Done.")


def test_cli_reports_missing_directory(tmp_path, capsys) -> None:
    status = main([str(tmp_path / "missing"), "-o", str(tmp_path / "out.json")])
    assert status == 1
    assert "Directory does not exist" in capsys.readouterr().err
