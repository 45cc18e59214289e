from __future__ import annotations

import pytest

from jsgraph import models
from jsgraph.react import is_hook_name, strip_context_suffix


@pytest.mark.parametrize(
    "name, expected",
    [("use", True), ("useState", True), ("useFetchData", True), ("user", False), ("useless", False), ("reuse", False)],
)
def test_is_hook_name(name, expected) -> None:
    assert is_hook_name(name) is expected


def test_strip_context_suffix() -> None:
    assert strip_context_suffix("ThemeContext") == "Theme"
    assert strip_context_suffix("Context") == "Context"
    assert strip_context_suffix("store") == "store"


def test_markup_vs_string_classification(analyze) -> None:
    graph = analyze({
        "views.jsx": (
            "export function Greeting() {\n"
            "  return (\n"
            "    <h1>Hello</h1>\n"
            "  );\n"
            "}\n"
            "export function greetingText() {\n"
            "  return '<h1>Hello</h1>';\n"
            "}\n"
            "export const Badge = () => <span>new</span>;\n"
        ),
    })
    assert graph.node("file:views.jsx:Greeting").type == models.COMPONENT
    assert graph.node("file:views.jsx:greetingText").type == models.FUNCTION
    assert graph.node("file:views.jsx:Badge").type == models.COMPONENT


def test_markup_helper_is_classified_as_component(analyze) -> None:
    # Builds markup without returning it directly and is never rendered.
    graph = analyze({
        "helpers.jsx": (
            "export function buildRows(items) {\n"
            "  const rows = items.map((item) => <tr key={item.id}><td>{item.name}</td></tr>);\n"
            "  return rows;\n"
            "}\n"
        ),
    })
    assert graph.node("file:helpers.jsx:buildRows").type == models.COMPONENT


def test_hooks_state_and_context(analyze) -> None:
    graph = analyze({
        "context.tsx": (
            "import { createContext } from 'react';\n"
            "export const ThemeContext = createContext('light');\n"
        ),
        "Panel.tsx": (
            "import React, { useState, useEffect, useContext } from 'react';\n"
            "import { ThemeContext } from './context';\n"
            "\n"
            "export function Panel({ title, onClose, ...rest }: PanelProps) {\n"
            "  const [open, setOpen] = useState(false);\n"
            "  const [count] = React.useState<number>(0);\n"
            "  const theme = useContext(ThemeContext);\n"
            "  useEffect(() => { setOpen(true); }, []);\n"
            "  return <div className={theme}>{title}</div>;\n"
            "}\n"
            "\n"
            "export function Provider() {\n"
            "  const LocalContext = createContext(null);\n"
            "  return <LocalContext.Provider value={1} />;\n"
            "}\n"
        ),
    })
    panel = graph.node("file:Panel.tsx:Panel")
    assert panel.type == models.COMPONENT
    assert panel.hooks == ("useState", "useContext", "useEffect")
    assert panel.state == ("open", "count")
    assert panel.consumes_context == ("Theme",)
    assert panel.props == ("title", "onClose", "...rest")

    provider = graph.node("file:Panel.tsx:Provider")
    assert provider.provides_context == ("Local",)


def test_props_from_type_or_name(analyze) -> None:
    graph = analyze({
        "cards.tsx": (
            "export function Typed(props: CardProps) { return <div />; }\n"
            "export function Untyped(props) { return <div />; }\n"
            "export function NoProps() { return <div />; }\n"
        ),
    })
    assert graph.node("file:cards.tsx:Typed").props == ("CardProps",)
    assert graph.node("file:cards.tsx:Untyped").props == ("props",)
    assert graph.node("file:cards.tsx:NoProps").props == ()


def test_component_metadata_serialization(analyze) -> None:
    graph = analyze({"Hello.jsx": "export const Hello = ({ name }) => <p>{name}</p>;\n"})
    data = graph.node("file:Hello.jsx:Hello").to_dict()
    assert data["type"] == "component"
    assert data["filePath"] == "Hello.jsx"
    assert data["props"] == ["name"]
    assert "calls" not in data
    assert "calledBy" not in data
