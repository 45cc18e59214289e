from __future__ import annotations

import pytest

from jsgraph import models, parse
from jsgraph.navigation import BUILTIN_STRATEGIES, NavigationStrategy, derive_route, normalize_route


@pytest.mark.parametrize(
    "path, route",
    [
        ("pages/login.tsx", "/login"),
        ("pages/index.tsx", "/"),
        ("pages/blog/index.jsx", "/blog"),
        ("pages/blog/[slug].tsx", "/blog/[slug]"),
        ("src/pages/about.js", "/about"),
        ("app/page.tsx", "/"),
        ("app/dashboard/settings/page.tsx", "/dashboard/settings"),
        ("app/(marketing)/pricing/page.tsx", "/pricing"),
        ("pages/_app.tsx", None),
        ("pages/api/users.js", None),
        ("app/dashboard/layout.tsx", None),
        ("components/Button.tsx", None),
        ("pages/utils.ts", None),
    ],
)
def test_derive_route(path, route) -> None:
    assert derive_route(path) == route


def test_normalize_route() -> None:
    assert normalize_route("about") == "/about"
    assert normalize_route("/about") == "/about"


NEXT_PROJECT = {
    "pages/index.tsx": (
        "import Link from 'next/link';\n"
        "import { useRouter } from 'next/router';\n"
        "\n"
        "export default function Home() {\n"
        "  const router = useRouter();\n"
        "  const go = () => router.push('/login');\n"
        "  return (\n"
        "    <div onClick={go}>\n"
        "      <Link href=\"/about\">About</Link>\n"
        "      <Link href=\"/missing\">Missing</Link>\n"
        "    </div>\n"
        "  );\n"
        "}\n"
    ),
    "pages/login.tsx": "export default function Login() { return <form />; }\n",
    "pages/about.tsx": "export default function About() { return <p />; }\n",
    "lib/redirect.ts": "export const target = '/login';\nrouter.push('/login');\n",
}


def test_nextjs_screens_and_edges(analyze) -> None:
    graph = analyze(NEXT_PROJECT)

    screens = {n.id: n for n in graph.nodes_of_type(models.SCREEN)}
    assert set(screens) == {"screen:/", "screen:/login", "screen:/about"}
    assert screens["screen:/login"].label == "/login"
    assert screens["screen:/login"].file_path == "pages/login.tsx"

    nav = {e.id: e for e in graph.edges_of_type(models.NAVIGATION)}
    assert set(nav) == {
        "nav:file:pages/index.tsx:Home-screen:/login",
        "nav:file:pages/index.tsx:Home-screen:/about",
        "nav:file:lib/redirect.ts-screen:/login",
    }
    assert all(e.label == "navigates to" for e in nav.values())


def test_react_router_screens_and_edges(analyze) -> None:
    graph = analyze({
        "App.jsx": (
            "import { Routes, Route, Link, useNavigate } from 'react-router-dom';\n"
            "\n"
            "export function App() {\n"
            "  return (\n"
            "    <Routes>\n"
            "      <Route path=\"/\" element={<Home />} />\n"
            "      <Route path=\"settings\" element={<Settings />} />\n"
            "    </Routes>\n"
            "  );\n"
            "}\n"
            "\n"
            "function Home() {\n"
            "  const navigate = useNavigate();\n"
            "  return <button onClick={() => navigate('/settings')}><Link to=\"/\">Home</Link></button>;\n"
            "}\n"
            "\n"
            "function Settings() { return <Link to={'/nowhere'}>x</Link>; }\n"
        ),
    })
    screens = {n.id: n for n in graph.nodes_of_type(models.SCREEN)}
    assert set(screens) == {"screen:/", "screen:/settings"}
    assert screens["screen:/settings"].line == 7

    assert {e.id for e in graph.edges_of_type(models.NAVIGATION)} == {
        "nav:file:App.jsx:Home-screen:/settings",
        "nav:file:App.jsx:Home-screen:/",
    }


def test_no_router_means_no_screens(analyze) -> None:
    graph = analyze({"main.js": "navigate('/home');\n"})
    assert graph.nodes_of_type(models.SCREEN) == ()
    assert graph.edges_of_type(models.NAVIGATION) == ()


def test_react_router_relative_link_matches_screen(analyze) -> None:
    graph = analyze({
        "App.jsx": (
            "import { Route, Link } from 'react-router-dom';\n"
            "function Settings() { return <div />; }\n"
            "function Menu() {\n"
            "  return <Link to=\"settings\">Settings</Link>;\n"
            "}\n"
            "const routes = <Route path=\"settings\" element={<Settings />} />;\n"
        ),
    })
    assert [n.id for n in graph.nodes_of_type(models.SCREEN)] == ["screen:/settings"]
    assert {e.id for e in graph.edges_of_type(models.NAVIGATION)} == {
        "nav:file:App.jsx:Menu-screen:/settings",
    }


def test_failing_strategy_is_isolated(make_project) -> None:
    root = make_project(NEXT_PROJECT)

    def explode(files, root_path, graph):
        raise RuntimeError("boom")

    broken = NavigationStrategy("Broken", lambda files: True, explode)
    graph = parse(root, strategies=(broken,) + BUILTIN_STRATEGIES)

    assert any("Broken" in w and "boom" in w for w in graph.warnings)
    assert len(graph.nodes_of_type(models.SCREEN)) == 3
    assert graph.node("file:pages/index.tsx:Home") is not None


def test_failing_detect_is_isolated(make_project) -> None:
    root = make_project(NEXT_PROJECT)

    def bad_detect(files):
        raise ValueError("cannot detect")

    broken = NavigationStrategy("Flaky", bad_detect, lambda files, root_path, graph: None)
    graph = parse(root, strategies=BUILTIN_STRATEGIES + (broken,))
    assert any("Flaky" in w for w in graph.warnings)
    assert len(graph.edges_of_type(models.NAVIGATION)) == 3
