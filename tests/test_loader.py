from __future__ import annotations

import pytest

from jsgraph.config import ParseOptions
from jsgraph.errors import ProjectLoadError
from jsgraph.loader import load_project, strip_json_comments


def _paths(snap):
    return [f.rel_path for f in snap.files]


def test_glob_fallback_skips_dependency_directories(snapshot) -> None:
    snap = snapshot({
        "src/app.ts": "export const a = 1;\n",
        "src/view.jsx": "export const b = 2;\n",
        "node_modules/lib/index.js": "module.exports = {};\n",
        "dist/bundle.js": "var x = 1;\n",
        "README.md": "# readme\n",
    })
    assert _paths(snap) == ["src/app.ts", "src/view.jsx"]


def test_files_are_sorted(snapshot) -> None:
    snap = snapshot({"b.ts": "", "a.ts": "", "c/a.ts": ""})
    assert _paths(snap) == sorted(_paths(snap))


def test_missing_root_raises(tmp_path) -> None:
    with pytest.raises(ProjectLoadError):
        load_project(tmp_path / "missing")


def test_empty_project_raises(make_project) -> None:
    root = make_project({"notes.txt": "hello"})
    with pytest.raises(ProjectLoadError):
        load_project(root)


def test_syntax_error_file_is_skipped_with_warning(snapshot) -> None:
    snap = snapshot({
        "good.ts": "export function ok() { return 1; }\n",
        "bad.ts": "export function broken( {\n",
    })
    assert _paths(snap) == ["good.ts"]
    assert any("bad.ts" in w for w in snap.warnings)


def test_tsconfig_include_and_allow_js(snapshot) -> None:
    snap = snapshot({
        "tsconfig.json": """{
            // comments are allowed
            "compilerOptions": {"baseUrl": ".", "paths": {"~/*": ["src/*"]},},
            "include": ["src"],
        }""",
        "src/main.ts": "export const x = 1;\n",
        "src/legacy.js": "var y = 2;\n",
        "scripts/tool.ts": "export const z = 3;\n",
    })
    assert _paths(snap) == ["src/main.ts"]
    assert snap.module_config.base_url == "."
    assert snap.module_config.paths == {"~/*": ("src/*",)}


def test_tsconfig_allow_js_loads_scripts(snapshot) -> None:
    snap = snapshot({
        "tsconfig.json": '{"compilerOptions": {"allowJs": true}}',
        "main.ts": "export const x = 1;\n",
        "legacy.js": "var y = 2;\n",
    })
    assert _paths(snap) == ["legacy.js", "main.ts"]


def test_broken_tsconfig_falls_back_to_glob(snapshot) -> None:
    snap = snapshot({"tsconfig.json": "{ not json", "main.js": "var a = 1;\n"})
    assert _paths(snap) == ["main.js"]
    assert any("tsconfig.json" in w for w in snap.warnings)


def test_exclude_globs(snapshot) -> None:
    snap = snapshot(
        {"src/a.ts": "", "src/a.test.ts": "", "src/gen/b.ts": ""},
        ParseOptions(exclude=("*.test.ts", "src/gen/**")),
    )
    assert _paths(snap) == ["src/a.ts"]


def test_entry_point_keeps_reachable_files(snapshot) -> None:
    snap = snapshot(
        {
            "main.ts": "import { a } from './a';\n",
            "a.ts": "import { b } from './b';\nexport const a = b;\n",
            "b.ts": "export const b = 1;\n",
            "unused.ts": "export const u = 1;\n",
        },
        ParseOptions(entry_point="main.ts"),
    )
    assert _paths(snap) == ["a.ts", "b.ts", "main.ts"]


def test_unknown_entry_point_raises(make_project) -> None:
    root = make_project({"main.ts": "export const x = 1;\n"})
    with pytest.raises(ProjectLoadError):
        load_project(root, ParseOptions(entry_point="other.ts"))


def test_strip_json_comments_keeps_strings() -> None:
    text = '{"url": "http://x//y", /* block */ "a": [1, 2,], // tail\n}'
    assert strip_json_comments(text) == '{"url": "http://x//y",  "a": [1, 2] \n}'
