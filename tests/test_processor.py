"""Tests for assetrev.processor."""

from __future__ import annotations

from pathlib import Path

from assetrev.locator import build_locator
from assetrev.patterns import compile_rule, rules_for
from assetrev.processor import FileProcessor
from tests._fixtures.project_builder import ProjectBuilder


def _processor(root: Path, asset_type: str = "html", **user_rules) -> FileProcessor:
    return FileProcessor(asset_type, rules_for(asset_type, user_rules), build_locator(root))


def test_scan_dependencies_resolves_existing_files(project: ProjectBuilder) -> None:
    project.write(
        {
            "index.html": """
                <script src="js/app.js"></script>
                <link rel="stylesheet" href="css/main.css">
                <img src="img/missing.png">
            """,
            "js/app.js": "console.log('app');\n",
            "css/main.css": "body {}\n",
        }
    )
    processor = _processor(project.root)

    scanned = processor.scan_dependencies(project.path("index.html"), [project.root])

    resolved = {ref.reference: ref.resolved_path for ref in scanned}
    assert resolved["js/app.js"] == project.path("js/app.js")
    assert resolved["css/main.css"] == project.path("css/main.css")
    assert resolved["img/missing.png"] is None
    assert project.read("index.html").startswith('<script src="js/app.js">')


def test_scan_defaults_to_the_file_directory(project: ProjectBuilder) -> None:
    project.write({"js/app.js": "require('lib.js');\n", "js/lib.js": "module.exports = 1;\n"})
    processor = _processor(project.root, "js")

    scanned = processor.scan_dependencies(project.path("js/app.js"))

    assert [ref.resolved_path for ref in scanned] == [project.path("js/lib.js")]


def test_rewrite_substitutes_revved_references(project: ProjectBuilder) -> None:
    project.write(
        {
            "index.html": """
                <script src="js/app.js"></script>
                <link rel="stylesheet" href="css/main.css">
            """,
            "js/app.js": "",
            "js/1234abcd.app.js": "",
            "css/main.css": "",
        }
    )
    processor = _processor(project.root)

    content = processor.rewrite(project.path("index.html"), [project.root])

    assert '<script src="js/1234abcd.app.js"></script>' in content
    assert '<link rel="stylesheet" href="css/main.css">' in content


def test_rewrite_leaves_unresolved_references_untouched(project: ProjectBuilder) -> None:
    original = '<script src="js/nowhere.js"></script>\n<img src="https://cdn.example.com/a.png">\n'
    project.write({"index.html": original})
    processor = _processor(project.root)

    assert processor.rewrite(project.path("index.html"), [project.root]) == original


def test_skip_substitution_keeps_references(project: ProjectBuilder) -> None:
    project.write({"index.html": '<script src="app.js"></script>\n', "7e7e7e7e.app.js": ""})
    processor = _processor(project.root)

    kept = processor.rewrite(project.path("index.html"), [project.root], skip_substitution=True)
    replaced = processor.rewrite(project.path("index.html"), [project.root])

    assert kept == '<script src="app.js"></script>\n'
    assert replaced == '<script src="7e7e7e7e.app.js"></script>\n'


def test_rewrite_is_idempotent(project: ProjectBuilder) -> None:
    project.write(
        {
            "index.html": '<script data-main="js/app" src="js/require.js"></script>\n',
            "js/app.js": "",
            "js/1234abcd.app.js": "",
            "js/require.js": "",
        }
    )
    processor = _processor(project.root)
    index = project.path("index.html")

    first = processor.process(index, [project.root])
    second = processor.rewrite(index, [project.root])

    assert first == '<script data-main="js/1234abcd.app" src="js/require.js"></script>\n'
    assert second == first


def test_user_rules_are_appended_to_defaults(project: ProjectBuilder) -> None:
    project.write(
        {
            "loader.js": "loadScript('widget.js');\nrequire('lib.js');\n",
            "widget.js": "",
            "cafe0001.widget.js": "",
            "lib.js": "",
            "cafe0002.lib.js": "",
        }
    )
    rule = compile_rule(r"loadScript\(['\"]([^'\"]+)['\"]\)", "Update loadScript calls")
    processor = _processor(project.root, "js", js=[rule])

    content = processor.rewrite(project.path("loader.js"))

    assert content == "loadScript('cafe0001.widget.js');\nrequire('cafe0002.lib.js');\n"


def test_css_urls_are_rewritten(project: ProjectBuilder) -> None:
    project.write(
        {
            "css/main.css": ".logo { background: url('../img/logo.png'); }\n",
            "img/logo.png": "png",
            "img/0badf00d.logo.png": "png",
        }
    )
    processor = _processor(project.root, "css")

    content = processor.rewrite(project.path("css/main.css"))

    assert content == ".logo { background: url('../img/0badf00d.logo.png'); }\n"


def test_process_collapses_build_blocks(project: ProjectBuilder) -> None:
    project.write(
        {
            "index.html": """
                <head>
                  <!-- build:js js/app.js -->
                  <script src="js/one.js"></script>
                  <script src="js/two.js"></script>
                  <!-- endbuild -->
                </head>
            """,
            "js/app.js": "",
            "js/abcdef01.app.js": "",
        }
    )
    processor = _processor(project.root)

    processor.process(project.path("index.html"), [project.root])

    assert project.read("index.html") == (
        "<head>\n"
        '  <script src="js/abcdef01.app.js"></script>\n'
        "</head>\n"
    )
