"""
Shared fixtures: a small on-disk repository and report builders.
"""
import pytest

from app.models.bug_report import StructuredReport


@pytest.fixture
def sample_repo(tmp_path):
    """A tiny JS project with files the keyword ranker can tell apart."""
    files = {
        "src/app.js": "export const app = () => {};\n",
        "src/login/button.js": "export function onClick() { /* noop */ }\n",
        "src/login/form.jsx": "export default function LoginForm() { return null; }\n",
        "src/styles/main.css": "body { margin: 0; }\n",
        "package.json": '{"name": "sample"}\n',
        "README.md": "# sample\n",
        "node_modules/lib/index.js": "module.exports = {};\n",
        ".git/config.json": "{}\n",
        "dist/bundle.js": "/* built */\n",
    }
    for rel_path, content in files.items():
        path = tmp_path / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return tmp_path


def _make_report(
    title: str = "Login button does nothing",
    root_cause: str = "The click handler in src/login/button.js returns before dispatching the submit action.",
    evidence=None,
    next_steps=None,
) -> StructuredReport:
    return StructuredReport(
        title=title,
        suspected_root_cause=root_cause,
        evidence=evidence if evidence is not None else [
            "src/login/button.js:1 onClick has an empty body",
            "src/login/form.jsx:1 LoginForm never subscribes to onClick",
        ],
        next_steps=next_steps if next_steps is not None else [
            "Dispatch the submit action from onClick",
            "Add a unit test for the login button",
        ],
    )


@pytest.fixture
def make_report():
    """Builder for StructuredReports; defaults pass the sufficiency gate."""
    return _make_report
