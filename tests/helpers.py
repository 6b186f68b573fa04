"""Shared helpers for template tests."""

from pathlib import Path

import yaml

from workflowgen.templates.store import TemplateStore


def write_template(root: Path, name: str, document: dict, subdir: str = "", ext: str = ".yaml") -> Path:
    """Write a template document into a template directory."""
    directory = root / subdir if subdir else root
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}{ext}"
    path.write_text(yaml.safe_dump(document, sort_keys=False))
    return path


def workflow_document(name: str) -> dict:
    return {
        "name": name,
        "type": "ci",
        "triggers": {"push": {"branches": ["main"]}},
        "jobs": [
            {
                "name": "build",
                "runs-on": "ubuntu-latest",
                "steps": [
                    {"name": "Checkout code", "uses": "actions/checkout@v4"},
                    {"name": "Build", "run": "npm run build"},
                ],
            }
        ],
    }


class CountingStore(TemplateStore):
    """TemplateStore that records every template load (metadata reads excluded)."""

    def __init__(self, root=None):
        super().__init__(root)
        self.reads: list[str] = []

    async def load(self, kind, name):
        self.reads.append(name)
        return await super().load(kind, name)
