"""Template storage access.

Templates live as YAML (or JSON) documents under a configurable root:

    <root>/<name>.yaml                  workflow templates
    <root>/frameworks/<name>.yaml       framework templates
    <root>/languages/<name>.yaml        language templates
    <root>/metadata/<name>.yaml         optional metadata records

The store only reads and decodes. It raises plain exceptions
(``TemplateNotFoundError``, ``TemplateCompilationError``); the resolver is
responsible for turning those into load failures and moving on.
"""

import asyncio
import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from workflowgen.errors import TemplateCompilationError
from workflowgen.templates.models import (
    TEMPLATE_MODELS,
    ResolutionKind,
    TemplateDocument,
    TemplateMetadata,
)

logger = logging.getLogger(__name__)

# Extensions tried in order for every lookup
TEMPLATE_EXTENSIONS: tuple[str, ...] = (".yaml", ".yml", ".json")

KIND_DIRECTORIES: dict[ResolutionKind, str] = {
    ResolutionKind.WORKFLOW: "",
    ResolutionKind.FRAMEWORK: "frameworks",
    ResolutionKind.LANGUAGE: "languages",
}

METADATA_DIRNAME = "metadata"


def get_package_templates_path() -> Path:
    """Templates bundled with the package."""
    return Path(__file__).parent / "default"


class TemplateNotFoundError(FileNotFoundError):
    """No file exists for the requested template name."""

    def __init__(self, name: str, directory: Path):
        self.name = name
        self.directory = directory
        super().__init__(f"Template '{name}' not found in {directory}")


class TemplateStore:
    """Reads named template documents from a directory tree."""

    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root) if root is not None else get_package_templates_path()

    def directory_for(self, kind: ResolutionKind) -> Path:
        subdir = KIND_DIRECTORIES[kind]
        return self.root / subdir if subdir else self.root

    def find(self, directory: Path, name: str) -> Path | None:
        """Locate ``<name>.<ext>`` in ``directory``."""
        if not name or "/" in name or "\\" in name or name.startswith("."):
            return None
        for ext in TEMPLATE_EXTENSIONS:
            candidate = directory / f"{name}{ext}"
            if candidate.is_file():
                return candidate
        return None

    async def read(self, directory: Path, name: str) -> bytes:
        """Return the raw bytes of a template.

        Lookup and read both run in a worker thread.

        Raises:
            TemplateNotFoundError: If no matching file exists
        """
        return await asyncio.to_thread(self._read_sync, directory, name)

    def _read_sync(self, directory: Path, name: str) -> bytes:
        path = self.find(directory, name)
        if path is None:
            raise TemplateNotFoundError(name, directory)
        logger.debug(f"Reading template {name} from {path}")
        return path.read_bytes()

    async def load(self, kind: ResolutionKind, name: str) -> TemplateDocument:
        """Read and decode a template of the given kind."""
        raw = await self.read(self.directory_for(kind), name)
        return parse_template(raw, kind, name)

    async def load_metadata(self, kind: ResolutionKind, name: str) -> TemplateMetadata:
        """Read the metadata record for a template, or synthesize a default one."""
        directory = self.root / METADATA_DIRNAME
        try:
            raw = await self.read(directory, name)
            data = yaml.safe_load(raw)
            if isinstance(data, dict):
                data.setdefault("name", name)
                return TemplateMetadata.model_validate(data)
            logger.warning(f"Metadata for {name} is not a mapping, using defaults")
        except TemplateNotFoundError:
            pass
        except (yaml.YAMLError, ValidationError) as e:
            logger.warning(f"Invalid metadata for template {name}: {e}")
        return TemplateMetadata.default_for(name, kind)


def parse_template(raw: bytes | str, kind: ResolutionKind, name: str) -> TemplateDocument:
    """Decode a raw template document into its model.

    ``yaml.safe_load`` also accepts JSON, so a single decoder covers every
    supported extension.

    Raises:
        TemplateCompilationError: If the document cannot be decoded or does
            not match the schema for ``kind``
    """
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise TemplateCompilationError(name, f"Invalid YAML syntax: {e}", cause=e) from e

    if not isinstance(data, dict):
        raise TemplateCompilationError(name, "Template must be a mapping at the root")

    model = TEMPLATE_MODELS[kind]
    try:
        return model.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise TemplateCompilationError(
            name,
            f"Template does not match the {kind.value} schema: {problems}",
            cause=e,
            context={"validation_errors": [err["msg"] for err in e.errors()]},
        ) from e
