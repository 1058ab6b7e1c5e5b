from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from sopsfile.config.settings import get_settings
from sopsfile.core.errors import FileOperationError, ValidationError


@dataclass
class ResourceRecord:
    """What the orchestrator remembers about one present resource."""

    id: str
    spec_digest: str = ""


@dataclass
class ResourceStateFile:
    """Records of present resources, keyed by filename."""

    resources: dict[str, ResourceRecord] = field(default_factory=dict)

    def set(self, filename: str, identity: str, spec_digest: str = "") -> None:
        if identity:
            self.resources[filename] = ResourceRecord(id=identity, spec_digest=spec_digest)
        else:
            self.resources.pop(filename, None)

    def get(self, filename: str) -> ResourceRecord | None:
        return self.resources.get(filename)

    def identity(self, filename: str) -> str:
        record = self.resources.get(filename)
        return record.id if record else ""


def _state_path(path: Path | None) -> Path:
    return path or Path(get_settings().state_file)


def load_state(path: Path | None = None) -> ResourceStateFile:
    state_path = _state_path(path)
    if not state_path.exists():
        return ResourceStateFile()
    try:
        data = json.loads(state_path.read_text())
    except OSError as exc:
        raise FileOperationError.from_os_error(exc) from exc
    except json.JSONDecodeError as exc:
        raise ValidationError(f"state file {state_path} is not valid JSON: {exc}") from exc

    resources: dict[str, ResourceRecord] = {}
    for filename, record in data.get("resources", {}).items():
        if isinstance(record, dict):
            resources[filename] = ResourceRecord(
                id=str(record.get("id", "")),
                spec_digest=str(record.get("spec_digest", "")),
            )
        else:
            resources[filename] = ResourceRecord(id=str(record))
    return ResourceStateFile(resources=resources)


def save_state(state: ResourceStateFile, path: Path | None = None) -> None:
    state_path = _state_path(path)
    payload = {
        "resources": {
            filename: {"id": record.id, "spec_digest": record.spec_digest}
            for filename, record in state.resources.items()
        }
    }
    try:
        state_path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n")
    except OSError as exc:
        raise FileOperationError.from_os_error(exc) from exc
