"""
CLI commands that reconcile a manifest against disk.

Commands:
    sopsfile apply <manifest.yaml>   - Create missing, drifted or changed files
    sopsfile check <manifest.yaml>   - Report what apply would do (exit 1 if anything)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import structlog

from sopsfile.cli.ux import console, header, print_table, success, warning
from sopsfile.core.errors import ExitCode, main_with_error_handling
from sopsfile.engine.base import EncryptionEngine
from sopsfile.engine.sops import SopsEngine
from sopsfile.logging import bind_context
from sopsfile.resources.encrypted_file import EncryptedFileResource
from sopsfile.resources.manifest import load_manifest
from sopsfile.resources.models import EncryptedFileSpec, EncryptedFileState, ReadOutcome
from sopsfile.resources.state import ResourceRecord, ResourceStateFile, load_state, save_state

logger = structlog.get_logger()

NOOP = "noop"
CREATE = "create"
REPLACE = "replace"
DELETE = "delete"


@dataclass
class PlannedChange:
    filename: str
    action: str
    reason: str
    id: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"filename": self.filename, "action": self.action, "reason": self.reason, "id": self.id}


def plan_resource(
    resource: EncryptedFileResource,
    spec: EncryptedFileSpec,
    record: ResourceRecord | None,
) -> PlannedChange:
    """Decide what apply must do for one declared resource."""
    if record is None or not record.id:
        return PlannedChange(spec.filename, CREATE, "not in state")
    if record.spec_digest and record.spec_digest != spec.digest():
        return PlannedChange(spec.filename, REPLACE, "attributes changed", record.id)

    result = resource.read(EncryptedFileState(spec=spec, id=record.id))
    if result.outcome is ReadOutcome.MISSING:
        return PlannedChange(spec.filename, CREATE, "file missing", record.id)
    if result.outcome is ReadOutcome.DRIFTED:
        return PlannedChange(spec.filename, REPLACE, "content drifted", record.id)
    return PlannedChange(spec.filename, NOOP, "up to date", record.id)


def plan_orphans(specs: list[EncryptedFileSpec], state: ResourceStateFile) -> list[PlannedChange]:
    declared = {spec.filename for spec in specs}
    return [
        PlannedChange(filename, DELETE, "no longer declared", record.id)
        for filename, record in sorted(state.resources.items())
        if filename not in declared
    ]


def _print_changes(title: str, changes: list[PlannedChange], output_format: str) -> None:
    if output_format == "json":
        console.print_json(json.dumps({"changes": [c.to_dict() for c in changes]}))
        return
    header(title)
    rows = [[c.filename, c.action, c.reason, c.id[:12]] for c in changes]
    print_table(title, ["File", "Action", "Reason", "ID"], rows)


@main_with_error_handling()
def check_command(
    manifest_file: str,
    state_file: str | None = None,
    output_format: str = "table",
    engine: EncryptionEngine | None = None,
) -> int:
    """
    Report pending changes without touching disk or state.

    Returns:
        0 if everything is up to date, 1 if apply has work to do
    """
    specs = load_manifest(manifest_file)
    state = load_state(Path(state_file) if state_file else None)
    resource = EncryptedFileResource(engine or SopsEngine())

    changes = [plan_resource(resource, spec, state.get(spec.filename)) for spec in specs]
    changes.extend(plan_orphans(specs, state))
    _print_changes("Pending changes", changes, output_format)

    pending = sum(1 for change in changes if change.action != NOOP)
    logger.info("check_complete", manifest=manifest_file, pending=pending, total=len(changes))
    if pending:
        return ExitCode.WARNING
    return ExitCode.SUCCESS


@main_with_error_handling()
def apply_command(
    manifest_file: str,
    state_file: str | None = None,
    output_format: str = "table",
    engine: EncryptionEngine | None = None,
) -> int:
    """
    Bring every declared encrypted file in line with the manifest.

    State is saved after each resource so a failure part way through
    keeps the work already done.
    """
    log = bind_context(manifest=manifest_file)
    state_path = Path(state_file) if state_file else None
    specs = load_manifest(manifest_file)
    state = load_state(state_path)
    resource = EncryptedFileResource(engine or SopsEngine())

    applied: list[PlannedChange] = []
    for spec in specs:
        change = plan_resource(resource, spec, state.get(spec.filename))
        if change.action == NOOP:
            applied.append(change)
            continue

        if change.action == REPLACE:
            resource.delete(EncryptedFileState(spec=spec, id=change.id))
            state.set(spec.filename, "")
            save_state(state, state_path)

        result = resource.create(spec)
        if result.needs_recreate:
            warning(f"{spec.filename} did not verify after writing ({result.outcome.value})")
        state.set(spec.filename, result.state.id, spec.digest())
        save_state(state, state_path)

        change.id = result.state.id
        applied.append(change)

    for orphan in plan_orphans(specs, state):
        record = state.get(orphan.filename)
        removed = EncryptedFileSpec(filename=orphan.filename, encryption_type="")
        resource.delete(EncryptedFileState(spec=removed, id=record.id if record else ""))
        state.set(orphan.filename, "")
        save_state(state, state_path)
        applied.append(orphan)

    log.info(
        "apply_complete",
        changed=sum(1 for c in applied if c.action != NOOP),
        total=len(applied),
    )
    _print_changes("Applied changes", applied, output_format)
    if output_format != "json":
        success(f"{sum(1 for c in applied if c.action != NOOP)} change(s) applied")
    return ExitCode.SUCCESS
