"""
CLI command to remove every encrypted file a manifest declares.

Commands:
    sopsfile destroy <manifest.yaml> [--yes]
"""

from __future__ import annotations

from pathlib import Path

from sopsfile.cli.ux import confirm, info, success
from sopsfile.core.errors import ExitCode, main_with_error_handling
from sopsfile.engine.base import EncryptionEngine
from sopsfile.engine.sops import SopsEngine
from sopsfile.resources.encrypted_file import EncryptedFileResource
from sopsfile.resources.manifest import load_manifest
from sopsfile.resources.models import EncryptedFileState
from sopsfile.resources.state import load_state, save_state


@main_with_error_handling()
def destroy_command(
    manifest_file: str,
    state_file: str | None = None,
    auto_approve: bool = False,
    engine: EncryptionEngine | None = None,
) -> int:
    state_path = Path(state_file) if state_file else None
    specs = load_manifest(manifest_file)

    if not auto_approve and not confirm(f"Delete {len(specs)} encrypted file(s)?"):
        info("Destroy cancelled")
        return ExitCode.SUCCESS

    state = load_state(state_path)
    resource = EncryptedFileResource(engine or SopsEngine())
    for spec in specs:
        resource.delete(EncryptedFileState(spec=spec, id=state.identity(spec.filename)))
        state.set(spec.filename, "")
        save_state(state, state_path)

    success(f"{len(specs)} encrypted file(s) destroyed")
    return ExitCode.SUCCESS
