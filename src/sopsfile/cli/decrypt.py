"""
CLI command exposing the encrypted file data source.

Commands:
    sopsfile decrypt <file>                  - Flattened key/value table
    sopsfile decrypt <file> --key db         - Only the subtree under "db"
    sopsfile decrypt <file> --output json    - Flattened map as JSON
    sopsfile decrypt <file> --output raw     - Decrypted document
"""

from __future__ import annotations

import json

from sopsfile.cli.ux import console, print_table
from sopsfile.core.errors import ExitCode, main_with_error_handling
from sopsfile.engine.base import EncryptionEngine
from sopsfile.engine.sops import SopsEngine
from sopsfile.resources.data_source import EncryptedFileDataSource


@main_with_error_handling()
def decrypt_command(
    source_file: str,
    input_type: str | None = None,
    key: str | None = None,
    output_format: str = "table",
    engine: EncryptionEngine | None = None,
) -> int:
    result = EncryptedFileDataSource(engine or SopsEngine()).read(source_file, input_type, key=key)

    if output_format == "raw":
        console.print(result.raw, end="", markup=False, highlight=False)
    elif output_format == "json":
        console.print_json(json.dumps(result.data))
    else:
        print_table(source_file, ["Key", "Value"], [[k, v] for k, v in result.data.items()])
    return ExitCode.SUCCESS
