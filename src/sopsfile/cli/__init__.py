"""
CLI commands for sopsfile.
"""

from sopsfile.cli.apply import apply_command, check_command
from sopsfile.cli.decrypt import decrypt_command
from sopsfile.cli.destroy import destroy_command

__all__ = [
    "apply_command",
    "check_command",
    "decrypt_command",
    "destroy_command",
]
