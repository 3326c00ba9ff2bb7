"""Access credential loading.

The credential file holds one line of text. Stripping the trailing line
terminator happens here so transports always receive the bare token.
"""

from __future__ import annotations

from pathlib import Path

from core.errors import AuthenticationError


def load_credential(credential_path: Path | str) -> str:
    """Read a single-line access credential.

    Args:
        credential_path: Credential file path, relative to the working tree.

    Returns:
        Credential text without its trailing line terminator.

    Raises:
        AuthenticationError: If the file is missing, unreadable, or empty.
    """
    path = Path(credential_path)
    if not path.is_file():
        raise AuthenticationError(
            f"Access credential file not found at {path}. "
            "Create it with your API token on a single line."
        )
    try:
        with path.open("r", encoding="utf-8", newline="") as handle:
            first_line = handle.readline()
    except OSError as error:
        raise AuthenticationError(
            f"Failed to read access credential at {path}: {error}. Check file permissions."
        ) from error
    credential = first_line.rstrip("\r\n")
    if not credential:
        raise AuthenticationError(
            f"Access credential file {path} is empty. Put your API token on the first line."
        )
    return credential
