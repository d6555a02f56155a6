"""Consultant prompts.

The system prompt and the per-protocol markup instructions live in text files
next to this module. A deployment can replace any of them without touching the
package by dropping a file of the same name into $QUOTESTREAM_PROMPTS_DIR or
./prompts/.
"""

import os
from functools import lru_cache
from pathlib import Path

_PACKAGE_DIR = Path(__file__).parent


def _search_dirs() -> list[Path]:
    dirs = []
    override = os.getenv("QUOTESTREAM_PROMPTS_DIR")
    if override:
        dirs.append(Path(override))
    dirs.append(Path.cwd() / "prompts")
    dirs.append(_PACKAGE_DIR)
    return dirs


@lru_cache(maxsize=16)
def load_prompt(name: str) -> str:
    """Load a prompt by name (file name without .txt).

    The first match wins: $QUOTESTREAM_PROMPTS_DIR, ./prompts/, then the
    prompts shipped with the package.

    Raises:
        FileNotFoundError: If no directory holds the prompt
    """
    candidates = [directory / f"{name}.txt" for directory in _search_dirs()]
    for path in candidates:
        if path.is_file():
            return path.read_text(encoding="utf-8")

    searched = "\n".join(f"  - {path}" for path in candidates)
    raise FileNotFoundError(f"Prompt '{name}' not found. Searched:\n{searched}")


def get_system_prompt(protocol: str = "inline") -> str:
    """System prompt for the consultant, with the markup instructions for a protocol.

    The 'extracted' protocol prompts for inline blocks too; the proxy strips
    them before the text leaves the server.
    """
    format_name = "format_section" if protocol == "section" else "format_inline"
    return f"{load_prompt('system').rstrip()}\n\n{load_prompt(format_name).rstrip()}"


def clear_cache() -> None:
    """Forget loaded prompts, e.g. after editing an override file."""
    load_prompt.cache_clear()


__all__ = [
    "clear_cache",
    "get_system_prompt",
    "load_prompt",
]
