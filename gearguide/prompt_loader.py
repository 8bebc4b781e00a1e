from __future__ import annotations

from pathlib import Path


def prompt_path(prompts_dir: Path, name: str, version: str) -> Path:
    """Resolve "<name>_<version>.md" inside the prompts directory."""
    return prompts_dir / f"{name}_{version}.md"


def load_prompt(prompts_dir: Path, name: str, version: str) -> str:
    """Purpose: Load a versioned prompt file as UTF-8 text.
    Inputs/Outputs: Inputs are the prompts directory, prompt name and version;
        output is the decoded, whitespace-trimmed text.
    Side Effects / State: None; reads the filesystem.
    Dependencies: Path.read_text/read_bytes; used by GroundingPolicy.
    Failure Modes: A missing file raises FileNotFoundError; an empty file raises
        ValueError; undecodable bytes are dropped by the fallback decode.
    If Removed: The system instruction cannot be built and no conversation starts.
    Testing Notes: Validate BOM stripping, empty-file rejection and missing versions.
    """
    # Read as UTF-8 and fall back to a tolerant decode if needed.
    path = prompt_path(prompts_dir, name, version)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        text = path.read_bytes().decode("utf-8", errors="ignore")
    text = text.lstrip("\ufeff").strip()
    if not text:
        raise ValueError(f"Prompt file is empty: {path.name}")
    return text
