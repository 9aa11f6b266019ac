"""Utility functions for NixOps-MCP server."""

import json
from typing import Any

from .config import MAX_OUTPUT_BYTES, InternalError


def truncate_output(text: str, limit: int = MAX_OUTPUT_BYTES) -> str:
    """Cut ``text`` to ``limit`` bytes, noting the original size."""
    data = text.encode("utf-8")
    if len(data) <= limit:
        return text
    head = data[:limit].decode("utf-8", errors="ignore")
    return f"{head}\n\n... [Log truncated - showing first {limit // 1024}KB of {len(data) // 1024} KB total]"


def format_closure_size(size: int) -> str:
    size_gb = size / (1024 * 1024 * 1024)
    if size_gb >= 1.0:
        return f"{size_gb:.2f} GB"
    return f"{size / (1024 * 1024):.2f} MB"


def encode_option_query(query: str) -> str:
    return query.replace(" ", "%20").replace(".", "%2E")


def parse_json_output(stdout: str, what: str) -> Any:
    try:
        return json.loads(stdout)
    except json.JSONDecodeError as e:
        raise InternalError(f"Failed to parse {what}: {e}") from e


def build_output_path(stdout: str, output: str = "out") -> str:
    """Pick an output path from ``nix build --json`` output."""
    data = parse_json_output(stdout, "build output")
    try:
        path = data[0]["outputs"][output]
    except (IndexError, KeyError, TypeError):
        raise InternalError("Failed to get package output path") from None
    if not isinstance(path, str):
        raise InternalError("Failed to get package output path")
    return path


def build_drv_path(stdout: str) -> str:
    """Pick the derivation path from ``nix build --json`` output."""
    data = parse_json_output(stdout, "build output")
    try:
        path = data[0]["drvPath"]
    except (IndexError, KeyError, TypeError):
        raise InternalError("Failed to get derivation path") from None
    if not isinstance(path, str):
        raise InternalError("Failed to get derivation path")
    return path
