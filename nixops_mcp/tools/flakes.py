"""Flake inspection and URL prefetch tools."""

import json
import re
from typing import Annotated, Any

from ..caches import cached
from ..config import TIMEOUT_METADATA, TIMEOUT_QUICK
from ..executor import raise_for_status, run_command, to_result
from ..registry import registry
from ..utils import parse_json_output
from ..validation import InvalidFormatError, validate_flake_ref, validate_url

HASH_FORMATS = ("sri", "nix32", "base16", "base64")

PREFETCH_HASH = re.compile(r"\(hash '([^']*)'\)")


def format_flake_metadata(metadata: dict[str, Any]) -> str:
    info = []
    if isinstance(metadata.get("description"), str):
        info.append(f"Description: {metadata['description']}")
    if isinstance(metadata.get("url"), str):
        info.append(f"URL: {metadata['url']}")

    locked = metadata.get("locked")
    if isinstance(locked, dict):
        if isinstance(locked.get("rev"), str):
            info.append(f"Revision: {locked['rev'][:12]}")
        if isinstance(locked.get("lastModified"), int):
            info.append(f"Last Modified: {locked['lastModified']}")

    nodes = (metadata.get("locks") or {}).get("nodes")
    if isinstance(nodes, dict):
        inputs = [name for name in nodes if name != "root"]
        if inputs:
            info.append(f"\nInputs: {', '.join(inputs)}")
    return "\n".join(info)


def format_flake_outputs(tree: Any, prefix: str = "") -> str:
    """Render the ``nix flake show --json`` tree, one leaf per line with its type."""
    text = ""
    if not isinstance(tree, dict):
        return text
    for key, value in tree.items():
        if not isinstance(value, dict):
            continue
        if "type" in value:
            text += f"{prefix}  {key}: {value.get('type') or 'unknown'}\n"
        else:
            text += f"{prefix}{key}:\n"
            text += format_flake_outputs(value, prefix + "  ")
    return text


def parse_prefetch_hash(stderr: str) -> str:
    match = PREFETCH_HASH.search(stderr)
    return match.group(1) if match else "unknown"


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True)
async def flake_metadata(
    flake_ref: Annotated[str, "Flake reference, e.g. . or github:NixOS/nixpkgs"],
) -> str:
    """Show flake metadata: description, URL, locked revision and inputs."""
    validate_flake_ref(flake_ref)
    stdout = await to_result(["nix", "flake", "metadata", "--json", flake_ref], "Failed to read flake")
    metadata = parse_json_output(stdout, "metadata")
    return format_flake_metadata(metadata if isinstance(metadata, dict) else {})


@registry.tool(TIMEOUT_QUICK, read_only=True, idempotent=True)
async def flake_show(
    flake_ref: Annotated[str, "Flake reference (default: current directory)"] = ".",
) -> str:
    """Show the outputs a flake provides."""
    validate_flake_ref(flake_ref)
    stdout = await to_result(["nix", "flake", "show", flake_ref, "--json"], "Failed to show flake")
    try:
        tree = json.loads(stdout)
    except json.JSONDecodeError:
        return stdout
    return f"Flake Outputs for: {flake_ref}\n\n" + format_flake_outputs(tree)


@registry.tool(TIMEOUT_METADATA, read_only=True, idempotent=True, cache="prefetch")
async def prefetch_url(
    url: Annotated[str, "URL to download into the store"],
    hash_format: Annotated[str, "Hash format: sri, nix32, base16 or base64"] = "sri",
) -> str:
    """Download a URL and print its hash for use in fetchurl."""
    validate_url(url)
    if hash_format not in HASH_FORMATS:
        raise InvalidFormatError("hash_format", hash_format, f"one of {', '.join(HASH_FORMATS)}")

    async def produce() -> str:
        result = raise_for_status(await run_command(["nix", "store", "prefetch-file", url]), "Prefetch failed")
        digest = parse_prefetch_hash(result.stderr)
        if hash_format != "sri" and digest != "unknown":
            digest = (
                await to_result(
                    ["nix", "hash", "convert", "--to", hash_format, digest],
                    "Hash conversion failed",
                )
            ).strip()
        return (
            f"URL: {url}\nHash: {digest}\n\n"
            f'Use in Nix:\nfetchurl {{\n  url = "{url}";\n  hash = "{digest}";\n}}'
        )

    return await cached(registry.caches.prefetch, (url, hash_format), produce)
