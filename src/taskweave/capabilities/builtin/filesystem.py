"""
capabilities/builtin/filesystem.py — Filesystem Capabilities

Registered capabilities:
  - read_file       → read a text file
  - write_file      → write/overwrite a text file
  - list_directory  → list directory contents

Blocking I/O runs in the default executor so a slow disk suspends only the
calling session.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from taskweave.capabilities.types import (
    CapabilityDescriptor,
    CapabilityResult,
    FunctionCapability,
    ParameterKind,
    ParameterSpec,
    PermissionLevel,
)
from taskweave.capabilities.validators import non_empty

# Hard cap: refuse to load files larger than this into the reasoning context
_MAX_READ_BYTES = 10 * 1024 * 1024  # 10 MB


async def read_file(path: str, encoding: str = "utf-8") -> CapabilityResult:
    resolved = Path(path).expanduser()

    def _read() -> str:
        if not resolved.is_file():
            raise FileNotFoundError(f"File not found: {resolved}")
        size = resolved.stat().st_size
        if size > _MAX_READ_BYTES:
            raise ValueError(
                f"File too large to read directly: {size:,} bytes "
                f"(limit {_MAX_READ_BYTES:,} bytes)"
            )
        return resolved.read_text(encoding=encoding)

    loop = asyncio.get_running_loop()
    try:
        content = await loop.run_in_executor(None, _read)
    except (OSError, ValueError, UnicodeDecodeError) as e:
        return CapabilityResult.fail(f"Failed to read file: {e}")
    return CapabilityResult.ok({"path": path, "content": content, "size": len(content)})


async def write_file(path: str, content: str, create_dirs: bool = True) -> CapabilityResult:
    resolved = Path(path).expanduser()

    def _write() -> int:
        if create_dirs:
            resolved.parent.mkdir(parents=True, exist_ok=True)
        return resolved.write_text(content, encoding="utf-8")

    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(None, _write)
    except OSError as e:
        return CapabilityResult.fail(f"Failed to write file: {e}")
    return CapabilityResult.ok({"path": path, "bytesWritten": len(content)})


async def list_directory(path: str) -> CapabilityResult:
    resolved = Path(path).expanduser()

    def _list() -> list[dict]:
        return [
            {
                "name": entry.name,
                "type": "directory" if entry.is_dir() else "file",
                "path": str(Path(path) / entry.name),
            }
            for entry in sorted(resolved.iterdir(), key=lambda p: p.name)
        ]

    loop = asyncio.get_running_loop()
    try:
        items = await loop.run_in_executor(None, _list)
    except OSError as e:
        return CapabilityResult.fail(f"Failed to list directory: {e}")
    return CapabilityResult.ok({"path": path, "items": items, "count": len(items)})


READ_FILE = FunctionCapability(
    CapabilityDescriptor(
        name="read_file",
        description="Reads the content of a file from the filesystem",
        parameters=[
            ParameterSpec(
                name="path",
                description="The path to the file to read",
                validator=non_empty(),
            ),
            ParameterSpec(
                name="encoding",
                description="File encoding (default: utf-8)",
                required=False,
            ),
        ],
        permission_level=PermissionLevel.READ,
        requires_permission=True,
    ),
    read_file,
)

WRITE_FILE = FunctionCapability(
    CapabilityDescriptor(
        name="write_file",
        description="Writes content to a file on the filesystem",
        parameters=[
            ParameterSpec(
                name="path",
                description="The path where to write the file",
                validator=non_empty(),
            ),
            ParameterSpec(
                name="content",
                description="The content to write to the file",
            ),
            ParameterSpec(
                name="create_dirs",
                kind=ParameterKind.BOOLEAN,
                description="Create parent directories if they don't exist (default: true)",
                required=False,
            ),
        ],
        permission_level=PermissionLevel.WRITE,
        requires_permission=True,
    ),
    write_file,
)

LIST_DIRECTORY = FunctionCapability(
    CapabilityDescriptor(
        name="list_directory",
        description="Lists all files and directories in a given path",
        parameters=[
            ParameterSpec(
                name="path",
                description="The directory path to list",
                validator=non_empty(),
            ),
        ],
        permission_level=PermissionLevel.READ,
        requires_permission=True,
    ),
    list_directory,
)

FILESYSTEM_CAPABILITIES = [READ_FILE, WRITE_FILE, LIST_DIRECTORY]
