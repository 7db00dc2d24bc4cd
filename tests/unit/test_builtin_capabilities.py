"""
tests/unit/test_builtin_capabilities.py — Built-in Capability Tests

Utility (calculator, get_timestamp, wait) and filesystem (read_file,
write_file, list_directory) capabilities, invoked through a real registry.
"""

from __future__ import annotations

import pytest

from taskweave.capabilities import CapabilityRegistry, setup_capabilities
from taskweave.capabilities.builtin.utility import evaluate_expression


@pytest.fixture
def registry():
    return setup_capabilities(CapabilityRegistry())


class TestSetup:
    def test_all_builtins_registered(self, registry):
        assert set(registry.names()) == {
            "calculator", "wait", "get_timestamp",
            "read_file", "write_file", "list_directory",
        }

    def test_filesystem_can_be_disabled(self):
        registry = setup_capabilities(CapabilityRegistry(), enable_filesystem=False)
        assert registry.names() == ["calculator", "wait", "get_timestamp"]

    def test_filesystem_capabilities_require_permission(self, registry):
        assert registry.get("write_file").descriptor.requires_permission is True
        assert registry.get("calculator").descriptor.requires_permission is False


# ─────────────────────────────────────────────────────────────────────────────
# Utility
# ─────────────────────────────────────────────────────────────────────────────


class TestCalculator:
    @pytest.mark.parametrize("expression,expected", [
        ("2+2", 4),
        ("2 + 2 * 3", 8),
        ("(1 + 2) * 4", 12),
        ("-3 + 5", 2),
        ("7 // 2", 3),
        ("7 % 4", 3),
        ("2 ** 10", 1024),
        ("1 / 4", 0.25),
    ])
    def test_evaluate_expression(self, expression, expected):
        assert evaluate_expression(expression) == expected

    @pytest.mark.parametrize("expression", [
        "__import__('os')",
        "abs(-1)",
        "x + 1",
        "'a' * 3",
        "9 ** 9999",
    ])
    def test_rejects_non_arithmetic(self, expression):
        with pytest.raises(ValueError):
            evaluate_expression(expression)

    @pytest.mark.asyncio
    async def test_invoke_success(self, registry):
        result = await registry.invoke("calculator", {"expression": "2 + 2"})
        assert result.success is True
        assert result.data == {"expression": "2 + 2", "result": 4}

    @pytest.mark.parametrize("expression", [
        "((9**1000)**1000)**1000",
        "(2**1000)**100",
    ])
    def test_rejects_oversized_power(self, expression):
        with pytest.raises(ValueError, match="too large"):
            evaluate_expression(expression)

    def test_power_within_bounds(self):
        assert evaluate_expression("(2**100)**10") == 2 ** 1000

    @pytest.mark.asyncio
    async def test_nested_power_is_failed_result(self, registry):
        result = await registry.invoke("calculator", {"expression": "((9**1000)**1000)**1000"})
        assert result.success is False
        assert "too large" in result.error

    @pytest.mark.asyncio
    async def test_division_by_zero_is_failed_result(self, registry):
        result = await registry.invoke("calculator", {"expression": "1 / 0"})
        assert result.success is False
        assert "Failed to evaluate expression" in result.error

    @pytest.mark.asyncio
    async def test_empty_expression_rejected_by_validator(self, registry):
        result = await registry.invoke("calculator", {"expression": "   "})
        assert result.success is False
        assert result.metadata["error_type"] == "invalid_parameter"


class TestTimestamp:
    @pytest.mark.asyncio
    async def test_default_is_iso(self, registry):
        result = await registry.invoke("get_timestamp", {})
        assert result.success is True
        assert result.data["format"] == "iso"
        assert "T" in result.data["timestamp"]

    @pytest.mark.asyncio
    async def test_unix(self, registry):
        result = await registry.invoke("get_timestamp", {"format": "unix"})
        assert isinstance(result.data["timestamp"], int)

    @pytest.mark.asyncio
    async def test_unknown_format_rejected(self, registry):
        result = await registry.invoke("get_timestamp", {"format": "rfc2822"})
        assert result.success is False
        assert "must be one of" in result.error


class TestWait:
    @pytest.mark.asyncio
    async def test_wait_zero(self, registry):
        result = await registry.invoke("wait", {"milliseconds": 0})
        assert result.success is True
        assert result.data["waited"] == 0

    @pytest.mark.asyncio
    async def test_out_of_range_rejected(self, registry):
        result = await registry.invoke("wait", {"milliseconds": 20_000})
        assert result.success is False
        assert "<= 10000" in result.error


# ─────────────────────────────────────────────────────────────────────────────
# Filesystem
# ─────────────────────────────────────────────────────────────────────────────


class TestFilesystem:
    @pytest.mark.asyncio
    async def test_write_then_read(self, registry, tmp_path):
        target = tmp_path / "nested" / "note.txt"

        written = await registry.invoke("write_file", {"path": str(target), "content": "hello"})
        assert written.success is True
        assert written.data == {"path": str(target), "bytesWritten": 5}

        read = await registry.invoke("read_file", {"path": str(target)})
        assert read.success is True
        assert read.data["content"] == "hello"
        assert read.data["size"] == 5

    @pytest.mark.asyncio
    async def test_read_missing_file(self, registry, tmp_path):
        result = await registry.invoke("read_file", {"path": str(tmp_path / "ghost.txt")})
        assert result.success is False
        assert "File not found" in result.error

    @pytest.mark.asyncio
    async def test_write_without_create_dirs_fails(self, registry, tmp_path):
        target = tmp_path / "missing" / "x.txt"
        result = await registry.invoke(
            "write_file", {"path": str(target), "content": "x", "create_dirs": False}
        )
        assert result.success is False

    @pytest.mark.asyncio
    async def test_list_directory(self, registry, tmp_path):
        (tmp_path / "b.txt").write_text("b")
        (tmp_path / "a_dir").mkdir()

        result = await registry.invoke("list_directory", {"path": str(tmp_path)})

        assert result.success is True
        assert result.data["count"] == 2
        assert [i["name"] for i in result.data["items"]] == ["a_dir", "b.txt"]
        assert result.data["items"][0]["type"] == "directory"
        assert result.data["items"][1]["type"] == "file"

    @pytest.mark.asyncio
    async def test_list_missing_directory(self, registry, tmp_path):
        result = await registry.invoke("list_directory", {"path": str(tmp_path / "nope")})
        assert result.success is False
        assert "Failed to list directory" in result.error
