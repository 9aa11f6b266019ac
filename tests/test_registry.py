"""Tests for the tool catalog and dispatch."""

import pytest
from mcp.types import INVALID_PARAMS, METHOD_NOT_FOUND
from nixops_mcp import server  # noqa: F401
from nixops_mcp.config import (
    TIMEOUT_BUILD,
    TIMEOUT_DEPLOY,
    InternalError,
    InvalidParamsError,
    OperationTimeoutError,
    ToolNotFoundError,
)
from nixops_mcp.registry import registry

EXPECTED_TOOLS = {
    # nix
    "search_packages", "get_package_info", "explain_package", "find_command", "nix_locate", "comma",
    "nix_build", "why_depends", "show_derivation", "get_closure_size", "get_build_log",
    "diff_derivations", "nixos_build",
    "search_options", "nix_eval", "run_in_shell", "nix_log", "nix_run", "nix_develop",
    "flake_metadata", "flake_show", "prefetch_url",
    "format_nix", "validate_nix", "lint_nix", "nix_fmt",
    "nix_command_help", "ecosystem_tools",
    # clan
    "clan_machine_create", "clan_machine_list", "clan_machine_update", "clan_machine_delete",
    "clan_machine_install", "clan_machine_build", "clan_backup_create", "clan_backup_list",
    "clan_backup_restore", "clan_flake_create", "clan_secrets_list", "clan_vm_create",
    "clan_analyze_secrets", "clan_analyze_vars", "clan_analyze_tags", "clan_analyze_roster", "clan_help",
    # processes
    "pexpect_start", "pexpect_send", "pexpect_close",
    "pueue_add", "pueue_status", "pueue_log", "pueue_wait", "pueue_remove", "pueue_clean",
    "pueue_pause", "pueue_start",
    "pre_commit_run", "check_pre_commit_status", "setup_pre_commit",
}


@pytest.mark.unit
class TestCatalog:
    def test_every_tool_registered(self):
        assert EXPECTED_TOOLS <= set(registry.names())

    def test_every_tool_has_positive_timeout(self):
        for name in registry.names():
            assert registry.descriptor(name).timeout > 0, name

    def test_list_tools_shape(self):
        listing = {entry["name"]: entry for entry in registry.list_tools()}
        search = listing["search_packages"]
        assert search["annotations"]["readOnlyHint"] is True
        assert search["annotations"]["idempotentHint"] is True
        assert search["annotations"]["destructiveHint"] is False
        assert search["cache"] == "search"
        assert "query" in search["inputSchema"]["properties"]
        assert search["description"]

    @pytest.mark.parametrize(
        "name", ["clan_machine_update", "clan_machine_delete", "clan_machine_install", "clan_backup_restore"]
    )
    def test_destructive_hints(self, name):
        descriptor = registry.descriptor(name)
        assert descriptor.destructive
        assert descriptor.annotations.destructiveHint is True
        assert "confirm" in descriptor.arguments.model_fields

    def test_timeout_bands(self):
        assert registry.descriptor("nix_build").timeout == TIMEOUT_BUILD
        assert registry.descriptor("clan_machine_install").timeout == TIMEOUT_DEPLOY
        assert registry.descriptor("pueue_wait").timeout == 3630

    def test_membership(self):
        assert "nix_eval" in registry
        assert "nope" not in registry
        assert len(registry) == len(registry.names())


@pytest.mark.unit
class TestDispatch:
    @pytest.mark.asyncio
    async def test_unknown_tool(self, audit):
        with pytest.raises(ToolNotFoundError) as exc:
            await registry.call_tool("does_not_exist", {})
        assert exc.value.error.code == METHOD_NOT_FOUND
        assert audit.events == []

    @pytest.mark.asyncio
    async def test_wrong_argument_type(self, fake_exec, audit):
        with pytest.raises(InvalidParamsError) as exc:
            await registry.call_tool("search_packages", {"query": "ripgrep", "limit": "many"})
        assert exc.value.error.code == INVALID_PARAMS
        assert exc.value.data["errors"][0]["field"] == "limit"
        assert fake_exec.calls == []
        assert audit.events == []

    @pytest.mark.asyncio
    async def test_missing_argument(self, fake_exec):
        with pytest.raises(InvalidParamsError) as exc:
            await registry.call_tool("search_packages", {})
        assert [e["field"] for e in exc.value.data["errors"]] == ["query"]

    @pytest.mark.asyncio
    async def test_defaults_applied(self, fake_exec):
        fake_exec.respond('{"legacyPackages.x86_64-linux.hello": {"version": "2.12"}}')
        await registry.call_tool("search_packages", {"query": "hello"})
        assert fake_exec.argv == ["nix", "search", "nixpkgs", "hello", "--json"]
        (event,) = registry.audit.of_type("tool_invoked")
        assert event.parameters == {"query": "hello", "limit": 10}

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_internal_error(self, monkeypatch, audit):
        async def explode(*args, **kwargs):
            raise KeyError("boom")

        monkeypatch.setattr("nixops_mcp.tools.packages.to_result", explode)
        with pytest.raises(InternalError) as exc:
            await registry.call_tool("get_package_info", {"package": "nixpkgs#hello"})
        assert str(exc.value).startswith("Internal error in tool 'get_package_info'")
        (event,) = audit.of_type("tool_invoked")
        assert event.success is False

    @pytest.mark.asyncio
    async def test_validation_error_becomes_invalid_params(self, fake_exec, audit):
        with pytest.raises(InvalidParamsError) as exc:
            await registry.call_tool("get_package_info", {"package": "nixpkgs#hello;id"})
        assert exc.value.data["field"] == "package"
        (failed,) = audit.of_type("validation_failed")
        assert failed.field == "package"
        assert fake_exec.calls == []


@pytest.mark.unit
class TestClientText:
    def test_invalid_params(self):
        error = InvalidParamsError("Field 'query' cannot be empty", {"field": "query", "reason": "empty"})
        assert error.category == "INVALID_PARAMS"
        assert error.client_text() == (
            "INVALID_PARAMS (-32602): Field 'query' cannot be empty\n"
            '{"field": "query", "reason": "empty"}'
        )
        assert str(error) == "Field 'query' cannot be empty"

    def test_timeout_detail(self):
        text = OperationTimeoutError("nix_build", 300).client_text()
        assert text == (
            "INTERNAL_ERROR (-32603): Operation timed out after 300 seconds\n"
            '{"operation": "nix_build", "timeout_seconds": 300}'
        )

    def test_without_data(self):
        assert InternalError("boom").client_text() == "INTERNAL_ERROR (-32603): boom"
