"""Tests for input validators."""

import os

import pytest
from nixops_mcp.validation import (
    EmptyFieldError,
    InvalidCharactersError,
    InvalidFormatError,
    PathTraversalError,
    SuspiciousInputError,
    TooLongError,
    ValidationError,
    find_dangerous_patterns,
    validate_command,
    validate_flake_ref,
    validate_machine_name,
    validate_nix_expression,
    validate_option_path,
    validate_package_name,
    validate_path,
    validate_session_id,
    validate_task_ids,
    validate_text,
    validate_url,
)
from nixops_mcp.tools.clan_backups import validate_backup_name


@pytest.mark.unit
class TestPackageName:
    @pytest.mark.parametrize("name", ["ripgrep", "python3", "gcc-wrapper", "python3.11", "_private", "a"])
    def test_valid(self, name):
        assert validate_package_name(name) == name

    def test_empty(self):
        with pytest.raises(EmptyFieldError) as exc:
            validate_package_name("")
        assert exc.value.field == "package_name"
        assert "cannot be empty" in str(exc.value)

    def test_too_long(self):
        with pytest.raises(TooLongError):
            validate_package_name("a" * 256)
        assert validate_package_name("a" * 255)

    @pytest.mark.parametrize("name", ["../etc/passwd", "foo/bar", "foo..bar", "a\\b"])
    def test_path_traversal(self, name):
        with pytest.raises(PathTraversalError) as exc:
            validate_package_name(name)
        assert "path traversal" in str(exc.value)

    @pytest.mark.parametrize("name", ["foo;bar", "foo bar", "$(id)", "-flag", "pkg|cat"])
    def test_invalid_characters(self, name):
        with pytest.raises(InvalidFormatError):
            validate_package_name(name)

    def test_trailing_dot(self):
        with pytest.raises(SuspiciousInputError):
            validate_package_name("foo.")

    def test_custom_field(self):
        with pytest.raises(ValidationError) as exc:
            validate_package_name("", field="query")
        assert exc.value.field == "query"


@pytest.mark.unit
class TestFlakeRef:
    @pytest.mark.parametrize(
        "ref",
        [".", "./my-flake", "/abs/path", "nixpkgs#hello", "github:NixOS/nixpkgs", "github:owner/repo/branch#pkg",
         "git+https://example.com/repo.git", "flake:nixpkgs", "nixpkgs/nixos-unstable#python3Packages.requests"],
    )
    def test_valid(self, ref):
        assert validate_flake_ref(ref) == ref

    @pytest.mark.parametrize("char", list(";|&$`\n><(){}[]!*?"))
    def test_rejects_every_metacharacter(self, char):
        with pytest.raises(SuspiciousInputError) as exc:
            validate_flake_ref(f"nixpkgs{char}hello")
        assert "shell metacharacter" in str(exc.value)

    def test_null_byte_checked_first(self):
        with pytest.raises(SuspiciousInputError) as exc:
            validate_flake_ref("nixpkgs\0;")
        assert "null byte" in str(exc.value)

    def test_invalid_format(self):
        with pytest.raises(InvalidFormatError):
            validate_flake_ref("nix pkgs")

    def test_too_long(self):
        with pytest.raises(TooLongError):
            validate_flake_ref("a" * 1001)


@pytest.mark.unit
class TestPath:
    def test_nonexistent_path_returned_unchanged(self):
        assert validate_path("/nonexistent/nixops-mcp/file.nix") == "/nonexistent/nixops-mcp/file.nix"

    def test_existing_path_canonicalized(self, tmp_path):
        target = tmp_path / "real.nix"
        target.write_text("{}")
        link = tmp_path / "link.nix"
        link.symlink_to(target)
        assert validate_path(str(link)) == os.path.realpath(target)

    @pytest.mark.parametrize("path", ["../secret", "/nix/store/../../etc", "foo/../bar"])
    def test_traversal(self, path):
        with pytest.raises(PathTraversalError):
            validate_path(path)

    @pytest.mark.parametrize(
        "path", ["/etc/shadow", "/etc/passwd", "/root/.ssh/id_ed25519", "/home/alice/.ssh", "/run/secrets/db"]
    )
    def test_sensitive_paths(self, path):
        with pytest.raises(SuspiciousInputError) as exc:
            validate_path(path)
        assert "sensitive path" in str(exc.value)

    def test_symlink_into_sensitive_path(self, tmp_path):
        link = tmp_path / "innocent"
        link.symlink_to("/etc/passwd")
        with pytest.raises(SuspiciousInputError):
            validate_path(str(link))

    def test_broken_symlink(self, tmp_path):
        link = tmp_path / "dangling"
        link.symlink_to(tmp_path / "missing")
        with pytest.raises(SuspiciousInputError) as exc:
            validate_path(str(link))
        assert "canonicalize" in str(exc.value)

    def test_similar_prefix_allowed(self):
        assert validate_path("/home/alice/.sshrc-notes")


@pytest.mark.unit
class TestNixExpression:
    @pytest.mark.parametrize("expr", ["1 + 1", "builtins.length [1 2 3]", "let x = 1; in x", "(import <nixpkgs> {}).hello"])
    def test_valid(self, expr):
        assert validate_nix_expression(expr) == expr

    @pytest.mark.parametrize(
        "expr",
        ['builtins.exec ["id"]', "{ __noChroot = true; }", "{ substituters = []; }", "{ trustedUsers = []; }"],
    )
    def test_dangerous_patterns(self, expr):
        with pytest.raises(SuspiciousInputError) as exc:
            validate_nix_expression(expr)
        assert "dangerous pattern" in str(exc.value)

    @pytest.mark.parametrize("expr", ['"$(id)"', "`id`"])
    def test_command_substitution(self, expr):
        with pytest.raises(SuspiciousInputError):
            validate_nix_expression(expr)

    def test_length_limit(self):
        assert validate_nix_expression("1" * 10000)
        with pytest.raises(TooLongError):
            validate_nix_expression("1" * 10001)


@pytest.mark.unit
class TestCommand:
    def test_dangerous_patterns_reported_not_rejected(self):
        assert validate_command("rm -rf ./build") == "rm -rf ./build"
        assert find_dangerous_patterns("rm -rf ./build && mkfs.ext4 /dev/sda") == ["rm -rf", "mkfs"]

    def test_safe_command_has_no_patterns(self):
        assert find_dangerous_patterns("ls -la") == []

    def test_null_byte(self):
        with pytest.raises(SuspiciousInputError):
            validate_command("ls\0")


@pytest.mark.unit
class TestMachineName:
    @pytest.mark.parametrize("name", ["web", "web-01", "db_primary", "a", "A1"])
    def test_valid(self, name):
        assert validate_machine_name(name) == name

    @pytest.mark.parametrize("name", ["-web", "web-"])
    def test_hyphen_edges(self, name):
        with pytest.raises(SuspiciousInputError):
            validate_machine_name(name)

    @pytest.mark.parametrize("name", ["web.example", "web 01", "web;id"])
    def test_invalid(self, name):
        with pytest.raises(InvalidFormatError):
            validate_machine_name(name)

    def test_length(self):
        assert validate_machine_name("a" * 63)
        with pytest.raises(TooLongError):
            validate_machine_name("a" * 64)


@pytest.mark.unit
class TestUrl:
    @pytest.mark.parametrize("url", ["https://example.com/a.tar.gz", "http://x.org", "ftp://mirror.org/f%20g"])
    def test_valid(self, url):
        assert validate_url(url) == url

    def test_scheme(self):
        with pytest.raises(InvalidFormatError):
            validate_url("file:///etc/passwd")

    def test_space(self):
        with pytest.raises(SuspiciousInputError):
            validate_url("https://example.com/a b")

    def test_length(self):
        with pytest.raises(TooLongError):
            validate_url("https://" + "a" * 2048)


@pytest.mark.unit
class TestSmallValidators:
    def test_session_id(self):
        assert validate_session_id("abc123") == "abc123"
        with pytest.raises(InvalidFormatError) as exc:
            validate_session_id("abc;bad")
        assert exc.value.field == "session_id"

    def test_task_ids(self):
        assert validate_task_ids("0, 1,2") == ["0", "1", "2"]
        with pytest.raises(InvalidFormatError):
            validate_task_ids("1;2")
        with pytest.raises(InvalidFormatError):
            validate_task_ids("a,b")

    def test_text(self):
        assert validate_text("bin/rg", "path") == "bin/rg"
        with pytest.raises(EmptyFieldError):
            validate_text("", "path")

    def test_error_rendering(self):
        assert str(InvalidCharactersError("name", "a\tb")) == "Field 'name' contains invalid characters: 'a\tb'"
        assert str(TooLongError("query", "abc", 2)) == "Field 'query' too long: 3 characters (max: 2)"

    def test_option_path(self):
        assert validate_option_path("services.nginx.enable")
        with pytest.raises(InvalidFormatError):
            validate_option_path('services"; builtins.exec')


@pytest.mark.unit
class TestTrailingNewline:
    @pytest.mark.parametrize(
        "validator, value",
        [
            (validate_package_name, "ripgrep\n"),
            (validate_machine_name, "web\n"),
            (validate_session_id, "abc\n"),
            (validate_option_path, "services.nginx\n"),
            (validate_flake_ref, "nixpkgs#hello\n"),
            (validate_backup_name, "nightly\n"),
        ],
    )
    def test_rejected(self, validator, value):
        with pytest.raises(ValidationError):
            validator(value)

    def test_task_ids_are_stripped(self):
        assert validate_task_ids("1,2\n") == ["1", "2"]
