"""Generated-input tests for the validators.

Each validator gets strings that must pass, strings carrying a rejected
substring, and strings around its length limit.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st
from nixops_mcp.validation import (
    DANGEROUS_NIX_PATTERNS,
    MAX_EXPRESSION_LEN,
    MAX_FLAKE_REF_LEN,
    MAX_MACHINE_NAME_LEN,
    MAX_PACKAGE_NAME_LEN,
    MAX_URL_LEN,
    SHELL_METACHARACTERS,
    InvalidFormatError,
    SuspiciousInputError,
    TooLongError,
    ValidationError,
    validate_flake_ref,
    validate_machine_name,
    validate_nix_expression,
    validate_package_name,
    validate_url,
)

package_names = st.from_regex(r"[A-Za-z0-9_][A-Za-z0-9_-]*(\.[A-Za-z0-9_-]+)*", fullmatch=True).filter(
    lambda s: len(s) <= MAX_PACKAGE_NAME_LEN
)
machine_names = st.from_regex(r"[A-Za-z0-9_]([A-Za-z0-9_-]*[A-Za-z0-9_])?", fullmatch=True).filter(
    lambda s: len(s) <= MAX_MACHINE_NAME_LEN
)
flake_refs = st.from_regex(r"[A-Za-z0-9_.+/:@#-]+", fullmatch=True).filter(lambda s: len(s) <= MAX_FLAKE_REF_LEN)
url_tails = st.from_regex(r"[A-Za-z0-9._~%/?=&-]*", fullmatch=True).filter(lambda s: len(s) <= 1000)
safe_expressions = st.text(
    alphabet=st.characters(exclude_characters="\0`$"), min_size=1, max_size=200
).filter(lambda s: not any(pattern in s for pattern in DANGEROUS_NIX_PATTERNS))


def splice(prefix: str, bad: str, suffix: str) -> str:
    return f"{prefix}{bad}{suffix}"


@pytest.mark.unit
class TestPackageNameProperties:
    @given(package_names)
    def test_accepts_pattern(self, name):
        assert validate_package_name(name) == name

    @given(package_names, st.sampled_from([";", "|", "&", "$", "`", " ", "\n", "\t", "/", "\\", "..", "#", "(", "*"]))
    def test_rejects_embedded_substring(self, name, bad):
        with pytest.raises(ValidationError):
            validate_package_name(splice(name[:1], bad, name[1:]))

    @given(package_names)
    def test_rejects_trailing_newline(self, name):
        with pytest.raises(ValidationError):
            validate_package_name(name + "\n")

    @given(st.integers(min_value=MAX_PACKAGE_NAME_LEN - 5, max_value=MAX_PACKAGE_NAME_LEN + 5))
    def test_length_boundary(self, length):
        name = "a" * length
        if length <= MAX_PACKAGE_NAME_LEN:
            assert validate_package_name(name) == name
        else:
            with pytest.raises(TooLongError):
                validate_package_name(name)


@pytest.mark.unit
class TestFlakeRefProperties:
    @given(flake_refs)
    def test_accepts_pattern(self, ref):
        assert validate_flake_ref(ref) == ref

    @given(flake_refs, st.sampled_from(SHELL_METACHARACTERS + ("\0",)), flake_refs)
    def test_rejects_metacharacters(self, prefix, bad, suffix):
        with pytest.raises(SuspiciousInputError):
            validate_flake_ref(splice(prefix[:400], bad, suffix[:400]))

    @given(flake_refs)
    def test_rejects_trailing_newline(self, ref):
        with pytest.raises(SuspiciousInputError):
            validate_flake_ref(ref[: MAX_FLAKE_REF_LEN - 1] + "\n")

    @given(st.integers(min_value=MAX_FLAKE_REF_LEN - 5, max_value=MAX_FLAKE_REF_LEN + 5))
    def test_length_boundary(self, length):
        ref = "a" * length
        if length <= MAX_FLAKE_REF_LEN:
            assert validate_flake_ref(ref) == ref
        else:
            with pytest.raises(TooLongError):
                validate_flake_ref(ref)


@pytest.mark.unit
class TestNixExpressionProperties:
    @given(safe_expressions)
    def test_accepts_safe_text(self, expr):
        assert validate_nix_expression(expr) == expr

    @given(safe_expressions, st.sampled_from(DANGEROUS_NIX_PATTERNS + ("$(", "`", "\0")), safe_expressions)
    def test_rejects_dangerous_substring(self, prefix, bad, suffix):
        with pytest.raises(SuspiciousInputError):
            validate_nix_expression(splice(prefix, bad, suffix))

    @given(st.integers(min_value=MAX_EXPRESSION_LEN - 5, max_value=MAX_EXPRESSION_LEN + 5))
    def test_length_boundary(self, length):
        expr = "1" * length
        if length <= MAX_EXPRESSION_LEN:
            assert validate_nix_expression(expr) == expr
        else:
            with pytest.raises(TooLongError):
                validate_nix_expression(expr)


@pytest.mark.unit
class TestMachineNameProperties:
    @given(machine_names)
    def test_accepts_pattern(self, name):
        assert validate_machine_name(name) == name

    @given(machine_names, st.sampled_from([".", " ", ";", "/", "\n", "$", "@", ":"]))
    def test_rejects_embedded_substring(self, name, bad):
        name = name[: MAX_MACHINE_NAME_LEN - 1]
        with pytest.raises(InvalidFormatError):
            validate_machine_name(splice(name[:1], bad, name[1:]))

    @given(machine_names)
    def test_rejects_hyphen_at_either_end(self, name):
        name = name[: MAX_MACHINE_NAME_LEN - 1]
        for candidate in (f"-{name}", f"{name}-"):
            with pytest.raises(SuspiciousInputError):
                validate_machine_name(candidate)

    @given(machine_names)
    def test_rejects_trailing_newline(self, name):
        with pytest.raises(InvalidFormatError):
            validate_machine_name(name[: MAX_MACHINE_NAME_LEN - 1] + "\n")

    @given(st.integers(min_value=MAX_MACHINE_NAME_LEN - 5, max_value=MAX_MACHINE_NAME_LEN + 5))
    def test_length_boundary(self, length):
        name = "a" * length
        if length <= MAX_MACHINE_NAME_LEN:
            assert validate_machine_name(name) == name
        else:
            with pytest.raises(TooLongError):
                validate_machine_name(name)


@pytest.mark.unit
class TestUrlProperties:
    schemes = st.sampled_from(["http://", "https://", "ftp://"])

    @given(schemes, url_tails)
    def test_accepts_known_schemes(self, scheme, tail):
        url = scheme + tail
        assert validate_url(url) == url

    @given(schemes, url_tails, st.sampled_from([" ", "\0"]), url_tails)
    def test_rejects_space_and_null(self, scheme, prefix, bad, suffix):
        with pytest.raises(SuspiciousInputError):
            validate_url(scheme + splice(prefix, bad, suffix))

    @given(st.sampled_from(["file://", "javascript:", "gopher://", "HTTP://", "www."]), url_tails)
    def test_rejects_other_schemes(self, scheme, tail):
        url = scheme + tail
        with pytest.raises(InvalidFormatError):
            validate_url(url)

    @given(st.integers(min_value=MAX_URL_LEN - 5, max_value=MAX_URL_LEN + 5))
    def test_length_boundary(self, length):
        url = "https://" + "a" * (length - len("https://"))
        if length <= MAX_URL_LEN:
            assert validate_url(url) == url
        else:
            with pytest.raises(TooLongError):
                validate_url(url)
