#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for the resource resolvers."""

from pathlib import Path
from unittest.mock import patch

import pytest

from adocflat.exceptions import ResourceNotFoundError, SecurityError, ValidationError
from adocflat.resolvers import (
    ChainResolver,
    FileSystemResolver,
    HttpResolver,
    MappingResolver,
    as_resolver,
    default_resolver,
    join_posix,
)


@pytest.mark.unit
class TestPathNormalization:
    """Tests for shared path normalization."""

    @pytest.mark.parametrize(
        "target,parent,expected",
        [
            ("b.adoc", None, "b.adoc"),
            ("./b.adoc", None, "b.adoc"),
            ("b.adoc", "docs/a.adoc", "docs/b.adoc"),
            ("../b.adoc", "docs/a.adoc", "b.adoc"),
            ("/abs/b.adoc", "docs/a.adoc", "/abs/b.adoc"),
        ],
    )
    def test_join_posix(self, target: str, parent: str | None, expected: str) -> None:
        """Test targets resolve against the directory of the including resource."""
        assert join_posix(target, parent) == expected

    def test_url_parent(self) -> None:
        """Test relative targets inside a remote resource resolve as URLs."""
        resolver = MappingResolver({})

        assert resolver.normalize("b.adoc", "https://example.com/docs/a.adoc") == "https://example.com/docs/b.adoc"


@pytest.mark.unit
class TestMappingResolver:
    """Tests for the in-memory resolver."""

    def test_keys_are_normalized(self) -> None:
        """Test ./a.adoc and a.adoc name the same resource."""
        resolver = MappingResolver({"./a.adoc": "A", "dir/../b.adoc": "B"})

        assert resolver.read("a.adoc") == "A"
        assert resolver.read("b.adoc") == "B"

    def test_bytes_are_decoded(self) -> None:
        """Test byte content is decoded."""
        resolver = MappingResolver({"x": "café".encode("utf-8")})

        assert resolver.read("x") == "café"

    def test_missing_resource(self) -> None:
        """Test reading an absent key raises ResourceNotFoundError."""
        with pytest.raises(ResourceNotFoundError) as exc_info:
            MappingResolver({}).read("absent")

        assert exc_info.value.path == "absent"

    def test_can_read(self) -> None:
        """Test can_read reports only known keys."""
        resolver = MappingResolver({"x": ""})

        assert resolver.can_read("x")
        assert not resolver.can_read("y")


@pytest.mark.unit
class TestFileSystemResolver:
    """Tests for the filesystem resolver."""

    def test_canonical_paths_relative_to_base(self, tmp_path: Path) -> None:
        """Test canonical paths are POSIX paths relative to the base directory."""
        resolver = FileSystemResolver(tmp_path)

        assert resolver.normalize("chapters/one.adoc", None) == "chapters/one.adoc"
        assert resolver.normalize("two.adoc", "chapters/one.adoc") == "chapters/two.adoc"
        assert resolver.normalize("../top.adoc", "chapters/one.adoc") == "top.adoc"

    def test_read_file(self, write_tree) -> None:
        """Test a file below the base directory is read."""
        root = write_tree({"docs/a.adoc": "hello\n"})

        assert FileSystemResolver(root).read("docs/a.adoc") == "hello\n"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file raises ResourceNotFoundError."""
        with pytest.raises(ResourceNotFoundError):
            FileSystemResolver(tmp_path).read("nope.adoc")

    def test_escape_rejected(self, tmp_path: Path) -> None:
        """Test targets outside the base directory raise SecurityError."""
        base = tmp_path / "base"
        base.mkdir()
        (tmp_path / "secret.txt").write_text("secret", encoding="utf-8")
        resolver = FileSystemResolver(base)

        path = resolver.normalize("../secret.txt", None)

        with pytest.raises(SecurityError):
            resolver.read(path)

    def test_escape_allowed(self, tmp_path: Path) -> None:
        """Test allow_outside_base permits reading outside the base directory."""
        base = tmp_path / "base"
        base.mkdir()
        (tmp_path / "shared.txt").write_text("shared", encoding="utf-8")
        resolver = FileSystemResolver(base, allow_outside_base=True)

        assert resolver.read(resolver.normalize("../shared.txt", None)) == "shared"

    def test_invalid_base_dir(self, tmp_path: Path) -> None:
        """Test a nonexistent base directory is rejected at construction."""
        with pytest.raises(ValidationError) as exc_info:
            FileSystemResolver(tmp_path / "missing")

        assert exc_info.value.parameter_name == "base_dir"

    def test_latin1_file_decoded(self, tmp_path: Path) -> None:
        """Test non-UTF-8 files are decoded through the fallback chain."""
        (tmp_path / "old.txt").write_bytes("naïve résumé café\n".encode("latin-1"))

        text = FileSystemResolver(tmp_path).read("old.txt")

        assert text.startswith("na")
        assert text.endswith("\n")


@pytest.mark.unit
class TestHttpResolver:
    """Tests for the HTTP(S) resolver with the network layer patched out."""

    def test_reads_urls_only(self) -> None:
        """Test the resolver only claims absolute HTTP(S) URLs."""
        resolver = HttpResolver()

        assert resolver.can_read("https://example.com/a.adoc")
        assert not resolver.can_read("a.adoc")

    def test_read_passes_settings(self) -> None:
        """Test fetch settings are forwarded and the body is decoded."""
        resolver = HttpResolver(timeout=3.0, allowed_hosts=["example.com"])

        with patch("adocflat.resolvers.fetch_content_securely", return_value=b"remote text") as mock_fetch:
            assert resolver.read("https://example.com/a.adoc") == "remote text"

        kwargs = mock_fetch.call_args.kwargs
        assert kwargs["timeout"] == 3.0
        assert kwargs["allowed_hosts"] == ["example.com"]
        assert kwargs["require_https"] is True

    @pytest.mark.parametrize(
        "field,value", [("timeout", 0), ("max_size_bytes", -1), ("timeout", "fast"), ("max_size_bytes", True)]
    )
    def test_invalid_settings(self, field: str, value: object) -> None:
        """Test non-positive and non-numeric limits are rejected."""
        with pytest.raises(ValidationError):
            HttpResolver(**{field: value})


@pytest.mark.unit
class TestChainResolver:
    """Tests for priority dispatch."""

    def test_priority_order(self, write_tree) -> None:
        """Test the mapping resolver wins over the filesystem for the same path."""
        root = write_tree({"a.adoc": "from disk"})
        chain = ChainResolver([FileSystemResolver(root), MappingResolver({"a.adoc": "from memory"})])

        assert chain.read("a.adoc") == "from memory"
        assert chain.read(chain.normalize("a.adoc", None)) == "from memory"

    def test_falls_through(self, write_tree) -> None:
        """Test paths the mapping does not know go to the filesystem."""
        root = write_tree({"b.adoc": "disk"})
        chain = ChainResolver([MappingResolver({"a.adoc": "memory"}), FileSystemResolver(root)])

        assert chain.read("b.adoc") == "disk"

    def test_urls_without_http_resolver(self) -> None:
        """Test a URL with no capable resolver is reported as not found."""
        chain = ChainResolver([MappingResolver({})])

        with pytest.raises(ResourceNotFoundError):
            chain.read("https://example.com/x.adoc")

    def test_requires_resolvers(self) -> None:
        """Test an empty chain is rejected."""
        with pytest.raises(ValidationError):
            ChainResolver([])


@pytest.mark.unit
class TestFactories:
    """Tests for resolver construction helpers."""

    def test_as_resolver_wraps_mapping(self) -> None:
        """Test a plain mapping becomes a MappingResolver."""
        resolver = as_resolver({"x": "y"})

        assert isinstance(resolver, MappingResolver)
        assert resolver.read("x") == "y"

    def test_as_resolver_passthrough(self) -> None:
        """Test an existing resolver is returned unchanged."""
        resolver = MappingResolver({})

        assert as_resolver(resolver) is resolver

    def test_default_resolver_remote(self, tmp_path: Path) -> None:
        """Test remote support is only added on request."""
        local = default_resolver(tmp_path)
        remote = default_resolver(tmp_path, allow_remote=True, http_options={"timeout": 5.0})

        assert not local.can_read("https://example.com/a.adoc")
        assert remote.can_read("https://example.com/a.adoc")
