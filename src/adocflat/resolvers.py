#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/adocflat/resolvers.py
"""Resource resolvers supplying the text of include targets.

A resolver owns two decisions: how an include target written inside a
resource maps to a canonical path (``normalize``), and how the text for a
canonical path is obtained (``read``). The assembler only ever sees
canonical paths, so cycle detection and error messages work on the same
identifiers the resolver uses.

Resolvers
---------
- MappingResolver: in-memory table of path -> text or bytes
- FileSystemResolver: files under a base directory
- HttpResolver: remote HTTP(S) resources fetched with httpx
- ChainResolver: dispatches to the first capable resolver by priority

"""

from __future__ import annotations

import abc
import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union
from urllib.parse import urljoin, urlparse

from adocflat.constants import (
    DEFAULT_ENCODING_FALLBACKS,
    DEFAULT_HTTP_MAX_SIZE_BYTES,
    DEFAULT_HTTP_REQUIRE_HTTPS,
    DEFAULT_HTTP_TIMEOUT,
)
from adocflat.exceptions import ResourceError, ResourceNotFoundError, SecurityError, ValidationError
from adocflat.utils.encoding import decode_bytes
from adocflat.utils.network import fetch_content_securely

logger = logging.getLogger(__name__)

ResourceContent = Union[str, bytes]


def is_url(value: str) -> bool:
    """Whether the value is an absolute HTTP(S) URL."""
    return urlparse(value).scheme in ("http", "https")


def join_posix(target: str, parent: Optional[str]) -> str:
    """Resolve ``target`` relative to the directory of ``parent`` as a normalized POSIX path."""
    if target.startswith("/") or not parent:
        return posixpath.normpath(target)
    return posixpath.normpath(posixpath.join(posixpath.dirname(parent), target))


class ResourceResolver(abc.ABC):
    """Base class for include target resolvers."""

    priority: int = 0  # higher numbers run earlier in a ChainResolver
    remote: bool = False

    def normalize(self, target: str, parent: Optional[str]) -> str:
        """Return the canonical path for ``target`` as written inside ``parent``.

        Parameters
        ----------
        target : str
            Include target as written (attribute references already expanded)
        parent : str or None
            Canonical path of the including resource, None for an anonymous root

        Returns
        -------
        str
            Canonical path used for lookup, cycle detection and messages

        """
        if is_url(target):
            return target
        if parent and is_url(parent):
            return urljoin(parent, target)
        return join_posix(target, parent)

    def can_read(self, path: str) -> bool:
        """Return True if this resolver is responsible for the canonical path."""
        return True

    @abc.abstractmethod
    def read(self, path: str) -> str:
        """Return the text of the resource at a canonical path.

        Raises
        ------
        ResourceNotFoundError
            If no resource exists at the path
        ResourceError
            If the resource exists but cannot be read

        """


class MappingResolver(ResourceResolver):
    """Resolver over an in-memory mapping of path -> text.

    Keys are normalized the same way include targets are, so ``"./a.adoc"``
    and ``"a.adoc"`` name the same resource.

    Parameters
    ----------
    resources : Mapping[str, str or bytes]
        Resource contents; bytes are decoded with encoding detection

    Examples
    --------
    >>> resolver = MappingResolver({"x": "middle"})
    >>> resolver.read(resolver.normalize("x", None))
    'middle'

    """

    priority = 200

    def __init__(self, resources: Mapping[str, ResourceContent]):
        """Initialize the resolver with a snapshot of the mapping."""
        self._resources: dict[str, ResourceContent] = {}
        for key, value in resources.items():
            canonical = key if is_url(key) else join_posix(key, None)
            self._resources[canonical] = value

    def can_read(self, path: str) -> bool:
        return path in self._resources

    def read(self, path: str) -> str:
        if path not in self._resources:
            raise ResourceNotFoundError(path)
        value = self._resources[path]
        if isinstance(value, bytes):
            return decode_bytes(value)
        return value


class FileSystemResolver(ResourceResolver):
    """Resolver reading files below a base directory.

    Canonical paths are POSIX paths relative to the base directory; targets
    outside it keep their absolute path and are rejected unless
    ``allow_outside_base`` is set.

    Parameters
    ----------
    base_dir : str or Path, default "."
        Directory that relative root targets are resolved against
    allow_outside_base : bool, default False
        Permit includes that resolve outside ``base_dir``
    fallback_encodings : sequence of str, optional
        Encodings tried after UTF-8 and chardet detection fail

    """

    priority = 100

    def __init__(
        self,
        base_dir: Union[str, Path] = ".",
        allow_outside_base: bool = False,
        fallback_encodings: Optional[Sequence[str]] = None,
    ):
        """Initialize the resolver."""
        self.base_dir = Path(base_dir).resolve()
        if not self.base_dir.is_dir():
            raise ValidationError(
                f"Base directory does not exist or is not a directory: {base_dir}",
                parameter_name="base_dir",
                parameter_value=base_dir,
            )
        self.allow_outside_base = allow_outside_base
        self.fallback_encodings = tuple(fallback_encodings or DEFAULT_ENCODING_FALLBACKS)

    def normalize(self, target: str, parent: Optional[str]) -> str:
        if is_url(target) or (parent and is_url(parent)):
            return super().normalize(target, parent)
        target_path = Path(target)
        if target_path.is_absolute():
            candidate = target_path
        else:
            parent_dir = Path(parent).parent if parent else Path()
            candidate = self.base_dir / parent_dir / target_path
        resolved = candidate.resolve()
        try:
            return resolved.relative_to(self.base_dir).as_posix()
        except ValueError:
            return resolved.as_posix()

    def can_read(self, path: str) -> bool:
        return not is_url(path)

    def _full_path(self, path: str) -> Path:
        full = (self.base_dir / path).resolve()
        if not self.allow_outside_base:
            try:
                full.relative_to(self.base_dir)
            except ValueError as e:
                raise SecurityError(
                    f"Include target resolves outside the base directory {self.base_dir}: {path}",
                    path=path,
                    original_error=e,
                ) from e
        return full

    def read(self, path: str) -> str:
        full = self._full_path(path)
        if not full.is_file():
            raise ResourceNotFoundError(path, f"File not found: {full}")
        try:
            data = full.read_bytes()
        except OSError as e:
            raise ResourceError(f"Could not read {full}: {e}", path=path, original_error=e) from e
        logger.debug(f"Read {len(data)} bytes from {full}")
        return decode_bytes(data, fallback_encodings=self.fallback_encodings)


@dataclass
class HttpResolver(ResourceResolver):
    """Resolver fetching HTTP(S) include targets.

    Parameters
    ----------
    timeout : float, default 10.0
        Request timeout in seconds
    max_size_bytes : int, default 5 MiB
        Maximum accepted response size
    allowed_hosts : sequence of str, optional
        Hostname allowlist; None allows any public host
    require_https : bool, default True
        Reject plain HTTP targets
    block_private_networks : bool, default True
        Reject hosts resolving to private or loopback addresses

    """

    timeout: float = DEFAULT_HTTP_TIMEOUT
    max_size_bytes: int = DEFAULT_HTTP_MAX_SIZE_BYTES
    allowed_hosts: Optional[Sequence[str]] = None
    require_https: bool = DEFAULT_HTTP_REQUIRE_HTTPS
    block_private_networks: bool = True

    priority = 80
    remote = True

    def __post_init__(self) -> None:
        for name in ("timeout", "max_size_bytes"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ValidationError(f"{name} must be a number, got {value!r}", name, value)
        if self.timeout <= 0:
            raise ValidationError(f"timeout must be positive, got {self.timeout}", "timeout", self.timeout)
        if self.max_size_bytes <= 0:
            raise ValidationError(
                f"max_size_bytes must be positive, got {self.max_size_bytes}", "max_size_bytes", self.max_size_bytes
            )

    def can_read(self, path: str) -> bool:
        return is_url(path)

    def read(self, path: str) -> str:
        data = fetch_content_securely(
            path,
            timeout=self.timeout,
            max_size_bytes=self.max_size_bytes,
            allowed_hosts=self.allowed_hosts,
            require_https=self.require_https,
            block_private_networks=self.block_private_networks,
        )
        return decode_bytes(data)


@dataclass
class ChainResolver(ResourceResolver):
    """Coordinator that dispatches to registered resolvers by priority."""

    resolvers: Sequence[ResourceResolver] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.resolvers:
            raise ValidationError("ChainResolver requires at least one resolver")
        self.resolvers = tuple(sorted(self.resolvers, key=lambda r: -r.priority))

    def normalize(self, target: str, parent: Optional[str]) -> str:
        if is_url(target) or (parent and is_url(parent)):
            return super().normalize(target, parent)
        local = next((r for r in self.resolvers if not r.remote), None)
        if local is None:
            return super().normalize(target, parent)
        return local.normalize(target, parent)

    def can_read(self, path: str) -> bool:
        return any(resolver.can_read(path) for resolver in self.resolvers)

    def read(self, path: str) -> str:
        for resolver in self.resolvers:
            if resolver.can_read(path):
                return resolver.read(path)
        raise ResourceNotFoundError(path, f"No resolver can handle: {path}")


def as_resolver(source: Union[ResourceResolver, Mapping[str, ResourceContent]]) -> ResourceResolver:
    """Wrap a plain mapping in a MappingResolver; pass resolvers through unchanged."""
    if isinstance(source, ResourceResolver):
        return source
    return MappingResolver(source)


def default_resolver(
    base_dir: Union[str, Path] = ".",
    allow_outside_base: bool = False,
    allow_remote: bool = False,
    http_options: Optional[dict] = None,
) -> ResourceResolver:
    """Create the resolver used by the CLI: filesystem, plus HTTP(S) when enabled."""
    resolvers: list[ResourceResolver] = [FileSystemResolver(base_dir, allow_outside_base=allow_outside_base)]
    if allow_remote:
        resolvers.append(HttpResolver(**(http_options or {})))
    return ChainResolver(resolvers)
