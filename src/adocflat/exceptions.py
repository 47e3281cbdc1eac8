#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Custom exceptions for the adocflat library.

This module defines specialized exception classes for the error conditions
that can occur while resolving includes, validating anchors and
cross-references, and loading resources.

Exception Hierarchy
-------------------
- AdocFlatError (base exception)

  - ValidationError (parameter/option validation)

  - AssemblyError (pipeline errors, each carrying an ErrorKind)
    - MissingResourceError (include target not found)
    - CyclicIncludeError (include chain revisits a path)
    - IncludeDepthError (include chain deeper than allowed)
    - DuplicateAnchorError (anchor identifier declared twice)
    - UnresolvedReferenceError (cross-reference without anchor)

  - AssemblyFailedError (aggregate of AssemblyError instances)

  - ResourceError (resolver-level failures: I/O, decoding, network)
    - SecurityError (path escapes, network policy violations)

  - DependencyError (missing optional packages)

"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Optional

from adocflat.document import SourcePosition


class AdocFlatError(Exception):
    """Base exception class for all adocflat-specific errors.

    Parameters
    ----------
    message : str
        Human-readable description of the error
    original_error : Exception, optional
        The original exception that caused this error, if applicable

    Attributes
    ----------
    message : str
        The error message
    original_error : Exception or None
        The wrapped original exception, if any

    """

    def __init__(self, message: str, original_error: Exception | None = None):
        """Initialize the error with a message and optional original exception."""
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ValidationError(AdocFlatError):
    """Exception raised for invalid input parameters or options.

    Parameters
    ----------
    message : str
        Description of the validation error
    parameter_name : str, optional
        Name of the invalid parameter
    parameter_value : any, optional
        The invalid value that was provided
    original_error : Exception, optional
        The original exception that caused this error

    """

    def __init__(
        self,
        message: str,
        parameter_name: str | None = None,
        parameter_value: Any = None,
        original_error: Exception | None = None,
    ):
        """Initialize the validation error with parameter details."""
        super().__init__(message, original_error=original_error)
        self.parameter_name = parameter_name
        self.parameter_value = parameter_value


class ErrorKind(Enum):
    """Classification of assembly pipeline errors."""

    MISSING_RESOURCE = "missing-resource"
    CYCLIC_INCLUDE = "cyclic-include"
    INCLUDE_DEPTH_EXCEEDED = "include-depth-exceeded"
    DUPLICATE_ANCHOR = "duplicate-anchor"
    UNRESOLVED_REFERENCE = "unresolved-reference"


class AssemblyError(AdocFlatError):
    """Base class for errors detected by the assembly pipeline.

    Every assembly error names the offending identifier (a resource path or
    an anchor identifier) and the logical position where it was detected.

    Parameters
    ----------
    kind : ErrorKind
        Classification of the error
    identifier : str
        Offending path or anchor identifier
    position : SourcePosition
        Where the error was detected
    message : str
        Human-readable description
    original_error : Exception, optional
        Underlying exception, if any

    """

    kind: ErrorKind

    def __init__(
        self,
        kind: ErrorKind,
        identifier: str,
        position: SourcePosition,
        message: str,
        original_error: Exception | None = None,
    ):
        """Initialize the assembly error."""
        super().__init__(message, original_error=original_error)
        self.kind = kind
        self.identifier = identifier
        self.position = position

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable summary of the error."""
        return {
            "kind": self.kind.value,
            "identifier": self.identifier,
            "source": self.position.source,
            "line": self.position.line,
            "message": self.message,
        }


class MissingResourceError(AssemblyError):
    """Raised when an include target cannot be resolved.

    Parameters
    ----------
    path : str
        The include target that could not be resolved
    position : SourcePosition
        Position of the include directive
    reason : str, optional
        Why the resolver failed (not found, read error, network error...)
    original_error : Exception, optional
        The resolver's exception

    """

    def __init__(
        self,
        path: str,
        position: SourcePosition,
        reason: str | None = None,
        original_error: Exception | None = None,
    ):
        """Initialize the missing resource error."""
        message = f"{position}: include target not found: {path}"
        if reason:
            message += f" ({reason})"
        super().__init__(ErrorKind.MISSING_RESOURCE, path, position, message, original_error=original_error)
        self.path = path


class CyclicIncludeError(AssemblyError):
    """Raised when an include chain revisits a resource that is still being resolved.

    Parameters
    ----------
    path : str
        The resource that was revisited
    position : SourcePosition
        Position of the include directive closing the cycle
    chain : iterable of str
        The active inclusion chain, outermost first

    """

    def __init__(self, path: str, position: SourcePosition, chain: Iterable[str] = ()):
        """Initialize the cyclic include error."""
        self.chain = tuple(chain)
        cycle = " -> ".join((*self.chain, path)) if self.chain else path
        super().__init__(
            ErrorKind.CYCLIC_INCLUDE,
            path,
            position,
            f"{position}: cyclic include of {path} ({cycle})",
        )
        self.path = path


class IncludeDepthError(AssemblyError):
    """Raised when nested includes exceed the configured maximum depth."""

    def __init__(self, path: str, position: SourcePosition, max_depth: int):
        """Initialize the include depth error."""
        super().__init__(
            ErrorKind.INCLUDE_DEPTH_EXCEEDED,
            path,
            position,
            f"{position}: include of {path} exceeds maximum include depth of {max_depth}",
        )
        self.path = path
        self.max_depth = max_depth


class DuplicateAnchorError(AssemblyError):
    """Raised when the same anchor identifier is declared more than once.

    Parameters
    ----------
    identifier : str
        The duplicated anchor identifier
    position : SourcePosition
        Position of the duplicate declaration
    first_position : SourcePosition
        Position of the first declaration

    """

    def __init__(self, identifier: str, position: SourcePosition, first_position: SourcePosition):
        """Initialize the duplicate anchor error."""
        super().__init__(
            ErrorKind.DUPLICATE_ANCHOR,
            identifier,
            position,
            f"{position}: duplicate anchor '{identifier}' (first declared at {first_position})",
        )
        self.first_position = first_position

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable summary including the first declaration."""
        data = super().to_dict()
        data["first_source"] = self.first_position.source
        data["first_line"] = self.first_position.line
        return data


class UnresolvedReferenceError(AssemblyError):
    """Raised when a cross-reference has no matching anchor."""

    def __init__(self, identifier: str, position: SourcePosition, markup: Optional[str] = None):
        """Initialize the unresolved reference error."""
        shown = markup or f"<<{identifier}>>"
        super().__init__(
            ErrorKind.UNRESOLVED_REFERENCE,
            identifier,
            position,
            f"{position}: unresolved cross-reference {shown}: no anchor '{identifier}'",
        )
        self.markup = markup


class AssemblyFailedError(AdocFlatError):
    """Aggregate raised when assembling a document produced one or more errors.

    Parameters
    ----------
    errors : iterable of AssemblyError
        Every error collected for the document

    Attributes
    ----------
    errors : tuple of AssemblyError
        The collected errors, in detection order

    """

    def __init__(self, errors: Iterable[AssemblyError]):
        """Initialize the aggregate error."""
        self.errors = tuple(errors)
        count = len(self.errors)
        lines = [f"Document assembly failed with {count} error{'s' if count != 1 else ''}:"]
        lines.extend(f"  - {error.message}" for error in self.errors)
        super().__init__("\n".join(lines))

    def kinds(self) -> set[ErrorKind]:
        """Return the distinct error kinds contained in this failure."""
        return {error.kind for error in self.errors}


class ResourceError(AdocFlatError):
    """Exception raised when a resolver cannot produce a resource's text.

    Parameters
    ----------
    message : str
        Description of the failure
    path : str, optional
        The resource path involved
    original_error : Exception, optional
        The underlying exception

    """

    def __init__(self, message: str, path: str | None = None, original_error: Exception | None = None):
        """Initialize the resource error."""
        super().__init__(message, original_error=original_error)
        self.path = path


class ResourceNotFoundError(ResourceError):
    """Exception raised when a resolver has no resource for a path."""

    def __init__(self, path: str, message: str | None = None, original_error: Exception | None = None):
        """Initialize the not-found error."""
        if message is None:
            message = f"Resource not found: {path}"
        super().__init__(message, path=path, original_error=original_error)


class SecurityError(ResourceError):
    """Exception raised when resolving a resource would violate a security policy.

    This covers filesystem targets escaping the resolver's base directory and
    remote fetches that are disabled or point at disallowed hosts.
    """


class DependencyError(AdocFlatError):
    """Exception raised when an optional dependency is not available.

    Parameters
    ----------
    feature_name : str
        Name of the feature requiring the dependency
    missing_packages : list[tuple[str, str]]
        List of (package_name, version_spec) tuples for missing packages
    install_command : str, optional
        Suggested pip install command to resolve the issue
    message : str, optional
        Custom error message. If not provided, generates a helpful message
    original_import_error : ImportError, optional
        The ImportError that triggered this error

    """

    def __init__(
        self,
        feature_name: str,
        missing_packages: list[tuple[str, str]],
        install_command: str = "",
        message: str | None = None,
        original_import_error: ImportError | None = None,
    ):
        """Initialize the dependency error with package details."""
        self.original_import_error = original_import_error
        if message is None:
            pkg_list = ", ".join(f"'{name}{spec}'" if spec else f"'{name}'" for name, spec in missing_packages)
            message = f"{feature_name} requires the following packages: {pkg_list}"
            if install_command:
                message += f"\nInstall with: {install_command}"
            else:
                packages_str = " ".join(f'"{name}{spec}"' if spec else name for name, spec in missing_packages)
                message += f"\nInstall with: pip install --upgrade {packages_str}"

        super().__init__(message, original_error=original_import_error)
        self.feature_name = feature_name
        self.missing_packages = missing_packages
        self.install_command = install_command
