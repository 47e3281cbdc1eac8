"""Custom argparse actions for the adocflat CLI.

The actions record which destinations the user set explicitly (in
``namespace._provided_args``) so configuration-file values are only
overridden by flags that were actually given. Defaults may also come from
environment variables named ``ADOCFLAT_<DEST>``.
"""

from __future__ import annotations

#  Copyright (c) 2025 Tom Villani, Ph.D.
import argparse
import logging
import os
from typing import Any, Callable, Optional, Sequence, Union

ENV_PREFIX = "ADOCFLAT_"

_TRUTHY = ("true", "1", "yes", "on")


def env_key_for(dest: str) -> str:
    """Return the environment variable consulted for an argument destination."""
    return f"{ENV_PREFIX}{dest.upper().replace('-', '_').replace('.', '_')}"


def mark_provided(namespace: argparse.Namespace, dest: str) -> None:
    """Record that ``dest`` was set explicitly on the command line."""
    if not hasattr(namespace, "_provided_args"):
        namespace._provided_args = set()
    namespace._provided_args.add(dest)


def provided_args(namespace: argparse.Namespace) -> set[str]:
    """Return the destinations set explicitly on the command line."""
    return getattr(namespace, "_provided_args", set())


class TrackingStoreAction(argparse.Action):
    """Store action that tracks explicit use and reads ``ADOCFLAT_<DEST>`` defaults."""

    def __init__(
        self,
        option_strings: Sequence[str],
        dest: str,
        nargs: Optional[Union[int, str]] = None,
        const: Optional[Any] = None,
        default: Optional[Any] = None,
        type: Optional[Callable[[str], Any]] = None,
        choices: Optional[Sequence[Any]] = None,
        required: bool = False,
        help: Optional[str] = None,
        metavar: Optional[Union[str, tuple[str, ...]]] = None,
    ) -> None:
        """Initialize the tracking store action."""
        env_key = env_key_for(dest)
        env_value = os.environ.get(env_key)
        if env_value is not None:
            try:
                default = type(env_value) if type is not None else env_value
            except (ValueError, TypeError) as e:
                logging.warning(f"Invalid environment variable {env_key}={env_value}: {e}")

        super().__init__(
            option_strings=option_strings,
            dest=dest,
            nargs=nargs,
            const=const,
            default=default,
            type=type,
            choices=choices,
            required=required,
            help=help,
            metavar=metavar,
        )

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Union[str, Sequence[Any], None],
        option_string: Optional[str] = None,
    ) -> None:
        setattr(namespace, self.dest, values)
        mark_provided(namespace, self.dest)


class _TrackingFlagAction(argparse.Action):
    """Zero-argument flag storing ``const`` and tracking explicit use."""

    flag_value: bool = True

    def __init__(
        self,
        option_strings: Sequence[str],
        dest: str,
        default: Optional[bool] = None,
        required: bool = False,
        help: Optional[str] = None,
    ) -> None:
        if default is None:
            default = not self.flag_value
        env_value = os.environ.get(env_key_for(dest))
        if env_value is not None:
            default = env_value.lower() in _TRUTHY
        super().__init__(
            option_strings=option_strings,
            dest=dest,
            nargs=0,
            const=self.flag_value,
            default=default,
            required=required,
            help=help,
        )

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Union[str, Sequence[Any], None],
        option_string: Optional[str] = None,
    ) -> None:
        setattr(namespace, self.dest, self.flag_value)
        mark_provided(namespace, self.dest)


class TrackingStoreTrueAction(_TrackingFlagAction):
    """store_true that tracks whether the flag was explicitly provided."""

    flag_value = True


class TrackingStoreFalseAction(_TrackingFlagAction):
    """store_false that tracks whether the flag was explicitly provided."""

    flag_value = False


class TrackingAppendAction(argparse.Action):
    """Append action that tracks explicit use.

    An ``ADOCFLAT_<DEST>`` environment variable supplies a comma-separated
    default list.
    """

    def __init__(
        self,
        option_strings: Sequence[str],
        dest: str,
        default: Optional[list] = None,
        type: Optional[Callable[[str], Any]] = None,
        required: bool = False,
        help: Optional[str] = None,
        metavar: Optional[Union[str, tuple[str, ...]]] = None,
    ) -> None:
        """Initialize the tracking append action."""
        env_key = env_key_for(dest)
        env_value = os.environ.get(env_key)
        if env_value is not None:
            items = [item.strip() for item in env_value.split(",") if item.strip()]
            try:
                default = [type(item) for item in items] if type is not None else items
            except (ValueError, TypeError, argparse.ArgumentTypeError) as e:
                logging.warning(f"Invalid environment variable {env_key}={env_value}: {e}")

        super().__init__(
            option_strings=option_strings,
            dest=dest,
            default=default,
            type=type,
            required=required,
            help=help,
            metavar=metavar,
        )

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Union[str, Sequence[Any], None],
        option_string: Optional[str] = None,
    ) -> None:
        # the default list (possibly from the environment) is not extended by explicit values
        items = list(getattr(namespace, self.dest) or []) if self.dest in provided_args(namespace) else []
        items.append(values)
        setattr(namespace, self.dest, items)
        mark_provided(namespace, self.dest)


class TrackingPositiveIntAction(argparse.Action):
    """Action that validates positive integers with tracking and environment variable support."""

    def __init__(
        self,
        option_strings: Sequence[str],
        dest: str,
        nargs: Optional[Union[int, str]] = None,
        const: Optional[Any] = None,
        default: Optional[int] = None,
        required: bool = False,
        help: Optional[str] = None,
        metavar: Optional[Union[str, tuple[str, ...]]] = None,
    ) -> None:
        """Initialize the tracking positive int action."""
        env_key = env_key_for(dest)
        env_value = os.environ.get(env_key)
        if env_value is not None:
            try:
                ivalue = int(env_value)
                if ivalue <= 0:
                    logging.warning(f"Environment variable {env_key}: {env_value} is not a positive integer")
                else:
                    default = ivalue
            except ValueError:
                logging.warning(f"Environment variable {env_key}: {env_value} is not a valid integer")

        super().__init__(
            option_strings=option_strings,
            dest=dest,
            nargs=nargs,
            const=const,
            default=default,
            required=required,
            help=help,
            metavar=metavar,
        )

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Union[str, Sequence[Any], None],
        option_string: Optional[str] = None,
    ) -> None:
        # nargs='?' without a value stores const
        if values is None:
            setattr(namespace, self.dest, self.const)
            mark_provided(namespace, self.dest)
            return

        try:
            ivalue = int(str(values))
        except ValueError:
            parser.error(f"argument {option_string}: {values} is not a valid integer")
        if ivalue <= 0:
            parser.error(f"argument {option_string}: {values} is not a positive integer")
        setattr(namespace, self.dest, ivalue)
        mark_provided(namespace, self.dest)
