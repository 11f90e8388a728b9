"""Framing used by activation.rb to report its state over stderr.

A frame looks like::

    SEP version FS gem,paths FS yjit [FS zjit] (FS NAME VS value)* SEP

where SEP, FS and VS are the fixed markers from ``internal_config``.
Values containing one of the markers are not supported.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from ruby_environments.exceptions import ActivationDecodeError
from ruby_environments.internal_config import (
    ACTIVATION_SEPARATOR,
    FIELD_SEPARATOR,
    VALUE_SEPARATOR,
)
from ruby_environments.models import JitType

logger: logging.Logger = logging.getLogger(__name__)

_FRAME_PATTERN = re.compile(
    f"{re.escape(ACTIVATION_SEPARATOR)}(.*){re.escape(ACTIVATION_SEPARATOR)}",
    re.DOTALL,
)


@dataclass(frozen=True)
class ActivationPayload:
    """Decoded contents of one activation frame."""

    ruby_version: str
    gem_path: tuple[str, ...] = ()
    available_jits: frozenset[JitType] = frozenset()
    env: dict[str, str] = field(default_factory=dict)


def _flag(value: bool) -> str:
    return "true" if value else ""


def encode_activation_payload(
    ruby_version: str,
    gem_path: Iterable[str],
    available_jits: Iterable[JitType],
    env: Mapping[str, str] | Iterable[tuple[str, str]],
    include_zjit_field: bool = True,
) -> str:
    """Build a frame the way activation.rb prints it."""
    jits = set(available_jits)
    fields = [ruby_version, ",".join(gem_path), _flag(JitType.YJIT in jits)]
    if include_zjit_field:
        fields.append(_flag(JitType.ZJIT in jits))

    items = env.items() if isinstance(env, Mapping) else env
    fields.extend(f"{name}{VALUE_SEPARATOR}{value}" for name, value in items)

    return f"{ACTIVATION_SEPARATOR}{FIELD_SEPARATOR.join(fields)}{ACTIVATION_SEPARATOR}"


def extract_frame(output: str) -> str:
    """Return the text between the first and last activation separator."""
    match = _FRAME_PATTERN.search(output)
    if match is None:
        raise ActivationDecodeError("activation separator not found in probe output")
    return match.group(1)


def decode_activation_output(output: str) -> ActivationPayload:
    """Parse captured probe stderr into an ActivationPayload.

    Only a missing frame raises; malformed fields inside the frame are
    tolerated and skipped.
    """
    fields = extract_frame(output).split(FIELD_SEPARATOR)

    ruby_version = fields[0]
    gem_path: tuple[str, ...] = tuple(fields[1].split(",")) if len(fields) > 1 else ()

    available_jits: set[JitType] = set()
    if len(fields) > 2 and fields[2]:
        available_jits.add(JitType.YJIT)

    entries = fields[3:]
    # extended probes send the ZJIT flag before the first env entry
    if entries and VALUE_SEPARATOR not in entries[0]:
        if entries[0]:
            available_jits.add(JitType.ZJIT)
        entries = entries[1:]

    env: dict[str, str] = {}
    for entry in entries:
        if VALUE_SEPARATOR not in entry:
            logger.debug(f"Skipping malformed environment entry: {entry!r}")
            continue
        name, value = entry.split(VALUE_SEPARATOR, 1)
        env[name] = value

    logger.debug(f"Parsed Ruby version: {ruby_version}")
    logger.debug(f"Parsed gem paths: {','.join(gem_path)}")
    logger.debug(f"Parsed JITs: {sorted(jit.value for jit in available_jits)}")
    logger.debug(f"Parsed {len(env)} environment variables")

    return ActivationPayload(
        ruby_version=ruby_version,
        gem_path=gem_path,
        available_jits=frozenset(available_jits),
        env=env,
    )
