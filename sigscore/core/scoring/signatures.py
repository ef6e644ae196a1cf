"""Signature parsing and resolution for rank-based scoring.

This module turns user-supplied signature definitions into typed
Signature objects and resolves their feature identifiers against the
feature names of an expression matrix.

Signatures can be given in two formats:
- Token list: {"Tcell": ["CD3D", "CD3E", "CD19-"]}, where a single
  trailing "-" marks a negative marker.
- Explicit dict: {"Tcell": {"positive": ["CD3D"], "negative": ["CD19"]}}
"""

from __future__ import annotations

import json
import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from ...exceptions import ConfigurationError, MissingFeatureWarning

NEGATION_SUFFIX = "-"

SignatureSpec = Union[Sequence[str], Mapping[str, Sequence[str]]]


class Sign(str, Enum):
    """Direction of a marker's contribution to a signature score."""

    POSITIVE = "positive"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class SignatureFeature:
    """One signed marker of a signature."""

    feature_id: str
    sign: Sign = Sign.POSITIVE


@dataclass(frozen=True)
class Signature:
    """A named, ordered collection of signed markers.

    Attributes:
        name: Signature name (e.g., "Tcell")
        features: Signed markers in definition order
    """

    name: str
    features: Tuple[SignatureFeature, ...]

    @property
    def positive(self) -> Tuple[str, ...]:
        """Positive feature identifiers, de-duplicated in first-seen order."""
        return _unique(f.feature_id for f in self.features if f.sign is Sign.POSITIVE)

    @property
    def negative(self) -> Tuple[str, ...]:
        """Negative feature identifiers, de-duplicated in first-seen order."""
        return _unique(f.feature_id for f in self.features if f.sign is Sign.NEGATIVE)


@dataclass(frozen=True)
class ResolvedSignature:
    """A signature mapped onto column positions of an expression matrix.

    Attributes:
        name: Signature name
        positive_idx: Column indices of positive markers found in the matrix
        negative_idx: Column indices of negative markers found in the matrix
        missing_positive: Positive markers absent from the matrix
        missing_negative: Negative markers absent from the matrix
    """

    name: str
    positive_idx: Tuple[int, ...]
    negative_idx: Tuple[int, ...]
    missing_positive: Tuple[str, ...] = ()
    missing_negative: Tuple[str, ...] = ()

    @property
    def missing(self) -> Tuple[str, ...]:
        return self.missing_positive + self.missing_negative

    @property
    def is_empty(self) -> bool:
        """True when no positive marker could be found in the matrix."""
        return len(self.positive_idx) == 0


def _unique(items) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def parse_feature_token(token: str) -> SignatureFeature:
    """Parse a feature token into a signed feature.

    A token is negative if and only if it ends with exactly one "-"
    character, which is stripped from the identifier. Tokens ending with
    two or more dashes are kept verbatim as positive identifiers.

    Raises:
        ConfigurationError: If the token is empty or consists only of "-"
    """
    if not isinstance(token, str):
        raise ConfigurationError(f"Feature tokens must be strings, got {type(token).__name__}")
    token = token.strip()
    if not token or set(token) == {NEGATION_SUFFIX}:
        raise ConfigurationError(f"Invalid feature token: '{token}'")

    if token.endswith(NEGATION_SUFFIX) and not token.endswith(NEGATION_SUFFIX * 2):
        return SignatureFeature(token[: -len(NEGATION_SUFFIX)], Sign.NEGATIVE)
    return SignatureFeature(token, Sign.POSITIVE)


def parse_signature(name: str, spec: SignatureSpec) -> Signature:
    """Build a Signature from a token list or a positive/negative dict.

    Raises:
        ConfigurationError: If the definition is malformed or has no
            positive feature
    """
    if not isinstance(name, str) or not name:
        raise ConfigurationError(f"Signature names must be non-empty strings, got {name!r}")

    if isinstance(spec, Mapping):
        unknown = set(spec) - {"positive", "negative"}
        if unknown:
            raise ConfigurationError(
                f"Signature '{name}': unknown keys {sorted(unknown)} "
                "(expected 'positive' and/or 'negative')"
            )
        features = [
            SignatureFeature(_plain_id(name, f), Sign.POSITIVE)
            for f in _as_list(name, spec.get("positive", []))
        ]
        features += [
            SignatureFeature(_plain_id(name, f), Sign.NEGATIVE)
            for f in _as_list(name, spec.get("negative", []))
        ]
    else:
        features = [parse_feature_token(token) for token in _as_list(name, spec)]

    signature = Signature(name=name, features=tuple(features))
    if not signature.positive:
        raise ConfigurationError(
            f"Signature '{name}' has no positive features; "
            "at least one positive marker is required"
        )
    return signature


def _as_list(name: str, value) -> List[str]:
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ConfigurationError(
            f"Signature '{name}': expected a list of feature names, got {type(value).__name__}"
        )
    return list(value)


def _plain_id(name: str, feature: str) -> str:
    if not isinstance(feature, str) or not feature.strip():
        raise ConfigurationError(f"Signature '{name}': invalid feature name {feature!r}")
    return feature.strip()


def parse_signatures(
    signatures: Union[Mapping[str, SignatureSpec], Sequence[Signature]],
) -> List[Signature]:
    """Parse a mapping of signature definitions.

    Already-parsed Signature objects are passed through unchanged.

    Raises:
        ConfigurationError: If no signatures are given, a definition is
            invalid, or a name is used twice
    """
    if isinstance(signatures, Mapping):
        parsed = [parse_signature(name, spec) for name, spec in signatures.items()]
    else:
        parsed = list(signatures)
        for sig in parsed:
            if not isinstance(sig, Signature):
                raise ConfigurationError(
                    f"Expected Signature objects or a mapping, got {type(sig).__name__}"
                )
            if not sig.positive:
                raise ConfigurationError(
                    f"Signature '{sig.name}' has no positive features; "
                    "at least one positive marker is required"
                )

    if not parsed:
        raise ConfigurationError("At least one signature is required")

    names = [sig.name for sig in parsed]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate signature names: {duplicates}")
    return parsed


def load_signatures(
    source: Union[Mapping[str, SignatureSpec], Path, str],
    logger: Optional[logging.Logger] = None,
) -> List[Signature]:
    """Load signatures from a mapping or a YAML/JSON file.

    Args:
        source: Mapping of name -> definition, or path to a .yaml/.yml/.json file
        logger: Optional logger instance

    Returns:
        List of parsed Signature objects in definition order

    Raises:
        FileNotFoundError: If the path does not exist
        ConfigurationError: If the file content is not a mapping
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Signature file not found: {path}")
        with open(path, "r") as f:
            if path.suffix.lower() == ".json":
                source = json.load(f)
            else:
                source = yaml.safe_load(f)
        if not isinstance(source, Mapping):
            raise ConfigurationError(f"Signature file must contain a mapping: {path}")
        logger.info("Read signature definitions from %s", path)

    signatures = parse_signatures(source)

    n_with_negative = sum(1 for sig in signatures if sig.negative)
    logger.info(
        "Loaded %d signatures (%d with negative markers)",
        len(signatures),
        n_with_negative,
    )
    return signatures


def resolve_signatures(
    signatures: Sequence[Signature],
    feature_names: Sequence[str],
    logger: Optional[logging.Logger] = None,
) -> List[ResolvedSignature]:
    """Resolve signature features against the matrix feature names.

    Features absent from the matrix are dropped from the statistic and
    reported with a MissingFeatureWarning. Signatures left without any
    positive feature are kept (they score 0 everywhere) and also warned
    about.

    Args:
        signatures: Parsed signatures
        feature_names: Column names of the expression matrix
        logger: Optional logger instance

    Returns:
        One ResolvedSignature per input signature, same order
    """
    if logger is None:
        logger = logging.getLogger(__name__)

    feature_index: Dict[str, int] = {}
    for idx, name in enumerate(feature_names):
        feature_index.setdefault(str(name), idx)

    resolved: List[ResolvedSignature] = []
    for sig in signatures:
        pos_idx = tuple(feature_index[f] for f in sig.positive if f in feature_index)
        neg_idx = tuple(feature_index[f] for f in sig.negative if f in feature_index)
        missing_pos = tuple(f for f in sig.positive if f not in feature_index)
        missing_neg = tuple(f for f in sig.negative if f not in feature_index)

        rsig = ResolvedSignature(
            name=sig.name,
            positive_idx=pos_idx,
            negative_idx=neg_idx,
            missing_positive=missing_pos,
            missing_negative=missing_neg,
        )

        if rsig.is_empty:
            message = (
                f"Signature '{sig.name}': none of its {len(sig.positive)} positive "
                f"features were found; scores are set to 0"
            )
            logger.warning("%s", message)
            warnings.warn(message, MissingFeatureWarning, stacklevel=2)
        elif rsig.missing:
            shown = list(rsig.missing[:5])
            message = (
                f"Signature '{sig.name}': {len(rsig.missing)} features not found: "
                f"{shown}{'...' if len(rsig.missing) > 5 else ''}"
            )
            logger.warning("%s", message)
            warnings.warn(message, MissingFeatureWarning, stacklevel=2)

        resolved.append(rsig)

    return resolved
