"""Unit tests for signature parsing and resolution."""

import json
import warnings

import pytest

from sigscore.core.scoring import (
    Sign,
    Signature,
    SignatureFeature,
    load_signatures,
    parse_feature_token,
    parse_signature,
    parse_signatures,
    resolve_signatures,
)
from sigscore.exceptions import ConfigurationError, MissingFeatureWarning


class TestParseFeatureToken:
    """Tests for the trailing-dash token convention."""

    def test_plain_token_is_positive(self):
        """A token without a trailing dash is a positive marker."""
        assert parse_feature_token("CD3D") == SignatureFeature("CD3D", Sign.POSITIVE)

    def test_single_trailing_dash_is_negative(self):
        """Exactly one trailing dash marks a negative marker and is stripped."""
        assert parse_feature_token("CD19-") == SignatureFeature("CD19", Sign.NEGATIVE)

    def test_double_trailing_dash_is_verbatim_positive(self):
        """Two trailing dashes are part of the identifier."""
        feature = parse_feature_token("GENE--")
        assert feature.feature_id == "GENE--"
        assert feature.sign is Sign.POSITIVE

    def test_inner_dash_kept(self):
        """Dashes inside an identifier do not negate it."""
        assert parse_feature_token("HLA-DRA") == SignatureFeature("HLA-DRA", Sign.POSITIVE)
        assert parse_feature_token("HLA-DRA-") == SignatureFeature("HLA-DRA", Sign.NEGATIVE)

    @pytest.mark.parametrize("token", ["-", "", "  ", "--"])
    def test_invalid_tokens(self, token):
        """Empty and dash-only tokens are rejected."""
        with pytest.raises(ConfigurationError, match="Invalid feature token"):
            parse_feature_token(token)

    def test_non_string_token(self):
        """Non-string tokens are rejected."""
        with pytest.raises(ConfigurationError, match="must be strings"):
            parse_feature_token(42)


class TestParseSignature:
    """Tests for building Signature objects."""

    def test_token_list(self):
        """Token lists split into positive and negative sets."""
        sig = parse_signature("Tcell", ["CD3D", "CD3E", "CD19-"])
        assert sig.positive == ("CD3D", "CD3E")
        assert sig.negative == ("CD19",)

    def test_dict_format(self):
        """Explicit positive/negative dicts are accepted without dash parsing."""
        sig = parse_signature("Tcell", {"positive": ["CD3D"], "negative": ["CD19"]})
        assert sig.positive == ("CD3D",)
        assert sig.negative == ("CD19",)

    def test_duplicates_removed_in_order(self):
        """Duplicates within a sign class collapse to the first occurrence."""
        sig = parse_signature("S", ["B", "A", "B", "C-", "C-"])
        assert sig.positive == ("B", "A")
        assert sig.negative == ("C",)

    def test_only_negative_raises(self):
        """A signature needs at least one positive marker."""
        with pytest.raises(ConfigurationError, match="no positive features"):
            parse_signature("Bad", ["CD19-", "MS4A1-"])

    def test_empty_list_raises(self):
        """An empty definition has no positive marker."""
        with pytest.raises(ConfigurationError, match="no positive features"):
            parse_signature("Empty", [])

    def test_unknown_dict_key(self):
        """Dict definitions only accept positive/negative keys."""
        with pytest.raises(ConfigurationError, match="unknown keys"):
            parse_signature("S", {"positive": ["A"], "anti": ["B"]})

    def test_string_instead_of_list(self):
        """A bare string is not a feature list."""
        with pytest.raises(ConfigurationError, match="expected a list"):
            parse_signature("S", "CD3D")


class TestParseSignatures:
    """Tests for parsing signature collections."""

    def test_mapping_preserves_order(self):
        """Signatures keep the order of the mapping."""
        parsed = parse_signatures({"B": ["x"], "A": ["y"]})
        assert [s.name for s in parsed] == ["B", "A"]

    def test_signature_objects_pass_through(self):
        """Parsed Signature objects are accepted as-is."""
        sig = parse_signature("T", ["CD3D"])
        assert parse_signatures([sig]) == [sig]

    def test_empty_mapping_raises(self):
        """At least one signature is required."""
        with pytest.raises(ConfigurationError, match="At least one signature"):
            parse_signatures({})

    def test_duplicate_names_raise(self):
        """Two Signature objects cannot share a name."""
        sig = parse_signature("T", ["CD3D"])
        with pytest.raises(ConfigurationError, match="Duplicate signature names"):
            parse_signatures([sig, sig])


class TestLoadSignatures:
    """Tests for loading signatures from files."""

    def test_yaml_file(self, signature_yaml):
        """YAML files in both formats load into Signatures."""
        sigs = {s.name: s for s in load_signatures(signature_yaml)}
        assert sigs["Program_0"].positive == ("Gene_0", "Gene_1", "Gene_2", "Gene_3", "Gene_4")
        assert sigs["Program_1"].negative == ("Gene_0",)
        assert sigs["Mixed"].negative == ("Gene_0",)

    def test_json_file(self, tmp_path):
        """JSON files are detected by suffix."""
        path = tmp_path / "sigs.json"
        path.write_text(json.dumps({"T": ["CD3D", "CD19-"]}))
        (sig,) = load_signatures(path)
        assert isinstance(sig, Signature)
        assert sig.negative == ("CD19",)

    def test_missing_file(self, tmp_path):
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_signatures(tmp_path / "absent.yaml")

    def test_non_mapping_file(self, tmp_path):
        """A file holding a list is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- CD3D\n- CD3E\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            load_signatures(path)


class TestResolveSignatures:
    """Tests for mapping signatures onto matrix columns."""

    def test_indices(self):
        """Features resolve to their column positions."""
        sigs = parse_signatures({"S": ["b", "d", "a-"]})
        (resolved,) = resolve_signatures(sigs, ["a", "b", "c", "d"])
        assert resolved.positive_idx == (1, 3)
        assert resolved.negative_idx == (0,)
        assert resolved.missing == ()

    def test_missing_features_warn(self):
        """Absent features are dropped and reported."""
        sigs = parse_signatures({"S": ["a", "zz", "yy-"]})
        with pytest.warns(MissingFeatureWarning, match="2 features not found"):
            (resolved,) = resolve_signatures(sigs, ["a", "b"])
        assert resolved.positive_idx == (0,)
        assert resolved.negative_idx == ()
        assert resolved.missing_positive == ("zz",)
        assert resolved.missing_negative == ("yy",)

    def test_no_positive_found_is_empty(self):
        """A signature with no positive feature present is kept but empty."""
        sigs = parse_signatures({"S": ["zz"]})
        with pytest.warns(MissingFeatureWarning, match="none of its 1 positive"):
            (resolved,) = resolve_signatures(sigs, ["a"])
        assert resolved.is_empty

    def test_no_warning_when_complete(self):
        """Fully present signatures do not warn."""
        sigs = parse_signatures({"S": ["a"]})
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            resolve_signatures(sigs, ["a"])
