import hashlib

import chex
import jax.numpy as jnp
import numpy as np
import pytest
from absl.testing import parameterized

from latticelab.errors import InvalidInputError
from latticelab.inout.canonical import canonical_json, canonicalize, request_hash


class TestCanonicalize(chex.TestCase, parameterized.TestCase):
    @parameterized.named_parameters(
        ("int", 3, 3.0),
        ("float", 0.1, 0.1),
        ("bool", True, True),
        ("none", None, None),
        ("string", "fcc", "fcc"),
        ("tuple", (1, 2), [1.0, 2.0]),
    )
    def test_scalars_and_sequences(self, value, expected) -> None:
        result = canonicalize(value)
        self.assertEqual(result, expected)
        self.assertIs(type(result), type(expected))

    def test_arrays_become_lists(self) -> None:
        self.assertEqual(canonicalize(np.eye(2, dtype=int)), [[1.0, 0.0], [0.0, 1.0]])
        self.assertEqual(canonicalize(jnp.array([0.5, 1.5])), [0.5, 1.5])

    def test_nested(self) -> None:
        value = {"b": [1, {"z": 2}], "a": False}
        self.assertEqual(canonicalize(value), {"b": [1.0, {"z": 2.0}], "a": False})

    @parameterized.named_parameters(
        ("nan", float("nan")),
        ("object", object()),
    )
    def test_rejects(self, value) -> None:
        with pytest.raises(InvalidInputError):
            canonicalize({"x": value})


class TestRequestHash(chex.TestCase):
    def test_key_order_and_number_form_ignored(self) -> None:
        first = {"a": 1, "b": [1, 2.5], "c": {"y": True, "x": None}}
        second = {"c": {"x": None, "y": True}, "b": [1.0, 2.5], "a": 1.0}
        self.assertEqual(canonical_json(first), canonical_json(second))
        self.assertEqual(request_hash(first), request_hash(second))

    def test_compact_sorted_text(self) -> None:
        self.assertEqual(canonical_json({"b": 1, "a": "x"}), '{"a":"x","b":1.0}')

    def test_digest(self) -> None:
        digest = request_hash({"ok": True})
        self.assertEqual(len(digest), 64)
        self.assertEqual(digest, hashlib.sha256(b'{"ok":true}').hexdigest())

    def test_value_change_changes_hash(self) -> None:
        self.assertNotEqual(request_hash({"a": 1.0}), request_hash({"a": 1.0000001}))
