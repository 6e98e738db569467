"""Tests for the canonical shard and manifest JSON codec."""

from __future__ import annotations

import json
import unittest

from docsearch.errors import ShardFormatError
from docsearch.index.shard_format import dumps_manifest, dumps_shard, loads_manifest, loads_shard
from docsearch.index.types import IndexEntry, IndexManifest, ManifestShard, Occurrence, Shard

SHARD = Shard(
    shard_id="e",
    entries=(
        IndexEntry(
            key="efqdn",
            display_name="EFqdn",
            occurrences=(
                Occurrence("../classEFqdn.html#a5d8b", "EFqdn::EFqdn()"),
                Occurrence("../classEFqdn.html#a6082", "EFqdn::EFqdn(cpStr val)"),
            ),
        ),
        IndexEntry(key="élan", display_name="Élan", occurrences=(Occurrence("x.html", ""),)),
    ),
)


class ShardCodecTests(unittest.TestCase):
    def test_dumps_is_compact_self_describing_and_ordered(self) -> None:
        text = dumps_shard(SHARD)

        self.assertTrue(text.endswith("\n"))
        self.assertNotIn(": ", text)
        payload = json.loads(text)
        self.assertEqual(payload["format"], "docsearch-shard")
        self.assertEqual(payload["version"], 1)
        self.assertEqual(payload["shard"], "e")
        self.assertEqual(
            payload["entries"][0],
            [
                "efqdn",
                "EFqdn",
                [["../classEFqdn.html#a5d8b", "EFqdn::EFqdn()"], ["../classEFqdn.html#a6082", "EFqdn::EFqdn(cpStr val)"]],
            ],
        )
        self.assertIn("Élan", text)

    def test_loads_inverts_dumps(self) -> None:
        self.assertEqual(loads_shard(dumps_shard(SHARD)), SHARD)

    def test_loads_rejects_wrong_format_and_version(self) -> None:
        payload = json.loads(dumps_shard(SHARD))
        for field, value in [("format", "other"), ("version", 2)]:
            with self.subTest(field=field):
                broken = dict(payload, **{field: value})
                with self.assertRaises(ShardFormatError):
                    loads_shard(json.dumps(broken))

    def test_loads_rejects_bad_json_and_bad_entries(self) -> None:
        with self.assertRaises(ShardFormatError):
            loads_shard("{not json")
        with self.assertRaises(ShardFormatError):
            loads_shard("[]")
        base = json.loads(dumps_shard(SHARD))
        for entries in (
            [["efqdn", "EFqdn"]],
            [["efqdn", "EFqdn", []]],
            [["efqdn", "EFqdn", [["only-url"]]]],
            [["", "EFqdn", [["u", "s"]]]],
            [["dup", "A", [["u", "s"]]], ["dup", "B", [["u", "s"]]]],
        ):
            with self.subTest(entries=entries):
                with self.assertRaises(ShardFormatError):
                    loads_shard(json.dumps(dict(base, entries=entries)))

    def test_shard_format_error_is_a_value_error(self) -> None:
        self.assertTrue(issubclass(ShardFormatError, ValueError))


class ManifestCodecTests(unittest.TestCase):
    def test_manifest_round_trip(self) -> None:
        manifest = IndexManifest(
            scheme="hashed",
            shard_count=4,
            shards=(ManifestShard("h00", 3), ManifestShard("h02", 1)),
        )
        self.assertEqual(loads_manifest(dumps_manifest(manifest)), manifest)

    def test_manifest_rejects_bad_rows(self) -> None:
        base = json.loads(dumps_manifest(IndexManifest(scheme="alpha", shard_count=None)))
        for override in ({"shards": [["a"]]}, {"shards": [["a", True]]}, {"shard_count": "4"}, {"scheme": 1}):
            with self.subTest(override=override):
                with self.assertRaises(ShardFormatError):
                    loads_manifest(json.dumps(dict(base, **override)))

    def test_manifest_scheme_must_match_partitioner_rules(self) -> None:
        base = json.loads(dumps_manifest(IndexManifest(scheme="alpha", shard_count=None)))
        for override in (
            {"scheme": "radix"},
            {"scheme": "alpha", "shard_count": 4},
            {"scheme": "hashed", "shard_count": None},
            {"scheme": "hashed", "shard_count": 0},
        ):
            with self.subTest(override=override):
                with self.assertRaises(ShardFormatError):
                    loads_manifest(json.dumps(dict(base, **override)))

    def test_shard_document_is_not_a_manifest(self) -> None:
        with self.assertRaises(ShardFormatError):
            loads_manifest(dumps_shard(SHARD))


if __name__ == "__main__":
    unittest.main()
