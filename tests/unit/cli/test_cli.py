"""CLI subcommand behavior tests.

Verifies build/query/show/export dispatch and error reporting of
``docsearch.cli.main`` without touching the user's config file.
"""

from __future__ import annotations

import io
import json
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from docsearch import cli
from docsearch.config import Settings

FIXTURES = Path(__file__).resolve().parents[2] / "fixtures"


def _run(argv: list[str], settings: Settings | None = None) -> tuple[int, str, str]:
    stdout = io.StringIO()
    stderr = io.StringIO()
    with mock.patch("docsearch.cli.load_settings", return_value=settings or Settings()), mock.patch.object(
        sys, "stdout", stdout
    ), mock.patch.object(sys, "stderr", stderr):
        code = cli.main(argv)
    return code, stdout.getvalue(), stderr.getvalue()


class CliBuildAndQueryTests(unittest.TestCase):
    def test_build_then_query_prints_grouped_results(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "search"
            code, stdout, _ = _run(["build", str(FIXTURES / "functions_5.js"), "--out", str(out)])
            self.assertEqual(code, 0)
            self.assertIn("entries in 1 shards", stdout)
            self.assertTrue((out / "index.json").exists())

            code, stdout, _ = _run(["query", str(out), "EFqdn"])

        self.assertEqual(code, 0)
        lines = stdout.splitlines()
        self.assertEqual(lines[0], "EFqdn")
        self.assertIn("EFqdn::EFqdn()", lines[1])
        self.assertIn("EFqdn::EFqdn(cpStr val)", lines[2])

    def test_query_without_matches_returns_one(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            _run(["build", str(FIXTURES / "functions_8.js"), "--out", tmp])
            code, stdout, _ = _run(["query", tmp, "zzzz"])
        self.assertEqual(code, 1)
        self.assertEqual(stdout, "")

    def test_query_prefix_flag_skips_inner_matches(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            _run(["build", str(FIXTURES / "functions_5.js"), "--out", tmp])
            _, substring_out, _ = _run(["query", tmp, "fqdn"])
            code, prefix_out, _ = _run(["query", tmp, "fqdn", "--prefix"])
        self.assertIn("EFqdn", substring_out)
        self.assertEqual(code, 1)
        self.assertEqual(prefix_out, "")

    def test_hashed_scheme_from_flags(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            _run(["build", str(FIXTURES / "functions_5.js"), "--out", tmp, "--scheme", "hashed", "--shard-count", "3"])
            manifest = json.loads((Path(tmp) / "index.json").read_text(encoding="utf-8"))
        self.assertEqual(manifest["scheme"], "hashed")
        self.assertEqual(manifest["shard_count"], 3)

    def test_strict_build_fails_and_lenient_build_skips(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            records = Path(tmp) / "records.json"
            records.write_text(
                json.dumps(
                    [
                        {"display_name": "EEvent", "occurrences": [{"anchor_url": "e.html", "scope_label": "EEvent"}]},
                        {"display_name": "Broken", "occurrences": []},
                    ]
                ),
                encoding="utf-8",
            )
            with self.assertRaises(SystemExit) as ctx:
                _run(["build", str(records), "--out", str(Path(tmp) / "strict")])
            self.assertIn("no occurrences", str(ctx.exception.code))

            code, stdout, _ = _run(["build", str(records), "--out", str(Path(tmp) / "lenient"), "--lenient"])
        self.assertEqual(code, 0)
        self.assertIn("1 records rejected", stdout)

    def test_lenient_setting_comes_from_config(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            records = Path(tmp) / "records.json"
            records.write_text(json.dumps([{"display_name": "", "occurrences": []}]), encoding="utf-8")
            code, stdout, _ = _run(["build", str(records), "--out", tmp], settings=Settings(strict=False))
        self.assertEqual(code, 0)
        self.assertIn("0 entries", stdout)

    def test_missing_input_path_exits(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(SystemExit) as ctx:
                _run(["build", str(Path(tmp) / "missing.json"), "--out", tmp])
        self.assertIn("Path not found", str(ctx.exception.code))

    def test_non_utf8_inputs_exit_with_message(self) -> None:
        for name in ("records.json", "searchdata_e.js"):
            with self.subTest(name=name), tempfile.TemporaryDirectory() as tmp:
                path = Path(tmp) / name
                path.write_bytes(b"var searchData=[['\xff',['X',['x.html',1,'']]]];")
                with self.assertRaises(SystemExit) as ctx:
                    _run(["build", str(path), "--out", str(Path(tmp) / "out")])
                self.assertTrue(str(ctx.exception.code).startswith("docsearch: "))
                self.assertIn("UTF-8", str(ctx.exception.code))

    def test_garbled_searchdata_file_exits_with_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "functions_0.js"
            path.write_text("var notSearchData = 1;", encoding="utf-8")
            with self.assertRaises(SystemExit) as ctx:
                _run(["build", str(path), "--out", str(Path(tmp) / "out")])
        self.assertIn(str(path), str(ctx.exception.code))

    def test_query_with_inconsistent_manifest_exits_with_message(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            _run(["build", str(FIXTURES / "functions_8.js"), "--out", tmp])
            manifest_path = Path(tmp) / "index.json"
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
            for override in ({"scheme": "radix"}, {"scheme": "alpha", "shard_count": 4}):
                with self.subTest(override=override):
                    manifest_path.write_text(json.dumps(dict(manifest, **override)), encoding="utf-8")
                    with self.assertRaises(SystemExit) as ctx:
                        _run(["query", tmp, "hash"])
                    self.assertTrue(str(ctx.exception.code).startswith("docsearch: "))


class CliShowAndExportTests(unittest.TestCase):
    def test_show_prints_pretty_shard(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            _run(["build", str(FIXTURES / "functions_8.js"), "--out", tmp])
            code, plain, _ = _run(["show", tmp, "h", "--no-color"])
            _, colored, _ = _run(["show", tmp, "h"])

        self.assertEqual(code, 0)
        self.assertEqual(json.loads(plain)["shard"], "h")
        self.assertIn("\x1b[", colored)

    def test_show_unknown_shard_exits(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            _run(["build", str(FIXTURES / "functions_8.js"), "--out", tmp])
            with self.assertRaises(SystemExit):
                _run(["show", tmp, "q"])

    def test_export_doxygen_writes_js_per_shard(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            index_dir = Path(tmp) / "index"
            js_dir = Path(tmp) / "js"
            _run(["build", str(FIXTURES / "functions_8.js"), "--out", str(index_dir)])
            code, _, _ = _run(["export-doxygen", str(index_dir), "--out", str(js_dir)])

            self.assertEqual(code, 0)
            self.assertEqual(sorted(path.name for path in js_dir.iterdir()), ["searchdata_g.js", "searchdata_h.js"])
            text = (js_dir / "searchdata_g.js").read_text(encoding="utf-8")
        self.assertTrue(text.startswith("var searchData="))
        self.assertIn("getArray&lt; std::string &gt;", text)


class CliConfigTests(unittest.TestCase):
    def _run_with_config(self, argv: list[str], config_path: Path) -> tuple[int, str]:
        stdout = io.StringIO()
        with mock.patch("docsearch.config.CONFIG_PATH", config_path), mock.patch.object(sys, "stdout", stdout):
            code = cli.main(argv)
        return code, stdout.getvalue()

    def test_config_without_key_prints_current_settings(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            code, stdout = self._run_with_config(["config"], Path(tmp) / "config.json")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(stdout)["match_mode"], "substring")

    def test_config_set_persists_and_feeds_later_commands(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "nested" / "config.json"
            code, stdout = self._run_with_config(["config", "match_mode", "Prefix"], config_path)
            self.assertEqual(code, 0)
            self.assertEqual(stdout, 'match_mode = "prefix"\n')
            self.assertEqual(json.loads(config_path.read_text(encoding="utf-8"))["match_mode"], "prefix")

            self._run_with_config(["config", "result_limit", "5"], config_path)
            _, value = self._run_with_config(["config", "result_limit"], config_path)
            self.assertEqual(value, "5\n")

            index_dir = Path(tmp) / "index"
            self._run_with_config(["build", str(FIXTURES / "functions_5.js"), "--out", str(index_dir)], config_path)
            code, _ = self._run_with_config(["query", str(index_dir), "fqdn"], config_path)
        self.assertEqual(code, 1)

    def test_config_rejects_unknown_keys_and_bad_values(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "config.json"
            for argv in (
                ["config", "colour", "red"],
                ["config", "strict", "maybe"],
                ["config", "load_workers", "0"],
                ["config", "scheme", "radix"],
                ["config", "shard_count", "4"],
            ):
                with self.subTest(argv=argv):
                    with self.assertRaises(SystemExit):
                        self._run_with_config(argv, config_path)
            self.assertFalse(config_path.exists())

    def test_config_path_flag_prints_location(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config_path = Path(tmp) / "config.json"
            _, stdout = self._run_with_config(["config", "--path"], config_path)
        self.assertEqual(stdout.strip(), str(config_path))


if __name__ == "__main__":
    unittest.main()
