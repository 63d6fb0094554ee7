import io
import json
import os
import tempfile
from unittest import mock

import chex
from absl.testing import parameterized

from latticelab import config
from latticelab.cli import build_parser, main


def _write_request(directory: str, payload) -> str:
    path = os.path.join(directory, "request.json")
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle)
    return path


class TestCli(chex.TestCase, parameterized.TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)

    def _run(self, argv, stdin: str = ""):
        out = io.StringIO()
        with mock.patch("sys.stdout", out), mock.patch("sys.stdin", io.StringIO(stdin)):
            status = main(argv + ["--log-level", "ERROR"])
        return status, out.getvalue()

    def test_health(self) -> None:
        status, output = self._run(["health"])
        self.assertEqual(status, 0)
        self.assertEqual(json.loads(output), {"ok": True})

    def test_tb_from_file(self) -> None:
        path = _write_request(
            self.tmpdir.name,
            {
                "model": {"lattice": "1d_chain", "params": {"t": -2.7}},
                "kpath": {
                    "points": [
                        {"label": "G", "k": [0, 0, 0]},
                        {"label": "X", "k": [3.141592653589793, 0, 0]},
                    ],
                    "nPerSegment": 10,
                },
                "dos": {"enabled": False},
            },
        )
        status, output = self._run(["tb", path])
        self.assertEqual(status, 0)
        response = json.loads(output)
        self.assertAlmostEqual(response["bands"][0][0], 5.4)
        self.assertNotIn("dos", response)

    def test_crystal_from_stdin(self) -> None:
        payload = {
            "lattice": {"kind": "bcc", "a": 2.87},
            "basis": [{"element": "Fe", "frac": [0, 0, 0], "magmom": 2.2}],
            "reciprocal": {"gMax": 4.0},
        }
        status, output = self._run(["crystal"], stdin=json.dumps(payload))
        self.assertEqual(status, 0)
        self.assertEqual(json.loads(output)["atoms"]["magmoms"], [2.2])

    def test_engine_error_exit_status(self) -> None:
        path = _write_request(
            self.tmpdir.name,
            {"lattice": {"kind": "sc", "a": 0}, "basis": [{"element": "Po", "frac": [0, 0, 0]}]},
        )
        status, output = self._run(["crystal", path])
        self.assertEqual(status, 2)
        body = json.loads(output)
        self.assertEqual(body["error"], "InvalidInput")
        self.assertEqual(body["field"], "lattice.a")

    def test_malformed_json(self) -> None:
        status, output = self._run(["ewald"], stdin="{not json")
        self.assertEqual(status, 1)
        self.assertEqual(output, "")

    def test_non_utf8_request(self) -> None:
        path = os.path.join(self.tmpdir.name, "latin1.json")
        with open(path, "wb") as handle:
            handle.write(b'{"lattice": "\xff\xfe"}')
        status, output = self._run(["crystal", path])
        self.assertEqual(status, 1)
        self.assertEqual(output, "")

    @parameterized.named_parameters(
        ("unknown", "TRACE", "INFO"),
        ("lowercase", "debug", "DEBUG"),
        ("padded", " warning ", "WARNING"),
    )
    def test_environment_log_level(self, value, expected) -> None:
        with mock.patch.dict(os.environ, {"LATTICELAB_LOG_LEVEL": value}):
            self.assertEqual(config.env_log_level(), expected)
            self.assertEqual(build_parser().parse_args(["health"]).log_level, expected)
            out = io.StringIO()
            with mock.patch("sys.stdout", out):
                self.assertEqual(main(["health"]), 0)
        self.assertEqual(json.loads(out.getvalue()), {"ok": True})

    @parameterized.named_parameters(
        ("lowercase", ["tb", "--log-level", "debug"], "DEBUG"),
        ("default", ["tb"], None),
    )
    def test_log_level_option(self, argv, expected) -> None:
        args = build_parser().parse_args(argv)
        if expected is not None:
            self.assertEqual(args.log_level, expected)
        self.assertEqual(args.request, "-")
