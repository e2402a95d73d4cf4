"""Tests for the cfspeedtest command line: argument parsing and error rendering."""

import asyncio
import io
import json
import os
import tempfile
import unittest
from unittest import mock

from engine.config import DEFAULTS, DirectionFilter
from engine.errors import InvalidConfiguration
from engine.tiers import M1, M25, M100
from ui.output import OutputMode

import cfspeedtest
from fakes import FakeTransport


def _parse(*argv, defaults=None):
    parser = cfspeedtest.build_parser(dict(defaults or DEFAULTS))
    with mock.patch("sys.stderr", new_callable=io.StringIO):
        return parser.parse_args(list(argv))


class TestParser(unittest.TestCase):
    def test_defaults(self):
        args = _parse()
        config = cfspeedtest.config_from_args(args)
        self.assertEqual(config.repetitions, 10)
        self.assertEqual(config.latency_repetitions, 25)
        self.assertIs(config.max_tier, M25)
        self.assertTrue(config.dynamic_escalation_enabled)
        self.assertIs(config.direction_filter, DirectionFilter.BOTH)
        self.assertEqual(args.output_mode, "rich")

    def test_options(self):
        args = _parse("-n", "20", "--nr-latency-tests", "5", "-p", "100m", "--upload-only", "-d")
        config = cfspeedtest.config_from_args(args)
        self.assertEqual(config.repetitions, 20)
        self.assertEqual(config.latency_repetitions, 5)
        self.assertIs(config.max_tier, M100)
        self.assertFalse(config.dynamic_escalation_enabled)
        self.assertIs(config.direction_filter, DirectionFilter.UPLOAD_ONLY)

    def test_payload_case_insensitive(self):
        self.assertIs(cfspeedtest.config_from_args(_parse("-p", "1M")).max_tier, M1)

    def test_unknown_payload(self):
        with self.assertRaises(SystemExit):
            _parse("-p", "50m")

    def test_directions_exclusive(self):
        with self.assertRaises(SystemExit):
            _parse("--download-only", "--upload-only")

    def test_output_modes(self):
        self.assertEqual(_parse("--json").output_mode, "json")
        self.assertEqual(_parse("--json-pretty").output_mode, "json-pretty")
        self.assertEqual(_parse("--csv").output_mode, "csv")
        self.assertEqual(_parse("--simple").output_mode, "simple")
        with self.assertRaises(SystemExit):
            _parse("--json", "--csv")

    def test_config_file_defaults(self):
        defaults = dict(DEFAULTS, nr_tests=30, max_payload_size="1m", output="json")
        args = _parse(defaults=defaults)
        self.assertEqual(args.nr_tests, 30)
        self.assertEqual(args.output_mode, "json")
        self.assertIs(cfspeedtest.config_from_args(args).max_tier, M1)


class TestRunSpeedtest(unittest.TestCase):
    def _run(self, transport, *argv):
        args = _parse(*argv)
        config = cfspeedtest.config_from_args(args)
        out = io.StringIO()
        with mock.patch("cfspeedtest.CloudflareTransport", return_value=transport), \
                mock.patch("sys.stdout", out):
            asyncio.run(cfspeedtest.run_speedtest(config, mode=OutputMode(args.output_mode)))
        return out.getvalue()

    def test_json(self):
        out = self._run(FakeTransport(), "--json", "-n", "4", "--nr-latency-tests", "2", "-p", "1m")
        result = json.loads(out)
        self.assertEqual(result["metadata"]["colo"], "FRA")
        self.assertEqual(len(result["speed_measurements"]), 4)
        self.assertEqual(set(result["average_mbps"]), {"download", "upload"})

    def test_csv(self):
        out = self._run(FakeTransport(), "--csv", "-n", "4", "--nr-latency-tests", "1", "-p", "100k", "--download-only")
        lines = out.strip().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[1].startswith("Download,100000,"))

    def test_simple(self):
        out = self._run(FakeTransport(), "--simple", "-n", "4", "--nr-latency-tests", "1", "-p", "100k")
        self.assertIn("Download:", out)
        self.assertIn("Latency:", out)

    def test_invalid_config_before_network(self):
        factory = mock.Mock()
        config = cfspeedtest.config_from_args(_parse("-n", "2"))
        with mock.patch("cfspeedtest.CloudflareTransport", factory):
            with self.assertRaises(InvalidConfiguration):
                asyncio.run(cfspeedtest.run_speedtest(config, mode=OutputMode.JSON))
        factory.assert_not_called()


class TestMain(unittest.TestCase):
    def _main(self, *argv, defaults=None, transport=None):
        out, err = io.StringIO(), io.StringIO()
        transport = transport or FakeTransport(fail_at=("latency", 1))
        self.factory = mock.Mock(return_value=transport)
        with mock.patch("cfspeedtest.load_config", return_value=dict(defaults or DEFAULTS)), \
                mock.patch("cfspeedtest.configure_logging"), \
                mock.patch("cfspeedtest.CloudflareTransport", self.factory), \
                mock.patch("sys.stdout", out), \
                mock.patch("sys.stderr", err):
            with self.assertRaises(SystemExit) as ctx:
                cfspeedtest.main(list(argv))
        return ctx.exception.code, out.getvalue(), err.getvalue()

    def test_json_error(self):
        code, out, _ = self._main("--json", "-n", "2")
        self.assertEqual(code, 1)
        self.assertEqual(json.loads(out)["error"]["type"], "InvalidConfiguration")

    def test_transport_failure(self):
        code, out, _ = self._main("--json", "--nr-latency-tests", "1")
        self.assertEqual(code, 1)
        error = json.loads(out)["error"]
        self.assertEqual(error["type"], "TransportFailure")
        self.assertIn("HTTP 503", error["message"])

    def test_float_count_in_config_file(self):
        defaults = dict(DEFAULTS, nr_tests=4.0)
        code, out, _ = self._main("--json", "--nr-latency-tests", "1", "-p", "100k", defaults=defaults)
        self.assertEqual(code, 1)
        self.assertEqual(json.loads(out)["error"]["type"], "InvalidConfiguration")
        self.factory.assert_not_called()

    def test_string_flag_in_config_file(self):
        defaults = dict(DEFAULTS, disable_dynamic_max_payload_size="false")
        code, out, _ = self._main("--json", defaults=defaults)
        self.assertEqual(code, 1)
        self.assertIn("disable_dynamic_max_payload_size", json.loads(out)["error"]["message"])
        self.factory.assert_not_called()

    def test_unwritable_output_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            target = os.path.join(tmpdir, "missing", "result.json")
            code, out, _ = self._main(
                "--json", "-n", "4", "--nr-latency-tests", "1", "-p", "100k", "-o", target,
                transport=FakeTransport(),
            )
        self.assertEqual(code, 1)
        # Exactly one JSON document: the error
        result = json.loads(out)
        self.assertEqual(list(result), ["error"])
        self.assertEqual(result["error"]["type"], "OSError")

    def test_interrupt_in_machine_mode(self):
        def interrupted(coro):
            coro.close()
            raise KeyboardInterrupt

        with mock.patch("cfspeedtest.asyncio.run", side_effect=interrupted):
            code, out, err = self._main("--csv")
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("Test cancelled by user", err)


class TestSaveDefaults(unittest.TestCase):
    def test_writes_config_without_running(self):
        factory = mock.Mock()
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "config.json")
            with mock.patch("engine.config._config_path", return_value=path), \
                    mock.patch("cfspeedtest.load_config", return_value=dict(DEFAULTS)), \
                    mock.patch("cfspeedtest.configure_logging"), \
                    mock.patch("cfspeedtest.CloudflareTransport", factory), \
                    mock.patch("cfspeedtest.console"):
                cfspeedtest.main(["--save-defaults", "-n", "20", "-p", "1m", "-d", "--json"])

            with open(path, encoding="utf-8") as fh:
                saved = json.load(fh)
        self.assertEqual(saved, {
            "nr_tests": 20,
            "nr_latency_tests": 25,
            "max_payload_size": "1m",
            "disable_dynamic_max_payload_size": True,
            "output": "json",
        })
        factory.assert_not_called()

    def test_rejects_invalid_values(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "config.json")
            with mock.patch("engine.config._config_path", return_value=path), \
                    mock.patch("cfspeedtest.load_config", return_value=dict(DEFAULTS)), \
                    mock.patch("cfspeedtest.configure_logging"), \
                    mock.patch("cfspeedtest.console"):
                with self.assertRaises(SystemExit):
                    cfspeedtest.main(["--save-defaults", "-n", "2"])
            self.assertFalse(os.path.exists(path))


if __name__ == "__main__":
    unittest.main()
