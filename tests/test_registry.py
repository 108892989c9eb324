from __future__ import annotations

import os
import tempfile
import unittest

import zekken_lang
from zekken_lang import (
    BufferedIO,
    InternalError,
    NativeRegistry,
    ZekkenConfig,
    ZekkenTypeError,
)
from zekken_lang.mathlib import dot, matmul, matrix, transpose
from zekken_lang.models import NativeFunction


class RegistryTests(unittest.TestCase):
    def test_default_registry_is_frozen(self) -> None:
        registry = NativeRegistry.default(os.getcwd(), BufferedIO())
        self.assertTrue(registry.frozen)
        with self.assertRaises(InternalError):
            registry.register("math.extra", lambda: 1)

    def test_module_returns_a_fresh_copy(self) -> None:
        registry = NativeRegistry.default(os.getcwd(), BufferedIO())
        first = registry.module("math")
        first["PI"] = 3
        self.assertNotEqual(registry.module("math")["PI"], 3)

    def test_module_entries_keep_registration_order(self) -> None:
        registry = NativeRegistry()
        registry.register("geo.area", lambda w, h: w * h, ("number", "number"))
        registry.constant("geo", "UNIT", 1)
        self.assertEqual(list(registry.module("geo")), ["area", "UNIT"])
        self.assertEqual(registry.module("geo")["area"], NativeFunction("geo.area"))

    def test_signature_checked_before_host_function_runs(self) -> None:
        calls = []
        registry = NativeRegistry()
        registry.register("t.f", lambda s: calls.append(s), ("string",))
        with self.assertRaises(ZekkenTypeError):
            registry.invoke("t.f", [1])
        with self.assertRaises(ZekkenTypeError):
            registry.invoke("t.f", [])
        self.assertEqual(calls, [])

    def test_float_params_accept_int(self) -> None:
        registry = NativeRegistry()
        registry.register("t.half", lambda x: x / 2, ("float",), "float")
        self.assertEqual(registry.invoke("t.half", [3]), 1.5)

    def test_host_failures_become_runtime_errors(self) -> None:
        def boom():
            raise OSError("disk on fire")

        registry = NativeRegistry()
        registry.register("t.boom", boom)
        with self.assertRaises(zekken_lang.ZekkenRuntimeError) as ctx:
            registry.invoke("t.boom", [])
        self.assertIn("t.boom failed", ctx.exception.message)

    def test_host_recursion_becomes_runtime_error(self) -> None:
        def deep():
            raise RecursionError("maximum recursion depth exceeded")

        registry = NativeRegistry()
        registry.register("t.deep", deep)
        with self.assertRaises(zekken_lang.ZekkenRuntimeError) as ctx:
            registry.invoke("t.deep", [])
        self.assertIn("nested too deeply", ctx.exception.message)

    def test_wrong_return_type_is_internal(self) -> None:
        registry = NativeRegistry()
        registry.register("t.bad", lambda: "x", (), "int")
        with self.assertRaises(InternalError):
            registry.invoke("t.bad", [])

    def test_internal_errors_are_logged_and_reported(self) -> None:
        registry = NativeRegistry()
        registry.register("t.bad", lambda: "x", (), "int")
        registry.register("t.crash", lambda: {}["missing"])
        registry.freeze()
        for source in ("t.bad => ||;", "t.crash => ||;"):
            with self.subTest(source=source):
                with self.assertLogs("zekken_lang.runtime", level="ERROR"):
                    result = zekken_lang.run(source, registry=registry)
                self.assertEqual([d.kind for d in result.diagnostics], ["internal"])
                self.assertEqual(result.exit_code, 1)

    def test_substitute_registry_in_run(self) -> None:
        registry = NativeRegistry()
        registry.register("@println", lambda *a: None, None, "null")
        registry.register("clock.now", lambda: 42, (), "int")
        registry.freeze()
        result = zekken_lang.run("clock.now => ||;", registry=registry)
        self.assertEqual(result.value, 42)
        missing = zekken_lang.run("math.sqrt => |4|;", registry=registry)
        self.assertEqual(missing.diagnostics[0].kind, "reference")


class MathLibTests(unittest.TestCase):
    def test_matrix_helpers(self) -> None:
        self.assertEqual(dot([1, 2, 3], [4, 5, 6]), 32.0)
        self.assertEqual(matmul([[1, 2], [3, 4]], [[5, 6], [7, 8]]), [[19.0, 22.0], [43.0, 50.0]])
        self.assertEqual(transpose([[1, 2, 3]]), [[1.0], [2.0], [3.0]])

    def test_ragged_matrix_rejected(self) -> None:
        with self.assertRaises(zekken_lang.ZekkenRuntimeError):
            matrix([[1, 2], [3]])

    def test_math_from_scripts(self) -> None:
        r = zekken_lang.run(
            "@println => |math.sqrt => |16|, math.max => |2, 7.5|, math.round => |2.5|, math.I * math.I|"
        )
        self.assertEqual(r.diagnostics, [])
        self.assertEqual(r.output, ["4.0 7.5 3 -1.0 + 0.0i"])

    def test_use_binds_module_entries(self) -> None:
        r = zekken_lang.run("use { pow } from math;\npow => |2, 10|;")
        self.assertEqual(r.value, 1024.0)
        bad = zekken_lang.run("use { nope } from math;")
        self.assertEqual(bad.diagnostics[0].kind, "reference")

    def test_dot_length_mismatch(self) -> None:
        r = zekken_lang.run("math.dot => |[1], [1, 2]|;")
        self.assertEqual(r.diagnostics[0].kind, "runtime")


class StdLibTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.config = ZekkenConfig(base_path=self._tmp.name)

    def _run(self, source: str, **kwargs):
        return zekken_lang.run(source, config=self.config, **kwargs)

    def test_fs_round_trip_in_base_path(self) -> None:
        src = """
        fs.createDir => |"out"|;
        fs.write => |"out/a.txt", "hello"|;
        fs.append => |"out/a.txt", " world"|;
        @println => |fs.read => |"out/a.txt"| |
        @println => |fs.exists => |"out"|, fs.isDir => |"out"|, fs.isFile => |"out/a.txt"| |
        @println => |fs.list => |"out"| |
        fs.removeFile => |"out/a.txt"|;
        fs.removeDir => |"out"|;
        @println => |fs.exists => |"out"| |
        """
        r = self._run(src)
        self.assertEqual(r.diagnostics, [])
        self.assertEqual(r.output, ["hello world", "true true true", '["a.txt"]', "false"])

    def test_fs_read_missing_file(self) -> None:
        r = self._run('fs.read => |"nope.txt"|;')
        self.assertEqual(r.diagnostics[0].kind, "runtime")
        self.assertIn("File not found", r.diagnostics[0].message)

    def test_json_keeps_key_order(self) -> None:
        src = 'let o: obj = json.parse => |"{\\"z\\": 1, \\"a\\": [true, null]}"|;\n@println => |o.keys => || |\n@println => |json.stringify => |o| |'
        r = self._run(src)
        self.assertEqual(r.diagnostics, [])
        self.assertEqual(r.output, ['["z", "a"]', '{"z": 1, "a": [true, null]}'])

    def test_json_parse_error_is_catchable(self) -> None:
        r = self._run('try { json.parse => |"{oops"|; } catch |e| { @println => |e| }')
        self.assertEqual(r.diagnostics, [])
        self.assertTrue(r.output[0].startswith("Invalid JSON at line 1"))

    def test_json_parse_of_deep_nesting_is_a_runtime_error(self) -> None:
        depth = 50000
        r = self._run('json.parse => |"' + "[" * depth + "]" * depth + '"|;')
        self.assertEqual([d.kind for d in r.diagnostics], ["runtime"])
        self.assertIn("json.parse failed", r.diagnostics[0].message)

    def test_env_vars(self) -> None:
        key = "ZEKKEN_TEST_REGISTRY_VAR"
        self.addCleanup(os.environ.pop, key, None)
        r = self._run(f'os.setEnv => |"{key}", "v"|;\n@println => |os.getEnv => |"{key}"| |\nos.removeEnv => |"{key}"|;\nos.getEnv => |"{key}"|;')
        self.assertEqual(r.output, ["v"])
        self.assertIsNone(r.value)

    def test_input_reads_from_io_handler(self) -> None:
        io = BufferedIO(inputs=["Ada"])
        r = self._run('let name: string = @input => |"name? "|;\n@println => |"hi " + name|', io=io)
        self.assertEqual(r.output, ["hi Ada"])

    def test_builtins_are_not_shadowed_by_unknown_names(self) -> None:
        r = self._run("@nosuch => ||;")
        self.assertEqual(r.diagnostics[0].kind, "reference")


if __name__ == "__main__":
    unittest.main(verbosity=2)
