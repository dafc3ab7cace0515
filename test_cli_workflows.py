from __future__ import annotations

import io
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from mipack.cli import cmd_export, cmd_pack
from mipack.stream import PackStream


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, cwd: Path | None = None, stdin: bytes | None = None):
        cmd = [sys.executable, "-m", "mipack.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            cwd=cwd,
            input=stdin,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\n"
                f"STDOUT:\n{proc.stdout!r}\nSTDERR:\n{proc.stderr.decode(errors='replace')}"
            )
        return proc

    def make_workspace(self) -> Path:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        return Path(tmp.name)

    def test_put_get_list(self):
        ws = self.make_workspace()
        pack = ws / "blocks.pack"
        first = ws / "first.bin"
        first.write_bytes(os.urandom(3000))
        self.run_cli(["put", str(pack), str(first), "--rewrite"])
        self.run_cli(["put", str(pack), "-", "--text"], expect=2, stdin=b"second block")
        self.run_cli(["put", str(pack)], stdin=b"second block")

        proc = self.run_cli(["get", str(pack), "--index", "2"])
        self.assertEqual(proc.stdout, b"second block")
        out = ws / "first.out"
        self.run_cli(["get", str(pack), "-o", str(out)])
        self.assertEqual(out.read_bytes(), first.read_bytes())

        proc = self.run_cli(["list", str(pack)])
        lines = proc.stdout.decode().splitlines()
        self.assertEqual(lines[0].split("\t"), ["block", "1", "3000"])
        self.assertEqual(lines[1].split("\t"), ["block", "2", "12"])
        self.assertIn("Total: 2 block(s), binary mode", lines[-1])

        proc = self.run_cli(["get", str(pack), "--index", "10"], expect=2)
        self.assertIn(b"Error:", proc.stderr)

    def test_info_counts_plain_blocks(self):
        ws = self.make_workspace()
        pack = ws / "abc.pack"
        for i, block in enumerate((b"A", b"B", b"C")):
            args = ["put", str(pack)] + (["--rewrite"] if i == 0 else [])
            self.run_cli(args, stdin=block)
        proc = self.run_cli(["info", str(pack)])
        text = proc.stdout.decode()
        self.assertIn("Mode: binary", text)
        self.assertIn("Blocks: 3", text)
        self.assertNotIn("File:", text)

        empty = ws / "empty.pack"
        with PackStream() as s:
            s.open_write(str(empty))
        proc = self.run_cli(["info", str(empty)])
        self.assertIn("Blocks: 0", proc.stdout.decode())

    def test_put_too_large(self):
        ws = self.make_workspace()
        pack = ws / "small.pack"
        proc = self.run_cli(["put", str(pack), "--chunk-size", "8"], expect=2, stdin=b"more than eight bytes")
        self.assertIn(b"exceeds chunk size", proc.stderr)

    def test_pack_unpack_roundtrip(self):
        ws = self.make_workspace()
        src = ws / "archive.tar"
        data = os.urandom(50_000)
        src.write_bytes(data)
        os.utime(src, (1_500_000_000, 1_500_000_000))
        pack = ws / "archive.pack"
        self.run_cli(["pack", str(src), str(pack), "--chunk-size", "16384", "--text", "--quiet"])

        proc = self.run_cli(["info", str(pack)])
        text = proc.stdout.decode()
        self.assertIn("Mode: text", text)
        self.assertIn("File: archive.tar", text)
        self.assertIn("Chunks: 4", text)

        out = ws / "restored.tar"
        self.run_cli(["unpack", str(pack), str(out)])
        self.assertEqual(out.read_bytes(), data)
        self.assertEqual(int(os.path.getmtime(out)), 1_500_000_000)
        proc = self.run_cli(["unpack", str(pack), str(out)], expect=2)
        self.assertIn(b"already exists", proc.stderr)

    def test_export_cgi_headers(self):
        ws = self.make_workspace()
        src = ws / "page.html"
        src.write_bytes(b"<html>hello</html>")
        pack = ws / "page.pack"
        self.assertTrue(cmd_pack(str(src), str(pack), quiet=True))
        sink = io.BytesIO()
        self.assertTrue(cmd_export(str(pack), cgi=True, out=sink))
        head, _, body = sink.getvalue().partition(b"\r\n\r\n")
        self.assertEqual(body, b"<html>hello</html>")
        self.assertIn(b"Content-type: text/html", head)
        self.assertIn(b"Content-Length: 18", head)

        proc = self.run_cli(["export", str(pack)])
        self.assertEqual(proc.stdout, b"<html>hello</html>")

    def test_verbose_logging(self):
        ws = self.make_workspace()
        pack = ws / "log.pack"
        proc = self.run_cli(["put", str(pack), "-v"], stdin=b"x")
        self.assertIn(b"DEBUG mipack.stream", proc.stderr)
        with PackStream() as s:
            s.open_read(str(pack))
            self.assertEqual(s.read_block(), b"x")


if __name__ == "__main__":
    unittest.main()
