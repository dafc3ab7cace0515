from __future__ import annotations

import io
import os
import tempfile
import unittest
from pathlib import Path

from mipack import Pack, get, put
from mipack.constants import MODE_BINARY, MODE_TEXT


class PackFacadeTests(unittest.TestCase):
    def run_with_tmpdir(self, func):
        with tempfile.TemporaryDirectory() as tmp:
            func(Path(tmp))

    def test_put_get_by_index(self):
        def scenario(tmp_path: Path):
            path = str(tmp_path / "cache.pack")
            p = Pack()
            self.assertTrue(p.put(path, b"A", rewrite=True))
            self.assertTrue(p.put(path, b"B"))
            self.assertTrue(p.put(path, b"C"))
            self.assertEqual(p.get(path, 1).value, b"A")
            self.assertEqual(p.get(path, 2).value, b"B")
            self.assertEqual(p.get(path, 3).value, b"C")
            self.assertEqual(p.get(path).value, b"A")

            missing = p.get(path, 10)
            self.assertFalse(missing)
            self.assertEqual(missing.kind, "BlockNotFound")
            self.assertIsNone(missing.value)
            self.assertEqual(p.last_error, missing.message)
            self.assertTrue(p.get_last_error())

            again = p.get(path, 2)
            self.assertEqual(again.value, b"B")
            self.assertEqual(p.last_error, "")

        self.run_with_tmpdir(scenario)

    def test_text_helper_keeps_configured_mode(self):
        def scenario(tmp_path: Path):
            path = str(tmp_path / "text.pack")
            p = Pack()
            self.assertTrue(p.text(path, b"readable", rewrite=True))
            self.assertEqual(p.mode, MODE_BINARY)
            self.assertEqual(p.get_mode(), MODE_BINARY)
            self.assertEqual(p.get(path).value, b"readable")
            self.assertEqual(p.get_mode(), MODE_TEXT)

            mismatch = p.put(path, b"binary block")
            self.assertEqual(mismatch.kind, "HeaderMismatch")
            self.assertEqual(p.get_mode(), MODE_TEXT)

        self.run_with_tmpdir(scenario)

    def test_stream_read_loop(self):
        def scenario(tmp_path: Path):
            path = str(tmp_path / "loop.pack")
            with Pack(MODE_TEXT) as p:
                self.assertTrue(p.open_write(path, rewrite=True))
                for b in (b"one", b"two", b"three"):
                    self.assertTrue(p.write(b))
                p.close()

                self.assertTrue(p.open_read(path))
                self.assertEqual(p.open_read(path).kind, "InvalidState")
                self.assertTrue(p.read(decode=False).value)
                got = []
                while True:
                    r = p.read()
                    self.assertTrue(r.ok)
                    if r.value is None:
                        break
                    got.append(r.value)
                self.assertEqual(got, [b"two", b"three"])

        self.run_with_tmpdir(scenario)

    def test_oversized_write_keeps_stream_open(self):
        def scenario(tmp_path: Path):
            path = str(tmp_path / "limit.pack")
            p = Pack(chunk_size=16)
            self.assertTrue(p.open_write(path))
            big = p.write(b"x" * 17)
            self.assertEqual(big.kind, "BlockTooLarge")
            self.assertTrue(p.write(b"x" * 16))
            p.close()
            self.assertEqual(get(path, 1, chunk_size=16).value, b"x" * 16)
            self.assertEqual(get(path, 2, chunk_size=16).kind, "BlockNotFound")

        self.run_with_tmpdir(scenario)

    def test_checksum_failure_closes_stream(self):
        def scenario(tmp_path: Path):
            path = tmp_path / "tamper.pack"
            self.assertTrue(put(str(path), b"payload " * 50, mode=MODE_TEXT, rewrite=True))
            raw = bytearray(path.read_bytes())
            raw[-5] = ord("B") if raw[-5] != ord("B") else ord("C")
            path.write_bytes(bytes(raw))

            p = Pack()
            self.assertTrue(p.open_read(str(path)))
            bad = p.read()
            self.assertEqual(bad.kind, "ChecksumMismatch")
            self.assertEqual(p.read().kind, "InvalidState")

        self.run_with_tmpdir(scenario)

    def test_header_mismatch_on_read(self):
        def scenario(tmp_path: Path):
            path = tmp_path / "plain.txt"
            path.write_bytes(b"just some text file")
            p = Pack()
            r = p.open_read(str(path))
            self.assertEqual(r.kind, "HeaderMismatch")
            self.assertEqual(p.read().kind, "InvalidState")
            self.assertEqual(p.get(str(tmp_path / "missing.pack")).kind, "IOError")

        self.run_with_tmpdir(scenario)

    def test_compress_uncompress_export(self):
        def scenario(tmp_path: Path):
            src = tmp_path / "movie.bin"
            data = os.urandom(3000)
            src.write_bytes(data)
            pack = str(tmp_path / "movie.pack")
            p = Pack(chunk_size=1024)
            self.assertEqual(p.compress_file(str(src), pack).value, 3)
            self.assertEqual(p.compress_file(str(src), pack).kind, "IOError")

            out = str(tmp_path / "movie.out")
            info = p.uncompress_file(pack, out)
            self.assertTrue(info)
            self.assertEqual(info.value.size, 3000)
            self.assertEqual(Path(out).read_bytes(), data)
            self.assertEqual(p.uncompress_file(pack, out).kind, "IOError")

            sink = io.BytesIO()
            self.assertTrue(p.export_file(pack, sink, ignore_headers=True))
            self.assertEqual(sink.getvalue(), data)

            text_pack = str(tmp_path / "movie.text.pack")
            self.assertEqual(p.compress_file_text(str(src), text_pack).value, 3)
            with open(text_pack, "rb") as f:
                self.assertTrue(f.read().startswith(b"MIFRAMEPACK/1.0/T"))

        self.run_with_tmpdir(scenario)

    def test_invalid_configuration(self):
        with self.assertRaises(ValueError):
            Pack("zip")
        with self.assertRaises(ValueError):
            Pack(chunk_size=-1)


if __name__ == "__main__":
    unittest.main()
