import os
import sys
import tempfile
import unittest
from pathlib import Path

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from codebase_requirements.config import ProcessingConfig
from codebase_requirements.core import ExtractionError, FileEntry, extract_archive
from codebase_requirements.core.extractor import decode_text, is_filtered
from helpers import make_zip


class TestDecodeText(unittest.TestCase):
    def test_utf8_text(self):
        self.assertEqual(decode_text("héllo".encode('utf-8')), "héllo")

    def test_bom_is_stripped(self):
        self.assertEqual(decode_text(b'\xef\xbb\xbfname = 1'), "name = 1")

    def test_invalid_utf8_is_binary(self):
        self.assertIsNone(decode_text(b'\xff\xfe\xfa'))

    def test_nul_bytes_are_binary(self):
        self.assertIsNone(decode_text(b'PK\x00\x01'))


class TestIsFiltered(unittest.TestCase):
    def setUp(self):
        self.cfg = ProcessingConfig()

    def test_macos_metadata(self):
        self.assertTrue(is_filtered("__MACOSX/src/._app.py", self.cfg))
        self.assertTrue(is_filtered("src/.DS_Store", self.cfg))

    def test_empty_path(self):
        self.assertTrue(is_filtered("/", self.cfg))
        self.assertTrue(is_filtered("", self.cfg))

    def test_regular_file(self):
        self.assertFalse(is_filtered("src/app.py", self.cfg))


class TestExtractArchive(unittest.TestCase):
    def test_three_text_files_and_two_filtered_entries(self):
        blob = make_zip({
            "src/a.py": "print('a')",
            "src/b.ts": "export const b = 1;",
            "README.md": "# Readme",
            "__MACOSX/foo": "resource fork",
            ".DS_Store": "finder data",
        })

        result = extract_archive(blob)

        self.assertEqual(
            result.entries,
            [
                FileEntry("src/a.py", "print('a')"),
                FileEntry("src/b.ts", "export const b = 1;"),
                FileEntry("README.md", "# Readme"),
            ],
        )
        self.assertEqual(result.skipped, {"__MACOSX/foo": "filtered", ".DS_Store": "filtered"})

    def test_directories_and_binary_entries_are_skipped(self):
        blob = make_zip(
            {"src/app.py": "x = 1", "assets/logo.png": b"\x89PNG\r\n\x1a\n\x00\x00"},
            directories=["src/", "assets/"],
        )

        result = extract_archive(blob)

        self.assertEqual(result.paths, ["src/app.py"])
        self.assertEqual(result.skipped, {"assets/logo.png": "binary"})
        self.assertEqual(result.all_paths, ["src/app.py", "assets/logo.png"])

    def test_every_readable_entry_exactly_once(self):
        files = {f"pkg/module_{i}.py": f"value = {i}" for i in range(25)}
        result = extract_archive(make_zip(files))

        self.assertEqual(sorted(result.paths), sorted(files))
        self.assertEqual(len(result.paths), len(set(result.paths)))

    def test_custom_filters(self):
        cfg = ProcessingConfig(ignore_prefixes=["node_modules/"], ignore_filenames=["Thumbs.db"])
        blob = make_zip({
            "node_modules/x/index.js": "module.exports = {}",
            "img/Thumbs.db": "thumbs",
            "index.js": "run()",
        })

        result = extract_archive(blob, cfg)

        self.assertEqual(result.paths, ["index.js"])

    def test_reads_from_path(self):
        with tempfile.TemporaryDirectory() as tmp:
            zip_path = Path(tmp) / "code.zip"
            zip_path.write_bytes(make_zip({"main.go": "package main"}))

            result = extract_archive(zip_path)

        self.assertEqual(result.entries, [FileEntry("main.go", "package main")])

    def test_invalid_archive(self):
        with self.assertRaises(ExtractionError):
            extract_archive(b"this is not a zip file")

    def test_missing_file(self):
        with self.assertRaises(ExtractionError):
            extract_archive(Path("/nonexistent/archive.zip"))

    def test_empty_archive(self):
        result = extract_archive(make_zip({}))
        self.assertEqual(result.entries, [])


if __name__ == '__main__':
    unittest.main()
